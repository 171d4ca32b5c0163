"""Base class for all bundlecosts cost functions.

Every cost function is a pyceres.CostFunction whose residual is a pure
"kernel" written against jax.numpy:

    kernel(*constants, *parameter_blocks) -> residual vector

The constants are the immutable data captured at construction (observations,
priors, fixed poses, square-root information matrices). The same kernel is
evaluated on plain arrays for residual-only evaluation and under
jax.jacfwd when the solver requests Jacobians.

Kernels are jit-compiled with the kernel itself as a static argument, so
each distinct kernel (including each camera-model specialization produced
by `specialize`) compiles once and is shared by all its instances.
"""

import functools
from typing import Any, Callable

import numpy as np
import pyceres

from bundlecosts.jax_init import jax, jnp

Kernel = Callable[..., jnp.ndarray]


@functools.lru_cache(maxsize=None)
def specialize(kernel: Kernel, *static: Any) -> Kernel:
    """Bind compile-time arguments (e.g. a camera model) to a kernel.

    Memoized so that equal arguments always return the same callable, which
    keeps a single jit specialization per (kernel, static arguments) pair.

    Args:
        kernel: Kernel taking the static arguments first
        *static: Hashable leading arguments

    Returns:
        Kernel with the static arguments bound
    """
    return functools.partial(kernel, *static)


@functools.partial(jax.jit, static_argnums=0)
def _evaluate_residuals(
    kernel: Kernel,
    constants: tuple,
    blocks: tuple
) -> jnp.ndarray:
    return kernel(*constants, *blocks)


@functools.partial(jax.jit, static_argnums=0)
def _evaluate_residuals_and_jacobians(
    kernel: Kernel,
    constants: tuple,
    blocks: tuple
) -> tuple[jnp.ndarray, tuple[jnp.ndarray, ...]]:
    def residual_of(*params: jnp.ndarray) -> jnp.ndarray:
        return kernel(*constants, *params)

    argnums = tuple(range(len(blocks)))
    jacobians = jax.jacfwd(residual_of, argnums=argnums)(*blocks)
    return residual_of(*blocks), jacobians


def freeze_constant(value: Any) -> np.ndarray:
    """Copy a captured value into a read-only float64 array."""
    array = np.array(value, dtype=np.float64)
    array.setflags(write=False)
    return array


class AutoDiffCostFunction(pyceres.CostFunction):
    """Cost function evaluated through a jax.numpy kernel.

    Provides:
    - Residual evaluation of the kernel on the current parameter blocks
    - Forward-mode automatic differentiation for the Jacobians
    - The pyceres Evaluate interface

    Subclasses build their kernel and constants in __init__ and pass them
    here together with the residual dimension and block sizes.
    """

    def __init__(
        self,
        *,
        kernel: Kernel,
        constants: tuple[Any, ...],
        num_residuals: int,
        parameter_block_sizes: list[int]
    ) -> None:
        """Initialize autodiff cost function.

        Args:
            kernel: Pure residual function kernel(*constants, *blocks)
            constants: Captured data passed ahead of the parameter blocks
            num_residuals: Residual dimension
            parameter_block_sizes: Size of each parameter block, in order
        """
        super().__init__()
        self.kernel = kernel
        self.constants = tuple(freeze_constant(value=c) for c in constants)
        self._residual_dimension = int(num_residuals)
        self._block_sizes = tuple(int(size) for size in parameter_block_sizes)
        self.set_num_residuals(self._residual_dimension)
        self.set_parameter_block_sizes(list(self._block_sizes))

    @classmethod
    def create(cls, *args: Any, **kwargs: Any) -> "AutoDiffCostFunction":
        """Factory used by the camera dispatch and the noise wrapper."""
        return cls(*args, **kwargs)

    @property
    def residual_dimension(self) -> int:
        """Number of residuals."""
        return self._residual_dimension

    @property
    def block_sizes(self) -> tuple[int, ...]:
        """Parameter block sizes, in evaluation order."""
        return self._block_sizes

    def _as_blocks(self, parameters: list[np.ndarray]) -> tuple[np.ndarray, ...]:
        if len(parameters) != len(self._block_sizes):
            raise ValueError(
                f"{type(self).__name__} expects {len(self._block_sizes)} parameter blocks, "
                f"got {len(parameters)}"
            )
        return tuple(np.array(p, dtype=np.float64).reshape(-1) for p in parameters)

    def residual(self, *parameters: np.ndarray) -> np.ndarray:
        """Evaluate the residual on plain arrays.

        Args:
            *parameters: Parameter blocks, in order

        Returns:
            (num_residuals,) residual vector
        """
        blocks = self._as_blocks(list(parameters))
        return np.asarray(_evaluate_residuals(self.kernel, self.constants, blocks))

    def jacobians(self, *parameters: np.ndarray) -> list[np.ndarray]:
        """Evaluate the Jacobian of the residual w.r.t. each block.

        Args:
            *parameters: Parameter blocks, in order

        Returns:
            List of (num_residuals, block_size) matrices
        """
        blocks = self._as_blocks(list(parameters))
        _, jacobian_blocks = _evaluate_residuals_and_jacobians(self.kernel, self.constants, blocks)
        return [np.asarray(j) for j in jacobian_blocks]

    def Evaluate(
        self,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray | None] | None
    ) -> bool:
        """Evaluate cost function (pyceres interface).

        Args:
            parameters: List of parameter blocks
            residuals: Output residual vector
            jacobians: None for residual-only evaluation, otherwise one
                row-major (num_residuals x block_size) buffer per block,
                or None for blocks whose Jacobian is not requested

        Returns:
            True, evaluation does not fail
        """
        blocks = self._as_blocks(parameters)

        if jacobians is None:
            residuals[:] = np.asarray(_evaluate_residuals(self.kernel, self.constants, blocks))
            return True

        value, jacobian_blocks = _evaluate_residuals_and_jacobians(self.kernel, self.constants, blocks)
        residuals[:] = np.asarray(value)
        for jacobian, block in zip(jacobians, jacobian_blocks):
            if jacobian is None:
                continue
            jacobian[:] = np.asarray(block).reshape(np.shape(jacobian))
        return True

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(residuals={self._residual_dimension}, "
            f"blocks={list(self._block_sizes)})"
        )


def numeric_jacobians(
    *,
    cost: pyceres.CostFunction,
    parameters: list[np.ndarray],
    num_residuals: int,
    eps: float = 1e-7
) -> list[np.ndarray]:
    """Compute Jacobians of any cost function by central finite differences.

    Used to cross-check analytic and autodiff Jacobians.

    Args:
        cost: Cost function exposing Evaluate
        parameters: List of parameter blocks
        num_residuals: Residual dimension of the cost
        eps: Step size for finite differences

    Returns:
        List of (num_residuals, block_size) matrices
    """
    parameters = [np.array(p, dtype=np.float64) for p in parameters]
    jacobians = []

    for param_idx, param in enumerate(parameters):
        jacobian = np.zeros((num_residuals, len(param)))

        for i in range(len(param)):
            params_plus = [p.copy() for p in parameters]
            params_minus = [p.copy() for p in parameters]
            params_plus[param_idx][i] += eps
            params_minus[param_idx][i] -= eps

            residual_plus = np.zeros(num_residuals)
            residual_minus = np.zeros(num_residuals)
            cost.Evaluate(params_plus, residual_plus, None)
            cost.Evaluate(params_minus, residual_minus, None)

            jacobian[:, i] = (residual_plus - residual_minus) / (2.0 * eps)

        jacobians.append(jacobian)

    return jacobians
