"""Bundle adjustment problem wrapper for pyceres.

Thin registration layer around pyceres.Problem that handles:
- Named parameter blocks (poses, points, intrinsics, rig extrinsics)
- Quaternion and sphere manifolds
- Residual-block registration with the configured robust loss
- Solving and result extraction
"""

import logging
import time

import numpy as np
import pyceres

from bundlecosts.core.config import OptimizationConfig
from bundlecosts.core.result import OptimizationResult
from bundlecosts.cost_functions.manifold_helpers import (
    get_quaternion_manifold,
    get_sphere_manifold,
)

logger = logging.getLogger(__name__)


class BundleAdjustmentProblem:
    """pyceres problem with named parameter blocks.

    Parameter arrays are owned by the caller and updated in place by solve().

    Usage:
        problem = BundleAdjustmentProblem(config=OptimizationConfig())

        problem.add_quaternion_parameter(name="cam0_rotation", parameters=quat)
        problem.add_parameter_block(name="cam0_translation", parameters=trans)

        problem.add_residual_block(cost=cost_fn, parameters=[quat, trans, point, params])

        result = problem.solve()
    """

    def __init__(self, *, config: OptimizationConfig | None = None) -> None:
        """Initialize problem.

        Args:
            config: Optimization configuration (defaults if None)
        """
        self.config = config if config is not None else OptimizationConfig()
        self.problem = pyceres.Problem()
        self.parameter_blocks: dict[str, np.ndarray] = {}
        self.loss_function = self.config.get_loss_function()
        # pyceres does not own Python-side objects; keep them alive with the problem.
        self._cost_functions: list[pyceres.CostFunction] = []
        self._manifolds: list[pyceres.Manifold] = []

    def add_parameter_block(
        self,
        *,
        name: str,
        parameters: np.ndarray,
        manifold: pyceres.Manifold | None = None
    ) -> None:
        """Add parameter block to the problem.

        Args:
            name: Identifier for this parameter block
            parameters: float64 parameter array (modified in place by solve)
            manifold: Optional manifold constraint

        Raises:
            ValueError: If the name is taken or the array is not float64
        """
        if name in self.parameter_blocks:
            raise ValueError(f"Parameter block '{name}' already exists")
        if parameters.dtype != np.float64 or not parameters.flags.c_contiguous:
            raise ValueError(f"Parameter block '{name}' must be a contiguous float64 array")

        self.parameter_blocks[name] = parameters
        self.problem.add_parameter_block(parameters, len(parameters))

        if manifold is not None:
            self._manifolds.append(manifold)
            self.problem.set_manifold(parameters, manifold)

        logger.debug(f"Added parameter block '{name}' with {len(parameters)} parameters")

    def add_quaternion_parameter(self, *, name: str, parameters: np.ndarray) -> None:
        """Add an [x, y, z, w] quaternion block on the quaternion manifold."""
        if len(parameters) != 4:
            raise ValueError(f"Quaternion must have 4 elements, got {len(parameters)}")
        self.add_parameter_block(
            name=name,
            parameters=parameters,
            manifold=get_quaternion_manifold(),
        )

    def add_unit_vector_parameter(self, *, name: str, parameters: np.ndarray) -> None:
        """Add a unit-norm block (e.g. a two-view translation direction)."""
        self.add_parameter_block(
            name=name,
            parameters=parameters,
            manifold=get_sphere_manifold(size=len(parameters)),
        )

    def add_residual_block(
        self,
        *,
        cost: pyceres.CostFunction,
        parameters: list[np.ndarray],
        loss: pyceres.LossFunction | None = None
    ) -> None:
        """Add residual block to the problem.

        Args:
            cost: Cost function
            parameters: Parameter arrays, in the cost's block order
            loss: Optional loss function (uses config default if None)
        """
        if loss is None:
            loss = self.loss_function

        self._cost_functions.append(cost)
        self.problem.add_residual_block(cost, loss, parameters)

    def set_parameter_constant(self, *, name: str) -> None:
        """Hold a named parameter block constant."""
        self.problem.set_parameter_block_constant(self.get_parameter(name=name))

    def set_parameter_variable(self, *, name: str) -> None:
        """Let a previously constant parameter block vary again."""
        self.problem.set_parameter_block_variable(self.get_parameter(name=name))

    def get_parameter(self, *, name: str) -> np.ndarray:
        """Get parameter block by name.

        Raises:
            KeyError: If no block has this name
        """
        if name not in self.parameter_blocks:
            raise KeyError(f"Parameter block '{name}' not found")
        return self.parameter_blocks[name]

    def num_parameters(self) -> int:
        """Total number of scalar parameters."""
        return self.problem.num_parameters()

    def num_residual_blocks(self) -> int:
        """Number of residual blocks."""
        return self.problem.num_residual_blocks()

    def solve(self) -> OptimizationResult:
        """Solve the problem.

        Returns:
            OptimizationResult with optimization results
        """
        logger.info(
            f"Solving bundle adjustment: {self.num_parameters()} parameters, "
            f"{self.num_residual_blocks()} residual blocks"
        )

        options = self.config.to_solver_options()
        summary = pyceres.SolverSummary()

        start_time = time.time()
        pyceres.solve(options, self.problem, summary)
        solve_time = time.time() - start_time

        result = OptimizationResult.from_pyceres_summary(
            summary=summary,
            solve_time_seconds=solve_time,
        )

        logger.info(
            f"Optimization {'converged' if result.success else 'did not converge'}: "
            f"{result.num_iterations} iterations, cost {result.initial_cost:.6f} -> "
            f"{result.final_cost:.6f} ({result.cost_reduction_percent:.1f}% reduction) "
            f"in {result.solve_time_seconds:.2f}s"
        )

        return result
