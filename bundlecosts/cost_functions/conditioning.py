"""Residual conditioning.

Wraps an existing cost function and passes each of its residual components
through a scalar conditioner cost (a 1-residual cost over one block of
size 1). The wrapped Jacobian rows are scaled by the conditioner's
derivative (chain rule), so the parameter-block shape is unchanged.

IsotropicNoiseCostFunctionWrapper uses this to whiten any cost by
1 / stddev.
"""

import functools
import logging
import math
from typing import Any, Callable, Sequence

import numpy as np
import pyceres

logger = logging.getLogger(__name__)


class LinearCostFunction(pyceres.CostFunction):
    """Scalar conditioner: residual = scale * x.

    Parameters:
        - x (1)
    """

    def __init__(self, scale: float) -> None:
        super().__init__()
        self.scale = float(scale)
        self.set_num_residuals(1)
        self.set_parameter_block_sizes([1])

    def Evaluate(
        self,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray | None] | None
    ) -> bool:
        residuals[0] = self.scale * parameters[0][0]

        if jacobians is not None and jacobians[0] is not None:
            jacobians[0][0] = self.scale

        return True


class ConditionedCostFunction(pyceres.CostFunction):
    """Apply one scalar conditioner per residual of a wrapped cost function.

    A None conditioner leaves the corresponding residual untouched.
    """

    def __init__(
        self,
        *,
        wrapped_cost_function: pyceres.CostFunction,
        conditioners: Sequence[pyceres.CostFunction | None]
    ) -> None:
        """Initialize conditioned cost function.

        Args:
            wrapped_cost_function: Cost whose residuals are conditioned
            conditioners: One scalar cost (or None) per wrapped residual

        Raises:
            ValueError: If the number of conditioners does not match the
                wrapped residual dimension, or a conditioner is not scalar
        """
        super().__init__()
        num_residuals = wrapped_cost_function.num_residuals()
        if len(conditioners) != num_residuals:
            raise ValueError(
                f"Expected {num_residuals} conditioners, got {len(conditioners)}"
            )
        for index, conditioner in enumerate(conditioners):
            if conditioner is None:
                continue
            if conditioner.num_residuals() != 1 or list(conditioner.parameter_block_sizes()) != [1]:
                raise ValueError(
                    f"Conditioner {index} must have 1 residual and one block of size 1"
                )

        self.wrapped_cost_function = wrapped_cost_function
        self.conditioners = list(conditioners)
        self.set_num_residuals(num_residuals)
        self.set_parameter_block_sizes(list(wrapped_cost_function.parameter_block_sizes()))

    def Evaluate(
        self,
        parameters: list[np.ndarray],
        residuals: np.ndarray,
        jacobians: list[np.ndarray | None] | None
    ) -> bool:
        if not self.wrapped_cost_function.Evaluate(parameters, residuals, jacobians):
            return False

        num_residuals = len(residuals)
        conditioned = np.zeros(1)
        derivative = np.zeros(1)

        for i, conditioner in enumerate(self.conditioners):
            if conditioner is None:
                continue

            if not conditioner.Evaluate([np.array([residuals[i]])], conditioned, [derivative]):
                return False
            residuals[i] = conditioned[0]

            if jacobians is None:
                continue
            for jacobian in jacobians:
                if jacobian is None:
                    continue
                jacobian.reshape(num_residuals, -1)[i] *= derivative[0]

        return True


class IsotropicNoiseCostFunctionWrapper:
    """Factory scaling every residual of a cost function by 1 / stddev."""

    @staticmethod
    def factory(
        cost_class: type[pyceres.CostFunction],
        stddev: float
    ) -> Callable[..., ConditionedCostFunction]:
        """Bind cost_class and stddev, leaving the constructor arguments open.

        The result can be passed to create_camera_cost_function in place of
        a cost class.
        """
        return functools.partial(IsotropicNoiseCostFunctionWrapper.create, cost_class, stddev)

    @staticmethod
    def create(
        cost_class: type[pyceres.CostFunction],
        stddev: float,
        *args: Any,
        **kwargs: Any
    ) -> ConditionedCostFunction:
        """Build the wrapped cost and condition it with 1 / stddev.

        Args:
            cost_class: Cost function class to construct
            stddev: Isotropic standard deviation of the residuals
            *args: Constructor arguments for cost_class
            **kwargs: Constructor keyword arguments for cost_class

        Returns:
            ConditionedCostFunction with the same block sizes as the
            wrapped cost

        Raises:
            ValueError: If stddev is not a positive finite number
        """
        if not math.isfinite(stddev) or stddev <= 0.0:
            raise ValueError(f"stddev must be positive, got {stddev}")

        wrapped = cost_class(*args, **kwargs)
        scale = 1.0 / stddev
        logger.debug(f"Conditioning {cost_class.__name__} with scale {scale:.6g}")

        conditioners = [LinearCostFunction(scale) for _ in range(wrapped.num_residuals())]
        return ConditionedCostFunction(
            wrapped_cost_function=wrapped,
            conditioners=conditioners,
        )
