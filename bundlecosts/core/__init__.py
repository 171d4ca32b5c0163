"""Problem registration layer: configuration, problem wrapper, results."""

from .config import OptimizationConfig
from .problem import BundleAdjustmentProblem
from .result import OptimizationResult

__all__ = [
    "OptimizationConfig",
    "BundleAdjustmentProblem",
    "OptimizationResult",
]
