"""Cost functions for bundle adjustment.

All costs are pyceres.CostFunction subclasses. Residual kernels are written
against jax.numpy and differentiated automatically.
"""

from .alignment import Point3DAlignmentCost
from .base_cost import AutoDiffCostFunction, numeric_jacobians, specialize
from .camera_dispatch import create_camera_cost_function
from .conditioning import (
    ConditionedCostFunction,
    IsotropicNoiseCostFunctionWrapper,
    LinearCostFunction,
)
from .cost_info_model import CostCollection, CostInfo, PosePriorCostInfo, ReprojectionCostInfo
from .epipolar import SampsonErrorCost
from .manifold_helpers import (
    check_quaternion_valid,
    get_quaternion_manifold,
    get_sphere_manifold,
    normalize_quaternion,
)
from .priors import (
    AbsolutePosePositionPriorCost,
    AbsolutePosePriorCost,
    RelativePosePriorCost,
)
from .reprojection import (
    ReprojErrorConstantPoint3DCost,
    ReprojErrorConstantPoseCost,
    ReprojErrorCost,
    RigReprojErrorConstantRigCost,
    RigReprojErrorCost,
)

__all__ = [
    # Base
    "AutoDiffCostFunction",
    "numeric_jacobians",
    "specialize",
    # Reprojection
    "ReprojErrorCost",
    "ReprojErrorConstantPoseCost",
    "ReprojErrorConstantPoint3DCost",
    "RigReprojErrorCost",
    "RigReprojErrorConstantRigCost",
    # Priors
    "AbsolutePosePriorCost",
    "AbsolutePosePositionPriorCost",
    "RelativePosePriorCost",
    # Alignment and epipolar
    "Point3DAlignmentCost",
    "SampsonErrorCost",
    # Conditioning
    "ConditionedCostFunction",
    "IsotropicNoiseCostFunctionWrapper",
    "LinearCostFunction",
    # Dispatch
    "create_camera_cost_function",
    # Manifolds
    "get_quaternion_manifold",
    "get_sphere_manifold",
    "normalize_quaternion",
    "check_quaternion_valid",
    # Cost bookkeeping
    "CostInfo",
    "CostCollection",
    "ReprojectionCostInfo",
    "PosePriorCostInfo",
]
