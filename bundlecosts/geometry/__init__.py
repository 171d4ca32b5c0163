"""Pose algebra for bundle adjustment residuals.

- rotation: quaternion helpers usable inside residual kernels
- rigid3: constant rigid / similarity transforms
- covariance: square-root information matrices
"""

from .covariance import sqrt_information, validate_covariance
from .rigid3 import Rigid3d, Sim3d, Transform3d, as_vector
from .rotation import (
    cross_product_matrix,
    quat_conjugate,
    quat_inverse,
    quat_multiply,
    quat_rotate,
    quat_to_rotation_matrix,
    quaternion_to_angle_axis,
)

__all__ = [
    # Covariance
    "sqrt_information",
    "validate_covariance",
    # Transforms
    "Rigid3d",
    "Sim3d",
    "Transform3d",
    "as_vector",
    # Kernel-side rotation helpers
    "cross_product_matrix",
    "quat_conjugate",
    "quat_inverse",
    "quat_multiply",
    "quat_rotate",
    "quat_to_rotation_matrix",
    "quaternion_to_angle_axis",
]
