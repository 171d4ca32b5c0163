"""Pose prior cost functions.

Priors anchor poses to external measurements (GPS, IMU integration, an
earlier reconstruction). Every residual is whitened by the square-root
information matrix of the measurement covariance.

Cost Functions:
- AbsolutePosePriorCost: full 6-DoF prior on cam_from_world
- AbsolutePosePositionPriorCost: prior on the camera center in world
- RelativePosePriorCost: prior on the relative pose i_from_j
"""

import numpy as np

from bundlecosts.cost_functions.base_cost import AutoDiffCostFunction
from bundlecosts.geometry.covariance import sqrt_information
from bundlecosts.geometry.rigid3 import Rigid3d, as_vector
from bundlecosts.geometry.rotation import (
    quat_inverse,
    quat_multiply,
    quat_rotate,
    quaternion_to_angle_axis,
)
from bundlecosts.jax_init import jnp


def absolute_pose_prior_kernel(
    world_from_cam_prior_rotation: jnp.ndarray,
    world_from_cam_prior_translation: jnp.ndarray,
    sqrt_info: jnp.ndarray,
    cam_from_world_rotation: jnp.ndarray,
    cam_from_world_translation: jnp.ndarray
) -> jnp.ndarray:
    # param_from_prior = cam_from_world * world_from_cam_prior
    rotation_error = quaternion_to_angle_axis(
        quat_multiply(cam_from_world_rotation, world_from_cam_prior_rotation)
    )
    translation_error = cam_from_world_translation + quat_rotate(
        cam_from_world_rotation,
        world_from_cam_prior_translation,
    )
    return sqrt_info @ jnp.concatenate([rotation_error, translation_error])


def absolute_pose_position_prior_kernel(
    position_in_world_prior: jnp.ndarray,
    sqrt_info: jnp.ndarray,
    cam_from_world_rotation: jnp.ndarray,
    cam_from_world_translation: jnp.ndarray
) -> jnp.ndarray:
    # Camera center is -R^T t; residual is prior - center.
    center_offset = quat_rotate(
        quat_inverse(cam_from_world_rotation),
        cam_from_world_translation,
    )
    return sqrt_info @ (position_in_world_prior + center_offset)


def relative_pose_prior_kernel(
    j_from_i_prior_rotation: jnp.ndarray,
    j_from_i_prior_translation: jnp.ndarray,
    sqrt_info: jnp.ndarray,
    i_from_world_rotation: jnp.ndarray,
    i_from_world_translation: jnp.ndarray,
    j_from_world_rotation: jnp.ndarray,
    j_from_world_translation: jnp.ndarray
) -> jnp.ndarray:
    i_from_j_rotation = quat_multiply(
        i_from_world_rotation,
        quat_inverse(j_from_world_rotation),
    )
    rotation_error = quaternion_to_angle_axis(
        quat_multiply(i_from_j_rotation, j_from_i_prior_rotation)
    )
    translation_error = i_from_world_translation + quat_rotate(
        i_from_j_rotation,
        j_from_i_prior_translation - j_from_world_translation,
    )
    return sqrt_info @ jnp.concatenate([rotation_error, translation_error])


class AbsolutePosePriorCost(AutoDiffCostFunction):
    """Prior on a full camera pose.

    Residual (6) = sqrt_info @ [angle_axis(rot error), translation error],
    zero when cam_from_world equals the prior.

    Parameters:
        - cam_from_world_rotation (4): quaternion [x, y, z, w]
        - cam_from_world_translation (3)
    """

    def __init__(self, cam_from_world_prior: Rigid3d, covariance: np.ndarray) -> None:
        """Initialize absolute pose prior.

        Args:
            cam_from_world_prior: Measured camera pose
            covariance: (6, 6) covariance ordered [rotation, translation]

        Raises:
            ValueError: If the covariance is not 6x6 symmetric positive-definite
        """
        sqrt_info = sqrt_information(covariance=covariance, size=6)
        world_from_cam_prior = cam_from_world_prior.inverse()
        super().__init__(
            kernel=absolute_pose_prior_kernel,
            constants=(
                world_from_cam_prior.rotation,
                world_from_cam_prior.translation,
                sqrt_info,
            ),
            num_residuals=6,
            parameter_block_sizes=[4, 3],
        )
        self.cam_from_world_prior = cam_from_world_prior
        self.sqrt_info = self.constants[2]


class AbsolutePosePositionPriorCost(AutoDiffCostFunction):
    """Prior on the camera center expressed in world coordinates.

    Parameters:
        - cam_from_world_rotation (4)
        - cam_from_world_translation (3)
    """

    def __init__(self, position_in_world_prior: np.ndarray, covariance: np.ndarray) -> None:
        position = as_vector(
            values=position_in_world_prior,
            size=3,
            name="position_in_world_prior",
        )
        sqrt_info = sqrt_information(covariance=covariance, size=3)
        super().__init__(
            kernel=absolute_pose_position_prior_kernel,
            constants=(position, sqrt_info),
            num_residuals=3,
            parameter_block_sizes=[4, 3],
        )
        self.position_in_world_prior, self.sqrt_info = self.constants


class RelativePosePriorCost(AutoDiffCostFunction):
    """Prior on the relative pose between two cameras.

    Residual (6) is zero when i_from_world * inverse(j_from_world) equals
    the measured i_from_j.

    Parameters:
        - i_from_world_rotation (4)
        - i_from_world_translation (3)
        - j_from_world_rotation (4)
        - j_from_world_translation (3)
    """

    def __init__(self, i_from_j_prior: Rigid3d, covariance: np.ndarray) -> None:
        """Initialize relative pose prior.

        Args:
            i_from_j_prior: Measured relative pose
            covariance: (6, 6) covariance ordered [rotation, translation]
        """
        sqrt_info = sqrt_information(covariance=covariance, size=6)
        j_from_i_prior = i_from_j_prior.inverse()
        super().__init__(
            kernel=relative_pose_prior_kernel,
            constants=(
                j_from_i_prior.rotation,
                j_from_i_prior.translation,
                sqrt_info,
            ),
            num_residuals=6,
            parameter_block_sizes=[4, 3, 4, 3],
        )
        self.i_from_j_prior = i_from_j_prior
        self.sqrt_info = self.constants[2]
