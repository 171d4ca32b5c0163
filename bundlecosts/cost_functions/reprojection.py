"""Reprojection error cost functions.

Residual = projection of the 3D point through the camera pose and camera
model, minus the observed 2D point:

    point_in_cam = R @ point3D + t
    residual = img_from_cam(camera_params, point_in_cam) - observed

Cost Functions:
- ReprojErrorCost: variable pose, point and intrinsics
- ReprojErrorConstantPoseCost: fixed camera pose
- ReprojErrorConstantPoint3DCost: fixed 3D point
- RigReprojErrorCost: variable sensor-in-rig pose and rig pose
- RigReprojErrorConstantRigCost: fixed sensor-in-rig pose

Each class is specialized per camera model: the camera model class is the
first constructor argument. Use create_camera_cost_function to select the
model from a CameraModelId at runtime.
"""

import numpy as np

from bundlecosts.cost_functions.base_cost import AutoDiffCostFunction, specialize
from bundlecosts.geometry.rigid3 import Rigid3d, as_vector
from bundlecosts.geometry.rotation import quat_rotate
from bundlecosts.jax_init import jnp
from bundlecosts.sensors.camera_models import CameraModel


def project_residual(
    camera_model: type[CameraModel],
    observed: jnp.ndarray,
    point3D_in_cam: jnp.ndarray,
    camera_params: jnp.ndarray
) -> jnp.ndarray:
    """Project a camera-space point and subtract the observation."""
    u, v = camera_model.img_from_cam(
        camera_params,
        point3D_in_cam[0],
        point3D_in_cam[1],
        point3D_in_cam[2],
    )
    return jnp.stack([u - observed[0], v - observed[1]])


def reproj_error_kernel(
    camera_model: type[CameraModel],
    observed: jnp.ndarray,
    cam_from_world_rotation: jnp.ndarray,
    cam_from_world_translation: jnp.ndarray,
    point3D: jnp.ndarray,
    camera_params: jnp.ndarray
) -> jnp.ndarray:
    point3D_in_cam = quat_rotate(cam_from_world_rotation, point3D) + cam_from_world_translation
    return project_residual(camera_model, observed, point3D_in_cam, camera_params)


def reproj_error_constant_point3D_kernel(
    camera_model: type[CameraModel],
    observed: jnp.ndarray,
    point3D: jnp.ndarray,
    cam_from_world_rotation: jnp.ndarray,
    cam_from_world_translation: jnp.ndarray,
    camera_params: jnp.ndarray
) -> jnp.ndarray:
    return reproj_error_kernel(
        camera_model,
        observed,
        cam_from_world_rotation,
        cam_from_world_translation,
        point3D,
        camera_params,
    )


def rig_reproj_error_kernel(
    camera_model: type[CameraModel],
    observed: jnp.ndarray,
    cam_from_rig_rotation: jnp.ndarray,
    cam_from_rig_translation: jnp.ndarray,
    rig_from_world_rotation: jnp.ndarray,
    rig_from_world_translation: jnp.ndarray,
    point3D: jnp.ndarray,
    camera_params: jnp.ndarray
) -> jnp.ndarray:
    point3D_in_rig = quat_rotate(rig_from_world_rotation, point3D) + rig_from_world_translation
    point3D_in_cam = quat_rotate(cam_from_rig_rotation, point3D_in_rig) + cam_from_rig_translation
    return project_residual(camera_model, observed, point3D_in_cam, camera_params)


class ReprojErrorCost(AutoDiffCostFunction):
    """Standard bundle adjustment reprojection error.

    Parameters:
        - cam_from_world_rotation (4): quaternion [x, y, z, w]
        - cam_from_world_translation (3)
        - point3D (3): point in world frame
        - camera_params (N): intrinsics of the camera model
    """

    def __init__(self, camera_model: type[CameraModel], point2D: np.ndarray) -> None:
        """Initialize reprojection error.

        Args:
            camera_model: Camera model class
            point2D: (2,) observed image point
        """
        observed = as_vector(values=point2D, size=2, name="point2D")
        super().__init__(
            kernel=specialize(reproj_error_kernel, camera_model),
            constants=(observed,),
            num_residuals=2,
            parameter_block_sizes=[4, 3, 3, camera_model.num_params],
        )
        self.camera_model = camera_model
        self.observed = self.constants[0]


class ReprojErrorConstantPoseCost(AutoDiffCostFunction):
    """Reprojection error with a fixed camera pose.

    Parameters:
        - point3D (3): point in world frame
        - camera_params (N): intrinsics of the camera model
    """

    def __init__(
        self,
        camera_model: type[CameraModel],
        cam_from_world: Rigid3d,
        point2D: np.ndarray
    ) -> None:
        """Initialize constant-pose reprojection error.

        Args:
            camera_model: Camera model class
            cam_from_world: Fixed camera pose
            point2D: (2,) observed image point
        """
        observed = as_vector(values=point2D, size=2, name="point2D")
        super().__init__(
            kernel=specialize(reproj_error_kernel, camera_model),
            constants=(
                observed,
                cam_from_world.rotation,
                cam_from_world.translation,
            ),
            num_residuals=2,
            parameter_block_sizes=[3, camera_model.num_params],
        )
        self.camera_model = camera_model
        self.cam_from_world = cam_from_world
        self.observed = self.constants[0]


class ReprojErrorConstantPoint3DCost(AutoDiffCostFunction):
    """Reprojection error with a fixed 3D point.

    Parameters:
        - cam_from_world_rotation (4): quaternion [x, y, z, w]
        - cam_from_world_translation (3)
        - camera_params (N): intrinsics of the camera model
    """

    def __init__(
        self,
        camera_model: type[CameraModel],
        point2D: np.ndarray,
        point3D: np.ndarray
    ) -> None:
        """Initialize constant-point reprojection error.

        Args:
            camera_model: Camera model class
            point2D: (2,) observed image point
            point3D: (3,) fixed point in world frame
        """
        observed = as_vector(values=point2D, size=2, name="point2D")
        point3D = as_vector(values=point3D, size=3, name="point3D")
        super().__init__(
            kernel=specialize(reproj_error_constant_point3D_kernel, camera_model),
            constants=(observed, point3D),
            num_residuals=2,
            parameter_block_sizes=[4, 3, camera_model.num_params],
        )
        self.camera_model = camera_model
        self.observed, self.point3D = self.constants


class RigReprojErrorCost(AutoDiffCostFunction):
    """Reprojection error for a camera mounted in a rig.

    The point is first mapped into the rig frame, then into the camera
    frame within the rig:

        point_in_cam = cam_from_rig * (rig_from_world * point3D)

    Parameters:
        - cam_from_rig_rotation (4)
        - cam_from_rig_translation (3)
        - rig_from_world_rotation (4)
        - rig_from_world_translation (3)
        - point3D (3)
        - camera_params (N)
    """

    def __init__(self, camera_model: type[CameraModel], point2D: np.ndarray) -> None:
        observed = as_vector(values=point2D, size=2, name="point2D")
        super().__init__(
            kernel=specialize(rig_reproj_error_kernel, camera_model),
            constants=(observed,),
            num_residuals=2,
            parameter_block_sizes=[4, 3, 4, 3, 3, camera_model.num_params],
        )
        self.camera_model = camera_model
        self.observed = self.constants[0]


class RigReprojErrorConstantRigCost(AutoDiffCostFunction):
    """Rig reprojection error with fixed sensor-in-rig extrinsics.

    Parameters:
        - rig_from_world_rotation (4)
        - rig_from_world_translation (3)
        - point3D (3)
        - camera_params (N)
    """

    def __init__(
        self,
        camera_model: type[CameraModel],
        cam_from_rig: Rigid3d,
        point2D: np.ndarray
    ) -> None:
        """Initialize constant-rig reprojection error.

        Args:
            camera_model: Camera model class
            cam_from_rig: Fixed pose of the camera within the rig
            point2D: (2,) observed image point
        """
        observed = as_vector(values=point2D, size=2, name="point2D")
        super().__init__(
            kernel=specialize(rig_reproj_error_kernel, camera_model),
            constants=(
                observed,
                cam_from_rig.rotation,
                cam_from_rig.translation,
            ),
            num_residuals=2,
            parameter_block_sizes=[4, 3, 3, camera_model.num_params],
        )
        self.camera_model = camera_model
        self.cam_from_rig = cam_from_rig
        self.observed = self.constants[0]
