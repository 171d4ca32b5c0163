"""Autodiff Jacobians checked against central finite differences."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from bundlecosts.cost_functions import (
    AbsolutePosePositionPriorCost,
    AbsolutePosePriorCost,
    Point3DAlignmentCost,
    RelativePosePriorCost,
    ReprojErrorConstantPoseCost,
    ReprojErrorCost,
    RigReprojErrorCost,
    SampsonErrorCost,
    numeric_jacobians,
)
from bundlecosts.geometry import Rigid3d
from bundlecosts.sensors import CAMERA_MODELS, CameraModelId


def check_jacobians(cost: object, parameters: list[np.ndarray], rtol: float = 1e-5, atol: float = 1e-6) -> None:
    num_residuals = cost.num_residuals()
    residuals = np.zeros(num_residuals)
    jacobians = [np.zeros(num_residuals * len(p)) for p in parameters]

    assert cost.Evaluate(parameters, residuals, jacobians)

    expected = numeric_jacobians(cost=cost, parameters=parameters, num_residuals=num_residuals)
    for index, (jacobian, numeric) in enumerate(zip(jacobians, expected)):
        np.testing.assert_allclose(
            jacobian.reshape(num_residuals, -1),
            numeric,
            rtol=rtol,
            atol=atol,
            err_msg=f"block {index}",
        )


def pose_blocks(pose: Rigid3d) -> list[np.ndarray]:
    return [np.array(pose.rotation), np.array(pose.translation)]


class TestReprojectionJacobians:
    """Reprojection Jacobians for every camera model."""

    def test_reproj_error(
        self,
        camera_model_id: CameraModelId,
        camera_params: np.ndarray,
        cam_from_world: Rigid3d,
        point3D: np.ndarray
    ) -> None:
        """AD Jacobian matches finite differences."""
        cost = ReprojErrorCost(CAMERA_MODELS[camera_model_id], np.array([310.0, 230.0]))

        check_jacobians(cost, pose_blocks(cam_from_world) + [point3D, camera_params], atol=1e-4)

    def test_fov_at_principal_point(self) -> None:
        """FOV Jacobian is finite and correct for a point on the optical axis."""
        cost = ReprojErrorCost(CAMERA_MODELS[CameraModelId.FOV], np.array([320.0, 240.0]))
        parameters = [
            np.array([0.0, 0.0, 0.0, 1.0]),
            np.zeros(3),
            np.array([0.0, 0.0, 5.0]),
            np.array([500.0, 480.0, 320.0, 240.0, 0.9]),
        ]

        check_jacobians(cost, parameters, atol=1e-4)

    def test_rig_reproj_error(
        self,
        cam_from_world: Rigid3d,
        point3D: np.ndarray,
        pinhole_params: np.ndarray
    ) -> None:
        """Rig Jacobian matches finite differences."""
        cam_from_rig = Rigid3d.from_rotation(
            rotation=Rotation.from_rotvec([0.0, 0.1, 0.0]),
            translation=[-0.2, 0.0, 0.05],
        )
        cost = RigReprojErrorCost(CAMERA_MODELS[CameraModelId.PINHOLE], np.array([310.0, 230.0]))

        check_jacobians(
            cost,
            pose_blocks(cam_from_rig) + pose_blocks(cam_from_world) + [point3D, pinhole_params],
            atol=1e-4,
        )

    def test_partial_jacobian_request(
        self,
        cam_from_world: Rigid3d,
        point3D: np.ndarray,
        pinhole_params: np.ndarray
    ) -> None:
        """Blocks whose Jacobian is not requested are skipped."""
        cost = ReprojErrorConstantPoseCost(
            CAMERA_MODELS[CameraModelId.PINHOLE],
            cam_from_world,
            np.array([310.0, 230.0]),
        )
        residuals = np.zeros(2)
        point_jacobian = np.zeros(6)

        assert cost.Evaluate([point3D, pinhole_params], residuals, [point_jacobian, None])

        expected = numeric_jacobians(cost=cost, parameters=[point3D, pinhole_params], num_residuals=2)
        np.testing.assert_allclose(point_jacobian.reshape(2, 3), expected[0], rtol=1e-5, atol=1e-4)


class TestPriorJacobians:
    """Prior and alignment Jacobians."""

    def test_absolute_pose_prior(
        self,
        cam_from_world: Rigid3d,
        other_cam_from_world: Rigid3d,
        covariance_6x6: np.ndarray
    ) -> None:
        cost = AbsolutePosePriorCost(other_cam_from_world, covariance_6x6)

        check_jacobians(cost, pose_blocks(cam_from_world))

    def test_absolute_pose_prior_at_prior(self, cam_from_world: Rigid3d, covariance_6x6: np.ndarray) -> None:
        """Jacobian stays finite at zero rotation error."""
        cost = AbsolutePosePriorCost(cam_from_world, covariance_6x6)

        check_jacobians(cost, pose_blocks(cam_from_world))

    def test_position_prior(self, cam_from_world: Rigid3d, covariance_3x3: np.ndarray) -> None:
        cost = AbsolutePosePositionPriorCost(np.array([1.0, 2.0, 3.0]), covariance_3x3)

        check_jacobians(cost, pose_blocks(cam_from_world))

    def test_relative_pose_prior(
        self,
        cam_from_world: Rigid3d,
        other_cam_from_world: Rigid3d,
        covariance_6x6: np.ndarray
    ) -> None:
        prior = Rigid3d.from_rotation(
            rotation=Rotation.from_rotvec([0.0, 0.2, 0.0]),
            translation=[1.0, 0.0, 0.0],
        )
        cost = RelativePosePriorCost(prior, covariance_6x6)

        check_jacobians(cost, pose_blocks(cam_from_world) + pose_blocks(other_cam_from_world))

    def test_point_alignment(self, point3D: np.ndarray, covariance_3x3: np.ndarray) -> None:
        cost = Point3DAlignmentCost(np.array([1.0, -1.0, 2.0]), covariance_3x3)
        rotation = Rotation.from_rotvec([0.2, -0.1, 0.4]).as_quat()

        check_jacobians(cost, [point3D, rotation, np.array([0.5, 0.0, 1.0]), np.array([1.3])])


class TestSampsonJacobian:
    """Sampson error Jacobian."""

    @pytest.mark.parametrize("translation", [[1.0, 0.1, -0.05], [0.0, 0.0, 1.0]])
    def test_sampson(self, translation: list[float]) -> None:
        cost = SampsonErrorCost(np.array([0.1, 0.2]), np.array([0.3, -0.1]))
        rotation = Rotation.from_rotvec([0.05, -0.1, 0.02]).as_quat()

        check_jacobians(cost, [rotation, np.array(translation)], atol=1e-7)
