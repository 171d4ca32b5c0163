"""Pytest configuration and fixtures for bundlecosts tests.

Provides reusable fixtures for:
- Camera poses and 3D points
- Camera intrinsics per model
- Covariances
"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from bundlecosts.geometry import Rigid3d
from bundlecosts.sensors import CAMERA_MODELS, CameraModelId


# Intrinsics with mild distortion, valid for every model.
CAMERA_PARAMS: dict[CameraModelId, list[float]] = {
    CameraModelId.SIMPLE_PINHOLE: [500.0, 320.0, 240.0],
    CameraModelId.PINHOLE: [500.0, 480.0, 320.0, 240.0],
    CameraModelId.SIMPLE_RADIAL: [500.0, 320.0, 240.0, 0.05],
    CameraModelId.RADIAL: [500.0, 320.0, 240.0, 0.05, -0.01],
    CameraModelId.OPENCV: [500.0, 480.0, 320.0, 240.0, 0.05, -0.01, 0.001, -0.002],
    CameraModelId.OPENCV_FISHEYE: [500.0, 480.0, 320.0, 240.0, 0.02, -0.01, 0.003, -0.001],
    CameraModelId.FULL_OPENCV: [
        500.0, 480.0, 320.0, 240.0,
        0.05, -0.01, 0.001, -0.002,
        0.003, 0.01, -0.002, 0.001,
    ],
    CameraModelId.FOV: [500.0, 480.0, 320.0, 240.0, 0.9],
    CameraModelId.SIMPLE_RADIAL_FISHEYE: [500.0, 320.0, 240.0, 0.02],
    CameraModelId.RADIAL_FISHEYE: [500.0, 320.0, 240.0, 0.02, -0.005],
    CameraModelId.THIN_PRISM_FISHEYE: [
        500.0, 480.0, 320.0, 240.0,
        0.02, -0.01, 0.001, -0.002,
        0.003, -0.001, 0.0005, -0.0005,
    ],
}


def camera_params_for(model_id: CameraModelId) -> np.ndarray:
    """Intrinsics used by the tests for a camera model."""
    params = np.array(CAMERA_PARAMS[model_id], dtype=np.float64)
    assert len(params) == CAMERA_MODELS[model_id].num_params
    return params


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def cam_from_world() -> Rigid3d:
    """Camera pose with a non-trivial rotation, looking at points near the origin."""
    rotation = Rotation.from_rotvec([0.1, -0.2, 0.05])
    return Rigid3d.from_rotation(rotation=rotation, translation=[0.1, -0.05, 4.0])


@pytest.fixture
def other_cam_from_world() -> Rigid3d:
    """Second camera pose."""
    rotation = Rotation.from_rotvec([-0.05, 0.3, -0.1])
    return Rigid3d.from_rotation(rotation=rotation, translation=[-0.8, 0.1, 4.2])


@pytest.fixture
def point3D() -> np.ndarray:
    """3D point in world frame in front of both cameras."""
    return np.array([0.3, -0.2, 0.5])


@pytest.fixture
def covariance_6x6() -> np.ndarray:
    """Symmetric positive-definite 6x6 covariance with correlations."""
    factor = np.diag([0.1, 0.1, 0.2, 0.5, 0.5, 1.0])
    factor[3, 0] = 0.05
    factor[5, 2] = -0.1
    return factor @ factor.T


@pytest.fixture
def covariance_3x3() -> np.ndarray:
    """Symmetric positive-definite 3x3 covariance."""
    return np.array([
        [0.04, 0.01, 0.0],
        [0.01, 0.09, 0.02],
        [0.0, 0.02, 0.25],
    ])


@pytest.fixture
def pinhole_params() -> np.ndarray:
    """PINHOLE intrinsics."""
    return camera_params_for(CameraModelId.PINHOLE)


@pytest.fixture(params=list(CameraModelId), ids=lambda model_id: model_id.name)
def camera_model_id(request: pytest.FixtureRequest) -> CameraModelId:
    """Every camera model in the enumeration."""
    return request.param


@pytest.fixture
def camera_params(camera_model_id: CameraModelId) -> np.ndarray:
    """Intrinsics of the parametrized camera model."""
    return camera_params_for(camera_model_id)
