"""Sensor models: camera projection models and their static registry."""

from .camera_models import (
    CAMERA_MODELS,
    CameraModel,
    CameraModelId,
    FOVCameraModel,
    FullOpenCVCameraModel,
    OpenCVCameraModel,
    OpenCVFisheyeCameraModel,
    PinholeCameraModel,
    RadialCameraModel,
    RadialFisheyeCameraModel,
    SimplePinholeCameraModel,
    SimpleRadialCameraModel,
    SimpleRadialFisheyeCameraModel,
    ThinPrismFisheyeCameraModel,
    camera_model_from_id,
    camera_model_from_name,
    project_points,
)

__all__ = [
    "CAMERA_MODELS",
    "CameraModel",
    "CameraModelId",
    "FOVCameraModel",
    "FullOpenCVCameraModel",
    "OpenCVCameraModel",
    "OpenCVFisheyeCameraModel",
    "PinholeCameraModel",
    "RadialCameraModel",
    "RadialFisheyeCameraModel",
    "SimplePinholeCameraModel",
    "SimpleRadialCameraModel",
    "SimpleRadialFisheyeCameraModel",
    "ThinPrismFisheyeCameraModel",
    "camera_model_from_id",
    "camera_model_from_name",
    "project_points",
]
