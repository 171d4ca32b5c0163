"""Camera projection models.

Each model maps a point in camera coordinates (x, y, z) to image
coordinates (u, v) given a fixed-length intrinsics vector. The models are
a closed set identified by CameraModelId. Cost functions are specialized
once per model, so the parameter count of every model is a class constant.

Models:
- SIMPLE_PINHOLE (0): f, cx, cy
- PINHOLE (1): fx, fy, cx, cy
- SIMPLE_RADIAL (2): f, cx, cy, k
- RADIAL (3): f, cx, cy, k1, k2
- OPENCV (4): fx, fy, cx, cy, k1, k2, p1, p2
- OPENCV_FISHEYE (5): fx, fy, cx, cy, k1, k2, k3, k4
- FULL_OPENCV (6): fx, fy, cx, cy, k1, k2, p1, p2, k3, k4, k5, k6
- FOV (7): fx, fy, cx, cy, omega
- SIMPLE_RADIAL_FISHEYE (8): f, cx, cy, k
- RADIAL_FISHEYE (9): f, cx, cy, k1, k2
- THIN_PRISM_FISHEYE (10): fx, fy, cx, cy, k1, k2, p1, p2, k3, k4, sx1, sy1

img_from_cam is written against jax.numpy so it can run inside residual
kernels and be differentiated.
"""

from enum import IntEnum

import numpy as np

from bundlecosts.jax_init import jnp

FISHEYE_EPS = 1e-12
FOV_EPS = 1e-4


class CameraModelId(IntEnum):
    """Identifiers of the supported camera models."""

    SIMPLE_PINHOLE = 0
    PINHOLE = 1
    SIMPLE_RADIAL = 2
    RADIAL = 3
    OPENCV = 4
    OPENCV_FISHEYE = 5
    FULL_OPENCV = 6
    FOV = 7
    SIMPLE_RADIAL_FISHEYE = 8
    RADIAL_FISHEYE = 9
    THIN_PRISM_FISHEYE = 10


class CameraModel:
    """Base class for camera models.

    Subclasses set the class constants and implement img_from_cam.
    Models are never instantiated: the class itself is the specialization
    key used by the cost functions.

    Attributes:
        model_id: Identifier in CameraModelId
        model_name: Upper-case model name
        num_params: Length of the intrinsics vector
        params_info: Comma-separated parameter names
    """

    model_id: CameraModelId
    model_name: str
    num_params: int
    params_info: str

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        """Project a camera-space point to image coordinates.

        Args:
            params: (num_params,) intrinsics
            x: Camera-space x
            y: Camera-space y
            z: Camera-space z (depth)

        Returns:
            (u, v) image coordinates
        """
        raise NotImplementedError


def _single_focal(params: jnp.ndarray, u: jnp.ndarray, v: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    return params[0] * u + params[1], params[0] * v + params[2]


def _two_focal(params: jnp.ndarray, u: jnp.ndarray, v: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    return params[0] * u + params[2], params[1] * v + params[3]


def _fisheye_normalize(
    x: jnp.ndarray,
    y: jnp.ndarray,
    z: jnp.ndarray
) -> tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """Equidistant mapping: returns (u, v, theta) with |(u, v)| == theta."""
    r_squared = x * x + y * y
    is_off_axis = r_squared > FISHEYE_EPS * FISHEYE_EPS
    r = jnp.sqrt(jnp.where(is_off_axis, r_squared, 1.0))
    theta = jnp.arctan2(r, z)
    u = jnp.where(is_off_axis, theta * x / r, x / z)
    v = jnp.where(is_off_axis, theta * y / r, y / z)
    return u, v, jnp.where(is_off_axis, theta, 0.0)


class SimplePinholeCameraModel(CameraModel):
    model_id = CameraModelId.SIMPLE_PINHOLE
    model_name = "SIMPLE_PINHOLE"
    num_params = 3
    params_info = "f, cx, cy"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        return _single_focal(params, x / z, y / z)


class PinholeCameraModel(CameraModel):
    model_id = CameraModelId.PINHOLE
    model_name = "PINHOLE"
    num_params = 4
    params_info = "fx, fy, cx, cy"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        return _two_focal(params, x / z, y / z)


class SimpleRadialCameraModel(CameraModel):
    """Single focal length with one radial coefficient."""

    model_id = CameraModelId.SIMPLE_RADIAL
    model_name = "SIMPLE_RADIAL"
    num_params = 4
    params_info = "f, cx, cy, k"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        u = x / z
        v = y / z
        radial = params[3] * (u * u + v * v)
        return _single_focal(params, u + u * radial, v + v * radial)


class RadialCameraModel(CameraModel):
    model_id = CameraModelId.RADIAL
    model_name = "RADIAL"
    num_params = 5
    params_info = "f, cx, cy, k1, k2"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        u = x / z
        v = y / z
        r2 = u * u + v * v
        radial = params[3] * r2 + params[4] * r2 * r2
        return _single_focal(params, u + u * radial, v + v * radial)


class OpenCVCameraModel(CameraModel):
    """Brown-Conrady distortion: two radial and two tangential coefficients."""

    model_id = CameraModelId.OPENCV
    model_name = "OPENCV"
    num_params = 8
    params_info = "fx, fy, cx, cy, k1, k2, p1, p2"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        k1, k2, p1, p2 = params[4], params[5], params[6], params[7]
        u = x / z
        v = y / z
        u2 = u * u
        v2 = v * v
        uv = u * v
        r2 = u2 + v2
        radial = k1 * r2 + k2 * r2 * r2
        du = u * radial + 2.0 * p1 * uv + p2 * (r2 + 2.0 * u2)
        dv = v * radial + 2.0 * p2 * uv + p1 * (r2 + 2.0 * v2)
        return _two_focal(params, u + du, v + dv)


class OpenCVFisheyeCameraModel(CameraModel):
    """Equidistant fisheye with a polynomial in theta (OpenCV fisheye module)."""

    model_id = CameraModelId.OPENCV_FISHEYE
    model_name = "OPENCV_FISHEYE"
    num_params = 8
    params_info = "fx, fy, cx, cy, k1, k2, k3, k4"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        k1, k2, k3, k4 = params[4], params[5], params[6], params[7]
        u, v, theta = _fisheye_normalize(x, y, z)
        theta2 = theta * theta
        theta4 = theta2 * theta2
        radial = k1 * theta2 + k2 * theta4 + k3 * theta4 * theta2 + k4 * theta4 * theta4
        return _two_focal(params, u + u * radial, v + v * radial)


class FullOpenCVCameraModel(CameraModel):
    """Rational radial distortion with tangential terms."""

    model_id = CameraModelId.FULL_OPENCV
    model_name = "FULL_OPENCV"
    num_params = 12
    params_info = "fx, fy, cx, cy, k1, k2, p1, p2, k3, k4, k5, k6"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        k1, k2, p1, p2 = params[4], params[5], params[6], params[7]
        k3, k4, k5, k6 = params[8], params[9], params[10], params[11]
        u = x / z
        v = y / z
        u2 = u * u
        v2 = v * v
        uv = u * v
        r2 = u2 + v2
        r4 = r2 * r2
        r6 = r4 * r2
        radial = (1.0 + k1 * r2 + k2 * r4 + k3 * r6) / (1.0 + k4 * r2 + k5 * r4 + k6 * r6)
        u_distorted = u * radial + 2.0 * p1 * uv + p2 * (r2 + 2.0 * u2)
        v_distorted = v * radial + 2.0 * p2 * uv + p1 * (r2 + 2.0 * v2)
        return _two_focal(params, u_distorted, v_distorted)


class FOVCameraModel(CameraModel):
    """Field-of-view model of Devernay and Faugeras.

    The distorted radius is atan(2 r tan(omega / 2)) / omega. Series
    expansions replace the closed form for small omega and small r, so the
    projection and its derivatives stay finite at the principal point and
    for a vanishing field of view.
    """

    model_id = CameraModelId.FOV
    model_name = "FOV"
    num_params = 5
    params_info = "fx, fy, cx, cy, omega"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        omega = params[4]
        u = x / z
        v = y / z
        radius_sq = u * u + v * v
        omega_sq = omega * omega
        is_small_omega = omega_sq < FOV_EPS
        is_small_radius = radius_sq < FOV_EPS
        safe_omega = jnp.where(is_small_omega, 1.0, omega)
        safe_radius = jnp.sqrt(jnp.where(is_small_radius, 1.0, radius_sq))
        tan_half_omega = jnp.tan(safe_omega / 2.0)

        small_omega_factor = 1.0 + omega_sq / 12.0 - radius_sq * omega_sq / 3.0
        small_radius_factor = (
            -2.0 * tan_half_omega * (4.0 * radius_sq * tan_half_omega * tan_half_omega - 3.0)
            / (3.0 * safe_omega)
        )
        factor = jnp.arctan(2.0 * safe_radius * tan_half_omega) / (safe_radius * safe_omega)

        factor = jnp.where(
            is_small_omega,
            small_omega_factor,
            jnp.where(is_small_radius, small_radius_factor, factor),
        )
        return _two_focal(params, u * factor, v * factor)


class SimpleRadialFisheyeCameraModel(CameraModel):
    model_id = CameraModelId.SIMPLE_RADIAL_FISHEYE
    model_name = "SIMPLE_RADIAL_FISHEYE"
    num_params = 4
    params_info = "f, cx, cy, k"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        u, v, theta = _fisheye_normalize(x, y, z)
        radial = params[3] * theta * theta
        return _single_focal(params, u + u * radial, v + v * radial)


class RadialFisheyeCameraModel(CameraModel):
    model_id = CameraModelId.RADIAL_FISHEYE
    model_name = "RADIAL_FISHEYE"
    num_params = 5
    params_info = "f, cx, cy, k1, k2"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        u, v, theta = _fisheye_normalize(x, y, z)
        theta2 = theta * theta
        radial = params[3] * theta2 + params[4] * theta2 * theta2
        return _single_focal(params, u + u * radial, v + v * radial)


class ThinPrismFisheyeCameraModel(CameraModel):
    """Equidistant fisheye with radial, tangential and thin-prism terms."""

    model_id = CameraModelId.THIN_PRISM_FISHEYE
    model_name = "THIN_PRISM_FISHEYE"
    num_params = 12
    params_info = "fx, fy, cx, cy, k1, k2, p1, p2, k3, k4, sx1, sy1"

    @classmethod
    def img_from_cam(
        cls,
        params: jnp.ndarray,
        x: jnp.ndarray,
        y: jnp.ndarray,
        z: jnp.ndarray
    ) -> tuple[jnp.ndarray, jnp.ndarray]:
        k1, k2, p1, p2 = params[4], params[5], params[6], params[7]
        k3, k4, sx1, sy1 = params[8], params[9], params[10], params[11]
        u, v, _ = _fisheye_normalize(x, y, z)
        u2 = u * u
        v2 = v * v
        uv = u * v
        r2 = u2 + v2
        r4 = r2 * r2
        r6 = r4 * r2
        r8 = r4 * r4
        radial = k1 * r2 + k2 * r4 + k3 * r6 + k4 * r8
        du = u * radial + 2.0 * p1 * uv + p2 * (r2 + 2.0 * u2) + sx1 * r2
        dv = v * radial + 2.0 * p2 * uv + p1 * (r2 + 2.0 * v2) + sy1 * r2
        return _two_focal(params, u + du, v + dv)


# Static dispatch table. A new model must be added to CameraModelId and here.
CAMERA_MODELS: dict[CameraModelId, type[CameraModel]] = {
    model.model_id: model
    for model in (
        SimplePinholeCameraModel,
        PinholeCameraModel,
        SimpleRadialCameraModel,
        RadialCameraModel,
        OpenCVCameraModel,
        OpenCVFisheyeCameraModel,
        FullOpenCVCameraModel,
        FOVCameraModel,
        SimpleRadialFisheyeCameraModel,
        RadialFisheyeCameraModel,
        ThinPrismFisheyeCameraModel,
    )
}


def camera_model_from_id(model_id: CameraModelId | int | str) -> type[CameraModel]:
    """Look up a camera model by identifier, integer value or name.

    Args:
        model_id: CameraModelId, its integer value, or the model name

    Returns:
        Camera model class

    Raises:
        ValueError: If the identifier is not part of the enumeration
    """
    if isinstance(model_id, str):
        return camera_model_from_name(model_name=model_id)
    try:
        return CAMERA_MODELS[CameraModelId(model_id)]
    except (ValueError, KeyError) as e:
        raise ValueError(f"Unknown camera model id: {model_id!r}") from e


def camera_model_from_name(*, model_name: str) -> type[CameraModel]:
    """Look up a camera model by its upper-case name (e.g. "PINHOLE")."""
    try:
        return CAMERA_MODELS[CameraModelId[model_name.upper()]]
    except KeyError as e:
        valid = ", ".join(model.name for model in CameraModelId)
        raise ValueError(f"Unknown camera model name: {model_name!r}. Valid: {valid}") from e


def project_points(
    *,
    camera_model: type[CameraModel],
    params: np.ndarray,
    points_in_cam: np.ndarray
) -> np.ndarray:
    """Project (N, 3) camera-space points to (N, 2) image coordinates.

    Args:
        camera_model: Camera model class
        params: (num_params,) intrinsics
        points_in_cam: (N, 3) points in camera coordinates

    Returns:
        (N, 2) image coordinates
    """
    params = np.asarray(params, dtype=np.float64)
    if params.shape != (camera_model.num_params,):
        raise ValueError(
            f"{camera_model.model_name} expects {camera_model.num_params} params, "
            f"got {params.size}"
        )
    points_in_cam = jnp.asarray(points_in_cam, dtype=jnp.float64).reshape(-1, 3)
    u, v = camera_model.img_from_cam(
        jnp.asarray(params),
        points_in_cam[:, 0],
        points_in_cam[:, 1],
        points_in_cam[:, 2],
    )
    return np.stack([np.asarray(u), np.asarray(v)], axis=-1)
