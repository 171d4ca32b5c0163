"""Rigid and similarity transforms between named coordinate frames.

A transform named `a_from_b` maps a point expressed in frame b into frame a:

    point_in_a = a_from_b.transform_point(point_in_b)

Composition follows the names: (a_from_b * b_from_c) == a_from_c.

These models hold constant data captured by cost functions (priors, rig
extrinsics, fixed poses). Optimization parameters stay plain numpy arrays.
"""

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator
from scipy.spatial.transform import Rotation
from typing_extensions import Self

from bundlecosts.geometry.rotation import (
    quat_inverse,
    quat_multiply,
    quat_rotate,
    quat_to_rotation_matrix,
)


def as_vector(*, values: np.ndarray | list[float], size: int, name: str) -> np.ndarray:
    """Convert input to a float64 vector of a fixed size.

    Args:
        values: Array-like input
        size: Required number of elements
        name: Name used in the error message

    Returns:
        (size,) float64 copy

    Raises:
        ValueError: If the input does not have exactly `size` elements
    """
    vector = np.array(values, dtype=np.float64).reshape(-1)
    if vector.shape != (size,):
        raise ValueError(f"{name} must have {size} elements, got {vector.size}")
    return vector


class Transform3d(BaseModel):
    """Rotation [x, y, z, w] and translation shared by rigid and similarity transforms.

    Attributes:
        rotation: (4,) quaternion [x, y, z, w]
        translation: (3,) translation
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    rotation: np.ndarray
    translation: np.ndarray

    @field_validator("rotation", mode="before")
    @classmethod
    def validate_rotation(cls, value: object) -> np.ndarray:
        rotation = as_vector(values=value, size=4, name="rotation")
        rotation.setflags(write=False)
        return rotation

    @field_validator("translation", mode="before")
    @classmethod
    def validate_translation(cls, value: object) -> np.ndarray:
        translation = as_vector(values=value, size=3, name="translation")
        translation.setflags(write=False)
        return translation

    @classmethod
    def identity(cls) -> Self:
        """Identity transform."""
        return cls(rotation=[0.0, 0.0, 0.0, 1.0], translation=np.zeros(3))

    @classmethod
    def from_rotation(
        cls,
        *,
        rotation: Rotation,
        translation: np.ndarray | list[float] | None = None
    ) -> Self:
        """Create from a scipy Rotation and optional translation."""
        if translation is None:
            translation = np.zeros(3)
        return cls(rotation=rotation.as_quat(), translation=translation)

    @classmethod
    def from_matrix(cls, *, matrix: np.ndarray) -> Self:
        """Create from a 3x4 [R | t] or 4x4 homogeneous matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape not in ((3, 4), (4, 4)):
            raise ValueError(f"Matrix must be 3x4 or 4x4, got {matrix.shape}")
        return cls(
            rotation=Rotation.from_matrix(matrix[:3, :3]).as_quat(),
            translation=matrix[:3, 3],
        )

    @property
    def rotation_matrix(self) -> np.ndarray:
        """(3, 3) rotation matrix, built from the stored quaternion as is."""
        return np.asarray(quat_to_rotation_matrix(self.rotation))

    def _inverse_rotation(self) -> np.ndarray:
        return np.asarray(quat_inverse(self.rotation))

    def _compose_rotation(self, other: "Transform3d") -> np.ndarray:
        return np.asarray(quat_multiply(self.rotation, other.rotation))


class Rigid3d(Transform3d):
    """Rigid transform a_from_b: point_in_a = R @ point_in_b + t.

    The rotation is never renormalized, matching the residual kernels.
    """

    def matrix(self) -> np.ndarray:
        """(3, 4) matrix [R | t]."""
        return np.hstack([self.rotation_matrix, self.translation[:, None]])

    def inverse(self) -> Self:
        """Inverse transform: b_from_a for a_from_b."""
        rotation = self._inverse_rotation()
        return type(self)(
            rotation=rotation,
            translation=-np.asarray(quat_rotate(rotation, self.translation)),
        )

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Map a (3,) point from the source frame into the target frame."""
        point = np.asarray(point, dtype=np.float64)
        return np.asarray(quat_rotate(self.rotation, point)) + self.translation

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map (N, 3) points from the source frame into the target frame."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return points @ self.rotation_matrix.T + self.translation

    def __mul__(self, other: "Rigid3d") -> "Rigid3d":
        if not isinstance(other, Rigid3d):
            return NotImplemented
        return Rigid3d(
            rotation=self._compose_rotation(other),
            translation=self.transform_point(other.translation),
        )

    def __repr__(self) -> str:
        return (
            f"Rigid3d(rotation_xyzw={np.round(self.rotation, 6).tolist()}, "
            f"translation={np.round(self.translation, 6).tolist()})"
        )


class Sim3d(Transform3d):
    """Similarity transform b_from_a: point_in_b = scale * R @ point_in_a + t.

    Attributes:
        scale: Positive uniform scale
    """

    scale: float = 1.0

    @field_validator("scale")
    @classmethod
    def validate_scale(cls, value: float) -> float:
        if not np.isfinite(value) or value <= 0.0:
            raise ValueError(f"scale must be positive, got {value}")
        return float(value)

    def inverse(self) -> Self:
        """Inverse similarity: a_from_b for b_from_a."""
        rotation = self._inverse_rotation()
        return type(self)(
            rotation=rotation,
            translation=-np.asarray(quat_rotate(rotation, self.translation)) / self.scale,
            scale=1.0 / self.scale,
        )

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        """Map a (3,) point from frame a into frame b."""
        point = np.asarray(point, dtype=np.float64)
        return self.scale * np.asarray(quat_rotate(self.rotation, point)) + self.translation

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map (N, 3) points from frame a into frame b."""
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return self.scale * (points @ self.rotation_matrix.T) + self.translation

    def __mul__(self, other: "Sim3d") -> "Sim3d":
        if not isinstance(other, Sim3d):
            return NotImplemented
        return Sim3d(
            rotation=self._compose_rotation(other),
            translation=self.transform_point(other.translation),
            scale=self.scale * other.scale,
        )
