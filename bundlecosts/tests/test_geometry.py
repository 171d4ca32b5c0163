"""Tests for pose algebra helpers."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from bundlecosts.geometry import (
    Rigid3d,
    Sim3d,
    cross_product_matrix,
    quat_inverse,
    quat_multiply,
    quat_rotate,
    quat_to_rotation_matrix,
    quaternion_to_angle_axis,
    sqrt_information,
)


class TestQuaternionHelpers:
    """Test kernel-side quaternion functions against scipy."""

    def test_multiply_matches_scipy(self) -> None:
        """Hamilton product composes like scipy rotations."""
        r1 = Rotation.from_rotvec([0.3, -0.1, 0.2])
        r2 = Rotation.from_rotvec([-0.2, 0.4, 0.1])

        product = np.asarray(quat_multiply(r1.as_quat(), r2.as_quat()))

        assert np.allclose(Rotation.from_quat(product).as_matrix(), (r1 * r2).as_matrix())

    def test_rotate_matches_matrix(self) -> None:
        """quat_rotate agrees with the rotation matrix."""
        rotation = Rotation.from_rotvec([0.5, 0.2, -0.7])
        v = np.array([1.0, -2.0, 0.5])

        rotated = np.asarray(quat_rotate(rotation.as_quat(), v))

        assert np.allclose(rotated, rotation.apply(v))
        assert np.allclose(np.asarray(quat_to_rotation_matrix(rotation.as_quat())), rotation.as_matrix())

    def test_inverse_undoes_rotation(self) -> None:
        """q^-1 * q is the identity."""
        q = Rotation.from_rotvec([0.1, 0.2, 0.3]).as_quat()

        identity = np.asarray(quat_multiply(quat_inverse(q), q))

        assert np.allclose(identity, [0.0, 0.0, 0.0, 1.0])

    def test_inverse_of_scaled_quaternion(self) -> None:
        """Inverse divides by the squared norm."""
        q = 2.0 * Rotation.from_rotvec([0.1, 0.2, 0.3]).as_quat()

        identity = np.asarray(quat_multiply(q, quat_inverse(q)))

        assert np.allclose(identity, [0.0, 0.0, 0.0, 1.0])

    def test_cross_product_matrix(self) -> None:
        """[v]_x @ w equals v x w."""
        v = np.array([1.0, 2.0, 3.0])
        w = np.array([-0.5, 0.1, 2.0])

        skew = np.asarray(cross_product_matrix(v))

        assert np.allclose(skew @ w, np.cross(v, w))
        assert np.allclose(skew, -skew.T)


class TestAngleAxis:
    """Test quaternion log map."""

    def test_identity_is_zero(self) -> None:
        """Identity quaternion maps to the zero vector."""
        assert np.allclose(np.asarray(quaternion_to_angle_axis(np.array([0.0, 0.0, 0.0, 1.0]))), 0.0)

    def test_matches_scipy_rotvec(self) -> None:
        """Log map agrees with scipy for a generic rotation."""
        rotvec = np.array([0.4, -0.3, 0.9])
        q = Rotation.from_rotvec(rotvec).as_quat()

        assert np.allclose(np.asarray(quaternion_to_angle_axis(q)), rotvec)

    def test_double_cover(self) -> None:
        """q and -q give the same angle-axis vector."""
        rotvec = np.array([0.4, -0.3, 0.9])
        q = Rotation.from_rotvec(rotvec).as_quat()

        assert np.allclose(np.asarray(quaternion_to_angle_axis(-q)), rotvec)

    def test_angle_within_pi(self) -> None:
        """Large rotations are mapped to the shortest representative."""
        q = Rotation.from_rotvec([0.0, 0.0, 3.0]).as_quat()
        angle_axis = np.asarray(quaternion_to_angle_axis(-q))

        assert np.linalg.norm(angle_axis) <= np.pi + 1e-12
        assert np.allclose(angle_axis, [0.0, 0.0, 3.0])


class TestSqrtInformation:
    """Test square-root information matrices."""

    def test_inverse_covariance_property(self, covariance_6x6: np.ndarray) -> None:
        """S^T S equals the inverse covariance."""
        sqrt_info = sqrt_information(covariance=covariance_6x6)

        assert np.allclose(sqrt_info.T @ sqrt_info, np.linalg.inv(covariance_6x6))

    def test_upper_triangular(self, covariance_3x3: np.ndarray) -> None:
        """S is the transpose of a lower Cholesky factor."""
        sqrt_info = sqrt_information(covariance=covariance_3x3)

        assert np.allclose(np.tril(sqrt_info, k=-1), 0.0)

    def test_isotropic_covariance(self) -> None:
        """Isotropic covariance gives 1 / sigma on the diagonal."""
        sqrt_info = sqrt_information(covariance=0.25 * np.eye(3))

        assert np.allclose(sqrt_info, 2.0 * np.eye(3))

    def test_not_positive_definite_raises(self) -> None:
        """Indefinite covariance is rejected."""
        covariance = np.diag([1.0, -1.0, 1.0])

        with pytest.raises(ValueError, match="positive-definite"):
            sqrt_information(covariance=covariance)

    def test_singular_raises(self) -> None:
        """Singular covariance is rejected."""
        with pytest.raises(ValueError):
            sqrt_information(covariance=np.zeros((3, 3)))

    def test_non_symmetric_raises(self) -> None:
        """Non-symmetric covariance is rejected."""
        covariance = np.eye(3)
        covariance[0, 1] = 0.5

        with pytest.raises(ValueError, match="symmetric"):
            sqrt_information(covariance=covariance)

    def test_non_square_raises(self) -> None:
        """Non-square input is rejected."""
        with pytest.raises(ValueError):
            sqrt_information(covariance=np.eye(3)[:2])

    def test_expected_size_mismatch_raises(self) -> None:
        """A valid covariance of the wrong dimension is rejected."""
        with pytest.raises(ValueError, match=r"shape \(6, 6\)"):
            sqrt_information(covariance=np.eye(3), size=6)

    def test_expected_size_match(self, covariance_6x6: np.ndarray) -> None:
        """Passing the expected size gives the same matrix as inferring it."""
        assert np.allclose(
            sqrt_information(covariance=covariance_6x6, size=6),
            sqrt_information(covariance=covariance_6x6),
        )


class TestRigid3d:
    """Test constant rigid transforms."""

    def test_identity(self) -> None:
        """Identity leaves points unchanged."""
        point = np.array([1.0, 2.0, 3.0])

        assert np.allclose(Rigid3d.identity().transform_point(point), point)

    def test_inverse_roundtrip(self, cam_from_world: Rigid3d, point3D: np.ndarray) -> None:
        """a_from_b.inverse() maps points back."""
        point_in_cam = cam_from_world.transform_point(point3D)

        assert np.allclose(cam_from_world.inverse().transform_point(point_in_cam), point3D)

    def test_inverse_translation(self) -> None:
        """Inverse translation is -R^T t for a pose with non-zero translation."""
        rotation = Rotation.from_rotvec([0.2, -0.5, 0.3])
        translation = np.array([1.0, -2.0, 3.5])
        a_from_b = Rigid3d.from_rotation(rotation=rotation, translation=translation)

        b_from_a = a_from_b.inverse()

        assert np.allclose(b_from_a.translation, -rotation.as_matrix().T @ translation)
        assert np.allclose(b_from_a.rotation_matrix, rotation.as_matrix().T)

    def test_inverse_keeps_quaternion_scale(self) -> None:
        """A non-unit rotation is inverted without renormalization."""
        q = 2.0 * Rotation.from_rotvec([0.1, 0.2, 0.3]).as_quat()
        a_from_b = Rigid3d(rotation=q, translation=[0.0, 0.0, 1.0])

        b_from_a = a_from_b.inverse()

        assert np.linalg.norm(b_from_a.rotation) == pytest.approx(0.5)
        assert np.allclose(b_from_a.rotation, q * [-1.0, -1.0, -1.0, 1.0] / 4.0)

    def test_inverse_of_inverse(self, cam_from_world: Rigid3d) -> None:
        """Inverting twice gives back the original pose."""
        twice = cam_from_world.inverse().inverse()

        assert np.allclose(twice.rotation, cam_from_world.rotation)
        assert np.allclose(twice.translation, cam_from_world.translation)

    def test_composition_follows_names(
        self,
        cam_from_world: Rigid3d,
        other_cam_from_world: Rigid3d,
        point3D: np.ndarray
    ) -> None:
        """(a_from_b * b_from_c) maps like applying b_from_c then a_from_b."""
        cam_from_other = cam_from_world * other_cam_from_world.inverse()
        point_in_other = other_cam_from_world.transform_point(point3D)

        assert np.allclose(
            cam_from_other.transform_point(point_in_other),
            cam_from_world.transform_point(point3D),
        )

    def test_from_matrix(self, cam_from_world: Rigid3d) -> None:
        """Matrix conversion round-trips."""
        rebuilt = Rigid3d.from_matrix(matrix=cam_from_world.matrix())

        assert np.allclose(rebuilt.matrix(), cam_from_world.matrix())

    def test_transform_points(self, cam_from_world: Rigid3d, rng: np.random.Generator) -> None:
        """Batch transform matches per-point transform."""
        points = rng.normal(size=(5, 3))

        batch = cam_from_world.transform_points(points)

        for point, transformed in zip(points, batch):
            assert np.allclose(cam_from_world.transform_point(point), transformed)

    def test_wrong_size_raises(self) -> None:
        """Rotation must have four elements."""
        with pytest.raises(ValueError):
            Rigid3d(rotation=[0.0, 0.0, 1.0], translation=[0.0, 0.0, 0.0])

    def test_captured_data_is_read_only(self, cam_from_world: Rigid3d) -> None:
        """Stored arrays cannot be modified in place."""
        with pytest.raises(ValueError):
            cam_from_world.translation[0] = 1.0


class TestSim3d:
    """Test similarity transforms."""

    def test_transform_point(self) -> None:
        """Point maps to scale * R p + t."""
        rotation = Rotation.from_rotvec([0.0, 0.0, np.pi / 2])
        b_from_a = Sim3d(rotation=rotation.as_quat(), translation=[1.0, 0.0, 0.0], scale=2.0)

        assert np.allclose(b_from_a.transform_point([1.0, 0.0, 0.0]), [1.0, 2.0, 0.0])

    def test_inverse_roundtrip(self, point3D: np.ndarray) -> None:
        """Inverse similarity maps points back."""
        b_from_a = Sim3d(
            rotation=Rotation.from_rotvec([0.1, 0.2, 0.3]).as_quat(),
            translation=[1.0, -1.0, 0.5],
            scale=1.7,
        )

        point_in_b = b_from_a.transform_point(point3D)

        assert np.allclose(b_from_a.inverse().transform_point(point_in_b), point3D)

    def test_inverse_parameters(self) -> None:
        """Inverse has rotation R^T, translation -R^T t / s and scale 1 / s."""
        rotation = Rotation.from_rotvec([0.4, 0.0, -0.2])
        b_from_a = Sim3d(rotation=rotation.as_quat(), translation=[2.0, 1.0, -1.0], scale=4.0)

        a_from_b = b_from_a.inverse()

        assert np.allclose(a_from_b.rotation_matrix, rotation.as_matrix().T)
        assert np.allclose(a_from_b.translation, -rotation.as_matrix().T @ [2.0, 1.0, -1.0] / 4.0)
        assert a_from_b.scale == pytest.approx(0.25)

    def test_composition(self, point3D: np.ndarray) -> None:
        """Composed similarity matches sequential application."""
        c_from_b = Sim3d(rotation=Rotation.from_rotvec([0.3, 0.0, 0.1]).as_quat(), translation=[0.0, 1.0, 0.0], scale=0.5)
        b_from_a = Sim3d(rotation=Rotation.from_rotvec([0.0, -0.2, 0.4]).as_quat(), translation=[2.0, 0.0, 1.0], scale=3.0)

        composed = c_from_b * b_from_a

        assert np.allclose(
            composed.transform_point(point3D),
            c_from_b.transform_point(b_from_a.transform_point(point3D)),
        )
        assert composed.scale == pytest.approx(1.5)

    def test_non_positive_scale_raises(self) -> None:
        """Scale must be positive."""
        with pytest.raises(ValueError):
            Sim3d(rotation=[0.0, 0.0, 0.0, 1.0], translation=[0.0, 0.0, 0.0], scale=0.0)
