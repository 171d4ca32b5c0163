"""Manifolds for constrained parameter blocks.

Rotations are [x, y, z, w] quaternions, matching EigenQuaternionManifold.
The Sampson error's translation is a direction and lives on a sphere.
"""

import numpy as np
import pyceres


def get_quaternion_manifold() -> pyceres.EigenQuaternionManifold:
    """Get quaternion manifold for [x, y, z, w] rotation blocks.

    Keeps ||q|| = 1 during optimization.

    Used by:
    - Camera and rig poses (cam_from_world, cam_from_rig, rig_from_world)
    - Relative poses (cam2_from_cam1)
    - Similarity transforms (b_from_a)

    Returns:
        pyceres.EigenQuaternionManifold instance
    """
    return pyceres.EigenQuaternionManifold()


def get_sphere_manifold(*, size: int = 3) -> pyceres.SphereManifold:
    """Get sphere manifold for unit-length vectors.

    Args:
        size: Dimension of the ambient space

    Returns:
        pyceres.SphereManifold instance
    """
    return pyceres.SphereManifold(size)


def normalize_quaternion(*, quat: np.ndarray) -> np.ndarray:
    """Normalize an [x, y, z, w] quaternion to unit length.

    Args:
        quat: (4,) quaternion [x, y, z, w]

    Returns:
        (4,) normalized quaternion, identity if degenerate
    """
    norm = np.linalg.norm(quat)
    if norm < 1e-10:
        return np.array([0.0, 0.0, 0.0, 1.0])
    return np.asarray(quat, dtype=np.float64) / norm


def check_quaternion_valid(*, quat: np.ndarray, tol: float = 1e-6) -> bool:
    """Check that a quaternion has unit length within tol."""
    return bool(np.abs(np.linalg.norm(quat) - 1.0) < tol)
