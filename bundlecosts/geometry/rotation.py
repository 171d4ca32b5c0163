"""Quaternion and rotation helpers usable inside residual kernels.

Every function here is written against jax.numpy and is generic over the
array type: it evaluates on plain arrays and under the forward-mode tracer
used to compute Jacobians.

Quaternions are stored as [x, y, z, w] (Eigen / scipy order).
None of the helpers renormalize their input.
"""

from bundlecosts.jax_init import jnp


def quat_multiply(q1: jnp.ndarray, q2: jnp.ndarray) -> jnp.ndarray:
    """Hamilton product q1 * q2.

    Composes rotations so that (q1 * q2) applied to v equals q1 applied to
    (q2 applied to v).
    """
    x1, y1, z1, w1 = q1[0], q1[1], q1[2], q1[3]
    x2, y2, z2, w2 = q2[0], q2[1], q2[2], q2[3]
    return jnp.stack([
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
    ])


def quat_conjugate(q: jnp.ndarray) -> jnp.ndarray:
    """Conjugate quaternion [-x, -y, -z, w]."""
    return jnp.stack([-q[0], -q[1], -q[2], q[3]])


def quat_inverse(q: jnp.ndarray) -> jnp.ndarray:
    """Multiplicative inverse (conjugate divided by squared norm)."""
    return quat_conjugate(q) / jnp.sum(q * q)


def quat_rotate(q: jnp.ndarray, v: jnp.ndarray) -> jnp.ndarray:
    """Rotate a 3-vector by a unit quaternion.

    Uses v' = v + 2w (u x v) + u x (2 (u x v)) with u the vector part.
    """
    u = q[:3]
    uv = jnp.cross(u, v)
    uv = uv + uv
    return v + q[3] * uv + jnp.cross(u, uv)


def quat_to_rotation_matrix(q: jnp.ndarray) -> jnp.ndarray:
    """Convert a unit quaternion to a 3x3 rotation matrix."""
    x, y, z, w = q[0], q[1], q[2], q[3]
    tx, ty, tz = 2.0 * x, 2.0 * y, 2.0 * z
    twx, twy, twz = tx * w, ty * w, tz * w
    txx, txy, txz = tx * x, ty * x, tz * x
    tyy, tyz, tzz = ty * y, tz * y, tz * z
    return jnp.stack([
        jnp.stack([1.0 - (tyy + tzz), txy - twz, txz + twy]),
        jnp.stack([txy + twz, 1.0 - (txx + tzz), tyz - twx]),
        jnp.stack([txz - twy, tyz + twx, 1.0 - (txx + tyy)]),
    ])


def quaternion_to_angle_axis(q: jnp.ndarray) -> jnp.ndarray:
    """Log map of a unit quaternion to an angle-axis 3-vector.

    The returned angle lies in [-pi, pi]: q and -q map to the same vector.
    Near the identity the map degrades to 2 * vec(q), which keeps the
    derivative finite at zero rotation.

    Args:
        q: (4,) quaternion [x, y, z, w]

    Returns:
        (3,) angle-axis vector
    """
    vec = q[:3]
    cos_theta = q[3]
    sin_squared_theta = jnp.sum(vec * vec)
    is_rotation = sin_squared_theta > 0.0

    safe_sin_squared_theta = jnp.where(is_rotation, sin_squared_theta, 1.0)
    sin_theta = jnp.sqrt(safe_sin_squared_theta)

    # Shortest representative: flip both atan2 arguments when w < 0.
    two_theta = 2.0 * jnp.where(
        cos_theta < 0.0,
        jnp.arctan2(-sin_theta, -cos_theta),
        jnp.arctan2(sin_theta, cos_theta),
    )
    k = jnp.where(is_rotation, two_theta / sin_theta, 2.0)
    return vec * k


def cross_product_matrix(v: jnp.ndarray) -> jnp.ndarray:
    """Skew-symmetric matrix [v]_x such that [v]_x @ w == cross(v, w)."""
    zero = jnp.zeros_like(v[0])
    return jnp.stack([
        jnp.stack([zero, -v[2], v[1]]),
        jnp.stack([v[2], zero, -v[0]]),
        jnp.stack([-v[1], v[0], zero]),
    ])
