"""Two-view epipolar cost.

The Sampson error is the first-order approximation of the geometric
distance of a correspondence (x1, x2) to the epipolar constraint
x2^T E x1 = 0, with E = [t]_x R built from the relative pose cam2_from_cam1.

The translation is only defined up to scale. Keep its norm fixed by placing
the translation block on a sphere manifold (see get_sphere_manifold).
"""

import numpy as np

from bundlecosts.cost_functions.base_cost import AutoDiffCostFunction
from bundlecosts.geometry.rigid3 import as_vector
from bundlecosts.geometry.rotation import cross_product_matrix, quat_to_rotation_matrix
from bundlecosts.jax_init import jnp


def sampson_error_kernel(
    x1: jnp.ndarray,
    x2: jnp.ndarray,
    cam2_from_cam1_rotation: jnp.ndarray,
    cam2_from_cam1_translation: jnp.ndarray
) -> jnp.ndarray:
    essential = cross_product_matrix(cam2_from_cam1_translation) @ quat_to_rotation_matrix(
        cam2_from_cam1_rotation
    )
    epipolar_line1 = essential @ x1
    epipolar_line2 = essential.T @ x2
    numerator = x2 @ epipolar_line1
    denominator = (
        epipolar_line1[0] ** 2
        + epipolar_line1[1] ** 2
        + epipolar_line2[0] ** 2
        + epipolar_line2[1] ** 2
    )
    return jnp.reshape(numerator * numerator / denominator, (1,))


class SampsonErrorCost(AutoDiffCostFunction):
    """Sampson error of a normalized image correspondence.

    Parameters:
        - cam2_from_cam1_rotation (4): quaternion [x, y, z, w]
        - cam2_from_cam1_translation (3): unit-norm direction
    """

    def __init__(self, x1: np.ndarray, x2: np.ndarray) -> None:
        """Initialize Sampson error.

        Args:
            x1: (2,) normalized image point in camera 1
            x2: (2,) normalized image point in camera 2
        """
        x1 = as_vector(values=x1, size=2, name="x1")
        x2 = as_vector(values=x2, size=2, name="x2")
        super().__init__(
            kernel=sampson_error_kernel,
            constants=(np.append(x1, 1.0), np.append(x2, 1.0)),
            num_residuals=1,
            parameter_block_sizes=[4, 3],
        )
        self.x1 = x1
        self.x2 = x2
