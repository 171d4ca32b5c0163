"""Point alignment under a similarity transform.

Used to register a reconstruction into another frame (e.g. GPS or a
previous model) given point correspondences:

    residual = sqrt_info @ (b_from_a * point_in_a - point_in_b_prior)
"""

import numpy as np

from bundlecosts.cost_functions.base_cost import AutoDiffCostFunction
from bundlecosts.geometry.covariance import sqrt_information
from bundlecosts.geometry.rigid3 import as_vector
from bundlecosts.geometry.rotation import quat_rotate
from bundlecosts.jax_init import jnp


def point3D_alignment_kernel(
    point_in_b_prior: jnp.ndarray,
    sqrt_info: jnp.ndarray,
    point_in_a: jnp.ndarray,
    b_from_a_rotation: jnp.ndarray,
    b_from_a_translation: jnp.ndarray,
    b_from_a_scale: jnp.ndarray
) -> jnp.ndarray:
    point_in_b = quat_rotate(b_from_a_rotation, point_in_a) * b_from_a_scale[0] + b_from_a_translation
    return sqrt_info @ (point_in_b - point_in_b_prior)


class Point3DAlignmentCost(AutoDiffCostFunction):
    """Alignment of a 3D point to its measured position in frame b.

    Parameters:
        - point_in_a (3)
        - b_from_a_rotation (4): quaternion [x, y, z, w]
        - b_from_a_translation (3)
        - b_from_a_scale (1)
    """

    def __init__(self, point_in_b_prior: np.ndarray, covariance: np.ndarray) -> None:
        """Initialize alignment cost.

        Args:
            point_in_b_prior: (3,) measured point in frame b
            covariance: (3, 3) covariance of the measurement

        Raises:
            ValueError: If the inputs have the wrong size or the covariance
                is not symmetric positive-definite
        """
        prior = as_vector(values=point_in_b_prior, size=3, name="point_in_b_prior")
        super().__init__(
            kernel=point3D_alignment_kernel,
            constants=(prior, sqrt_information(covariance=covariance, size=3)),
            num_residuals=3,
            parameter_block_sizes=[3, 4, 3, 1],
        )
        self.point_in_b_prior, self.sqrt_info = self.constants
