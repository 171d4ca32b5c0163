"""Whitening of residuals from measurement covariances."""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def validate_covariance(*, covariance: np.ndarray, size: int) -> np.ndarray:
    """Check that a covariance is a finite symmetric (size x size) matrix.

    Args:
        covariance: Candidate covariance matrix
        size: Expected dimension

    Returns:
        Float64 copy of the covariance

    Raises:
        ValueError: If the shape is wrong, or the matrix is non-finite or
            not symmetric
    """
    covariance = np.array(covariance, dtype=np.float64)
    if covariance.shape != (size, size):
        raise ValueError(
            f"Covariance must have shape ({size}, {size}), got {covariance.shape}"
        )
    if not np.all(np.isfinite(covariance)):
        raise ValueError("Covariance contains NaN or Inf entries")
    if not np.allclose(covariance, covariance.T, rtol=1e-9, atol=1e-12):
        raise ValueError("Covariance must be symmetric")
    return covariance


def sqrt_information(*, covariance: np.ndarray, size: int | None = None) -> np.ndarray:
    """Compute the square-root information matrix of a covariance.

    S is the transpose of the lower Cholesky factor of inv(covariance), so
    that S.T @ S == inv(covariance). Left-multiplying a residual by S whitens
    it to unit variance.

    Args:
        covariance: (n, n) symmetric positive-definite matrix
        size: Expected dimension n, taken from the covariance when None

    Returns:
        (n, n) upper-triangular square-root information matrix

    Raises:
        ValueError: If the covariance is not an (n, n) symmetric positive-definite matrix
    """
    if size is None:
        if np.ndim(covariance) != 2:
            raise ValueError(f"Covariance must be a matrix, got shape {np.shape(covariance)}")
        size = np.shape(covariance)[0]
    covariance = validate_covariance(covariance=covariance, size=size)
    try:
        information = np.linalg.inv(covariance)
        lower = np.linalg.cholesky(information)
    except np.linalg.LinAlgError as e:
        raise ValueError(
            f"Covariance is not positive-definite:\n{covariance}"
        ) from e

    logger.debug(f"Computed {covariance.shape[0]}x{covariance.shape[0]} sqrt information")
    return lower.T.copy()
