"""
Core utility functions shared across thurstonian_sim modules.

This module provides foundational utilities used by both the latent
response model and the synthetic data generation layer.
"""

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray


def get_rng(seed: int | None = None) -> Generator:
    """
    Create a numpy random Generator with optional seed.

    Args:
        seed: Random seed for reproducibility. If None, uses entropy.

    Returns:
        A numpy random Generator instance.
    """
    return np.random.default_rng(seed)


def is_positive_semidefinite(
    matrix: NDArray[np.float64], tol: float = 1e-10
) -> bool:
    """Check if a symmetric matrix is positive semi-definite."""
    eigenvalues = np.linalg.eigvalsh(matrix)
    return bool(np.all(eigenvalues >= -tol))


def is_symmetric(matrix: NDArray[np.float64], tol: float = 1e-10) -> bool:
    return bool(np.allclose(matrix, matrix.T, atol=tol))
