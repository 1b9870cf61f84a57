"""
Core shared types and utilities for thurstonian_sim.

This module provides foundational components used across multiple submodules,
decoupling the latent response model from the synthetic data orchestration
layer.
"""

from thurstonian_sim.core.exceptions import (
    DesignConstructionError,
    ValidationError,
)
from thurstonian_sim.core.utils import get_rng, is_positive_semidefinite

__all__ = [
    "DesignConstructionError",
    "ValidationError",
    "get_rng",
    "is_positive_semidefinite",
]
