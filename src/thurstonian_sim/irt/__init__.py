"""
Thurstonian IRT response module.

This module provides:
- Response families (bernoulli, beta, gaussian, cumulative) that map item
  parameters and latent trait scores to outcome parameters
- Sampling of observed responses from those outcome parameters
"""

from thurstonian_sim.irt.response_models import (
    ComparisonParameters,
    ResponseFamily,
    check_family,
    family_registry,
    get_family,
    mean_response,
)
from thurstonian_sim.irt.sampling import sim_response

__all__ = [
    "ComparisonParameters",
    "ResponseFamily",
    "check_family",
    "family_registry",
    "get_family",
    "mean_response",
    "sim_response",
]
