"""
Synthetic data generation for Thurstonian IRT forced-choice experiments.

This module simulates pairwise comparison responses from a known
Thurstonian model so that estimation procedures can be validated against
ground truth. It does not fit models.
"""

from thurstonian_sim.synthetic_data.blocks import (
    SearchBudget,
    make_trait_combs,
)
from thurstonian_sim.synthetic_data.data_models import TIRTData
from thurstonian_sim.synthetic_data.generators import (
    generate_from_config,
    sim_tirt_data,
    to_csv,
)

__all__ = [
    "SearchBudget",
    "TIRTData",
    "generate_from_config",
    "make_trait_combs",
    "sim_tirt_data",
    "to_csv",
]
