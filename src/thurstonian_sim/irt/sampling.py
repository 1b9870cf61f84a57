"""
Response sampling for Thurstonian IRT comparisons.

Draws one observed response per comparison row from the outcome parameters
computed by the response models. Rows are sampled independently.
"""

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray

from thurstonian_sim.core.constants import DEFAULT_BETA_DISPERSION
from thurstonian_sim.core.exceptions import ValidationError
from thurstonian_sim.core.utils import get_rng
from thurstonian_sim.irt.response_models import ResponseFamily, get_family


def sim_response(
    mu: NDArray[np.float64],
    family: str | ResponseFamily = "bernoulli",
    disp: float = DEFAULT_BETA_DISPERSION,
    rng: Generator | None = None,
) -> NDArray[np.int64] | NDArray[np.float64]:
    """
    Sample responses given means or category probabilities.

    Args:
        mu: Shape (n_rows,) probabilities (bernoulli, beta) or means
            (gaussian), or shape (n_rows, K) category probabilities
            (cumulative).
        family: Response family name or instance.
        disp: Dispersion of the beta family.
        rng: Random number generator.

    Returns:
        Array of shape (n_rows,). Integer categories 0..K-1 for the ordinal
        and bernoulli families, floats otherwise.

    Raises:
        ValidationError: If the shape of mu does not fit the family.
    """
    if rng is None:
        rng = get_rng()

    mu = np.asarray(mu, dtype=np.float64)
    if mu.ndim not in (1, 2):
        raise ValidationError(
            f"mu must be a vector or matrix, got shape {mu.shape}"
        )
    if mu.ndim == 2 and mu.shape[1] == 1:
        mu = mu[:, 0]

    response_family = get_family(family, disp=disp)
    ncat = 2 if mu.ndim == 1 else int(mu.shape[1])
    if response_family.ordinal and ncat < 3:
        raise ValidationError(
            f"Family '{response_family.name}' requires category "
            f"probabilities with at least 3 columns, got {ncat}"
        )
    if not response_family.ordinal and mu.ndim != 1:
        raise ValidationError(
            f"Family '{response_family.name}' requires a vector of means, "
            f"got shape {mu.shape}"
        )

    return response_family.sample(mu, rng)
