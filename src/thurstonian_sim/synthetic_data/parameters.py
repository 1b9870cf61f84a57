"""
Item and person parameter handling for Thurstonian IRT simulations.

This module provides:
- Normalization of user supplied loadings (lambda), uniquenesses (psi),
  intercepts/thresholds (gamma) and latent scores (eta)
- Trait correlation matrix building and validation
- Sampling of item parameters from configured marginal distributions
- Config loading from YAML files using OmegaConf
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray
from omegaconf import OmegaConf

from thurstonian_sim.core.exceptions import ValidationError
from thurstonian_sim.core.utils import is_positive_semidefinite, is_symmetric
from thurstonian_sim.irt.response_models import get_family
from thurstonian_sim.synthetic_data.config import (
    DistributionConfig,
    GenerationConfig,
)
from thurstonian_sim.synthetic_data.sampling import draw_sample

logger = logging.getLogger(__name__)

# GenerationConfig fields holding a DistributionConfig
DISTRIBUTION_KEYS = ("loadings", "intercepts")

# =============================================================================
# Item parameters: flat (by item) or grouped (by trait)
# =============================================================================


@dataclass(frozen=True)
class FlatItemValues:
    """Item values ordered by item index; a single value is shared."""

    values: NDArray[np.float64]

    @property
    def size(self) -> int:
        return int(self.values.size)


@dataclass(frozen=True)
class GroupedItemValues:
    """Item values grouped per trait, each group in block order."""

    groups: tuple[NDArray[np.float64], ...]

    @property
    def size(self) -> int:
        return sum(int(g.size) for g in self.groups)


ItemValues = FlatItemValues | GroupedItemValues


def as_item_values(values: Any, name: str = "lambda") -> ItemValues:
    """
    Interpret user input as flat or grouped item values.

    A list or tuple whose elements are themselves sequences is read as one
    group per trait. Anything else is read as a flat vector (or scalar).
    """
    if isinstance(values, (FlatItemValues, GroupedItemValues)):
        return values
    if (
        isinstance(values, (list, tuple))
        and len(values) > 0
        and all(np.ndim(group) >= 1 for group in values)
    ):
        try:
            groups = tuple(
                np.asarray(group, dtype=np.float64).ravel()
                for group in values
            )
        except ValueError as e:
            raise ValidationError(
                f"{name} elements must each be a vector of numbers, one per "
                f"trait: {e}"
            ) from e
        return GroupedItemValues(groups=groups)

    try:
        array = np.asarray(values, dtype=np.float64)
    except ValueError as e:
        raise ValidationError(
            f"{name} must be a scalar, a vector, or a list with one vector "
            f"per trait; mixed scalars and vectors are not allowed: {e}"
        ) from e
    if array.ndim > 1:
        raise ValidationError(
            f"{name} must be a scalar, a vector, or a list with one vector "
            f"per trait, got an array of shape {array.shape}"
        )
    return FlatItemValues(values=np.atleast_1d(array))


def check_item_values(
    values: ItemValues,
    name: str,
    nitems: int,
    ntraits: int,
    nblocks_per_trait: int,
) -> None:
    """
    Validate the length of item values against the design.

    Raises:
        ValidationError: If the number of values does not match.
    """
    if isinstance(values, FlatItemValues):
        if values.size not in (1, nitems):
            raise ValidationError(
                f"{name} should contain {nitems} values, got {values.size}."
            )
        return

    if len(values.groups) != ntraits:
        raise ValidationError(
            f"{name} should contain {ntraits} list elements, "
            f"got {len(values.groups)}."
        )
    for t, group in enumerate(values.groups):
        if group.size != nblocks_per_trait:
            raise ValidationError(
                f"{name} element {t + 1} should contain {nblocks_per_trait} "
                f"values (one per block of trait {t + 1}), got {group.size}."
            )


def check_comparison_scale(
    psi: ItemValues,
    name: str,
    nblocks: int,
    nitems_per_block: int,
) -> None:
    """
    Reject uniquenesses that make a comparison's scale
    sqrt(psi1^2 + psi2^2) zero.

    Two items of one block are always compared, so a block may hold at most
    one item with psi == 0. For grouped values the block of each item is
    only known after the design is drawn; there, zero uniquenesses are
    allowed for at most one trait, whose items never share a block.

    Raises:
        ValidationError: If two items with psi == 0 could be compared.
    """
    if isinstance(psi, GroupedItemValues):
        zero_traits = [
            t + 1 for t, group in enumerate(psi.groups) if np.any(group == 0)
        ]
        if len(zero_traits) > 1:
            raise ValidationError(
                f"{name} is zero for items of traits {zero_traits}; two such "
                "items in one block would give a comparison with zero scale"
            )
        return

    nitems = nblocks * nitems_per_block
    values = np.broadcast_to(psi.values, (nitems,))
    zero_per_block = (values == 0).reshape(nblocks, nitems_per_block).sum(1)
    blocks = np.flatnonzero(zero_per_block > 1) + 1
    if blocks.size > 0:
        raise ValidationError(
            f"{name} is zero for two items of block(s) {blocks.tolist()}, "
            "giving a comparison with zero scale sqrt(psi1^2 + psi2^2)"
        )


def _lambda2psi(x: NDArray[np.float64]) -> NDArray[np.float64]:
    if np.any(np.abs(x) > 1):
        raise ValidationError(
            "standardized lambdas are expected to be between -1 and 1."
        )
    result: NDArray[np.float64] = 1.0 - x**2
    return result


def lambda2psi(lambda_: Any) -> Any:
    """
    Compute standardized uniquenesses psi = 1 - lambda^2.

    Follows Brown & Maydeu-Olivares (2011) for standardized loadings.
    Grouped input returns grouped output; anything else returns an array.

    Raises:
        ValidationError: If any |lambda| > 1.
    """
    values = as_item_values(lambda_, name="lambda")
    if isinstance(values, GroupedItemValues):
        return GroupedItemValues(
            groups=tuple(_lambda2psi(g) for g in values.groups)
        )
    return _lambda2psi(values.values)


def resolve_item_values(
    values: ItemValues,
    items_per_trait: Sequence[NDArray[np.int64]],
    nitems: int,
) -> NDArray[np.float64]:
    """
    Convert item values into one value per item, ordered by item index.

    Args:
        values: Flat or grouped item values (already length checked).
        items_per_trait: Item indices (1-based) of each trait in block
            order, as produced while assigning traits to blocks.
        nitems: Total number of items.

    Returns:
        Array of shape (nitems,).
    """
    if isinstance(values, FlatItemValues):
        if values.size == 1:
            return np.full(nitems, float(values.values[0]), dtype=np.float64)
        return values.values.astype(np.float64, copy=True)

    out = np.empty(nitems, dtype=np.float64)
    item_index = np.concatenate(list(items_per_trait)) - 1
    out[item_index] = np.concatenate(values.groups)
    return out


def expand_gamma(
    gamma: ArrayLike, nrows: int, family: str
) -> NDArray[np.float64]:
    """
    Expand gamma to one entry (or threshold row) per comparison.

    Args:
        gamma: Scalar, vector of length nrows, or (nrows, K - 1) matrix of
            ordered thresholds.
        nrows: Number of comparisons in the design (nblocks * ncomparisons).
        family: Response family, used to check the number of columns.

    Returns:
        Array of shape (nrows,) or (nrows, K - 1).

    Raises:
        ValidationError: If the shape does not fit the design or family.
    """
    array = np.asarray(gamma, dtype=np.float64)
    if array.ndim == 0 or (array.ndim == 1 and array.size == 1):
        array = np.full(nrows, float(array.ravel()[0]), dtype=np.float64)
    elif array.ndim == 2 and array.shape[1] == 1:
        array = array[:, 0]
    elif array.ndim > 2:
        raise ValidationError(
            f"gamma must be a scalar, vector or matrix, got shape "
            f"{array.shape}"
        )

    if array.shape[0] != nrows:
        raise ValidationError(
            f"gamma should contain {nrows} rows, got {array.shape[0]}."
        )

    ncol = 1 if array.ndim == 1 else int(array.shape[1])
    get_family(family).check_shape(ncol)
    return array


def validate_eta(
    eta: ArrayLike, npersons: int, ntraits: int
) -> NDArray[np.float64]:
    """Check that supplied latent scores have shape (npersons, ntraits)."""
    array = np.asarray(eta, dtype=np.float64)
    if array.shape != (npersons, ntraits):
        raise ValidationError(
            f"eta should be of dimension ({npersons}, {ntraits}), "
            f"got {array.shape}."
        )
    if not np.all(np.isfinite(array)):
        raise ValidationError("eta must contain only finite values.")
    return array


def validate_phi(Phi: ArrayLike, ntraits: int) -> NDArray[np.float64]:
    """
    Check that Phi is a valid (ntraits, ntraits) correlation structure.

    Raises:
        ValidationError: If Phi has the wrong shape, is not symmetric, or
            is not positive semi-definite.
    """
    matrix = np.asarray(Phi, dtype=np.float64)
    if matrix.shape != (ntraits, ntraits):
        raise ValidationError(
            f"Phi should be of dimension ({ntraits}, {ntraits}), "
            f"got {matrix.shape}."
        )
    if not is_symmetric(matrix):
        raise ValidationError("Phi must be symmetric.")
    if not is_positive_semidefinite(matrix):
        raise ValidationError(
            f"Phi must be positive semi-definite. Got:\n{matrix}"
        )
    return matrix


def equicorrelation_matrix(ntraits: int, rho: float) -> NDArray[np.float64]:
    """Correlation matrix with a common correlation rho between traits."""
    R = np.full((ntraits, ntraits), rho, dtype=np.float64)
    np.fill_diagonal(R, 1.0)
    return validate_phi(R, ntraits)


# =============================================================================
# Sampling from configuration
# =============================================================================


def create_distribution_sample(
    config: DistributionConfig, n: int, rng: Generator
) -> NDArray[np.float64]:
    return draw_sample(
        n,
        distribution_name=config.distribution,
        distribution_params=dict(config.params),
        rng=rng,
    )


def sample_loadings(
    config: GenerationConfig, nitems: int, rng: Generator
) -> NDArray[np.float64]:
    """
    Sample standardized loadings for all items.

    Absolute loadings come from `config.loadings`; each item is negatively
    keyed with probability `config.negative_loading_rate`.
    """
    draws = create_distribution_sample(config.loadings, nitems, rng)
    magnitude = np.abs(draws)
    if np.any(magnitude > 1):
        raise ValidationError(
            "Configured loading distribution produced |lambda| > 1; "
            "restrict it to [-1, 1]"
        )
    negative = rng.random(nitems) < config.negative_loading_rate
    result: NDArray[np.float64] = np.where(negative, -magnitude, magnitude)
    return result


def sample_gamma(
    config: GenerationConfig, nrows: int, rng: Generator
) -> NDArray[np.float64]:
    """
    Sample intercepts, or sorted thresholds for ordinal families.

    Returns:
        Array of shape (nrows,) or (nrows, ncat - 1).
    """
    ncol = config.ncat - 1
    draws = create_distribution_sample(config.intercepts, nrows * ncol, rng)
    if ncol == 1:
        return draws
    result: NDArray[np.float64] = np.sort(draws.reshape(nrows, ncol), axis=1)
    return result


# =============================================================================
# Config Loading
# =============================================================================


def load_config(yaml_path: Path) -> GenerationConfig:
    """Load and validate a generation config from YAML.

    Args:
        yaml_path: Path to YAML config file

    Returns:
        Validated GenerationConfig

    Raises:
        FileNotFoundError: If yaml_path doesn't exist
    """
    schema = OmegaConf.structured(GenerationConfig)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    user_config = OmegaConf.load(yaml_path)

    # A configured distribution brings its own params; never merge them
    for key in DISTRIBUTION_KEYS:
        if key in user_config:
            schema[key].params = {}

    config = OmegaConf.merge(schema, user_config)

    # Convert to typed dataclass
    result = OmegaConf.to_object(config)
    assert isinstance(result, GenerationConfig)
    logger.debug("Loaded generation config from %s", yaml_path)

    return result
