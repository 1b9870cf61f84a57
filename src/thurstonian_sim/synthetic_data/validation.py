"""
Validation and sanity checks for simulated data.

This module checks the structural invariants of generated designs and
datasets: balanced trait usage, distinct traits within blocks, comparisons
within a block, the table size, and response values allowed by the family.
"""

import numpy as np
from numpy.typing import NDArray

from thurstonian_sim.core.constants import BETA_RESPONSE_MAX, BETA_RESPONSE_MIN
from thurstonian_sim.synthetic_data.blocks import trait_usage
from thurstonian_sim.synthetic_data.data_models import TIRTData


class InvariantViolationError(Exception):
    """Raised when a generated design or dataset violates an invariant."""

    pass


def validate_block_design(
    trait_combs: NDArray[np.int64],
    ntraits: int,
    nblocks_per_trait: int,
) -> None:
    """
    Validate a block table.

    Raises:
        InvariantViolationError: If a block repeats a trait, a label is out
            of range, or trait usage is unbalanced.
    """
    if trait_combs.min() < 1 or trait_combs.max() > ntraits:
        raise InvariantViolationError(
            f"Trait labels must lie in [1, {ntraits}]"
        )
    for i, row in enumerate(trait_combs):
        if len(np.unique(row)) != len(row):
            raise InvariantViolationError(
                f"Block {i + 1} repeats a trait: {row.tolist()}"
            )

    usage = trait_usage(trait_combs, ntraits)
    if not np.all(usage == nblocks_per_trait):
        raise InvariantViolationError(
            f"Unbalanced design: trait usage {usage.tolist()}, expected "
            f"{nblocks_per_trait} blocks per trait"
        )


def validate_comparisons(data: TIRTData) -> None:
    """
    Validate that every comparison pairs two items of one block that
    measure different traits.

    Raises:
        InvariantViolationError: If any row violates this.
    """
    df = data.data
    k = data.design.nitems_per_block
    item1 = df["item1"].to_numpy()
    item2 = df["item2"].to_numpy()

    if np.any(item1 == item2):
        raise InvariantViolationError("A comparison pairs an item with itself")

    block1 = (item1 - 1) // k + 1
    block2 = (item2 - 1) // k + 1
    block = df["block"].to_numpy()
    if np.any(block1 != block) or np.any(block2 != block):
        raise InvariantViolationError(
            "A comparison pairs items from different blocks"
        )
    if np.any(df["trait1"].to_numpy() == df["trait2"].to_numpy()):
        raise InvariantViolationError(
            "A comparison pairs items of the same trait"
        )


def validate_responses(data: TIRTData, atol: float = 1e-9) -> None:
    """
    Validate responses and outcome parameters against the family.

    Raises:
        InvariantViolationError: If a response or probability is invalid.
    """
    response = data.responses
    family = data.family

    if family == "bernoulli":
        if not np.all(np.isin(response, [0, 1])):
            raise InvariantViolationError("bernoulli responses must be 0/1")
    elif family == "beta":
        if np.any(response < BETA_RESPONSE_MIN) or np.any(
            response > BETA_RESPONSE_MAX
        ):
            raise InvariantViolationError(
                f"beta responses must lie in [{BETA_RESPONSE_MIN}, "
                f"{BETA_RESPONSE_MAX}]"
            )
    elif family == "cumulative":
        if not np.all(np.isin(response, np.arange(data.ncat))):
            raise InvariantViolationError(
                f"cumulative responses must lie in 0..{data.ncat - 1}"
            )
        probs = data.category_probabilities
        if not np.allclose(probs.sum(axis=1), 1.0, atol=atol):
            raise InvariantViolationError(
                "Category probabilities must sum to 1 in every row"
            )
        if np.any(probs < -atol):
            raise InvariantViolationError(
                "Negative category probability; thresholds must be "
                "non-decreasing within a row"
            )

    if not np.all(np.isfinite(response.astype(np.float64))):
        raise InvariantViolationError("Responses must be finite")


def validate_tirt_data(data: TIRTData) -> None:
    """
    Run all validation checks on simulated data.

    Args:
        data: Simulated data.

    Raises:
        InvariantViolationError: If any validation fails.
    """
    design = data.design
    if len(data.data) != design.nrows:
        raise InvariantViolationError(
            f"Expected {design.nrows} rows, got {len(data.data)}"
        )
    validate_block_design(
        data.trait_combs, design.ntraits, design.nblocks_per_trait
    )
    validate_comparisons(data)
    validate_responses(data)
