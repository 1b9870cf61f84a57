"""
Assignment of latent traits to forced-choice blocks.

Each block presents `nitems_per_block` items, every one measuring a
different trait. A design is balanced when every trait appears in exactly
`nblocks_per_trait` blocks.

Two strategies are supported:
- "fixed": traits are tiled cyclically into the blocks. Deterministic, but
  certain traits end up combined with each other disproportionally often.
- "random": blocks are drawn from the pool of all ordered trait tuples
  without repeated traits, using rejection sampling that keeps the per-trait
  usage counts balanced.
"""

import itertools
import logging
from dataclasses import dataclass

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray

from thurstonian_sim.core.constants import (
    COMB_BLOCKS,
    DEFAULT_MAX_TRIES_INNER,
    DEFAULT_MAX_TRIES_OUTER,
)
from thurstonian_sim.core.exceptions import (
    DesignConstructionError,
    ValidationError,
)
from thurstonian_sim.core.utils import get_rng

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchBudget:
    """Attempt limits for the random block search.

    Attributes:
        max_tries_outer: Number of independent selection passes.
        max_tries_inner: Number of candidate draws allowed within one pass.
    """

    max_tries_outer: int = DEFAULT_MAX_TRIES_OUTER
    max_tries_inner: int = DEFAULT_MAX_TRIES_INNER

    def __post_init__(self) -> None:
        if self.max_tries_outer < 1:
            raise ValueError(
                f"max_tries_outer must be >= 1, got {self.max_tries_outer}"
            )
        if self.max_tries_inner < 1:
            raise ValueError(
                f"max_tries_inner must be >= 1, got {self.max_tries_inner}"
            )


def count_blocks(
    ntraits: int, nblocks_per_trait: int, nitems_per_block: int
) -> int:
    """Number of blocks implied by the design, validating its structure.

    Raises:
        ValidationError: If the design cannot be split into blocks of
            distinct traits.
    """
    for name, value in (
        ("ntraits", ntraits),
        ("nblocks_per_trait", nblocks_per_trait),
        ("nitems_per_block", nitems_per_block),
    ):
        if int(value) != value or value < 1:
            raise ValidationError(
                f"{name} must be a positive integer, got {value}"
            )
    if nitems_per_block < 2:
        raise ValidationError(
            "nitems_per_block must be at least 2 to form comparisons, "
            f"got {nitems_per_block}"
        )
    if nitems_per_block > ntraits:
        raise ValidationError(
            f"nitems_per_block ({nitems_per_block}) cannot exceed ntraits "
            f"({ntraits}) since items within a block need distinct traits"
        )
    if (ntraits * nblocks_per_trait) % nitems_per_block != 0:
        raise ValidationError(
            "The number of items per block must divide the number of total "
            f"items: {ntraits} * {nblocks_per_trait} is not divisible by "
            f"{nitems_per_block}"
        )
    return (ntraits * nblocks_per_trait) // nitems_per_block


def trait_usage(
    trait_combs: NDArray[np.int64], ntraits: int
) -> NDArray[np.int64]:
    """Count the number of blocks each trait (1-based labels) appears in."""
    counts: NDArray[np.int64] = np.bincount(
        trait_combs.ravel() - 1, minlength=ntraits
    ).astype(np.int64)
    return counts


def items_per_trait(
    trait_combs: NDArray[np.int64], ntraits: int
) -> list[NDArray[np.int64]]:
    """
    Map each trait to the item indices measuring it.

    Items are numbered 1..nitems block by block, so the item at position p
    of block b has index b * nitems_per_block + p + 1.

    Args:
        trait_combs: Block table of shape (nblocks, nitems_per_block).
        ntraits: Number of traits.

    Returns:
        List of length ntraits; element t holds the items of trait t + 1
        in block order.
    """
    nblocks, nitems_per_block = trait_combs.shape
    item_index = np.arange(1, nblocks * nitems_per_block + 1).reshape(
        nblocks, nitems_per_block
    )
    return [
        item_index[trait_combs == t].astype(np.int64)
        for t in range(1, ntraits + 1)
    ]


def _fixed_trait_combs(
    ntraits: int, nblocks_per_trait: int, nitems_per_block: int
) -> NDArray[np.int64]:
    traits = np.tile(np.arange(1, ntraits + 1), nblocks_per_trait)
    out = traits.reshape(-1, nitems_per_block).astype(np.int64)

    repeated = [
        i for i, row in enumerate(out) if len(set(row.tolist())) < len(row)
    ]
    if repeated:
        raise DesignConstructionError(
            f"Fixed block design repeats a trait within block(s) "
            f"{[i + 1 for i in repeated]}; use comb_blocks='random' instead"
        )
    return out


def candidate_pool(ntraits: int, nitems_per_block: int) -> NDArray[np.int64]:
    """All ordered tuples of `nitems_per_block` distinct traits (1-based)."""
    pool = np.array(
        list(
            itertools.permutations(range(1, ntraits + 1), nitems_per_block)
        ),
        dtype=np.int64,
    )
    return pool.reshape(-1, nitems_per_block)


def _is_balanced(usage: NDArray[np.int64], nblocks_per_trait: int) -> bool:
    return bool(
        usage.max() <= usage.min() + 1 and usage.max() <= nblocks_per_trait
    )


def _has_admissible_candidate(
    pool: NDArray[np.int64],
    remaining: list[int],
    usage: NDArray[np.int64],
    nblocks_per_trait: int,
) -> bool:
    """Check whether any remaining candidate would keep the design balanced."""
    rows = pool[np.asarray(remaining)] - 1
    # Shape: (n_remaining, ntraits)
    trial = np.broadcast_to(usage, (len(remaining), usage.size)).copy()
    np.add.at(trial, (np.arange(len(remaining))[:, np.newaxis], rows), 1)
    max_usage = trial.max(axis=1)
    min_usage = trial.min(axis=1)
    admissible = (max_usage <= min_usage + 1) & (
        max_usage <= nblocks_per_trait
    )
    return bool(admissible.any())


def _choose_blocks(
    pool: NDArray[np.int64],
    nblocks: int,
    ntraits: int,
    nblocks_per_trait: int,
    max_tries: int,
    rng: Generator,
) -> list[int] | None:
    """
    Run a single selection pass over the candidate pool.

    Candidates are drawn uniformly from the rows not chosen yet. A candidate
    is accepted if the per-trait usage stays within one of the minimum usage
    and below `nblocks_per_trait`; otherwise its usage is rolled back and it
    remains available.

    Returns:
        Row indices into `pool` of the chosen blocks, or None if the pass
        ran out of attempts or reached a dead end.
    """
    remaining = list(range(pool.shape[0]))
    usage = np.zeros(ntraits, dtype=np.int64)
    chosen: list[int] = []
    n_rejected = 0

    for _ in range(max_tries):
        if len(chosen) == nblocks:
            break
        if not remaining:
            return None

        position = int(rng.integers(len(remaining)))
        candidate = remaining[position]
        traits = pool[candidate] - 1

        usage[traits] += 1
        if _is_balanced(usage, nblocks_per_trait):
            chosen.append(candidate)
            remaining.pop(position)
            n_rejected = 0
            continue

        usage[traits] -= 1
        n_rejected += 1
        # Rejections leave the state unchanged, so a dead end stays a dead end
        if n_rejected >= len(remaining):
            if not _has_admissible_candidate(
                pool, remaining, usage, nblocks_per_trait
            ):
                return None
            n_rejected = 0

    if len(chosen) < nblocks:
        return None
    return chosen


def _random_trait_combs(
    ntraits: int,
    nblocks_per_trait: int,
    nitems_per_block: int,
    rng: Generator,
    budget: SearchBudget,
) -> NDArray[np.int64]:
    nblocks = (ntraits * nblocks_per_trait) // nitems_per_block
    pool = candidate_pool(ntraits, nitems_per_block)

    for attempt in range(1, budget.max_tries_outer + 1):
        chosen = _choose_blocks(
            pool=pool,
            nblocks=nblocks,
            ntraits=ntraits,
            nblocks_per_trait=nblocks_per_trait,
            max_tries=budget.max_tries_inner,
            rng=rng,
        )
        if chosen is not None:
            logger.debug(
                "Found balanced block design after %d pass(es)", attempt
            )
            return pool[chosen]
        logger.debug("Block search pass %d failed, restarting", attempt)

    logger.warning(
        "Block search exhausted %d passes for ntraits=%d, "
        "nblocks_per_trait=%d, nitems_per_block=%d",
        budget.max_tries_outer,
        ntraits,
        nblocks_per_trait,
        nitems_per_block,
    )
    raise DesignConstructionError(
        "Could not find a set of suitable blocks.",
        attempts=budget.max_tries_outer,
    )


def make_trait_combs(
    ntraits: int,
    nblocks_per_trait: int,
    nitems_per_block: int,
    comb_blocks: str = "random",
    rng: Generator | None = None,
    budget: SearchBudget | None = None,
) -> NDArray[np.int64]:
    """
    Assign traits to blocks.

    Args:
        ntraits: Number of traits.
        nblocks_per_trait: Number of blocks each trait appears in.
        nitems_per_block: Number of items (and distinct traits) per block.
        comb_blocks: "random" (balanced random search) or "fixed"
            (cyclic tiling, no randomness consumed).
        rng: Random number generator, used in "random" mode only.
        budget: Attempt limits for the random search.

    Returns:
        Array of shape (nblocks, nitems_per_block) with 1-based trait labels.

    Raises:
        ValidationError: If the design parameters are inconsistent.
        DesignConstructionError: If no valid design was found.
    """
    if comb_blocks not in COMB_BLOCKS:
        raise ValidationError(
            f"comb_blocks must be one of {list(COMB_BLOCKS)}, "
            f"got '{comb_blocks}'"
        )
    count_blocks(ntraits, nblocks_per_trait, nitems_per_block)

    if comb_blocks == "fixed":
        return _fixed_trait_combs(ntraits, nblocks_per_trait, nitems_per_block)

    if rng is None:
        rng = get_rng()
    if budget is None:
        budget = SearchBudget()
    return _random_trait_combs(
        ntraits, nblocks_per_trait, nitems_per_block, rng, budget
    )
