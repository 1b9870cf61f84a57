"""
Enumeration of the pairwise comparisons implied by a block design.

Every unordered pair of items within a block becomes one comparison. Pairs
are listed with the lower item first, so (1, 2), (1, 3), ..., (2, 3), ...
for each block in turn.
"""

import itertools
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class ComparisonDesign:
    """
    One entry per (block, comparison) pair; all indices are 1-based.

    Attributes:
        block: Block index.
        comparison: Comparison index within the block.
        itemC: Global comparison index, used to look up gamma.
        trait1: Trait of the first item.
        trait2: Trait of the second item.
        item1: Index of the first item.
        item2: Index of the second item.
    """

    block: NDArray[np.int64]
    comparison: NDArray[np.int64]
    itemC: NDArray[np.int64]
    trait1: NDArray[np.int64]
    trait2: NDArray[np.int64]
    item1: NDArray[np.int64]
    item2: NDArray[np.int64]

    @property
    def n_rows(self) -> int:
        return int(self.block.size)


def count_comparisons(nitems_per_block: int) -> int:
    return nitems_per_block * (nitems_per_block - 1) // 2


def enumerate_comparisons(
    trait_combs: NDArray[np.int64],
) -> ComparisonDesign:
    """
    List all item pairs of every block.

    Args:
        trait_combs: Block table of shape (nblocks, nitems_per_block) with
            1-based trait labels.

    Returns:
        ComparisonDesign with nblocks * ncomparisons entries.
    """
    nblocks, nitems_per_block = trait_combs.shape
    ncomparisons = count_comparisons(nitems_per_block)
    pairs = np.array(
        list(itertools.combinations(range(nitems_per_block), 2)),
        dtype=np.int64,
    ).reshape(-1, 2)
    first, second = pairs[:, 0], pairs[:, 1]

    block = np.repeat(np.arange(1, nblocks + 1), ncomparisons)
    comparison = np.tile(np.arange(1, ncomparisons + 1), nblocks)

    # Items of block b occupy indices b * nitems_per_block + 1, ...
    offset = (block - 1) * nitems_per_block
    pos1 = np.tile(first, nblocks)
    pos2 = np.tile(second, nblocks)

    return ComparisonDesign(
        block=block.astype(np.int64),
        comparison=comparison.astype(np.int64),
        itemC=((block - 1) * ncomparisons + comparison).astype(np.int64),
        trait1=trait_combs[block - 1, pos1].astype(np.int64),
        trait2=trait_combs[block - 1, pos2].astype(np.int64),
        item1=(offset + pos1 + 1).astype(np.int64),
        item2=(offset + pos2 + 1).astype(np.int64),
    )


def comparison_signs(
    design: ComparisonDesign, lambda_: NDArray[np.float64]
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Signs of the loadings of both items in each comparison."""
    signs = np.sign(lambda_)
    return signs[design.item1 - 1], signs[design.item2 - 1]
