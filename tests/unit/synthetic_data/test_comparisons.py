import numpy as np

from thurstonian_sim.synthetic_data.comparisons import (
    comparison_signs,
    count_comparisons,
    enumerate_comparisons,
)


def test_count_comparisons() -> None:
    assert count_comparisons(2) == 1
    assert count_comparisons(3) == 3
    assert count_comparisons(4) == 6


class TestEnumerateComparisons:
    def test_pairs_within_blocks(self) -> None:
        combs = np.array([[2, 1, 3], [3, 2, 1]])

        design = enumerate_comparisons(combs)

        assert design.n_rows == 6
        np.testing.assert_array_equal(design.block, [1, 1, 1, 2, 2, 2])
        np.testing.assert_array_equal(design.comparison, [1, 2, 3] * 2)
        np.testing.assert_array_equal(design.item1, [1, 1, 2, 4, 4, 5])
        np.testing.assert_array_equal(design.item2, [2, 3, 3, 5, 6, 6])
        np.testing.assert_array_equal(design.trait1, [2, 2, 1, 3, 3, 2])
        np.testing.assert_array_equal(design.trait2, [1, 3, 3, 2, 1, 1])

    def test_global_comparison_index(self) -> None:
        combs = np.array([[1, 2], [2, 1], [1, 2]])

        design = enumerate_comparisons(combs)

        np.testing.assert_array_equal(design.itemC, [1, 2, 3])

    def test_item_index_is_unique_per_block_position(self) -> None:
        combs = np.array([[1, 2, 3, 4]] * 3)

        design = enumerate_comparisons(combs)

        assert design.n_rows == 18
        assert np.all(design.item1 < design.item2)
        np.testing.assert_array_equal(
            (design.item1 - 1) // 4 + 1, design.block
        )
        np.testing.assert_array_equal(
            np.unique(design.itemC), np.arange(1, 19)
        )


def test_comparison_signs() -> None:
    combs = np.array([[1, 2, 3]])
    design = enumerate_comparisons(combs)
    lambda_ = np.array([0.5, -0.7, 0.9])

    sign1, sign2 = comparison_signs(design, lambda_)

    np.testing.assert_array_equal(sign1, [1.0, 1.0, -1.0])
    np.testing.assert_array_equal(sign2, [-1.0, 1.0, 1.0])
