import numpy as np
import pytest

from thurstonian_sim.core.exceptions import ValidationError
from thurstonian_sim.core.utils import get_rng
from thurstonian_sim.synthetic_data.config import (
    DistributionConfig,
    GenerationConfig,
)
from thurstonian_sim.synthetic_data.parameters import (
    FlatItemValues,
    GroupedItemValues,
    as_item_values,
    check_comparison_scale,
    check_item_values,
    equicorrelation_matrix,
    expand_gamma,
    lambda2psi,
    resolve_item_values,
    sample_gamma,
    sample_loadings,
    validate_eta,
    validate_phi,
)


class TestItemValues:
    def test_scalar_is_flat(self) -> None:
        values = as_item_values(0.7)

        assert isinstance(values, FlatItemValues)
        assert values.size == 1

    def test_list_of_vectors_is_grouped(self) -> None:
        values = as_item_values([[0.5, 0.6], [0.7, 0.8]])

        assert isinstance(values, GroupedItemValues)
        assert values.size == 4

    def test_flat_length_mismatch_raises(self) -> None:
        values = as_item_values([0.5, 0.6, 0.7])

        with pytest.raises(ValidationError, match="should contain 6 values"):
            check_item_values(values, "lambda", 6, 3, 2)

    def test_grouped_count_mismatch_raises(self) -> None:
        values = as_item_values([[0.5, 0.6], [0.7, 0.8]])

        with pytest.raises(ValidationError, match="3 list elements"):
            check_item_values(values, "lambda", 6, 3, 2)

    def test_grouped_length_mismatch_raises(self) -> None:
        values = as_item_values([[0.5, 0.6], [0.7], [0.8, 0.9]])

        with pytest.raises(ValidationError, match="element 2"):
            check_item_values(values, "psi", 6, 3, 2)

    def test_matrix_raises(self) -> None:
        with pytest.raises(ValidationError, match="shape"):
            as_item_values(np.ones((2, 3)))

    def test_mixed_scalars_and_vectors_raise(self) -> None:
        with pytest.raises(ValidationError, match="lambda must be a scalar"):
            as_item_values([[0.5, 0.6], 0.7, [0.1, 0.2]], name="lambda")

    def test_resolve_scalar(self) -> None:
        values = as_item_values(0.6)
        items = [np.array([1, 4]), np.array([2, 5]), np.array([3, 6])]

        np.testing.assert_array_equal(
            resolve_item_values(values, items, 6), np.full(6, 0.6)
        )

    def test_resolve_grouped_places_values_by_item(self) -> None:
        values = as_item_values([[0.1, 0.2], [0.3, 0.4], [0.5, 0.6]])
        # Block 2 is ordered [3, 1, 2]
        items = [np.array([1, 5]), np.array([2, 6]), np.array([3, 4])]

        out = resolve_item_values(values, items, 6)

        np.testing.assert_allclose(out, [0.1, 0.3, 0.5, 0.6, 0.2, 0.4])


class TestLambda2Psi:
    def test_flat(self) -> None:
        np.testing.assert_allclose(
            lambda2psi([0.6, -0.8]), [0.64, 0.36]
        )

    def test_grouped_keeps_structure(self) -> None:
        psi = lambda2psi([[0.6], [0.8, 0.0]])

        assert isinstance(psi, GroupedItemValues)
        np.testing.assert_allclose(psi.groups[0], [0.64])
        np.testing.assert_allclose(psi.groups[1], [0.36, 1.0])

    def test_out_of_range_raises(self) -> None:
        with pytest.raises(ValidationError, match="between -1 and 1"):
            lambda2psi([0.5, 1.2])


class TestExpandGamma:
    def test_scalar_is_recycled(self) -> None:
        np.testing.assert_array_equal(
            expand_gamma(0.3, 4, "bernoulli"), np.full(4, 0.3)
        )

    def test_wrong_length_raises(self) -> None:
        with pytest.raises(ValidationError, match="should contain 4 rows"):
            expand_gamma([0.1, 0.2, 0.3], 4, "bernoulli")

    def test_thresholds_for_binary_family_raise(self) -> None:
        with pytest.raises(ValidationError, match="single gamma column"):
            expand_gamma(np.zeros((4, 2)), 4, "gaussian")

    def test_single_column_for_cumulative_raises(self) -> None:
        with pytest.raises(ValidationError, match="at least 2"):
            expand_gamma(np.zeros(4), 4, "cumulative")

    def test_single_column_matrix_is_squeezed(self) -> None:
        out = expand_gamma(np.zeros((4, 1)), 4, "beta")
        assert out.shape == (4,)


class TestPersonParameters:
    def test_eta_shape_mismatch_raises(self) -> None:
        with pytest.raises(ValidationError, match=r"\(10, 3\)"):
            validate_eta(np.zeros((10, 2)), 10, 3)

    def test_phi_not_psd_raises(self) -> None:
        Phi = np.array([[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]])

        with pytest.raises(ValidationError, match="positive semi-definite"):
            validate_phi(Phi, 3)

    def test_phi_not_symmetric_raises(self) -> None:
        with pytest.raises(ValidationError, match="symmetric"):
            validate_phi(np.array([[1.0, 0.2], [0.3, 1.0]]), 2)

    def test_equicorrelation_matrix(self) -> None:
        R = equicorrelation_matrix(3, 0.3)

        np.testing.assert_allclose(np.diag(R), 1.0)
        assert R[0, 2] == pytest.approx(0.3)


class TestConfigSampling:
    def test_sample_loadings_within_bounds(self) -> None:
        config = GenerationConfig(
            npersons=10,
            ntraits=3,
            random_seed=0,
            negative_loading_rate=0.5,
        )

        lambda_ = sample_loadings(config, 200, get_rng(0))

        assert lambda_.shape == (200,)
        assert np.all(np.abs(lambda_) >= 0.5)
        assert np.all(np.abs(lambda_) <= 1.0)
        assert np.any(lambda_ < 0)

    def test_sample_loadings_out_of_range_raises(self) -> None:
        config = GenerationConfig(
            npersons=10,
            ntraits=3,
            random_seed=0,
            loadings=DistributionConfig(
                distribution="uniform", params={"low": 1.5, "high": 2.0}
            ),
        )

        with pytest.raises(ValidationError, match=r"\|lambda\| > 1"):
            sample_loadings(config, 5, get_rng(0))

    def test_sample_thresholds_are_sorted(self) -> None:
        config = GenerationConfig(
            npersons=10,
            ntraits=3,
            random_seed=0,
            family="cumulative",
            ncat=4,
        )

        gamma = sample_gamma(config, 12, get_rng(1))

        assert gamma.shape == (12, 3)
        assert np.all(np.diff(gamma, axis=1) >= 0)


class TestComparisonScale:
    def test_one_zero_psi_per_block_passes(self) -> None:
        psi = as_item_values([0.0, 0.5, 0.5, 0.0, 0.4, 0.3])
        check_comparison_scale(psi, "psi", nblocks=2, nitems_per_block=3)

    def test_two_zero_psi_in_a_block_raise(self) -> None:
        psi = as_item_values([0.5, 0.5, 0.5, 0.0, 0.4, 0.0])

        with pytest.raises(ValidationError, match=r"block\(s\) \[2\]"):
            check_comparison_scale(psi, "psi", nblocks=2, nitems_per_block=3)

    def test_scalar_zero_psi_raises(self) -> None:
        with pytest.raises(ValidationError, match="zero scale"):
            check_comparison_scale(
                as_item_values(0.0), "psi", nblocks=1, nitems_per_block=2
            )

    def test_grouped_zero_psi_in_one_trait_passes(self) -> None:
        psi = as_item_values([[0.0, 0.0], [0.5, 0.5], [0.4, 0.4]])
        check_comparison_scale(psi, "psi", nblocks=2, nitems_per_block=3)

    def test_grouped_zero_psi_in_two_traits_raise(self) -> None:
        psi = as_item_values([[0.0, 0.5], [0.5, 0.0], [0.4, 0.4]])

        with pytest.raises(ValidationError, match=r"traits \[1, 2\]"):
            check_comparison_scale(psi, "psi", nblocks=2, nitems_per_block=3)
