import numpy as np
import pytest
from scipy import stats

from thurstonian_sim.core.utils import get_rng
from thurstonian_sim.synthetic_data.blocks import make_trait_combs
from thurstonian_sim.synthetic_data.generators import sim_tirt_data
from thurstonian_sim.synthetic_data.validation import validate_tirt_data

LARGE_SAMPLE_SIZE = 5000


@pytest.fixture
def mixed_lambda() -> np.ndarray:
    rng = get_rng(2024)
    positive = rng.uniform(0.5, 1.0, 6)
    negative = rng.uniform(-1.0, -0.5, 6)
    return np.concatenate([positive, negative])


class TestForcedChoiceScenarios:
    """
    End-to-end simulations of complete forced-choice questionnaires.
    """

    def test_bernoulli_triplets(self, mixed_lambda: np.ndarray) -> None:
        data = sim_tirt_data(
            npersons=100,
            ntraits=3,
            lambda_=mixed_lambda,
            gamma=0.0,
            Phi=np.eye(3),
            family="bernoulli",
            nblocks_per_trait=4,
            nitems_per_block=3,
            rng=get_rng(1),
        )

        assert data.design.nblocks == 4
        assert data.design.nitems == 12
        assert data.design.ncomparisons == 3
        assert len(data.data) == 1200
        assert set(np.unique(data.responses)) <= {0, 1}
        validate_tirt_data(data)

    def test_cumulative_triplets(self, mixed_lambda: np.ndarray) -> None:
        gamma = np.sort(get_rng(3).normal(0.0, 1.0, (12, 2)), axis=1)

        data = sim_tirt_data(
            npersons=100,
            ntraits=3,
            lambda_=mixed_lambda,
            gamma=gamma,
            Phi=np.eye(3),
            family="cumulative",
            nblocks_per_trait=4,
            nitems_per_block=3,
            rng=get_rng(1),
        )

        assert data.ncat == 3
        assert set(np.unique(data.responses)) <= {0, 1, 2}
        probs = data.category_probabilities
        assert probs.shape == (1200, 3)
        np.testing.assert_allclose(probs.sum(axis=1), 1.0, atol=1e-9)
        validate_tirt_data(data)

    def test_fixed_design_ignores_seed(self) -> None:
        combs = [
            make_trait_combs(2, 2, 2, comb_blocks="fixed", rng=get_rng(s))
            for s in (1, 2, 3)
        ]

        for other in combs[1:]:
            np.testing.assert_array_equal(combs[0], other)

    def test_fixed_design_simulation(self) -> None:
        data = sim_tirt_data(
            npersons=10,
            ntraits=2,
            lambda_=0.7,
            gamma=0.0,
            Phi=np.eye(2),
            nblocks_per_trait=2,
            nitems_per_block=2,
            comb_blocks="fixed",
            rng=get_rng(8),
        )

        np.testing.assert_array_equal(data.trait_combs, [[1, 2], [1, 2]])
        assert len(data.data) == 20

    def test_beta_proportions(self, mixed_lambda: np.ndarray) -> None:
        data = sim_tirt_data(
            npersons=50,
            ntraits=3,
            lambda_=mixed_lambda,
            gamma=0.2,
            Phi=np.eye(3),
            family="beta",
            disp=10.0,
            nblocks_per_trait=4,
            rng=get_rng(6),
        )

        assert np.all(data.responses >= 0.001)
        assert np.all(data.responses <= 0.999)
        validate_tirt_data(data)


class TestResponseModelRecovery:
    """
    With large samples the simulated responses follow the model.
    """

    def test_preference_increases_with_first_trait(self) -> None:
        data = sim_tirt_data(
            npersons=LARGE_SAMPLE_SIZE,
            ntraits=2,
            lambda_=0.8,
            gamma=0.0,
            Phi=np.eye(2),
            nblocks_per_trait=1,
            nitems_per_block=2,
            comb_blocks="fixed",
            rng=get_rng(11),
        )

        df = data.data
        high = df["eta1"] > 0.5
        low = df["eta1"] < -0.5
        assert df.loc[high, "response"].mean() > df.loc[low, "response"].mean()

    def test_bernoulli_rate_matches_probability(self) -> None:
        eta = np.zeros((LARGE_SAMPLE_SIZE, 2))

        data = sim_tirt_data(
            npersons=LARGE_SAMPLE_SIZE,
            ntraits=2,
            lambda_=0.6,
            gamma=-0.4,
            eta=eta,
            nblocks_per_trait=1,
            nitems_per_block=2,
            comb_blocks="fixed",
            rng=get_rng(12),
        )

        # psi = 1 - 0.36 for both items
        expected = stats.norm.cdf(0.4 / np.sqrt(2 * 0.64**2))
        assert data.responses.mean() == pytest.approx(expected, abs=0.02)

    def test_gaussian_mean_matches_standardized_difference(self) -> None:
        eta = np.tile([1.0, -1.0], (LARGE_SAMPLE_SIZE, 1))

        data = sim_tirt_data(
            npersons=LARGE_SAMPLE_SIZE,
            ntraits=2,
            lambda_=0.5,
            gamma=0.0,
            eta=eta,
            family="gaussian",
            nblocks_per_trait=1,
            nitems_per_block=2,
            comb_blocks="fixed",
            rng=get_rng(13),
        )

        expected = (0.5 * 1.0 + 0.5 * 1.0) / np.sqrt(2 * 0.75**2)
        np.testing.assert_allclose(data.data["mu"].to_numpy(), expected)
        assert data.responses.mean() == pytest.approx(expected, abs=0.05)
