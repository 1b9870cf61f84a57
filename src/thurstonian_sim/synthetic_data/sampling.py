"""
Sampling from statistical distributions

This module contains the distributions used to draw item parameters for
configured simulations, and the multivariate normal sampler for latent
trait scores. Any scipy.stats distribution can be wrapped and registered.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray
from scipy import stats

from thurstonian_sim.core.utils import get_rng


class FrozenRV(Protocol):
    def rvs(
        self, size: Any, random_state: Any
    ) -> NDArray[np.floating[Any]]: ...


class Distribution(ABC):
    """Abstract base class for a univariate distribution."""

    @abstractmethod
    def sample(self, n: int, rng: Generator) -> NDArray[np.float64]:
        """
        Sample n values.

        Args:
            n: Number of samples.
            rng: Random number generator.

        Returns:
            Array of shape (n,) with sampled values.
        """
        ...


@dataclass
class ScipyDistribution(Distribution):
    """
    Wrapper for any frozen scipy.stats distribution.

    Examples:
        >>> dist = ScipyDistribution(stats.uniform(loc=0.5, scale=0.5))
        >>> dist = ScipyDistribution(stats.norm(loc=0, scale=1))
    """

    dist: FrozenRV

    def sample(self, n: int, rng: Generator) -> NDArray[np.float64]:
        samples: NDArray[np.float64] = self.dist.rvs(
            size=n, random_state=rng
        ).astype(np.float64)
        return samples


####################################################################
# Registry
####################################################################


DistributionGenerator = Callable[..., Distribution]


class SamplerRegistry:
    def __init__(self) -> None:
        self._samplers: dict[str, DistributionGenerator] = {}

    def register(
        self, name: str
    ) -> Callable[[DistributionGenerator], DistributionGenerator]:
        def decorator(
            func: DistributionGenerator,
        ) -> DistributionGenerator:
            self._samplers[name] = func
            return func

        return decorator

    @property
    def names(self) -> list[str]:
        return sorted(self._samplers.keys())

    def get_sampler(
        self, name: str, params: dict[str, float | None]
    ) -> Distribution:
        if name not in self._samplers:
            raise ValueError(
                f"Sampler {name} not registered. Available: {self.names}"
            )
        return self._samplers[name](**params)


registry = SamplerRegistry()


@registry.register("normal")
def normal(*, mean: float = 0.0, std: float = 1.0) -> ScipyDistribution:
    """Normal distribution."""
    return ScipyDistribution(stats.norm(loc=mean, scale=std))


@registry.register("uniform")
def uniform(*, low: float = -1.0, high: float = 1.0) -> ScipyDistribution:
    """Uniform distribution on [low, high]."""
    if high < low:
        raise ValueError(f"high ({high}) must be >= low ({low})")
    return ScipyDistribution(stats.uniform(loc=low, scale=high - low))


@registry.register("truncated_normal")
def truncated_normal(
    *,
    mean: float = 0.0,
    std: float = 1.0,
    lower: float | None = None,
    upper: float | None = None,
) -> ScipyDistribution:
    """
    Truncated normal distribution.

    Args:
        mean: Mean of the underlying normal distribution.
        std: Standard deviation of the underlying normal distribution.
        lower: Lower bound (None = unbounded).
        upper: Upper bound (None = unbounded).
    """
    # scipy.stats.truncnorm expects bounds in standardized units
    a_std = (lower - mean) / std if lower is not None else -np.inf
    b_std = (upper - mean) / std if upper is not None else np.inf
    return ScipyDistribution(
        stats.truncnorm(a_std, b_std, loc=mean, scale=std)
    )


@registry.register("student_t")
def student_t(
    *, df: float, loc: float = 0.0, scale: float = 1.0
) -> ScipyDistribution:
    """Student's t distribution (heavier tails than normal)."""
    return ScipyDistribution(stats.t(df=df, loc=loc, scale=scale))


def draw_sample(
    n: int,
    distribution_name: str = "normal",
    distribution_params: dict[str, float | None] | None = None,
    rng: Generator | None = None,
) -> NDArray[np.float64]:
    """
    Sample values from a registered distribution.

    Args:
        n: Number of values.
        distribution_name: Name of the distribution to sample from.
        distribution_params: Parameter values to pass to the distribution.
        rng: Random number generator.

    Returns:
        Array of shape (n,) with sampled values.
    """
    if rng is None:
        rng = get_rng()

    if distribution_params is None:
        distribution_params = {}

    distribution = registry.get_sampler(distribution_name, distribution_params)

    return distribution.sample(n, rng)


def sample_latent_scores(
    npersons: int,
    Phi: NDArray[np.float64],
    rng: Generator | None = None,
) -> NDArray[np.float64]:
    """
    Draw latent trait scores from a zero-mean multivariate normal.

    Args:
        npersons: Number of respondents.
        Phi: Trait correlation (covariance) matrix, shape (ntraits, ntraits).
        rng: Random number generator.

    Returns:
        Array of shape (npersons, ntraits), one row per respondent.
    """
    if rng is None:
        rng = get_rng()

    Phi = np.asarray(Phi, dtype=np.float64)
    mean = np.zeros(Phi.shape[0], dtype=np.float64)
    mvn = stats.multivariate_normal(mean=mean, cov=Phi, allow_singular=True)
    eta = mvn.rvs(size=npersons, random_state=rng)
    result: NDArray[np.float64] = np.asarray(eta, dtype=np.float64).reshape(
        npersons, Phi.shape[0]
    )
    return result
