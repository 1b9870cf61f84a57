"""
Thurstonian response models for pairwise comparisons.

Each comparison contrasts the latent utilities of two items,
    t_i = lambda_i * eta_trait(i) + e_i,
and the observed outcome is driven by the standardized utility difference.
This module converts item parameters and latent trait scores into the
outcome parameter of each response family:

- bernoulli, beta: probability of preferring the first item
- gaussian: mean of the standardized utility difference
- cumulative: probabilities of the K ordered categories
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray
from scipy import stats

from thurstonian_sim.core.constants import (
    BETA_RESPONSE_MAX,
    BETA_RESPONSE_MIN,
    DEFAULT_BETA_DISPERSION,
)
from thurstonian_sim.core.exceptions import ValidationError

# Beta shape parameters must be strictly positive
_BETA_MEAN_EPS = 1e-12


@dataclass(frozen=True)
class ComparisonParameters:
    """
    Row-wise parameters of the simulated comparisons.

    Attributes:
        gamma: Shape (n_rows,) intercepts, or (n_rows, K - 1) thresholds.
        lambda1, lambda2: Loadings of the first and second item.
        psi1, psi2: Uniquenesses of the first and second item.
        eta1, eta2: Respondent trait scores on the items' traits.
    """

    gamma: NDArray[np.float64]
    lambda1: NDArray[np.float64]
    lambda2: NDArray[np.float64]
    psi1: NDArray[np.float64]
    psi2: NDArray[np.float64]
    eta1: NDArray[np.float64]
    eta2: NDArray[np.float64]

    @property
    def ncat(self) -> int:
        """Number of response categories implied by gamma."""
        if self.gamma.ndim == 1:
            return 2
        return int(self.gamma.shape[1]) + 1

    @property
    def scale(self) -> NDArray[np.float64]:
        result: NDArray[np.float64] = np.sqrt(self.psi1**2 + self.psi2**2)
        return result

    @property
    def trait_contrast(self) -> NDArray[np.float64]:
        result: NDArray[np.float64] = (
            self.lambda1 * self.eta1 - self.lambda2 * self.eta2
        )
        return result


class ResponseFamily(ABC):
    """Abstract base class for the distribution of observed responses."""

    name: str = ""
    ordinal: bool = False

    @abstractmethod
    def compute_mean(
        self, params: ComparisonParameters
    ) -> NDArray[np.float64]:
        """
        Compute the outcome parameter of each comparison.

        Args:
            params: Row-wise comparison parameters.

        Returns:
            Array of shape (n_rows,), or (n_rows, K) for ordinal families.
        """
        ...

    @abstractmethod
    def sample(
        self, mu: NDArray[np.float64], rng: Generator
    ) -> NDArray[Any]:
        """
        Draw one response per row.

        Args:
            mu: Output of compute_mean.
            rng: Random number generator.

        Returns:
            Array of shape (n_rows,).
        """
        ...

    def check_shape(self, ncol: int) -> None:
        """Reject outcome parameters whose column count does not fit."""
        if self.ordinal and ncol < 2:
            raise ValidationError(
                f"Family '{self.name}' requires gamma with at least 2 "
                f"threshold columns, got {ncol}"
            )
        if not self.ordinal and ncol != 1:
            raise ValidationError(
                f"Family '{self.name}' requires a single gamma column, "
                f"got {ncol}; use family='cumulative' for thresholds"
            )


class BinaryFamily(ResponseFamily):
    """Shared latent mean of the two-category families."""

    def standardized_difference(
        self, params: ComparisonParameters
    ) -> NDArray[np.float64]:
        result: NDArray[np.float64] = (
            -params.gamma + params.trait_contrast
        ) / params.scale
        return result


class BernoulliFamily(BinaryFamily):
    """Binary preference: 1 if the first item is preferred."""

    name = "bernoulli"

    def compute_mean(
        self, params: ComparisonParameters
    ) -> NDArray[np.float64]:
        result: NDArray[np.float64] = stats.norm.cdf(
            self.standardized_difference(params)
        )
        return result

    def sample(
        self, mu: NDArray[np.float64], rng: Generator
    ) -> NDArray[np.int64]:
        return rng.binomial(1, mu).astype(np.int64)


@dataclass
class BetaFamily(BinaryFamily):
    """
    Proportion of preference for the first item.

    Uses the mean parameterization Beta(mu * disp, (1 - mu) * disp);
    draws are truncated to [0.001, 0.999].
    """

    disp: float = DEFAULT_BETA_DISPERSION
    name = "beta"

    def __post_init__(self) -> None:
        if self.disp <= 0:
            raise ValidationError(f"disp must be > 0, got {self.disp}")

    def compute_mean(
        self, params: ComparisonParameters
    ) -> NDArray[np.float64]:
        result: NDArray[np.float64] = stats.norm.cdf(
            self.standardized_difference(params)
        )
        return result

    def sample(
        self, mu: NDArray[np.float64], rng: Generator
    ) -> NDArray[np.float64]:
        p = np.clip(mu, _BETA_MEAN_EPS, 1.0 - _BETA_MEAN_EPS)
        out = rng.beta(p * self.disp, (1.0 - p) * self.disp)
        result: NDArray[np.float64] = np.clip(
            out, BETA_RESPONSE_MIN, BETA_RESPONSE_MAX
        )
        return result


class GaussianFamily(BinaryFamily):
    """Continuous preference with unit residual variance."""

    name = "gaussian"

    def compute_mean(
        self, params: ComparisonParameters
    ) -> NDArray[np.float64]:
        return self.standardized_difference(params)

    def sample(
        self, mu: NDArray[np.float64], rng: Generator
    ) -> NDArray[np.float64]:
        result: NDArray[np.float64] = rng.normal(mu, 1.0)
        return result


class CumulativeFamily(ResponseFamily):
    """
    Ordinal preference with K ordered categories.

    With standardized thresholds g_1 <= ... <= g_{K-1} and standardized
    trait contrast m:
        P(Y = 1) = Phi(g_1 - m)
        P(Y = k) = Phi(g_k - m) - Phi(g_{k-1} - m),  1 < k < K
        P(Y = K) = 1 - Phi(g_{K-1} - m)
    Thresholds must be non-decreasing within a row.
    """

    name = "cumulative"
    ordinal = True

    def compute_mean(
        self, params: ComparisonParameters
    ) -> NDArray[np.float64]:
        scale = params.scale
        mu = params.trait_contrast / scale
        std_gamma = params.gamma / scale[:, np.newaxis]

        # Shape: (n_rows, K - 1)
        cum = stats.norm.cdf(std_gamma - mu[:, np.newaxis])
        n_rows = cum.shape[0]
        bounded = np.hstack(
            [np.zeros((n_rows, 1)), cum, np.ones((n_rows, 1))]
        )
        result: NDArray[np.float64] = np.diff(bounded, axis=1)
        return result

    def sample(
        self, mu: NDArray[np.float64], rng: Generator
    ) -> NDArray[np.int64]:
        n_rows, ncat = mu.shape
        cumprobs = np.cumsum(mu, axis=1)
        u = rng.random(n_rows)

        # Count how many cumulative probabilities lie below u
        sampled = np.minimum(
            (cumprobs < u[:, np.newaxis]).sum(axis=1), ncat - 1
        )
        return sampled.astype(np.int64)


####################################################################
# Registry
####################################################################


ResponseFamilyFactory = Callable[..., ResponseFamily]


class FamilyRegistry:
    """Registry for response families."""

    def __init__(self) -> None:
        self._families: dict[str, ResponseFamilyFactory] = {}

    def register(
        self, name: str
    ) -> Callable[[ResponseFamilyFactory], ResponseFamilyFactory]:
        """Decorator to register a response family factory."""

        def decorator(
            factory: ResponseFamilyFactory,
        ) -> ResponseFamilyFactory:
            self._families[name] = factory
            return factory

        return decorator

    @property
    def names(self) -> list[str]:
        return sorted(self._families.keys())

    def get_family(self, name: str, **params: Any) -> ResponseFamily:
        """
        Get a response family instance.

        Raises:
            ValidationError: If the family name is not registered.
        """
        if name not in self._families:
            available = ", ".join(self.names)
            raise ValidationError(
                f"Unknown family: '{name}'. Available: {available}"
            )
        return self._families[name](**params)


family_registry = FamilyRegistry()


@family_registry.register("bernoulli")
def create_bernoulli(**_: Any) -> BernoulliFamily:
    return BernoulliFamily()


@family_registry.register("beta")
def create_beta(
    disp: float = DEFAULT_BETA_DISPERSION, **_: Any
) -> BetaFamily:
    return BetaFamily(disp=disp)


@family_registry.register("gaussian")
def create_gaussian(**_: Any) -> GaussianFamily:
    return GaussianFamily()


@family_registry.register("cumulative")
def create_cumulative(**_: Any) -> CumulativeFamily:
    return CumulativeFamily()


def check_family(family: str) -> str:
    """Normalize and validate a family name."""
    name = str(family).strip().lower()
    if name not in family_registry.names:
        available = ", ".join(family_registry.names)
        raise ValidationError(
            f"Unknown family: '{family}'. Available: {available}"
        )
    return name


def get_family(
    family: str | ResponseFamily, **params: Any
) -> ResponseFamily:
    if isinstance(family, ResponseFamily):
        return family
    return family_registry.get_family(check_family(family), **params)


def mean_response(
    params: ComparisonParameters,
    family: str | ResponseFamily = "bernoulli",
) -> NDArray[np.float64]:
    """
    Compute the outcome parameter (probabilities or means) of each row.

    Args:
        params: Row-wise comparison parameters.
        family: Response family name or instance.

    Returns:
        Array of shape (n_rows,) for two-category families, or
        (n_rows, K) category probabilities for the cumulative family.

    Raises:
        ValidationError: If the shape of gamma does not fit the family.
    """
    response_family = get_family(family)
    ncol = 1 if params.gamma.ndim == 1 else int(params.gamma.shape[1])
    response_family.check_shape(ncol)
    if params.gamma.ndim == 2 and ncol == 1:
        params = replace(params, gamma=params.gamma[:, 0])
    return response_family.compute_mean(params)
