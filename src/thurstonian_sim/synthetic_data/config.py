from dataclasses import dataclass, field

from omegaconf import MISSING

from thurstonian_sim.core.constants import (
    COMB_BLOCKS,
    DEFAULT_BETA_DISPERSION,
    DEFAULT_MAX_TRIES_INNER,
    DEFAULT_MAX_TRIES_OUTER,
    FAMILIES,
    ORDINAL_FAMILIES,
)


@dataclass
class DistributionConfig:
    """Configuration for a single parameter's marginal distribution.

    Attributes:
        distribution: Distribution type ("normal", "truncated_normal",
            "uniform", "student_t")
        params: Distribution parameters (mean, std, lower, upper, etc.)
    """

    distribution: str = MISSING
    params: dict[str, float | None] = MISSING


@dataclass
class SearchBudgetConfig:
    """Attempt limits for the random balanced block search."""

    max_tries_outer: int = DEFAULT_MAX_TRIES_OUTER
    max_tries_inner: int = DEFAULT_MAX_TRIES_INNER

    def __post_init__(self) -> None:
        if self.max_tries_outer < 1 or self.max_tries_inner < 1:
            raise ValueError("search budgets must be positive")


def _default_loadings() -> DistributionConfig:
    """Absolute standardized loadings, sign applied separately."""
    return DistributionConfig(
        distribution="uniform",
        params={"low": 0.5, "high": 1.0},
    )


def _default_intercepts() -> DistributionConfig:
    """Intercepts (gamma) or, for ordinal data, thresholds."""
    return DistributionConfig(
        distribution="normal",
        params={"mean": 0.0, "std": 0.5},
    )


@dataclass
class GenerationConfig:
    """Complete configuration for generating a Thurstonian IRT dataset.

    Attributes:
        npersons: Number of respondents.
        ntraits: Number of latent traits.
        nblocks_per_trait: Number of blocks each trait appears in.
        nitems_per_block: Number of items per block.
        comb_blocks: Block design strategy ("random" or "fixed").
        family: Response family.
        ncat: Number of response categories (2 unless cumulative).
        disp: Dispersion of the beta family.
        random_seed: Seed for the single random generator of the run.
        loadings: Distribution of the absolute item loadings.
        negative_loading_rate: Probability that an item loads negatively.
        intercepts: Distribution of gamma values (thresholds are sorted).
        trait_correlation: Common correlation between all pairs of traits.
        search: Attempt limits for the random block search.
    """

    npersons: int
    ntraits: int
    nblocks_per_trait: int = 5
    nitems_per_block: int = 3
    comb_blocks: str = "random"
    family: str = "bernoulli"
    ncat: int = 2
    disp: float = DEFAULT_BETA_DISPERSION

    # Reproducibility
    random_seed: int = MISSING

    loadings: DistributionConfig = field(default_factory=_default_loadings)
    negative_loading_rate: float = 0.0
    intercepts: DistributionConfig = field(
        default_factory=_default_intercepts
    )
    trait_correlation: float = 0.0

    search: SearchBudgetConfig = field(default_factory=SearchBudgetConfig)

    def __post_init__(self) -> None:
        if self.npersons < 1:
            raise ValueError("Must have at least 1 person")
        if self.ntraits < 1:
            raise ValueError("Must have at least 1 trait")
        if self.family not in FAMILIES:
            raise ValueError(
                f"family must be one of {list(FAMILIES)}, got {self.family}"
            )
        if self.comb_blocks not in COMB_BLOCKS:
            raise ValueError(
                f"comb_blocks must be one of {list(COMB_BLOCKS)}, "
                f"got {self.comb_blocks}"
            )
        if self.family in ORDINAL_FAMILIES and self.ncat < 3:
            raise ValueError(
                f"family '{self.family}' needs ncat >= 3, got {self.ncat}"
            )
        if self.family not in ORDINAL_FAMILIES and self.ncat != 2:
            raise ValueError(
                f"family '{self.family}' needs ncat == 2, got {self.ncat}"
            )
        if not (0.0 <= self.negative_loading_rate <= 1.0):
            raise ValueError(
                "negative_loading_rate must be in [0, 1], "
                f"got {self.negative_loading_rate}"
            )
        if abs(self.trait_correlation) > 1:
            raise ValueError(
                "trait_correlation should have absolute value <= 1"
            )
