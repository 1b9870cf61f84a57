"""
Data structures for simulated Thurstonian IRT data.

This module defines typed data structures for the synthetic data module.
It avoids embedding generation logic - only contracts are defined here.
"""

from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

# Column order of the long-format table
TIRT_COLUMNS = (
    "person",
    "block",
    "comparison",
    "itemC",
    "trait1",
    "trait2",
    "item1",
    "item2",
    "sign1",
    "sign2",
    "gamma",
    "lambda1",
    "lambda2",
    "psi1",
    "psi2",
    "eta1",
    "eta2",
    "mu",
    "response",
)


class DesignParameters(BaseModel):
    """
    Structure of a forced-choice questionnaire.

    Attributes:
        npersons: Number of respondents.
        ntraits: Number of latent traits.
        nblocks_per_trait: Number of blocks each trait appears in.
        nitems_per_block: Number of items per block.
        nblocks: ntraits * nblocks_per_trait / nitems_per_block.
        nitems: nitems_per_block * nblocks.
        ncomparisons: Comparisons per block, nitems_per_block choose 2.
    """

    model_config = ConfigDict(frozen=True)

    npersons: int = Field(..., ge=1)
    ntraits: int = Field(..., ge=1)
    nblocks_per_trait: int = Field(..., ge=1)
    nitems_per_block: int = Field(..., ge=2)
    nblocks: int = Field(..., ge=1)
    nitems: int = Field(..., ge=2)
    ncomparisons: int = Field(..., ge=1)

    @classmethod
    def from_design(
        cls,
        npersons: int,
        ntraits: int,
        nblocks_per_trait: int,
        nitems_per_block: int,
    ) -> "DesignParameters":
        """Derive block, item and comparison counts (divisibility checked
        by the caller)."""
        nblocks = ntraits * nblocks_per_trait // nitems_per_block
        return cls(
            npersons=npersons,
            ntraits=ntraits,
            nblocks_per_trait=nblocks_per_trait,
            nitems_per_block=nitems_per_block,
            nblocks=nblocks,
            nitems=nitems_per_block * nblocks,
            ncomparisons=nitems_per_block * (nitems_per_block - 1) // 2,
        )

    @property
    def nrows(self) -> int:
        """Rows of the long-format table."""
        return self.npersons * self.nblocks * self.ncomparisons


class TIRTData(BaseModel):
    """
    Complete output of a Thurstonian IRT simulation.

    `data` is the long-format table with one row per (person, block,
    comparison); the remaining fields are the parameters the data were
    simulated from. For the cumulative family the `gamma` and `mu` cells
    hold per-row threshold and probability arrays.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # Primary output
    data: pd.DataFrame

    # Simulation parameters
    design: DesignParameters
    trait_combs: NDArray[np.int64]
    signs: NDArray[np.float64]
    lambda_: NDArray[np.float64]
    psi: NDArray[np.float64]
    eta: NDArray[np.float64]
    gamma: NDArray[np.float64]
    traits: list[str]
    family: str
    ncat: int

    @property
    def responses(self) -> NDArray[Any]:
        result: NDArray[Any] = self.data["response"].to_numpy()
        return result

    @property
    def category_probabilities(self) -> NDArray[np.float64]:
        """Row-wise outcome parameters as a (n_rows,) or (n_rows, K) array."""
        mu = self.data["mu"].to_numpy()
        if self.ncat > 2:
            return np.vstack(mu).astype(np.float64)
        return mu.astype(np.float64)

    def attributes(self) -> dict[str, Any]:
        """Simulation metadata keyed the way downstream adapters expect."""
        return {
            "npersons": self.design.npersons,
            "ntraits": self.design.ntraits,
            "nblocks": self.design.nblocks,
            "nitems": self.design.nitems,
            "nblocks_per_trait": self.design.nblocks_per_trait,
            "nitems_per_block": self.design.nitems_per_block,
            "ncomparisons": self.design.ncomparisons,
            "signs": self.signs,
            "lambda": self.lambda_,
            "psi": self.psi,
            "eta": self.eta,
            "gamma": self.gamma,
            "traits": list(self.traits),
            "family": self.family,
            "ncat": self.ncat,
            "trait_combs": self.trait_combs,
        }

    def to_dataframe(self) -> pd.DataFrame:
        """Copy of the long-format table with the metadata in `attrs`."""
        df = self.data.copy()
        df.attrs.update(self.attributes())
        return df
