"""
Orchestration layer for Thurstonian IRT data simulation.

This module ties together block design, comparison enumeration, latent
trait scores and the response model to generate forced-choice data in
long format.
"""

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray

from thurstonian_sim.core.constants import (
    COMB_BLOCKS,
    DEFAULT_BETA_DISPERSION,
)
from thurstonian_sim.core.exceptions import ValidationError
from thurstonian_sim.core.utils import get_rng
from thurstonian_sim.irt.response_models import (
    ComparisonParameters,
    check_family,
    mean_response,
)
from thurstonian_sim.irt.sampling import sim_response
from thurstonian_sim.synthetic_data.blocks import (
    SearchBudget,
    count_blocks,
    items_per_trait,
    make_trait_combs,
)
from thurstonian_sim.synthetic_data.comparisons import (
    comparison_signs,
    count_comparisons,
    enumerate_comparisons,
)
from thurstonian_sim.synthetic_data.config import GenerationConfig
from thurstonian_sim.synthetic_data.data_models import (
    TIRT_COLUMNS,
    DesignParameters,
    TIRTData,
)
from thurstonian_sim.synthetic_data.parameters import (
    ItemValues,
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
from thurstonian_sim.synthetic_data.sampling import sample_latent_scores

logger = logging.getLogger(__name__)


def sim_tirt_data(
    npersons: int,
    ntraits: int,
    lambda_: Any,
    gamma: ArrayLike,
    psi: Any = None,
    Phi: ArrayLike | None = None,
    eta: ArrayLike | None = None,
    family: str = "bernoulli",
    nblocks_per_trait: int = 5,
    nitems_per_block: int = 3,
    comb_blocks: str = "random",
    disp: float = DEFAULT_BETA_DISPERSION,
    rng: Generator | None = None,
    budget: SearchBudget | None = None,
) -> TIRTData:
    """
    Simulate Thurstonian IRT data.

    This is the main entry point of the simulation engine:
        1. Validate all inputs
        2. Assign traits to blocks and enumerate the comparisons
        3. Resolve item parameters into one value per item
        4. Draw latent trait scores (unless supplied)
        5. Compute outcome parameters and sample responses

    Args:
        npersons: Number of persons.
        ntraits: Number of traits.
        lambda_: Item factor loadings. Either a scalar, a vector ordered by
            item index, or a list with one vector per trait (items of a
            trait in block order).
        gamma: Baseline attractiveness of the first versus the second item
            of each comparison. A scalar, a vector with one value per
            comparison, or for the cumulative family a matrix of ordered
            thresholds with one row per comparison.
        psi: Optional item uniquenesses, in the same forms as `lambda_`.
            If omitted, computed as 1 - lambda^2 (standardized loadings).
        Phi: Trait correlation matrix from which to sample person scores.
            Only used if `eta` is not provided.
        eta: Person trait scores of shape (npersons, ntraits).
        family: "bernoulli", "cumulative", "gaussian" or "beta".
        nblocks_per_trait: Number of blocks per trait.
        nitems_per_block: Number of items per block.
        comb_blocks: "random" (balanced random design) or "fixed" (simple
            cyclic design that may combine certain traits disproportionally
            often).
        disp: Dispersion of the beta family.
        rng: Random number generator; all randomness is drawn from it.
        budget: Attempt limits for the random block search.

    Returns:
        TIRTData with the long-format table and the simulation parameters.

    Raises:
        ValidationError: If any input is invalid. Nothing is simulated.
        DesignConstructionError: If no valid block design was found.
    """
    # Step 1: Validate everything before drawing any random number
    for name, value in (("npersons", npersons), ("ntraits", ntraits)):
        if int(value) != value or value < 1:
            raise ValidationError(
                f"{name} must be a positive integer, got {value}"
            )
    count_blocks(ntraits, nblocks_per_trait, nitems_per_block)
    family = check_family(family)
    if comb_blocks not in COMB_BLOCKS:
        raise ValidationError(
            f"comb_blocks must be one of {list(COMB_BLOCKS)}, "
            f"got '{comb_blocks}'"
        )
    design = DesignParameters.from_design(
        npersons=int(npersons),
        ntraits=int(ntraits),
        nblocks_per_trait=int(nblocks_per_trait),
        nitems_per_block=int(nitems_per_block),
    )
    logger.debug(
        "Design: %d blocks, %d items, %d comparisons per block",
        design.nblocks,
        design.nitems,
        design.ncomparisons,
    )

    lambda_values = as_item_values(lambda_, name="lambda")
    check_item_values(
        lambda_values, "lambda", design.nitems, ntraits, nblocks_per_trait
    )
    psi_values: ItemValues
    if psi is None:
        # psi = 1 - lambda^2 requires standardized loadings
        check_comparison_scale(
            as_item_values(lambda2psi(lambda_values), name="psi"),
            "psi (derived as 1 - lambda^2)",
            design.nblocks,
            design.nitems_per_block,
        )
    else:
        psi_values = as_item_values(psi, name="psi")
        check_item_values(
            psi_values, "psi", design.nitems, ntraits, nblocks_per_trait
        )
        check_comparison_scale(
            psi_values, "psi", design.nblocks, design.nitems_per_block
        )

    gamma_rows = expand_gamma(
        gamma, design.nblocks * design.ncomparisons, family
    )

    if eta is not None:
        eta_matrix: NDArray[np.float64] | None = validate_eta(
            eta, design.npersons, design.ntraits
        )
        Phi_matrix = None
    elif Phi is not None:
        eta_matrix = None
        Phi_matrix = validate_phi(Phi, design.ntraits)
    else:
        raise ValidationError("Either eta or Phi must be provided.")

    if disp <= 0:
        raise ValidationError(f"disp must be > 0, got {disp}")

    if rng is None:
        rng = get_rng()

    # Step 2: Assign traits to blocks and enumerate comparisons
    trait_combs = make_trait_combs(
        ntraits=design.ntraits,
        nblocks_per_trait=design.nblocks_per_trait,
        nitems_per_block=design.nitems_per_block,
        comb_blocks=comb_blocks,
        rng=rng,
        budget=budget,
    )
    trait_items = items_per_trait(trait_combs, design.ntraits)
    comparisons = enumerate_comparisons(trait_combs)

    # Step 3: One loading and uniqueness per item
    lambda_flat = resolve_item_values(
        lambda_values, trait_items, design.nitems
    )
    if psi is None:
        logger.info("Computing standardized psi as 1 - lambda^2")
        psi_flat = lambda2psi(lambda_flat)
    else:
        psi_flat = resolve_item_values(
            psi_values, trait_items, design.nitems
        )

    # Step 4: Latent trait scores
    if eta_matrix is None:
        assert Phi_matrix is not None
        eta_matrix = sample_latent_scores(design.npersons, Phi_matrix, rng)

    # Step 5: Long-format table, block-major then comparison then person
    n_design_rows = comparisons.n_rows
    design_index = np.repeat(np.arange(n_design_rows), design.npersons)
    person = np.tile(np.arange(1, design.npersons + 1), n_design_rows)

    sign1, sign2 = comparison_signs(comparisons, lambda_flat)
    item1 = comparisons.item1[design_index]
    item2 = comparisons.item2[design_index]
    trait1 = comparisons.trait1[design_index]
    trait2 = comparisons.trait2[design_index]
    row_gamma = gamma_rows[comparisons.itemC[design_index] - 1]

    params = ComparisonParameters(
        gamma=row_gamma,
        lambda1=lambda_flat[item1 - 1],
        lambda2=lambda_flat[item2 - 1],
        psi1=psi_flat[item1 - 1],
        psi2=psi_flat[item2 - 1],
        eta1=eta_matrix[person - 1, trait1 - 1],
        eta2=eta_matrix[person - 1, trait2 - 1],
    )

    mu = mean_response(params, family=family)
    response = sim_response(mu, family=family, disp=disp, rng=rng)

    ordinal = mu.ndim == 2
    columns: dict[str, Any] = {
        "person": person,
        "block": comparisons.block[design_index],
        "comparison": comparisons.comparison[design_index],
        "itemC": comparisons.itemC[design_index],
        "trait1": trait1,
        "trait2": trait2,
        "item1": item1,
        "item2": item2,
        "sign1": sign1[design_index],
        "sign2": sign2[design_index],
        "lambda1": params.lambda1,
        "lambda2": params.lambda2,
        "psi1": params.psi1,
        "psi2": params.psi2,
        "eta1": params.eta1,
        "eta2": params.eta2,
        "response": response,
    }
    data = pd.DataFrame(columns)
    # Threshold and probability rows are stored one array per cell
    data["gamma"] = list(row_gamma) if ordinal else row_gamma
    data["mu"] = list(mu) if ordinal else mu
    data = data[list(TIRT_COLUMNS)]
    ncat = int(mu.shape[1]) if ordinal else 2

    logger.info(
        "Simulated %d %s responses (%d persons, %d traits, %d blocks)",
        len(data),
        family,
        design.npersons,
        design.ntraits,
        design.nblocks,
    )

    return TIRTData(
        data=data,
        design=design,
        trait_combs=trait_combs,
        signs=np.sign(lambda_flat),
        lambda_=lambda_flat,
        psi=psi_flat,
        eta=eta_matrix,
        gamma=gamma_rows,
        traits=[f"trait{t}" for t in range(1, design.ntraits + 1)],
        family=family,
        ncat=ncat,
    )


def generate_from_config(
    config: GenerationConfig,
    rng: Generator | None = None,
) -> TIRTData:
    """
    Generate Thurstonian IRT data from a configuration.

    Item loadings and intercepts (or thresholds) are sampled from the
    configured distributions, traits share a common correlation, and the
    result is passed on to `sim_tirt_data`.

    Args:
        config: Complete generation configuration.
        rng: Random number generator. Defaults to one seeded with
            `config.random_seed`.

    Returns:
        TIRTData with the simulated responses.
    """
    if rng is None:
        rng = get_rng(config.random_seed)

    nblocks = count_blocks(
        config.ntraits, config.nblocks_per_trait, config.nitems_per_block
    )
    nitems = nblocks * config.nitems_per_block
    ncomparisons = count_comparisons(config.nitems_per_block)

    lambda_ = sample_loadings(config, nitems, rng)
    gamma = sample_gamma(config, nblocks * ncomparisons, rng)
    Phi = equicorrelation_matrix(config.ntraits, config.trait_correlation)

    return sim_tirt_data(
        npersons=config.npersons,
        ntraits=config.ntraits,
        lambda_=lambda_,
        gamma=gamma,
        Phi=Phi,
        family=config.family,
        nblocks_per_trait=config.nblocks_per_trait,
        nitems_per_block=config.nitems_per_block,
        comb_blocks=config.comb_blocks,
        disp=config.disp,
        rng=rng,
        budget=SearchBudget(
            max_tries_outer=config.search.max_tries_outer,
            max_tries_inner=config.search.max_tries_inner,
        ),
    )


def to_flat_dataframe(data: TIRTData) -> pd.DataFrame:
    """
    Convert TIRTData to a DataFrame with scalar cells only.

    For the cumulative family, `gamma` becomes gamma1..gamma{K-1} and `mu`
    becomes mu1..mu{K}.

    Args:
        data: Simulated data.

    Returns:
        DataFrame suitable for CSV export.
    """
    df = data.data.copy()
    if data.ncat <= 2:
        return df

    gamma = np.vstack(df["gamma"].to_numpy())
    mu = np.vstack(df["mu"].to_numpy())
    position = df.columns.get_loc("gamma")
    df = df.drop(columns=["gamma"])
    for k in range(gamma.shape[1]):
        df.insert(position + k, f"gamma{k + 1}", gamma[:, k])

    position = df.columns.get_loc("mu")
    df = df.drop(columns=["mu"])
    for k in range(mu.shape[1]):
        df.insert(position + k, f"mu{k + 1}", mu[:, k])
    return df


def _to_json_value(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def to_csv(data: TIRTData, path: str | Path) -> Path:
    """
    Write TIRTData to a CSV file plus a JSON metadata sidecar.

    Args:
        data: Simulated data.
        path: Output CSV path. Metadata is written next to it as
            `<stem>.meta.json`.

    Returns:
        Path of the metadata file.
    """
    path = Path(path)
    to_flat_dataframe(data).to_csv(path, index=False)

    meta_path = path.with_name(f"{path.stem}.meta.json")
    metadata = {k: _to_json_value(v) for k, v in data.attributes().items()}
    meta_path.write_text(json.dumps(metadata, indent=2))
    return meta_path
