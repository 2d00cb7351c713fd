"""
Cost-effectiveness analysis of a probabilistic sensitivity analysis (PSA).

- `cea()` compares all strategies at once: probability each strategy is most
  cost-effective (MCE) with the cost-effectiveness acceptability frontier
  flag, expected value of perfect information (EVPI), and net monetary
  benefit (NMB) by willingness-to-pay threshold.
- `cea_pw()` compares each strategy to a comparator: incremental draws for a
  cost-effectiveness plane, cost-effectiveness acceptability curves (CEAC),
  incremental NMB, and a summary with the ICER.

Both are pure functions of the draws and the WTP grid; calling them twice on
the same input gives identical tables.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from psacea.common.thresholds import default_wtp_grid, validate_wtp_grid
from psacea.data.draws import (
    DrawTable,
    check_comparator,
    check_panel_balance,
    sort_draws,
)
from psacea.evaluation.incremental import incremental_effects
from psacea.evaluation.kernels import ceac_probabilities, enmb_perfect_info, mce_probabilities
from psacea.evaluation.nmb import cea_table, enmb_best, grid_frame, inmb_summary, nmb_summary


@dataclass(frozen=True)
class CEAResult:
    """Output of `cea()`; `strategy` and `grp` name the id columns."""
    summary: pd.DataFrame
    mce: pd.DataFrame
    evpi: pd.DataFrame
    nmb: pd.DataFrame
    strategy: str
    grp: str


@dataclass(frozen=True)
class PairwiseCEAResult:
    """Output of `cea_pw()`.

    `comparator_pos` is the 0-based position of the comparator among all
    strategies, used to keep strategy colors consistent across plots.
    """
    summary: pd.DataFrame
    delta: pd.DataFrame
    ceac: pd.DataFrame
    inmb: pd.DataFrame
    strategy: str
    grp: str
    sample: str
    comparator: Any
    comparator_pos: int
    treatments: List[Any]
    groups: List[Any]


def _wtp(k: Optional[Union[float, Sequence[float]]]) -> np.ndarray:
    return default_wtp_grid() if k is None else validate_wtp_grid(k)


def cea(
    draws: DrawTable,
    k: Optional[Union[float, Sequence[float]]] = None,
    verbose: bool = False,
) -> CEAResult:
    """
    Summarize a PSA across all strategies.

    Args:
        draws: Output of `draws_from_table()` or `draws_from_ce()`
        k: Willingness-to-pay thresholds (default: 0 to 200,000 by 500)
        verbose: If True, print panel dimensions

    Returns:
        CEAResult with summary, mce, evpi and nmb tables
    """
    k = _wtp(k)
    draws = sort_draws(draws, "population")
    check_panel_balance(draws)

    n_samples, n_strategies, n_grps = draws.n_samples, draws.n_strategies, draws.n_grps
    if verbose:
        print(f"CEA: {n_grps} groups x {n_strategies} strategies x {n_samples} samples, "
              f"{len(k)} WTP thresholds")

    e = draws.data[draws.e].to_numpy(dtype=float)
    c = draws.data[draws.c].to_numpy(dtype=float)

    nmb = nmb_summary(draws, k)
    best, best_row = enmb_best(nmb, draws, k)

    mce = grid_frame(draws, k, draws.strategies, draws.groups)
    mce["best"] = 0
    mce.loc[best_row[best_row >= 0], "best"] = 1
    mce["prob"] = mce_probabilities(k, e, c, n_samples, n_strategies, n_grps)
    mce = mce[["k", draws.strategy, draws.grp, "best", "prob"]]

    evpi = best.rename(columns={"enmb_best": "enmbci"})
    evpi["enmbpi"] = enmb_perfect_info(k, e, c, n_samples, n_strategies, n_grps)
    evpi["evpi"] = evpi["enmbpi"] - evpi["enmbci"]
    evpi = evpi[[draws.grp, "k", "best", "enmbci", "enmbpi", "evpi"]]

    summary = cea_table(draws, e_name="e", c_name="c")

    return CEAResult(summary=summary, mce=mce, evpi=evpi, nmb=nmb,
                     strategy=draws.strategy, grp=draws.grp)


def cea_pw(
    draws: DrawTable,
    comparator: Any,
    k: Optional[Union[float, Sequence[float]]] = None,
    verbose: bool = False,
) -> PairwiseCEAResult:
    """
    Summarize a PSA relative to a comparator strategy.

    Args:
        draws: Output of `draws_from_table()` or `draws_from_ce()`
        comparator: Strategy id every other strategy is compared against
        k: Willingness-to-pay thresholds (default: 0 to 200,000 by 500)
        verbose: If True, print panel dimensions

    Returns:
        PairwiseCEAResult with summary, delta, ceac and inmb tables
    """
    k = _wtp(k)
    check_comparator(draws, comparator)
    comparator_pos = draws.strategies.index(comparator)

    delta = incremental_effects(draws, comparator)
    treatments, groups = delta.strategies, delta.groups
    n_samples, n_strategies, n_grps = delta.n_samples, delta.n_strategies, delta.n_grps
    if verbose:
        print(f"Pairwise CEA vs {comparator!r}: {n_grps} groups x {n_strategies} strategies "
              f"x {n_samples} samples, {len(k)} WTP thresholds")

    ceac = grid_frame(delta, k, treatments, groups)
    ceac["prob"] = ceac_probabilities(
        k,
        delta.data["ie"].to_numpy(dtype=float),
        delta.data["ic"].to_numpy(dtype=float),
        n_samples, n_strategies, n_grps,
    )
    ceac = ceac[["k", delta.strategy, delta.grp, "prob"]]

    inmb = inmb_summary(delta, k)
    summary = cea_table(delta, e_name="ie", c_name="ic", icer=True)

    return PairwiseCEAResult(
        summary=summary,
        delta=delta.data,
        ceac=ceac,
        inmb=inmb,
        strategy=delta.strategy,
        grp=delta.grp,
        sample=delta.sample,
        comparator=comparator,
        comparator_pos=comparator_pos,
        treatments=treatments,
        groups=groups,
    )
