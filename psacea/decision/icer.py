"""
Incremental cost-effectiveness ratio (ICER) tables.

`icer()` turns the incremental draws of a pairwise analysis into a tidy
table with one row per (group, strategy, outcome), where the outcomes are
incremental QALYs, incremental costs, incremental NMB at a single
willingness-to-pay threshold, and the ICER itself. The ICER is the ratio of
mean incremental cost to mean incremental effect; the mean of per-draw
ratios is never used since incremental effects may be near zero or negative.

Each row carries the strategy's dominance class so that formatting can show
"Dominates"/"Dominated" in place of a negative or uninterpretable ratio.
"""
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from psacea.common.intervals import ci_alpha, interval_stats
from psacea.common.labels import set_labels
from psacea.common.thresholds import validate_wtp_grid
from psacea.decision.dominance import classify_dominance
from psacea.evaluation.cea import PairwiseCEAResult


OUTCOMES = ("Incremental QALYs", "Incremental costs", "Incremental NMB", "ICER")


def icer(
    x: PairwiseCEAResult,
    prob: float = 0.95,
    k: float = 50000,
    labels: Optional[Mapping[str, Mapping[Any, str]]] = None,
) -> pd.DataFrame:
    """
    Tidy ICER table from a pairwise cost-effectiveness analysis.

    Args:
        x: Result of `cea_pw()`
        prob: Confidence level of the intervals, in (0, 1)
        k: Willingness to pay per unit of effect used for incremental NMB
            and the cost-effective / not cost-effective split
        labels: Optional {column: {id: label}} mapping for the strategy and
            group columns of `x` (see `set_labels()`)

    Returns:
        DataFrame with columns [strategy, grp, outcome, estimate, lower,
        upper, dominance] ordered by (grp, strategy, outcome). ICER rows have
        no interval. `attrs` holds `k` and `prob`.
    """
    if not isinstance(x, PairwiseCEAResult):
        raise TypeError("'x' must be a PairwiseCEAResult returned by cea_pw()")
    lower, upper = ci_alpha(prob)
    wtp = validate_wtp_grid(k)
    if wtp.size != 1:
        raise ValueError(f"'k' must be a single threshold, got {wtp.size} values")
    k = float(wtp[0])

    n_grps, n_strategies = len(x.groups), len(x.treatments)
    ie = x.delta["ie"].to_numpy(dtype=float).reshape(n_grps, n_strategies, -1)
    ic = x.delta["ic"].to_numpy(dtype=float).reshape(n_grps, n_strategies, -1)
    inmb = k * ie - ic

    ie_stats = interval_stats(ie, axis=2, lower=lower, upper=upper)
    ic_stats = interval_stats(ic, axis=2, lower=lower, upper=upper)
    inmb_stats = interval_stats(inmb, axis=2, lower=lower, upper=upper)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = ic_stats[0] / ie_stats[0]

    rows: List[Dict[str, Any]] = []
    for g, grp_id in enumerate(x.groups):
        for j, strategy_id in enumerate(x.treatments):
            dominance = classify_dominance(ic_stats[0][g, j], ie_stats[0][g, j], inmb_stats[0][g, j])
            intervals = [
                tuple(s[g, j] for s in ie_stats),
                tuple(s[g, j] for s in ic_stats),
                tuple(s[g, j] for s in inmb_stats),
                (ratio[g, j], np.nan, np.nan),
            ]
            for outcome, (estimate, lo, hi) in zip(OUTCOMES, intervals):
                rows.append({
                    x.strategy: strategy_id,
                    x.grp: grp_id,
                    "outcome": outcome,
                    "estimate": estimate,
                    "lower": lo,
                    "upper": hi,
                    "dominance": dominance.value if dominance is not None else None,
                })

    tbl = pd.DataFrame(rows)
    tbl["outcome"] = pd.Categorical(tbl["outcome"], categories=list(OUTCOMES), ordered=True)
    tbl = set_labels(tbl, labels)
    tbl = tbl.rename(columns={x.strategy: "strategy", x.grp: "grp"})
    tbl.attrs["k"] = k
    tbl.attrs["prob"] = prob
    return tbl
