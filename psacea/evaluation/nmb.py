"""
Net monetary benefit summaries.

- `nmb_summary()`: mean and 95% interval of k*e - c per (strategy, group, k)
- `enmb_best()`: the strategy with the highest expected NMB per (group, k),
  i.e. the optimal decision under current information
- `cea_table()`: mean and 95% interval of effects and costs per
  (strategy, group), optionally with the ratio-of-means ICER

All tables built here share the row order (k, group, strategy) so that a
frontier row index also addresses the matching MCE row.
"""
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from psacea.common.intervals import DEFAULT_LOWER, DEFAULT_UPPER, interval_stats
from psacea.data.draws import DrawTable, id_column, stacked_arrays


def nmb_moments(
    e: np.ndarray,
    c: np.ndarray,
    k: np.ndarray,
    sample_axis: int,
    lower: float = DEFAULT_LOWER,
    upper: float = DEFAULT_UPPER,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Mean and quantiles of net monetary benefit for every threshold.

    Args:
        e: Effects, 3-D strided array (group first)
        c: Costs with the same shape as `e`
        k: Validated WTP grid
        sample_axis: Axis of `e`/`c` indexing samples

    Returns:
        (mean, lower, upper) arrays of shape (len(k), n_grps, n_strategies)
    """
    reduced_shape = tuple(n for axis, n in enumerate(e.shape) if axis != sample_axis)
    mean = np.empty((len(k),) + reduced_shape)
    lo = np.empty_like(mean)
    hi = np.empty_like(mean)

    nmb = np.empty_like(e)
    for i, wtp in enumerate(k):
        np.multiply(e, wtp, out=nmb)
        np.subtract(nmb, c, out=nmb)
        mean[i], lo[i], hi[i] = interval_stats(nmb, axis=sample_axis, lower=lower, upper=upper)
    return mean, lo, hi


def grid_frame(
    draws: DrawTable,
    k: np.ndarray,
    strategies: Sequence[Any],
    groups: Sequence[Any],
) -> pd.DataFrame:
    """Id columns of a (k, group, strategy) ordered table: strategy, group, k."""
    n_k, n_grps, n_strategies = len(k), len(groups), len(strategies)
    return pd.DataFrame({
        draws.strategy: id_column(draws.data[draws.strategy], list(strategies) * (n_k * n_grps)),
        draws.grp: id_column(draws.data[draws.grp], _repeat_each(groups, n_strategies) * n_k),
        "k": np.repeat(k, n_grps * n_strategies),
    })


def _repeat_each(values: Sequence[Any], times: int) -> List[Any]:
    return [v for v in values for _ in range(times)]


def nmb_summary(draws: DrawTable, k: np.ndarray) -> pd.DataFrame:
    """
    Summarize net monetary benefits over the WTP grid.

    Args:
        draws: Balanced draws sorted with order "population" or "pairwise"
        k: Validated WTP grid

    Returns:
        DataFrame with columns [strategy, grp, k, enmb, lnmb, unmb], ordered
        by (k, grp, strategy)
    """
    e, c = stacked_arrays(draws)
    _, sample_axis = draws.strided_shape()
    mean, lo, hi = nmb_moments(e, c, k, sample_axis)

    table = grid_frame(draws, k, draws.strategies, draws.groups)
    table["enmb"] = mean.ravel()
    table["lnmb"] = lo.ravel()
    table["unmb"] = hi.ravel()
    return table


def inmb_summary(delta: DrawTable, k: np.ndarray) -> pd.DataFrame:
    """Incremental NMB summary: `nmb_summary()` applied to incremental draws."""
    inmb = nmb_summary(delta, k)
    return inmb.rename(columns={"enmb": "einmb", "lnmb": "linmb", "unmb": "uinmb"})


def enmb_best(
    nmb: pd.DataFrame,
    draws: DrawTable,
    k: np.ndarray,
) -> Tuple[pd.DataFrame, np.ndarray]:
    """
    Select the strategy with the highest expected NMB for each (group, k).

    Ties go to the first-listed strategy. A cell whose expected NMBs include
    NaN has no optimal strategy: `best` is None and `enmb_best` is NaN.

    Args:
        nmb: Output of `nmb_summary()` for `draws`
        draws: The draws summarized in `nmb`
        k: WTP grid used for `nmb`

    Returns:
        Tuple of (table with columns [grp, k, enmb_best, best] ordered by
        (k, grp), array of row positions of the optimal strategy in `nmb`,
        -1 where undefined)
    """
    strategies, groups = draws.strategies, draws.groups
    n_k, n_grps, n_strategies = len(k), len(groups), len(strategies)
    enmb = nmb["enmb"].to_numpy(dtype=float).reshape(n_k, n_grps, n_strategies)

    undefined = np.isnan(enmb).any(axis=2)
    best_idx = np.argmax(np.where(np.isnan(enmb), -np.inf, enmb), axis=2)
    best_val = np.take_along_axis(enmb, best_idx[..., None], axis=2)[..., 0]
    best_val[undefined] = np.nan

    cell = np.arange(n_k)[:, None] * n_grps + np.arange(n_grps)[None, :]
    row = cell * n_strategies + best_idx
    row[undefined] = -1

    best = [None if undefined.flat[i] else strategies[j] for i, j in enumerate(best_idx.ravel())]
    if not undefined.any():
        best = id_column(draws.data[draws.strategy], best)

    table = pd.DataFrame({
        draws.grp: id_column(draws.data[draws.grp], list(groups) * n_k),
        "k": np.repeat(k, n_grps),
        "enmb_best": best_val.ravel(),
        "best": best,
    })
    return table, row.ravel()


def cea_table(
    draws: DrawTable,
    e_name: str = "e",
    c_name: str = "c",
    icer: bool = False,
) -> pd.DataFrame:
    """
    Mean and 95% interval of effects and costs by strategy and group.

    Args:
        draws: Balanced, sorted draws (absolute or incremental)
        e_name: Prefix of the effect columns, e.g. "e" -> e_mean, e_lower, e_upper
        c_name: Prefix of the cost columns
        icer: If True, add `icer` = mean cost / mean effect (ratio of means)

    Returns:
        DataFrame ordered by (grp, strategy)
    """
    e, c = stacked_arrays(draws)
    _, sample_axis = draws.strided_shape()
    strategies, groups = draws.strategies, draws.groups

    columns: Dict[str, Any] = {
        draws.strategy: id_column(draws.data[draws.strategy], list(strategies) * len(groups)),
        draws.grp: id_column(draws.data[draws.grp], _repeat_each(groups, len(strategies))),
    }
    for name, values in ((e_name, e), (c_name, c)):
        mean, lo, hi = interval_stats(values, axis=sample_axis)
        columns[f"{name}_mean"] = mean.ravel()
        columns[f"{name}_lower"] = lo.ravel()
        columns[f"{name}_upper"] = hi.ravel()
    table = pd.DataFrame(columns)

    if icer:
        with np.errstate(divide="ignore", invalid="ignore"):
            table["icer"] = table[f"{c_name}_mean"] / table[f"{e_name}_mean"]
    return table
