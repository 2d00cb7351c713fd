"""
Draw table normalization for PSA output.

A draw table has one row per (sample, strategy, group) with the simulated
clinical effect and cost of that strategy for that parameter draw. The
kernels in `psacea.evaluation.kernels` address draws by stride offsets, not by
key lookup, so every table handed to them must be:

- a normalized copy (the caller's frame is never modified),
- sorted deterministically for the consuming kernel, and
- a full (sample x strategy) grid within every group, with no duplicate
  cells and the same number of samples in each group.

Two adapters produce the canonical `DrawTable`: `draws_from_table()` for flat
tabular draws and `draws_from_ce()` for the costs/QALYs bundle written by an
economic model.
"""
from __future__ import annotations

import warnings
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


DrawOrder = Literal["population", "pairwise"]

# Synthesized grouping column when the caller has a single population
DEFAULT_GRP_COL = "grp"
DEFAULT_GRP_ID = 1

# Keys of the structured model output consumed by draws_from_ce()
CE_KEYS: Tuple[str, ...] = ("sample", "strategy_id", "grp_id")


class PanelImbalanceError(ValueError):
    """Draws do not form a balanced (group x sample x strategy) panel."""


@dataclass(frozen=True)
class EconomicModelOutput:
    """Costs and QALYs by sample, strategy, group and discount rate.

    `costs` needs columns category, dr, sample, strategy_id, grp_id, costs;
    `qalys` needs dr, sample, strategy_id, grp_id, qalys.
    """
    costs: pd.DataFrame
    qalys: pd.DataFrame


@dataclass(frozen=True)
class DrawTable:
    """Normalized PSA draws plus the names of the columns playing each role."""
    data: pd.DataFrame
    sample: str
    strategy: str
    grp: str
    e: str
    c: str
    order: Optional[DrawOrder] = None

    @property
    def strategies(self) -> List[Any]:
        return ordered_levels(self.data[self.strategy])

    @property
    def groups(self) -> List[Any]:
        return ordered_levels(self.data[self.grp])

    def samples_per_group(self) -> pd.Series:
        """Number of distinct sample ids in each group, indexed by group."""
        return self.data.groupby(self.grp, observed=True)[self.sample].nunique()

    @property
    def n_strategies(self) -> int:
        return len(self.strategies)

    @property
    def n_grps(self) -> int:
        return len(self.groups)

    @property
    def n_samples(self) -> int:
        """Samples per group; groups may use different sample ids but not different counts."""
        per_group = self.samples_per_group()
        return int(per_group.max()) if len(per_group) else 0

    def strided_shape(self) -> Tuple[Tuple[int, int, int], int]:
        """Array shape of the sorted draws and the position of the sample axis."""
        if self.order == "population":
            return (self.n_grps, self.n_samples, self.n_strategies), 1
        if self.order == "pairwise":
            return (self.n_grps, self.n_strategies, self.n_samples), 2
        raise ValueError("Draw table must be sorted with sort_draws() before strided access")

    def sort_keys(self, order: DrawOrder) -> List[str]:
        if order == "population":
            return [self.grp, self.sample, self.strategy]
        if order == "pairwise":
            return [self.grp, self.strategy, self.sample]
        raise ValueError(f"Unknown draw order: {order}")


def ordered_levels(values: pd.Series) -> List[Any]:
    """
    Ordered domain of an id column.

    Categoricals keep their category order (restricted to observed values);
    anything else is sorted ascending. This order decides which strategy is
    "first listed" when breaking ties.
    """
    if isinstance(values.dtype, pd.CategoricalDtype):
        present = set(values.dropna().unique())
        return [cat for cat in values.cat.categories if cat in present]
    return list(np.sort(pd.unique(values.dropna())))


def draws_from_table(
    x: Any,
    sample: str,
    strategy: str,
    e: str,
    c: str,
    grp: Optional[str] = None,
) -> DrawTable:
    """
    Normalize flat tabular draws.

    Args:
        x: DataFrame (or anything `pd.DataFrame()` accepts) of PSA draws
        sample: Column identifying the randomly sampled parameter set
        strategy: Column identifying the treatment strategy
        e: Column of clinical effectiveness
        c: Column of costs
        grp: Column identifying the subgroup. If None, a single group is
            synthesized in a `grp` column of the returned copy.

    Returns:
        DrawTable wrapping a normalized copy of `x`
    """
    df = pd.DataFrame(x).copy()

    if grp is None:
        grp = DEFAULT_GRP_COL
        df[grp] = DEFAULT_GRP_ID

    required = [sample, strategy, grp, e, c]
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise KeyError(f"Draw table missing required columns: {missing}")

    id_cols = [sample, strategy, grp]
    if df[id_cols].isna().any().any():
        bad = [col for col in id_cols if df[col].isna().any()]
        raise ValueError(f"Missing ids in columns {bad}")

    for col in (e, c):
        try:
            df[col] = pd.to_numeric(df[col], errors="raise").astype(float)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Column '{col}' must be numeric") from exc

    n_missing = int(df[[e, c]].isna().any(axis=1).sum())
    if n_missing > 0:
        warnings.warn(
            f"{n_missing} draws have missing '{e}' or '{c}'; "
            "summaries that include them are reported as NaN"
        )

    return DrawTable(data=df.reset_index(drop=True), sample=sample,
                     strategy=strategy, grp=grp, e=e, c=c)


def draws_from_ce(ce: EconomicModelOutput, dr_qalys: float, dr_costs: float) -> DrawTable:
    """
    Build a draw table from an economic model's costs/QALYs bundle.

    Total costs discounted at `dr_costs` are paired with QALYs discounted at
    `dr_qalys` on (sample, strategy_id, grp_id).
    """
    costs = ce.costs
    qalys = ce.qalys
    cost_rows = costs[(costs["category"] == "total") & (costs["dr"] == dr_costs)]
    qaly_rows = qalys[qalys["dr"] == dr_qalys]
    if cost_rows.empty:
        raise ValueError(f"No total costs found with discount rate {dr_costs}")
    if qaly_rows.empty:
        raise ValueError(f"No QALYs found with discount rate {dr_qalys}")

    merged = pd.merge(
        cost_rows[list(CE_KEYS) + ["costs"]],
        qaly_rows[list(CE_KEYS) + ["qalys"]],
        on=list(CE_KEYS),
        how="outer",
        validate="one_to_one",
        indicator=True,
    )
    unmatched = merged[merged["_merge"] != "both"]
    if len(unmatched) > 0:
        raise PanelImbalanceError(
            f"{len(unmatched)} (sample, strategy_id, grp_id) rows have costs or QALYs but not both. "
            f"First unmatched: {unmatched[list(CE_KEYS)].head().to_dict('records')}"
        )
    merged = merged.drop(columns="_merge")

    return draws_from_table(merged, sample="sample", strategy="strategy_id",
                            grp="grp_id", e="qalys", c="costs")


def sort_draws(draws: DrawTable, order: DrawOrder) -> DrawTable:
    """Return a copy of `draws` sorted for the given kernel layout."""
    data = draws.data.sort_values(draws.sort_keys(order), kind="mergesort").reset_index(drop=True)
    return replace(draws, data=data, order=order)


def check_comparator(draws: DrawTable, comparator: Any) -> None:
    """Raise if `comparator` is not one of the strategies in `draws`."""
    if comparator not in draws.strategies:
        raise ValueError("Chosen comparator strategy is not in 'x'.")


def check_panel_balance(draws: DrawTable) -> None:
    """
    Require exactly one draw per (group, sample, strategy).

    Within each group every strategy must have the same set of sample ids.
    Sample ids may differ between groups, but every group needs the same
    number of samples. The stride-addressed kernels silently misalign
    results if a cell is missing or duplicated, so both conditions are fatal.
    """
    keys = [draws.grp, draws.sample, draws.strategy]
    counts = draws.data.groupby(keys, observed=True).size()
    expected = draws.n_grps * draws.n_samples * draws.n_strategies

    duplicated = counts[counts > 1]
    if len(duplicated) > 0:
        raise PanelImbalanceError(
            f"Duplicate (group, sample, strategy) draws found: {_describe_cells(duplicated.index[:5], keys)}"
        )
    per_group = draws.samples_per_group()
    if per_group.nunique() > 1:
        raise PanelImbalanceError(
            f"Groups have different numbers of samples: {per_group.to_dict()}"
        )
    # Unique cells per group are bounded by samples x strategies, so a full
    # count means every group holds the complete grid
    if len(counts) != expected:
        raise PanelImbalanceError(
            f"Draws do not form a full panel: expected {expected} "
            f"({draws.n_grps} groups x {draws.n_samples} samples per group x {draws.n_strategies} strategies), "
            f"found {len(counts)}"
        )


def _describe_cells(index: Sequence[Tuple[Any, ...]], keys: Sequence[str]) -> List[Dict[str, Any]]:
    return [dict(zip(keys, cell)) for cell in index]


def stacked_arrays(draws: DrawTable) -> Tuple[np.ndarray, np.ndarray]:
    """Effect and cost columns as float arrays viewed with the 3-D strided shape."""
    shape, _ = draws.strided_shape()
    e = draws.data[draws.e].to_numpy(dtype=float).reshape(shape)
    c = draws.data[draws.c].to_numpy(dtype=float).reshape(shape)
    return e, c


def id_column(template: pd.Series, values: Sequence[Any]) -> Any:
    """Id values for an output table, keeping the source column's categories."""
    if isinstance(template.dtype, pd.CategoricalDtype):
        return pd.Categorical(values, dtype=template.dtype)
    return np.asarray(values)
