"""Presentation formatting for ICER tables."""
import math
from typing import Iterable, List, Optional, Sequence, Union

import pandas as pd

from psacea.decision.dominance import DominanceClass


ID_COLUMNS = ("grp", "strategy", "outcome")
PRETTY_NAMES = {"grp": "Group", "strategy": "Strategy", "outcome": "Outcome", "value": "Value"}
COST_OUTCOMES = ("Incremental costs", "Incremental NMB")
SUPPRESSED_ICER = (DominanceClass.DOMINATES.value, DominanceClass.DOMINATED.value)


def format_number(x: float, digits: int) -> str:
    """Fixed-point number with thousands separators; NaN renders as "NA"."""
    if x is None or (isinstance(x, float) and math.isnan(x)):
        return "NA"
    return f"{x:,.{digits}f}"


def format_ci(estimate: float, lower: float, upper: float, digits: int) -> str:
    """Render "estimate (lower, upper)"."""
    return (f"{format_number(estimate, digits)} "
            f"({format_number(lower, digits)}, {format_number(upper, digits)})")


def _as_list(pivot_from: Optional[Union[str, Iterable[str]]]) -> List[str]:
    if pivot_from is None:
        return []
    cols = [pivot_from] if isinstance(pivot_from, str) else list(pivot_from)
    unknown = [c for c in cols if c not in ID_COLUMNS]
    if unknown:
        raise ValueError(f"'pivot_from' must be a subset of {list(ID_COLUMNS)}, got {unknown}")
    return cols


def _appearance_index(df: pd.DataFrame, cols: Sequence[str]) -> pd.Index:
    if len(cols) == 1:
        return pd.Index(list(dict.fromkeys(df[cols[0]])), name=cols[0])
    return pd.MultiIndex.from_tuples(list(dict.fromkeys(zip(*(df[c] for c in cols)))), names=list(cols))


def format_icer(
    x: pd.DataFrame,
    digits_qalys: int = 2,
    digits_costs: int = 0,
    pivot_from: Optional[Union[str, Iterable[str]]] = "strategy",
    drop_grp: bool = True,
    pretty_names: bool = True,
) -> pd.DataFrame:
    """
    Format an ICER table for reporting.

    Args:
        x: Output of `icer()`
        digits_qalys: Digits used for incremental QALYs
        digits_costs: Digits used for incremental costs, NMB and the ICER
        pivot_from: Column(s) among "strategy", "grp", "outcome" to widen
            into one column per value. None keeps the long layout.
        drop_grp: If True, drop the group column when there is one group
        pretty_names: If True, rename columns to Group, Strategy, Outcome, Value

    Returns:
        DataFrame of formatted strings
    """
    pivot_cols = _as_list(pivot_from)
    y = x.copy()

    values = []
    for outcome, estimate, lower, upper, dominance in zip(
        y["outcome"], y["estimate"], y["lower"], y["upper"], y["dominance"]
    ):
        if outcome == "Incremental QALYs":
            values.append(format_ci(estimate, lower, upper, digits_qalys))
        elif outcome in COST_OUTCOMES:
            values.append(format_ci(estimate, lower, upper, digits_costs))
        elif dominance in SUPPRESSED_ICER:
            values.append(dominance)
        else:
            values.append(format_number(estimate, digits_costs))
    y["value"] = values
    y = y.drop(columns=["estimate", "lower", "upper", "dominance"])
    for col in ID_COLUMNS:
        y[col] = y[col].astype(object)

    if drop_grp and y["grp"].nunique() == 1:
        y = y.drop(columns="grp")
    pivot_cols = [c for c in pivot_cols if c in y.columns]

    if pivot_cols:
        id_cols = [c for c in ID_COLUMNS if c in y.columns and c not in pivot_cols]
        if not id_cols:
            raise ValueError("'pivot_from' must leave at least one id column in the long layout")
        wide = y.pivot(index=id_cols, columns=pivot_cols, values="value")
        wide = wide.reindex(index=_appearance_index(y, id_cols), columns=_appearance_index(y, pivot_cols))
        if isinstance(wide.columns, pd.MultiIndex):
            wide.columns = [", ".join(str(v) for v in col) for col in wide.columns]
        else:
            wide.columns = [str(col) for col in wide.columns]
        y = wide.reset_index()
    else:
        y = y.reset_index(drop=True)

    if pretty_names:
        y = y.rename(columns=PRETTY_NAMES)
    return y
