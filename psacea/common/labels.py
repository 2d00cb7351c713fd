"""Display labels for strategy and group ids."""
from typing import Any, Mapping, Optional

import pandas as pd


def set_labels(
    df: pd.DataFrame,
    labels: Optional[Mapping[str, Mapping[Any, str]]] = None,
) -> pd.DataFrame:
    """
    Replace numeric ids with display labels.

    Args:
        df: Table with id columns (e.g. `strategy_id`, `grp_id`)
        labels: Mapping of column name -> {id: label}. The label order sets
            the category order of the resulting column. Columns not present
            in `df` are ignored.

    Returns:
        Copy of `df` with labelled columns converted to ordered Categoricals
    """
    out = df.copy()
    if not labels:
        return out

    for col, mapping in labels.items():
        if col not in out.columns:
            continue
        mapping = dict(mapping)
        unknown = set(pd.unique(out[col])) - set(mapping)
        if unknown:
            raise ValueError(f"No label supplied for {col} values: {sorted(unknown, key=str)}")
        out[col] = pd.Categorical(
            [mapping[v] for v in out[col]],
            categories=list(dict.fromkeys(mapping.values())),
            ordered=True,
        )
    return out
