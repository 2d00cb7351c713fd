"""
Incremental effects and costs relative to a comparator strategy.

Each treatment draw is paired with the comparator draw that shares its
sample and group. Pairing is positional after sorting, so the sample sets
are checked first: a mismatch would otherwise produce the right number of
rows with silently wrong values.
"""
from typing import Any

import numpy as np
import pandas as pd

from psacea.data.draws import (
    DrawTable,
    PanelImbalanceError,
    check_comparator,
    check_panel_balance,
    id_column,
    sort_draws,
    stacked_arrays,
)


def check_comparator_alignment(draws: DrawTable, comparator: Any) -> None:
    """
    Require every treatment to share the comparator's samples within each group.

    Raises:
        PanelImbalanceError: Naming the first group/strategy whose sample ids
            differ from the comparator's
    """
    data = draws.data
    for grp_id, grp_df in data.groupby(draws.grp, sort=False, observed=True):
        samples_by_strategy = grp_df.groupby(draws.strategy, sort=False, observed=True)[draws.sample]
        comparator_df = grp_df[grp_df[draws.strategy] == comparator]
        if comparator_df.empty:
            raise PanelImbalanceError(
                f"Comparator {comparator!r} has no draws in group {grp_id!r}"
            )
        comparator_samples = set(comparator_df[draws.sample])

        for strategy_id, samples in samples_by_strategy:
            if strategy_id == comparator:
                continue
            treat_samples = set(samples)
            if treat_samples != comparator_samples:
                only_treat = sorted(treat_samples - comparator_samples, key=str)[:5]
                only_comp = sorted(comparator_samples - treat_samples, key=str)[:5]
                raise PanelImbalanceError(
                    f"Samples of strategy {strategy_id!r} in group {grp_id!r} do not match "
                    f"comparator {comparator!r}: only in strategy {only_treat}, "
                    f"only in comparator {only_comp}"
                )


def incremental_effects(draws: DrawTable, comparator: Any) -> DrawTable:
    """
    Incremental effect and cost of each strategy versus `comparator`.

    Args:
        draws: Normalized draws (any order)
        comparator: Strategy id to compare against

    Returns:
        DrawTable sorted by (grp, strategy, sample) with columns
        [sample, strategy, grp, ie, ic]; one row per non-comparator strategy,
        sample and group
    """
    check_comparator(draws, comparator)
    if draws.n_strategies < 2:
        raise ValueError("Pairwise comparison needs at least one strategy besides the comparator")
    check_comparator_alignment(draws, comparator)
    draws = sort_draws(draws, "pairwise")
    check_panel_balance(draws)

    n_grps, n_samples = draws.n_grps, draws.n_samples
    strategies = draws.strategies
    comp_pos = strategies.index(comparator)
    treatments = [s for s in strategies if s != comparator]

    e, c = stacked_arrays(draws)
    treat_idx = [i for i in range(len(strategies)) if i != comp_pos]

    ie = e[:, treat_idx, :] - e[:, [comp_pos], :]
    ic = c[:, treat_idx, :] - c[:, [comp_pos], :]

    # Sample ids of each group, taken from the comparator's block; sample ids
    # may differ between groups
    n_treat = len(treatments)
    sample_ids = draws.data[draws.sample].to_numpy().reshape(n_grps, len(strategies), n_samples)[:, comp_pos, :]
    delta = pd.DataFrame({
        draws.sample: np.repeat(sample_ids[:, None, :], n_treat, axis=1).ravel(),
        draws.strategy: id_column(
            draws.data[draws.strategy], [s for s in treatments for _ in range(n_samples)] * n_grps
        ),
        draws.grp: id_column(
            draws.data[draws.grp], [g for g in draws.groups for _ in range(n_treat * n_samples)]
        ),
        "ie": ie.ravel(),
        "ic": ic.ravel(),
    })
    return DrawTable(data=delta, sample=draws.sample, strategy=draws.strategy,
                     grp=draws.grp, e="ie", c="ic", order="pairwise")
