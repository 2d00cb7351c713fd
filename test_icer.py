#!/usr/bin/env python3
"""
Test ICER tables, dominance classification and report formatting.

Expected Behavior:
------------------
- Every (sign IC, sign IE) quadrant maps to exactly one dominance rule
- "Dominates"/"Dominated" replace the numeric ICER when formatted
- Confidence levels outside (0, 1) or non-numeric are rejected
"""
import itertools
import math

import numpy as np
import pandas as pd
import pytest

from psacea.data.draws import draws_from_table
from psacea.decision.dominance import QUADRANT_RULES, DominanceClass, classify_dominance
from psacea.decision.formatting import format_ci, format_icer, format_number
from psacea.decision.icer import OUTCOMES, icer
from psacea.evaluation.cea import cea_pw


def _pairwise(df, comparator=1, grp='grp_id'):
    draws = draws_from_table(df, sample='sample', strategy='strategy_id', grp=grp,
                             e='qalys', c='costs')
    return cea_pw(draws, comparator=comparator, k=[0, 50000])


# Dominance --------------------------------------------------------------------

def test_quadrant_table_is_total():
    signs = (-1, 0, 1)
    assert set(QUADRANT_RULES) == set(itertools.product(signs, signs))


@pytest.mark.parametrize("ic,ie,inmb", list(itertools.product((-1.0, 0.0, 1.0), repeat=3)))
def test_every_sign_combination_gets_one_class(ic, ie, inmb):
    assert isinstance(classify_dominance(ic, ie, inmb), DominanceClass)


@pytest.mark.parametrize("ic,ie,inmb,expected", [
    (-10.0, 1.0, 100.0, DominanceClass.DOMINATES),
    (-10.0, 0.0, 10.0, DominanceClass.DOMINATES),
    (10.0, -1.0, -100.0, DominanceClass.DOMINATED),
    (10.0, 0.0, -10.0, DominanceClass.DOMINATED),
    (0.0, -1.0, -5.0, DominanceClass.DOMINATED),
    (10.0, 1.0, 5.0, DominanceClass.COST_EFFECTIVE),
    (10.0, 1.0, 0.0, DominanceClass.COST_EFFECTIVE),
    (10.0, 1.0, -5.0, DominanceClass.NOT_COST_EFFECTIVE),
    (-10.0, -1.0, 5.0, DominanceClass.COST_EFFECTIVE),
    (-10.0, -1.0, -5.0, DominanceClass.NOT_COST_EFFECTIVE),
    (0.0, 0.0, 0.0, DominanceClass.COST_EFFECTIVE),
])
def test_dominance_rules(ic, ie, inmb, expected):
    assert classify_dominance(ic, ie, inmb) is expected


def test_nan_is_unclassified():
    assert classify_dominance(np.nan, 1.0, 1.0) is None


# icer() -----------------------------------------------------------------------

def test_icer_table_for_identical_samples(two_strategy_df):
    tbl = icer(_pairwise(two_strategy_df, grp=None), k=15)

    assert list(tbl.columns) == ['strategy', 'grp', 'outcome', 'estimate', 'lower', 'upper', 'dominance']
    assert list(tbl['outcome']) == list(OUTCOMES)
    np.testing.assert_allclose(tbl['estimate'], [1.0, 10.0, 5.0, 10.0])
    assert math.isnan(tbl['lower'].iloc[3]) and math.isnan(tbl['upper'].iloc[3])
    assert set(tbl['dominance']) == {"Cost-effective"}
    assert tbl.attrs == {'k': 15.0, 'prob': 0.95}

    below = icer(_pairwise(two_strategy_df, grp=None), k=5)
    assert set(below['dominance']) == {"Not cost-effective"}
    assert below['estimate'].iloc[2] == pytest.approx(-5.0)


def test_icer_intervals_follow_prob(psa_df):
    res = _pairwise(psa_df)
    wide = icer(res, prob=0.95)
    narrow = icer(res, prob=0.5)

    pd.testing.assert_series_equal(wide['estimate'], narrow['estimate'])
    costs = (wide['outcome'] == "Incremental costs")
    assert (wide.loc[costs, 'upper'] - wide.loc[costs, 'lower'] >
            narrow.loc[costs, 'upper'] - narrow.loc[costs, 'lower']).all()

    sub = res.delta[(res.delta['grp_id'] == 2) & (res.delta['strategy_id'] == 3)]
    row = narrow[(narrow['grp'] == 2) & (narrow['strategy'] == 3) &
                 (narrow['outcome'] == "Incremental costs")].iloc[0]
    assert row['lower'] == pytest.approx(np.quantile(sub['ic'], 0.25))
    assert row['upper'] == pytest.approx(np.quantile(sub['ic'], 0.75))


def test_icer_row_order_and_size(psa_df):
    tbl = icer(_pairwise(psa_df))
    assert len(tbl) == 2 * 2 * 4
    assert list(tbl['grp'].iloc[:8]) == [1] * 8
    assert list(tbl['strategy'].iloc[:8]) == [2] * 4 + [3] * 4


@pytest.mark.parametrize("prob", ["0.95", None])
def test_non_numeric_prob_raises(two_strategy_df, prob):
    with pytest.raises(TypeError, match="'prob' must be numeric"):
        icer(_pairwise(two_strategy_df, grp=None), prob=prob)


@pytest.mark.parametrize("prob", [1.5, 0, 1, -0.1])
def test_prob_outside_unit_interval_raises(two_strategy_df, prob):
    with pytest.raises(ValueError, match=r"'prob' must be in the interval \(0,1\)"):
        icer(_pairwise(two_strategy_df, grp=None), prob=prob)


def test_icer_rejects_other_inputs(two_strategy_df):
    with pytest.raises(TypeError, match="cea_pw"):
        icer(two_strategy_df)
    with pytest.raises(ValueError, match="single threshold"):
        icer(_pairwise(two_strategy_df, grp=None), k=[1, 2])


def test_icer_labels(psa_df):
    labs = {'strategy_id': {1: "s1", 2: "s2", 3: "s3"}, 'grp_id': {1: "g1", 2: "g2"}}
    tbl = icer(_pairwise(psa_df), labels=labs)
    assert list(tbl['strategy'].cat.categories) == ["s1", "s2", "s3"]
    assert list(tbl['grp'].cat.categories) == ["g1", "g2"]
    assert tbl['strategy'].iloc[0] == "s2"


def test_icer_labels_must_cover_ids(psa_df):
    with pytest.raises(ValueError, match="No label"):
        icer(_pairwise(psa_df), labels={'strategy_id': {2: "s2"}})


# format_icer() ----------------------------------------------------------------

def test_number_formatting():
    assert format_number(1234567.891, 0) == "1,234,568"
    assert format_number(np.nan, 2) == "NA"
    assert format_ci(1.0, 0.5, 1.5, digits=2) == "1.00 (0.50, 1.50)"


def test_format_identical_samples(two_strategy_df):
    labs = {'strategy_id': {1: "SoC", 2: "New"}}
    tbl = icer(_pairwise(two_strategy_df, grp=None), k=15, labels=labs)
    out = format_icer(tbl)

    assert list(out.columns) == ["Outcome", "New"]
    assert list(out["Outcome"]) == list(OUTCOMES)
    assert list(out["New"]) == ["1.00 (1.00, 1.00)", "10 (10, 10)", "5 (5, 5)", "10"]


def _dominating_df() -> pd.DataFrame:
    # Strategy 2 is cheaper and more effective; strategy 3 costs more for less
    return pd.DataFrame({
        'sample': [1, 2] * 3,
        'strategy_id': [1, 1, 2, 2, 3, 3],
        'qalys': [5.0, 5.2, 5.5, 5.9, 4.0, 4.4],
        'costs': [1000.0, 1100.0, 800.0, 900.0, 3000.0, 3100.0],
    })


def test_format_suppresses_dominated_icers():
    tbl = icer(_pairwise(_dominating_df(), grp=None))
    assert list(tbl.loc[tbl['outcome'] == "ICER", 'dominance']) == ["Dominates", "Dominated"]
    # Raw ratios stay numeric (and negative) in the tidy table
    assert (tbl.loc[tbl['outcome'] == "ICER", 'estimate'] < 0).all()

    out = format_icer(tbl, pretty_names=False)
    icer_row = out[out['outcome'] == "ICER"].iloc[0]
    assert icer_row['2'] == "Dominates"
    assert icer_row['3'] == "Dominated"


def test_format_pivot_shapes(psa_df):
    tbl = icer(_pairwise(psa_df))

    long = format_icer(tbl, pivot_from=None, pretty_names=False)
    assert list(long.columns) == ['strategy', 'grp', 'outcome', 'value']
    assert len(long) == 16

    by_strategy = format_icer(tbl, pretty_names=False)
    assert list(by_strategy.columns) == ['grp', 'outcome', '2', '3']
    assert len(by_strategy) == 8

    by_both = format_icer(tbl, pivot_from=['strategy', 'grp'], pretty_names=False)
    # Wide columns follow the (grp, strategy) order of the tidy table
    assert list(by_both.columns) == ['outcome', '2, 1', '3, 1', '2, 2', '3, 2']
    assert len(by_both) == 4

    pretty = format_icer(tbl, pivot_from='grp')
    assert list(pretty.columns) == ['Strategy', 'Outcome', '1', '2']


def test_format_keeps_single_group_when_asked(two_strategy_df):
    tbl = icer(_pairwise(two_strategy_df, grp=None), k=15)
    out = format_icer(tbl, drop_grp=False, pretty_names=False)
    assert list(out.columns) == ['grp', 'outcome', '2']


def test_format_rejects_unknown_pivot(two_strategy_df):
    tbl = icer(_pairwise(two_strategy_df, grp=None), k=15)
    with pytest.raises(ValueError, match="pivot_from"):
        format_icer(tbl, pivot_from='value')
