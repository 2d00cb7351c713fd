#!/usr/bin/env python3
"""
Test whole-population cost-effectiveness analysis (MCE, frontier, EVPI, NMB).

Expected Behavior:
------------------
Two strategies, three identical samples:
    Strategy 1: cost 10, effect 1     Strategy 2: cost 20, effect 2

    k = 5:   NMB1 = -5,  NMB2 = -10  -> strategy 1 optimal with prob 1, EVPI 0
    k = 15:  NMB1 =  5,  NMB2 =  10  -> strategy 2 optimal with prob 1, EVPI 0

On random draws:
    - MCE probabilities sum to 1 within every (k, group)
    - EVPI is never negative
    - exactly one strategy per (k, group) is flagged best, the argmax of mean NMB
"""
import warnings

import numpy as np
import pandas as pd
import pytest

from psacea.data.draws import PanelImbalanceError, draws_from_table
from psacea.evaluation.cea import CEAResult, cea

WTP = np.arange(0, 50001, 2500)


def _draws(df, grp='grp_id'):
    return draws_from_table(df, sample='sample', strategy='strategy_id', grp=grp,
                            e='qalys', c='costs')


def test_identical_samples_example(two_strategy_df):
    res = cea(_draws(two_strategy_df, grp=None), k=[5, 15])

    assert isinstance(res, CEAResult)
    assert (res.strategy, res.grp) == ('strategy_id', 'grp')

    mce = res.mce
    assert list(mce.columns) == ['k', 'strategy_id', 'grp', 'best', 'prob']
    np.testing.assert_array_equal(mce['k'], [5, 5, 15, 15])
    np.testing.assert_array_equal(mce['strategy_id'], [1, 2, 1, 2])
    np.testing.assert_array_equal(mce['prob'], [1.0, 0.0, 0.0, 1.0])
    np.testing.assert_array_equal(mce['best'], [1, 0, 0, 1])

    evpi = res.evpi
    assert list(evpi.columns) == ['grp', 'k', 'best', 'enmbci', 'enmbpi', 'evpi']
    assert list(evpi['best']) == [1, 2]
    np.testing.assert_allclose(evpi['enmbci'], [-5.0, 10.0])
    np.testing.assert_allclose(evpi['enmbpi'], [-5.0, 10.0])
    np.testing.assert_allclose(evpi['evpi'], [0.0, 0.0], atol=1e-12)

    nmb = res.nmb
    assert list(nmb.columns) == ['strategy_id', 'grp', 'k', 'enmb', 'lnmb', 'unmb']
    np.testing.assert_allclose(nmb['enmb'], [-5.0, -10.0, 5.0, 10.0])
    # Zero-variance draws give degenerate intervals
    np.testing.assert_allclose(nmb['lnmb'], nmb['enmb'])
    np.testing.assert_allclose(nmb['unmb'], nmb['enmb'])


def test_summary_table(two_strategy_df):
    summary = cea(_draws(two_strategy_df, grp=None), k=[0]).summary
    assert list(summary.columns) == [
        'strategy_id', 'grp', 'e_mean', 'e_lower', 'e_upper', 'c_mean', 'c_lower', 'c_upper'
    ]
    np.testing.assert_allclose(summary['e_mean'], [1.0, 2.0])
    np.testing.assert_allclose(summary['c_upper'], [10.0, 20.0])


def test_mce_probabilities_sum_to_one(psa_df):
    mce = cea(_draws(psa_df), k=WTP).mce
    totals = mce.groupby(['k', 'grp_id'])['prob'].sum()
    np.testing.assert_allclose(totals.values, 1.0)
    assert len(mce) == len(WTP) * 2 * 3


def test_evpi_is_non_negative(psa_df):
    evpi = cea(_draws(psa_df), k=WTP).evpi
    assert len(evpi) == len(WTP) * 2
    assert (evpi['evpi'] >= -1e-9).all()
    # Decisions are uncertain somewhere on this grid
    assert (evpi['evpi'] > 0).any()


def test_best_flag_matches_max_expected_nmb(psa_df):
    res = cea(_draws(psa_df), k=WTP)

    flagged = res.mce[res.mce['best'] == 1]
    assert len(flagged) == len(WTP) * 2

    idx = res.nmb.groupby(['k', 'grp_id'])['enmb'].idxmax()
    expected = res.nmb.loc[idx, ['k', 'grp_id', 'strategy_id']].reset_index(drop=True)
    got = flagged[['k', 'grp_id', 'strategy_id']].reset_index(drop=True)
    pd.testing.assert_frame_equal(got, expected)

    np.testing.assert_array_equal(res.evpi['best'].to_numpy(), expected['strategy_id'].to_numpy())


def test_kernels_match_direct_computation(psa_df):
    k = 30000.0
    res = cea(_draws(psa_df), k=[k])

    work = psa_df.assign(nmb=k * psa_df['qalys'] - psa_df['costs'])
    winners = work.loc[work.groupby(['grp_id', 'sample'])['nmb'].idxmax()]
    expected_prob = (winners.groupby(['grp_id', 'strategy_id']).size() / 200).reindex(
        pd.MultiIndex.from_product([[1, 2], [1, 2, 3]]), fill_value=0.0
    )
    np.testing.assert_allclose(res.mce['prob'].to_numpy(), expected_prob.to_numpy())

    expected_enmbpi = work.groupby(['grp_id', 'sample'])['nmb'].max().groupby('grp_id').mean()
    np.testing.assert_allclose(res.evpi['enmbpi'].to_numpy(), expected_enmbpi.to_numpy())

    expected_enmb = work.groupby(['grp_id', 'strategy_id'])['nmb'].mean()
    np.testing.assert_allclose(res.nmb['enmb'].to_numpy(), expected_enmb.to_numpy())
    expected_upper = work.groupby(['grp_id', 'strategy_id'])['nmb'].quantile(0.975)
    np.testing.assert_allclose(res.nmb['unmb'].to_numpy(), expected_upper.to_numpy())


def test_ties_go_to_first_listed_strategy():
    df = pd.DataFrame({
        'sample': [1, 1, 2, 2],
        'strategy_id': ['b', 'a', 'b', 'a'],
        'qalys': [1.0, 1.0, 2.0, 2.0],
        'costs': [5.0, 5.0, 7.0, 7.0],
    })
    res = cea(_draws(df, grp=None), k=[100])
    assert list(res.mce['strategy_id']) == ['a', 'b']
    np.testing.assert_array_equal(res.mce['prob'], [1.0, 0.0])
    np.testing.assert_array_equal(res.mce['best'], [1, 0])

    # Categorical order overrides the alphabetical one
    df['strategy_id'] = pd.Categorical(df['strategy_id'], categories=['b', 'a'])
    res = cea(_draws(df, grp=None), k=[100])
    assert list(res.mce['strategy_id']) == ['b', 'a']
    np.testing.assert_array_equal(res.mce['prob'], [1.0, 0.0])
    assert list(res.evpi['best']) == ['b']


def test_repeated_calls_are_identical(psa_df):
    draws = _draws(psa_df)
    first = cea(draws, k=WTP)
    second = cea(draws, k=WTP)
    for name in ('summary', 'mce', 'evpi', 'nmb'):
        pd.testing.assert_frame_equal(getattr(first, name), getattr(second, name), check_exact=True)


def test_row_order_of_input_does_not_matter(psa_df):
    shuffled = psa_df.sample(frac=1.0, random_state=99)
    a = cea(_draws(psa_df), k=WTP)
    b = cea(_draws(shuffled), k=WTP)
    pd.testing.assert_frame_equal(a.mce, b.mce)
    pd.testing.assert_frame_equal(a.evpi, b.evpi)


def test_missing_draws_propagate_as_nan(psa_df):
    mask = (psa_df['grp_id'] == 2) & (psa_df['sample'] == 5) & (psa_df['strategy_id'] == 1)
    psa_df.loc[mask, 'costs'] = np.nan
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        res = cea(_draws(psa_df), k=[0, 20000])

    grp2 = res.mce['grp_id'] == 2
    assert res.mce.loc[grp2, 'prob'].isna().all()
    assert not res.mce.loc[~grp2, 'prob'].isna().any()
    assert (res.mce.loc[grp2, 'best'] == 0).all()

    evpi_grp2 = res.evpi[res.evpi['grp_id'] == 2]
    assert evpi_grp2['best'].isna().all()
    assert evpi_grp2['evpi'].isna().all()
    assert not res.evpi.loc[res.evpi['grp_id'] == 1, 'evpi'].isna().any()


def test_unbalanced_panel_raises(psa_df):
    with pytest.raises(PanelImbalanceError):
        cea(_draws(psa_df.iloc[:-1]), k=WTP)


@pytest.mark.parametrize("k", [[-1, 0, 100], [0, np.inf], [], [[0, 1], [2, 3]]])
def test_invalid_wtp_grid_raises(psa_df, k):
    with pytest.raises(ValueError):
        cea(_draws(psa_df), k=k)


def test_default_wtp_grid(two_strategy_df):
    res = cea(_draws(two_strategy_df, grp=None))
    ks = res.evpi['k'].to_numpy()
    assert ks[0] == 0 and ks[-1] == 200000
    assert len(ks) == 401
