"""Shared PSA fixtures for the test modules."""
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add project root to path
project_root = Path(__file__).resolve().parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def two_strategy_df() -> pd.DataFrame:
    """One group, two strategies, three identical samples per strategy.

    Strategy 1: cost 10, effect 1. Strategy 2: cost 20, effect 2.
    """
    return pd.DataFrame({
        'sample': [1, 2, 3, 1, 2, 3],
        'strategy_id': [1, 1, 1, 2, 2, 2],
        'qalys': [1.0, 1.0, 1.0, 2.0, 2.0, 2.0],
        'costs': [10.0, 10.0, 10.0, 20.0, 20.0, 20.0],
    })


@pytest.fixture
def psa_df() -> pd.DataFrame:
    """Random PSA: 2 groups x 3 strategies x 200 samples, rows shuffled."""
    rng = np.random.default_rng(20251025)
    n_samples = 200
    rows = []
    for grp_id in (1, 2):
        for strategy_id, (mu_c, mu_e) in enumerate([(5000, 8.0), (9000, 8.3), (15000, 8.5)], start=1):
            costs = rng.lognormal(np.log(mu_c * grp_id), 0.1, n_samples)
            qalys = rng.normal(mu_e - 0.5 * grp_id, 0.3, n_samples)
            for s in range(n_samples):
                rows.append({
                    'sample': s + 1,
                    'strategy_id': strategy_id,
                    'grp_id': grp_id,
                    'qalys': qalys[s],
                    'costs': costs[s],
                })
    df = pd.DataFrame(rows)
    return df.sample(frac=1.0, random_state=7).reset_index(drop=True)
