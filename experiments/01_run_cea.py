#!/usr/bin/env python3
"""Experiment 01: Cost-Effectiveness Summary of a PSA

Runs both analyses on a table of probabilistic sensitivity analysis draws:

- All-strategy CEA: MCE probabilities with the CEAF flag, EVPI, and NMB by
  willingness-to-pay threshold.
- Pairwise CEA against the configured comparator: incremental draws, CEAC,
  incremental NMB, and the ICER table with dominance labels.

Input:
- `data.draws` from the config (CSV or parquet). With `--simulate`, or when the
  file does not exist, a demo PSA with three strategies and two groups is
  drawn instead.

Outputs (results/tables/):
- cea_summary.csv, cea_mce.csv, cea_evpi.csv, cea_nmb.csv
- cea_pw_summary.csv, cea_pw_delta.csv, cea_pw_ceac.csv, cea_pw_inmb.csv
- icer.csv, icer_formatted.csv
- cea_run_summary.json
"""
import sys
import json
import argparse
from pathlib import Path
from datetime import datetime
from typing import Any, Dict

import numpy as np
import pandas as pd
from scipy import stats

# Add project root to path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from psacea.config import load_config, get_project_root
from psacea.common.thresholds import wtp_grid_from_config
from psacea.data.draws import draws_from_table
from psacea.decision.formatting import format_icer
from psacea.decision.icer import icer
from psacea.evaluation.cea import cea, cea_pw


# =============================================================================
# DEMO PSA
# =============================================================================

# Mean cost and QALYs per strategy for the demo PSA (group 2 is older/sicker)
DEMO_STRATEGIES = {
    1: {'name': 'Standard of care', 'cost': 12000.0, 'qalys': 8.0},
    2: {'name': 'Screening', 'cost': 15500.0, 'qalys': 8.1},
    3: {'name': 'Screening + treatment', 'cost': 24000.0, 'qalys': 8.25},
}
DEMO_GROUPS = {1: 'Age 40-64', 2: 'Age 65+'}


def _json_safe(value: Any) -> Any:
    """Recursively convert numpy/scalar types for JSON serialization."""
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return None if np.isnan(value) else float(value)
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def simulate_psa(n_samples: int, seed: int, columns: Dict[str, str]) -> pd.DataFrame:
    """
    Draw a demo PSA.

    Costs are lognormal (CV 15%) and QALYs normal (sd 0.25). Draws share a
    common per-sample shock so that strategies are positively correlated, as
    they are when the same parameter sample drives every strategy.
    """
    rng = np.random.default_rng(seed)
    rows = []
    for grp_id in DEMO_GROUPS:
        cost_shock = stats.norm.rvs(size=n_samples, random_state=rng)
        qaly_shock = stats.norm.rvs(size=n_samples, random_state=rng)
        for strategy_id, params in DEMO_STRATEGIES.items():
            sigma = 0.15
            scale = params['cost'] * (1.0 + 0.2 * (grp_id - 1))
            z = 0.8 * cost_shock + 0.6 * stats.norm.rvs(size=n_samples, random_state=rng)
            costs = stats.lognorm.ppf(stats.norm.cdf(z), s=sigma, scale=scale * np.exp(-sigma ** 2 / 2))
            qalys = (params['qalys'] - 1.5 * (grp_id - 1)
                     + 0.25 * (0.8 * qaly_shock + 0.6 * stats.norm.rvs(size=n_samples, random_state=rng)))
            rows.append(pd.DataFrame({
                columns['sample']: np.arange(1, n_samples + 1),
                columns['strategy']: strategy_id,
                columns['grp']: grp_id,
                columns['e']: qalys,
                columns['c']: costs,
            }))
    return pd.concat(rows, ignore_index=True)


def load_draws(path: Path) -> pd.DataFrame:
    if path.suffix == '.parquet':
        return pd.read_parquet(path)
    return pd.read_csv(path)


def _save_table(df: pd.DataFrame, output_dir: Path, name: str):
    path = output_dir / f"{name}.csv"
    df.to_csv(path, index=False)
    print(f"✓ Saved: {path.name} ({len(df)} rows)")


# =============================================================================
# MAIN
# =============================================================================

def main():
    parser = argparse.ArgumentParser(description='Experiment 01: PSA cost-effectiveness summary')
    parser.add_argument('--config', type=str, default='config/config_default.yaml',
                       help='Path to config file')
    parser.add_argument('--draws', type=str, default=None,
                       help='PSA draws file (CSV or parquet); overrides data.draws')
    parser.add_argument('--simulate', action='store_true',
                       help='Use a simulated demo PSA instead of a draws file')
    parser.add_argument('--comparator', type=int, default=None,
                       help='Comparator strategy id; overrides the config')
    parser.add_argument('--output-dir', type=str, default=None,
                       help='Directory for output tables')
    args = parser.parse_args()

    config = load_config(args.config)
    columns = config['columns']
    k = wtp_grid_from_config(config)
    comparator = args.comparator if args.comparator is not None else config.get('comparator', 1)
    icer_cfg = config.get('icer', {})

    print("\n" + "="*70)
    print("PSA COST-EFFECTIVENESS SUMMARY")
    print("="*70)

    draws_path = get_project_root() / (args.draws or config['data']['draws'])
    labels = None
    if args.simulate or not draws_path.exists():
        sim = config.get('simulation', {})
        if not args.simulate:
            print(f"⚠ Draws file not found: {draws_path}")
        print(f"Simulating demo PSA ({sim.get('n_samples', 1000)} samples, seed {sim.get('seed', 0)})...")
        df = simulate_psa(sim.get('n_samples', 1000), sim.get('seed', 0), columns)
        labels = {
            columns['strategy']: {sid: p['name'] for sid, p in DEMO_STRATEGIES.items()},
            columns['grp']: DEMO_GROUPS,
        }
        source = 'simulated'
    else:
        print(f"Loading draws from {draws_path}...")
        df = load_draws(draws_path)
        source = str(draws_path)
    print(f"Loaded {len(df)} draws")

    draws = draws_from_table(
        df,
        sample=columns['sample'],
        strategy=columns['strategy'],
        grp=columns.get('grp'),
        e=columns['e'],
        c=columns['c'],
    )

    print("\n" + "-"*70)
    print("Step 1: All-strategy analysis (MCE, EVPI, NMB)")
    print("-"*70)
    res = cea(draws, k=k, verbose=True)

    print("\n" + "-"*70)
    print(f"Step 2: Pairwise analysis vs strategy {comparator}")
    print("-"*70)
    res_pw = cea_pw(draws, comparator=comparator, k=k, verbose=True)

    print("\n" + "-"*70)
    print("Step 3: ICER table")
    print("-"*70)
    icer_k = icer_cfg.get('k', 50000)
    icer_prob = icer_cfg.get('prob', 0.95)
    tbl = icer(res_pw, prob=icer_prob, k=icer_k, labels=labels)
    formatted = format_icer(tbl)
    print(formatted.to_string(index=False))

    output_dir = Path(args.output_dir) if args.output_dir else get_project_root() / config['output']['tables']
    output_dir.mkdir(parents=True, exist_ok=True)
    print()
    _save_table(res.summary, output_dir, 'cea_summary')
    _save_table(res.mce, output_dir, 'cea_mce')
    _save_table(res.evpi, output_dir, 'cea_evpi')
    _save_table(res.nmb, output_dir, 'cea_nmb')
    _save_table(res_pw.summary, output_dir, 'cea_pw_summary')
    _save_table(res_pw.delta, output_dir, 'cea_pw_delta')
    _save_table(res_pw.ceac, output_dir, 'cea_pw_ceac')
    _save_table(res_pw.inmb, output_dir, 'cea_pw_inmb')
    _save_table(tbl, output_dir, 'icer')
    _save_table(formatted, output_dir, 'icer_formatted')

    # Headline numbers at the ICER threshold
    at_k = res.evpi[res.evpi['k'] == float(icer_k)]
    output = {
        'timestamp': datetime.now().isoformat(),
        'source': source,
        'n_draws': len(df),
        'strategies': draws.strategies,
        'groups': draws.groups,
        'comparator': comparator,
        'comparator_pos': res_pw.comparator_pos,
        'wtp': {'start': k[0], 'stop': k[-1], 'n': len(k)},
        'icer': {'k': icer_k, 'prob': icer_prob},
        'at_icer_threshold': {
            str(row[draws.grp]): {
                'best': row['best'],
                'enmb_best': row['enmbci'],
                'evpi': row['evpi'],
            }
            for _, row in at_k.iterrows()
        },
        'dominance': tbl.loc[tbl['outcome'] == 'ICER', ['strategy', 'grp', 'dominance']]
                        .astype(str).to_dict(orient='records'),
    }
    json_path = output_dir / 'cea_run_summary.json'
    with open(json_path, 'w') as f:
        json.dump(_json_safe(output), f, indent=2)

    print(f"\n✓ Results saved to: {json_path}")


if __name__ == '__main__':
    main()
