"""
Cost-Effectiveness Visualizations
=================================
4 publication-ready plots from the tables written by 01_run_cea.py:

- Cost-effectiveness plane (incremental draws vs the comparator)
- Cost-effectiveness acceptability curves (CEAC)
- Acceptability curves for all strategies with the frontier (CEAF)
- Expected value of perfect information (EVPI)

Input:  results/tables/
Output: results/figures/cea/
"""

import json
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
import warnings
warnings.filterwarnings('ignore')

# Publication-ready styling
plt.rcParams['figure.dpi'] = 300
plt.rcParams['savefig.dpi'] = 300
plt.rcParams['font.family'] = 'serif'
plt.rcParams['font.size'] = 10
plt.rcParams['axes.labelsize'] = 11
plt.rcParams['axes.titlesize'] = 12
plt.rcParams['xtick.labelsize'] = 9
plt.rcParams['ytick.labelsize'] = 9
plt.rcParams['legend.fontsize'] = 9

COLORS = {
    'frontier': '#000000',
    'evpi': '#0072B2',
    'threshold': '#FF8C00',
}


def load_tables():
    """Load result tables and the run summary."""
    base_path = Path(__file__).parent.parent / 'results/tables'

    tables = {
        name: pd.read_csv(base_path / f'{name}.csv')
        for name in ('cea_mce', 'cea_evpi', 'cea_pw_delta', 'cea_pw_ceac')
    }
    with open(base_path / 'cea_run_summary.json') as f:
        run_summary = json.load(f)

    return tables, run_summary


def strategy_palette(strategies):
    """One color per strategy, fixed across every plot."""
    colors = sns.color_palette('colorblind', n_colors=len(strategies))
    return {s: colors[i] for i, s in enumerate(strategies)}


def _save(fig, output_path, name):
    plt.tight_layout()
    fig.savefig(output_path / f'{name}.png', dpi=300, bbox_inches='tight')
    fig.savefig(output_path / f'{name}.pdf', bbox_inches='tight')
    plt.close(fig)
    print(f"✓ Saved: {name}.png & .pdf")


def _group_axes(groups, sharey=True):
    fig, axes = plt.subplots(1, len(groups), figsize=(6 * len(groups), 5), squeeze=False, sharey=sharey)
    return fig, axes[0]


def plot_ce_plane(delta, run_summary, palette, output_path):
    """
    Scatter of incremental QALYs vs incremental costs per PSA sample,
    with the willingness-to-pay line through the origin.
    """
    strategy_col, grp_col = delta.columns[1], delta.columns[2]
    groups = list(dict.fromkeys(delta[grp_col]))
    k = run_summary['icer']['k']

    fig, axes = _group_axes(groups, sharey=False)
    for ax, grp in zip(axes, groups):
        df_grp = delta[delta[grp_col] == grp]
        sns.scatterplot(data=df_grp, x='ie', y='ic', hue=strategy_col, palette=palette,
                        s=8, alpha=0.4, linewidth=0, ax=ax)
        # Means per strategy
        means = df_grp.groupby(strategy_col)[['ie', 'ic']].mean()
        ax.scatter(means['ie'], means['ic'], s=80, marker='D',
                   color=[palette[s] for s in means.index], edgecolor='black', zorder=10)

        xlim = np.array(ax.get_xlim())
        ax.plot(xlim, k * xlim, color=COLORS['threshold'], linestyle='--',
                linewidth=1.5, label=f'WTP = {k:,.0f}')
        ax.axhline(0, color='grey', linewidth=0.8)
        ax.axvline(0, color='grey', linewidth=0.8)
        ax.set_xlim(xlim)

        ax.set_xlabel('Incremental QALYs', fontweight='bold')
        ax.set_ylabel('Incremental costs', fontweight='bold')
        ax.set_title(f'Group {grp}', fontweight='bold')
        ax.legend(loc='upper left', framealpha=0.9, title='Strategy')
        ax.grid(alpha=0.3)

    fig.suptitle(f"Cost-Effectiveness Plane vs Strategy {run_summary['comparator']}",
                 fontweight='bold')
    _save(fig, output_path, 'ce_plane')


def plot_ceac(ceac, palette, output_path):
    """Probability each strategy is cost-effective vs the comparator."""
    strategy_col, grp_col = ceac.columns[1], ceac.columns[2]
    groups = list(dict.fromkeys(ceac[grp_col]))

    fig, axes = _group_axes(groups)
    for ax, grp in zip(axes, groups):
        sns.lineplot(data=ceac[ceac[grp_col] == grp], x='k', y='prob', hue=strategy_col,
                     palette=palette, linewidth=2, ax=ax)
        ax.set_xlabel('Willingness to pay', fontweight='bold')
        ax.set_ylabel('Pr(cost-effective)', fontweight='bold')
        ax.set_title(f'Group {grp}', fontweight='bold')
        ax.set_ylim([0, 1])
        ax.grid(alpha=0.3)

    fig.suptitle('Cost-Effectiveness Acceptability Curves', fontweight='bold')
    _save(fig, output_path, 'ceac')


def plot_ceaf(mce, palette, output_path):
    """
    Probability each strategy is the most cost-effective, with the frontier
    traced over the strategy with the highest expected NMB.
    """
    strategy_col, grp_col = mce.columns[1], mce.columns[2]
    groups = list(dict.fromkeys(mce[grp_col]))

    fig, axes = _group_axes(groups)
    for ax, grp in zip(axes, groups):
        df_grp = mce[mce[grp_col] == grp]
        sns.lineplot(data=df_grp, x='k', y='prob', hue=strategy_col,
                     palette=palette, linewidth=1.5, ax=ax)

        frontier = df_grp[df_grp['best'] == 1].sort_values('k')
        ax.scatter(frontier['k'], frontier['prob'], s=6, color=COLORS['frontier'],
                   label='Frontier', zorder=10)

        ax.set_xlabel('Willingness to pay', fontweight='bold')
        ax.set_ylabel('Pr(most cost-effective)', fontweight='bold')
        ax.set_title(f'Group {grp}', fontweight='bold')
        ax.set_ylim([0, 1])
        ax.legend(loc='best', framealpha=0.9)
        ax.grid(alpha=0.3)

    fig.suptitle('Cost-Effectiveness Acceptability Frontier', fontweight='bold')
    _save(fig, output_path, 'ceaf')


def plot_evpi(evpi, output_path):
    """Expected value of perfect information by willingness to pay."""
    grp_col = evpi.columns[0]

    fig, ax = plt.subplots(figsize=(8, 5))
    sns.lineplot(data=evpi, x='k', y='evpi', hue=grp_col, palette='colorblind',
                 linewidth=2, ax=ax)

    peak = evpi.loc[evpi['evpi'].idxmax()]
    ax.annotate(f"max {peak['evpi']:,.0f}\n(k = {peak['k']:,.0f})",
                xy=(peak['k'], peak['evpi']), xytext=(10, -25), textcoords='offset points',
                fontsize=8, arrowprops=dict(arrowstyle='->', color=COLORS['evpi']))

    ax.set_xlabel('Willingness to pay', fontweight='bold')
    ax.set_ylabel('EVPI per person', fontweight='bold')
    ax.set_title('Expected Value of Perfect Information', fontweight='bold', pad=15)
    ax.legend(loc='upper left', framealpha=0.9, title='Group')
    ax.grid(alpha=0.3)

    _save(fig, output_path, 'evpi')


def main():
    """Generate all 4 cost-effectiveness plots."""
    print("\n" + "="*70)
    print("COST-EFFECTIVENESS VISUALIZATIONS")
    print("="*70 + "\n")

    output_path = Path(__file__).parent.parent / 'results/figures/cea'
    output_path.mkdir(parents=True, exist_ok=True)

    print("Loading tables...")
    tables, run_summary = load_tables()
    print(f"  • Loaded {len(tables['cea_pw_delta'])} incremental draws")
    print()

    # Colors keyed by every strategy so the comparator keeps its slot
    strategies = tables['cea_mce'].iloc[:, 1].drop_duplicates().tolist()
    palette = strategy_palette(strategies)

    print("Generating plots...")
    print("-" * 70)

    plot_ce_plane(tables['cea_pw_delta'], run_summary, palette, output_path)
    plot_ceac(tables['cea_pw_ceac'], palette, output_path)
    plot_ceaf(tables['cea_mce'], palette, output_path)
    plot_evpi(tables['cea_evpi'], output_path)

    print("-" * 70)
    print(f"\n✅ SUCCESS: All 4 cost-effectiveness plots saved to:")
    print(f"   {output_path}\n")


if __name__ == '__main__':
    main()
