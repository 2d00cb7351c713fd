"""
Strided reduction kernels over the (threshold x group x strategy x sample) grid.

Draws arrive as flat float arrays sorted so that a fixed stride pattern
addresses every (group, sample, strategy) cell:

- MCE / EVPI: sorted by (group, sample, strategy), viewed as
  (n_grps, n_samples, n_strategies)
- CEAC: incremental draws sorted by (group, strategy, sample), viewed as
  (n_grps, n_strategies, n_samples)

Each kernel allocates its scratch buffers (net benefit, NaN mask, winners)
once, sized to a single threshold slice, and reuses them for every k, so
memory never grows with the number of thresholds. Results are written into a pre-allocated flat output array.

NaN handling: a (k, group) slice containing any NaN net benefit yields NaN
for that slice rather than a probability computed from the remaining draws.
"""
import numpy as np


def _strided(values, shape) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    expected = int(np.prod(shape))
    if arr.size != expected:
        raise ValueError(f"Expected {expected} draws for shape {shape}, got {arr.size}")
    return arr.reshape(shape)


def mce_probabilities(
    k: np.ndarray,
    e,
    c,
    n_samples: int,
    n_strategies: int,
    n_grps: int,
) -> np.ndarray:
    """
    Probability that each strategy is the most cost-effective.

    For every threshold, group and sample the strategy with the largest
    net monetary benefit receives one vote (first-listed strategy wins exact
    ties); votes are divided by the number of samples.

    Args:
        k: WTP grid
        e, c: Effects and costs sorted by (group, sample, strategy)
        n_samples, n_strategies, n_grps: Panel dimensions

    Returns:
        Flat array of length len(k) * n_grps * n_strategies ordered by
        (k, group, strategy)
    """
    shape = (n_grps, n_samples, n_strategies)
    e = _strided(e, shape)
    c = _strided(c, shape)

    cell_size = n_grps * n_strategies
    prob = np.empty(len(k) * cell_size)
    nmb = np.empty(shape)
    missing = np.empty(shape, dtype=bool)
    winners = np.empty((n_grps, n_samples), dtype=np.intp)
    offsets = (np.arange(n_grps, dtype=np.intp) * n_strategies)[:, None]

    for i, wtp in enumerate(k):
        np.multiply(e, wtp, out=nmb)
        np.subtract(nmb, c, out=nmb)
        np.argmax(nmb, axis=2, out=winners)
        np.add(winners, offsets, out=winners)
        counts = np.bincount(winners.ravel(), minlength=cell_size)
        out = prob[i * cell_size:(i + 1) * cell_size].reshape(n_grps, n_strategies)
        np.divide(counts.reshape(n_grps, n_strategies), n_samples, out=out)
        np.isnan(nmb, out=missing)
        out[missing.any(axis=(1, 2))] = np.nan
    return prob


def enmb_perfect_info(
    k: np.ndarray,
    e,
    c,
    n_samples: int,
    n_strategies: int,
    n_grps: int,
) -> np.ndarray:
    """
    Expected net monetary benefit under perfect information.

    Per sample the best strategy is chosen with hindsight; the maxima are
    averaged over samples.

    Returns:
        Flat array of length len(k) * n_grps ordered by (k, group)
    """
    shape = (n_grps, n_samples, n_strategies)
    e = _strided(e, shape)
    c = _strided(c, shape)

    enmbpi = np.empty(len(k) * n_grps)
    nmb = np.empty(shape)
    best = np.empty((n_grps, n_samples))

    for i, wtp in enumerate(k):
        np.multiply(e, wtp, out=nmb)
        np.subtract(nmb, c, out=nmb)
        np.max(nmb, axis=2, out=best)
        np.mean(best, axis=1, out=enmbpi[i * n_grps:(i + 1) * n_grps])
    return enmbpi


def ceac_probabilities(
    k: np.ndarray,
    ie,
    ic,
    n_samples: int,
    n_strategies: int,
    n_grps: int,
) -> np.ndarray:
    """
    Probability that each strategy is cost-effective relative to the comparator.

    A sample counts when k * ie - ic > 0; an incremental NMB of exactly zero
    does not.

    Args:
        k: WTP grid
        ie, ic: Incremental effects and costs sorted by (group, strategy, sample)
        n_samples, n_strategies, n_grps: Panel dimensions (strategies exclude
            the comparator)

    Returns:
        Flat array of length len(k) * n_grps * n_strategies ordered by
        (k, group, strategy)
    """
    shape = (n_grps, n_strategies, n_samples)
    ie = _strided(ie, shape)
    ic = _strided(ic, shape)

    cell_size = n_grps * n_strategies
    prob = np.empty(len(k) * cell_size)
    inmb = np.empty(shape)
    wins = np.empty(shape, dtype=bool)
    missing = np.empty(shape, dtype=bool)

    for i, wtp in enumerate(k):
        np.multiply(ie, wtp, out=inmb)
        np.subtract(inmb, ic, out=inmb)
        np.greater(inmb, 0, out=wins)
        out = prob[i * cell_size:(i + 1) * cell_size].reshape(n_grps, n_strategies)
        np.divide(np.count_nonzero(wins, axis=2), n_samples, out=out)
        np.isnan(inmb, out=missing)
        out[missing.any(axis=2)] = np.nan
    return prob
