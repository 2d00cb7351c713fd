"""Interval statistics shared by the summary tables."""
from numbers import Real
from typing import Tuple

import numpy as np


DEFAULT_LOWER = 0.025
DEFAULT_UPPER = 0.975


def ci_alpha(prob: float) -> Tuple[float, float]:
    """
    Convert a confidence level into lower/upper quantile tails.

    Args:
        prob: Confidence level in the open interval (0, 1), e.g. 0.95

    Returns:
        (lower, upper) quantile probabilities, e.g. (0.025, 0.975)
    """
    if isinstance(prob, bool) or not isinstance(prob, Real):
        raise TypeError(f"'prob' must be numeric, got {prob!r}")
    if not 0 < prob < 1:
        raise ValueError("'prob' must be in the interval (0,1)")
    lower = (1 - prob) / 2
    return lower, 1 - lower


def interval_stats(
    values: np.ndarray,
    axis: int,
    lower: float = DEFAULT_LOWER,
    upper: float = DEFAULT_UPPER,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Mean and empirical quantiles of `values` along `axis`.

    Quantiles use linear interpolation between order statistics. NaN values
    are not dropped: any NaN in a slice makes all three statistics NaN.

    Returns:
        Tuple of (mean, lower quantile, upper quantile) arrays
    """
    mean = np.mean(values, axis=axis)
    lo, hi = np.quantile(values, [lower, upper], axis=axis)
    return mean, lo, hi
