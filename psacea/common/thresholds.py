"""
Willingness-to-pay threshold utilities.

This module provides standardized construction and validation of the
willingness-to-pay (WTP) grid so that every summary (NMB, MCE, EVPI, CEAC)
is evaluated on the same ordered sequence of thresholds.
"""
from numbers import Real
from typing import Any, Dict, Iterable, Union

import numpy as np


DEFAULT_WTP_START = 0.0
DEFAULT_WTP_STOP = 200000.0
DEFAULT_WTP_STEP = 500.0


def default_wtp_grid(
    start: float = DEFAULT_WTP_START,
    stop: float = DEFAULT_WTP_STOP,
    step: float = DEFAULT_WTP_STEP,
) -> np.ndarray:
    """
    Build an evenly spaced WTP grid including both endpoints.

    Args:
        start: First threshold (default: 0)
        stop: Last threshold, included when it lies on the grid (default: 200000)
        step: Spacing between thresholds (default: 500)

    Returns:
        1-D float array of thresholds

    Examples:
        >>> default_wtp_grid(0, 1000, 500)
        array([   0.,  500., 1000.])
    """
    if step <= 0:
        raise ValueError(f"WTP step must be positive, got {step}")
    if stop < start:
        raise ValueError(f"WTP stop ({stop}) must not be below start ({start})")
    n = int(np.floor((stop - start) / step + 1e-9)) + 1
    return validate_wtp_grid(start + step * np.arange(n, dtype=float))


def validate_wtp_grid(k: Union[Real, Iterable[Real]]) -> np.ndarray:
    """
    Validate a WTP grid and return it as a 1-D float array.

    A scalar is promoted to a one-element grid. The order of the thresholds is
    preserved; it determines the row order of every output table.

    Raises:
        TypeError: If the grid is not numeric
        ValueError: If the grid is empty, not 1-D, or contains negative or
            non-finite values
    """
    try:
        grid = np.atleast_1d(np.asarray(k, dtype=float))
    except (TypeError, ValueError) as exc:
        raise TypeError(f"WTP grid must be numeric, got {k!r}") from exc

    if grid.ndim != 1:
        raise ValueError(f"WTP grid must be one-dimensional, got shape {grid.shape}")
    if grid.size == 0:
        raise ValueError("WTP grid must contain at least one threshold")
    if not np.isfinite(grid).all():
        raise ValueError(f"WTP grid contains non-finite values: {grid[~np.isfinite(grid)]}")
    if (grid < 0).any():
        raise ValueError(f"WTP grid contains negative values: {grid[grid < 0]}")
    return grid


def wtp_grid_from_config(cfg: Dict[str, Any]) -> np.ndarray:
    """Build the WTP grid from the `wtp` section of a loaded config."""
    wtp = cfg.get('wtp', {}) if cfg else {}
    return default_wtp_grid(
        start=float(wtp.get('start', DEFAULT_WTP_START)),
        stop=float(wtp.get('stop', DEFAULT_WTP_STOP)),
        step=float(wtp.get('step', DEFAULT_WTP_STEP)),
    )
