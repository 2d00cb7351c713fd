"""
Dominance classification on the cost-effectiveness plane.

Every (sign of mean incremental cost, sign of mean incremental effect)
quadrant maps to exactly one rule in `QUADRANT_RULES`:

                 IE < 0              IE = 0              IE > 0
    IC > 0     Dominated           Dominated           by INMB
    IC = 0     Dominated           by INMB             by INMB
    IC < 0     by INMB             Dominates           Dominates

"by INMB" means Cost-effective when the mean incremental net monetary
benefit is >= 0 and Not cost-effective otherwise.
"""
import math
from enum import Enum
from typing import Dict, Optional, Tuple


class DominanceClass(Enum):
    """Position of a strategy relative to the comparator."""
    DOMINATES = "Dominates"
    DOMINATED = "Dominated"
    COST_EFFECTIVE = "Cost-effective"
    NOT_COST_EFFECTIVE = "Not cost-effective"


# (sign(IC), sign(IE)) -> fixed class, or None to decide by the sign of INMB
QUADRANT_RULES: Dict[Tuple[int, int], Optional[DominanceClass]] = {
    (1, -1): DominanceClass.DOMINATED,
    (1, 0): DominanceClass.DOMINATED,
    (1, 1): None,
    (0, -1): DominanceClass.DOMINATED,
    (0, 0): None,
    (0, 1): None,
    (-1, -1): None,
    (-1, 0): DominanceClass.DOMINATES,
    (-1, 1): DominanceClass.DOMINATES,
}


def _sign(x: float) -> int:
    return int(x > 0) - int(x < 0)


def classify_dominance(ic: float, ie: float, inmb: float) -> Optional[DominanceClass]:
    """
    Classify a strategy from mean incremental cost, effect and NMB.

    Args:
        ic: Mean incremental cost versus the comparator
        ie: Mean incremental effect versus the comparator
        inmb: Mean incremental net monetary benefit at the decision threshold

    Returns:
        DominanceClass, or None if any input is NaN
    """
    if any(math.isnan(v) for v in (ic, ie, inmb)):
        return None

    rule = QUADRANT_RULES[(_sign(ic), _sign(ie))]
    if rule is not None:
        return rule
    if inmb >= 0:
        return DominanceClass.COST_EFFECTIVE
    return DominanceClass.NOT_COST_EFFECTIVE
