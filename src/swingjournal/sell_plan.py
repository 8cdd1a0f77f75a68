"""R-level sell plan generation.

Each rung sells a fraction of whatever is still held, so share counts
depend on the order the rungs are applied. The loop below must stay
sequential with a floor at every step.
"""

import logging
import math
from fractions import Fraction
from typing import List, Tuple

from .exceptions import InvalidStopLoss
from .models import SellPlan, Target

logger = logging.getLogger(__name__)

# (R-multiple, fraction of remaining shares sold at that level)
LADDER: List[Tuple[int, Fraction]] = [
    (1, Fraction(1, 2)),
    (2, Fraction(1, 3)),
    (3, Fraction(1, 4)),
    (4, Fraction(1, 5)),
]


def target_price(entry_price: float, stop_loss: float, r_level: int) -> float:
    """Price at which a position is up r_level times its initial risk."""
    return round(entry_price + (entry_price - stop_loss) * r_level, 2)


def generate_plan(shares: int, entry_price: float, stop_loss: float) -> SellPlan:
    """Build the exit ladder for a sized position.

    Args:
        shares: Initial share count (must be positive)
        entry_price: Entry price per share
        stop_loss: Initial stop price per share

    Returns:
        SellPlan with one pending target per ladder rung and the runner

    Raises:
        ValueError: If shares is not positive
        InvalidStopLoss: If stop_loss is at or above entry_price
    """
    if shares <= 0:
        raise ValueError(f"Cannot build a sell plan for {shares} shares")
    if stop_loss >= entry_price:
        raise InvalidStopLoss(entry_price, stop_loss)

    remaining = shares
    targets = []

    for r_level, fraction in LADDER:
        planned = math.floor(remaining * fraction)
        remaining -= planned

        targets.append(Target(
            r_level=r_level,
            portion=f"{fraction.numerator}/{fraction.denominator}",
            target_price=target_price(entry_price, stop_loss, r_level),
            planned_shares=planned
        ))

    logger.debug(f"Sell plan for {shares} shares: "
                 f"{[t.planned_shares for t in targets]} + runner {remaining}")

    return SellPlan(
        enabled=True,
        initial_shares=shares,
        targets=targets,
        runner=remaining
    )
