"""Fixed fractional-risk position sizing.

Shares are sized so that a stop-out loses a fixed percent of the account,
then clamped so the position never exceeds a percent of the account.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from .exceptions import InvalidPercent, InvalidStopLoss
from .models import SizingSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SizingResult:
    """Output of a sizing calculation."""
    shares: int
    entry_price: float
    stop_loss: float
    risk_per_share: float
    dollar_risk: float
    max_position_size: float
    position_size: float
    actual_risk: float
    actual_risk_percent: float
    percent_of_account: float
    stop_distance_percent: float
    is_limited: bool
    account_size: float

    def to_snapshot(self, risk_percent: float) -> SizingSnapshot:
        """Freeze the figures a trade keeps from its sizing."""
        return SizingSnapshot(
            account_size=self.account_size,
            shares=self.shares,
            position_size=self.position_size,
            risk_percent=risk_percent,
            percent_of_account=self.percent_of_account
        )

    def to_dict(self) -> Dict:
        return asdict(self)


def _check_percent(name: str, value: float) -> None:
    if not 0 < value <= 100:
        raise InvalidPercent(name, value)


def size_position(
    account_size: Optional[float],
    risk_percent: Optional[float],
    max_percent: Optional[float],
    entry_price: Optional[float],
    stop_loss: Optional[float]
) -> Optional[SizingResult]:
    """Compute a risk-based position size clamped to an account percentage.

    Args:
        account_size: Account equity
        risk_percent: Percent of equity lost if the stop is hit
        max_percent: Maximum position value as percent of equity
        entry_price: Planned entry price per share
        stop_loss: Initial stop price per share

    Returns:
        SizingResult, or None while any input is absent or not positive

    Raises:
        InvalidPercent: If risk_percent or max_percent exceed 100
        InvalidStopLoss: If stop_loss is at or above entry_price
    """
    inputs = {
        'account_size': account_size,
        'risk_percent': risk_percent,
        'max_percent': max_percent,
        'entry_price': entry_price,
        'stop_loss': stop_loss,
    }
    missing = [name for name, value in inputs.items() if value is None or value <= 0]
    if missing:
        # Not yet computable, callers show an empty state
        logger.debug(f"Sizing skipped, missing inputs: {missing}")
        return None

    _check_percent('risk_percent', risk_percent)
    _check_percent('max_percent', max_percent)

    if stop_loss >= entry_price:
        raise InvalidStopLoss(entry_price, stop_loss)

    risk_per_share = entry_price - stop_loss
    dollar_risk = account_size * risk_percent / 100

    raw_shares = int(math.floor(dollar_risk / risk_per_share))
    raw_position_size = raw_shares * entry_price

    max_position_size = account_size * max_percent / 100

    if raw_position_size > max_position_size:
        shares = int(math.floor(max_position_size / entry_price))
        is_limited = True
        logger.debug(f"Position clamped from {raw_shares} to {shares} shares "
                     f"(max {max_percent}% of account)")
    else:
        shares = raw_shares
        is_limited = False

    position_size = shares * entry_price
    actual_risk = shares * risk_per_share

    return SizingResult(
        shares=shares,
        entry_price=entry_price,
        stop_loss=stop_loss,
        risk_per_share=risk_per_share,
        dollar_risk=dollar_risk,
        max_position_size=max_position_size,
        position_size=position_size,
        actual_risk=actual_risk,
        actual_risk_percent=actual_risk / account_size * 100,
        percent_of_account=position_size / account_size * 100,
        stop_distance_percent=risk_per_share / entry_price * 100,
        is_limited=is_limited,
        account_size=account_size
    )
