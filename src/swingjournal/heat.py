"""Portfolio open heat: dollar risk still exposed across active trades."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List

from .executor import get_current_position
from .models import Trade, is_exit

logger = logging.getLogger(__name__)

# Percent-of-account thresholds for the heat levels
LOW_HEAT_BELOW = 1.0
MED_HEAT_BELOW = 4.0


class RiskLevel(str, Enum):
    """Open heat classification."""
    CASH = "CASH"
    FREEROLLED = "FREEROLLED"
    LOW = "LOW"
    MED = "MED"
    HIGH = "HIGH"


@dataclass
class TradeRisk:
    """One active trade's contribution to open heat."""
    trade_id: str
    ticker: str
    shares_at_risk: int
    risk_per_share: float
    risk: float
    freerolled: bool


@dataclass
class HeatResult:
    """Aggregate open risk across the journal."""
    total_risk: float
    percent: float
    level: RiskLevel
    active_count: int
    freerolled_count: int
    breakdown: List[TradeRisk] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'total_risk': self.total_risk,
            'percent': self.percent,
            'level': self.level.value,
            'active_count': self.active_count,
            'freerolled_count': self.freerolled_count,
            'breakdown': [vars(r) for r in self.breakdown]
        }


def is_freerolled(trade: Trade) -> bool:
    """True once any ladder target has been taken on an enabled plan.

    Taking partial profit is assumed to have protected the rest of the
    position; the current stop is not consulted.
    """
    plan = trade.sell_plan
    if plan is None or not plan.enabled:
        return False
    return any(t.is_executed and not is_exit(t.r_level) for t in plan.targets)


def _trade_risk(trade: Trade) -> TradeRisk:
    if is_freerolled(trade):
        return TradeRisk(trade.id, trade.ticker, 0, 0.0, 0.0, True)

    if trade.sell_plan is not None:
        shares = get_current_position(trade).remaining
    elif trade.snapshot is not None:
        # Point-in-time share count from sizing
        shares = trade.snapshot.shares
    else:
        shares = 0

    risk_per_share = trade.entry_price - trade.current_stop_loss
    if risk_per_share <= 0:
        # Stop at or above entry
        return TradeRisk(trade.id, trade.ticker, shares, 0.0, 0.0, False)

    return TradeRisk(
        trade_id=trade.id,
        ticker=trade.ticker,
        shares_at_risk=shares,
        risk_per_share=risk_per_share,
        risk=shares * risk_per_share,
        freerolled=False
    )


def classify(percent: float, active_count: int) -> RiskLevel:
    """Map open heat percent to a risk level."""
    if active_count == 0:
        return RiskLevel.CASH
    if percent == 0:
        return RiskLevel.FREEROLLED
    if percent < LOW_HEAT_BELOW:
        return RiskLevel.LOW
    if percent < MED_HEAT_BELOW:
        return RiskLevel.MED
    return RiskLevel.HIGH


def aggregate_risk(account_size: float, trades: Iterable[Trade]) -> HeatResult:
    """Compute open heat for the journal.

    Args:
        account_size: Account equity
        trades: Every trade in the journal, archived and closed included

    Returns:
        HeatResult; CASH with zero risk when account_size is not positive
    """
    if account_size is None or account_size <= 0:
        return HeatResult(total_risk=0.0, percent=0.0, level=RiskLevel.CASH,
                          active_count=0, freerolled_count=0)

    active = [t for t in trades if t.is_active]
    breakdown = [_trade_risk(t) for t in active]

    total_risk = sum(r.risk for r in breakdown)
    percent = total_risk / account_size * 100
    level = classify(percent, len(active))

    logger.debug(f"Open heat {total_risk:.2f} ({percent:.2f}%) across "
                 f"{len(active)} active trades: {level.value}")

    return HeatResult(
        total_risk=total_risk,
        percent=percent,
        level=level,
        active_count=len(active),
        freerolled_count=sum(1 for r in breakdown if r.freerolled),
        breakdown=breakdown
    )
