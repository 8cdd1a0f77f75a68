"""Sell plan execution against a live trade.

Targets move pending -> executed and never back. Every action validates
first and only then writes, so a rejected action leaves the trade exactly
as it was.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from .exceptions import (
    InsufficientShares,
    NoPositionRemaining,
    NoSellPlan,
    TargetAlreadyExecuted,
    TargetNotFound,
)
from .models import (
    ExitLevel,
    RLevel,
    Sale,
    SellPlan,
    Target,
    TargetStatus,
    Trade,
    TradeStatus,
    format_r_level,
    is_exit,
)

logger = logging.getLogger(__name__)


@dataclass
class CurrentPosition:
    """Where a trade stands against its sell plan."""
    initial: int
    sold: int
    remaining: int
    completed_levels: int
    total_levels: int
    next_pending_target: Optional[Target]

    def to_dict(self) -> Dict:
        return {
            'initial': self.initial,
            'sold': self.sold,
            'remaining': self.remaining,
            'completed_levels': self.completed_levels,
            'total_levels': self.total_levels,
            'next_pending_target': (
                self.next_pending_target.to_json_dict()
                if self.next_pending_target else None
            )
        }


def _require_plan(trade: Trade) -> SellPlan:
    if trade.sell_plan is None:
        raise NoSellPlan(trade.id)
    return trade.sell_plan


def get_current_position(trade: Trade) -> CurrentPosition:
    """Summarize sold and remaining shares in one pass over the targets.

    Raises:
        NoSellPlan: If the trade has no sell plan
    """
    plan = _require_plan(trade)

    sold = 0
    completed = 0
    total = 0
    next_pending = None

    for target in plan.targets:
        ladder = not is_exit(target.r_level)
        if ladder:
            total += 1
        if target.is_executed:
            sold += target.shares_sold
            if ladder:
                completed += 1
        elif next_pending is None:
            next_pending = target

    return CurrentPosition(
        initial=plan.initial_shares,
        sold=sold,
        remaining=plan.initial_shares - sold,
        completed_levels=completed,
        total_levels=total,
        next_pending_target=next_pending
    )


def _status_after_sale(remaining: int, sold: int, current: TradeStatus) -> TradeStatus:
    if remaining == 0:
        return TradeStatus.CLOSED
    if sold > 0:
        return TradeStatus.PARTIALLY_CLOSED
    return current


def log_sale(
    trade: Trade,
    r_level: RLevel,
    shares: int,
    price: float,
    sale_date: date
) -> Target:
    """Record a partial sale against the pending target at r_level.

    Args:
        trade: Trade with a sell plan
        r_level: R-level of the target being filled
        shares: Shares sold (may differ from the planned count)
        price: Execution price
        sale_date: Execution date

    Returns:
        The executed target now stored in the plan

    Raises:
        NoSellPlan: If the trade has no sell plan
        TargetNotFound: If no target has that R-level
        TargetAlreadyExecuted: If the target is not pending
        InsufficientShares: If shares exceeds what remains
        ValueError: If shares is not positive
    """
    plan = _require_plan(trade)

    index = next(
        (i for i, t in enumerate(plan.targets) if t.r_level == r_level),
        None
    )
    if index is None:
        raise TargetNotFound(r_level)

    target = plan.targets[index]
    if target.status != TargetStatus.PENDING:
        raise TargetAlreadyExecuted(r_level)

    if shares <= 0:
        raise ValueError(f"Shares sold must be positive, got {shares}")

    position = get_current_position(trade)
    if shares > position.remaining:
        raise InsufficientShares(shares, position.remaining)

    executed = target.model_copy(update={
        'status': TargetStatus.EXECUTED,
        'shares_sold': shares,
        'executed_price': price,
        'executed_date': sale_date,
    })

    # Commit
    plan.targets[index] = executed
    trade.sales.append(Sale(portion=target.portion, price=price, sale_date=sale_date))

    remaining = position.remaining - shares
    trade.status = _status_after_sale(remaining, position.sold + shares, trade.status)

    logger.info(f"{trade.ticker}: sold {shares} @ {price:.2f} at {format_r_level(r_level)}, "
                f"{remaining} remaining ({trade.status.value})")

    return executed


def close_remaining_position(trade: Trade, exit_price: float, exit_date: date) -> Target:
    """Sell everything still held and mark the trade closed.

    Appends an already-executed exit target for the remaining shares.

    Raises:
        NoSellPlan: If the trade has no sell plan
        NoPositionRemaining: If nothing is left to sell
    """
    plan = _require_plan(trade)
    remaining = get_current_position(trade).remaining

    if remaining <= 0:
        raise NoPositionRemaining(trade.id)

    exit_target = Target(
        r_level=ExitLevel.EXIT,
        portion='remaining',
        target_price=exit_price,
        planned_shares=remaining,
        status=TargetStatus.EXECUTED,
        executed_date=exit_date,
        executed_price=exit_price,
        shares_sold=remaining
    )

    plan.targets.append(exit_target)
    trade.sales.append(Sale(portion='remaining', price=exit_price, sale_date=exit_date))
    trade.status = TradeStatus.CLOSED

    logger.info(f"{trade.ticker}: closed remaining {remaining} @ {exit_price:.2f}")

    return exit_target


def breakeven(trade: Trade) -> Optional[float]:
    """Stop price at which the remaining shares give back all locked profit.

    Returns:
        Breakeven price, or None if the trade has no plan or no shares left
    """
    if trade.sell_plan is None:
        return None

    remaining = get_current_position(trade).remaining
    if remaining == 0:
        return None

    locked_profit = sum(
        t.shares_sold * (t.executed_price - trade.entry_price)
        for t in trade.sell_plan.targets
        if t.is_executed and not is_exit(t.r_level)
    )

    return trade.entry_price - locked_profit / remaining
