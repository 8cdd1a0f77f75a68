"""Tests for sell plan execution."""

from datetime import date

import pytest
from pydantic import ValidationError

from swingjournal.exceptions import (
    InsufficientShares,
    NoPositionRemaining,
    NoSellPlan,
    TargetAlreadyExecuted,
    TargetNotFound,
)
from swingjournal.executor import (
    breakeven,
    close_remaining_position,
    get_current_position,
    log_sale,
)
from swingjournal.models import (
    ExitLevel,
    Target,
    TargetStatus,
    Trade,
    TradeStatus,
    format_r_level,
)
from swingjournal.sell_plan import generate_plan


@pytest.fixture
def trade():
    """A 50 share position at 50 with a 48 stop and a fresh sell plan."""
    return Trade(
        id='t1',
        ticker='AAPL',
        entry_price=50,
        entry_date=date(2025, 11, 3),
        initial_stop_loss=48,
        current_stop_loss=48,
        sell_plan=generate_plan(50, 50, 48)
    )


def test_initial_position(trade):
    """Test the position summary before any sale."""
    position = get_current_position(trade)

    assert position.initial == 50
    assert position.sold == 0
    assert position.remaining == 50
    assert position.completed_levels == 0
    assert position.total_levels == 4
    assert position.next_pending_target.r_level == 1


def test_log_first_target(trade):
    """Test selling half at R1."""
    executed = log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))

    assert executed.status == TargetStatus.EXECUTED
    assert executed.shares_sold == 25
    assert executed.executed_price == 52.0
    assert executed.executed_date == date(2025, 11, 10)
    assert trade.sell_plan.targets[0] is executed

    position = get_current_position(trade)
    assert position.remaining == 25
    assert position.completed_levels == 1
    assert position.next_pending_target.r_level == 2

    assert trade.status == TradeStatus.PARTIALLY_CLOSED


def test_log_sale_appends_sale_history(trade):
    """Test that each logged sale lands in the trade's sale history."""
    log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))
    log_sale(trade, 2, 8, 54.1, date(2025, 11, 14))

    assert [(s.portion, s.price, s.sale_date) for s in trade.sales] == [
        ('1/2', 52.0, date(2025, 11, 10)),
        ('1/3', 54.1, date(2025, 11, 14)),
    ]


def test_sale_may_differ_from_plan(trade):
    """Test that more than the planned shares can be sold when available."""
    log_sale(trade, 1, 30, 52.0, date(2025, 11, 10))
    assert get_current_position(trade).remaining == 20


def test_selling_everything_closes_trade(trade):
    """Test that a sale reaching zero remaining closes the trade."""
    log_sale(trade, 1, 50, 52.0, date(2025, 11, 10))

    assert get_current_position(trade).remaining == 0
    assert trade.status == TradeStatus.CLOSED


def test_insufficient_shares_rejected_without_mutation(trade):
    """Test that an oversized sale is rejected and nothing changes."""
    log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))
    before = trade.model_dump()

    with pytest.raises(InsufficientShares) as exc:
        log_sale(trade, 2, 26, 54.0, date(2025, 11, 14))

    assert exc.value.requested == 26
    assert exc.value.remaining == 25
    assert trade.model_dump() == before


def test_executed_target_rejected(trade):
    """Test that a target cannot be executed twice."""
    log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))
    before = trade.model_dump()

    with pytest.raises(TargetAlreadyExecuted):
        log_sale(trade, 1, 5, 53.0, date(2025, 11, 11))

    assert trade.model_dump() == before


def test_unknown_level_rejected(trade):
    with pytest.raises(TargetNotFound):
        log_sale(trade, 9, 5, 60.0, date(2025, 11, 11))


def test_non_positive_shares_rejected(trade):
    with pytest.raises(ValueError):
        log_sale(trade, 1, 0, 52.0, date(2025, 11, 10))
    assert trade.sales == []


def test_trade_without_plan(trade):
    """Test that plan actions need a sell plan."""
    trade.sell_plan = None

    with pytest.raises(NoSellPlan):
        log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))
    with pytest.raises(NoSellPlan):
        close_remaining_position(trade, 55.0, date(2025, 11, 20))
    with pytest.raises(NoSellPlan):
        get_current_position(trade)


def test_remaining_invariant_over_sequence(trade):
    """Test remaining == initial - sold after every sale."""
    sales = [(1, 25, 52.0), (2, 8, 54.0), (3, 4, 56.0), (4, 2, 58.0)]

    for level, shares, price in sales:
        log_sale(trade, level, shares, price, date(2025, 11, 20))
        position = get_current_position(trade)
        sold = sum(t.shares_sold for t in trade.sell_plan.targets if t.is_executed)

        assert position.remaining == 50 - sold
        assert position.remaining >= 0

    assert get_current_position(trade).remaining == trade.sell_plan.runner
    assert trade.status == TradeStatus.PARTIALLY_CLOSED


def test_close_remaining_position(trade):
    """Test closing the remainder after the first target."""
    log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))
    exit_target = close_remaining_position(trade, 55.0, date(2025, 11, 20))

    assert exit_target.r_level == ExitLevel.EXIT
    assert exit_target.portion == 'remaining'
    assert exit_target.planned_shares == 25
    assert exit_target.shares_sold == 25
    assert exit_target.status == TargetStatus.EXECUTED
    assert trade.sell_plan.targets[-1] is exit_target
    assert len(trade.sell_plan.targets) == 5

    position = get_current_position(trade)
    assert position.remaining == 0
    assert position.total_levels == 4
    assert position.completed_levels == 1

    assert trade.status == TradeStatus.CLOSED
    assert trade.sales[-1].portion == 'remaining'


def test_close_with_nothing_remaining(trade):
    """Test that closing twice is rejected without mutation."""
    close_remaining_position(trade, 49.0, date(2025, 11, 20))
    before = trade.model_dump()

    with pytest.raises(NoPositionRemaining):
        close_remaining_position(trade, 49.0, date(2025, 11, 21))

    assert trade.model_dump() == before


def test_log_sale_after_close_is_rejected(trade):
    close_remaining_position(trade, 49.0, date(2025, 11, 20))

    with pytest.raises(InsufficientShares):
        log_sale(trade, 1, 1, 52.0, date(2025, 11, 21))


def test_breakeven_without_sales(trade):
    """Test that breakeven is the entry price before any profit is locked."""
    assert breakeven(trade) == 50.0


def test_breakeven_after_first_target(trade):
    """Test that locked profit lowers the breakeven stop."""
    log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))

    # 25 * (52 - 50) = 50 locked, spread over 25 remaining shares
    assert breakeven(trade) == pytest.approx(48.0)


def test_breakeven_ignores_exit_target(trade):
    """Test that the exit target never counts as locked profit."""
    log_sale(trade, 1, 25, 52.0, date(2025, 11, 10))
    expected = breakeven(trade)

    trade.sell_plan.targets.append(Target(
        r_level=ExitLevel.EXIT,
        portion='remaining',
        target_price=60.0,
        planned_shares=5,
        status=TargetStatus.EXECUTED,
        executed_date=date(2025, 11, 12),
        executed_price=60.0,
        shares_sold=5
    ))

    # 50 locked over 20 remaining
    assert breakeven(trade) == pytest.approx(50 - 50 / 20)
    assert breakeven(trade) != expected


def test_breakeven_guards_zero_remaining(trade):
    """Test that breakeven returns None instead of dividing by zero."""
    log_sale(trade, 1, 50, 52.0, date(2025, 11, 10))
    assert breakeven(trade) is None


def test_breakeven_without_plan(trade):
    trade.sell_plan = None
    assert breakeven(trade) is None


def test_executed_target_requires_execution_fields():
    """Test that an executed target without fill data is invalid."""
    with pytest.raises(ValidationError):
        Target(r_level=1, portion='1/2', target_price=52.0, planned_shares=25,
               status=TargetStatus.EXECUTED)


def test_pending_target_rejects_execution_fields():
    with pytest.raises(ValidationError):
        Target(r_level=1, portion='1/2', target_price=52.0, planned_shares=25,
               shares_sold=25)


def test_sale_log_uses_level_label(trade, caplog):
    """Test that the sale log line names the level the way the plan table does."""
    with caplog.at_level('INFO', logger='swingjournal.executor'):
        log_sale(trade, 2, 8, 54.0, date(2025, 11, 12))

    assert 'at R2,' in caplog.text


def test_format_r_level():
    assert format_r_level(3) == 'R3'
    assert format_r_level(ExitLevel.EXIT) == 'Exit'
