"""Tests for the journal context."""

from datetime import date

import pytest

from swingjournal.exceptions import InvalidStopLoss, MissingInputs, TradeNotFound
from swingjournal.heat import RiskLevel
from swingjournal.journal import Journal
from swingjournal.models import AccountSettings, TradeStatus
from swingjournal.store import MemoryStore


class FailingStore(MemoryStore):
    """Store whose writes always fail."""

    def save(self, trades):
        raise OSError("disk full")

    def save_settings(self, settings):
        raise OSError("disk full")


@pytest.fixture
def settings():
    return AccountSettings(account_size=10000, default_risk_percent=1, default_max_percent=100)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def journal(store, settings):
    return Journal(store, settings)


def add_aapl(journal):
    return journal.add_trade('aapl', 50, 48, date(2025, 11, 3))


def test_add_trade_sizes_and_plans(journal, store):
    """Test that a new trade is sized, snapshotted and given a plan."""
    trade = add_aapl(journal)

    assert trade.ticker == 'AAPL'
    assert trade.snapshot.shares == 50
    assert trade.snapshot.account_size == 10000
    assert trade.sell_plan.initial_shares == 50
    assert trade.current_stop_loss == 48
    assert trade.status == TradeStatus.OPEN

    assert store.save_count == 1
    assert journal.heat.level == RiskLevel.MED
    assert journal.heat.total_risk == pytest.approx(100)


def test_add_trade_with_explicit_shares(journal):
    """Test that an explicit share count skips sizing."""
    trade = journal.add_trade('msft', 400, 390, date(2025, 11, 3), shares=10)

    assert trade.snapshot is None
    assert trade.sell_plan.initial_shares == 10


def test_add_trade_without_plan(journal):
    trade = journal.add_trade('nvda', 50, 48, date(2025, 11, 3), with_plan=False)

    assert trade.sell_plan is None
    # Falls back to the snapshot share count
    assert journal.heat.total_risk == pytest.approx(100)


def test_add_trade_needs_account_size(store):
    """Test that a trade cannot be sized without an account size."""
    journal = Journal(store, AccountSettings(account_size=0))

    with pytest.raises(MissingInputs) as exc:
        add_aapl(journal)

    assert 'account_size' in exc.value.missing
    assert journal.trades == []
    assert store.save_count == 0


def test_add_trade_invalid_stop(journal, store):
    with pytest.raises(InvalidStopLoss):
        journal.add_trade('aapl', 50, 55, date(2025, 11, 3))
    assert journal.trades == []


@pytest.mark.parametrize('stop', [55, 50])
@pytest.mark.parametrize('with_plan', [True, False])
def test_add_trade_explicit_shares_invalid_stop(journal, store, stop, with_plan):
    """Test that an explicit share count does not skip the stop check."""
    with pytest.raises(InvalidStopLoss):
        journal.add_trade('x', 50, stop, date(2025, 1, 1), shares=100, with_plan=with_plan)

    assert journal.trades == []
    assert store.save_count == 0
    assert journal.heat.level == RiskLevel.CASH


def test_add_trade_sized_to_zero_shares(store):
    """Test that a position too small to buy one share is rejected."""
    journal = Journal(store, AccountSettings(account_size=1000, default_risk_percent=1,
                                             default_max_percent=100))

    # $10 risk budget against $100 per share of risk
    with pytest.raises(MissingInputs) as exc:
        journal.add_trade('x', 500, 400, date(2025, 1, 1))

    assert exc.value.missing == ['shares']
    assert journal.trades == []
    assert store.save_count == 0
    assert journal.heat.level == RiskLevel.CASH
    assert journal.heat.active_count == 0


def test_sale_freerolls_heat(journal):
    """Test that heat is recomputed after a sale."""
    trade = add_aapl(journal)
    journal.log_sale(trade.id, 1, 25, 52.0, date(2025, 11, 10))

    assert trade.status == TradeStatus.PARTIALLY_CLOSED
    assert journal.heat.level == RiskLevel.FREEROLLED
    assert journal.heat.total_risk == 0


def test_close_remaining_goes_to_cash(journal):
    trade = add_aapl(journal)
    journal.close_remaining(trade.id, 49.0, date(2025, 11, 10))

    assert trade.status == TradeStatus.CLOSED
    assert journal.heat.level == RiskLevel.CASH


def test_save_failure_keeps_memory_state(settings):
    """Test that persistence failures never undo in-memory changes."""
    journal = Journal(FailingStore(), settings)

    trade = add_aapl(journal)
    journal.log_sale(trade.id, 1, 25, 52.0, date(2025, 11, 10))

    assert len(journal.trades) == 1
    assert journal.trades[0].sales[0].price == 52.0
    assert journal.heat.level == RiskLevel.FREEROLLED


def test_edit_stop_updates_heat(journal):
    """Test that moving the stop changes open heat."""
    trade = add_aapl(journal)
    journal.edit_trade(trade.id, current_stop_loss=49.0)

    assert trade.current_stop_loss == 49.0
    assert trade.initial_stop_loss == 48
    assert journal.heat.total_risk == pytest.approx(50)


def test_edit_status(journal):
    trade = add_aapl(journal)
    journal.edit_trade(trade.id, status='stopped_out')

    assert trade.status == TradeStatus.STOPPED_OUT
    assert journal.heat.level == RiskLevel.CASH


def test_edit_rejects_snapshot(journal):
    """Test that the sizing snapshot cannot be edited."""
    trade = add_aapl(journal)

    with pytest.raises(ValueError, match="not editable"):
        journal.edit_trade(trade.id, snapshot=None)


def test_edit_invalid_value_leaves_trade(journal):
    """Test that a failed edit leaves the trade untouched."""
    trade = add_aapl(journal)
    before = trade.model_dump()

    with pytest.raises(ValueError):
        journal.edit_trade(trade.id, ticker='   ', current_stop_loss=49.0)

    assert trade.model_dump() == before


def test_archive_removes_from_heat(journal):
    trade = add_aapl(journal)
    journal.archive_trade(trade.id)

    assert trade.archived is True
    assert journal.heat.level == RiskLevel.CASH
    assert journal.filter_trades() == []
    assert journal.filter_trades(include_archived=True) == [trade]


def test_delete_trade(journal, store):
    trade = add_aapl(journal)
    journal.delete_trade(trade.id)

    assert journal.trades == []
    assert store.load() == []
    with pytest.raises(TradeNotFound):
        journal.get_trade(trade.id)


def test_unknown_trade(journal):
    with pytest.raises(TradeNotFound):
        journal.log_sale('missing', 1, 1, 1.0, date(2025, 11, 10))


def test_filter_trades_newest_first(journal):
    """Test status filtering and entry date ordering."""
    old = journal.add_trade('aaa', 50, 48, date(2025, 10, 1))
    new = journal.add_trade('bbb', 50, 48, date(2025, 11, 1))
    mid = journal.add_trade('ccc', 50, 48, date(2025, 10, 15))
    journal.log_sale(mid.id, 1, 25, 52.0, date(2025, 10, 20))

    assert [t.ticker for t in journal.filter_trades()] == ['BBB', 'CCC', 'AAA']
    assert journal.filter_trades('partially_closed') == [mid]
    assert journal.filter_trades('open') == [new, old]


def test_set_account_size(journal, store):
    """Test that account changes recompute heat and persist."""
    add_aapl(journal)
    journal.set_account_size(100000)

    assert journal.heat.level == RiskLevel.LOW
    assert store.load_settings().account_size == 100000

    journal.set_account_size(0)
    assert journal.heat.level == RiskLevel.CASH


def test_set_account_size_rejects_negative(journal):
    with pytest.raises(ValueError):
        journal.set_account_size(-1)
    assert journal.settings.account_size == 10000


def test_load_from_store(settings):
    """Test that loading pulls trades and stored settings."""
    source = Journal(MemoryStore(), settings)
    add_aapl(source)

    store = MemoryStore(source.trades, AccountSettings(account_size=50000))
    journal = Journal(store, settings).load()

    assert len(journal.trades) == 1
    assert journal.settings.account_size == 50000
    assert journal.heat.percent == pytest.approx(0.2)


def test_load_keeps_settings_when_store_has_none(settings):
    journal = Journal(MemoryStore(), settings).load()
    assert journal.settings.account_size == 10000
