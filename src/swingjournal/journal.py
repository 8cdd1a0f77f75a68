"""Journal context: account settings, the trade collection and live open heat.

The journal is the only holder of mutable state. Every mutation recomputes
open heat and hands a snapshot to the store; store failures are logged and
never undo or corrupt the in-memory trades.
"""

import logging
from datetime import date
from typing import List, Optional

from .exceptions import InvalidStopLoss, MissingInputs, TradeNotFound
from .executor import close_remaining_position, log_sale
from .heat import HeatResult, aggregate_risk
from .models import AccountSettings, RLevel, Target, Trade, TradeStatus
from .sell_plan import generate_plan
from .sizing import SizingResult, size_position
from .store import TradeStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('ticker', 'entry_date', 'current_stop_loss', 'status')


class Journal:
    """
    In-memory trade journal with injected persistence.

    Responsibilities:
    - Sizing new trades from account defaults
    - Routing sell plan actions to the executor
    - Keeping open heat current after every change
    """

    def __init__(self, store: TradeStore, settings: Optional[AccountSettings] = None):
        """
        Initialize the journal.

        Args:
            store: Persistence collaborator
            settings: Account settings; loaded from the store on load() if omitted
        """
        self.store = store
        self.settings = settings or AccountSettings()
        self.trades: List[Trade] = []
        self.heat: HeatResult = aggregate_risk(self.settings.account_size, self.trades)

    def load(self) -> 'Journal':
        """Replace in-memory state with what the store holds.

        Stored settings win over the ones the journal was created with.
        """
        self.trades = self.store.load()
        self.settings = self.store.load_settings() or self.settings
        self._recompute()
        logger.info(f"Journal loaded: {len(self.trades)} trades, "
                    f"account ${self.settings.account_size:,.2f}")
        return self

    def _recompute(self) -> None:
        self.heat = aggregate_risk(self.settings.account_size, self.trades)

    def _commit(self) -> None:
        self._recompute()
        try:
            self.store.save(self.trades)
        except Exception as e:
            logger.warning(f"Failed to persist journal, keeping in-memory state: {e}")

    def get_trade(self, trade_id: str) -> Trade:
        for trade in self.trades:
            if trade.id == trade_id:
                return trade
        raise TradeNotFound(trade_id)

    def size(
        self,
        entry_price: Optional[float],
        stop_loss: Optional[float],
        risk_percent: Optional[float] = None,
        max_percent: Optional[float] = None
    ) -> Optional[SizingResult]:
        """Size a position against the account, using default percents when omitted."""
        return size_position(
            account_size=self.settings.account_size,
            risk_percent=risk_percent if risk_percent is not None else self.settings.default_risk_percent,
            max_percent=max_percent if max_percent is not None else self.settings.default_max_percent,
            entry_price=entry_price,
            stop_loss=stop_loss
        )

    def add_trade(
        self,
        ticker: str,
        entry_price: float,
        stop_loss: float,
        entry_date: date,
        shares: Optional[int] = None,
        risk_percent: Optional[float] = None,
        max_percent: Optional[float] = None,
        with_plan: bool = True
    ) -> Trade:
        """Create a trade, sizing it unless an explicit share count is given.

        Raises:
            MissingInputs: If the position cannot be sized yet or sizes to zero shares
            InvalidStopLoss, InvalidPercent: On invalid sizing inputs
        """
        risk_percent = risk_percent if risk_percent is not None else self.settings.default_risk_percent
        snapshot = None

        if shares is None:
            result = self.size(entry_price, stop_loss, risk_percent, max_percent)
            if result is None:
                missing = [name for name, value in (
                    ('account_size', self.settings.account_size),
                    ('entry_price', entry_price),
                    ('stop_loss', stop_loss),
                ) if value is None or value <= 0]
                raise MissingInputs(missing or ['risk_percent'])
            if result.shares == 0:
                raise MissingInputs(['shares'])
            shares = result.shares
            snapshot = result.to_snapshot(risk_percent)
        elif shares <= 0:
            raise MissingInputs(['shares'])
        elif stop_loss >= entry_price:
            raise InvalidStopLoss(entry_price, stop_loss)

        trade = Trade(
            ticker=ticker,
            entry_price=entry_price,
            entry_date=entry_date,
            initial_stop_loss=stop_loss,
            current_stop_loss=stop_loss,
            snapshot=snapshot
        )
        if with_plan:
            trade.sell_plan = generate_plan(shares, entry_price, stop_loss)

        self.trades.append(trade)
        self._commit()

        logger.info(f"Added {trade.ticker} ({trade.id}): {shares} shares @ {entry_price:.2f}, "
                    f"stop {stop_loss:.2f}")
        return trade

    def edit_trade(self, trade_id: str, **fields) -> Trade:
        """Update editable trade fields. The sizing snapshot never changes.

        Raises:
            TradeNotFound: If the trade does not exist
            ValueError: If a field is not editable or fails validation
        """
        trade = self.get_trade(trade_id)

        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields not editable: {sorted(unknown)}")

        # Validate on a copy so a bad value leaves the trade untouched
        data = trade.model_dump()
        data.update(fields)
        updated = Trade.model_validate(data)

        for name in fields:
            setattr(trade, name, getattr(updated, name))

        self._commit()
        logger.info(f"Edited {trade.ticker} ({trade.id}): {sorted(fields)}")
        return trade

    def archive_trade(self, trade_id: str) -> Trade:
        trade = self.get_trade(trade_id)
        trade.archived = True
        self._commit()
        logger.info(f"Archived {trade.ticker} ({trade.id})")
        return trade

    def delete_trade(self, trade_id: str) -> None:
        trade = self.get_trade(trade_id)
        self.trades = [t for t in self.trades if t.id != trade_id]
        self._commit()
        logger.info(f"Deleted {trade.ticker} ({trade.id})")

    def log_sale(
        self,
        trade_id: str,
        r_level: RLevel,
        shares: int,
        price: float,
        sale_date: date
    ) -> Target:
        target = log_sale(self.get_trade(trade_id), r_level, shares, price, sale_date)
        self._commit()
        return target

    def close_remaining(self, trade_id: str, exit_price: float, exit_date: date) -> Target:
        target = close_remaining_position(self.get_trade(trade_id), exit_price, exit_date)
        self._commit()
        return target

    def set_account_size(self, account_size: float) -> None:
        """Change account equity and recompute open heat."""
        data = self.settings.model_dump()
        data['account_size'] = account_size
        self.settings = AccountSettings.model_validate(data)
        self._recompute()
        try:
            self.store.save_settings(self.settings)
        except Exception as e:
            logger.warning(f"Failed to persist account settings: {e}")

    def filter_trades(self, status: str = 'all', include_archived: bool = False) -> List[Trade]:
        """Trades matching a status filter, newest entry date first."""
        trades = self.trades
        if not include_archived:
            trades = [t for t in trades if not t.archived]
        if status != 'all':
            wanted = TradeStatus(status)
            trades = [t for t in trades if t.status == wanted]
        return sorted(trades, key=lambda t: t.entry_date, reverse=True)
