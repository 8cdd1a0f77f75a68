"""Persistence for the trade collection and account settings.

The journal document is a JSON snapshot:
    {"settings": {...}, "trades": [...]}
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .exceptions import DataError
from .models import AccountSettings, Trade

logger = logging.getLogger(__name__)


class TradeStore(ABC):
    """Load/save interface the journal calls through."""

    @abstractmethod
    def load(self) -> List[Trade]:
        ...

    @abstractmethod
    def save(self, trades: List[Trade]) -> None:
        ...

    @abstractmethod
    def load_settings(self) -> Optional[AccountSettings]:
        """Stored settings, or None if none have been saved."""
        ...

    @abstractmethod
    def save_settings(self, settings: AccountSettings) -> None:
        ...


def _copy_trades(trades: List[Trade]) -> List[Trade]:
    return [t.model_copy(deep=True) for t in trades]


class MemoryStore(TradeStore):
    """In-process store. Keeps deep copies so callers cannot alias its state."""

    def __init__(self, trades: Optional[List[Trade]] = None,
                 settings: Optional[AccountSettings] = None):
        self._trades = _copy_trades(trades or [])
        self._settings = settings
        self.save_count = 0

    def load(self) -> List[Trade]:
        return _copy_trades(self._trades)

    def save(self, trades: List[Trade]) -> None:
        self._trades = _copy_trades(trades)
        self.save_count += 1

    def load_settings(self) -> Optional[AccountSettings]:
        if self._settings is None:
            return None
        return self._settings.model_copy()

    def save_settings(self, settings: AccountSettings) -> None:
        self._settings = settings.model_copy()


class JsonFileStore(TradeStore):
    """
    Stores the journal as a single JSON file.

    Features:
    - Atomic writes via temp file and rename
    - Lock around read-modify-write of the document
    - Missing file reads as an empty journal
    """

    def __init__(self, path):
        """
        Initialize the store.

        Args:
            path: Journal file path; parent directories are created on write
        """
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_document(self) -> dict:
        if not self.path.exists():
            logger.debug(f"No journal file at {self.path}, starting empty")
            return {}

        try:
            with open(self.path, 'r') as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise DataError(f"Journal file {self.path} is not valid JSON: {e}")

        if not isinstance(document, dict):
            raise DataError(f"Journal file {self.path} must contain a JSON object")
        return document

    def _write_document(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix('.tmp')

        try:
            with open(temp_path, 'w') as f:
                json.dump(document, f, indent=2)
            # Atomic rename (on same filesystem)
            temp_path.replace(self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def load(self) -> List[Trade]:
        with self._lock:
            raw = self._read_document().get('trades', [])

        try:
            trades = [Trade.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise DataError(f"Invalid trade in {self.path}: {e}")

        logger.debug(f"Loaded {len(trades)} trades from {self.path}")
        return trades

    def save(self, trades: List[Trade]) -> None:
        with self._lock:
            document = self._read_document()
            document['trades'] = [t.to_json_dict() for t in trades]
            self._write_document(document)
        logger.debug(f"Saved {len(trades)} trades to {self.path}")

    def load_settings(self) -> Optional[AccountSettings]:
        with self._lock:
            raw = self._read_document().get('settings')

        if raw is None:
            return None
        try:
            return AccountSettings.model_validate(raw)
        except PydanticValidationError as e:
            raise DataError(f"Invalid settings in {self.path}: {e}")

    def save_settings(self, settings: AccountSettings) -> None:
        with self._lock:
            document = self._read_document()
            document['settings'] = settings.to_json_dict()
            self._write_document(document)


class DebouncedStore(TradeStore):
    """
    Coalesces bursts of trade saves into one write after a quiet period.

    Trade saves never raise into the caller. A failed write is logged and
    the pending snapshot is kept so the next save or flush retries it.
    Settings writes go straight to the inner store and raise on failure.
    """

    def __init__(self, inner: TradeStore, delay: float = 0.5):
        self.inner = inner
        self.delay = delay
        self._lock = threading.Lock()
        self._pending: Optional[List[Trade]] = None
        self._timer: Optional[threading.Timer] = None

    def load(self) -> List[Trade]:
        with self._lock:
            if self._pending is not None:
                return _copy_trades(self._pending)
        return self.inner.load()

    def save(self, trades: List[Trade]) -> None:
        with self._lock:
            self._pending = _copy_trades(trades)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Write the pending snapshot now.

        Returns:
            True if nothing is left pending
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            pending = self._pending

        if pending is None:
            return True

        try:
            self.inner.save(pending)
        except Exception as e:
            logger.warning(f"Journal save failed, will retry on next save: {e}")
            return False

        with self._lock:
            # A newer snapshot may have arrived during the write
            if self._pending is pending:
                self._pending = None
        return True

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def load_settings(self) -> Optional[AccountSettings]:
        return self.inner.load_settings()

    def save_settings(self, settings: AccountSettings) -> None:
        self.inner.save_settings(settings)
