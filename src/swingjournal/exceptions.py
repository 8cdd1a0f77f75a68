"""Exception taxonomy and exit code mapping for SwingJournal."""

import json


class DataError(Exception):
    """Raised when the journal file is unreadable or malformed."""
    pass


class ConfigError(Exception):
    """Raised when configuration is invalid."""
    pass


class JournalError(Exception):
    """Base class for rejected journal operations."""
    pass


class ValidationError(JournalError):
    """Raised when user-supplied inputs fail field-level validation."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class InvalidStopLoss(ValidationError):
    """Raised when the stop loss is at or above the entry price."""

    def __init__(self, entry_price: float, stop_loss: float):
        super().__init__(
            f"Stop loss {stop_loss:.2f} must be below entry price {entry_price:.2f}",
            field='stop_loss'
        )
        self.entry_price = entry_price
        self.stop_loss = stop_loss


class InvalidPercent(ValidationError):
    """Raised when a risk or max-position percent falls outside (0, 100]."""

    def __init__(self, field: str, value: float):
        super().__init__(f"{field} must be in (0, 100], got {value}", field=field)
        self.value = value


class MissingInputs(ValidationError):
    """Raised when a required sizing value is absent or not positive."""

    def __init__(self, missing):
        missing = list(missing)
        super().__init__(f"Missing inputs: {', '.join(missing)}", field=missing[0] if missing else None)
        self.missing = missing


class PlanError(JournalError):
    """Base class for sell plan execution rejections."""
    pass


class NoSellPlan(PlanError):
    """Raised when a plan action targets a trade without a sell plan."""

    def __init__(self, trade_id: str):
        super().__init__(f"Trade {trade_id} has no sell plan")
        self.trade_id = trade_id


class TargetNotFound(PlanError):
    """Raised when no target matches the requested R-level."""

    def __init__(self, r_level):
        super().__init__(f"No target at R-level {r_level}")
        self.r_level = r_level


class TargetAlreadyExecuted(PlanError):
    """Raised when a sale is logged against a target that is not pending."""

    def __init__(self, r_level):
        super().__init__(f"Target at R-level {r_level} is already executed")
        self.r_level = r_level


class InsufficientShares(PlanError):
    """Raised when a sale requests more shares than remain open."""

    def __init__(self, requested: int, remaining: int):
        super().__init__(f"Cannot sell {requested} shares, only {remaining} remaining")
        self.requested = requested
        self.remaining = remaining


class NoPositionRemaining(PlanError):
    """Raised when closing a position that has no shares left."""

    def __init__(self, trade_id: str):
        super().__init__(f"Trade {trade_id} has no remaining position to close")
        self.trade_id = trade_id


class TradeNotFound(JournalError):
    """Raised when a trade id is not in the journal."""

    def __init__(self, trade_id: str):
        super().__init__(f"Trade not found: {trade_id}")
        self.trade_id = trade_id


# Exit codes for CLI
EXIT_SUCCESS = 0           # Successful completion
EXIT_GENERAL_ERROR = 1     # Uncaught/unexpected exceptions
EXIT_CONFIG_ERROR = 2      # Configuration validation failures
EXIT_STORAGE_ERROR = 3     # Journal file could not be read or written
EXIT_DATA_ERROR = 4        # Malformed journal data
EXIT_REJECTED = 5          # Validation failures and rejected plan actions


class ExceptionMapper:
    """Maps exceptions to appropriate exit codes."""

    @staticmethod
    def map_to_exit_code(e: Exception) -> int:
        """
        Map an exception to an exit code.

        Args:
            e: The exception to map

        Returns:
            Exit code (0-5)
        """
        # Configuration errors
        if isinstance(e, ConfigError):
            return EXIT_CONFIG_ERROR

        # Data errors
        elif isinstance(e, (DataError, json.JSONDecodeError)):
            return EXIT_DATA_ERROR

        # Rejected journal operations
        elif isinstance(e, JournalError):
            return EXIT_REJECTED

        # Filesystem errors
        elif isinstance(e, OSError):
            return EXIT_STORAGE_ERROR

        # Value errors (often bad command-line values)
        elif isinstance(e, ValueError):
            return EXIT_REJECTED

        # Key errors (often configuration related)
        elif isinstance(e, KeyError):
            return EXIT_CONFIG_ERROR

        # Default to general error
        return EXIT_GENERAL_ERROR
