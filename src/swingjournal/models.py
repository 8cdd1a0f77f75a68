"""Pydantic models for trades, sell plans and account settings.

Field names are snake_case in Python and camelCase in the JSON snapshot
exchanged with the persistence layer.
"""

import uuid
from datetime import date
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class TradeStatus(str, Enum):
    """Trade lifecycle states."""
    OPEN = "open"
    PARTIALLY_CLOSED = "partially_closed"
    CLOSED = "closed"
    STOPPED_OUT = "stopped_out"


ACTIVE_STATUSES = (TradeStatus.OPEN, TradeStatus.PARTIALLY_CLOSED)


class TargetStatus(str, Enum):
    """Sell target states. EXECUTED is terminal."""
    PENDING = "pending"
    EXECUTED = "executed"


class ExitLevel(str, Enum):
    """R-level sentinel for a target synthesized when the remainder is closed."""
    EXIT = "exit"


# A ladder target's R-multiple, or the exit sentinel
RLevel = Union[int, ExitLevel]


def is_exit(r_level: RLevel) -> bool:
    """Return True if the R-level is the exit sentinel."""
    return isinstance(r_level, ExitLevel)


def format_r_level(r_level: RLevel) -> str:
    """Display label for an R-level: 'R2' or 'Exit'."""
    return 'Exit' if is_exit(r_level) else f"R{r_level}"


def parse_r_level(value) -> RLevel:
    """Parse CLI/user input such as '2', 'R2' or 'exit' into an R-level."""
    if isinstance(value, ExitLevel):
        return value
    if isinstance(value, int):
        return value

    text = str(value).strip().lower()
    if text == ExitLevel.EXIT.value:
        return ExitLevel.EXIT
    if text.startswith('r'):
        text = text[1:]
    try:
        level = int(text)
    except ValueError:
        raise ValueError(f"Invalid R-level: {value!r}")
    if level < 1:
        raise ValueError(f"R-level must be a positive integer, got {level}")
    return level


class JournalModel(BaseModel):
    """Base model with camelCase aliases for the JSON snapshot."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class Sale(JournalModel):
    """A generic entry in a trade's sale history."""
    portion: str
    price: float
    sale_date: Optional[date] = Field(default=None, alias='date')


class Target(JournalModel):
    """One rung of a sell plan."""
    r_level: RLevel
    portion: str
    target_price: float
    planned_shares: int = Field(ge=0)
    status: TargetStatus = TargetStatus.PENDING
    executed_date: Optional[date] = None
    executed_price: Optional[float] = None
    shares_sold: Optional[int] = None

    @field_validator('r_level')
    @classmethod
    def positive_multiple(cls, v):
        if not is_exit(v) and v < 1:
            raise ValueError(f"R-level must be a positive integer, got {v}")
        return v

    @model_validator(mode='after')
    def execution_fields_match_status(self):
        fields = (self.shares_sold, self.executed_price, self.executed_date)
        if self.status == TargetStatus.EXECUTED:
            if any(f is None for f in fields):
                raise ValueError("Executed targets require sharesSold, executedPrice and executedDate")
        elif any(f is not None for f in fields):
            raise ValueError("Pending targets cannot carry execution fields")
        return self

    @property
    def is_executed(self) -> bool:
        return self.status == TargetStatus.EXECUTED


class SellPlan(JournalModel):
    """Ladder of R-level exits plus the runner left unsold."""
    enabled: bool = True
    initial_shares: int = Field(gt=0)
    targets: List[Target] = Field(default_factory=list)
    runner: int = Field(default=0, ge=0)


class SizingSnapshot(JournalModel):
    """Sizing record captured when a trade is created. Never edited."""
    model_config = ConfigDict(frozen=True)

    account_size: float
    shares: int
    position_size: float
    risk_percent: float
    percent_of_account: float


class Trade(JournalModel):
    """A journal entry for one position."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    ticker: str
    entry_price: float = Field(gt=0)
    entry_date: date
    initial_stop_loss: float
    current_stop_loss: float
    status: TradeStatus = TradeStatus.OPEN
    archived: bool = False
    sales: List[Sale] = Field(default_factory=list)
    snapshot: Optional[SizingSnapshot] = None
    sell_plan: Optional[SellPlan] = None

    @field_validator('ticker')
    @classmethod
    def normalize_ticker(cls, v):
        ticker = v.upper().strip()
        if not ticker:
            raise ValueError("Ticker cannot be empty")
        return ticker

    @property
    def is_active(self) -> bool:
        return not self.archived and self.status in ACTIVE_STATUSES


class AccountSettings(JournalModel):
    """Account-wide sizing defaults."""
    account_size: float = Field(default=0.0, ge=0)
    default_risk_percent: float = Field(default=1.0, gt=0, le=100)
    default_max_percent: float = Field(default=25.0, gt=0, le=100)
