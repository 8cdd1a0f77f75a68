"""SwingJournal - position sizing, R-level sell plans and open-heat tracking for swing trades."""

__version__ = "1.0.0"

import logging

from .sizing import SizingResult, size_position
from .sell_plan import generate_plan
from .executor import (
    CurrentPosition,
    breakeven,
    close_remaining_position,
    get_current_position,
    log_sale,
)
from .heat import HeatResult, RiskLevel, aggregate_risk, is_freerolled
from .journal import Journal

# Set default logging to WARNING for library
# Application code can override this
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'SizingResult',
    'size_position',
    'generate_plan',
    'CurrentPosition',
    'log_sale',
    'close_remaining_position',
    'breakeven',
    'get_current_position',
    'HeatResult',
    'RiskLevel',
    'aggregate_risk',
    'is_freerolled',
    'Journal',
]
