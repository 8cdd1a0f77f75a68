"""Console display and CSV export for the journal."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

import pandas as pd
from rich.console import Console
from rich.table import Table

from .executor import breakeven, get_current_position
from .heat import HeatResult, RiskLevel, is_freerolled
from .models import Sale, Trade, format_r_level
from .sizing import SizingResult

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    'open': 'Open',
    'partially_closed': 'Partial',
    'closed': 'Closed',
    'stopped_out': 'Stopped',
}

LEVEL_STYLES = {
    RiskLevel.CASH: 'dim',
    RiskLevel.FREEROLLED: 'green',
    RiskLevel.LOW: 'green',
    RiskLevel.MED: 'yellow',
    RiskLevel.HIGH: 'bold red',
}


def format_date(value: Optional[date]) -> str:
    """Format a date as '25 Nov 2025'."""
    if not value:
        return ''
    return f"{value.day} {value.strftime('%b')} {value.year}"


def format_short_date(value: Optional[date]) -> str:
    """Format a date as 'Nov 25th'."""
    if not value:
        return ''

    day = value.day
    suffix = 'th'
    if day in (1, 21, 31):
        suffix = 'st'
    elif day in (2, 22):
        suffix = 'nd'
    elif day in (3, 23):
        suffix = 'rd'

    return f"{value.strftime('%b')} {day}{suffix}"


def format_sale(sale: Sale) -> str:
    """Format a sale as '1/2 @ 52.00 Nov 25th', or '-' when incomplete."""
    if not sale.portion or not sale.price:
        return '-'
    date_str = f" {format_short_date(sale.sale_date)}" if sale.sale_date else ''
    return f"{sale.portion} @ {sale.price:.2f}{date_str}"


def format_status(status) -> str:
    value = getattr(status, 'value', status)
    return STATUS_LABELS.get(value, value)


def trades_to_frame(trades: List[Trade]) -> pd.DataFrame:
    """Flatten trades into one row each for export."""
    rows = []
    for trade in trades:
        position = get_current_position(trade) if trade.sell_plan else None
        rows.append({
            'id': trade.id,
            'ticker': trade.ticker,
            'entry_price': trade.entry_price,
            'entry_date': trade.entry_date.isoformat(),
            'initial_stop_loss': trade.initial_stop_loss,
            'current_stop_loss': trade.current_stop_loss,
            'status': trade.status.value,
            'archived': trade.archived,
            'shares': (position.initial if position
                       else trade.snapshot.shares if trade.snapshot else None),
            'remaining': position.remaining if position else None,
            'sales': '; '.join(format_sale(s) for s in trade.sales),
            'freerolled': is_freerolled(trade),
        })
    return pd.DataFrame(rows, columns=[
        'id', 'ticker', 'entry_price', 'entry_date', 'initial_stop_loss',
        'current_stop_loss', 'status', 'archived', 'shares', 'remaining',
        'sales', 'freerolled'
    ])


class Reporter:
    """
    Renders journal state to the console.

    This class is responsible for:
    - Sizing results and sell plans
    - The trade table
    - Open heat and its per-trade breakdown
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_sizing(self, result: Optional[SizingResult]) -> None:
        if result is None:
            self.console.print("[dim]Enter account size, risk, entry and stop to size a position[/dim]")
            return

        table = Table(title="Position Size", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Shares", f"{result.shares:,}")
        table.add_row("Position size", f"${result.position_size:,.2f}")
        table.add_row("Risk per share", f"${result.risk_per_share:.2f}")
        table.add_row("Actual risk", f"${result.actual_risk:,.2f} ({result.actual_risk_percent:.2f}%)")
        table.add_row("% of account", f"{result.percent_of_account:.2f}%")
        table.add_row("Stop distance", f"{result.stop_distance_percent:.2f}%")

        self.console.print(table)
        if result.is_limited:
            self.console.print(
                f"[yellow]Limited by max position size (${result.max_position_size:,.2f})[/yellow]"
            )

    def display_plan(self, trade: Trade) -> None:
        """Show a trade's sell plan with progress and breakeven."""
        plan = trade.sell_plan
        if plan is None:
            self.console.print(f"[dim]{trade.ticker} has no sell plan[/dim]")
            return

        table = Table(title=f"{trade.ticker} Sell Plan", show_header=True, header_style="bold cyan")
        table.add_column("Level", style="cyan", no_wrap=True)
        table.add_column("Portion")
        table.add_column("Target", justify="right")
        table.add_column("Planned", justify="right")
        table.add_column("Status")
        table.add_column("Sold", justify="right")

        for target in plan.targets:
            if target.is_executed:
                sold = (f"{target.shares_sold} @ {target.executed_price:.2f} "
                        f"{format_short_date(target.executed_date)}")
                status = "[green]executed[/green]"
            else:
                sold = '-'
                status = "pending"
            table.add_row(
                format_r_level(target.r_level),
                target.portion,
                f"${target.target_price:.2f}",
                str(target.planned_shares),
                status,
                sold
            )

        self.console.print(table)

        position = get_current_position(trade)
        self.console.print(
            f"Runner: {plan.runner}  •  Sold {position.sold}/{position.initial}  •  "
            f"Remaining {position.remaining}  •  Levels {position.completed_levels}/{position.total_levels}"
        )
        level = breakeven(trade)
        if level is not None:
            self.console.print(f"Breakeven stop: ${level:.2f}")

    def display_trades(self, trades: List[Trade], status: str = 'all') -> None:
        if not trades:
            if status == 'all':
                self.console.print("[yellow]No trades logged yet. Use 'add' to get started.[/yellow]")
            else:
                self.console.print(f"[yellow]No {status.replace('_', ' ')} trades found.[/yellow]")
            return

        max_sales = max(3, max(len(t.sales) for t in trades))

        table = Table(title="Trades", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Ticker", style="cyan", no_wrap=True)
        table.add_column("Entry", justify="right")
        table.add_column("Date")
        table.add_column("Initial SL", justify="right")
        table.add_column("Current SL", justify="right")
        for i in range(max_sales):
            table.add_column(f"Sale {i + 1}")
        table.add_column("Status")

        for trade in trades:
            sales = [format_sale(s) for s in trade.sales]
            sales += ['-'] * (max_sales - len(sales))
            table.add_row(
                trade.id,
                trade.ticker,
                f"{trade.entry_price:.2f}",
                format_date(trade.entry_date),
                f"{trade.initial_stop_loss:.2f}",
                f"{trade.current_stop_loss:.2f}",
                *sales,
                format_status(trade.status)
            )

        self.console.print(table)

    def display_heat(self, heat: HeatResult, account_size: float) -> None:
        style = LEVEL_STYLES[heat.level]
        self.console.print(
            f"\n[bold]Open heat:[/bold] [{style}]{heat.level.value}[/{style}] "
            f"${heat.total_risk:,.2f} ({heat.percent:.2f}% of ${account_size:,.2f})"
        )
        self.console.print(
            f"Active positions: {heat.active_count}  •  Freerolled: {heat.freerolled_count}"
        )

        if not heat.breakdown:
            return

        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Ticker", style="cyan")
        table.add_column("Shares at risk", justify="right")
        table.add_column("Risk/share", justify="right")
        table.add_column("Risk", justify="right")

        for row in heat.breakdown:
            if row.freerolled:
                table.add_row(row.ticker, "-", "-", "[green]freerolled[/green]")
            else:
                table.add_row(
                    row.ticker,
                    str(row.shares_at_risk),
                    f"${row.risk_per_share:.2f}",
                    f"${row.risk:,.2f}"
                )

        self.console.print(table)

    def csv_export(self, trades: List[Trade], filepath: str) -> None:
        """
        Export the trade table to CSV with full precision.

        Args:
            trades: Trades to export
            filepath: Path for the CSV file
        """
        if not trades:
            logger.warning("No trades to export")
            return

        df = trades_to_frame(trades)
        df.to_csv(filepath, index=False)

        logger.info(f"Exported {len(df)} trades to {filepath}")
