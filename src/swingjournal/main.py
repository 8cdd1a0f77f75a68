"""Main CLI entry point for SwingJournal."""

import sys
import logging
from datetime import date, datetime
from typing import Optional, Tuple

import pytz
import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console

# Relative imports for package
from .config_validator import validate_config
from .journal import Journal
from .models import AccountSettings, Trade, TradeStatus, parse_r_level
from .reporter import Reporter
from .sell_plan import generate_plan
from .store import DebouncedStore, JsonFileStore
from .exceptions import (
    ExceptionMapper,
    ConfigError,
    EXIT_SUCCESS,
)

# Load environment variables
load_dotenv()

# Initialize Typer app
app = typer.Typer(
    name="swing-journal",
    help="Swing trade journal: position sizing, R-level sell plans and open heat.",
    add_completion=False
)

# Initialize console for output
console = Console()
reporter = Reporter(console)

DATE_FORMATS = ["%Y-%m-%d"]

ConfigOption = typer.Option(
    "config.yaml",
    "--config-file", "-c",
    help="Path to configuration file"
)
DebugOption = typer.Option(
    False,
    "--debug", "-d",
    help="Enable debug logging"
)


# Configure logging
def setup_logging(debug: bool = False):
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_config(filepath: str) -> dict:
    """
    Load and validate configuration file.

    Args:
        filepath: Path to configuration YAML file

    Returns:
        Validated configuration dictionary

    Raises:
        ConfigError: If configuration is invalid
    """
    try:
        with open(filepath, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {filepath}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}")

    return validate_config(config)


def open_journal(config_file: str) -> Tuple[dict, Journal, DebouncedStore]:
    """Build the journal from configuration and load its trades."""
    config = load_config(config_file)

    account = config['account']
    settings = AccountSettings(
        account_size=account['size'],
        default_risk_percent=account['default_risk_percent'],
        default_max_percent=account['default_max_percent']
    )

    store = DebouncedStore(
        JsonFileStore(config['storage']['path']),
        delay=config['storage']['debounce_seconds']
    )
    journal = Journal(store, settings).load()
    return config, journal, store


def today(config: dict) -> date:
    """Current date in the configured timezone."""
    return datetime.now(pytz.timezone(config['display']['timezone'])).date()


def finish(store: DebouncedStore) -> None:
    """Write pending changes before the process exits."""
    if not store.flush():
        console.print("[yellow]Warning: journal could not be saved[/yellow]")


def fail(e: Exception, debug: bool) -> None:
    """Report an error and exit with the mapped code."""
    exit_code = ExceptionMapper.map_to_exit_code(e)

    if isinstance(e, ConfigError):
        console.print(f"\n[red]Configuration error: {e}[/red]")
    elif debug:
        # In debug mode, show full traceback
        console.print_exception()
    else:
        console.print(f"\n[red]Error: {e}[/red]")
        console.print(f"[dim]Exit code: {exit_code}[/dim]")

    sys.exit(exit_code)


@app.command()
def size(
    entry_price: float = typer.Argument(..., help="Planned entry price"),
    stop_loss: float = typer.Argument(..., help="Initial stop loss"),
    risk: Optional[float] = typer.Option(None, "--risk", "-r", help="Risk percent of account"),
    max_percent: Optional[float] = typer.Option(None, "--max", "-m", help="Max position percent of account"),
    account_size: Optional[float] = typer.Option(None, "--account", "-a", help="Override account size"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Size a position from the account's fixed fractional risk."""
    setup_logging(debug)

    try:
        _, journal, _ = open_journal(config_file)
        if account_size is not None:
            journal.settings = journal.settings.model_copy(update={'account_size': account_size})

        result = journal.size(entry_price, stop_loss, risk, max_percent)
        reporter.display_sizing(result)
    except Exception as e:
        fail(e, debug)


@app.command()
def plan(
    shares: int = typer.Argument(..., help="Initial share count"),
    entry_price: float = typer.Argument(..., help="Entry price"),
    stop_loss: float = typer.Argument(..., help="Initial stop loss"),
    debug: bool = DebugOption
):
    """Preview the R-level sell plan for a position."""
    setup_logging(debug)

    try:
        preview = Trade(
            ticker='preview',
            entry_price=entry_price,
            entry_date=date.today(),
            initial_stop_loss=stop_loss,
            current_stop_loss=stop_loss,
            sell_plan=generate_plan(shares, entry_price, stop_loss)
        )
        reporter.display_plan(preview)
    except Exception as e:
        fail(e, debug)


@app.command()
def add(
    ticker: str = typer.Argument(..., help="Ticker symbol"),
    entry_price: float = typer.Argument(..., help="Entry price"),
    stop_loss: float = typer.Argument(..., help="Initial stop loss"),
    entry_date: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS, help="Entry date (default today)"),
    shares: Optional[int] = typer.Option(None, "--shares", "-s", help="Explicit share count (skips sizing)"),
    risk: Optional[float] = typer.Option(None, "--risk", "-r", help="Risk percent of account"),
    max_percent: Optional[float] = typer.Option(None, "--max", "-m", help="Max position percent of account"),
    no_plan: bool = typer.Option(False, "--no-plan", help="Do not create a sell plan"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Add a trade, sized from account risk, with its sell plan."""
    setup_logging(debug)

    try:
        config, journal, store = open_journal(config_file)
        trade = journal.add_trade(
            ticker=ticker,
            entry_price=entry_price,
            stop_loss=stop_loss,
            entry_date=entry_date.date() if entry_date else today(config),
            shares=shares,
            risk_percent=risk,
            max_percent=max_percent,
            with_plan=not no_plan
        )
        finish(store)

        console.print(f"[green]✓ Added {trade.ticker} ({trade.id})[/green]")
        reporter.display_plan(trade)
        reporter.display_heat(journal.heat, journal.settings.account_size)
    except Exception as e:
        fail(e, debug)


@app.command()
def show(
    trade_id: str = typer.Argument(..., help="Trade ID"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Show a trade's sell plan and progress."""
    setup_logging(debug)

    try:
        _, journal, _ = open_journal(config_file)
        reporter.display_plan(journal.get_trade(trade_id))
    except Exception as e:
        fail(e, debug)


@app.command()
def sell(
    trade_id: str = typer.Argument(..., help="Trade ID"),
    level: str = typer.Argument(..., help="R-level of the target, e.g. 1 or R1"),
    shares: int = typer.Argument(..., help="Shares sold"),
    price: float = typer.Argument(..., help="Sale price"),
    sale_date: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS, help="Sale date (default today)"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Log a partial sale against a sell plan target."""
    setup_logging(debug)

    try:
        config, journal, store = open_journal(config_file)
        journal.log_sale(
            trade_id,
            parse_r_level(level),
            shares,
            price,
            sale_date.date() if sale_date else today(config)
        )
        finish(store)

        trade = journal.get_trade(trade_id)
        console.print(f"[green]✓ Logged sale for {trade.ticker}[/green]")
        reporter.display_plan(trade)
        reporter.display_heat(journal.heat, journal.settings.account_size)
    except Exception as e:
        fail(e, debug)


@app.command()
def close(
    trade_id: str = typer.Argument(..., help="Trade ID"),
    price: float = typer.Argument(..., help="Exit price"),
    exit_date: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS, help="Exit date (default today)"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Sell all remaining shares of a trade."""
    setup_logging(debug)

    try:
        config, journal, store = open_journal(config_file)
        journal.close_remaining(
            trade_id,
            price,
            exit_date.date() if exit_date else today(config)
        )
        finish(store)

        trade = journal.get_trade(trade_id)
        console.print(f"[green]✓ Closed {trade.ticker}[/green]")
        reporter.display_heat(journal.heat, journal.settings.account_size)
    except Exception as e:
        fail(e, debug)


@app.command()
def edit(
    trade_id: str = typer.Argument(..., help="Trade ID"),
    stop: Optional[float] = typer.Option(None, "--stop", help="New current stop loss"),
    status: Optional[TradeStatus] = typer.Option(None, "--status", help="New status"),
    ticker: Optional[str] = typer.Option(None, "--ticker", help="Corrected ticker"),
    entry_date: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS, help="Corrected entry date"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Edit a trade's stop, status, ticker or entry date."""
    setup_logging(debug)

    fields = {}
    if stop is not None:
        fields['current_stop_loss'] = stop
    if status is not None:
        fields['status'] = status
    if ticker is not None:
        fields['ticker'] = ticker
    if entry_date is not None:
        fields['entry_date'] = entry_date.date()

    if not fields:
        console.print("[yellow]Nothing to change[/yellow]")
        sys.exit(EXIT_SUCCESS)

    try:
        _, journal, store = open_journal(config_file)
        trade = journal.edit_trade(trade_id, **fields)
        finish(store)

        console.print(f"[green]✓ Updated {trade.ticker}[/green]")
        reporter.display_heat(journal.heat, journal.settings.account_size)
    except Exception as e:
        fail(e, debug)


@app.command(name="list")
def list_trades(
    status: str = typer.Option("all", "--status", help="Filter: all, open, partially_closed, closed, stopped_out"),
    archived: bool = typer.Option(False, "--archived", help="Include archived trades"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """List trades, newest entry first."""
    setup_logging(debug)

    try:
        _, journal, _ = open_journal(config_file)
        trades = journal.filter_trades(status, include_archived=archived)
        reporter.display_trades(trades, status)
    except Exception as e:
        fail(e, debug)


@app.command()
def heat(
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Show open heat across active trades."""
    setup_logging(debug)

    try:
        _, journal, _ = open_journal(config_file)
        reporter.display_heat(journal.heat, journal.settings.account_size)
    except Exception as e:
        fail(e, debug)


@app.command()
def account(
    account_size: float = typer.Argument(..., help="New account size"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Set the account size stored with the journal."""
    setup_logging(debug)

    try:
        _, journal, _ = open_journal(config_file)
        journal.set_account_size(account_size)

        console.print(f"[green]✓ Account size set to ${account_size:,.2f}[/green]")
        reporter.display_heat(journal.heat, journal.settings.account_size)
    except Exception as e:
        fail(e, debug)


@app.command()
def archive(
    trade_id: str = typer.Argument(..., help="Trade ID"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Archive a trade so it no longer counts toward open heat."""
    setup_logging(debug)

    try:
        _, journal, store = open_journal(config_file)
        trade = journal.archive_trade(trade_id)
        finish(store)
        console.print(f"[green]✓ Archived {trade.ticker}[/green]")
    except Exception as e:
        fail(e, debug)


@app.command()
def delete(
    trade_id: str = typer.Argument(..., help="Trade ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Delete a trade and its sell plan."""
    setup_logging(debug)

    try:
        _, journal, store = open_journal(config_file)
        trade = journal.get_trade(trade_id)

        if not yes and not typer.confirm(f"Delete {trade.ticker} ({trade.id})?"):
            console.print("[yellow]Cancelled[/yellow]")
            sys.exit(EXIT_SUCCESS)

        journal.delete_trade(trade_id)
        finish(store)
        console.print(f"[green]✓ Deleted {trade.ticker}[/green]")
    except Exception as e:
        fail(e, debug)


@app.command()
def export(
    output: str = typer.Argument("trades.csv", help="CSV output path"),
    archived: bool = typer.Option(False, "--archived", help="Include archived trades"),
    config_file: str = ConfigOption,
    debug: bool = DebugOption
):
    """Export the trade table to CSV."""
    setup_logging(debug)

    try:
        _, journal, _ = open_journal(config_file)
        trades = journal.filter_trades('all', include_archived=archived)
        reporter.csv_export(trades, output)
        console.print(f"[green]✓ Exported {len(trades)} trades to {output}[/green]")
    except Exception as e:
        fail(e, debug)


@app.command()
def version():
    """Show version information."""
    from . import __version__
    console.print(f"SwingJournal v{__version__}")


if __name__ == "__main__":
    app()
