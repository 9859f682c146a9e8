"""Command-line interface commands for Flagtrader."""

import json
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..config import AccountConfig, Config
from ..exceptions import FlagTraderError
from ..logger import setup_logger
from ..models.market_data import Candle, CurrencyPair, candles_from_records
from ..models.signals import CalendarRecommendation, NewsSentiment, TradeDirection
from ..models.trading import PositionSizing
from ..risk.position_sizer import PositionSizer
from ..risk.spread import SpreadEstimator
from ..strategies.analysis_engine import AnalysisEngine, AnalysisResult
from ..strategies.patterns.pattern_config import get_pattern_config, save_pattern_config

console = Console()


def load_candles(path: Path) -> List[Candle]:
    """Load a candle JSON file: a list of records, or an object with a ``candles`` list."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get('candles', [])
    if not isinstance(data, list):
        raise FlagTraderError(f"{path} must contain a list of candles")
    return candles_from_records(data)


def _fail(message: str) -> None:
    console.print(f"[red]✗[/red] {escape(message)}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="flagtrader")
@click.option(
    "--env-file",
    type=click.Path(exists=True, path_type=Path),
    help="Path to a .env file"
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.pass_context
def cli(ctx: click.Context, env_file: Optional[Path], verbose: bool) -> None:
    """Flagtrader: flag pattern detection and trade decisions for forex pairs."""
    ctx.ensure_object(dict)

    try:
        config = Config.load_from_env(str(env_file) if env_file else None)
    except ValueError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    if verbose:
        config.logging.level = "DEBUG"

    setup_logger(
        "flagtrader",
        level=config.logging.level,
        log_file=config.logging.file_path,
        max_size=config.logging.max_size,
        backup_count=config.logging.backup_count
    )
    ctx.obj["config"] = config


@cli.command()
@click.option('--pair', default=None, help='Currency pair (e.g., EUR/USD); defaults to DEFAULT_PAIR')
@click.option('--structural', 'structural_file', required=True,
              type=click.Path(exists=True, path_type=Path), help='Structural timeframe candle JSON file')
@click.option('--entry', 'entry_file', required=True,
              type=click.Path(exists=True, path_type=Path), help='Entry timeframe candle JSON file')
@click.option('--sentiment', type=click.Choice([s.value for s in NewsSentiment], case_sensitive=False),
              default=NewsSentiment.NEUTRAL.value, help='News sentiment verdict')
@click.option('--calendar', type=click.Choice([c.value for c in CalendarRecommendation], case_sensitive=False),
              default=CalendarRecommendation.PROCEED.value, help='Economic calendar recommendation')
@click.option('--balance', type=str, default=None, help='Account balance (overrides ACCOUNT_BALANCE)')
@click.option('--risk', type=str, default=None, help='Risk percent per trade (overrides RISK_PERCENT)')
@click.option('--spread', type=str, default=None, help='Spread in pips (estimated when omitted)')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
def analyze(ctx, pair, structural_file, entry_file, sentiment, calendar, balance, risk, spread, as_json):
    """Analyze candle files for a confirmed flag pattern and size the trade."""
    config: Config = ctx.obj["config"]

    try:
        account = AccountConfig(
            balance=Decimal(balance) if balance is not None else config.account.balance,
            risk_percent=Decimal(risk) if risk is not None else config.account.risk_percent,
            account_currency=config.account.account_currency
        )
        engine = AnalysisEngine(config=config)
        result = engine.analyze(
            pair=pair or config.analysis.default_pair,
            structural_candles=load_candles(structural_file),
            entry_candles=load_candles(entry_file),
            news_sentiment=sentiment.upper(),
            calendar_recommendation=calendar.upper(),
            account=account,
            spread_pips=Decimal(spread) if spread is not None else None
        )
    except (FlagTraderError, ArithmeticError, ValueError) as e:
        _fail(f"Analysis failed: {e}")
        return

    if as_json:
        click.echo(json.dumps(result.model_dump(mode='json'), indent=2))
        return

    _print_analysis(result)


@cli.command()
@click.option('--pair', required=True, help='Currency pair (e.g., EUR/USD)')
@click.option('--balance', type=str, required=True, help='Account balance')
@click.option('--risk', type=str, default='2', show_default=True, help='Risk percent per trade')
@click.option('--stop-loss-pips', type=str, required=True, help='Stop loss distance in pips')
@click.option('--price', type=str, required=True, help='Current price')
@click.option('--direction', type=click.Choice(['BUY', 'SELL'], case_sensitive=False), default='BUY')
@click.option('--spread', type=str, default='0', show_default=True, help='Spread in pips')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
def position(ctx, pair, balance, risk, stop_loss_pips, price, direction, spread, as_json):
    """Calculate position size and spread-adjusted price levels."""
    config: Config = ctx.obj["config"]

    try:
        sizing = PositionSizer().calculate(
            account_balance=Decimal(balance),
            risk_percent=Decimal(risk),
            stop_loss_pips=Decimal(stop_loss_pips),
            current_price=Decimal(price),
            pair=pair,
            direction=TradeDirection.from_value(direction),
            spread_pips=Decimal(spread),
            account_currency=config.account.account_currency
        )
    except (ArithmeticError, ValueError) as e:
        _fail(f"Position sizing failed: {e}")
        return

    if as_json:
        click.echo(json.dumps(sizing.model_dump(mode='json'), indent=2))
        return

    _print_position(sizing, config.account.account_currency)


@cli.command()
@click.option('--pair', required=True, help='Currency pair (e.g., GBP/JPY)')
@click.option('--at', 'at', default=None, help='ISO timestamp to estimate for (default: now)')
def spread(pair, at):
    """Estimate the spread for a pair by trading session."""
    try:
        moment = datetime.fromisoformat(at.replace('Z', '+00:00')) if at else None
        symbol = CurrencyPair.parse(pair).symbol
        estimate = SpreadEstimator().estimate(symbol, moment)
    except ValueError as e:
        _fail(f"Spread estimation failed: {e}")
        return

    console.print(f"Estimated spread for [bold]{symbol}[/bold]: [cyan]{estimate}[/cyan] pips")


@cli.group()
def config():
    """Flag detection configuration."""
    pass


@config.command('show')
def config_show():
    """Print the active flag detection configuration."""
    pattern_config = get_pattern_config()

    table = Table(title="Flag Detection Configuration", show_header=True)
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="green")

    for section, values in pattern_config.to_dict().items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(f"{section}.{key}", str(value))
        else:
            table.add_row(section, str(values))

    console.print(table)


@config.command('save')
@click.argument('path', type=click.Path(dir_okay=False, path_type=Path))
def config_save(path):
    """Save the active flag detection configuration to PATH."""
    save_pattern_config(path)
    console.print(f"[green]✓[/green] Configuration saved to {path}")


def _print_analysis(result: AnalysisResult) -> None:
    decision = result.decision
    pattern = result.pattern

    color = "green" if decision.is_trade else "yellow"
    title = f"{result.pair}: {decision.action.value}"
    if decision.direction:
        title += f" {decision.direction.value} ({decision.confidence}% confidence)"

    body = "\n".join(f"• {reason}" for reason in decision.reasoning)
    if decision.risks:
        body += "\n\n[red]Risks:[/red]\n" + "\n".join(f"⚠ {risk}" for risk in decision.risks)
    console.print(Panel(body, title=title, border_style=color))

    table = Table(title="Flag Pattern", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Detected on both timeframes", "✅" if pattern.pattern_detected else "❌")
    table.add_row("Direction", pattern.direction.value)
    table.add_row("Quality", str(pattern.pattern_quality))
    table.add_row("Valid trade", "✅" if pattern.valid_trade else "❌")
    for label, value in (
        ("Entry", pattern.entry),
        ("Stop loss", pattern.stop_loss),
        ("Take profit", pattern.take_profit),
        ("Stop loss pips", pattern.stop_loss_pips),
        ("Take profit pips", pattern.take_profit_pips),
    ):
        table.add_row(label, "-" if value is None else str(value))
    console.print(table)

    if result.position_sizing:
        _print_position(result.position_sizing, None)


def _print_position(sizing: PositionSizing, currency: Optional[str]) -> None:
    suffix = f" {currency}" if currency else ""

    table = Table(title=f"Position Sizing: {sizing.pair} {sizing.direction.value}", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Risk amount", f"{sizing.risk_amount:.2f}{suffix}")
    table.add_row("Lot size", str(sizing.lot_size))
    table.add_row("Recommended lot size", str(sizing.recommended_lot_size))
    table.add_row("Pip value (per lot)", f"{sizing.pip_value:.4f}{suffix}")
    table.add_row("Spread", f"{sizing.spread_pips} pips")
    table.add_row("Entry", str(sizing.entry_price))
    table.add_row("Stop loss", f"{sizing.stop_loss_price} ({sizing.stop_loss_pips} pips)")
    table.add_row("Take profit", f"{sizing.take_profit_price} ({sizing.take_profit_pips} pips)")
    table.add_row("Projected profit", f"{sizing.projected_profit:.2f}{suffix}")
    table.add_row("Risk:reward", f"1:{sizing.true_risk_reward_ratio} (target 1:{sizing.risk_reward_ratio})")
    console.print(table)
