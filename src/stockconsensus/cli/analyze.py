"""Analysis CLI commands."""

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from stockconsensus.cli.error_handler import handle_cli_error
from stockconsensus.cli.utils import async_command
from stockconsensus.domain.exceptions import InvalidIdentifierError
from stockconsensus.domain.models.identifier import Identifier
from stockconsensus.domain.models.opinion import ConsensusOutcome, Recommendation
from stockconsensus.domain.models.record import CanonicalRecord
from stockconsensus.domain.models.results import AggregationResult, PipelineResult
from stockconsensus.infrastructure.containers import get_container

console = Console()

CLI_CALLER_KEY = "cli"

DECISION_STYLES = {
    Recommendation.BUY: "bold green",
    Recommendation.SELL: "bold red",
    Recommendation.HOLD: "bold yellow",
}


def _fmt(value: object) -> str:
    return "-" if value is None else str(value)


def _fmt_confidence(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def _display_record(record: CanonicalRecord) -> None:
    meta = record.metadata
    title = f"{meta.identifier} {meta.company_name or ''}".strip()
    price = record.price_info
    metrics = record.financial_metrics
    technical = record.technical_indicators

    table = Table(title=title, show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Price", _fmt(price.current_price))
    table.add_row("Change", f"{_fmt(price.change)} ({_fmt(price.change_percent)}%)")
    table.add_row("Volume", _fmt(price.volume))
    table.add_row(
        "PER / PBR / ROE", f"{_fmt(metrics.per)} / {_fmt(metrics.pbr)} / {_fmt(metrics.roe)}"
    )
    table.add_row("RSI", _fmt(technical.rsi))
    table.add_row("Sources", ", ".join(record.sources_used) or "-")
    table.add_row("Merge confidence", f"{record.merge_confidence}")
    console.print(table)

    if record.news_items:
        console.print("\n[bold]News:[/bold]")
        for item in record.news_items:
            console.print(f"  • {item.title} [dim]{_fmt(item.published_at)}[/dim]")


def _display_aggregation(aggregation: AggregationResult) -> None:
    _display_record(aggregation.canonical_record)
    for warning in aggregation.warnings:
        console.print(f"  [yellow]! {warning}[/yellow]")
    for error in aggregation.errors:
        console.print(f"  [red]✗ {error}[/red]")


def _display_result(result: PipelineResult) -> None:
    _display_aggregation(result.aggregation)

    console.print("\n[bold]Opinions:[/bold]")
    for opinion in result.opinions:
        console.print(
            f"  {opinion.agent_name} ({opinion.domain_label}): "
            f"{opinion.recommendation.value} @ {_fmt_confidence(opinion.confidence)}"
        )

    decision = result.decision
    style = DECISION_STYLES[decision.decision]
    lines = [
        f"[{style}]{decision.decision.value}[/{style}]  "
        f"confidence {_fmt_confidence(decision.confidence)}",
        decision.reasoning,
    ]
    if decision.missing_confidences:
        lines.append(f"[dim]{decision.missing_confidences} agent(s) gave no confidence[/dim]")
    if decision.outcome is ConsensusOutcome.SPLIT:
        lines.append("[dim]No majority: agents split[/dim]")
    if decision.target_price is not None:
        target = decision.target_price
        lines.append(
            f"Target {target.low:g} - {target.high:g} "
            f"(mean {target.mean_low:g} - {target.mean_high:g})"
        )
    console.print(Panel("\n".join(lines), title="Consensus", border_style="blue"))


@async_command
async def analyze(
    symbol: str = typer.Argument(..., help="Instrument code (4 digits or 1-5 letters)"),
    as_json: bool = typer.Option(False, "--json", help="Print the full result as JSON"),
) -> None:
    """Collect, merge and vote on one instrument."""
    pipeline = get_container().pipeline()
    try:
        with console.status("[bold blue]Collecting data and asking agents..."):
            result = await pipeline.run(symbol, CLI_CALLER_KEY)
    except Exception as e:
        handle_cli_error(e, context={"symbol": symbol})
    finally:
        await pipeline.aclose()

    if as_json:
        console.print_json(result.model_dump_json())
    else:
        _display_result(result)


@async_command
async def collect(
    symbol: str = typer.Argument(..., help="Instrument code (4 digits or 1-5 letters)"),
    as_json: bool = typer.Option(False, "--json", help="Print the aggregation as JSON"),
) -> None:
    """Collect and merge data for one instrument without asking the agents."""
    pipeline = get_container().pipeline()
    try:
        with console.status("[bold blue]Collecting data..."):
            aggregation = await pipeline.aggregate(symbol)
    except Exception as e:
        handle_cli_error(e, context={"symbol": symbol})
    finally:
        await pipeline.aclose()

    if as_json:
        console.print_json(aggregation.model_dump_json())
    else:
        _display_aggregation(aggregation)


def validate_identifier(
    symbol: str = typer.Argument(..., help="Instrument code to check"),
) -> None:
    """Check whether an instrument code is accepted."""
    try:
        identifier = Identifier.parse(symbol)
    except InvalidIdentifierError as e:
        handle_cli_error(e, context={"symbol": symbol})
    console.print(f"✓ {identifier.code} ({identifier.market.value})", style="bold green")
