"""Command line interface."""

import typer

from stockconsensus.cli.analyze import analyze, collect, validate_identifier
from stockconsensus.infrastructure.config import get_settings
from stockconsensus.infrastructure.logging import configure_logging

app = typer.Typer(help="Multi-source stock data reconciliation and opinion consensus")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, json_output=settings.log_json)


app.command("analyze")(analyze)
app.command("collect")(collect)
app.command("validate-identifier")(validate_identifier)
