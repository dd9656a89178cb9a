"""Uniform error reporting for CLI commands."""

from typing import Any, NoReturn

import structlog
import typer
from rich.console import Console

from stockconsensus.domain.exceptions import StockConsensusError

logger = structlog.get_logger(__name__)
error_console = Console(stderr=True)


def handle_cli_error(error: Exception, context: dict[str, Any] | None = None) -> NoReturn:
    """Print ``error`` for the user and exit with status 1.

    Engine errors are shown with their taxonomy code and details; anything
    else is reported as an internal error and logged with its traceback.
    """
    if isinstance(error, StockConsensusError):
        payload = error.to_error_payload()
        error_console.print(f"✗ [bold red]{payload['code']}[/bold red]: {payload['error']}")
        for key, value in (payload["details"] or {}).items():
            error_console.print(f"  {key}: {value}", style="dim")
        logger.warning("Command failed", code=error.code, error=error.message, **(context or {}))
    else:
        error_console.print(f"✗ [bold red]INTERNAL_ERROR[/bold red]: {error}")
        logger.exception("Unexpected command failure", **(context or {}))
    raise typer.Exit(code=1)
