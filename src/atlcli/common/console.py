"""Rich console helpers and logging setup."""

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

_LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

_handler: logging.Handler | None = None


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity and config."""
    from atlcli.common.config import get_config

    config = get_config()
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.WARNING)

    global _handler
    root_logger = logging.getLogger()
    # One handler per process, even when the CLI is invoked repeatedly in-process
    if _handler is not None:
        root_logger.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root_logger.setLevel(level)
    root_logger.addHandler(_handler)

    # urllib3 logs every connection at DEBUG; our own request log is enough
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


def get_console(plain_text: bool = False) -> Console:
    """Get a Console instance configured for plain or rich output."""
    if plain_text:
        return Console(force_terminal=False, no_color=True, highlight=False)
    return Console()


def get_error_console() -> Console:
    """Get a Console writing to standard error."""
    return Console(stderr=True, highlight=False)


def print_error(console: Console, message: str) -> None:
    """Print an error message on a single line."""
    message = " ".join(message.splitlines())
    if console.no_color:
        console.print(f"Error: {message}", markup=False, soft_wrap=True)
    else:
        console.print(f"Error: {message}", style="red", markup=False, soft_wrap=True)


def print_json(console: Console, data: Any) -> None:
    """Print data as indented JSON."""
    console.print_json(json.dumps(data, default=str))


def print_fields(console: Console, title: str, rows: list[tuple[str, Any]]) -> None:
    """Print a titled block of ``label: value`` lines, skipping empty values."""
    console.print(f"[bold]{title}[/bold]")
    for label, value in rows:
        if value is None or value == "":
            continue
        console.print(f"  {label}: {value}", markup=False)


def print_table(console: Console, columns: list[str], rows: list[list[Any]], title: str | None = None) -> None:
    """Print rows as a rich table."""
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*("" if cell is None else str(cell) for cell in row))
    console.print(table)
