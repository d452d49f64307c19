"""Shared CLI utilities and constants."""

from __future__ import annotations

from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from tablestage.core.config import Settings
from tablestage.core.logging import configure_logging
from tablestage.events import Event, Notice, NoticeLevel
from tablestage.services.http import HttpIngestClient

# Load .env file from current directory (API URL, limits, ...)
load_dotenv()

# Shared console instance
console = Console()

_NOTICE_STYLES = {
    NoticeLevel.SUCCESS: "green",
    NoticeLevel.INFO: "blue",
    NoticeLevel.WARNING: "yellow",
    NoticeLevel.ERROR: "red",
}

# Common type aliases for typer options
JsonFlag = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON for scripting",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v=INFO, -vv=DEBUG)",
    ),
]

LogFormatOption = Annotated[
    str,
    typer.Option(
        "--log-format",
        help="Log output format (console or json)",
    ),
]


def setup_logging(verbosity: int = 0, log_format: str = "console") -> None:
    """Configure logging from the -v count."""
    level = {0: "WARNING", 1: "INFO"}.get(verbosity, "DEBUG")
    configure_logging(log_level=level, log_format=log_format)


def create_client(settings: Settings) -> HttpIngestClient:
    """Client used by every command (patched in tests)."""
    return HttpIngestClient.from_settings(settings)


def print_notice(event: Event) -> None:
    """Session listener printing user-facing notices."""
    if isinstance(event, Notice):
        style = _NOTICE_STYLES[event.level]
        console.print(f"[{style}]{escape(event.message)}[/{style}]")
