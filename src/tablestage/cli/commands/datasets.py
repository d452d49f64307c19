"""List catalog datasets."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.markup import escape
from rich.table import Table as RichTable

from tablestage.catalog.cache import CatalogCache
from tablestage.cli import common
from tablestage.cli.common import JsonFlag, LogFormatOption, VerboseOption, console
from tablestage.core.config import get_settings
from tablestage.errors import CatalogUnavailable
from tablestage.staging.models import Dataset


async def _fetch() -> list[Dataset]:
    async with common.create_client(get_settings()) as client:
        return await CatalogCache(client).refresh()


def datasets(
    json_output: JsonFlag = False,
    verbose: VerboseOption = 0,
    log_format: LogFormatOption = "console",
) -> None:
    """List datasets and their tables."""
    common.setup_logging(verbosity=verbose, log_format=log_format)

    try:
        catalog = asyncio.run(_fetch())
    except CatalogUnavailable as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    if json_output:
        console.print_json(
            json.dumps([d.model_dump(mode="json", by_alias=True) for d in catalog])
        )
        return

    if not catalog:
        console.print("[dim]No datasets[/dim]")
        return

    table = RichTable(title="Datasets")
    table.add_column("Dataset", style="cyan")
    table.add_column("Tables")
    for dataset in catalog:
        table.add_row(dataset.name, ", ".join(t.name for t in dataset.tables) or "-")
    console.print(table)
