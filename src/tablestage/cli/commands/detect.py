"""Detect the schema of a local file."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table as RichTable

from tablestage.cli import common
from tablestage.cli.common import JsonFlag, LogFormatOption, VerboseOption, console
from tablestage.core.config import get_settings
from tablestage.session import IngestSession
from tablestage.staging.models import IncomingFile, Schema


async def _detect(path: Path) -> Schema | None:
    settings = get_settings()
    async with common.create_client(settings) as client:
        session = IngestSession.from_backend(client, settings)
        session.subscribe(common.print_notice)
        report = await session.admit([IncomingFile.from_path(path)])
        if not report.admitted:
            return None
        return await session.open_schema_editor(report.admitted[0])


def detect(
    file: Annotated[
        Path,
        typer.Argument(
            help="File to inspect",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    json_output: JsonFlag = False,
    verbose: VerboseOption = 0,
    log_format: LogFormatOption = "console",
) -> None:
    """Run schema detection on one file and print the columns."""
    common.setup_logging(verbosity=verbose, log_format=log_format)

    schema = asyncio.run(_detect(file))
    if schema is None:
        raise typer.Exit(1)

    if json_output:
        console.print_json(json.dumps(schema.model_dump(mode="json", by_alias=True)))
        return

    table = RichTable(title=file.name)
    table.add_column("Column", style="cyan")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("PK")
    table.add_column("Sort")
    table.add_column("Sensitivity")
    table.add_column("Actions")
    for column in schema.columns:
        table.add_row(
            column.name,
            column.type.value,
            "yes" if column.nullable else "no",
            "yes" if column.is_primary_key else "",
            "yes" if column.is_sort_key else "",
            column.sensitivity.value,
            ", ".join(a.value for a in column.actions or []),
        )
    console.print(table)
