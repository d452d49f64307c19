"""Stage and upload files."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError
from rich.markup import escape
from rich.progress import BarColumn, Progress, TaskID, TaskProgressColumn, TextColumn

from tablestage.cli import common
from tablestage.cli.common import LogFormatOption, VerboseOption, console
from tablestage.core.config import get_settings
from tablestage.errors import IngestError, MetadataConflict
from tablestage.events import Event, FileUpdated
from tablestage.session import IngestSession
from tablestage.staging.models import IncomingFile, Schema, WriteMode


def _load_schema(path: Path | None) -> Schema | None:
    if path is None:
        return None
    try:
        return Schema.model_validate_json(path.read_text())
    except ValidationError as e:
        raise typer.BadParameter(f"{path} is not a valid schema: {e.error_count()} error(s)") from e


def _print_plan(session: IngestSession) -> None:
    for file in session.files:
        meta = file.metadata
        target = f"{meta.dataset or '?'}.{meta.table or '?'}"
        mode = meta.write_mode.value if meta.write_mode else "?"
        console.print(
            f"  {escape(file.name)} ({file.size_mb:.2f} MB) -> {escape(target)} ({mode})"
        )


async def _upload(
    paths: list[Path],
    dataset: str | None,
    table: str | None,
    mode: WriteMode | None,
    schema: Schema | None,
    detect_schema: bool,
    quiet: bool,
) -> bool:
    settings = get_settings()
    async with common.create_client(settings) as client:
        session = IngestSession.from_backend(client, settings)
        session.subscribe(common.print_notice)

        if not quiet:
            console.print(f"[dim]{session.limits.describe()}[/dim]")
        await session.start()

        report = await session.admit([IncomingFile.from_path(p) for p in paths])
        ok = not report.rejected
        if not report.admitted:
            return False

        for identity in report.admitted:
            try:
                if dataset is not None:
                    session.set_dataset(identity, dataset)
                if table is not None:
                    session.set_table(identity, table)
                if mode is not None:
                    session.set_write_mode(identity, mode)
            except MetadataConflict as e:
                console.print(f"[red]{escape(str(e))}[/red]")
                ok = False

            if schema is not None:
                session.set_schema(identity, schema)
            elif detect_schema:
                await session.open_schema_editor(identity)
                session.close_schema_editor()

        if not quiet:
            console.print("[bold]Upload plan[/bold]")
            _print_plan(session)

        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            disable=quiet,
        ) as progress:
            tasks: dict[str, TaskID] = {
                f.identity: progress.add_task(f.name, total=100) for f in session.files
            }

            def on_event(event: Event) -> None:
                if isinstance(event, FileUpdated) and event.file.progress is not None:
                    task = tasks.get(event.file.identity)
                    if task is not None:
                        progress.update(task, completed=event.file.progress)

            unsubscribe = session.subscribe(on_event)
            try:
                outcome = await session.commit()
            except IngestError:
                return False
            finally:
                unsubscribe()

        for identity, error in outcome.failed.items():
            console.print(f"  [red]{escape(identity)}[/red]: {escape(error)}")
        return ok and outcome.fully_succeeded


def upload(
    files: Annotated[
        list[Path],
        typer.Argument(
            help="Files to stage and upload",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    dataset: Annotated[
        str | None,
        typer.Option("--dataset", "-d", help="Target dataset (overrides the filename guess)"),
    ] = None,
    table: Annotated[
        str | None,
        typer.Option("--table", "-t", help="Target table (overrides the filename guess)"),
    ] = None,
    mode: Annotated[
        WriteMode | None,
        typer.Option("--mode", "-m", help="Write mode", case_sensitive=False),
    ] = None,
    schema_file: Annotated[
        Path | None,
        typer.Option(
            "--schema",
            help="JSON schema to attach to every file",
            exists=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    detect_schema: Annotated[
        bool,
        typer.Option("--detect-schema", help="Attach a detected schema to files that have none"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress plan and progress output"),
    ] = False,
    verbose: VerboseOption = 0,
    log_format: LogFormatOption = "console",
) -> None:
    """Stage files, fill in their targets, and upload them as one batch.

    Examples:

        tablestage upload sales_2024.csv

        tablestage upload a.csv b.csv --dataset finance --table orders --mode Append

        tablestage upload events.csv --detect-schema -v
    """
    common.setup_logging(verbosity=verbose, log_format=log_format)
    schema = _load_schema(schema_file)

    succeeded = asyncio.run(
        _upload(files, dataset, table, mode, schema, detect_schema, quiet)
    )
    if not succeeded:
        raise typer.Exit(1)
