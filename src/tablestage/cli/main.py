"""Main CLI application entry point."""

from __future__ import annotations

import typer

from tablestage.cli.commands import datasets, detect, limits, upload

app = typer.Typer(
    name="tablestage",
    help="Stage local files, fill in their target tables, and upload them in one batch.",
    no_args_is_help=True,
)

# Register commands
app.command()(limits.limits)
app.command()(datasets.datasets)
app.command()(detect.detect)
app.command()(upload.upload)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
