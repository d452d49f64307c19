"""CLI for tablestage.

Usage:
    tablestage limits
    tablestage datasets
    tablestage detect ./events.csv
    tablestage upload ./sales_2024.csv ./events.csv --mode Append

Environment:
    Loads .env file from current directory if present.
    Set TABLESTAGE_API_BASE_URL to point at the ingestion API.
"""

from tablestage.cli.main import app, main

__all__ = ["app", "main"]
