"""Show admission limits."""

from __future__ import annotations

import json

from tablestage.cli.common import JsonFlag, console
from tablestage.core.config import get_settings
from tablestage.staging.validation import AdmissionLimits


def limits(json_output: JsonFlag = False) -> None:
    """Show how many files a batch may hold and how large each may be."""
    settings = get_settings()
    admission = AdmissionLimits(
        max_files=settings.max_files,
        max_file_bytes=settings.max_file_bytes,
    )

    if json_output:
        console.print_json(
            json.dumps(
                {
                    "max_files": admission.max_files,
                    "max_file_bytes": admission.max_file_bytes,
                }
            )
        )
        return

    console.print(admission.describe())
