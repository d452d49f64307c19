"""Validation gate: admission and commit checks.

Both checks are pure functions of the current batch and the candidate files;
they never touch the store.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tablestage.core.config import MEBIBYTE
from tablestage.errors import AdmissionRejected, IncompleteMetadata
from tablestage.staging.models import FileStatus, IncomingFile, StagedFile


def format_size_limit(max_bytes: int) -> str:
    """Render a byte ceiling the way users read it ("300MB")."""
    if max_bytes % MEBIBYTE == 0:
        return f"{max_bytes // MEBIBYTE}MB"
    return f"{max_bytes / MEBIBYTE:.2f}MB"


@dataclass(frozen=True)
class AdmissionLimits:
    """Limits presented to the user before a drop and enforced on it."""

    max_files: int
    max_file_bytes: int

    def describe(self) -> str:
        return f"Up to {self.max_files} files, max {format_size_limit(self.max_file_bytes)} each"


@dataclass
class AdmissionDecision:
    """Outcome of the admission check for one drop."""

    accepted: list[IncomingFile] = field(default_factory=list)
    rejected: list[AdmissionRejected] = field(default_factory=list)

    @property
    def rejected_names(self) -> list[str]:
        return [name for r in self.rejected for name in r.files]


class ValidationGate:
    """Batch-level constraints checked before staging and before commit."""

    def __init__(self, limits: AdmissionLimits):
        self.limits = limits

    def check_admission(
        self,
        current: Sequence[StagedFile],
        incoming: Sequence[IncomingFile],
    ) -> AdmissionDecision:
        """Decide which incoming files may be staged.

        If the drop would push the batch over the file-count ceiling, the
        whole drop is rejected and already staged files are left alone.
        Otherwise each file is judged on its own: an oversized or duplicate
        file is rejected without blocking its valid siblings.

        Args:
            current: Files already staged
            incoming: Files of the new drop, in drop order

        Returns:
            AdmissionDecision with accepted files and one rejection per
            refused file (or a single rejection for an over-ceiling drop)
        """
        decision = AdmissionDecision()
        if not incoming:
            return decision

        if len(current) + len(incoming) > self.limits.max_files:
            decision.rejected.append(
                AdmissionRejected(
                    f"Maximum {self.limits.max_files} files allowed",
                    files=[f.name for f in incoming],
                )
            )
            return decision

        taken = {f.identity for f in current}
        limit = format_size_limit(self.limits.max_file_bytes)
        for file in incoming:
            if not file.name:
                decision.rejected.append(AdmissionRejected("File has no name"))
            elif file.byte_size > self.limits.max_file_bytes:
                decision.rejected.append(
                    AdmissionRejected(f"{file.name} exceeds {limit} limit", files=[file.name])
                )
            elif file.name in taken:
                decision.rejected.append(
                    AdmissionRejected(f"{file.name} is already staged", files=[file.name])
                )
            else:
                taken.add(file.name)
                decision.accepted.append(file)
        return decision

    def check_commit(self, files: Iterable[StagedFile]) -> None:
        """Refuse the commit unless every file has complete target metadata.

        Raises:
            IncompleteMetadata: naming every offending file and what it lacks
        """
        missing: dict[str, list[str]] = {}
        for file in files:
            fields = file.metadata.missing_required()
            if file.status in (FileStatus.STAGED, FileStatus.ENRICHING):
                fields = [*fields, "enrichment pending"]
            if fields:
                missing[file.identity] = fields
        if missing:
            raise IncompleteMetadata(missing)
