"""Error taxonomy of the ingestion session.

Every error names the files it concerns so the session can turn it into a
user-facing notice. None of them is fatal: the batch stays editable after
any of these is raised.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


class IngestError(Exception):
    """Base class for ingestion errors."""

    def __init__(self, message: str, files: Iterable[str] = ()):
        super().__init__(message)
        self.message = message
        self.files = list(files)

    def __str__(self) -> str:
        return self.message


class AdmissionRejected(IngestError):
    """A file (or a whole drop) was refused at the admission check."""


class EnrichmentUnavailable(IngestError):
    """The pattern matcher could not produce a guess.

    Never escapes the enricher: it degrades to an empty guess.
    """


class SchemaDetectionError(IngestError):
    """Schema detection failed or returned a malformed schema."""


class IncompleteMetadata(IngestError):
    """Commit refused because some files lack required metadata."""

    def __init__(self, missing: Mapping[str, list[str]]):
        self.missing = dict(missing)
        details = "; ".join(f"{name}: {', '.join(fields)}" for name, fields in self.missing.items())
        super().__init__(
            f"Please complete dataset and table information for all files ({details})",
            files=self.missing,
        )


class UploadFailed(IngestError):
    """A single file could not be written to the storage backend."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"Failed to upload {filename}: {reason}", files=[filename])
        self.reason = reason


class CatalogUnavailable(IngestError):
    """The dataset catalog could not be loaded."""


class MetadataConflict(IngestError, ValueError):
    """A metadata update would break the dataset -> table -> write mode chain."""


class StateTransitionError(IngestError):
    """A file was asked to move to a status it cannot reach from its current one."""


class FileNotStaged(IngestError, KeyError):
    """No staged file has the given identity."""

    def __init__(self, identity: str):
        super().__init__(f"File not staged: {identity}", files=[identity])

    def __str__(self) -> str:
        return self.message


class CommitInProgress(IngestError):
    """A commit was requested while another one is still running."""


class NothingToCommit(IngestError):
    """A commit was requested on an empty batch."""
