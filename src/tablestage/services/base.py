"""Abstract interfaces of the external collaborators.

The session never talks to the network directly: it goes through these four
services. ``HttpIngestClient`` implements all of them against the ingestion
API; tests substitute in-process fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from tablestage.core.result import Result
from tablestage.staging.models import Dataset, FileMetadata, Schema, StagedFile

type ProgressCallback = Callable[[float], None]
type FileContent = Path | bytes


class PatternMatcher(ABC):
    """Infers dataset, table and write mode from a filename."""

    @abstractmethod
    async def match_filename(self, filename: str) -> Result[FileMetadata | None]:
        """Look up the filename pattern registry.

        Returns:
            Result with the partial guess, or a successful Result with
            value None when no pattern matched
        """
        pass


class SchemaDetector(ABC):
    """Detects a column schema from file content."""

    @abstractmethod
    async def detect_schema(self, filename: str, content: FileContent) -> Result[Schema]:
        pass


class CatalogService(ABC):
    """Lists datasets and their tables."""

    @abstractmethod
    async def list_datasets(self) -> Result[list[Dataset]]:
        pass


class StorageBackend(ABC):
    """Writes a staged file into its target table."""

    @abstractmethod
    async def upload(
        self,
        file: StagedFile,
        on_progress: ProgressCallback,
    ) -> Result[int]:
        """Send a file and its metadata to the backend.

        Args:
            file: Staged file with complete target metadata
            on_progress: Called with the percentage of bytes sent, in order

        Returns:
            Result with the number of content bytes sent
        """
        pass


class IngestBackend(PatternMatcher, SchemaDetector, CatalogService, StorageBackend):
    """All four collaborators behind one endpoint."""
