"""Ingestion session: the composition root of one upload batch.

Wires the validation gate, enricher, schema resolver, batch store, catalog
cache and upload orchestrator to the collaborators, and owns the state a
front end needs on top of the batch: which file is selected and whether its
schema editor is open.

Every failure that concerns the user becomes a ``Notice`` event. Refusals
(incomplete metadata, empty batch, commit already running) are also raised
so programmatic callers can react; partial outcomes (some files rejected at
admission, some uploads failed) are returned instead.

Usage:
    async with HttpIngestClient.from_settings(settings) as client:
        session = IngestSession.from_backend(client, settings)
        session.subscribe(print)
        await session.start()
        report = await session.admit([IncomingFile.from_path(p) for p in paths])
        session.set_dataset("sales_2024.csv", "finance")
        session.set_table("sales_2024.csv", "orders")
        session.set_write_mode("sales_2024.csv", WriteMode.APPEND)
        outcome = await session.commit()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from tablestage.catalog.cache import CatalogCache
from tablestage.core.config import Settings, get_settings
from tablestage.core.logging import get_logger
from tablestage.enrichment.enricher import MetadataEnricher
from tablestage.enrichment.schema import SchemaResolver
from tablestage.errors import (
    AdmissionRejected,
    CatalogUnavailable,
    IngestError,
    MetadataConflict,
    SchemaDetectionError,
    StateTransitionError,
)
from tablestage.events import (
    BatchCleared,
    Event,
    FileRemoved,
    Listener,
    Notice,
    NoticeLevel,
    SchemaEditorClosed,
    SelectionCleared,
)
from tablestage.services.base import (
    CatalogService,
    IngestBackend,
    PatternMatcher,
    SchemaDetector,
    StorageBackend,
)
from tablestage.staging.models import (
    Column,
    Dataset,
    FileMetadata,
    IncomingFile,
    Schema,
    StagedFile,
    Table,
    WriteMode,
)
from tablestage.staging.status import EDITABLE
from tablestage.staging.store import BatchStore
from tablestage.staging.validation import AdmissionLimits, ValidationGate
from tablestage.upload.orchestrator import BatchOutcome, UploadOrchestrator

logger = get_logger(__name__)


@dataclass
class AdmissionReport:
    """Result of one drop: who got staged, who was turned away and why."""

    admitted: list[str] = field(default_factory=list)
    rejected: list[AdmissionRejected] = field(default_factory=list)

    @property
    def rejected_names(self) -> list[str]:
        return [name for r in self.rejected for name in r.files]


class IngestSession:
    """One staging-and-commit session over a single batch."""

    def __init__(
        self,
        matcher: PatternMatcher,
        detector: SchemaDetector,
        catalog_service: CatalogService,
        storage: StorageBackend,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.limits = AdmissionLimits(
            max_files=self.settings.max_files,
            max_file_bytes=self.settings.max_file_bytes,
        )
        self.store = BatchStore()
        self.gate = ValidationGate(self.limits)
        self.enricher = MetadataEnricher(matcher)
        self.resolver = SchemaResolver(detector)
        self.catalog = CatalogCache(catalog_service, ttl_seconds=self.settings.catalog_ttl_seconds)
        self.orchestrator = UploadOrchestrator(
            self.store,
            storage,
            self.gate,
            max_concurrency=self.settings.max_concurrent_uploads,
        )

        self.selected: str | None = None
        self.schema_editor_open = False
        self._listeners: list[Listener] = []
        self.store.subscribe(self._on_store_event)

    @classmethod
    def from_backend(
        cls, backend: IngestBackend, settings: Settings | None = None
    ) -> IngestSession:
        """Build a session whose four collaborators share one backend."""
        return cls(backend, backend, backend, backend, settings=settings)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an event listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: Event) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _notify(self, level: NoticeLevel, message: str, files: Iterable[str] = ()) -> None:
        self._emit(Notice(level=level, message=message, files=list(files)))

    def _on_store_event(self, event: Event) -> None:
        if isinstance(event, FileRemoved):
            self.resolver.forget(event.identity)
        elif isinstance(event, BatchCleared):
            self.resolver.clear()
        self._emit(event)
        if isinstance(event, FileRemoved | BatchCleared) and self.selected not in self.store:
            self._drop_selection()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def start(self) -> list[Dataset]:
        """Load the dataset catalog; a failure leaves the list empty."""
        try:
            return await self.catalog.load()
        except CatalogUnavailable as e:
            self._notify(NoticeLevel.ERROR, "Failed to load datasets")
            logger.warning("catalog_load_failed", error=str(e))
            return self.catalog.datasets

    async def refresh_catalog(self) -> list[Dataset]:
        try:
            return await self.catalog.refresh()
        except CatalogUnavailable as e:
            self._notify(NoticeLevel.ERROR, "Failed to load datasets")
            logger.warning("catalog_refresh_failed", error=str(e))
            return self.catalog.datasets

    @property
    def datasets(self) -> list[Dataset]:
        return self.catalog.datasets

    def tables_for(self, dataset: str) -> list[Table]:
        return self.catalog.tables_for(dataset)

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    @property
    def files(self) -> tuple[StagedFile, ...]:
        return self.store.files

    def get(self, identity: str) -> StagedFile:
        return self.store.get(identity)

    async def admit(self, files: Iterable[IncomingFile]) -> AdmissionReport:
        """Stage a drop of files and enrich the admitted ones.

        Rejected files are reported (and announced) individually; valid
        siblings are staged regardless. Enrichment runs concurrently for all
        admitted files and each guess is applied as it arrives.
        """
        incoming = list(files)
        decision = self.gate.check_admission(self.store.files, incoming)
        for rejection in decision.rejected:
            logger.info("admission_rejected", files=rejection.files, reason=rejection.message)
            self._notify(NoticeLevel.ERROR, rejection.message, rejection.files)

        staged = self.store.admit(decision.accepted)
        for file in staged:
            logger.info("file_admitted", file=file.identity, byte_size=file.byte_size)
            self.store.begin_enrichment(file.identity)

        await asyncio.gather(*(self._enrich(file) for file in staged))
        return AdmissionReport(
            admitted=[f.identity for f in staged],
            rejected=decision.rejected,
        )

    async def _enrich(self, file: StagedFile) -> None:
        guess = await self.enricher.enrich(file.name)
        self.store.apply_enrichment(file.identity, file.generation, guess)

    def remove(self, identity: str) -> StagedFile:
        """Unstage a file; late results of its in-flight calls are dropped."""
        return self.store.remove(identity)

    # ------------------------------------------------------------------
    # Selection and schema editor
    # ------------------------------------------------------------------

    def select(self, identity: str) -> StagedFile:
        file = self.store.get(identity)
        if self.selected != identity and self.schema_editor_open:
            self.close_schema_editor()
        self.selected = identity
        return file

    def clear_selection(self) -> None:
        if self.selected is not None:
            self._drop_selection()

    def _drop_selection(self) -> None:
        identity = self.selected
        self.selected = None
        if identity is None:
            return
        self._emit(SelectionCleared(identity))
        if self.schema_editor_open:
            self.schema_editor_open = False
            self._emit(SchemaEditorClosed(identity))

    async def open_schema_editor(self, identity: str | None = None) -> Schema | None:
        """Select a file and open its schema editor.

        A file without a schema gets one from schema detection first. If
        detection fails the editor stays closed, an error notice is emitted
        and None is returned; calling again retries.
        """
        identity = identity or self.selected
        if identity is None:
            raise MetadataConflict("No file selected")
        file = self.select(identity)
        if file.status not in EDITABLE:
            raise StateTransitionError(
                f"{identity}: schema cannot be edited while {file.status.value}", files=[identity]
            )

        if file.metadata.table_schema is None:
            try:
                schema = await self.resolver.resolve(file)
            except SchemaDetectionError as e:
                self._notify(NoticeLevel.ERROR, "Failed to detect schema", e.files)
                return None

            if not self.store.is_current(identity, file.generation):
                return None
            current = self.store.get(identity)
            # The user may have set a schema while detection was running
            if current.metadata.table_schema is None and current.status in EDITABLE:
                self.store.update_metadata(identity, FileMetadata(table_schema=schema))
            file = self.store.get(identity)

        if self.selected != identity:
            return None
        self.schema_editor_open = True
        return file.metadata.table_schema

    def close_schema_editor(self) -> None:
        if self.schema_editor_open:
            self.schema_editor_open = False
            if self.selected is not None:
                self._emit(SchemaEditorClosed(self.selected))

    # ------------------------------------------------------------------
    # Metadata edits
    # ------------------------------------------------------------------

    def update_metadata(
        self, identity: str, partial: FileMetadata | Mapping[str, Any]
    ) -> StagedFile:
        return self.store.update_metadata(identity, partial)

    def set_dataset(self, identity: str, dataset: str | None) -> StagedFile:
        """Choose the target dataset; clears table and write mode when it changes."""
        return self.store.update_metadata(identity, FileMetadata(dataset=dataset))

    def set_table(self, identity: str, table: str | None) -> StagedFile:
        return self.store.update_metadata(identity, FileMetadata(table=table))

    def set_write_mode(self, identity: str, write_mode: WriteMode | str | None) -> StagedFile:
        return self.store.update_metadata(identity, {"write_mode": write_mode})

    def set_schema(self, identity: str, schema: Schema | None) -> StagedFile:
        return self.store.update_metadata(identity, FileMetadata(table_schema=schema))

    def update_column(self, identity: str, index: int, **changes: Any) -> StagedFile:
        """Edit one column of a file's schema, replacing the whole column list.

        Args:
            identity: Staged file
            index: Position of the column in the schema
            **changes: Column fields to change (``name``, ``type``,
                ``nullable``, ``is_primary_key``, ``is_sort_key``,
                ``comments``, ``sensitivity``, ``actions``)
        """
        schema = self.store.get(identity).metadata.table_schema
        if schema is None:
            raise MetadataConflict(f"{identity} has no schema to edit", files=[identity])

        columns = list(schema.columns)
        if not 0 <= index < len(columns):
            raise MetadataConflict(
                f"{identity} has no column at position {index}", files=[identity]
            )
        columns[index] = Column.model_validate({**columns[index].model_dump(), **changes})
        return self.set_schema(identity, Schema(columns=columns))

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def commit(self) -> BatchOutcome:
        """Upload the batch.

        Raises:
            IncompleteMetadata: Some file lacks dataset, table or write mode
            NothingToCommit: The batch is empty
            CommitInProgress: A commit is already running
        """
        try:
            outcome = await self.orchestrator.commit()
        except IngestError as e:
            self._notify(NoticeLevel.ERROR, e.message, e.files)
            raise

        if outcome.fully_succeeded:
            self._notify(
                NoticeLevel.SUCCESS, "All files uploaded successfully!", outcome.committed
            )
        else:
            self._notify(
                NoticeLevel.ERROR,
                f"Failed to upload: {', '.join(outcome.failed_files)}",
                outcome.failed_files,
            )
        return outcome
