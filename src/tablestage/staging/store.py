"""Batch store: the ordered set of staged files.

The store is the single source of truth for a batch. Each mutation builds a
new mapping and swaps it in, so snapshots handed out by ``files`` never
change underneath their holder. Files are replaced whole; nested metadata
(including the column list of a schema) is never mutated in place.

Asynchronous results (enrichment, upload progress) carry the generation of
the file they were started for. A file that was removed, or removed and
re-admitted under the same name, has a different generation, and the late
result is dropped.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from tablestage.core.logging import get_logger
from tablestage.errors import FileNotStaged, MetadataConflict, StateTransitionError
from tablestage.events import BatchCleared, Event, FileRemoved, FileUpdated
from tablestage.staging.models import FileMetadata, FileStatus, IncomingFile, StagedFile
from tablestage.staging.status import EDITABLE, check_transition

logger = get_logger(__name__)

_METADATA_FIELDS = frozenset(FileMetadata.model_fields)


def _as_changes(partial: FileMetadata | Mapping[str, Any]) -> dict[str, Any]:
    """Fields explicitly carried by a partial update."""
    if isinstance(partial, FileMetadata):
        return {name: getattr(partial, name) for name in partial.model_fields_set}

    changes: dict[str, Any] = {}
    for key, value in partial.items():
        name = key
        if name not in _METADATA_FIELDS:
            # Accept wire aliases too ("writeMode", "schema")
            name = next(
                (f for f, info in FileMetadata.model_fields.items() if info.alias == key),
                key,
            )
        if name not in _METADATA_FIELDS:
            raise MetadataConflict(f"Unknown metadata field: {key}")
        changes[name] = value
    # Round-trip through the model so enum and schema values are validated
    validated = FileMetadata.model_validate(changes)
    return {name: getattr(validated, name) for name in changes}


def _check_chain(identity: str, metadata: FileMetadata) -> None:
    if metadata.table is not None and metadata.dataset is None:
        raise MetadataConflict(f"{identity}: table requires a dataset", files=[identity])
    if metadata.write_mode is not None and (metadata.dataset is None or metadata.table is None):
        raise MetadataConflict(
            f"{identity}: write mode requires a dataset and a table", files=[identity]
        )


class BatchStore:
    """Ordered mapping of file identity to StagedFile."""

    def __init__(self) -> None:
        self._files: dict[str, StagedFile] = {}
        self._generations = itertools.count(1)
        self._listeners: list[Callable[[Event], None]] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def files(self) -> tuple[StagedFile, ...]:
        """Snapshot of staged files in insertion order."""
        return tuple(self._files.values())

    @property
    def identities(self) -> list[str]:
        return list(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, identity: object) -> bool:
        return identity in self._files

    def __iter__(self) -> Iterator[StagedFile]:
        return iter(self.files)

    def get(self, identity: str) -> StagedFile:
        try:
            return self._files[identity]
        except KeyError:
            raise FileNotStaged(identity) from None

    def is_current(self, identity: str, generation: int) -> bool:
        """Whether ``identity`` is still staged with the given generation."""
        file = self._files.get(identity)
        return file is not None and file.generation == generation

    def subscribe(self, listener: Callable[[Event], None]) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Structural mutations
    # ------------------------------------------------------------------

    def admit(self, incoming: Iterable[IncomingFile]) -> list[StagedFile]:
        """Add already validated files; returns the new staged entries."""
        admitted = [
            StagedFile(
                identity=f.name,
                name=f.name,
                byte_size=f.byte_size,
                content=f.content,
                generation=next(self._generations),
            )
            for f in incoming
        ]
        for file in admitted:
            if file.identity in self._files:
                raise MetadataConflict(
                    f"File already staged: {file.identity}", files=[file.identity]
                )

        self._files = {**self._files, **{f.identity: f for f in admitted}}
        for file in admitted:
            logger.debug("file_staged", file=file.identity, byte_size=file.byte_size)
            self._emit(FileUpdated(file))
        return admitted

    def remove(self, identity: str) -> StagedFile:
        removed = self.get(identity)
        self._files = {k: v for k, v in self._files.items() if k != identity}
        logger.debug("file_removed", file=identity, status=removed.status.value)
        self._emit(FileRemoved(identity))
        return removed

    def clear(self) -> None:
        self._files = {}
        self._emit(BatchCleared())

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def update_metadata(
        self, identity: str, partial: FileMetadata | Mapping[str, Any]
    ) -> StagedFile:
        """Merge a partial metadata update into a file.

        Changing the dataset clears table and write mode unless the same
        update sets them again.

        Raises:
            FileNotStaged: Unknown identity
            StateTransitionError: File is uploading or already committed
            MetadataConflict: Result would have a table without dataset, or
                a write mode without table
        """
        current = self.get(identity)
        if current.status not in EDITABLE:
            raise StateTransitionError(
                f"{identity}: metadata cannot change while {current.status.value}",
                files=[identity],
            )

        changes = _as_changes(partial)
        if "dataset" in changes and changes["dataset"] != current.metadata.dataset:
            changes.setdefault("table", None)
            changes.setdefault("write_mode", None)

        metadata = current.metadata.model_copy(update=changes)
        _check_chain(identity, metadata)
        return self._replace(current.model_copy(update={"metadata": metadata}))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def begin_enrichment(self, identity: str) -> StagedFile:
        return self._move(self.get(identity), FileStatus.ENRICHING)

    def apply_enrichment(
        self, identity: str, generation: int, guess: FileMetadata
    ) -> StagedFile | None:
        """Fill still-unset fields from an enrichment guess and mark the file ready.

        Fields the user set while enrichment was in flight win. A guessed
        table (and write mode) is only taken when it belongs to the file's
        current dataset. Returns None if the result is stale.
        """
        if not self.is_current(identity, generation):
            logger.debug("stale_enrichment_discarded", file=identity, generation=generation)
            return None

        current = self._files[identity]
        existing = current.metadata
        changes: dict[str, Any] = {}

        if existing.dataset is None and guess.dataset is not None:
            changes["dataset"] = guess.dataset
        dataset = changes.get("dataset", existing.dataset)

        if guess.dataset is not None and guess.dataset == dataset:
            if existing.table is None and guess.table is not None:
                changes["table"] = guess.table
            table = changes.get("table", existing.table)
            if (
                existing.write_mode is None
                and guess.write_mode is not None
                and guess.table == table
            ):
                changes["write_mode"] = guess.write_mode

        if existing.table_schema is None and guess.table_schema is not None:
            changes["table_schema"] = guess.table_schema

        metadata = existing.model_copy(update=changes)
        updated = current.model_copy(update={"metadata": metadata})
        return self._move(updated, FileStatus.READY)

    def begin_upload(self, identity: str) -> StagedFile:
        current = self.get(identity)
        check_transition(identity, current.status, FileStatus.UPLOADING)
        return self._replace(
            current.model_copy(
                update={"status": FileStatus.UPLOADING, "progress": 0.0, "error": None}
            )
        )

    def set_progress(self, identity: str, pct: float, generation: int) -> StagedFile | None:
        """Record an upload progress tick.

        Progress never decreases within an attempt and is clamped to [0, 100].
        Ticks for stale or non-uploading files are dropped.
        """
        if not self.is_current(identity, generation):
            return None
        current = self._files[identity]
        if current.status is not FileStatus.UPLOADING:
            return None

        pct = min(max(pct, 0.0), 100.0)
        if current.progress is not None and pct <= current.progress:
            return current
        return self._replace(current.model_copy(update={"progress": pct}))

    def mark_committed(self, identity: str, generation: int) -> StagedFile | None:
        if not self.is_current(identity, generation):
            return None
        current = self._files[identity]
        check_transition(identity, current.status, FileStatus.COMMITTED)
        return self._replace(
            current.model_copy(update={"status": FileStatus.COMMITTED, "progress": 100.0})
        )

    def mark_failed(self, identity: str, generation: int, error: str) -> StagedFile | None:
        if not self.is_current(identity, generation):
            return None
        current = self._files[identity]
        check_transition(identity, current.status, FileStatus.FAILED)
        return self._replace(
            current.model_copy(update={"status": FileStatus.FAILED, "error": error})
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _move(self, file: StagedFile, target: FileStatus) -> StagedFile:
        check_transition(file.identity, file.status, target)
        return self._replace(file.model_copy(update={"status": target}))

    def _replace(self, file: StagedFile) -> StagedFile:
        self._files = {k: (file if k == file.identity else v) for k, v in self._files.items()}
        self._emit(FileUpdated(file))
        return file

    def _emit(self, event: Event) -> None:
        for listener in self._listeners:
            listener(event)
