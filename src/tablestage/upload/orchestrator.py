"""Upload orchestrator.

Commits a batch by uploading every eligible file concurrently. Uploads are
independent: one failing never cancels or delays its siblings. Each file's
outcome is written to the batch store as soon as it settles; the batch is
cleared only when every file ended up committed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from uuid import uuid4

from tablestage.core.logging import get_logger, log_context
from tablestage.errors import CommitInProgress, NothingToCommit, UploadFailed
from tablestage.services.base import StorageBackend
from tablestage.staging.models import FileStatus, StagedFile
from tablestage.staging.status import UPLOADABLE
from tablestage.staging.store import BatchStore
from tablestage.staging.validation import ValidationGate

logger = get_logger(__name__)


@dataclass
class BatchOutcome:
    """Aggregate result of one commit."""

    batch_id: str
    committed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    # Already committed by an earlier attempt, not sent again
    skipped: list[str] = field(default_factory=list)
    # Removed from the batch while their upload was in flight
    discarded: list[str] = field(default_factory=list)
    cleared: bool = False

    @property
    def fully_succeeded(self) -> bool:
        return not self.failed

    @property
    def failed_files(self) -> list[str]:
        return list(self.failed)


@dataclass(frozen=True)
class _Settled:
    identity: str
    status: FileStatus | None  # None: result discarded
    error: str | None = None


class UploadOrchestrator:
    """Drives concurrent uploads of a batch to the storage backend."""

    def __init__(
        self,
        store: BatchStore,
        backend: StorageBackend,
        gate: ValidationGate,
        max_concurrency: int = 10,
    ):
        self._store = store
        self._backend = backend
        self._gate = gate
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._committing = False

    @property
    def is_committing(self) -> bool:
        return self._committing

    async def commit(self) -> BatchOutcome:
        """Upload every ready or previously failed file.

        Returns:
            BatchOutcome naming committed, failed, skipped and discarded files

        Raises:
            CommitInProgress: Another commit is running
            NothingToCommit: The batch is empty
            IncompleteMetadata: Some file lacks dataset, table or write mode;
                nothing was uploaded
        """
        if self._committing:
            raise CommitInProgress("An upload is already in progress")

        files = self._store.files
        if not files:
            raise NothingToCommit("Please select files to upload")

        pending = [f for f in files if f.status is not FileStatus.COMMITTED]
        self._gate.check_commit(pending)

        outcome = BatchOutcome(
            batch_id=uuid4().hex[:12],
            skipped=[f.identity for f in files if f.status is FileStatus.COMMITTED],
        )
        self._committing = True
        launched: list[StagedFile] = []
        try:
            with log_context(batch_id=outcome.batch_id):
                launched = [
                    self._store.begin_upload(f.identity) for f in pending if f.status in UPLOADABLE
                ]
                logger.info(
                    "batch_upload_started",
                    files=len(launched),
                    skipped=len(outcome.skipped),
                )

                settled = await asyncio.gather(
                    *(self._upload_one(f) for f in launched), return_exceptions=True
                )
                for file, result in zip(launched, settled, strict=True):
                    if isinstance(result, BaseException):
                        # _upload_one only lets cancellation through
                        result = self._settle_failure(file, f"{type(result).__name__}: {result}")
                    self._record(outcome, result)

                if outcome.fully_succeeded:
                    self._drop_committed(outcome)

                logger.info(
                    "batch_upload_finished",
                    committed=len(outcome.committed),
                    failed=len(outcome.failed),
                    discarded=len(outcome.discarded),
                    cleared=outcome.cleared,
                )
        finally:
            self._committing = False
            for file in launched:
                if (
                    self._store.is_current(file.identity, file.generation)
                    and self._store.get(file.identity).status is FileStatus.UPLOADING
                ):
                    self._store.mark_failed(file.identity, file.generation, "upload interrupted")
        return outcome

    async def _upload_one(self, file: StagedFile) -> _Settled:
        """Upload one file and record its outcome in the store."""

        def on_progress(pct: float) -> None:
            self._store.set_progress(file.identity, pct, file.generation)

        async with self._semaphore:
            if not self._store.is_current(file.identity, file.generation):
                return _Settled(file.identity, None)
            logger.debug("upload_started", file=file.identity, byte_size=file.byte_size)
            try:
                result = await self._backend.upload(file, on_progress)
            except Exception as e:
                return self._settle_failure(file, f"{type(e).__name__}: {e}")

        if not result.success:
            return self._settle_failure(file, result.error or "upload failed")

        if self._store.mark_committed(file.identity, file.generation) is None:
            logger.debug("stale_upload_discarded", file=file.identity)
            return _Settled(file.identity, None)
        logger.info("upload_committed", file=file.identity, bytes_sent=result.value)
        return _Settled(file.identity, FileStatus.COMMITTED)

    def _settle_failure(self, file: StagedFile, reason: str) -> _Settled:
        error = UploadFailed(file.name, reason)
        if self._store.mark_failed(file.identity, file.generation, error.reason) is None:
            logger.debug("stale_upload_discarded", file=file.identity)
            return _Settled(file.identity, None)
        logger.warning("upload_failed", file=file.identity, error=error.reason)
        return _Settled(file.identity, FileStatus.FAILED, error.reason)

    @staticmethod
    def _record(outcome: BatchOutcome, settled: _Settled) -> None:
        if settled.status is FileStatus.COMMITTED:
            outcome.committed.append(settled.identity)
        elif settled.status is FileStatus.FAILED:
            outcome.failed[settled.identity] = settled.error or "upload failed"
        else:
            outcome.discarded.append(settled.identity)

    def _drop_committed(self, outcome: BatchOutcome) -> None:
        """Clear the batch after a full success.

        Files admitted while the upload was running are kept.
        """
        if all(f.status is FileStatus.COMMITTED for f in self._store.files):
            self._store.clear()
        else:
            for file in self._store.files:
                if file.status is FileStatus.COMMITTED:
                    self._store.remove(file.identity)
        outcome.cleared = len(self._store) == 0
