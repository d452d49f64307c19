"""Lazy schema detection for staged files."""

from __future__ import annotations

import asyncio

from tablestage.core.logging import get_logger
from tablestage.errors import SchemaDetectionError
from tablestage.services.base import SchemaDetector
from tablestage.staging.models import Schema, StagedFile

logger = get_logger(__name__)

type _Key = tuple[str, int]


class SchemaResolver:
    """Requests a detected schema for a file, at most once per admission.

    Successful detections are memoized per (identity, generation); a file
    removed and re-admitted under the same name gets a fresh lookup.
    Concurrent calls for the same file share one request. Failures are not
    memoized, so calling again retries.
    """

    def __init__(self, detector: SchemaDetector):
        self._detector = detector
        self._resolved: dict[_Key, Schema] = {}
        self._in_flight: dict[_Key, asyncio.Task[Schema]] = {}

    async def resolve(self, file: StagedFile) -> Schema:
        """Detect the schema of ``file``.

        Args:
            file: Staged file without a schema

        Returns:
            Detected schema

        Raises:
            SchemaDetectionError: Detection failed or returned no column list
        """
        key = (file.identity, file.generation)
        if key in self._resolved:
            return self._resolved[key]

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, file))
            self._in_flight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))

        # shield: one caller giving up must not cancel the shared request
        return await asyncio.shield(task)

    def forget(self, identity: str) -> None:
        """Drop memoized and in-flight detections for a removed file.

        A detection still running for ``identity`` completes for its
        waiting callers but is not memoized.
        """
        for key in [k for k in self._resolved if k[0] == identity]:
            del self._resolved[key]
        for key in [k for k in self._in_flight if k[0] == identity]:
            self._in_flight.pop(key)

    def clear(self) -> None:
        self._resolved.clear()
        self._in_flight.clear()

    def is_pending(self, identity: str) -> bool:
        return any(k[0] == identity for k in self._in_flight)

    def _release(self, key: _Key, task: asyncio.Task[Schema]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _run(self, key: _Key, file: StagedFile) -> Schema:
        schema = await self._detect(file)
        # Forgotten while running: the key no longer points at this task
        if self._in_flight.get(key) is asyncio.current_task():
            self._resolved[key] = schema
        return schema

    async def _detect(self, file: StagedFile) -> Schema:
        try:
            result = await self._detector.detect_schema(file.name, file.content)
        except Exception as e:
            raise SchemaDetectionError(
                f"Failed to detect schema for {file.name}: {type(e).__name__}: {e}",
                files=[file.identity],
            ) from e

        if not result.success or result.value is None:
            error = result.error or "no schema returned"
            logger.warning("schema_detection_failed", file=file.identity, error=error)
            raise SchemaDetectionError(
                f"Failed to detect schema for {file.name}: {error}", files=[file.identity]
            )

        logger.debug("schema_detected", file=file.identity, columns=len(result.value.columns))
        return result.value
