"""Shared pytest fixtures for all tests."""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from tablestage.core.config import MEBIBYTE, Settings, get_settings
from tablestage.core.logging import configure_logging
from tablestage.core.result import Result
from tablestage.services.base import FileContent, IngestBackend, ProgressCallback
from tablestage.session import IngestSession
from tablestage.staging.models import (
    Dataset,
    FileMetadata,
    IncomingFile,
    Schema,
    StagedFile,
    WriteMode,
)


class FakeBackend(IngestBackend):
    """In-process stand-in for the ingestion API.

    Every knob is a plain attribute so tests can arrange answers, failures
    and pauses (``*_gates``: the call waits until the event is set).
    """

    def __init__(self):
        # Pattern matcher
        self.matches: dict[str, FileMetadata | None] = {}
        self.match_error: str | None = None
        self.match_raises: Exception | None = None
        self.match_gates: dict[str, asyncio.Event] = {}
        self.match_calls: list[str] = []

        # Catalog
        self.datasets: list[Dataset] = []
        self.catalog_error: str | None = None
        self.catalog_calls = 0

        # Schema detector
        self.schemas: dict[str, Schema] = {}
        self.detect_error: str | None = None
        self.detect_gate: asyncio.Event | None = None
        self.detect_calls: list[str] = []

        # Storage
        self.upload_errors: dict[str, str] = {}
        self.upload_raises: dict[str, Exception] = {}
        self.upload_gates: dict[str, asyncio.Event] = {}
        self.progress_steps: tuple[float, ...] = (25.0, 50.0, 100.0)
        self.uploads: list[str] = []
        self.uploaded_metadata: dict[str, dict] = {}

    async def match_filename(self, filename: str) -> Result[FileMetadata | None]:
        self.match_calls.append(filename)
        gate = self.match_gates.get(filename)
        if gate is not None:
            await gate.wait()
        if self.match_raises is not None:
            raise self.match_raises
        if self.match_error is not None:
            return Result.fail(self.match_error, 503)
        return Result.ok(self.matches.get(filename))

    async def detect_schema(self, filename: str, content: FileContent) -> Result[Schema]:
        self.detect_calls.append(filename)
        if self.detect_gate is not None:
            await self.detect_gate.wait()
        await asyncio.sleep(0)
        if self.detect_error is not None:
            return Result.fail(self.detect_error, 422)
        schema = self.schemas.get(filename)
        if schema is None:
            return Result.fail("no schema", 422)
        return Result.ok(schema)

    async def list_datasets(self) -> Result[list[Dataset]]:
        self.catalog_calls += 1
        if self.catalog_error is not None:
            return Result.fail(self.catalog_error, 500)
        return Result.ok(list(self.datasets))

    async def upload(self, file: StagedFile, on_progress: ProgressCallback) -> Result[int]:
        self.uploads.append(file.identity)
        self.uploaded_metadata[file.identity] = file.metadata.to_wire()
        gate = self.upload_gates.get(file.identity)
        if gate is not None:
            await gate.wait()
        if file.identity in self.upload_raises:
            raise self.upload_raises[file.identity]
        error = self.upload_errors.get(file.identity)
        if error is not None:
            return Result.fail(error, 500)
        for pct in self.progress_steps:
            on_progress(pct)
            await asyncio.sleep(0)
        return Result.ok(file.byte_size)


@pytest.fixture(autouse=True)
def reset_environment():
    """Fresh settings cache and logging configuration for every test.

    Logging is reconfigured afterwards because CLI tests bind the log
    stream to the runner's temporary stderr.
    """
    get_settings.cache_clear()
    configure_logging(log_level="WARNING", color=False)
    yield
    get_settings.cache_clear()
    configure_logging(log_level="WARNING", color=False)


@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def session(backend: FakeBackend, settings: Settings) -> IngestSession:
    return IngestSession.from_backend(backend, settings)


@pytest.fixture
def make_file() -> Callable[..., IncomingFile]:
    """Factory for in-memory incoming files.

    ``size_mb`` sets the declared size without allocating that much content.
    """

    def _make(name: str, size_mb: float | None = None, data: bytes = b"id,amount\n1,10\n"):
        byte_size = int(size_mb * MEBIBYTE) if size_mb is not None else len(data)
        return IncomingFile(name=name, byte_size=byte_size, content=data)

    return _make


@pytest.fixture
def complete_metadata() -> FileMetadata:
    return FileMetadata(dataset="finance", table="orders", write_mode=WriteMode.APPEND)


@pytest.fixture
def wait_for() -> Callable[[Callable[[], bool]], Awaitable[None]]:
    """Yield to the event loop until ``predicate`` holds."""

    async def _wait(predicate: Callable[[], bool], attempts: int = 200) -> None:
        for _ in range(attempts):
            if predicate():
                return
            await asyncio.sleep(0)
        raise AssertionError("condition not reached")

    return _wait
