"""HTTP implementation of the collaborator services.

Talks to the ingestion API with an ``httpx.AsyncClient``:

- ``GET  /findregex/{filename}``  filename pattern match
- ``GET  /datasets``              dataset/table catalog
- ``POST /detect-schema``         schema detection (multipart ``file``)
- ``POST /upload/{filename}``     write (multipart ``file`` + JSON ``metadata``)

Transport errors and non-2xx answers come back as failed Results.
"""

from __future__ import annotations

import io
import json
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from tablestage.core.config import Settings
from tablestage.core.logging import get_logger
from tablestage.core.result import Result
from tablestage.services.base import FileContent, IngestBackend, ProgressCallback
from tablestage.staging.models import Dataset, FileMetadata, Schema, StagedFile

logger = get_logger(__name__)

_DATASETS = TypeAdapter(list[Dataset])


@contextmanager
def open_content(content: FileContent) -> Iterator[BinaryIO]:
    """Open staged content for reading, whether it is a path or raw bytes."""
    if isinstance(content, Path):
        with content.open("rb") as stream:
            yield stream
    else:
        yield io.BytesIO(content)


class ProgressReader:
    """Binary reader that reports how much of the content has been read.

    httpx pulls multipart file parts through ``read``; each chunk handed
    over is one byte-level progress event, reported as
    ``loaded / total * 100``.
    """

    def __init__(
        self,
        stream: BinaryIO,
        total: int,
        on_progress: ProgressCallback,
        chunk_size: int = 64 * 1024,
    ):
        self._stream = stream
        self._total = total
        self._on_progress = on_progress
        self._chunk_size = chunk_size
        self.loaded = 0

    def read(self, size: int | None = -1) -> bytes:
        if size is None or size < 0 or size > self._chunk_size:
            size = self._chunk_size
        chunk = self._stream.read(size)
        if chunk:
            self.loaded += len(chunk)
            if self._total > 0:
                self._on_progress(min(self.loaded / self._total * 100, 100.0))
        elif self._total == 0:
            self._on_progress(100.0)
        return chunk

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        position = self._stream.seek(offset, whence)
        self.loaded = min(position, self._total)
        return position

    def tell(self) -> int:
        return self._stream.tell()


def _describe_error(response: httpx.Response) -> str:
    detail = response.text.strip()
    try:
        payload = response.json()
        if isinstance(payload, dict) and "detail" in payload:
            detail = str(payload["detail"])
    except ValueError:
        pass
    reason = f"HTTP {response.status_code}"
    return f"{reason}: {detail[:200]}" if detail else reason


class HttpIngestClient(IngestBackend):
    """Collaborator client for the ingestion API.

    Usage:
        async with HttpIngestClient.from_settings(get_settings()) as client:
            result = await client.list_datasets()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        upload_timeout: float = 600.0,
        chunk_size: int = 64 * 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, e.g. ``http://localhost:8000/api``
            timeout: Timeout for lookups and schema detection
            upload_timeout: Timeout for one upload request
            chunk_size: Read size while streaming file content
            transport: Optional transport override (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.upload_timeout = upload_timeout
        self.chunk_size = chunk_size
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> HttpIngestClient:
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
            upload_timeout=settings.upload_timeout_seconds,
            chunk_size=settings.upload_chunk_bytes,
            transport=transport,
        )

    async def __aenter__(self) -> HttpIngestClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    async def match_filename(self, filename: str) -> Result[FileMetadata | None]:
        result = await self._request("GET", f"/findregex/{quote(filename, safe='')}")
        if not result.success:
            return Result.fail(result.error or "pattern lookup failed", result.status_code)
        if result.value is None:
            return Result.ok(None)
        try:
            return Result.ok(FileMetadata.model_validate(result.value))
        except ValidationError as e:
            return Result.fail(f"Malformed pattern match: {e.error_count()} invalid field(s)")

    async def list_datasets(self) -> Result[list[Dataset]]:
        result = await self._request("GET", "/datasets")
        if not result.success:
            return Result.fail(result.error or "catalog request failed", result.status_code)
        try:
            return Result.ok(_DATASETS.validate_python(result.value))
        except ValidationError as e:
            return Result.fail(f"Malformed dataset catalog: {e.error_count()} invalid field(s)")

    async def detect_schema(self, filename: str, content: FileContent) -> Result[Schema]:
        with open_content(content) as stream:
            result = await self._request(
                "POST",
                "/detect-schema",
                files={"file": (filename, stream, "application/octet-stream")},
            )
        if not result.success:
            return Result.fail(result.error or "schema detection failed", result.status_code)
        try:
            return Result.ok(Schema.model_validate(result.value))
        except ValidationError as e:
            return Result.fail(f"Malformed schema: {e.error_count()} invalid field(s)")

    async def upload(self, file: StagedFile, on_progress: ProgressCallback) -> Result[int]:
        metadata = json.dumps(file.metadata.to_wire())
        with open_content(file.content) as stream:
            reader = ProgressReader(stream, file.byte_size, on_progress, self.chunk_size)
            result = await self._request(
                "POST",
                f"/upload/{quote(file.name, safe='')}",
                files={"file": (file.name, reader, "application/octet-stream")},
                data={"metadata": metadata},
                timeout=self.upload_timeout,
                expect_json=False,
            )
        if not result.success:
            return Result.fail(result.error or "upload failed", result.status_code)
        return Result.ok(reader.loaded)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self, method: str, url: str, expect_json: bool = True, **kwargs: Any
    ) -> Result[Any]:
        """Send a request and decode its JSON body (None for an empty body)."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.debug("request_failed", method=method, url=url, error=str(e))
            return Result.fail(f"{type(e).__name__}: {e}" if str(e) else type(e).__name__)

        if response.is_error:
            logger.debug("request_rejected", method=method, url=url, status=response.status_code)
            return Result.fail(_describe_error(response), response.status_code)

        if not expect_json or not response.content:
            return Result.ok(None)
        try:
            return Result.ok(response.json())
        except ValueError:
            return Result.fail("Response is not valid JSON", response.status_code)
