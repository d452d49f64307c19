"""External collaborators: pattern matching, schema detection, catalog, storage."""

from tablestage.services.base import (
    CatalogService,
    IngestBackend,
    PatternMatcher,
    ProgressCallback,
    SchemaDetector,
    StorageBackend,
)
from tablestage.services.http import HttpIngestClient

__all__ = [
    "CatalogService",
    "HttpIngestClient",
    "IngestBackend",
    "PatternMatcher",
    "ProgressCallback",
    "SchemaDetector",
    "StorageBackend",
]
