"""Batch upload to the storage backend."""

from tablestage.upload.orchestrator import BatchOutcome, UploadOrchestrator

__all__ = ["BatchOutcome", "UploadOrchestrator"]
