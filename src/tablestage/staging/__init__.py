"""Staging layer: staged file models, their lifecycle and the batch store.

Files enter through the validation gate, live in the batch store while the
user completes their target metadata, and leave either by removal or by the
clear that follows a fully successful commit.
"""

from tablestage.staging.models import (
    Column,
    ColumnAction,
    Dataset,
    FileMetadata,
    FileStatus,
    IncomingFile,
    Schema,
    Sensitivity,
    SqlType,
    StagedFile,
    Table,
    WriteMode,
)
from tablestage.staging.store import BatchStore
from tablestage.staging.validation import AdmissionDecision, AdmissionLimits, ValidationGate

__all__ = [
    "AdmissionDecision",
    "AdmissionLimits",
    "BatchStore",
    "Column",
    "ColumnAction",
    "Dataset",
    "FileMetadata",
    "FileStatus",
    "IncomingFile",
    "Schema",
    "Sensitivity",
    "SqlType",
    "StagedFile",
    "Table",
    "ValidationGate",
    "WriteMode",
]
