"""tablestage: stage local files, fill in their target tables, upload them in one batch."""

from tablestage.core.result import Result
from tablestage.errors import IngestError
from tablestage.session import AdmissionReport, IngestSession
from tablestage.staging.models import FileMetadata, FileStatus, IncomingFile, StagedFile, WriteMode
from tablestage.upload.orchestrator import BatchOutcome

__version__ = "0.1.0"

__all__ = [
    "AdmissionReport",
    "BatchOutcome",
    "FileMetadata",
    "FileStatus",
    "IncomingFile",
    "IngestError",
    "IngestSession",
    "Result",
    "StagedFile",
    "WriteMode",
    "__version__",
]
