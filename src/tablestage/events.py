"""Events emitted by the ingestion session.

The session has no UI of its own. Front ends (the CLI, or any other view)
subscribe to these events to render notices, progress and selection changes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from tablestage.staging.models import StagedFile


class NoticeLevel(str, Enum):
    """Severity of a user-facing notice."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A message meant for the user, naming the files it concerns."""

    level: NoticeLevel
    message: str
    files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileUpdated:
    """A staged file was added or replaced by a new value."""

    file: StagedFile


@dataclass(frozen=True)
class FileRemoved:
    identity: str


@dataclass(frozen=True)
class BatchCleared:
    pass


@dataclass(frozen=True)
class SelectionCleared:
    """The selected file went away; its detail panel must close."""

    identity: str


@dataclass(frozen=True)
class SchemaEditorClosed:
    identity: str


type Event = (
    Notice | FileUpdated | FileRemoved | BatchCleared | SelectionCleared | SchemaEditorClosed
)
type Listener = Callable[[Event], None]
