"""Legal status moves of a staged file.

    STAGED -> ENRICHING -> READY -> UPLOADING -> COMMITTED
                                   UPLOADING -> FAILED -> UPLOADING

Enrichment failure still leads to READY. FAILED files are picked up again
by the next commit.
"""

from __future__ import annotations

from tablestage.errors import StateTransitionError
from tablestage.staging.models import FileStatus

TRANSITIONS: dict[FileStatus, frozenset[FileStatus]] = {
    FileStatus.STAGED: frozenset({FileStatus.ENRICHING}),
    FileStatus.ENRICHING: frozenset({FileStatus.READY}),
    FileStatus.READY: frozenset({FileStatus.UPLOADING}),
    FileStatus.UPLOADING: frozenset({FileStatus.COMMITTED, FileStatus.FAILED}),
    FileStatus.FAILED: frozenset({FileStatus.UPLOADING}),
    FileStatus.COMMITTED: frozenset(),
}

# Statuses in which the user may still edit metadata
EDITABLE: frozenset[FileStatus] = frozenset(
    {FileStatus.STAGED, FileStatus.ENRICHING, FileStatus.READY, FileStatus.FAILED}
)

# Statuses a commit picks up
UPLOADABLE: frozenset[FileStatus] = frozenset({FileStatus.READY, FileStatus.FAILED})


def can_transition(current: FileStatus, target: FileStatus) -> bool:
    return target in TRANSITIONS[current]


def check_transition(identity: str, current: FileStatus, target: FileStatus) -> None:
    """Raise StateTransitionError unless ``current -> target`` is legal."""
    if not can_transition(current, target):
        raise StateTransitionError(
            f"{identity}: cannot move from {current.value} to {target.value}",
            files=[identity],
        )
