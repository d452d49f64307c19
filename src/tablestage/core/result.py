"""Result type for collaborator calls.

Collaborators answer over the network, so most of their failures are
expected (a 404 from the pattern matcher, a 500 from the storage backend).
Those come back as failed results; exceptions are reserved for the
orchestrator's own error taxonomy in ``tablestage.errors``.
"""

from __future__ import annotations

from pydantic import BaseModel


class Result[T](BaseModel):
    """Outcome of an operation that can fail without being a bug."""

    success: bool
    value: T | None = None
    error: str | None = None
    status_code: int | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> Result[T]:
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, status_code: int | None = None) -> Result[T]:
        """Create a failed result.

        Args:
            error: Human-readable failure description
            status_code: HTTP status of the response, if one was received
        """
        return cls(success=False, error=error, status_code=status_code)

    def unwrap(self) -> T:
        """Get the value or raise if failed."""
        if not self.success:
            raise ValueError(f"Result failed: {self.error}")
        assert self.value is not None
        return self.value
