"""Default metadata guess from a filename."""

from __future__ import annotations

from tablestage.core.logging import get_logger
from tablestage.errors import EnrichmentUnavailable
from tablestage.services.base import PatternMatcher
from tablestage.staging.models import FileMetadata

logger = get_logger(__name__)


def _normalize(guess: FileMetadata) -> FileMetadata:
    """Drop guessed fields that would break the dataset -> table -> mode chain."""
    if not guess.dataset:
        if guess.table_schema is None:
            return FileMetadata()
        return FileMetadata(table_schema=guess.table_schema)
    if not guess.table:
        return guess.model_copy(update={"table": None, "write_mode": None})
    return guess


class MetadataEnricher:
    """Best-effort dataset/table/write-mode guess for newly admitted files.

    Enrichment never blocks admission: any failure of the pattern matcher
    degrades to an empty guess.
    """

    def __init__(self, matcher: PatternMatcher):
        self._matcher = matcher

    async def lookup(self, filename: str) -> FileMetadata | None:
        """Query the pattern matcher without masking failures.

        Returns:
            The normalized guess, or None when no pattern matched

        Raises:
            EnrichmentUnavailable: The matcher failed or could not be reached
        """
        try:
            result = await self._matcher.match_filename(filename)
        except Exception as e:
            raise EnrichmentUnavailable(f"{type(e).__name__}: {e}", files=[filename]) from e

        if not result.success:
            raise EnrichmentUnavailable(result.error or "pattern lookup failed", files=[filename])
        if result.value is None:
            return None
        return _normalize(result.value)

    async def enrich(self, filename: str) -> FileMetadata:
        """Guess target metadata for ``filename``.

        Args:
            filename: Name of the admitted file

        Returns:
            Partial metadata; empty when nothing matched or the lookup failed
        """
        try:
            guess = await self.lookup(filename)
        except EnrichmentUnavailable as e:
            logger.warning("enrichment_unavailable", file=filename, error=str(e))
            return FileMetadata()

        if guess is None:
            logger.debug("enrichment_no_match", file=filename)
            return FileMetadata()

        logger.debug(
            "enrichment_matched",
            file=filename,
            dataset=guess.dataset,
            table=guess.table,
            write_mode=guess.write_mode.value if guess.write_mode else None,
        )
        return guess
