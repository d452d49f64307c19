"""Session-owned snapshot of the dataset catalog."""

from __future__ import annotations

import time
from collections.abc import Callable

from tablestage.core.logging import get_logger
from tablestage.errors import CatalogUnavailable
from tablestage.services.base import CatalogService
from tablestage.staging.models import Dataset, Table

logger = get_logger(__name__)


class CatalogCache:
    """Read-only dataset/table snapshot with an explicit refresh.

    The snapshot is fetched on first ``load()``. With ``ttl_seconds`` unset
    it stays valid for the whole session; otherwise ``load()`` refetches once
    it is older than the TTL. A failed fetch keeps the previous snapshot
    (empty before the first success).
    """

    def __init__(
        self,
        service: CatalogService,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._service = service
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._datasets: tuple[Dataset, ...] = ()
        self._loaded_at: float | None = None

    @property
    def datasets(self) -> list[Dataset]:
        return list(self._datasets)

    @property
    def is_loaded(self) -> bool:
        return self._loaded_at is not None

    @property
    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        if self._ttl_seconds is None:
            return False
        return self._clock() - self._loaded_at >= self._ttl_seconds

    async def load(self) -> list[Dataset]:
        """Return the snapshot, fetching it first if missing or stale.

        Raises:
            CatalogUnavailable: The catalog could not be fetched
        """
        if self.is_stale:
            await self.refresh()
        return self.datasets

    async def refresh(self) -> list[Dataset]:
        """Refetch the catalog unconditionally.

        Raises:
            CatalogUnavailable: The catalog could not be fetched
        """
        try:
            result = await self._service.list_datasets()
        except Exception as e:
            raise CatalogUnavailable(f"Failed to load datasets: {type(e).__name__}: {e}") from e

        if not result.success:
            logger.warning("catalog_unavailable", error=result.error, status=result.status_code)
            raise CatalogUnavailable(f"Failed to load datasets: {result.error}")

        self._datasets = tuple(result.value or [])
        self._loaded_at = self._clock()
        logger.info("catalog_loaded", datasets=len(self._datasets))
        return self.datasets

    def get_dataset(self, name: str) -> Dataset | None:
        return next((d for d in self._datasets if d.name == name), None)

    def tables_for(self, dataset_name: str) -> list[Table]:
        dataset = self.get_dataset(dataset_name)
        return list(dataset.tables) if dataset else []
