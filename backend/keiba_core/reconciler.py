from __future__ import annotations

import logging
from typing import Generic, List, TypeVar

from .dates import DateRange
from .sources import DatedRecord, RaceSource

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DatedRecord)


class DataReconciler(Generic[T]):
    """Keeps the record cache in step with the scraped listing pages.

    Reads are served from the cache alone. A refresh re-scrapes whole years
    and overwrites the cache with the result; both scrape and cache-write
    failures reach the caller, since a silently skipped refresh would leave the
    cache stale.
    """

    def __init__(self, scrape_source: RaceSource[T], cache_source: RaceSource[T]) -> None:
        self.scrape_source = scrape_source
        self.cache_source = cache_source

    async def fetch_canonical(self, date_range: DateRange) -> List[T]:
        if date_range.is_empty:
            logger.debug("Empty range %s; nothing to fetch", date_range)
            return []
        return await self.cache_source.fetch_list(date_range)

    async def refresh_canonical(self, date_range: DateRange) -> None:
        if date_range.is_empty:
            logger.info("Empty range %s; skipping refresh", date_range)
            return

        # grade and meeting numbering only make sense per season
        season = date_range.widen_to_years()
        logger.info("Refreshing cache for %s (requested %s)", season, date_range)
        items = await self.scrape_source.fetch_list(season)
        await self.cache_source.register(items, season)
        logger.info("Refreshed %d records for %s", len(items), season)
