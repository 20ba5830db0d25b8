from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Callable, Dict, Generic, Hashable, List, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import ValidationError

from .dates import DateRange
from .errors import SourceFetchError
from .schemas import dump_record, load_record
from .storage import ObjectStorageGateway

logger = logging.getLogger(__name__)


class DatedRecord(Protocol):
    @property
    def date_time(self) -> dt.datetime:
        ...

    @property
    def identity(self) -> Hashable:
        ...


T = TypeVar("T", bound=DatedRecord)

PageParser = Callable[[str], List[Any]]


class RaceSource(Protocol[T]):
    async def fetch_list(self, date_range: DateRange) -> List[T]:
        ...

    async def register(self, items: Sequence[T], date_range: DateRange | None = None) -> None:
        ...


class CachedRaceSource(Generic[T]):
    """Record cache kept in object storage, one JSON object per month.

    Objects are keyed ``<prefix><YYYYMM>.json``. Registering items replaces
    every month bucket they fall in. When ``date_range`` is given, every month
    of that range is rewritten as well, empty ones included, so a refresh of a
    full year supersedes whatever an earlier refresh left for it.
    """

    def __init__(self, gateway: ObjectStorageGateway, record_type: Type[T], prefix: str) -> None:
        self.gateway = gateway
        self.record_type = record_type
        self.prefix = prefix

    async def fetch_list(self, date_range: DateRange) -> List[T]:
        if date_range.is_empty:
            return []

        items: List[T] = []
        for month in date_range.months():
            key = self._key(month)
            body = await self.gateway.fetch_object(key)
            if body is None:
                continue
            for item in self._decode(key, body):
                if date_range.contains(item.date_time):
                    items.append(item)
        return items

    async def register(self, items: Sequence[T], date_range: DateRange | None = None) -> None:
        buckets: Dict[dt.date, Dict[Hashable, T]] = {}
        if date_range is not None:
            for month in date_range.months():
                buckets[month] = {}
        for item in items:
            month = item.date_time.date().replace(day=1)
            # last write wins for a repeated identity
            buckets.setdefault(month, {})[item.identity] = item

        for month in sorted(buckets):
            rows = [dump_record(item) for item in buckets[month].values()]
            body = json.dumps(rows, ensure_ascii=False, indent=2, sort_keys=True)
            await self.gateway.upload_object(self._key(month), body)
        logger.info("Registered %d %s rows across %d months", len(items), self.record_type.__name__, len(buckets))

    def _key(self, month: dt.date) -> str:
        return f"{self.prefix}{month:%Y%m}.json"

    def _decode(self, key: str, body: str) -> List[T]:
        try:
            rows = json.loads(body)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring unreadable cache object %s: %s", key, exc)
            return []
        if not isinstance(rows, list):
            logger.warning("Ignoring cache object %s: expected a list, got %s", key, type(rows).__name__)
            return []

        items: List[T] = []
        for row in rows:
            if not isinstance(row, dict):
                logger.warning("Skipping non-dict row in %s", key)
                continue
            try:
                items.append(load_record(self.record_type, row))
            except (ValidationError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed row in %s: %s", key, exc)
        return items


class HtmlPageGateway:
    """Downloads listing pages from the public racing sites."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def fetch_page(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=10.0,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Failed to fetch {url}: {exc}") from exc


class ScrapedRaceSource(Generic[T]):
    """Records parsed out of listing pages.

    ``url_template`` may reference ``{year}`` and ``{month}``; a yearly page
    is downloaded once even when the range spans several of its months.
    """

    def __init__(self, gateway: HtmlPageGateway, url_template: str, parser: PageParser) -> None:
        self.gateway = gateway
        self.url_template = url_template
        self.parser = parser

    async def fetch_list(self, date_range: DateRange) -> List[T]:
        if date_range.is_empty:
            return []
        if not self.url_template:
            raise SourceFetchError("No listing page URL is configured for this source")

        urls: List[str] = []
        for month in date_range.months():
            url = self.url_template.format(year=month.year, month=month.month)
            if url not in urls:
                urls.append(url)

        items: List[T] = []
        for url in urls:
            html = await self.gateway.fetch_page(url)
            try:
                parsed = self.parser(html)
            except ValueError as exc:
                raise SourceFetchError(f"Failed to parse {url}: {exc}") from exc
            items.extend(item for item in parsed if date_range.contains(item.date_time))
        logger.debug("Scraped %d records from %d pages for %s", len(items), len(urls), date_range)
        return items

    async def register(self, items: Sequence[T], date_range: DateRange | None = None) -> None:
        raise NotImplementedError("Scraped sources are read-only")
