from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any, Dict, Generic, List, Optional, Protocol, Sequence, Set, TypeVar
from zoneinfo import ZoneInfo

import httpx
from pydantic import ValidationError

from .dates import DateRange
from .errors import BackendWriteError, SourceFetchError
from .race import CalendarEvent, RaceRecord
from .schemas import event_from_google, event_to_google
from .sources import RaceSource

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=RaceRecord)

TIME_ZONE = "Asia/Tokyo"
JST = ZoneInfo(TIME_ZONE)
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
EVENT_DURATION = dt.timedelta(minutes=10)


class CalendarBackend(Protocol[R]):
    async def get_events(self, date_range: DateRange) -> List[CalendarEvent]:
        ...

    async def upsert_events(self, items: Sequence[R]) -> None:
        ...

    async def cleansing_events(self, date_range: DateRange) -> None:
        ...


def event_from_race(race: RaceRecord) -> CalendarEvent:
    description = f"{race.surface} {race.distance}m / Grade: {race.grade} / Race {race.number}"
    held_times = getattr(race, "held_times", None)
    if held_times is not None:
        description += f" / Meeting {held_times} Day {getattr(race, 'held_day_times')}"
    return CalendarEvent(
        event_id=race.race_id,
        title=race.name,
        start_time=race.date_time,
        end_time=race.date_time + EVENT_DURATION,
        location=f"{race.venue} Racecourse",
        description=description,
    )


def is_managed_event_id(event_id: Optional[str], organization: str) -> bool:
    """True for ids produced by ``RaceRecord.race_id`` for ``organization``."""

    if not event_id:
        return False
    return re.fullmatch(rf"{re.escape(organization)}\d{{12}}", event_id) is not None


def is_stale_event(event: CalendarEvent, organization: str, canonical_ids: Set[str] | None) -> bool:
    """Whether cleansing should remove ``event`` from ``organization``'s calendar.

    Events with an id that is not managed for the organisation are stale. Managed
    ones are stale only when ``canonical_ids`` is known and lacks them. Events
    without an id are never touched.
    """

    if not is_managed_event_id(event.event_id, organization):
        return event.event_id is not None
    return canonical_ids is not None and event.event_id not in canonical_ids


async def canonical_race_ids(source: RaceSource[R] | None, date_range: DateRange) -> Set[str] | None:
    if source is None:
        return None
    races = await source.fetch_list(date_range)
    return {race.race_id for race in races}


class InMemoryCalendarBackend(Generic[R]):
    """Calendar kept in process memory, used for local runs and tests.

    Cleansing follows the same rule as ``GoogleCalendarBackend``.
    """

    def __init__(
        self,
        organization: str,
        events: Sequence[CalendarEvent] | None = None,
        canonical_source: RaceSource[R] | None = None,
    ) -> None:
        self.organization = organization
        self.canonical_source = canonical_source
        self.events: Dict[str, CalendarEvent] = {}
        for event in events or []:
            self.events[event.event_id or f"local-{len(self.events)}"] = event

    async def get_events(self, date_range: DateRange) -> List[CalendarEvent]:
        found = [event for event in self.events.values() if date_range.contains(event.start_time)]
        return sorted(found, key=lambda event: event.start_time)

    async def upsert_events(self, items: Sequence[R]) -> None:
        for race in items:
            event = event_from_race(race)
            self.events[race.race_id] = event
        logger.info("Upserted %d events into the local calendar", len(items))

    async def cleansing_events(self, date_range: DateRange) -> None:
        if date_range.is_empty:
            return
        canonical_ids = await canonical_race_ids(self.canonical_source, date_range)
        stale = [
            key
            for key, event in self.events.items()
            if date_range.contains(event.start_time) and is_stale_event(event, self.organization, canonical_ids)
        ]
        for key in stale:
            del self.events[key]
        logger.info("Removed %d stale events from the local calendar", len(stale))


class GoogleCalendarBackend(Generic[R]):
    """Google Calendar REST v3 backend for one organisation's calendar.

    Events are keyed by ``RaceRecord.race_id`` so repeated upserts update the
    same event instead of duplicating it. When ``canonical_source`` is given,
    cleansing also removes managed events whose race has disappeared from it.

    The calendar must be dedicated to this organisation: cleansing deletes
    every event in the range whose id is not one of its race ids, including
    events added to the calendar by hand.
    """

    def __init__(
        self,
        organization: str,
        calendar_id: str,
        access_token: str,
        canonical_source: RaceSource[R] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.organization = organization
        self.calendar_id = calendar_id
        self.access_token = access_token
        self.canonical_source = canonical_source
        self._transport = transport

    async def get_events(self, date_range: DateRange) -> List[CalendarEvent]:
        if date_range.is_empty:
            return []

        time_min = dt.datetime.combine(date_range.start, dt.time.min, tzinfo=JST)
        time_max = dt.datetime.combine(date_range.finish + dt.timedelta(days=1), dt.time.min, tzinfo=JST)
        params: Dict[str, Any] = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": 2500,
        }

        events: List[CalendarEvent] = []
        try:
            async with self._client() as client:
                while True:
                    response = await client.get(self._events_endpoint(), params=params)
                    response.raise_for_status()
                    payload = response.json()
                    for item in payload.get("items", []):
                        try:
                            events.append(event_from_google(item, JST))
                        except (ValidationError, ValueError) as exc:
                            logger.warning("Skipping unreadable calendar event %s: %s", item.get("id"), exc)
                    page_token = payload.get("nextPageToken")
                    if not page_token:
                        break
                    params["pageToken"] = page_token
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Failed to list events of calendar {self.calendar_id}: {exc}") from exc
        return events

    async def upsert_events(self, items: Sequence[R]) -> None:
        failed: List[str] = []
        async with self._client() as client:
            for race in items:
                event = event_from_race(race)
                try:
                    await self._upsert_event(client, event)
                except httpx.HTTPError as exc:
                    logger.warning("Failed to upsert event %s (%s): %s", event.event_id, event.title, exc)
                    failed.append(race.race_id)

        if failed:
            raise BackendWriteError(f"Failed to upsert {len(failed)} of {len(items)} events: {', '.join(failed)}")
        logger.info("Upserted %d events into calendar %s", len(items), self.calendar_id)

    async def cleansing_events(self, date_range: DateRange) -> None:
        events = await self.get_events(date_range)

        canonical_ids = await canonical_race_ids(self.canonical_source, date_range)
        stale = [event for event in events if is_stale_event(event, self.organization, canonical_ids)]
        failed: List[str] = []
        async with self._client() as client:
            for event in stale:
                try:
                    response = await client.delete(self._event_endpoint(event.event_id or ""))
                    # already removed by someone else
                    if response.status_code in (404, 410):
                        continue
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.warning("Failed to delete event %s (%s): %s", event.event_id, event.title, exc)
                    failed.append(event.event_id or "")

        if failed:
            raise BackendWriteError(f"Failed to delete {len(failed)} of {len(stale)} events: {', '.join(failed)}")
        logger.info("Cleansed %d events from calendar %s for %s", len(stale), self.calendar_id, date_range)

    async def _upsert_event(self, client: httpx.AsyncClient, event: CalendarEvent) -> None:
        body = event_to_google(event, TIME_ZONE)
        endpoint = self._event_endpoint(event.event_id or "")
        existing = await client.get(endpoint)
        if existing.status_code == 404:
            response = await client.post(self._events_endpoint(), json=body)
        else:
            existing.raise_for_status()
            response = await client.put(endpoint, json=body)
        response.raise_for_status()

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }
        return httpx.AsyncClient(timeout=10.0, headers=headers, transport=self._transport)

    def _events_endpoint(self) -> str:
        return f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events"

    def _event_endpoint(self, event_id: str) -> str:
        return f"{self._events_endpoint()}/{event_id}"
