from __future__ import annotations

import logging
from typing import Collection, Generic, List, TypeVar

from .calendars import CalendarBackend
from .dates import DateRange
from .grades import is_calendar_grade
from .race import CalendarEvent, RaceRecord
from .sources import RaceSource

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=RaceRecord)

FETCH_EVENTS_FAILED = "Failed to fetch events from Google Calendar API"
REGISTER_EVENTS_FAILED = "Failed to register events with Google Calendar API"
CLEANSE_EVENTS_FAILED = "Failed to cleanse events from Google Calendar API"


class RaceCalendarSync(Generic[R]):
    """Pushes cached races into the calendar.

    Every operation here is best effort: failures are logged and swallowed so
    that a calendar outage never fails the caller's request. Re-running the
    operation is the retry.
    """

    def __init__(self, race_source: RaceSource[R], calendar: CalendarBackend[R]) -> None:
        self.race_source = race_source
        self.calendar = calendar

    async def get_races_from_calendar(self, date_range: DateRange) -> List[CalendarEvent]:
        try:
            return await self.calendar.get_events(date_range)
        except Exception as exc:
            logger.exception("%s: %s", FETCH_EVENTS_FAILED, exc)
            return []

    async def update_races_to_calendar(self, date_range: DateRange, grade_allowlist: Collection[str]) -> None:
        try:
            races = await self.race_source.fetch_list(date_range)
            selected = [race for race in races if is_calendar_grade(race.grade, grade_allowlist)]
            if not selected:
                logger.info("No races in %s match grades %s", date_range, sorted(grade_allowlist))
                return
            await self.calendar.upsert_events(selected)
            logger.info("Synchronised %d of %d races for %s", len(selected), len(races), date_range)
        except Exception as exc:
            logger.exception("%s: %s", REGISTER_EVENTS_FAILED, exc)

    async def cleansing_races_from_calendar(self, date_range: DateRange) -> None:
        try:
            await self.calendar.cleansing_events(date_range)
        except Exception as exc:
            logger.exception("%s: %s", CLEANSE_EVENTS_FAILED, exc)
