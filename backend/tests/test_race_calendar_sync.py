from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import List

import pytest

from keiba_core import CalendarEvent, DateRange, JraRaceRecord, RaceCalendarSync
from keiba_core.grades import JRA_SPECIFIED_GRADE_LIST
from keiba_core.synchronizer import CLEANSE_EVENTS_FAILED, FETCH_EVENTS_FAILED, REGISTER_EVENTS_FAILED


class _FakeRaceSource:
    def __init__(self, races: List[JraRaceRecord] | None = None, error: Exception | None = None) -> None:
        self.races = list(races or [])
        self.error = error
        self.fetch_calls: List[DateRange] = []

    async def fetch_list(self, date_range: DateRange) -> List[JraRaceRecord]:
        self.fetch_calls.append(date_range)
        if self.error is not None:
            raise self.error
        return list(self.races)

    async def register(self, items, date_range=None) -> None:  # pragma: no cover - not used by the synchronizer
        raise AssertionError("register should not be called")


class _FakeCalendar:
    def __init__(self) -> None:
        self.events: List[CalendarEvent] = []
        self.get_error: Exception | None = None
        self.upsert_error: Exception | None = None
        self.cleansing_error: Exception | None = None
        self.get_calls: List[DateRange] = []
        self.upsert_calls: List[List[JraRaceRecord]] = []
        self.cleansing_calls: List[DateRange] = []

    async def get_events(self, date_range: DateRange) -> List[CalendarEvent]:
        self.get_calls.append(date_range)
        if self.get_error is not None:
            raise self.get_error
        return list(self.events)

    async def upsert_events(self, items) -> None:
        self.upsert_calls.append(list(items))
        if self.upsert_error is not None:
            raise self.upsert_error

    async def cleansing_events(self, date_range: DateRange) -> None:
        self.cleansing_calls.append(date_range)
        if self.cleansing_error is not None:
            raise self.cleansing_error


BASE_RACE = JraRaceRecord(
    name="Tokyo Yushun",
    date_time=dt.datetime(2023, 8, 1),
    venue="Tokyo",
    surface="Turf",
    distance=1600,
    grade="GI",
    number=11,
    held_times=1,
    held_day_times=2,
)

BASE_EVENT = CalendarEvent(
    event_id="jra202308010511",
    title="Tokyo Yushun",
    start_time=dt.datetime(2023, 8, 1, 10, 0),
    end_time=dt.datetime(2023, 8, 1, 10, 10),
    location="Tokyo Racecourse",
    description="test",
)

AUGUST = DateRange(dt.date(2023, 8, 1), dt.date(2023, 8, 31))


@pytest.fixture
def calendar() -> _FakeCalendar:
    return _FakeCalendar()


def test_get_races_from_calendar_returns_events(calendar: _FakeCalendar) -> None:
    calendar.events = [BASE_EVENT]
    sync = RaceCalendarSync(_FakeRaceSource(), calendar)

    result = asyncio.run(sync.get_races_from_calendar(AUGUST))

    assert calendar.get_calls == [AUGUST]
    assert result == [BASE_EVENT]


def test_get_races_from_calendar_swallows_errors(calendar: _FakeCalendar, caplog: pytest.LogCaptureFixture) -> None:
    calendar.get_error = RuntimeError("Google Calendar API error")
    sync = RaceCalendarSync(_FakeRaceSource(), calendar)

    with caplog.at_level(logging.ERROR, logger="keiba_core.synchronizer"):
        result = asyncio.run(sync.get_races_from_calendar(AUGUST))

    assert result == []
    assert FETCH_EVENTS_FAILED in caplog.text
    assert "Google Calendar API error" in caplog.text


def test_update_upserts_only_allowlisted_grades_in_one_batch(calendar: _FakeCalendar) -> None:
    races: List[JraRaceRecord] = []
    expected: List[JraRaceRecord] = []
    for grade in ["GI", "Listed", "Maiden"]:
        for month in [1, 2, 3]:
            for day in [1, 2, 3]:
                race = BASE_RACE.copy(
                    name=f"testRace{month:02d}{day:02d}",
                    date_time=dt.datetime(2024, month, day),
                    grade=grade,
                )
                races.append(race)
                if grade in JRA_SPECIFIED_GRADE_LIST:
                    expected.append(race)

    source = _FakeRaceSource(races)
    sync = RaceCalendarSync(source, calendar)
    date_range = DateRange(dt.date(2024, 1, 1), dt.date(2024, 3, 31))

    asyncio.run(sync.update_races_to_calendar(date_range, JRA_SPECIFIED_GRADE_LIST))

    assert source.fetch_calls == [date_range]
    assert len(calendar.upsert_calls) == 1
    assert len(expected) == 6
    assert calendar.upsert_calls[0] == expected


def test_update_skips_upsert_when_nothing_matches(calendar: _FakeCalendar) -> None:
    source = _FakeRaceSource([BASE_RACE.copy(grade="Maiden"), BASE_RACE.copy(grade="1 Win")])
    sync = RaceCalendarSync(source, calendar)

    asyncio.run(sync.update_races_to_calendar(AUGUST, JRA_SPECIFIED_GRADE_LIST))

    assert calendar.upsert_calls == []


def test_update_with_empty_allowlist_upserts_nothing(calendar: _FakeCalendar) -> None:
    sync = RaceCalendarSync(_FakeRaceSource([BASE_RACE]), calendar)

    asyncio.run(sync.update_races_to_calendar(AUGUST, []))

    assert calendar.upsert_calls == []


def test_update_logs_when_fetch_fails(calendar: _FakeCalendar, caplog: pytest.LogCaptureFixture) -> None:
    sync = RaceCalendarSync(_FakeRaceSource(error=RuntimeError("Fetch Error")), calendar)

    with caplog.at_level(logging.ERROR, logger="keiba_core.synchronizer"):
        asyncio.run(sync.update_races_to_calendar(AUGUST, JRA_SPECIFIED_GRADE_LIST))

    assert calendar.upsert_calls == []
    records = [record for record in caplog.records if REGISTER_EVENTS_FAILED in record.getMessage()]
    assert len(records) == 1
    assert "Fetch Error" in records[0].getMessage()
    assert records[0].exc_info is not None


def test_update_logs_when_upsert_fails(calendar: _FakeCalendar, caplog: pytest.LogCaptureFixture) -> None:
    calendar.upsert_error = RuntimeError("Update Error")
    sync = RaceCalendarSync(_FakeRaceSource([BASE_RACE]), calendar)

    with caplog.at_level(logging.ERROR, logger="keiba_core.synchronizer"):
        asyncio.run(sync.update_races_to_calendar(AUGUST, JRA_SPECIFIED_GRADE_LIST))

    assert calendar.upsert_calls == [[BASE_RACE]]
    assert REGISTER_EVENTS_FAILED in caplog.text
    assert "Update Error" in caplog.text


def test_cleansing_delegates_range_to_backend(calendar: _FakeCalendar) -> None:
    sync = RaceCalendarSync(_FakeRaceSource(), calendar)

    asyncio.run(sync.cleansing_races_from_calendar(AUGUST))

    assert calendar.cleansing_calls == [AUGUST]


def test_cleansing_logs_backend_failure(calendar: _FakeCalendar, caplog: pytest.LogCaptureFixture) -> None:
    calendar.cleansing_error = RuntimeError("Cleansing Error")
    sync = RaceCalendarSync(_FakeRaceSource(), calendar)

    with caplog.at_level(logging.ERROR, logger="keiba_core.synchronizer"):
        asyncio.run(sync.cleansing_races_from_calendar(AUGUST))

    assert CLEANSE_EVENTS_FAILED in caplog.text
    assert "Cleansing Error" in caplog.text
