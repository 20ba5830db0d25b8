"""Wire shapes for cached rows and Google Calendar events."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .race import CalendarEvent, PlaceRecord, RaceRecord

T = TypeVar("T")


class RaceRow(BaseModel):
    name: str
    date_time: dt.datetime = Field(alias="dateTime")
    venue: str
    surface: str
    distance: int
    grade: str
    number: int
    held_times: Optional[int] = Field(default=None, alias="heldTimes")
    held_day_times: Optional[int] = Field(default=None, alias="heldDayTimes")

    model_config = ConfigDict(populate_by_name=True)


class PlaceRow(BaseModel):
    date_time: dt.datetime = Field(alias="dateTime")
    venue: str

    model_config = ConfigDict(populate_by_name=True)


class EventDateTime(BaseModel):
    date_time: Optional[dt.datetime] = Field(default=None, alias="dateTime")
    date: Optional[dt.date] = None
    time_zone: Optional[str] = Field(default=None, alias="timeZone")

    model_config = ConfigDict(populate_by_name=True)


class GoogleEvent(BaseModel):
    id: Optional[str] = None
    summary: str = ""
    start: EventDateTime
    end: EventDateTime
    location: str = ""
    description: str = ""


def _row_model(record_type: type) -> Type[BaseModel]:
    if issubclass(record_type, RaceRecord):
        return RaceRow
    if issubclass(record_type, PlaceRecord):
        return PlaceRow
    raise TypeError(f"no row model for {record_type.__name__}")


def dump_record(record: RaceRecord | PlaceRecord) -> Dict[str, Any]:
    model = _row_model(type(record))
    fields = {name: getattr(record, name) for name in model.model_fields if hasattr(record, name)}
    return model(**fields).model_dump(by_alias=True, mode="json", exclude_none=True)


def load_record(record_type: Type[T], payload: Dict[str, Any]) -> T:
    """Build ``record_type`` from a cached row.

    Raises ``pydantic.ValidationError``, ``TypeError`` or ``ValueError`` for
    rows that do not describe a valid record.
    """

    row = _row_model(record_type).model_validate(payload)
    return record_type(**row.model_dump(exclude_none=True))


def _event_time(value: EventDateTime, tz: dt.tzinfo) -> dt.datetime:
    if value.date_time is not None:
        if value.date_time.tzinfo is None:
            return value.date_time
        return value.date_time.astimezone(tz).replace(tzinfo=None)
    if value.date is not None:
        return dt.datetime(value.date.year, value.date.month, value.date.day)
    raise ValueError("event time has neither dateTime nor date")


def event_from_google(payload: Dict[str, Any], tz: dt.tzinfo) -> CalendarEvent:
    event = GoogleEvent.model_validate(payload)
    return CalendarEvent(
        event_id=event.id,
        title=event.summary,
        start_time=_event_time(event.start, tz),
        end_time=_event_time(event.end, tz),
        location=event.location,
        description=event.description,
    )


def event_to_google(event: CalendarEvent, time_zone: str) -> Dict[str, Any]:
    body = GoogleEvent(
        id=event.event_id,
        summary=event.title,
        start=EventDateTime(date_time=event.start_time, time_zone=time_zone),
        end=EventDateTime(date_time=event.end_time, time_zone=time_zone),
        location=event.location,
        description=event.description,
    )
    return body.model_dump(by_alias=True, mode="json", exclude_none=True)
