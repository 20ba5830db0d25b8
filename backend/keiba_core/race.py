from __future__ import annotations

import dataclasses
import datetime as dt
from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, Optional, Tuple, TypeVar

from .grades import JRA, JRA_GRADES, JRA_VENUE_CODES, NAR, NAR_GRADES, NAR_VENUE_CODES, SURFACES

R = TypeVar("R", bound="RaceRecord")
P = TypeVar("P", bound="PlaceRecord")


def _as_datetime(value: object, field_name: str) -> dt.datetime:
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    raise ValueError(f"{field_name} must be a date or datetime, got {value!r}")


@dataclass(frozen=True)
class RaceRecord:
    """A single scheduled race.

    There is no universal race id, so identity is the race name together with
    its day and venue. Subclasses pin the organisation and its vocabularies.
    """

    name: str
    date_time: dt.datetime
    venue: str
    surface: str
    distance: int
    grade: str
    number: int

    organization: ClassVar[str] = ""
    venue_codes: ClassVar[Dict[str, str]] = {}
    grades: ClassVar[FrozenSet[str]] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "date_time", _as_datetime(self.date_time, "date_time"))
        if not self.name:
            raise ValueError("race name is required")
        if self.venue not in self.venue_codes:
            raise ValueError(f"unknown {self.organization} venue '{self.venue}'")
        if self.surface not in SURFACES:
            raise ValueError(f"unknown surface '{self.surface}'")
        if self.grade not in self.grades:
            raise ValueError(f"unknown {self.organization} grade '{self.grade}'")
        if self.distance <= 0:
            raise ValueError(f"distance must be positive, got {self.distance}")
        if not 1 <= self.number <= 12:
            raise ValueError(f"race number must be between 1 and 12, got {self.number}")

    def copy(self: R, **overrides: object) -> R:
        return dataclasses.replace(self, **overrides)

    @property
    def identity(self) -> Tuple[str, dt.date, str]:
        return (self.name, self.date_time.date(), self.venue)

    @property
    def race_id(self) -> str:
        """Calendar event id, stable across re-scrapes of the same race."""

        return f"{self.organization}{self.date_time:%Y%m%d}{self.venue_codes[self.venue]}{self.number:02d}"


@dataclass(frozen=True)
class NarRaceRecord(RaceRecord):
    organization: ClassVar[str] = NAR
    venue_codes: ClassVar[Dict[str, str]] = NAR_VENUE_CODES
    grades: ClassVar[FrozenSet[str]] = NAR_GRADES


@dataclass(frozen=True)
class JraRaceRecord(RaceRecord):
    held_times: int
    held_day_times: int

    organization: ClassVar[str] = JRA
    venue_codes: ClassVar[Dict[str, str]] = JRA_VENUE_CODES
    grades: ClassVar[FrozenSet[str]] = JRA_GRADES

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.held_times < 1 or self.held_day_times < 1:
            raise ValueError("held_times and held_day_times must be positive")


@dataclass(frozen=True)
class PlaceRecord:
    """A race meeting: one venue on one day."""

    date_time: dt.datetime
    venue: str

    organization: ClassVar[str] = ""
    venue_codes: ClassVar[Dict[str, str]] = {}

    def __post_init__(self) -> None:
        object.__setattr__(self, "date_time", _as_datetime(self.date_time, "date_time"))
        if self.venue not in self.venue_codes:
            raise ValueError(f"unknown {self.organization} venue '{self.venue}'")

    def copy(self: P, **overrides: object) -> P:
        return dataclasses.replace(self, **overrides)

    @property
    def identity(self) -> Tuple[str, dt.date]:
        return (self.venue, self.date_time.date())


@dataclass(frozen=True)
class NarPlaceRecord(PlaceRecord):
    organization: ClassVar[str] = NAR
    venue_codes: ClassVar[Dict[str, str]] = NAR_VENUE_CODES


@dataclass(frozen=True)
class JraPlaceRecord(PlaceRecord):
    organization: ClassVar[str] = JRA
    venue_codes: ClassVar[Dict[str, str]] = JRA_VENUE_CODES


@dataclass(frozen=True)
class CalendarEvent:
    """An event as the calendar backend reports it."""

    event_id: Optional[str]
    title: str
    start_time: dt.datetime
    end_time: dt.datetime
    location: str
    description: str = ""

    def copy(self, **overrides: object) -> "CalendarEvent":
        return dataclasses.replace(self, **overrides)
