from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class DateRange:
    """Inclusive ``start``..``finish`` span of calendar days.

    A range whose finish precedes its start is not an error; it is simply
    empty, and every fetch against it yields nothing.
    """

    start: dt.date
    finish: dt.date

    def __post_init__(self) -> None:
        # datetimes are accepted but only their day matters
        if isinstance(self.start, dt.datetime):
            object.__setattr__(self, "start", self.start.date())
        if isinstance(self.finish, dt.datetime):
            object.__setattr__(self, "finish", self.finish.date())

    @property
    def is_empty(self) -> bool:
        return self.finish < self.start

    def contains(self, value: dt.date | dt.datetime) -> bool:
        if isinstance(value, dt.datetime):
            value = value.date()
        return not self.is_empty and self.start <= value <= self.finish

    def widen_to_years(self) -> "DateRange":
        return DateRange(dt.date(self.start.year, 1, 1), dt.date(self.finish.year, 12, 31))

    def months(self) -> List[dt.date]:
        """First day of every month the range touches, in order."""

        if self.is_empty:
            return []
        months: List[dt.date] = []
        cursor = self.start.replace(day=1)
        while cursor <= self.finish:
            months.append(cursor)
            if cursor.month == 12:
                cursor = cursor.replace(year=cursor.year + 1, month=1)
            else:
                cursor = cursor.replace(month=cursor.month + 1)
        return months

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.finish.isoformat()}"
