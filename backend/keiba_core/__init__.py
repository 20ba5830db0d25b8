"""Race schedule cache and calendar synchronisation pipeline."""

from .dates import DateRange
from .errors import BackendWriteError, SourceFetchError
from .grades import is_calendar_grade
from .race import (
    CalendarEvent,
    JraPlaceRecord,
    JraRaceRecord,
    NarPlaceRecord,
    NarRaceRecord,
    PlaceRecord,
    RaceRecord,
)
from .reconciler import DataReconciler
from .settings import Pipeline, Settings, build_pipeline
from .synchronizer import RaceCalendarSync

__all__ = [
    "BackendWriteError",
    "CalendarEvent",
    "DataReconciler",
    "DateRange",
    "JraPlaceRecord",
    "JraRaceRecord",
    "NarPlaceRecord",
    "NarRaceRecord",
    "Pipeline",
    "PlaceRecord",
    "RaceCalendarSync",
    "RaceRecord",
    "Settings",
    "SourceFetchError",
    "build_pipeline",
    "is_calendar_grade",
]
