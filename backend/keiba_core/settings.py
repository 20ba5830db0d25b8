from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .calendars import CalendarBackend, GoogleCalendarBackend, InMemoryCalendarBackend
from .grades import JRA, NAR, ORGANIZATIONS
from .race import JraPlaceRecord, JraRaceRecord, NarPlaceRecord, NarRaceRecord, PlaceRecord, RaceRecord
from .reconciler import DataReconciler
from .sources import CachedRaceSource, HtmlPageGateway, PageParser, RaceSource, ScrapedRaceSource
from .storage import LocalStorageGateway, ObjectStorageGateway, SupabaseStorageGateway
from .synchronizer import RaceCalendarSync

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

RACE_TYPES: Dict[str, type] = {JRA: JraRaceRecord, NAR: NarRaceRecord}
PLACE_TYPES: Dict[str, type] = {JRA: JraPlaceRecord, NAR: NarPlaceRecord}


@dataclass(frozen=True)
class Settings:
    env: str = "local"
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "race-schedule-bucket"
    data_dir: Path = DEFAULT_DATA_DIR
    jra_calendar_id: str = ""
    nar_calendar_id: str = ""
    google_access_token: str = ""
    jra_race_list_url: str = ""
    nar_race_list_url: str = ""
    jra_place_list_url: str = ""
    nar_place_list_url: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = os.getenv("RACE_DATA_DIR")
        return cls(
            env=os.getenv("ENV", "local"),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_SERVICE_KEY") or "",
            storage_bucket=os.getenv("SUPABASE_STORAGE_BUCKET", "race-schedule-bucket"),
            data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
            jra_calendar_id=os.getenv("JRA_CALENDAR_ID", ""),
            nar_calendar_id=os.getenv("NAR_CALENDAR_ID", ""),
            google_access_token=os.getenv("GOOGLE_CALENDAR_ACCESS_TOKEN", ""),
            jra_race_list_url=os.getenv("JRA_RACE_LIST_URL", ""),
            nar_race_list_url=os.getenv("NAR_RACE_LIST_URL", ""),
            jra_place_list_url=os.getenv("JRA_PLACE_LIST_URL", ""),
            nar_place_list_url=os.getenv("NAR_PLACE_LIST_URL", ""),
        )

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    def calendar_id(self, organization: str) -> str:
        return self.jra_calendar_id if organization == JRA else self.nar_calendar_id

    def race_list_url(self, organization: str) -> str:
        return self.jra_race_list_url if organization == JRA else self.nar_race_list_url

    def place_list_url(self, organization: str) -> str:
        return self.jra_place_list_url if organization == JRA else self.nar_place_list_url


@dataclass
class Pipeline:
    """Every operation for one organisation, wired to its collaborators."""

    organization: str
    races: DataReconciler[RaceRecord]
    places: DataReconciler[PlaceRecord]
    calendar: RaceCalendarSync[RaceRecord]


def _unconfigured_parser(html: str) -> List[Any]:
    raise ValueError("no page parser is configured")


def build_storage_gateway(settings: Settings) -> ObjectStorageGateway:
    if settings.is_production:
        if settings.supabase_url and settings.supabase_key:
            return SupabaseStorageGateway(settings.supabase_url, settings.supabase_key, settings.storage_bucket)
        logger.warning("Supabase storage is not configured; using local data store at %s", settings.data_dir)
    return LocalStorageGateway(settings.data_dir)


def build_calendar_backend(
    settings: Settings,
    organization: str,
    race_source: RaceSource[RaceRecord] | None = None,
) -> CalendarBackend[RaceRecord]:
    if settings.is_production:
        calendar_id = settings.calendar_id(organization)
        if calendar_id and settings.google_access_token:
            return GoogleCalendarBackend(organization, calendar_id, settings.google_access_token, race_source)
        logger.warning("Google Calendar is not configured for %s; using in-memory calendar", organization)
    return InMemoryCalendarBackend(organization, canonical_source=race_source)


def build_pipeline(
    settings: Settings,
    organization: str,
    race_parser: PageParser | None = None,
    place_parser: PageParser | None = None,
) -> Pipeline:
    """Compose the collaborators for ``organization``.

    Listing-page grammar lives outside this package; without parsers the
    pipeline still reads and synchronises the cache, but refreshes fail.
    """

    if organization not in ORGANIZATIONS:
        raise ValueError(f"unknown organization '{organization}'")

    storage = build_storage_gateway(settings)
    pages = HtmlPageGateway()

    race_cache: CachedRaceSource[RaceRecord] = CachedRaceSource(
        storage, RACE_TYPES[organization], f"{organization}/race/"
    )
    place_cache: CachedRaceSource[PlaceRecord] = CachedRaceSource(
        storage, PLACE_TYPES[organization], f"{organization}/place/"
    )
    race_scrape: ScrapedRaceSource[RaceRecord] = ScrapedRaceSource(
        pages, settings.race_list_url(organization), race_parser or _unconfigured_parser
    )
    place_scrape: ScrapedRaceSource[PlaceRecord] = ScrapedRaceSource(
        pages, settings.place_list_url(organization), place_parser or _unconfigured_parser
    )

    return Pipeline(
        organization=organization,
        races=DataReconciler(race_scrape, race_cache),
        places=DataReconciler(place_scrape, place_cache),
        calendar=RaceCalendarSync(race_cache, build_calendar_backend(settings, organization, race_cache)),
    )
