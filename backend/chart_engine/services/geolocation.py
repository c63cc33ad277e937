"""City lookup and local time conversion."""
from __future__ import annotations

import datetime
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from chart_config import cfg
from models import Location

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parents[1]


class LocationError(Exception):
    """Raised when a region or city cannot be found."""
    pass


class CityDirectory:
    """Region-keyed table of cities loaded from YAML."""

    def __init__(self, table: Optional[Dict[str, List[Dict[str, float]]]] = None, path: Optional[str] = None):
        if table is None:
            table = self._load(Path(path) if path else PACKAGE_DIR / cfg().location.cities_file)
        self._table = table

    @staticmethod
    def _load(path: Path) -> Dict[str, List[Dict[str, float]]]:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.debug(f"Loaded {len(data)} regions from {path}")
        return data

    def regions(self) -> List[str]:
        return list(self._table.keys())

    def cities(self, region: str) -> List[str]:
        if region not in self._table:
            raise LocationError(f"Region not found: {region}")
        return [entry["name"] for entry in self._table[region]]

    def find(self, region: str, name: str) -> Location:
        """Resolve a city; fails before any ephemeris work is done."""
        entries = self._table.get(region)
        if entries is None:
            raise LocationError(f"Region not found: {region}")
        for entry in entries:
            if entry["name"] == name:
                return Location(
                    region=region,
                    name=name,
                    latitude=float(entry["latitude"]),
                    longitude=float(entry["longitude"]),
                )
        raise LocationError(f"City not found: {region} {name}")


class TimezoneManager:
    """Converts between local civil time and UTC for one IANA zone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz_name = tz_name or cfg().location.timezone
        try:
            self.zone = ZoneInfo(self.tz_name)
        except ZoneInfoNotFoundError as e:
            raise LocationError(f"Unknown timezone: {self.tz_name}") from e

    def to_utc(self, dt_local: datetime.datetime) -> Tuple[datetime.datetime, datetime.datetime]:
        """Return ``(aware local datetime, aware UTC datetime)`` for a naive local time."""
        aware = dt_local.replace(tzinfo=self.zone)
        return aware, aware.astimezone(datetime.timezone.utc)

    def from_utc(self, dt_utc: datetime.datetime) -> datetime.datetime:
        if dt_utc.tzinfo is None:
            dt_utc = dt_utc.replace(tzinfo=datetime.timezone.utc)
        return dt_utc.astimezone(self.zone)


def utc_hour(dt_utc: datetime.datetime) -> float:
    """Decimal hour of a UTC datetime, as Swiss Ephemeris expects it."""
    return dt_utc.hour + dt_utc.minute / 60.0 + dt_utc.second / 3600.0
