"""Natal chart construction."""
from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence

from chart_config import cfg
from models import BirthData, BodyPosition, Location, NatalChart, Planet
from .aspects import calculate_chart_aspects
from .houses import locate_house
from .services.geolocation import CityDirectory, TimezoneManager, utc_hour

logger = logging.getLogger(__name__)


def configured_bodies(key: str) -> List[Planet]:
    """Resolve a body list such as ``bodies.transit`` from configuration."""
    return [Planet.from_name(name) for name in getattr(cfg().bodies, key)]


class NatalCalculator:
    """Builds frozen chart snapshots from an ephemeris and a city table."""

    def __init__(
        self,
        ephemeris,
        directory: Optional[CityDirectory] = None,
        timezone_manager: Optional[TimezoneManager] = None,
        bodies: Optional[Sequence[Planet]] = None,
        house_system: Optional[str] = None,
        natal_orb: Optional[float] = None,
    ):
        config = cfg()
        self.ephemeris = ephemeris
        self.directory = directory or CityDirectory()
        self.timezone_manager = timezone_manager or TimezoneManager()
        self.bodies = list(bodies) if bodies is not None else configured_bodies("natal")
        self.house_system = house_system or config.houses.system
        self.natal_orb = config.orbs.natal if natal_orb is None else natal_orb

    def chart_at(self, jd_ut: float, location: Location) -> NatalChart:
        """Positions, houses and angles at one instant and place.

        Each body is queried once and the houses once; no aspects are
        computed here.
        """
        houses, ascendant, midheaven = self.ephemeris.houses(
            jd_ut, location.latitude, location.longitude, self.house_system
        )
        positions = []
        for planet in self.bodies:
            longitude, speed = self.ephemeris.body_position(jd_ut, planet)
            positions.append(
                BodyPosition(
                    planet=planet,
                    longitude=longitude,
                    speed=speed,
                    house=locate_house(longitude, houses),
                )
            )
        return NatalChart(
            julian_day=jd_ut,
            location=location,
            positions=tuple(positions),
            houses=tuple(houses),
            ascendant=ascendant,
            midheaven=midheaven,
        )

    def build_natal(self, birth: BirthData) -> NatalChart:
        location = self.directory.find(birth.region, birth.city)

        dt_local, dt_utc = self.timezone_manager.to_utc(birth.local_datetime)
        jd_ut = self.ephemeris.julday(dt_utc.year, dt_utc.month, dt_utc.day, utc_hour(dt_utc))

        logger.info("Calculating natal chart for:")
        logger.info(f"  Local time: {dt_local} ({self.timezone_manager.tz_name})")
        logger.info(f"  UTC time: {dt_utc}")
        logger.info(f"  Julian Day (UT): {jd_ut}")
        logger.info(f"  Location: {location.label} ({location.latitude:.4f}, {location.longitude:.4f})")

        chart = self.chart_at(jd_ut, location)
        aspects = calculate_chart_aspects(chart.positions, self.natal_orb)
        return dataclasses.replace(
            chart,
            aspects=tuple(aspects),
            birth=birth,
            date_time_local=dt_local,
            date_time_utc=dt_utc,
        )
