"""Swiss Ephemeris adapter.

Everything above this module talks to the ephemeris through four calls:
``body_position``, ``houses``, ``julday`` and ``revjul``. Any object that
offers them can stand in for :class:`SwissEphemeris` (the test-suite uses a
deterministic fake).
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

import swisseph as swe

from models import Planet
from .errors import ChartCalculationError, EphemerisNotReadyError

logger = logging.getLogger(__name__)


PLANETS_SWE: Dict[Planet, int] = {
    Planet.SUN: swe.SUN,
    Planet.MOON: swe.MOON,
    Planet.MERCURY: swe.MERCURY,
    Planet.VENUS: swe.VENUS,
    Planet.MARS: swe.MARS,
    Planet.JUPITER: swe.JUPITER,
    Planet.SATURN: swe.SATURN,
    Planet.URANUS: swe.URANUS,
    Planet.NEPTUNE: swe.NEPTUNE,
    Planet.PLUTO: swe.PLUTO,
    Planet.NORTH_NODE: swe.TRUE_NODE,
}


class SwissEphemeris:
    """Thin stateful wrapper around :mod:`swisseph` with a readiness flag."""

    def __init__(self, ephe_path: Optional[str] = None):
        self.ephe_path = ephe_path
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> "SwissEphemeris":
        """One-time set-up; safe to call more than once."""
        if self._ready:
            return self
        swe.set_ephe_path(self.ephe_path or None)
        self._ready = True
        logger.info(f"Swiss Ephemeris ready (path={self.ephe_path or 'default'}, version={swe.version})")
        return self

    def close(self) -> None:
        if self._ready:
            swe.close()
            self._ready = False

    def _require_ready(self) -> None:
        if not self._ready:
            raise EphemerisNotReadyError("Swiss Ephemeris has not been initialised")

    def body_position(self, jd_ut: float, planet: Planet) -> Tuple[float, float]:
        """Return ``(longitude, speed)`` in degrees and degrees/day."""
        self._require_ready()
        try:
            body_id = PLANETS_SWE[planet]
        except KeyError:
            raise ValueError(f"{planet.value} is not an ephemeris body") from None
        try:
            data, _ret_flag = swe.calc_ut(jd_ut, body_id, swe.FLG_SWIEPH | swe.FLG_SPEED)
        except swe.Error as e:
            logger.error(f"Error calculating {planet.value} at JD {jd_ut}: {e}")
            raise ChartCalculationError(f"Ephemeris failed for {planet.value} at JD {jd_ut}: {e}") from e
        return data[0] % 360.0, data[3]

    def houses(
        self, jd_ut: float, latitude: float, longitude: float, system: str = "P"
    ) -> Tuple[List[float], float, float]:
        """Return ``(cusps, ascendant, midheaven)``; ``cusps[0]`` is the 1st house."""
        self._require_ready()
        try:
            cusps, ascmc = swe.houses(jd_ut, latitude, longitude, system.encode("ascii"))
        except swe.Error as e:
            logger.error(f"Error calculating houses at JD {jd_ut}: {e}")
            raise ChartCalculationError(f"House calculation failed at JD {jd_ut}: {e}") from e
        cusps = list(cusps)
        # Older bindings return a leading unused element
        if len(cusps) == 13:
            cusps = cusps[1:]
        return cusps, ascmc[0], ascmc[1]

    def julday(self, year: int, month: int, day: int, hour: float) -> float:
        self._require_ready()
        return swe.julday(year, month, day, hour, swe.GREG_CAL)

    def revjul(self, jd_ut: float) -> Tuple[int, int, int, float]:
        """Return ``(year, month, day, hour)`` for a Julian Day."""
        self._require_ready()
        year, month, day, hour = swe.revjul(jd_ut, swe.GREG_CAL)
        return int(year), int(month), int(day), float(hour)
