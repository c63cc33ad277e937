"""Lunar return search.

The Moon's position relative to its natal longitude is sampled on a coarse
grid across one calendar month. Every sample pair where the signed
difference goes from negative to non-negative brackets one return, which is
then narrowed by a fixed number of bisection steps.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from chart_config import cfg
from models import AspectInfo, Location, NatalChart, Planet
from .aspects import aspects_to_points
from .calculation.helpers import next_month, signed_difference

logger = logging.getLogger(__name__)


def find_exact_crossing(
    ephemeris,
    lo: float,
    hi: float,
    target: float,
    planet: Planet = Planet.MOON,
    iterations: Optional[int] = None,
) -> float:
    """Bisect ``[lo, hi]`` for the instant ``planet`` reaches ``target``.

    The bracket must satisfy ``diff(lo) < 0 <= diff(hi)`` where ``diff`` is
    the signed longitude difference in (-180, 180]. The loop runs a fixed
    number of iterations with no tolerance check and returns the midpoint of
    the final bracket, so the error is at most ``(hi - lo) / 2**(iterations + 1)``.
    """
    if lo > hi:
        raise ValueError(f"Bracket start {lo} is after end {hi}")
    if iterations is None:
        iterations = int(cfg().scan.bisection_iterations)

    for _ in range(iterations):
        mid = (lo + hi) / 2
        longitude, _speed = ephemeris.body_position(mid, planet)
        if signed_difference(longitude, target) < 0:
            lo = mid
        else:
            hi = mid
    return (lo + hi) / 2


@dataclass(frozen=True)
class LunarReturnSearch:
    """Outcome of a month-long search; an empty ``returns`` is a valid answer."""
    year: int
    month: int
    target: float
    returns: Tuple[float, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.returns)


def find_lunar_returns(
    ephemeris,
    natal_moon: float,
    year: int,
    month: int,
    step: Optional[float] = None,
    iterations: Optional[int] = None,
) -> LunarReturnSearch:
    """Find every lunar return in a calendar month.

    The window runs from the 1st of the month at 0h UT (inclusive) to the 1st
    of the following month at 0h UT (exclusive). Results are chronological.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be 1-12: {month}")
    step = float(cfg().scan.lunar_step_days) if step is None else step
    if step <= 0:
        raise ValueError(f"Search step must be positive, got {step}")

    start = ephemeris.julday(year, month, 1, 0.0)
    following_year, following_month = next_month(year, month)
    end = ephemeris.julday(following_year, following_month, 1, 0.0)

    returns: List[float] = []
    previous_jd = None
    previous_diff = None
    count = int(math.ceil((end - start) / step))
    for i in range(count):
        jd = start + i * step
        if jd >= end:
            break
        longitude, _speed = ephemeris.body_position(jd, Planet.MOON)
        diff = signed_difference(longitude, natal_moon)
        if previous_diff is not None and previous_diff < 0 and diff >= 0:
            returns.append(find_exact_crossing(ephemeris, previous_jd, jd, natal_moon, Planet.MOON, iterations))
        previous_jd = jd
        previous_diff = diff

    if returns:
        logger.info(f"Found {len(returns)} lunar return(s) in {year}-{month:02d}")
    else:
        logger.info(f"No lunar return in {year}-{month:02d}")
    return LunarReturnSearch(year=year, month=month, target=natal_moon, returns=tuple(returns))


@dataclass(frozen=True)
class LunarReturnChart:
    label: str
    julian_day: float
    chart: NatalChart
    aspects: Tuple[AspectInfo, ...] = field(default_factory=tuple)


def build_lunar_return_charts(
    calculator,
    natal: NatalChart,
    search: LunarReturnSearch,
    location: Location,
    orb: Optional[float] = None,
) -> List[LunarReturnChart]:
    """Cast a chart for each return and relate it to the natal chart.

    Aspects run from every return-chart body to each natal body and then to
    the natal Ascendant and Midheaven, at the transit orb.
    """
    orb = cfg().orbs.transit if orb is None else orb
    natal_points = natal.natal_points()
    charts = []
    for index, jd in enumerate(search.returns, start=1):
        chart = calculator.chart_at(jd, location)
        label = f"Lunar Return {index}" if len(search.returns) > 1 else "Lunar Return"
        aspects = aspects_to_points(chart.positions, natal_points, orb)
        charts.append(LunarReturnChart(label=label, julian_day=jd, chart=chart, aspects=tuple(aspects)))
    return charts
