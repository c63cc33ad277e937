"""Transit scanning over a span of time.

:func:`scan_range` walks from ``start`` to ``end`` at a fixed step and keeps
one small state machine per tracked quantity:

* one retrograde flag per body in ``retrograde_bodies``;
* the previous zodiac sign per body in ``ingress_bodies``;
* one in-aspect flag per (transiting body, natal point) pair, where the
  natal points are every natal body followed by the Ascendant and Midheaven.

A flag switching on records the current instant; switching off closes an
:class:`Interval` ending at the current instant. Whatever is still open when
the loop ends is closed at ``end``. The state table is created inside each
call and discarded with it.

The step has to be small compared to the aspect window of the fastest
transiting body: a body moving more than ``2 * transit_orb`` per step can
jump over a whole window. Slow outer bodies at one-day steps are well inside
that bound; faster bodies trigger a warning.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from chart_config import cfg
from models import (
    Aspect,
    AspectInfo,
    BodyPosition,
    IngressEvent,
    Interval,
    NatalChart,
    Planet,
    Sign,
)
from .aspects import aspects_to_points, match_aspect
from .calculation.helpers import sign_index
from .natal import configured_bodies

logger = logging.getLogger(__name__)

PairKey = Tuple[Planet, Planet]


@dataclass
class TrackedState:
    """On/off state of one tracked quantity during a scan."""
    active: bool = False
    since: Optional[float] = None
    aspect: Optional[Aspect] = None

    def open(self, instant: float, aspect: Optional[Aspect] = None) -> None:
        self.active = True
        self.since = instant
        self.aspect = aspect

    def close(self, instant: float) -> Interval:
        interval = Interval(start=self.since, end=instant, aspect=self.aspect)
        self.active = False
        self.since = None
        self.aspect = None
        return interval


@dataclass(frozen=True)
class ScanSettings:
    step_days: float = 1.0
    transit_orb: float = 1.0
    retrograde_bodies: Tuple[Planet, ...] = (
        Planet.MERCURY,
        Planet.VENUS,
        Planet.MARS,
        Planet.JUPITER,
        Planet.SATURN,
        Planet.URANUS,
        Planet.NEPTUNE,
        Planet.PLUTO,
    )
    ingress_bodies: Tuple[Planet, ...] = (
        Planet.JUPITER,
        Planet.SATURN,
        Planet.URANUS,
        Planet.NEPTUNE,
        Planet.PLUTO,
    )
    transit_bodies: Tuple[Planet, ...] = (
        Planet.JUPITER,
        Planet.SATURN,
        Planet.URANUS,
        Planet.NEPTUNE,
        Planet.PLUTO,
    )

    def __post_init__(self):
        if self.step_days <= 0:
            raise ValueError(f"Scan step must be positive, got {self.step_days}")

    @classmethod
    def from_config(cls, **overrides) -> "ScanSettings":
        config = cfg()
        values = {
            "step_days": float(config.scan.step_days),
            "transit_orb": float(config.orbs.transit),
            "retrograde_bodies": tuple(configured_bodies("retrograde")),
            "ingress_bodies": tuple(configured_bodies("ingress")),
            "transit_bodies": tuple(configured_bodies("transit")),
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class ScanResult:
    start: float
    end: float
    retrograde_periods: Dict[Planet, List[Interval]] = field(default_factory=dict)
    sign_ingresses: List[IngressEvent] = field(default_factory=list)
    aspect_periods: Dict[PairKey, List[Interval]] = field(default_factory=dict)
    angle_aspect_periods: Dict[PairKey, List[Interval]] = field(default_factory=dict)


def _step_instants(start: float, end: float, step: float) -> List[float]:
    count = int(math.floor((end - start) / step + 1e-9))
    return [start + i * step for i in range(count + 1)]


def scan_range(
    ephemeris,
    start: float,
    end: float,
    natal: NatalChart,
    settings: Optional[ScanSettings] = None,
) -> ScanResult:
    """Scan ``[start, end]`` for retrograde periods, ingresses and transits."""
    if start > end:
        raise ValueError(f"Scan start {start} is after end {end}")
    settings = settings or ScanSettings.from_config()
    orb = settings.transit_orb
    body_points = [(pos.planet, pos.longitude) for pos in natal.positions]
    angle_points = list(natal.angles.items())

    result = ScanResult(start=start, end=end)
    retro_states: Dict[Planet, TrackedState] = {}
    for planet in settings.retrograde_bodies:
        retro_states[planet] = TrackedState()
        result.retrograde_periods[planet] = []

    previous_signs: Dict[Planet, int] = {}

    aspect_states: Dict[PairKey, TrackedState] = {}
    for transiting in settings.transit_bodies:
        for point, _ in body_points:
            aspect_states[(transiting, point)] = TrackedState()
            result.aspect_periods[(transiting, point)] = []

    angle_states: Dict[PairKey, TrackedState] = {}
    for angle, _ in angle_points:
        for transiting in settings.transit_bodies:
            angle_states[(transiting, angle)] = TrackedState()
            result.angle_aspect_periods[(transiting, angle)] = []

    # retrograde and ingress bodies share one query per step
    motion_bodies = list(dict.fromkeys(list(settings.retrograde_bodies) + list(settings.ingress_bodies)))
    ingress_set = set(settings.ingress_bodies)
    warned: set = set()

    for jd in _step_instants(start, end, settings.step_days):
        step_cache: Dict[Planet, Tuple[float, float]] = {}

        def position(planet: Planet) -> Tuple[float, float]:
            if planet not in step_cache:
                step_cache[planet] = ephemeris.body_position(jd, planet)
            return step_cache[planet]

        for planet in motion_bodies:
            longitude, speed = position(planet)

            state = retro_states.get(planet)
            if state is not None:
                if speed < 0 and not state.active:
                    state.open(jd)
                elif speed >= 0 and state.active:
                    result.retrograde_periods[planet].append(state.close(jd))

            if planet in ingress_set:
                sign = sign_index(longitude)
                previous = previous_signs.get(planet)
                if previous is not None and previous != sign:
                    result.sign_ingresses.append(IngressEvent(jd, planet, Sign.from_index(sign)))
                previous_signs[planet] = sign

        for transiting in settings.transit_bodies:
            longitude, speed = position(transiting)
            if transiting not in warned and abs(speed) * settings.step_days > 2 * orb:
                warned.add(transiting)
                logger.warning(
                    f"{transiting.value} moves {abs(speed) * settings.step_days:.2f}° per "
                    f"{settings.step_days}-day step, wider than the {2 * orb:.2f}° aspect window; "
                    f"transit periods may be missed"
                )

            for point, point_lon in body_points:
                _update_aspect_state(
                    aspect_states[(transiting, point)],
                    result.aspect_periods[(transiting, point)],
                    jd,
                    match_aspect(longitude, point_lon, orb),
                )
            for angle, angle_lon in angle_points:
                _update_aspect_state(
                    angle_states[(transiting, angle)],
                    result.angle_aspect_periods[(transiting, angle)],
                    jd,
                    match_aspect(longitude, angle_lon, orb),
                )

    # close whatever is still open at the scan boundary
    for planet, state in retro_states.items():
        if state.active:
            result.retrograde_periods[planet].append(state.close(end))
    for key, state in aspect_states.items():
        if state.active:
            result.aspect_periods[key].append(state.close(end))
    for key, state in angle_states.items():
        if state.active:
            result.angle_aspect_periods[key].append(state.close(end))

    logger.debug(
        f"Scanned JD {start}-{end}: {sum(len(v) for v in result.retrograde_periods.values())} retrograde periods, "
        f"{len(result.sign_ingresses)} ingresses, "
        f"{sum(len(v) for v in result.aspect_periods.values())} transit periods"
    )
    return result


def _update_aspect_state(state: TrackedState, periods: List[Interval], jd: float, match) -> None:
    if match and not state.active:
        state.open(jd, match.aspect)
    elif not match and state.active:
        periods.append(state.close(jd))


def scan_year(ephemeris, year: int, natal: NatalChart, settings: Optional[ScanSettings] = None) -> ScanResult:
    """Scan from January 1st to December 31st (0h UT) of ``year``."""
    start = ephemeris.julday(year, 1, 1, 0.0)
    end = ephemeris.julday(year, 12, 31, 0.0)
    return scan_range(ephemeris, start, end, natal, settings)


@dataclass(frozen=True)
class TransitSnapshot:
    julian_day: float
    positions: Tuple[BodyPosition, ...]
    aspects: Tuple[AspectInfo, ...]


def transit_snapshot(
    ephemeris,
    natal: NatalChart,
    jd_ut: float,
    bodies: Optional[Sequence[Planet]] = None,
    orb: Optional[float] = None,
) -> TransitSnapshot:
    """Positions at one instant and their aspects to the natal chart.

    Aspects are listed per transiting body: natal bodies first, then the
    Ascendant and Midheaven.
    """
    bodies = list(bodies) if bodies is not None else configured_bodies("natal")
    orb = cfg().orbs.transit if orb is None else orb

    positions = []
    for planet in bodies:
        longitude, speed = ephemeris.body_position(jd_ut, planet)
        positions.append(BodyPosition(planet=planet, longitude=longitude, speed=speed))

    points = natal.natal_points()
    aspects: List[AspectInfo] = []
    for pos in positions:
        aspects.extend(aspects_to_points([pos], points, orb))

    return TransitSnapshot(julian_day=jd_ut, positions=tuple(positions), aspects=tuple(aspects))
