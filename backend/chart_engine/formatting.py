"""Plain-text rendering of chart results.

Every function here consumes finished data structures; nothing in this
module queries the ephemeris for positions. Instants are turned into civil
dates through the adapter's ``revjul`` and a :class:`TimezoneManager`, so
every date shown (yearly month/day spans included) is a local date in the
manager's zone, not the UT date.
"""
from __future__ import annotations

import datetime
from typing import Iterable, List, Optional, Sequence

from models import AspectInfo, NatalChart, Planet, Sign
from .calculation.helpers import degrees_to_dms, normalize_longitude

HOUSE_SYSTEM_NAMES = {
    "P": "Placidus",
    "K": "Koch",
    "O": "Porphyry",
    "R": "Regiomontanus",
    "C": "Campanus",
    "E": "Equal",
    "W": "Whole Sign",
}

SECTION = "■ "
NONE = "none"
SEPARATOR = "─" * 30


def format_longitude(longitude: float) -> str:
    """``"Aries 12°05'"``: sign name, whole degrees and minutes within the sign."""
    longitude = normalize_longitude(longitude)
    sign = Sign.from_longitude(longitude)
    degrees, minutes, _seconds = degrees_to_dms(longitude - sign.start_degree)
    return f"{sign.sign_name} {degrees}°{minutes:02d}'"


def format_short(longitude: float) -> str:
    """``"Ari12°"``"""
    longitude = normalize_longitude(longitude)
    sign = Sign.from_longitude(longitude)
    return f"{sign.abbreviation}{int(longitude - sign.start_degree)}°"


def point_label(planet: Planet) -> str:
    if planet == Planet.ASC:
        return "ASC"
    if planet == Planet.MC:
        return "MC"
    return planet.value


def house_system_name(code: str) -> str:
    return HOUSE_SYSTEM_NAMES.get(code, code)


def jd_to_utc(ephemeris, jd: float) -> datetime.datetime:
    """Aware UTC datetime for a Julian Day, rounded to the minute."""
    year, month, day, hour = ephemeris.revjul(jd)
    dt = datetime.datetime(year, month, day, tzinfo=datetime.timezone.utc) + datetime.timedelta(hours=hour)
    return (dt + datetime.timedelta(seconds=30)).replace(second=0, microsecond=0)


def jd_to_local(ephemeris, timezone_manager, jd: float) -> datetime.datetime:
    return timezone_manager.from_utc(jd_to_utc(ephemeris, jd))


def _month_day(ephemeris, timezone_manager, jd: float) -> str:
    dt = jd_to_local(ephemeris, timezone_manager, jd)
    return f"{dt.month}/{dt.day}"


def _lines_or_none(lines: Sequence[str], joiner: str = "\n") -> str:
    return joiner.join(lines) if lines else NONE


def _natal_house(natal: NatalChart, planet: Planet) -> str:
    if planet.is_angle:
        return ""
    try:
        return f"({natal.position(planet).house}H)"
    except KeyError:
        return ""


def _retro_mark(speed: float) -> str:
    return " R" if speed < 0 else ""


def natal_reference(chart: NatalChart) -> str:
    """Compact two-line summary of a natal chart."""
    bodies = " / ".join(f"{pos.planet.value} {format_short(pos.longitude)}({pos.house}H)" for pos in chart.positions)
    angles = f"ASC {format_short(chart.ascendant)} / MC {format_short(chart.midheaven)}"
    return f"{bodies}\n{angles}"


def format_natal(chart: NatalChart, house_system: str = "P") -> str:
    lines: List[str] = []
    if chart.birth is not None and chart.date_time_local is not None:
        lines.append(f"[Natal] {chart.date_time_local:%Y-%m-%d %H:%M} {chart.location.label}")
    else:
        lines.append(f"[Natal] JD {chart.julian_day:.5f} {chart.location.label}")
    lines.append(f"House system: {house_system_name(house_system)}")
    lines.append("")
    for pos in chart.positions:
        lines.append(f"{pos.planet.value} {format_longitude(pos.longitude)} ({pos.house}H){_retro_mark(pos.speed)}")
    lines.append("")
    lines.append(f"ASC {format_longitude(chart.ascendant)} / MC {format_longitude(chart.midheaven)}")
    lines.append("")
    lines.append(f"{SECTION}Aspects")
    aspects = [
        f"{a.first.value}{a.aspect.symbol}{a.second.value}({a.orb:.0f}°)" for a in chart.aspects
    ]
    lines.append(_lines_or_none(aspects, " / "))
    return "\n".join(lines)


def format_yearly(year: int, natal: NatalChart, result, ephemeris, timezone_manager) -> str:
    """Render a :class:`~chart_engine.transits.ScanResult` for one year."""
    def span(interval) -> str:
        return f"{_month_day(ephemeris, timezone_manager, interval.start)}-{_month_day(ephemeris, timezone_manager, interval.end)}"

    lines = [f"[{year} Transit Overview]", ""]
    lines.append(f"{SECTION}Natal (reference)")
    lines.append(natal_reference(natal))
    lines.append("")

    lines.append(f"{SECTION}Retrograde periods")
    for planet, periods in result.retrograde_periods.items():
        rendered = ", ".join(span(p) for p in periods) if periods else NONE
        lines.append(f"{planet.value}: {rendered}")
    lines.append("")

    lines.append(f"{SECTION}Sign ingresses")
    ingresses = [
        f"{event.planet.value}: {_month_day(ephemeris, timezone_manager, event.julian_day)} enters {event.sign.sign_name}"
        for event in result.sign_ingresses
    ]
    lines.append(_lines_or_none(ingresses))
    lines.append("")

    lines.append(f"{SECTION}Transits to ASC/MC")
    angle_lines = []
    for (transiting, angle), periods in result.angle_aspect_periods.items():
        for period in periods:
            angle_lines.append(
                f"t.{transiting.value}{period.aspect.symbol}n.{point_label(angle)}: {span(period)}"
            )
    lines.append(_lines_or_none(angle_lines))
    lines.append("")

    lines.append(f"{SECTION}Transits to natal bodies")
    body_lines = []
    for (transiting, natal_planet), periods in result.aspect_periods.items():
        if not periods:
            continue
        rendered = ", ".join(f"{p.aspect.symbol}{span(p)}" for p in periods)
        body_lines.append(
            f"t.{transiting.value}→n.{natal_planet.value}{_natal_house(natal, natal_planet)}: {rendered}"
        )
    lines.append(_lines_or_none(body_lines))
    return "\n".join(lines)


def _aspects_to_natal(prefix: str, aspects: Iterable[AspectInfo], natal: NatalChart) -> str:
    rendered = [
        f"{prefix}.{a.first.value}{a.aspect.symbol}n.{point_label(a.second)}{_natal_house(natal, a.second)}"
        for a in aspects
    ]
    return _lines_or_none(rendered, " / ")


def format_transit(date: datetime.date, natal: NatalChart, snapshot) -> str:
    """Render a :class:`~chart_engine.transits.TransitSnapshot`."""
    lines = [f"[Transit] {date:%Y-%m-%d}", ""]
    lines.append(f"{SECTION}Natal (reference)")
    lines.append(natal_reference(natal))
    lines.append("")
    lines.append(f"{SECTION}Transiting bodies")
    for pos in snapshot.positions:
        lines.append(f"{pos.planet.value} {format_longitude(pos.longitude)}{_retro_mark(pos.speed)}")
    lines.append("")
    lines.append(f"{SECTION}Aspects to natal")
    lines.append(_aspects_to_natal("t", snapshot.aspects, natal))
    return "\n".join(lines)


def format_lunar_returns(
    search,
    charts,
    natal: NatalChart,
    ephemeris,
    timezone_manager,
    house_system: str = "P",
) -> str:
    """Render the charts built by :func:`~chart_engine.returns.build_lunar_return_charts`."""
    if not search.found:
        return f"No lunar return found in {search.year}-{search.month:02d}"

    blocks = []
    for item in charts:
        dt_local = jd_to_local(ephemeris, timezone_manager, item.julian_day)
        chart = item.chart
        lines = [f"[{item.label}] {dt_local:%Y-%m-%d %H:%M %Z}"]
        lines.append(f"Location: {chart.location.label}")
        lines.append(f"Natal Moon: {format_longitude(search.target)}")
        lines.append(f"House system: {house_system_name(house_system)}")
        lines.append("")
        lines.append(f"{SECTION}Bodies")
        for pos in chart.positions:
            lines.append(f"{pos.planet.value} {format_longitude(pos.longitude)} ({pos.house}H){_retro_mark(pos.speed)}")
        lines.append("")
        lines.append(f"ASC {format_longitude(chart.ascendant)} / MC {format_longitude(chart.midheaven)}")
        lines.append("")
        lines.append(f"{SECTION}Aspects to natal")
        lines.append(_aspects_to_natal("LR", item.aspects, natal))
        blocks.append("\n".join(lines))
    return f"\n\n{SEPARATOR}\n\n".join(blocks)


def _birth_date(chart: NatalChart) -> str:
    if chart.date_time_local is not None:
        return f"{chart.date_time_local:%Y-%m-%d}"
    return f"JD {chart.julian_day:.5f}"


def format_synastry(result, labels: Optional[Sequence[str]] = None) -> str:
    """Render a :class:`~chart_engine.synastry.SynastryResult`."""
    first_label, second_label = labels or ("A", "B")
    lines = ["[Synastry]", ""]
    lines.append(f"{SECTION}{first_label} natal ({_birth_date(result.first)})")
    lines.append(natal_reference(result.first))
    lines.append("")
    lines.append(f"{SECTION}{second_label} natal ({_birth_date(result.second)})")
    lines.append(natal_reference(result.second))
    lines.append("")
    lines.append(f"{SECTION}Cross aspects")

    rendered = [
        f"{first_label}.{a.first.value}{a.aspect.symbol}{second_label}.{a.second.value}({a.orb:.1f}°)"
        for a in result.cross_aspects
    ]
    rendered.extend(
        f"{first_label}.{a.first.value}{a.aspect.symbol}{second_label}.{point_label(a.second)}({a.orb:.1f}°)"
        for a in result.first_to_second_angles
    )
    rendered.extend(
        f"{second_label}.{a.first.value}{a.aspect.symbol}{first_label}.{point_label(a.second)}({a.orb:.1f}°)"
        for a in result.second_to_first_angles
    )
    lines.append(_lines_or_none(rendered))
    return "\n".join(lines)
