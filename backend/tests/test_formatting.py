import dataclasses
import datetime
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT / "backend"))
sys.path.append(str(Path(__file__).resolve().parent))

import pytest

from chart_engine.formatting import (
    format_longitude,
    format_lunar_returns,
    format_natal,
    format_short,
    format_synastry,
    format_transit,
    format_yearly,
    jd_to_utc,
)
from chart_engine.returns import LunarReturnSearch, build_lunar_return_charts
from chart_engine.services.geolocation import TimezoneManager
from chart_engine.synastry import SynastryResult
from chart_engine.transits import ScanResult, TransitSnapshot
from fakes import make_natal
from models import Aspect, AspectInfo, BodyPosition, IngressEvent, Interval, Planet, Sign


@pytest.mark.parametrize(
    "longitude, text",
    [(0.0, "Aries 0°00'"), (42.5, "Taurus 12°30'"), (359.99, "Pisces 29°59'"), (-30.0, "Pisces 0°00'")],
)
def test_format_longitude(longitude, text):
    assert format_longitude(longitude) == text


def test_format_short():
    assert format_short(42.5) == "Tau12°"
    assert format_short(-0.5) == "Pis29°"


def test_jd_to_utc_rounds_to_minute(fake_ephemeris):
    jd = fake_ephemeris.julday(2025, 3, 1, 13.5 + 29.9 / 3600)
    assert jd_to_utc(fake_ephemeris, jd) == datetime.datetime(2025, 3, 1, 13, 30, tzinfo=datetime.timezone.utc)


def test_natal_text_lists_bodies_angles_and_aspects(calculator, birth):
    text = format_natal(calculator.build_natal(birth))
    lines = text.splitlines()
    assert lines[0] == "[Natal] 1990-05-15 14:30 Chiyoda, Tokyo"
    assert lines[1] == "House system: Placidus"
    assert "Sun Aries 15°00' (1H)" in lines
    assert "ASC Aries 0°00' / MC Capricorn 0°00'" in lines
    assert "Sun⚹Mercury(0°)" in lines[-1]


def test_natal_text_without_aspects_says_none():
    text = format_natal(make_natal({Planet.SUN: 10.0, Planet.MOON: 50.0}))
    assert text.splitlines()[-1] == "none"


def test_retrograde_marker():
    natal = make_natal({Planet.SUN: 10.0})
    natal = dataclasses.replace(natal, positions=(BodyPosition(Planet.MARS, 10.0, -0.3, 4),))
    assert "Mars Aries 10°00' (4H) R" in format_natal(natal)


def test_yearly_text_sections(fake_ephemeris, timezone_manager):
    natal = make_natal({Planet.SUN: 0.0})
    jd = fake_ephemeris.julday
    result = ScanResult(start=jd(2025, 1, 1, 0.0), end=jd(2025, 12, 31, 0.0))
    result.retrograde_periods[Planet.MERCURY] = [Interval(jd(2025, 3, 15, 0.0), jd(2025, 4, 7, 0.0))]
    result.retrograde_periods[Planet.VENUS] = []
    result.sign_ingresses.append(IngressEvent(jd(2025, 6, 10, 0.0), Planet.JUPITER, Sign.CANCER))
    result.aspect_periods[(Planet.SATURN, Planet.SUN)] = [
        Interval(jd(2025, 1, 1, 0.0), jd(2025, 2, 1, 0.0), Aspect.SQUARE)
    ]
    result.aspect_periods[(Planet.PLUTO, Planet.SUN)] = []
    result.angle_aspect_periods[(Planet.URANUS, Planet.ASC)] = []

    text = format_yearly(2025, natal, result, fake_ephemeris, timezone_manager)
    lines = text.splitlines()
    assert lines[0] == "[2025 Transit Overview]"
    assert "Mercury: 3/15-4/7" in lines
    assert "Venus: none" in lines
    assert "Jupiter: 6/10 enters Cancer" in lines
    assert "t.Saturn→n.Sun(1H): □1/1-2/1" in lines
    assert not any(line.startswith("t.Pluto") for line in lines)
    angle_header = lines.index("■ Transits to ASC/MC")
    assert lines[angle_header + 1] == "none"


def test_transit_text(fake_ephemeris):
    natal = make_natal({Planet.SUN: 45.0})
    snapshot = TransitSnapshot(
        julian_day=100.0,
        positions=(BodyPosition(Planet.SATURN, 45.2, -0.05),),
        aspects=(
            AspectInfo(Planet.SATURN, Planet.SUN, Aspect.CONJUNCTION, 0.2),
            AspectInfo(Planet.SATURN, Planet.ASC, Aspect.CONJUNCTION, 0.2),
        ),
    )
    text = format_transit(datetime.date(2025, 3, 1), natal, snapshot)
    lines = text.splitlines()
    assert lines[0] == "[Transit] 2025-03-01"
    assert "Saturn Taurus 15°12' R" in lines
    assert lines[-1] == "t.Saturn☌n.Sun(1H) / t.Saturn☌n.ASC"


def test_lunar_text_without_return(fake_ephemeris, timezone_manager):
    search = LunarReturnSearch(year=2025, month=3, target=100.0)
    text = format_lunar_returns(search, [], make_natal({Planet.MOON: 100.0}), fake_ephemeris, timezone_manager)
    assert text == "No lunar return found in 2025-03"


def test_lunar_text_with_two_returns(calculator, fake_ephemeris, timezone_manager, directory):
    natal = make_natal({Planet.MOON: 100.0})
    start = fake_ephemeris.julday(2025, 1, 1, 0.0)
    search = LunarReturnSearch(year=2025, month=1, target=100.0, returns=(start, start + 27.3))
    charts = build_lunar_return_charts(calculator, natal, search, directory.find("Tokyo", "Chiyoda"), orb=1.0)

    text = format_lunar_returns(search, charts, natal, fake_ephemeris, timezone_manager)
    blocks = text.split("\n\n" + "─" * 30 + "\n\n")
    assert len(blocks) == 2
    assert blocks[0].startswith("[Lunar Return 1] 2025-01-01 09:00 JST")
    assert "Natal Moon: Cancer 10°00'" in blocks[0]
    assert "Location: Chiyoda, Tokyo" in blocks[1]


def test_synastry_text():
    first = make_natal({Planet.SUN: 0.0})
    second = make_natal({Planet.SUN: 90.0})
    result = SynastryResult(
        first=first,
        second=second,
        cross_aspects=(AspectInfo(Planet.SUN, Planet.SUN, Aspect.SQUARE, 0.0),),
        first_to_second_angles=(),
        second_to_first_angles=(AspectInfo(Planet.SUN, Planet.MC, Aspect.OPPOSITION, 1.25),),
    )
    lines = format_synastry(result).splitlines()
    assert lines[0] == "[Synastry]"
    assert lines[-2:] == ["A.Sun□B.Sun(0.0°)", "B.Sun☍A.MC(1.2°)"]


def test_yearly_dates_are_local_to_the_zone(fake_ephemeris):
    natal = make_natal({Planet.SUN: 0.0})
    jd = fake_ephemeris.julday
    result = ScanResult(start=jd(2025, 1, 1, 0.0), end=jd(2025, 12, 31, 0.0))
    result.sign_ingresses.append(IngressEvent(jd(2025, 6, 10, 0.0), Planet.JUPITER, Sign.CANCER))

    tokyo = format_yearly(2025, natal, result, fake_ephemeris, TimezoneManager("Asia/Tokyo"))
    new_york = format_yearly(2025, natal, result, fake_ephemeris, TimezoneManager("America/New_York"))
    assert "Jupiter: 6/10 enters Cancer" in tokyo.splitlines()
    assert "Jupiter: 6/9 enters Cancer" in new_york.splitlines()
