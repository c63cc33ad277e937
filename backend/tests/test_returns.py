import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT / "backend"))
sys.path.append(str(Path(__file__).resolve().parent))

import pytest
from hypothesis import given
from hypothesis import strategies as st

from chart_engine.returns import (
    LunarReturnSearch,
    build_lunar_return_charts,
    find_exact_crossing,
    find_lunar_returns,
)
from fakes import FakeEphemeris, fixed, linear, make_natal
from models import Aspect, Location, Planet

MOON_SPEED = 13.2


def test_bisection_converges_for_constant_speed():
    eph = FakeEphemeris({Planet.MOON: linear(0.0, MOON_SPEED)})
    target = 100.0
    exact = target / MOON_SPEED
    jd = find_exact_crossing(eph, 7.0, 8.0, target, Planet.MOON, iterations=20)
    assert jd == pytest.approx(exact, abs=1e-6)


def test_bisection_runs_fixed_number_of_iterations():
    eph = FakeEphemeris({Planet.MOON: linear(0.0, MOON_SPEED)})
    find_exact_crossing(eph, 7.0, 8.0, 100.0, Planet.MOON, iterations=12)
    assert len(eph.calls) == 12


def test_bisection_across_aries_point():
    eph = FakeEphemeris({Planet.MOON: linear(350.0, 10.0)})
    jd = find_exact_crossing(eph, 1.5, 2.5, 10.0, Planet.MOON, iterations=20)
    assert jd == pytest.approx(2.0, abs=1e-6)


@given(
    st.floats(min_value=0.0, max_value=360.0, exclude_max=True),
    st.floats(min_value=10.0, max_value=15.0),
    st.floats(min_value=0.01, max_value=0.99),
)
def test_bisection_error_bound(target, speed, fraction):
    eph = FakeEphemeris({Planet.MOON: linear(target - speed * fraction, speed)})
    jd = find_exact_crossing(eph, 0.0, 1.0, target, Planet.MOON, iterations=20)
    assert abs(jd - fraction) <= 1.0 / 2 ** 21 + 1e-9


def test_two_returns_in_one_month_are_chronological():
    eph = FakeEphemeris()
    start = eph.julday(2025, 1, 1, 0.0)
    target = 100.0
    eph.motions[Planet.MOON] = linear(target - 1.0, MOON_SPEED, epoch=start)

    search = find_lunar_returns(eph, target, 2025, 1)
    assert search.found
    assert len(search.returns) == 2
    assert search.returns[0] == pytest.approx(start + 1.0 / MOON_SPEED, abs=1e-6)
    assert search.returns[1] == pytest.approx(start + 361.0 / MOON_SPEED, abs=1e-6)


def test_coarse_scan_stays_inside_month_window():
    eph = FakeEphemeris()
    start = eph.julday(2025, 2, 1, 0.0)
    end = eph.julday(2025, 3, 1, 0.0)
    eph.motions[Planet.MOON] = fixed(10.0)
    find_lunar_returns(eph, 300.0, 2025, 2, step=0.25)

    sampled = [jd for jd, _ in eph.calls]
    assert sampled[0] == start
    assert max(sampled) < end
    assert len(sampled) == 28 * 4


def test_december_window_ends_in_next_year():
    eph = FakeEphemeris()
    eph.motions[Planet.MOON] = fixed(10.0)
    find_lunar_returns(eph, 300.0, 2024, 12, step=1.0)
    sampled = [jd for jd, _ in eph.calls]
    assert len(sampled) == 31
    assert max(sampled) < eph.julday(2025, 1, 1, 0.0)


def test_no_return_is_a_result_not_an_error():
    eph = FakeEphemeris({Planet.MOON: fixed(190.0)})
    search = find_lunar_returns(eph, 100.0, 2025, 3)
    assert search == LunarReturnSearch(year=2025, month=3, target=100.0, returns=())
    assert not search.found


def test_invalid_month_rejected(fake_ephemeris):
    with pytest.raises(ValueError):
        find_lunar_returns(fake_ephemeris, 100.0, 2025, 13)


def test_return_charts_are_labelled_and_aspected(calculator):
    natal = make_natal({Planet.SUN: 45.0, Planet.MOON: 100.0}, ascendant=45.0, midheaven=315.0)
    location = Location("Osaka", "Osaka", 34.6937, 135.5023)
    search = LunarReturnSearch(year=2025, month=1, target=100.0, returns=(10.0, 37.5))

    charts = build_lunar_return_charts(calculator, natal, search, location, orb=1.0)
    assert [c.label for c in charts] == ["Lunar Return 1", "Lunar Return 2"]
    assert charts[1].julian_day == 37.5
    assert charts[0].chart.location == location
    assert len(charts[0].chart.positions) == 11
    # unscripted Moon sits at 45°: natal bodies first, then ASC and MC
    moon_aspects = [(a.second, a.aspect) for a in charts[0].aspects if a.first == Planet.MOON]
    assert moon_aspects == [
        (Planet.SUN, Aspect.CONJUNCTION),
        (Planet.ASC, Aspect.CONJUNCTION),
        (Planet.MC, Aspect.SQUARE),
    ]

    single = build_lunar_return_charts(
        calculator, natal, LunarReturnSearch(2025, 1, 100.0, (10.0,)), location, orb=1.0
    )
    assert [c.label for c in single] == ["Lunar Return"]
