import logging
import os
import sys
from pathlib import Path

import pytest
from hypothesis import HealthCheck, settings

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT / "backend"))
sys.path.append(str(Path(__file__).resolve().parent))

os.environ.setdefault("CHART_CONFIG_SKIP_VALIDATION", "true")

from chart_config import ChartConfig  # noqa: E402
from chart_engine.natal import NatalCalculator  # noqa: E402
from chart_engine.services.geolocation import CityDirectory, TimezoneManager  # noqa: E402
from fakes import FakeEphemeris  # noqa: E402
from models import BirthData  # noqa: E402


settings.register_profile(
    "dev",
    settings(deadline=None, max_examples=60, suppress_health_check=[HealthCheck.too_slow]),
)
settings.register_profile(
    "ci",
    settings(deadline=None, max_examples=200, suppress_health_check=[HealthCheck.too_slow]),
)
settings.load_profile("ci" if os.getenv("CI") else os.getenv("HYPOTHESIS_PROFILE", "dev"))


CITY_TABLE = {
    "Tokyo": [
        {"name": "Chiyoda", "latitude": 35.6940, "longitude": 139.7536},
        {"name": "Hachioji", "latitude": 35.6664, "longitude": 139.3160},
    ],
    "Osaka": [
        {"name": "Osaka", "latitude": 34.6937, "longitude": 135.5023},
    ],
}


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    monkeypatch.delenv("CHART_CONFIG", raising=False)
    ChartConfig.reset()
    yield
    ChartConfig.reset()


@pytest.fixture
def directory():
    return CityDirectory(table=CITY_TABLE)


@pytest.fixture
def timezone_manager():
    return TimezoneManager("Asia/Tokyo")


@pytest.fixture
def fake_ephemeris():
    return FakeEphemeris()


@pytest.fixture
def calculator(fake_ephemeris, directory, timezone_manager):
    return NatalCalculator(fake_ephemeris, directory=directory, timezone_manager=timezone_manager)


@pytest.fixture
def birth():
    return BirthData(year=1990, month=5, day=15, hour=14, minute=30, region="Tokyo", city="Chiyoda")


@pytest.fixture
def restore_chart_logger():
    package_logger = logging.getLogger("chart_engine")
    saved = (list(package_logger.handlers), package_logger.propagate, package_logger.level)
    yield package_logger
    for handler in package_logger.handlers:
        if handler not in saved[0]:
            handler.close()
    package_logger.handlers[:] = saved[0]
    package_logger.propagate = saved[1]
    package_logger.setLevel(saved[2])
