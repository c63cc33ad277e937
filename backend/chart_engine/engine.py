# -*- coding: utf-8 -*-
"""
Chart engine facade.

Ties the ephemeris adapter, city table and calculators together and returns
formatted reports. Every public operation refuses to run until the ephemeris
has been initialised.
"""

import datetime
import functools
import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from chart_config import ChartConfigError, cfg, get_config
from models import BirthData, ChartReport, Planet
from .ephemeris import SwissEphemeris
from .errors import EphemerisNotReadyError
from .formatting import (
    format_lunar_returns,
    format_natal,
    format_synastry,
    format_transit,
    format_yearly,
)
from .natal import NatalCalculator
from .returns import build_lunar_return_charts, find_lunar_returns
from .services.geolocation import CityDirectory, TimezoneManager, utc_hour
from .synastry import build_synastry
from .transits import ScanSettings, scan_year, transit_snapshot

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 2100


def profile_calculation(func):
    """Decorator to log how long a calculation took"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__name__} failed after {time.time() - start_time:.4f} seconds: {e}")
            raise
        logger.info(f"{func.__name__} executed in {time.time() - start_time:.4f} seconds")
        return result

    return wrapper


def _check_year(year: int) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValueError(f"Year out of supported range {MIN_YEAR}-{MAX_YEAR}: {year}")


class ChartEngine:
    """Entry point for natal, yearly, transit, lunar return and synastry reports."""

    def __init__(
        self,
        ephemeris=None,
        directory: Optional[CityDirectory] = None,
        timezone: Optional[TimezoneManager] = None,
    ):
        self.ephemeris = ephemeris or SwissEphemeris(cfg().ephemeris.path or None)
        self.directory = directory or CityDirectory()
        self.timezone_manager = timezone or TimezoneManager()
        self.calculator = NatalCalculator(
            self.ephemeris, directory=self.directory, timezone_manager=self.timezone_manager
        )

    def initialize(self) -> "ChartEngine":
        self.ephemeris.initialize()
        return self

    @property
    def is_ready(self) -> bool:
        return bool(getattr(self.ephemeris, "is_ready", False))

    def _require_ready(self) -> None:
        if not self.is_ready:
            raise EphemerisNotReadyError("Chart engine is not initialised; call initialize() first")

    @property
    def house_system(self) -> str:
        return self.calculator.house_system

    def natal(self, birth: BirthData) -> ChartReport:
        self._require_ready()
        chart = self.calculator.build_natal(birth)
        return ChartReport("natal", format_natal(chart, self.house_system), {"chart": chart})

    @profile_calculation
    def yearly(self, birth: BirthData, year: int, settings: Optional[ScanSettings] = None) -> ChartReport:
        self._require_ready()
        _check_year(year)
        natal = self.calculator.build_natal(birth)
        result = scan_year(self.ephemeris, year, natal, settings)
        output = format_yearly(year, natal, result, self.ephemeris, self.timezone_manager)
        return ChartReport("yearly", output, {"natal": natal, "scan": result})

    def transit(self, birth: BirthData, year: int, month: int, day: int) -> ChartReport:
        """Transits at local noon (``location.transit_hour``) of the given date."""
        self._require_ready()
        _check_year(year)
        date = datetime.date(year, month, day)
        natal = self.calculator.build_natal(birth)

        local_time = datetime.datetime.combine(date, datetime.time(int(cfg().location.transit_hour)))
        _dt_local, dt_utc = self.timezone_manager.to_utc(local_time)
        jd_ut = self.ephemeris.julday(dt_utc.year, dt_utc.month, dt_utc.day, utc_hour(dt_utc))
        logger.info(f"Transit snapshot for {date} at JD {jd_ut}")

        snapshot = transit_snapshot(self.ephemeris, natal, jd_ut, self.calculator.bodies)
        return ChartReport("transit", format_transit(date, natal, snapshot), {"natal": natal, "snapshot": snapshot})

    @profile_calculation
    def lunar_return(
        self,
        birth: BirthData,
        year: int,
        month: int,
        region: Optional[str] = None,
        city: Optional[str] = None,
    ) -> ChartReport:
        """Lunar returns in a month, cast for ``region``/``city`` (birth place by default)."""
        self._require_ready()
        _check_year(year)
        location = self.directory.find(region or birth.region, city or birth.city)
        natal = self.calculator.build_natal(birth)

        natal_moon = natal.position(Planet.MOON).longitude
        search = find_lunar_returns(self.ephemeris, natal_moon, year, month)
        charts = build_lunar_return_charts(self.calculator, natal, search, location)
        output = format_lunar_returns(
            search, charts, natal, self.ephemeris, self.timezone_manager, self.house_system
        )
        return ChartReport("lunar_return", output, {"natal": natal, "search": search, "charts": charts})

    def synastry(self, first: BirthData, second: BirthData) -> ChartReport:
        self._require_ready()
        result = build_synastry(self.calculator, first, second)
        return ChartReport("synastry", format_synastry(result), {"synastry": result})


def validate_configuration() -> Dict[str, Any]:
    """Validate the active configuration and report the outcome"""
    try:
        get_config().validate_required_keys()
        return {
            "valid": True,
            "config_file": str(get_config().path),
            "message": "Configuration is valid",
        }
    except ChartConfigError as e:
        return {
            "valid": False,
            "error": str(e),
            "message": "Configuration validation failed",
        }


def setup_chart_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Setup logging for the chart engine package"""
    package_logger = logging.getLogger("chart_engine")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Prevent double logging with root handlers
    package_logger.propagate = False
    package_logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    # Force UTF-8 so aspect glyphs survive narrow console encodings
    if hasattr(console_handler.stream, 'reconfigure'):
        try:
            console_handler.stream.reconfigure(encoding='utf-8')
        except (AttributeError, OSError, ValueError):
            pass
    package_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    package_logger.info(f"Chart engine logging configured at {level} level")


__version__ = "1.0.0"


def get_engine_info() -> Dict[str, Any]:
    """Get information about the chart engine"""
    return {
        "version": __version__,
        "configuration_status": validate_configuration(),
        "orbs": {
            "natal": get_config().get("orbs.natal"),
            "transit": get_config().get("orbs.transit"),
            "synastry": get_config().get("orbs.synastry"),
        },
        "features": {
            "natal": True,
            "yearly_scan": True,
            "daily_transit": True,
            "lunar_return": True,
            "synastry": True,
        },
    }


# Validate configuration on module import (unless disabled)
if os.environ.get('CHART_CONFIG_SKIP_VALIDATION') != 'true':
    validation_result = validate_configuration()
    if not validation_result["valid"]:
        logger.warning(f"Configuration validation warning: {validation_result['error']}")
