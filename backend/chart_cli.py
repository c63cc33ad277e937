"""Command-line access to the chart engine.

Examples::

    python chart_cli.py natal --date 1990-05-15 --time 14:30 --region Tokyo --city Chiyoda
    python chart_cli.py yearly 2025 --date 1990-05-15 --time 14:30 --region Tokyo --city Chiyoda
    python chart_cli.py lunar 2025 3 --date 1990-05-15 --time 14:30 --region Tokyo --city Chiyoda
    python chart_cli.py cities Tokyo
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure repository root on path when executed directly
sys.path.append(str(Path(__file__).resolve().parent))

from chart_config import cfg
from chart_engine.engine import ChartEngine, setup_chart_logging
from chart_engine.errors import ChartCalculationError
from chart_engine.services.geolocation import CityDirectory, LocationError
from models import BirthData

logger = logging.getLogger(__name__)


def _add_birth_arguments(parser: argparse.ArgumentParser, prefix: str = "") -> None:
    dest = prefix.replace("-", "_")
    parser.add_argument(f"--{prefix}date", dest=f"{dest}date", required=True, help="Birth date, YYYY-MM-DD")
    parser.add_argument(f"--{prefix}time", dest=f"{dest}time", default="12:00", help="Local birth time, HH:MM")
    parser.add_argument(f"--{prefix}region", dest=f"{dest}region", required=True, help="Region of the city table")
    parser.add_argument(f"--{prefix}city", dest=f"{dest}city", required=True, help="City within the region")


def _birth_from_args(args: argparse.Namespace, prefix: str = "") -> BirthData:
    dest = prefix.replace("-", "_")
    date_str = getattr(args, f"{dest}date")
    time_str = getattr(args, f"{dest}time")
    try:
        year, month, day = (int(part) for part in date_str.split("-"))
        hour, minute = (int(part) for part in time_str.split(":"))
    except ValueError:
        raise ValueError(f"Expected YYYY-MM-DD and HH:MM, got {date_str!r} {time_str!r}") from None
    return BirthData(
        year=year,
        month=month,
        day=day,
        hour=hour,
        minute=minute,
        region=getattr(args, f"{dest}region"),
        city=getattr(args, f"{dest}city"),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Natal, transit, lunar return and synastry charts")
    parser.add_argument("--log-level", default=None, help="Logging level (default from configuration)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    natal = sub.add_parser("natal", help="Natal chart")
    _add_birth_arguments(natal)

    yearly = sub.add_parser("yearly", help="Retrogrades, ingresses and transits for a year")
    yearly.add_argument("year", type=int)
    _add_birth_arguments(yearly)

    transit = sub.add_parser("transit", help="Transits at local noon of one date")
    transit.add_argument("on", help="Transit date, YYYY-MM-DD")
    _add_birth_arguments(transit)

    lunar = sub.add_parser("lunar", help="Lunar returns in a month")
    lunar.add_argument("year", type=int)
    lunar.add_argument("month", type=int)
    lunar.add_argument("--at-region", default=None, help="Region to cast the return for (default: birth region)")
    lunar.add_argument("--at-city", default=None, help="City to cast the return for (default: birth city)")
    _add_birth_arguments(lunar)

    synastry = sub.add_parser("synastry", help="Compare two natal charts")
    _add_birth_arguments(synastry, "a-")
    _add_birth_arguments(synastry, "b-")

    cities = sub.add_parser("cities", help="List regions, or the cities of one region")
    cities.add_argument("region", nargs="?", default=None)
    return parser


def run(args: argparse.Namespace) -> str:
    if args.command == "cities":
        directory = CityDirectory()
        if args.region is None:
            return "\n".join(directory.regions())
        return "\n".join(directory.cities(args.region))

    engine = ChartEngine().initialize()
    if args.command == "natal":
        report = engine.natal(_birth_from_args(args))
    elif args.command == "yearly":
        report = engine.yearly(_birth_from_args(args), args.year)
    elif args.command == "transit":
        try:
            year, month, day = (int(part) for part in args.on.split("-"))
        except ValueError:
            raise ValueError(f"Expected YYYY-MM-DD, got {args.on!r}") from None
        report = engine.transit(_birth_from_args(args), year, month, day)
    elif args.command == "lunar":
        report = engine.lunar_return(_birth_from_args(args), args.year, args.month, args.at_region, args.at_city)
    else:
        report = engine.synastry(_birth_from_args(args, "a-"), _birth_from_args(args, "b-"))
    return report.output


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_chart_logging(args.log_level or cfg().logging.level, args.log_file)
    try:
        print(run(args))
    except (LocationError, ChartCalculationError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
