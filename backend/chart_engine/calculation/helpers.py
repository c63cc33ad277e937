"""Angle and month helpers shared by the chart calculations."""
from __future__ import annotations

import math
from typing import Tuple


def normalize_longitude(longitude: float) -> float:
    """Wrap a longitude into ``[0, 360)``."""
    value = math.fmod(float(longitude), 360.0)
    if value < 0:
        value += 360.0
    # fmod of a tiny negative number can round up to exactly 360
    return 0.0 if value >= 360.0 else value


def signed_difference(longitude: float, reference: float) -> float:
    """Shortest signed arc from ``reference`` to ``longitude`` in ``(-180, 180]``."""
    diff = normalize_longitude(longitude) - normalize_longitude(reference)
    if diff > 180.0:
        diff -= 360.0
    elif diff <= -180.0:
        diff += 360.0
    return diff


def angular_separation(a: float, b: float) -> float:
    """Circular distance between two longitudes in ``[0, 180]``."""
    diff = abs(a - b)
    if diff > 180:
        diff = 360 - diff
    return diff


def sign_index(longitude: float) -> int:
    return int(normalize_longitude(longitude) // 30)


def degrees_to_dms(degrees: float) -> Tuple[int, int, int]:
    """Split a non-negative angle into whole degrees, minutes and seconds."""
    total_seconds = int(abs(degrees) * 3600 + 1e-6)
    d, rem = divmod(total_seconds, 3600)
    m, s = divmod(rem, 60)
    return d, m, s


def next_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1
