"""House placement for ecliptic longitudes."""
from __future__ import annotations

import logging
from typing import Sequence

logger = logging.getLogger(__name__)


def locate_house(longitude: float, cusps: Sequence[float]) -> int:
    """Return the house (1-12) containing ``longitude``.

    ``cusps`` holds the twelve cusp longitudes with ``cusps[0]`` being the
    1st house. House *i* spans ``[cusp_i, cusp_i+1)``. A sector whose end
    lies below its start wraps through 0°: its end is lifted by 360 and so is
    any longitude below its start. For the 12th house this is the
    ``[cusp_12, cusp_1 + 360)`` rule; the same applies to whichever house
    straddles Aries 0°. Degenerate cusp data that matches no sector falls back
    to the 1st house.
    """
    if len(cusps) != 12:
        raise ValueError(f"Expected 12 house cusps, got {len(cusps)}")

    for i in range(12):
        start = cusps[i]
        end = cusps[(i + 1) % 12]
        if end <= start:
            end += 360
        lon = longitude
        if lon < start:
            lon += 360
        if start <= lon < end:
            return i + 1

    logger.warning(f"No house matched longitude {longitude:.4f} for cusps {list(cusps)}; using house 1")
    return 1
