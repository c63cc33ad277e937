"""Comparison of two natal charts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from chart_config import cfg
from models import AspectInfo, BirthData, NatalChart
from .aspects import aspects_to_points, calculate_cross_aspects

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SynastryResult:
    first: NatalChart
    second: NatalChart
    cross_aspects: Tuple[AspectInfo, ...]
    first_to_second_angles: Tuple[AspectInfo, ...]
    second_to_first_angles: Tuple[AspectInfo, ...]

    @property
    def angle_aspects(self) -> Tuple[AspectInfo, ...]:
        """First-chart bodies to the second chart's angles, then the reverse."""
        return self.first_to_second_angles + self.second_to_first_angles


def build_synastry(calculator, first: BirthData, second: BirthData, orb: Optional[float] = None) -> SynastryResult:
    """Build both natal charts and every cross-chart aspect within ``orb``.

    Both locations are resolved before either chart is built, so an unknown
    city on either side fails the call without any ephemeris work.
    """
    orb = cfg().orbs.synastry if orb is None else orb
    calculator.directory.find(first.region, first.city)
    calculator.directory.find(second.region, second.city)

    chart_a = calculator.build_natal(first)
    chart_b = calculator.build_natal(second)

    cross = calculate_cross_aspects(chart_a.positions, chart_b.positions, orb)
    a_to_b = aspects_to_points(chart_a.positions, chart_b.angles.items(), orb)
    b_to_a = aspects_to_points(chart_b.positions, chart_a.angles.items(), orb)

    logger.info(f"Synastry: {len(cross)} body aspects, {len(a_to_b) + len(b_to_a)} angle aspects at {orb}° orb")
    return SynastryResult(
        first=chart_a,
        second=chart_b,
        cross_aspects=tuple(cross),
        first_to_second_angles=tuple(a_to_b),
        second_to_first_angles=tuple(b_to_a),
    )
