"""Aspect matching between ecliptic longitudes."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from models import Aspect, AspectInfo, AspectMatch, BodyPosition, Planet
from .calculation.helpers import angular_separation


def match_aspect(longitude1: float, longitude2: float, orb: float) -> Optional[AspectMatch]:
    """Return the aspect formed by two longitudes within ``orb`` degrees.

    Aspects are tried in ascending angle order (the declaration order of
    :class:`Aspect`) and the first one inside the orb wins. Aspects sit at
    least 60° apart, so orbs up to 5° (and anything below 30°) give at most
    one match. Wider orbs are accepted and resolved by that ordering.
    """
    if orb < 0:
        raise ValueError(f"Orb must be non-negative, got {orb}")

    separation = angular_separation(longitude1 % 360, longitude2 % 360)
    for aspect_type in Aspect:
        orb_diff = abs(separation - aspect_type.degrees)
        if orb_diff <= orb:
            return AspectMatch(aspect=aspect_type, orb=orb_diff, separation=separation)
    return None


def calculate_chart_aspects(positions: Sequence[BodyPosition], orb: float) -> List[AspectInfo]:
    """Aspects between every unordered pair of bodies in one chart."""
    aspects: List[AspectInfo] = []
    for i, pos1 in enumerate(positions):
        for pos2 in positions[i + 1 :]:
            match = match_aspect(pos1.longitude, pos2.longitude, orb)
            if match:
                aspects.append(AspectInfo(pos1.planet, pos2.planet, match.aspect, match.orb))
    return aspects


def calculate_cross_aspects(
    first: Sequence[BodyPosition], second: Sequence[BodyPosition], orb: float
) -> List[AspectInfo]:
    """Aspects from every body of ``first`` to every body of ``second``."""
    aspects: List[AspectInfo] = []
    for pos1 in first:
        for pos2 in second:
            match = match_aspect(pos1.longitude, pos2.longitude, orb)
            if match:
                aspects.append(AspectInfo(pos1.planet, pos2.planet, match.aspect, match.orb))
    return aspects


def aspects_to_points(
    positions: Iterable[BodyPosition], points: Iterable[Tuple[Planet, float]], orb: float
) -> List[AspectInfo]:
    """Aspects from bodies to fixed chart points such as the Ascendant."""
    points = list(points)
    aspects: List[AspectInfo] = []
    for pos in positions:
        for point, longitude in points:
            match = match_aspect(pos.longitude, longitude, orb)
            if match:
                aspects.append(AspectInfo(pos.planet, point, match.aspect, match.orb))
    return aspects
