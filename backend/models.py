from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import calendar
import datetime
import logging


logger = logging.getLogger(__name__)


class Planet(Enum):
    """Tracked bodies and the two chart angles."""
    SUN = "Sun"
    MOON = "Moon"
    MERCURY = "Mercury"
    VENUS = "Venus"
    MARS = "Mars"
    JUPITER = "Jupiter"
    SATURN = "Saturn"
    URANUS = "Uranus"
    NEPTUNE = "Neptune"
    PLUTO = "Pluto"
    NORTH_NODE = "North Node"

    ASC = "Ascendant"
    MC = "Midheaven"

    @property
    def is_angle(self) -> bool:
        return self in (Planet.ASC, Planet.MC)

    @classmethod
    def from_name(cls, name: str) -> "Planet":
        """Resolve ``"North Node"``, ``"north_node"`` or ``"NORTH_NODE"``."""
        key = name.strip()
        for planet in cls:
            if planet.value.lower() == key.lower():
                return planet
        try:
            return cls[key.upper().replace(" ", "_")]
        except KeyError:
            raise ValueError(f"Unknown body: {name}") from None


class Aspect(Enum):
    """Major aspects, declared in ascending angle order.

    The declaration order is the matching order: ``match_aspect`` walks the
    members top to bottom and the first one inside the orb wins.
    """
    CONJUNCTION = (0, "conjunction", "Conjunction", "☌")
    SEXTILE = (60, "sextile", "Sextile", "⚹")
    SQUARE = (90, "square", "Square", "□")
    TRINE = (120, "trine", "Trine", "△")
    OPPOSITION = (180, "opposition", "Opposition", "☍")

    def __init__(self, degrees, config_key, display_name, symbol):
        self.degrees = degrees
        self.config_key = config_key
        self.display_name = display_name
        self.symbol = symbol


class Sign(Enum):
    ARIES = (0, "Aries", "Ari")
    TAURUS = (30, "Taurus", "Tau")
    GEMINI = (60, "Gemini", "Gem")
    CANCER = (90, "Cancer", "Can")
    LEO = (120, "Leo", "Leo")
    VIRGO = (150, "Virgo", "Vir")
    LIBRA = (180, "Libra", "Lib")
    SCORPIO = (210, "Scorpio", "Sco")
    SAGITTARIUS = (240, "Sagittarius", "Sag")
    CAPRICORN = (270, "Capricorn", "Cap")
    AQUARIUS = (300, "Aquarius", "Aqu")
    PISCES = (330, "Pisces", "Pis")

    def __init__(self, start_degree, sign_name, abbreviation):
        self.start_degree = start_degree
        self.sign_name = sign_name
        self.abbreviation = abbreviation

    @classmethod
    def from_index(cls, index: int) -> "Sign":
        return list(cls)[index % 12]

    @classmethod
    def from_longitude(cls, longitude: float) -> "Sign":
        return cls.from_index(int((longitude % 360) // 30))


@dataclass(frozen=True)
class Location:
    region: str
    name: str
    latitude: float
    longitude: float

    @property
    def label(self) -> str:
        return f"{self.name}, {self.region}"


@dataclass(frozen=True)
class BirthData:
    """Civil date and time of an event plus the place it happened."""
    year: int
    month: int
    day: int
    hour: int
    minute: int
    region: str
    city: str

    def __post_init__(self):
        if not 1900 <= self.year <= 2100:
            raise ValueError(f"Year out of supported range 1900-2100: {self.year}")
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be 1-12: {self.month}")
        last_day = calendar.monthrange(self.year, self.month)[1]
        if not 1 <= self.day <= last_day:
            raise ValueError(f"Day must be 1-{last_day} for {self.year}-{self.month:02d}: {self.day}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Hour must be 0-23: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Minute must be 0-59: {self.minute}")

    @property
    def local_datetime(self) -> datetime.datetime:
        return datetime.datetime(self.year, self.month, self.day, self.hour, self.minute)


@dataclass(frozen=True)
class BodyPosition:
    planet: Planet
    longitude: float
    speed: float = 0.0  # degrees per day
    house: int = 0

    @property
    def retrograde(self) -> bool:
        return self.speed < 0

    @property
    def sign(self) -> Sign:
        return Sign.from_longitude(self.longitude)


@dataclass(frozen=True)
class AspectMatch:
    aspect: Aspect
    orb: float
    separation: float


@dataclass(frozen=True)
class AspectInfo:
    first: Planet
    second: Planet
    aspect: Aspect
    orb: float


@dataclass(frozen=True)
class NatalChart:
    """Frozen reference chart; every scan reads it and none mutates it."""
    julian_day: float
    location: Location
    positions: Tuple[BodyPosition, ...]
    houses: Tuple[float, ...]  # 12 cusps, index 0 is the 1st house
    ascendant: float
    midheaven: float
    aspects: Tuple[AspectInfo, ...] = ()
    birth: Optional[BirthData] = None
    date_time_local: Optional[datetime.datetime] = None
    date_time_utc: Optional[datetime.datetime] = None

    def position(self, planet: Planet) -> BodyPosition:
        for pos in self.positions:
            if pos.planet == planet:
                return pos
        raise KeyError(f"{planet.value} not present in chart")

    @property
    def angles(self) -> Dict[Planet, float]:
        return {Planet.ASC: self.ascendant, Planet.MC: self.midheaven}

    def natal_points(self) -> List[Tuple[Planet, float]]:
        """Every body in chart order followed by the Ascendant and Midheaven."""
        points = [(pos.planet, pos.longitude) for pos in self.positions]
        points.extend(self.angles.items())
        return points


@dataclass(frozen=True)
class Interval:
    """Closed period during which a tracked condition held."""
    start: float
    end: float
    aspect: Optional[Aspect] = None

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Interval start {self.start} is after end {self.end}")


@dataclass(frozen=True)
class IngressEvent:
    julian_day: float
    planet: Planet
    sign: Sign


@dataclass(frozen=True)
class ChartReport:
    """Formatted text plus the structured data it was built from."""
    kind: str
    output: str
    data: Dict[str, object] = field(default_factory=dict)
