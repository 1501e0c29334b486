"""
Supported region for SSFR: a fixed latitude/longitude box around Ethiopia.
"""

from dataclasses import dataclass, asdict
from typing import Dict


@dataclass(frozen=True)
class Coordinate:
    """A point in decimal degrees."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class RegionBounds:
    """Inclusive bounding box."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, coord: Coordinate) -> bool:
        return (
            self.min_lat <= coord.latitude <= self.max_lat
            and self.min_lon <= coord.longitude <= self.max_lon
        )

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


ETHIOPIA_BOUNDS = RegionBounds(min_lat=3.0, max_lat=15.0, min_lon=32.0, max_lon=48.0)

SUPPORTED_REGION = "Ethiopia"


def is_supported(coord: Coordinate, bounds: RegionBounds = ETHIOPIA_BOUNDS) -> bool:
    """Return True if the coordinate falls inside the supported region (edges included)."""
    return bounds.contains(coord)


def in_absolute_range(coord: Coordinate) -> bool:
    """Check the coordinate is a valid point on the globe."""
    return -90 <= coord.latitude <= 90 and -180 <= coord.longitude <= 180
