"""
core/geo.py — Great-circle distance and radius filtering.

Pure functions: no I/O, no state. Coordinates are in decimal degrees,
distances in kilometers.

The search path is a full scan: every record fetched from the store is
tested against the query with ``within_radius``. There is no spatial index.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from core.errors import InvalidCoordinatesError

EARTH_RADIUS_KM: float = 6371.0088
"""IUGG mean Earth radius."""

LATITUDE_RANGE: tuple[float, float] = (-90.0, 90.0)
LONGITUDE_RANGE: tuple[float, float] = (-180.0, 180.0)

R = TypeVar("R", bound=Mapping[str, Any])


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two points, in kilometers.

    Args:
        lat1, lon1: First point in degrees.
        lat2, lon2: Second point in degrees.

    Returns:
        Great-circle distance >= 0. Identical points give 0.0,
        antipodal points give ~20015 km.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a slightly above 1 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def within_radius(
    origin_lat: float,
    origin_lon: float,
    point_lat: float,
    point_lon: float,
    radius: float,
) -> bool:
    """True iff the point lies within ``radius`` km of the origin (inclusive)."""
    return distance(origin_lat, origin_lon, point_lat, point_lon) <= radius


def validate_latitude(latitude: float) -> None:
    lat_min, lat_max = LATITUDE_RANGE
    if not (math.isfinite(latitude) and lat_min <= latitude <= lat_max):
        raise InvalidCoordinatesError("Latitude must be between -90 and 90.")


def validate_longitude(longitude: float) -> None:
    lon_min, lon_max = LONGITUDE_RANGE
    if not (math.isfinite(longitude) and lon_min <= longitude <= lon_max):
        raise InvalidCoordinatesError("Longitude must be between -180 and 180.")


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Raise ``InvalidCoordinatesError`` for out-of-range or non-finite values."""
    validate_latitude(latitude)
    validate_longitude(longitude)


@dataclass(frozen=True)
class GeoQuery:
    """A radius search around a point.

    Invariants:
        -90 <= latitude <= 90
        -180 <= longitude <= 180
        radius >= 0 (kilometers)
    """

    latitude: float
    longitude: float
    radius: float

    def __post_init__(self) -> None:
        validate_coordinates(self.latitude, self.longitude)
        if not (math.isfinite(self.radius) and self.radius >= 0):
            raise InvalidCoordinatesError("Radius must be a non-negative number.")

    def matches(self, latitude: float, longitude: float) -> bool:
        return within_radius(self.latitude, self.longitude, latitude, longitude, self.radius)

    def filter_records(self, records: Iterable[R]) -> list[R]:
        """Keep records whose ``latitude``/``longitude`` fall inside the radius.

        Records missing either coordinate are skipped. Input order is kept.
        """
        hits: list[R] = []
        for record in records:
            lat = record.get("latitude")
            lon = record.get("longitude")
            if lat is None or lon is None:
                continue
            if self.matches(float(lat), float(lon)):
                hits.append(record)
        return hits
