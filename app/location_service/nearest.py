"""Nearest-city lookup by great-circle distance."""

import math
from typing import Protocol

from pydantic import BaseModel

from app.location_service.errors import InvalidCoordinatesError, NoCitiesAvailableError
from app.models.city import CatalogSnapshot, CityRecord

EARTH_RADIUS_KM = 6371.0


class NearestCity(BaseModel):
    """The closest catalog entry to a point and its distance in kilometres."""

    record: CityRecord
    distance_km: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in kilometres.

    Args:
        lat1: Latitude of the first point in degrees.
        lon1: Longitude of the first point in degrees.
        lat2: Latitude of the second point in degrees.
        lon2: Longitude of the second point in degrees.

    Returns:
        Distance in kilometres on a sphere of radius EARTH_RADIUS_KM.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    a = min(a, 1.0)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def validate_coordinates(latitude: float, longitude: float) -> None:
    """Reject coordinates that are not finite or fall outside valid ranges.

    Raises:
        InvalidCoordinatesError: If either value is unusable.
    """
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidCoordinatesError(f"Coordinate is not a number: {value!r}")
        if not math.isfinite(value):
            raise InvalidCoordinatesError(f"Coordinate is not finite: {value!r}")
    if not -90 <= latitude <= 90:
        raise InvalidCoordinatesError(f"Latitude out of range: {latitude}")
    if not -180 <= longitude <= 180:
        raise InvalidCoordinatesError(f"Longitude out of range: {longitude}")


class NearestResolver(Protocol):
    def resolve(
        self, snapshot: CatalogSnapshot, latitude: float, longitude: float
    ) -> NearestCity:
        ...


class NearestCityResolver:
    """Linear scan over the snapshot keeping the closest record seen so far.

    Ties keep the record that appears first in the snapshot.
    """

    def resolve(
        self, snapshot: CatalogSnapshot, latitude: float, longitude: float
    ) -> NearestCity:
        validate_coordinates(latitude, longitude)

        nearest = None
        shortest = math.inf
        for record in snapshot.records:
            distance = haversine_km(
                latitude, longitude, record.latitude, record.longitude
            )
            if distance < shortest:
                shortest = distance
                nearest = record

        if nearest is None:
            raise NoCitiesAvailableError("No cities found")
        return NearestCity(record=nearest, distance_km=round(shortest, 2))
