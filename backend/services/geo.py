"""
Geographic primitives shared by ingest, proximity and route normalization.

All wire coordinates are GeoJSON ordered ``[longitude, latitude]``.
``GeoPoint`` is the only place that converts between the wire pair and the
internal ``lat``/``lng`` attributes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Type

from errors import InvalidLocation, ValidationError

EARTH_RADIUS_METERS = 6371008.8
MIN_LATITUDE, MAX_LATITUDE = -90.0, 90.0
MIN_LONGITUDE, MAX_LONGITUDE = -180.0, 180.0

# (min_lat, max_lat, min_lng, max_lng)
BoundingBox = Tuple[float, float, float, float]


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings; anything else is ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    @classmethod
    def create(
        cls,
        lat: Any,
        lng: Any,
        error_cls: Type[ValidationError] = InvalidLocation,
    ) -> "GeoPoint":
        lat_value = to_number(lat)
        lng_value = to_number(lng)
        if lat_value is None or lng_value is None:
            raise error_cls("Latitude and longitude must be numbers")
        if not (MIN_LATITUDE <= lat_value <= MAX_LATITUDE) or not (
            MIN_LONGITUDE <= lng_value <= MAX_LONGITUDE
        ):
            raise error_cls(
                f"Coordinates [{lng_value}, {lat_value}] out of range: "
                "longitude must be within [-180, 180] and latitude within [-90, 90]"
            )
        return cls(lat=lat_value, lng=lng_value)

    @classmethod
    def from_coordinates(
        cls,
        coordinates: Any,
        error_cls: Type[ValidationError] = InvalidLocation,
    ) -> "GeoPoint":
        """Build from a GeoJSON ``[lng, lat]`` pair."""
        if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
            raise error_cls("coordinates must be a [longitude, latitude] pair")
        lng, lat = coordinates
        return cls.create(lat, lng, error_cls=error_cls)

    @classmethod
    def from_input(
        cls,
        latitude: Any = None,
        longitude: Any = None,
        coordinates: Any = None,
        error_cls: Type[ValidationError] = InvalidLocation,
    ) -> "GeoPoint":
        """
        Normalize the two accepted input shapes into one point.

        Separate ``latitude``/``longitude`` fields win; the ``[lng, lat]``
        pair is only consulted when either separate field is missing.
        """
        if (latitude is None or longitude is None) and coordinates is not None:
            return cls.from_coordinates(coordinates, error_cls=error_cls)
        if latitude is None or longitude is None:
            raise error_cls(
                "latitude and longitude (or coordinates [lng, lat]) are required"
            )
        return cls.create(latitude, longitude, error_cls=error_cls)

    def to_coordinates(self) -> List[float]:
        return [self.lng, self.lat]

    def to_geojson(self) -> dict:
        return {"type": "Point", "coordinates": self.to_coordinates()}


def haversine_meters(start: GeoPoint, end: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""
    lat1, lng1 = math.radians(start.lat), math.radians(start.lng)
    lat2, lng2 = math.radians(end.lat), math.radians(end.lng)
    d_lat = lat2 - lat1
    d_lng = lng2 - lng1
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def bounding_boxes(center: GeoPoint, radius_meters: float) -> List[BoundingBox]:
    """
    Boxes that together contain every point within ``radius_meters`` of
    ``center``. Returns two boxes when the circle crosses the antimeridian.
    """
    angular = radius_meters / EARTH_RADIUS_METERS
    d_lat = math.degrees(angular)
    min_lat = max(center.lat - d_lat, MIN_LATITUDE)
    max_lat = min(center.lat + d_lat, MAX_LATITUDE)

    # Near a pole every longitude is within reach.
    if min_lat <= MIN_LATITUDE or max_lat >= MAX_LATITUDE:
        return [(min_lat, max_lat, MIN_LONGITUDE, MAX_LONGITUDE)]

    sin_ratio = math.sin(angular) / math.cos(math.radians(center.lat))
    if sin_ratio >= 1:
        return [(min_lat, max_lat, MIN_LONGITUDE, MAX_LONGITUDE)]
    d_lng = math.degrees(math.asin(sin_ratio))

    min_lng = center.lng - d_lng
    max_lng = center.lng + d_lng
    if min_lng < MIN_LONGITUDE:
        return [
            (min_lat, max_lat, min_lng + 360.0, MAX_LONGITUDE),
            (min_lat, max_lat, MIN_LONGITUDE, max_lng),
        ]
    if max_lng > MAX_LONGITUDE:
        return [
            (min_lat, max_lat, min_lng, MAX_LONGITUDE),
            (min_lat, max_lat, MIN_LONGITUDE, max_lng - 360.0),
        ]
    return [(min_lat, max_lat, min_lng, max_lng)]


def centroid(points: Sequence[GeoPoint]) -> Optional[GeoPoint]:
    """Arithmetic mean of the points, used to center map views."""
    if not points:
        return None
    lat = sum(p.lat for p in points) / len(points)
    lng = sum(p.lng for p in points) / len(points)
    return GeoPoint(lat=lat, lng=lng)
