"""
Proximity queries over the bus and stop location indexes.

Candidates are read through the composite ``(lat, lng)`` indexes using the
bounding box of the search circle, then filtered by great-circle distance
and returned nearest first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from config import config
from db import models
from errors import InvalidQuery
from services.geo import GeoPoint, bounding_boxes, haversine_meters, to_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearbyBus:
    bus: models.BusModel
    distance_meters: float


@dataclass(frozen=True)
class NearbyStop:
    stop: models.StopModel
    distance_meters: float


def parse_query(lat: Any, lng: Any, max_distance_meters: Any = None) -> Tuple[GeoPoint, float]:
    """
    Validate a proximity query.

    Raises:
        InvalidQuery: lat/lng missing or not numeric, or a non-positive radius
    """
    if lat is None or lng is None:
        raise InvalidQuery("lat and lng query parameters are required")
    center = GeoPoint.create(lat, lng, error_cls=InvalidQuery)

    if max_distance_meters is None or max_distance_meters == "":
        radius = config.NEARBY_DEFAULT_RADIUS_METERS
    else:
        radius = to_number(max_distance_meters)
        if radius is None or radius <= 0:
            raise InvalidQuery("maxDistanceMeters must be a positive number")
    return center, radius


def _box_filter(lat_col, lng_col, center: GeoPoint, radius: float):
    return or_(*[
        and_(
            lat_col >= min_lat, lat_col <= max_lat,
            lng_col >= min_lng, lng_col <= max_lng,
        )
        for min_lat, max_lat, min_lng, max_lng in bounding_boxes(center, radius)
    ])


def find_nearby_buses(
    db: Session,
    lat: Any,
    lng: Any,
    max_distance_meters: Any = None,
) -> List[NearbyBus]:
    """Buses within the radius of (lat, lng), nearest first, route populated."""
    center, radius = parse_query(lat, lng, max_distance_meters)

    candidates = db.query(models.BusModel).options(
        joinedload(models.BusModel.route).selectinload(models.RouteModel.stops),
        joinedload(models.BusModel.driver),
    ).filter(
        _box_filter(models.BusModel.lat, models.BusModel.lng, center, radius)
    ).all()

    results: List[NearbyBus] = []
    for bus in candidates:
        distance = haversine_meters(center, GeoPoint(lat=bus.lat, lng=bus.lng))
        if distance <= radius:
            results.append(NearbyBus(bus=bus, distance_meters=distance))
    results.sort(key=lambda item: (item.distance_meters, item.bus.bus_number))

    logger.debug(
        f"Nearby buses at {center.to_coordinates()} r={radius}m: "
        f"{len(results)}/{len(candidates)} candidates"
    )
    return results


def find_nearby_stops(
    db: Session,
    lat: Any,
    lng: Any,
    max_distance_meters: Any = None,
    limit: Optional[int] = None,
) -> List[NearbyStop]:
    """Route stops within the radius of (lat, lng), nearest first."""
    center, radius = parse_query(lat, lng, max_distance_meters)

    candidates = db.query(models.StopModel).options(
        joinedload(models.StopModel.route)
    ).filter(
        _box_filter(models.StopModel.lat, models.StopModel.lng, center, radius)
    ).all()

    results = [
        NearbyStop(stop=stop, distance_meters=distance)
        for stop, distance in (
            (stop, haversine_meters(center, GeoPoint(lat=stop.lat, lng=stop.lng)))
            for stop in candidates
        )
        if distance <= radius
    ]
    results.sort(key=lambda item: item.distance_meters)
    if limit is not None:
        results = results[:max(0, limit)]
    return results
