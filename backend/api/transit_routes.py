"""
Route API.

Route CRUD (stops go through the stop normalizer), plus the commuter
route search, the live route board and stop proximity.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from db import crud, schemas
from db.database import get_db
from services.correlator import buses_on_route, live_route_board, search_routes
from services.proximity import find_nearby_stops

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/routes", tags=["routes"])


@router.get("", response_model=List[schemas.RouteResponse])
def list_routes(db: Session = Depends(get_db)) -> List[schemas.RouteResponse]:
    return [schemas.RouteResponse.from_model(route) for route in crud.list_routes(db)]


@router.get("/search", response_model=List[schemas.RouteSearchResponse])
def search(
    from_term: Optional[str] = Query(default=None, alias="from"),
    to_term: Optional[str] = Query(default=None, alias="to"),
    db: Session = Depends(get_db),
) -> List[schemas.RouteSearchResponse]:
    """Routes serving the From / To stops, with the matching stop segment."""
    matches = search_routes(crud.list_routes(db), from_term, to_term)
    return [
        schemas.RouteSearchResponse(
            route=schemas.RouteResponse.from_model(match.route),
            from_index=match.from_index,
            to_index=match.to_index,
            reverse=match.reverse,
            stops=[schemas.StopResponse.from_model(s) for s in match.stops],
        )
        for match in matches
    ]


@router.get("/live", response_model=List[schemas.LiveRouteResponse])
def live_routes(db: Session = Depends(get_db)) -> List[schemas.LiveRouteResponse]:
    board = live_route_board(crud.list_routes(db), crud.list_buses(db))
    return [
        schemas.LiveRouteResponse(
            route=schemas.RouteResponse.from_model(entry.route),
            buses=[schemas.BusResponse.from_model(bus) for bus in entry.buses],
            center=(
                schemas.GeoJSONPoint.from_lat_lng(entry.center.lat, entry.center.lng)
                if entry.center is not None
                else None
            ),
        )
        for entry in board
    ]


@router.get("/stops/nearby", response_model=List[schemas.NearbyStopResponse])
def nearby_stops(
    lat: Optional[str] = Query(default=None),
    lng: Optional[str] = Query(default=None),
    max_distance_meters: Optional[str] = Query(default=None, alias="maxDistanceMeters"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[schemas.NearbyStopResponse]:
    results = find_nearby_stops(db, lat, lng, max_distance_meters, limit=limit)
    return [
        schemas.NearbyStopResponse(
            route_id=item.stop.route_id,
            route_name=item.stop.route.route_name,
            stop=schemas.StopResponse.from_model(item.stop),
            distance_meters=round(item.distance_meters, 1),
        )
        for item in results
    ]


@router.get("/{route_id}", response_model=schemas.RouteResponse)
def get_route(route_id: str, db: Session = Depends(get_db)) -> schemas.RouteResponse:
    return schemas.RouteResponse.from_model(crud.require_route(db, route_id))


@router.get("/{route_id}/buses", response_model=List[schemas.BusResponse])
def route_buses(route_id: str, db: Session = Depends(get_db)) -> List[schemas.BusResponse]:
    route = crud.require_route(db, route_id)
    return [
        schemas.BusResponse.from_model(bus)
        for bus in buses_on_route(crud.list_buses(db), route)
    ]


@router.post("", response_model=schemas.RouteResponse, status_code=status.HTTP_201_CREATED)
def create_route(payload: schemas.RouteCreate, db: Session = Depends(get_db)) -> schemas.RouteResponse:
    return schemas.RouteResponse.from_model(crud.create_route(db, payload))


@router.put("/{route_id}", response_model=schemas.RouteResponse)
def update_route(
    route_id: str,
    payload: schemas.RouteUpdate,
    db: Session = Depends(get_db),
) -> schemas.RouteResponse:
    return schemas.RouteResponse.from_model(crud.update_route(db, route_id, payload))


@router.delete("/{route_id}", response_model=schemas.MessageResponse)
def delete_route(route_id: str, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    detached = crud.delete_route(db, route_id)
    message = "Route deleted successfully"
    if detached:
        message += f" ({detached} buses detached)"
    return schemas.MessageResponse(message=message, id=route_id)
