"""
Bus API.

Bus registry, live telemetry ingest, status updates and the proximity
query used by commuter map clients.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from db import crud, schemas
from db.database import get_db
from services.location_ingest import apply_location_update
from services.proximity import find_nearby_buses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bus", tags=["buses"])


@router.post("", response_model=schemas.BusResponse, status_code=status.HTTP_201_CREATED)
def create_bus(payload: schemas.BusCreate, db: Session = Depends(get_db)) -> schemas.BusResponse:
    return schemas.BusResponse.from_model(crud.create_bus(db, payload))


@router.get("", response_model=List[schemas.BusResponse])
def list_buses(db: Session = Depends(get_db)) -> List[schemas.BusResponse]:
    return [schemas.BusResponse.from_model(bus) for bus in crud.list_buses(db)]


# Declared before /{bus_id} so "nearby" is not taken as an id.
@router.get("/nearby", response_model=List[schemas.NearbyBusResponse])
def nearby_buses(
    lat: Optional[str] = Query(default=None),
    lng: Optional[str] = Query(default=None),
    max_distance_meters: Optional[str] = Query(default=None, alias="maxDistanceMeters"),
    db: Session = Depends(get_db),
) -> List[schemas.NearbyBusResponse]:
    results = find_nearby_buses(db, lat, lng, max_distance_meters)
    return [
        schemas.NearbyBusResponse.from_model(item.bus, distance_meters=round(item.distance_meters, 1))
        for item in results
    ]


@router.get("/{bus_id}", response_model=schemas.BusResponse)
def get_bus(bus_id: str, db: Session = Depends(get_db)) -> schemas.BusResponse:
    return schemas.BusResponse.from_model(crud.require_bus(db, bus_id))


@router.put("/{bus_id}", response_model=schemas.BusResponse)
def update_bus_location(
    bus_id: str,
    payload: schemas.TelemetryUpdate,
    db: Session = Depends(get_db),
) -> schemas.BusResponse:
    """Live location/telemetry update from a driver device or GPS unit."""
    return schemas.BusResponse.from_model(apply_location_update(db, bus_id, payload))


@router.patch("/{bus_id}/status", response_model=schemas.BusResponse)
def update_bus_status(
    bus_id: str,
    payload: schemas.StatusUpdate,
    db: Session = Depends(get_db),
) -> schemas.BusResponse:
    return schemas.BusResponse.from_model(crud.update_bus_status(db, bus_id, payload.status))


@router.delete("/{bus_id}", response_model=schemas.MessageResponse)
def delete_bus(bus_id: str, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    crud.delete_bus(db, bus_id)
    return schemas.MessageResponse(message="Bus deleted", id=bus_id)
