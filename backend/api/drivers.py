"""
Driver API.

Driver CRUD and the driver-to-bus assignment.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from db import crud, schemas
from db.database import get_db
from services.correlator import assign_driver

router = APIRouter(prefix="/api/drivers", tags=["drivers"])


@router.get("", response_model=List[schemas.DriverResponse])
def list_drivers(db: Session = Depends(get_db)) -> List[schemas.DriverResponse]:
    return [schemas.DriverResponse.from_model(d) for d in crud.list_drivers(db)]


@router.post("", response_model=schemas.DriverResponse, status_code=status.HTTP_201_CREATED)
def create_driver(payload: schemas.DriverCreate, db: Session = Depends(get_db)) -> schemas.DriverResponse:
    return schemas.DriverResponse.from_model(crud.create_driver(db, payload))


@router.post("/assign", response_model=schemas.AssignDriverResponse)
def assign(payload: schemas.AssignDriverRequest, db: Session = Depends(get_db)) -> schemas.AssignDriverResponse:
    driver, bus = assign_driver(db, payload.driver_id, payload.bus_id)
    return schemas.AssignDriverResponse(
        message="Driver assigned successfully",
        driver=schemas.DriverResponse.from_model(driver),
        bus=schemas.BusResponse.from_model(bus),
    )


@router.put("/{driver_id}", response_model=schemas.DriverResponse)
def update_driver(
    driver_id: str,
    payload: schemas.DriverUpdate,
    db: Session = Depends(get_db),
) -> schemas.DriverResponse:
    return schemas.DriverResponse.from_model(crud.update_driver(db, driver_id, payload))


@router.delete("/{driver_id}", response_model=schemas.MessageResponse)
def delete_driver(driver_id: str, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    crud.delete_driver(db, driver_id)
    return schemas.MessageResponse(message="Driver deleted", id=driver_id)
