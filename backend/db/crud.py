"""
CRUD operations for the commute tracking database.

Provides functions to create, read, update, and delete:
- Routes with stops
- Buses
- Drivers

Every write validates its input before touching the session and rolls back
on failure, so a rejected request never leaves partial state behind.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from errors import ConflictError, NotFoundError, ValidationError
from services.geo import GeoPoint
from services.stop_normalizer import normalize_stops
from . import models, schemas

logger = logging.getLogger(__name__)


def _bus_options():
    return (
        joinedload(models.BusModel.route).selectinload(models.RouteModel.stops),
        joinedload(models.BusModel.driver),
    )


def _commit(db: Session, field: str, value: Any) -> None:
    """Commit, translating a unique-key violation into ConflictError."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(f"Uniqueness conflict on {field}={value!r}")
        raise ConflictError(field, value) from exc
    except Exception:
        db.rollback()
        raise


# =============================================================================
# Route CRUD
# =============================================================================

def _build_stops(raw_stops: Any) -> List[models.StopModel]:
    return [models.StopModel(**stop.to_dict()) for stop in normalize_stops(raw_stops)]


def create_route(db: Session, route_data: schemas.RouteCreate) -> models.RouteModel:
    """
    Create a new route with its stops.

    Args:
        db: Database session
        route_data: Route data including raw stop descriptors

    Returns:
        Created RouteModel instance

    Raises:
        InvalidStop: any stop is invalid (nothing is written)
        ConflictError: routeName already exists
    """
    stops = _build_stops(route_data.stops)
    route_name = route_data.route_name.strip()

    if db.query(models.RouteModel.id).filter(models.RouteModel.route_name == route_name).first():
        raise ConflictError("routeName", route_name)

    db_route = models.RouteModel(
        route_name=route_name,
        directions=route_data.directions.strip(),
    )
    db_route.stops.extend(stops)

    db.add(db_route)
    _commit(db, "routeName", route_name)
    db.refresh(db_route)

    logger.info(f"Created route {db_route.id} with {len(db_route.stops)} stops")
    return db_route


def get_route(db: Session, route_id: str) -> Optional[models.RouteModel]:
    """Get a route by ID with all its stops."""
    return db.query(models.RouteModel).options(
        selectinload(models.RouteModel.stops)
    ).filter(models.RouteModel.id == route_id).first()


def require_route(db: Session, route_id: str) -> models.RouteModel:
    route = get_route(db, route_id)
    if route is None:
        raise NotFoundError("Route", route_id)
    return route


def list_routes(db: Session) -> List[models.RouteModel]:
    """All routes sorted by name, stops loaded."""
    return db.query(models.RouteModel).options(
        selectinload(models.RouteModel.stops)
    ).order_by(models.RouteModel.route_name).all()


def update_route(db: Session, route_id: str, route_data: schemas.RouteUpdate) -> models.RouteModel:
    """
    Update an existing route.

    Name and directions are changed only when given. A supplied ``stops``
    list replaces the stored stops wholesale.
    """
    db_route = require_route(db, route_id)
    new_stops = _build_stops(route_data.stops) if route_data.stops is not None else None

    if route_data.route_name:
        route_name = route_data.route_name.strip()
        clash = db.query(models.RouteModel.id).filter(
            models.RouteModel.route_name == route_name,
            models.RouteModel.id != route_id,
        ).first()
        if clash:
            raise ConflictError("routeName", route_name)
        db_route.route_name = route_name
    if route_data.directions:
        db_route.directions = route_data.directions.strip()
    if new_stops is not None:
        db_route.stops = new_stops
        # The routes row itself may be unchanged, so onupdate would not fire.
        db_route.updated_at = models.utc_now()

    _commit(db, "routeName", db_route.route_name)
    db.refresh(db_route)

    logger.info(f"Updated route {route_id}")
    return db_route


def delete_route(db: Session, route_id: str) -> int:
    """
    Delete a route.

    Buses on the route are detached (their route becomes null) rather than
    deleted.

    Returns:
        Number of buses detached
    """
    db_route = require_route(db, route_id)
    detached = 0
    for bus in list(db_route.buses):
        bus.route = None
        detached += 1

    db.delete(db_route)
    db.commit()

    logger.info(f"Deleted route {route_id}, detached {detached} buses")
    return detached


# =============================================================================
# Bus CRUD
# =============================================================================

def create_bus(db: Session, bus_data: schemas.BusCreate) -> models.BusModel:
    """
    Register a bus at its initial location.

    Raises:
        InvalidLocation: coordinates are not a valid [lng, lat] pair
        NotFoundError: route does not exist
        ConflictError: busNumber already exists
    """
    location = GeoPoint.from_coordinates(bus_data.coordinates)
    bus_number = bus_data.bus_number.strip()
    require_route(db, bus_data.route)

    if db.query(models.BusModel.id).filter(models.BusModel.bus_number == bus_number).first():
        logger.warning(f"Rejected duplicate busNumber {bus_number!r}")
        raise ConflictError("busNumber", bus_number)

    db_bus = models.BusModel(
        bus_number=bus_number,
        route_id=bus_data.route,
        lat=location.lat,
        lng=location.lng,
        status=bus_data.status or "On Time",
        last_updated=models.utc_now(),
    )
    db.add(db_bus)
    _commit(db, "busNumber", bus_number)

    logger.info(f"Created bus {db_bus.id} ({bus_number}) on route {bus_data.route}")
    return require_bus(db, db_bus.id)


def get_bus(db: Session, bus_id: str) -> Optional[models.BusModel]:
    """Get a bus by ID with route and driver populated."""
    return db.query(models.BusModel).options(
        *_bus_options()
    ).filter(models.BusModel.id == bus_id).first()


def require_bus(db: Session, bus_id: str) -> models.BusModel:
    bus = get_bus(db, bus_id)
    if bus is None:
        raise NotFoundError("Bus", bus_id)
    return bus


def list_buses(db: Session) -> List[models.BusModel]:
    """All buses in storage order of busNumber, route and driver populated."""
    return db.query(models.BusModel).options(
        *_bus_options()
    ).order_by(models.BusModel.bus_number).all()


def update_bus_status(db: Session, bus_id: str, status: Any) -> models.BusModel:
    """Status-only update; also stamps lastUpdated."""
    if status not in models.BUS_STATUSES:
        raise ValidationError(
            "Invalid status",
            {"allowed": list(models.BUS_STATUSES)},
        )
    db_bus = require_bus(db, bus_id)
    db_bus.status = status
    db_bus.last_updated = models.utc_now()
    db.commit()

    logger.info(f"Bus {bus_id} status -> {status}")
    return require_bus(db, bus_id)


def delete_bus(db: Session, bus_id: str) -> None:
    """Delete a bus and clear any driver still pointing at it."""
    db_bus = require_bus(db, bus_id)
    db.query(models.DriverModel).filter(
        models.DriverModel.assigned_bus_id == bus_id
    ).update({models.DriverModel.assigned_bus_id: None}, synchronize_session=False)
    db.delete(db_bus)
    db.commit()

    logger.info(f"Deleted bus {bus_id}")


# =============================================================================
# Driver CRUD
# =============================================================================

def create_driver(db: Session, driver_data: schemas.DriverCreate) -> models.DriverModel:
    phone = driver_data.phone.strip()
    if db.query(models.DriverModel.id).filter(models.DriverModel.phone == phone).first():
        raise ConflictError("phone", phone)

    db_driver = models.DriverModel(
        name=driver_data.name.strip(),
        phone=phone,
        shift=driver_data.shift,
        is_active=driver_data.is_active,
    )
    db.add(db_driver)
    _commit(db, "phone", phone)
    db.refresh(db_driver)

    logger.info(f"Created driver {db_driver.id}")
    return db_driver


def get_driver(db: Session, driver_id: str) -> Optional[models.DriverModel]:
    return db.query(models.DriverModel).options(
        joinedload(models.DriverModel.assigned_bus)
    ).filter(models.DriverModel.id == driver_id).first()


def require_driver(db: Session, driver_id: str) -> models.DriverModel:
    driver = get_driver(db, driver_id)
    if driver is None:
        raise NotFoundError("Driver", driver_id)
    return driver


def list_drivers(db: Session) -> List[models.DriverModel]:
    return db.query(models.DriverModel).options(
        joinedload(models.DriverModel.assigned_bus)
    ).order_by(models.DriverModel.name).all()


def update_driver(db: Session, driver_id: str, driver_data: schemas.DriverUpdate) -> models.DriverModel:
    """
    Update driver fields.

    A changed name or phone is copied onto the assigned bus so its
    denormalized driver fields stay in step.
    """
    db_driver = require_driver(db, driver_id)
    changes = driver_data.model_dump(exclude_unset=True, exclude_none=True)

    if "phone" in changes:
        changes["phone"] = changes["phone"].strip()
        clash = db.query(models.DriverModel.id).filter(
            models.DriverModel.phone == changes["phone"],
            models.DriverModel.id != driver_id,
        ).first()
        if clash:
            raise ConflictError("phone", changes["phone"])

    for field, value in changes.items():
        setattr(db_driver, field, value)

    if db_driver.assigned_bus_id:
        db.query(models.BusModel).filter(
            models.BusModel.id == db_driver.assigned_bus_id,
            models.BusModel.driver_id == driver_id,
        ).update(
            {
                models.BusModel.driver_name: db_driver.name,
                models.BusModel.driver_phone: db_driver.phone,
            },
            synchronize_session=False,
        )

    _commit(db, "phone", db_driver.phone)
    logger.info(f"Updated driver {driver_id}")
    return require_driver(db, driver_id)


def delete_driver(db: Session, driver_id: str) -> None:
    """Delete a driver and clear the driver fields of any bus they held."""
    db_driver = require_driver(db, driver_id)
    db.query(models.BusModel).filter(
        models.BusModel.driver_id == driver_id
    ).update(
        {
            models.BusModel.driver_id: None,
            models.BusModel.driver_name: None,
            models.BusModel.driver_phone: None,
        },
        synchronize_session=False,
    )
    db.delete(db_driver)
    db.commit()

    logger.info(f"Deleted driver {driver_id}")
