"""
Location/telemetry ingest for a single bus.

This is what driver devices and GPS units call at their reporting cadence.
The update is all-or-nothing: the position is parsed and validated before
the bus row is touched. Optional telemetry fields are merged only when the
caller supplied them; omitted fields keep their stored values.

Concurrent updates for the same bus are last-write-wins, there is no
ordering token on a report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from db import crud, models, schemas
from db.models import to_naive_utc
from errors import InvalidLocation
from services.geo import GeoPoint, to_number

logger = logging.getLogger(__name__)

_TELEMETRY_FIELDS = ("speed", "emergency", "issue_note", "last_stop_name", "last_stop_time")


@dataclass(frozen=True)
class TelemetryReport:
    """A parsed ingest request: the new position plus supplied extras."""
    location: GeoPoint
    fields: Dict[str, Any]


def parse_report(update: schemas.TelemetryUpdate) -> TelemetryReport:
    """
    Turn a raw update into a validated report.

    Raises:
        InvalidLocation: position missing, non-numeric or out of range,
            or a supplied speed is not a number.
    """
    location = GeoPoint.from_input(
        latitude=update.latitude,
        longitude=update.longitude,
        coordinates=update.coordinates,
    )

    fields: Dict[str, Any] = {}
    for name in _TELEMETRY_FIELDS:
        value = getattr(update, name)
        if value is None:
            continue
        if name == "speed":
            number = to_number(value)
            if number is None:
                raise InvalidLocation("speed must be a number")
            value = number
        elif name == "last_stop_time":
            value = to_naive_utc(value)
        fields[name] = value

    return TelemetryReport(location=location, fields=fields)


def apply_location_update(
    db: Session,
    bus_id: str,
    update: schemas.TelemetryUpdate,
    now: Optional[datetime] = None,
) -> models.BusModel:
    """
    Apply one telemetry update to a bus.

    Overwrites the current location, stamps ``last_updated`` and merges the
    optional fields that were supplied.

    Returns:
        The updated bus with route and driver populated

    Raises:
        InvalidLocation: the update is invalid; nothing is written
        NotFoundError: the bus does not exist
    """
    try:
        report = parse_report(update)
    except InvalidLocation as exc:
        logger.warning(f"Rejected telemetry for bus {bus_id}: {exc.message}")
        raise

    db_bus = crud.require_bus(db, bus_id)
    db_bus.lat = report.location.lat
    db_bus.lng = report.location.lng
    db_bus.last_updated = to_naive_utc(now) if now is not None else models.utc_now()
    for name, value in report.fields.items():
        setattr(db_bus, name, value)
    db.commit()

    logger.debug(
        f"Bus {bus_id} at {report.location.to_coordinates()} "
        f"(fields: {sorted(report.fields)})"
    )
    return crud.require_bus(db, bus_id)
