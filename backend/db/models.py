"""
SQLAlchemy models for the commute tracking database.

These models define the database schema for:
- Routes and their ordered stops
- Buses with their live location and telemetry
- Drivers and their bus assignment
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, Float, DateTime,
    Boolean, ForeignKey, Text, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

BUS_STATUSES = ("On Time", "Delayed", "Arrived", "Inactive", "Running")
DRIVER_SHIFTS = ("Morning", "Evening", "Night")


def utc_now() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class RouteModel(Base):
    """Bus route: metadata plus an ordered set of stops"""
    __tablename__ = "routes"

    id = Column(String(36), primary_key=True, default=_new_id)
    route_name = Column(String, nullable=False, unique=True)
    directions = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    stops = relationship(
        "StopModel",
        back_populates="route",
        cascade="all, delete-orphan",
        order_by="StopModel.sequence",
    )
    buses = relationship("BusModel", back_populates="route")

    def __repr__(self):
        return f"<RouteModel(id='{self.id}', route_name='{self.route_name}')>"


class StopModel(Base):
    """Stop embedded in a route; not addressable on its own"""
    __tablename__ = "stops"
    __table_args__ = (
        CheckConstraint("lat >= -90 AND lat <= 90", name="ck_stops_lat_range"),
        CheckConstraint("lng >= -180 AND lng <= 180", name="ck_stops_lng_range"),
        Index("ix_stops_location", "lat", "lng"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    route_id = Column(String(36), ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    arrival_time = Column(String, nullable=True)  # free text, e.g. "09:10"
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    sequence = Column(Integer, nullable=False, default=0)

    route = relationship("RouteModel", back_populates="stops")

    def __repr__(self):
        return f"<StopModel(name='{self.name}', sequence={self.sequence})>"


class DriverModel(Base):
    """Driver, assigned to at most one bus"""
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=False, unique=True)
    shift = Column(String, nullable=False, default="Morning")
    # Plain column: buses.driver_id already references drivers, and the pair
    # is kept in agreement by the assignment operation.
    assigned_bus_id = Column(String(36), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    assigned_bus = relationship(
        "BusModel",
        primaryjoin="foreign(DriverModel.assigned_bus_id) == BusModel.id",
        viewonly=True,
    )

    def __repr__(self):
        return f"<DriverModel(id='{self.id}', name='{self.name}', shift='{self.shift}')>"


class BusModel(Base):
    """Bus with its live position and last known telemetry"""
    __tablename__ = "buses"
    __table_args__ = (
        CheckConstraint("lat >= -90 AND lat <= 90", name="ck_buses_lat_range"),
        CheckConstraint("lng >= -180 AND lng <= 180", name="ck_buses_lng_range"),
        Index("ix_buses_location", "lat", "lng"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    bus_number = Column(String, nullable=False, unique=True)
    # Nullable: deleting a route detaches its buses.
    route_id = Column(String(36), ForeignKey("routes.id", ondelete="SET NULL"), nullable=True, index=True)
    driver_id = Column(String(36), ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True)
    driver_name = Column(String, nullable=True)
    driver_phone = Column(String, nullable=True)

    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="On Time")
    speed = Column(Float, nullable=True)
    emergency = Column(Boolean, nullable=False, default=False)
    issue_note = Column(Text, nullable=True)
    last_stop_name = Column(String, nullable=True)
    last_stop_time = Column(DateTime, nullable=True)
    last_updated = Column(DateTime, nullable=True, default=utc_now)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    route = relationship("RouteModel", back_populates="buses")
    driver = relationship("DriverModel", foreign_keys=[driver_id])

    def __repr__(self):
        return f"<BusModel(id='{self.id}', bus_number='{self.bus_number}', status='{self.status}')>"
