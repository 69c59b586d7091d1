"""
Pydantic schemas for database operations.

These schemas are used for:
- Request validation (input data)
- Response serialization (output data, camelCase on the wire)
- Type safety between API and database

Geographic fields are GeoJSON points, ``coordinates`` ordered ``[lng, lat]``.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from services.geo import GeoPoint
from . import models

BusStatus = Literal["On Time", "Delayed", "Arrived", "Inactive", "Running"]
DriverShift = Literal["Morning", "Evening", "Night"]


class CamelModel(BaseModel):
    """
    Base schema: snake_case in Python, camelCase in JSON.

    Strings are stripped before length checks, so whitespace-only required
    fields fail validation.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        str_strip_whitespace=True,
        populate_by_name=True,
        from_attributes=True,
    )


class GeoJSONPoint(CamelModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float) -> "GeoJSONPoint":
        return cls(coordinates=GeoPoint(lat=lat, lng=lng).to_coordinates())


class MessageResponse(CamelModel):
    message: str
    id: Optional[str] = None


# =============================================================================
# Stop / Route Schemas
# =============================================================================

class StopResponse(CamelModel):
    """Stop as returned to clients"""
    name: str
    arrival_time: Optional[str] = None
    location: GeoJSONPoint
    sequence: int

    @classmethod
    def from_model(cls, stop: models.StopModel) -> "StopResponse":
        return cls(
            name=stop.name,
            arrival_time=stop.arrival_time,
            location=GeoJSONPoint.from_lat_lng(stop.lat, stop.lng),
            sequence=stop.sequence,
        )


class RouteCreate(CamelModel):
    """
    Schema for creating a route.

    ``stops`` is left loosely typed: the stop normalizer owns its validation
    so errors can name the offending stop.
    """
    route_name: str = Field(min_length=1)
    directions: str = Field(min_length=1)
    stops: Any = None


class RouteUpdate(CamelModel):
    """Partial route update; ``stops`` replaces the whole list when given"""
    route_name: Optional[str] = Field(default=None, min_length=1)
    directions: Optional[str] = Field(default=None, min_length=1)
    stops: Any = None


class RouteResponse(CamelModel):
    id: str
    route_name: str
    directions: str
    stops: List[StopResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, route: models.RouteModel) -> "RouteResponse":
        return cls(
            id=route.id,
            route_name=route.route_name,
            directions=route.directions,
            stops=[StopResponse.from_model(s) for s in route.stops],
            created_at=route.created_at,
            updated_at=route.updated_at,
        )


class NearbyStopResponse(CamelModel):
    route_id: str
    route_name: str
    stop: StopResponse
    distance_meters: float


# =============================================================================
# Driver Schemas
# =============================================================================

class DriverCreate(CamelModel):
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    shift: DriverShift = "Morning"
    is_active: bool = True


class DriverUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, min_length=1)
    shift: Optional[DriverShift] = None
    is_active: Optional[bool] = None


class DriverSummary(CamelModel):
    """Driver as populated on a bus"""
    id: str
    name: str
    phone: str
    shift: str
    is_active: bool


class AssignedBusSummary(CamelModel):
    id: str
    bus_number: str
    route: Optional[str] = None


class DriverResponse(DriverSummary):
    assigned_bus: Optional[AssignedBusSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, driver: models.DriverModel) -> "DriverResponse":
        bus = driver.assigned_bus
        return cls(
            id=driver.id,
            name=driver.name,
            phone=driver.phone,
            shift=driver.shift,
            is_active=driver.is_active,
            assigned_bus=(
                AssignedBusSummary(id=bus.id, bus_number=bus.bus_number, route=bus.route_id)
                if bus is not None
                else None
            ),
            created_at=driver.created_at,
            updated_at=driver.updated_at,
        )


class AssignDriverRequest(CamelModel):
    driver_id: str = Field(min_length=1)
    bus_id: str = Field(min_length=1)


# =============================================================================
# Bus Schemas
# =============================================================================

class BusCreate(CamelModel):
    bus_number: str = Field(min_length=1)
    route: str = Field(min_length=1, description="Route id")
    coordinates: Any = Field(description="[longitude, latitude]")
    status: Optional[BusStatus] = None


class StatusUpdate(CamelModel):
    status: Any = None


class TelemetryUpdate(CamelModel):
    """
    Location/telemetry ingest payload.

    Position comes either as ``latitude``/``longitude`` or as
    ``coordinates`` ``[lng, lat]``; it is parsed by ``GeoPoint.from_input``.
    """
    latitude: Any = None
    longitude: Any = None
    coordinates: Any = None
    speed: Optional[float] = None
    emergency: Optional[bool] = None
    issue_note: Optional[str] = None
    last_stop_name: Optional[str] = None
    last_stop_time: Optional[datetime] = None


class BusResponse(CamelModel):
    id: str
    bus_number: str
    route: Optional[RouteResponse] = None
    driver: Optional[DriverSummary] = None
    driver_name: Optional[str] = None
    driver_phone: Optional[str] = None
    current_location: GeoJSONPoint
    status: str
    speed: Optional[float] = None
    emergency: bool = False
    issue_note: Optional[str] = None
    last_stop_name: Optional[str] = None
    last_stop_time: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, bus: models.BusModel, **extra: Any) -> "BusResponse":
        return cls(
            id=bus.id,
            bus_number=bus.bus_number,
            route=RouteResponse.from_model(bus.route) if bus.route is not None else None,
            driver=DriverSummary.model_validate(bus.driver) if bus.driver is not None else None,
            driver_name=bus.driver_name,
            driver_phone=bus.driver_phone,
            current_location=GeoJSONPoint.from_lat_lng(bus.lat, bus.lng),
            status=bus.status,
            speed=bus.speed,
            emergency=bool(bus.emergency),
            issue_note=bus.issue_note,
            last_stop_name=bus.last_stop_name,
            last_stop_time=bus.last_stop_time,
            last_updated=bus.last_updated,
            created_at=bus.created_at,
            updated_at=bus.updated_at,
            **extra,
        )


class NearbyBusResponse(BusResponse):
    distance_meters: float


class AssignDriverResponse(CamelModel):
    message: str
    driver: DriverResponse
    bus: BusResponse


# =============================================================================
# Read models (correlator / alerts / dashboard)
# =============================================================================

class AlertResponse(CamelModel):
    type: Literal["offline", "delayed", "emergency"]
    severity: Literal["high", "medium"]
    message: str
    bus_id: str
    bus_number: str
    elapsed_minutes: Optional[int] = None


class RouteStatResponse(CamelModel):
    route_id: str
    route_name: str
    bus_count: int
    delayed_count: int


class RouteRankingsResponse(CamelModel):
    busiest: List[RouteStatResponse]
    most_delayed: List[RouteStatResponse]


class FleetSummaryResponse(CamelModel):
    total_buses: int
    active_buses: int
    delayed_buses: int
    total_routes: int
    driver_count: int
    active_drivers: int
    emergencies: int


class DashboardResponse(CamelModel):
    summary: FleetSummaryResponse
    alerts: List[AlertResponse]
    route_stats: RouteRankingsResponse
    generated_at: datetime


class LiveRouteResponse(CamelModel):
    route: RouteResponse
    buses: List[BusResponse]
    center: Optional[GeoJSONPoint] = None


class RouteSearchResponse(CamelModel):
    route: RouteResponse
    from_index: int
    to_index: int
    reverse: bool
    stops: List[StopResponse]
