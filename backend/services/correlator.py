"""
Route-bus correlation.

Relationships and aggregates here are not stored; they are computed from
the current bus and route collections at read time:
- membership of a bus in a route
- per-route bus lists and counts, busiest / most delayed rankings
- the live route board and commuter sub-route search
- driver assignment, the one operation that writes both sides of the
  bus/driver pair
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from db import crud, models
from services.geo import GeoPoint, centroid

logger = logging.getLogger(__name__)

DELAYED_STATUS = "delayed"
UNNAMED_ROUTE = "Unnamed Route"


# =============================================================================
# Membership
# =============================================================================

def route_ref_id(ref: Any) -> Optional[str]:
    """
    Id of a route reference, whatever its shape.

    Accepts a populated route object, a serialized route dict (``id`` or
    ``_id``), a bare id string, or ``None``.
    """
    if ref is None:
        return None
    if isinstance(ref, str):
        return ref or None
    if isinstance(ref, dict):
        value = ref.get("id", ref.get("_id"))
        return str(value) if value else None
    value = getattr(ref, "id", None)
    return str(value) if value else None


def bus_route_ref(bus: Any) -> Any:
    """The bus's route reference: the populated route if present, else its id."""
    if isinstance(bus, dict):
        return bus.get("route")
    ref = getattr(bus, "route", None)
    if ref is None:
        ref = getattr(bus, "route_id", None)
    return ref


def is_bus_on_route(bus: Any, route: Any) -> bool:
    """True when the bus references ``route`` (object or id)."""
    target = route_ref_id(route)
    if target is None:
        return False
    return route_ref_id(bus_route_ref(bus)) == target


def buses_on_route(buses: Iterable[Any], route: Any) -> List[Any]:
    """Buses on ``route``, in input order."""
    return [bus for bus in buses if is_bus_on_route(bus, route)]


# =============================================================================
# Aggregates
# =============================================================================

@dataclass
class RouteStat:
    route_id: str
    route_name: str
    bus_count: int = 0
    delayed_count: int = 0


@dataclass
class RouteRankings:
    busiest: List[RouteStat] = field(default_factory=list)
    most_delayed: List[RouteStat] = field(default_factory=list)


def _is_delayed(bus: Any) -> bool:
    status = bus.get("status") if isinstance(bus, dict) else getattr(bus, "status", None)
    return (status or "").lower() == DELAYED_STATUS


def _route_name(ref: Any) -> Optional[str]:
    if isinstance(ref, dict):
        return ref.get("routeName") or ref.get("route_name")
    return getattr(ref, "route_name", None)


def route_aggregates(
    buses: Iterable[Any],
    routes: Optional[Iterable[Any]] = None,
) -> List[RouteStat]:
    """
    Bus and delayed-bus counts per route, in first-seen order.

    Buses without a route are skipped. Route names come from the populated
    reference, then from ``routes``, falling back to "Unnamed Route".
    """
    names: Dict[str, str] = {}
    for route in routes or []:
        route_id = route_ref_id(route)
        name = _route_name(route)
        if route_id and name:
            names[route_id] = name

    stats: Dict[str, RouteStat] = {}
    for bus in buses:
        ref = bus_route_ref(bus)
        route_id = route_ref_id(ref)
        if route_id is None:
            continue
        stat = stats.get(route_id)
        if stat is None:
            stat = RouteStat(
                route_id=route_id,
                route_name=_route_name(ref) or names.get(route_id) or UNNAMED_ROUTE,
            )
            stats[route_id] = stat
        stat.bus_count += 1
        if _is_delayed(bus):
            stat.delayed_count += 1

    return list(stats.values())


def rank_routes(stats: Sequence[RouteStat], limit: int = 3) -> RouteRankings:
    """Top ``limit`` routes by bus count and by delayed count (stable)."""
    limit = max(0, limit)
    return RouteRankings(
        busiest=sorted(stats, key=lambda s: s.bus_count, reverse=True)[:limit],
        most_delayed=sorted(stats, key=lambda s: s.delayed_count, reverse=True)[:limit],
    )


# =============================================================================
# Live route board
# =============================================================================

@dataclass
class LiveRoute:
    route: models.RouteModel
    buses: List[models.BusModel]
    center: Optional[GeoPoint] = None


def live_route_board(
    routes: Sequence[models.RouteModel],
    buses: Sequence[models.BusModel],
) -> List[LiveRoute]:
    """
    Every route with the buses currently on it, busiest first.

    ``center`` is the mean of the route's stops, or of its buses when the
    route has no stops loaded.
    """
    board: List[LiveRoute] = []
    for route in routes:
        on_route = buses_on_route(buses, route)
        points = [GeoPoint(lat=s.lat, lng=s.lng) for s in route.stops]
        if not points:
            points = [GeoPoint(lat=b.lat, lng=b.lng) for b in on_route]
        board.append(LiveRoute(route=route, buses=on_route, center=centroid(points)))

    board.sort(key=lambda entry: len(entry.buses), reverse=True)
    return board


# =============================================================================
# Commuter route search / sub-route extraction
# =============================================================================

@dataclass
class RouteMatch:
    route: models.RouteModel
    from_index: int
    to_index: int
    reverse: bool
    stops: List[models.StopModel]


def _find_stop(names: Sequence[str], term: str) -> int:
    if not term:
        return -1
    for index, name in enumerate(names):
        if term in name:
            return index
    return -1


def extract_sub_route(
    stops: Sequence[Any],
    from_index: int,
    to_index: int,
    reverse: bool = False,
) -> List[Any]:
    """
    Slice of ``stops`` for a from/to pair of indexes (-1 meaning unset).

    Both set: the inclusive span between them, reversed when travelling
    against the stop order. Only from: to the end. Only to: from the start.
    """
    if from_index >= 0 and to_index >= 0:
        start, end = min(from_index, to_index), max(from_index, to_index)
        segment = list(stops[start:end + 1])
        return segment[::-1] if reverse else segment
    if from_index >= 0:
        return list(stops[from_index:])
    if to_index >= 0:
        return list(stops[:to_index + 1])
    return list(stops)


def search_routes(
    routes: Sequence[models.RouteModel],
    from_term: Optional[str] = None,
    to_term: Optional[str] = None,
) -> List[RouteMatch]:
    """
    Routes whose stop names match the commuter's From / To text.

    Matching is a case-insensitive substring test on stop names. With both
    terms the two must hit different stops, in either direction. With one
    term any route containing it matches; with none every route matches.
    """
    from_term = (from_term or "").strip().lower()
    to_term = (to_term or "").strip().lower()

    matches: List[RouteMatch] = []
    for route in routes:
        stops = list(route.stops)
        names = [(s.name or "").lower() for s in stops]
        from_index = _find_stop(names, from_term)
        to_index = _find_stop(names, to_term)
        reverse = False

        if from_term and to_term:
            matched = from_index != -1 and to_index != -1 and from_index != to_index
            reverse = from_index > to_index
        elif from_term:
            matched = from_index != -1
        elif to_term:
            matched = to_index != -1
        else:
            matched = True

        if matched:
            matches.append(
                RouteMatch(
                    route=route,
                    from_index=from_index,
                    to_index=to_index,
                    reverse=reverse,
                    stops=extract_sub_route(stops, from_index, to_index, reverse),
                )
            )
    return matches


# =============================================================================
# Driver assignment
# =============================================================================

def assign_driver(
    db: Session,
    driver_id: str,
    bus_id: str,
) -> Tuple[models.DriverModel, models.BusModel]:
    """
    Assign a driver to a bus, keeping both sides of the pair in agreement.

    In one transaction: the bus's previous driver is cleared, the bus the
    incoming driver previously held is cleared, then the bus gets the new
    driver (id, name, phone) and the driver gets the bus.

    Raises:
        NotFoundError: driver or bus does not exist
    """
    driver = crud.require_driver(db, driver_id)
    bus = crud.require_bus(db, bus_id)

    try:
        if bus.driver_id and bus.driver_id != driver.id:
            db.query(models.DriverModel).filter(
                models.DriverModel.id == bus.driver_id
            ).update({models.DriverModel.assigned_bus_id: None}, synchronize_session=False)
            logger.info(f"Cleared driver {bus.driver_id} from bus {bus.id}")

        if driver.assigned_bus_id and driver.assigned_bus_id != bus.id:
            db.query(models.BusModel).filter(
                models.BusModel.id == driver.assigned_bus_id,
                models.BusModel.driver_id == driver.id,
            ).update(
                {
                    models.BusModel.driver_id: None,
                    models.BusModel.driver_name: None,
                    models.BusModel.driver_phone: None,
                },
                synchronize_session=False,
            )
            logger.info(f"Cleared bus {driver.assigned_bus_id} held by driver {driver.id}")

        bus.driver_id = driver.id
        bus.driver_name = driver.name
        bus.driver_phone = driver.phone
        driver.assigned_bus_id = bus.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Assigned driver {driver_id} to bus {bus_id}")
    return crud.require_driver(db, driver_id), crud.require_bus(db, bus_id)
