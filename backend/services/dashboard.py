"""
Admin dashboard read model: fleet counters, alerts and route rankings
computed from one read of the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from config import config
from db import crud, models
from services.alerts import Alert, derive_alerts
from services.correlator import RouteRankings, rank_routes, route_aggregates

ACTIVE_STATUSES = {"running", "on time"}


@dataclass
class FleetSummary:
    total_buses: int
    active_buses: int
    delayed_buses: int
    total_routes: int
    driver_count: int
    active_drivers: int
    emergencies: int


@dataclass
class DashboardSnapshot:
    summary: FleetSummary
    alerts: List[Alert]
    route_stats: RouteRankings
    generated_at: datetime


def build_fleet_summary(
    buses: Sequence[Any],
    routes: Sequence[Any],
    drivers: Sequence[Any],
) -> FleetSummary:
    statuses = [(bus.status or "").lower() for bus in buses]
    return FleetSummary(
        total_buses=len(buses),
        active_buses=sum(1 for s in statuses if s in ACTIVE_STATUSES),
        delayed_buses=sum(1 for s in statuses if s == "delayed"),
        total_routes=len(routes),
        driver_count=len(drivers),
        active_drivers=sum(1 for d in drivers if d.is_active),
        emergencies=sum(1 for bus in buses if bus.emergency),
    )


def build_dashboard(
    db: Session,
    now: Optional[datetime] = None,
    alert_limit: Optional[int] = None,
) -> DashboardSnapshot:
    now = now or models.utc_now()
    alert_limit = config.ALERT_DISPLAY_LIMIT if alert_limit is None else alert_limit

    buses = crud.list_buses(db)
    routes = crud.list_routes(db)
    drivers = crud.list_drivers(db)

    alerts = derive_alerts(buses, now, offline_minutes=config.OFFLINE_THRESHOLD_MINUTES)
    return DashboardSnapshot(
        summary=build_fleet_summary(buses, routes, drivers),
        alerts=alerts[:max(0, alert_limit)],
        route_stats=rank_routes(route_aggregates(buses, routes), limit=config.TOP_ROUTES_LIMIT),
        generated_at=now,
    )
