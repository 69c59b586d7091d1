"""
Dashboard API.

Read-only views polled by the admin dashboard. Alerts are derived on each
request and never stored.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import config
from db import crud, models, schemas
from db.database import get_db
from services.alerts import Alert, derive_alerts
from services.correlator import RouteStat
from services.dashboard import build_dashboard

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def _alert(alert: Alert) -> schemas.AlertResponse:
    return schemas.AlertResponse(
        type=alert.type,
        severity=alert.severity,
        message=alert.message,
        bus_id=alert.bus_id,
        bus_number=alert.bus_number,
        elapsed_minutes=alert.elapsed_minutes,
    )


def _route_stat(stat: RouteStat) -> schemas.RouteStatResponse:
    return schemas.RouteStatResponse(
        route_id=stat.route_id,
        route_name=stat.route_name,
        bus_count=stat.bus_count,
        delayed_count=stat.delayed_count,
    )


@router.get("", response_model=schemas.DashboardResponse)
def dashboard(db: Session = Depends(get_db)) -> schemas.DashboardResponse:
    snapshot = build_dashboard(db)
    summary = snapshot.summary
    return schemas.DashboardResponse(
        summary=schemas.FleetSummaryResponse(
            total_buses=summary.total_buses,
            active_buses=summary.active_buses,
            delayed_buses=summary.delayed_buses,
            total_routes=summary.total_routes,
            driver_count=summary.driver_count,
            active_drivers=summary.active_drivers,
            emergencies=summary.emergencies,
        ),
        alerts=[_alert(a) for a in snapshot.alerts],
        route_stats=schemas.RouteRankingsResponse(
            busiest=[_route_stat(s) for s in snapshot.route_stats.busiest],
            most_delayed=[_route_stat(s) for s in snapshot.route_stats.most_delayed],
        ),
        generated_at=snapshot.generated_at,
    )


@router.get("/alerts", response_model=List[schemas.AlertResponse])
def alerts(
    limit: Optional[int] = Query(default=None, ge=0, le=1000),
    db: Session = Depends(get_db),
) -> List[schemas.AlertResponse]:
    limit = config.ALERT_DISPLAY_LIMIT if limit is None else limit
    derived = derive_alerts(
        crud.list_buses(db),
        models.utc_now(),
        offline_minutes=config.OFFLINE_THRESHOLD_MINUTES,
    )
    return [_alert(a) for a in derived[:limit]]
