"""
Staleness and alert derivation.

A pure function of "now" and the bus list; alerts are computed on demand
and never stored. Rules, all of which may fire for the same bus:

- offline: minutes since ``last_updated`` exceed the threshold (high)
- delayed: status is "Delayed" (medium)
- emergency: the emergency flag is set (high)

A bus that never reported (``last_updated`` is null) counts as offline
since the epoch, so freshly registered buses are flagged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from db.models import to_naive_utc

DEFAULT_OFFLINE_MINUTES = 10
EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class Alert:
    type: str
    severity: str
    message: str
    bus_id: str
    bus_number: str
    elapsed_minutes: Optional[int] = None


def minutes_since(last_updated: Optional[datetime], now: datetime) -> float:
    """Elapsed minutes between ``last_updated`` (epoch when missing) and ``now``."""
    reference = to_naive_utc(last_updated) if last_updated is not None else EPOCH
    return (to_naive_utc(now) - reference).total_seconds() / 60.0


def derive_alerts(
    buses: Iterable[Any],
    now: datetime,
    offline_minutes: float = DEFAULT_OFFLINE_MINUTES,
) -> List[Alert]:
    """Alerts for ``buses`` in their given order; the caller truncates."""
    alerts: List[Alert] = []
    for bus in buses:
        bus_id = str(bus.id)
        number = bus.bus_number

        elapsed = minutes_since(bus.last_updated, now)
        if elapsed > offline_minutes:
            whole = math.floor(elapsed)
            alerts.append(Alert(
                type="offline",
                severity="high",
                message=f"Bus {number} is offline for {whole} min",
                bus_id=bus_id,
                bus_number=number,
                elapsed_minutes=whole,
            ))

        if (bus.status or "").lower() == "delayed":
            alerts.append(Alert(
                type="delayed",
                severity="medium",
                message=f"Bus {number} is delayed",
                bus_id=bus_id,
                bus_number=number,
            ))

        if bus.emergency:
            alerts.append(Alert(
                type="emergency",
                severity="high",
                message=f"Emergency on Bus {number} ({bus.issue_note or 'No details'})",
                bus_id=bus_id,
                bus_number=number,
            ))

    return alerts
