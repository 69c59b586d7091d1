"""
Stop-sequence normalization for route create and full-replacement update.

Turns caller-supplied stop descriptors into validated, sequence-numbered
stop records. The whole list is validated before anything is returned, so a
single bad entry rejects the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from errors import InvalidStop
from services.geo import GeoPoint


@dataclass(frozen=True)
class NormalizedStop:
    name: str
    arrival_time: Optional[str]
    location: GeoPoint
    sequence: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "arrival_time": self.arrival_time,
            "lat": self.location.lat,
            "lng": self.location.lng,
            "sequence": self.sequence,
        }


def _get(stop: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in stop:
            return stop[key]
    return None


def _explicit_sequence(value: Any, idx: int, name: str) -> Optional[int]:
    # bool is an int subclass but never a position
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        raise InvalidStop(
            f'Stop "{name}" has a non-integer sequence {value}',
            {"index": idx, "name": name},
        )
    return int(value)


def normalize_stops(stops: Any) -> List[NormalizedStop]:
    """
    Validate and canonicalize an ordered list of stop descriptors.

    Each entry needs a non-empty ``name`` and ``coordinates`` ``[lng, lat]``.
    A whole-number ``sequence`` is kept, otherwise the list position is used;
    a fractional ``sequence`` is rejected.
    ``arrivalTime`` (or ``arrival_time``) is kept verbatim.

    Raises:
        InvalidStop: the list is empty or any entry is invalid.
    """
    if not isinstance(stops, (list, tuple)) or len(stops) == 0:
        raise InvalidStop("At least one stop is required")

    normalized: List[NormalizedStop] = []
    for idx, stop in enumerate(stops):
        if not isinstance(stop, dict):
            raise InvalidStop(
                f"Invalid stop at index {idx}: requires name and coordinates [lng, lat]",
                {"index": idx},
            )

        name = stop.get("name")
        coordinates = stop.get("coordinates")
        if (
            not isinstance(name, str)
            or not name.strip()
            or not isinstance(coordinates, (list, tuple))
            or len(coordinates) != 2
        ):
            raise InvalidStop(
                f"Invalid stop at index {idx}: requires name and coordinates [lng, lat]",
                {"index": idx},
            )

        name = name.strip()
        try:
            location = GeoPoint.from_coordinates(coordinates, error_cls=InvalidStop)
        except InvalidStop as exc:
            raise InvalidStop(
                f'Stop "{name}" has invalid coordinates {list(coordinates)}',
                {"index": idx, "name": name},
            ) from exc

        arrival_time = _get(stop, "arrivalTime", "arrival_time")
        sequence = _explicit_sequence(stop.get("sequence"), idx, name)

        normalized.append(
            NormalizedStop(
                name=name,
                arrival_time=str(arrival_time) if arrival_time else None,
                location=location,
                sequence=idx if sequence is None else sequence,
            )
        )

    return normalized
