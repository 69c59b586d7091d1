"""
Domain errors raised by the fleet services.

Each error carries the HTTP status it maps to; ``main.py`` turns them into
``{"message": ...}`` responses.
"""

from typing import Any, Dict, Optional


class FleetError(Exception):
    """Base class for expected, client-facing failures."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        body.update(self.details)
        return body


class ValidationError(FleetError):
    """Malformed input, out-of-range coordinates or invalid enum values."""

    status_code = 400


class InvalidLocation(ValidationError):
    pass


class InvalidStop(ValidationError):
    pass


class InvalidQuery(ValidationError):
    pass


class NotFoundError(FleetError):
    status_code = 404

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found", {"id": str(entity_id)})
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(FleetError):
    """Duplicate value for a unique key (busNumber, routeName, driver phone)."""

    status_code = 409

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"{field} '{value}' already exists", {"field": field})
        self.field = field
        self.value = value
