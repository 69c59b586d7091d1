"""
Database module for the commute tracking backend.

SQLite by default; any SQLAlchemy URL (PostgreSQL included) can be set
through DATABASE_URL.
"""

from .database import (
    get_db,
    SessionLocal,
    init_engine,
    create_tables,
    is_database_available,
)
from .models import (
    Base,
    RouteModel,
    StopModel,
    BusModel,
    DriverModel,
)
from . import crud, schemas

__all__ = [
    "get_db",
    "SessionLocal",
    "init_engine",
    "create_tables",
    "Base",
    "is_database_available",
    "RouteModel",
    "StopModel",
    "BusModel",
    "DriverModel",
    "crud",
    "schemas",
]
