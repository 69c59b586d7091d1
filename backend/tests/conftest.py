"""
Pytest configuration and shared fixtures for the commute backend tests.
"""
import os
import sys
from typing import Iterator, List, Optional

import pytest

# In-memory database for everything imported below
os.environ.setdefault("DATABASE_URL", "sqlite://")

# Add backend to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from db import crud, models, schemas
from db.database import build_engine, get_db


# ============================================================
# DATABASE
# ============================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    test_engine = build_engine("sqlite://")
    models.Base.metadata.create_all(bind=test_engine)
    yield test_engine
    models.Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:
    """API client whose requests use the test database."""
    from main import app

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


# ============================================================
# FACTORIES
# ============================================================

def stop_payload(name: str, lng: float, lat: float, **extra) -> dict:
    payload = {"name": name, "coordinates": [lng, lat]}
    payload.update(extra)
    return payload


@pytest.fixture
def make_route(db_session):
    """Create a route directly through crud."""
    def _make(name: str = "Route 1", stops: Optional[List[dict]] = None) -> models.RouteModel:
        if stops is None:
            stops = [
                stop_payload("Central Station", 72.8777, 19.0760),
                stop_payload("Market Square", 72.8800, 19.0800),
            ]
        return crud.create_route(
            db_session,
            schemas.RouteCreate(route_name=name, directions="Northbound", stops=stops),
        )
    return _make


@pytest.fixture
def make_bus(db_session):
    def _make(bus_number: str, route_id: str, lng: float = 72.8777, lat: float = 19.0760,
              status: Optional[str] = None) -> models.BusModel:
        return crud.create_bus(
            db_session,
            schemas.BusCreate(
                bus_number=bus_number,
                route=route_id,
                coordinates=[lng, lat],
                status=status,
            ),
        )
    return _make


@pytest.fixture
def make_driver(db_session):
    def _make(name: str = "Asha", phone: str = "555-0100", shift: str = "Morning") -> models.DriverModel:
        return crud.create_driver(
            db_session,
            schemas.DriverCreate(name=name, phone=phone, shift=shift),
        )
    return _make
