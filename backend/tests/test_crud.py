"""
Tests for the store layer: uniqueness, atomic writes, cascades and
driver/bus bookkeeping.
"""

from datetime import datetime

import pytest

from db import crud, models, schemas
from errors import ConflictError, InvalidLocation, InvalidStop, NotFoundError, ValidationError
from services.correlator import assign_driver


# ============================================================
# ROUTES
# ============================================================

class TestRoutes:

    def test_create_assigns_sequences(self, make_route):
        route = make_route()
        assert [s.sequence for s in route.stops] == [0, 1]
        assert route.stops[0].name == "Central Station"

    def test_invalid_stop_writes_nothing(self, db_session):
        stops = [
            {"name": "A", "coordinates": [72.0, 19.0]},
            {"name": "B", "coordinates": [72.1, 19.1]},
            {"name": "C", "coordinates": [72.2, 19.2]},
            {"name": "D", "coordinates": [72.3, 200]},
        ]
        with pytest.raises(InvalidStop):
            crud.create_route(
                db_session,
                schemas.RouteCreate(route_name="Broken", directions="x", stops=stops),
            )
        assert db_session.query(models.RouteModel).count() == 0
        assert db_session.query(models.StopModel).count() == 0

    def test_duplicate_name(self, db_session, make_route):
        make_route("Line 1")
        with pytest.raises(ConflictError) as exc_info:
            make_route("Line 1")
        assert exc_info.value.field == "routeName"
        assert db_session.query(models.RouteModel).count() == 1

    def test_list_sorted_by_name(self, db_session, make_route):
        make_route("Zeta")
        make_route("Alpha")
        assert [r.route_name for r in crud.list_routes(db_session)] == ["Alpha", "Zeta"]

    def test_update_replaces_stops(self, db_session, make_route):
        route = make_route()
        updated = crud.update_route(
            db_session, route.id,
            schemas.RouteUpdate(stops=[{"name": "Only", "coordinates": [1, 2]}]),
        )
        assert [s.name for s in updated.stops] == ["Only"]
        assert updated.directions == "Northbound"
        assert db_session.query(models.StopModel).count() == 1

    def test_stops_only_update_stamps_updated_at(self, db_session, make_route):
        route = make_route()
        db_session.query(models.RouteModel).filter(models.RouteModel.id == route.id).update(
            {models.RouteModel.updated_at: datetime(2020, 1, 1)}, synchronize_session=False,
        )
        db_session.commit()

        updated = crud.update_route(
            db_session, route.id,
            schemas.RouteUpdate(stops=[{"name": "Only", "coordinates": [1, 2]}]),
        )
        assert updated.updated_at > datetime(2020, 1, 1)

    def test_update_without_stops_keeps_them(self, db_session, make_route):
        route = make_route()
        updated = crud.update_route(db_session, route.id, schemas.RouteUpdate(directions="Southbound"))
        assert updated.directions == "Southbound"
        assert len(updated.stops) == 2

    def test_update_rename_conflict(self, db_session, make_route):
        make_route("Line 1")
        other = make_route("Line 2")
        with pytest.raises(ConflictError):
            crud.update_route(db_session, other.id, schemas.RouteUpdate(route_name="Line 1"))

    def test_delete_detaches_buses(self, db_session, make_route, make_bus):
        route = make_route()
        bus = make_bus("B1", route.id)
        assert crud.delete_route(db_session, route.id) == 1

        db_session.expire_all()
        survivor = crud.require_bus(db_session, bus.id)
        assert survivor.route_id is None
        assert survivor.route is None
        assert db_session.query(models.StopModel).count() == 0

    def test_missing_route(self, db_session):
        with pytest.raises(NotFoundError):
            crud.require_route(db_session, "missing")


# ============================================================
# BUSES
# ============================================================

class TestBuses:

    def test_create(self, make_route, make_bus):
        route = make_route()
        bus = make_bus("MH-01", route.id, lng=72.9, lat=19.1)
        assert (bus.lng, bus.lat) == (72.9, 19.1)
        assert bus.status == "On Time"
        assert bus.last_updated is not None
        assert bus.route.route_name == "Route 1"

    def test_duplicate_number_keeps_single_row(self, db_session, make_route, make_bus):
        route = make_route()
        make_bus("MH-01", route.id)
        with pytest.raises(ConflictError) as exc_info:
            make_bus("MH-01", route.id, lng=73.0)
        assert exc_info.value.field == "busNumber"
        assert db_session.query(models.BusModel).count() == 1

    def test_unknown_route(self, make_bus):
        with pytest.raises(NotFoundError):
            make_bus("MH-01", "missing")

    def test_invalid_coordinates(self, make_route, make_bus):
        route = make_route()
        with pytest.raises(InvalidLocation):
            make_bus("MH-01", route.id, lng=200)

    def test_status_update(self, db_session, make_route, make_bus):
        route = make_route()
        bus = make_bus("B1", route.id)
        before = bus.last_updated
        updated = crud.update_bus_status(db_session, bus.id, "Delayed")
        assert updated.status == "Delayed"
        assert updated.last_updated >= before

    def test_status_must_be_known(self, db_session, make_route, make_bus):
        bus = make_bus("B1", make_route().id)
        with pytest.raises(ValidationError) as exc_info:
            crud.update_bus_status(db_session, bus.id, "Lost")
        assert "On Time" in exc_info.value.details["allowed"]

    def test_delete_clears_driver(self, db_session, make_route, make_bus, make_driver):
        bus = make_bus("B1", make_route().id)
        driver = make_driver()
        assign_driver(db_session, driver.id, bus.id)

        crud.delete_bus(db_session, bus.id)
        db_session.expire_all()
        assert crud.require_driver(db_session, driver.id).assigned_bus_id is None
        assert crud.get_bus(db_session, bus.id) is None


# ============================================================
# DRIVERS
# ============================================================

class TestDrivers:

    def test_duplicate_phone(self, make_driver):
        make_driver("Asha", "555-0001")
        with pytest.raises(ConflictError) as exc_info:
            make_driver("Other", "555-0001")
        assert exc_info.value.field == "phone"

    def test_list_sorted_by_name(self, db_session, make_driver):
        make_driver("Zoya", "1")
        make_driver("Arun", "2")
        assert [d.name for d in crud.list_drivers(db_session)] == ["Arun", "Zoya"]

    def test_update_propagates_to_bus(self, db_session, make_route, make_bus, make_driver):
        bus = make_bus("B1", make_route().id)
        driver = make_driver("Asha", "555-0001")
        assign_driver(db_session, driver.id, bus.id)

        crud.update_driver(
            db_session, driver.id,
            schemas.DriverUpdate(name="Asha K", phone="555-0009", shift="Night"),
        )
        db_session.expire_all()
        refreshed = crud.require_bus(db_session, bus.id)
        assert (refreshed.driver_name, refreshed.driver_phone) == ("Asha K", "555-0009")
        assert crud.require_driver(db_session, driver.id).shift == "Night"

    def test_delete_clears_bus_fields(self, db_session, make_route, make_bus, make_driver):
        bus = make_bus("B1", make_route().id)
        driver = make_driver()
        assign_driver(db_session, driver.id, bus.id)

        crud.delete_driver(db_session, driver.id)
        db_session.expire_all()
        refreshed = crud.require_bus(db_session, bus.id)
        assert (refreshed.driver_id, refreshed.driver_name, refreshed.driver_phone) == (None, None, None)
