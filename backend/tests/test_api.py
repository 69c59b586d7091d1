"""
Tests for the REST surface.

Validates:
- Route CRUD, search, live board and stop proximity (/api/routes)
- Bus registry, telemetry ingest, status and proximity (/api/bus)
- Driver CRUD and assignment (/api/drivers)
- Dashboard and alerts (/api/dashboard)
- Error envelope: {"message": ...} with 400/404/409
"""

import math

import pytest

from services.geo import EARTH_RADIUS_METERS

LAT, LNG = 19.0760, 72.8777


def _route_payload(name="Line 1", stops=None):
    return {
        "routeName": name,
        "directions": "Central to Harbour",
        "stops": stops if stops is not None else [
            {"name": "Central Station", "coordinates": [LNG, LAT], "arrivalTime": "09:00"},
            {"name": "Harbour", "coordinates": [72.89, 19.09], "arrivalTime": "09:20"},
        ],
    }


@pytest.fixture
def route(client):
    response = client.post("/api/routes", json=_route_payload())
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def bus(client, route):
    response = client.post(
        "/api/bus",
        json={"busNumber": "MH-01", "route": route["id"], "coordinates": [LNG, LAT]},
    )
    assert response.status_code == 201
    return response.json()


# ============================================================
# SERVICE
# ============================================================

class TestService:

    def test_root(self, client):
        assert client.get("/").json()["message"].startswith("Welcome")

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert "database" in response.json()


# ============================================================
# ROUTES
# ============================================================

class TestRoutesApi:

    def test_create_returns_geojson_stops(self, route):
        assert route["routeName"] == "Line 1"
        assert [s["sequence"] for s in route["stops"]] == [0, 1]
        assert route["stops"][0]["location"] == {"type": "Point", "coordinates": [LNG, LAT]}
        assert route["stops"][0]["arrivalTime"] == "09:00"

    def test_invalid_stop_rejected_without_write(self, client):
        stops = [
            {"name": "A", "coordinates": [72.0, 19.0]},
            {"name": "B", "coordinates": [72.1, 19.1]},
            {"name": "C", "coordinates": [72.2, 19.2]},
            {"name": "Bad", "coordinates": [72.3, 200]},
        ]
        response = client.post("/api/routes", json=_route_payload(stops=stops))
        assert response.status_code == 400
        assert "Bad" in response.json()["message"]
        assert client.get("/api/routes").json() == []

    @pytest.mark.parametrize("field", ["routeName", "directions"])
    def test_whitespace_only_field_rejected(self, client, field):
        payload = _route_payload()
        payload[field] = "   "
        response = client.post("/api/routes", json=payload)
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == [field]
        assert client.get("/api/routes").json() == []

    def test_rename_to_whitespace_rejected(self, client, route):
        response = client.put(f"/api/routes/{route['id']}", json={"routeName": "  "})
        assert response.status_code == 400
        assert client.get(f"/api/routes/{route['id']}").json()["routeName"] == "Line 1"

    def test_names_are_trimmed(self, client):
        response = client.post("/api/routes", json=_route_payload(name="  Line 9 "))
        assert response.json()["routeName"] == "Line 9"

    def test_empty_stops(self, client):
        response = client.post("/api/routes", json=_route_payload(stops=[]))
        assert response.status_code == 400
        assert response.json()["message"] == "At least one stop is required"

    def test_missing_fields(self, client):
        response = client.post("/api/routes", json={"stops": []})
        assert response.status_code == 400
        assert "errors" in response.json()

    def test_duplicate_name(self, client, route):
        response = client.post("/api/routes", json=_route_payload())
        assert response.status_code == 409
        assert response.json()["field"] == "routeName"

    def test_get_update_delete(self, client, route):
        assert client.get(f"/api/routes/{route['id']}").json()["id"] == route["id"]

        response = client.put(f"/api/routes/{route['id']}", json={"directions": "Loop"})
        assert response.status_code == 200
        assert response.json()["directions"] == "Loop"
        assert len(response.json()["stops"]) == 2

        response = client.delete(f"/api/routes/{route['id']}")
        assert response.status_code == 200
        assert client.get(f"/api/routes/{route['id']}").status_code == 404

    def test_unknown_route(self, client):
        response = client.get("/api/routes/missing")
        assert response.status_code == 404
        assert response.json() == {"message": "Route not found", "id": "missing"}

    def test_delete_detaches_bus(self, client, route, bus):
        response = client.delete(f"/api/routes/{route['id']}")
        assert "1 buses detached" in response.json()["message"]
        assert client.get(f"/api/bus/{bus['id']}").json()["route"] is None

    def test_search(self, client, route):
        response = client.get("/api/routes/search", params={"from": "harbour", "to": "central"})
        [match] = response.json()
        assert match["reverse"] is True
        assert [s["name"] for s in match["stops"]] == ["Harbour", "Central Station"]

    def test_live_board(self, client, route, bus):
        [entry] = client.get("/api/routes/live").json()
        assert entry["route"]["id"] == route["id"]
        assert [b["busNumber"] for b in entry["buses"]] == ["MH-01"]
        assert entry["center"]["type"] == "Point"

    def test_route_buses(self, client, route, bus):
        buses = client.get(f"/api/routes/{route['id']}/buses").json()
        assert [b["id"] for b in buses] == [bus["id"]]

    def test_nearby_stops(self, client, route):
        response = client.get("/api/routes/stops/nearby", params={"lat": LAT, "lng": LNG})
        [first, *_] = response.json()
        assert first["stop"]["name"] == "Central Station"
        assert first["routeName"] == "Line 1"
        assert first["distanceMeters"] == 0


# ============================================================
# BUSES
# ============================================================

class TestBusesApi:

    def test_create_echoes_coordinates(self, bus, route):
        assert bus["currentLocation"] == {"type": "Point", "coordinates": [LNG, LAT]}
        assert bus["status"] == "On Time"
        assert bus["route"]["id"] == route["id"]

    def test_duplicate_bus_number(self, client, route, bus):
        response = client.post(
            "/api/bus",
            json={"busNumber": "MH-01", "route": route["id"], "coordinates": [LNG, LAT]},
        )
        assert response.status_code == 409
        assert response.json()["field"] == "busNumber"
        assert len(client.get("/api/bus").json()) == 1

    def test_whitespace_bus_number_rejected(self, client, route):
        response = client.post(
            "/api/bus",
            json={"busNumber": "   ", "route": route["id"], "coordinates": [LNG, LAT]},
        )
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["busNumber"]
        assert client.get("/api/bus").json() == []

    def test_create_out_of_range(self, client, route):
        response = client.post(
            "/api/bus",
            json={"busNumber": "X", "route": route["id"], "coordinates": [LAT, 200]},
        )
        assert response.status_code == 400

    def test_location_update_partial(self, client, bus):
        response = client.put(
            f"/api/bus/{bus['id']}",
            json={"latitude": 19.1, "longitude": 72.9, "speed": 35, "issueNote": "Traffic"},
        )
        assert response.status_code == 200
        response = client.put(f"/api/bus/{bus['id']}", json={"coordinates": [72.95, 19.2]})
        body = response.json()
        assert body["currentLocation"]["coordinates"] == [72.95, 19.2]
        assert body["speed"] == 35
        assert body["issueNote"] == "Traffic"

    def test_location_update_invalid(self, client, bus):
        response = client.put(f"/api/bus/{bus['id']}", json={"latitude": 95, "longitude": 72.9})
        assert response.status_code == 400
        assert client.get(f"/api/bus/{bus['id']}").json()["currentLocation"]["coordinates"] == [LNG, LAT]

    def test_location_update_unknown_bus(self, client):
        response = client.put("/api/bus/missing", json={"latitude": 19, "longitude": 72})
        assert response.status_code == 404

    def test_status(self, client, bus):
        response = client.patch(f"/api/bus/{bus['id']}/status", json={"status": "Delayed"})
        assert response.json()["status"] == "Delayed"
        response = client.patch(f"/api/bus/{bus['id']}/status", json={"status": "Lost"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status"

    def test_nearby(self, client, route):
        far_lat = LAT + math.degrees(5000 / EARTH_RADIUS_METERS)
        for number, lat in (("NEAR", LAT), ("FAR", far_lat)):
            client.post(
                "/api/bus",
                json={"busNumber": number, "route": route["id"], "coordinates": [LNG, lat]},
            )

        near = client.get("/api/bus/nearby", params={"lat": LAT, "lng": LNG, "maxDistanceMeters": 3000})
        assert [b["busNumber"] for b in near.json()] == ["NEAR"]

        wide = client.get("/api/bus/nearby", params={"lat": LAT, "lng": LNG, "maxDistanceMeters": 6000})
        assert [b["busNumber"] for b in wide.json()] == ["NEAR", "FAR"]
        assert wide.json()[1]["distanceMeters"] == pytest.approx(5000, abs=1)

    def test_nearby_requires_coordinates(self, client):
        response = client.get("/api/bus/nearby", params={"lat": "abc"})
        assert response.status_code == 400

    def test_delete(self, client, bus):
        assert client.delete(f"/api/bus/{bus['id']}").status_code == 200
        assert client.get(f"/api/bus/{bus['id']}").status_code == 404


# ============================================================
# DRIVERS
# ============================================================

class TestDriversApi:

    def _driver(self, client, name, phone):
        response = client.post("/api/drivers", json={"name": name, "phone": phone, "shift": "Evening"})
        assert response.status_code == 201
        return response.json()

    def test_reassignment(self, client, bus):
        d1 = self._driver(client, "Asha", "555-0001")
        d2 = self._driver(client, "Ravi", "555-0002")

        response = client.post("/api/drivers/assign", json={"driverId": d1["id"], "busId": bus["id"]})
        assert response.status_code == 200
        assert response.json()["bus"]["driverName"] == "Asha"

        response = client.post("/api/drivers/assign", json={"driverId": d2["id"], "busId": bus["id"]})
        assert response.json()["driver"]["assignedBus"]["id"] == bus["id"]

        drivers = {d["name"]: d for d in client.get("/api/drivers").json()}
        assert drivers["Asha"]["assignedBus"] is None
        assert drivers["Ravi"]["assignedBus"]["busNumber"] == "MH-01"
        bus_body = client.get(f"/api/bus/{bus['id']}").json()
        assert bus_body["driver"]["id"] == d2["id"]
        assert bus_body["driverPhone"] == "555-0002"

    def test_assign_unknown(self, client, bus):
        response = client.post("/api/drivers/assign", json={"driverId": "missing", "busId": bus["id"]})
        assert response.status_code == 404
        assert response.json()["message"] == "Driver not found"

    def test_duplicate_phone(self, client):
        self._driver(client, "Asha", "555-0001")
        response = client.post("/api/drivers", json={"name": "B", "phone": "555-0001"})
        assert response.status_code == 409

    def test_invalid_shift(self, client):
        response = client.post("/api/drivers", json={"name": "B", "phone": "1", "shift": "Afternoon"})
        assert response.status_code == 400

    def test_update_and_delete(self, client):
        driver = self._driver(client, "Asha", "555-0001")
        response = client.put(f"/api/drivers/{driver['id']}", json={"isActive": False})
        assert response.json()["isActive"] is False
        assert client.delete(f"/api/drivers/{driver['id']}").status_code == 200
        assert client.get("/api/drivers").json() == []


# ============================================================
# DASHBOARD
# ============================================================

class TestDashboardApi:

    def test_dashboard(self, client, route, bus):
        client.patch(f"/api/bus/{bus['id']}/status", json={"status": "Delayed"})
        body = client.get("/api/dashboard").json()
        assert body["summary"]["totalBuses"] == 1
        assert body["summary"]["delayedBuses"] == 1
        assert body["alerts"][0]["type"] == "delayed"
        assert body["routeStats"]["busiest"][0]["routeName"] == "Line 1"

    def test_alerts_limit(self, client, route, bus):
        client.put(f"/api/bus/{bus['id']}", json={"coordinates": [LNG, LAT], "emergency": True})
        client.patch(f"/api/bus/{bus['id']}/status", json={"status": "Delayed"})
        assert [a["type"] for a in client.get("/api/dashboard/alerts").json()] == ["delayed", "emergency"]
        assert len(client.get("/api/dashboard/alerts", params={"limit": 1}).json()) == 1
