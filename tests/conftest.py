# tests/conftest.py
import json
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import httpx
import pytest
from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication

from bigday.api import ApiClient, Credentials
from bigday.config import Settings
from bigday.models import Guest, Table
from bigday.queries import QueryCache, inline_executor
from bigday.storage import LocalStorage


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """One offscreen QApplication for the whole run."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, api_base="http://test.local/api", api_key="k-123",
                    api_author="tests", layout_push_delay_ms=10)


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    qs = QSettings(str(tmp_path / "console.ini"), QSettings.IniFormat)
    return LocalStorage(settings=qs)


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache(executor=inline_executor)


@pytest.fixture
def make_api(settings):
    """Build an ApiClient whose requests go to ``handler(request) -> httpx.Response``."""
    clients = []

    def _make(handler, token: str = "tok-1") -> ApiClient:
        client = ApiClient(settings, Credentials(token), transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()


class FakeBackend:
    """In-memory tables and guests behind the seating endpoints."""

    def __init__(self, event_id: str = "ev-1"):
        self.event_id = event_id
        self.tables = {"t1": {"id": "t1", "tableName": "Family", "maxSeats": 8},
                       "t2": {"id": "t2", "tableName": "Friends", "maxSeats": 4}}
        self.guests = {
            "g1": {"guestId": "g1", "name": "Ana Ruiz", "pax": 2, "flag": "VIP", "tableId": None},
            "g2": {"guestId": "g2", "name": "Ben Ode", "phoneNo": "555-0101", "tableId": "t1", "seatIndex": 0},
            "g3": {"guestId": "g3", "name": "Cleo Park", "tableId": None},
        }
        self.floor_plan = None
        self.requests = []
        self.fail_paths = set()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.replace("/api", "", 1)
        self.requests.append((request.method, path))
        if path in self.fail_paths:
            return httpx.Response(500, json={"message": "boom"})
        parts = path.strip("/").split("/")
        if request.method == "GET" and path == f"/events/{self.event_id}/guests":
            return httpx.Response(200, json={"success": True, "data": list(self.guests.values())})
        if request.method == "GET" and path == f"/events/{self.event_id}/tables":
            return httpx.Response(200, json={"data": list(self.tables.values())})
        if request.method == "POST" and parts[0] == "guests" and len(parts) > 2 and parts[2] == "assign-table":
            self.guests[parts[1]]["tableId"] = parts[3]
            return httpx.Response(200, json={"data": {"ok": True}})
        if request.method == "POST" and parts[0] == "guests" and len(parts) > 2 and parts[2] == "unassign-table":
            self.guests[parts[1]]["tableId"] = None
            self.guests[parts[1]]["seatIndex"] = None
            return httpx.Response(200, json={"data": {"ok": True}})
        if request.method == "POST" and path == "/guests":
            body = json.loads(request.content)
            gid = f"g{len(self.guests) + 1}"
            self.guests[gid] = {"guestId": gid, **{k: v for k, v in body.items() if k != "eventGuid"}}
            return httpx.Response(201, json={"data": self.guests[gid]})
        if request.method == "PUT" and path == "/guests":
            body = json.loads(request.content)
            self.guests[body["guestId"]].update({k: v for k, v in body.items() if k != "guestId"})
            return httpx.Response(200, json={"data": body})
        if request.method == "POST" and path == "/tables":
            body = json.loads(request.content)
            tid = f"t{len(self.tables) + 1}"
            self.tables[tid] = {"id": tid, "tableName": body["tableName"], "maxSeats": body["maxSeats"]}
            return httpx.Response(201, json={"data": self.tables[tid]})
        if parts[0] == "tables" and len(parts) == 2 and parts[1] in self.tables:
            if request.method == "GET":
                return httpx.Response(200, json={"data": self.tables[parts[1]]})
            if request.method == "DELETE":
                del self.tables[parts[1]]
                return httpx.Response(200, json={"data": True})
        if request.method == "GET" and parts[0] == "tables" and parts[-1] == "guests":
            rows = [g for g in self.guests.values() if g.get("tableId") == parts[1]]
            return httpx.Response(200, json={"data": rows})
        if request.method == "GET" and path.endswith("/floor-plan"):
            if self.floor_plan is None:
                return httpx.Response(404, json={"message": "Not found"})
            return httpx.Response(200, json={"data": self.floor_plan})
        if request.method == "PUT" and path.endswith("/floor-plan"):
            body = json.loads(request.content)
            self.floor_plan = {"version": body["version"] + 1, "items": body["items"]}
            return httpx.Response(200, json={"version": body["version"] + 1})
        return httpx.Response(404, json={"message": f"no route {request.method} {path}"})


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sample_tables():
    return [Table(id="t1", name="Family", capacity=8), Table(id="t2", name="Friends", capacity=4)]


@pytest.fixture
def sample_guests():
    return [
        Guest(id="g1", name="Ana Ruiz", pax=2, flag="VIP"),
        Guest(id="g2", name="Ben Ode", phone="555-0101", table_id="t1", seat_index=0),
        Guest(id="g3", name="Cleo Park"),
    ]
