import json

import httpx
import pytest

from bigday.api import ANONYMOUS, ApiClient, Credentials, unwrap
from bigday.errors import (ApiError, AuthenticationError, ConflictError, NotFoundError,
                           PermissionDenied, ServerValidationError)


class Recorder:
    """Answers every request with a fixed response and keeps the requests."""

    def __init__(self, status=200, body=None, content=None):
        self.status = status
        self.body = body
        self.content = content
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status, content=self.content)
        return httpx.Response(self.status, json=self.body)

    @property
    def last(self):
        return self.requests[-1]


class TestTransport:

    def test_static_and_bearer_headers(self, make_api):
        rec = Recorder(body={"data": []})
        make_api(rec).list_events()
        h = rec.last.headers
        assert h["apiKey"] == "k-123"
        assert h["author"] == "tests"
        assert h["Authorization"] == "Bearer tok-1"
        assert rec.last.url.path == "/api/events"

    def test_public_calls_send_no_token(self, make_api):
        rec = Recorder(body={"data": {"ok": True}})
        make_api(rec).submit_public_rsvp("ev-1", {"guestName": "Ana"})
        assert "Authorization" not in rec.last.headers
        assert rec.last.url.path == "/api/events/ev-1/rsvps/public"

    def test_with_credentials_shares_connection(self, settings):
        api = ApiClient(settings, ANONYMOUS, transport=httpx.MockTransport(Recorder(body={})))
        signed = api.with_credentials(Credentials("abc"))
        assert signed.credentials.is_authenticated
        assert not api.credentials.is_authenticated
        assert signed._http is api._http
        api.close()

    @pytest.mark.parametrize("status,klass", [(400, ServerValidationError), (401, AuthenticationError),
                                              (403, PermissionDenied), (404, NotFoundError),
                                              (422, ServerValidationError), (500, ApiError)])
    def test_error_mapping(self, make_api, status, klass):
        api = make_api(Recorder(status, body={"message": "nope"}))
        with pytest.raises(klass) as exc:
            api.list_tables("ev-1")
        assert exc.value.status_code == status
        assert exc.value.message == "nope"

    def test_conflict_carries_server_version(self, make_api):
        api = make_api(Recorder(409, body={"message": "stale", "version": 7}))
        with pytest.raises(ConflictError) as exc:
            api.put_floor_plan("ev-1", 3, [])
        assert exc.value.server_version == 7

    def test_network_error(self, make_api):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ApiError) as exc:
            make_api(boom).list_events()
        assert exc.value.status_code is None
        assert "Network error" in str(exc.value)

    def test_unwrap(self):
        assert unwrap({"success": True, "data": [1]}) == [1]
        assert unwrap({"data": None, "x": 1}) == {"data": None, "x": 1}
        assert unwrap([1, 2]) == [1, 2]


class TestResources:

    def test_login(self, make_api):
        rec = Recorder(body={"data": {"token": "T", "user": {"id": 1}}})
        res = make_api(rec, token=None).login("a@b.co", "pw")
        assert res == {"token": "T", "user": {"id": 1}}
        assert json.loads(rec.last.content) == {"email": "a@b.co", "password": "pw"}

    def test_login_without_token_fails(self, make_api):
        with pytest.raises(ApiError):
            make_api(Recorder(body={"data": {}})).login("a@b.co", "pw")

    def test_lists_are_mapped(self, make_api, backend):
        api = make_api(backend)
        guests = api.list_guests("ev-1")
        tables = api.list_tables("ev-1")
        assert [g.id for g in guests] == ["g1", "g2", "g3"]
        assert guests[1].table_id == "t1" and guests[1].seat_index == 0
        assert guests[0].is_vip
        assert [(t.id, t.capacity) for t in tables] == [("t1", 8), ("t2", 4)]

    def test_non_list_payload_is_empty(self, make_api):
        assert make_api(Recorder(body={"data": {"weird": 1}})).list_events() == []

    def test_assign_with_seat_index(self, make_api, backend):
        api = make_api(backend)
        api.assign_guest("g1", "t2", 3)
        assert backend.requests[-2:] == [("POST", "/guests/g1/assign-table/t2"), ("PUT", "/guests")]
        assert backend.guests["g1"]["seatIndex"] == 3
        assert backend.guests["g1"]["tableId"] == "t2"

    def test_assign_survives_failed_seat_write(self, make_api, backend, caplog):
        backend.fail_paths.add("/guests")
        assert make_api(backend).assign_guest("g1", "t2", 1) == {"ok": True}
        assert backend.guests["g1"]["tableId"] == "t2"
        assert "seatIndex" not in backend.guests["g1"]
        assert "seat 1 was not saved" in caplog.text

    def test_assign_without_seat_index(self, make_api, backend):
        make_api(backend).assign_guest("g3", "t1")
        assert backend.requests == [("POST", "/guests/g3/assign-table/t1")]

    def test_create_table_body(self, make_api):
        rec = Recorder(201, body={"data": {"id": "t9"}})
        assert make_api(rec).create_table("ev-1", "Head", 10) == {"id": "t9"}
        assert json.loads(rec.last.content) == {"eventGuid": "ev-1", "tableName": "Head", "maxSeats": 10}

    def test_import_is_multipart(self, make_api):
        rec = Recorder(body={"data": {"imported": 2}})
        make_api(rec).import_rsvps("ev-1", "guests.csv", b"name\nAna\n")
        assert rec.last.headers["Content-Type"].startswith("multipart/form-data")
        assert b"guests.csv" in rec.last.content

    def test_export_returns_bytes(self, make_api):
        rec = Recorder(content=b"PK\x03\x04")
        assert make_api(rec).export_rsvps("ev-1") == b"PK\x03\x04"

    def test_form_fields_sorted(self, make_api):
        rec = Recorder(body={"data": [
            {"id": "b", "label": "Diet", "type": 2, "order": 2, "options": "Veg, Vegan"},
            {"id": "a", "label": "Song", "type": "0", "order": 1}]})
        fields = make_api(rec).list_form_fields("ev-1")
        assert [f.id for f in fields] == ["a", "b"]
        assert fields[1].type_key == "select"
        assert fields[1].options == ["Veg", "Vegan"]


class TestDesignAndFloorPlan:

    def test_missing_design_is_none(self, make_api):
        assert make_api(Recorder(404, body={"message": "none"})).get_rsvp_design("ev-1") is None
        assert make_api(Recorder(body={"data": {"design": None}})).get_rsvp_design("ev-1") is None

    def test_design_body(self, make_api):
        body = {"id": 4, "version": 2, "design": {"blocks": []}}
        assert make_api(Recorder(body={"data": body})).get_rsvp_design("ev-1") == body

    def test_publish_path(self, make_api):
        rec = Recorder(body={"data": {}})
        make_api(rec).publish_rsvp_design("ev-1", 5)
        assert rec.last.method == "PUT"
        assert rec.last.url.path == "/api/events/ev-1/rsvp-design/publish/5"

    def test_floor_plan_absent(self, make_api, backend):
        assert make_api(backend).get_floor_plan("ev-1") is None

    def test_floor_plan_document(self, make_api):
        rec = Recorder(body={"version": "3", "items": [{"id": "a"}]})
        assert make_api(rec).get_floor_plan("ev-1") == {"version": 3, "items": [{"id": "a"}]}

    def test_put_floor_plan_version(self, make_api, backend):
        assert make_api(backend).put_floor_plan("ev-1", 4, []) == 5
        assert make_api(Recorder(body={})).put_floor_plan("ev-1", 4, []) == 5
