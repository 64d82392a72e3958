"""REST client for the events backend.

Every call is synchronous; the GUI runs them on pool workers (see
``bigday.queries``). Credentials are passed in explicitly rather than read
from storage inside the client.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings
from .errors import ApiError, NotFoundError
from .models import CostEntry, Event, FormFieldConfig, Guest, Rsvp, Table, UserAccount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}


ANONYMOUS = Credentials()


class Endpoints:
    LOGIN = "/auth/login"
    ME = "/auth/me"

    EVENTS = "/events"
    RSVPS = "/rsvps"
    TABLES = "/tables"
    TABLES_BULK = "/tables/bulk"
    GUESTS = "/guests"
    USERS = "/users"
    COSTING = "/costing"

    @staticmethod
    def event(event_id: str) -> str:
        return f"/events/{event_id}"

    @staticmethod
    def event_guests(event_id: str) -> str:
        return f"/events/{event_id}/guests"

    @staticmethod
    def event_tables(event_id: str) -> str:
        return f"/events/{event_id}/tables"

    @staticmethod
    def table(table_id: str) -> str:
        return f"/tables/{table_id}"

    @staticmethod
    def table_guests(table_id: str) -> str:
        return f"/tables/{table_id}/guests"

    @staticmethod
    def assign_table(guest_id: str, table_id: str) -> str:
        return f"/guests/{guest_id}/assign-table/{table_id}"

    @staticmethod
    def unassign_table(guest_id: str) -> str:
        return f"/guests/{guest_id}/unassign-table"

    @staticmethod
    def rsvp(rsvp_id: str) -> str:
        return f"/rsvps/{rsvp_id}"

    @staticmethod
    def import_rsvps(event_id: str) -> str:
        return f"/events/{event_id}/rsvps/import"

    @staticmethod
    def export_rsvps(event_id: str) -> str:
        return f"/events/{event_id}/rsvps/export"

    @staticmethod
    def public_submit(event_id: str) -> str:
        return f"/events/{event_id}/rsvps/public"

    @staticmethod
    def form_fields(event_id: str) -> str:
        return f"/events/{event_id}/rsvp-form-fields"

    @staticmethod
    def form_field(event_id: str, field_id: str) -> str:
        return f"/events/{event_id}/rsvp-form-fields/{field_id}"

    @staticmethod
    def rsvp_design(event_guid: str) -> str:
        return f"/events/{event_guid}/rsvp-design"

    @staticmethod
    def publish_design(event_guid: str, version: int) -> str:
        return f"/events/{event_guid}/rsvp-design/publish/{version}"

    @staticmethod
    def public_design_by_token(token: str) -> str:
        return f"/public/rsvp-design/{token}"

    @staticmethod
    def public_design_by_event(event_id: str) -> str:
        return f"/public/events/{event_id}/rsvp-design"

    @staticmethod
    def floor_plan(event_id: str) -> str:
        return f"/events/{event_id}/floor-plan"


def unwrap(body: Any) -> Any:
    # responses may come as {success, message, data}
    if isinstance(body, dict) and body.get("data") is not None:
        return body["data"]
    return body


def _as_list(body: Any) -> List[Dict[str, Any]]:
    data = unwrap(body)
    return data if isinstance(data, list) else []


class ApiClient:
    def __init__(self, settings: Settings, credentials: Credentials = ANONYMOUS,
                 transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self.credentials = credentials
        headers = {"Accept": "application/json"}
        if settings.api_key:
            headers["apiKey"] = settings.api_key
        if settings.api_author:
            headers["author"] = settings.api_author
        self._http = httpx.Client(base_url=settings.api_base, headers=headers,
                                  timeout=settings.request_timeout, transport=transport)

    def with_credentials(self, credentials: Credentials) -> "ApiClient":
        clone = ApiClient.__new__(ApiClient)
        clone.settings = self.settings
        clone.credentials = credentials
        clone._http = self._http
        return clone

    def close(self):
        self._http.close()

    # ---------- transport ----------
    def _send(self, method: str, path: str, *, json: Any = None, params: Optional[Dict] = None,
              files: Optional[Dict] = None, authenticated: bool = True) -> httpx.Response:
        headers = self.credentials.headers() if authenticated else {}
        logger.debug("%s %s", method, path)
        try:
            resp = self._http.request(method, path, json=json, params=params, files=files,
                                      headers=headers)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError.from_transport(e) from e
        if resp.is_error:
            err = ApiError.from_response(resp)
            logger.warning("%s %s -> %s %s", method, path, resp.status_code, err.message)
            raise err
        return resp

    def _json(self, method: str, path: str, **kw) -> Any:
        resp = self._send(method, path, **kw)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # ---------- auth ----------
    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = unwrap(self._json("POST", Endpoints.LOGIN, json={"email": email, "password": password},
                                 authenticated=False))
        if not isinstance(body, dict) or not body.get("token"):
            raise ApiError(None, "Login response did not include a token", body)
        return {"token": body["token"], "user": body.get("user") or {}}

    def me(self) -> Dict[str, Any]:
        return unwrap(self._json("GET", Endpoints.ME)) or {}

    # ---------- events ----------
    def list_events(self) -> List[Event]:
        return [Event.from_api(e) for e in _as_list(self._json("GET", Endpoints.EVENTS))]

    def get_event(self, event_id: str) -> Event:
        return Event.from_api(unwrap(self._json("GET", Endpoints.event(event_id))) or {})

    def create_event(self, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("POST", Endpoints.EVENTS, json=data))

    def update_event(self, event_id: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("PUT", Endpoints.event(event_id), json=data))

    def delete_event(self, event_id: str) -> Any:
        return unwrap(self._json("DELETE", Endpoints.event(event_id)))

    # ---------- guests ----------
    def list_guests(self, event_id: str) -> List[Guest]:
        return [Guest.from_api(g) for g in _as_list(self._json("GET", Endpoints.event_guests(event_id)))]

    def list_table_guests(self, table_id: str) -> List[Guest]:
        return [Guest.from_api(g) for g in _as_list(self._json("GET", Endpoints.table_guests(table_id)))]

    def create_guest(self, event_id: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("POST", Endpoints.GUESTS, json={"eventGuid": event_id, **data}))

    def update_guest(self, guest_id: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("PUT", Endpoints.GUESTS, json={"guestId": guest_id, **data}))

    def assign_guest(self, guest_id: str, table_id: str, seat_index: Optional[int] = None) -> Any:
        """Seat a guest at a table, then record the seat index.

        The table assignment is the part that counts: once it succeeds, a failed
        seat-index write is logged and the guest keeps the first free seat.
        """
        result = unwrap(self._json("POST", Endpoints.assign_table(guest_id, table_id)))
        if seat_index is not None:
            try:
                self.update_guest(guest_id, {"tableId": table_id, "seatIndex": seat_index})
            except ApiError as e:
                logger.warning("Guest %s seated at %s but seat %s was not saved: %s",
                               guest_id, table_id, seat_index, e)
        return result

    def unassign_guest(self, guest_id: str) -> Any:
        return unwrap(self._json("POST", Endpoints.unassign_table(guest_id)))

    # ---------- tables ----------
    def list_tables(self, event_id: str) -> List[Table]:
        return [Table.from_api(t) for t in _as_list(self._json("GET", Endpoints.event_tables(event_id)))]

    def get_table(self, table_id: str) -> Table:
        return Table.from_api(unwrap(self._json("GET", Endpoints.table(table_id))) or {})

    def create_table(self, event_id: str, name: str, capacity: int) -> Any:
        return unwrap(self._json("POST", Endpoints.TABLES, json={
            "eventGuid": event_id, "tableName": name, "maxSeats": capacity}))

    def update_table(self, table_id: str, name: str, capacity: int) -> Any:
        return unwrap(self._json("PUT", Endpoints.table(table_id), json={
            "tableName": name, "maxSeats": capacity}))

    def delete_table(self, table_id: str) -> Any:
        return unwrap(self._json("DELETE", Endpoints.table(table_id)))

    def bulk_create_tables(self, event_id: str, prefix: str, quantity: int, capacity: int) -> Any:
        return unwrap(self._json("POST", Endpoints.TABLES_BULK, json={
            "eventGuid": event_id, "tableName": prefix, "quantity": quantity, "maxSeats": capacity}))

    # ---------- generic resources ----------
    def list_resource(self, base: str) -> List[Dict[str, Any]]:
        return _as_list(self._json("GET", base))

    def get_resource(self, base: str, rid: str) -> Any:
        return unwrap(self._json("GET", f"{base}/{rid}"))

    def create_resource(self, base: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("POST", base, json=data))

    def update_resource(self, base: str, rid: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("PUT", f"{base}/{rid}", json=data))

    def delete_resource(self, base: str, rid: str) -> Any:
        return unwrap(self._json("DELETE", f"{base}/{rid}"))

    # ---------- RSVPs ----------
    def list_rsvps(self, event_id: Optional[str] = None) -> List[Rsvp]:
        """All RSVPs, or those of one event when ``event_id`` is given.

        Rows that carry no ``eventGuid`` are kept either way.
        """
        rows = [Rsvp.from_api(r) for r in self.list_resource(Endpoints.RSVPS)]
        if event_id is None:
            return rows
        return [r for r in rows if not r.event_guid or r.event_guid == event_id]

    def get_rsvp(self, rsvp_id: str) -> Rsvp:
        return Rsvp.from_api(self.get_resource(Endpoints.RSVPS, rsvp_id) or {})

    def create_rsvp(self, data: Dict[str, Any]) -> Any:
        return self.create_resource(Endpoints.RSVPS, data)

    def update_rsvp(self, rsvp_id: str, data: Dict[str, Any]) -> Any:
        return self.update_resource(Endpoints.RSVPS, rsvp_id, data)

    def delete_rsvp(self, rsvp_id: str) -> Any:
        return self.delete_resource(Endpoints.RSVPS, rsvp_id)

    # ---------- costing ----------
    def list_costs(self) -> List[CostEntry]:
        return [CostEntry.from_api(c) for c in self.list_resource(Endpoints.COSTING)]

    def create_cost(self, description: str, amount: float) -> Any:
        return self.create_resource(Endpoints.COSTING, {"description": description, "amount": amount})

    def update_cost(self, cost_id: str, description: str, amount: float) -> Any:
        return self.update_resource(Endpoints.COSTING, cost_id, {"description": description, "amount": amount})

    def delete_cost(self, cost_id: str) -> Any:
        return self.delete_resource(Endpoints.COSTING, cost_id)

    # ---------- users ----------
    def list_users(self) -> List[UserAccount]:
        return [UserAccount.from_api(u) for u in self.list_resource(Endpoints.USERS)]

    # ---------- RSVP files ----------
    def import_rsvps(self, event_id: str, filename: str, content: bytes) -> Any:
        files = {"file": (filename, content, "text/csv")}
        return unwrap(self._json("POST", Endpoints.import_rsvps(event_id), files=files))

    def export_rsvps(self, event_id: str) -> bytes:
        return self._send("GET", Endpoints.export_rsvps(event_id)).content

    # ---------- form fields ----------
    def list_form_fields(self, event_id: str) -> List[FormFieldConfig]:
        rows = _as_list(self._json("GET", Endpoints.form_fields(event_id)))
        fields = [FormFieldConfig.from_api(r) for r in rows]
        return sorted(fields, key=lambda f: f.order)

    def create_form_field(self, event_id: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("POST", Endpoints.form_fields(event_id), json=data))

    def update_form_field(self, event_id: str, field_id: str, data: Dict[str, Any]) -> Any:
        return unwrap(self._json("PUT", Endpoints.form_field(event_id, field_id), json=data))

    def delete_form_field(self, event_id: str, field_id: str) -> Any:
        return unwrap(self._json("DELETE", Endpoints.form_field(event_id, field_id)))

    # ---------- RSVP design ----------
    def get_rsvp_design(self, event_guid: str) -> Optional[Dict[str, Any]]:
        """Raw design document, or None when the event has no design yet."""
        try:
            body = unwrap(self._json("GET", Endpoints.rsvp_design(event_guid)))
        except NotFoundError:
            return None
        if not isinstance(body, dict) or not body.get("design"):
            return None
        return body

    def save_rsvp_design(self, event_guid: str, payload: Dict[str, Any]) -> Any:
        return unwrap(self._json("POST", Endpoints.rsvp_design(event_guid), json=payload))

    def publish_rsvp_design(self, event_guid: str, version: int) -> Any:
        return unwrap(self._json("PUT", Endpoints.publish_design(event_guid, version), json={}))

    def public_design_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        body = unwrap(self._json("GET", Endpoints.public_design_by_token(token), authenticated=False))
        return body if isinstance(body, dict) and body.get("design") else None

    def public_design_by_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        try:
            body = unwrap(self._json("GET", Endpoints.public_design_by_event(event_id), authenticated=False))
        except NotFoundError:
            return None
        return body if isinstance(body, dict) and body.get("design") else None

    def submit_public_rsvp(self, event_id: str, payload: Dict[str, Any]) -> Any:
        return unwrap(self._json("POST", Endpoints.public_submit(event_id), json=payload,
                                 authenticated=False))

    # ---------- floor plan document ----------
    def get_floor_plan(self, event_id: str) -> Optional[Dict[str, Any]]:
        try:
            body = unwrap(self._json("GET", Endpoints.floor_plan(event_id)))
        except NotFoundError:
            return None
        if not isinstance(body, dict):
            return None
        return {"version": int(body.get("version") or 0), "items": list(body.get("items") or [])}

    def put_floor_plan(self, event_id: str, version: int, items: List[Dict[str, Any]]) -> int:
        body = unwrap(self._json("PUT", Endpoints.floor_plan(event_id),
                                 json={"version": version, "items": items}))
        if isinstance(body, dict) and body.get("version") is not None:
            return int(body["version"])
        return version + 1
