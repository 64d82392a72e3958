import json

import httpx
import pytest
from PySide6.QtCore import QDate

from bigday.admin import CostingPage, GuestsPage, QuestionsPage, RsvpsPage, UsersPage
from bigday.models import Event
from bigday.queries import form_fields_key, guests_key
from start_window import StartWindow, recent_entry

EVENT = Event(id="ev-1", title="Ana & Ben")


class AdminServer:
    """RSVPs, costing, users and questions in memory; seating routes go to ``seating``."""

    def __init__(self, seating):
        self.seating = seating
        self.requests = seating.requests
        self.bodies = []
        self.collections = {
            "rsvps": {
                "r1": {"rsvpId": "r1", "rsvpGuid": "rg-1", "guestName": "Dana Lee", "noOfPax": 2,
                       "phoneNo": "555-0200", "status": "Yes", "guestType": "Friend", "eventGuid": "ev-1"},
                "r2": {"rsvpId": "r2", "guestName": "Someone Else", "eventGuid": "ev-2"},
            },
            "costing": {
                "c1": {"id": "c1", "description": "Venue", "amount": 1200.5},
                "c2": {"id": "c2", "description": "Flowers", "amount": 300},
            },
            "users": {"u1": {"id": "u1", "name": "Admin", "email": "admin@bigday.test", "roles": ["admin"]}},
            "rsvp-form-fields": {
                "f1": {"id": "f1", "text": "Dietary needs", "type": 2, "options": "Veg, Vegan",
                       "order": 1, "isRequired": True},
            },
        }

    def __call__(self, request):
        path = request.url.path.replace("/api", "", 1)
        parts = path.strip("/").split("/")
        if parts[:2] == ["events", "ev-1"] and len(parts) > 2 and parts[2] == "rsvp-form-fields":
            parts = parts[2:]
        if parts[0] not in self.collections:
            return self.seating(request)
        self.requests.append((request.method, path))
        rows = self.collections[parts[0]]
        body = json.loads(request.content) if request.content else None
        if request.method == "GET" and len(parts) == 1:
            return httpx.Response(200, json={"data": list(rows.values())})
        if request.method == "GET":
            return httpx.Response(200, json={"data": rows[parts[1]]})
        if request.method == "POST":
            self.bodies.append(body)
            rid = f"{parts[0][0]}{len(rows) + 1}"
            rows[rid] = {"id": rid, **body}
            return httpx.Response(201, json={"data": rows[rid]})
        if request.method == "PUT":
            self.bodies.append(body)
            rows[parts[1]].update(body)
            return httpx.Response(200, json={"data": rows[parts[1]]})
        del rows[parts[1]]
        return httpx.Response(200, json={"data": True})


@pytest.fixture
def server(backend):
    return AdminServer(backend)


@pytest.fixture
def api(server, make_api):
    return make_api(server)


def cells(page, row):
    return [page.table.item(row, c).text() for c in range(page.table.columnCount())]


class TestGuestsPage:

    @pytest.fixture
    def page(self, api, cache):
        return GuestsPage(EVENT, api, cache)

    def test_lists_guests_with_tables(self, page):
        assert [g.id for g in page.rows] == ["g1", "g2", "g3"]
        assert cells(page, 1)[:6] == ["Ben Ode", "555-0101", "1", "Other", "Family", "1"]
        assert page.lbl_footer.text() == "3 guests"
        assert page.btn_delete.isHidden()

    def test_reuses_loaded_guests(self, api, cache, backend):
        cache.register(guests_key("ev-1"), lambda: api.list_guests("ev-1"))
        before = backend.requests.count(("GET", "/events/ev-1/guests"))
        page = GuestsPage(EVENT, api, cache)
        assert backend.requests.count(("GET", "/events/ev-1/guests")) == before
        assert len(page.rows) == 3

    def test_add_guest(self, page, backend):
        page.open_form(None)
        dlg = page._dialog
        dlg.ed_name.setText("Dev Patel")
        dlg.ed_phone.setText("555-0300")
        dlg.cb_table.setCurrentIndex(dlg.cb_table.findData("t2"))
        dlg._on_ok()

        assert backend.guests["g4"]["name"] == "Dev Patel"
        assert backend.guests["g4"]["tableId"] == "t2"
        assert "Dev Patel" in [g.name for g in page.rows]
        assert page.lbl_status.text() == "Guest added"
        assert page._dialog is None

    def test_name_is_required(self, page, backend):
        page.open_form(None)
        page._dialog._on_ok()
        assert page._dialog.lbl_error.text() == "Guest name is required"
        assert ("POST", "/guests") not in backend.requests

    def test_moving_guest_gives_up_seat(self, page, backend):
        page.table.setCurrentCell(1, 0)
        page.edit_selected()
        dlg = page._dialog
        assert dlg.ed_name.text() == "Ben Ode"
        dlg.cb_table.setCurrentIndex(dlg.cb_table.findData("t2"))
        dlg._on_ok()
        assert backend.guests["g2"]["tableId"] == "t2"
        assert backend.guests["g2"]["seatIndex"] is None

    def test_table_filter(self, page, backend):
        page.cb_table.setCurrentIndex(page.cb_table.findData("t1"))
        assert ("GET", "/tables/t1/guests") in backend.requests
        assert [g.id for g in page.rows] == ["g2"]
        page.cb_table.setCurrentIndex(0)
        assert len(page.rows) == 3

    def test_edit_without_selection(self, page):
        page.edit_selected()
        assert page._dialog is None
        assert page.lbl_status.text() == "Select a guest first."


class TestRsvpsPage:

    @pytest.fixture
    def page(self, api, cache):
        return RsvpsPage(EVENT, api, cache)

    def test_only_this_events_rsvps(self, page):
        assert [r.id for r in page.rows] == ["r1"]
        assert cells(page, 0) == ["Dana Lee", "2", "555-0200", "Yes", "Friend", ""]

    def test_create_refreshes_guests(self, page, server, backend, api, cache):
        cache.register(guests_key("ev-1"), lambda: api.list_guests("ev-1"))
        guest_reads = backend.requests.count(("GET", "/events/ev-1/guests"))
        page.open_form(None)
        dlg = page._dialog
        dlg.ed_name.setText("Eli Ford")
        dlg.ed_phone.setText("555-0400")
        dlg._on_ok()

        assert server.bodies[-1] == {"eventId": "ev-1", "guestName": "Eli Ford", "noOfPax": 1,
                                     "phoneNo": "555-0400", "guestType": "Family", "status": "Yes",
                                     "remarks": ""}
        assert backend.requests.count(("GET", "/events/ev-1/guests")) == guest_reads + 1
        assert page.lbl_status.text() == "RSVP added"

    def test_form_lists_every_problem(self, page):
        page.open_form(None)
        dlg = page._dialog
        dlg._on_ok()
        assert set(dlg.errors) == {"guestName", "phoneNo"}
        assert dlg.lbl_error.text() == "Guest name is required\nPhone number is required"

    def test_edit_keeps_rsvp_guid(self, page, server):
        page.table.setCurrentCell(0, 0)
        page.edit_selected()
        dlg = page._dialog
        dlg.cb_status.setCurrentText("Maybe")
        dlg._on_ok()
        assert server.bodies[-1]["rsvpGuid"] == "rg-1"
        assert server.collections["rsvps"]["r1"]["status"] == "Maybe"
        assert cells(page, 0)[3] == "Maybe"

    def test_delete_after_confirmation(self, page, server, backend, monkeypatch):
        monkeypatch.setattr(page, "confirm_delete", lambda row: True)
        page.table.setCurrentCell(0, 0)
        page.delete_selected()
        assert ("DELETE", "/rsvps/r1") in backend.requests
        assert page.rows == []
        assert page.lbl_status.text() == "RSVP deleted"

    def test_declined_delete(self, page, backend, monkeypatch):
        monkeypatch.setattr(page, "confirm_delete", lambda row: False)
        page.table.setCurrentCell(0, 0)
        page.delete_selected()
        assert ("DELETE", "/rsvps/r1") not in backend.requests

    def test_selection_shows_full_record(self, page, backend):
        page.table.setCurrentCell(0, 0)
        assert ("GET", "/rsvps/r1") in backend.requests
        assert "Dana Lee" in page.lbl_detail.text()
        assert "Phone: 555-0200" in page.lbl_detail.text()


class TestQuestionsPage:

    @pytest.fixture
    def page(self, api, cache):
        return QuestionsPage(EVENT, api, cache)

    def test_lists_questions(self, page):
        assert cells(page, 0) == ["1", "Dietary needs", "select", "Yes", "Veg, Vegan"]

    def test_new_text_question(self, page, server, cache):
        page.open_form(None)
        dlg = page._dialog
        dlg.ed_text.setText("Song request")
        dlg._on_ok()
        assert server.bodies[-1] == {"text": "Song request", "type": 0, "isRequired": False,
                                     "options": None, "order": 0}
        # the designer reads the same query
        assert "Song request" in [f.label for f in cache.get(form_fields_key("ev-1"))]

    def test_choice_question_needs_options(self, page, server):
        page.open_form(None)
        dlg = page._dialog
        dlg.ed_text.setText("Meal")
        dlg.cb_type.setCurrentText("radio")
        dlg._on_ok()
        assert dlg.lbl_error.text() == "Add at least one option (comma-separated)"
        assert server.bodies == []

    def test_edit_sends_id(self, page, server):
        page.table.setCurrentCell(0, 0)
        page.edit_selected()
        dlg = page._dialog
        assert dlg.ed_options.text() == "Veg, Vegan"
        dlg.chk_required.setChecked(False)
        dlg._on_ok()
        assert server.bodies[-1]["id"] == "f1"
        assert server.bodies[-1]["isRequired"] is False


class TestCostingPage:

    def test_total(self, api, cache):
        page = CostingPage(api, cache)
        assert cells(page, 0) == ["Venue", "$1,200.50"]
        assert page.lbl_footer.text() == "Total: $1,500.50"

    def test_add_cost(self, api, cache, server):
        page = CostingPage(api, cache)
        page.open_form(None)
        dlg = page._dialog
        dlg.ed_description.setText("Band")
        dlg.sp_amount.setValue(800)
        dlg._on_ok()
        assert server.bodies[-1] == {"description": "Band", "amount": 800.0}
        assert page.lbl_footer.text() == "Total: $2,300.50"


class TestUsersPage:

    def test_read_only_list(self, api, cache):
        page = UsersPage(api, cache)
        assert cells(page, 0) == ["Admin", "admin@bigday.test", "admin"]
        assert page.btn_add.isHidden() and page.btn_edit.isHidden() and page.btn_delete.isHidden()


class EventsServer:
    def __init__(self):
        self.events = {"ev-1": {"eventGuid": "ev-1", "eventName": "Ana & Ben", "eventDate": "2026-06-20"}}
        self.bodies = []

    def __call__(self, request):
        path = request.url.path.replace("/api", "", 1)
        parts = path.strip("/").split("/")
        if path == "/auth/me":
            return httpx.Response(200, json={"data": {"name": "Ana", "email": "ana@bigday.test"}})
        body = json.loads(request.content) if request.content else None
        if request.method == "GET":
            return httpx.Response(200, json={"data": list(self.events.values())})
        if request.method == "POST":
            self.bodies.append(body)
            eid = f"ev-{len(self.events) + 1}"
            self.events[eid] = {"eventGuid": eid, "eventName": body["title"], "eventDate": body["date"]}
            return httpx.Response(201, json={"data": self.events[eid]})
        if request.method == "PUT":
            self.bodies.append(body)
            self.events[parts[1]].update({"eventName": body["title"], "eventDate": body["date"]})
            return httpx.Response(200, json={"data": self.events[parts[1]]})
        del self.events[parts[1]]
        return httpx.Response(200, json={"data": True})


class TestStartWindowEvents:

    @pytest.fixture
    def events(self):
        return EventsServer()

    @pytest.fixture
    def win(self, settings, storage, make_api, cache, events):
        w = StartWindow(settings, storage, make_api(events), cache)
        w._signed_in("tok-1")
        yield w
        w.deleteLater()

    def test_signed_in_user_is_shown(self, win):
        assert win.lbl_user.text() == "Signed in as Ana"
        assert win.list_events.count() == 1

    def test_create_event(self, win, events):
        win.open_event_form(None)
        dlg = win._dialog
        dlg.ed_title.setText("Cleo & Dan")
        dlg.ed_date.setDate(QDate(2027, 5, 1))
        dlg._on_ok()
        assert events.bodies[-1] == {"title": "Cleo & Dan", "date": "2027-05-01"}
        assert win.list_events.count() == 2

    def test_edit_event(self, win, events):
        win.list_events.setCurrentRow(0)
        win._edit_selected()
        dlg = win._dialog
        assert dlg.ed_title.text() == "Ana & Ben"
        dlg.ed_title.setText("Ana & Ben (reception)")
        dlg._on_ok()
        assert events.bodies[-1] == {"title": "Ana & Ben (reception)", "date": "2026-06-20"}
        assert win.list_events.item(0).text().startswith("Ana & Ben (reception)")

    def test_delete_event_forgets_recent(self, win, events, storage, monkeypatch):
        storage.push_recent(recent_entry(Event(id="ev-1", title="Ana & Ben")))
        win._load_recent()
        monkeypatch.setattr(win, "confirm_delete", lambda event: True)
        win.list_events.setCurrentRow(0)
        win._delete_selected()
        assert events.events == {}
        assert win.list_events.count() == 0
        assert win.list_recent.count() == 0
