import json

import pytest
from PySide6.QtWidgets import QDialogButtonBox

from bigday.dialogs import (BulkTablesDialog, EventFormDialog, QuestionFormDialog, TableFormDialog, validate_bulk,
                            validate_cost, validate_event, validate_guest, validate_question, validate_rsvp,
                            validate_table)
from bigday.errors import ValidationError
from bigday.models import Event, Table
from start_window import event_label, parse_recent, recent_entry, validate_login


class TestValidators:

    def test_table_capacity(self):
        assert validate_table("Head", 1) is None
        assert validate_table("", 8) is None
        assert validate_table("Head", 0) == "Capacity must be at least 1"

    @pytest.mark.parametrize("prefix,qty,cap,message", [
        ("", 5, 10, "Please enter a table prefix (e.g., 'family', 'vip', 'guest')"),
        ("vip", 0, 10, "Quantity must be at least 1"),
        ("vip", 5, 0, "Capacity must be at least 1"),
    ])
    def test_bulk_errors(self, prefix, qty, cap, message):
        assert validate_bulk(prefix, qty, cap) == message

    def test_bulk_ok(self):
        assert validate_bulk("family", 3, 8) is None

    def test_login(self):
        validate_login("a@b.co", "pw")
        with pytest.raises(ValidationError) as exc:
            validate_login("  ", "")
        assert exc.value.errors == {"email": "Email is required", "password": "Password is required"}
        assert str(exc.value) == "Email is required; Password is required"


    def test_guest_needs_a_name(self):
        assert validate_guest({"name": "  "}) == "Guest name is required"
        assert validate_guest({"name": "Ana"}) is None

    def test_rsvp_collects_every_error(self):
        assert validate_rsvp({"guestName": "", "phoneNo": "", "noOfPax": -1}) == {
            "guestName": "Guest name is required",
            "phoneNo": "Phone number is required",
            "noOfPax": "Number of pax cannot be negative"}
        assert validate_rsvp({"guestName": "Ana", "phoneNo": "555", "noOfPax": 0}) == {}
        assert validate_rsvp({"guestName": "Ana", "phoneNo": "555"}) == {"noOfPax": "Number of pax is required"}

    @pytest.mark.parametrize("values,message", [
        ({"text": "", "type": 0}, "Question text is required"),
        ({"text": "Meal", "type": 2, "options": " "}, "Add at least one option (comma-separated)"),
        ({"text": "Meal", "type": 3, "options": "Fish, Beef"}, None),
        ({"text": "Song", "type": 0, "options": None}, None),
    ])
    def test_question(self, values, message):
        assert validate_question(values) == message

    def test_cost(self):
        assert validate_cost("", 10) == "Description is required"
        assert validate_cost("Venue", -1) == "Amount cannot be negative"
        assert validate_cost("Venue", 0) is None

    def test_event(self):
        assert validate_event("", "2026-06-20") == "Title is required"
        assert validate_event("Ana & Ben", "20/06/2026") == "Date must look like YYYY-MM-DD"
        assert validate_event("Ana & Ben", "2026-06-20T00:00:00") is None

class TestTableDialogs:

    def test_invalid_capacity_shows_inline_error(self):
        dlg = TableFormDialog()
        sent = []
        dlg.submitted.connect(lambda *a: sent.append(a))
        dlg.sp_capacity.setValue(0)
        dlg._on_ok()
        assert sent == []
        assert dlg.lbl_error.text() == "Capacity must be at least 1"

    def test_create_emits_values(self):
        dlg = TableFormDialog()
        sent = []
        dlg.submitted.connect(lambda *a: sent.append(a))
        dlg.ed_name.setText("  Head table ")
        dlg._on_ok()
        assert sent == [("Head table", 10)]
        assert not dlg.is_edit

    def test_edit_prefills(self):
        dlg = TableFormDialog(Table(id="t1", name="Family", capacity=6))
        assert dlg.is_edit
        assert dlg.ed_name.text() == "Family"
        assert dlg.sp_capacity.value() == 6
        got = []
        dlg.deleteRequested.connect(lambda: got.append(True))
        dlg._on_delete()
        assert got == [True]

    def test_bulk_button_tracks_quantity(self):
        dlg = BulkTablesDialog()
        dlg.sp_quantity.setValue(3)
        assert dlg.buttons.button(QDialogButtonBox.Ok).text() == "Create 3 Tables"
        sent = []
        dlg.submitted.connect(lambda *a: sent.append(a))
        dlg._on_ok()
        assert sent == []
        dlg.ed_prefix.setText("vip")
        dlg._on_ok()
        assert sent == [("vip", 3, 10)]


class TestRecentEvents:

    def test_entry_is_stable_json(self):
        entry = recent_entry(Event(id="ev-1", title="Wedding", date="2026-06-01T00:00:00"))
        assert json.loads(entry) == {"id": "ev-1", "title": "Wedding", "date": "2026-06-01T00:00:00"}
        assert entry == recent_entry(Event(id="ev-1", title="Wedding", date="2026-06-01T00:00:00"))

    def test_parse_skips_bad_entries(self):
        entries = [recent_entry(Event(id="a", title="A")), "not json", json.dumps({"title": "no id"}),
                   json.dumps([1, 2])]
        assert [e.id for e in parse_recent(entries)] == ["a"]

    def test_label(self):
        assert event_label(Event(id="a", title="Gala", date="2026-06-01T10:00")) == "Gala   ·   2026-06-01"
        assert event_label(Event(id="a")) == "Untitled event"


class TestValueDialogs:

    def test_event_dialog_prefills_date(self):
        dlg = EventFormDialog(Event(id="ev-1", title="Ana & Ben", date="2026-06-20T00:00:00"))
        sent = []
        dlg.submitted.connect(sent.append)
        dlg._on_ok()
        assert sent == [{"title": "Ana & Ben", "date": "2026-06-20"}]

    def test_event_dialog_requires_title(self):
        dlg = EventFormDialog()
        sent = []
        dlg.submitted.connect(sent.append)
        dlg._on_ok()
        assert sent == []
        assert dlg.lbl_error.text() == "Title is required"

    def test_question_options_follow_type(self):
        dlg = QuestionFormDialog()
        assert not dlg.ed_options.isEnabled()
        dlg.cb_type.setCurrentText("checkbox")
        assert dlg.ed_options.isEnabled()
        dlg.ed_text.setText("Allergies")
        dlg.ed_options.setText("Nuts, Gluten")
        sent = []
        dlg.submitted.connect(sent.append)
        dlg._on_ok()
        assert sent == [{"text": "Allergies", "type": 4, "isRequired": False,
                         "options": "Nuts, Gluten", "order": 0}]
