"""Admin list pages: guests, RSVPs, RSVP questions, costing and users.

Each page is a table over one cached query. Writes go through
``QueryCache.run_mutation`` and refresh the page's keys afterwards, so the
floor plan and the designer see the same data without extra wiring.
"""
from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (QAbstractItemView, QComboBox, QHBoxLayout, QLabel, QMessageBox, QPushButton,
                               QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget)

from .api import ApiClient
from .dialogs import CostFormDialog, GuestFormDialog, QuestionFormDialog, RsvpFormDialog
from .errors import ApiError
from .models import CostEntry, Event, FormFieldConfig, Guest, Rsvp, Table, UserAccount
from .queries import COSTING_KEY, USERS_KEY, QueryCache, form_fields_key, guests_key, rsvps_key, tables_key


def guest_payload(values: Dict[str, Any]) -> Dict[str, Any]:
    # the guests API reads "name", older builds read "guestName"
    return {"name": values["name"], "guestName": values["name"], "phoneNo": values["phoneNo"],
            "pax": values["pax"], "flag": values["flag"], "notes": values["notes"],
            "tableId": values.get("tableId")}


def rsvp_payload(event_id: str, values: Dict[str, Any], rsvp: Optional[Rsvp] = None) -> Dict[str, Any]:
    payload = {"eventId": event_id, **values}
    if rsvp is not None and rsvp.rsvp_guid:
        payload["rsvpGuid"] = rsvp.rsvp_guid
    return payload


def rsvp_detail(r: Rsvp) -> str:
    lines = [f"<b>{r.guest_name or 'Unnamed guest'}</b>",
             f"Status: {r.status}   ·   Pax: {r.pax}   ·   Type: {r.guest_type}"]
    if r.phone:
        lines.append(f"Phone: {r.phone}")
    if r.remarks:
        lines.append(f"Remarks: {r.remarks}")
    return "<br>".join(lines)


def format_amount(amount: float) -> str:
    return f"${amount:,.2f}"


class ResourcePage(QWidget):
    """Query-backed table with add, edit and delete actions.

    Subclasses set the columns, turn a row into cells and supply the form
    dialog and the API calls; then call ``bind`` to start the query.
    """

    columns: Tuple[str, ...] = ()
    noun = "item"
    label = "Item"
    editable = True
    deletable = True

    def __init__(self, cache: QueryCache, key: str, parent=None):
        super().__init__(parent)
        self.cache = cache
        self.key = key
        self._rows: List[Any] = []
        self._dialog = None

        lay = QVBoxLayout(self); lay.setContentsMargins(12, 12, 12, 12); lay.setSpacing(8)
        self.bar = QHBoxLayout()
        self.btn_add = QPushButton(f"Add {self.noun}")
        self.btn_edit = QPushButton("Edit")
        self.btn_delete = QPushButton("Delete")
        self.btn_refresh = QPushButton("Refresh")
        for b in (self.btn_add, self.btn_edit, self.btn_delete, self.btn_refresh):
            self.bar.addWidget(b)
        self.bar.addStretch(1)
        self.lbl_status = QLabel(""); self.lbl_status.setStyleSheet("color:#667085;")
        self.bar.addWidget(self.lbl_status)
        lay.addLayout(self.bar)

        self.table = QTableWidget(0, len(self.columns))
        self.table.setHorizontalHeaderLabels(list(self.columns))
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.verticalHeader().setVisible(False)
        self.table.horizontalHeader().setStretchLastSection(True)
        lay.addWidget(self.table, 1)
        self.lbl_footer = QLabel("")
        lay.addWidget(self.lbl_footer)

        self.btn_add.setVisible(self.editable)
        self.btn_edit.setVisible(self.editable)
        self.btn_delete.setVisible(self.deletable)
        self.btn_add.clicked.connect(lambda: self.open_form(None))
        self.btn_edit.clicked.connect(self.edit_selected)
        self.btn_delete.clicked.connect(self.delete_selected)
        self.btn_refresh.clicked.connect(lambda: self.cache.invalidate(self.key))
        if self.editable:
            self.table.cellDoubleClicked.connect(lambda *_: self.edit_selected())

    def bind(self, fetcher: Callable[[], Any]):
        self.cache.updated.connect(self._on_query_updated)
        self.cache.failed.connect(self._on_query_failed)
        if not self.cache.is_registered(self.key):
            self.cache.register(self.key, fetcher)
        elif self.cache.get(self.key) is not None:
            # another page already loaded it
            self._on_query_updated(self.key)

    # ---------- rows ----------
    @property
    def rows(self) -> List[Any]:
        return list(self._rows)

    def cells(self, row) -> Sequence[Any]:
        raise NotImplementedError

    def describe(self, row) -> str:
        return str(self.cells(row)[0])

    def footer(self) -> str:
        return f"{len(self._rows)} {self.noun}{'' if len(self._rows) == 1 else 's'}"

    def set_rows(self, rows: Sequence[Any]):
        self._rows = list(rows)
        self.table.setRowCount(len(self._rows))
        for r, row in enumerate(self._rows):
            for c, value in enumerate(self.cells(row)):
                self.table.setItem(r, c, QTableWidgetItem("" if value is None else str(value)))
        self.lbl_status.setText("" if self._rows else f"No {self.noun}s yet.")
        self.lbl_footer.setText(self.footer())

    def selected(self):
        picked = self.table.selectionModel().selectedRows()
        r = picked[0].row() if picked else -1
        return self._rows[r] if 0 <= r < len(self._rows) else None

    def _on_query_updated(self, key: str):
        if key == self.key:
            self.set_rows(self.cache.get(key) or [])

    def _on_query_failed(self, key: str, err: ApiError):
        if key == self.key:
            self.lbl_status.setText(f"Couldn't load {self.noun}s: {err}")

    # ---------- writes ----------
    def invalidates(self) -> Tuple[str, ...]:
        return (self.key,)

    def make_dialog(self, row):
        raise NotImplementedError

    def create_call(self, values: Dict[str, Any]) -> Callable[[], Any]:
        raise NotImplementedError

    def update_call(self, row, values: Dict[str, Any]) -> Callable[[], Any]:
        raise NotImplementedError

    def delete_call(self, row) -> Callable[[], Any]:
        raise NotImplementedError

    def open_form(self, row):
        dlg = self.make_dialog(row)
        dlg.submitted.connect(lambda values: self._submit(dlg, row, values))
        dlg.finished.connect(self._on_dialog_closed)
        self._dialog = dlg
        dlg.open()

    def _on_dialog_closed(self, *_):
        self._dialog = None

    def edit_selected(self):
        row = self.selected()
        if row is None:
            self.lbl_status.setText(f"Select a {self.noun} first.")
            return
        self.open_form(row)

    def _submit(self, dlg, row, values: Dict[str, Any]):
        fn = self.create_call(values) if row is None else self.update_call(row, values)
        done = f"{self.label} {'added' if row is None else 'updated'}"

        def saved(_):
            self.lbl_status.setText(done)
            dlg.accept()

        self.cache.run_mutation(fn, saved, lambda err: dlg.show_error(str(err)),
                                invalidate=self.invalidates())

    def confirm_delete(self, row) -> bool:
        ans = QMessageBox.question(self, f"Delete {self.noun}",
                                   f"Delete \"{self.describe(row)}\"? This cannot be undone.",
                                   QMessageBox.Yes | QMessageBox.No, QMessageBox.No)
        return ans == QMessageBox.Yes

    def delete_selected(self):
        row = self.selected()
        if row is None:
            self.lbl_status.setText(f"Select a {self.noun} first.")
            return
        if not self.confirm_delete(row):
            return
        self.cache.run_mutation(self.delete_call(row),
                                lambda _: self.lbl_status.setText(f"{self.label} deleted"),
                                lambda err: self.lbl_status.setText(f"Failed to delete {self.noun}: {err}"),
                                invalidate=self.invalidates())


class GuestsPage(ResourcePage):
    columns = ("Name", "Phone", "Pax", "Type", "Table", "Seat", "Notes")
    noun = "guest"
    label = "Guest"
    # the API has no guest delete; guests leave through their RSVP
    deletable = False

    def __init__(self, event: Event, api: ApiClient, cache: QueryCache, parent=None):
        super().__init__(cache, guests_key(event.id), parent)
        self.event = event
        self.api = api
        self._tables: List[Table] = []
        self.table_filter: Optional[str] = None

        self.cb_table = QComboBox()
        self.cb_table.addItem("All tables", None)
        self.cb_table.currentIndexChanged.connect(self._on_filter_changed)
        self.bar.insertWidget(4, QLabel("Show:"))
        self.bar.insertWidget(5, self.cb_table)

        self.bind(lambda: self.api.list_guests(event.id))
        if not cache.is_registered(self.tables_key):
            cache.register(self.tables_key, lambda: self.api.list_tables(event.id))
        elif cache.get(self.tables_key) is not None:
            self._on_query_updated(self.tables_key)

    @property
    def tables_key(self) -> str:
        return tables_key(self.event.id)

    def _table_name(self, table_id: Optional[str]) -> str:
        if not table_id:
            return ""
        return next((t.name for t in self._tables if t.id == table_id), "Table")

    def cells(self, g: Guest):
        seat = "" if g.seat_index is None or not g.table_id else g.seat_index + 1
        return (g.name, g.phone, g.pax, g.flag, self._table_name(g.table_id), seat, g.notes)

    def _on_query_updated(self, key: str):
        if key == self.tables_key:
            self._tables = list(self.cache.get(key) or [])
            self._fill_table_filter()
            self.set_rows(self._rows)
        elif key == self.key:
            if self.table_filter:
                self._load_table_guests(self.table_filter)
            else:
                self.set_rows(self.cache.get(key) or [])

    def _fill_table_filter(self):
        current = self.table_filter
        self.cb_table.blockSignals(True)
        self.cb_table.clear()
        self.cb_table.addItem("All tables", None)
        for t in self._tables:
            self.cb_table.addItem(t.name or "Table", t.id)
        idx = self.cb_table.findData(current) if current else 0
        self.cb_table.setCurrentIndex(max(0, idx))
        self.cb_table.blockSignals(False)
        if current and idx < 0:
            # that table is gone
            self.table_filter = None
            self.set_rows(self.cache.get(self.key) or [])

    def _on_filter_changed(self, *_):
        self.table_filter = self.cb_table.currentData()
        if self.table_filter:
            self._load_table_guests(self.table_filter)
        else:
            self.set_rows(self.cache.get(self.key) or [])

    def _load_table_guests(self, table_id: str):
        def loaded(guests, table_id=table_id):
            if self.table_filter == table_id:
                self.set_rows(guests)

        self.cache.call(lambda: self.api.list_table_guests(table_id), loaded,
                        lambda err: self.lbl_status.setText(f"Couldn't load table guests: {err}"))

    def invalidates(self):
        return (self.key, self.tables_key)

    def make_dialog(self, row: Optional[Guest]):
        return GuestFormDialog(row, self._tables, self)

    def create_call(self, values):
        event_id, payload = self.event.id, guest_payload(values)
        return lambda: self.api.create_guest(event_id, payload)

    def update_call(self, row: Guest, values):
        payload = guest_payload(values)
        # moving to another table gives up the old seat
        payload["seatIndex"] = row.seat_index if values.get("tableId") == row.table_id else None
        return lambda: self.api.update_guest(row.id, payload)


class RsvpsPage(ResourcePage):
    columns = ("Guest", "Pax", "Phone", "Status", "Type", "Remarks")
    noun = "RSVP"
    label = "RSVP"

    def __init__(self, event: Event, api: ApiClient, cache: QueryCache, parent=None):
        super().__init__(cache, rsvps_key(event.id), parent)
        self.event = event
        self.api = api
        self.lbl_detail = QLabel("")
        self.lbl_detail.setTextFormat(Qt.RichText)
        self.lbl_detail.setStyleSheet("background:white;border:1px solid #e7e8ee;border-radius:8px;padding:8px;")
        self.lbl_detail.hide()
        self.layout().insertWidget(2, self.lbl_detail)
        self.table.itemSelectionChanged.connect(self._on_selection)
        self.bind(lambda: self.api.list_rsvps(event.id))

    def cells(self, r: Rsvp):
        return (r.guest_name, r.pax, r.phone, r.status, r.guest_type, r.remarks)

    def _on_selection(self):
        row = self.selected()
        if row is None:
            self.lbl_detail.hide()
            return
        self.show_detail(row)
        if row.id:
            # the list can be a summary; show the full record once it arrives
            self.cache.call(lambda: self.api.get_rsvp(row.id),
                            lambda full: self.show_detail(full) if self.selected() is row else None)

    def show_detail(self, r: Rsvp):
        self.lbl_detail.setText(rsvp_detail(r))
        self.lbl_detail.show()

    def invalidates(self):
        # the server keeps a guest per RSVP
        return (self.key, guests_key(self.event.id))

    def make_dialog(self, row: Optional[Rsvp]):
        return RsvpFormDialog(row, self)

    def create_call(self, values):
        payload = rsvp_payload(self.event.id, values)
        return lambda: self.api.create_rsvp(payload)

    def update_call(self, row: Rsvp, values):
        payload = rsvp_payload(self.event.id, values, row)
        return lambda: self.api.update_rsvp(row.id, payload)

    def delete_call(self, row: Rsvp):
        return lambda: self.api.delete_rsvp(row.id)


class QuestionsPage(ResourcePage):
    """Custom RSVP questions; the designer links form-field blocks to these."""

    columns = ("Order", "Question", "Type", "Required", "Options")
    noun = "question"
    label = "Question"

    def __init__(self, event: Event, api: ApiClient, cache: QueryCache, parent=None):
        super().__init__(cache, form_fields_key(event.id), parent)
        self.event = event
        self.api = api
        self.bind(lambda: self.api.list_form_fields(event.id))

    def cells(self, f: FormFieldConfig):
        return (f.order, f.label, f.type_key, "Yes" if f.is_required else "", ", ".join(f.options))

    def describe(self, f: FormFieldConfig) -> str:
        return f.label

    def make_dialog(self, row: Optional[FormFieldConfig]):
        return QuestionFormDialog(row, self)

    def create_call(self, values):
        event_id = self.event.id
        return lambda: self.api.create_form_field(event_id, values)

    def update_call(self, row: FormFieldConfig, values):
        event_id = self.event.id
        return lambda: self.api.update_form_field(event_id, row.id, {"id": row.id, **values})

    def delete_call(self, row: FormFieldConfig):
        event_id = self.event.id
        return lambda: self.api.delete_form_field(event_id, row.id)


class CostingPage(ResourcePage):
    columns = ("Description", "Amount")
    noun = "cost"
    label = "Cost"

    def __init__(self, api: ApiClient, cache: QueryCache, parent=None):
        super().__init__(cache, COSTING_KEY, parent)
        self.api = api
        self.bind(self.api.list_costs)

    def cells(self, c: CostEntry):
        return (c.description, format_amount(c.amount))

    def footer(self) -> str:
        return f"Total: {format_amount(sum(c.amount for c in self._rows))}"

    def make_dialog(self, row: Optional[CostEntry]):
        return CostFormDialog(row, self)

    def create_call(self, values):
        return lambda: self.api.create_cost(values["description"], values["amount"])

    def update_call(self, row: CostEntry, values):
        return lambda: self.api.update_cost(row.id, values["description"], values["amount"])

    def delete_call(self, row: CostEntry):
        return lambda: self.api.delete_cost(row.id)


class UsersPage(ResourcePage):
    columns = ("Name", "Email", "Role")
    noun = "user"
    label = "User"
    editable = False
    deletable = False

    def __init__(self, api: ApiClient, cache: QueryCache, parent=None):
        super().__init__(cache, USERS_KEY, parent)
        self.api = api
        self.bind(self.api.list_users)

    def cells(self, u: UserAccount):
        return (u.name, u.email, u.role)
