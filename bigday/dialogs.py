from __future__ import annotations
import datetime
from typing import Any, Dict, Optional, Sequence

from PySide6.QtCore import Qt, QDate, QTimer, Signal
from PySide6.QtWidgets import (QCheckBox, QComboBox, QDateEdit, QDialog, QDialogButtonBox, QDoubleSpinBox,
                               QFormLayout, QLabel, QLineEdit, QPlainTextEdit, QSpinBox, QVBoxLayout,
                               QWidget)

from .models import (FIELD_TYPES, GUEST_TYPES, OPTION_FIELD_TYPES, RSVP_STATUSES, CostEntry, Event,
                     FormFieldConfig, Guest, Rsvp, Table)


def validate_table(name: str, capacity: int) -> Optional[str]:
    if capacity is None or capacity < 1:
        return "Capacity must be at least 1"
    return None


def validate_bulk(prefix: str, quantity: int, capacity: int) -> Optional[str]:
    if not (prefix or "").strip():
        return "Please enter a table prefix (e.g., 'family', 'vip', 'guest')"
    if quantity is None or quantity < 1:
        return "Quantity must be at least 1"
    if capacity is None or capacity < 1:
        return "Capacity must be at least 1"
    return None


def validate_guest(values: Dict[str, Any]) -> Optional[str]:
    if not (values.get("name") or "").strip():
        return "Guest name is required"
    return None


def validate_rsvp(values: Dict[str, Any]) -> Dict[str, str]:
    """Field name -> message; empty when the RSVP can be saved."""
    errors: Dict[str, str] = {}
    if not (values.get("guestName") or "").strip():
        errors["guestName"] = "Guest name is required"
    if not (values.get("phoneNo") or "").strip():
        errors["phoneNo"] = "Phone number is required"
    pax = values.get("noOfPax")
    if pax is None:
        errors["noOfPax"] = "Number of pax is required"
    elif pax < 0:
        errors["noOfPax"] = "Number of pax cannot be negative"
    return errors


def validate_question(values: Dict[str, Any]) -> Optional[str]:
    if not (values.get("text") or "").strip():
        return "Question text is required"
    if FIELD_TYPES.get(values.get("type")) in OPTION_FIELD_TYPES and not (values.get("options") or "").strip():
        return "Add at least one option (comma-separated)"
    return None


def validate_cost(description: str, amount: float) -> Optional[str]:
    if not (description or "").strip():
        return "Description is required"
    if amount is None or amount < 0:
        return "Amount cannot be negative"
    return None


def validate_event(title: str, date: str) -> Optional[str]:
    if not (title or "").strip():
        return "Title is required"
    try:
        datetime.date.fromisoformat((date or "")[:10])
    except ValueError:
        return "Date must look like YYYY-MM-DD"
    return None


class _FormDialog(QDialog):
    """Inline-error dialog: validates locally, then hands values to the owner.

    The owner runs the request and calls ``accept()`` or ``show_error()``.
    """

    def __init__(self, title: str, ok_text: str, parent=None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setMinimumWidth(340)
        root = QVBoxLayout(self)
        self.lbl_error = QLabel(""); self.lbl_error.setWordWrap(True)
        self.lbl_error.setStyleSheet("color:#be123c;background:#ffe4e6;border-radius:6px;padding:6px;")
        self.lbl_error.hide()
        root.addWidget(self.lbl_error)
        self.form = QFormLayout(); root.addLayout(self.form)
        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.button(QDialogButtonBox.Ok).setText(ok_text)
        self.buttons.accepted.connect(self._on_ok)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)

    def show_error(self, message: str):
        self.lbl_error.setText(message or "Something went wrong.")
        self.lbl_error.show()
        self.set_busy(False)

    def set_busy(self, busy: bool):
        self.buttons.button(QDialogButtonBox.Ok).setEnabled(not busy)

    def _on_ok(self):
        raise NotImplementedError


class TableFormDialog(_FormDialog):
    submitted = Signal(str, int)   # name, capacity
    deleteRequested = Signal()

    def __init__(self, initial: Optional[Table] = None, parent=None):
        super().__init__("Edit Table" if initial else "New Table", "Save" if initial else "Create", parent)
        self.initial = initial
        self.ed_name = QLineEdit(initial.name if initial else "")
        self.sp_capacity = QSpinBox(); self.sp_capacity.setRange(0, 500)
        self.sp_capacity.setValue(initial.capacity if initial else 10)
        self.form.addRow("Table Name", self.ed_name)
        self.form.addRow("Capacity", self.sp_capacity)
        if initial is not None:
            btn = self.buttons.addButton("Delete table", QDialogButtonBox.DestructiveRole)
            btn.clicked.connect(self._on_delete)

    def _on_delete(self):
        self.set_busy(True)
        self.deleteRequested.emit()

    @property
    def is_edit(self) -> bool:
        return self.initial is not None

    def _on_ok(self):
        name, capacity = self.ed_name.text().strip(), self.sp_capacity.value()
        err = validate_table(name, capacity)
        if err:
            self.show_error(err)
            return
        self.lbl_error.hide()
        self.set_busy(True)
        self.submitted.emit(name, capacity)


class BulkTablesDialog(_FormDialog):
    submitted = Signal(str, int, int)   # prefix, quantity, capacity

    def __init__(self, parent=None):
        super().__init__("Create Tables", "Create 5 Tables", parent)
        self.ed_prefix = QLineEdit(); self.ed_prefix.setPlaceholderText("family, vip, guest…")
        self.sp_quantity = QSpinBox(); self.sp_quantity.setRange(0, 200); self.sp_quantity.setValue(5)
        self.sp_capacity = QSpinBox(); self.sp_capacity.setRange(0, 500); self.sp_capacity.setValue(10)
        self.sp_quantity.valueChanged.connect(
            lambda n: self.buttons.button(QDialogButtonBox.Ok).setText(f"Create {n} Tables"))
        self.form.addRow("Table prefix", self.ed_prefix)
        self.form.addRow("Quantity", self.sp_quantity)
        self.form.addRow("Seats per table", self.sp_capacity)

    def _on_ok(self):
        prefix = self.ed_prefix.text().strip()
        qty, cap = self.sp_quantity.value(), self.sp_capacity.value()
        err = validate_bulk(prefix, qty, cap)
        if err:
            self.show_error(err)
            return
        self.lbl_error.hide()
        self.set_busy(True)
        self.submitted.emit(prefix, qty, cap)


class _ValuesDialog(_FormDialog):
    """Form dialog that hands its fields over as one dict."""

    submitted = Signal(dict)

    def values(self) -> Dict[str, Any]:
        raise NotImplementedError

    def validate(self, values: Dict[str, Any]) -> Optional[str]:
        return None

    def _on_ok(self):
        values = self.values()
        err = self.validate(values)
        if err:
            self.show_error(err)
            return
        self.lbl_error.hide()
        self.set_busy(True)
        self.submitted.emit(values)


def _combo(items: Sequence[str], current: str = "") -> QComboBox:
    cb = QComboBox()
    cb.addItems(list(items))
    if current and current not in items:
        cb.addItem(current)
    if current:
        cb.setCurrentText(current)
    return cb


class GuestFormDialog(_ValuesDialog):
    def __init__(self, initial: Optional[Guest] = None, tables: Sequence[Table] = (), parent=None):
        super().__init__("Edit Guest" if initial else "Add Guest", "Save" if initial else "Add", parent)
        self.initial = initial
        self.ed_name = QLineEdit(initial.name if initial else "")
        self.ed_phone = QLineEdit(initial.phone if initial else "")
        self.sp_pax = QSpinBox(); self.sp_pax.setRange(1, 50)
        self.sp_pax.setValue(initial.pax if initial else 1)
        self.cb_type = _combo(GUEST_TYPES, initial.flag if initial else "Family")
        self.cb_table = QComboBox()
        self.cb_table.addItem("No table", None)
        for t in tables:
            self.cb_table.addItem(f"{t.name or 'Table'} (Capacity: {t.capacity})", t.id)
        if initial and initial.table_id:
            idx = self.cb_table.findData(initial.table_id)
            if idx >= 0:
                self.cb_table.setCurrentIndex(idx)
        self.ed_notes = QPlainTextEdit(initial.notes if initial else "")
        self.ed_notes.setPlaceholderText("Any special notes about this guest...")
        self.ed_notes.setFixedHeight(70)
        self.form.addRow("Guest Name", self.ed_name)
        self.form.addRow("Phone Number", self.ed_phone)
        self.form.addRow("Pax", self.sp_pax)
        self.form.addRow("Guest Type", self.cb_type)
        self.form.addRow("Table", self.cb_table)
        self.form.addRow("Notes", self.ed_notes)

    def values(self) -> Dict[str, Any]:
        return {"name": self.ed_name.text().strip(), "phoneNo": self.ed_phone.text().strip(),
                "pax": self.sp_pax.value(), "flag": self.cb_type.currentText(),
                "tableId": self.cb_table.currentData(), "notes": self.ed_notes.toPlainText().strip()}

    def validate(self, values):
        return validate_guest(values)


class RsvpFormDialog(_ValuesDialog):
    def __init__(self, initial: Optional[Rsvp] = None, parent=None):
        super().__init__("Edit RSVP" if initial else "New RSVP", "Save" if initial else "Create", parent)
        self.initial = initial
        self.errors: Dict[str, str] = {}
        self.ed_name = QLineEdit(initial.guest_name if initial else "")
        self.sp_pax = QSpinBox(); self.sp_pax.setRange(0, 100)
        self.sp_pax.setValue(initial.pax if initial else 1)
        self.ed_phone = QLineEdit(initial.phone if initial else "")
        self.cb_type = _combo(GUEST_TYPES, initial.guest_type if initial else "Family")
        self.cb_status = _combo(RSVP_STATUSES, initial.status if initial else "Yes")
        self.ed_remarks = QPlainTextEdit(initial.remarks if initial else "")
        self.ed_remarks.setFixedHeight(70)
        self.form.addRow("Guest Name", self.ed_name)
        self.form.addRow("No. of Pax", self.sp_pax)
        self.form.addRow("Phone Number", self.ed_phone)
        self.form.addRow("Guest Type", self.cb_type)
        self.form.addRow("Status", self.cb_status)
        self.form.addRow("Remarks", self.ed_remarks)

    def values(self) -> Dict[str, Any]:
        return {"guestName": self.ed_name.text().strip(), "noOfPax": self.sp_pax.value(),
                "phoneNo": self.ed_phone.text().strip(), "guestType": self.cb_type.currentText(),
                "status": self.cb_status.currentText(), "remarks": self.ed_remarks.toPlainText().strip()}

    def validate(self, values):
        self.errors = validate_rsvp(values)
        return "\n".join(self.errors.values()) or None


class QuestionFormDialog(_ValuesDialog):
    def __init__(self, initial: Optional[FormFieldConfig] = None, parent=None):
        super().__init__("Edit Question" if initial else "New Question", "Save" if initial else "Add", parent)
        self.initial = initial
        self.ed_text = QLineEdit(initial.label if initial else "")
        self.cb_type = QComboBox()
        for code, key in sorted(FIELD_TYPES.items()):
            self.cb_type.addItem(key, code)
        self.cb_type.setCurrentText(initial.type_key if initial else "text")
        self.chk_required = QCheckBox("Required")
        self.chk_required.setChecked(bool(initial and initial.is_required))
        self.ed_options = QLineEdit(", ".join(initial.options) if initial else "")
        self.ed_options.setPlaceholderText("Veg, Vegan, No preference")
        self.sp_order = QSpinBox(); self.sp_order.setRange(0, 999)
        self.sp_order.setValue(initial.order if initial else 0)
        self.form.addRow("Question Text", self.ed_text)
        self.form.addRow("Type", self.cb_type)
        self.form.addRow("", self.chk_required)
        self.form.addRow("Options (comma-separated)", self.ed_options)
        self.form.addRow("Order", self.sp_order)
        self.cb_type.currentIndexChanged.connect(self._sync_options)
        self._sync_options()

    @property
    def needs_options(self) -> bool:
        return self.cb_type.currentText() in OPTION_FIELD_TYPES

    def _sync_options(self, *_):
        self.ed_options.setEnabled(self.needs_options)

    def values(self) -> Dict[str, Any]:
        return {"text": self.ed_text.text().strip(), "type": self.cb_type.currentData(),
                "isRequired": self.chk_required.isChecked(),
                "options": self.ed_options.text().strip() if self.needs_options else None,
                "order": self.sp_order.value()}

    def validate(self, values):
        return validate_question(values)


class CostFormDialog(_ValuesDialog):
    def __init__(self, initial: Optional[CostEntry] = None, parent=None):
        super().__init__("Edit Cost" if initial else "Add Cost", "Save" if initial else "Add", parent)
        self.initial = initial
        self.ed_description = QLineEdit(initial.description if initial else "")
        self.sp_amount = QDoubleSpinBox(); self.sp_amount.setRange(0, 10_000_000)
        self.sp_amount.setDecimals(2); self.sp_amount.setPrefix("$")
        self.sp_amount.setValue(initial.amount if initial else 0)
        self.form.addRow("Description", self.ed_description)
        self.form.addRow("Amount", self.sp_amount)

    def values(self) -> Dict[str, Any]:
        return {"description": self.ed_description.text().strip(), "amount": self.sp_amount.value()}

    def validate(self, values):
        return validate_cost(values["description"], values["amount"])


class EventFormDialog(_ValuesDialog):
    def __init__(self, initial: Optional[Event] = None, parent=None):
        super().__init__("Edit Event" if initial else "New Event", "Save" if initial else "Create", parent)
        self.initial = initial
        self.ed_title = QLineEdit(initial.title if initial else "")
        self.ed_date = QDateEdit(); self.ed_date.setCalendarPopup(True)
        self.ed_date.setDisplayFormat("yyyy-MM-dd")
        date = QDate.fromString((initial.date or "")[:10], "yyyy-MM-dd") if initial else QDate()
        self.ed_date.setDate(date if date.isValid() else QDate.currentDate())
        self.form.addRow("Title", self.ed_title)
        self.form.addRow("Date", self.ed_date)

    def values(self) -> Dict[str, Any]:
        return {"title": self.ed_title.text().strip(), "date": self.ed_date.date().toString("yyyy-MM-dd")}

    def validate(self, values):
        return validate_event(values["title"], values["date"])


class Toast(QLabel):
    """Transient notice floating over the top centre of its parent."""

    def __init__(self, parent: QWidget, duration_ms: int = 2500):
        super().__init__(parent)
        self.duration_ms = duration_ms
        self.setObjectName("Toast")
        self.setAttribute(Qt.WA_TransparentForMouseEvents, True)
        self.setStyleSheet("QLabel#Toast { background: rgba(15,23,42,0.92); color: white;"
                           " border-radius: 10px; padding: 8px 14px; font-weight: 600; }")
        self._timer = QTimer(self); self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.hide)
        self.hide()

    def show_message(self, message: str, icon: str = "✅"):
        self.setText(f"{icon}  {message}" if icon else message)
        self.adjustSize()
        parent = self.parentWidget()
        self.move(max(0, (parent.width() - self.width()) // 2), 16)
        self.show(); self.raise_()
        self._timer.start(self.duration_ms)
