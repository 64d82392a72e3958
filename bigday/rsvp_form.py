"""Guest-facing RSVP form: block expansion, submission validation and the form dialog."""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QButtonGroup, QCheckBox, QComboBox, QDialog, QFormLayout, QFrame, QHBoxLayout, QLabel,
    QLineEdit, QPlainTextEdit, QPushButton, QRadioButton, QScrollArea, QSpinBox, QVBoxLayout, QWidget,
)

from .design import (AttendanceBlock, CtaBlock, FormFieldBlock, GuestDetailsBlock, HeadlineBlock,
                     ImageBlock, InfoBlock, RsvpBlock, RsvpDesign, TextBlock)
from .models import FormFieldConfig

ATTENDANCE = ("Yes", "No", "Maybe")
GUEST_TYPES = ("Family", "Friend", "VIP", "Other")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

AUTO_ATTENDANCE_ID = "__auto_attendance__"
AUTO_GUEST_DETAILS_ID = "__auto_guest_details__"

Answer = Union[str, List[str]]


def effective_blocks(blocks: Sequence[RsvpBlock]) -> List[RsvpBlock]:
    """Blocks as rendered to guests; older designs get attendance and details blocks added."""
    result = list(blocks)
    if not any(isinstance(b, AttendanceBlock) for b in result):
        result.insert(0, AttendanceBlock(id=AUTO_ATTENDANCE_ID))
    if not any(isinstance(b, GuestDetailsBlock) for b in result):
        at = next(i for i, b in enumerate(result) if isinstance(b, AttendanceBlock))
        result.insert(at + 1, GuestDetailsBlock(id=AUTO_GUEST_DETAILS_ID))
    return result


@dataclass
class RsvpSubmission:
    event_id: str = ""
    guest_name: str = ""
    guest_email: str = ""
    status: Optional[str] = None
    guest_type: str = "Family"
    no_of_pax: int = 1
    phone_no: str = ""
    answers: Dict[str, Answer] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "guestName": self.guest_name.strip(),
            "guestEmail": self.guest_email.strip(),
            "status": self.status,
            "guestType": self.guest_type,
            "noOfPax": self.no_of_pax,
            "phoneNo": self.phone_no.strip(),
            "answers": dict(self.answers),
        }
        # flat copy of answers for backends that read them top-level
        payload.update(self.answers)
        return payload


def _is_empty(value: Optional[Answer]) -> bool:
    if isinstance(value, list):
        return len(value) == 0
    return not (value or "").strip()


def validate_submission(blocks: Sequence[RsvpBlock], form_fields: Sequence[FormFieldConfig],
                        sub: RsvpSubmission) -> Dict[str, str]:
    """Field key -> message. Empty dict means the submission can be sent."""
    blocks = effective_blocks(blocks)
    errs: Dict[str, str] = {}
    details = next((b for b in blocks if isinstance(b, GuestDetailsBlock)), None)
    shows = details.shows if details else (lambda name: True)

    if shows("name") and not sub.guest_name.strip():
        errs["guestName"] = "Name is required"
    if shows("email"):
        if not sub.guest_email.strip():
            errs["guestEmail"] = "Email is required"
        elif not EMAIL_RE.match(sub.guest_email.strip()):
            errs["guestEmail"] = "Enter a valid email address"
    if sub.status not in ATTENDANCE:
        errs["status"] = "Please select an attendance option"
    if shows("phone") and not sub.phone_no.strip():
        errs["phoneNo"] = "Phone number is required"
    if shows("pax") and (not sub.no_of_pax or sub.no_of_pax < 1):
        errs["noOfPax"] = "Please enter the number of guests"

    by_id = {f.id: f for f in form_fields}
    for b in blocks:
        if not isinstance(b, FormFieldBlock) or not b.question_id:
            continue
        cfg = by_id.get(b.question_id)
        required = b.required if b.required is not None else (cfg.is_required if cfg else False)
        if required and _is_empty(sub.answers.get(b.question_id)):
            label = b.label or (cfg.label if cfg else "") or "This field"
            errs[b.question_id] = f"{label} is required"
    return errs


class PublicRsvpDialog(QDialog):
    """Renders a design as the guest sees it and collects one submission.

    The owner performs the network call on ``submitted`` and reports back
    through ``show_success`` or ``show_failure``.
    """
    submitted = Signal(object)

    def __init__(self, design: RsvpDesign, event_id: str = "", preview: bool = False, parent=None):
        super().__init__(parent)
        self.setWindowTitle("RSVP preview" if preview else "RSVP")
        self.resize(520, 720)
        self.design = design
        self.event_id = event_id or (design.event_guid or "")
        self.preview = preview
        self.blocks = effective_blocks(design.blocks)
        self.fields = {f.id: f for f in design.form_field_configs}
        self._errors: Dict[str, QLabel] = {}
        self._answers: Dict[str, object] = {}
        self._status = QButtonGroup(self)
        self.ed_name = QLineEdit(); self.ed_email = QLineEdit(); self.ed_phone = QLineEdit()
        self.ed_email.setPlaceholderText("you@example.com")
        self.sp_pax = QSpinBox(); self.sp_pax.setRange(0, 50); self.sp_pax.setValue(1)
        self.cb_type = QComboBox(); self.cb_type.addItems(GUEST_TYPES)

        root = QVBoxLayout(self)
        self.scroll = QScrollArea(); self.scroll.setWidgetResizable(True)
        body = QWidget(); self.body = QVBoxLayout(body)
        for b in self.blocks:
            w = self._render(b)
            if w is not None:
                self.body.addWidget(w)
        self.body.addStretch(1)
        self.scroll.setWidget(body)
        root.addWidget(self.scroll, 1)

        self.btn_submit = QPushButton(design.submit_button_label or "Send RSVP")
        if design.submit_button_color:
            self.btn_submit.setStyleSheet(
                f"background:{design.submit_button_color};color:{design.submit_button_text_color or '#fff'};"
                "padding:8px;border-radius:6px;")
        self.btn_submit.clicked.connect(self._on_submit)
        root.addWidget(self.btn_submit)
        self.lbl_result = QLabel(""); self.lbl_result.setWordWrap(True)
        root.addWidget(self.lbl_result)
        self.setStyleSheet(f"QDialog{{background:{design.background_color};}}")

    # ---------- rendering ----------
    def _section(self, block: RsvpBlock) -> QFrame:
        frame = QFrame(); frame.setObjectName("section")
        frame.setStyleSheet("#section{background:rgba(15,23,42,%d);border-radius:10px;}"
                            % int(block.background.overlay * 255))
        QVBoxLayout(frame)
        img = block.background.active_image or block.section_image
        if img is not None:
            pm = QPixmap(img.src)
            if not pm.isNull():
                lbl = QLabel(); lbl.setPixmap(pm.scaledToWidth(460, Qt.SmoothTransformation))
                frame.layout().addWidget(lbl)
        return frame

    def _error_label(self, key: str) -> QLabel:
        lbl = QLabel(""); lbl.setStyleSheet("color:#f43f5e;font-size:11px;"); lbl.hide()
        self._errors[key] = lbl
        return lbl

    def _render(self, b: RsvpBlock) -> Optional[QWidget]:
        accent = self.design.accent_color
        if isinstance(b, FormFieldBlock) and not b.question_id:
            return None
        frame = self._section(b)
        lay = frame.layout()
        if isinstance(b, HeadlineBlock):
            t = QLabel(b.title); t.setStyleSheet("font-size:24px;font-weight:600;color:white;")
            t.setAlignment(_align(b.align)); lay.addWidget(t)
            if b.subtitle:
                s = QLabel(b.subtitle); s.setAlignment(_align(b.align)); s.setStyleSheet("color:#e2e8f0;")
                lay.addWidget(s)
        elif isinstance(b, TextBlock):
            t = QLabel(b.body); t.setWordWrap(True); t.setAlignment(_align(b.align))
            t.setStyleSheet("color:%s;" % ("#cbd5e1" if b.muted else "white"))
            lay.addWidget(t)
        elif isinstance(b, InfoBlock):
            t = QLabel(f"<b>{b.label}</b><br>{b.content}"); t.setWordWrap(True)
            t.setStyleSheet(f"color:white;border:1px solid {accent};border-radius:8px;padding:8px;")
            lay.addWidget(t)
        elif isinstance(b, AttendanceBlock):
            lay.addWidget(QLabel(f"<b>{b.title or 'Will you be attending?'}</b>"))
            if b.subtitle:
                lay.addWidget(QLabel(b.subtitle))
            row = QHBoxLayout()
            for opt in ATTENDANCE:
                rb = QRadioButton(opt); self._status.addButton(rb); row.addWidget(rb)
            lay.addLayout(row)
            lay.addWidget(self._error_label("status"))
        elif isinstance(b, GuestDetailsBlock):
            lay.addWidget(QLabel(f"<b>{b.title or 'Your details'}</b>"))
            form = QFormLayout()
            for key, label, widget, err in (("name", "Full name *", self.ed_name, "guestName"),
                                            ("email", "Email *", self.ed_email, "guestEmail"),
                                            ("phone", "Phone *", self.ed_phone, "phoneNo"),
                                            ("pax", "Number of guests *", self.sp_pax, "noOfPax")):
                if b.shows(key):
                    form.addRow(label, widget); form.addRow("", self._error_label(err))
            if b.shows("guestType"):
                form.addRow("I am a", self.cb_type)
            lay.addLayout(form)
        elif isinstance(b, FormFieldBlock):
            self._render_question(b, lay)
        elif isinstance(b, CtaBlock):
            btn = QPushButton(b.label)
            btn.setStyleSheet(f"background:{b.cta_color or accent};color:{b.cta_text_color or 'white'};"
                              "padding:6px 14px;border-radius:14px;")
            btn.clicked.connect(lambda: self.scroll.ensureWidgetVisible(self.btn_submit))
            lay.addWidget(btn, alignment=_align(b.align))
        elif isinstance(b, ImageBlock):
            active = next((m for m in b.images if m.id == b.active_image_id), b.images[0] if b.images else None)
            if active is not None:
                pm = QPixmap(active.src)
                if not pm.isNull():
                    lbl = QLabel(); lbl.setPixmap(pm.scaledToHeight(_IMAGE_HEIGHTS.get(b.height, 240),
                                                                    Qt.SmoothTransformation))
                    lay.addWidget(lbl, alignment=Qt.AlignCenter)
            if b.caption:
                lay.addWidget(QLabel(b.caption), alignment=Qt.AlignCenter)
        return frame

    def _render_question(self, b: FormFieldBlock, lay):
        cfg = self.fields.get(b.question_id)
        kind = cfg.type_key if cfg else "text"
        opts = list(cfg.options) if cfg else []
        required = b.required if b.required is not None else (cfg.is_required if cfg else False)
        label = b.label or (cfg.label if cfg else "") or "Custom field"
        lay.addWidget(QLabel(label + (" *" if required else "")))
        if kind == "checkbox" and len(opts) > 1:
            boxes = [QCheckBox(o) for o in opts]
            for cb in boxes:
                lay.addWidget(cb)
            self._answers[b.question_id] = boxes
        elif kind in ("select", "radio") and opts:
            w = QComboBox(); w.addItem(""); w.addItems(opts)
            lay.addWidget(w); self._answers[b.question_id] = w
        elif kind == "textarea":
            w = QPlainTextEdit(); w.setPlaceholderText(b.placeholder or "")
            lay.addWidget(w); self._answers[b.question_id] = w
        else:
            w = QLineEdit(); w.setPlaceholderText(b.placeholder or "")
            lay.addWidget(w); self._answers[b.question_id] = w
        if b.hint:
            h = QLabel(b.hint); h.setStyleSheet("color:#94a3b8;font-size:11px;"); lay.addWidget(h)
        lay.addWidget(self._error_label(b.question_id))

    # ---------- submission ----------
    def submission(self) -> RsvpSubmission:
        answers: Dict[str, Answer] = {}
        for qid, w in self._answers.items():
            if isinstance(w, list):
                answers[qid] = [cb.text() for cb in w if cb.isChecked()]
            elif isinstance(w, QComboBox):
                answers[qid] = w.currentText()
            elif isinstance(w, QPlainTextEdit):
                answers[qid] = w.toPlainText()
            else:
                answers[qid] = w.text()
        checked = self._status.checkedButton()
        return RsvpSubmission(
            event_id=self.event_id, guest_name=self.ed_name.text(), guest_email=self.ed_email.text(),
            status=checked.text() if checked else None, guest_type=self.cb_type.currentText(),
            no_of_pax=self.sp_pax.value(), phone_no=self.ed_phone.text(), answers=answers,
        )

    def show_errors(self, errs: Dict[str, str]):
        for key, lbl in self._errors.items():
            msg = errs.get(key)
            lbl.setText(msg or ""); lbl.setVisible(bool(msg))

    def _on_submit(self):
        sub = self.submission()
        errs = validate_submission(self.blocks, self.design.form_field_configs, sub)
        self.show_errors(errs)
        if errs:
            return
        if self.preview:
            self.lbl_result.setText("Preview only: nothing was sent.")
            return
        self.btn_submit.setEnabled(False)
        self.submitted.emit(sub)

    def show_success(self, guest_name: str):
        self.scroll.hide(); self.btn_submit.hide()
        self.lbl_result.setText(f"<h2>Thank you, {guest_name or 'guest'}!</h2>"
                                "<p>Your RSVP has been received.</p>")

    def show_failure(self, message: str = "Failed to submit your RSVP. Please try again."):
        self.btn_submit.setEnabled(True)
        self.lbl_result.setText(message)


_IMAGE_HEIGHTS = {"short": 160, "medium": 240, "tall": 360}


def _align(name: str):
    return {"left": Qt.AlignLeft, "right": Qt.AlignRight}.get(name, Qt.AlignHCenter)
