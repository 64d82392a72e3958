# start_window.py
from __future__ import annotations
import json
import logging
from typing import List, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QFrame, QHBoxLayout, QLabel, QLineEdit, QListWidget, QListWidgetItem, QMessageBox,
    QPushButton, QStackedWidget, QVBoxLayout, QWidget,
)

from bigday.api import ANONYMOUS, ApiClient, Credentials
from bigday.config import Settings, get_settings
from bigday.dialogs import EventFormDialog
from bigday.errors import ApiError, AuthenticationError, ValidationError
from bigday.models import Event
from bigday.queries import QueryCache
from bigday.storage import LocalStorage, TokenStore

logger = logging.getLogger(__name__)

# ========= THEME =========
ACCENT           = "#f97316"
ACCENT_HOVER     = "#ea580c"
ACCENT_ACTIVE    = "#c2410c"

PANEL_BG         = "rgba(255, 255, 255, 0.92)"
PANEL_STROKE     = "#e7e0d1"
PANEL_RADIUS     = 14
BTN_RADIUS       = 10

FONT_FAMILY      = "Segoe UI, Inter, Roboto, sans-serif"
TEXT_MAIN        = "#1f2937"
TEXT_DIM         = "#6b7280"
# =========================


def validate_login(email: str, password: str):
    errors = {}
    if not (email or "").strip():
        errors["email"] = "Email is required"
    if not password:
        errors["password"] = "Password is required"
    if errors:
        raise ValidationError(errors)


def recent_entry(event: Event) -> str:
    return json.dumps({"id": event.id, "title": event.title, "date": event.date}, sort_keys=True)


def parse_recent(entries: List[str]) -> List[Event]:
    """Recent events from their stored JSON form; unreadable entries are skipped."""
    out: List[Event] = []
    for raw in entries:
        try:
            d = json.loads(raw)
        except (TypeError, ValueError):
            continue
        if isinstance(d, dict) and d.get("id"):
            out.append(Event(id=str(d["id"]), title=d.get("title") or "", date=d.get("date") or ""))
    return out


def event_label(event: Event) -> str:
    title = event.title or "Untitled event"
    return f"{title}   ·   {event.date[:10]}" if event.date else title


class StartWindow(QWidget):
    def __init__(self, settings: Optional[Settings] = None, storage: Optional[LocalStorage] = None,
                 api: Optional[ApiClient] = None, cache: Optional[QueryCache] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self.storage = storage or LocalStorage(org=self.settings.settings_org, app=self.settings.settings_app)
        self.tokens = TokenStore(self.storage)
        self.base_api = api or ApiClient(self.settings, ANONYMOUS)
        self.api = self.base_api
        self.cache = cache or QueryCache(parent=self)
        self.editor = None

        self.setObjectName("StartRoot")
        self.setWindowTitle("BigDay · start")
        self.resize(1100, 720)

        root = QVBoxLayout(self); root.setContentsMargins(28, 28, 28, 28); root.setSpacing(0)

        top = QHBoxLayout()
        title = QLabel("BigDay Console"); title.setObjectName("Brand")
        top.addWidget(title); top.addStretch(1)
        self.lbl_user = QLabel(""); self.lbl_user.setObjectName("Dim")
        top.addWidget(self.lbl_user); top.addSpacing(12)
        self.btn_signout = QPushButton("Sign out"); self.btn_signout.setObjectName("Ghost")
        self.btn_signout.clicked.connect(self.sign_out)
        top.addWidget(self.btn_signout)
        root.addLayout(top); root.addSpacing(16)

        self.stack = QStackedWidget()
        root.addWidget(self.stack, 1)

        # --- sign in ---
        login_page = QWidget(); lp = QHBoxLayout(login_page)
        card = QFrame(); card.setObjectName("Card"); card.setFixedWidth(380)
        vc = QVBoxLayout(card); vc.setContentsMargins(28, 24, 28, 24); vc.setSpacing(10)
        cap = QLabel("Sign in"); cap.setObjectName("CardTitle"); vc.addWidget(cap)
        self.ed_email = QLineEdit(); self.ed_email.setPlaceholderText("Email")
        self.ed_password = QLineEdit(); self.ed_password.setPlaceholderText("Password")
        self.ed_password.setEchoMode(QLineEdit.Password)
        self.lbl_login_error = QLabel(""); self.lbl_login_error.setObjectName("Error")
        self.lbl_login_error.setWordWrap(True); self.lbl_login_error.hide()
        self.btn_login = QPushButton("Sign in"); self.btn_login.setObjectName("Action")
        self.btn_login.setCursor(Qt.PointingHandCursor)
        for w in (self.ed_email, self.ed_password, self.lbl_login_error, self.btn_login):
            vc.addWidget(w)
        lp.addStretch(1); lp.addWidget(card, 0, Qt.AlignVCenter); lp.addStretch(1)
        self.stack.addWidget(login_page)

        # --- events ---
        events_page = QWidget(); ep = QHBoxLayout(events_page); ep.setSpacing(24)
        events = QFrame(); events.setObjectName("Card")
        ve = QVBoxLayout(events); ve.setContentsMargins(24, 20, 24, 20); ve.setSpacing(10)
        row = QHBoxLayout()
        ecap = QLabel("Your events"); ecap.setObjectName("CardTitle")
        self.btn_refresh = QPushButton("Refresh"); self.btn_refresh.setObjectName("Ghost")
        self.btn_refresh.clicked.connect(self.load_events)
        row.addWidget(ecap); row.addStretch(1); row.addWidget(self.btn_refresh)
        ve.addLayout(row)
        self.lbl_events = QLabel(""); self.lbl_events.setObjectName("Dim")
        self.list_events = QListWidget(); self.list_events.setObjectName("List")
        ve.addWidget(self.lbl_events); ve.addWidget(self.list_events, 1)
        actions = QHBoxLayout()
        self.btn_new_event = QPushButton("New event"); self.btn_new_event.setObjectName("Ghost")
        self.btn_edit_event = QPushButton("Edit"); self.btn_edit_event.setObjectName("Ghost")
        self.btn_delete_event = QPushButton("Delete"); self.btn_delete_event.setObjectName("Ghost")
        for b in (self.btn_new_event, self.btn_edit_event, self.btn_delete_event):
            actions.addWidget(b)
        actions.addStretch(1)
        self.btn_open = QPushButton("Open event"); self.btn_open.setObjectName("Action")
        actions.addWidget(self.btn_open)
        ve.addLayout(actions)
        self._dialog = None

        recent = QFrame(); recent.setObjectName("Card")
        vr = QVBoxLayout(recent); vr.setContentsMargins(24, 20, 24, 20); vr.setSpacing(10)
        rcap = QLabel("Recently opened"); rcap.setObjectName("CardTitle"); vr.addWidget(rcap)
        self.list_recent = QListWidget(); self.list_recent.setObjectName("List")
        vr.addWidget(self.list_recent, 1)

        ep.addWidget(events, 3); ep.addWidget(recent, 2)
        self.stack.addWidget(events_page)

        self.btn_login.clicked.connect(self._login)
        self.ed_password.returnPressed.connect(self._login)
        self.btn_open.clicked.connect(self._open_selected)
        self.btn_new_event.clicked.connect(lambda: self.open_event_form(None))
        self.btn_edit_event.clicked.connect(self._edit_selected)
        self.btn_delete_event.clicked.connect(self._delete_selected)
        self.list_events.itemDoubleClicked.connect(self._open_item)
        self.list_recent.itemDoubleClicked.connect(self._open_item)

        self._apply_qss()
        self._load_recent()
        token = self.tokens.load()
        if token:
            self._signed_in(token)
        else:
            self._show_login()

    # ---------- STYLE ----------
    def _apply_qss(self):
        self.setStyleSheet(f"""
        QWidget#StartRoot {{
            background: qlineargradient(x1:0, y1:0, x2:1, y2:1, stop:0 #fbf7ef, stop:1 #f3e8d6);
            color: {TEXT_MAIN};
            font-family: {FONT_FAMILY};
        }}
        #Brand {{ font-size: 20px; font-weight: 700; color: {TEXT_MAIN}; }}
        #Card {{
            background: {PANEL_BG};
            border: 1px solid {PANEL_STROKE};
            border-radius: {PANEL_RADIUS}px;
        }}
        #CardTitle {{ color: {TEXT_MAIN}; font-weight: 700; font-size: 15px; }}
        #Dim {{ color: {TEXT_DIM}; }}
        #Error {{ color: #be123c; background: #ffe4e6; border-radius: 6px; padding: 6px; }}
        QPushButton#Action {{
            background: {ACCENT}; color: white; border: none;
            border-radius: {BTN_RADIUS}px; padding: 9px 14px; font-weight: 700;
        }}
        QPushButton#Action:hover {{ background: {ACCENT_HOVER}; }}
        QPushButton#Action:pressed {{ background: {ACCENT_ACTIVE}; }}
        QPushButton#Action:disabled {{ background: #e5e7eb; color: #9ca3af; }}
        QPushButton#Ghost {{
            background: transparent; border: 1px solid {PANEL_STROKE};
            border-radius: {BTN_RADIUS}px; padding: 5px 10px;
        }}
        #List {{ border: 1px solid {PANEL_STROKE}; border-radius: 10px; padding: 6px; background: white; }}
        #List::item {{ padding: 7px 10px; }}
        #List::item:selected {{ background: rgba(249, 115, 22, 0.18); color: {TEXT_MAIN}; border-radius: 6px; }}
        """)

    # ---------- auth ----------
    def _show_login(self, message: str = ""):
        self.api = self.base_api
        self.btn_signout.hide()
        self.lbl_user.clear()
        self.lbl_login_error.setText(message)
        self.lbl_login_error.setVisible(bool(message))
        self.btn_login.setEnabled(True)
        self.stack.setCurrentIndex(0)

    def _login(self):
        email, password = self.ed_email.text().strip(), self.ed_password.text()
        try:
            validate_login(email, password)
        except ValidationError as e:
            self.lbl_login_error.setText(str(e)); self.lbl_login_error.show()
            return
        self.btn_login.setEnabled(False)
        self.lbl_login_error.hide()
        self.cache.call(lambda: self.base_api.login(email, password),
                        lambda res: self._signed_in(res["token"], save=True),
                        self._login_failed)

    def _login_failed(self, err: ApiError):
        logger.warning("Sign-in failed: %s", err)
        self._show_login(err.message if isinstance(err, AuthenticationError) else str(err))

    def _signed_in(self, token: str, save: bool = False):
        if save:
            self.tokens.save(token)
        self.api = self.base_api.with_credentials(Credentials(token))
        self.ed_password.clear()
        self.btn_signout.show()
        self.stack.setCurrentIndex(1)
        self.cache.call(self.api.me, self._show_user)
        self.load_events()

    def _show_user(self, me):
        if isinstance(me, dict):
            who = me.get("name") or me.get("email") or ""
            self.lbl_user.setText(f"Signed in as {who}" if who else "")

    def sign_out(self):
        self.tokens.clear()
        self.list_events.clear()
        self._show_login()

    # ---------- DATA ----------
    def load_events(self):
        self.lbl_events.setText("Loading events…")
        self.cache.call(self.api.list_events, self._fill_events, self._events_failed)

    def _fill_events(self, events: List[Event]):
        self.list_events.clear()
        for ev in events:
            it = QListWidgetItem(event_label(ev))
            it.setData(Qt.UserRole, ev)
            self.list_events.addItem(it)
        self.lbl_events.setText("" if events else "No events yet. Create one with New event.")

    def _events_failed(self, err: ApiError):
        if isinstance(err, AuthenticationError):
            # stale token
            self.tokens.clear()
            self._show_login("Your session has expired. Please sign in again.")
            return
        self.lbl_events.setText(f"Couldn't load events: {err}")

    def _load_recent(self):
        self.list_recent.clear()
        for ev in parse_recent(self.storage.recent()):
            it = QListWidgetItem(event_label(ev))
            it.setData(Qt.UserRole, ev)
            self.list_recent.addItem(it)

    def _forget_recent(self, event_id: str):
        self.storage.set_recent([raw for raw in self.storage.recent()
                                 if all(e.id != event_id for e in parse_recent([raw]))])
        self._load_recent()

    def _push_recent(self, event: Event):
        # one entry per event, even if its title changed since
        self._forget_recent(event.id)
        self.storage.push_recent(recent_entry(event))

    # ---------- ACTIONS ----------
    def _selected_event(self) -> Optional[Event]:
        it = self.list_events.currentItem()
        if it is None:
            QMessageBox.information(self, "Events", "Select an event first.")
            return None
        return it.data(Qt.UserRole)

    def open_event_form(self, event: Optional[Event]):
        dlg = EventFormDialog(event, self)
        dlg.submitted.connect(lambda values: self._save_event(dlg, event, values))
        self._dialog = dlg
        dlg.open()

    def _save_event(self, dlg: EventFormDialog, event: Optional[Event], values):
        event_id = event.id if event is not None else None

        def save():
            if event_id is None:
                return self.api.create_event(values)
            return self.api.update_event(event_id, values)

        def saved(_):
            dlg.accept()
            self.load_events()

        self.cache.run_mutation(save, saved, lambda err: dlg.show_error(str(err)))

    def _edit_selected(self):
        event = self._selected_event()
        if event is not None:
            self.open_event_form(event)

    def confirm_delete(self, event: Event) -> bool:
        ans = QMessageBox.question(self, "Delete event",
                                   f"Delete \"{event.title or event.id}\" and everything in it?",
                                   QMessageBox.Yes | QMessageBox.No, QMessageBox.No)
        return ans == QMessageBox.Yes

    def _delete_selected(self):
        event = self._selected_event()
        if event is None or not self.confirm_delete(event):
            return
        event_id = event.id

        def deleted(_):
            self._forget_recent(event_id)
            self.load_events()

        self.cache.run_mutation(lambda: self.api.delete_event(event_id), deleted,
                                lambda err: self.lbl_events.setText(f"Couldn't delete event: {err}"))

    def _open_selected(self):
        it = self.list_events.currentItem()
        if it is None:
            QMessageBox.information(self, "Open event", "Select an event first.")
            return
        self._open_item(it)

    def _open_item(self, it: QListWidgetItem):
        event = it.data(Qt.UserRole)
        if not self.api.credentials.is_authenticated:
            self._show_login("Please sign in to open an event.")
            return
        self._push_recent(event)
        self._launch_editor(event)

    def _launch_editor(self, event: Event):
        from bigday_console import MainWindow
        self.hide()
        self.editor = MainWindow(event, self.api, self.storage, self.settings)
        self.editor.showMaximized()
        self.close()
