#!/usr/bin/env python3
from __future__ import annotations
import logging
import sys
from pathlib import Path

from PySide6.QtCore import Qt, QRectF
from PySide6.QtGui import QAction, QPainter, QPageLayout, QPageSize
from PySide6.QtPrintSupport import QPrinter
from PySide6.QtWidgets import (
    QApplication, QFileDialog, QMainWindow, QMenu, QMessageBox, QStatusBar, QStyle, QTabWidget,
    QToolBar, QToolButton, QWidgetAction,
)

from bigday.admin import CostingPage, GuestsPage, QuestionsPage, RsvpsPage, UsersPage
from bigday.api import ApiClient
from bigday.config import Settings, configure_logging, get_settings
from bigday.designer import DesignerPage
from bigday.floorplan_page import FloorPlanPage
from bigday.models import Event
from bigday.queries import QueryCache, guests_key, rsvps_key
from bigday.storage import LocalStorage, TokenStore

logger = logging.getLogger(__name__)

THEME_PATH = "bigday_theme.qss"


def _ensure_ext(path: str, ext: str) -> str:
    ext = ext.lower()
    return path if path.lower().endswith(ext) else path + ext


class MainWindow(QMainWindow):
    def __init__(self, event: Event, api: ApiClient, storage: LocalStorage, settings: Settings):
        super().__init__()
        self.event = event
        self.api = api
        self.storage = storage
        self.settings = settings
        self.setWindowTitle(f"BigDay · {event.title or event.id}")
        self.resize(1360, 880)

        self.cache = QueryCache(parent=self)
        self.floor = FloorPlanPage(event, api, self.cache, storage, settings, self)
        self.guests = GuestsPage(event, api, self.cache, self)
        self.rsvps = RsvpsPage(event, api, self.cache, self)
        self.questions = QuestionsPage(event, api, self.cache, self)
        self.designer = DesignerPage(event, api, self.cache, storage, settings, self)
        self.costing = CostingPage(api, self.cache, self)
        self.users = UsersPage(api, self.cache, self)
        self.tabs = QTabWidget(self)
        self.tabs.addTab(self.floor, "Floor plan")
        self.tabs.addTab(self.guests, "Guests")
        self.tabs.addTab(self.rsvps, "RSVPs")
        self.tabs.addTab(self.questions, "Questions")
        self.tabs.addTab(self.designer, "RSVP design")
        self.tabs.addTab(self.costing, "Costing")
        self.tabs.addTab(self.users, "Users")
        self.setCentralWidget(self.tabs)
        self.designer.dirtyChanged.connect(self._on_design_dirty)

        self._build_toolbar()
        self.setStatusBar(QStatusBar(self))
        self._status(f"Event: {event.title or event.id}")

    def _build_toolbar(self):
        tb = QToolBar("Main", self)
        tb.setMovable(False)
        self.addToolBar(Qt.TopToolBarArea, tb)

        self.act_import = QAction("Import RSVPs…", self); self.act_import.triggered.connect(self.import_rsvps)
        self.act_export = QAction("Export RSVPs…", self); self.act_export.triggered.connect(self.export_rsvps)
        self.act_print = QAction("Print layout to PDF…", self); self.act_print.triggered.connect(self.print_layout)
        self.act_welcome = QAction("Switch event", self); self.act_welcome.triggered.connect(self._back_to_welcome)
        self.act_signout = QAction("Sign out", self); self.act_signout.triggered.connect(self.sign_out)

        def add_menu_button(title: str, fallback, menu_builder):
            btn = QToolButton(self)
            btn.setText(title)
            btn.setIcon(self.style().standardIcon(fallback))
            btn.setPopupMode(QToolButton.InstantPopup)
            btn.setToolButtonStyle(Qt.ToolButtonTextBesideIcon)
            m = QMenu(btn); menu_builder(m)
            btn.setMenu(m)
            wa = QWidgetAction(self); wa.setDefaultWidget(btn)
            tb.addAction(wa)

        def build_rsvp_menu(m: QMenu):
            m.addAction(self.act_import)
            m.addAction(self.act_export)
        add_menu_button("RSVPs", QStyle.SP_FileDialogDetailedView, build_rsvp_menu)

        def build_layout_menu(m: QMenu):
            m.addAction(self.act_print)
        add_menu_button("Layout", QStyle.SP_DialogSaveButton, build_layout_menu)

        def build_account_menu(m: QMenu):
            m.addAction(self.act_welcome)
            m.addSeparator()
            m.addAction(self.act_signout)
        add_menu_button("Account", QStyle.SP_DirHomeIcon, build_account_menu)

    def _status(self, text: str):
        self.statusBar().showMessage(text, 3000)

    def _on_design_dirty(self, dirty: bool):
        self.tabs.setTabText(self.tabs.indexOf(self.designer), "RSVP design •" if dirty else "RSVP design")

    # ---------- RSVPs ----------
    def import_rsvps(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import RSVPs", "", "CSV (*.csv);;All files (*)")
        if not path:
            return
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            QMessageBox.critical(self, "Import RSVPs", str(e))
            return
        name = Path(path).name
        self._status(f"Uploading {name}…")
        self.cache.run_mutation(lambda: self.api.import_rsvps(self.event.id, name, content),
                                lambda _: self._status(f"Imported {name}"),
                                lambda err: QMessageBox.critical(self, "Import RSVPs", str(err)),
                                invalidate=(guests_key(self.event.id), rsvps_key(self.event.id)))

    def export_rsvps(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export RSVPs", "rsvps.xlsx", "Excel (*.xlsx)")
        if not path:
            return
        path = _ensure_ext(path, ".xlsx")

        def write(content: bytes):
            try:
                Path(path).write_bytes(content)
            except OSError as e:
                QMessageBox.critical(self, "Export RSVPs", str(e))
                return
            self._status(f"Saved: {path}")

        self.cache.call(lambda: self.api.export_rsvps(self.event.id), write,
                        lambda err: QMessageBox.critical(self, "Export RSVPs", str(err)))

    # ---------- layout ----------
    def print_layout(self):
        path, _ = QFileDialog.getSaveFileName(self, "Print layout", "floor-plan.pdf", "PDF (*.pdf)")
        if not path:
            return
        path = _ensure_ext(path, ".pdf")
        printer = QPrinter(QPrinter.HighResolution)
        printer.setOutputFormat(QPrinter.PdfFormat)
        printer.setOutputFileName(path)
        printer.setPageSize(QPageSize(QPageSize.A4))
        printer.setPageOrientation(QPageLayout.Landscape)
        painter = QPainter()
        if not painter.begin(printer):
            QMessageBox.critical(self, "Print layout", f"Could not write {path}")
            return
        try:
            self.floor.render_layout(painter, QRectF(painter.viewport()))
        finally:
            painter.end()
        self._status(f"Saved: {path}")

    # ---------- navigation ----------
    def _confirm_leave(self) -> bool:
        if not self.designer.dirty:
            return True
        ans = QMessageBox.question(self, "Unsaved design",
                                   "The RSVP design has unsaved changes. Leave anyway?",
                                   QMessageBox.Yes | QMessageBox.No, QMessageBox.No)
        return ans == QMessageBox.Yes

    def _back_to_welcome(self):
        if not self._confirm_leave():
            return
        from start_window import StartWindow
        self.designer.dirty = False
        self.close()
        self._welcome = StartWindow(self.settings, self.storage)
        self._welcome.show()

    def sign_out(self):
        if not self._confirm_leave():
            return
        TokenStore(self.storage).clear()
        self.designer.dirty = False
        self._back_to_welcome()

    def closeEvent(self, event):
        if not self._confirm_leave():
            event.ignore()
            return
        self.floor.shutdown()
        super().closeEvent(event)


def main():
    app = QApplication(sys.argv)
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        with open(THEME_PATH, "r", encoding="utf-8") as f:
            app.setStyleSheet(f.read())
    except OSError:
        logger.debug("No %s, using the default style", THEME_PATH)
    from start_window import StartWindow
    win = StartWindow(settings)
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
