"""Floor-plan tab: canvas, toolbar, guest dock and the seating mutations."""
from __future__ import annotations
import logging
from typing import List, Optional, Tuple

from PySide6.QtCore import Qt, QPoint, QRectF
from PySide6.QtGui import QPainter
from PySide6.QtWidgets import QDockWidget, QHBoxLayout, QLabel, QMainWindow, QMessageBox, QVBoxLayout, QWidget

from .api import ApiClient
from .canvas import NOTICE_TABLE_DELETE, CanvasController
from .config import Settings
from .dialogs import BulkTablesDialog, TableFormDialog, Toast
from .errors import ApiError
from .factory import ItemFactory, decoration_label
from .geometry import first_free_seat
from .guest_panel import GuestPanel, floor_stats
from .models import Event, Guest, ItemKind, Table, ToolMode
from .queries import QueryCache, guests_key, tables_key
from .scene import FloorScene, FloorView
from .seat_popover import SeatAssignPopover
from .storage import LocalStorage
from .store import FloorPlanStore
from .sync import FloorPlanSync
from .toolbar import FloorToolbar
from .utils import CANVAS_H, CANVAS_W

logger = logging.getLogger(__name__)

DECORATION_ICONS = {ItemKind.STAGE: "🎭", ItemKind.DANCE_FLOOR: "💃", ItemKind.PILLAR: "🔘", ItemKind.WALL: "🧱"}


class StatCard(QLabel):
    def __init__(self, title: str, parent=None):
        super().__init__(parent)
        self.title = title
        self.setObjectName("StatCard")
        self.setStyleSheet("QLabel#StatCard { background:white; border:1px solid #e7e8ee;"
                           " border-radius:10px; padding:6px 12px; }")
        self.set_value(0)

    def set_value(self, value: int):
        self.setText(f"<span style='color:#667085'>{self.title}</span><br><b style='font-size:16px'>{value}</b>")


class FloorPlanPage(QMainWindow):
    def __init__(self, event: Event, api: ApiClient, cache: QueryCache, storage: LocalStorage,
                 settings: Settings, parent=None):
        super().__init__(parent)
        self.setWindowFlags(Qt.Widget)
        self.event = event
        self.api = api
        self.cache = cache
        self.settings = settings
        self._pending_place: Optional[Tuple[float, float, str]] = None
        self._popover: Optional[SeatAssignPopover] = None
        self._tables: List[Table] = []
        self._tables_loaded = False
        self._guests: List[Guest] = []
        self._dialog = None

        self.store = FloorPlanStore(storage, event.id, self)
        self.controller = CanvasController(self.store, settings.snap_size)
        self.scene = FloorScene(self.store, settings.snap_size, self)
        self.view = FloorView(self.scene, self.controller)
        self.factory = ItemFactory(self.store)

        # stats row above the canvas
        central = QWidget(); col = QVBoxLayout(central); col.setContentsMargins(8, 8, 8, 0)
        row = QHBoxLayout()
        self.card_tables = StatCard("Total Tables"); self.card_seated = StatCard("Seated Guests")
        self.card_unassigned = StatCard("Unassigned"); self.card_capacity = StatCard("Total Capacity")
        for c in (self.card_tables, self.card_seated, self.card_unassigned, self.card_capacity):
            row.addWidget(c)
        row.addStretch(1)
        self.lbl_load = QLabel(""); self.lbl_load.setStyleSheet("color:#b42318;")
        row.addWidget(self.lbl_load)
        col.addLayout(row)
        col.addWidget(self.view, 1)
        self.setCentralWidget(central)

        self.toolbar = FloorToolbar(self)
        self.addToolBar(Qt.TopToolBarArea, self.toolbar)

        self.guest_panel = GuestPanel(self)
        self.guest_dock = QDockWidget("Guests", self)
        self.guest_dock.setWidget(self.guest_panel)
        self.guest_dock.setMinimumWidth(260)
        self.guest_dock.setAllowedAreas(Qt.LeftDockWidgetArea | Qt.RightDockWidgetArea)
        self.addDockWidget(Qt.RightDockWidgetArea, self.guest_dock)

        self.toast = Toast(self.view.viewport(), settings.toast_ms)

        # ---------- wiring ----------
        self.controller.on_place = self._on_place
        self.controller.on_notice = lambda text: self.show_toast(
            text, "⚠️" if text == NOTICE_TABLE_DELETE else "🗑️")
        self.view.viewChanged.connect(lambda: self.toolbar.set_zoom(self.controller.zoom))
        self.view.seatClicked.connect(self._on_seat_clicked)
        self.view.tableDoubleClicked.connect(self._edit_table)
        self.view.guestDropped.connect(self._on_drop_guest)
        self.guest_panel.unassignRequested.connect(self._unassign)

        tb = self.toolbar
        tb.shapeTool.connect(self._on_shape_tool)
        tb.addDecoration.connect(self._add_decoration)
        tb.snapToggled.connect(lambda on: setattr(self.controller, "snap_enabled", on))
        tb.zoomIn.connect(self.controller.zoom_in)
        tb.zoomOut.connect(self.controller.zoom_out)
        tb.resetView.connect(self._reset_view)
        tb.autoArrange.connect(self._auto_arrange)
        tb.newTable.connect(lambda: self._open_table_dialog(None))
        tb.bulkTables.connect(self._open_bulk_dialog)
        tb.saveLayout.connect(self._save_layout)

        self.cache.updated.connect(self._on_query_updated)
        self.cache.failed.connect(self._on_query_failed)
        self.cache.register(self.guests_key, lambda: self.api.list_guests(event.id))
        self.cache.register(self.tables_key, lambda: self.api.list_tables(event.id))

        self.sync: Optional[FloorPlanSync] = None
        if settings.layout_sync:
            self.sync = FloorPlanSync(self.store, api, cache, settings.layout_push_delay_ms, self)
            self.sync.conflict.connect(self._on_conflict)
            self.sync.adopted.connect(self._reconcile_tables)
            self.sync.failed.connect(self._on_sync_failed)
            self.sync.start(event.id)

    # ---------- data ----------
    @property
    def guests_key(self) -> str:
        return guests_key(self.event.id)

    @property
    def tables_key(self) -> str:
        return tables_key(self.event.id)

    @property
    def tables(self) -> List[Table]:
        return list(self._tables)

    @property
    def guests(self) -> List[Guest]:
        return list(self._guests)

    def _on_query_updated(self, key: str):
        if key == self.tables_key:
            self._tables = list(self.cache.get(key) or [])
            self._tables_loaded = True
            self._reconcile_tables()
            self.scene.set_tables(self._tables)
        elif key == self.guests_key:
            self._guests = list(self.cache.get(key) or [])
            self.scene.set_guests(self._guests)
        else:
            return
        self.lbl_load.clear()
        self.guest_panel.set_data(self.guests, self.tables)
        self._update_stats()

    def _reconcile_tables(self):
        # floor items follow the API: deleted tables go, new ones get a spot
        if not self._tables_loaded:
            return
        self.store.remove_missing_tables(t.id for t in self._tables)
        if self._tables:
            self.store.sync_tables(self._tables)

    def _on_query_failed(self, key: str, err: ApiError):
        if key == self.tables_key:
            self.lbl_load.setText(f"Couldn't load tables: {err}")
        elif key == self.guests_key:
            self.lbl_load.setText(f"Couldn't load guests: {err}")

    def _update_stats(self):
        s = floor_stats(self.tables, self.guests)
        self.card_tables.set_value(s.total_tables)
        self.card_seated.set_value(s.seated)
        self.card_unassigned.set_value(s.unassigned)
        self.card_capacity.set_value(s.total_capacity)

    def show_toast(self, message: str, icon: str = "✅"):
        self.toast.show_message(message, icon)

    # ---------- toolbar ----------
    def _on_shape_tool(self, mode: str):
        if mode == ToolMode.SELECT:
            self.controller.set_tool(ToolMode.SELECT)
            return
        sel = self.controller.selected_item()
        if sel is not None and sel.is_table:
            self.store.change_table_shape(sel.id, mode)
            self.toolbar.set_tool(ToolMode.SELECT)
            self.show_toast(f"Table shape changed to {mode}")
            return
        self.controller.set_tool(mode)
        self.show_toast(f"Click on canvas to place {mode} table", "📍")

    def _add_decoration(self, kind: str):
        self.factory.add_decoration(kind)
        self.show_toast(f"{decoration_label(kind)} added!", DECORATION_ICONS.get(kind, "✅"))

    def _reset_view(self):
        self.controller.reset_view()
        self.show_toast("View reset", "🎯")

    def _auto_arrange(self):
        self.store.auto_arrange([t.id for t in self.tables])
        self.show_toast("Tables auto-arranged", "✨")

    def _save_layout(self):
        if self.sync is not None:
            self.sync.flush()
        self.show_toast("Layout saved!", "💾")

    # ---------- tables ----------
    def _on_place(self, x: float, y: float, shape: str):
        self._pending_place = (x, y, shape)
        self._open_table_dialog(None)

    def _table(self, table_id: str) -> Optional[Table]:
        return next((t for t in self.tables if t.id == table_id), None)

    def _edit_table(self, table_id: str):
        table = self._table(table_id)
        if table is not None:
            self._open_table_dialog(table)
            return
        # not in the cached list yet
        self.cache.call(lambda: self.api.get_table(table_id), self._open_table_dialog,
                        lambda err: self.show_toast(f"Couldn't load table: {err}", "❌"))

    def _open_table_dialog(self, initial: Optional[Table]):
        dlg = TableFormDialog(initial, self)
        dlg.submitted.connect(lambda name, cap: self._submit_table(dlg, name, cap))
        dlg.deleteRequested.connect(lambda: self._delete_table(dlg))
        dlg.finished.connect(self._on_table_dialog_closed)
        self._dialog = dlg
        dlg.open()

    def _on_table_dialog_closed(self, *_):
        self._dialog = None
        if self._pending_place is not None:
            self._pending_place = None
            self.controller.set_tool(ToolMode.SELECT)
            self.toolbar.set_tool(ToolMode.SELECT)

    def _submit_table(self, dlg: TableFormDialog, name: str, capacity: int):
        event_id = self.event.id
        if dlg.is_edit:
            table_id = dlg.initial.id

            def updated(_):
                item = self.store.get(table_id)
                if item is not None and item.capacity != capacity:
                    self.store.update_item(table_id, meta={**item.meta, "capacity": capacity})
                    self.store.change_table_shape(table_id, item.shape or "round")
                dlg.accept()

            self.cache.run_mutation(lambda: self.api.update_table(table_id, name, capacity), updated,
                                    lambda err: dlg.show_error(str(err)),
                                    invalidate=(self.tables_key,))
            return

        place = self._pending_place

        def created(result):
            new_id = Table.from_api(result).id if isinstance(result, dict) else ""
            if place is not None and new_id:
                x, y, shape = place
                self.factory.place_table(new_id, capacity, x, y, shape)
            dlg.accept()

        self.cache.run_mutation(lambda: self.api.create_table(event_id, name, capacity), created,
                                lambda err: dlg.show_error(str(err)),
                                invalidate=(self.tables_key,))

    def _delete_table(self, dlg: TableFormDialog):
        table_id = dlg.initial.id

        def deleted(_):
            self.store.remove_item(table_id)
            self.controller.select(None)
            self.show_toast("Table deleted", "🗑️")
            dlg.accept()

        self.cache.run_mutation(lambda: self.api.delete_table(table_id), deleted,
                                lambda err: dlg.show_error(str(err)),
                                invalidate=(self.tables_key, self.guests_key))

    def _open_bulk_dialog(self):
        dlg = BulkTablesDialog(self)
        event_id = self.event.id

        def submit(prefix: str, qty: int, cap: int):
            self.cache.run_mutation(lambda: self.api.bulk_create_tables(event_id, prefix, qty, cap),
                                    lambda _: (self.show_toast(f"{qty} tables created"), dlg.accept()),
                                    lambda err: dlg.show_error(str(err)),
                                    invalidate=(self.tables_key,))

        dlg.submitted.connect(submit)
        self._dialog = dlg
        dlg.open()

    # ---------- seating ----------
    def _on_seat_clicked(self, table_id: str, seat_index: int, guest_id, global_pos: QPoint):
        if guest_id:
            self._unassign(guest_id)
            return
        self._popover = SeatAssignPopover(table_id, seat_index, self.guests, self)
        self._popover.guestChosen.connect(self.assign)
        self._popover.show_at(global_pos)

    def _on_drop_guest(self, guest_id: str, table_id: str):
        item = self.store.get(table_id)
        capacity = item.capacity if item else 8
        self.assign(guest_id, table_id, first_free_seat(capacity, self.scene.guests_at(table_id)))

    def assign(self, guest_id: str, table_id: str, seat_index: Optional[int] = None):
        self.cache.run_mutation(
            lambda: self.api.assign_guest(guest_id, table_id, seat_index),
            lambda _: self.show_toast("Guest assigned!"),
            lambda err: self.show_toast("Failed to assign guest", "❌"),
            invalidate=(self.guests_key, self.tables_key),
        )

    def _unassign(self, guest_id: str):
        self.cache.run_mutation(
            lambda: self.api.unassign_guest(guest_id),
            lambda _: self.show_toast("Guest unassigned"),
            lambda err: self.show_toast("Failed to unassign guest", "❌"),
            invalidate=(self.guests_key, self.tables_key),
        )

    # ---------- layout sync ----------
    def _on_sync_failed(self, err: ApiError):
        if self.sync is not None and self.sync.load_failed:
            self.show_toast(f"Layout sync is off: couldn't load the server layout ({err}). "
                            "Retrying on your next edit.", "❌")
            return
        self.show_toast(f"Layout sync failed: {err}", "❌")

    def _on_conflict(self, server_version):
        box = QMessageBox(self)
        box.setIcon(QMessageBox.Warning)
        box.setWindowTitle("Floor plan changed elsewhere")
        box.setText("Someone else saved this floor plan"
                    + (f" (server version {server_version})." if server_version is not None else ".")
                    + "\nYour changes are kept locally and are not being saved.")
        btn_reload = box.addButton("Reload server layout", QMessageBox.AcceptRole)
        btn_over = box.addButton("Overwrite", QMessageBox.DestructiveRole)
        box.addButton("Decide later", QMessageBox.RejectRole)
        box.exec()
        if box.clickedButton() is btn_reload:
            self.sync.reload_server()
        elif box.clickedButton() is btn_over:
            self.sync.overwrite()

    # ---------- misc ----------
    def render_layout(self, painter: QPainter, target: QRectF):
        self.controller.select(None)
        self.scene.render(painter, target, QRectF(0, 0, CANVAS_W, CANVAS_H), Qt.KeepAspectRatio)

    def shutdown(self):
        if self.sync is not None:
            self.sync.flush()
            self.sync.stop()
