from __future__ import annotations
import logging
import math
from typing import Dict, List, Optional, Sequence

from PySide6.QtCore import Qt, QPoint, QPointF, QRectF, Signal
from PySide6.QtGui import QPainter, QPen, QTransform, QWheelEvent
from PySide6.QtWidgets import QGraphicsScene, QGraphicsView

from .canvas import CanvasController
from .hud import MinimapHUD
from .items import FloorGraphicsItem, ResizeHandle, SeatItem, TableItem, make_graphics_item
from .models import Guest, Table, ToolMode
from .store import FloorPlanStore
from .utils import BG_COLOR, CANVAS_BORDER, CANVAS_H, CANVAS_W, GRID_DOT, GUEST_MIME, OUTSIDE_COLOR

logger = logging.getLogger(__name__)

# room for panning past the canvas edges
VIEW_SLACK = 20000.0

KEY_NAMES = {Qt.Key_Delete: "Delete", Qt.Key_Backspace: "Backspace", Qt.Key_Escape: "Escape"}


class FloorScene(QGraphicsScene):
    """Graphics items mirroring the store; rebuilt whenever the item list changes."""

    def __init__(self, store: FloorPlanStore, grid_step: float = 40.0, parent=None):
        super().__init__(parent)
        self.store = store
        self.grid_step = grid_step
        self.setItemIndexMethod(QGraphicsScene.NoIndex)
        self.setSceneRect(0, 0, CANVAS_W, CANVAS_H)
        self._items: Dict[str, FloorGraphicsItem] = {}
        self._table_names: Dict[str, str] = {}
        self._guests_by_table: Dict[str, List[Guest]] = {}
        self._selected: Optional[str] = None
        store.itemsChanged.connect(self.rebuild)
        self.rebuild()

    # ---------- data ----------
    def set_tables(self, tables: Sequence[Table]):
        self._table_names = {t.id: t.name for t in tables}
        self._refresh_tables()

    def set_guests(self, guests: Sequence[Guest]):
        by_table: Dict[str, List[Guest]] = {}
        for g in guests:
            if g.table_id:
                by_table.setdefault(g.table_id, []).append(g)
        self._guests_by_table = by_table
        self._refresh_tables()

    def guests_at(self, table_id: str) -> List[Guest]:
        return list(self._guests_by_table.get(table_id, []))

    def _refresh_tables(self):
        for item_id, gi in self._items.items():
            if isinstance(gi, TableItem):
                gi.set_guests(self._table_names.get(item_id, ""), self.guests_at(item_id))

    def graphics_item(self, item_id: str) -> Optional[FloorGraphicsItem]:
        return self._items.get(item_id)

    def rebuild(self):
        current = {it.id: it for it in self.store.items}
        for item_id in list(self._items):
            if item_id not in current:
                self.removeItem(self._items.pop(item_id))
        for z, (item_id, data) in enumerate(current.items()):
            gi = self._items.get(item_id)
            if gi is not None and gi.floor.kind != data.kind:
                self.removeItem(self._items.pop(item_id)); gi = None
            if gi is None:
                gi = make_graphics_item(data, self._table_names.get(item_id, ""), self.guests_at(item_id))
                self._items[item_id] = gi
                self.addItem(gi)
            else:
                gi.apply(data)
            gi.setZValue(z + (1000 if data.is_table else 0))
        self.set_selection(self._selected)

    def set_selection(self, item_id: Optional[str]):
        self._selected = item_id
        for iid, gi in self._items.items():
            gi.set_selected(iid == item_id)

    # ---------- painting ----------
    def drawBackground(self, painter: QPainter, rect: QRectF):
        painter.fillRect(rect, OUTSIDE_COLOR)
        canvas = self.sceneRect()
        painter.fillRect(canvas, BG_COLOR)
        step = self.grid_step
        painter.setPen(QPen(GRID_DOT, 2, Qt.SolidLine, Qt.RoundCap))
        area = rect.intersected(canvas)
        x = math.ceil(area.left() / step) * step
        while x <= area.right():
            y = math.ceil(area.top() / step) * step
            while y <= area.bottom():
                painter.drawPoint(QPointF(x, y))
                y += step
            x += step
        painter.setPen(QPen(CANVAS_BORDER, 1.5)); painter.setBrush(Qt.NoBrush)
        painter.drawRect(canvas)


class FloorView(QGraphicsView):
    """Feeds pointer, wheel and key input to ``CanvasController`` and renders its view state."""
    viewChanged = Signal()
    seatClicked = Signal(str, int, object, QPoint)   # table id, seat index, guest id or None, global pos
    tableDoubleClicked = Signal(str)
    guestDropped = Signal(str, str)                   # guest id, table id

    def __init__(self, scene: FloorScene, controller: CanvasController):
        super().__init__(scene)
        self.controller = controller
        self.setRenderHint(QPainter.Antialiasing, True)
        self.setViewportUpdateMode(QGraphicsView.FullViewportUpdate)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setTransformationAnchor(QGraphicsView.NoAnchor)
        self.setResizeAnchor(QGraphicsView.NoAnchor)
        self.setSceneRect(-VIEW_SLACK, -VIEW_SLACK, CANVAS_W + 2 * VIEW_SLACK, CANVAS_H + 2 * VIEW_SLACK)
        self.setDragMode(QGraphicsView.NoDrag)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setAcceptDrops(True)
        self.setMouseTracking(True)

        self.hud = MinimapHUD(self)
        self.hud.reposition()
        controller.on_change = self.refresh
        self.refresh()

    @property
    def floor_scene(self) -> FloorScene:
        return self.scene()

    def refresh(self):
        c = self.controller
        self.setTransform(QTransform.fromScale(c.zoom, c.zoom))
        vp = self.viewport()
        self.centerOn((vp.width() / 2 - c.pan_x) / c.zoom, (vp.height() / 2 - c.pan_y) / c.zoom)
        self.floor_scene.set_selection(c.selected_id)
        self.setCursor(Qt.CrossCursor if c.tool != ToolMode.SELECT else Qt.ArrowCursor)
        self.hud.update()
        self.viewChanged.emit()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.hud.reposition()
        self.refresh()

    # ---------- hit testing ----------
    def _hit(self, pos: QPoint):
        for it in self.items(pos):
            if isinstance(it, (ResizeHandle, SeatItem, FloorGraphicsItem)):
                return it
        return None

    def _table_at(self, pos: QPoint) -> Optional[TableItem]:
        for it in self.items(pos):
            if isinstance(it, TableItem):
                return it
            if isinstance(it, SeatItem):
                return it.table
        return None

    # ---------- mouse ----------
    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return
        self.setFocus()
        p = event.position()
        hit = self._hit(p.toPoint())
        if isinstance(hit, ResizeHandle):
            self.controller.select(hit.owner.item_id)
            self.controller.begin_resize(hit.owner.item_id, p.x(), p.y())
        elif isinstance(hit, SeatItem):
            self.seatClicked.emit(hit.table.item_id, hit.index, hit.guest_id, event.globalPosition().toPoint())
        elif isinstance(hit, FloorGraphicsItem):
            self.controller.press(p.x(), p.y(), hit.item_id)
        else:
            self.controller.press(p.x(), p.y())
        event.accept()

    def mouseMoveEvent(self, event):
        if self.controller.is_dragging or self.controller.is_panning:
            p = event.position()
            self.controller.move(p.x(), p.y())
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.controller.release()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event):
        hit = self._hit(event.position().toPoint())
        if isinstance(hit, TableItem):
            self.tableDoubleClicked.emit(hit.item_id)
            event.accept()
            return
        super().mouseDoubleClickEvent(event)

    def wheelEvent(self, event: QWheelEvent):
        dy = event.angleDelta().y()
        if dy:
            # Qt reports scroll-up as positive
            self.controller.wheel(-dy)
        event.accept()

    def keyPressEvent(self, event):
        name = KEY_NAMES.get(event.key())
        if name and self.controller.key(name):
            event.accept()
            return
        super().keyPressEvent(event)

    # ---------- guest drag and drop ----------
    def dragEnterEvent(self, event):
        if event.mimeData().hasFormat(GUEST_MIME):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if event.mimeData().hasFormat(GUEST_MIME) and self._table_at(event.position().toPoint()):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event):
        if not event.mimeData().hasFormat(GUEST_MIME):
            event.ignore(); return
        table = self._table_at(event.position().toPoint())
        if table is None:
            event.ignore(); return
        guest_id = bytes(event.mimeData().data(GUEST_MIME).data()).decode("utf-8")
        logger.debug("guest %s dropped on table %s", guest_id, table.item_id)
        self.guestDropped.emit(guest_id, table.item_id)
        event.acceptProposedAction()
