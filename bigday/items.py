from __future__ import annotations
from typing import List, Optional, Sequence

from PySide6.QtCore import Qt, QRectF
from PySide6.QtGui import QBrush, QColor, QFont, QPainter, QPen
from PySide6.QtWidgets import QGraphicsEllipseItem, QGraphicsRectItem

from .geometry import SEAT_SIZE, seat_occupancy, seat_positions
from .models import FloorItem, Guest, ItemKind, TableShape
from .utils import (OBSTACLE_COLORS, SEAT_EMPTY, SEAT_TAKEN, SEAT_VIP, SELECT_PEN, TABLE_FILL,
                    table_color)

OBSTACLE_LABELS = {
    ItemKind.STAGE: "Stage",
    ItemKind.DANCE_FLOOR: "Dance Floor",
    ItemKind.PILLAR: "",
    ItemKind.WALL: "Wall",
}


class ResizeHandle(QGraphicsRectItem):
    """Bottom-right grip on the selected item; the view starts a resize gesture on press."""
    SIZE = 10.0

    def __init__(self, owner: "FloorGraphicsItem"):
        super().__init__(0, 0, self.SIZE, self.SIZE, owner)
        self.owner = owner
        self.setZValue(1000)
        self.setBrush(QColor(255, 255, 255))
        self.setPen(QPen(SELECT_PEN, 1))
        self.setCursor(Qt.SizeFDiagCursor)
        self.update_pos()

    def update_pos(self):
        r = self.owner.rect()
        self.setPos(r.right() - self.SIZE / 2, r.bottom() - self.SIZE / 2)


class FloorGraphicsItem(QGraphicsRectItem):
    """Common base: position and size always come from a ``FloorItem``."""

    def __init__(self, data: FloorItem):
        super().__init__()
        self.floor = data
        self.selected = False
        self._handle: Optional[ResizeHandle] = None
        self.setAcceptHoverEvents(True)

    @property
    def item_id(self) -> str:
        return self.floor.id

    def apply(self, data: FloorItem):
        self.floor = data
        self.prepareGeometryChange()
        self.setRect(QRectF(0, 0, data.width, data.height))
        self.setPos(data.x, data.y)
        if data.rotation:
            self.setTransformOriginPoint(data.width / 2, data.height / 2)
            self.setRotation(data.rotation)
        if self._handle:
            self._handle.update_pos()
        self.update()

    def set_selected(self, on: bool):
        if on == self.selected:
            return
        self.selected = on
        if on and self._handle is None:
            self._handle = ResizeHandle(self)
        elif not on and self._handle is not None:
            self._handle.setParentItem(None)
            if self.scene():
                self.scene().removeItem(self._handle)
            self._handle = None
        self.update()

    def _selection_pen(self) -> QPen:
        return QPen(SELECT_PEN, 2, Qt.DashLine)


class SeatItem(QGraphicsEllipseItem):
    def __init__(self, table: "TableItem", index: int, guest: Optional[Guest], x: float, y: float):
        super().__init__(0, 0, SEAT_SIZE, SEAT_SIZE, table)
        self.table = table
        self.index = index
        self.guest = guest
        self.setPos(x, y)
        self.setZValue(5)
        self.setAcceptHoverEvents(True)
        self.setCursor(Qt.PointingHandCursor)
        if guest is None:
            self.setBrush(QBrush(SEAT_EMPTY)); self.setPen(QPen(QColor("#94A3B8"), 1, Qt.DashLine))
            self.setToolTip(f"Seat {index + 1}: click to assign")
        else:
            self.setBrush(QBrush(SEAT_VIP if guest.is_vip else SEAT_TAKEN)); self.setPen(QPen(Qt.white, 1.5))
            self.setToolTip(f"{guest.name}: click to unassign")

    @property
    def guest_id(self) -> Optional[str]:
        return self.guest.id if self.guest else None

    def paint(self, painter: QPainter, option, widget=None):
        super().paint(painter, option, widget)
        if self.guest is not None:
            initials = "".join(p[:1] for p in self.guest.name.split()[:2]).upper() or "?"
            painter.setPen(Qt.white)
            painter.setFont(QFont("", 7, QFont.DemiBold))
            painter.drawText(self.rect(), Qt.AlignCenter, initials)


class TableItem(FloorGraphicsItem):
    def __init__(self, data: FloorItem, name: str = "", guests: Sequence[Guest] = ()):
        super().__init__(data)
        self.name = name
        self.guests: List[Guest] = list(guests)
        self.seats: List[SeatItem] = []
        self.apply(data)
        self.setZValue(2)

    @property
    def shape_name(self) -> str:
        return self.floor.shape or TableShape.ROUND

    def set_guests(self, name: str, guests: Sequence[Guest]):
        self.name = name
        self.guests = list(guests)
        self._build_seats()
        self.update()

    def apply(self, data: FloorItem):
        super().apply(data)
        self._build_seats()

    def occupancy(self) -> List[Optional[Guest]]:
        return seat_occupancy(self.floor.capacity, self.guests)

    def _build_seats(self):
        for s in self.seats:
            s.setParentItem(None)
            if s.scene():
                s.scene().removeItem(s)
        self.seats = []
        occ = self.occupancy()
        for i, (x, y) in enumerate(seat_positions(self.shape_name, self.floor.capacity,
                                                   self.floor.width, self.floor.height)):
            self.seats.append(SeatItem(self, i, occ[i] if i < len(occ) else None, x, y))
        seated = sum(1 for g in occ if g is not None)
        self.setToolTip(f"{self.name or 'Table'}\n{seated}/{self.floor.capacity} seated")

    def boundingRect(self) -> QRectF:
        # seats hang outside the table body
        pad = SEAT_SIZE + 8
        return self.rect().adjusted(-pad, -pad, pad, pad)

    def paint(self, painter: QPainter, option, widget=None):
        painter.setRenderHint(QPainter.Antialiasing, True)
        r = self.rect()
        color = table_color(self.floor.id)
        painter.setBrush(QBrush(TABLE_FILL))
        painter.setPen(self._selection_pen() if self.selected else QPen(color, 2))
        if self.shape_name == TableShape.ROUND:
            painter.drawEllipse(r)
        else:
            painter.drawRoundedRect(r, 8, 8)

        seated = sum(1 for g in self.occupancy() if g is not None)
        painter.setPen(color.darker(130))
        painter.setFont(QFont("", 9, QFont.DemiBold))
        title = QRectF(r.left(), r.center().y() - 16, r.width(), 16)
        painter.drawText(title, Qt.AlignCenter, self.name or "Table")
        painter.setFont(QFont("", 8))
        painter.drawText(QRectF(r.left(), r.center().y(), r.width(), 14), Qt.AlignCenter,
                         f"{seated}/{self.floor.capacity}")


class ObstacleItem(FloorGraphicsItem):
    def __init__(self, data: FloorItem):
        super().__init__(data)
        self.apply(data)
        self.setZValue(1)
        self.setToolTip(OBSTACLE_LABELS.get(data.kind, data.kind) or data.kind)

    def paint(self, painter: QPainter, option, widget=None):
        painter.setRenderHint(QPainter.Antialiasing, True)
        r = self.rect()
        fill = OBSTACLE_COLORS.get(self.floor.kind, QColor(100, 116, 139, 160))
        painter.setBrush(QBrush(fill))
        painter.setPen(self._selection_pen() if self.selected else QPen(fill.darker(150), 1.5))
        if self.floor.kind == ItemKind.PILLAR:
            painter.drawEllipse(r)
        else:
            painter.drawRoundedRect(r, 4, 4)
        label = OBSTACLE_LABELS.get(self.floor.kind, "")
        if label:
            painter.setPen(QColor("#0F172A") if self.floor.kind == ItemKind.DANCE_FLOOR else Qt.white)
            painter.setFont(QFont("", 8, QFont.DemiBold))
            if self.floor.kind == ItemKind.WALL and r.height() > r.width():
                painter.save()
                painter.translate(r.center()); painter.rotate(90)
                painter.drawText(QRectF(-r.height() / 2, -r.width() / 2, r.height(), r.width()),
                                 Qt.AlignCenter, label)
                painter.restore()
            else:
                painter.drawText(r, Qt.AlignCenter, label)


def make_graphics_item(data: FloorItem, name: str = "", guests: Sequence[Guest] = ()) -> FloorGraphicsItem:
    if data.kind == ItemKind.TABLE:
        return TableItem(data, name, guests)
    return ObstacleItem(data)
