from __future__ import annotations
from PySide6.QtCore import Qt, QRectF
from PySide6.QtGui import QColor, QFont, QPainter, QPen
from PySide6.QtWidgets import QWidget

from .models import ItemKind
from .utils import MINIMAP_W, MINIMAP_H, MINIMAP_HEADER, SELECT_PEN, table_color

MARGIN = 12


class MinimapHUD(QWidget):
    """Overview of the whole canvas pinned to the view's bottom-right corner.

    Pressing or dragging inside it recentres the main view on that point.
    """

    def __init__(self, view):
        super().__init__(view.viewport())
        self.view = view
        self.setObjectName("MinimapHUD")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.setStyleSheet("QWidget#MinimapHUD { background: rgba(255,255,255,0.95);"
                           " border:1px solid #e7e8ee; border-radius:8px; }")
        self.setFixedSize(int(MINIMAP_W), int(MINIMAP_H + MINIMAP_HEADER))
        self.setCursor(Qt.CrossCursor)
        self.show()
        self.raise_()

    @property
    def controller(self):
        return self.view.controller

    def reposition(self):
        vw = self.view.viewport().width()
        vh = self.view.viewport().height()
        self.move(vw - self.width() - MARGIN, vh - self.height() - MARGIN)

    def paintEvent(self, event):
        super().paintEvent(event)
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing, True)
        p.setPen(QColor("#64748B")); p.setFont(QFont("", 7, QFont.DemiBold))
        p.drawText(QRectF(6, 0, MINIMAP_W - 12, MINIMAP_HEADER), Qt.AlignVCenter | Qt.AlignLeft, "Minimap")
        p.translate(0, MINIMAP_HEADER)
        p.setPen(Qt.NoPen)
        for item, (x, y, w, h) in self.controller.minimap_rects():
            if item.kind == ItemKind.TABLE:
                p.setBrush(table_color(item.id))
            elif item.kind == ItemKind.STAGE:
                p.setBrush(QColor("#4F46E5"))
            elif item.kind == ItemKind.DANCE_FLOOR:
                p.setBrush(QColor("#C7D2FE"))
            else:
                p.setBrush(QColor("#64748B"))
            if item.kind in (ItemKind.TABLE, ItemKind.PILLAR):
                p.drawEllipse(QRectF(x, y, w, h))
            else:
                p.drawRect(QRectF(x, y, w, h))
        vp = self.view.viewport()
        x, y, w, h = self.controller.minimap_viewport(vp.width(), vp.height())
        p.setBrush(QColor(37, 99, 235, 30)); p.setPen(QPen(SELECT_PEN, 1.5))
        p.drawRect(QRectF(x, y, max(0.0, w), max(0.0, h)))
        p.end()

    def _recentre(self, event):
        vp = self.view.viewport()
        pos = event.position()
        self.controller.minimap_press(pos.x(), pos.y(), vp.width(), vp.height())

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self._recentre(event)
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if event.buttons() & Qt.LeftButton:
            self._recentre(event)
            event.accept()
            return
        super().mouseMoveEvent(event)
