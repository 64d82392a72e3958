from __future__ import annotations
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QAction, QActionGroup
from PySide6.QtWidgets import QLabel, QMenu, QToolBar, QToolButton, QWidgetAction

from .models import ItemKind, TableShape, ToolMode

SHAPE_TITLES = {TableShape.ROUND: "Round", TableShape.RECT: "Long", TableShape.SQUARE: "Square"}


class FloorToolbar(QToolBar):
    shapeTool = Signal(str)          # "select" or a table shape
    addDecoration = Signal(str)
    snapToggled = Signal(bool)
    zoomIn = Signal()
    zoomOut = Signal()
    resetView = Signal()
    autoArrange = Signal()
    newTable = Signal()
    bulkTables = Signal()
    saveLayout = Signal()

    def __init__(self, parent=None):
        super().__init__("Floor plan", parent)
        self.setMovable(False)
        self.setToolButtonStyle(Qt.ToolButtonTextOnly)

        self._sep_label("Tables:")
        self.tool_group = QActionGroup(self)
        self.tool_actions = {}
        for mode, title in ((ToolMode.SELECT, "Select"),) + tuple(SHAPE_TITLES.items()):
            act = QAction(title, self, checkable=True)
            act.setToolTip("Select / pan" if mode == ToolMode.SELECT else
                           f"{title} table (or change selected table)")
            act.triggered.connect(lambda _=False, m=mode: self.shapeTool.emit(m))
            self.tool_group.addAction(act); self.addAction(act)
            self.tool_actions[mode] = act
        self.tool_actions[ToolMode.SELECT].setChecked(True)

        self.addSeparator()
        self._sep_label("Decor:")
        for kind, title in ((ItemKind.STAGE, "Stage"), (ItemKind.DANCE_FLOOR, "Dance")):
            act = QAction(title, self); act.triggered.connect(lambda _=False, k=kind: self.addDecoration.emit(k))
            self.addAction(act)
        # obstacles share one menu button
        btn = QToolButton(self); btn.setText("Obstacles"); btn.setPopupMode(QToolButton.InstantPopup)
        m = QMenu(btn)
        for kind, title in ((ItemKind.WALL, "Rectangle (wall)"), (ItemKind.PILLAR, "Circle (pillar)")):
            m.addAction(title, lambda k=kind: self.addDecoration.emit(k))
        btn.setMenu(m)
        wa = QWidgetAction(self); wa.setDefaultWidget(btn); self.addAction(wa)

        self.addSeparator()
        self.act_snap = QAction("Snap", self, checkable=True); self.act_snap.setChecked(True)
        self.act_snap.toggled.connect(self.snapToggled.emit)
        self.addAction(self.act_snap)
        self.addAction("−", self.zoomOut.emit)
        self.lbl_zoom = QLabel(" 100% "); self.lbl_zoom.setMinimumWidth(48); self.lbl_zoom.setAlignment(Qt.AlignCenter)
        self.addWidget(self.lbl_zoom)
        self.addAction("+", self.zoomIn.emit)
        self.addAction("Reset view", self.resetView.emit)

        self.addSeparator()
        self.addAction("Auto-Arrange", self.autoArrange.emit)
        self.addAction("+ New Table", self.newTable.emit)
        self.addAction("Bulk create…", self.bulkTables.emit)
        self.addAction("Save Layout", self.saveLayout.emit)

    def _sep_label(self, text: str):
        lbl = QLabel(f"  {text}  ")
        lbl.setStyleSheet("color:#667085; font-weight:600;")
        self.addWidget(lbl)

    def set_tool(self, mode: str):
        act = self.tool_actions.get(mode)
        if act is not None:
            act.setChecked(True)

    def set_zoom(self, zoom: float):
        self.lbl_zoom.setText(f" {round(zoom * 100)}% ")
