from __future__ import annotations
from typing import Sequence

from PySide6.QtCore import Qt, QPoint, Signal
from PySide6.QtWidgets import QFrame, QLabel, QListWidget, QListWidgetItem, QVBoxLayout

from .guest_panel import guest_label, partition_guests
from .models import Guest


class SeatAssignPopover(QFrame):
    """Picker for an empty seat; lists only guests without a table."""
    guestChosen = Signal(str, str, int)   # guest id, table id, seat index

    def __init__(self, table_id: str, seat_index: int, guests: Sequence[Guest], parent=None):
        super().__init__(parent, Qt.Popup)
        self.table_id = table_id
        self.seat_index = seat_index
        self.setFrameShape(QFrame.StyledPanel)
        self.setMinimumWidth(220)
        lay = QVBoxLayout(self); lay.setContentsMargins(8, 8, 8, 8)
        lay.addWidget(QLabel(f"<b>Assign seat {seat_index + 1}</b>"))
        self.lst = QListWidget()
        _, unassigned = partition_guests(guests)
        for g in unassigned:
            it = QListWidgetItem(guest_label(g)); it.setData(Qt.UserRole, g.id)
            self.lst.addItem(it)
        if not unassigned:
            lay.addWidget(QLabel("All guests are seated"))
        self.lst.itemClicked.connect(self._choose)
        lay.addWidget(self.lst)

    def guest_ids(self):
        return [self.lst.item(i).data(Qt.UserRole) for i in range(self.lst.count())]

    def _choose(self, item: QListWidgetItem):
        self.guestChosen.emit(str(item.data(Qt.UserRole)), self.table_id, self.seat_index)
        self.close()

    def show_at(self, pos: QPoint):
        self.adjustSize()
        self.move(pos)
        self.show()
