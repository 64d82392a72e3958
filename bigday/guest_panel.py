from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from PySide6.QtCore import Qt, QMimeData, Signal
from PySide6.QtWidgets import (QAbstractItemView, QLabel, QLineEdit, QListWidget, QListWidgetItem,
                               QVBoxLayout, QWidget)

from .models import Guest, Table
from .utils import GUEST_MIME


def partition_guests(guests: Sequence[Guest]) -> Tuple[List[Guest], List[Guest]]:
    """(assigned, unassigned), keeping input order."""
    assigned = [g for g in guests if g.table_id]
    unassigned = [g for g in guests if not g.table_id]
    return assigned, unassigned


def filter_guests(guests: Sequence[Guest], term: str) -> List[Guest]:
    term = (term or "").strip().lower()
    if not term:
        return list(guests)
    return [g for g in guests if term in (g.name or "").lower() or term in (g.phone or "").lower()]


@dataclass
class FloorStats:
    total_tables: int
    seated: int
    unassigned: int
    total_capacity: int


def floor_stats(tables: Sequence[Table], guests: Sequence[Guest]) -> FloorStats:
    unassigned = sum(1 for g in guests if not g.table_id)
    return FloorStats(
        total_tables=len(tables),
        seated=len(guests) - unassigned,
        unassigned=unassigned,
        total_capacity=sum(t.capacity or 0 for t in tables),
    )


def guest_label(g: Guest) -> str:
    vip = "  ★ VIP" if g.is_vip else ""
    pax = f"  ({g.pax} pax)" if g.pax > 1 else ""
    return f"{g.name or 'Unnamed guest'}{vip}{pax}"


class GuestListWidget(QListWidget):
    """Unassigned guests; each row drags its guest id onto a table."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setDragEnabled(True)
        self.setDragDropMode(QAbstractItemView.DragOnly)
        self.setSelectionMode(QAbstractItemView.SingleSelection)

    def mimeData(self, items):
        md = QMimeData()
        if items:
            md.setData(GUEST_MIME, str(items[0].data(Qt.UserRole)).encode("utf-8"))
        return md

    def mimeTypes(self):
        return [GUEST_MIME]


class GuestPanel(QWidget):
    unassignRequested = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._guests: List[Guest] = []
        self._table_names: Dict[str, str] = {}
        lay = QVBoxLayout(self); lay.setContentsMargins(8, 8, 8, 8)
        self.lbl_counts = QLabel("0 seated / 0 pending")
        self.ed_search = QLineEdit(); self.ed_search.setPlaceholderText("Search guests…")
        self.ed_search.setClearButtonEnabled(True)
        self.ed_search.textChanged.connect(self._refill)
        self.lst_unassigned = GuestListWidget()
        self.lst_assigned = QListWidget()
        self.lst_assigned.setToolTip("Double-click to unassign")
        self.lst_assigned.itemDoubleClicked.connect(
            lambda it: self.unassignRequested.emit(str(it.data(Qt.UserRole))))
        lay.addWidget(self.lbl_counts)
        lay.addWidget(self.ed_search)
        lay.addWidget(QLabel("Unassigned (drag onto a table)"))
        lay.addWidget(self.lst_unassigned, 2)
        lay.addWidget(QLabel("Seated"))
        lay.addWidget(self.lst_assigned, 1)

    def set_data(self, guests: Sequence[Guest], tables: Sequence[Table]):
        self._guests = list(guests)
        self._table_names = {t.id: t.name for t in tables}
        self._refill()

    def _refill(self, *_):
        assigned, unassigned = partition_guests(self._guests)
        self.lbl_counts.setText(f"{len(assigned)} seated / {len(unassigned)} pending")
        term = self.ed_search.text()
        self.lst_unassigned.clear(); self.lst_assigned.clear()
        for g in filter_guests(unassigned, term):
            it = QListWidgetItem(guest_label(g)); it.setData(Qt.UserRole, g.id)
            self.lst_unassigned.addItem(it)
        for g in filter_guests(assigned, term):
            table = self._table_names.get(g.table_id or "", "Table")
            it = QListWidgetItem(f"{guest_label(g)}  →  {table}"); it.setData(Qt.UserRole, g.id)
            self.lst_assigned.addItem(it)
