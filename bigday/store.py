from __future__ import annotations
import copy
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from .geometry import table_dimensions
from .models import FloorItem, ItemKind, TableShape, Table, DEFAULT_CAPACITY, grid_cell
from .storage import LocalStorage, floorplan_key
from .utils import (GRID_COLUMNS, GRID_SPACING_X, GRID_SPACING_Y, GRID_OFFSET_X, GRID_OFFSET_Y,
                    ARRANGE_MARGIN)

logger = logging.getLogger(__name__)


class FloorPlanStore(QObject):
    """Per-event list of floor items, mirrored to local storage."""

    itemsChanged = Signal()
    # mutations only; loading an event or adopting a server copy does not fire it
    itemsEdited = Signal()

    def __init__(self, storage: LocalStorage, event_id: Optional[str] = None, parent=None):
        super().__init__(parent)
        self.storage = storage
        self.event_id: Optional[str] = None
        self._items: List[FloorItem] = []
        if event_id is not None:
            self.load_event(event_id)

    # ---------- state ----------
    @property
    def items(self) -> List[FloorItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[FloorItem]:
        for it in self._items:
            if it.id == item_id:
                return it
        return None

    def tables(self) -> List[FloorItem]:
        return [it for it in self._items if it.is_table]

    def to_list(self) -> List[Dict]:
        return [it.to_dict() for it in self._items]

    # ---------- persistence ----------
    def _read(self, event_id: str) -> List[FloorItem]:
        raw = self.storage.get_json(floorplan_key(event_id), [])
        if not isinstance(raw, list):
            return []
        try:
            return [FloorItem.from_dict(d) for d in raw]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding saved floor plan for %s: %s", event_id, e)
            return []

    def _persist(self):
        if self.event_id is None:
            return
        self.storage.set_json(floorplan_key(self.event_id), self.to_list())

    def load_event(self, event_id: str):
        self.event_id = event_id
        self._items = self._read(event_id)
        logger.debug("Loaded %d floor items for event %s", len(self._items), event_id)
        self.itemsChanged.emit()

    def replace_items(self, items: Iterable[FloorItem], edited: bool = False):
        self._items = [copy.deepcopy(it) for it in items]
        self._persist()
        self.itemsChanged.emit()
        if edited:
            self.itemsEdited.emit()

    def _commit(self, items: List[FloorItem]):
        self._items = items
        self._persist()
        self.itemsChanged.emit()
        self.itemsEdited.emit()

    # ---------- operations ----------
    def add_item(self, item: FloorItem):
        self._commit(self._items + [item])

    def update_item(self, item_id: str, **patch):
        out = []
        hit = False
        for it in self._items:
            if it.id == item_id:
                it = copy.deepcopy(it)
                for k, v in patch.items():
                    if k == "meta":
                        v = dict(v or {})
                    setattr(it, k, v)
                hit = True
            out.append(it)
        if hit:
            self._commit(out)

    def remove_item(self, item_id: str):
        out = [it for it in self._items if it.id != item_id]
        if len(out) != len(self._items):
            self._commit(out)

    def remove_missing_tables(self, table_ids: Iterable[str]):
        alive = set(table_ids)
        out = [it for it in self._items if not it.is_table or it.id in alive]
        if len(out) != len(self._items):
            self._commit(out)

    def auto_arrange(self, table_ids: Sequence[str], columns: int = GRID_COLUMNS):
        wanted = set(table_ids)
        non_tables = [it for it in self._items if not it.is_table]
        tables = [it for it in self._items if it.is_table]
        to_arrange = [t for t in tables if t.id in wanted]
        max_w = max([t.width for t in to_arrange] + [100.0])
        max_h = max([t.height for t in to_arrange] + [100.0])
        spacing_x = max_w + ARRANGE_MARGIN
        spacing_y = max_h + ARRANGE_MARGIN
        arranged = []
        for idx, t in enumerate(to_arrange):
            t = copy.deepcopy(t)
            col, row = grid_cell(idx, columns)
            t.x = GRID_OFFSET_X + col * spacing_x
            t.y = GRID_OFFSET_Y + row * spacing_y
            arranged.append(t)
        kept = [t for t in tables if t.id not in wanted]
        self._commit(non_tables + arranged + kept)

    def sync_tables(self, api_tables: Sequence[Table], default_shape: str = TableShape.ROUND) -> bool:
        """Give every API table a floor item; repair table items without a shape.

        Returns True when the item list changed.
        """
        changed = False
        capacity_map = {t.id: t.capacity for t in api_tables}

        patched: List[FloorItem] = []
        for it in self._items:
            if it.is_table and not it.meta.get("shape"):
                changed = True
                cap = capacity_map.get(it.id, DEFAULT_CAPACITY)
                w, h = table_dimensions(cap, TableShape.ROUND)
                it = copy.deepcopy(it)
                it.width, it.height = w, h
                it.meta = {**it.meta, "shape": TableShape.ROUND, "capacity": cap}
            patched.append(it)

        existing = {it.id for it in patched if it.is_table}
        missing = [t for t in api_tables if t.id not in existing]
        if not missing:
            if changed:
                self._commit(patched)
            return changed

        start = sum(1 for it in patched if it.is_table)
        for idx, t in enumerate(missing):
            w, h = table_dimensions(t.capacity, default_shape)
            col, row = grid_cell(start + idx, GRID_COLUMNS)
            patched.append(FloorItem(
                id=t.id, kind=ItemKind.TABLE,
                x=GRID_OFFSET_X + col * GRID_SPACING_X,
                y=GRID_OFFSET_Y + row * GRID_SPACING_Y,
                width=w, height=h,
                meta={"shape": default_shape, "capacity": t.capacity},
            ))
        logger.info("Placed %d new tables on the floor plan", len(missing))
        self._commit(patched)
        return True

    def change_table_shape(self, item_id: str, shape: str):
        it = self.get(item_id)
        if it is None or not it.is_table:
            return
        cap = it.meta.get("capacity")
        cap = DEFAULT_CAPACITY if cap is None else int(cap)
        w, h = table_dimensions(cap, shape)
        self.update_item(item_id, width=w, height=h, meta={**it.meta, "shape": shape})
