from __future__ import annotations
import itertools
import random
import time
from typing import Dict, Optional, Tuple

from .geometry import table_dimensions
from .models import FloorItem, ItemKind, TableShape
from .store import FloorPlanStore

DECORATION_SIZES: Dict[str, Tuple[float, float]] = {
    ItemKind.STAGE: (280.0, 50.0),
    ItemKind.DANCE_FLOOR: (180.0, 160.0),
    ItemKind.PILLAR: (45.0, 45.0),
    ItemKind.WALL: (80.0, 40.0),
}
FALLBACK_SIZE = (100.0, 100.0)

_counter = itertools.count(1)


def new_item_id() -> str:
    return f"fp-{int(time.time() * 1000)}-{next(_counter)}"


def decoration_label(kind: str) -> str:
    return "Dance floor" if kind == ItemKind.DANCE_FLOOR else kind[:1].upper() + kind[1:]


class ItemFactory:
    def __init__(self, store: FloorPlanStore, rng: Optional[random.Random] = None):
        self.store = store
        self.rng = rng or random.Random()

    def add_decoration(self, kind: str) -> FloorItem:
        w, h = DECORATION_SIZES.get(kind, FALLBACK_SIZE)
        item = FloorItem(id=new_item_id(), kind=kind,
                         x=200 + self.rng.random() * 200, y=100 + self.rng.random() * 200,
                         width=w, height=h)
        self.store.add_item(item)
        return item

    def place_table(self, table_id: str, capacity: int, x: float, y: float,
                    shape: str = TableShape.ROUND) -> FloorItem:
        """Floor item for a freshly created table at the clicked spot."""
        existing = self.store.get(table_id)
        w, h = table_dimensions(capacity, shape)
        meta = {"shape": shape, "capacity": capacity}
        if existing is not None:
            self.store.update_item(table_id, x=x, y=y, width=w, height=h, meta={**existing.meta, **meta})
            return self.store.get(table_id)
        item = FloorItem(id=table_id, kind=ItemKind.TABLE, x=x, y=y, width=w, height=h, meta=meta)
        self.store.add_item(item)
        return item
