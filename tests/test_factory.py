import random

import pytest

from bigday.factory import DECORATION_SIZES, ItemFactory, decoration_label, new_item_id
from bigday.models import FloorItem, ItemKind, TableShape
from bigday.store import FloorPlanStore


@pytest.fixture
def factory(storage):
    return ItemFactory(FloorPlanStore(storage, "ev-1"), rng=random.Random(7))


class TestItemFactory:

    @pytest.mark.parametrize("kind", list(DECORATION_SIZES))
    def test_decoration_sizes(self, factory, kind):
        item = factory.add_decoration(kind)
        assert (item.width, item.height) == DECORATION_SIZES[kind]
        assert 200 <= item.x <= 400 and 100 <= item.y <= 300
        assert factory.store.get(item.id) is not None

    def test_ids_are_unique(self):
        assert len({new_item_id() for _ in range(50)}) == 50

    def test_place_new_table(self, factory):
        item = factory.place_table("t9", 10, 120, 80, TableShape.RECT)
        assert (item.x, item.y, item.width, item.height) == (120, 80, 200.0, 70.0)
        assert item.meta == {"shape": TableShape.RECT, "capacity": 10}

    def test_place_existing_table_moves_it(self, factory):
        factory.store.add_item(FloorItem(id="t9", kind=ItemKind.TABLE, meta={"shape": "round", "note": "x"}))
        item = factory.place_table("t9", 4, 40, 40, TableShape.SQUARE)
        assert len(factory.store.items) == 1
        assert item.meta == {"shape": TableShape.SQUARE, "capacity": 4, "note": "x"}
        assert (item.width, item.height) == (90.0, 90.0)

    def test_labels(self):
        assert decoration_label(ItemKind.DANCE_FLOOR) == "Dance floor"
        assert decoration_label(ItemKind.PILLAR) == "Pillar"
