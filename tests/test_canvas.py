import pytest

from bigday.canvas import NOTICE_TABLE_DELETE, CanvasController
from bigday.models import FloorItem, ItemKind, TableShape, ToolMode
from bigday.store import FloorPlanStore


@pytest.fixture
def store(storage):
    s = FloorPlanStore(storage, "ev-1")
    s.add_item(FloorItem(id="t1", kind=ItemKind.TABLE, x=100, y=100, width=108, height=108,
                         meta={"shape": TableShape.ROUND, "capacity": 8}))
    s.add_item(FloorItem(id="stage", kind=ItemKind.STAGE, x=400, y=80, width=300, height=120))
    return s


@pytest.fixture
def ctl(store):
    c = CanvasController(store, snap_size=40)
    c.notices = []
    c.placed = []
    c.on_notice = c.notices.append
    c.on_place = lambda x, y, mode: c.placed.append((x, y, mode))
    return c


class TestPointer:

    def test_empty_press_pans(self, ctl):
        ctl.press(10, 10)
        ctl.move(60, 35)
        ctl.release()
        assert (ctl.pan_x, ctl.pan_y) == (50, 25)
        assert not ctl.is_panning

    def test_empty_press_clears_selection(self, ctl):
        ctl.select("t1")
        ctl.press(5, 5)
        assert ctl.selected_id is None

    def test_drag_snaps_to_grid(self, ctl, store):
        ctl.press(110, 110, "t1")
        ctl.move(163, 127)
        ctl.release()
        t1 = store.get("t1")
        # offset 10,10 keeps the grab point under the cursor, then snaps
        assert (t1.x, t1.y) == (160, 120)
        assert ctl.selected_id == "t1"

    def test_drag_without_snap(self, ctl, store):
        ctl.snap_enabled = False
        ctl.press(110, 110, "t1")
        ctl.move(163, 127)
        assert (store.get("t1").x, store.get("t1").y) == (153, 117)

    def test_drag_respects_zoom_and_pan(self, ctl, store):
        ctl.snap_enabled = False
        ctl.zoom, ctl.pan_x, ctl.pan_y = 2.0, 20.0, 0.0
        ctl.press(220, 200, "t1")
        ctl.move(320, 300)
        assert (store.get("t1").x, store.get("t1").y) == (150, 150)

    def test_place_mode_reports_snapped_point(self, ctl):
        ctl.set_tool(ToolMode.RECT)
        ctl.press(95, 61)
        assert ctl.placed == [(80, 80, ToolMode.RECT)]
        assert not ctl.is_panning

    def test_resize_has_minimum(self, ctl, store):
        ctl.begin_resize("stage", 700, 200)
        ctl.move(200, 150)
        assert (store.get("stage").width, store.get("stage").height) == (50, 70)
        ctl.move(760, 230)
        assert (store.get("stage").width, store.get("stage").height) == (360, 150)

    def test_item_at_prefers_topmost(self, ctl, store):
        store.add_item(FloorItem(id="pillar", kind=ItemKind.PILLAR, x=120, y=120, width=40, height=40))
        assert ctl.item_at(130, 130).id == "pillar"
        assert ctl.item_at(105, 105).id == "t1"
        assert ctl.item_at(1900, 1300) is None


class TestZoom:

    def test_wheel_down_zooms_out(self, ctl):
        ctl.wheel(120)
        assert ctl.zoom == pytest.approx(0.9)
        ctl.wheel(-120)
        assert ctl.zoom == pytest.approx(1.0)

    def test_clamped(self, ctl):
        for _ in range(40):
            ctl.wheel(-1)
        assert ctl.zoom == 2.0
        for _ in range(40):
            ctl.wheel(1)
        assert ctl.zoom == 0.3

    def test_buttons_round_to_one_decimal(self, ctl):
        ctl.zoom = 0.97
        ctl.zoom_in()
        assert ctl.zoom == 1.1
        ctl.zoom_out()
        ctl.zoom_out()
        assert ctl.zoom == 0.9

    def test_reset_view(self, ctl):
        ctl.set_zoom(1.5)
        ctl.set_pan(30, 40)
        ctl.reset_view()
        assert (ctl.zoom, ctl.pan_x, ctl.pan_y) == (1.0, 0.0, 0.0)


class TestKeys:

    def test_delete_obstacle(self, ctl, store):
        ctl.select("stage")
        assert ctl.key("Delete") is True
        assert store.get("stage") is None
        assert ctl.selected_id is None
        assert ctl.notices == ["Element removed"]

    def test_delete_table_is_refused(self, ctl, store):
        ctl.select("t1")
        ctl.key("Backspace")
        assert store.get("t1") is not None
        assert ctl.notices == [NOTICE_TABLE_DELETE]

    def test_escape_clears_selection(self, ctl):
        ctl.select("t1")
        ctl.key("Escape")
        assert ctl.selected_id is None

    def test_other_keys_ignored(self, ctl):
        assert ctl.key("A") is False


class TestMinimap:

    def test_press_centres_viewport(self, ctl):
        # minimap x 90 -> canvas 1000, y 18+45 -> canvas 500
        ctl.minimap_press(90, 63, 800, 600)
        assert ctl.pan_x == pytest.approx(-1000 + 400)
        assert ctl.pan_y == pytest.approx(-500 + 300)

    def test_viewport_rect_scaled(self, ctl):
        ctl.set_pan(-200, -100)
        x, y, w, h = ctl.minimap_viewport(1000, 500)
        assert x == pytest.approx(18)
        assert y == pytest.approx(9)
        assert w == pytest.approx(90)
        assert h == pytest.approx(45)

    def test_item_rects_have_floor_size(self, ctl):
        rects = dict((it.id, r) for it, r in ctl.minimap_rects())
        assert rects["t1"][0] == pytest.approx(9)
        assert rects["stage"][2] == pytest.approx(27)
