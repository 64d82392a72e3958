import pytest
from PySide6.QtCore import QPoint, Qt

from bigday.floorplan_page import FloorPlanPage
from bigday.models import Event, TableShape, ToolMode


@pytest.fixture
def page(backend, make_api, cache, storage, settings):
    p = FloorPlanPage(Event(id="ev-1", title="Ana & Ben"), make_api(backend), cache, storage, settings)
    yield p
    p.shutdown()
    p.deleteLater()


def panel_ids(lst):
    return [lst.item(i).data(Qt.UserRole) for i in range(lst.count())]


class TestFloorPlanLoad:

    def test_tables_get_floor_items(self, page):
        assert [(it.id, it.x, it.y) for it in page.store.tables()] == [("t1", 60.0, 60.0),
                                                                       ("t2", 320.0, 60.0)]
        assert page.store.get("t2").shape == TableShape.ROUND

    def test_stats_and_panel(self, page):
        assert "<b style='font-size:16px'>2</b>" in page.card_tables.text()
        assert "<b style='font-size:16px'>12</b>" in page.card_capacity.text()
        assert page.guest_panel.lbl_counts.text() == "1 seated / 2 pending"

    def test_load_failure_is_shown(self, backend, make_api, cache, storage, settings):
        backend.fail_paths.add("/events/ev-1/tables")
        p = FloorPlanPage(Event(id="ev-1"), make_api(backend), cache, storage, settings)
        assert p.lbl_load.text().startswith("Couldn't load tables")
        assert p.store.tables() == []


class TestSeatClickAssigns:

    def test_empty_seat_then_pick(self, page, backend):
        page._on_seat_clicked("t2", 1, None, QPoint(0, 0))
        pop = page._popover
        assert pop.guest_ids() == ["g1", "g3"]
        pop.lst.itemClicked.emit(pop.lst.item(0))

        assert ("POST", "/guests/g1/assign-table/t2") in backend.requests
        assert backend.guests["g1"]["seatIndex"] == 1
        assert "g1" in panel_ids(page.guest_panel.lst_assigned)
        assert "g1" not in panel_ids(page.guest_panel.lst_unassigned)
        assert [g.id for g in page.scene.guests_at("t2")] == ["g1"]
        assert page.toast.text().endswith("Guest assigned!")

    def test_occupied_seat_unassigns(self, page, backend):
        page._on_seat_clicked("t1", 0, "g2", QPoint(0, 0))
        assert ("POST", "/guests/g2/unassign-table") in backend.requests
        assert page.guest_panel.lbl_counts.text() == "0 seated / 3 pending"

    def test_drop_uses_first_free_seat(self, page, backend):
        page._on_drop_guest("g3", "t1")
        assert backend.guests["g3"]["tableId"] == "t1"
        assert backend.guests["g3"]["seatIndex"] == 1

    def test_failed_seat_write_still_seats_guest(self, page, backend):
        backend.fail_paths.add("/guests")
        page._on_seat_clicked("t2", 1, None, QPoint(0, 0))
        pop = page._popover
        pop.lst.itemClicked.emit(pop.lst.item(0))

        assert backend.guests["g1"]["tableId"] == "t2"
        assert "g1" in panel_ids(page.guest_panel.lst_assigned)
        assert "g1" not in panel_ids(page.guest_panel.lst_unassigned)
        assert page.toast.text().endswith("Guest assigned!")

    def test_failed_assign_keeps_lists(self, page, backend):
        backend.fail_paths.add("/guests/g1/assign-table/t2")
        page.assign("g1", "t2", 0)
        assert "g1" in panel_ids(page.guest_panel.lst_unassigned)
        assert page.toast.text().endswith("Failed to assign guest")


class TestTableFlow:

    def test_place_then_create(self, page, backend):
        page.controller.set_tool(ToolMode.RECT)
        page.controller.press(130, 90)
        dlg = page._dialog
        assert dlg is not None and not dlg.is_edit
        dlg.ed_name.setText("Head")
        dlg.sp_capacity.setValue(10)
        dlg._on_ok()

        item = page.store.get("t3")
        assert (item.x, item.y) == (120, 80)
        assert item.shape == TableShape.RECT
        assert (item.width, item.height) == (200.0, 70.0)
        assert page.controller.tool == ToolMode.SELECT
        assert [t.id for t in page.tables] == ["t1", "t2", "t3"]

    def test_shape_tool_changes_selected_table(self, page):
        page.controller.select("t1")
        page._on_shape_tool(TableShape.SQUARE)
        assert page.store.get("t1").shape == TableShape.SQUARE
        assert page.controller.tool == ToolMode.SELECT

    def test_auto_arrange_and_decoration(self, page):
        page._add_decoration("stage")
        page.store.update_item("t2", x=999.0)
        page._auto_arrange()
        # widest table is 108 across, plus the 80 margin
        assert page.store.get("t2").x == 248.0
        assert any(it.kind == "stage" for it in page.store.items)

    def test_table_deleted_elsewhere_leaves_the_floor(self, page, backend):
        del backend.tables["t2"]
        page.cache.invalidate(page.tables_key)
        assert [it.id for it in page.store.tables()] == ["t1"]
        assert page.scene.graphics_item("t2") is None

    def test_edit_unknown_table_fetches_it(self, page, backend):
        backend.tables["t9"] = {"id": "t9", "tableName": "Late", "maxSeats": 6}
        page._edit_table("t9")
        assert ("GET", "/tables/t9") in backend.requests
        assert page._dialog.is_edit
        assert page._dialog.ed_name.text() == "Late"
        page._dialog.reject()


def synced_page(backend, make_api, cache, storage, settings):
    return FloorPlanPage(Event(id="ev-1"), make_api(backend), cache, storage,
                         settings.model_copy(update={"layout_sync": True}))


class TestServerLayout:

    def test_adopted_layout_keeps_every_api_table(self, backend, make_api, cache, storage, settings):
        backend.floor_plan = {"version": 4, "items": [
            {"id": "t1", "type": "table", "x": 500, "y": 400, "width": 108, "height": 108,
             "meta": {"shape": "round", "capacity": 8}},
            {"id": "old", "type": "table", "x": 0, "y": 0, "meta": {"shape": "round", "capacity": 4}},
            {"id": "w1", "type": "wall", "x": 10, "y": 10, "width": 200, "height": 20}]}
        p = synced_page(backend, make_api, cache, storage, settings)

        assert sorted(it.id for it in p.store.tables()) == ["t1", "t2"]
        assert (p.store.get("t1").x, p.store.get("t1").y) == (500.0, 400.0)
        assert p.store.get("w1") is not None
        assert p.sync.version == 4
        p.shutdown()

    def test_unreachable_layout_turns_sync_off_then_retries(self, backend, make_api, cache, storage,
                                                            settings):
        backend.fail_paths.add("/events/ev-1/floor-plan")
        p = synced_page(backend, make_api, cache, storage, settings)
        assert p.sync.load_failed and p.sync.paused
        assert "Retrying on your next edit" in p.toast.text()

        backend.fail_paths.clear()
        p._add_decoration("stage")
        assert not p.sync.load_failed
        assert not p.sync.paused
        assert any(d["type"] == "stage" for d in backend.floor_plan["items"])
        p.shutdown()
