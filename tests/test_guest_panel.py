from PySide6.QtCore import Qt

from bigday.guest_panel import GuestPanel, filter_guests, floor_stats, guest_label, partition_guests
from bigday.models import Guest
from bigday.seat_popover import SeatAssignPopover
from bigday.utils import GUEST_MIME


class TestHelpers:

    def test_partition_keeps_order(self, sample_guests):
        assigned, unassigned = partition_guests(sample_guests)
        assert [g.id for g in assigned] == ["g2"]
        assert [g.id for g in unassigned] == ["g1", "g3"]

    def test_filter_by_name_or_phone(self, sample_guests):
        assert [g.id for g in filter_guests(sample_guests, "cleo")] == ["g3"]
        assert [g.id for g in filter_guests(sample_guests, "0101")] == ["g2"]
        assert len(filter_guests(sample_guests, "  ")) == 3

    def test_stats(self, sample_tables, sample_guests):
        stats = floor_stats(sample_tables, sample_guests)
        assert (stats.total_tables, stats.seated, stats.unassigned, stats.total_capacity) == (2, 1, 2, 12)

    def test_label(self):
        assert guest_label(Guest(id="a", name="Ana", flag="vip", pax=3)) == "Ana  ★ VIP  (3 pax)"
        assert guest_label(Guest(id="b")) == "Unnamed guest"


class TestGuestPanel:

    def test_lists_and_counts(self, sample_guests, sample_tables):
        panel = GuestPanel()
        panel.set_data(sample_guests, sample_tables)
        assert panel.lbl_counts.text() == "1 seated / 2 pending"
        assert panel.lst_unassigned.count() == 2
        assert panel.lst_assigned.item(0).text().endswith("→  Family")

    def test_search(self, sample_guests, sample_tables):
        panel = GuestPanel()
        panel.set_data(sample_guests, sample_tables)
        panel.ed_search.setText("ana")
        assert panel.lst_unassigned.count() == 1
        assert panel.lst_assigned.count() == 0

    def test_drag_payload_is_guest_id(self, sample_guests, sample_tables):
        panel = GuestPanel()
        panel.set_data(sample_guests, sample_tables)
        item = panel.lst_unassigned.item(0)
        md = panel.lst_unassigned.mimeData([item])
        assert bytes(md.data(GUEST_MIME)).decode() == "g1"

    def test_double_click_requests_unassign(self, sample_guests, sample_tables):
        panel = GuestPanel()
        panel.set_data(sample_guests, sample_tables)
        got = []
        panel.unassignRequested.connect(got.append)
        panel.lst_assigned.itemDoubleClicked.emit(panel.lst_assigned.item(0))
        assert got == ["g2"]


class TestSeatPopover:

    def test_only_unassigned_guests(self, sample_guests):
        pop = SeatAssignPopover("t2", 1, sample_guests)
        assert pop.guest_ids() == ["g1", "g3"]

    def test_choice_emits_seat(self, sample_guests):
        pop = SeatAssignPopover("t2", 1, sample_guests)
        got = []
        pop.guestChosen.connect(lambda *args: got.append(args))
        pop.lst.itemClicked.emit(pop.lst.item(1))
        assert got == [("g3", "t2", 1)]
        assert pop.lst.item(0).data(Qt.UserRole) == "g1"
