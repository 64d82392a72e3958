from __future__ import annotations
import math
from PySide6.QtGui import QColor

# ===== Canvas =====
CANVAS_W = 2000.0
CANVAS_H = 1400.0
SNAP_SIZE = 40.0
MIN_ITEM_SIZE = 50.0

# ===== Zoom =====
ZOOM_MIN = 0.3
ZOOM_MAX = 2.0
ZOOM_STEP = 0.1

# ===== Minimap =====
MINIMAP_W = 180.0
MINIMAP_H = 120.0
MINIMAP_HEADER = 18.0

# ===== Table grid (sync / auto-arrange) =====
GRID_COLUMNS = 3
GRID_SPACING_X = 260.0
GRID_SPACING_Y = 240.0
GRID_OFFSET_X = 60.0
GRID_OFFSET_Y = 60.0
ARRANGE_MARGIN = 80.0

# ===== Colors =====
BG_COLOR = QColor("#F8FAFC")
OUTSIDE_COLOR = QColor("#E2E8F0")
GRID_DOT = QColor("#CBD5E1")
CANVAS_BORDER = QColor("#94A3B8")
TABLE_FILL = QColor("#FFF7ED")
TABLE_BORDER = QColor("#F97316")
SEAT_EMPTY = QColor("#E2E8F0")
SEAT_TAKEN = QColor("#22C55E")
SEAT_VIP = QColor("#A855F7")
SELECT_PEN = QColor("#2563EB")

OBSTACLE_COLORS = {
    "stage": QColor(100, 116, 139, 160),
    "danceFloor": QColor(250, 204, 21, 110),
    "pillar": QColor(71, 85, 105, 200),
    "wall": QColor(51, 65, 85, 220),
}


def snap(v: float, step: float) -> float:
    return round(v / step) * step


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def round1(v: float) -> float:
    # toolbar zoom steps are shown with one decimal
    return math.floor(v * 10 + 0.5) / 10


TABLE_COLORS = [
    QColor("#7C3AED"), QColor("#EC4899"), QColor("#3B82F6"), QColor("#22C55E"),
    QColor("#F97316"), QColor("#8B5CF6"), QColor("#06B6D4"), QColor("#EAB308"),
]


def table_color(item_id: str) -> QColor:
    h = 0
    for ch in item_id:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return TABLE_COLORS[abs(h) % len(TABLE_COLORS)]

# drag payload for guests dragged from the side panel onto a table
GUEST_MIME = "application/x-bigday-guest"
