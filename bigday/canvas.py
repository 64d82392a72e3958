"""Pointer, wheel and keyboard handling for the floor-plan canvas.

``CanvasController`` holds the view state (zoom, pan, selection, tool mode)
and turns view-space input into store mutations. It knows nothing about Qt
widgets; ``FloorView`` feeds it events and repaints from its state.
"""
from __future__ import annotations
import logging
from typing import Callable, List, Optional, Tuple

from .models import FloorItem, ToolMode
from .store import FloorPlanStore
from .utils import (SNAP_SIZE, ZOOM_MIN, ZOOM_MAX, ZOOM_STEP, MIN_ITEM_SIZE, CANVAS_W,
                    MINIMAP_W, MINIMAP_H, MINIMAP_HEADER, snap, clamp, round1)

logger = logging.getLogger(__name__)

NOTICE_TABLE_DELETE = "Cannot delete table from floor plan"


class CanvasController:
    def __init__(self, store: FloorPlanStore, snap_size: float = SNAP_SIZE):
        self.store = store
        self.zoom = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.selected_id: Optional[str] = None
        self.tool = ToolMode.SELECT
        self.snap_enabled = True
        self.snap_size = snap_size

        self._pan_start: Optional[Tuple[float, float, float, float]] = None
        self._drag: Optional[Tuple[str, float, float]] = None           # id, offset x/y
        self._resize: Optional[Tuple[str, float, float, float, float]] = None  # id, vx, vy, w, h

        # hooks set by the page
        self.on_change: Optional[Callable[[], None]] = None
        self.on_place: Optional[Callable[[float, float, str], None]] = None
        self.on_notice: Optional[Callable[[str], None]] = None
        self.on_select: Optional[Callable[[Optional[str]], None]] = None

    # ---------- helpers ----------
    def _changed(self):
        if self.on_change:
            self.on_change()

    def _notice(self, text: str):
        if self.on_notice:
            self.on_notice(text)

    def _snap(self, v: float) -> float:
        return snap(v, self.snap_size) if self.snap_enabled else v

    def to_canvas(self, vx: float, vy: float) -> Tuple[float, float]:
        return (vx - self.pan_x) / self.zoom, (vy - self.pan_y) / self.zoom

    def to_view(self, cx: float, cy: float) -> Tuple[float, float]:
        return cx * self.zoom + self.pan_x, cy * self.zoom + self.pan_y

    @property
    def is_panning(self) -> bool:
        return self._pan_start is not None

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None or self._resize is not None

    def selected_item(self) -> Optional[FloorItem]:
        return self.store.get(self.selected_id) if self.selected_id else None

    def select(self, item_id: Optional[str]):
        if item_id == self.selected_id:
            return
        self.selected_id = item_id
        if self.on_select:
            self.on_select(item_id)
        self._changed()

    def set_tool(self, tool: str):
        self.tool = tool
        self._changed()

    # ---------- zoom / pan ----------
    def set_zoom(self, z: float):
        self.zoom = clamp(z, ZOOM_MIN, ZOOM_MAX)
        self._changed()

    def wheel(self, delta_y: float):
        # positive delta means scrolling down, which zooms out
        self.set_zoom(self.zoom + (-ZOOM_STEP if delta_y > 0 else ZOOM_STEP))

    def zoom_in(self):
        self.set_zoom(round1(min(ZOOM_MAX, self.zoom + ZOOM_STEP)))

    def zoom_out(self):
        self.set_zoom(round1(max(ZOOM_MIN, self.zoom - ZOOM_STEP)))

    def set_pan(self, x: float, y: float):
        self.pan_x, self.pan_y = x, y
        self._changed()

    def reset_view(self):
        self.zoom = 1.0
        self.pan_x = self.pan_y = 0.0
        self._changed()

    # ---------- hit testing ----------
    def item_at(self, cx: float, cy: float) -> Optional[FloorItem]:
        # later items paint on top
        for it in reversed(self.store.items):
            if it.x <= cx <= it.x + it.width and it.y <= cy <= it.y + it.height:
                return it
        return None

    # ---------- pointer ----------
    def press(self, vx: float, vy: float, item_id: Optional[str] = None):
        if item_id is not None:
            it = self.store.get(item_id)
            if it is None:
                return
            self.select(item_id)
            cx, cy = self.to_canvas(vx, vy)
            self._drag = (item_id, cx - it.x, cy - it.y)
            return
        if self.tool != ToolMode.SELECT:
            cx, cy = self.to_canvas(vx, vy)
            if self.on_place:
                self.on_place(self._snap(cx), self._snap(cy), self.tool)
            return
        self.select(None)
        self._pan_start = (vx, vy, self.pan_x, self.pan_y)

    def begin_resize(self, item_id: str, vx: float, vy: float):
        it = self.store.get(item_id)
        if it is None:
            return
        self._resize = (item_id, vx, vy, it.width, it.height)

    def move(self, vx: float, vy: float):
        if self._resize is not None:
            item_id, sx, sy, sw, sh = self._resize
            w = max(MIN_ITEM_SIZE, sw + (vx - sx) / self.zoom)
            h = max(MIN_ITEM_SIZE, sh + (vy - sy) / self.zoom)
            self.store.update_item(item_id, width=w, height=h)
            return
        if self._drag is not None:
            item_id, ox, oy = self._drag
            cx, cy = self.to_canvas(vx, vy)
            self.store.update_item(item_id, x=self._snap(cx - ox), y=self._snap(cy - oy))
            return
        if self._pan_start is not None:
            sx, sy, px, py = self._pan_start
            self.set_pan(px + (vx - sx), py + (vy - sy))

    def release(self):
        self._pan_start = None
        self._drag = None
        self._resize = None

    # ---------- keyboard ----------
    def key(self, name: str) -> bool:
        if name in ("Delete", "Backspace"):
            self.delete_selected()
            return True
        if name == "Escape":
            self.select(None)
            return True
        return False

    def delete_selected(self) -> bool:
        it = self.selected_item()
        if it is None:
            return False
        if it.is_table:
            self._notice(NOTICE_TABLE_DELETE)
            return False
        self.store.remove_item(it.id)
        self.select(None)
        self._notice("Element removed")
        return True

    # ---------- minimap ----------
    @property
    def minimap_scale(self) -> float:
        return MINIMAP_W / CANVAS_W

    def minimap_rects(self) -> List[Tuple[FloorItem, Tuple[float, float, float, float]]]:
        s = self.minimap_scale
        return [(it, (it.x * s, it.y * s, max(2.0, it.width * s), max(2.0, it.height * s)))
                for it in self.store.items]

    def minimap_viewport(self, view_w: float, view_h: float) -> Tuple[float, float, float, float]:
        s = self.minimap_scale
        x = -self.pan_x / self.zoom * s
        y = -self.pan_y / self.zoom * s
        w = view_w / self.zoom * s
        h = view_h / self.zoom * s
        x = clamp(x, 0, MINIMAP_W)
        y = clamp(y, 0, MINIMAP_H)
        return x, y, min(w, MINIMAP_W - x), min(h, MINIMAP_H - y)

    def minimap_press(self, mx: float, my: float, view_w: float, view_h: float):
        """Centre the viewport on a minimap point (``my`` includes the header)."""
        s = self.minimap_scale
        canvas_x = mx / s
        canvas_y = (my - MINIMAP_HEADER) / s
        self.set_pan(-(canvas_x * self.zoom) + view_w / 2, -(canvas_y * self.zoom) + view_h / 2)
