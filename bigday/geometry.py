"""Seat anchors and table sizing.

All coordinates are in the table's own frame: (0, 0) is the table's top-left
corner and each returned point is the top-left corner of a seat marker.
"""
from __future__ import annotations
import math
from typing import List, Optional, Sequence, Tuple

from .models import TableShape, Guest

SEAT_SIZE = 26.0
SEAT_HALF = SEAT_SIZE / 2
SEAT_GAP = 6.0

Point = Tuple[float, float]


def table_dimensions(capacity: int, shape: str) -> Tuple[float, float]:
    c = max(0, int(capacity))
    if shape == TableShape.RECT:
        return float(max(160, 60 + 14 * c)), 70.0
    if shape == TableShape.SQUARE:
        side = float(max(90, 50 + math.ceil(c / 4) * 20))
        return side, side
    d = float(max(100, 60 + 6 * c))
    return d, d


def _round_seats(capacity: int, w: float, h: float) -> List[Point]:
    cx, cy = w / 2, h / 2
    radius = max(w, h) / 2 + SEAT_GAP + SEAT_HALF
    out = []
    for i in range(capacity):
        angle = (2 * math.pi * i) / capacity - math.pi / 2
        out.append((cx + math.cos(angle) * radius - SEAT_HALF,
                    cy + math.sin(angle) * radius - SEAT_HALF))
    return out


def rect_edge_split(capacity: int) -> Tuple[int, int, int]:
    """(top, bottom, per_side) seat counts for a rectangular table."""
    side = 1 if capacity >= 6 else 0
    remaining = capacity - side * 2
    top = math.ceil(remaining / 2)
    return top, remaining - top, side


def _rect_seats(capacity: int, w: float, h: float) -> List[Point]:
    top, bottom, side = rect_edge_split(capacity)
    out: List[Point] = []
    for i in range(top):
        out.append((w / (top + 1) * (i + 1) - SEAT_HALF, -SEAT_SIZE - SEAT_GAP))
    if side:
        out.append((w + SEAT_GAP, h / 2 - SEAT_HALF))
    for i in range(bottom):
        out.append((w / (bottom + 1) * (i + 1) - SEAT_HALF, h + SEAT_GAP))
    if side:
        out.append((-SEAT_SIZE - SEAT_GAP, h / 2 - SEAT_HALF))
    return out


def _square_seats(capacity: int, w: float, h: float) -> List[Point]:
    per_side = math.ceil(capacity / 4)
    out: List[Point] = []
    # top and right run forward, bottom and left run back toward the start
    for edge in range(4):
        for i in range(per_side):
            if len(out) >= capacity:
                return out
            if edge in (0, 1):
                frac = (i + 1) / (per_side + 1)
            else:
                frac = (per_side - i) / (per_side + 1)
            if edge == 0:
                out.append((frac * w - SEAT_HALF, -SEAT_SIZE - SEAT_GAP))
            elif edge == 1:
                out.append((w + SEAT_GAP, frac * h - SEAT_HALF))
            elif edge == 2:
                out.append((frac * w - SEAT_HALF, h + SEAT_GAP))
            else:
                out.append((-SEAT_SIZE - SEAT_GAP, frac * h - SEAT_HALF))
    return out


def seat_positions(shape: str, capacity: int, width: float, height: float) -> List[Point]:
    capacity = int(capacity)
    if capacity <= 0:
        return []
    if shape == TableShape.RECT:
        return _rect_seats(capacity, width, height)
    if shape == TableShape.SQUARE:
        return _square_seats(capacity, width, height)
    return _round_seats(capacity, width, height)


def seat_center(pos: Point) -> Point:
    return pos[0] + SEAT_HALF, pos[1] + SEAT_HALF


def seat_occupancy(capacity: int, guests: Sequence[Guest]) -> List[Optional[Guest]]:
    """Map seat index -> guest for one table.

    Guests with an in-range ``seat_index`` claim that seat (first claim wins).
    Guests without a usable index fill the remaining free seats in list order.
    """
    seats: List[Optional[Guest]] = [None] * max(0, int(capacity))
    floating: List[Guest] = []
    for g in guests:
        idx = g.seat_index
        if idx is not None and 0 <= idx < len(seats) and seats[idx] is None:
            seats[idx] = g
        else:
            floating.append(g)
    free = (i for i, s in enumerate(seats) if s is None)
    for g in floating:
        i = next(free, None)
        if i is None:
            break
        seats[i] = g
    return seats


def first_free_seat(capacity: int, guests: Sequence[Guest]) -> Optional[int]:
    for i, g in enumerate(seat_occupancy(capacity, guests)):
        if g is None:
            return i
    return None
