from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class ItemKind:
    TABLE = "table"
    STAGE = "stage"
    DANCE_FLOOR = "danceFloor"
    PILLAR = "pillar"
    WALL = "wall"

    OBSTACLES = (STAGE, DANCE_FLOOR, PILLAR, WALL)


class TableShape:
    ROUND = "round"
    RECT = "rect"
    SQUARE = "square"

    ALL = (ROUND, RECT, SQUARE)


class ToolMode:
    SELECT = "select"
    ROUND = TableShape.ROUND
    RECT = TableShape.RECT
    SQUARE = TableShape.SQUARE


DEFAULT_CAPACITY = 8

# numeric form-field type enum used by the API
FIELD_TYPES = {0: "text", 1: "textarea", 2: "select", 3: "radio",
               4: "checkbox", 5: "email", 6: "number", 7: "date"}
FIELD_TYPE_CODES = {v: k for k, v in FIELD_TYPES.items()}
OPTION_FIELD_TYPES = ("select", "radio", "checkbox")

GUEST_TYPES = ("Family", "VIP", "Friend", "Other")
RSVP_STATUSES = ("Yes", "No", "Maybe")



def _first_int(d: Dict[str, Any], keys, default: int) -> int:
    for k in keys:
        if d.get(k) is not None:
            return int(d[k])
    return default


@dataclass
class FloorItem:
    id: str
    kind: str
    x: float = 0.0
    y: float = 0.0
    width: float = 100.0
    height: float = 100.0
    rotation: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_table(self) -> bool:
        return self.kind == ItemKind.TABLE

    @property
    def shape(self) -> Optional[str]:
        return self.meta.get("shape")

    @property
    def capacity(self) -> int:
        cap = self.meta.get("capacity")
        return DEFAULT_CAPACITY if cap is None else int(cap)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "type": self.kind, "x": self.x, "y": self.y,
                             "width": self.width, "height": self.height}
        if self.rotation is not None:
            d["rotation"] = self.rotation
        if self.meta:
            d["meta"] = dict(self.meta)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FloorItem":
        return cls(
            id=str(d["id"]),
            kind=d.get("type", ItemKind.TABLE),
            x=float(d.get("x", 0)), y=float(d.get("y", 0)),
            width=float(d.get("width", 100)), height=float(d.get("height", 100)),
            rotation=d.get("rotation"),
            meta=dict(d.get("meta") or {}),
        )


@dataclass
class Table:
    id: str
    name: str = ""
    capacity: int = DEFAULT_CAPACITY
    extra_guests: int = 0
    layout: Optional[List[Dict[str, float]]] = None

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "Table":
        return cls(
            id=str(d.get("id") or d.get("tableId") or d.get("guid") or ""),
            name=d.get("tableName") or d.get("name") or "",
            capacity=_first_int(d, ("maxSeats", "capacity"), DEFAULT_CAPACITY),
            extra_guests=int(d.get("extraGuests") or 0),
            layout=d.get("layout"),
        )


@dataclass
class Guest:
    id: str
    name: str = ""
    phone: str = ""
    pax: int = 1
    flag: str = "Other"
    table_id: Optional[str] = None
    seat_index: Optional[int] = None
    notes: str = ""
    rsvp_id: Optional[str] = None

    @property
    def is_vip(self) -> bool:
        return (self.flag or "").upper() == "VIP"

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "Guest":
        table_id = d.get("tableId")
        seat = d.get("seatIndex")
        return cls(
            id=str(d.get("guestId") or d.get("id") or ""),
            name=d.get("name") or d.get("guestName") or "",
            phone=d.get("phoneNo") or d.get("phone") or "",
            pax=int(d.get("pax") or d.get("noOfPax") or 1),
            flag=d.get("flag") or d.get("groupId") or "Other",
            table_id=str(table_id) if table_id not in (None, "") else None,
            seat_index=int(seat) if seat is not None else None,
            notes=d.get("notes") or "",
            rsvp_id=d.get("rsvpId"),
        )

    def to_api(self) -> Dict[str, Any]:
        return {"guestId": self.id, "name": self.name, "phoneNo": self.phone, "pax": self.pax,
                "flag": self.flag, "tableId": self.table_id, "seatIndex": self.seat_index,
                "notes": self.notes}


@dataclass
class Event:
    id: str
    title: str = ""
    date: str = ""

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "Event":
        return cls(
            id=str(d.get("eventGuid") or d.get("guid") or d.get("id") or ""),
            title=d.get("eventName") or d.get("title") or d.get("name") or "",
            date=d.get("eventDate") or d.get("date") or "",
        )


@dataclass
class Rsvp:
    id: str
    guest_name: str = ""
    pax: int = 1
    phone: str = ""
    status: str = "Yes"
    guest_type: str = "Family"
    remarks: str = ""
    event_guid: Optional[str] = None
    rsvp_guid: Optional[str] = None

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "Rsvp":
        return cls(
            id=str(d.get("rsvpId") or d.get("id") or d.get("rsvpGuid") or ""),
            guest_name=d.get("guestName") or d.get("name") or "",
            pax=_first_int(d, ("noOfPax", "pax"), 1),
            phone=d.get("phoneNo") or "",
            status=d.get("status") or "Yes",
            guest_type=d.get("guestType") or "Family",
            remarks=d.get("remarks") or "",
            event_guid=d.get("eventGuid"),
            rsvp_guid=d.get("rsvpGuid"),
        )


@dataclass
class CostEntry:
    id: str
    description: str = ""
    amount: float = 0.0

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "CostEntry":
        return cls(id=str(d.get("id") or d.get("costId") or ""),
                   description=d.get("description") or "",
                   amount=float(d.get("amount") or 0))


@dataclass
class UserAccount:
    id: str
    name: str = ""
    email: str = ""
    role: str = ""

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "UserAccount":
        roles = d.get("roles") or []
        return cls(id=str(d.get("id") or d.get("userId") or ""),
                   name=d.get("name") or d.get("fullName") or "",
                   email=d.get("email") or "",
                   role=d.get("role") or ", ".join(str(r) for r in roles))


@dataclass
class FormFieldConfig:
    id: str
    label: str
    type_key: str = "text"
    is_required: bool = False
    options: List[str] = field(default_factory=list)
    order: int = 0

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "FormFieldConfig":
        raw_type = d.get("type", 0)
        if isinstance(raw_type, str) and not raw_type.isdigit():
            type_key = raw_type
        else:
            type_key = FIELD_TYPES.get(int(raw_type), "text")
        options = d.get("options") or []
        if isinstance(options, str):
            options = [o.strip() for o in options.split(",") if o.strip()]
        return cls(
            id=str(d.get("id") or d.get("formFieldId") or ""),
            label=d.get("label") or d.get("text") or d.get("name") or "",
            type_key=type_key,
            is_required=bool(d.get("isRequired", False)),
            options=list(options),
            order=int(d.get("order") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "type": self.type_key,
                "isRequired": self.is_required, "options": list(self.options), "order": self.order}


def grid_cell(index: int, columns: int) -> Tuple[int, int]:
    """(column, row) of the index-th slot in a row-major grid."""
    return index % columns, math.floor(index / columns)
