"""RSVP card designer model: typed blocks, global styling and block operations."""
from __future__ import annotations
import copy
import os
import secrets
import string
from dataclasses import dataclass, field, fields, replace
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Type

from .models import FormFieldConfig

DEFAULT_OVERLAY = 0.4
DEFAULT_BG_COLOR = "#f6f1e4"
DEFAULT_GLOBAL_OVERLAY = 0.25
DEFAULT_ACCENT = "#f97316"
FLOW_PRESETS = ("serene", "parallax", "stacked")
ALL_GUEST_FIELDS = {"name": True, "email": True, "phone": True, "pax": True, "guestType": True}

_ALPHABET = string.ascii_lowercase + string.digits


def uid(n: int = 7) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(n))


@dataclass
class BlockMedia:
    id: str
    src: str
    alt: Optional[str] = None

    @classmethod
    def from_path(cls, path: str) -> "BlockMedia":
        return cls(id=uid(), src=path, alt=os.path.basename(path))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BlockMedia":
        return cls(id=str(d.get("id") or uid()), src=d.get("src") or "", alt=d.get("alt"))

    def to_dict(self) -> Dict[str, Any]:
        out = {"id": self.id, "src": self.src}
        if self.alt is not None:
            out["alt"] = self.alt
        return out


@dataclass
class BlockBackground:
    images: List[BlockMedia] = field(default_factory=list)
    active_image_id: Optional[str] = None
    overlay: float = DEFAULT_OVERLAY

    @property
    def active_image(self) -> Optional[BlockMedia]:
        for img in self.images:
            if img.id == self.active_image_id:
                return img
        return self.images[0] if self.images else None


# ===== Blocks =====

@dataclass
class RsvpBlock:
    kind: ClassVar[str] = ""
    id: str = field(default_factory=uid)
    background: BlockBackground = field(default_factory=BlockBackground)
    section_image: Optional[BlockMedia] = None

    @property
    def title_text(self) -> str:
        return self.kind


@dataclass
class HeadlineBlock(RsvpBlock):
    kind: ClassVar[str] = "headline"
    title: str = "Custom headline"
    subtitle: Optional[str] = "Add a subheader"
    align: str = "center"
    accent: str = "text-white"

    @property
    def title_text(self) -> str:
        return self.title


@dataclass
class TextBlock(RsvpBlock):
    kind: ClassVar[str] = "text"
    body: str = "Tell your guests what to expect."
    width: str = "full"
    align: str = "left"
    muted: Optional[bool] = False

    @property
    def title_text(self) -> str:
        return self.body[:40]


@dataclass
class InfoBlock(RsvpBlock):
    kind: ClassVar[str] = "info"
    label: str = "Highlight"
    content: str = "Dress code, parking, or venue info"
    accent: str = "bg-white/20 text-white border border-white/30"

    @property
    def title_text(self) -> str:
        return self.label


@dataclass
class AttendanceBlock(RsvpBlock):
    kind: ClassVar[str] = "attendance"
    title: Optional[str] = "Will you be attending?"
    subtitle: Optional[str] = "Please let us know"
    width: str = "full"

    @property
    def title_text(self) -> str:
        return self.title or "Attendance"


@dataclass
class GuestDetailsBlock(RsvpBlock):
    kind: ClassVar[str] = "guestDetails"
    title: Optional[str] = "Your details"
    subtitle: Optional[str] = "Tell us about yourself"
    width: str = "full"
    show_fields: Dict[str, bool] = field(default_factory=lambda: dict(ALL_GUEST_FIELDS))
    card_color: Optional[str] = None
    card_text_color: Optional[str] = None

    def shows(self, name: str) -> bool:
        # missing toggles count as shown
        return self.show_fields.get(name, True) is not False

    @property
    def title_text(self) -> str:
        return self.title or "Guest details"


@dataclass
class FormFieldBlock(RsvpBlock):
    kind: ClassVar[str] = "formField"
    label: str = "Custom field"
    placeholder: Optional[str] = "Placeholder"
    required: bool = False
    width: str = "full"
    hint: Optional[str] = None
    question_id: Optional[str] = None
    field_card_color: Optional[str] = None
    field_card_text_color: Optional[str] = None

    @property
    def title_text(self) -> str:
        return self.label


@dataclass
class CtaBlock(RsvpBlock):
    kind: ClassVar[str] = "cta"
    label: str = "Open RSVP"
    href: Optional[str] = "#"
    align: str = "center"
    cta_color: Optional[str] = None
    cta_text_color: Optional[str] = None

    @property
    def title_text(self) -> str:
        return self.label


@dataclass
class ImageBlock(RsvpBlock):
    kind: ClassVar[str] = "image"
    images: List[BlockMedia] = field(default_factory=list)
    active_image_id: Optional[str] = None
    caption: Optional[str] = "Add captions"
    height: str = "medium"

    @property
    def title_text(self) -> str:
        return self.caption or "Image"


BLOCK_TYPES: Dict[str, Type[RsvpBlock]] = {
    cls.kind: cls for cls in (HeadlineBlock, TextBlock, InfoBlock, AttendanceBlock,
                              GuestDetailsBlock, FormFieldBlock, CtaBlock, ImageBlock)
}

BLOCK_LABELS = {
    "headline": "Headline", "text": "Text", "info": "Info card", "attendance": "Attendance",
    "guestDetails": "Guest details", "formField": "Form field", "cta": "Button", "image": "Image gallery",
}


# ===== dict form (camelCase, as stored in share snapshots) =====

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def block_to_dict(block: RsvpBlock) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": block.id, "type": block.kind}
    bg = block.background
    out["background"] = {"images": [m.to_dict() for m in bg.images], "overlay": bg.overlay}
    if bg.active_image_id is not None:
        out["background"]["activeImageId"] = bg.active_image_id
    out["sectionImage"] = block.section_image.to_dict() if block.section_image else None
    for f in fields(block):
        if f.name in ("id", "background", "section_image"):
            continue
        value = getattr(block, f.name)
        if f.name == "images":
            value = [m.to_dict() for m in value]
        elif isinstance(value, dict):
            value = dict(value)
        out[_camel(f.name)] = value
    return out


def background_from_dict(d: Optional[Dict[str, Any]]) -> BlockBackground:
    if not d:
        return BlockBackground()
    overlay = d.get("overlay", DEFAULT_OVERLAY)
    if isinstance(overlay, dict):
        overlay = overlay.get("opacity", DEFAULT_OVERLAY)
    return BlockBackground(
        images=[BlockMedia.from_dict(m) for m in d.get("images") or []],
        active_image_id=d.get("activeImageId"),
        overlay=float(DEFAULT_OVERLAY if overlay is None else overlay),
    )


def block_from_dict(d: Dict[str, Any]) -> RsvpBlock:
    cls = BLOCK_TYPES.get(d.get("type", ""))
    if cls is None:
        return TextBlock(id=str(d.get("id") or uid()), background=background_from_dict(d.get("background")),
                         body="Unknown block type", width="full", align="left")
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name in ("id", "background", "section_image"):
            continue
        key = _camel(f.name)
        if key not in d:
            continue
        value = d[key]
        if f.name == "images":
            value = [BlockMedia.from_dict(m) for m in value or []]
        kwargs[f.name] = value
    section = d.get("sectionImage")
    return cls(id=str(d.get("id") or uid()), background=background_from_dict(d.get("background")),
               section_image=BlockMedia.from_dict(section) if section else None, **kwargs)


# ===== design document =====

@dataclass
class RsvpDesign:
    blocks: List[RsvpBlock] = field(default_factory=list)
    flow_preset: str = "serene"
    background_type: str = "color"
    background_asset: str = ""
    background_color: str = DEFAULT_BG_COLOR
    overlay: float = DEFAULT_GLOBAL_OVERLAY
    accent_color: str = DEFAULT_ACCENT
    music_url: Optional[str] = None
    submit_button_color: Optional[str] = None
    submit_button_text_color: Optional[str] = None
    submit_button_label: Optional[str] = None
    event_guid: Optional[str] = None
    version: Optional[int] = None
    share_token: Optional[str] = None
    public_link: Optional[str] = None
    form_field_configs: List[FormFieldConfig] = field(default_factory=list)


def default_blocks(event_title: Optional[str] = None) -> List[RsvpBlock]:
    return [
        HeadlineBlock(title="Welcome to our wedding",
                      subtitle=event_title or "Save the date and RSVP below"),
        TextBlock(body="Share your love story, travel tips, or invite message. Guests will scroll "
                       "through each image-backed section just like an interactive invitation card.",
                  muted=True),
        AttendanceBlock(),
        GuestDetailsBlock(),
    ]


def default_design(event_title: Optional[str] = None) -> RsvpDesign:
    return RsvpDesign(blocks=default_blocks(event_title))


def question_hint(f: FormFieldConfig) -> Optional[str]:
    if not f.type_key:
        return None
    return f"{f.type_key} · required" if f.is_required else f.type_key


class DesignDocument:
    """Mutable wrapper around one event's design; all block edits go through here."""

    def __init__(self, design: Optional[RsvpDesign] = None, on_change=None):
        self.design = design or default_design()
        self.on_change = on_change

    def _changed(self):
        if self.on_change:
            self.on_change()

    # ---------- lookup ----------
    @property
    def blocks(self) -> List[RsvpBlock]:
        return self.design.blocks

    def block(self, block_id: str) -> Optional[RsvpBlock]:
        for b in self.design.blocks:
            if b.id == block_id:
                return b
        return None

    def index_of(self, block_id: str) -> int:
        for i, b in enumerate(self.design.blocks):
            if b.id == block_id:
                return i
        return -1

    def question(self, question_id: Optional[str]) -> Optional[FormFieldConfig]:
        if not question_id:
            return None
        for f in self.design.form_field_configs:
            if f.id == question_id:
                return f
        return None

    # ---------- block list ----------
    def add_block(self, kind: str) -> RsvpBlock:
        cls = BLOCK_TYPES[kind]
        block = cls()
        self.design.blocks.append(block)
        self._changed()
        return block

    def update_block(self, block_id: str, **patch) -> Optional[RsvpBlock]:
        i = self.index_of(block_id)
        if i < 0:
            return None
        block = self.design.blocks[i]
        allowed = {f.name for f in fields(block)}
        unknown = set(patch) - allowed
        if unknown:
            raise AttributeError(f"{block.kind} block has no field(s) {sorted(unknown)}")
        self.design.blocks[i] = replace(block, **patch)
        self._changed()
        return self.design.blocks[i]

    def remove_block(self, block_id: str):
        before = len(self.design.blocks)
        self.design.blocks = [b for b in self.design.blocks if b.id != block_id]
        if len(self.design.blocks) != before:
            self._changed()

    def apply_order(self, order: Sequence[str]):
        by_id = {b.id: b for b in self.design.blocks}
        if set(order) != set(by_id) or len(order) != len(by_id):
            raise ValueError("Block order must contain every block exactly once")
        self.design.blocks = [by_id[i] for i in order]
        self._changed()

    def begin_reorder(self, source_id: str) -> "ReorderGesture":
        return ReorderGesture(self.design.blocks, source_id)

    def finish_reorder(self, gesture: "ReorderGesture") -> List[str]:
        order = gesture.commit()
        if order != [b.id for b in self.design.blocks]:
            self.apply_order(order)
        return order

    # ---------- questions ----------
    def insert_question_block(self, f: FormFieldConfig) -> Optional[FormFieldBlock]:
        question_id = f.id
        for b in self.design.blocks:
            if isinstance(b, FormFieldBlock) and b.question_id == question_id:
                return None
        block = FormFieldBlock(
            label=f.label or "Custom field",
            placeholder=str(f.options[0]) if f.options else "",
            required=f.is_required,
            hint=question_hint(f),
            question_id=f.id,
        )
        self.design.blocks.append(block)
        self._changed()
        return block

    def apply_question(self, block_id: str, f: Optional[FormFieldConfig]) -> Optional[RsvpBlock]:
        block = self.block(block_id)
        if f is None or not isinstance(block, FormFieldBlock):
            return None
        return self.update_block(
            block_id,
            label=f.label or block.label,
            placeholder=str(f.options[0]) if f.options else (block.placeholder or ""),
            required=f.is_required,
            hint=question_hint(f) or block.hint,
            question_id=f.id,
        )

    # ---------- images ----------
    def add_image_block(self, paths: Sequence[str]) -> ImageBlock:
        gallery = [BlockMedia.from_path(p) for p in paths]
        block = ImageBlock(images=gallery, active_image_id=gallery[0].id if gallery else None,
                           caption="Add a caption or blessing")
        self.design.blocks.append(block)
        self._changed()
        return block

    def add_background_images(self, block_id: str, paths: Sequence[str]):
        block = self.block(block_id)
        if block is None:
            return
        bg = copy.deepcopy(block.background)
        bg.images = bg.images + [BlockMedia.from_path(p) for p in paths]
        if bg.active_image_id is None and bg.images:
            bg.active_image_id = bg.images[0].id
        self.update_block(block_id, background=bg)

    def set_active_background(self, block_id: str, image_id: str):
        block = self.block(block_id)
        if block is None:
            return
        self.update_block(block_id, background=replace(block.background, active_image_id=image_id))

    def set_overlay(self, block_id: str, overlay: float):
        block = self.block(block_id)
        if block is None:
            return
        self.update_block(block_id, background=replace(block.background, overlay=float(overlay)))

    def set_section_image(self, block_id: str, path: str):
        self.update_block(block_id, section_image=BlockMedia.from_path(path))

    def clear_section_image(self, block_id: str):
        self.update_block(block_id, section_image=None)

    def replace_image(self, block_id: str, path: str):
        block = self.block(block_id)
        if not isinstance(block, ImageBlock):
            return
        asset = BlockMedia.from_path(path)
        self.update_block(block_id, images=[asset] + block.images, active_image_id=asset.id)

    def append_images(self, block_id: str, paths: Sequence[str]):
        block = self.block(block_id)
        if not isinstance(block, ImageBlock):
            return
        images = block.images + [BlockMedia.from_path(p) for p in paths]
        active = block.active_image_id or (images[0].id if images else None)
        self.update_block(block_id, images=images, active_image_id=active)

    # ---------- globals ----------
    def set_global(self, **patch):
        self.design = replace(self.design, **patch)
        self._changed()


class ReorderGesture:
    """Drag-reorder of one block.

    ``hover`` only moves the pending order. Nothing changes in the document
    until the owner applies ``commit()``; ``cancel`` restores the start order.
    """

    def __init__(self, blocks: Sequence[RsvpBlock], source_id: str):
        self.source_id = source_id
        self.original: List[str] = [b.id for b in blocks]
        self.pending: List[str] = list(self.original)
        self.active = source_id in self.pending

    def hover(self, target_id: str) -> List[str]:
        if not self.active or target_id not in self.pending:
            return list(self.pending)
        si = self.pending.index(self.source_id)
        ti = self.pending.index(target_id)
        if si != ti:
            self.pending.insert(ti, self.pending.pop(si))
        return list(self.pending)

    def commit(self) -> List[str]:
        if not self.active:
            return list(self.original)
        self.active = False
        return list(self.pending)

    def cancel(self):
        self.active = False
        self.pending = list(self.original)
