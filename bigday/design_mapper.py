"""Conversion between the editor's design model and the REST payload."""
from __future__ import annotations
from typing import Any, Dict, Optional

from .design import (AttendanceBlock, BlockBackground, BlockMedia, CtaBlock, FormFieldBlock,
                     GuestDetailsBlock, HeadlineBlock, ImageBlock, InfoBlock, RsvpBlock, RsvpDesign,
                     TextBlock, ALL_GUEST_FIELDS, DEFAULT_OVERLAY, uid)
from .models import FormFieldConfig

OVERLAY_COLOR = "#0f172a"
LAYOUT = {"width": 1200, "maxHeight": 0}
PREVIEW_MODES = ["mobile", "desktop"]


def _width_out(width: str) -> int:
    return 50 if width == "half" else 100


def _width_in(value: Any) -> str:
    return "half" if value == 50 else "full"


def _media(d: Optional[Dict[str, Any]]) -> Optional[BlockMedia]:
    return BlockMedia.from_dict(d) if d else None


# ===== editor -> backend =====

def block_to_backend(block: RsvpBlock, accent_color: str) -> Dict[str, Any]:
    bg = block.background
    out: Dict[str, Any] = {
        "id": block.id, "type": block.kind,
        "background": {
            "images": [m.to_dict() for m in bg.images],
            "activeImageId": bg.active_image_id,
            "overlay": {"opacity": bg.overlay, "color": OVERLAY_COLOR},
        },
    }
    if block.section_image:
        out["sectionImage"] = block.section_image.to_dict()

    if isinstance(block, HeadlineBlock):
        out.update(title=block.title, subtitle=block.subtitle, align=block.align,
                   accentClass=block.accent, accentColor=accent_color)
    elif isinstance(block, TextBlock):
        out.update(body=block.body, width=_width_out(block.width), align=block.align, muted=block.muted)
    elif isinstance(block, InfoBlock):
        out.update(label=block.label, content=block.content, accentClass=block.accent,
                   accentColor=accent_color)
    elif isinstance(block, FormFieldBlock):
        out.update(label=block.label, placeholder=block.placeholder, required=block.required,
                   width=_width_out(block.width), hint=block.hint)
        if block.question_id:
            out["questionId"] = block.question_id
            # legacy backends key answers by the numeric id
            try:
                out["formFieldId"] = int(block.question_id)
            except ValueError:
                pass
    elif isinstance(block, CtaBlock):
        out.update(ctaLabel=block.label, href=block.href, align=block.align)
    elif isinstance(block, ImageBlock):
        out.update(images=[m.to_dict() for m in block.images], activeImageId=block.active_image_id,
                   caption=block.caption, height=block.height)
    elif isinstance(block, AttendanceBlock):
        out.update(title=block.title, subtitle=block.subtitle, width=_width_out(block.width))
    elif isinstance(block, GuestDetailsBlock):
        out.update(title=block.title, subtitle=block.subtitle, width=_width_out(block.width),
                   showFields=dict(block.show_fields))
    return out


def to_backend_payload(design: RsvpDesign, event_id: str,
                       is_published: bool = False, is_draft: bool = True) -> Dict[str, Any]:
    theme = {
        "accentColor": design.accent_color,
        "background": {"type": design.background_type, "color": design.background_color,
                       "assetUrl": design.background_asset},
        "overlayOpacity": design.overlay,
    }
    if design.music_url:
        theme["musicUrl"] = design.music_url
    return {
        "eventId": event_id,
        "design": {
            "theme": theme,
            "layout": dict(LAYOUT),
            "previewModes": list(PREVIEW_MODES),
            "blocks": [block_to_backend(b, design.accent_color) for b in design.blocks],
            "flowPreset": design.flow_preset,
            "formFieldConfigs": [f.to_dict() for f in design.form_field_configs],
        },
        "isPublished": is_published,
        "isDraft": is_draft,
    }


# ===== backend -> editor =====

def _background_in(d: Optional[Dict[str, Any]]) -> BlockBackground:
    if not d:
        return BlockBackground()
    overlay = (d.get("overlay") or {})
    opacity = overlay.get("opacity") if isinstance(overlay, dict) else overlay
    return BlockBackground(
        images=[BlockMedia.from_dict(m) for m in d.get("images") or []],
        active_image_id=d.get("activeImageId"),
        overlay=float(DEFAULT_OVERLAY if opacity is None else opacity),
    )


def block_from_backend(d: Dict[str, Any]) -> RsvpBlock:
    base = dict(id=str(d.get("id") or uid()), background=_background_in(d.get("background")),
                section_image=_media(d.get("sectionImage")))
    kind = d.get("type")
    if kind == "headline":
        return HeadlineBlock(title=d.get("title") or "", subtitle=d.get("subtitle"),
                             align=d.get("align") or "center", accent=d.get("accentClass") or "text-white",
                             **base)
    if kind == "text":
        return TextBlock(body=d.get("body") or "", width=_width_in(d.get("width")),
                         align=d.get("align") or "left", muted=d.get("muted"), **base)
    if kind == "info":
        return InfoBlock(label=d.get("label") or "", content=d.get("content") or "",
                         accent=d.get("accentClass") or "bg-white/20 text-white", **base)
    if kind == "formField":
        qid = d.get("questionId")
        if qid is None and d.get("formFieldId") is not None:
            qid = str(d["formFieldId"])
        return FormFieldBlock(label=d.get("label") or "", placeholder=d.get("placeholder"),
                              required=bool(d.get("required", False)), width=_width_in(d.get("width")),
                              hint=d.get("hint"), question_id=qid, **base)
    if kind == "cta":
        label = d.get("ctaLabel") if d.get("ctaLabel") is not None else d.get("label")
        return CtaBlock(label=label or "", href=d.get("href"), align=d.get("align") or "center", **base)
    if kind == "image":
        return ImageBlock(images=[BlockMedia.from_dict(m) for m in d.get("images") or []],
                          active_image_id=d.get("activeImageId"), caption=d.get("caption"),
                          height=d.get("height") or "medium", **base)
    if kind == "attendance":
        return AttendanceBlock(title=d.get("title") or "Will you be attending?", subtitle=d.get("subtitle"),
                               width=_width_in(d.get("width")), **base)
    if kind == "guestDetails":
        show = d.get("showFields")
        return GuestDetailsBlock(title=d.get("title") or "Your details", subtitle=d.get("subtitle"),
                                 width=_width_in(d.get("width")),
                                 show_fields=dict(show) if show else dict(ALL_GUEST_FIELDS), **base)
    return TextBlock(body="Unknown block type", width="full", align="left", **base)


def to_frontend_design(api: Dict[str, Any]) -> RsvpDesign:
    """Accepts either a saved-design response or a raw save payload."""
    design = api.get("design") or {}
    theme = design.get("theme") or {}
    background = theme.get("background") or {}
    overlay = theme.get("overlayOpacity")
    return RsvpDesign(
        blocks=[block_from_backend(b) for b in design.get("blocks") or []],
        flow_preset=design.get("flowPreset") or "serene",
        background_type=background.get("type") or "color",
        background_asset=background.get("assetUrl") or "",
        background_color=background.get("color") or "#f6f1e4",
        overlay=0.25 if overlay is None else float(overlay),
        accent_color=theme.get("accentColor") or "#f97316",
        music_url=theme.get("musicUrl"),
        event_guid=api.get("eventGuid"),
        version=api.get("version"),
        share_token=api.get("shareToken"),
        public_link=None,
        form_field_configs=[FormFieldConfig.from_api(f) for f in design.get("formFieldConfigs") or []],
    )


def validate_design(design: RsvpDesign) -> bool:
    return bool(design.blocks) and bool(design.accent_color) and bool(design.background_color)
