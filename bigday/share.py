"""Share links for the guest-facing RSVP card."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from .api import ApiClient
from .design import RsvpDesign, block_from_dict, block_to_dict, uid
from .design_mapper import to_frontend_design
from .errors import ApiError
from .models import FormFieldConfig
from .storage import LocalStorage, share_key

logger = logging.getLogger(__name__)


def generate_share_token() -> str:
    return uid(9)


def public_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/rsvp/submit/{token}"


def snapshot(design: RsvpDesign, event_title: str = "") -> Dict[str, Any]:
    return {
        "eventTitle": event_title,
        "eventGuid": design.event_guid,
        "blocks": [block_to_dict(b) for b in design.blocks],
        "flowPreset": design.flow_preset,
        "global": {
            "backgroundColor": design.background_color,
            "backgroundType": design.background_type,
            "backgroundAsset": design.background_asset,
            "overlay": design.overlay,
            "accentColor": design.accent_color,
            "musicUrl": design.music_url,
        },
        "formFieldConfigs": [f.to_dict() for f in design.form_field_configs],
    }


def save_share_snapshot(storage: LocalStorage, token: str, design: RsvpDesign, event_title: str = "") -> bool:
    return storage.set_json(share_key(token), snapshot(design, event_title))


def design_from_snapshot(snap: Dict[str, Any]) -> RsvpDesign:
    g = snap.get("global") or {}
    overlay = g.get("overlay")
    return RsvpDesign(
        blocks=[block_from_dict(b) for b in snap.get("blocks") or []],
        flow_preset=snap.get("flowPreset") or "serene",
        background_type=g.get("backgroundType") or "color",
        background_asset=g.get("backgroundAsset") or "",
        background_color=g.get("backgroundColor") or "#0f172a",
        overlay=0.3 if overlay is None else float(overlay),
        accent_color=g.get("accentColor") or "#f97316",
        music_url=g.get("musicUrl"),
        event_guid=snap.get("eventGuid"),
        form_field_configs=[FormFieldConfig.from_api(f) for f in snap.get("formFieldConfigs") or []],
    )


def load_public_design(api: Optional[ApiClient], storage: LocalStorage, token: str) -> Optional[RsvpDesign]:
    """Design for a share token: public API first, then the local snapshot."""
    if not token:
        return None
    if api is not None:
        try:
            body = api.public_design_by_token(token)
        except ApiError as e:
            logger.info("public design lookup for %s failed (%s); trying local snapshot", token, e)
            body = None
        if body:
            return to_frontend_design(body)

    snap = storage.get_json(share_key(token))
    if not isinstance(snap, dict):
        return None
    try:
        return design_from_snapshot(snap)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning("ignoring corrupt share snapshot %s: %s", token, e)
        return None
