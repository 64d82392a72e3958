from __future__ import annotations
import json
import logging
from typing import Any, Optional

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


def floorplan_key(event_id: str) -> str:
    return f"floorplan-{event_id}"


def share_key(token: str) -> str:
    return f"rsvp-share-{token}"


class LocalStorage:
    """String key/value slots with JSON helpers, backed by QSettings."""

    def __init__(self, settings: Optional[QSettings] = None, org: str = "BigDay", app: str = "Console"):
        self._st = settings if settings is not None else QSettings(org, app)

    def get(self, key: str) -> Optional[str]:
        v = self._st.value(key, None)
        return None if v is None else str(v)

    def set(self, key: str, value: str):
        self._st.setValue(key, value)
        self._st.sync()

    def remove(self, key: str):
        self._st.remove(key)
        self._st.sync()

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            # unreadable slot counts as never saved
            logger.warning("Ignoring unreadable storage slot %s: %s", key, e)
            return default

    def set_json(self, key: str, value: Any) -> bool:
        try:
            self.set(key, json.dumps(value, ensure_ascii=False))
            return True
        except (TypeError, ValueError) as e:
            logger.warning("Could not write storage slot %s: %s", key, e)
            return False

    # recent events list for the start screen
    def recent(self) -> list:
        v = self._st.value("recent", [], list)
        return list(v or [])

    def set_recent(self, items: list, limit: int = 12):
        self._st.setValue("recent", list(items)[:limit])
        self._st.sync()

    def push_recent(self, entry: str, limit: int = 12):
        items = [e for e in self.recent() if e != entry]
        items.insert(0, entry)
        self.set_recent(items, limit)


class TokenStore:
    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def load(self) -> Optional[str]:
        return self.storage.get(TOKEN_KEY) or None

    def save(self, token: str):
        self.storage.set(TOKEN_KEY, token)

    def clear(self):
        self.storage.remove(TOKEN_KEY)
