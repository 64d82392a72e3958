"""Server-side copy of the floor-plan layout.

The backend stores ``{version, items}`` per event. Local edits are pushed after
a short quiet period; the server rejects a push whose version is stale with
409, at which point pushing stops until the user picks a side. If the first
load fails, pushing stays off and the load is retried on the next local edit.
"""
from __future__ import annotations
import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .api import ApiClient
from .errors import ApiError, ConflictError
from .models import FloorItem
from .queries import QueryCache
from .store import FloorPlanStore

logger = logging.getLogger(__name__)


class FloorPlanSync(QObject):
    conflict = Signal(object)   # server version, may be None
    synced = Signal(int)
    failed = Signal(object)
    # the server copy replaced the local items
    adopted = Signal()

    def __init__(self, store: FloorPlanStore, api: ApiClient, cache: QueryCache,
                 delay_ms: int = 800, parent=None):
        super().__init__(parent)
        self.store = store
        self.api = api
        self.cache = cache
        self.event_id: Optional[str] = None
        self.version = 0
        self.server_version: Optional[int] = None
        self.paused = True
        self.load_failed = False
        self._loading = False
        self._in_flight = False
        self._dirty = False

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self.flush)
        store.itemsEdited.connect(self._on_edited)

    @property
    def in_conflict(self) -> bool:
        return self.server_version is not None and self.paused

    def start(self, event_id: str):
        self.event_id = event_id
        self.paused = True
        self._timer.stop()
        self._load()

    def _load(self):
        event_id = self.event_id
        self._loading = True
        self.cache.call(lambda: self.api.get_floor_plan(event_id), self._on_loaded, self._on_load_failed)

    def _on_loaded(self, doc):
        retried = self.load_failed
        self._loading = False
        self.load_failed = False
        self.server_version = None
        if doc is None:
            # nothing on the server yet: seed it with the local cache
            self.version = 0
            self.paused = False
            self.flush()
            return
        self.version = doc["version"]
        if retried and self._dirty:
            # edited while the server was unreachable: let the user pick a side
            self.server_version = doc["version"]
            logger.info("Server floor plan v%s found after local edits to %s", self.version, self.event_id)
            self.conflict.emit(self.server_version)
            return
        self.store.replace_items([FloorItem.from_dict(d) for d in doc["items"]])
        self.paused = False
        logger.info("Adopted server floor plan v%s for %s", self.version, self.event_id)
        self.adopted.emit()

    def _on_load_failed(self, err: ApiError):
        self._loading = False
        self.load_failed = True
        self._on_failed(err)

    def _on_edited(self):
        self._dirty = True
        if self.load_failed and not self._loading and self.event_id is not None:
            self._load()
            return
        if self.paused or self.event_id is None:
            return
        self._timer.start()

    def flush(self):
        if self.paused or self.event_id is None:
            return
        if self._in_flight:
            self._dirty = True
            return
        self._timer.stop()
        self._dirty = False
        self._in_flight = True
        event_id, version, items = self.event_id, self.version, self.store.to_list()
        self.cache.call(lambda: self.api.put_floor_plan(event_id, version, items),
                        self._on_pushed, self._on_push_failed)

    def _on_pushed(self, new_version: int):
        self._in_flight = False
        self.version = new_version
        self.synced.emit(new_version)
        if self._dirty and not self.paused:
            self._timer.start()

    def _on_push_failed(self, err: ApiError):
        self._in_flight = False
        if isinstance(err, ConflictError):
            self.paused = True
            self.server_version = err.server_version
            logger.info("Floor plan conflict for %s (local v%s, server v%s)",
                        self.event_id, self.version, err.server_version)
            self.conflict.emit(err.server_version)
            return
        self._on_failed(err)

    def _on_failed(self, err: ApiError):
        logger.warning("Floor plan sync failed: %s", err)
        self.failed.emit(err)

    # ---------- conflict resolution ----------
    def reload_server(self):
        if self.event_id is not None:
            self.start(self.event_id)

    def overwrite(self):
        if self.event_id is None:
            return
        if self.server_version is not None:
            self.version = self.server_version
        self.server_version = None
        self.paused = False
        self.flush()

    def stop(self):
        self._timer.stop()
        self.paused = True
        self.load_failed = False
