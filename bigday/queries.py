from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Set

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal

from .errors import ApiError

logger = logging.getLogger(__name__)


def guests_key(event_id: str) -> str:
    return f"guests:{event_id}"


def tables_key(event_id: str) -> str:
    return f"tables:{event_id}"


def form_fields_key(event_id: str) -> str:
    return f"formFields:{event_id}"


def design_key(event_id: str) -> str:
    return f"rsvpDesign:{event_id}"


def rsvps_key(event_id: str) -> str:
    return f"rsvps:{event_id}"


COSTING_KEY = "costing"
USERS_KEY = "users"


class WorkerSignals(QObject):
    finished = Signal(object)
    failed = Signal(object)


class ApiWorker(QRunnable):
    """Runs one blocking API call off the GUI thread."""

    def __init__(self, fn: Callable[..., Any], *args, **kwargs):
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    def run(self):
        try:
            result = self.fn(*self.args, **self.kwargs)
        except ApiError as e:
            self.signals.failed.emit(e)
            return
        except Exception as e:
            logger.exception("Unexpected error in API worker")
            self.signals.failed.emit(ApiError(None, str(e)))
            return
        self.signals.finished.emit(result)


def pool_executor(worker: ApiWorker):
    QThreadPool.globalInstance().start(worker)


def inline_executor(worker: ApiWorker):
    worker.run()


class QueryCache(QObject):
    """Keyed read cache with invalidate-then-refetch after mutations."""

    updated = Signal(str)
    failed = Signal(str, object)
    loadingChanged = Signal(str, bool)

    def __init__(self, executor: Optional[Callable[[ApiWorker], None]] = None, parent=None):
        super().__init__(parent)
        self._execute = executor or pool_executor
        self._fetchers: Dict[str, Callable[[], Any]] = {}
        self._data: Dict[str, Any] = {}
        self._errors: Dict[str, ApiError] = {}
        self._loading: Set[str] = set()
        self._live: Set[ApiWorker] = set()

    # ---------- reads ----------
    def register(self, key: str, fetcher: Callable[[], Any], fetch: bool = True):
        self._fetchers[key] = fetcher
        if fetch:
            self.fetch(key)

    def is_registered(self, key: str) -> bool:
        return key in self._fetchers

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def error(self, key: str) -> Optional[ApiError]:
        return self._errors.get(key)

    def is_loading(self, key: str) -> bool:
        return key in self._loading

    def fetch(self, key: str):
        fetcher = self._fetchers.get(key)
        if fetcher is None:
            return
        self._loading.add(key)
        self.loadingChanged.emit(key, True)

        def done(result, key=key):
            self._loading.discard(key)
            self._errors.pop(key, None)
            self._data[key] = result
            self.loadingChanged.emit(key, False)
            self.updated.emit(key)

        def fail(err, key=key):
            self._loading.discard(key)
            self._errors[key] = err
            self.loadingChanged.emit(key, False)
            self.failed.emit(key, err)

        self._run(fetcher, done, fail)

    def invalidate(self, *keys: str):
        for key in keys:
            self._data.pop(key, None)
            self.fetch(key)

    # ---------- writes ----------
    def run_mutation(self, fn: Callable[[], Any],
                     on_success: Optional[Callable[[Any], None]] = None,
                     on_error: Optional[Callable[[ApiError], None]] = None,
                     invalidate: Iterable[str] = ()):
        keys = tuple(invalidate)

        def done(result):
            if keys:
                self.invalidate(*keys)
            if on_success:
                on_success(result)

        def fail(err):
            logger.warning("Mutation failed: %s", err)
            if on_error:
                on_error(err)

        self._run(fn, done, fail)

    def call(self, fn: Callable[[], Any], on_success: Callable[[Any], None],
             on_error: Optional[Callable[[ApiError], None]] = None):
        """One-off read that is not cached."""
        self._run(fn, on_success, on_error or (lambda e: logger.warning("Request failed: %s", e)))

    def _run(self, fn, done, fail):
        worker = ApiWorker(fn)
        worker.setAutoDelete(False)
        self._live.add(worker)

        def finished(result, w=worker):
            self._live.discard(w)
            done(result)

        def failed(err, w=worker):
            self._live.discard(w)
            fail(err)

        worker.signals.finished.connect(finished)
        worker.signals.failed.connect(failed)
        self._execute(worker)
