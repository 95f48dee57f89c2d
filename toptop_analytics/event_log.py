import json
import logging
import threading
from typing import Any, Dict, List, NamedTuple, Optional

from toptop_analytics import config
from toptop_analytics.storage import LocalFileStorage, MemoryStorage, S3Storage, StorageError
from toptop_analytics.utils import safe_json_loads

logger = logging.getLogger(__name__)

LOG_VERSION = 1

STATUS_OK = "ok"
STATUS_MISSING = "missing"
STATUS_CORRUPT = "corrupt"
STATUS_UNSUPPORTED_VERSION = "unsupported_version"
STATUS_UNAVAILABLE = "unavailable"


class LogSnapshot(NamedTuple):
    status: str
    events: List[Dict[str, Any]]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (STATUS_OK, STATUS_MISSING)


def decode_log(raw: Optional[str]) -> LogSnapshot:
    """
    Reads the persisted envelope {"version": 1, "interactions": [...]}.
    A bare JSON array is the older unversioned layout and is read as-is.
    """
    if raw is None:
        return LogSnapshot(STATUS_MISSING, [])

    doc = safe_json_loads(raw)
    if doc is None:
        return LogSnapshot(STATUS_CORRUPT, [], "stored data is not valid JSON")

    if isinstance(doc, list):
        events = doc
    elif isinstance(doc, dict):
        version = doc.get("version")
        if not isinstance(version, int) or isinstance(version, bool):
            return LogSnapshot(STATUS_CORRUPT, [], "envelope has no integer version")
        if version > LOG_VERSION:
            return LogSnapshot(STATUS_UNSUPPORTED_VERSION, [], f"version {version} is newer than {LOG_VERSION}")
        events = doc.get("interactions")
    else:
        return LogSnapshot(STATUS_CORRUPT, [], "stored data is not an object or array")

    if not isinstance(events, list) or not all(isinstance(ev, dict) for ev in events):
        return LogSnapshot(STATUS_CORRUPT, [], "interactions is not a list of objects")

    return LogSnapshot(STATUS_OK, events)


def encode_log(events: List[Dict[str, Any]]) -> str:
    return json.dumps({"version": LOG_VERSION, "interactions": events}, ensure_ascii=False)


class EventLogStore:
    """
    Append-only interaction log kept under a single storage key.

    Nothing here raises into the caller: storage failures are logged and the
    operation becomes a no-op, unreadable data reads as an empty log.
    Appends and clears hold a per-store lock, so writers within one
    process are serialized.
    """

    def __init__(self, storage, key: str = "toptop_analytics_data"):
        self.storage = storage
        self.key = key
        self._lock = threading.Lock()

    @property
    def backend(self) -> str:
        return getattr(self.storage, "name", type(self.storage).__name__)

    def snapshot(self) -> LogSnapshot:
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.error("Error reading analytics data: %s", e)
            return LogSnapshot(STATUS_UNAVAILABLE, [], str(e))

        snap = decode_log(raw)
        if not snap.ok:
            logger.warning("Analytics data unreadable (%s): %s", snap.status, snap.error)
        return snap

    def read_all(self) -> List[Dict[str, Any]]:
        return self.snapshot().events

    def append(self, event: Dict[str, Any]) -> bool:
        with self._lock:
            return self._append_locked(event)

    def _append_locked(self, event: Dict[str, Any]) -> bool:
        snap = self.snapshot()
        if snap.status in (STATUS_UNSUPPORTED_VERSION, STATUS_UNAVAILABLE):
            logger.error("Interaction %s not saved: log is %s", event.get("id"), snap.status)
            return False
        if snap.status == STATUS_CORRUPT:
            logger.warning("Overwriting corrupt analytics data")

        try:
            payload = encode_log(snap.events + [event])
        except (TypeError, ValueError, RecursionError) as e:
            logger.error("Interaction %s not serializable: %s", event.get("id"), e)
            return False
        try:
            self.storage.set(self.key, payload)
        except StorageError as e:
            logger.error("Error saving analytics data: %s", e)
            return False
        return True

    def clear(self) -> bool:
        with self._lock:
            try:
                self.storage.delete(self.key)
            except StorageError as e:
                logger.error("Error clearing analytics data: %s", e)
                return False
        logger.info("Analytics data cleared (backend=%s)", self.backend)
        return True


def build_storage():
    if config.STORAGE_BACKEND == "s3":
        return S3Storage(config.ANALYTICS_BUCKET, config.ANALYTICS_PREFIX)
    if config.STORAGE_BACKEND == "memory":
        return MemoryStorage()
    return LocalFileStorage(config.DATA_DIR)


def build_store() -> EventLogStore:
    config.validate_config()
    return EventLogStore(build_storage(), key=config.STORAGE_KEY)
