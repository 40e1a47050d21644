# ============================================================================
# JSON DATASTORE
# ============================================================================
# A single JSON document on disk, mirrored in memory.
# Every mutation rewrites the whole file atomically (temp file + os.replace).
# ============================================================================

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import anyio

from core.errors import DatabaseError


logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_REQUEST_LOGS = 1000
MAX_CONTACT_SUBMISSIONS = 500


def default_stats() -> Dict[str, int]:
    return {
        "totalStars": 0,
        "totalForks": 0,
        "totalRepos": 0,
        "followers": 0,
        "following": 0,
    }


def default_response_time_stats() -> Dict[str, float]:
    return {"average": 0, "min": 0, "max": 0, "samples": 0}


def default_analytics() -> Dict[str, Any]:
    return {
        "totalVisits": 0,
        "uniqueVisitors": 0,
        "visitors": {},
        "dailyStats": {},
        "hourlyStats": {},
        "popularPages": {},
        "referrers": {},
        "userAgents": {},
        "responseTimeStats": default_response_time_stats(),
        "requestLogs": [],
    }


def default_data() -> Dict[str, Any]:
    return {
        "user": None,
        "repositories": [],
        "languages": {},
        "activity": [],
        "workflows": [],
        "lastUpdated": None,
        "stats": default_stats(),
        "analytics": default_analytics(),
        "contactSubmissions": [],
        "likes": {},
    }


def _fill_missing(data: Dict[str, Any], defaults: Dict[str, Any]) -> bool:
    changed = False
    for key, value in defaults.items():
        if key not in data or data[key] is None and value is not None:
            data[key] = value
            changed = True
        elif isinstance(value, dict) and isinstance(data[key], dict) and key in {"stats", "analytics"}:
            changed = _fill_missing(data[key], value) or changed
    return changed


class JsonDatastore:
    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None
        self._lock = threading.RLock()

    @property
    def is_initialized(self) -> bool:
        return self._data is not None

    # ------------------------------
    # sync internals (run in a worker thread)
    # ------------------------------
    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            data = default_data()
            self._write(data)
            return data
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = handle.read()
        except OSError as exc:
            raise DatabaseError(f"Unable to read datastore at {self.path}", "read") from exc

        if not raw.strip():
            data = default_data()
            self._write(data)
            return data
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DatabaseError(f"Datastore at {self.path} is not valid JSON", "read") from exc
        if not isinstance(data, dict):
            raise DatabaseError(f"Datastore at {self.path} must contain a JSON object", "read")

        if _fill_missing(data, default_data()):
            self._write(data)
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp", prefix=f".{self.path.stem}_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, default=str)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def _initialize_sync(self) -> Dict[str, Any]:
        with self._lock:
            if self._data is None:
                self._data = self._load()
                logger.info("Datastore initialized at %s", self.path)
            return self._data

    def _read_sync(self, key: Optional[str]) -> Any:
        with self._lock:
            data = self._initialize_sync()
            value = data if key is None else data.get(key)
            return copy.deepcopy(value)

    def _update_sync(self, mutator: Callable[[Dict[str, Any]], T]) -> T:
        with self._lock:
            data = self._initialize_sync()
            working = copy.deepcopy(data)
            result = mutator(working)
            try:
                self._write(working)
            except OSError as exc:
                raise DatabaseError(f"Unable to write datastore at {self.path}", "write") from exc
            self._data = working
            return copy.deepcopy(result)

    # ------------------------------
    # async API
    # ------------------------------
    async def initialize(self) -> None:
        await anyio.to_thread.run_sync(self._initialize_sync)

    async def read(self, key: Optional[str] = None) -> Any:
        """Returns a deep copy of the whole document, or of one top-level key."""
        return await anyio.to_thread.run_sync(self._read_sync, key)

    async def update(self, mutator: Callable[[Dict[str, Any]], T]) -> T:
        """Applies ``mutator`` to a working copy and persists it; returns the mutator's result."""
        return await anyio.to_thread.run_sync(self._update_sync, mutator)

    def reset(self) -> None:
        """Drops the in-memory copy so the next access reloads from disk."""
        with self._lock:
            self._data = None
