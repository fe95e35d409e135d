"""
Persistent storage: key-value backends and the calendar cache.

Layout of the cache entry (single slot, one key for all URLs):

    {"events": [{...DomainEvent..., "start": ISO, "end": ISO}],
     "icsUrl": "<source url>",
     "cachedAt": ISO}

Design rationale:
- the cache is a fallback, never a source of errors: every read/write
  failure is logged and treated as a miss
- the backend is injected, so tests (and other front ends) can swap the
  JSON files for an in-memory dict
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol

from edtfeed.errors import CacheError
from edtfeed.model import CachedCalendar, DomainEvent

logger = logging.getLogger(__name__)

CACHE_KEY = "edtfeed-calendar-cache"


# ---------------------------------------------------------------------------
# Key-value backends
# ---------------------------------------------------------------------------


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """
    Dict-backed store (tests, one-shot CLI runs with --no-cache).
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


def default_data_dir() -> Path:
    """
    Return the directory holding cache and settings files.

    EDTFEED_DATA_DIR overrides the default ~/.cache/edtfeed.
    Using a function instead of a constant lets tests override the environment.
    """
    env = os.environ.get("EDTFEED_DATA_DIR", "").strip()
    if env:
        return Path(env).expanduser()
    return Path.home() / ".cache" / "edtfeed"


class FileStore:
    """
    One JSON file per key inside a directory.

    Backend failures are raised as CacheError.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory) if directory is not None else default_data_dir()

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CacheError(f"Cannot read {path}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")
        except OSError as exc:
            raise CacheError(f"Cannot write {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise CacheError(f"Cannot delete {key}: {exc}") from exc


# ---------------------------------------------------------------------------
# Calendar cache
# ---------------------------------------------------------------------------


def cache_events(
    events: Iterable[DomainEvent],
    url: str,
    store: KeyValueStore | None = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Replace the cache slot with `events` fetched from `url`.

    Never raises: failures are logged and ignored.
    """
    store = store if store is not None else FileStore()
    cached_at = now if now is not None else datetime.now(timezone.utc)

    try:
        payload = {
            "events": [ev.to_dict() for ev in events],
            "icsUrl": url,
            "cachedAt": cached_at.isoformat(),
        }
        store.set(CACHE_KEY, json.dumps(payload, ensure_ascii=False))
    except (CacheError, OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to cache events: %s", exc)


def load_cached_events(url: str, store: KeyValueStore | None = None) -> Optional[CachedCalendar]:
    """
    Return the cached events for exactly `url`, or None.

    A different stored URL, a missing entry and a corrupt entry are all misses.
    """
    store = store if store is not None else FileStore()

    try:
        raw = store.get(CACHE_KEY)
        if raw is None:
            return None

        data = json.loads(raw)
        if data.get("icsUrl") != url:
            return None

        events = [DomainEvent.from_dict(item) for item in data["events"]]
        cached_at = datetime.fromisoformat(data["cachedAt"])
    except (CacheError, OSError, AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Ignoring unreadable calendar cache: %s", exc)
        return None

    return CachedCalendar(events=events, cached_at=cached_at)


def clear_cache(store: KeyValueStore | None = None) -> None:
    store = store if store is not None else FileStore()
    try:
        store.delete(CACHE_KEY)
    except (CacheError, OSError) as exc:
        logger.warning("Failed to clear calendar cache: %s", exc)
