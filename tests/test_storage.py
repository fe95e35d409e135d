"""
Unit tests for the key-value backends and the calendar cache.

Cache contract:
- one slot, replaced on every write
- a read for a different URL is a miss
- corrupt or unreadable storage is a miss, never an exception
- JSON layout: {"events": [...], "icsUrl": ..., "cachedAt": ...}
"""

import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from edtfeed.errors import CacheError
from edtfeed.model import RawEventRecord
from edtfeed.normalize import normalize_event
from edtfeed.storage import CACHE_KEY, FileStore, MemoryStore, cache_events, clear_cache, load_cached_events

URL = "https://example.org/schedule.ics"


def _events():
    start = datetime(2026, 2, 19, 8, 0, tzinfo=timezone.utc)
    record = RawEventRecord(
        summary="A311 Atelier de projet - GIVELET - Gpe 5",
        description="Staff: GIVELET; LEROY\nGroup: Groupe 5\nNotes: salle info",
        start=start,
        end=start + timedelta(minutes=90),
        location="B201",
        uid="evt-1",
        categories="S1G5",
    )
    return [normalize_event(record), normalize_event(RawEventRecord(summary="Physique CM", start=start))]


class BrokenStore:
    def get(self, key: str):
        raise CacheError("storage unavailable")

    def set(self, key: str, value: str) -> None:
        raise CacheError("storage unavailable")

    def delete(self, key: str) -> None:
        raise CacheError("storage unavailable")


class TestCache(unittest.TestCase):
    def test_miss_when_empty(self) -> None:
        self.assertIsNone(load_cached_events("https://x", MemoryStore()))

    def test_roundtrip_is_lossless(self) -> None:
        store = MemoryStore()
        events = _events()
        stamp = datetime(2026, 2, 19, 7, 0, tzinfo=timezone.utc)

        cache_events(events, URL, store, now=stamp)
        cached = load_cached_events(URL, store)

        assert cached is not None
        self.assertEqual(cached.events, events)
        self.assertEqual(cached.cached_at, stamp)
        self.assertEqual(cached.events[0].start_ms, events[0].start_ms)

    def test_other_url_is_a_miss(self) -> None:
        store = MemoryStore()
        cache_events(_events(), URL, store)
        self.assertIsNone(load_cached_events(URL + "?v=2", store))

    def test_single_slot_is_replaced(self) -> None:
        store = MemoryStore()
        cache_events(_events(), URL, store)
        cache_events([], "https://other", store)
        self.assertIsNone(load_cached_events(URL, store))
        cached = load_cached_events("https://other", store)
        assert cached is not None
        self.assertEqual(cached.events, [])

    def test_persisted_layout(self) -> None:
        store = MemoryStore()
        cache_events(_events(), URL, store)
        data = json.loads(store.get(CACHE_KEY) or "{}")

        self.assertEqual(data["icsUrl"], URL)
        self.assertIn("cachedAt", data)
        first = data["events"][0]
        self.assertEqual(first["subjectName"], "Atelier de projet")
        self.assertEqual(first["start"], "2026-02-19T08:00:00+00:00")
        self.assertEqual(first["staff"], ["GIVELET", "LEROY"])
        self.assertEqual(first["groupNumber"], 5)

    def test_corrupt_json_is_a_miss(self) -> None:
        store = MemoryStore({CACHE_KEY: "{not json"})
        self.assertIsNone(load_cached_events(URL, store))

    def test_malformed_event_is_a_miss(self) -> None:
        store = MemoryStore({CACHE_KEY: json.dumps({"icsUrl": URL, "cachedAt": "x", "events": [{"id": 1}]})})
        self.assertIsNone(load_cached_events(URL, store))

    def test_broken_backend_is_swallowed(self) -> None:
        cache_events(_events(), URL, BrokenStore())
        self.assertIsNone(load_cached_events(URL, BrokenStore()))
        clear_cache(BrokenStore())

    def test_clear(self) -> None:
        store = MemoryStore()
        cache_events(_events(), URL, store)
        clear_cache(store)
        self.assertIsNone(load_cached_events(URL, store))


class TestFileStore(unittest.TestCase):
    def test_missing_key_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            self.assertIsNone(FileStore(d).get("missing"))

    def test_set_get_delete(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            store = FileStore(Path(d) / "nested")
            store.set("edtfeed/cache key", "payload")
            self.assertEqual(store.get("edtfeed/cache key"), "payload")
            # keys are sanitized into a single file name
            self.assertEqual([p.name for p in (Path(d) / "nested").iterdir()], ["edtfeed_cache_key.json"])
            store.delete("edtfeed/cache key")
            self.assertIsNone(store.get("edtfeed/cache key"))
            store.delete("edtfeed/cache key")

    def test_cache_through_files(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            cache_events(_events(), URL, FileStore(d))
            cached = load_cached_events(URL, FileStore(d))
            assert cached is not None
            self.assertEqual(len(cached.events), 2)


if __name__ == "__main__":
    unittest.main()
