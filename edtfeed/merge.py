"""
Merging feeds and loading a calendar end to end.

load_calendar() is the entry point front ends use:
1. read the cache for the primary URL (stale fallback)
2. fetch the primary feed (its failure is fatal unless the cache has data)
3. fetch the optional secondary feed (its failure is only logged)
4. tag, merge, sort and deduplicate
5. write the merged list back to the cache
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Set

from edtfeed.errors import ConfigurationError, SecondaryFeedError, TransportError
from edtfeed.fetch import Strategy, fetch_calendar_events
from edtfeed.model import CalendarLoad, DomainEvent
from edtfeed.normalize import sort_events
from edtfeed.storage import KeyValueStore, cache_events, load_cached_events

logger = logging.getLogger(__name__)


def dedup_key(event: DomainEvent) -> str:
    return f"{event.id}_{event.start_ms}"


def dedupe_events(events: Iterable[DomainEvent]) -> List[DomainEvent]:
    """
    Keep the first event for each (id, start) pair, preserving order.
    """
    seen: Set[str] = set()
    out: List[DomainEvent] = []
    for ev in events:
        key = dedup_key(ev)
        if key in seen:
            continue
        seen.add(key)
        out.append(ev)
    return out


def tag_events(events: Iterable[DomainEvent], is_secondary: bool) -> List[DomainEvent]:
    return [dataclasses.replace(ev, is_secondary=is_secondary) for ev in events]


def merge_events(
    primary: Sequence[DomainEvent],
    secondary: Optional[Sequence[DomainEvent]] = None,
) -> List[DomainEvent]:
    """
    Tag both feeds, concatenate, sort by start and drop duplicates.
    """
    combined = tag_events(primary, False) + tag_events(secondary or [], True)
    return dedupe_events(sort_events(combined))


def _fetch_secondary(url: str, strategies: Optional[Sequence[Strategy]]) -> List[DomainEvent]:
    try:
        return fetch_calendar_events(url, strategies)
    except (ConfigurationError, TransportError) as exc:
        raise SecondaryFeedError(f"Secondary feed {url} unavailable: {exc}") from exc


def load_calendar(
    primary_url: Optional[str],
    secondary_url: Optional[str] = None,
    store: KeyValueStore | None = None,
    strategies: Optional[Sequence[Strategy]] = None,
    now: Optional[datetime] = None,
) -> CalendarLoad:
    """
    Load the merged calendar, falling back to the cache when the primary
    feed cannot be fetched.

    Raises:
        ConfigurationError: no primary URL
        TransportError: primary fetch failed and nothing is cached for it
    """
    if not primary_url or not primary_url.strip():
        raise ConfigurationError()

    cached = load_cached_events(primary_url, store)

    try:
        primary = fetch_calendar_events(primary_url, strategies)
    except TransportError:
        if cached is None:
            raise
        logger.warning("Using cached calendar from %s", cached.cached_at.isoformat())
        return CalendarLoad(events=cached.events, from_cache=True, cached_at=cached.cached_at)

    secondary: List[DomainEvent] = []
    if secondary_url and secondary_url.strip():
        try:
            secondary = _fetch_secondary(secondary_url, strategies)
        except SecondaryFeedError as exc:
            logger.warning("Failed to load secondary feed: %s", exc)

    events = merge_events(primary, secondary)
    cache_events(events, primary_url, store, now=now)
    return CalendarLoad(events=events)
