"""
Read-side helpers for front ends: summaries, day/week lookups and filters.

None of these mutate events; they only select or count them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from edtfeed.config import BannedPattern, Settings
from edtfeed.model import DomainEvent, EventType

logger = logging.getLogger(__name__)

DayLike = Union[date, datetime]


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@dataclass
class SubjectSummary:
    name: str
    color: str
    count: int


@dataclass
class TypeSummary:
    type: EventType
    label: str
    count: int


def get_unique_subjects(events: Iterable[DomainEvent]) -> List[SubjectSummary]:
    """
    One entry per subject name, most frequent first.
    """
    subjects: Dict[str, SubjectSummary] = {}
    for ev in events:
        if ev.subject_name not in subjects:
            subjects[ev.subject_name] = SubjectSummary(name=ev.subject_name, color=ev.color, count=0)
        subjects[ev.subject_name].count += 1
    return sorted(subjects.values(), key=lambda s: s.count, reverse=True)


def get_unique_types(events: Iterable[DomainEvent]) -> List[TypeSummary]:
    """
    One entry per course type, in first-seen order.
    """
    types: Dict[EventType, TypeSummary] = {}
    for ev in events:
        if ev.type not in types:
            types[ev.type] = TypeSummary(type=ev.type, label=ev.type_label, count=0)
        types[ev.type].count += 1
    return list(types.values())


# ---------------------------------------------------------------------------
# Calendar lookups
# ---------------------------------------------------------------------------


def _as_local_date(day: DayLike) -> date:
    if isinstance(day, datetime):
        return (day.astimezone() if day.tzinfo is not None else day).date()
    return day


def day_bounds(day: DayLike) -> Tuple[datetime, datetime]:
    """
    [local midnight, local 23:59:59.999] of `day`.
    """
    d = _as_local_date(day)
    start = datetime.combine(d, time.min).astimezone()
    end = datetime.combine(d, time(23, 59, 59, 999000)).astimezone()
    return start, end


def get_events_for_date(events: Iterable[DomainEvent], day: DayLike) -> List[DomainEvent]:
    start, end = day_bounds(day)
    return [ev for ev in events if start <= ev.start <= end]


def get_week_dates(day: DayLike) -> List[date]:
    """
    The seven days (Monday first) of the ISO week containing `day`.
    """
    d = _as_local_date(day)
    monday = d - timedelta(days=d.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _banned_search_text(event: DomainEvent) -> str:
    parts = [
        event.title,
        event.subject_name,
        event.group,
        event.module,
        event.notes,
        " ".join(event.staff),
    ]
    return " ".join(p for p in parts if p).lower()


def matches_banned_patterns(event: DomainEvent, patterns: Sequence[BannedPattern]) -> bool:
    """
    True if any enabled pattern matches the event's text fields.

    Regex patterns are case-insensitive searches; plain ones are substrings.
    """
    text = _banned_search_text(event)

    for banned in patterns:
        if not banned.enabled or not banned.pattern:
            continue
        if banned.is_regex:
            try:
                if re.search(banned.pattern, text, re.IGNORECASE):
                    return True
            except re.error as exc:
                logger.warning("Invalid pattern %r: %s", banned.pattern, exc)
        elif banned.pattern.lower() in text:
            return True

    return False


def matches_group(event: DomainEvent, group_number: Optional[int]) -> bool:
    # events without a group number apply to everyone
    if not group_number or not event.group_number:
        return True
    return event.group_number == group_number


def apply_all_filters(
    events: Iterable[DomainEvent], settings: Settings
) -> Tuple[List[DomainEvent], List[DomainEvent]]:
    """
    Split events into (visible, hidden) according to the user's settings.
    """
    hidden_subjects = set(settings.hidden_subjects)
    hidden_types = set(settings.hidden_types)

    visible: List[DomainEvent] = []
    hidden: List[DomainEvent] = []

    for ev in events:
        is_hidden = (
            matches_banned_patterns(ev, settings.banned_patterns)
            or ev.subject_name in hidden_subjects
            or ev.type.value in hidden_types
            or not matches_group(ev, settings.group_number)
        )
        (hidden if is_hidden else visible).append(ev)

    return visible, hidden


def filter_option_events(events: Iterable[DomainEvent], settings: Settings) -> List[DomainEvent]:
    """
    Events that survive banned patterns and the group filter, even if the
    user currently hides their subject or type.
    """
    return [
        ev
        for ev in events
        if not matches_banned_patterns(ev, settings.banned_patterns)
        and matches_group(ev, settings.group_number)
    ]


def filter_events(
    events: Iterable[DomainEvent],
    hidden_subjects: Iterable[str] = (),
    hidden_types: Iterable[str] = (),
    group_number: Optional[int] = None,
    search_query: str = "",
) -> List[DomainEvent]:
    """
    Visible-only filter with an optional free-text search over title,
    module, staff and room.
    """
    subjects = set(hidden_subjects)
    types = set(hidden_types)
    query = search_query.strip().lower()

    out: List[DomainEvent] = []
    for ev in events:
        if ev.subject_name in subjects or ev.type.value in types:
            continue
        if not matches_group(ev, group_number):
            continue
        if query:
            hay = f"{ev.title} {ev.module} {' '.join(ev.staff)} {ev.room or ''}".lower()
            if query not in hay:
                continue
        out.append(ev)
    return out
