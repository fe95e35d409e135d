"""
Normalization (raw event records -> DomainEvent).

Each vendor writes titles differently:
- CELCAT:        "Mathématiques TD"
- Hyperplanning: "A311 Atelier de projet - GIVELET - Gpe 5"
- ADE:           "ECO-03 03 Économie générale; CM"

The helpers below turn them into one clean subject name, a course type,
a module code and a group number, then assemble the immutable DomainEvent.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from edtfeed.description import parse_description
from edtfeed.ics_reader import read_events
from edtfeed.model import DomainEvent, EventType, ParsedDescription, RawEventRecord, epoch_ms
from edtfeed.rules import (
    DEFAULT_TYPE,
    GROUP_RULES,
    JOINED_TYPE_RE,
    MODULE_CODE_RE,
    MODULE_PREFIX_RE,
    PALETTE,
    SECTION_PREFIX_RE,
    TITLE_SEPARATOR,
    TRAILING_TYPE_RE,
    TYPE_RULES,
    UNTITLED,
    TypeRule,
)


# ---------------------------------------------------------------------------
# Title helpers
# ---------------------------------------------------------------------------


def extract_subject_name(title: Optional[str], parsed: Optional[ParsedDescription] = None) -> str:
    """
    Return a presentable course name.

    The description's module wins when present; otherwise the raw title is
    cut at the first " - " and stripped of code prefixes and type suffixes.
    """
    # Module: label from the description, code prefix removed
    if parsed is not None and parsed.module:
        from_module = MODULE_PREFIX_RE.sub("", parsed.module, count=1).strip()
        if from_module:
            return from_module

    # vendor titles append staff and group after " - "
    name = (title or "").split(TITLE_SEPARATOR, 1)[0].strip()

    # "ECO-03 03 " must go before the generic code prefix eats "ECO-03 "
    name = SECTION_PREFIX_RE.sub("", name, count=1)
    name = MODULE_PREFIX_RE.sub("", name, count=1)

    # "; CM" then a trailing "TD"
    name = JOINED_TYPE_RE.sub("", name)
    name = TRAILING_TYPE_RE.sub("", name).strip()

    return name or UNTITLED


def classify_event_type(
    title: Optional[str],
    description: Optional[str] = None,
    rules: Sequence[TypeRule] = TYPE_RULES,
) -> Tuple[EventType, str]:
    """
    First matching rule over "title description" wins; (OTHER, "Autre") otherwise.
    """
    combined = f"{title or ''} {description or ''}"
    for rule in rules:
        if rule.pattern.search(combined):
            return rule.type, rule.label
    return DEFAULT_TYPE


def extract_module_code(title: Optional[str]) -> Optional[str]:
    match = MODULE_CODE_RE.match(title or "")
    return match.group(0) if match else None


def extract_group_number(
    parsed: ParsedDescription,
    categories: Optional[str] = None,
    rules: Sequence[Pattern[str]] = GROUP_RULES,
) -> Optional[int]:
    """
    Find a group number in notes, group and CATEGORIES.

    None means the event applies to every group.
    """
    search_text = " ".join([parsed.notes or "", parsed.group or "", categories or ""])
    for pattern in rules:
        match = pattern.search(search_text)
        if match:
            return int(match.group(1))
    return None


def _to_int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - (1 << 32) if n >= (1 << 31) else n


def subject_color(subject_name: str, palette: Sequence[str] = PALETTE) -> str:
    """
    Stable palette color for a subject name.

    Hash: h = unit + ((h << 5) - h) over UTF-16 code units, with the shift
    done in 32-bit signed arithmetic, so browser builds pick the same colors.
    """
    h = 0
    data = subject_name.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = unit + (_to_int32(_to_int32(h) << 5) - h)
    return palette[abs(h) % len(palette)]


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def normalize_event(record: RawEventRecord) -> DomainEvent:
    """
    Build a DomainEvent from a completed raw record (start must be set).
    """
    if record.start is None:
        raise ValueError("Cannot normalize a record without start")

    parsed = parse_description(record.description)
    event_type, type_label = classify_event_type(record.summary, record.description)
    subject_name = extract_subject_name(record.summary, parsed)

    start = record.start
    end = record.end if record.end is not None else start
    duration = int(math.floor((end - start).total_seconds() / 60 + 0.5))

    return DomainEvent(
        id=record.uid or f"{epoch_ms(start)}-{subject_name}",
        title=subject_name,
        subject_name=subject_name,
        type=event_type,
        type_label=type_label,
        start=start,
        end=end,
        duration=duration,
        room=parsed.room or record.location or None,
        staff=parsed.staff,
        group=parsed.group,
        group_number=extract_group_number(parsed, record.categories),
        module=parsed.module or subject_name,
        module_code=extract_module_code(record.summary),
        categories=record.categories,
        color=subject_color(subject_name),
        is_holiday=event_type is EventType.HOLIDAY,
        notes=parsed.notes,
    )


def sort_events(events: Iterable[DomainEvent]) -> List[DomainEvent]:
    return sorted(events, key=lambda ev: ev.start)


def normalize_records(records: Iterable[RawEventRecord]) -> List[DomainEvent]:
    return sort_events(normalize_event(r) for r in records)


def parse_calendar(text: str) -> List[DomainEvent]:
    """
    Full pipeline: ICS text -> sorted DomainEvent list.
    """
    return normalize_records(read_events(text))
