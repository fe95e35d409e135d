"""
Central data model definitions used across the project.

This module defines the canonical structure of raw and normalized events so that:
- the ICS reader, the normalizer, the merge step and the cache share the same field names
- DomainEvent instances stay immutable once produced
- the persisted cache layout (camelCase keys, ISO dates) lives in one place
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_ms(dt: datetime) -> int:
    """
    Milliseconds since the Unix epoch for an aware datetime.
    """
    return (dt - EPOCH) // timedelta(milliseconds=1)


class EventType(str, Enum):
    CM = "CM"
    TD = "TD"
    TP = "TP"
    EXAM = "EXAM"
    HOLIDAY = "HOLIDAY"
    OTHER = "OTHER"


@dataclass
class RawEventRecord:
    """
    Mutable accumulator for one VEVENT block.

    Built field by field while reading the ICS text, consumed by the normalizer.
    """

    summary: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = None
    uid: Optional[str] = None
    categories: Optional[str] = None


@dataclass(frozen=True)
class ParsedDescription:
    """
    Structured view of a DESCRIPTION field, whatever the vendor label language.
    """

    department: Optional[str] = None
    category: Optional[str] = None
    group: Optional[str] = None
    module: Optional[str] = None
    room: Optional[str] = None
    notes: Optional[str] = None
    staff: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DomainEvent:
    """
    One normalized class / exam session.
    """

    id: str
    title: str
    subject_name: str
    type: EventType
    type_label: str
    start: datetime
    end: datetime
    duration: int
    room: Optional[str]
    staff: Tuple[str, ...]
    group: Optional[str]
    group_number: Optional[int]
    module: str
    module_code: Optional[str]
    categories: Optional[str]
    color: str
    is_holiday: bool
    notes: Optional[str] = None
    is_secondary: bool = False

    @property
    def start_ms(self) -> int:
        return epoch_ms(self.start)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to the persisted layout (dates as ISO strings).
        """
        return {
            "id": self.id,
            "title": self.title,
            "subjectName": self.subject_name,
            "type": self.type.value,
            "typeLabel": self.type_label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration": self.duration,
            "room": self.room,
            "staff": list(self.staff),
            "group": self.group,
            "groupNumber": self.group_number,
            "module": self.module,
            "moduleCode": self.module_code,
            "categories": self.categories,
            "color": self.color,
            "isHoliday": self.is_holiday,
            "notes": self.notes,
            "isSecondary": self.is_secondary,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DomainEvent":
        """
        Rebuild an event from its persisted layout.

        Raises KeyError / ValueError / TypeError for malformed entries.
        """
        group_number = data.get("groupNumber")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            subject_name=str(data["subjectName"]),
            type=EventType(data["type"]),
            type_label=str(data["typeLabel"]),
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            duration=int(data["duration"]),
            room=data.get("room"),
            staff=tuple(str(s) for s in data.get("staff") or []),
            group=data.get("group"),
            group_number=int(group_number) if group_number is not None else None,
            module=str(data["module"]),
            module_code=data.get("moduleCode"),
            categories=data.get("categories"),
            color=str(data["color"]),
            is_holiday=bool(data.get("isHoliday", False)),
            notes=data.get("notes"),
            is_secondary=bool(data.get("isSecondary", False)),
        )


@dataclass
class CachedCalendar:
    """
    Result of a cache read: the events plus the time they were stored.
    """

    events: List[DomainEvent]
    cached_at: datetime


@dataclass
class CalendarLoad:
    """
    Outcome of loading a calendar (fresh fetch or stale cache fallback).
    """

    events: List[DomainEvent]
    from_cache: bool = False
    cached_at: Optional[datetime] = None
