"""
ICS reading (text -> raw event records).

- Unfolds RFC5545 continuation lines
- Turns each logical line into one (name, value) field token
- Folds the token stream into one RawEventRecord per VEVENT block

Important rules:
- Parameters such as ;TZID=... are dropped, never used for conversion
- A VEVENT without a parseable DTSTART is dropped silently
- No recurrence / RRULE logic
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Iterator, List, Optional

from edtfeed.model import RawEventRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldToken:
    name: str
    value: str


def unfold_lines(text: str) -> Iterator[str]:
    """
    Yield logical lines: a physical line starting with a space or tab is
    appended (minus that first character) to the previous one.
    """
    current: Optional[str] = None
    for line in re.split(r"\r?\n", text):
        if line.startswith((" ", "\t")):
            if current is not None:
                current += line[1:]
            continue
        if current is not None:
            yield current
        current = line
    if current is not None:
        yield current


def tokenize(text: str) -> Iterator[FieldToken]:
    """
    Turn raw ICS text into field tokens. Lines without a colon are skipped.
    """
    for line in unfold_lines(text):
        colon = line.find(":")
        if colon == -1:
            continue
        name = line[:colon].split(";", 1)[0]
        yield FieldToken(name=name.strip().upper(), value=line[colon + 1 :])


# ---------------------------------------------------------------------------
# Value decoding
# ---------------------------------------------------------------------------

_ESCAPES = {"n": "\n", "N": "\n", ",": ",", ";": ";", "\\": "\\"}
_ESCAPE_RE = re.compile(r"\\([nN,;\\])")


def unescape_text(value: str) -> str:
    """
    Decode ICS TEXT escapes (\\n, \\, \\; and \\\\).
    """
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], value)


def parse_ics_date(value: str) -> Optional[datetime]:
    """
    Parse DTSTART / DTEND values into aware datetimes.

    - 'YYYYMMDDTHHMMSSZ' -> UTC
    - 'YYYYMMDDTHHMMSS'  -> local time of the host
    - 'YYYYMMDD'         -> local midnight (all-day)
    Anything else goes through datetime.fromisoformat; None if that fails too.
    """
    raw = value.strip()
    # basic and extended forms collapse to the same digits
    cleaned = re.sub(r"[:-]", "", raw)

    try:
        if len(cleaned) >= 15:
            parts = (
                int(cleaned[0:4]),
                int(cleaned[4:6]),
                int(cleaned[6:8]),
                int(cleaned[9:11]),
                int(cleaned[11:13]),
                int(cleaned[13:15]),
            )
            if cleaned.endswith("Z"):
                return datetime(*parts, tzinfo=timezone.utc)
            return datetime(*parts).astimezone()

        if len(cleaned) == 8:
            return datetime(int(cleaned[0:4]), int(cleaned[4:6]), int(cleaned[6:8])).astimezone()

        parsed = datetime.fromisoformat(raw)
    except (ValueError, OverflowError):
        # out of range once shifted to the host zone counts as unparseable too
        logger.debug("Unparseable ICS date: %r", value)
        return None

    return parsed if parsed.tzinfo is not None else parsed.astimezone()


# ---------------------------------------------------------------------------
# Field reducer
# ---------------------------------------------------------------------------


def apply_field(record: RawEventRecord, token: FieldToken) -> None:
    """
    Store one known field on the record; unknown names are ignored.
    """
    name, value = token.name, token.value

    if name == "SUMMARY":
        record.summary = unescape_text(value)
    elif name == "DESCRIPTION":
        record.description = unescape_text(value)
    elif name == "LOCATION":
        record.location = unescape_text(value)
    elif name == "DTSTART":
        record.start = parse_ics_date(value)
    elif name == "DTEND":
        record.end = parse_ics_date(value)
    # UID and CATEGORIES are kept exactly as sent
    elif name == "UID":
        record.uid = value
    elif name == "CATEGORIES":
        record.categories = value


class _State(Enum):
    IDLE = "idle"
    IN_EVENT = "in_event"


def reduce_events(tokens: Iterable[FieldToken]) -> List[RawEventRecord]:
    """
    Fold a token stream into completed VEVENT records.

    BEGIN:VEVENT always starts a fresh record (an unfinished one is dropped).
    Fields of nested components (VALARM, ...) do not leak into the event.
    """
    state = _State.IDLE
    current = RawEventRecord()
    nested = 0
    completed: List[RawEventRecord] = []

    for token in tokens:
        component = token.value.strip().upper()

        # a new VEVENT always resets, even mid-record
        if token.name == "BEGIN" and component == "VEVENT":
            state, current, nested = _State.IN_EVENT, RawEventRecord(), 0
            continue

        # calendar-level fields and other components
        if state is _State.IDLE:
            continue

        if token.name == "END" and component == "VEVENT":
            if current.start is not None:
                completed.append(current)
            else:
                logger.debug("Dropping VEVENT without start (uid=%s)", current.uid)
            state, current, nested = _State.IDLE, RawEventRecord(), 0
        # VALARM and friends
        elif token.name == "BEGIN":
            nested += 1
        elif token.name == "END":
            nested = max(0, nested - 1)
        elif nested == 0:
            apply_field(current, token)

    return completed


def read_events(text: str) -> List[RawEventRecord]:
    return reduce_events(tokenize(text))
