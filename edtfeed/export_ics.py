"""
iCalendar (.ics) export.

Writes normalized events back to a calendar file that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

Times are written in UTC so the file does not depend on the host timezone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from edtfeed.model import DomainEvent, EventType


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS TEXT fields.
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _uid(value: str) -> str:
    return value.replace("\r", "").replace("\n", "")


def _dt_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _fold(line: str, limit: int = 75) -> list[str]:
    """
    Fold a content line at `limit` octets (continuations start with a space).
    """
    out: list[str] = []
    current = ""
    size = 0
    for ch in line:
        width = len(ch.encode("utf-8"))
        if size + width > limit:
            out.append(current)
            current, size = " ", 1
        current += ch
        size += width
    out.append(current)
    return out


def _description(ev: DomainEvent) -> str:
    lines: list[str] = []
    if ev.module:
        lines.append(f"Module: {ev.module}")
    if ev.staff:
        lines.append(f"Staff: {'; '.join(ev.staff)}")
    if ev.group:
        lines.append(f"Group: {ev.group}")
    if ev.room:
        lines.append(f"Room: {ev.room}")
    if ev.notes:
        lines.append(f"Notes: {ev.notes}")
    return "\n".join(lines)


def export_events_to_ics(events: Iterable[DomainEvent], out_path: str | Path) -> int:
    """
    Export events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append("PRODID:-//edtfeed//EN")
    lines.append("CALSCALE:GREGORIAN")

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    count = 0
    for ev in events:
        summary = f"{ev.module_code} {ev.subject_name}" if ev.module_code else ev.subject_name
        # keep a type keyword the normalizer recognizes when the file is read back
        if ev.type in (EventType.CM, EventType.TD, EventType.TP):
            summary = f"{summary} {ev.type.value}"
        elif ev.type in (EventType.EXAM, EventType.HOLIDAY):
            summary = f"{summary} {ev.type_label}"

        lines.append("BEGIN:VEVENT")
        # UID is read back raw, so only line breaks are removed
        lines.append(f"UID:{_uid(ev.id)}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{_dt_utc(ev.start)}")
        lines.append(f"DTEND:{_dt_utc(ev.end)}")
        lines.append(f"SUMMARY:{_ics_escape(summary)}")
        if ev.room:
            lines.append(f"LOCATION:{_ics_escape(ev.room)}")
        description = _description(ev)
        if description:
            lines.append(f"DESCRIPTION:{_ics_escape(description)}")
        lines.append(f"CATEGORIES:{_ics_escape(ev.categories or ev.type_label)}")
        lines.append("END:VEVENT")
        count += 1

    lines.append("END:VCALENDAR")

    folded: list[str] = []
    for line in lines:
        folded.extend(_fold(line))

    # ICS standard uses CRLF
    out.write_text("\r\n".join(folded) + "\r\n", encoding="utf-8")
    return count
