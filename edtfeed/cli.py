"""
CLI (Command Line Interface).

Quick terminal commands on top of the calendar pipeline, e.g.:

    edtfeed fetch [--all]
    edtfeed day 2026-02-19
    edtfeed week
    edtfeed subjects
    edtfeed types
    edtfeed export out.ics
    edtfeed config set ics_url webcal://example.org/schedule.ics

Note:
- every listing goes through the user's filters (banned patterns, hidden
  subjects/types, group number) stored with `edtfeed config`
- when the feed cannot be fetched, the last cached copy is shown instead
"""

from __future__ import annotations

import argparse
from datetime import date, datetime
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from edtfeed.config import BannedPattern, Settings, apply_env_overrides, load_settings, save_settings
from edtfeed.errors import ConfigurationError, EdtFeedError
from edtfeed.export_ics import export_events_to_ics
from edtfeed.log import configure_logging
from edtfeed.merge import load_calendar
from edtfeed.model import CalendarLoad, DomainEvent, EventType
from edtfeed.queries import (
    apply_all_filters,
    day_bounds,
    filter_option_events,
    get_events_for_date,
    get_unique_subjects,
    get_unique_types,
    get_week_dates,
)
from edtfeed.storage import FileStore, KeyValueStore, load_cached_events

console = Console()

WEEKDAYS = ["Lun", "Mar", "Mer", "Jeu", "Ven", "Sam", "Dim"]
SETTABLE_KEYS = ("ics_url", "secondary_ics_url", "secondary_mode", "group_number", "hide_sunday")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_day(text: Optional[str]) -> date:
    if not text:
        return date.today()
    return datetime.strptime(text.strip(), "%Y-%m-%d").date()


def _load(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> CalendarLoad:
    """
    Fresh load with cache fallback, or cache only with --offline.
    """
    url = args.url or settings.ics_url
    secondary = args.secondary if args.secondary is not None else settings.secondary_ics_url

    if args.offline:
        if not url:
            raise ConfigurationError()
        cached = load_cached_events(url, store)
        if cached is None:
            raise EdtFeedError(f"No cached calendar for {url}")
        return CalendarLoad(events=cached.events, from_cache=True, cached_at=cached.cached_at)

    return load_calendar(url, secondary, store=store)


def _stale_note(result: CalendarLoad) -> None:
    if result.from_cache and result.cached_at is not None:
        stamp = result.cached_at.astimezone().strftime("%d/%m/%Y %H:%M")
        console.print(f"[yellow](cache du {stamp})[/]")


def _subject_cell(ev: DomainEvent, settings: Settings) -> str:
    badge = " [magenta][2][/]" if ev.is_secondary and settings.secondary_mode == "separate" else ""
    return f"[{ev.color}]{escape(ev.subject_name)}[/]{badge}"


def _event_line(ev: DomainEvent, settings: Settings) -> str:
    start = ev.start.astimezone().strftime("%H:%M")
    end = ev.end.astimezone().strftime("%H:%M")
    room = f" @ {escape(ev.room)}" if ev.room else ""
    return f"{start}-{end} {_subject_cell(ev, settings)} ({ev.type_label}){room}"


def _events_table(events: list[DomainEvent], settings: Settings, title: str) -> Table:
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("Date")
    table.add_column("Heure")
    table.add_column("Type")
    table.add_column("Matière")
    table.add_column("Salle")
    table.add_column("Groupe", justify="right")
    for ev in events:
        local_start = ev.start.astimezone()
        table.add_row(
            local_start.strftime("%a %d/%m"),
            f"{local_start.strftime('%H:%M')}-{ev.end.astimezone().strftime('%H:%M')}",
            ev.type_label,
            _subject_cell(ev, settings),
            escape(ev.room or ""),
            str(ev.group_number) if ev.group_number is not None else "",
        )
    return table


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_fetch(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> int:
    """
    Load the calendar and print the upcoming visible events.
    """
    result = _load(args, settings, store)
    visible, hidden = apply_all_filters(result.events, settings)

    _stale_note(result)
    if not args.all:
        today_start, _ = day_bounds(date.today())
        visible = [ev for ev in visible if ev.start >= today_start]

    if not visible:
        console.print("No events.")
        return 0

    console.print(_events_table(visible, settings, title=f"Agenda ({len(visible)} events, {len(hidden)} hidden)"))
    return 0


def _cmd_day(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> int:
    try:
        day = _parse_day(args.date)
    except ValueError:
        console.print(f"Invalid date: {args.date!r} (expected YYYY-MM-DD)")
        return 1

    result = _load(args, settings, store)
    visible, _ = apply_all_filters(result.events, settings)
    events = get_events_for_date(visible, day)

    _stale_note(result)
    if not events:
        console.print(f"No events on {day.isoformat()}.")
        return 0

    console.print(_events_table(events, settings, title=day.strftime("%A %d/%m/%Y")))
    return 0


def _cmd_week(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> int:
    try:
        day = _parse_day(args.date)
    except ValueError:
        console.print(f"Invalid date: {args.date!r} (expected YYYY-MM-DD)")
        return 1

    result = _load(args, settings, store)
    visible, _ = apply_all_filters(result.events, settings)

    days = get_week_dates(day)
    if settings.hide_sunday:
        days = [d for d in days if d.weekday() != 6]

    buckets = {d: get_events_for_date(visible, d) for d in days}

    _stale_note(result)
    iso_year, iso_week, _ = days[0].isocalendar()
    table = Table(title=f"Semaine {iso_year}-W{iso_week:02d}", box=box.SIMPLE)
    for d in days:
        table.add_column(f"{WEEKDAYS[d.weekday()]} {d.strftime('%d/%m')}")

    max_len = max((len(b) for b in buckets.values()), default=0)
    for r in range(max_len):
        row = []
        for d in days:
            row.append(_event_line(buckets[d][r], settings) if r < len(buckets[d]) else "")
        table.add_row(*row)

    console.print(table)
    return 0


def _cmd_subjects(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> int:
    result = _load(args, settings, store)
    hidden = set(settings.hidden_subjects)

    table = Table(title="Matières", box=box.SIMPLE)
    table.add_column("Matière")
    table.add_column("Séances", justify="right")
    table.add_column("Visible")
    for subject in get_unique_subjects(filter_option_events(result.events, settings)):
        table.add_row(
            f"[{subject.color}]{escape(subject.name)}[/]",
            str(subject.count),
            "non" if subject.name in hidden else "oui",
        )

    _stale_note(result)
    console.print(table)
    return 0


def _cmd_types(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> int:
    result = _load(args, settings, store)
    hidden = set(settings.hidden_types)

    table = Table(title="Types", box=box.SIMPLE)
    table.add_column("Type")
    table.add_column("Libellé")
    table.add_column("Séances", justify="right")
    table.add_column("Visible")
    for summary in get_unique_types(filter_option_events(result.events, settings)):
        table.add_row(
            summary.type.value,
            summary.label,
            str(summary.count),
            "non" if summary.type.value in hidden else "oui",
        )

    _stale_note(result)
    console.print(table)
    return 0


def _cmd_export(args: argparse.Namespace, settings: Settings, store: KeyValueStore) -> int:
    """
    Export the visible events into an iCalendar (.ics) file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        console.print("Please provide output .ics path.")
        return 1

    result = _load(args, settings, store)
    visible, _ = apply_all_filters(result.events, settings)
    if not visible:
        console.print("No visible events to export.")
        return 0

    n = export_events_to_ics(visible, out_path)
    console.print(f"Exported {n} events to: {out_path}")
    return 0


def _parse_setting(key: str, value: str) -> Any:
    if key == "hide_sunday":
        return value.strip().lower() in ("1", "true", "yes", "on", "oui")
    if key == "group_number":
        return None if value.strip().lower() in ("", "none", "aucun") else int(value)
    return value.strip()


def _cmd_config(args: argparse.Namespace, store: KeyValueStore) -> int:
    """
    Show or change stored settings.
    """
    settings = load_settings(store)

    if args.action == "show":
        table = Table(title="Settings", box=box.SIMPLE)
        table.add_column("Key")
        table.add_column("Value")
        for key, value in settings.to_dict().items():
            if key == "banned_patterns":
                value = ", ".join(
                    f"#{i} {p['pattern']}{' (regex)' if p['is_regex'] else ''}{'' if p['enabled'] else ' (off)'}"
                    for i, p in enumerate(value)
                )
            table.add_row(key, "" if value is None else str(value))
        console.print(table)
        return 0

    if args.action == "set":
        if args.key not in SETTABLE_KEYS:
            console.print(f"Unknown key: {args.key} (choose from {', '.join(SETTABLE_KEYS)})")
            return 1
        try:
            value = _parse_setting(args.key, args.value)
        except ValueError:
            console.print(f"Invalid value for {args.key}: {args.value!r}")
            return 1
        data = settings.to_dict()
        data[args.key] = value
        updated = Settings.from_dict(data)
        if getattr(updated, args.key) != value:
            console.print(f"Invalid value for {args.key}: {args.value!r}")
            return 1
        save_settings(updated, store)
        console.print(f"{args.key} = {value}")
        return 0

    if args.action == "ban":
        settings.banned_patterns.append(BannedPattern(pattern=args.pattern, is_regex=args.regex))
        save_settings(settings, store)
        console.print(f"Banned: {args.pattern}")
        return 0

    if args.action == "unban":
        if not 0 <= args.index < len(settings.banned_patterns):
            console.print(f"No banned pattern #{args.index}")
            return 1
        removed = settings.banned_patterns.pop(args.index)
        save_settings(settings, store)
        console.print(f"Removed: {removed.pattern}")
        return 0

    if args.action == "hide-subject":
        if args.name not in settings.hidden_subjects:
            settings.hidden_subjects.append(args.name)
        save_settings(settings, store)
        console.print(f"Hidden subject: {args.name}")
        return 0

    if args.action == "hide-type":
        type_name = args.type.strip().upper()
        if type_name not in EventType.__members__:
            console.print(f"Unknown type: {args.type} (choose from {', '.join(EventType.__members__)})")
            return 1
        if type_name not in settings.hidden_types:
            settings.hidden_types.append(type_name)
        save_settings(settings, store)
        console.print(f"Hidden type: {type_name}")
        return 0

    if args.action == "reset-filters":
        settings.hidden_subjects = []
        settings.hidden_types = []
        save_settings(settings, store)
        console.print("Hidden subjects and types cleared.")
        return 0

    return 2


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="edtfeed", description="University timetable feeds (CELCAT, ADE, Hyperplanning)")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory for cache and settings")
    parser.add_argument("--url", type=str, default=None, help="Primary ICS URL (overrides settings)")
    parser.add_argument("--secondary", type=str, default=None, help="Secondary ICS URL (overrides settings)")
    parser.add_argument("--offline", action="store_true", help="Use the cached calendar only")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_fetch = sub.add_parser("fetch", help="Load the calendar and show the agenda")
    p_fetch.add_argument("--all", action="store_true", help="Include past events")

    p_day = sub.add_parser("day", help="Events of one day")
    p_day.add_argument("date", nargs="?", default=None, help="YYYY-MM-DD (default: today)")

    p_week = sub.add_parser("week", help="Timetable of one week")
    p_week.add_argument("date", nargs="?", default=None, help="Any day of the week, YYYY-MM-DD (default: today)")

    sub.add_parser("subjects", help="Subjects with event counts")
    sub.add_parser("types", help="Course types with event counts")

    p_export = sub.add_parser("export", help="Export visible events to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")

    p_config = sub.add_parser("config", help="Show or change settings")
    config_sub = p_config.add_subparsers(dest="action", required=True)
    config_sub.add_parser("show", help="Print current settings")
    p_set = config_sub.add_parser("set", help="Set a value")
    p_set.add_argument("key", type=str, help=", ".join(SETTABLE_KEYS))
    p_set.add_argument("value", type=str)
    p_ban = config_sub.add_parser("ban", help="Hide events matching a pattern")
    p_ban.add_argument("pattern", type=str)
    p_ban.add_argument("--regex", action="store_true", help="Treat pattern as a regular expression")
    p_unban = config_sub.add_parser("unban", help="Remove a banned pattern by number")
    p_unban.add_argument("index", type=int)
    p_hide_subject = config_sub.add_parser("hide-subject", help="Hide a subject")
    p_hide_subject.add_argument("name", type=str)
    p_hide_type = config_sub.add_parser("hide-type", help="Hide a course type (CM, TD, TP, EXAM, HOLIDAY, OTHER)")
    p_hide_type.add_argument("type", type=str)
    config_sub.add_parser("reset-filters", help="Show all subjects and types again")

    return parser


COMMANDS = {
    "fetch": _cmd_fetch,
    "day": _cmd_day,
    "week": _cmd_week,
    "subjects": _cmd_subjects,
    "types": _cmd_types,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    store = FileStore(args.data_dir)

    if args.command == "config":
        raise SystemExit(_cmd_config(args, store))

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    settings = apply_env_overrides(load_settings(store))
    try:
        raise SystemExit(handler(args, settings, store))
    except EdtFeedError as exc:
        console.print(f"[red]{exc}[/]")
        raise SystemExit(1)
