"""
Unit tests for read-side helpers: summaries, day/week lookups and filters.
"""

import unittest
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from edtfeed.config import BannedPattern, Settings
from edtfeed.model import DomainEvent, EventType, RawEventRecord
from edtfeed.normalize import normalize_event
from edtfeed.queries import (
    apply_all_filters,
    filter_events,
    filter_option_events,
    get_events_for_date,
    get_unique_subjects,
    get_unique_types,
    get_week_dates,
    matches_banned_patterns,
    matches_group,
)


def make_event(
    summary: str,
    start: Optional[datetime] = None,
    description: Optional[str] = None,
    uid: Optional[str] = None,
) -> DomainEvent:
    start = start or datetime(2026, 2, 19, 8, 0, tzinfo=timezone.utc)
    return normalize_event(
        RawEventRecord(summary=summary, description=description, start=start, end=start + timedelta(hours=1), uid=uid)
    )


class TestSummaries(unittest.TestCase):
    def test_unique_subjects_by_count(self) -> None:
        events = [make_event("Chimie TP"), make_event("Physique CM"), make_event("Physique TD")]
        subjects = get_unique_subjects(events)
        self.assertEqual([(s.name, s.count) for s in subjects], [("Physique", 2), ("Chimie", 1)])
        self.assertEqual(subjects[0].color, events[1].color)

    def test_unique_types_first_seen(self) -> None:
        events = [make_event("Physique TD"), make_event("Chimie CM"), make_event("Maths TD")]
        types = get_unique_types(events)
        self.assertEqual([(t.type, t.label, t.count) for t in types], [(EventType.TD, "TD", 2), (EventType.CM, "Cours", 1)])


class TestCalendarLookups(unittest.TestCase):
    def test_day_boundaries(self) -> None:
        day = date(2026, 2, 19)
        last_ms = datetime(2026, 2, 19, 23, 59, 59, 999000).astimezone()
        next_day = datetime(2026, 2, 20, 0, 0, 0).astimezone()
        midnight = datetime(2026, 2, 19, 0, 0, 0).astimezone()

        inside = make_event("Late", last_ms, uid="late")
        outside = make_event("Next", next_day, uid="next")
        first = make_event("Early", midnight, uid="early")

        found = get_events_for_date([first, inside, outside], day)
        self.assertEqual([ev.id for ev in found], ["early", "late"])

    def test_datetime_argument(self) -> None:
        ev = make_event("Noon", datetime(2026, 2, 19, 12, 0).astimezone(), uid="noon")
        self.assertEqual(get_events_for_date([ev], datetime(2026, 2, 19, 18, 30)), [ev])

    def test_week_from_sunday(self) -> None:
        week = get_week_dates(date(2026, 2, 22))  # Sunday
        self.assertEqual(week[0], date(2026, 2, 16))
        self.assertEqual(week[-1], date(2026, 2, 22))
        self.assertEqual(len(week), 7)

    def test_week_from_monday_and_midweek(self) -> None:
        self.assertEqual(get_week_dates(date(2026, 2, 16))[0], date(2026, 2, 16))
        self.assertEqual(get_week_dates(date(2026, 2, 19))[0], date(2026, 2, 16))

    def test_week_crosses_month(self) -> None:
        week = get_week_dates(date(2026, 3, 1))  # Sunday
        self.assertEqual(week[0], date(2026, 2, 23))
        self.assertEqual(week[-1], date(2026, 3, 1))


class TestFilters(unittest.TestCase):
    def test_banned_plain_pattern_is_case_insensitive(self) -> None:
        ev = make_event("Anglais TD", description="Staff: SMITH John")
        self.assertTrue(matches_banned_patterns(ev, [BannedPattern("smith")]))
        self.assertFalse(matches_banned_patterns(ev, [BannedPattern("smith", enabled=False)]))

    def test_banned_regex(self) -> None:
        ev = make_event("Anglais TD", description="Group: L1 Groupe 3")
        self.assertTrue(matches_banned_patterns(ev, [BannedPattern(r"groupe\s+3", is_regex=True)]))
        self.assertFalse(matches_banned_patterns(ev, [BannedPattern(r"groupe\s+4", is_regex=True)]))

    def test_invalid_regex_is_skipped(self) -> None:
        ev = make_event("Anglais TD")
        self.assertFalse(matches_banned_patterns(ev, [BannedPattern("(", is_regex=True)]))
        self.assertTrue(matches_banned_patterns(ev, [BannedPattern("(", is_regex=True), BannedPattern("anglais")]))

    def test_matches_group(self) -> None:
        g2 = make_event("Maths TD", description="Group: Groupe 2")
        everyone = make_event("Maths CM")
        self.assertTrue(matches_group(g2, None))
        self.assertTrue(matches_group(g2, 2))
        self.assertFalse(matches_group(g2, 3))
        self.assertTrue(matches_group(everyone, 3))

    def test_apply_all_filters(self) -> None:
        g2 = make_event("Maths TD", description="Group: Groupe 2", uid="g2")
        g3 = make_event("Maths TD", description="Group: Groupe 3", uid="g3")
        sport = make_event("Sport", uid="sport")
        exam = make_event("Partiel Chimie", uid="exam")
        english = make_event("Anglais TD", uid="english")

        settings = Settings(
            group_number=2,
            banned_patterns=[BannedPattern("anglais")],
            hidden_subjects=["Sport"],
            hidden_types=["EXAM"],
        )
        visible, hidden = apply_all_filters([g2, g3, sport, exam, english], settings)

        self.assertEqual([ev.id for ev in visible], ["g2"])
        self.assertEqual([ev.id for ev in hidden], ["g3", "sport", "exam", "english"])

    def test_filter_option_events_ignores_hidden_lists(self) -> None:
        sport = make_event("Sport", uid="sport")
        english = make_event("Anglais TD", uid="english")
        settings = Settings(banned_patterns=[BannedPattern("anglais")], hidden_subjects=["Sport"])
        self.assertEqual([ev.id for ev in filter_option_events([sport, english], settings)], ["sport"])

    def test_filter_events_search(self) -> None:
        a = make_event("Maths TD", description="Staff: DUPONT\nRoom: B201", uid="a")
        b = make_event("Chimie TP", uid="b")
        self.assertEqual(filter_events([a, b], search_query="b201"), [a])
        self.assertEqual(filter_events([a, b], search_query="dupont"), [a])
        self.assertEqual(filter_events([a, b], hidden_types=["TP"]), [a])
        self.assertEqual(filter_events([a, b], hidden_subjects=["Maths"]), [b])


if __name__ == "__main__":
    unittest.main()
