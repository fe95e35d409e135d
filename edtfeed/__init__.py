"""
edtfeed: normalize university timetable feeds (CELCAT, ADE Campus, Hyperplanning).
"""

from edtfeed.merge import load_calendar, merge_events
from edtfeed.normalize import parse_calendar
from edtfeed.storage import cache_events, load_cached_events

__all__ = ["cache_events", "load_cached_events", "load_calendar", "merge_events", "parse_calendar"]
