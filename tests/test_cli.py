"""
Tests for CLI entry points.

These tests focus on:
- exit codes for configuration errors and bad arguments
- settings persistence through `edtfeed config`
- offline commands served from a temporary cache directory
  (to avoid touching real user data or the network during tests)
"""

import os
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest import mock

from edtfeed.cli import main
from edtfeed.config import load_settings
from edtfeed.model import RawEventRecord
from edtfeed.normalize import normalize_event
from edtfeed.storage import FileStore, cache_events

URL = "https://example.org/schedule.ics"


def _seed_cache(directory: str) -> None:
    start = datetime(2026, 2, 19, 8, 0, tzinfo=timezone.utc)
    events = [
        normalize_event(RawEventRecord(summary="Physique CM", start=start, end=start + timedelta(hours=2), uid="a")),
        normalize_event(RawEventRecord(summary="Anglais TD", start=start + timedelta(days=1), uid="b")),
    ]
    cache_events(events, URL, FileStore(directory))


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.dict(
            os.environ,
            {"EDTFEED_ICS_URL": "", "EDTFEED_SECONDARY_ICS_URL": "", "EDTFEED_GROUP": ""},
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_fetch_without_url_fails(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "fetch"])
        self.assertEqual(ctx.exception.code, 1)

    def test_unknown_command_is_argparse_error(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            main(["dance"])
        self.assertEqual(ctx.exception.code, 2)

    def test_config_set_and_ban(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "config", "set", "group_number", "3"])
            self.assertEqual(ctx.exception.code, 0)

            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "config", "ban", "^sport", "--regex"])
            self.assertEqual(ctx.exception.code, 0)

            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "config", "set", "secondary_mode", "sideways"])
            self.assertEqual(ctx.exception.code, 1)

            settings = load_settings(FileStore(d))
            self.assertEqual(settings.group_number, 3)
            self.assertEqual(settings.banned_patterns[0].pattern, "^sport")
            self.assertTrue(settings.banned_patterns[0].is_regex)
            self.assertEqual(settings.secondary_mode, "merge")

    def test_config_hide_type_validates(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "config", "hide-type", "lecture"])
            self.assertEqual(ctx.exception.code, 1)

            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "config", "hide-type", "exam"])
            self.assertEqual(ctx.exception.code, 0)
            self.assertEqual(load_settings(FileStore(d)).hidden_types, ["EXAM"])

    def test_offline_commands_use_cache(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            _seed_cache(d)
            for command in (["fetch", "--all"], ["day", "2026-02-19"], ["week", "2026-02-19"], ["subjects"], ["types"]):
                with self.assertRaises(SystemExit) as ctx:
                    main(["--data-dir", d, "--url", URL, "--offline", *command])
                self.assertEqual(ctx.exception.code, 0, command)

    def test_offline_without_cache_fails(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "--url", URL, "--offline", "fetch"])
        self.assertEqual(ctx.exception.code, 1)

    def test_invalid_day(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "--url", URL, "--offline", "day", "19/02/2026"])
        self.assertEqual(ctx.exception.code, 1)

    def test_export_respects_filters(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            _seed_cache(d)
            with self.assertRaises(SystemExit):
                main(["--data-dir", d, "config", "hide-subject", "Anglais"])

            out = Path(d) / "out.ics"
            with self.assertRaises(SystemExit) as ctx:
                main(["--data-dir", d, "--url", URL, "--offline", "export", str(out)])
            self.assertEqual(ctx.exception.code, 0)

            text = out.read_text(encoding="utf-8")
            self.assertIn("SUMMARY:Physique CM", text)
            self.assertNotIn("Anglais", text)


if __name__ == "__main__":
    unittest.main()
