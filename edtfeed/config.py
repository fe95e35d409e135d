"""
User settings.

Settings are stored as one JSON object under SETTINGS_KEY in the same
key-value store as the cache. Loading is defensive: missing, partial or
corrupt data falls back to the defaults field by field.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from edtfeed.errors import CacheError
from edtfeed.storage import FileStore, KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_KEY = "edtfeed-settings"
SECONDARY_MODES = ("merge", "separate")


@dataclass
class BannedPattern:
    pattern: str
    is_regex: bool = False
    enabled: bool = True


@dataclass
class Settings:
    ics_url: str = ""
    secondary_ics_url: str = ""
    secondary_mode: str = "merge"
    group_number: Optional[int] = None
    banned_patterns: List[BannedPattern] = field(default_factory=list)
    hidden_subjects: List[str] = field(default_factory=list)
    hidden_types: List[str] = field(default_factory=list)
    hide_sunday: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """
        Overlay known keys of `data` onto the defaults; bad values are dropped.
        """
        settings = cls()
        known = {f.name for f in fields(cls)}

        for key, value in data.items():
            if key not in known:
                continue
            try:
                setattr(settings, key, _coerce(key, value))
            except (TypeError, ValueError) as exc:
                logger.warning("Ignoring invalid setting %s=%r: %s", key, value, exc)

        return settings


def _coerce(key: str, value: Any) -> Any:
    if key in ("ics_url", "secondary_ics_url"):
        return str(value or "")
    if key == "secondary_mode":
        if value not in SECONDARY_MODES:
            raise ValueError(f"expected one of {SECONDARY_MODES}")
        return value
    if key == "group_number":
        return int(value) if value not in (None, "") else None
    if key == "hide_sunday":
        return bool(value)
    if key == "banned_patterns":
        out: List[BannedPattern] = []
        for item in value:
            if isinstance(item, dict) and item.get("pattern"):
                out.append(
                    BannedPattern(
                        pattern=str(item["pattern"]),
                        is_regex=bool(item.get("is_regex", False)),
                        enabled=bool(item.get("enabled", True)),
                    )
                )
        return out
    if key in ("hidden_subjects", "hidden_types"):
        if not isinstance(value, list):
            raise TypeError("expected a list")
        return [str(x) for x in value]
    return value


def load_settings(store: KeyValueStore | None = None) -> Settings:
    """
    Load settings from the store. Never raises; defaults on any failure.
    """
    store = store if store is not None else FileStore()

    try:
        raw = store.get(SETTINGS_KEY)
        if raw is None:
            return Settings()
        data = json.loads(raw)
        if not isinstance(data, dict):
            return Settings()
    except (CacheError, OSError, ValueError) as exc:
        logger.warning("Failed to load settings: %s", exc)
        return Settings()

    return Settings.from_dict(data)


def save_settings(settings: Settings, store: KeyValueStore | None = None) -> None:
    store = store if store is not None else FileStore()
    try:
        store.set(SETTINGS_KEY, json.dumps(settings.to_dict(), indent=2, ensure_ascii=False))
    except (CacheError, OSError) as exc:
        logger.warning("Failed to save settings: %s", exc)


def apply_env_overrides(settings: Settings) -> Settings:
    """
    EDTFEED_ICS_URL, EDTFEED_SECONDARY_ICS_URL and EDTFEED_GROUP win over stored values.
    """
    url = os.environ.get("EDTFEED_ICS_URL", "").strip()
    if url:
        settings.ics_url = url

    secondary = os.environ.get("EDTFEED_SECONDARY_ICS_URL", "").strip()
    if secondary:
        settings.secondary_ics_url = secondary

    group = os.environ.get("EDTFEED_GROUP", "").strip()
    if group:
        try:
            settings.group_number = int(group)
        except ValueError:
            logger.warning("Ignoring non-numeric EDTFEED_GROUP=%r", group)

    return settings
