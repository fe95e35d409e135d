"""
Fetching ICS feeds.

A feed is retrieved through an ordered list of strategies:
1. direct GET
2. GET through the allorigins relay
3. GET through the corsproxy.io relay

The first strategy returning text with BEGIN:VCALENDAR wins. Strategies
run one at a time and are never retried.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Sequence
from urllib.parse import quote

import requests

from edtfeed.errors import ConfigurationError, TransportError
from edtfeed.model import DomainEvent
from edtfeed.normalize import parse_calendar

logger = logging.getLogger(__name__)

CALENDAR_MARKER = "BEGIN:VCALENDAR"
REQUEST_TIMEOUT = 30

ALLORIGINS_URL = "https://api.allorigins.win/raw?url="
CORSPROXY_URL = "https://corsproxy.io/?"

Strategy = Callable[[str], str]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _get_text(url: str) -> str:
    resp = requests.get(url, timeout=REQUEST_TIMEOUT)
    resp.raise_for_status()
    return resp.text


def direct_strategy(url: str) -> str:
    return _get_text(url)


def relay_strategy(prefix: str) -> Strategy:
    """
    Build a strategy that requests `url` through a relay taking it URL-encoded.
    """

    def fetch(url: str) -> str:
        return _get_text(prefix + quote(url, safe=""))

    fetch.__name__ = f"relay({prefix})"
    return fetch


DEFAULT_STRATEGIES: List[Strategy] = [
    direct_strategy,
    relay_strategy(ALLORIGINS_URL),
    relay_strategy(CORSPROXY_URL),
]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def normalize_url(url: str) -> str:
    """
    Strip whitespace and turn webcal:// into https://.
    """
    return re.sub(r"^webcal://", "https://", url.strip(), flags=re.IGNORECASE)


def fetch_calendar_text(url: Optional[str], strategies: Optional[Sequence[Strategy]] = None) -> str:
    """
    Return the raw ICS text of `url`.

    Raises:
        ConfigurationError: no URL given
        TransportError: every strategy failed
    """
    if not url or not url.strip():
        raise ConfigurationError()

    target = normalize_url(url)
    chain = DEFAULT_STRATEGIES if strategies is None else strategies

    for strategy in chain:
        name = getattr(strategy, "__name__", repr(strategy))
        try:
            text = strategy(target)
        except Exception as exc:
            logger.warning("Fetch strategy %s failed for %s: %s", name, target, exc)
            continue

        if text and CALENDAR_MARKER in text:
            logger.debug("Fetched %s via %s (%d chars)", target, name, len(text))
            return text

        logger.warning("Fetch strategy %s returned no calendar for %s", name, target)

    raise TransportError(target)


def fetch_calendar_events(
    url: Optional[str], strategies: Optional[Sequence[Strategy]] = None
) -> List[DomainEvent]:
    """
    Fetch and normalize one feed. Events come back sorted by start.
    """
    events = parse_calendar(fetch_calendar_text(url, strategies))
    logger.info("Loaded %d events from %s", len(events), normalize_url(url or ""))
    return events
