"""
Vendor vocabularies and heuristic rule tables.

The normalizer only walks these tables in order (first match wins), so new
scheduling backends or labels can be supported by editing the lists below or
by passing custom tables to the normalizer functions.

Backends covered:
- CELCAT: English labels (Staff, Room, Group, Module, ...)
- Hyperplanning: French labels (Matière, Enseignant/s, Salle/s, TD, Promotion/s)
- ADE Campus: semester-group codes in CATEGORIES / notes (S1G2)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

from edtfeed.model import EventType


# ---------------------------------------------------------------------------
# Course type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeRule:
    pattern: Pattern[str]
    type: EventType
    label: str


def _word(token: str) -> Pattern[str]:
    return re.compile(rf"\b{token}\b", re.IGNORECASE)


# Order matters: CM before TD before TP before exams before holidays.
TYPE_RULES: List[TypeRule] = [
    TypeRule(_word("CM"), EventType.CM, "Cours"),
    TypeRule(_word("TD"), EventType.TD, "TD"),
    TypeRule(_word("TP"), EventType.TP, "TP"),
    TypeRule(_word("Examen"), EventType.EXAM, "Examen"),
    TypeRule(_word("DS"), EventType.EXAM, "DS"),
    TypeRule(_word("Partiel"), EventType.EXAM, "Partiel"),
    TypeRule(_word("Férié"), EventType.HOLIDAY, "Férié"),
]

DEFAULT_TYPE: Tuple[EventType, str] = (EventType.OTHER, "Autre")


# ---------------------------------------------------------------------------
# Group number
# ---------------------------------------------------------------------------

GROUP_RULES: List[Pattern[str]] = [
    re.compile(r"groupe\s*(\d+)", re.IGNORECASE),
    re.compile(r"gr\.?\s*(\d+)", re.IGNORECASE),
    re.compile(r"gpe\s*(\d+)", re.IGNORECASE),
    re.compile(r"g(\d+)", re.IGNORECASE),
    # ADE semester-group convention
    re.compile(r"S\d+G(\d+)", re.IGNORECASE),
]


# ---------------------------------------------------------------------------
# Subject / module code
# ---------------------------------------------------------------------------

MODULE_CODE_RE = re.compile(r"^[A-Z]{1,4}-?\d{2,4}", re.IGNORECASE)

# "A311 ", "INF-101 "
MODULE_PREFIX_RE = re.compile(r"^[A-Z]{1,4}-?\d{2,4}\s+")

# "ECO-03 03 "
SECTION_PREFIX_RE = re.compile(r"^[A-Z]+-\d{2}\s+\d{2}\s+")

TYPE_SUFFIXES = "CM|TD|TP|Examen|DS|Partiel"
JOINED_TYPE_RE = re.compile(rf";\s*(?:{TYPE_SUFFIXES})\s*", re.IGNORECASE)
TRAILING_TYPE_RE = re.compile(rf"\s*\b(?:{TYPE_SUFFIXES})\s*$", re.IGNORECASE)

TITLE_SEPARATOR = " - "
UNTITLED = "Sans titre"


# ---------------------------------------------------------------------------
# Description labels
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LabelRule:
    field: str
    multi: bool = False
    joiner: Optional[str] = None


DESCRIPTION_LABELS: Dict[str, LabelRule] = {
    # CELCAT
    "department": LabelRule("department"),
    "event category": LabelRule("category"),
    "group": LabelRule("group"),
    "module": LabelRule("module"),
    "staff": LabelRule("staff", multi=True),
    "room": LabelRule("room"),
    "notes": LabelRule("notes"),
    # Hyperplanning
    "matière": LabelRule("module"),
    "enseignant": LabelRule("staff", multi=True),
    "enseignants": LabelRule("staff", multi=True),
    "promotion": LabelRule("group"),
    "promotions": LabelRule("group"),
    "td": LabelRule("group"),
    "salle": LabelRule("room", multi=True, joiner=", "),
    "salles": LabelRule("room", multi=True, joiner=", "),
}

# Delimiters tried by presence, in this order.
MULTI_VALUE_DELIMITERS: Tuple[str, ...] = ("|", ";", ",")


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

PALETTE: Tuple[str, ...] = (
    "#6366f1",  # indigo
    "#ec4899",  # pink
    "#10b981",  # emerald
    "#f59e0b",  # amber
    "#8b5cf6",  # violet
    "#06b6d4",  # cyan
    "#f43f5e",  # rose
    "#84cc16",  # lime
    "#0ea5e9",  # sky
    "#d946ef",  # fuchsia
    "#14b8a6",  # teal
    "#fb923c",  # orange
)
