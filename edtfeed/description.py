"""
DESCRIPTION parsing.

Scheduling backends put the useful metadata (staff, room, group, module)
into the free-text DESCRIPTION as "Label: value" lines. The label vocabulary
lives in edtfeed.rules.DESCRIPTION_LABELS; this module only applies it.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Optional, Sequence, Union

from edtfeed.model import ParsedDescription
from edtfeed.rules import DESCRIPTION_LABELS, MULTI_VALUE_DELIMITERS, LabelRule

_LINE_SPLIT_RE = re.compile(r"\\n|\n")
_COMMA_PLACEHOLDER = "\x00COMMA\x00"


def split_multi_value(value: str, delimiters: Sequence[str] = MULTI_VALUE_DELIMITERS) -> List[str]:
    """
    Split a list-like value on exactly one delimiter.

    The delimiter is the first of `delimiters` present in the value
    (presence order, not position). Escaped commas never split.

    >>> split_multi_value("A\\\\, B|C")
    ['A, B', 'C']
    """
    protected = value.replace("\\,", _COMMA_PLACEHOLDER)

    delimiter = next((d for d in delimiters if d in protected), None)
    parts = protected.split(delimiter) if delimiter else [protected]

    out: List[str] = []
    for part in parts:
        part = part.replace(_COMMA_PLACEHOLDER, ",").strip()
        if part:
            out.append(part)
    return out


def parse_description(
    raw: Optional[str],
    labels: Mapping[str, LabelRule] = DESCRIPTION_LABELS,
) -> ParsedDescription:
    """
    Parse "Label: value" lines into a ParsedDescription.

    Unknown labels are ignored. Empty values count as absent.
    """
    if not raw:
        return ParsedDescription()

    fields: Dict[str, Union[str, List[str], None]] = {}

    for line in _LINE_SPLIT_RE.split(raw):
        line = line.strip()
        if not line:
            continue

        key, _, value = line.partition(":")
        rule = labels.get(key.strip().lower())
        if rule is None:
            continue

        value = value.strip()
        if rule.field == "staff":
            fields["staff"] = split_multi_value(value)
        elif rule.multi:
            fields[rule.field] = (rule.joiner or ", ").join(split_multi_value(value)) or None
        else:
            fields[rule.field] = value or None

    staff = fields.pop("staff", None) or []
    return ParsedDescription(staff=tuple(staff), **fields)  # type: ignore[arg-type]
