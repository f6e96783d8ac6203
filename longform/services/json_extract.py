"""Recover structured data from a model reply that wraps JSON in prose."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

_OPENERS = "{["
_CLOSERS = "}]"


@dataclass(frozen=True)
class ExtractedJSON:
    value: Any
    start: int


def extract_json(text: Optional[str]) -> Optional[ExtractedJSON]:
    """Return the first top-level JSON object or array embedded in ``text``.

    The scan walks the text once, tracking whether it sits inside a quoted
    string (honouring backslash escapes) and the current ``{}``/``[]`` nesting
    depth.  Every balanced span that opens at depth zero is handed to
    :func:`json.loads`; spans that fail to parse are skipped and the scan
    carries on after them, so decorative braces ahead of the real payload do
    not hide it.  ``None`` is returned when no span parses.
    """

    if not text:
        return None

    depth = 0
    start: Optional[int] = None
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _OPENERS:
            if depth == 0:
                start = index
            depth += 1
        elif char in _CLOSERS and depth > 0:
            depth -= 1
            if depth == 0 and start is not None:
                span_start, start = start, None
                try:
                    value = json.loads(text[span_start : index + 1])
                except (ValueError, RecursionError):
                    # Not JSON, or nested deeper than the decoder allows.
                    continue
                return ExtractedJSON(value=value, start=span_start)

    return None
