"""Filename-safe identifiers for stored content."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_TITLE_PREFIX = "title:"


def slugify(value: Optional[str], *, default: str = "") -> str:
    """Lower-case ``value`` and collapse every non-alphanumeric run to ``-``.

    Accents are folded to ASCII first.  Titles that differ only by case or
    punctuation map to the same slug.
    """

    normalized = unicodedata.normalize("NFKD", value or "")
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", ascii_text.lower()).strip("-")
    return slug or default


def title_from_overview(overview: str) -> Optional[str]:
    """Return the text after the first ``Title:`` line of a brief, if any."""

    for line in (overview or "").splitlines():
        if line.lower().startswith(_TITLE_PREFIX):
            title = line[len(_TITLE_PREFIX) :].strip()
            return title or None
    return None
