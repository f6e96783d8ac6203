"""Key-value addressing of generated content on top of ``content_records``."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ContentRecord

OVERVIEW = "overview"
CONTENT = "content"
BOOK_OVERVIEW = "book-overview"
BOOK_OUTLINE = "book-outline"
BOOK_FULL = "book-full"

MARKDOWN_MIMETYPE = "text/markdown"
JSON_MIMETYPE = "application/json"

_LIKE_ESCAPE = "\\"


class ContentStoreError(RuntimeError):
    """Raised when the content store cannot be written."""


def content_key(purpose: str, slug: str) -> str:
    return f"{purpose}:{slug}"


@dataclass
class KeyPreview:
    key: str
    preview: str


@dataclass
class DownloadTarget:
    keys: List[str]
    mimetype: str
    filename: str


class ContentStore:
    """Dumb string storage: ``get``/``set``/``delete``/``keys``."""

    def __init__(self, session=None) -> None:
        self.session = session if session is not None else db.session

    def get(self, key: str) -> Optional[str]:
        record = self.session.get(ContentRecord, key)
        return record.value if record is not None else None

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: Mapping[str, str]) -> None:
        """Write every entry of ``values`` in one transaction."""

        try:
            for key, value in values.items():
                record = self.session.get(ContentRecord, key)
                if record is None:
                    self.session.add(ContentRecord(key=key, value=value))
                else:
                    record.value = value
                    record.created_at = datetime.utcnow()
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise ContentStoreError(f"Unable to store content: {exc}") from exc

    def delete(self, key: str) -> bool:
        record = self.session.get(ContentRecord, key)
        if record is None:
            return False
        self.session.delete(record)
        self.session.commit()
        return True

    def keys(self, pattern: str = "*") -> List[str]:
        """List keys matching a glob ``pattern`` (``*`` and ``?`` wildcards)."""

        query = self.session.query(ContentRecord.key)
        if pattern != "*":
            query = query.filter(ContentRecord.key.like(_glob_to_like(pattern), escape=_LIKE_ESCAPE))
        return [row[0] for row in query.order_by(ContentRecord.key).all()]

    def previews(self, pattern: str = "*", *, limit: int = 120) -> List[KeyPreview]:
        rows: List[KeyPreview] = []
        for key in self.keys(pattern):
            raw = self.get(key) or ""
            collapsed = " ".join(raw.split())
            preview = collapsed[:limit] + ("…" if len(raw) > limit else "")
            rows.append(KeyPreview(key=key, preview=preview))
        return rows


def _glob_to_like(pattern: str) -> str:
    translated: List[str] = []
    for char in pattern:
        if char == "*":
            translated.append("%")
        elif char == "?":
            translated.append("_")
        elif char in ("%", "_", _LIKE_ESCAPE):
            translated.append(_LIKE_ESCAPE + char)
        else:
            translated.append(char)
    return "".join(translated)


def resolve_download(filename: str) -> DownloadTarget:
    """Map a requested file name onto the store keys that may hold it.

    ``<slug>-outline.json`` and ``<slug>-overview.md`` address the book's
    intermediate stages; any other ``<slug>.md`` is the assembled book, or the
    universal generator's document when no book exists under that slug.
    """

    if filename.endswith("-outline.json"):
        slug = filename[: -len("-outline.json")]
        return DownloadTarget([content_key(BOOK_OUTLINE, slug)], JSON_MIMETYPE, f"{slug}-outline.json")
    if filename.endswith("-overview.md"):
        slug = filename[: -len("-overview.md")]
        return DownloadTarget([content_key(BOOK_OVERVIEW, slug)], MARKDOWN_MIMETYPE, f"{slug}-overview.md")

    slug = filename
    for suffix in (".md", ".json"):
        if slug.endswith(suffix):
            slug = slug[: -len(suffix)]
            break
    return DownloadTarget(
        [content_key(BOOK_FULL, slug), content_key(CONTENT, slug)],
        MARKDOWN_MIMETYPE,
        f"{slug}.md",
    )
