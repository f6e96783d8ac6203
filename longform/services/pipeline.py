"""Keyword-to-book orchestration and the single-shot universal document flow.

The book pipeline runs ``overview -> outline -> chapters -> assemble ->
persist``.  Chapters are requested concurrently and joined once every call
has settled.  A failed stage aborts the run with :class:`PipelineStageError`
before anything is written to the store.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from .content_store import (
    BOOK_FULL,
    BOOK_OUTLINE,
    BOOK_OVERVIEW,
    CONTENT,
    OVERVIEW,
    ContentStore,
    content_key,
)
from .slugs import slugify, title_from_overview
from .stages import ChapterMeta, GeneratedChapter, StageGenerators

LOGGER = logging.getLogger(__name__)

MIN_CHAPTERS = 3
MAX_CHAPTERS = 15

STAGE_OVERVIEW = "overview"
STAGE_OUTLINE = "outline"
STAGE_CHAPTERS = "chapters"
STAGE_CONTENT = "content"

UNTITLED_BOOK = "Untitled Book"
DEFAULT_CONTENT_SLUG = "content"
DEFAULT_BOOK_SLUG = "untitled-book"
_TITLE_SEPARATOR = " – "


class BookRequestError(RuntimeError):
    """Raised when a generation request is rejected before any remote call."""


class PipelineStageError(RuntimeError):
    """Raised when a pipeline stage fails; ``stage`` names the failed step."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


@dataclass
class BookResult:
    slug: str
    overview: str
    outline: List[ChapterMeta]
    chapters: List[GeneratedChapter]
    document: str


def validate_book_request(keywords: Any, chapters: Any) -> Tuple[str, int]:
    cleaned = keywords.strip() if isinstance(keywords, str) else ""
    if not cleaned or chapters in (None, ""):
        raise BookRequestError("keywords and chapters required")
    return cleaned, parse_chapter_count(chapters)


def parse_chapter_count(raw: Any) -> int:
    if isinstance(raw, bool):
        raise BookRequestError(f"chapters must be {MIN_CHAPTERS}-{MAX_CHAPTERS}")
    try:
        count = int(raw)
    except (TypeError, ValueError):
        raise BookRequestError(f"chapters must be {MIN_CHAPTERS}-{MAX_CHAPTERS}") from None
    if count < MIN_CHAPTERS or count > MAX_CHAPTERS:
        raise BookRequestError(f"chapters must be {MIN_CHAPTERS}-{MAX_CHAPTERS}")
    return count


def book_title(outline: Sequence[ChapterMeta]) -> str:
    if not outline:
        return UNTITLED_BOOK
    return outline[0].title.split(_TITLE_SEPARATOR)[0].strip() or UNTITLED_BOOK


def book_slug(outline: Sequence[ChapterMeta], keywords: str) -> str:
    first_keyword = keywords.split(",")[0].strip()
    title = outline[0].title.split(_TITLE_SEPARATOR)[0] if outline else ""
    return slugify(title) or slugify(first_keyword, default=DEFAULT_BOOK_SLUG)


def assemble_book(overview: str, outline: Sequence[ChapterMeta], chapters: Sequence[GeneratedChapter]) -> str:
    """Concatenate the title, the overview and every chapter in outline order."""

    if len(chapters) != len(outline):
        raise BookRequestError("Every outline entry needs exactly one chapter.")

    assembled = [f"# {book_title(outline)}\n\n## Overview\n\n{overview}\n\n"]
    for position, (meta, chapter) in enumerate(zip(outline, chapters), start=1):
        assembled.append(
            f"\n---\n\n# Chapter {position}: {meta.title}\n\n*{meta.synopsis}*\n\n{chapter.text}"
        )
    return "\n".join(assembled)


def persist_book(
    store: ContentStore,
    slug: str,
    overview: str,
    outline: Sequence[ChapterMeta],
    document: str,
) -> None:
    """Write the overview, the JSON outline and the full text under ``slug`` together."""

    store.set_many(
        {
            content_key(BOOK_OVERVIEW, slug): overview,
            content_key(BOOK_OUTLINE, slug): json.dumps([meta.to_dict() for meta in outline], ensure_ascii=False),
            content_key(BOOK_FULL, slug): document,
        }
    )


class BookPipeline:
    def __init__(self, stages: StageGenerators, store: ContentStore) -> None:
        self.stages = stages
        self.store = store

    async def run(self, keywords: Any, chapter_count: Any) -> BookResult:
        cleaned_keywords, count = validate_book_request(keywords, chapter_count)

        overview = await self.overview(cleaned_keywords)
        outline = await self.outline(overview, count)
        chapters = await self.chapters(overview, outline)
        document = assemble_book(overview, outline, chapters)
        slug = book_slug(outline, cleaned_keywords)

        self.persist(slug, overview, outline, document)
        LOGGER.info("Stored %d-chapter book under slug '%s'.", len(outline), slug)
        return BookResult(
            slug=slug,
            overview=overview,
            outline=outline,
            chapters=chapters,
            document=document,
        )

    async def overview(self, keywords: str) -> str:
        overview = await self.stages.generate_book_overview(keywords)
        if not overview:
            raise self._failure(STAGE_OVERVIEW, "Overview generation failed")
        return overview

    async def outline(self, overview: str, chapter_count: int) -> List[ChapterMeta]:
        outline = await self.stages.generate_chapter_outline(overview, chapter_count)
        if not outline:
            raise self._failure(STAGE_OUTLINE, "Outline generation failed")
        if len(outline) != chapter_count:
            raise self._failure(
                STAGE_OUTLINE,
                f"Outline generation failed: expected {chapter_count} chapters, got {len(outline)}",
            )
        return outline

    async def chapter(self, overview: str, meta: ChapterMeta, index: int, total: int) -> GeneratedChapter:
        chapter = await self.stages.generate_chapter(overview, meta, index, total)
        if chapter is None:
            raise self._failure(STAGE_CHAPTERS, f"Chapter {index} generation failed")
        return chapter

    async def chapters(self, overview: str, outline: Sequence[ChapterMeta]) -> List[GeneratedChapter]:
        total = len(outline)
        results = await asyncio.gather(
            *(
                self.stages.generate_chapter(overview, meta, index, total)
                for index, meta in enumerate(outline, start=1)
            ),
            return_exceptions=True,
        )

        # Every sibling has settled by now; unexpected errors surface after the join.
        for result in results:
            if isinstance(result, BaseException):
                raise result

        failed = [index for index, result in enumerate(results, start=1) if result is None]
        if failed:
            listed = ", ".join(str(index) for index in failed)
            raise self._failure(STAGE_CHAPTERS, f"One or more chapters failed ({listed})")
        return list(results)

    def persist(self, slug: str, overview: str, outline: Sequence[ChapterMeta], document: str) -> None:
        persist_book(self.store, slug, overview, outline, document)

    @staticmethod
    def _failure(stage: str, message: str) -> PipelineStageError:
        LOGGER.warning("Book pipeline stopped at the %s stage: %s", stage, message)
        return PipelineStageError(stage, message)


def content_slug(overview: str) -> str:
    return slugify(title_from_overview(overview), default=DEFAULT_CONTENT_SLUG)


async def generate_document(stages: StageGenerators, store: ContentStore, overview: Optional[str]) -> str:
    """Expand a brief into one document, store it, and return its slug."""

    if not isinstance(overview, str) or not overview.strip():
        raise BookRequestError("Overview required.")

    slug = content_slug(overview)
    content = await stages.generate_content(overview)
    if not content:
        LOGGER.warning("Universal generation failed for slug '%s'.", slug)
        raise PipelineStageError(STAGE_CONTENT, "Generation failed.")

    store.set_many(
        {
            content_key(OVERVIEW, slug): overview,
            content_key(CONTENT, slug): content,
        }
    )
    return slug
