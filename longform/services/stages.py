from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from .json_extract import extract_json
from .remote_caller import ChatMessage

LOGGER = logging.getLogger(__name__)

UNIVERSAL_CONTENT_KEY = "universal_content"
BOOK_OVERVIEW_KEY = "book_overview"
CHAPTER_OUTLINE_KEY = "chapter_outline"
CHAPTER_DRAFT_KEY = "chapter_draft"

_GENERATION_PARAMETER_KEYS = {"max_tokens", "temperature"}
_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class PromptConfigurationError(RuntimeError):
    """Raised when a stage prompt is missing or malformed."""


@dataclass(frozen=True)
class ChapterMeta:
    title: str
    synopsis: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class GeneratedChapter:
    index: int
    text: str


class StageGenerators:
    """The fixed prompts of the pipeline, bound to one remote caller.

    Every method returns ``None`` when the remote call (or, for the outline,
    the JSON extraction) fails.
    """

    def __init__(self, caller: Any, prompt_config: Mapping[str, Any]) -> None:
        self.caller = caller
        self.prompt_config = prompt_config

    async def generate_content(self, overview: str) -> Optional[str]:
        return await self._run(UNIVERSAL_CONTENT_KEY, overview=overview)

    async def generate_book_overview(self, keywords: str) -> Optional[str]:
        return await self._run(BOOK_OVERVIEW_KEY, keywords=keywords)

    async def generate_chapter_outline(self, overview: str, chapter_count: int) -> Optional[List[ChapterMeta]]:
        raw = await self._run(CHAPTER_OUTLINE_KEY, overview=overview, chapter_count=chapter_count)
        extracted = extract_json(raw)
        if extracted is None:
            if raw is not None:
                LOGGER.warning("Outline reply contained no parseable JSON.")
            return None
        return parse_outline(extracted.value)

    async def generate_chapter(
        self,
        overview: str,
        meta: ChapterMeta,
        index: int,
        total: int,
    ) -> Optional[GeneratedChapter]:
        text = await self._run(
            CHAPTER_DRAFT_KEY,
            overview=overview,
            index=index,
            total=total,
            title=meta.title,
            synopsis=meta.synopsis,
        )
        if text is None:
            return None
        return GeneratedChapter(index=index, text=text)

    def build_messages(self, key: str, **values: Any) -> List[ChatMessage]:
        entry = self._entry(key)
        system_prompt = entry.get("system_prompt")
        user_template = entry.get("user_template")
        if not system_prompt or not user_template:
            raise PromptConfigurationError(f"Prompt configuration entry '{key}' needs both templates.")
        return [
            {"role": "system", "content": _apply_template(system_prompt, **values)},
            {"role": "user", "content": _apply_template(user_template, **values)},
        ]

    async def _run(self, key: str, **values: Any) -> Optional[str]:
        messages = self.build_messages(key, **values)
        parameters = _extract_generation_parameters(self._entry(key).get("parameters"))
        return await self.caller.call(messages, **parameters)

    def _entry(self, key: str) -> Mapping[str, Any]:
        try:
            entry = self.prompt_config[key]
        except KeyError as exc:
            raise PromptConfigurationError(f"Prompt configuration is missing the '{key}' entry.") from exc
        if not isinstance(entry, dict):
            raise PromptConfigurationError(f"Prompt configuration entry '{key}' must be a dictionary.")
        return entry


def parse_outline(payload: Any) -> Optional[List[ChapterMeta]]:
    """Normalise an extracted outline into :class:`ChapterMeta` entries."""

    chapters = payload.get("chapters") if isinstance(payload, dict) else payload
    if not isinstance(chapters, list):
        return None

    outline: List[ChapterMeta] = []
    for item in chapters:
        if not isinstance(item, dict):
            continue
        title_raw = item.get("title")
        synopsis_raw = item.get("synopsis")
        if not isinstance(title_raw, str) or not title_raw.strip():
            continue
        synopsis = synopsis_raw.strip() if isinstance(synopsis_raw, str) else ""
        outline.append(ChapterMeta(title=title_raw.strip(), synopsis=synopsis))

    return outline or None


def _extract_generation_parameters(parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Filter a raw parameters dictionary to the kwargs the remote caller accepts."""

    if not isinstance(parameters, dict):
        return {}

    kwargs: Dict[str, Any] = {}
    for key in _GENERATION_PARAMETER_KEYS:
        if key in parameters and parameters[key] is not None:
            kwargs[key] = parameters[key]
    return kwargs


def _apply_template(template: str, **values: Any) -> str:
    # Single pass: braces inside substituted user text stay literal.
    def replace(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        raw = values[key]
        return raw if isinstance(raw, str) else str(raw)

    return _PLACEHOLDER.sub(replace, template)
