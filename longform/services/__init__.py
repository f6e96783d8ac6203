"""Service layer for the generation pipeline and content storage."""

from __future__ import annotations

from .content_store import ContentStore, ContentStoreError  # noqa: F401
from .json_extract import ExtractedJSON, extract_json  # noqa: F401
from .pipeline import (  # noqa: F401
    BookPipeline,
    BookRequestError,
    BookResult,
    PipelineStageError,
    generate_document,
)
from .remote_caller import GenerationUnavailableError, ResilientCaller, RetryPolicy  # noqa: F401
from .stages import ChapterMeta, GeneratedChapter, PromptConfigurationError, StageGenerators  # noqa: F401

__all__ = [
    "BookPipeline",
    "BookRequestError",
    "BookResult",
    "ChapterMeta",
    "ContentStore",
    "ContentStoreError",
    "ExtractedJSON",
    "GeneratedChapter",
    "GenerationUnavailableError",
    "PipelineStageError",
    "PromptConfigurationError",
    "ResilientCaller",
    "RetryPolicy",
    "StageGenerators",
    "extract_json",
    "generate_document",
]
