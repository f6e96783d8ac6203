"""Application-bound wiring: prompt configuration and the remote caller."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict

from flask import current_app

from .remote_caller import ResilientCaller, build_remote_caller
from .stages import PromptConfigurationError, StageGenerators

PROMPT_CACHE_KEY = "_PROMPT_CONFIG_CACHE"


def _load_prompt_config() -> Dict[str, Any]:
    app = current_app
    cached = app.config.get(PROMPT_CACHE_KEY)
    if isinstance(cached, dict):
        return cached

    config_path = app.config.get("PROMPT_CONFIG_PATH")
    if not config_path:
        raise PromptConfigurationError("PROMPT_CONFIG_PATH is not configured.")

    path = Path(config_path)
    if not path.exists():
        raise PromptConfigurationError(f"Prompt configuration file not found at: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:  # pragma: no cover - malformed file should be obvious at runtime
            raise PromptConfigurationError(f"Unable to parse prompt configuration: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise PromptConfigurationError("Prompt configuration must be a JSON object.")

    app.config[PROMPT_CACHE_KEY] = data
    return data


def _get_remote_caller() -> ResilientCaller:  # pragma: no cover - integration point
    app = current_app
    app.logger.info(
        "Connecting remote generator %s at %s",
        app.config.get("DEEPSEEK_MODEL"),
        app.config.get("DEEPSEEK_BASE_URL"),
    )
    return build_remote_caller(app.config)


@asynccontextmanager
async def open_stage_generators() -> AsyncIterator[StageGenerators]:
    """Yield stage generators over a caller that is closed on exit.

    A fresh caller is built per request because Flask runs every async view
    on its own event loop.
    """

    prompt_config = _load_prompt_config()
    caller = _get_remote_caller()
    try:
        yield StageGenerators(caller, prompt_config)
    finally:
        await caller.aclose()
