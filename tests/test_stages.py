import asyncio

import pytest

from longform.services.stages import (
    ChapterMeta,
    GeneratedChapter,
    PromptConfigurationError,
    StageGenerators,
    parse_outline,
)


class RecordingCaller:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def call(self, messages, **kwargs):
        self.calls.append((messages, kwargs))
        return self.reply


def test_outline_stage_extracts_array_from_prose(prompt_config):
    caller = RecordingCaller('Sure! Here is the outline: [{"title":"A","synopsis":"B"}] Hope that helps!')
    stages = StageGenerators(caller, prompt_config)

    outline = asyncio.run(stages.generate_chapter_outline("An overview.", 3))

    assert outline == [ChapterMeta(title="A", synopsis="B")]
    messages, params = caller.calls[0]
    assert "exactly 3 objects" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "Book overview:\nAn overview."}
    assert params == {"max_tokens": 1200, "temperature": 0.3}


def test_outline_stage_fails_without_json(prompt_config):
    stages = StageGenerators(RecordingCaller("I could not think of any chapters."), prompt_config)

    assert asyncio.run(stages.generate_chapter_outline("An overview.", 3)) is None


def test_outline_stage_fails_on_overly_nested_reply(prompt_config):
    stages = StageGenerators(RecordingCaller("Outline: " + "[" * 100000 + "]" * 100000), prompt_config)

    assert asyncio.run(stages.generate_chapter_outline("An overview.", 3)) is None


def test_outline_stage_fails_when_remote_call_fails(prompt_config):
    stages = StageGenerators(RecordingCaller(None), prompt_config)

    assert asyncio.run(stages.generate_chapter_outline("An overview.", 3)) is None


def test_overview_stage_uses_keyword_budget(prompt_config):
    caller = RecordingCaller("Back-cover prose.")
    stages = StageGenerators(caller, prompt_config)

    assert asyncio.run(stages.generate_book_overview("fungi, sustainability")) == "Back-cover prose."
    messages, params = caller.calls[0]
    assert messages[0]["role"] == "system"
    assert "commissioning editor" in messages[0]["content"]
    assert messages[1] == {"role": "user", "content": "fungi, sustainability"}
    assert params == {"max_tokens": 600, "temperature": 0.4}


def test_chapter_stage_numbers_chapter_and_shares_only_overview(prompt_config):
    caller = RecordingCaller("Chapter prose.")
    stages = StageGenerators(caller, prompt_config)
    meta = ChapterMeta(title="Networks", synopsis="How mycelium connects trees.")

    chapter = asyncio.run(stages.generate_chapter("The overview.", meta, 2, 5))

    assert chapter == GeneratedChapter(index=2, text="Chapter prose.")
    messages, params = caller.calls[0]
    assert messages[1]["content"] == (
        "Book overview:\nThe overview.\n\nChapter 2/5 – Networks\nSynopsis: How mycelium connects trees."
    )
    assert params == {"max_tokens": 8000, "temperature": 0.25}


def test_chapter_stage_returns_none_on_failure(prompt_config):
    stages = StageGenerators(RecordingCaller(None), prompt_config)

    assert asyncio.run(stages.generate_chapter("o", ChapterMeta("t", "s"), 1, 3)) is None


def test_user_text_placeholders_stay_literal(prompt_config):
    caller = RecordingCaller("Document.")
    stages = StageGenerators(caller, prompt_config)

    asyncio.run(stages.generate_content("Title: Templates\nExplain {overview} and {title} markers."))

    messages, params = caller.calls[0]
    assert messages[1]["content"] == "Title: Templates\nExplain {overview} and {title} markers."
    assert params == {"max_tokens": 8000, "temperature": 0.25}


def test_missing_prompt_entry_raises(prompt_config):
    config = dict(prompt_config)
    del config["book_overview"]
    stages = StageGenerators(RecordingCaller("x"), config)

    with pytest.raises(PromptConfigurationError):
        asyncio.run(stages.generate_book_overview("fungi"))


def test_parse_outline_accepts_wrapped_object_and_drops_untitled_entries():
    payload = {
        "chapters": [
            {"title": "  Spores ", "synopsis": " Start small. "},
            {"title": "", "synopsis": "No title"},
            "not an entry",
            {"title": "Fruiting Bodies"},
        ]
    }

    assert parse_outline(payload) == [
        ChapterMeta(title="Spores", synopsis="Start small."),
        ChapterMeta(title="Fruiting Bodies", synopsis=""),
    ]


@pytest.mark.parametrize("payload", [{"title": "A"}, [], ["x", 1], "text", None])
def test_parse_outline_rejects_non_outlines(payload):
    assert parse_outline(payload) is None
