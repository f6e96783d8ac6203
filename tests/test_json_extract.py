import json

import pytest

from longform.services.json_extract import extract_json


OUTLINE = [
    {"title": "Spores {and} Hyphae", "synopsis": "Covers [basics] and \"quoted\" terms."},
    {"title": "Networks", "synopsis": "Nested", "tags": [1, 2, {"deep": None}]},
]


def test_extracts_outline_from_chatty_reply():
    reply = 'Sure! Here is the outline: [{"title":"A","synopsis":"B"}] Hope that helps!'

    result = extract_json(reply)

    assert result is not None
    assert result.value == [{"title": "A", "synopsis": "B"}]
    assert result.start == reply.index("[")


@pytest.mark.parametrize(
    "prefix, suffix",
    [
        ("", ""),
        ("Here you go:\n", "\nLet me know if you need changes."),
        ('Templates use "{" and "}" as markers. ', ' A literal "]" ends it.'),
        ('He wrote "a \\"{\\" b" before the list: ', ""),
        ("```json\n", "\n```"),
    ],
)
def test_extracted_value_matches_direct_parse(prefix, suffix):
    payload = json.dumps(OUTLINE)

    result = extract_json(prefix + payload + suffix)

    assert result is not None
    assert result.value == json.loads(payload)
    assert result.start == len(prefix)


def test_skips_decorative_braces_before_payload():
    text = "Example code:\nfunction f() { return 1; }\nAnd the data: {\"ok\": true, \"items\": [1, 2]}"

    result = extract_json(text)

    assert result.value == {"ok": True, "items": [1, 2]}
    assert text[result.start] == "{"


def test_malformed_balanced_span_is_skipped():
    result = extract_json("{not: json} then [1, 2, 3]")

    assert result.value == [1, 2, 3]


def test_returns_first_valid_span():
    assert extract_json("[1] and later [2]").value == [1]


def test_closers_inside_strings_do_not_end_the_span():
    text = 'Result: {"a": [1, {"b": "}]"}], "c": "\\"{"}'

    result = extract_json(text)

    assert result.value == {"a": [1, {"b": "}]"}], "c": '"{'}


@pytest.mark.parametrize(
    "text",
    [
        None,
        "",
        "No structured data here at all.",
        "{broken",
        "[1, 2",
        "{'single': 'quotes'}",
        "Mismatched } and ] closers only",
    ],
)
def test_returns_none_without_valid_json(text):
    assert extract_json(text) is None


def test_nesting_beyond_decoder_limit_is_skipped():
    deep = "[" * 100000 + "]" * 100000

    assert extract_json(deep) is None
    assert extract_json(deep + ' then {"ok": true}').value == {"ok": True}
