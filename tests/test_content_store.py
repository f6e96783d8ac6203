import pytest

from longform.models import ContentRecord
from longform.services.content_store import (
    ContentStore,
    content_key,
    resolve_download,
)


@pytest.fixture
def store(app_instance):
    return ContentStore()


def test_set_get_and_overwrite(store):
    key = content_key("book-full", "mycelium-futures")

    assert store.get(key) is None
    store.set(key, "first")
    store.set(key, "second")

    assert store.get(key) == "second"
    assert ContentRecord.query.count() == 1


def test_set_many_writes_every_record(store):
    store.set_many({"book-overview:a": "o", "book-outline:a": "[]", "book-full:a": "full"})

    assert store.keys() == ["book-full:a", "book-outline:a", "book-overview:a"]


def test_delete_reports_whether_key_existed(store):
    store.set("content:a", "x")

    assert store.delete("content:a") is True
    assert store.delete("content:a") is False
    assert store.get("content:a") is None


def test_keys_glob_patterns(store):
    store.set_many(
        {
            "book-full:a": "1",
            "book-full:b": "2",
            "book-outline:a": "3",
            "content:a_b": "4",
            "content:axb": "5",
        }
    )

    assert store.keys("book-*") == ["book-full:a", "book-full:b", "book-outline:a"]
    assert store.keys("book-full:?") == ["book-full:a", "book-full:b"]
    assert store.keys("content:a_b") == ["content:a_b"]
    assert store.keys("*:a") == ["book-full:a", "book-outline:a"]


def test_previews_collapse_whitespace_and_truncate(store):
    store.set("content:long", "word\n\n" * 40)
    store.set("content:short", "  tiny\tvalue ")

    previews = {row.key: row.preview for row in store.previews()}

    assert previews["content:short"] == "tiny value"
    assert previews["content:long"].endswith("…")
    assert len(previews["content:long"]) == 121
    assert "\n" not in previews["content:long"]


@pytest.mark.parametrize(
    "filename, keys, mimetype, name",
    [
        ("fungi-outline.json", ["book-outline:fungi"], "application/json", "fungi-outline.json"),
        ("fungi-overview.md", ["book-overview:fungi"], "text/markdown", "fungi-overview.md"),
        ("fungi.md", ["book-full:fungi", "content:fungi"], "text/markdown", "fungi.md"),
        ("fungi", ["book-full:fungi", "content:fungi"], "text/markdown", "fungi.md"),
    ],
)
def test_resolve_download(filename, keys, mimetype, name):
    target = resolve_download(filename)

    assert target.keys == keys
    assert target.mimetype == mimetype
    assert target.filename == name
