import asyncio
import json
import re
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from longform import create_app
from longform.config import TestConfig
from longform.extensions import db

REPO_ROOT = Path(__file__).resolve().parents[1]


class ScriptedCaller:
    """Stands in for the remote caller, answering by the stage's system prompt."""

    def __init__(self, *, titles=None, failing_chapters=(), outline_size=None, overview=None):
        self.titles = titles
        self.failing_chapters = set(failing_chapters)
        self.outline_size = outline_size
        self.overview = overview
        self.calls = []
        self.finished_chapters = []
        self.closed = False

    async def call(self, messages, **kwargs):
        system, user = messages[0]["content"], messages[1]["content"]
        self.calls.append({"system": system, "user": user, **kwargs})

        if "commissioning editor" in system:
            return self.overview if self.overview is not None else f"A sweeping overview of {user}."
        if "developmental editor" in system:
            requested = int(re.search(r"exactly (\d+)", system).group(1))
            count = self.outline_size or requested
            titles = self.titles or [f"Part {index}" for index in range(1, count + 1)]
            outline = [
                {"title": titles[index - 1], "synopsis": f"Synopsis of chapter {index}."}
                for index in range(1, count + 1)
            ]
            return "Sure! Here is the outline:\n" + json.dumps(outline) + "\nHope that helps!"
        if "chapter synopsis" in system:
            index = int(re.search(r"Chapter (\d+)/(\d+)", user).group(1))
            if index in self.failing_chapters:
                return None
            await asyncio.sleep(0.01)
            self.finished_chapters.append(index)
            return f"Body text of chapter {index}."
        if "long-form writer" in system:
            return f"Generated document for:\n{user}"
        return None

    def stage_calls(self, marker):
        return [call for call in self.calls if marker in call["system"]]

    async def aclose(self):
        self.closed = True


class DictStore:
    """In-memory content store exposing the same write surface as ContentStore."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def set_many(self, values):
        self.data.update(values)

    def keys(self, pattern="*"):
        return sorted(self.data)


@pytest.fixture
def prompt_config():
    return json.loads((REPO_ROOT / "prompt_config.json").read_text(encoding="utf-8"))


@pytest.fixture
def scripted_caller():
    return ScriptedCaller


@pytest.fixture
def dict_store():
    return DictStore()


@pytest.fixture
def app_instance():
    app = create_app(TestConfig)
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app_instance):
    return app_instance.test_client()
