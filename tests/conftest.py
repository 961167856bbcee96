"""
Shared fixtures: portal records, fake HTTP responses, temporary databases.
"""

import json
from types import SimpleNamespace

import pytest

from eufunding.storage.db import Database
from eufunding.storage.kv_store import KVStore


def raw_record(identifier=None, language="en", **metadata):
    """Build a search hit in the portal's array-of-one-string encoding."""
    md = {key: [value] for key, value in metadata.items() if value is not None}
    if identifier is not None:
        md["identifier"] = [identifier]
    item = {"metadata": md}
    if language is not None:
        item["language"] = language
    return item


class FakeResponse:
    def __init__(self, status_code=200, payload=None, body=None):
        self.status_code = status_code
        self._payload = payload
        if body is None:
            body = json.dumps(payload).encode() if payload is not None else b""
        self.content = body

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeChatClient:
    """Stands in for the OpenAI client: records prompts, replays canned answers."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, model, temperature, messages):
        self.prompts.append(messages[-1]["content"])
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        message = SimpleNamespace(content=answer)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "test.db"))


@pytest.fixture
def kv(db):
    return KVStore(db)


@pytest.fixture
def no_sleep(monkeypatch):
    """Record time.sleep calls instead of sleeping."""
    calls = []
    monkeypatch.setattr("time.sleep", lambda seconds: calls.append(seconds))
    return calls
