import pytest

from conftest import FakeChatClient
from eufunding.api.generation import TextGenerationClient, parse_json_response
from eufunding.core.errors import GenerationError


def test_generate_text_sends_prompt_and_strips_output():
    fake = FakeChatClient("  Hello there \n")
    client = TextGenerationClient(model="test-model", client=fake)

    assert client.generate_text("Say hi") == "Hello there"
    assert fake.prompts == ["Say hi"]


def test_generate_json_tolerates_code_fences():
    client = TextGenerationClient(client=FakeChatClient('```json\n{"ideas": []}\n```'))

    assert client.generate_json("prompt") == {"ideas": []}


def test_api_errors_become_generation_errors():
    client = TextGenerationClient(client=FakeChatClient(RuntimeError("quota exceeded")))

    with pytest.raises(GenerationError, match="quota exceeded"):
        client.generate_text("prompt")


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(GenerationError):
        TextGenerationClient()


@pytest.mark.parametrize("text,expected", [
    ('{"a": 1}', {"a": 1}),
    ('```\n{"a": 1}\n```', {"a": 1}),
    ('Here you go:\n{"a": {"b": 2}}\nThanks!', {"a": {"b": 2}}),
    ("[1, 2]", [1, 2]),
])
def test_parse_json_response(text, expected):
    assert parse_json_response(text) == expected


def test_parse_json_response_rejects_prose():
    with pytest.raises(GenerationError):
        parse_json_response("I cannot help with that.")


def test_generation_client_is_shared(monkeypatch):
    from eufunding.api import generation

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(generation, "_client", None)

    first = generation.get_generation_client()

    assert generation.get_generation_client() is first
