from types import SimpleNamespace

import pytest

from ai_recruiter.errors import ConfigurationError, ExternalServiceError, ParseError
from ai_recruiter.llm import CompletionClient, parse_json_content, strip_code_fences


@pytest.mark.parametrize("raw", [
    '{"a": 1}',
    '```json\n{"a": 1}\n```',
    '```\n{"a": 1}\n```',
    '  ```JSON {"a": 1}```  ',
    'Here you go:\n```json\n{"a": 1}\n```\nGood luck!',
])
def test_strip_code_fences_variants(raw):
    assert strip_code_fences(raw) == '{"a": 1}'


def test_strip_code_fences_empty():
    assert strip_code_fences("") == ""
    assert strip_code_fences(None) == ""


def test_parse_json_content_rejects_garbage():
    with pytest.raises(ParseError) as exc:
        parse_json_content("not json at all")
    assert exc.value.raw == "not json at all"


def test_parse_json_content_rejects_non_object():
    with pytest.raises(ParseError):
        parse_json_content("[1, 2, 3]")


def test_client_requires_api_key(monkeypatch):
    monkeypatch.setattr("ai_recruiter.llm.OPENROUTER_API_KEY", None)
    with pytest.raises(ConfigurationError):
        CompletionClient()


class _Completions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _sdk(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


async def test_complete_returns_stripped_content():
    completions = _Completions(content="  hello  ")
    client = CompletionClient(client=_sdk(completions))

    text = await client.complete("prompt", model="m", temperature=0.8, max_tokens=10)

    assert text == "hello"
    assert completions.kwargs["messages"] == [{"role": "user", "content": "prompt"}]
    assert completions.kwargs["temperature"] == 0.8
    assert completions.kwargs["max_tokens"] == 10


async def test_complete_omits_unset_options():
    completions = _Completions(content="ok")
    await CompletionClient(client=_sdk(completions)).complete("p", model="m")
    assert "temperature" not in completions.kwargs
    assert "max_tokens" not in completions.kwargs


async def test_complete_wraps_transport_errors():
    client = CompletionClient(client=_sdk(_Completions(error=RuntimeError("boom"))))
    with pytest.raises(ExternalServiceError):
        await client.complete("p", model="m")
