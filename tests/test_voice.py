import pytest
import requests

from ai_recruiter import voice
from ai_recruiter.errors import ConfigurationError, ExternalServiceError
from ai_recruiter.voice import VapiClient, build_assistant_config, translate_server_message

from conftest import make_interview


class _Response:
    def __init__(self, data=None, status=200):
        self._data = data or {}
        self.status_code = status
        self.content = b"{}" if data is not None else b""

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._data


@pytest.fixture
def posts(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "headers": headers})
        if url.endswith("/call/web"):
            return _Response({
                "id": "call-42",
                "webCallUrl": "https://vapi.daily.co/call-42",
                "monitor": {"controlUrl": "https://control.vapi.ai/call-42/control"},
            })
        return _Response(None)

    monkeypatch.setattr(voice.requests, "post", fake_post)
    return calls


def test_assistant_config_lists_questions_in_order():
    interview = make_interview(questions=5)
    config = build_assistant_config(interview, "Ada", 15, server_url="https://hooks.example/vapi/webhook",
                                    metadata={"sessionId": "s1"})

    system = config["model"]["messages"][0]["content"]
    positions = [system.index(f"{i}. Question {i}?") for i in range(1, 6)]
    assert positions == sorted(positions)
    assert "Backend Engineer" in system
    assert "{{{" not in system
    assert config["firstMessage"].startswith("Hi Ada")
    assert config["maxDurationSeconds"] == 900
    assert config["server"] == {"url": "https://hooks.example/vapi/webhook"}
    assert config["metadata"] == {"sessionId": "s1"}


def test_assistant_config_requires_questions():
    with pytest.raises(ConfigurationError):
        build_assistant_config(make_interview(questions=0), "Ada", 15)


def test_client_requires_key(monkeypatch):
    monkeypatch.setattr(voice, "VAPI_API_KEY", None)
    with pytest.raises(ConfigurationError):
        VapiClient()


def test_start_stop_and_mute(posts):
    client = VapiClient(api_key="secret", base_url="https://api.vapi.ai/")
    info = client.start({"name": "AI Recruiter"})

    assert info == {"callId": "call-42", "webCallUrl": "https://vapi.daily.co/call-42"}
    assert posts[0]["url"] == "https://api.vapi.ai/call/web"
    assert posts[0]["json"] == {"assistant": {"name": "AI Recruiter"}}
    assert posts[0]["headers"]["Authorization"] == "Bearer secret"

    client.set_muted(True)
    assert posts[1]["json"] == {"type": "control", "control": "mute-assistant"}

    client.stop()
    client.stop()
    end_calls = [p for p in posts if p["json"] == {"type": "end-call"}]
    assert len(end_calls) == 1

    client.set_muted(False)
    assert len(posts) == 3


def test_stop_before_start_is_noop(posts):
    VapiClient(api_key="secret").stop()
    assert posts == []


def test_start_failure_raises_external_error(monkeypatch):
    def failing_post(url, json=None, headers=None, timeout=None):
        return _Response({"message": "bad"}, status=401)

    monkeypatch.setattr(voice.requests, "post", failing_post)
    with pytest.raises(ExternalServiceError):
        VapiClient(api_key="secret").start({})


@pytest.mark.parametrize("message,expected", [
    ({"type": "status-update", "status": "in-progress"}, ("call-start", {})),
    ({"type": "status-update", "status": "ringing"}, None),
    ({"type": "status-update", "status": "ended", "endedReason": "customer-ended-call"},
     ("call-end", {"reason": "customer-ended-call"})),
    ({"type": "status-update", "status": "ended", "endedReason": "pipeline-error-openai-llm-failed"},
     ("error", {"error": "pipeline-error-openai-llm-failed"})),
    ({"type": "speech-update", "status": "started", "role": "assistant"}, ("speech-start", {"role": "agent"})),
    ({"type": "speech-update", "status": "stopped", "role": "user"}, ("speech-end", {"role": "candidate"})),
    ({"type": "conversation-update", "conversation": [{"role": "user", "content": "hi"}]},
     ("message", {"conversation": [{"role": "user", "content": "hi"}]})),
    ({"type": "end-of-call-report", "endedReason": "exceeded-max-duration"},
     ("call-end", {"reason": "exceeded-max-duration"})),
    ({"type": "transcript", "transcript": "partial"}, None),
])
def test_translate_server_message(message, expected):
    assert translate_server_message(message) == expected


class _TextResponse(_Response):
    def __init__(self, body=b"OK"):
        super().__init__(None)
        self.content = body

    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


def test_non_json_control_reply_raises_external_error(posts, monkeypatch):
    client = VapiClient(api_key="secret")
    client.start({})

    monkeypatch.setattr(voice.requests, "post", lambda url, **kwargs: _TextResponse())
    with pytest.raises(ExternalServiceError):
        client.stop()


@pytest.mark.parametrize("role,expected", [
    ("assistant", "agent"), ("bot", "agent"), ("user", "candidate"), ("system", None), (None, None),
])
def test_normalize_role(role, expected):
    assert voice.normalize_role(role) == expected
