import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from ai_recruiter import main
from ai_recruiter.db import get_database


class FakeCompletionClient:
    """Returns canned completions in order; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses) or [""]
        self.prompts = []
        self.calls = []

    async def complete(self, prompt, model, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        self.calls.append({"model": model, "temperature": temperature, "max_tokens": max_tokens})
        index = min(len(self.prompts) - 1, len(self.responses) - 1)
        return self.responses[index]


class FakeVoice:
    def __init__(self, call_id="call-1", fail_start=None):
        self.call_id = call_id
        self.fail_start = fail_start
        self.assistants = []
        self.stop_calls = 0
        self.mute_calls = []

    def start(self, assistant):
        self.assistants.append(assistant)
        if self.fail_start:
            raise self.fail_start
        return {"callId": self.call_id, "webCallUrl": f"https://vapi.example/{self.call_id}"}

    def stop(self):
        self.stop_calls += 1

    def set_muted(self, muted):
        self.mute_calls.append(muted)


class VoiceFactory:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.created = []

    def __call__(self):
        voice = FakeVoice(**self.kwargs)
        self.created.append(voice)
        return voice


def questions_response(items, fenced=False):
    body = json.dumps({"interviewQuestions": items})
    return f"```json\n{body}\n```" if fenced else body


def feedback_response(technical=7, communication=8, problem=6, experience=7, recommendation="Hire", fenced=False):
    body = json.dumps({
        "feedback": "unused",
        "rating": {
            "technicalSkills": technical,
            "communication": communication,
            "problemSolving": problem,
            "experience": experience,
        },
        "summary": "Solid fundamentals and clear answers.",
        "Recommendation": recommendation,
        "RecommendationMsg": "Strong candidate for the role.",
    })
    return f"```json\n{body}\n```" if fenced else body


def make_interview(questions=3, duration="30 Min", interview_id="iv-1", **extra):
    interview = {
        "interviewId": interview_id,
        "jobPosition": "Backend Engineer",
        "jobDescription": "Build APIs in Python.",
        "duration": duration,
        "type": ["Technical"],
        "questionList": [{"question": f"Question {i}?", "type": "Technical"} for i in range(1, questions + 1)],
        "userEmail": "recruiter@example.com",
        "createdAt": datetime(2025, 1, 15, 10, 0),
    }
    interview.update(extra)
    return interview


@pytest.fixture
def database():
    return AsyncMongoMockClient()["recruiter_test"]


@pytest.fixture
def completion():
    return FakeCompletionClient(feedback_response())


@pytest.fixture
def voice_factory():
    return VoiceFactory()


@pytest.fixture
def client(database, completion, voice_factory, monkeypatch):
    # the startup check talks to the database directly
    monkeypatch.setattr(main, "get_database", lambda: database)
    main.app.dependency_overrides[get_database] = lambda: database
    main.app.dependency_overrides[main.get_completion_client] = lambda: completion
    main.app.dependency_overrides[main.get_voice_factory] = lambda: voice_factory
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()
    main.sessions.clear()
    main.calls.clear()


@pytest.fixture
def owner_headers():
    return {"X-User-Email": "Recruiter@Example.com", "X-User-Name": "Rita Recruiter"}
