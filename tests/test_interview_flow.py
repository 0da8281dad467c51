import pytest

from ai_recruiter.errors import ConfigurationError, ExternalServiceError
from ai_recruiter.interview_flow import (
    INTERVIEW_TYPES,
    QUESTION_BANDS,
    coerce_duration_minutes,
    generate_questions,
    question_band,
    select_questions,
    validate_request,
)
from ai_recruiter.schemas import InterviewRequest

from conftest import FakeCompletionClient, questions_response


def _request(**overrides):
    data = {
        "jobPosition": "Full Stack Developer",
        "jobDescription": "React and Node.js, 3+ years",
        "duration": "30 Min",
        "type": ["Technical", "Behavioral"],
    }
    data.update(overrides)
    return InterviewRequest(**data)


def _items(count, types):
    return [{"question": f"Q{i}?", "type": types[i % len(types)]} for i in range(count)]


@pytest.mark.parametrize("value,expected", [(30, 30), ("30", 30), ("30 Min", 30), ("5 min", 5), (45.0, 45)])
def test_coerce_duration(value, expected):
    assert coerce_duration_minutes(value) == expected


@pytest.mark.parametrize("value", ["", None, "soon", 0, -5, True])
def test_coerce_duration_rejects(value):
    with pytest.raises(ConfigurationError):
        coerce_duration_minutes(value)


@pytest.mark.parametrize("minutes,band", [(5, (2, 3)), (15, (4, 6)), (30, (6, 8)), (45, (8, 10)), (60, (10, 12)),
                                          (1, (2, 3)), (20, (4, 6)), (90, (10, 12))])
def test_question_band(minutes, band):
    assert question_band(minutes) == band


def test_validate_request_lists_missing_fields():
    with pytest.raises(ConfigurationError) as exc:
        validate_request(_request(jobPosition="  ", type=[]))
    assert "jobPosition" in str(exc.value)
    assert "type" in str(exc.value)


async def test_missing_fields_fail_before_any_call():
    client = FakeCompletionClient(questions_response(_items(6, ["Technical"])))
    with pytest.raises(ConfigurationError):
        await generate_questions(client, _request(jobDescription=""))
    assert client.prompts == []


async def test_prompt_carries_job_metadata():
    client = FakeCompletionClient(questions_response(_items(7, ["Technical", "Behavioral"])))
    await generate_questions(client, _request())

    prompt = client.prompts[0]
    assert "Full Stack Developer" in prompt
    assert "React and Node.js" in prompt
    assert "Technical, Behavioral" in prompt
    assert "{{{" not in prompt
    assert client.calls[0]["temperature"] == 0.8


async def test_full_stack_thirty_minutes_keeps_generated_order():
    items = _items(7, ["Technical", "Behavioral"])
    client = FakeCompletionClient(questions_response(items))

    result = await generate_questions(client, _request())

    assert result.error is None
    assert [q.question for q in result.questions] == [i["question"] for i in items]
    assert {q.category for q in result.questions} <= {"Technical", "Behavioral"}


async def test_fenced_response_is_accepted():
    client = FakeCompletionClient(questions_response(_items(3, ["Technical"]), fenced=True))
    result = await generate_questions(client, _request(duration=5, type=["Technical"]))
    assert len(result.questions) == 3


async def test_unparseable_response_yields_parse_error():
    client = FakeCompletionClient("Sorry, I can't help with that.")
    result = await generate_questions(client, _request())
    assert result.questions == []
    assert result.error == "parse_error"


async def test_missing_question_list_yields_parse_error():
    client = FakeCompletionClient('{"questions": []}')
    result = await generate_questions(client, _request())
    assert result.error == "parse_error"


async def test_transport_failure_propagates():
    class Failing:
        async def complete(self, *args, **kwargs):
            raise ExternalServiceError("down")

    with pytest.raises(ExternalServiceError):
        await generate_questions(Failing(), _request())


def test_unrequested_types_are_dropped_and_labels_normalized():
    raw = [
        {"question": "Design a cache?", "type": "system design"},
        {"question": "Tell me about a conflict?", "type": "Behavioral"},
        {"question": "Reverse a list?", "type": "problem solving"},
        {"question": "", "type": "System Design"},
        "not a dict",
    ]
    result = select_questions(raw, ["System Design", "Problem-Solving"], 5)
    assert [(q.question, q.category) for q in result.questions] == [
        ("Design a cache?", "System Design"),
        ("Reverse a list?", "Problem-Solving"),
    ]
    assert result.error is None


def test_excess_questions_truncated_to_band():
    result = select_questions(_items(20, INTERVIEW_TYPES), INTERVIEW_TYPES, 60)
    assert len(result.questions) == 12


def test_too_few_questions_flagged():
    result = select_questions(_items(3, ["Technical"]), ["Technical"], 45)
    assert len(result.questions) == 3
    assert result.error == "too_few_questions"


def test_five_minute_single_type_has_at_least_two():
    result = select_questions(_items(2, ["Leadership"]), ["Leadership"], 5)
    assert len(result.questions) >= 2
    assert result.error is None


@pytest.mark.parametrize("minutes", sorted(QUESTION_BANDS))
def test_every_band_selection_respects_bounds_and_types(minutes):
    lo, hi = QUESTION_BANDS[minutes]
    requested = INTERVIEW_TYPES[:2]
    for count in range(lo, hi + 5):
        result = select_questions(_items(count, requested + ["Experience"]), requested, minutes)
        assert len(result.questions) <= hi
        assert all(q.category in requested for q in result.questions)
