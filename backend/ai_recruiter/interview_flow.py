# backend/ai_recruiter/interview_flow.py
import re
import logging
from typing import Dict, List, Optional, Tuple

from .config import QUESTIONS_MODEL
from .errors import ConfigurationError, ParseError
from .llm import CompletionClient, parse_json_content
from .prompts import QUESTIONS_PROMPT, render_prompt
from .schemas import InterviewRequest, Question, QuestionGenerationResult

logger = logging.getLogger("ai-recruiter.questions")

INTERVIEW_TYPES = [
    "Technical",
    "Behavioral",
    "Experience",
    "Problem-Solving",
    "System Design",
    "Leadership",
]

DURATION_OPTIONS = [5, 15, 30, 45, 60]

# duration option (minutes) -> (min questions, max questions)
QUESTION_BANDS: Dict[int, Tuple[int, int]] = {
    5: (2, 3),
    15: (4, 6),
    30: (6, 8),
    45: (8, 10),
    60: (10, 12),
}


def coerce_duration_minutes(value) -> int:
    """Read a duration such as 30, "30" or "30 Min" as whole minutes."""
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid interview duration: {value!r}")
    if isinstance(value, (int, float)):
        minutes = int(value)
    else:
        match = re.search(r"\d+", str(value or ""))
        if not match:
            raise ConfigurationError(f"invalid interview duration: {value!r}")
        minutes = int(match.group())
    if minutes <= 0:
        raise ConfigurationError(f"interview duration must be positive, got {value!r}")
    return minutes


def question_band(minutes: int) -> Tuple[int, int]:
    option = DURATION_OPTIONS[0]
    for candidate in DURATION_OPTIONS:
        if candidate <= minutes:
            option = candidate
    return QUESTION_BANDS[option]


def _type_key(label: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (label or "").lower())


def validate_request(req: InterviewRequest) -> int:
    """Fail fast on missing job metadata. Returns the duration in minutes."""
    missing = []
    if not (req.job_position or "").strip():
        missing.append("jobPosition")
    if not (req.job_description or "").strip():
        missing.append("jobDescription")
    if req.duration in (None, ""):
        missing.append("duration")
    if not [t for t in req.types if t and t.strip()]:
        missing.append("type")
    if missing:
        raise ConfigurationError(f"missing required fields: {', '.join(missing)}")
    return coerce_duration_minutes(req.duration)


def build_questions_prompt(req: InterviewRequest, minutes: int) -> str:
    return render_prompt(
        QUESTIONS_PROMPT,
        jobTitle=req.job_position.strip(),
        jobDescription=req.job_description.strip(),
        interviewType=", ".join(req.types),
        duration=minutes,
    )


def select_questions(raw: List, types: List[str], minutes: int) -> QuestionGenerationResult:
    """Keep questions whose category is a requested type, capped to the duration band."""
    allowed = {_type_key(t): t for t in types}
    lo, hi = question_band(minutes)

    questions: List[Question] = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        text = str(item.get("question") or "").strip()
        category = allowed.get(_type_key(str(item.get("type") or "")))
        if not text:
            continue
        if category is None:
            logger.warning("Dropping question with unrequested type %r", item.get("type"))
            continue
        questions.append(Question(question=text, category=category))

    if len(questions) > hi:
        logger.info("Truncating %d generated questions to %d", len(questions), hi)
        questions = questions[:hi]

    error: Optional[str] = None
    if len(questions) < lo:
        logger.warning("Only %d usable questions for a %d minute interview (expected %d-%d)",
                       len(questions), minutes, lo, hi)
        error = "too_few_questions"
    return QuestionGenerationResult(questions=questions, error=error)


async def generate_questions(client: CompletionClient, req: InterviewRequest) -> QuestionGenerationResult:
    """
    Generate an ordered question list for the interview described by ``req``.

    Raises ConfigurationError before any network call when the request is
    incomplete. A response that is not parseable JSON yields an empty list with
    ``error="parse_error"``. ExternalServiceError from the client propagates.
    """
    minutes = validate_request(req)
    prompt = build_questions_prompt(req, minutes)

    logger.info("Generating questions for: %s", req.job_position)
    content = await client.complete(prompt, model=QUESTIONS_MODEL, temperature=0.8, max_tokens=2000)

    try:
        data = parse_json_content(content)
    except ParseError:
        logger.exception("Failed to parse interview questions")
        return QuestionGenerationResult(questions=[], error="parse_error")

    raw = data.get("interviewQuestions")
    if not isinstance(raw, list):
        logger.warning("Response has no interviewQuestions list")
        return QuestionGenerationResult(questions=[], error="parse_error")

    return select_questions(raw, req.types, minutes)
