# backend/ai_recruiter/evaluator.py
import json
import math
import logging
from typing import Any, Dict, List

from .config import FEEDBACK_MODEL
from .errors import ConfigurationError, ParseError
from .llm import CompletionClient, parse_json_content
from .prompts import FEEDBACK_PROMPT, render_prompt
from .schemas import FeedbackResult, Rating, Turn

logger = logging.getLogger("ai-recruiter.feedback")

RATING_CRITERIA = ["technicalSkills", "communication", "problemSolving", "experience"]

HIRE = "Hire"
CONSIDER = "Consider"
DO_NOT_HIRE = "Do Not Hire"
NOT_AVAILABLE = "Not Available"

_RECOMMENDATIONS = {
    "hire": HIRE,
    "consider": CONSIDER,
    "donothire": DO_NOT_HIRE,
    "nohire": DO_NOT_HIRE,
    "nothire": DO_NOT_HIRE,
}


def normalize_recommendation(value: Any) -> str:
    """Map a model's recommendation onto the known labels, else "Not Available"."""
    if not isinstance(value, str):
        return NOT_AVAILABLE
    key = "".join(ch for ch in value.lower() if ch.isalpha())
    return _RECOMMENDATIONS.get(key, NOT_AVAILABLE)


def overall_rating(rating: Dict[str, int]) -> int:
    """Mean of the criteria, rounded half up."""
    values = list(rating.values())
    if not values:
        return 0
    return int(math.floor(sum(values) / len(values) + 0.5))


def serialize_transcript(turns: List[Turn]) -> str:
    return json.dumps([{"role": t.speaker, "content": t.text} for t in turns], ensure_ascii=False)


def _score(value: Any, criterion: str) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        raise ParseError(f"rating {criterion!r} is not a number: {value!r}")
    return max(1, min(10, score))


def parse_feedback(content: str) -> FeedbackResult:
    data = parse_json_content(content)

    raw_rating = data.get("rating")
    if not isinstance(raw_rating, dict):
        raise ParseError("feedback has no rating object", raw=content)
    missing = [c for c in RATING_CRITERIA if c not in raw_rating]
    if missing:
        raise ParseError(f"feedback rating is missing {', '.join(missing)}", raw=content)

    rating = Rating(**{c: _score(raw_rating[c], c) for c in RATING_CRITERIA})
    return FeedbackResult(
        rating=rating,
        # older prompts produced the misspelt "summery"
        summary=str(data.get("summary") or data.get("summery") or ""),
        recommendation=normalize_recommendation(data.get("Recommendation", data.get("recommendation"))),
        recommendation_msg=str(data.get("RecommendationMsg") or data.get("recommendationMsg") or ""),
    )


async def generate_feedback(client: CompletionClient, turns: List[Turn]) -> FeedbackResult:
    """Score a transcript. Raises ConfigurationError, ExternalServiceError or ParseError."""
    if not turns:
        raise ConfigurationError("cannot generate feedback for an empty transcript")

    prompt = render_prompt(FEEDBACK_PROMPT, conversation=serialize_transcript(turns))
    content = await client.complete(prompt, model=FEEDBACK_MODEL)
    result = parse_feedback(content)
    logger.info("Feedback generated: recommendation=%s", result.recommendation)
    return result
