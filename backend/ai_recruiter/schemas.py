# backend/ai_recruiter/schemas.py
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Question(CamelModel):
    question: str
    category: str = Field(alias="type")


class InterviewRequest(CamelModel):
    """Job metadata a recruiter submits to get a question set."""
    job_position: str = ""
    job_description: str = ""
    duration: Union[int, str] = ""
    types: List[str] = Field(default_factory=list, alias="type")


class InterviewCreate(InterviewRequest):
    question_list: List[Question] = Field(default_factory=list)


class Interview(InterviewCreate):
    interview_id: str
    user_email: str
    created_at: datetime


class QuestionGenerationResult(CamelModel):
    questions: List[Question] = Field(default_factory=list)
    error: Optional[str] = None


class Turn(CamelModel):
    speaker: str  # "agent" | "candidate"
    text: str
    position: int


class Rating(CamelModel):
    technical_skills: int
    communication: int
    problem_solving: int
    experience: int


class FeedbackResult(CamelModel):
    rating: Rating
    summary: str = ""
    recommendation: str = "Not Available"
    recommendation_msg: str = ""


class Feedback(FeedbackResult):
    feedback_id: str
    interview_id: str
    candidate_name: str
    candidate_email: Optional[str] = None
    job_position: Optional[str] = None
    overall_rating: int
    duration_seconds: int = 0
    created_at: datetime


class SessionStart(CamelModel):
    candidate_name: str
    candidate_email: Optional[str] = None


class SessionEvent(CamelModel):
    """An event forwarded by the candidate's voice client."""
    type: str
    role: Optional[str] = None
    conversation: Optional[List[Dict]] = None
    error: Optional[str] = None


class MuteRequest(CamelModel):
    muted: bool


class UserSettings(CamelModel):
    email_notifications: bool = True
    browser_notifications: bool = False
    weekly_reports: bool = True
    auto_delete_old_interviews: bool = False
    data_retention_days: int = 90
