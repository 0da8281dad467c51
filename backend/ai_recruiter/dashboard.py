# backend/ai_recruiter/dashboard.py
"""Recruiter-facing views: interview list filtering, candidate list and analytics."""
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List

from .evaluator import NOT_AVAILABLE
from .interview_flow import coerce_duration_minutes
from .errors import ConfigurationError


def _duration(interview: Dict) -> int:
    try:
        return coerce_duration_minutes(interview.get("duration"))
    except ConfigurationError:
        return 0


def filter_interviews(
    interviews: List[Dict],
    search: str = "",
    interview_type: str = "all",
    sort: str = "newest",
) -> List[Dict]:
    rows = list(interviews)

    term = (search or "").strip().lower()
    if term:
        rows = [
            i for i in rows
            if term in (i.get("jobPosition") or "").lower() or term in (i.get("jobDescription") or "").lower()
        ]

    if interview_type and interview_type != "all":
        rows = [i for i in rows if interview_type in (i.get("type") or [])]

    if sort == "oldest":
        rows.sort(key=lambda i: i.get("createdAt") or datetime.min)
    elif sort == "position":
        rows.sort(key=lambda i: (i.get("jobPosition") or "").lower())
    elif sort == "duration":
        rows.sort(key=_duration, reverse=True)
    else:
        rows.sort(key=lambda i: i.get("createdAt") or datetime.min, reverse=True)
    return rows


def build_candidates(
    feedback: List[Dict],
    interviews: List[Dict],
    search: str = "",
    status: str = "all",
    sort: str = "newest",
) -> List[Dict]:
    """One row per unique (name, email) with a completed session."""
    positions = {i.get("interviewId"): i.get("jobPosition") for i in interviews}

    candidates: List[Dict] = []
    seen = set()
    # newest first, so the surviving duplicate is the latest attempt
    for f in sorted(feedback, key=lambda f: f.get("createdAt") or datetime.min, reverse=True):
        key = (f.get("candidateName"), f.get("candidateEmail"))
        if key in seen:
            continue
        seen.add(key)
        duration_seconds = f.get("durationSeconds")
        candidates.append({
            "id": f.get("feedbackId"),
            "name": f.get("candidateName") or "",
            "email": f.get("candidateEmail") or "No email provided",
            "position": f.get("jobPosition") or positions.get(f.get("interviewId")) or "",
            "interviewId": f.get("interviewId"),
            "interviewDate": f.get("createdAt"),
            "status": "completed",
            "rating": f.get("overallRating"),
            "duration": duration_seconds // 60 if duration_seconds else None,
            "feedback": f.get("summary") or "No feedback available",
            "recommendation": f.get("recommendation") or NOT_AVAILABLE,
        })

    term = (search or "").strip().lower()
    if term:
        candidates = [
            c for c in candidates
            if term in c["name"].lower() or term in c["email"].lower() or term in c["position"].lower()
        ]
    if status and status != "all":
        candidates = [c for c in candidates if c["status"] == status]

    if sort == "oldest":
        candidates.sort(key=lambda c: c["interviewDate"] or datetime.min)
    elif sort == "rating":
        candidates.sort(key=lambda c: c["rating"] or 0, reverse=True)
    elif sort == "name":
        candidates.sort(key=lambda c: c["name"].lower())
    else:
        candidates.sort(key=lambda c: c["interviewDate"] or datetime.min, reverse=True)
    return candidates


def _month_start(now: datetime, months_back: int) -> datetime:
    year, month = now.year, now.month - months_back
    while month <= 0:
        month += 12
        year -= 1
    while month > 12:
        month -= 12
        year += 1
    return datetime(year, month, 1)


def compute_analytics(
    interviews: List[Dict],
    feedback: List[Dict],
    sessions: List[Dict],
    days: int,
    now: datetime,
) -> Dict:
    since = now - timedelta(days=days)
    recent = [i for i in interviews if (i.get("createdAt") or datetime.min) >= since]
    recent_ids = {i.get("interviewId") for i in recent}
    recent_feedback = [f for f in feedback if f.get("interviewId") in recent_ids]
    recent_sessions = [s for s in sessions if s.get("interviewId") in recent_ids]

    ratings = [f["overallRating"] for f in recent_feedback if f.get("overallRating") is not None]
    avg_rating = round(sum(ratings) / len(ratings), 1) if ratings else 0
    completed = sum(1 for s in recent_sessions if s.get("outcome") == "feedback")
    completion_rate = round(completed / len(recent_sessions) * 100) if recent_sessions else 0

    positions = Counter(i.get("jobPosition") or "Unknown" for i in recent)
    top_positions = [{"position": p, "count": c} for p, c in positions.most_common(5)]

    type_counts: Counter = Counter()
    for i in recent:
        types = i.get("type") or ["General"]
        if isinstance(types, str):
            types = [types]
        type_counts.update(types)
    interview_types = [
        {"type": t, "count": c, "percentage": round(c / len(recent) * 100)}
        for t, c in type_counts.most_common()
    ]

    monthly = []
    for back in range(5, -1, -1):
        start = _month_start(now, back)
        end = _month_start(now, back - 1)
        count = sum(1 for i in interviews if i.get("createdAt") and start <= i["createdAt"] < end)
        monthly.append({"month": start.strftime("%b"), "count": count})

    return {
        "totalInterviews": len(recent),
        "totalCandidates": len({(f.get("candidateName"), f.get("candidateEmail")) for f in recent_feedback}),
        "avgRating": avg_rating,
        "completionRate": completion_rate,
        "monthlyData": monthly,
        "topPositions": top_positions,
        "interviewTypes": interview_types,
        "generatedAt": now.isoformat(),
    }
