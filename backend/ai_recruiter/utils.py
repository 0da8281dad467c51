# backend/ai_recruiter/utils.py
import json
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Dict, Iterable, List, Optional, Tuple
from xml.sax.saxutils import escape

import pandas as pd
from bson import ObjectId
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

DATE_RANGES = {"7days": 7, "30days": 30, "90days": 90}

CSV_COLUMNS = ["Job Position", "Duration", "Type", "Questions Count", "Created At", "Interview Link"]


def utcnow() -> datetime:
    """Naive UTC timestamp, the form MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def fix_mongo_ids(doc):
    if isinstance(doc, list):
        return [fix_mongo_ids(x) for x in doc]
    if isinstance(doc, dict):
        return {k: fix_mongo_ids(v) for k, v in doc.items() if k != "_id"}
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, datetime):
        return doc.isoformat()
    return doc


def interview_link(base_url: str, interview_id: str) -> str:
    return f"{base_url.rstrip('/')}/interview/{interview_id}"


def _in_range(interviews: List[Dict], date_range: str, now: datetime) -> List[Dict]:
    days = DATE_RANGES.get(date_range)
    if days is None:
        return interviews
    start = now - timedelta(days=days)
    return [i for i in interviews if i.get("createdAt") and i["createdAt"] >= start]


def export_interviews(
    interviews: List[Dict],
    fmt: str = "json",
    date_range: str = "all",
    selected: Optional[Iterable[str]] = None,
    base_url: str = "",
    now: Optional[datetime] = None,
) -> Tuple[str, str, str]:
    """Serialize interviews for download. Returns (content, filename, mime type)."""
    now = now or utcnow()
    rows = _in_range(interviews, date_range, now)
    if selected is not None:
        wanted = set(selected)
        rows = [i for i in rows if i.get("interviewId") in wanted]

    stamp = now.strftime("%Y-%m-%d")
    if fmt == "csv":
        df = pd.DataFrame(
            [
                [
                    i.get("jobPosition") or "",
                    i.get("duration") or "",
                    "; ".join(i.get("type") or []),
                    len(i.get("questionList") or []),
                    i["createdAt"].isoformat() if i.get("createdAt") else "",
                    interview_link(base_url, i.get("interviewId", "")),
                ]
                for i in rows
            ],
            columns=CSV_COLUMNS,
        )
        return df.to_csv(index=False), f"interviews-export-{stamp}.csv", "text/csv"
    if fmt == "json":
        return json.dumps(fix_mongo_ids(rows), indent=2), f"interviews-export-{stamp}.json", "application/json"
    raise ValueError(f"unsupported export format: {fmt}")


def export_account_data(
    user: Dict,
    interviews: List[Dict],
    settings: Dict,
    now: Optional[datetime] = None,
) -> Tuple[str, str]:
    """Everything a recruiter owns, as one JSON document. Returns (content, filename)."""
    now = now or utcnow()
    data = {
        "user": {"name": user.get("name"), "email": user.get("email")},
        "interviews": interviews,
        "settings": settings,
        "exportDate": now.isoformat(),
    }
    return json.dumps(fix_mongo_ids(data), indent=2), f"ai-recruiter-data-{now.strftime('%Y-%m-%d')}.json"


def _criterion_label(key: str) -> str:
    # "technicalSkills" -> "Technical Skills"
    spaced = "".join(f" {c}" if c.isupper() else c for c in key).strip()
    return spaced[:1].upper() + spaced[1:]


def rating_label(rating: int) -> str:
    if rating >= 8:
        return "Excellent"
    if rating >= 6:
        return "Good"
    return "Needs Improvement"


def generate_pdf_report(feedback: Dict) -> BytesIO:
    """Printable feedback report for one candidate."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=50,
        leftMargin=50,
        topMargin=50,
        bottomMargin=50
    )

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="NormalSmall", fontSize=10, leading=14))

    elements = []
    elements.append(Paragraph("AI Interview Feedback", styles["Title"]))
    elements.append(Spacer(1, 20))

    created = feedback.get("createdAt")
    if isinstance(created, datetime):
        created = created.strftime("%B %d, %Y %H:%M")
    elements.append(Paragraph(f"<b>Candidate:</b> {escape(str(feedback.get('candidateName')))}", styles["Normal"]))
    elements.append(Paragraph(f"<b>Email:</b> {escape(feedback.get('candidateEmail') or 'No email provided')}", styles["Normal"]))
    elements.append(Paragraph(f"<b>Position:</b> {escape(feedback.get('jobPosition') or 'N/A')}", styles["Normal"]))
    elements.append(Paragraph(f"<b>Date:</b> {created}", styles["Normal"]))
    elements.append(Spacer(1, 20))

    overall = feedback.get("overallRating") or 0
    elements.append(Paragraph(f"<b>Overall Rating:</b> {overall}/10 ({rating_label(overall)})", styles["Heading2"]))
    elements.append(Spacer(1, 10))

    table_data = [["Criterion", "Rating", "Assessment"]]
    for key, value in (feedback.get("rating") or {}).items():
        table_data.append([_criterion_label(key), f"{value}/10", rating_label(value)])
    table = Table(table_data, hAlign="CENTER", colWidths=[160, 80, 160])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black)
    ]))
    elements.append(table)
    elements.append(Spacer(1, 20))

    elements.append(Paragraph("Interview Summary", styles["Heading3"]))
    elements.append(Paragraph(escape(feedback.get("summary") or "No summary available."), styles["NormalSmall"]))
    elements.append(Spacer(1, 10))

    elements.append(Paragraph("Hiring Recommendation", styles["Heading3"]))
    elements.append(Paragraph(f"<b>{escape(feedback.get('recommendation') or 'Not Available')}</b>", styles["Normal"]))
    elements.append(Paragraph(escape(feedback.get("recommendationMsg") or "No recommendation message available."),
                              styles["NormalSmall"]))

    doc.build(elements)
    buffer.seek(0)
    return buffer
