# backend/ai_recruiter/main.py
import asyncio
import logging
from functools import partial
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response, StreamingResponse

# local modules
from .auth import AuthSession
from .config import HOST_URL, SESSION_GRACE_SECONDS, SESSION_TICK_SECONDS, VAPI_SERVER_URL
from .dashboard import build_candidates, compute_analytics, filter_interviews
from .db import get_database
from .errors import ConfigurationError, ExternalServiceError
from .evaluator import generate_feedback
from .interview_flow import INTERVIEW_TYPES, generate_questions, validate_request
from .llm import CompletionClient
from .schemas import (
    InterviewCreate,
    InterviewRequest,
    MuteRequest,
    SessionEvent,
    SessionStart,
    UserSettings,
)
from .session import InterviewSession
from .store import FeedbackStore, InterviewStore, SessionStore, SettingsStore, UserStore
from .utils import (
    export_account_data,
    export_interviews,
    fix_mongo_ids,
    generate_pdf_report,
    interview_link,
    utcnow,
)
from .voice import VapiClient, translate_server_message

# ------ logging ------
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ai-recruiter")

app = FastAPI(title="AI Recruiter", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# live sessions, owned by this process
sessions: Dict[str, InterviewSession] = {}
# voice call id -> session id, for server-URL messages
calls: Dict[str, str] = {}


# ------------------------------
# Dependencies
# ------------------------------

def get_completion_client() -> CompletionClient:
    try:
        return CompletionClient()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))


def get_voice_factory():
    return VapiClient


def get_auth_session(
    x_user_email: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_picture: Optional[str] = Header(None),
) -> AuthSession:
    return AuthSession.from_identity(x_user_email, x_user_name, x_user_picture)


def require_owner(auth: AuthSession = Depends(get_auth_session)) -> str:
    if not auth.is_authenticated:
        raise HTTPException(status_code=401, detail="Sign in required")
    return auth.require_email()


def get_session(session_id: str) -> InterviewSession:
    session = sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _evict(session_id: str) -> None:
    sessions.pop(session_id, None)
    for call_id in [c for c, s in calls.items() if s == session_id]:
        calls.pop(call_id, None)
    logger.info("Session %s evicted", session_id)


def _schedule_eviction(session: InterviewSession) -> None:
    """Drop a finished session once late status polls and webhooks have had time to land."""
    if SESSION_GRACE_SECONDS <= 0:
        _evict(session.session_id)
        return
    asyncio.get_running_loop().call_later(SESSION_GRACE_SECONDS, _evict, session.session_id)


@app.on_event("startup")
async def startup_event():
    logger.info("Starting AI Recruiter backend.")
    # best-effort check that the database is reachable
    try:
        await get_database()["interviews"].find_one({}, projection={"_id": 1})
        logger.info("Mongo collections appear accessible.")
    except Exception as e:
        logger.warning("DB startup check failed (may still be okay): %s", e)


@app.on_event("shutdown")
async def shutdown_event():
    for session in sessions.values():
        session.shutdown()


@app.get("/health")
async def health():
    return {"status": "ok", "time": utcnow().isoformat(), "liveSessions": len(sessions)}


# ------------------------------
# Auth & settings
# ------------------------------

@app.post("/auth/session")
async def sign_in(auth: AuthSession = Depends(get_auth_session), database=Depends(get_database)):
    if not auth.is_authenticated:
        raise HTTPException(status_code=401, detail="Sign in required")
    user = await UserStore(database).ensure_user(auth.email, auth.name, auth.picture)
    return {"status": auth.status.value, "user": fix_mongo_ids(user)}


@app.delete("/auth/session")
async def sign_out(auth: AuthSession = Depends(get_auth_session)):
    auth.sign_out()
    return {"status": auth.status.value}


@app.get("/settings")
async def get_settings(owner: str = Depends(require_owner), database=Depends(get_database)):
    settings = await SettingsStore(database).get_settings(owner)
    return settings.model_dump(by_alias=True)


@app.put("/settings")
async def save_settings(settings: UserSettings, owner: str = Depends(require_owner), database=Depends(get_database)):
    saved = await SettingsStore(database).save_settings(owner, settings)
    logger.info("Settings saved for %s", owner)
    return saved.model_dump(by_alias=True)


@app.get("/settings/export")
async def export_my_data(
    auth: AuthSession = Depends(get_auth_session),
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    user = await UserStore(database).get_user(owner) or {"email": owner, "name": auth.name}
    interviews = await InterviewStore(database).list_interviews(owner)
    settings = await SettingsStore(database).get_settings(owner)
    content, filename = export_account_data(user, interviews, settings.model_dump(by_alias=True))
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.delete("/account")
async def delete_account(
    auth: AuthSession = Depends(get_auth_session),
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    """Remove everything the recruiter owns, then sign them out."""
    interview_store = InterviewStore(database)
    ids = [i["interviewId"] for i in await interview_store.list_interviews(owner)]
    deleted_feedback = await FeedbackStore(database).delete_for_interviews(ids)
    await SessionStore(database).delete_for_interviews(ids)
    deleted_interviews = await interview_store.delete_owned(owner)
    await SettingsStore(database).delete_settings(owner)
    await UserStore(database).delete_user(owner)

    auth.sign_out()
    logger.info("Account data deleted for %s", owner)
    return {
        "status": auth.status.value,
        "deletedInterviews": deleted_interviews,
        "deletedFeedback": deleted_feedback,
    }


# ------------------------------
# Interviews
# ------------------------------

@app.get("/interview-types")
async def interview_types():
    return {"types": INTERVIEW_TYPES}


@app.post("/interviews/questions")
async def create_questions(
    payload: InterviewRequest,
    owner: str = Depends(require_owner),
    client: CompletionClient = Depends(get_completion_client),
):
    try:
        result = await generate_questions(client, payload)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExternalServiceError as e:
        raise HTTPException(status_code=502, detail=f"Failed to generate questions: {e}")
    return result.model_dump(by_alias=True)


@app.post("/interviews")
async def create_interview(payload: InterviewCreate, owner: str = Depends(require_owner), database=Depends(get_database)):
    try:
        validate_request(payload)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not payload.question_list:
        raise HTTPException(status_code=400, detail="questionList must not be empty")

    record = payload.model_dump(by_alias=True)
    record["userEmail"] = owner
    interview_id = await InterviewStore(database).create_interview(record)
    return {"interviewId": interview_id, "link": interview_link(HOST_URL, interview_id)}


@app.get("/interviews")
async def list_interviews(
    search: str = "",
    type: str = "all",
    sort: str = Query("newest", pattern="^(newest|oldest|position|duration)$"),
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    interviews = await InterviewStore(database).list_interviews(owner)
    rows = filter_interviews(interviews, search=search, interview_type=type, sort=sort)
    for row in rows:
        row["link"] = interview_link(HOST_URL, row["interviewId"])
    return fix_mongo_ids(rows)


@app.get("/interviews/{interview_id}")
async def get_interview(interview_id: str, database=Depends(get_database)):
    """Public join view: what a candidate holding the link may see."""
    interview = await InterviewStore(database).get_interview(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Incorrect interview link")
    return fix_mongo_ids({
        "interviewId": interview["interviewId"],
        "jobPosition": interview.get("jobPosition"),
        "jobDescription": interview.get("jobDescription"),
        "duration": interview.get("duration"),
        "type": interview.get("type"),
    })


@app.delete("/interviews/{interview_id}")
async def delete_interview(interview_id: str, owner: str = Depends(require_owner), database=Depends(get_database)):
    deleted = await InterviewStore(database).delete_interview(interview_id, owner_email=owner)
    if not deleted:
        raise HTTPException(status_code=404, detail="Interview not found")
    logger.info("Deleted interview id=%s", interview_id)
    return {"deleted": interview_id}


# ------------------------------
# Live sessions
# ------------------------------

@app.post("/interviews/{interview_id}/sessions")
async def start_session(
    interview_id: str,
    payload: SessionStart,
    database=Depends(get_database),
    client: CompletionClient = Depends(get_completion_client),
    voice_factory=Depends(get_voice_factory),
):
    candidate_name = payload.candidate_name.strip()
    if not candidate_name:
        raise HTTPException(status_code=400, detail="candidateName is required")
    interview = await InterviewStore(database).get_interview(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Incorrect interview link")

    logger.info("Session requested for interview %s by %s", interview_id, candidate_name)
    session = InterviewSession(
        interview,
        candidate_name,
        payload.candidate_email,
        voice_factory=voice_factory,
        feedback_generator=partial(generate_feedback, client),
        feedback_store=FeedbackStore(database),
        session_store=SessionStore(database),
        server_url=VAPI_SERVER_URL,
        tick_seconds=SESSION_TICK_SECONDS,
        on_finish=_schedule_eviction,
    )
    sessions[session.session_id] = session
    await session.start()

    call_id = session.call_info.get("callId")
    # a session that already finished and was evicted gets no call mapping
    if call_id and session.session_id in sessions:
        calls[call_id] = session.session_id
    return fix_mongo_ids(session.snapshot())


@app.get("/sessions/{session_id}")
async def session_status(session: InterviewSession = Depends(get_session)):
    return fix_mongo_ids(session.snapshot())


@app.post("/sessions/{session_id}/events")
async def session_event(event: SessionEvent, session: InterviewSession = Depends(get_session)):
    await session.handle_event(event.type, event.model_dump(exclude={"type"}))
    return fix_mongo_ids(session.snapshot())


@app.post("/sessions/{session_id}/end")
async def end_session(session: InterviewSession = Depends(get_session)):
    await session.end("user")
    return fix_mongo_ids(session.snapshot())


@app.post("/sessions/{session_id}/mute")
async def mute_session(payload: MuteRequest, session: InterviewSession = Depends(get_session)):
    try:
        await session.set_muted(payload.muted)
    except ExternalServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"muted": session.muted}


@app.post("/vapi/webhook")
async def vapi_webhook(request: Request):
    """Server-URL messages from the voice service."""
    try:
        body = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    message = body.get("message") if isinstance(body, dict) else None
    if not isinstance(message, dict):
        raise HTTPException(status_code=400, detail="Payload must include 'message'")

    call = message.get("call") or {}
    metadata = (call.get("assistant") or {}).get("metadata") or {}
    session_id = calls.get(call.get("id")) or metadata.get("sessionId")
    session = sessions.get(session_id) if session_id else None
    if session is None:
        logger.info("Webhook %s for unknown call %s", message.get("type"), call.get("id"))
        return {"ok": True}

    translated = translate_server_message(message)
    if translated:
        event, event_payload = translated
        await session.handle_event(event, event_payload)
    return {"ok": True}


# ------------------------------
# Feedback
# ------------------------------

async def _owned_interview_ids(database, owner: str) -> List[str]:
    return [i["interviewId"] for i in await InterviewStore(database).list_interviews(owner)]


async def _owned_feedback(database, owner: str, **keys) -> Dict:
    """Newest feedback matching ``keys`` on one of the owner's interviews, else 404."""
    ids = await _owned_interview_ids(database, owner)
    doc = await FeedbackStore(database).find_feedback(interview_ids=ids, **keys)
    if not doc:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return doc


@app.get("/feedback")
async def find_feedback(
    interview_id: Optional[str] = None,
    candidate_email: Optional[str] = None,
    candidate_name: Optional[str] = None,
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    if not (interview_id or candidate_email or candidate_name):
        raise HTTPException(status_code=400, detail="Provide interview_id or a candidate identity")
    doc = await _owned_feedback(
        database, owner,
        interview_id=interview_id, candidate_email=candidate_email, candidate_name=candidate_name,
    )
    return fix_mongo_ids(doc)


@app.get("/feedback/{feedback_id}/pdf")
async def feedback_pdf(feedback_id: str, owner: str = Depends(require_owner), database=Depends(get_database)):
    doc = await _owned_feedback(database, owner, feedback_id=feedback_id)
    buffer = generate_pdf_report(doc)
    filename = f"{doc.get('candidateName') or 'candidate'}_feedback.pdf"
    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/feedback/{interview_id}/{feedback_id}")
async def get_feedback(
    interview_id: str,
    feedback_id: str,
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    doc = await _owned_feedback(database, owner, interview_id=interview_id, feedback_id=feedback_id)
    return fix_mongo_ids(doc)


# ------------------------------
# Recruiter dashboards
# ------------------------------

async def _owner_data(database, owner: str):
    interviews = await InterviewStore(database).list_interviews(owner)
    ids = [i["interviewId"] for i in interviews]
    feedback = await FeedbackStore(database).list_feedback(ids)
    return interviews, feedback


@app.get("/candidates")
async def list_candidates(
    search: str = "",
    status: str = "all",
    sort: str = Query("newest", pattern="^(newest|oldest|rating|name)$"),
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    interviews, feedback = await _owner_data(database, owner)
    return fix_mongo_ids(build_candidates(feedback, interviews, search=search, status=status, sort=sort))


@app.get("/analytics")
async def analytics(
    days: int = Query(30, ge=1, le=3650),
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    interviews, feedback = await _owner_data(database, owner)
    session_docs = await SessionStore(database).list_sessions([i["interviewId"] for i in interviews])
    return compute_analytics(interviews, feedback, session_docs, days=days, now=utcnow())


@app.get("/export")
async def export(
    format: str = Query("json", pattern="^(json|csv)$"),
    date_range: str = Query("all", pattern="^(all|7days|30days|90days)$"),
    ids: Optional[List[str]] = Query(None),
    owner: str = Depends(require_owner),
    database=Depends(get_database),
):
    interviews = await InterviewStore(database).list_interviews(owner)
    content, filename, mime = export_interviews(
        interviews, fmt=format, date_range=date_range, selected=ids, base_url=HOST_URL
    )
    return Response(
        content=content,
        media_type=mime,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
