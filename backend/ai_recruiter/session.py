# backend/ai_recruiter/session.py
"""
Live interview session state machine.

One ``InterviewSession`` drives one candidate through one voice call:

    idle -> initializing -> connecting -> live -> ending -> feedback_pending -> done
    idle | initializing | connecting | live -> errored -> done

Voice events arrive in any order. Transcript updates are full snapshots, so the
latest one simply replaces the previous until teardown begins. Teardown
(timer cancel, ``stop()``, feedback generation) is gated by a single-shot
flag, so whichever of manual end, duration timeout, remote call-end or error
fires first wins and the rest are no-ops.
"""
import uuid
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import ConfigurationError, RecruiterError
from .evaluator import overall_rating
from .interview_flow import coerce_duration_minutes
from .schemas import FeedbackResult, Turn
from .utils import utcnow
from . import voice as events

logger = logging.getLogger("ai-recruiter.session")

DASHBOARD = "/dashboard"

FeedbackGenerator = Callable[[List[Turn]], Awaitable[FeedbackResult]]


class SessionState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    CONNECTING = "connecting"
    LIVE = "live"
    ENDING = "ending"
    FEEDBACK_PENDING = "feedback_pending"
    DONE = "done"
    ERRORED = "errored"


def conversation_to_turns(conversation: List[Dict[str, Any]]) -> List[Turn]:
    """Convert a voice-service conversation snapshot, skipping system messages."""
    turns: List[Turn] = []
    for entry in conversation:
        if not isinstance(entry, dict):
            continue
        speaker = events.normalize_role(entry.get("role"))
        text = entry.get("content") or entry.get("message") or ""
        if speaker is None or not str(text).strip():
            continue
        turns.append(Turn(speaker=speaker, text=str(text).strip(), position=len(turns)))
    return turns


class InterviewSession:
    def __init__(
        self,
        interview: Dict[str, Any],
        candidate_name: str,
        candidate_email: Optional[str],
        voice_factory: Callable[[], Any],
        feedback_generator: FeedbackGenerator,
        feedback_store,
        session_store=None,
        server_url: Optional[str] = None,
        tick_seconds: float = 1.0,
        on_finish: Optional[Callable[["InterviewSession"], None]] = None,
    ):
        self.session_id = uuid.uuid4().hex
        self.interview = interview
        self.interview_id = interview.get("interviewId")
        self.candidate_name = candidate_name
        self.candidate_email = candidate_email

        self._voice_factory = voice_factory
        self._feedback_generator = feedback_generator
        self._feedback_store = feedback_store
        self._session_store = session_store
        self.server_url = server_url
        self.tick_seconds = tick_seconds
        self._on_finish = on_finish

        self.state = SessionState.IDLE
        self.history: List[SessionState] = [self.state]
        self.voice = None
        self.call_info: Dict[str, Any] = {}
        self.duration_minutes: Optional[int] = None
        self.started_at = None
        self.ended_at = None
        self.elapsed_seconds = 0
        self.transcript: List[Turn] = []
        self.speaking: Optional[str] = None
        self.muted = False

        self.end_reason: Optional[str] = None
        self.error: Optional[str] = None
        self.anomalies: List[str] = []
        self.feedback_id: Optional[str] = None
        self.outcome: Optional[str] = None
        self.redirect: Optional[str] = None

        self._timer: Optional[asyncio.Task] = None
        self._teardown_started = False

    # ----------------------------
    # Lifecycle
    # ----------------------------

    def _transition(self, state: SessionState) -> None:
        logger.info("Session %s: %s -> %s", self.session_id, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    async def start(self) -> None:
        if self.state is not SessionState.IDLE:
            logger.warning("Session %s already started (state=%s)", self.session_id, self.state.value)
            return

        if not self.interview.get("questionList"):
            await self._fail("missing configuration: interview has no questions")
            return
        try:
            self.duration_minutes = coerce_duration_minutes(self.interview.get("duration"))
        except ConfigurationError as e:
            await self._fail(f"missing configuration: {e}")
            return

        self._transition(SessionState.INITIALIZING)
        try:
            self.voice = self._voice_factory()
            assistant = events.build_assistant_config(
                self.interview,
                self.candidate_name,
                self.duration_minutes,
                server_url=self.server_url,
                metadata={"sessionId": self.session_id, "interviewId": self.interview_id},
            )
        except RecruiterError as e:
            await self._fail(str(e))
            return
        except Exception as e:
            logger.exception("Session %s: voice client setup failed", self.session_id)
            await self._fail(f"voice client setup failed: {e}")
            return

        # call-start can arrive while start() is still in flight
        self._transition(SessionState.CONNECTING)
        try:
            self.call_info = await asyncio.to_thread(self.voice.start, assistant) or {}
        except RecruiterError as e:
            await self._fail(str(e))
        except Exception as e:
            logger.exception("Session %s: voice call failed to start", self.session_id)
            await self._fail(f"voice call failed to start: {e}")

    async def handle_event(self, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        payload = payload or {}
        if event == events.CALL_START:
            self._on_call_start()
        elif event == events.SPEECH_START:
            self.speaking = events.normalize_role(payload.get("role")) or "agent"
        elif event == events.SPEECH_END:
            self.speaking = "agent" if events.normalize_role(payload.get("role")) == "candidate" else "candidate"
        elif event == events.MESSAGE:
            self.update_transcript(payload.get("conversation"))
        elif event == events.CALL_END:
            await self.end("call-ended")
        elif event == events.ERROR:
            await self._fail(payload.get("error") or "voice service error")
        else:
            logger.warning("Session %s: ignoring unknown event %r", self.session_id, event)

    def _on_call_start(self) -> None:
        if self.state is not SessionState.CONNECTING:
            logger.warning("Session %s: call-start in state %s ignored", self.session_id, self.state.value)
            return
        self._transition(SessionState.LIVE)
        self.started_at = utcnow()
        self.elapsed_seconds = 0
        self._timer = asyncio.create_task(self._run_timer())

    def update_transcript(self, conversation) -> None:
        # frozen once teardown begins; feedback and the stored record use that snapshot
        if self._teardown_started:
            self.anomalies.append("transcript snapshot received after the call ended was dropped")
            logger.warning("Session %s: late transcript snapshot dropped (state=%s)",
                           self.session_id, self.state.value)
            return
        if not isinstance(conversation, list):
            logger.warning("Session %s: transcript update without a conversation list", self.session_id)
            return
        self.transcript = conversation_to_turns(conversation)

    # ----------------------------
    # Timer
    # ----------------------------

    async def _run_timer(self) -> None:
        while self.state is SessionState.LIVE:
            await asyncio.sleep(self.tick_seconds)
            await self.tick()

    async def tick(self) -> None:
        if self.state is not SessionState.LIVE:
            return
        self.elapsed_seconds += 1
        if self.elapsed_seconds >= self.duration_minutes * 60:
            logger.info("Session %s reached its %d minute limit", self.session_id, self.duration_minutes)
            await self.end("duration")

    def _cancel_timer(self) -> None:
        task, self._timer = self._timer, None
        # end() may run inside the timer task itself; it exits on the next state check
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    # ----------------------------
    # Termination
    # ----------------------------

    async def end(self, reason: str = "user") -> None:
        """
        Stop the call and produce feedback. Safe to call any number of times.

        Accepted from connecting as well as live, so a candidate can hang up
        before the voice service confirms the call.
        """
        if self._teardown_started:
            logger.info("Session %s: end(%s) ignored, teardown already started", self.session_id, reason)
            return
        if self.state not in (SessionState.CONNECTING, SessionState.LIVE):
            logger.warning("Session %s: end(%s) in state %s is a no-op", self.session_id, reason, self.state.value)
            return
        self._teardown_started = True
        self.end_reason = reason

        self._transition(SessionState.ENDING)
        self._cancel_timer()
        await self._release_voice()

        if not self.transcript:
            self.anomalies.append("call ended with an empty transcript")
            logger.warning("Session %s ended with an empty transcript; skipping feedback", self.session_id)
            await self._finish(DASHBOARD, "no_transcript")
            return

        self._transition(SessionState.FEEDBACK_PENDING)
        self.feedback_id = await self._generate_feedback()
        if self.feedback_id:
            await self._finish(f"/feedback/{self.interview_id}/{self.feedback_id}", "feedback")
        else:
            await self._finish(DASHBOARD, "feedback_failed")

    async def _fail(self, reason: str) -> None:
        if self._teardown_started:
            logger.info("Session %s: error %r after teardown ignored", self.session_id, reason)
            return
        if self.state not in (SessionState.IDLE, SessionState.INITIALIZING,
                              SessionState.CONNECTING, SessionState.LIVE):
            return
        self._teardown_started = True
        self.error = reason
        logger.error("Session %s failed: %s", self.session_id, reason)

        self._transition(SessionState.ERRORED)
        self._cancel_timer()
        await self._release_voice()
        await self._finish(f"/interview/{self.interview_id}/error", "error")

    async def _release_voice(self) -> None:
        if self.voice is None:
            return
        # teardown continues whatever the voice client raises
        try:
            await asyncio.to_thread(self.voice.stop)
        except Exception:
            logger.exception("Session %s: failed to stop voice call", self.session_id)

    async def _generate_feedback(self) -> Optional[str]:
        try:
            result = await self._feedback_generator(list(self.transcript))
        except Exception:
            logger.exception("Session %s: feedback generation failed", self.session_id)
            return None

        doc = result.model_dump(by_alias=True)
        record = {
            "feedbackId": uuid.uuid4().hex,
            "interviewId": self.interview_id,
            "candidateName": self.candidate_name,
            "candidateEmail": self.candidate_email,
            "jobPosition": self.interview.get("jobPosition"),
            "rating": doc["rating"],
            "overallRating": overall_rating(doc["rating"]),
            "summary": doc["summary"],
            "recommendation": doc["recommendation"],
            "recommendationMsg": doc["recommendationMsg"],
            "durationSeconds": self.elapsed_seconds,
            "createdAt": utcnow(),
        }
        try:
            return await self._feedback_store.save_feedback(record)
        except Exception:
            logger.exception("Session %s: failed to store feedback", self.session_id)
            return None

    async def _finish(self, redirect: str, outcome: str) -> None:
        self.redirect = redirect
        self.outcome = outcome
        self.ended_at = utcnow()
        self._transition(SessionState.DONE)

        if self._session_store is not None:
            record = self.snapshot()
            record.pop("webCallUrl", None)
            # best effort, a lost session record must not trap the candidate
            try:
                await self._session_store.save_session(record)
            except Exception:
                logger.exception("Session %s: failed to persist session record", self.session_id)

        if self._on_finish is not None:
            self._on_finish(self)

    # ----------------------------
    # Controls / views
    # ----------------------------

    async def set_muted(self, muted: bool) -> None:
        if self.state not in (SessionState.CONNECTING, SessionState.LIVE) or self.voice is None:
            logger.warning("Session %s: mute in state %s ignored", self.session_id, self.state.value)
            return
        set_muted = getattr(self.voice, "set_muted", None)
        if set_muted is None:
            return
        await asyncio.to_thread(set_muted, muted)
        self.muted = muted

    def shutdown(self) -> None:
        """Cancel the timer when the process stops; no feedback is produced."""
        self._cancel_timer()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "interviewId": self.interview_id,
            "candidateName": self.candidate_name,
            "candidateEmail": self.candidate_email,
            "jobPosition": self.interview.get("jobPosition"),
            "state": self.state.value,
            "durationMinutes": self.duration_minutes,
            "elapsedSeconds": self.elapsed_seconds,
            "speaking": self.speaking,
            "muted": self.muted,
            "transcript": [t.model_dump(by_alias=True) for t in self.transcript],
            "webCallUrl": self.call_info.get("webCallUrl"),
            "endReason": self.end_reason,
            "error": self.error,
            "anomalies": list(self.anomalies),
            "outcome": self.outcome,
            "feedbackId": self.feedback_id,
            "redirect": self.redirect,
            "startedAt": self.started_at,
            "endedAt": self.ended_at,
        }
