# backend/ai_recruiter/voice.py
"""Vapi voice-call adapter.

The session state machine only sees ``start``, ``stop`` and ``set_muted``
plus the event names below; everything Vapi specific stays in this module.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from .config import VAPI_API_KEY, VAPI_BASE_URL
from .errors import ConfigurationError, ExternalServiceError
from .prompts import INTERVIEWER_PROMPT, render_prompt

logger = logging.getLogger("ai-recruiter.voice")

CALL_START = "call-start"
SPEECH_START = "speech-start"
SPEECH_END = "speech-end"
CALL_END = "call-end"
MESSAGE = "message"
ERROR = "error"

EVENTS = (CALL_START, SPEECH_START, SPEECH_END, CALL_END, MESSAGE, ERROR)


def format_question_list(questions: List[Dict[str, Any]]) -> str:
    return "\n".join(f"{i}. {q['question']}" for i, q in enumerate(questions, 1))


def build_assistant_config(
    interview: Dict[str, Any],
    candidate_name: str,
    duration_minutes: int,
    server_url: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Assistant configuration whose system prompt lists every question in order."""
    questions = interview.get("questionList") or []
    if not questions:
        raise ConfigurationError("interview has no questions")
    job_position = interview.get("jobPosition") or "this"

    system_prompt = render_prompt(
        INTERVIEWER_PROMPT,
        jobPosition=job_position,
        questions=format_question_list(questions),
        duration=duration_minutes,
    )
    assistant: Dict[str, Any] = {
        "name": "AI Recruiter",
        "firstMessage": f"Hi {candidate_name}, how are you? Ready for your interview on {job_position}?",
        "transcriber": {"provider": "deepgram", "model": "nova-2", "language": "en-US"},
        "voice": {"provider": "playht", "voiceId": "jennifer"},
        "model": {
            "provider": "openai",
            "model": "gpt-4",
            "messages": [{"role": "system", "content": system_prompt}],
        },
        "maxDurationSeconds": duration_minutes * 60,
    }
    if server_url:
        assistant["server"] = {"url": server_url}
    if metadata:
        assistant["metadata"] = metadata
    return assistant


class VapiClient:
    """One call handle. Not shared between sessions."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = VAPI_BASE_URL, timeout: int = 20):
        self.api_key = api_key or VAPI_API_KEY
        if not self.api_key:
            raise ConfigurationError("VAPI_API_KEY not set in backend/.env")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.call_id: Optional[str] = None
        self.web_call_url: Optional[str] = None
        self.control_url: Optional[str] = None
        self._stopped = False

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            r = requests.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
            r.raise_for_status()
            return r.json() if r.content else {}
        except requests.RequestException as e:
            raise ExternalServiceError(f"voice service request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"voice service returned a non-JSON body: {e}") from e

    def start(self, assistant: Dict[str, Any]) -> Dict[str, Any]:
        data = self._post(f"{self.base_url}/call/web", {"assistant": assistant})
        self.call_id = data.get("id")
        self.web_call_url = data.get("webCallUrl")
        self.control_url = (data.get("monitor") or {}).get("controlUrl")
        logger.info("Voice call created id=%s", self.call_id)
        return {"callId": self.call_id, "webCallUrl": self.web_call_url}

    def stop(self) -> None:
        if not self.call_id or self._stopped:
            return
        self._stopped = True
        if not self.control_url:
            logger.warning("Call %s has no control URL; relying on the client to hang up", self.call_id)
            return
        self._post(self.control_url, {"type": "end-call"})
        logger.info("Voice call %s stopped", self.call_id)

    def set_muted(self, muted: bool) -> None:
        if not self.control_url or self._stopped:
            return
        control = "mute-assistant" if muted else "unmute-assistant"
        self._post(self.control_url, {"type": "control", "control": control})


def normalize_role(value: Optional[str]) -> Optional[str]:
    """Map a voice-service role onto "agent" or "candidate"."""
    if value in ("assistant", "bot", "agent"):
        return "agent"
    if value in ("user", "candidate"):
        return "candidate"
    return None


def translate_server_message(message: Dict[str, Any]) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Map a Vapi server-URL message onto a session event, or None if irrelevant."""
    kind = message.get("type")
    if kind == "status-update":
        status = message.get("status")
        if status == "in-progress":
            return CALL_START, {}
        if status == "ended":
            reason = message.get("endedReason") or ""
            if "error" in reason:
                return ERROR, {"error": reason}
            return CALL_END, {"reason": reason}
        return None
    if kind == "speech-update":
        event = SPEECH_START if message.get("status") == "started" else SPEECH_END
        return event, {"role": normalize_role(message.get("role"))}
    if kind == "conversation-update":
        return MESSAGE, {"conversation": message.get("conversation") or []}
    if kind == "end-of-call-report":
        reason = message.get("endedReason") or ""
        if "error" in reason:
            return ERROR, {"error": reason}
        return CALL_END, {"reason": reason}
    return None
