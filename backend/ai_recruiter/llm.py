# backend/ai_recruiter/llm.py
import re
import json
import asyncio
import logging
from typing import Any, Dict, Optional

import openai

from .config import OPENROUTER_API_KEY, OPENROUTER_BASE_URL
from .errors import ConfigurationError, ExternalServiceError, ParseError

logger = logging.getLogger("ai-recruiter.llm")

CODE_FENCE_PATTERN = re.compile(r"^```[a-zA-Z0-9_+\-]*\s*|\s*```$", re.MULTILINE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences (``` or ```json) around model output."""
    if not text:
        return ""
    text = text.strip()
    if "```" in text:
        first = text.find("```")
        last = text.rfind("```")
        if last > first:
            inner = text[first + 3:last]
            # drop an optional language tag such as "json"
            inner = re.sub(r"^[a-zA-Z0-9_+\-]*\s*", "", inner, count=1)
            return inner.strip()
    return CODE_FENCE_PATTERN.sub("", text).strip()


def parse_json_content(text: str) -> Dict[str, Any]:
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except (TypeError, ValueError) as e:
        raise ParseError(f"response is not valid JSON: {e}", raw=text or "")
    if not isinstance(data, dict):
        raise ParseError("response JSON is not an object", raw=text or "")
    return data


class CompletionClient:
    """Thin wrapper over an OpenAI-compatible chat completion endpoint."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = OPENROUTER_BASE_URL, client=None):
        if client is None:
            api_key = api_key or OPENROUTER_API_KEY
            if not api_key:
                raise ConfigurationError("OPENROUTER_API_KEY not set in backend/.env")
            client = openai.OpenAI(api_key=api_key, base_url=base_url)
        self._client = client

    async def complete(
        self,
        prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            resp = await asyncio.to_thread(self._client.chat.completions.create, **kwargs)
            content = resp.choices[0].message.content
        except Exception as e:
            logger.exception("Completion request to %s failed", model)
            raise ExternalServiceError(f"completion request failed: {e}") from e

        return (content or "").strip()
