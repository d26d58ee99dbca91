"""
Optional text-generation backend.

Used for best-effort claim extraction and verdict explanations. The service
never depends on it: when LLM_ENDPOINT / LLM_API_KEY are unset, or the call
fails in any way, callers fall back to their deterministic path.

The request body is deliberately generic ({model, prompt, max_output_tokens});
a proxy in front of the provider is expected to adapt it.
"""
import logging
from typing import Any, Optional

import requests

from .config import Settings

log = logging.getLogger("tracker.llm")

SYSTEM_PROMPT = (
    "You are a verification assistant. ONLY use the facts provided in the input. "
    "Do NOT invent facts, do NOT guess, and do NOT provide information that is "
    "not directly supported by the input."
)


class LLMUnavailable(RuntimeError):
    """Raised when the backend is not configured or the call did not produce text."""


def _output_text(data: Any) -> Optional[str]:
    """Pull generated text out of the common response layouts."""
    if not isinstance(data, dict):
        return None
    if isinstance(data.get("output"), str):
        return data["output"]
    if isinstance(data.get("output_text"), str):
        return data["output_text"]
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        first = choices[0]
        message = first.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
        if isinstance(first.get("output_text"), str):
            return first["output_text"]
    return None


class LLMClient:
    def __init__(self, endpoint: Optional[str], api_key: Optional[str],
                 model: str = "gemini-pro", timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self._endpoint = endpoint
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMClient":
        return cls(settings.llm_endpoint, settings.llm_api_key,
                   settings.llm_model, settings.llm_timeout_seconds)

    @property
    def configured(self) -> bool:
        return bool(self._endpoint and self._api_key)

    def complete(self, prompt: str, max_output_tokens: int = 400) -> str:
        """Return generated text. Raises LLMUnavailable or requests.RequestException."""
        if not self.configured:
            raise LLMUnavailable("LLM endpoint or API key not configured")
        resp = self._session.post(
            self._endpoint,
            json={
                "model": self._model,
                "prompt": f"{SYSTEM_PROMPT}\n\n{prompt}",
                "max_output_tokens": max_output_tokens,
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        text = _output_text(resp.json())
        if not text:
            raise LLMUnavailable("LLM response carried no output text")
        return text
