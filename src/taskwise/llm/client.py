# src/taskwise/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

# Models that answered 404, skipped until the stored monotonic instant.
_UNAVAILABLE_UNTIL: dict[str, float] = {}
_UNAVAILABLE_COOLDOWN_SECONDS = 3600.0

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 15.0
DEFAULT_FIRST_TOKEN_TIMEOUT = 10.0


@dataclass(frozen=True, slots=True)
class LLMTimeouts:
    connect: float = DEFAULT_CONNECT_TIMEOUT
    read: float = DEFAULT_READ_TIMEOUT
    first_token: float = DEFAULT_FIRST_TOKEN_TIMEOUT

    @classmethod
    def from_settings(cls, settings: Any) -> LLMTimeouts:
        first_token = float(getattr(settings, "llm_first_token_timeout", DEFAULT_FIRST_TOKEN_TIMEOUT))
        read = float(getattr(settings, "llm_read_timeout", DEFAULT_READ_TIMEOUT))
        return cls(
            connect=float(getattr(settings, "llm_connect_timeout", DEFAULT_CONNECT_TIMEOUT)),
            # A read timeout shorter than the first-token budget would cut it short.
            read=max(read, first_token),
            first_token=first_token,
        )

    def as_httpx(self) -> httpx.Timeout:
        return httpx.Timeout(connect=self.connect, read=self.read, write=10.0, pool=self.connect)


class _FirstTokenTimeout(TimeoutError):
    pass


def _failure_kind(exc: Exception) -> str:
    """auth | gone | busy | network | other"""
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return "auth"
    if isinstance(exc, openai.NotFoundError):
        return "gone"
    if isinstance(exc, openai.RateLimitError):
        return "busy"
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException, TimeoutError)):
        return "network"
    return "other"


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    hints = {
        "LLM API key is not set": "Estimator is not configured (missing API key). Set TASKWISE_OPENROUTER_API_KEY in .env.",
        "LLM model list is empty": "Estimator is not configured (no models). Set TASKWISE_LLM_MODELS in .env.",
        "LLM base URL is not set": "Estimator is not configured (missing base URL). Set TASKWISE_OPENROUTER_BASE_URL in .env.",
    }
    for needle, hint in hints.items():
        if needle in msg:
            return hint
    return msg


class OpenRouterLLMClient:
    """
    Streaming chat client for any OpenAI-compatible endpoint (OpenRouter by default).

    Models from settings are tried in order. A model that stays silent past the
    first-token budget, is rate limited, unreachable or answers 404 is skipped in
    favour of the next one (404s are remembered for an hour). Authentication
    failures stop the whole attempt. When every model failed a RuntimeError is
    raised; callers treat that as "no estimate available".
    """

    def __init__(self, settings: Any) -> None:
        api_key = str(getattr(settings, "openrouter_api_key", None) or "").strip()
        base_url = str(getattr(settings, "openrouter_base_url", "") or "").strip()
        if not api_key:
            raise RuntimeError("LLM API key is not set. Set TASKWISE_OPENROUTER_API_KEY in your .env.")
        if not base_url:
            raise RuntimeError("LLM base URL is not set. Set TASKWISE_OPENROUTER_BASE_URL in your .env.")

        self._models = [m.strip() for m in (getattr(settings, "llm_models", None) or []) if m and m.strip()]
        self._headers = dict(getattr(settings, "extra_headers", None) or {})
        self._timeouts = LLMTimeouts.from_settings(settings)

        # No SDK retries: falling through to the next model is faster.
        self._client = OpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=self._timeouts.as_httpx(),
            max_retries=0,
        )

    def _candidates(self) -> list[str]:
        now = time.monotonic()
        return [m for m in self._models if _UNAVAILABLE_UNTIL.get(m, 0.0) <= now]

    def _stream_model(self, model: str, messages: list[dict[str, str]]) -> Iterator[str]:
        started = time.monotonic()
        deadline = started + self._timeouts.first_token
        got_content = False

        stream = self._client.chat.completions.create(
            model=model,
            stream=True,
            extra_headers=self._headers or None,
            messages=messages,  # type: ignore[arg-type]
            timeout=self._timeouts.as_httpx(),
        )
        try:
            for chunk in stream:
                if not got_content and time.monotonic() > deadline:
                    raise _FirstTokenTimeout(f"First token timeout on model: {model}")
                delta = chunk.choices[0].delta if chunk.choices else None
                content = getattr(delta, "content", None)
                if not content:
                    continue
                if not got_content:
                    got_content = True
                    logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - started)
                yield content
        finally:
            try:
                stream.close()
            except (httpx.HTTPError, openai.OpenAIError):
                logger.debug("LLM: stream close failed", exc_info=True)

        if not got_content:
            raise RuntimeError(f"Model returned no content: {model}")

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterator[str]:
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set TASKWISE_LLM_MODELS in your .env.")

        payload = [{"role": "system", "content": system_prompt}, *messages]
        last_kind = "other"
        last_error: Exception | None = None

        for model in self._candidates():
            logger.info("LLM: trying model=%s (first_token_timeout=%.1fs)", model, self._timeouts.first_token)
            yielded = False
            try:
                for piece in self._stream_model(model, payload):
                    yielded = True
                    yield piece
                return
            except (openai.OpenAIError, httpx.HTTPError, TimeoutError, RuntimeError) as e:
                if yielded:
                    # Partial output already reached the caller; switching models would garble it.
                    raise RuntimeError(f"LLM stream interrupted on model: {model}") from e
                last_error = e
                last_kind = _failure_kind(e)
                if last_kind == "auth":
                    raise RuntimeError(
                        "LLM authentication failed. Check your API key (TASKWISE_OPENROUTER_API_KEY)."
                    ) from e
                if last_kind == "gone":
                    _UNAVAILABLE_UNTIL[model] = time.monotonic() + _UNAVAILABLE_COOLDOWN_SECONDS
                logger.info("LLM: %s on model=%s (%s), trying next", last_kind, model, e.__class__.__name__)

        if last_kind == "busy":
            raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
        if last_kind == "network":
            raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
        raise RuntimeError("All LLM models failed.") from last_error
