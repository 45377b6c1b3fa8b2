# src/taskwise/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage

# Minutes per complexity level when no model is available.
OFFLINE_ESTIMATES: dict[str, int] = {
    "low": 30,
    "medium": 90,
    "high": 240,
}


class OfflineLLMClient:
    """
    Offline deterministic LLM client used when no external API is configured.

    Behavior:
    - Estimation prompts -> returns the heuristic minutes for the complexity
      named in the last user message
    - Anything else -> a short notice, no external calls
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        if "estimat" in (system_prompt or "").lower():
            lowered = user_text.lower()
            for level, minutes in OFFLINE_ESTIMATES.items():
                if f"complexity: {level}" in lowered:
                    yield str(minutes)
                    return
            yield str(OFFLINE_ESTIMATES["medium"])
            return

        yield "Offline mode: no external LLM is configured."
