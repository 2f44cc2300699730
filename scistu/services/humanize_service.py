from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import threading
import time
import uuid
from typing import AsyncGenerator

from scistu.ai.registry import get_model
from scistu.ai.types import AIClient, ChatMessage, SamplingParams
from scistu.core import events
from scistu.core.config import settings
from scistu.schemas.humanize import HumanizeResult
from scistu.services.chat_service import short_hash
from scistu.utils.sse import sse

logger = logging.getLogger(__name__)

REASONING_TAG = "humanize-process"
MAX_HISTORY_PER_SESSION = 50

HUMANIZE_SYSTEM_PROMPT = """
You are an advanced text humanization engine. Your task is to:
1. Analyze and rewrite AI-generated text to sound more natural and human-like
2. Maintain the original meaning and intent
3. Use conversational language and natural phrasing
4. Avoid technical jargon and overly formal constructs
5. Add appropriate colloquialisms where suitable
6. Ensure readability for a general audience

Guidelines:
- Preserve technical accuracy when present
- Maintain appropriate tone for the context
- Keep paragraphs concise and focused
- Use contractions where natural
- Vary sentence structure
""".strip()


class HumanizeError(RuntimeError):
    pass


class HumanizeHistory:
    """Newest-first humanize results per session, kept in process memory.

    Only the ``max_sessions`` most recently written sessions are kept.
    """

    def __init__(self, max_items: int = MAX_HISTORY_PER_SESSION, max_sessions: int = 1000):
        self._max_items = max_items
        self._max_sessions = max_sessions
        self._items: dict[str, list[HumanizeResult]] = {}
        self._lock = threading.Lock()

    def add(self, session_key: str, item: HumanizeResult) -> None:
        with self._lock:
            items = self._items.pop(session_key, [])
            items.insert(0, item)
            del items[self._max_items :]
            self._items[session_key] = items
            while len(self._items) > self._max_sessions:
                del self._items[next(iter(self._items))]

    def for_session(self, session_key: str) -> list[HumanizeResult]:
        with self._lock:
            return list(self._items.get(session_key, []))

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


history = HumanizeHistory(max_sessions=settings.humanize_history_max_sessions)


def resolve_model(model: str | None) -> tuple[str, AIClient]:
    model_id = (model or "").strip() or settings.default_humanize_model
    return model_id, get_model(model_id, reasoning_tag=REASONING_TAG)


def build_humanize_messages(text: str) -> list[ChatMessage]:
    return [
        ChatMessage(role="system", content=HUMANIZE_SYSTEM_PROMPT),
        ChatMessage(role="user", content=text),
    ]


def _record(session_key: str, original: str, humanized: str) -> HumanizeResult:
    item = HumanizeResult(
        id=str(uuid.uuid4()),
        original_text=original,
        humanized_text=humanized,
        created_at=datetime.now(timezone.utc),
    )
    history.add(session_key, item)
    return item


async def humanize_text(
    text: str,
    *,
    session_key: str,
    model: str | None = None,
    params: SamplingParams | None = None,
    ai: AIClient | None = None,
) -> HumanizeResult:
    model_id = (model or "").strip() or settings.default_humanize_model
    started = time.perf_counter()
    logger.info(
        json.dumps(
            {
                "event": "humanize_request",
                "model": model_id,
                "text_len": len(text),
                "text_hash": short_hash(text),
            }
        )
    )
    if ai is None:
        model_id, ai = resolve_model(model_id)
    try:
        humanized = await ai.complete(build_humanize_messages(text), params or SamplingParams())
    except Exception as exc:
        raise HumanizeError(str(exc)) from exc
    humanized = (humanized or "").strip()
    if not humanized:
        raise HumanizeError("Model returned an empty rewrite.")

    logger.info(
        json.dumps(
            {
                "event": "humanize_complete",
                "model": model_id,
                "output_len": len(humanized),
                "duration_ms": int((time.perf_counter() - started) * 1000),
            }
        )
    )
    return _record(session_key, text, humanized)


async def stream_humanize(
    text: str,
    *,
    session_key: str,
    model: str | None = None,
    params: SamplingParams | None = None,
    ai: AIClient | None = None,
) -> AsyncGenerator[str, None]:
    model_id = (model or "").strip() or settings.default_humanize_model
    try:
        if ai is None:
            model_id, ai = resolve_model(model_id)
        humanized = ""
        async for part in ai.stream(build_humanize_messages(text), params or SamplingParams()):
            if part.kind == "reasoning":
                yield sse(events.REASONING, part.text)
                continue
            humanized += part.text
            yield sse(events.CHUNK, part.text)

        if not humanized.strip():
            raise HumanizeError("Model returned an empty rewrite.")
        item = _record(session_key, text, humanized.strip())
        yield sse(events.RESULT, item.model_dump(mode="json"))
        yield sse(events.DONE, "[DONE]")
    except Exception as exc:
        logger.exception(json.dumps({"event": "humanize_error", "model": model_id, "error": str(exc)}))
        yield sse(events.ERROR, "Failed to process request")
        yield sse(events.DONE, "[DONE]")
