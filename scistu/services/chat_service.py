from typing import AsyncGenerator, Sequence
import hashlib
import json
import logging
import time

from scistu.utils.sse import sse
from scistu.core import events
from scistu.core.config import settings

from scistu.ai.registry import get_model
from scistu.ai.types import ChatMessage, SamplingParams
from scistu.schemas.chat import ChatMessageIn

logger = logging.getLogger("scistu.chat")

DEFAULT_SYSTEM_PROMPT = """
You are an advanced AI assistant in an interactive playground environment. Your primary goals are:
1. Knowledge & Assistance: Share knowledge and provide assistance across a wide range of topics
2. Code & Technical Help: Offer coding help, debug issues, and explain technical concepts
3. Clear Communication: Communicate clearly and effectively, using appropriate technical depth
4. Safety & Ethics: Maintain safety and ethical behavior, avoiding harmful or malicious content

Guidelines:
- Be direct and concise in responses
- Show code examples when relevant
- Explain complex topics in digestible parts
- Maintain a helpful and professional tone
- Acknowledge limitations and uncertainties
- Prioritize user safety and ethical considerations
""".strip()


def short_hash(value: str | None) -> str:
    normalized = (value or "").strip()
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]


def build_chat_messages(
    messages: Sequence[ChatMessage], system_prompt: str | None
) -> list[ChatMessage]:
    system = (system_prompt or "").strip() or DEFAULT_SYSTEM_PROMPT
    history = [m for m in messages if m.role != "system" and m.content.strip()]
    return [ChatMessage(role="system", content=system), *history]


def _last_user_message(messages: Sequence[ChatMessage]) -> str:
    for message in reversed(messages):
        if message.role == "user":
            return message.content.strip()
    return ""


async def stream_chat(
    messages: Sequence[ChatMessage],
    *,
    model: str | None = None,
    params: SamplingParams | None = None,
    system_prompt: str | None = None,
) -> AsyncGenerator[str, None]:
    started_at = time.perf_counter()
    model_id = (model or "").strip() or settings.default_chat_model
    params = params or SamplingParams()
    try:
        yield sse(events.TRACE, "Thinking...")

        user_message = _last_user_message(messages)
        if not user_message:
            yield sse(events.CHUNK, "Please type a message.")
            yield sse(events.DONE, "[DONE]")
            return

        logger.info(
            json.dumps(
                {
                    "event": "chat_request",
                    "model": model_id,
                    "messages": len(messages),
                    "temperature": params.temperature,
                    "max_tokens": params.max_tokens,
                    "custom_system_prompt": bool((system_prompt or "").strip()),
                    "message_len": len(user_message),
                    "message_hash": short_hash(user_message),
                }
            )
        )

        ai = get_model(model_id, reasoning_tag="think")
        tokens = 0
        async for part in ai.stream(build_chat_messages(messages, system_prompt), params):
            if part.kind == "reasoning":
                yield sse(events.REASONING, part.text)
                continue
            tokens += 1
            yield sse(events.CHUNK, part.text)

        yield sse(events.DONE, "[DONE]")

    except Exception as ex:
        logger.exception(
            json.dumps(
                {
                    "event": "chat_error",
                    "model": model_id,
                    "error": str(ex),
                    "duration_ms": int((time.perf_counter() - started_at) * 1000),
                }
            )
        )
        yield sse(events.ERROR, str(ex))
        yield sse(events.DONE, "[DONE]")
    else:
        logger.info(
            json.dumps(
                {
                    "event": "chat_complete",
                    "model": model_id,
                    "chunks": tokens,
                    "duration_ms": int((time.perf_counter() - started_at) * 1000),
                }
            )
        )


def build_share_transcript(
    messages: Sequence[ChatMessageIn],
    *,
    model: str,
    temperature: float,
    max_tokens: int,
    system_prompt: str | None = None,
) -> str:
    lines = []
    for msg in messages:
        if msg.role == "system":
            continue
        speaker = "You" if msg.role == "user" else "Assistant"
        entry = f"{speaker}: {msg.content}\n"
        if msg.reasoning:
            entry += f"Reasoning: {msg.reasoning}\n"
        lines.append(entry)
    share_content = "\n".join(lines)

    prompt = (system_prompt or "").strip()
    full_content = f"System Prompt: {prompt}\n\n{share_content}" if prompt else share_content
    return f"{full_content}\n\n---\nModel: {model}\nTemperature: {temperature}\nMax Tokens: {max_tokens}"
