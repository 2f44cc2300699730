from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Optional, Sequence

from openai import AsyncOpenAI

from scistu.ai.types import ChatMessage, SamplingParams, StreamPart

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider:
    """Chat completions against any OpenAI-compatible endpoint.

    OpenAI itself, DeepSeek, Groq, Gemini and Anthropic all expose this
    surface; only the base URL, key and model name differ.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        max_retries: int = 2,
        provider: str = "openai",
        client: Any = None,
    ):
        key = (api_key or "").strip()
        if not key and client is None:
            raise RuntimeError(f"API key for provider '{provider}' is missing")
        self._model = model
        self._provider = provider
        self._client = client or AsyncOpenAI(
            api_key=key,
            base_url=base_url or None,
            timeout=timeout_s,
            max_retries=max_retries,
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def provider(self) -> str:
        return self._provider

    def _create_kwargs(
        self, messages: Sequence[ChatMessage], params: SamplingParams, *, stream: bool
    ) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
            "stream": stream,
        }

    async def stream(
        self, messages: Sequence[ChatMessage], params: SamplingParams
    ) -> AsyncIterator[StreamPart]:
        stream = await self._client.chat.completions.create(
            **self._create_kwargs(messages, params, stream=True)
        )

        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            reasoning = getattr(delta, "reasoning_content", None)
            if reasoning:
                yield StreamPart("reasoning", reasoning)
            text = getattr(delta, "content", None)
            if text:
                yield StreamPart("text", text)

    async def complete(
        self, messages: Sequence[ChatMessage], params: SamplingParams
    ) -> str:
        response = await self._client.chat.completions.create(
            **self._create_kwargs(messages, params, stream=False)
        )
        content = response.choices[0].message.content if response.choices else ""
        return (content or "").strip()
