from __future__ import annotations

from typing import AsyncIterator, Sequence

from scistu.ai.types import AIClient, ChatMessage, SamplingParams, StreamPart


class ThinkTagExtractor:
    """Incrementally splits ``<tag>...</tag>`` spans out of a token stream.

    Tags may arrive split across chunks, so a partial tag at the end of a
    chunk is held back until the next ``feed`` (or ``flush``).
    """

    def __init__(self, tag: str = "think"):
        self._open = f"<{tag}>"
        self._close = f"</{tag}>"
        self._buffer = ""
        self._inside = False

    @staticmethod
    def _partial_suffix(text: str, marker: str) -> int:
        for size in range(min(len(text), len(marker) - 1), 0, -1):
            if marker.startswith(text[-size:]):
                return size
        return 0

    def feed(self, chunk: str) -> list[StreamPart]:
        self._buffer += chunk
        parts: list[StreamPart] = []
        while self._buffer:
            marker = self._close if self._inside else self._open
            kind = "reasoning" if self._inside else "text"
            index = self._buffer.find(marker)
            if index == -1:
                keep = self._partial_suffix(self._buffer, marker)
                emit = self._buffer[: len(self._buffer) - keep]
                self._buffer = self._buffer[len(self._buffer) - keep :]
                if emit:
                    parts.append(StreamPart(kind, emit))
                break
            if index:
                parts.append(StreamPart(kind, self._buffer[:index]))
            self._buffer = self._buffer[index + len(marker) :]
            self._inside = not self._inside
        return parts

    def flush(self) -> list[StreamPart]:
        if not self._buffer:
            return []
        part = StreamPart("reasoning" if self._inside else "text", self._buffer)
        self._buffer = ""
        return [part]


class ReasoningProvider:
    def __init__(self, inner: AIClient, tag: str = "think"):
        self._inner = inner
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag

    async def stream(
        self, messages: Sequence[ChatMessage], params: SamplingParams
    ) -> AsyncIterator[StreamPart]:
        extractor = ThinkTagExtractor(self._tag)
        async for part in self._inner.stream(messages, params):
            if part.kind == "reasoning":
                yield part
                continue
            for extracted in extractor.feed(part.text):
                yield extracted
        for extracted in extractor.flush():
            yield extracted

    async def complete(
        self, messages: Sequence[ChatMessage], params: SamplingParams
    ) -> str:
        text = ""
        async for part in self.stream(messages, params):
            if part.kind == "text":
                text += part.text
        return text.strip()
