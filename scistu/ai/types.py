from dataclasses import dataclass
from typing import AsyncIterator, Literal, Protocol, Sequence


Role = Literal["system", "user", "assistant"]
PartKind = Literal["text", "reasoning"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


@dataclass(frozen=True)
class SamplingParams:
    temperature: float = 0.7
    max_tokens: int = 1000
    top_p: float = 0.9
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0


@dataclass(frozen=True)
class StreamPart:
    kind: PartKind
    text: str


class AIClient(Protocol):
    def stream(
        self, messages: Sequence[ChatMessage], params: SamplingParams
    ) -> AsyncIterator[StreamPart]: ...

    async def complete(
        self, messages: Sequence[ChatMessage], params: SamplingParams
    ) -> str: ...
