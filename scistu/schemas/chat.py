from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from scistu.ai.types import ChatMessage, SamplingParams


class ChatMessageIn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(default="", max_length=100000)
    reasoning: str | None = None


class SamplingFields(BaseModel):
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1, le=8000)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    frequency_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)
    presence_penalty: float | None = Field(default=None, ge=-2.0, le=2.0)

    def sampling_params(self, **overrides) -> SamplingParams:
        defaults = SamplingParams(**overrides)
        return SamplingParams(
            temperature=defaults.temperature if self.temperature is None else self.temperature,
            max_tokens=defaults.max_tokens if self.max_tokens is None else self.max_tokens,
            top_p=defaults.top_p if self.top_p is None else self.top_p,
            frequency_penalty=(
                defaults.frequency_penalty if self.frequency_penalty is None else self.frequency_penalty
            ),
            presence_penalty=(
                defaults.presence_penalty if self.presence_penalty is None else self.presence_penalty
            ),
        )


class ChatRequest(SamplingFields):
    messages: list[ChatMessageIn] = Field(default_factory=list, max_length=200)
    model: str | None = None
    system_prompt: str | None = Field(default=None, max_length=20000)

    def chat_messages(self) -> list[ChatMessage]:
        return [ChatMessage(role=m.role, content=m.content) for m in self.messages]


class ShareRequest(ChatRequest):
    pass


class ShareResponse(BaseModel):
    content: str


class ModelInfo(BaseModel):
    id: str
    label: str
    provider: str
    available: bool
