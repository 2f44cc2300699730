from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from scistu.schemas.chat import SamplingFields


class HumanizeRequest(SamplingFields):
    # Any: the route rejects non-strings with a 400.
    text: Any = None
    model: str | None = None
    session_id: str | None = Field(default=None, max_length=200)


class HumanizeResult(BaseModel):
    id: str
    original_text: str
    humanized_text: str
    created_at: datetime


class RateLimitUsage(BaseModel):
    used: int
    limit: int
    window_seconds: int


class HumanizeResponse(BaseModel):
    result: str
    item: HumanizeResult
    requests_this_minute: int
    rate_limit: int


class HumanizeHistoryResponse(BaseModel):
    items: list[HumanizeResult]
