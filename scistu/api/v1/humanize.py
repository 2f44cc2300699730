import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from scistu.ai.registry import ModelRegistryError, ProviderNotConfiguredError
from scistu.ai.types import AIClient
from scistu.core.security import require_api_key
from scistu.core.window_rate_limit import RateLimitExceeded, client_key, humanize_limiter
from scistu.schemas.humanize import (
    HumanizeHistoryResponse,
    HumanizeRequest,
    HumanizeResponse,
    RateLimitUsage,
)
from scistu.services.humanize_service import (
    HumanizeError,
    history,
    humanize_text,
    resolve_model,
    stream_humanize,
)
from scistu.utils.sse import SSE_HEADERS

router = APIRouter(dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def _validated_text(payload: HumanizeRequest) -> str:
    text = payload.text
    if not text or not isinstance(text, str) or not text.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid text input")
    return text


def _enforce_humanize_rate_limit(key: str) -> int:
    try:
        return humanize_limiter.hit(key)
    except RateLimitExceeded as exc:
        logger.info(json.dumps({"event": "humanize_rate_limited", "retry_after": round(exc.retry_after, 1)}))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
            headers={"Retry-After": str(max(1, int(exc.retry_after + 0.999)))},
        ) from exc


def _resolve_model(payload: HumanizeRequest) -> tuple[str, AIClient]:
    try:
        return resolve_model(payload.model)
    except ModelRegistryError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ProviderNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.post("/humanize", response_model=HumanizeResponse)
async def humanize(request: Request, payload: HumanizeRequest):
    text = _validated_text(payload)
    model_id, ai = _resolve_model(payload)
    key = client_key(request, payload.session_id)
    used = _enforce_humanize_rate_limit(key)
    try:
        item = await humanize_text(
            text,
            session_key=key,
            model=model_id,
            params=payload.sampling_params(),
            ai=ai,
        )
    except HumanizeError as exc:
        logger.error("Humanization Error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process request",
        ) from exc

    return HumanizeResponse(
        result=item.humanized_text,
        item=item,
        requests_this_minute=used,
        rate_limit=humanize_limiter.limit,
    )


@router.post("/humanize/stream")
async def humanize_stream(request: Request, payload: HumanizeRequest):
    text = _validated_text(payload)
    model_id, ai = _resolve_model(payload)
    key = client_key(request, payload.session_id)
    _enforce_humanize_rate_limit(key)
    gen = stream_humanize(
        text,
        session_key=key,
        model=model_id,
        params=payload.sampling_params(),
        ai=ai,
    )
    return StreamingResponse(gen, media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/humanize/history", response_model=HumanizeHistoryResponse)
async def humanize_history(request: Request, session_id: str | None = None):
    return HumanizeHistoryResponse(items=history.for_session(client_key(request, session_id)))


@router.get("/humanize/usage", response_model=RateLimitUsage)
async def humanize_usage(request: Request, session_id: str | None = None):
    return RateLimitUsage(
        used=humanize_limiter.usage(client_key(request, session_id)),
        limit=humanize_limiter.limit,
        window_seconds=humanize_limiter.window_seconds,
    )
