from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from scistu.ai.registry import list_models
from scistu.core.config import settings
from scistu.core.rate_limit import rate_limit
from scistu.core.security import require_api_key
from scistu.schemas.chat import ChatRequest, ModelInfo, ShareRequest, ShareResponse
from scistu.services.chat_service import build_share_transcript, stream_chat
from scistu.utils.sse import SSE_HEADERS

router = APIRouter()


@router.get("/models", response_model=list[ModelInfo])
async def models():
    return list_models()


@router.post("/chat/stream", dependencies=[Depends(require_api_key)])
@rate_limit()
async def chat_stream(
    request: Request,
    payload: ChatRequest,
):
    gen = stream_chat(
        payload.chat_messages(),
        model=payload.model,
        params=payload.sampling_params(),
        system_prompt=payload.system_prompt,
    )

    return StreamingResponse(gen, media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/chat/share", response_model=ShareResponse)
async def chat_share(payload: ShareRequest):
    params = payload.sampling_params(max_tokens=4000)
    content = build_share_transcript(
        payload.messages,
        model=(payload.model or "").strip() or settings.default_chat_model,
        temperature=params.temperature,
        max_tokens=params.max_tokens,
        system_prompt=payload.system_prompt,
    )
    return ShareResponse(content=content)
