from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from inkagent.api.deps import get_chat_service
from inkagent.api.schemas import ChatRequest, ChatStatusResponse
from inkagent.services.chat_service import EMPTY_MESSAGE, ChatService
from inkagent.utils.logger import api_logger

router = APIRouter()

TAGGED_STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("/api/chat")
async def chat(
    request: ChatRequest,
    raw_request: Request,
    chat_service: ChatService = Depends(get_chat_service),  # noqa: B008
):
    """Answer from the knowledge base as a tag-delimited text stream."""
    client_host = raw_request.client.host if raw_request.client else "unknown"
    api_logger.info(
        "Chat request received",
        client=client_host,
        history=len(request.history),
    )

    if not request.message.strip():
        api_logger.warning("Empty chat message")
        raise HTTPException(status_code=400, detail=EMPTY_MESSAGE)

    try:
        body = chat_service.stream_knowledge_chat(request.message, request.history)
    except Exception as e:
        api_logger.error("Chat setup failed", exc_info=True, error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    api_logger.info("Returning tagged streaming response")
    return StreamingResponse(
        body,
        media_type="text/plain; charset=utf-8",
        headers=TAGGED_STREAM_HEADERS,
    )


@router.get("/api/chat", response_model=ChatStatusResponse)
async def chat_status():
    return ChatStatusResponse(message="聊天 API 正常运行（知识库问答模式）")
