from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from inkagent.api.deps import get_chat_service
from inkagent.api.schemas import ChatRequest
from inkagent.services.chat_service import EMPTY_MESSAGE, ChatService
from inkagent.streaming.sse import sse_response
from inkagent.utils.logger import api_logger

router = APIRouter()


@router.post("/api/agent/chat")
async def agent_chat(
    request: ChatRequest,
    raw_request: Request,
    chat_service: ChatService = Depends(get_chat_service),  # noqa: B008
):
    """Run the tool-using agent and stream its lifecycle events over SSE."""
    client_host = raw_request.client.host if raw_request.client else "unknown"
    api_logger.info(
        "Agent chat request received",
        client=client_host,
        history=len(request.history),
    )

    if not request.message.strip():
        api_logger.warning("Empty agent chat message")
        raise HTTPException(status_code=400, detail=EMPTY_MESSAGE)

    try:
        events = chat_service.stream_agent_chat(request.message, request.history)
    except Exception as e:
        api_logger.error("Agent chat setup failed", exc_info=True, error=str(e))
        raise HTTPException(status_code=500, detail=str(e)) from e

    return sse_response(events)
