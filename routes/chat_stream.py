"""
Route handlers for streaming chat operations.
Handles the /api/chat/stream endpoint with server-sent events.
"""
from typing import Optional

import ollama
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from config import Config
from models.api_models import ChatRequest, PersonalizationContext
from routes.chat import personalization_for_request
from services.completion import CompletionService
from services.context_service import ContextService
from services.stream_service import StreamRelay

router = APIRouter()


@router.post("/api/chat/stream")
async def chat_stream(
    chat_request: ChatRequest,
    request: Request,
    personalization: Optional[PersonalizationContext] = Depends(personalization_for_request)
):
    """
    Streaming chat endpoint. Request validation happens before any header is sent;
    after that the status is always 200 and failures are reported in-band.
    """
    client = ollama.AsyncClient(host=Config.OLLAMA_HOST)
    relay = StreamRelay(
        CompletionService(client),
        is_disconnected=request.is_disconnected
    )

    async def build_prompt() -> str:
        return await ContextService.assemble(
            chat_request.message,
            chat_request.topic,
            chat_request.history,
            personalization
        )

    return StreamingResponse(
        relay.run(build_prompt),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )
