"""
Route handlers for standard chat operations.
Handles the /api/chat endpoint (non-streaming fallback).
"""
from typing import Optional

import ollama
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from auth import current_user_id
from config import Config
from models.api_models import ChatRequest, ChatResponse, PersonalizationContext
from services.completion import CompletionService
from services.context_service import ContextService
from utils.logger import app_logger, log_development
from utils.storage import Storage, get_storage

router = APIRouter()


def personalization_for_request(
    request: Request,
    storage: Storage = Depends(get_storage)
) -> Optional[PersonalizationContext]:
    """Assessment of the authenticated caller; None for anonymous or failed lookups."""
    user_id = current_user_id(request)
    if not user_id:
        return None

    try:
        return storage.get_personalization(user_id)
    except Exception as e:
        log_development(f"No personalization for user {user_id}: {e}")
        return None


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"}
    )


@router.post("/api/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    chat_request: ChatRequest,
    personalization: Optional[PersonalizationContext] = Depends(personalization_for_request)
):
    """
    Coaching chat endpoint returning the whole answer at once.
    """
    try:
        completion = CompletionService(ollama.AsyncClient(host=Config.OLLAMA_HOST))
        prompt = await ContextService.assemble(
            chat_request.message,
            chat_request.topic,
            chat_request.history,
            personalization
        )

        result = await completion.complete_sync(prompt)
        if result.failed:
            app_logger.warning(f"Chat answered with fallback message: {result.error}")

        return ChatResponse(message=result.text, error=result.error)

    except Exception as e:
        app_logger.error(f"Chat endpoint error: {str(e)}")
        return internal_error_response()
