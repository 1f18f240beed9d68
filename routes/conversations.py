"""
Route handlers for saved conversations.
Create, list, read, update, delete, star, archive and export.
"""
import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from models.api_models import Conversation, ConversationCreate, ConversationUpdate, StarRequest
from routes.chat import internal_error_response
from utils.logger import app_logger
from utils.storage import Storage, get_storage

router = APIRouter()


def not_found_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Conversation not found"}
    )


def export_filename(title: str, extension: str) -> str:
    """Attachment name built from the title with non-alphanumerics replaced."""
    safe_title = re.sub(r'[^a-zA-Z0-9]', '_', title)
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return f"{safe_title}_{timestamp}.{extension}"


def format_transcript(conversation: Conversation, title: str) -> str:
    """Plain-text rendering of a conversation for download."""
    header = (
        f"{title}\n{'=' * len(title)}\n\n"
        f"Topic: {conversation.topic}\n"
        f"Date: {conversation.created_at}\n\n"
    )
    return header + "\n\n".join(
        f"{message.sender.upper()}: {message.text}" for message in conversation.messages
    )


@router.post("/api/conversations", response_model=Conversation)
async def create_conversation(data: ConversationCreate, storage: Storage = Depends(get_storage)):
    """Save a conversation."""
    try:
        return storage.create_conversation(data)
    except Exception as e:
        app_logger.error(f"Save conversation error: {str(e)}")
        return internal_error_response()


@router.get("/api/conversations", response_model=list[Conversation])
async def list_conversations(
    status: Optional[str] = None,
    topic: Optional[str] = None,
    search: Optional[str] = None,
    storage: Storage = Depends(get_storage)
):
    """List conversations. `search` wins over `topic`, which wins over `status`."""
    try:
        if search:
            return storage.search_conversations(search)
        if topic:
            return storage.conversations_by_topic(topic)
        return storage.list_conversations(status)
    except Exception as e:
        app_logger.error(f"Get conversations error: {str(e)}")
        return internal_error_response()


@router.get("/api/conversations/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, storage: Storage = Depends(get_storage)):
    try:
        conversation = storage.get_conversation(conversation_id)
        if not conversation:
            return not_found_response()
        return conversation
    except Exception as e:
        app_logger.error(f"Get conversation error: {str(e)}")
        return internal_error_response()


@router.patch("/api/conversations/{conversation_id}", response_model=Conversation)
async def update_conversation(
    conversation_id: str,
    data: ConversationUpdate,
    storage: Storage = Depends(get_storage)
):
    """Partial update. Sending `messages` replaces the whole message log."""
    try:
        conversation = storage.update_conversation(conversation_id, data.model_dump(exclude_unset=True))
        if not conversation:
            return not_found_response()
        return conversation
    except Exception as e:
        app_logger.error(f"Update conversation error: {str(e)}")
        return internal_error_response()


@router.delete("/api/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(conversation_id: str, storage: Storage = Depends(get_storage)):
    try:
        if not storage.delete_conversation(conversation_id):
            return not_found_response()
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        app_logger.error(f"Delete conversation error: {str(e)}")
        return internal_error_response()


@router.patch("/api/conversations/{conversation_id}/star", response_model=Conversation)
async def star_conversation(
    conversation_id: str,
    data: StarRequest,
    storage: Storage = Depends(get_storage)
):
    try:
        conversation = storage.star_conversation(conversation_id, data.is_starred)
        if not conversation:
            return not_found_response()
        return conversation
    except Exception as e:
        app_logger.error(f"Star conversation error: {str(e)}")
        return internal_error_response()


@router.patch("/api/conversations/{conversation_id}/archive", response_model=Conversation)
async def archive_conversation(conversation_id: str, storage: Storage = Depends(get_storage)):
    try:
        conversation = storage.archive_conversation(conversation_id)
        if not conversation:
            return not_found_response()
        return conversation
    except Exception as e:
        app_logger.error(f"Archive conversation error: {str(e)}")
        return internal_error_response()


@router.get("/api/conversations/{conversation_id}/export")
async def export_conversation(
    conversation_id: str,
    format: str = "json",
    storage: Storage = Depends(get_storage)
):
    """Download a conversation as JSON (default) or plain text."""
    try:
        conversation = storage.get_conversation(conversation_id)
        if not conversation:
            return not_found_response()

        title = conversation.title or f"Conversation {conversation.topic}"

        if format == "txt":
            return PlainTextResponse(
                format_transcript(conversation, title),
                headers={"Content-Disposition": f'attachment; filename="{export_filename(title, "txt")}"'}
            )

        return JSONResponse(
            content=conversation.model_dump(by_alias=True),
            headers={"Content-Disposition": f'attachment; filename="{export_filename(title, "json")}"'}
        )
    except Exception as e:
        app_logger.error(f"Export conversation error: {str(e)}")
        return internal_error_response()
