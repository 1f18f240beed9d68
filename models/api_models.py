"""
Pydantic data models for API requests and responses.
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatTurn(BaseModel):
    """One prior turn of the dialogue, replayed into the prompt."""
    sender: Literal["user", "assistant"]
    text: str

    @field_validator("sender", mode="before")
    @classmethod
    def normalize_sender(cls, value):
        # persisted transcripts label the coach as "ai"
        return "assistant" if value == "ai" else value


class ChatRequest(BaseModel):
    """Chat request with optional conversation history."""
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    conversation_history: Optional[List[ChatTurn]] = Field(None, alias="conversationHistory")

    @property
    def history(self) -> List[ChatTurn]:
        return self.conversation_history or []


class ChatResponse(BaseModel):
    """Non-streaming chat response."""
    message: str
    error: Optional[str] = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Message(BaseModel):
    """Persisted transcript entry. Never edited once written."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    sender: Literal["user", "ai"]
    text: str
    timestamp: str = Field(default_factory=_now_iso)


class PersonalizationContext(BaseModel):
    """Per-user 360 assessment used to tailor prompts."""
    model_config = ConfigDict(populate_by_name=True)

    assessment: str = Field(min_length=1)
    original_content: Optional[str] = Field(None, alias="originalContent")


class ConversationCreate(BaseModel):
    """Body for creating a conversation."""
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(min_length=1)
    title: Optional[str] = None
    summary: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    user_id: Optional[str] = Field(None, alias="userId")
    is_starred: bool = Field(False, alias="isStarred")
    status: Literal["active", "archived", "deleted"] = "active"


class ConversationUpdate(BaseModel):
    """Partial update; only fields that were sent are applied."""
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    topic: Optional[str] = Field(None, min_length=1)
    summary: Optional[str] = None
    messages: Optional[List[Message]] = None
    is_starred: Optional[bool] = Field(None, alias="isStarred")
    status: Optional[Literal["active", "archived", "deleted"]] = None

    @field_validator("topic", "messages", "is_starred", "status")
    @classmethod
    def reject_null(cls, value):
        # may be omitted, but never cleared
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class StarRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_starred: bool = Field(alias="isStarred")


class Conversation(BaseModel):
    """Stored conversation. message_count always equals len(messages)."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: Optional[str] = None
    topic: str
    summary: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    message_count: int = Field(0, alias="messageCount")
    user_id: Optional[str] = Field(None, alias="userId")
    is_starred: bool = Field(False, alias="isStarred")
    status: str = "active"
    last_message_at: Optional[str] = Field(None, alias="lastMessageAt")
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
