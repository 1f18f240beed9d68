"""
Models package exports.
"""
from models.api_models import (
    ChatTurn,
    ChatRequest,
    ChatResponse,
    Message,
    PersonalizationContext,
    Conversation,
    ConversationCreate,
    ConversationUpdate,
    StarRequest
)
from models.chat_models import StreamEvent, StreamEventKind, RelayState, CompletionResult

__all__ = [
    'ChatTurn',
    'ChatRequest',
    'ChatResponse',
    'Message',
    'PersonalizationContext',
    'Conversation',
    'ConversationCreate',
    'ConversationUpdate',
    'StarRequest',
    'StreamEvent',
    'StreamEventKind',
    'RelayState',
    'CompletionResult'
]
