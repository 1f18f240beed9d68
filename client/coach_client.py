"""
HTTP client for the coaching API, used by chat front-ends and scripts.
Sends turns to the streaming endpoint and keeps the local transcript in sync with storage.
"""
import json
from typing import List, Optional

import httpx

from client.reconstructor import ConversationReconstructor, TurnResult
from models.api_models import ChatTurn, Conversation, Message
from utils.constants import FALLBACK_MESSAGE
from utils.logger import app_logger


class CoachClient:
    """
    One chat session against the coaching API.

    Holds the visible message list, streams each turn through a
    ConversationReconstructor and saves the transcript: created on the first
    save, updated afterwards.
    """

    def __init__(
        self,
        base_url: str,
        topic: str,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        auto_save: bool = True
    ):
        self.topic = topic
        self.token = token
        self.auto_save = auto_save
        self.messages: List[Message] = []
        self.conversation_id: Optional[str] = None

        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(10.0, read=None)
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self.http.aclose()

    def _headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def history(self) -> List[ChatTurn]:
        """Prior messages in the shape the chat endpoints replay into the prompt."""
        return [ChatTurn(sender=message.sender, text=message.text) for message in self.messages]

    @staticmethod
    def _server_error(body: bytes) -> str:
        """Error text from a rejected request, for logs only."""
        try:
            return str(json.loads(body).get("error"))
        except (ValueError, AttributeError):
            return body[:200].decode("utf-8", errors="replace")

    async def send(self, text: str) -> TurnResult:
        """
        Send one user turn and stream the answer into `messages`.

        Appends the user message, then the assistant's answer (possibly partial)
        if any text arrived. A turn with no text leaves only the user message;
        the apology to show is on the returned result.
        """
        payload = {
            "message": text,
            "topic": self.topic,
            "conversationHistory": [turn.model_dump() for turn in self.history()]
        }
        self.messages.append(Message(sender="user", text=text))
        reconstructor = ConversationReconstructor(self.messages)

        try:
            async with self.http.stream(
                "POST", "/api/chat/stream", json=payload, headers=self._headers()
            ) as response:
                if response.status_code != 200:
                    error = self._server_error(await response.aread())
                    app_logger.warning(f"Chat stream rejected with {response.status_code}: {error}")
                    reconstructor.fail(FALLBACK_MESSAGE)
                    result = reconstructor.finish()
                else:
                    result = await reconstructor.consume(response.aiter_bytes())
        except httpx.HTTPError as e:
            app_logger.error(f"Chat stream transport error: {str(e)}")
            reconstructor.fail(FALLBACK_MESSAGE)
            result = reconstructor.finish()

        if result.succeeded and self.auto_save:
            await self.save()

        return result

    async def save(self) -> Conversation:
        """Persist the transcript; the first call creates the conversation."""
        messages = [message.model_dump() for message in self.messages]

        if self.conversation_id is None:
            response = await self.http.post(
                "/api/conversations",
                json={"topic": self.topic, "messages": messages},
                headers=self._headers()
            )
        else:
            response = await self.http.patch(
                f"/api/conversations/{self.conversation_id}",
                json={"messages": messages},
                headers=self._headers()
            )

        response.raise_for_status()
        conversation = Conversation.model_validate(response.json())
        self.conversation_id = conversation.id
        app_logger.info(f"Saved conversation {conversation.id} ({conversation.message_count} messages)")
        return conversation

    async def resume(self, conversation_id: str) -> Conversation:
        """Load a stored conversation and continue it."""
        response = await self.http.get(
            f"/api/conversations/{conversation_id}",
            headers=self._headers()
        )
        response.raise_for_status()

        conversation = Conversation.model_validate(response.json())
        self.conversation_id = conversation.id
        self.topic = conversation.topic
        self.messages = list(conversation.messages)
        return conversation
