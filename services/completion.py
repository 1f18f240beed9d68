"""
Upstream completion client.
Wraps an Ollama chat model in blocking and streaming modes.
"""
from typing import AsyncIterator

import ollama

from config import Config
from models.chat_models import CompletionResult, StreamEvent, StreamEventKind
from utils.constants import FALLBACK_MESSAGE
from utils.logger import app_logger


class CompletionService:
    """Sends an assembled prompt to the coaching model."""

    def __init__(self, client: ollama.AsyncClient, model: str | None = None):
        self.client = client
        self.model = model or Config.COACH_MODEL

    @staticmethod
    def _messages(prompt: str) -> list[dict]:
        return [{"role": "user", "content": prompt}]

    async def complete_sync(self, prompt: str) -> CompletionResult:
        """
        Single blocking completion.

        A blank answer or any upstream failure is converted into the user-safe
        fallback text; the underlying error is kept in `error` for logs.
        """
        try:
            response = await self.client.chat(model=self.model, messages=self._messages(prompt))
            text = (response['message']['content'] or "").strip()
            if not text:
                raise ValueError("Empty completion from model.")
            app_logger.info(f"Completion finished: {len(text)} characters")
            return CompletionResult(text=text)

        except ollama.ResponseError as e:
            app_logger.error(f"Ollama error: {e.error}")
            return CompletionResult(text=FALLBACK_MESSAGE, error=e.error)
        except Exception as e:
            app_logger.error(f"Error getting AI response: {str(e)}")
            return CompletionResult(text=FALLBACK_MESSAGE, error=str(e) or "Unknown error")

    @staticmethod
    def events_for_chunk(chunk) -> list[StreamEvent]:
        """
        Translate one upstream chunk into stream events.

        The final chunk may carry both text and the done flag, so a chunk can
        produce a DELTA followed by COMPLETED. Chunks with neither (thinking
        traces, tool calls, keep-alives) become a single UNKNOWN event.
        """
        message = chunk.get('message') or {}
        content = message.get('content') or ""

        events = []
        if content:
            events.append(StreamEvent.delta(content))
        if chunk.get('done'):
            events.append(StreamEvent.completed())

        if not events:
            if message.get('thinking'):
                raw_type = "thinking"
            elif message.get('tool_calls'):
                raw_type = "tool_calls"
            else:
                raw_type = "empty"
            events.append(StreamEvent.unknown(raw_type))

        return events

    @staticmethod
    async def _close(stream) -> None:
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            app_logger.warning(f"Error closing upstream stream: {e}")

    async def complete_stream(self, prompt: str) -> AsyncIterator[StreamEvent]:
        """
        Stream a completion as DELTA events followed by exactly one COMPLETED.

        The Ollama client only sends the request when the first chunk is pulled,
        so failing to open the stream or to read its first chunk yields a single
        ERROR event instead of raising. Errors after the first chunk propagate
        to the caller. The upstream stream is closed whenever iteration stops.
        """
        stream = None
        try:
            stream = await self.client.chat(
                model=self.model,
                messages=self._messages(prompt),
                stream=True
            )
            chunk = await anext(stream, None)
        except ollama.ResponseError as e:
            app_logger.error(f"Ollama error opening stream: {e.error}")
            await self._close(stream)
            yield StreamEvent.failed(e.error)
            return
        except Exception as e:
            app_logger.error(f"Could not open upstream stream: {str(e)}")
            await self._close(stream)
            yield StreamEvent.failed(str(e) or "Unknown error")
            return

        try:
            while chunk is not None:
                for event in self.events_for_chunk(chunk):
                    yield event
                    if event.kind is StreamEventKind.COMPLETED:
                        return
                chunk = await anext(stream, None)
        finally:
            await self._close(stream)
