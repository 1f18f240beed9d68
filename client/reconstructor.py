"""
Client-side reconstruction of a streamed coaching answer.
Decodes the SSE byte stream and folds deltas into a single assistant message.
"""
import codecs
import json
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterable, Callable, List, Optional
from uuid import uuid4

from models.api_models import Message
from utils.constants import FALLBACK_MESSAGE, SSE
from utils.logger import app_logger


class ReaderState(Enum):
    READING = "reading"
    DONE = "done"


@dataclass
class TurnResult:
    """Outcome of one streamed turn as the user sees it."""
    text: str
    completed: bool
    error: Optional[str] = None
    message: Optional[Message] = None

    @property
    def succeeded(self) -> bool:
        return bool(self.text) and self.error is None


class ConversationReconstructor:
    """
    Rebuilds the assistant's answer from `data: ...` frames.

    The message list always holds at most one assistant entry for the turn: the
    first delta appends it, later deltas replace it in place under the same id.
    Whatever text has arrived is kept when the stream stops early.
    """

    def __init__(self, messages: Optional[List[Message]] = None, id_factory: Callable[[], str] | None = None):
        """
        Args:
            messages: Message list shown to the user; updated in place
            id_factory: Source of the turn's synthetic message id
        """
        self.messages = messages if messages is not None else []
        self.assistant_id = (id_factory or (lambda: str(uuid4())))()
        self.state = ReaderState.READING
        self.text = ""
        self.completed = False
        self.error: Optional[str] = None

        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._assistant_index: Optional[int] = None
        self._timestamp: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state is ReaderState.DONE

    def feed(self, chunk: bytes) -> None:
        """Consume raw bytes; partial UTF-8 sequences and lines wait for the next chunk."""
        if self.done:
            return

        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._handle_line(line)
            if self.done:
                return

    def _handle_line(self, line: str) -> None:
        line = line.rstrip("\r")
        if not line.startswith(SSE.DATA_PREFIX):
            return

        payload = line[len(SSE.DATA_PREFIX):]
        if payload == SSE.DONE:
            self.state = ReaderState.DONE
            return

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            app_logger.warning(f"Skipping malformed stream frame: {e}")
            return

        if not isinstance(data, dict):
            app_logger.warning(f"Skipping unexpected stream frame: {payload[:80]}")
            return

        if isinstance(data.get("delta"), str):
            self._apply_delta(data["delta"])
        elif data.get("completed") is True:
            self.completed = True
        elif "error" in data:
            self.error = str(data["error"])

    def _apply_delta(self, delta: str) -> None:
        self.text += delta

        if self._assistant_index is None:
            message = Message(id=self.assistant_id, sender="ai", text=self.text)
            self._timestamp = message.timestamp
            self.messages.append(message)
            self._assistant_index = len(self.messages) - 1
        else:
            self.messages[self._assistant_index] = Message(
                id=self.assistant_id, sender="ai", text=self.text, timestamp=self._timestamp
            )

    def fail(self, error: str) -> None:
        """Record a failure that happened outside the stream (transport, HTTP status)."""
        self.error = error

    def finish(self) -> TurnResult:
        """
        Finalize the turn after the sentinel or the end of the byte stream.

        A trailing unterminated line is still processed. A turn with no text gets
        an apology bubble on the result only; it never enters `messages`, so it is
        neither replayed as history nor saved.
        """
        if not self.done:
            self._buffer += self._decoder.decode(b"", final=True)
            if self._buffer:
                line, self._buffer = self._buffer, ""
                self._handle_line(line)
            self.state = ReaderState.DONE

        if not self.completed and self.text:
            app_logger.info(f"Stream ended before completion; keeping {len(self.text)} characters")

        if not self.text:
            apology = self.error or FALLBACK_MESSAGE
            return TurnResult(
                text="",
                completed=self.completed,
                error=apology,
                message=Message(id=self.assistant_id, sender="ai", text=apology)
            )

        return TurnResult(
            text=self.text,
            completed=self.completed,
            error=self.error,
            message=self.messages[self._assistant_index]
        )

    async def consume(self, chunks: AsyncIterable[bytes]) -> TurnResult:
        """Drive the reconstructor from an async byte iterator until the sentinel or EOF."""
        async for chunk in chunks:
            self.feed(chunk)
            if self.done:
                break
        return self.finish()
