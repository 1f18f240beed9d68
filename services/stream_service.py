"""
Streaming service containing the SSE relay.
Forwards upstream completion events to the browser as server-sent event frames.
"""
import asyncio
import json
from typing import AsyncIterator, Awaitable, Callable

from config import Config
from models.chat_models import RelayState, StreamEventKind
from services.completion import CompletionService
from utils.constants import FALLBACK_MESSAGE, TIMEOUT_MESSAGE, SSE
from utils.logger import app_logger, log_development


class StreamRelay:
    """
    Single-use relay for one streaming chat request.

    IDLE -> STREAMING -> TERMINATED. Every exit path writes the `[DONE]`
    sentinel exactly once, as the last frame.
    """

    DONE_FRAME = f"{SSE.DATA_PREFIX}{SSE.DONE}{SSE.FRAME_END}"

    def __init__(
        self,
        completion: CompletionService,
        deadline: float | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None
    ):
        """
        Args:
            completion: Upstream completion client
            deadline: Hard limit in seconds for the whole turn (defaults to Config)
            is_disconnected: Polled before each frame; True stops the upstream stream
        """
        self.completion = completion
        self.deadline = Config.STREAM_TURN_TIMEOUT if deadline is None else deadline
        self.is_disconnected = is_disconnected
        self.state = RelayState.IDLE

    @staticmethod
    def format_frame(payload: dict) -> str:
        """Format a JSON payload as one SSE data frame."""
        return f"{SSE.DATA_PREFIX}{json.dumps(payload, separators=(',', ':'), ensure_ascii=False)}{SSE.FRAME_END}"

    def _remaining(self, started: float) -> float:
        remaining = self.deadline - (asyncio.get_running_loop().time() - started)
        if remaining <= 0:
            raise asyncio.TimeoutError()
        return remaining

    async def _client_gone(self) -> bool:
        if self.is_disconnected is None:
            return False
        return await self.is_disconnected()

    async def run(self, prompt_factory: Callable[[], Awaitable[str]]) -> AsyncIterator[str]:
        """
        Build the prompt, stream the completion and yield SSE frames.

        Args:
            prompt_factory: Coroutine function producing the assembled prompt

        Yields:
            `data: {...}` frames followed by the `data: [DONE]` sentinel
        """
        if self.state is not RelayState.IDLE:
            raise RuntimeError("StreamRelay instances serve exactly one request")
        self.state = RelayState.STREAMING

        started = asyncio.get_running_loop().time()
        events = None
        delta_count = 0

        try:
            prompt = await asyncio.wait_for(prompt_factory(), self._remaining(started))
            events = self.completion.complete_stream(prompt)

            while True:
                try:
                    event = await asyncio.wait_for(events.__anext__(), self._remaining(started))
                except StopAsyncIteration:
                    app_logger.warning("Upstream stream ended without a completion event")
                    break

                if await self._client_gone():
                    app_logger.info(f"Client disconnected after {delta_count} deltas, closing upstream stream")
                    break

                if event.kind is StreamEventKind.DELTA:
                    delta_count += 1
                    yield self.format_frame({"delta": event.text})
                elif event.kind is StreamEventKind.COMPLETED:
                    app_logger.info(f"Stream completed: {delta_count} deltas relayed")
                    yield self.format_frame({"completed": True})
                    break
                elif event.kind is StreamEventKind.ERROR:
                    app_logger.error(f"Upstream stream failed: {event.error}")
                    yield self.format_frame({"error": FALLBACK_MESSAGE})
                    break
                elif event.kind is StreamEventKind.UNKNOWN:
                    log_development(f"Unknown streaming event type: {event.raw_type}")
                else:
                    raise ValueError(f"Unhandled stream event kind: {event.kind}")

        except asyncio.TimeoutError:
            app_logger.error(f"Streaming turn exceeded the {self.deadline}s deadline")
            yield self.format_frame({"error": TIMEOUT_MESSAGE})
        except Exception as e:
            app_logger.error(f"Error in streaming chat: {str(e)}")
            yield self.format_frame({"error": FALLBACK_MESSAGE})
        finally:
            if events is not None:
                try:
                    await events.aclose()
                except Exception as e:
                    app_logger.warning(f"Error closing stream: {e}")

        self.state = RelayState.TERMINATED
        yield self.DONE_FRAME
