"""
Data models for chat processing.
Contains upstream stream events, relay states and completion results.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StreamEventKind(Enum):
    """Closed set of events produced by the upstream completion stream."""
    DELTA = "delta"
    COMPLETED = "completed"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StreamEvent:
    """
    One event from the upstream completion stream.
    `text` is set for DELTA, `error` for ERROR, `raw_type` for UNKNOWN.
    """
    kind: StreamEventKind
    text: Optional[str] = None
    error: Optional[str] = None
    raw_type: Optional[str] = None

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(kind=StreamEventKind.DELTA, text=text)

    @classmethod
    def completed(cls) -> "StreamEvent":
        return cls(kind=StreamEventKind.COMPLETED)

    @classmethod
    def failed(cls, error: str) -> "StreamEvent":
        return cls(kind=StreamEventKind.ERROR, error=error)

    @classmethod
    def unknown(cls, raw_type: str) -> "StreamEvent":
        return cls(kind=StreamEventKind.UNKNOWN, raw_type=raw_type)


class RelayState(Enum):
    """Lifecycle of a single streaming response."""
    IDLE = "idle"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class CompletionResult:
    """Result of a blocking completion call."""
    text: str
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None
