"""
Chunking telemetry events and the publisher contract.

Strategies announce when chunking starts, every chunk they produce, and
when they finish (or fail). The default publisher discards everything;
callers plug in their own to forward events to a message bus or a
progress tracker.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ChunkingEvent:
    """Base class for chunking events."""
    url: str
    strategy: str
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass
class ChunkingStarted(ChunkingEvent):
    text_length: int = 0


@dataclass
class ChunkGenerated(ChunkingEvent):
    chunk_id: str = ""
    sequence_number: int = 0
    chunk_length: int = 0


@dataclass
class ChunkingCompleted(ChunkingEvent):
    chunk_count: int = 0
    average_chunk_size: int = 0
    processing_time_ms: int = 0
    cancelled: bool = False


@dataclass
class ChunkingFailed(ChunkingEvent):
    error: str = ""


class EventPublisher(ABC):
    """Receives chunking events."""

    @abstractmethod
    def publish(self, event: ChunkingEvent) -> None:
        """
        Publish a single event.

        Args:
            event: Event to publish
        """
        pass


class NoOpEventPublisher(EventPublisher):
    def publish(self, event: ChunkingEvent) -> None:
        pass
