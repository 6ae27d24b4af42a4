"""
Base interface for web content chunking strategies.

This module defines the chunk value object, the chunking options, the
abstract base class shared by every strategy, and the small packing
helpers the strategies are built from.
"""

import asyncio
import logging
import re
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional

from src.ingestion.extracted_content import ExtractedContent
from src.processing.events import (
    ChunkGenerated,
    ChunkingCompleted,
    ChunkingFailed,
    ChunkingStarted,
    EventPublisher,
    NoOpEventPublisher,
)

logger = logging.getLogger(__name__)

HTML_OPTIONS_KEY = "html_chunking_options"

_PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


class ChunkType(Enum):
    """Types of chunks."""
    TEXT = "text"
    IMAGE_DESCRIPTION = "image_description"
    TABLE = "table"
    CODE = "code"
    HEADER = "header"
    LIST = "list"
    LINKS = "links"
    METADATA = "metadata"


@dataclass
class ChunkingStrategyInfo:
    """
    Which strategy produced a chunk and with what settings.

    Attributes:
        strategy_name: Name of the producing strategy
        parameters: Strategy parameters (sizes, DOM path, auto-selection details)
        processing_time_ms: Wall time of the whole chunking call
    """
    strategy_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    processing_time_ms: int = 0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_chunk_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Chunk:
    """
    A bounded unit of web content prepared for embedding and indexing.

    Attributes:
        content: The text content of the chunk
        source_url: URL of the page the chunk came from
        sequence_number: Zero-based position of the chunk in its document
        chunk_type: Type of chunk (text, code, table, ...)
        heading_path: Ancestor heading titles, outermost first
        quality_score: Heuristic 0-1 estimate of the chunk's quality
        strategy_info: Producing strategy and its parameters
        chunk_id: Unique identifier for this chunk
        created_at: Creation timestamp (UTC)
    """
    content: str
    source_url: str = ""
    sequence_number: int = 0
    chunk_type: ChunkType = ChunkType.TEXT
    heading_path: List[str] = field(default_factory=list)
    quality_score: float = 0.0
    strategy_info: ChunkingStrategyInfo = field(
        default_factory=lambda: ChunkingStrategyInfo(strategy_name="unknown")
    )
    chunk_id: str = field(default_factory=_new_chunk_id)
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def section_title(self) -> Optional[str]:
        return self.heading_path[-1] if self.heading_path else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert chunk to dictionary for indexing."""
        return {
            "id": self.chunk_id,
            "content": self.content,
            "metadata": {
                "source_url": self.source_url,
                "sequence_number": self.sequence_number,
                "chunk_type": self.chunk_type.value,
                "heading_path": list(self.heading_path),
                "section_title": self.section_title,
                "quality_score": self.quality_score,
                "strategy": self.strategy_info.strategy_name,
                "strategy_parameters": dict(self.strategy_info.parameters),
                "processing_time_ms": self.strategy_info.processing_time_ms,
                "created_at": self.created_at.isoformat(),
            }
        }


@dataclass
class HtmlChunkingOptions:
    """
    Options for DOM-structure chunking.

    Attributes:
        content_selectors: Priority-ordered CSS selectors for the main content region
        exclude_selectors: CSS selectors of boilerplate regions to drop
        section_selectors: CSS selectors of elements that form one text chunk each
        keep_code_blocks_together: Emit pre/code blocks as single verbatim chunks
        keep_tables_together: Emit tables as single chunks
        keep_lists_together: Emit lists as single chunks
        max_chunk_size: Maximum characters per text chunk
        min_chunk_size: Chunks shorter than this are merged with neighbours
    """
    content_selectors: List[str] = field(default_factory=lambda: [
        "article",
        "main",
        "[role='main']",
        ".content",
        "#content",
        ".post-content",
        ".entry-content",
        ".article-content",
    ])
    exclude_selectors: List[str] = field(default_factory=lambda: [
        "nav",
        "footer",
        "header",
        "aside",
        ".sidebar",
        ".advertisement",
        ".ads",
        ".social-share",
        ".related-posts",
        ".comments",
        "#comments",
        ".navigation",
        ".menu",
        "[role='navigation']",
        "[role='complementary']",
        "[aria-hidden='true']",
    ])
    section_selectors: List[str] = field(default_factory=lambda: [
        "section",
        "article",
        "div.section",
        "div[class*='section']",
        "div[role='region']",
    ])
    keep_code_blocks_together: bool = True
    keep_tables_together: bool = True
    keep_lists_together: bool = True
    max_chunk_size: int = 1500
    min_chunk_size: int = 100

    def validate(self) -> List[str]:
        """
        Check the size bounds.

        Returns:
            List of error messages, empty when the options are valid
        """
        errors = []
        if self.max_chunk_size <= 0:
            errors.append("max_chunk_size must be greater than 0")
        if self.min_chunk_size <= 0:
            errors.append("min_chunk_size must be greater than 0")
        if self.max_chunk_size <= self.min_chunk_size:
            errors.append("max_chunk_size must be greater than min_chunk_size")
        return errors


@dataclass(frozen=True)
class ChunkingOptions:
    """
    Per-call chunking configuration.

    Sizes left as ``None`` fall back to each strategy's own default.

    Attributes:
        chunk_size: Target chunk size in characters
        min_chunk_size: Minimum chunk size in characters
        max_chunk_size: Maximum chunk size in characters
        minimize_memory_usage: Prefer the low-footprint strategy
        strategy_specific_options: Extra settings keyed by name
            (e.g. ``"html_chunking_options"``)
    """
    chunk_size: Optional[int] = None
    min_chunk_size: Optional[int] = None
    max_chunk_size: Optional[int] = None
    minimize_memory_usage: bool = False
    strategy_specific_options: Dict[str, Any] = field(default_factory=dict)

    def resolve_size(self, default: int) -> int:
        """
        Pick the size bound for a single-bound strategy.

        Args:
            default: Strategy default used when no positive size is configured

        Returns:
            ``chunk_size``, else ``max_chunk_size``, else ``default``
        """
        for candidate in (self.chunk_size, self.max_chunk_size):
            if candidate is not None and candidate > 0:
                return candidate
        return default

    @property
    def html_options(self) -> Optional[HtmlChunkingOptions]:
        value = self.strategy_specific_options.get(HTML_OPTIONS_KEY)
        return value if isinstance(value, HtmlChunkingOptions) else None


def is_cancelled(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_paragraphs(text: str) -> List[str]:
    """
    Split text on blank lines.

    Args:
        text: Input text (any line endings)

    Returns:
        Trimmed, non-empty paragraphs in document order
    """
    paragraphs = _PARAGRAPH_BREAK.split(normalize_newlines(text))
    return [p.strip() for p in paragraphs if p.strip()]


def split_sentences(text: str) -> List[str]:
    """Split text after ``.``, ``!`` or ``?`` followed by whitespace."""
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s.strip()]


def pack_segments(
    segments: Iterable[str],
    max_size: int,
    separator: str,
    cancel_event: Optional[threading.Event] = None
) -> List[str]:
    """
    Greedily pack segments into strings no longer than ``max_size``.

    A segment that alone exceeds ``max_size`` is emitted on its own,
    unsplit. When cancellation is requested the partially filled buffer is
    discarded and only completed pieces are returned.

    Args:
        segments: Segments in document order
        max_size: Maximum packed length
        separator: String placed between segments
        cancel_event: Optional cancellation flag checked per segment

    Returns:
        Packed strings
    """
    packed: List[str] = []
    current: List[str] = []
    current_length = 0

    for segment in segments:
        if is_cancelled(cancel_event):
            return packed

        added = len(segment) + (len(separator) if current else 0)
        if current and current_length + added > max_size:
            packed.append(separator.join(current))
            current = []
            current_length = 0
            added = len(segment)

        current.append(segment)
        current_length += added

    if current:
        packed.append(separator.join(current))

    return packed


def pack_words(
    text: str,
    max_size: int,
    cancel_event: Optional[threading.Event] = None
) -> List[str]:
    """Pack whole words (split on any whitespace) joined by single spaces."""
    return pack_segments(text.split(), max_size, " ", cancel_event)


def estimate_quality(content: str, target_size: int) -> float:
    """
    Heuristic 0-1 quality estimate for a chunk.

    Rewards chunks that fill a reasonable share of the target size, end on
    a natural boundary, and carry enough words to be meaningful.
    """
    stripped = content.strip()
    if not stripped:
        return 0.0

    words = len(stripped.split())
    fill = min(len(stripped) / target_size, 1.0) if target_size > 0 else 1.0
    clean_end = 1.0 if stripped[-1] in ".!?:;\"')]}`|" else 0.5
    substance = min(words / 20, 1.0)

    return round(min(0.4 * fill + 0.3 * clean_end + 0.3 * substance, 1.0), 3)


class ChunkingError(Exception):
    """Base exception for chunking errors."""
    pass


class InvalidStrategyNameError(ChunkingError, ValueError):
    """Raised when a strategy is requested with a blank or unknown name."""
    pass


class ChunkerStrategy(ABC):
    """
    Abstract base class for chunking strategies.

    Each strategy is responsible for:
    1. Splitting one document into ordered chunks
    2. Preserving the structure it knows about (paragraphs, headings, DOM)
    3. Respecting its size bound
    4. Stopping early, without raising, when cancellation is requested

    The base class wraps the strategy-specific ``_create_chunks`` with event
    publishing, timing, empty-chunk filtering and sequence numbering.
    """

    name: str = ""
    description: str = ""

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        """
        Initialize the chunking strategy.

        Args:
            event_publisher: Optional receiver for chunking events
        """
        self.event_publisher = event_publisher or NoOpEventPublisher()

    @abstractmethod
    def _create_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> List[Chunk]:
        """
        Produce chunks for a single document.

        Sequence numbers and processing times are filled in afterwards.

        Args:
            content: Extracted content to chunk
            options: Chunking options
            cancel_event: Optional cancellation flag

        Returns:
            Chunks in document order
        """
        pass

    def chunk(
        self,
        content: Optional[ExtractedContent],
        options: Optional[ChunkingOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Chunk]:
        """
        Chunk a single extracted document.

        Args:
            content: Extracted content; ``None`` yields no chunks
            options: Chunking options (strategy defaults when omitted)
            cancel_event: Set it to stop early and get the chunks done so far

        Returns:
            Ordered list of chunks with contiguous sequence numbers
        """
        if content is None:
            return []

        options = options or ChunkingOptions()
        source_url = content.source_url
        started = time.monotonic()

        self.event_publisher.publish(ChunkingStarted(
            url=source_url,
            strategy=self.name,
            text_length=len(content.effective_text)
        ))

        try:
            raw_chunks = self._create_chunks(content, options, cancel_event)
        except Exception as e:
            logger.error(f"{self.name} chunking failed for {source_url or 'unknown source'}: {e}")
            self.event_publisher.publish(ChunkingFailed(
                url=source_url,
                strategy=self.name,
                error=str(e)
            ))
            raise

        elapsed_ms = int((time.monotonic() - started) * 1000)
        chunks = self._finalize(raw_chunks, elapsed_ms)

        for chunk in chunks:
            self.event_publisher.publish(ChunkGenerated(
                url=source_url,
                strategy=self.name,
                chunk_id=chunk.chunk_id,
                sequence_number=chunk.sequence_number,
                chunk_length=len(chunk.content)
            ))

        self.event_publisher.publish(ChunkingCompleted(
            url=source_url,
            strategy=self.name,
            chunk_count=len(chunks),
            average_chunk_size=sum(len(c.content) for c in chunks) // len(chunks) if chunks else 0,
            processing_time_ms=elapsed_ms,
            cancelled=is_cancelled(cancel_event)
        ))

        logger.debug(f"{self.name} created {len(chunks)} chunks from {source_url or 'unknown source'}")
        return chunks

    async def chunk_async(
        self,
        content: Optional[ExtractedContent],
        options: Optional[ChunkingOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> List[Chunk]:
        """Run ``chunk`` in a worker thread so event loops stay responsive."""
        return await asyncio.to_thread(self.chunk, content, options, cancel_event)

    def chunk_stream(
        self,
        content: Optional[ExtractedContent],
        options: Optional[ChunkingOptions] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Iterator[Chunk]:
        """
        Yield numbered chunks one at a time.

        Strategies that override ``_iter_chunks`` produce chunks lazily, so
        only the chunk being built is held in memory. Each chunk's
        ``processing_time_ms`` is the time elapsed when it was yielded.

        Args:
            content: Extracted content; ``None`` yields nothing
            options: Chunking options (strategy defaults when omitted)
            cancel_event: Set it to stop after the chunk being consumed

        Yields:
            Chunks with contiguous sequence numbers
        """
        if content is None:
            return

        options = options or ChunkingOptions()
        source_url = content.source_url
        started = time.monotonic()
        sequence_number = 0
        total_length = 0

        self.event_publisher.publish(ChunkingStarted(
            url=source_url,
            strategy=self.name,
            text_length=len(content.effective_text)
        ))

        try:
            for chunk in self._iter_chunks(content, options, cancel_event):
                if not chunk.content or not chunk.content.strip():
                    continue

                chunk.sequence_number = sequence_number
                chunk.strategy_info.processing_time_ms = int((time.monotonic() - started) * 1000)
                self.event_publisher.publish(ChunkGenerated(
                    url=source_url,
                    strategy=self.name,
                    chunk_id=chunk.chunk_id,
                    sequence_number=sequence_number,
                    chunk_length=len(chunk.content)
                ))
                sequence_number += 1
                total_length += len(chunk.content)
                yield chunk
        except Exception as e:
            logger.error(f"{self.name} chunk stream failed for {source_url or 'unknown source'}: {e}")
            self.event_publisher.publish(ChunkingFailed(
                url=source_url,
                strategy=self.name,
                error=str(e)
            ))
            raise

        self.event_publisher.publish(ChunkingCompleted(
            url=source_url,
            strategy=self.name,
            chunk_count=sequence_number,
            average_chunk_size=total_length // sequence_number if sequence_number else 0,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            cancelled=is_cancelled(cancel_event)
        ))

    def _iter_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> Iterable[Chunk]:
        return self._create_chunks(content, options, cancel_event)

    def chunk_many(
        self,
        contents: List[ExtractedContent],
        options: Optional[ChunkingOptions] = None
    ) -> List[Chunk]:
        """
        Chunk multiple documents.

        Each document is numbered independently.

        Args:
            contents: Documents to chunk

        Returns:
            List of all chunks from all documents
        """
        all_chunks = []
        for content in contents:
            all_chunks.extend(self.chunk(content, options))
        return all_chunks

    def _make_chunk(
        self,
        text: str,
        source_url: str,
        target_size: int,
        chunk_type: ChunkType = ChunkType.TEXT,
        heading_path: Optional[List[str]] = None,
        parameters: Optional[Dict[str, Any]] = None
    ) -> Chunk:
        return Chunk(
            content=text,
            source_url=source_url,
            chunk_type=chunk_type,
            heading_path=list(heading_path or []),
            quality_score=estimate_quality(text, target_size),
            strategy_info=ChunkingStrategyInfo(
                strategy_name=self.name,
                parameters=dict(parameters or {})
            )
        )

    def _chunks_from_texts(
        self,
        texts: List[str],
        source_url: str,
        target_size: int,
        parameters: Optional[Dict[str, Any]] = None
    ) -> List[Chunk]:
        return [
            self._make_chunk(text, source_url, target_size, parameters=parameters)
            for text in texts
        ]

    @staticmethod
    def _finalize(chunks: List[Chunk], elapsed_ms: int) -> List[Chunk]:
        kept = [c for c in chunks if c.content and c.content.strip()]
        for index, chunk in enumerate(kept):
            chunk.sequence_number = index
            chunk.strategy_info.processing_time_ms = elapsed_ms
        return kept

    def calculate_chunk_stats(self, chunks: List[Chunk]) -> Dict[str, Any]:
        """
        Calculate statistics for produced chunks.

        Args:
            chunks: List of Chunk objects

        Returns:
            Dict with chunk statistics
        """
        if not chunks:
            return {
                "total_chunks": 0,
                "chunks_by_type": {},
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "avg_quality": 0.0
            }

        chunk_sizes = [len(chunk.content) for chunk in chunks]
        by_type: Dict[str, int] = {}
        for chunk in chunks:
            by_type[chunk.chunk_type.value] = by_type.get(chunk.chunk_type.value, 0) + 1

        return {
            "total_chunks": len(chunks),
            "chunks_by_type": by_type,
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "avg_quality": round(sum(c.quality_score for c in chunks) / len(chunks), 3)
        }

    def get_sample_chunks(self, chunks: List[Chunk], num_samples: int = 3) -> List[Dict[str, Any]]:
        """
        Get sample chunks for display.

        Args:
            chunks: List of Chunk objects
            num_samples: Number of samples to return

        Returns:
            List of dicts with chunk info for display
        """
        samples = []
        for chunk in chunks[:num_samples]:
            preview = chunk.content[:150].replace("\n", " ")
            samples.append({
                "index": chunk.sequence_number,
                "type": chunk.chunk_type.value.upper(),
                "size": len(chunk.content),
                "heading": " > ".join(chunk.heading_path) or "None",
                "quality": chunk.quality_score,
                "preview": preview + ("..." if len(chunk.content) > 150 else ""),
            })
        return samples

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
