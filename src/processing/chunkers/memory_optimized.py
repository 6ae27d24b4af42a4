"""
Memory-optimized chunking strategy.

Produces the same chunks as fixed-size chunking but scans the source text
lazily, holding only the chunk being built.
"""

import logging
import re
import threading
from typing import Iterator, List, Optional

from src.ingestion.extracted_content import ExtractedContent

from .base import ChunkerStrategy, ChunkingOptions, Chunk, is_cancelled

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\S+")


def iter_word_chunks(
    text: str,
    max_size: int,
    cancel_event: Optional[threading.Event] = None
) -> Iterator[str]:
    """
    Yield word-packed chunks of ``text`` one at a time.

    Args:
        text: Source text
        max_size: Maximum chunk length (a single longer word is yielded alone)
        cancel_event: Optional cancellation flag checked per word

    Yields:
        Chunks joined by single spaces
    """
    buffer: List[str] = []
    length = 0

    for match in _WORD.finditer(text):
        if is_cancelled(cancel_event):
            return

        word = match.group()
        added = len(word) + (1 if buffer else 0)
        if buffer and length + added > max_size:
            yield " ".join(buffer)
            buffer = []
            length = 0
            added = len(word)

        buffer.append(word)
        length += added

    if buffer and not is_cancelled(cancel_event):
        yield " ".join(buffer)


class MemoryOptimizedChunker(ChunkerStrategy):
    """
    Fixed-size chunking built on a streaming word scanner.

    Use ``chunk_stream`` to consume chunks as they are produced instead of
    building the whole list.
    """

    name = "MemoryOptimized"
    description = "Streams fixed-size chunks for very large documents"
    default_chunk_size = 1000

    def _create_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> List[Chunk]:
        return list(self._iter_chunks(content, options, cancel_event))

    def _iter_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> Iterator[Chunk]:
        text = content.effective_text
        if not text.strip():
            return

        size = options.resolve_size(self.default_chunk_size)
        parameters = {"chunk_size": size, "streaming": True}

        for piece in iter_word_chunks(text, size, cancel_event):
            yield self._make_chunk(piece, content.source_url, size, parameters=parameters)
