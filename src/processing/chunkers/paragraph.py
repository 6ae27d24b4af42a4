"""
Paragraph chunking strategy.

Splits text on blank lines and packs whole paragraphs into size-bounded
chunks. This is the fallback every other strategy degrades to.
"""

import logging
import threading
from typing import List, Optional

from src.ingestion.extracted_content import ExtractedContent

from .base import (
    ChunkerStrategy,
    ChunkingOptions,
    Chunk,
    pack_segments,
    split_paragraphs
)

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"


def pack_paragraphs(
    text: str,
    max_size: int,
    cancel_event: Optional[threading.Event] = None
) -> List[str]:
    """
    Pack the paragraphs of ``text`` into chunks of at most ``max_size``.

    Paragraphs are never split; an oversized paragraph is kept whole.
    """
    return pack_segments(split_paragraphs(text), max_size, PARAGRAPH_SEPARATOR, cancel_event)


class ParagraphChunker(ChunkerStrategy):
    """
    Chunking strategy that keeps paragraphs intact.

    Line endings are normalized before splitting, so CRLF and CR documents
    produce the same chunks as LF documents.
    """

    name = "Paragraph"
    description = "Groups whole paragraphs into chunks up to the size limit"
    default_chunk_size = 2000

    def _create_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> List[Chunk]:
        text = content.effective_text
        if not text.strip():
            return []

        size = options.resolve_size(self.default_chunk_size)
        pieces = pack_paragraphs(text, size, cancel_event)

        return self._chunks_from_texts(
            pieces,
            content.source_url,
            size,
            parameters={"chunk_size": size}
        )
