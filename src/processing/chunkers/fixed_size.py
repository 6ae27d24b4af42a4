"""
Fixed-size chunking strategy.

Packs whole words into chunks of at most ``chunk_size`` characters.
"""

import logging
import threading
from typing import List, Optional

from src.ingestion.extracted_content import ExtractedContent

from .base import ChunkerStrategy, ChunkingOptions, Chunk, pack_words

logger = logging.getLogger(__name__)


class FixedSizeChunker(ChunkerStrategy):
    """
    Chunking strategy that splits text into word-aligned, size-bounded chunks.

    Words are never split; a single word longer than the bound becomes a
    chunk of its own.
    """

    name = "FixedSize"
    description = "Splits text into chunks of a fixed size at word boundaries"
    default_chunk_size = 1000

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
        pieces = pack_words(text, size, cancel_event)

        return self._chunks_from_texts(
            pieces,
            content.source_url,
            size,
            parameters={"chunk_size": size}
        )
