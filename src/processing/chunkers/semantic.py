"""
Semantic chunking strategy.

Without an embedding provider this behaves like paragraph packing with a
smaller default bound. With a provider it switches to sentence-aware
packing so chunks never end mid-sentence.
"""

import logging
import re
import threading
from typing import List, Optional

from src.embedding.providers.base import EmbeddingProvider
from src.ingestion.extracted_content import ExtractedContent
from src.processing.events import EventPublisher

from .base import ChunkerStrategy, ChunkingOptions, Chunk, pack_segments
from .paragraph import pack_paragraphs

logger = logging.getLogger(__name__)

_SENTENCE_TERMINATORS = re.compile(r"[.!?]+")
_HAS_WORD = re.compile(r"\w")

SENTENCE_SEPARATOR = ". "


def split_into_sentences(text: str) -> List[str]:
    """
    Split text on runs of ``.``, ``!`` and ``?``.

    Terminators are removed; whitespace inside each sentence is collapsed,
    and fragments without any word character are dropped.
    """
    sentences = []
    for fragment in _SENTENCE_TERMINATORS.split(text):
        sentence = " ".join(fragment.split())
        if sentence and _HAS_WORD.search(sentence):
            sentences.append(sentence)
    return sentences


class SemanticChunker(ChunkerStrategy):
    """
    Chunking strategy that groups meaning-bearing units.

    The embedding provider only selects the sentence-aware mode; it is not
    called to compare sentences.
    """

    name = "Semantic"
    description = "Groups sentences or paragraphs into coherent chunks"
    default_chunk_size = 1500

    def __init__(
        self,
        embedding_provider: Optional[EmbeddingProvider] = None,
        event_publisher: Optional[EventPublisher] = None
    ):
        super().__init__(event_publisher)
        self.embedding_provider = embedding_provider

    @property
    def sentence_mode(self) -> bool:
        return self.embedding_provider is not None

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

        if self.sentence_mode:
            pieces = self._pack_sentences(text, size, cancel_event)
        else:
            pieces = pack_paragraphs(text, size, cancel_event)

        return self._chunks_from_texts(
            pieces,
            content.source_url,
            size,
            parameters={
                "chunk_size": size,
                "mode": "sentence" if self.sentence_mode else "paragraph"
            }
        )

    def _pack_sentences(
        self,
        text: str,
        size: int,
        cancel_event: Optional[threading.Event]
    ) -> List[str]:
        sentences = split_into_sentences(text)
        # Reserve room for the closing period on every packed chunk
        packed = pack_segments(sentences, max(size - 1, 1), SENTENCE_SEPARATOR, cancel_event)
        return [piece + "." for piece in packed]
