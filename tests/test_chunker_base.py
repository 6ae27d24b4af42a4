"""
Tests for the shared chunker base: options, helpers, events, numbering.
"""

import asyncio
import threading
from datetime import timezone
from unittest.mock import Mock

import pytest

from src.ingestion.extracted_content import ExtractedContent
from src.processing.chunkers import (
    Chunk,
    ChunkerStrategy,
    ChunkingOptions,
    ChunkType,
    FixedSizeChunker,
    HtmlChunkingOptions,
    ParagraphChunker
)
from src.processing.chunkers.base import (
    estimate_quality,
    pack_segments,
    pack_words,
    split_paragraphs,
    split_sentences
)
from src.processing.events import (
    ChunkGenerated,
    ChunkingCompleted,
    ChunkingFailed,
    ChunkingStarted,
    EventPublisher
)


class ExplodingChunker(ChunkerStrategy):
    name = "Exploding"

    def _create_chunks(self, content, options, cancel_event):
        raise RuntimeError("boom")


class RawChunker(ChunkerStrategy):
    """Returns whatever texts it was given, unfiltered."""
    name = "Raw"

    def __init__(self, texts, event_publisher=None):
        super().__init__(event_publisher)
        self.texts = texts

    def _create_chunks(self, content, options, cancel_event):
        return self._chunks_from_texts(self.texts, content.source_url, 100)


@pytest.fixture
def publisher():
    return Mock(spec=EventPublisher)


@pytest.fixture
def content():
    return ExtractedContent(
        text="First paragraph here.\n\nSecond paragraph here.",
        url="https://example.com/page"
    )


class TestChunkingOptions:
    """Tests for option resolution."""

    def test_defaults_to_strategy_size(self):
        assert ChunkingOptions().resolve_size(1000) == 1000

    def test_chunk_size_wins(self):
        options = ChunkingOptions(chunk_size=300, max_chunk_size=800)
        assert options.resolve_size(1000) == 300

    def test_max_chunk_size_used_without_chunk_size(self):
        assert ChunkingOptions(max_chunk_size=800).resolve_size(1000) == 800

    def test_non_positive_sizes_ignored(self):
        assert ChunkingOptions(chunk_size=0, max_chunk_size=-5).resolve_size(1000) == 1000

    def test_html_options_lookup(self):
        html_options = HtmlChunkingOptions(max_chunk_size=500)
        options = ChunkingOptions(strategy_specific_options={"html_chunking_options": html_options})
        assert options.html_options is html_options

    def test_html_options_missing(self):
        assert ChunkingOptions().html_options is None
        assert ChunkingOptions(strategy_specific_options={"html_chunking_options": "nope"}).html_options is None


class TestHtmlChunkingOptions:
    """Tests for HTML option defaults and validation."""

    def test_defaults_are_valid(self):
        options = HtmlChunkingOptions()

        assert options.validate() == []
        assert options.max_chunk_size == 1500
        assert options.min_chunk_size == 100
        assert options.content_selectors[0] == "article"
        assert "nav" in options.exclude_selectors
        assert options.keep_code_blocks_together is True

    def test_min_not_below_max(self):
        errors = HtmlChunkingOptions(max_chunk_size=100, min_chunk_size=200).validate()
        assert any("greater than min_chunk_size" in e for e in errors)

    def test_non_positive_sizes(self):
        errors = HtmlChunkingOptions(max_chunk_size=0, min_chunk_size=0).validate()
        assert len(errors) == 3


class TestHelpers:
    """Tests for the packing helpers."""

    def test_split_paragraphs_normalizes_line_endings(self):
        assert split_paragraphs("One.\r\n\r\nTwo.\r\rThree.") == ["One.", "Two.", "Three."]

    def test_split_paragraphs_drops_blank(self):
        assert split_paragraphs("\n\n  \n\nOnly one.\n\n\n") == ["Only one."]

    def test_split_sentences(self):
        assert split_sentences("Hi there. How are you? Great!") == ["Hi there.", "How are you?", "Great!"]

    def test_pack_segments_respects_bound(self):
        assert pack_segments(["aa", "bb", "cc"], 5, " ") == ["aa bb", "cc"]

    def test_pack_segments_keeps_oversized_segment_whole(self):
        assert pack_segments(["a", "toolongsegment", "b"], 5, " ") == ["a", "toolongsegment", "b"]

    def test_pack_segments_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        assert pack_segments(["a", "b"], 10, " ", cancel) == []

    def test_pack_words_collapses_whitespace(self):
        assert pack_words("alpha   beta\n\ngamma", 100) == ["alpha beta gamma"]

    def test_estimate_quality_range(self):
        assert estimate_quality("", 100) == 0.0
        score = estimate_quality("A complete sentence with several useful words in it.", 100)
        assert 0.0 < score <= 1.0


class TestChunkerStrategy:
    """Tests for the behaviour shared by every strategy."""

    def test_none_content_returns_empty(self):
        assert ParagraphChunker().chunk(None) == []

    def test_sequence_numbers_contiguous(self, content):
        chunks = ParagraphChunker().chunk(content, ChunkingOptions(chunk_size=25))

        assert [c.sequence_number for c in chunks] == list(range(len(chunks)))
        assert len(chunks) == 2

    def test_whitespace_chunks_dropped_and_renumbered(self, content):
        chunks = RawChunker(["one", "   ", "", "two"]).chunk(content)

        assert [c.content for c in chunks] == ["one", "two"]
        assert [c.sequence_number for c in chunks] == [0, 1]

    def test_chunk_metadata(self, content):
        chunks = ParagraphChunker().chunk(content)
        chunk = chunks[0]

        assert chunk.source_url == "https://example.com/page"
        assert chunk.strategy_info.strategy_name == "Paragraph"
        assert chunk.strategy_info.parameters["chunk_size"] == 2000
        assert chunk.strategy_info.processing_time_ms >= 0
        assert chunk.created_at.tzinfo == timezone.utc
        assert 0.0 <= chunk.quality_score <= 1.0

    def test_ids_unique(self, content):
        chunks = FixedSizeChunker().chunk(content, ChunkingOptions(chunk_size=10))
        assert len({c.chunk_id for c in chunks}) == len(chunks)

    def test_events_published(self, publisher, content):
        chunker = ParagraphChunker(event_publisher=publisher)
        chunks = chunker.chunk(content)

        events = [call.args[0] for call in publisher.publish.call_args_list]
        assert isinstance(events[0], ChunkingStarted)
        assert events[0].text_length == len(content.text)
        assert isinstance(events[-1], ChunkingCompleted)
        assert events[-1].chunk_count == len(chunks)
        assert events[-1].cancelled is False

        generated = [e for e in events if isinstance(e, ChunkGenerated)]
        assert [e.chunk_id for e in generated] == [c.chunk_id for c in chunks]
        assert all(e.url == "https://example.com/page" for e in events)
        assert all(e.strategy == "Paragraph" for e in events)

    def test_failure_published_and_raised(self, publisher, content):
        chunker = ExplodingChunker(event_publisher=publisher)

        with pytest.raises(RuntimeError, match="boom"):
            chunker.chunk(content)

        last_event = publisher.publish.call_args_list[-1].args[0]
        assert isinstance(last_event, ChunkingFailed)
        assert last_event.error == "boom"

    def test_cancelled_before_start_returns_empty(self, publisher, content):
        cancel = threading.Event()
        cancel.set()

        chunks = FixedSizeChunker(event_publisher=publisher).chunk(content, cancel_event=cancel)

        assert chunks == []
        last_event = publisher.publish.call_args_list[-1].args[0]
        assert last_event.cancelled is True

    def test_chunk_async(self, content):
        chunker = ParagraphChunker()

        chunks = asyncio.run(chunker.chunk_async(content))

        assert [c.content for c in chunks] == [c.content for c in chunker.chunk(content)]

    def test_chunk_many_numbers_each_document(self, content):
        other = ExtractedContent(text="Another document.", url="https://example.com/other")

        chunks = ParagraphChunker().chunk_many([content, other], ChunkingOptions(chunk_size=25))

        assert [c.sequence_number for c in chunks] == [0, 1, 0]
        assert chunks[-1].source_url == "https://example.com/other"

    def test_calculate_chunk_stats(self, content):
        chunker = ParagraphChunker()
        chunks = chunker.chunk(content, ChunkingOptions(chunk_size=25))

        stats = chunker.calculate_chunk_stats(chunks)

        assert stats["total_chunks"] == 2
        assert stats["chunks_by_type"] == {"text": 2}
        assert stats["min_chunk_size"] == len("First paragraph here.")
        assert stats["max_chunk_size"] == len("Second paragraph here.")

    def test_calculate_chunk_stats_empty(self):
        stats = ParagraphChunker().calculate_chunk_stats([])
        assert stats["total_chunks"] == 0
        assert stats["avg_chunk_size"] == 0

    def test_get_sample_chunks(self, content):
        chunker = ParagraphChunker()
        chunks = chunker.chunk(content, ChunkingOptions(chunk_size=25))

        samples = chunker.get_sample_chunks(chunks, num_samples=1)

        assert len(samples) == 1
        assert samples[0]["type"] == "TEXT"
        assert samples[0]["heading"] == "None"
        assert samples[0]["preview"] == "First paragraph here."


class TestChunk:
    """Tests for the chunk value object."""

    def test_section_title(self):
        assert Chunk(content="x", heading_path=["Guide", "Install"]).section_title == "Install"
        assert Chunk(content="x").section_title is None

    def test_to_dict(self):
        chunk = Chunk(
            content="Some text.",
            source_url="https://example.com",
            chunk_type=ChunkType.CODE,
            heading_path=["API"]
        )

        data = chunk.to_dict()

        assert data["id"] == chunk.chunk_id
        assert data["content"] == "Some text."
        assert data["metadata"]["chunk_type"] == "code"
        assert data["metadata"]["heading_path"] == ["API"]
        assert data["metadata"]["section_title"] == "API"
        assert data["metadata"]["source_url"] == "https://example.com"
