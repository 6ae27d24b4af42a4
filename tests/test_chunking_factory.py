"""
Tests for ChunkingStrategyFactory.
"""

from unittest.mock import Mock, patch

import pytest

from src.embedding.providers.base import EmbeddingProvider
from src.ingestion.extracted_content import ExtractedContent
from src.processing.chunkers import (
    AutoChunker,
    AutoChunkingConfig,
    ChunkingOptions,
    ChunkingStrategyFactory,
    InvalidStrategyNameError
)
from src.processing.events import EventPublisher


@pytest.fixture
def factory():
    return ChunkingStrategyFactory()


class TestCreateStrategy:
    """Tests for resolving strategies by name."""

    @pytest.mark.parametrize("name", ["paragraph", "Paragraph", "PARAGRAPH", "  pArAgRaPh  "])
    def test_case_insensitive(self, factory, name):
        assert factory.create_strategy(name).name == "Paragraph"

    @pytest.mark.parametrize("name,expected", [
        ("FixedSize", "FixedSize"),
        ("fixed_size", "FixedSize"),
        ("semantic", "Semantic"),
        ("SMART", "Smart"),
        ("domstructure", "DomStructure"),
        ("memory-optimized", "MemoryOptimized"),
        ("auto", "Auto"),
    ])
    def test_all_strategies(self, factory, name, expected):
        assert factory.create_strategy(name).name == expected

    def test_unknown_falls_back_to_paragraph(self, factory):
        assert factory.create_strategy("bogus").name == "Paragraph"

    @pytest.mark.parametrize("name", [None, "", " ", "\t\n"])
    def test_blank_name_rejected(self, factory, name):
        with pytest.raises(InvalidStrategyNameError):
            factory.create_strategy(name)

    def test_blank_name_is_value_error(self, factory):
        with pytest.raises(ValueError):
            factory.create_strategy("")

    def test_new_instance_each_call(self, factory):
        assert factory.create_strategy("smart") is not factory.create_strategy("smart")

    def test_collaborators_passed_through(self):
        publisher = Mock(spec=EventPublisher)
        provider = Mock(spec=EmbeddingProvider)
        config = AutoChunkingConfig(min_keyword_matches=5)
        factory = ChunkingStrategyFactory(
            event_publisher=publisher,
            embedding_provider=provider,
            auto_config=config
        )

        semantic = factory.create_strategy("semantic")
        auto = factory.create_strategy("auto")

        assert semantic.embedding_provider is provider
        assert semantic.event_publisher is publisher
        assert isinstance(auto, AutoChunker)
        assert auto.config is config
        assert factory.create_strategy("fixedsize").event_publisher is publisher


class TestStrategyInfo:
    """Tests for strategy descriptors."""

    def test_available_strategies(self, factory):
        assert factory.get_available_strategies() == [
            "FixedSize",
            "Paragraph",
            "Semantic",
            "Smart",
            "DomStructure",
            "MemoryOptimized",
            "Auto",
        ]

    def test_strategy_info(self, factory):
        info = factory.get_strategy_info("memoryoptimized")

        assert info.name == "MemoryOptimized"
        assert info.memory_usage == "Very Low"
        assert info.use_cases
        assert info.suitable_content_types

    def test_unknown_strategy_info(self, factory):
        with pytest.raises(InvalidStrategyNameError):
            factory.get_strategy_info("bogus")

    def test_every_strategy_described(self, factory):
        for name in factory.get_available_strategies():
            assert factory.get_strategy_info(name).description == factory.create_strategy(name).description


class TestRecommendStrategy:
    """Tests for the recommendation heuristics."""

    def test_very_large_content(self, factory):
        content = ExtractedContent(text="word " * 30000)
        assert factory.recommend_strategy(content) == "MemoryOptimized"

    def test_minimize_memory(self, factory):
        content = ExtractedContent(text="Short text.", headings=["Intro"])
        options = ChunkingOptions(minimize_memory_usage=True)

        assert factory.recommend_strategy(content, options) == "MemoryOptimized"

    def test_headings(self, factory):
        content = ExtractedContent(text="Some text.", headings=["Intro"])
        assert factory.recommend_strategy(content) == "Auto"

    def test_documentation_url(self, factory):
        content = ExtractedContent(text="Some text.", url="https://docs.example.com/start")
        assert factory.recommend_strategy(content) == "Auto"

    def test_documentation_title(self, factory):
        content = ExtractedContent(text="Some text.", title="Widget API Reference")
        assert factory.recommend_strategy(content) == "Auto"

    def test_images_and_length(self, factory):
        content = ExtractedContent(text="word " * 1200, image_urls=["https://example.com/a.png"])
        assert factory.recommend_strategy(content) == "Smart"

    def test_images_short_content_not_smart(self, factory):
        content = ExtractedContent(text="A caption.", image_urls=["https://example.com/a.png"])
        assert factory.recommend_strategy(content) == "Paragraph"

    def test_technical_markers(self, factory):
        content = ExtractedContent(text="Use the function to import a class and return the type.")
        assert factory.recommend_strategy(content) == "Smart"

    def test_long_plain_content(self, factory):
        content = ExtractedContent(text="lorem " * 2000)
        assert factory.recommend_strategy(content) == "Semantic"

    def test_short_plain_content(self, factory):
        content = ExtractedContent(text="Just a short note.")
        assert factory.recommend_strategy(content) == "Paragraph"

    def test_none_content(self, factory):
        assert factory.recommend_strategy(None) == "Paragraph"

    def test_internal_fault(self, factory):
        content = ExtractedContent(text="Just a short note.")

        with patch.object(ChunkingStrategyFactory, "_recommend", side_effect=RuntimeError("boom")):
            assert factory.recommend_strategy(content) == "Paragraph"
