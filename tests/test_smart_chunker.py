"""
Tests for SmartChunker.
"""

import pytest

from src.ingestion.extracted_content import ExtractedContent
from src.processing.chunkers import ChunkingOptions, SmartChunker


MARKDOWN_DOC = """# Guide

Intro paragraph here.

## Install

Run the installer.

## Usage

Call the function."""


class TestSmartChunker:
    """Test suite for SmartChunker."""

    @pytest.fixture
    def chunker(self):
        return SmartChunker()

    def test_splits_at_markdown_headings(self, chunker):
        content = ExtractedContent(text=MARKDOWN_DOC, headings=["Guide", "Install", "Usage"])

        chunks = chunker.chunk(content)

        assert [c.content for c in chunks] == [
            "# Guide\n\nIntro paragraph here.",
            "## Install\n\nRun the installer.",
            "## Usage\n\nCall the function.",
        ]
        assert [c.heading_path for c in chunks] == [
            ["Guide"],
            ["Guide", "Install"],
            ["Guide", "Usage"],
        ]
        assert chunks[2].section_title == "Usage"

    def test_falls_back_to_paragraphs_without_headings(self, chunker):
        content = ExtractedContent(text=MARKDOWN_DOC)

        chunks = chunker.chunk(content)

        assert len(chunks) == 1
        assert chunks[0].heading_path == []
        assert chunks[0].strategy_info.parameters["mode"] == "paragraph"

    def test_short_standalone_lines_are_headings(self, chunker):
        text = "Overview\n\nSome text here.\n\nDetails\n\nMore text."
        content = ExtractedContent(text=text, headings=["Overview"])

        chunks = chunker.chunk(content)

        assert [c.content for c in chunks] == [
            "Overview\n\nSome text here.",
            "Details\n\nMore text.",
        ]
        assert [c.heading_path for c in chunks] == [["Overview"], ["Details"]]

    def test_html_heading_lines(self, chunker):
        text = "<h1>Title</h1>\nBody text.\n<h2>Part</h2>\nMore body."
        content = ExtractedContent(text=text, headings=["Title", "Part"])

        chunks = chunker.chunk(content)

        assert [c.heading_path for c in chunks] == [["Title"], ["Title", "Part"]]

    def test_implicit_heading_nested_under_explicit(self, chunker):
        text = "## API\n\nReference.\n\nParameters\n\nThe list."
        content = ExtractedContent(text=text, headings=["API", "Parameters"])

        chunks = chunker.chunk(content)

        assert chunks[-1].heading_path == ["API", "Parameters"]

    def test_preamble_has_empty_heading_path(self, chunker):
        text = "Some preamble text.\n\n# First\n\nBody."
        content = ExtractedContent(text=text, headings=["First"])

        chunks = chunker.chunk(content)

        assert chunks[0].content == "Some preamble text."
        assert chunks[0].heading_path == []
        assert chunks[1].heading_path == ["First"]

    def test_list_items_are_not_headings(self, chunker):
        text = "# Steps\n\n- Install\n\n- Configure"
        content = ExtractedContent(text=text, headings=["Steps"])

        chunks = chunker.chunk(content)

        assert len(chunks) == 1
        assert chunks[0].heading_path == ["Steps"]

    def test_code_fence_lines_are_not_headings(self, chunker):
        text = "# Example\n\n```\n# not a heading\n```"
        content = ExtractedContent(text=text, headings=["Example"])

        chunks = chunker.chunk(content)

        assert len(chunks) == 1
        assert "# not a heading" in chunks[0].content

    def test_oversized_section_subdivided(self, chunker):
        text = "# Title\n\n" + " ".join(["word"] * 40)
        content = ExtractedContent(text=text, headings=["Title"])

        chunks = chunker.chunk(content, ChunkingOptions(chunk_size=50))

        assert len(chunks) == 5
        assert chunks[0].content == "# Title"
        assert all(len(c.content) <= 50 for c in chunks)
        assert all(c.heading_path == ["Title"] for c in chunks)
        assert [c.sequence_number for c in chunks] == list(range(5))

    def test_round_trip_keeps_all_words(self, chunker):
        content = ExtractedContent(text=MARKDOWN_DOC, headings=["Guide"])

        chunks = chunker.chunk(content, ChunkingOptions(chunk_size=30))

        rebuilt = " ".join(c.content for c in chunks)
        assert rebuilt.split() == MARKDOWN_DOC.split()

    def test_empty_text(self, chunker):
        assert chunker.chunk(ExtractedContent(text="  ", headings=["A"])) == []
