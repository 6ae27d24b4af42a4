"""
Heading-aware chunking strategy.

Splits a document into heading-delimited sections so every chunk keeps the
heading that introduces it, and records the chain of ancestor headings as
the chunk's heading path.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from src.ingestion.extracted_content import ExtractedContent

from .base import (
    ChunkerStrategy,
    ChunkingOptions,
    Chunk,
    is_cancelled,
    normalize_newlines,
    pack_words
)
from .paragraph import pack_paragraphs

logger = logging.getLogger(__name__)

MAX_STANDALONE_HEADING_LENGTH = 100

_MARKDOWN_HEADING = re.compile(r'^(#{1,6})\s+(.+?)\s*#*$')
_HTML_HEADING = re.compile(r'^<h([1-6])\b[^>]*>(.*?)</h\1>$', re.IGNORECASE)
_TAG = re.compile(r'<[^>]+>')
_LIST_ITEM = re.compile(r'^([-*+•]|\d+[.)])\s')
_HAS_LETTER = re.compile(r'[^\W\d_]')


@dataclass
class Section:
    """A heading-delimited run of lines."""
    heading_path: List[str] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines).strip()


class SmartChunker(ChunkerStrategy):
    """
    Chunking strategy that follows the document's heading structure.

    Headings are recognized as:
    - Markdown ``#`` lines (level = number of ``#``)
    - Single-line ``<h1>`` .. ``<h6>`` tags
    - Lines matching one of the extracted headings
    - Short standalone lines (after a blank line, no period, not a list item)

    Headings without an explicit level sit one level below the last
    explicit heading. Documents without extracted headings are packed by
    paragraph instead.
    """

    name = "Smart"
    description = "Splits documents at headings and keeps heading context"
    default_chunk_size = 1500

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

        if not content.has_headings:
            logger.debug("No headings detected, packing by paragraph")
            return self._chunks_from_texts(
                pack_paragraphs(text, size, cancel_event),
                content.source_url,
                size,
                parameters={"chunk_size": size, "mode": "paragraph"}
            )

        known_headings = {h.strip() for h in content.headings if h and h.strip()}
        sections = self.extract_sections(text, known_headings)
        parameters = {"chunk_size": size, "mode": "sections", "section_count": len(sections)}

        chunks = []
        for section in sections:
            if is_cancelled(cancel_event):
                break

            for piece in self._split_section(section.text, size, cancel_event):
                chunks.append(self._make_chunk(
                    piece,
                    content.source_url,
                    size,
                    heading_path=section.heading_path,
                    parameters=parameters
                ))

        return chunks

    def extract_sections(self, text: str, known_headings: Set[str]) -> List[Section]:
        """
        Split text into sections that start at heading lines.

        Args:
            text: Document text
            known_headings: Heading strings reported by extraction

        Returns:
            Non-empty sections in document order
        """
        sections: List[Section] = []
        current = Section()
        stack: List[Tuple[int, str]] = []
        last_explicit_level = 0
        previous_blank = True
        in_code_fence = False

        for line in normalize_newlines(text).split("\n"):
            stripped = line.strip()

            if stripped.startswith("```"):
                in_code_fence = not in_code_fence

            heading = None
            if not in_code_fence and not stripped.startswith("```"):
                heading = self.detect_heading(stripped, previous_blank, known_headings)

            if heading:
                title, level = heading
                if current.text:
                    sections.append(current)

                if level is None:
                    level = last_explicit_level + 1
                else:
                    last_explicit_level = level

                while stack and stack[-1][0] >= level:
                    stack.pop()
                stack.append((level, title))

                current = Section(heading_path=[t for _, t in stack], lines=[line])
            else:
                current.lines.append(line)

            previous_blank = not stripped

        if current.text:
            sections.append(current)

        return sections

    def detect_heading(
        self,
        line: str,
        previous_blank: bool,
        known_headings: Set[str]
    ) -> Optional[Tuple[str, Optional[int]]]:
        """
        Decide whether a stripped line is a heading.

        Returns:
            ``(title, level)`` for headings, where ``level`` is None when the
            line carries no explicit level; None for ordinary lines
        """
        if not line:
            return None

        match = _MARKDOWN_HEADING.match(line)
        if match:
            return match.group(2).strip(), len(match.group(1))

        match = _HTML_HEADING.match(line)
        if match:
            title = _TAG.sub("", match.group(2)).strip()
            if title:
                return title, int(match.group(1))

        if line in known_headings:
            return line, None

        if (
            previous_blank
            and len(line) < MAX_STANDALONE_HEADING_LENGTH
            and "." not in line
            and line[-1] not in "!?,;:"
            and _HAS_LETTER.search(line)
            and not _LIST_ITEM.match(line)
            and line[0] not in "|>`<"
        ):
            return line, None

        return None

    def _split_section(
        self,
        section_text: str,
        size: int,
        cancel_event: Optional[threading.Event]
    ) -> List[str]:
        if len(section_text) <= size:
            return [section_text]

        pieces = []
        for paragraph_chunk in pack_paragraphs(section_text, size, cancel_event):
            if len(paragraph_chunk) <= size:
                pieces.append(paragraph_chunk)
            else:
                pieces.extend(pack_words(paragraph_chunk, size, cancel_event))
        return pieces
