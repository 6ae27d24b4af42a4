"""
DOM-structure chunking strategy.

Parses the page's raw HTML with BeautifulSoup, isolates the main content
region, drops boilerplate, and walks the tree in document order so code
blocks, tables and lists become chunks of their own while prose is grouped
per section and per heading.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from src.ingestion.extracted_content import ExtractedContent
from src.processing.events import EventPublisher

from .base import (
    ChunkerStrategy,
    ChunkingOptions,
    Chunk,
    ChunkType,
    HtmlChunkingOptions,
    is_cancelled,
    pack_segments,
    pack_words,
    split_sentences
)
from .paragraph import ParagraphChunker

logger = logging.getLogger(__name__)

HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
PARAGRAPH_TAGS = {"p", "blockquote", "dd", "dt", "figcaption", "address"}
LIST_TAGS = frozenset({"ul", "ol"})
CODE_TAGS = {"pre", "code"}
SKIPPED_TAGS = {"script", "style", "noscript", "template", "svg", "head", "img", "iframe"}
INLINE_TAGS = {
    "a", "abbr", "b", "bdi", "bdo", "br", "cite", "code", "data", "dfn", "em",
    "i", "kbd", "label", "mark", "q", "s", "samp", "small", "span", "strong",
    "sub", "sup", "time", "u", "var",
}
IGNORED_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)

BLOCK_SEPARATOR = "\n\n"
TABLE_CELL_SEPARATOR = " | "
LIST_BULLET = "• "


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def raw_text(tag: Tag, skip: FrozenSet[str] = frozenset()) -> str:
    """
    Text of ``tag`` with a space at every ``<br>`` and block-level boundary.

    Inline children are concatenated as-is so ``hel<b>lo</b>`` stays one
    word. Descendants named in ``skip`` are left out entirely.
    """
    parts: List[str] = []
    _collect_text(tag, parts, skip)
    return "".join(parts)


def _collect_text(tag: Tag, parts: List[str], skip: FrozenSet[str]) -> None:
    for child in tag.children:
        if isinstance(child, NavigableString):
            if not isinstance(child, IGNORED_STRINGS):
                parts.append(str(child))
            continue
        if not isinstance(child, Tag) or child.name in SKIPPED_TAGS or child.name in skip:
            continue
        if child.name == "br":
            parts.append(" ")
            continue

        boundary = child.name not in INLINE_TAGS
        if boundary:
            parts.append(" ")
        _collect_text(child, parts, skip)
        if boundary:
            parts.append(" ")


def element_text(tag: Tag, skip: FrozenSet[str] = frozenset()) -> str:
    return collapse_whitespace(raw_text(tag, skip))


def describe_element(tag: Tag) -> str:
    """Short CSS-like label for a tag, e.g. ``section#intro`` or ``div.content``."""
    element_id = tag.get("id")
    if element_id:
        return f"{tag.name}#{element_id}"
    classes = tag.get("class")
    if classes:
        return f"{tag.name}.{classes[0]}"
    return tag.name


def serialize_table(table: Tag) -> str:
    """
    Serialize a table row by row.

    Cells are joined with `` | `` and rows with newlines; header rows are
    formatted like data rows.
    """
    rows = []
    for row in table.find_all("tr"):
        cells = [element_text(cell) for cell in row.find_all(["th", "td"])]
        if any(cells):
            rows.append(TABLE_CELL_SEPARATOR.join(cells))

    if not rows:
        return element_text(table)
    return "\n".join(rows)


def serialize_list(list_tag: Tag, depth: int = 0) -> str:
    """
    Serialize a list as one bulleted line per item.

    Nested lists follow their parent item on their own lines, indented two
    spaces per level.
    """
    indent = "  " * depth
    lines = []
    for item in list_tag.find_all("li", recursive=False):
        text = element_text(item, skip=LIST_TAGS)
        if text:
            lines.append(indent + LIST_BULLET + text)
        for nested in item.find_all(list(LIST_TAGS)):
            if nested.find_parent("li") is item:
                nested_lines = serialize_list(nested, depth + 1)
                if nested_lines:
                    lines.append(nested_lines)
    return "\n".join(lines)


def split_oversized_text(text: str, max_size: int) -> List[str]:
    """
    Split text longer than ``max_size`` at sentence boundaries.

    Sentences that are themselves too long are word-packed.
    """
    if len(text) <= max_size:
        return [text]

    segments = []
    for sentence in split_sentences(text):
        if len(sentence) > max_size:
            segments.extend(pack_words(sentence, max_size))
        else:
            segments.append(sentence)
    return pack_segments(segments, max_size, " ")


@dataclass
class DomBlock:
    """A chunk candidate collected during the DOM walk."""
    text: str
    chunk_type: ChunkType
    heading_path: List[str] = field(default_factory=list)
    dom_path: str = ""
    heading_only: bool = False


class DomWalker:
    """
    Document-order walker that turns a content region into ``DomBlock`` objects.

    Inline text accumulates until the next block-level element; block text
    is buffered until a heading, section, or structured block (code, table,
    list) forces a flush.
    """

    def __init__(self, html_options: HtmlChunkingOptions, cancel_event: Optional[threading.Event] = None):
        self.options = html_options
        self.cancel_event = cancel_event
        self.blocks: List[DomBlock] = []
        self.cancelled = False
        self._heading_stack: List[Tuple[int, str]] = []
        self._inline: List[str] = []
        self._inline_path = ""
        self._buffer: List[str] = []
        self._buffer_path = ""
        self._buffer_heading_only = False

    @property
    def heading_path(self) -> List[str]:
        return [title for _, title in self._heading_stack]

    def walk(self, element: Tag, dom_path: str) -> None:
        for child in element.children:
            if is_cancelled(self.cancel_event):
                self.cancelled = True
                return

            if isinstance(child, NavigableString):
                if not isinstance(child, IGNORED_STRINGS):
                    self._add_inline(str(child), dom_path)
                continue

            if not isinstance(child, Tag) or child.name in SKIPPED_TAGS:
                continue

            self._visit(child, dom_path)
            if self.cancelled:
                return

    def finish(self) -> List[DomBlock]:
        if not self.cancelled:
            self.flush()
        return self.blocks

    def _visit(self, tag: Tag, parent_path: str) -> None:
        name = tag.name
        path = f"{parent_path} > {describe_element(tag)}"

        if name in CODE_TAGS and (name == "pre" or self._is_standalone(tag)):
            code = tag.get_text()
            if not code.strip():
                return
            if self.options.keep_code_blocks_together:
                self._emit(code.strip("\n"), ChunkType.CODE, path)
            else:
                self._add_block_text(collapse_whitespace(code), parent_path)
        elif name == "br":
            self._add_inline(" ", parent_path)
        elif name in INLINE_TAGS:
            self._add_inline(raw_text(tag), parent_path)
        elif name in HEADING_TAGS:
            self.flush()
            title = element_text(tag)
            if title:
                level = int(name[1])
                while self._heading_stack and self._heading_stack[-1][0] >= level:
                    self._heading_stack.pop()
                self._heading_stack.append((level, title))
                self._add_block_text(title, parent_path, heading=True)
        elif self._is_section(tag):
            self.flush()
            self.walk(tag, path)
            if not self.cancelled:
                self.flush()
        elif name == "table":
            table = serialize_table(tag)
            if not table:
                return
            if self.options.keep_tables_together:
                self._emit(table, ChunkType.TABLE, path)
            else:
                self._add_block_text(table, parent_path)
        elif name in LIST_TAGS:
            items = serialize_list(tag)
            if not items:
                return
            if self.options.keep_lists_together:
                self._emit(items, ChunkType.LIST, path)
            else:
                self._add_block_text(items, parent_path)
        elif name in PARAGRAPH_TAGS:
            self._add_block_text(element_text(tag), parent_path)
        else:
            self._close_inline()
            self.walk(tag, path)
            self._close_inline()

    def _is_section(self, tag: Tag) -> bool:
        return any(tag.css.match(selector) for selector in self.options.section_selectors)

    @staticmethod
    def _is_standalone(tag: Tag) -> bool:
        parent = tag.parent
        if parent is None:
            return True
        for sibling in parent.children:
            if sibling is tag:
                continue
            if isinstance(sibling, Tag) and sibling.name in INLINE_TAGS:
                return False
            if isinstance(sibling, NavigableString) and not isinstance(sibling, IGNORED_STRINGS) and sibling.strip():
                return False
        return True

    def _add_inline(self, text: str, dom_path: str) -> None:
        if not self._inline:
            self._inline_path = dom_path
        self._inline.append(text)

    def _close_inline(self) -> None:
        text = collapse_whitespace("".join(self._inline))
        path = self._inline_path
        self._inline = []
        if text:
            self._add_block_text(text, path, close_inline=False)

    def _add_block_text(self, text: str, dom_path: str, close_inline: bool = True, heading: bool = False) -> None:
        if close_inline:
            self._close_inline()
        if not text:
            return
        if not self._buffer:
            self._buffer_path = dom_path
        self._buffer_heading_only = heading and not self._buffer
        self._buffer.append(text)

    def flush(self) -> None:
        self._close_inline()
        if not self._buffer:
            return

        text = BLOCK_SEPARATOR.join(self._buffer)
        path = self._buffer_path
        heading_only = self._buffer_heading_only
        self._buffer = []
        self._buffer_heading_only = False

        for piece in split_oversized_text(text, self.options.max_chunk_size):
            self.blocks.append(DomBlock(piece, ChunkType.TEXT, self.heading_path, path, heading_only))

    def _emit(self, text: str, chunk_type: ChunkType, dom_path: str) -> None:
        self.flush()
        self.blocks.append(DomBlock(text, chunk_type, self.heading_path, dom_path))


def merge_small_blocks(blocks: List[DomBlock], min_size: int, max_size: int) -> List[DomBlock]:
    """
    Merge blocks shorter than ``min_size`` forward into their neighbours.

    Merging only happens while the result stays within ``max_size``; a
    trailing small block merges into the previous one. Text blocks merge
    with each other; code, tables and lists only absorb a heading-only
    text block directly in front of them.
    """
    merged: List[DomBlock] = []
    pending: Optional[DomBlock] = None

    for block in blocks:
        if pending is None:
            pending = block
        elif len(pending.text) < min_size and _can_merge(pending, block, max_size):
            pending = _combine(pending, block)
        else:
            merged.append(pending)
            pending = block

    if pending is not None:
        if merged and len(pending.text) < min_size and _can_merge(merged[-1], pending, max_size):
            merged[-1] = _combine(merged[-1], pending)
        else:
            merged.append(pending)

    return merged


def _can_merge(first: DomBlock, second: DomBlock, max_size: int) -> bool:
    if len(first.text) + len(BLOCK_SEPARATOR) + len(second.text) > max_size:
        return False
    if first.chunk_type == ChunkType.TEXT and second.chunk_type == ChunkType.TEXT:
        return True
    return first.heading_only and second.chunk_type != ChunkType.TEXT


def _combine(first: DomBlock, second: DomBlock) -> DomBlock:
    # Keep the more specific heading path
    prefix = second.heading_path[:len(first.heading_path)]
    heading_path = second.heading_path if prefix == first.heading_path else first.heading_path
    structured = second.chunk_type != ChunkType.TEXT
    return DomBlock(
        text=first.text + BLOCK_SEPARATOR + second.text,
        chunk_type=second.chunk_type,
        heading_path=list(heading_path),
        dom_path=second.dom_path if structured else first.dom_path
    )


def _positive_or(value: Optional[int], default: int) -> int:
    return value if value is not None and value > 0 else default


class DomStructureChunker(ChunkerStrategy):
    """
    Chunking strategy driven by the HTML document structure.

    This chunker:
    - Picks the main content region with priority-ordered selectors
    - Removes navigation, ads, comments and other boilerplate
    - Emits code blocks, tables and lists as standalone chunks
    - Groups prose per section and heading, tracking the heading path
    - Splits oversized text at sentences and merges undersized chunks
    """

    name = "DomStructure"
    description = "Chunks HTML by its DOM structure, keeping code, tables and lists intact"

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        super().__init__(event_publisher)
        self._fallback = ParagraphChunker()

    def resolve_html_options(self, options: ChunkingOptions) -> HtmlChunkingOptions:
        """
        Get the HTML options for a call.

        Explicit ``html_chunking_options`` win and are replaced by defaults
        when invalid. Otherwise the sizes come from the general options; a
        configured maximum is always kept and the minimum is lowered below
        it when needed.
        """
        html_options = options.html_options
        if html_options is None:
            defaults = HtmlChunkingOptions()
            max_size = _positive_or(options.max_chunk_size, defaults.max_chunk_size)
            min_size = _positive_or(options.min_chunk_size, defaults.min_chunk_size)
            if min_size >= max_size:
                logger.debug(f"Lowering min_chunk_size {min_size} below max_chunk_size {max_size}")
                min_size = max(max_size // 2, 1)
            html_options = HtmlChunkingOptions(max_chunk_size=max_size, min_chunk_size=min_size)

        errors = html_options.validate()
        if errors:
            logger.warning(f"Invalid HTML chunking options ({'; '.join(errors)}), using defaults")
            html_options = HtmlChunkingOptions()

        return html_options

    def _create_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> List[Chunk]:
        html_options = self.resolve_html_options(options)
        parameters: Dict[str, Any] = {
            "max_chunk_size": html_options.max_chunk_size,
            "min_chunk_size": html_options.min_chunk_size,
        }

        if not content.original_html or not content.original_html.strip():
            text = content.effective_text
            if not text.strip():
                return []
            logger.debug("No HTML available, packing plain text")
            return self._chunks_from_texts(
                pack_words(text, html_options.max_chunk_size, cancel_event),
                content.source_url,
                html_options.max_chunk_size,
                parameters={**parameters, "mode": "text"}
            )

        try:
            blocks = self._collect_blocks(content.original_html, html_options, cancel_event)
        except Exception as e:
            logger.warning(f"DOM chunking failed for {content.source_url or 'unknown source'}, falling back to paragraphs: {e}")
            return self._fallback.chunk(content, options, cancel_event)

        blocks = merge_small_blocks(blocks, html_options.min_chunk_size, html_options.max_chunk_size)

        return [
            self._make_chunk(
                block.text,
                content.source_url,
                html_options.max_chunk_size,
                chunk_type=block.chunk_type,
                heading_path=block.heading_path,
                parameters={**parameters, "dom_path": block.dom_path}
            )
            for block in blocks
        ]

    def _collect_blocks(
        self,
        html: str,
        html_options: HtmlChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> List[DomBlock]:
        soup = BeautifulSoup(html, 'html.parser')

        for selector in html_options.exclude_selectors:
            for element in soup.select(selector):
                if not element.decomposed:
                    element.decompose()

        root = self._find_content_root(soup, html_options)
        if not root.get_text().strip():
            return []

        root_label = "document" if root is soup else describe_element(root)
        walker = DomWalker(html_options, cancel_event)
        walker.walk(root, root_label)
        return walker.finish()

    @staticmethod
    def _find_content_root(soup: BeautifulSoup, html_options: HtmlChunkingOptions) -> Tag:
        for selector in html_options.content_selectors:
            element = soup.select_one(selector)
            if element is not None:
                return element
        return soup.body or soup
