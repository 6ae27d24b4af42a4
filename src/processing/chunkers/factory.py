"""
Factory for creating chunking strategies.

This module resolves strategies by name, describes them for callers that
want to explain a choice, and recommends a strategy from simple content
heuristics.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from src.embedding.providers.base import EmbeddingProvider
from src.ingestion.extracted_content import ExtractedContent
from src.processing.events import EventPublisher

from .auto import AutoChunker
from .base import ChunkerStrategy, ChunkingOptions, InvalidStrategyNameError
from .dom_structure import DomStructureChunker
from .fixed_size import FixedSizeChunker
from .memory_optimized import MemoryOptimizedChunker
from .paragraph import ParagraphChunker
from .scoring import AutoChunkingConfig
from .semantic import SemanticChunker
from .smart import SmartChunker

logger = logging.getLogger(__name__)

VERY_LARGE_CONTENT_LENGTH = 100000
LARGE_CONTENT_LENGTH = 10000
IMAGE_RICH_CONTENT_LENGTH = 5000
MIN_TECHNICAL_MARKERS = 3

TECHNICAL_MARKERS = (
    "class ", "function ", "method ", "api ", "```", "code", "example",
    "parameter", "return", "import", "export", "interface", "type",
)

DOCUMENTATION_HINTS = (
    "github.com", "stackoverflow.com", "medium.com", "dev.to",
    "docs.", "api.", "learn.", "guide.", "manual",
    "documentation", "/docs", "reference",
)


@dataclass
class StrategyDescriptor:
    """Descriptive metadata about a chunking strategy."""
    name: str
    description: str
    performance_class: str
    memory_usage: str
    suitable_content_types: List[str] = field(default_factory=list)
    use_cases: List[str] = field(default_factory=list)


STRATEGY_DESCRIPTORS: Dict[str, StrategyDescriptor] = {
    "FixedSize": StrategyDescriptor(
        name="FixedSize",
        description=FixedSizeChunker.description,
        performance_class="Fast",
        memory_usage="Low",
        suitable_content_types=["plain text", "logs", "unstructured content"],
        use_cases=["uniform chunk sizes", "simple baselines"]
    ),
    "Paragraph": StrategyDescriptor(
        name="Paragraph",
        description=ParagraphChunker.description,
        performance_class="Fast",
        memory_usage="Low",
        suitable_content_types=["articles", "blog posts", "news"],
        use_cases=["general web pages", "fallback strategy"]
    ),
    "Semantic": StrategyDescriptor(
        name="Semantic",
        description=SemanticChunker.description,
        performance_class="Medium",
        memory_usage="Medium",
        suitable_content_types=["long-form prose", "academic papers", "essays"],
        use_cases=["question answering", "sentence-complete chunks"]
    ),
    "Smart": StrategyDescriptor(
        name="Smart",
        description=SmartChunker.description,
        performance_class="Medium",
        memory_usage="Medium",
        suitable_content_types=["documentation", "tutorials", "technical guides"],
        use_cases=["section-aware retrieval", "heading context in results"]
    ),
    "DomStructure": StrategyDescriptor(
        name="DomStructure",
        description=DomStructureChunker.description,
        performance_class="Slow",
        memory_usage="High",
        suitable_content_types=["HTML pages", "API references", "pages with tables and code"],
        use_cases=["preserving code blocks and tables", "boilerplate removal"]
    ),
    "MemoryOptimized": StrategyDescriptor(
        name="MemoryOptimized",
        description=MemoryOptimizedChunker.description,
        performance_class="Fast",
        memory_usage="Very Low",
        suitable_content_types=["very large documents", "data dumps"],
        use_cases=["memory-constrained workers", "documents over 100,000 characters"]
    ),
    "Auto": StrategyDescriptor(
        name="Auto",
        description=AutoChunker.description,
        performance_class="Medium",
        memory_usage="Medium",
        suitable_content_types=["mixed or unknown content"],
        use_cases=["heterogeneous crawls", "hands-off pipelines"]
    ),
}


class ChunkingStrategyFactory:
    """
    Factory for creating chunking strategies by name.

    Example:
        >>> factory = ChunkingStrategyFactory()
        >>> chunker = factory.create_strategy("paragraph")
        >>> chunker.name
        'Paragraph'
    """

    def __init__(
        self,
        event_publisher: Optional[EventPublisher] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        auto_config: Optional[AutoChunkingConfig] = None
    ):
        self.event_publisher = event_publisher
        self.embedding_provider = embedding_provider
        self.auto_config = auto_config

        self._builders: Dict[str, Callable[[], ChunkerStrategy]] = {
            "fixedsize": lambda: FixedSizeChunker(event_publisher=self.event_publisher),
            "paragraph": lambda: ParagraphChunker(event_publisher=self.event_publisher),
            "semantic": lambda: SemanticChunker(
                embedding_provider=self.embedding_provider,
                event_publisher=self.event_publisher
            ),
            "smart": lambda: SmartChunker(event_publisher=self.event_publisher),
            "domstructure": lambda: DomStructureChunker(event_publisher=self.event_publisher),
            "memoryoptimized": lambda: MemoryOptimizedChunker(event_publisher=self.event_publisher),
            "auto": lambda: AutoChunker(
                config=self.auto_config,
                embedding_provider=self.embedding_provider,
                event_publisher=self.event_publisher
            ),
        }

    def create_strategy(self, name: Optional[str]) -> ChunkerStrategy:
        """
        Create a strategy by name (case-insensitive).

        Args:
            name: Strategy name, e.g. "Paragraph" or "domstructure"

        Returns:
            Strategy instance; unknown names get a ParagraphChunker

        Raises:
            InvalidStrategyNameError: If name is None, empty or whitespace
        """
        key = self._normalize_name(name)
        builder = self._builders.get(key)
        if builder is None:
            logger.warning(f"Unknown chunking strategy '{name}', using Paragraph")
            builder = self._builders["paragraph"]
        return builder()

    def get_available_strategies(self) -> List[str]:
        return list(STRATEGY_DESCRIPTORS.keys())

    def get_strategy_info(self, name: Optional[str]) -> StrategyDescriptor:
        """
        Describe a strategy.

        Raises:
            InvalidStrategyNameError: If the name is blank or unknown
        """
        key = self._normalize_name(name)
        for descriptor_name, descriptor in STRATEGY_DESCRIPTORS.items():
            if descriptor_name.lower() == key:
                return descriptor
        raise InvalidStrategyNameError(f"Unknown chunking strategy: {name}")

    def recommend_strategy(
        self,
        content: Optional[ExtractedContent],
        options: Optional[ChunkingOptions] = None
    ) -> str:
        """
        Recommend a strategy name for a document.

        Rules, first match wins:
        1. Very large content or memory minimization -> MemoryOptimized
        2. Headings, or a documentation-like URL/title -> Auto
        3. Images and more than 5,000 characters -> Smart
        4. Technical markers -> Smart
        5. More than 10,000 characters -> Semantic
        6. Otherwise -> Paragraph

        Args:
            content: Document to inspect
            options: Chunking options

        Returns:
            Strategy name; "Paragraph" for missing content or on any failure
        """
        if content is None:
            return "Paragraph"

        try:
            return self._recommend(content, options or ChunkingOptions())
        except Exception as e:
            logger.warning(f"Strategy recommendation failed, using Paragraph: {e}")
            return "Paragraph"

    def _recommend(self, content: ExtractedContent, options: ChunkingOptions) -> str:
        text = content.effective_text
        length = len(text)

        if length > VERY_LARGE_CONTENT_LENGTH or options.minimize_memory_usage:
            return "MemoryOptimized"

        if content.has_headings or self._looks_like_documentation(content):
            return "Auto"

        if content.has_images and length > IMAGE_RICH_CONTENT_LENGTH:
            return "Smart"

        if self._count_technical_markers(text) >= MIN_TECHNICAL_MARKERS:
            return "Smart"

        if length > LARGE_CONTENT_LENGTH:
            return "Semantic"

        return "Paragraph"

    @staticmethod
    def _looks_like_documentation(content: ExtractedContent) -> bool:
        url = content.source_url.lower()
        title = (content.title or "").lower()
        if any(hint in url for hint in DOCUMENTATION_HINTS):
            return True
        return any(word in title for word in ("documentation", "docs", "api reference", "guide", "manual"))

    @staticmethod
    def _count_technical_markers(text: str) -> int:
        lowered = text.lower()
        return sum(1 for marker in TECHNICAL_MARKERS if marker in lowered)

    @staticmethod
    def _normalize_name(name: Optional[str]) -> str:
        if name is None or not str(name).strip():
            raise InvalidStrategyNameError("Strategy name is required")
        return str(name).strip().lower().replace("_", "").replace("-", "")
