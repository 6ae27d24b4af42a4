"""
Automatic chunking strategy.

Analyzes each document, scores every eligible concrete strategy and runs
the winner. Any failure along the way degrades to paragraph chunking.
"""

import logging
import threading
from typing import Dict, List, Optional

from src.embedding.providers.base import EmbeddingProvider
from src.ingestion.extracted_content import ExtractedContent
from src.processing.events import EventPublisher

from .base import ChunkerStrategy, ChunkingOptions, Chunk
from .dom_structure import DomStructureChunker
from .fixed_size import FixedSizeChunker
from .memory_optimized import MemoryOptimizedChunker
from .paragraph import ParagraphChunker
from .scoring import AutoChunkingConfig, ContentAnalyzer, StrategyScore, StrategyScorer
from .semantic import SemanticChunker
from .smart import SmartChunker

logger = logging.getLogger(__name__)


class AutoChunker(ChunkerStrategy):
    """
    Chunking strategy that picks the best concrete strategy per document.

    Selection details are attached to every chunk's strategy parameters
    (``auto_selected_strategy``, ``auto_selection_reasons``, ``auto_score``).
    """

    name = "Auto"
    description = "Analyzes content and runs the best-scoring strategy"

    def __init__(
        self,
        config: Optional[AutoChunkingConfig] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        event_publisher: Optional[EventPublisher] = None
    ):
        super().__init__(event_publisher)
        self.config = config or AutoChunkingConfig()
        self.analyzer = ContentAnalyzer(self.config)
        self.scorer = StrategyScorer(self.config)
        self._strategies: Dict[str, ChunkerStrategy] = {
            "Paragraph": ParagraphChunker(),
            "Smart": SmartChunker(),
            "Semantic": SemanticChunker(embedding_provider=embedding_provider),
            "DomStructure": DomStructureChunker(),
            "FixedSize": FixedSizeChunker(),
            "MemoryOptimized": MemoryOptimizedChunker(),
        }

    def select_strategy(
        self,
        content: ExtractedContent,
        options: Optional[ChunkingOptions] = None
    ) -> StrategyScore:
        """
        Analyze content and return the winning strategy's score.

        Args:
            content: Document to analyze
            options: Chunking options (memory preference is honoured)

        Returns:
            Score of the selected strategy, with its reasons
        """
        metadata = self.analyzer.analyze(content)
        scores = self.scorer.score_all(metadata, options)
        best = self.scorer.select(scores)

        logger.info(
            f"Auto selected {best.strategy_name} for {content.source_url or 'unknown source'} "
            f"(score {best.total_score:.3f})"
        )
        for score in scores:
            logger.debug(f"  {score.strategy_name}: {score.total_score:.3f}")

        return best

    def _create_chunks(
        self,
        content: ExtractedContent,
        options: ChunkingOptions,
        cancel_event: Optional[threading.Event]
    ) -> List[Chunk]:
        if not content.effective_text.strip() and not content.original_html:
            return []

        try:
            selection = self.select_strategy(content, options)
            chunks = self._strategies[selection.strategy_name].chunk(content, options, cancel_event)
        except Exception as e:
            logger.warning(f"Auto chunking failed, falling back to Paragraph: {e}")
            return self._strategies["Paragraph"].chunk(content, options, cancel_event)

        for chunk in chunks:
            chunk.strategy_info.parameters.update({
                "auto_selected_strategy": selection.strategy_name,
                "auto_selection_reasons": selection.reasons,
                "auto_score": round(selection.total_score, 4),
            })

        return chunks
