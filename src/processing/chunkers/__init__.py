"""
Web content chunking strategies.

This package provides the chunker interface and its implementations
(fixed-size, paragraph, semantic, heading-aware, DOM-aware, streaming
and automatic), plus the factory that resolves them by name.
"""

from .base import (
    ChunkerStrategy,
    ChunkingOptions,
    HtmlChunkingOptions,
    ChunkingStrategyInfo,
    Chunk,
    ChunkType,
    ChunkingError,
    InvalidStrategyNameError
)
from .fixed_size import FixedSizeChunker
from .paragraph import ParagraphChunker
from .semantic import SemanticChunker
from .smart import SmartChunker
from .dom_structure import DomStructureChunker
from .memory_optimized import MemoryOptimizedChunker
from .scoring import (
    AutoChunkingConfig,
    ContentAnalysisMetadata,
    ContentAnalyzer,
    ScoreComponent,
    StrategyScore,
    StrategyScorer
)
from .auto import AutoChunker
from .factory import ChunkingStrategyFactory, StrategyDescriptor

__all__ = [
    'ChunkerStrategy',
    'ChunkingOptions',
    'HtmlChunkingOptions',
    'ChunkingStrategyInfo',
    'Chunk',
    'ChunkType',
    'ChunkingError',
    'InvalidStrategyNameError',
    'FixedSizeChunker',
    'ParagraphChunker',
    'SemanticChunker',
    'SmartChunker',
    'DomStructureChunker',
    'MemoryOptimizedChunker',
    'AutoChunkingConfig',
    'ContentAnalysisMetadata',
    'ContentAnalyzer',
    'ScoreComponent',
    'StrategyScore',
    'StrategyScorer',
    'AutoChunker',
    'ChunkingStrategyFactory',
    'StrategyDescriptor',
]
