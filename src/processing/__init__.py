"""
Processing module for web content chunking.

This module provides the chunking strategies, their factory, and the
events they publish while they work.
"""

from .chunkers import (
    ChunkerStrategy,
    ChunkingOptions,
    HtmlChunkingOptions,
    Chunk,
    ChunkType,
    ChunkingError,
    InvalidStrategyNameError,
    AutoChunkingConfig,
    ChunkingStrategyFactory
)
from .events import EventPublisher, NoOpEventPublisher

__all__ = [
    'ChunkerStrategy',
    'ChunkingOptions',
    'HtmlChunkingOptions',
    'Chunk',
    'ChunkType',
    'ChunkingError',
    'InvalidStrategyNameError',
    'AutoChunkingConfig',
    'ChunkingStrategyFactory',
    'EventPublisher',
    'NoOpEventPublisher'
]
