"""
Embedding provider contract.

Concrete providers live with the caller; this package only defines the
interface the semantic chunker accepts.
"""

from .base import EmbeddingProvider, EmbeddingError

__all__ = [
    'EmbeddingProvider',
    'EmbeddingError'
]
