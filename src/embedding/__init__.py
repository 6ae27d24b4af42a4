"""
Embedding collaborator interfaces used by the chunking engine.
"""

from .providers import EmbeddingProvider, EmbeddingError

__all__ = ['EmbeddingProvider', 'EmbeddingError']
