"""
Contract for the optional text-embedding collaborator.

The chunking engine does not ship an embedding backend. Callers that own
one (a hosted API, a local model, ...) wrap it in an ``EmbeddingProvider``
and hand it to the semantic chunker, which switches to its
sentence-aware mode when a provider is present.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

import numpy as np


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Implementations only need to embed a single text; batching falls back
    to a simple loop unless overridden.
    """

    def __init__(self, model_name: str, dimensions: int):
        """
        Initialize the embedding provider.

        Args:
            model_name: Name or identifier of the embedding model
            dimensions: Dimensionality of the embedding vectors

        Raises:
            ValueError: If the model name is blank or dimensions are not positive
        """
        if not model_name or not model_name.strip():
            raise ValueError("model_name is required")
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")

        self.model_name = model_name
        self.dimensions = dimensions

    @abstractmethod
    def embed_text(self, text: str) -> np.ndarray:
        """
        Generate embedding for a single text.

        Args:
            text: Input text to embed

        Returns:
            Embedding vector as numpy array

        Raises:
            EmbeddingError: If embedding generation fails
        """
        pass

    def embed_batch(self, texts: List[str]) -> List[np.ndarray]:
        """Generate embeddings for multiple texts."""
        return [self.embed_text(text) for text in texts]

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "model_name": self.model_name,
            "dimensions": self.dimensions,
            "provider": self.__class__.__name__
        }


class EmbeddingError(Exception):
    """Base exception for embedding errors."""
    pass
