"""
Embedder - Converts text to vector embeddings.

This module handles the conversion of text into numerical vectors
(embeddings) using sentence-transformers.

Key Concepts:
- Embeddings are lists of numbers that represent meaning
- Similar text = Similar embeddings
- We use the same model for storing and querying (important!)
- Vectors are unit-normalised, so a plain dot product IS cosine similarity

Example:
    provider = SentenceTransformerProvider()

    # Single text
    vector = provider.generate_embedding("What is a quadratic equation?")
    print(len(vector))  # 384

    # Multiple texts (more efficient)
    vectors = provider.generate_embeddings(["text1", "text2", "text3"])

There is no global instance: create a provider and hand it to the stores
that need it.
"""

import logging
import threading
from abc import ABC, abstractmethod

import numpy as np
from sentence_transformers import SentenceTransformer

from tutor_store.config import EMBEDDING_DIMENSION, EMBEDDING_MODEL
from tutor_store.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


def normalize(vector) -> list[float]:
    """
    Scale a vector to unit length.

    The zero vector stays zero: it has no direction, and its cosine
    similarity with anything is treated as 0.
    """
    array = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(array)
    if norm == 0:
        return array.tolist()
    return (array / norm).tolist()


class EmbeddingProvider(ABC):
    """
    Backend-agnostic embedding interface.

    Subclasses declare a fixed ``dimension`` and produce unit-normalised
    vectors of exactly that length.
    """

    def __init__(self, model_name: str, dimension: int):
        self.model_name = model_name
        self.dimension = dimension

    @abstractmethod
    def initialize(self) -> None:
        """Load the model. Must be idempotent and safe to call concurrently."""
        ...

    @abstractmethod
    def _encode(self, texts: list[str]) -> list[list[float]]:
        """Encode non-blank texts. Called only after initialize()."""
        ...

    def close(self) -> None:
        """Release the model. A later call loads it again."""

    def generate_embedding(self, text: str) -> list[float]:
        """
        Convert a single text to an embedding vector.

        Raises:
            EmbeddingError: If the model cannot be loaded or encoding fails
        """
        return self.generate_embeddings([text])[0]

    def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """
        Convert multiple texts to embeddings efficiently.

        Blank texts map to the zero vector, in place, so ``result[i]``
        always belongs to ``texts[i]``.
        """
        if not texts:
            return []

        # Filter out empty texts but remember their positions
        non_empty_indices = [i for i, text in enumerate(texts) if text and text.strip()]
        result = [[0.0] * self.dimension for _ in texts]
        if not non_empty_indices:
            return result

        self.initialize()
        try:
            vectors = self._encode([texts[i] for i in non_empty_indices])
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        for idx, vector in zip(non_empty_indices, vectors):
            if len(vector) != self.dimension:
                raise EmbeddingError(
                    f"Model {self.model_name} returned {len(vector)} dimensions, "
                    f"expected {self.dimension}"
                )
            result[idx] = normalize(vector)
        return result


class SentenceTransformerProvider(EmbeddingProvider):
    """
    Embeds text with a local sentence-transformers model.

    The model is loaded lazily on first use. Concurrent callers during a
    cold start wait for one shared load instead of each loading their own
    copy. A failed load is not remembered: the next call tries again.

    IMPORTANT: Always use the same model for indexing and querying!

    Example:
        provider = SentenceTransformerProvider()
        provider.initialize()          # optional, warms the model up
        vector = provider.generate_embedding("Solve x^2 - 4 = 0")
    """

    def __init__(
        self,
        model_name: str | None = None,
        dimension: int | None = None,
        batch_size: int = 32,
    ):
        """
        Args:
            model_name: sentence-transformers model id (config default if omitted)
            dimension: Declared vector length, checked against the loaded model
            batch_size: Number of texts encoded at once

        Note:
            First run downloads the model (~90MB for MiniLM).
        """
        super().__init__(model_name or EMBEDDING_MODEL, dimension or EMBEDDING_DIMENSION)
        self.batch_size = batch_size
        self._model: SentenceTransformer | None = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    def initialize(self) -> None:
        if self._model is not None:
            return
        with self._lock:
            # Another caller may have finished loading while we waited
            if self._model is not None:
                return
            logger.info("Loading embedding model: %s", self.model_name)
            try:
                model = SentenceTransformer(self.model_name)
            except Exception as e:
                raise EmbeddingError(
                    f"Embedding model {self.model_name} is unavailable: {e}"
                ) from e

            loaded_dimension = model.get_sentence_embedding_dimension()
            if loaded_dimension != self.dimension:
                raise EmbeddingError(
                    f"Model {self.model_name} produces {loaded_dimension}-dimensional "
                    f"vectors, expected {self.dimension}"
                )
            self._model = model
            logger.info("Model loaded! Embedding dimension: %d", self.dimension)

    def close(self) -> None:
        with self._lock:
            self._model = None

    def _encode(self, texts: list[str]) -> list[list[float]]:
        embeddings = self._model.encode(
            texts,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
            batch_size=self.batch_size,
        )
        return [embedding.tolist() for embedding in embeddings]
