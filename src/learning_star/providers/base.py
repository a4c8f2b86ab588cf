"""Base interface for embedding providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from learning_star.ingest.models import EmbeddingResult

__all__ = ["EmbeddingProvider"]


class EmbeddingProvider(ABC):
    """Turns a batch of texts into vectors, one result per text in input order."""

    model_name: str
    dimensions: int

    @abstractmethod
    async def embed(self, texts: Sequence[str]) -> List[EmbeddingResult]:
        """Embed the provided texts."""
