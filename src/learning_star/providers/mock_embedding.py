"""Mock embedding provider for tests and offline development."""
from __future__ import annotations

import random
from typing import List, Optional, Sequence

from learning_star.ingest.chunking import estimate_token_count
from learning_star.ingest.models import EmbeddingResult

from .base import EmbeddingProvider

MOCK_MODEL_NAME = "mock-embedding"
MOCK_DIMENSIONS = 1536


class MockEmbeddingProvider(EmbeddingProvider):
    """Return random vectors without calling any external service.

    Pass *seed* to get reproducible vectors in tests.
    """

    def __init__(self, dimensions: int = MOCK_DIMENSIONS, seed: Optional[int] = None) -> None:
        if dimensions <= 0:
            raise ValueError("dimensions must be a positive integer")
        self.model_name = MOCK_MODEL_NAME
        self.dimensions = dimensions
        self._rng = random.Random(seed)

    async def embed(self, texts: Sequence[str]) -> List[EmbeddingResult]:
        return [
            EmbeddingResult(
                embedding=[(self._rng.random() * 2.0) - 1.0 for _ in range(self.dimensions)],
                model=self.model_name,
                token_count=estimate_token_count(text),
            )
            for text in texts
        ]
