"""Embedding providers and the policy that picks one for a pipeline run."""
from __future__ import annotations

import logging

from learning_star.config import IngestionSettings

from .base import EmbeddingProvider
from .mock_embedding import MockEmbeddingProvider
from .openai_embedding import OpenAIEmbeddingProvider

LOGGER = logging.getLogger(__name__)

__all__ = [
    "EmbeddingProvider",
    "MockEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "select_embedding_provider",
]


def select_embedding_provider(settings: IngestionSettings, use_mock: bool = False) -> EmbeddingProvider:
    """Use the mock provider when no credential is configured or mock mode is requested."""

    if use_mock or settings.use_mock_embeddings or not settings.openai_api_key:
        LOGGER.info("Using mock embeddings (credential configured: %s)", bool(settings.openai_api_key))
        return MockEmbeddingProvider()
    return OpenAIEmbeddingProvider(
        settings.openai_api_key,
        model_name=settings.embedding_model,
        endpoint=settings.embedding_endpoint,
        timeout=settings.embedding_timeout_seconds,
    )
