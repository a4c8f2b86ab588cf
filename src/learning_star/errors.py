"""Exceptions raised by ingestion components."""
from __future__ import annotations


class LearningStarError(RuntimeError):
    """Base class for errors raised by the ingestion core."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class ParsingError(LearningStarError):
    """Raised when a parser cannot turn source bytes into text."""


class EmbeddingProviderError(LearningStarError):
    """Raised when an embedding provider cannot produce vectors."""


class ConfigurationError(LearningStarError):
    """Raised when settings are missing or inconsistent."""
