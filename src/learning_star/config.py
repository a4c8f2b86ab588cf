"""Settings for the ingestion core.

The environment is read in exactly one place, :meth:`IngestionSettings.from_env`;
everything else receives an explicit settings object.
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from learning_star.errors import ConfigurationError
from learning_star.ingest.chunking import DEFAULT_MAX_TOKENS, DEFAULT_OVERLAP_TOKENS, ChunkingOptions

LOGGER = logging.getLogger(__name__)

DEFAULT_EMBEDDING_ENDPOINT = "https://api.openai.com/v1/embeddings"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _int_from_env(environ: Mapping[str, str], name: str, default: int) -> int:
    value = environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _float_from_env(environ: Mapping[str, str], name: str, default: float) -> float:
    value = environ.get(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default
    if not math.isfinite(parsed):
        LOGGER.warning("Non-finite float for %s: %s; using default %s", name, value, default)
        return default
    return parsed


def _bool_from_env(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    flag = value.strip().lower()
    if flag in _TRUE_VALUES:
        return True
    if flag in _FALSE_VALUES:
        return False
    LOGGER.warning("Invalid boolean for %s: %s; using default %s", name, value, default)
    return default


@dataclass(frozen=True, slots=True)
class IngestionSettings:
    openai_api_key: Optional[str] = None
    use_mock_embeddings: bool = False
    embedding_endpoint: str = DEFAULT_EMBEDDING_ENDPOINT
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_timeout_seconds: float = 60.0
    max_tokens: int = DEFAULT_MAX_TOKENS
    overlap_tokens: int = DEFAULT_OVERLAP_TOKENS
    preserve_sentences: bool = True
    detect_language: bool = True

    def __post_init__(self) -> None:
        if not math.isfinite(self.embedding_timeout_seconds) or self.embedding_timeout_seconds <= 0:
            raise ConfigurationError("embedding_timeout_seconds must be a positive finite number")
        if self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be a positive integer")
        if self.overlap_tokens < 0:
            raise ConfigurationError("overlap_tokens must be a non-negative integer")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IngestionSettings":
        env = os.environ if environ is None else environ
        api_key = (env.get("OPENAI_API_KEY") or "").strip() or None
        return cls(
            openai_api_key=api_key,
            use_mock_embeddings=_bool_from_env(env, "USE_MOCK_EMBEDDINGS", False),
            embedding_endpoint=env.get("EMBEDDING_ENDPOINT", DEFAULT_EMBEDDING_ENDPOINT),
            embedding_model=env.get("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            embedding_timeout_seconds=_float_from_env(env, "EMBEDDING_TIMEOUT_SECONDS", 60.0),
            max_tokens=_int_from_env(env, "CHUNK_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            overlap_tokens=_int_from_env(env, "CHUNK_OVERLAP_TOKENS", DEFAULT_OVERLAP_TOKENS),
            preserve_sentences=_bool_from_env(env, "CHUNK_PRESERVE_SENTENCES", True),
            detect_language=_bool_from_env(env, "DETECT_LANGUAGE", True),
        )

    def chunking_options(self) -> ChunkingOptions:
        return ChunkingOptions(
            max_tokens=self.max_tokens,
            overlap_tokens=self.overlap_tokens,
            preserve_sentences=self.preserve_sentences,
        )


@lru_cache()
def get_settings() -> IngestionSettings:
    """Return settings loaded from the process environment, cached."""

    return IngestionSettings.from_env()


def reset_settings_cache() -> None:
    get_settings.cache_clear()  # type: ignore[attr-defined]
