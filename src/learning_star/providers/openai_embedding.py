"""Embedding provider backed by the OpenAI embeddings HTTP API."""
from __future__ import annotations

import logging
import time
from typing import Any, List, Optional, Sequence

import httpx

from learning_star.config import DEFAULT_EMBEDDING_ENDPOINT, DEFAULT_EMBEDDING_MODEL
from learning_star.errors import EmbeddingProviderError
from learning_star.ingest.chunking import estimate_token_count
from learning_star.ingest.models import EmbeddingResult
from learning_star.telemetry import emit_embeddings_event

from .base import EmbeddingProvider

LOGGER = logging.getLogger(__name__)

OPENAI_DIMENSIONS = 1536
_MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Send every text of a batch in a single request to the embeddings endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        model_name: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: Optional[int] = None,
        endpoint: str = DEFAULT_EMBEDDING_ENDPOINT,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model_name = model_name
        self.dimensions = dimensions or _MODEL_DIMENSIONS.get(model_name, OPENAI_DIMENSIONS)
        self._api_key = api_key or ""
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport

    async def embed(self, texts: Sequence[str]) -> List[EmbeddingResult]:
        if not self._api_key:
            raise EmbeddingProviderError("OpenAI API key is required for embeddings")
        texts = list(texts)
        if not texts:
            return []

        started = time.perf_counter()
        try:
            payload = await self._request(texts)
            results = self._map_results(texts, payload)
        except EmbeddingProviderError as error:
            emit_embeddings_event(
                model=self.model_name,
                count=len(texts),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                errors=[str(error)],
            )
            raise

        emit_embeddings_event(
            model=self.model_name,
            count=len(texts),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results

    async def _request(self, texts: List[str]) -> Any:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        body = {"model": self.model_name, "input": texts}
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), transport=self._transport) as client:
                response = await client.post(self._endpoint, json=body, headers=headers)
        except httpx.HTTPError as error:
            raise EmbeddingProviderError(f"OpenAI embedding request failed: {error}", cause=error) from error

        if response.is_error:
            raise EmbeddingProviderError(f"OpenAI embedding failed: {response.text}")
        try:
            return response.json()
        except ValueError as error:
            raise EmbeddingProviderError("OpenAI embedding response is not valid JSON", cause=error) from error

    def _map_results(self, texts: List[str], payload: Any) -> List[EmbeddingResult]:
        try:
            items = payload["data"]
            by_index = {int(item["index"]): [float(value) for value in item["embedding"]] for item in items}
        except (KeyError, TypeError, ValueError) as error:
            raise EmbeddingProviderError(f"Malformed OpenAI embedding response: {error}", cause=error) from error

        missing = [index for index in range(len(texts)) if index not in by_index]
        if missing:
            raise EmbeddingProviderError(f"OpenAI embedding response is missing indices {missing}")

        LOGGER.debug("Received %s embeddings from %s", len(by_index), self._endpoint)
        return [
            EmbeddingResult(
                embedding=by_index[index],
                model=self.model_name,
                token_count=estimate_token_count(text),
            )
            for index, text in enumerate(texts)
        ]
