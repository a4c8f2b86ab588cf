"""High level ingestion pipeline entry point.

One run drives a single resource through parse, chunk and embed, in that
order, and always returns an :class:`IngestionResult`. Nothing is retried and
nothing is persisted here; the caller stores the returned records.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from learning_star.config import IngestionSettings, get_settings
from learning_star.errors import EmbeddingProviderError
from learning_star.logging_config import AUDIT_LOGGER_NAME
from learning_star.providers import EmbeddingProvider, MockEmbeddingProvider, select_embedding_provider
from learning_star.telemetry import emit_exception, emit_ingest_event, traced_duration

from .chunking import ChunkingOptions, ChunkingStrategy, get_chunker, get_default_chunker, get_default_chunking_options
from .language import LanguageDetector
from .models import (
    ChunkResult,
    ContentChunk,
    EmbeddingResult,
    ExtractedContent,
    FileType,
    IngestionContext,
    IngestionError,
    IngestionErrorKind,
    IngestionResult,
    IngestionStatus,
    ParseResult,
)
from .parsers import ParserRegistry, default_registry

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _file_type_label(file_type: FileType | str) -> str:
    return file_type.value if isinstance(file_type, FileType) else str(file_type)


class IngestionPipeline:
    """Pipeline orchestrating parsing, chunking and embedding of one resource."""

    def __init__(
        self,
        *,
        registry: Optional[ParserRegistry] = None,
        embedder: Optional[EmbeddingProvider] = None,
        chunker: Optional[ChunkingStrategy] = None,
        chunking_options: Optional[ChunkingOptions] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[IdFactory] = None,
        language_detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.registry = registry or default_registry()
        self.embedder = embedder or MockEmbeddingProvider()
        self.chunker = chunker or get_default_chunker()
        self.chunking_options = chunking_options or get_default_chunking_options()
        self.clock = clock or utc_now
        self.id_factory = id_factory or new_id
        self.language_detector = language_detector

    @classmethod
    def from_settings(
        cls,
        settings: IngestionSettings,
        *,
        use_mock_embeddings: bool = False,
        registry: Optional[ParserRegistry] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[IdFactory] = None,
    ) -> "IngestionPipeline":
        options = settings.chunking_options()
        return cls(
            registry=registry,
            embedder=select_embedding_provider(settings, use_mock=use_mock_embeddings),
            chunker=get_chunker(options),
            chunking_options=options,
            clock=clock,
            id_factory=id_factory,
            language_detector=LanguageDetector() if settings.detect_language else None,
        )

    async def run(self, data: bytes, context: IngestionContext) -> IngestionResult:
        """Process one resource and return its records with the run status."""

        started = time.perf_counter()
        file_type = _file_type_label(context.file_type)
        emit_ingest_event(
            "ingest.run.start",
            resource_id=context.resource_id,
            file_name=context.filename,
            file_type=file_type,
            size_bytes=len(data),
        )

        result = await self._run(data, context)

        emit_ingest_event(
            "ingest.run.complete",
            resource_id=context.resource_id,
            file_name=context.filename,
            file_type=file_type,
            size_bytes=len(data),
            duration_ms=(time.perf_counter() - started) * 1000.0,
            status=result.status.value,
            segments=len(result.extracted_content.segments),
            chunks=len(result.chunks),
            errors=result.error_messages,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "resource_id": context.resource_id,
                "course_id": context.course_id,
                "user_id": context.user_id,
                "file_name": context.filename,
                "status": result.status.value,
                "chunk_count": len(result.chunks),
            }
        )
        return result

    async def _run(self, data: bytes, context: IngestionContext) -> IngestionResult:
        resource_id = context.resource_id
        file_type = _file_type_label(context.file_type)

        parser = self.registry.get_parser(context.file_type)
        if parser is None:
            LOGGER.info("No parser registered for %s (resource %s)", file_type, resource_id)
            return self._failed(
                resource_id,
                IngestionError(IngestionErrorKind.NO_PARSER, f"No parser available for file type: {file_type}"),
            )

        try:
            with traced_duration("ingest.parse", logger=LOGGER, resource_id=resource_id, file_type=file_type):
                parse_result = await parser.parse(data, context.filename, resource_id)
        except Exception as error:
            message = str(error) or type(error).__name__
            return self._failed(
                resource_id,
                IngestionError(IngestionErrorKind.PARSE_FAILURE, f"Parsing failed: {message}"),
            )

        await self._annotate_language(parse_result)
        extracted_content = ExtractedContent(
            id=self.id_factory(),
            resource_id=resource_id,
            plain_text=parse_result.plain_text,
            segments=list(parse_result.segments),
            created_at=self.clock(),
        )

        chunk_results = self.chunker.chunk(parse_result, self.chunking_options)
        LOGGER.info(
            "Generated %s chunks from %s segments for resource %s",
            len(chunk_results),
            len(parse_result.segments),
            resource_id,
        )
        if not chunk_results:
            return IngestionResult(
                resource_id=resource_id,
                extracted_content=extracted_content,
                chunks=[],
                status=IngestionStatus.PARTIAL,
                errors=[IngestionError(IngestionErrorKind.EMPTY_CHUNKS, "No chunks generated from content")],
            )

        errors: List[IngestionError] = []
        try:
            embedding_results = await self._embed(chunk_results)
        except Exception as error:
            emit_exception(
                module=f"{__name__}.embed",
                error=error,
                resource_id=resource_id,
                suggestion="chunks are kept without vectors and can be re-embedded later",
            )
            errors.append(IngestionError(IngestionErrorKind.EMBED_FAILURE, f"Embedding failed: {error}"))
            embedding_results = [EmbeddingResult.unembedded() for _ in chunk_results]

        chunks = self._assemble_chunks(resource_id, chunk_results, embedding_results, parse_result)
        return IngestionResult(
            resource_id=resource_id,
            extracted_content=extracted_content,
            chunks=chunks,
            status=IngestionStatus.PARTIAL if errors else IngestionStatus.SUCCESS,
            errors=errors,
        )

    async def _embed(self, chunk_results: Sequence[ChunkResult]) -> List[EmbeddingResult]:
        results = await self.embedder.embed([chunk.content for chunk in chunk_results])
        if len(results) != len(chunk_results):
            raise EmbeddingProviderError(
                f"{self.embedder.model_name} returned {len(results)} embeddings for {len(chunk_results)} chunks"
            )
        return list(results)

    def _assemble_chunks(
        self,
        resource_id: str,
        chunk_results: Sequence[ChunkResult],
        embedding_results: Sequence[EmbeddingResult],
        parse_result: ParseResult,
    ) -> List[ContentChunk]:
        language = parse_result.metadata.get("language")
        chunks: List[ContentChunk] = []
        for index, (chunk, embedding) in enumerate(zip(chunk_results, embedding_results)):
            metadata: Dict[str, Any] = {"chunkIndex": index}
            if language:
                metadata["language"] = language
            chunks.append(
                ContentChunk(
                    id=self.id_factory(),
                    resource_id=resource_id,
                    content=chunk.content,
                    pointer_start=chunk.pointer_start,
                    pointer_end=chunk.pointer_end,
                    embedding_model=embedding.model,
                    embedding=list(embedding.embedding),
                    token_count=chunk.token_count,
                    metadata=metadata,
                    created_at=self.clock(),
                )
            )
        return chunks

    async def _annotate_language(self, parse_result: ParseResult) -> None:
        if self.language_detector is None:
            return
        language = await asyncio.to_thread(self.language_detector.detect, parse_result.plain_text)
        if language:
            parse_result.metadata["language"] = language

    def _failed(self, resource_id: str, error: IngestionError) -> IngestionResult:
        LOGGER.warning("Ingestion of resource %s failed: %s", resource_id, error.message)
        return IngestionResult(
            resource_id=resource_id,
            extracted_content=ExtractedContent(
                id=self.id_factory(),
                resource_id=resource_id,
                plain_text="",
                segments=[],
                created_at=self.clock(),
            ),
            chunks=[],
            status=IngestionStatus.FAILED,
            errors=[error],
        )


async def run_ingestion_pipeline(
    data: bytes,
    context: IngestionContext,
    settings: Optional[IngestionSettings] = None,
    *,
    use_mock_embeddings: bool = False,
) -> IngestionResult:
    """Build a pipeline from *settings* (the environment when omitted) and run it once."""

    pipeline = IngestionPipeline.from_settings(settings or get_settings(), use_mock_embeddings=use_mock_embeddings)
    return await pipeline.run(data, context)
