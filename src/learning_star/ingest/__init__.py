"""Parsing, chunking and record types for resource ingestion.

The orchestrator lives in :mod:`learning_star.ingest.pipeline`.
"""
from __future__ import annotations

from .chunking import (
    CharacterWindowChunker,
    ChunkingOptions,
    SentenceChunker,
    estimate_token_count,
    get_chunker,
    get_default_chunker,
    get_default_chunking_options,
)
from .format_detection import FileTypeDetector, UnsupportedFileTypeError
from .models import (
    ContentChunk,
    ExtractedContent,
    FileType,
    IngestionContext,
    IngestionError,
    IngestionErrorKind,
    IngestionResult,
    IngestionStatus,
    ParsedSegment,
    ParseResult,
    SourcePointer,
)
from .parsers import PDFParser, ParserRegistry, TextParser, get_parser

__all__ = [
    "CharacterWindowChunker",
    "ChunkingOptions",
    "ContentChunk",
    "ExtractedContent",
    "FileType",
    "FileTypeDetector",
    "IngestionContext",
    "IngestionError",
    "IngestionErrorKind",
    "IngestionResult",
    "IngestionStatus",
    "PDFParser",
    "ParseResult",
    "ParsedSegment",
    "ParserRegistry",
    "SentenceChunker",
    "SourcePointer",
    "TextParser",
    "UnsupportedFileTypeError",
    "estimate_token_count",
    "get_chunker",
    "get_default_chunker",
    "get_default_chunking_options",
    "get_parser",
]
