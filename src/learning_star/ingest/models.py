"""Data models used by the ingestion pipeline.

The ``to_dict`` helpers produce the persisted JSON shape consumed by the
storage layer and the lesson generators, so keys keep their camelCase names.
Optional fields left as ``None`` are omitted rather than zero-filled.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

NO_EMBEDDING_MODEL = "none"


class FileType(str, Enum):
    """File types accepted by the ingestion workflow."""

    PDF = "pdf"
    PPTX = "pptx"
    DOCX = "docx"
    VIDEO = "video"
    AUDIO = "audio"
    TXT = "txt"
    MD = "md"


class IngestionStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class IngestionErrorKind(str, Enum):
    """Kinds of problems a pipeline run can record."""

    NO_PARSER = "no_parser"
    PARSE_FAILURE = "parse_failure"
    EMPTY_CHUNKS = "empty_chunks"
    EMBED_FAILURE = "embed_failure"


def format_timestamp(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


_POINTER_KEYS = (
    ("page_number", "pageNumber"),
    ("slide_number", "slideNumber"),
    ("time_start_sec", "timeStartSec"),
    ("time_end_sec", "timeEndSec"),
    ("text_start_offset", "textStartOffset"),
    ("text_end_offset", "textEndOffset"),
)


@dataclass(frozen=True, slots=True)
class SourcePointer:
    """Addressable location inside one resource's original file."""

    resource_id: str
    file_type: FileType
    page_number: Optional[int] = None
    slide_number: Optional[int] = None
    time_start_sec: Optional[float] = None
    time_end_sec: Optional[float] = None
    text_start_offset: Optional[int] = None
    text_end_offset: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "resourceId": self.resource_id,
            "fileType": FileType(self.file_type).value,
        }
        for attribute, key in _POINTER_KEYS:
            value = getattr(self, attribute)
            if value is not None:
                payload[key] = value
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SourcePointer":
        optional = {attribute: payload.get(key) for attribute, key in _POINTER_KEYS}
        return cls(
            resource_id=str(payload["resourceId"]),
            file_type=FileType(payload["fileType"]),
            **optional,
        )


@dataclass(frozen=True, slots=True)
class ParsedSegment:
    """Pointer-tagged piece of text in document reading order."""

    pointer: SourcePointer
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"pointer": self.pointer.to_dict(), "text": self.text}


@dataclass(slots=True)
class ParseResult:
    """Full parser output for one resource."""

    plain_text: str
    segments: List[ParsedSegment] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChunkResult:
    """Candidate chunk produced by a chunking strategy, before it gets an id."""

    content: str
    pointer_start: SourcePointer
    token_count: int
    pointer_end: Optional[SourcePointer] = None


@dataclass(frozen=True, slots=True)
class EmbeddingResult:
    embedding: List[float]
    model: str
    token_count: int

    @classmethod
    def unembedded(cls) -> "EmbeddingResult":
        """Sentinel used when no vector could be computed for a chunk."""

        return cls(embedding=[], model=NO_EMBEDDING_MODEL, token_count=0)


@dataclass(slots=True)
class ExtractedContent:
    """Persisted record of a completed parse."""

    id: str
    resource_id: str
    plain_text: str
    segments: List[ParsedSegment]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "resourceId": self.resource_id,
            "plainText": self.plain_text,
            "segments": [segment.to_dict() for segment in self.segments],
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass(slots=True)
class ContentChunk:
    """Persisted record of one chunk.

    A chunk whose ``embedding_model`` is ``"none"`` carries an empty vector: it
    can be cited and text-searched but is not semantically searchable until it
    is embedded again.
    """

    id: str
    resource_id: str
    content: str
    pointer_start: SourcePointer
    embedding_model: str
    token_count: int
    created_at: datetime
    pointer_end: Optional[SourcePointer] = None
    embedding: List[float] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.embedding_model == NO_EMBEDDING_MODEL and self.embedding:
            raise ValueError("chunks without an embedding model cannot carry a vector")

    @property
    def is_embedded(self) -> bool:
        return self.embedding_model != NO_EMBEDDING_MODEL and bool(self.embedding)

    def to_dict(self, include_embedding: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "resourceId": self.resource_id,
            "content": self.content,
            "pointerStart": self.pointer_start.to_dict(),
            "embeddingModel": self.embedding_model,
            "tokenCount": self.token_count,
            "createdAt": format_timestamp(self.created_at),
        }
        if self.pointer_end is not None:
            payload["pointerEnd"] = self.pointer_end.to_dict()
        if include_embedding:
            payload["embedding"] = list(self.embedding)
        if self.metadata is not None:
            payload["metadata"] = dict(self.metadata)
        return payload


@dataclass(frozen=True, slots=True)
class IngestionError:
    kind: IngestionErrorKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True, slots=True)
class IngestionContext:
    """Identifiers and file details supplied by the calling workflow."""

    resource_id: str
    course_id: str
    user_id: str
    file_type: FileType
    filename: str


@dataclass(slots=True)
class IngestionResult:
    resource_id: str
    extracted_content: ExtractedContent
    chunks: List[ContentChunk]
    status: IngestionStatus
    errors: List[IngestionError] = field(default_factory=list)

    @property
    def error_messages(self) -> List[str]:
        return [error.message for error in self.errors]

    def to_dict(self, include_embeddings: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "resourceId": self.resource_id,
            "extractedContent": self.extracted_content.to_dict(),
            "chunks": [chunk.to_dict(include_embedding=include_embeddings) for chunk in self.chunks],
            "status": self.status.value,
        }
        if self.errors:
            payload["errors"] = self.error_messages
            payload["errorKinds"] = [error.kind.value for error in self.errors]
        return payload
