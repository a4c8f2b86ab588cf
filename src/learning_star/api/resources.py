"""API router running the ingestion pipeline for one uploaded resource."""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from learning_star.config import IngestionSettings, get_settings
from learning_star.ingest.format_detection import FileTypeDetector
from learning_star.ingest.models import FileType, IngestionContext
from learning_star.ingest.pipeline import IngestionPipeline

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/resources", tags=["ingestion"])


class SourcePointerPayload(BaseModel):
    resourceId: str
    fileType: str
    pageNumber: Optional[int] = None
    slideNumber: Optional[int] = None
    timeStartSec: Optional[float] = None
    timeEndSec: Optional[float] = None
    textStartOffset: Optional[int] = None
    textEndOffset: Optional[int] = None


class SegmentPayload(BaseModel):
    pointer: SourcePointerPayload
    text: str


class ExtractedContentPayload(BaseModel):
    id: str
    resourceId: str
    plainText: str
    segments: list[SegmentPayload]
    createdAt: str


class ContentChunkPayload(BaseModel):
    id: str
    resourceId: str
    content: str
    pointerStart: SourcePointerPayload
    pointerEnd: Optional[SourcePointerPayload] = None
    embeddingModel: str
    tokenCount: int
    embedding: Optional[list[float]] = None
    metadata: Optional[dict[str, Any]] = None
    createdAt: str


class ProcessResponse(BaseModel):
    """Response body returned from the process endpoint."""

    resourceId: str
    extractedContent: ExtractedContentPayload
    chunks: list[ContentChunkPayload]
    status: str = Field(..., description="success, partial or failed")
    errors: Optional[list[str]] = None
    errorKinds: Optional[list[str]] = None


def _resolve_file_type(file_type: Optional[str], upload: UploadFile) -> FileType:
    try:
        if file_type:
            return FileType(file_type.strip().lower())
        return FileTypeDetector.detect(upload.filename or "", upload.content_type)
    except ValueError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc


@router.post("/{resource_id}/process", response_model=ProcessResponse, response_model_exclude_none=True)
async def process_resource(
    resource_id: str,
    file: UploadFile = File(...),
    course_id: str = Form(...),
    user_id: str = Form(...),
    file_type: Optional[str] = Form(None),
    mock_embeddings: bool = False,
    include_vectors: bool = False,
    settings: IngestionSettings = Depends(get_settings),
) -> ProcessResponse:
    """Parse, chunk and embed the uploaded file; the caller persists the returned records."""

    resolved_type = _resolve_file_type(file_type, file)
    context = IngestionContext(
        resource_id=resource_id,
        course_id=course_id,
        user_id=user_id,
        file_type=resolved_type,
        filename=file.filename or f"{resource_id}.{resolved_type.value}",
    )
    data = await file.read()
    LOGGER.info("Processing resource %s (%s, %s bytes)", resource_id, resolved_type.value, len(data))

    pipeline = IngestionPipeline.from_settings(settings, use_mock_embeddings=mock_embeddings)
    result = await pipeline.run(data, context)
    return ProcessResponse.model_validate(result.to_dict(include_embeddings=include_vectors))
