"""Utilities for detecting the file type of uploaded resources."""
from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Optional

from .models import FileType


class UnsupportedFileTypeError(ValueError):
    """Raised when a file cannot be mapped onto a known :class:`FileType`."""


class FileTypeDetector:
    """Detects the file type based on file name and optional MIME type."""

    _MIME_MAP = {
        "application/pdf": FileType.PDF,
        "application/vnd.openxmlformats-officedocument.presentationml.presentation": FileType.PPTX,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileType.DOCX,
        "text/plain": FileType.TXT,
        "text/markdown": FileType.MD,
        "text/x-markdown": FileType.MD,
    }

    _SUFFIX_MAP = {
        "markdown": FileType.MD,
        "text": FileType.TXT,
        "mp4": FileType.VIDEO,
        "mov": FileType.VIDEO,
        "webm": FileType.VIDEO,
        "mkv": FileType.VIDEO,
        "mp3": FileType.AUDIO,
        "wav": FileType.AUDIO,
        "m4a": FileType.AUDIO,
        "ogg": FileType.AUDIO,
    }

    @classmethod
    def detect(cls, file_name: str, mime_type: Optional[str] = None) -> FileType:
        """Return the detected file type.

        An explicit MIME type wins, then `mimetypes.guess_type`, then the file
        suffix. Generic ``video/*`` and ``audio/*`` MIME types map onto the
        corresponding media type.
        """

        for candidate in (mime_type, mimetypes.guess_type(file_name)[0]):
            detected = cls._from_mime(candidate)
            if detected is not None:
                return detected

        suffix = Path(file_name).suffix.lower().lstrip(".")
        if suffix in cls._SUFFIX_MAP:
            return cls._SUFFIX_MAP[suffix]
        try:
            return FileType(suffix)
        except ValueError as exc:
            raise UnsupportedFileTypeError(f"Unsupported file format: {file_name}") from exc

    @classmethod
    def _from_mime(cls, mime_type: Optional[str]) -> Optional[FileType]:
        if not mime_type:
            return None
        mime_type = mime_type.split(";", 1)[0].strip().lower()
        if mime_type in cls._MIME_MAP:
            return cls._MIME_MAP[mime_type]
        if mime_type.startswith("video/"):
            return FileType.VIDEO
        if mime_type.startswith("audio/"):
            return FileType.AUDIO
        return None
