"""Parsers turning raw resource bytes into pointer-tagged text segments."""
from __future__ import annotations

import asyncio
import io
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Protocol, Tuple, Union, runtime_checkable

from PyPDF2 import PdfReader

from learning_star.errors import ParsingError

from .models import FileType, ParsedSegment, ParseResult, SourcePointer

LOGGER = logging.getLogger(__name__)

_MARKDOWN_SUFFIXES = (".md", ".markdown")


@runtime_checkable
class Parser(Protocol):
    """A parser declares the file types it handles and parses them asynchronously."""

    file_types: FrozenSet[FileType]

    async def parse(self, data: bytes, filename: str, resource_id: str) -> ParseResult:
        ...


class TextParser:
    """Parse UTF-8 plain text and Markdown files as a single segment."""

    file_types: FrozenSet[FileType] = frozenset({FileType.TXT, FileType.MD})

    async def parse(self, data: bytes, filename: str, resource_id: str) -> ParseResult:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as error:
            raise ParsingError(f"{filename} is not valid UTF-8: {error}", cause=error) from error

        file_type = FileType.MD if filename.lower().endswith(_MARKDOWN_SUFFIXES) else FileType.TXT
        pointer = SourcePointer(resource_id=resource_id, file_type=file_type, page_number=1)
        return ParseResult(
            plain_text=text,
            segments=[ParsedSegment(pointer=pointer, text=text)],
            metadata={"filename": filename, "charCount": len(text)},
        )


class PDFParser:
    """Extract text from PDF documents page by page.

    Pages without extractable text (scanned images, blank pages) are skipped;
    no OCR is attempted.
    """

    file_types: FrozenSet[FileType] = frozenset({FileType.PDF})

    async def parse(self, data: bytes, filename: str, resource_id: str) -> ParseResult:
        try:
            page_count, page_texts = await asyncio.to_thread(self._extract_pages, data)
        except Exception as error:
            raise ParsingError(f"PDF parsing failed: {error}", cause=error) from error

        segments: List[ParsedSegment] = []
        for page_number, text in page_texts:
            pointer = SourcePointer(resource_id=resource_id, file_type=FileType.PDF, page_number=page_number)
            segments.append(ParsedSegment(pointer=pointer, text=text))

        LOGGER.debug("Extracted %s non-empty pages out of %s from %s", len(segments), page_count, filename)
        return ParseResult(
            plain_text="\n\n".join(segment.text for segment in segments),
            segments=segments,
            metadata={"pageCount": page_count, "filename": filename},
        )

    @staticmethod
    def _extract_pages(data: bytes) -> Tuple[int, List[Tuple[int, str]]]:
        reader = PdfReader(io.BytesIO(data))
        pages: List[Tuple[int, str]] = []
        for index, page in enumerate(reader.pages, start=1):
            text = (page.extract_text() or "").strip()
            if text:
                pages.append((index, text))
        return len(reader.pages), pages


class ParserRegistry:
    """Maps file types onto the parser that handles them."""

    def __init__(self, parsers: Iterable[Parser] = ()) -> None:
        self._parsers: Dict[FileType, Parser] = {}
        for parser in parsers:
            self.register(parser)

    def register(self, parser: Parser) -> None:
        for file_type in parser.file_types:
            if file_type in self._parsers:
                LOGGER.info(
                    "Replacing %s parser %s with %s",
                    file_type.value,
                    type(self._parsers[file_type]).__name__,
                    type(parser).__name__,
                )
            self._parsers[file_type] = parser

    def get_parser(self, file_type: Union[FileType, str]) -> Optional[Parser]:
        """Return the parser for *file_type* or ``None`` when nothing handles it."""

        try:
            key = FileType(file_type)
        except ValueError:
            return None
        return self._parsers.get(key)

    def supported_file_types(self) -> FrozenSet[FileType]:
        return frozenset(self._parsers)


def default_registry() -> ParserRegistry:
    return ParserRegistry([PDFParser(), TextParser()])


_DEFAULT_REGISTRY = default_registry()


def get_parser(file_type: Union[FileType, str]) -> Optional[Parser]:
    return _DEFAULT_REGISTRY.get_parser(file_type)
