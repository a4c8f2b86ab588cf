"""Chunking strategies for breaking parsed segments into embedding-sized units.

Both strategies work on one segment at a time and never merge text across
segments, so every chunk starts in exactly one segment and inherits its
pointer.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import List, Protocol, Tuple

from .models import ChunkResult, ParsedSegment, ParseResult

_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")
LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 512
DEFAULT_OVERLAP_TOKENS = 50


def estimate_token_count(text: str) -> int:
    """Approximate token count as one token per four characters, rounded up."""

    return math.ceil(len(text) / 4)


def split_into_sentences(text: str) -> List[str]:
    return [sentence for sentence in _SENTENCE_BOUNDARY_RE.split(text) if sentence.strip()]


@dataclass(frozen=True, slots=True)
class ChunkingOptions:
    max_tokens: int = DEFAULT_MAX_TOKENS
    overlap_tokens: int = DEFAULT_OVERLAP_TOKENS
    preserve_sentences: bool = True

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be a positive integer")
        if self.overlap_tokens < 0:
            raise ValueError("overlap_tokens must be a non-negative integer")


class ChunkingStrategy(Protocol):
    def chunk(self, parse_result: ParseResult, options: ChunkingOptions) -> List[ChunkResult]:
        ...


class SentenceChunker:
    """Greedily pack whole sentences into chunks of at most ``max_tokens``.

    Budgets are checked against the estimate of the space-joined text, the
    same figure recorded as ``token_count``. When a chunk is closed, the next
    one is seeded with the longest run of trailing sentences that stays within
    ``overlap_tokens``, trimmed from the front until the incoming sentence
    fits. A single sentence longer than ``max_tokens`` is kept whole, so its
    chunk may exceed the bound.
    """

    def chunk(self, parse_result: ParseResult, options: ChunkingOptions) -> List[ChunkResult]:
        results: List[ChunkResult] = []
        for segment in parse_result.segments:
            results.extend(self._chunk_segment(segment, options))
        return results

    def _chunk_segment(self, segment: ParsedSegment, options: ChunkingOptions) -> List[ChunkResult]:
        results: List[ChunkResult] = []
        current: List[str] = []

        for sentence in split_into_sentences(segment.text):
            if current and _joined_token_count(current + [sentence]) > options.max_tokens:
                results.append(_make_chunk(" ".join(current), segment))
                current = _overlap_tail(current, options.overlap_tokens)
                # the seed must leave room for the incoming sentence
                while current and _joined_token_count(current + [sentence]) > options.max_tokens:
                    current.pop(0)
            current.append(sentence)

        if current:
            results.append(_make_chunk(" ".join(current), segment))
        return results


def _joined_token_count(sentences: List[str]) -> int:
    return estimate_token_count(" ".join(sentences))


def _overlap_tail(sentences: List[str], overlap_tokens: int) -> List[str]:
    tail: List[str] = []
    for sentence in reversed(sentences):
        if _joined_token_count([sentence] + tail) > overlap_tokens:
            break
        tail.insert(0, sentence)
    return tail


class CharacterWindowChunker:
    """Slide a fixed-size character window over each segment, ignoring sentences."""

    def chunk(self, parse_result: ParseResult, options: ChunkingOptions) -> List[ChunkResult]:
        results: List[ChunkResult] = []
        for segment in parse_result.segments:
            results.extend(self._chunk_segment(segment, options))
        return results

    def _chunk_segment(self, segment: ParsedSegment, options: ChunkingOptions) -> List[ChunkResult]:
        text = segment.text
        total_tokens = estimate_token_count(text)
        if total_tokens == 0:
            return []
        if total_tokens <= options.max_tokens:
            return [ChunkResult(content=text, pointer_start=segment.pointer, token_count=total_tokens)]

        chunk_size, overlap_size = window_sizes(text, options)
        step = chunk_size - overlap_size
        if step <= 0:
            LOGGER.warning(
                "Overlap of %s chars does not fit a %s char window; chunking without overlap",
                overlap_size,
                chunk_size,
            )
            overlap_size = 0
            step = chunk_size

        results: List[ChunkResult] = []
        start = 0
        text_length = len(text)
        while start < text_length:
            end = min(start + chunk_size, text_length)
            results.append(_make_chunk(text[start:end], segment))
            start += step
            if start >= text_length - overlap_size:
                break
        return results


def window_sizes(text: str, options: ChunkingOptions) -> Tuple[int, int]:
    """Convert the token bounds into character counts for *text*."""

    chars_per_token = len(text) / estimate_token_count(text)
    chunk_size = max(math.floor(options.max_tokens * chars_per_token), 1)
    overlap_size = math.floor(options.overlap_tokens * chars_per_token)
    return chunk_size, overlap_size


def _make_chunk(content: str, segment: ParsedSegment) -> ChunkResult:
    return ChunkResult(
        content=content,
        pointer_start=segment.pointer,
        token_count=estimate_token_count(content),
    )


def get_default_chunker() -> ChunkingStrategy:
    return SentenceChunker()


def get_default_chunking_options() -> ChunkingOptions:
    return ChunkingOptions()


def get_chunker(options: ChunkingOptions) -> ChunkingStrategy:
    """Pick the strategy matching ``options.preserve_sentences``."""

    if options.preserve_sentences:
        return SentenceChunker()
    return CharacterWindowChunker()
