import pytest

from learning_star.ingest.chunking import (
    CharacterWindowChunker,
    ChunkingOptions,
    SentenceChunker,
    estimate_token_count,
    get_chunker,
    get_default_chunker,
    get_default_chunking_options,
    split_into_sentences,
    window_sizes,
)
from learning_star.ingest.models import FileType, ParsedSegment, ParseResult, SourcePointer

POINTER = SourcePointer(resource_id="res-1", file_type=FileType.PDF, page_number=3)


def _parse_result(*texts: str) -> ParseResult:
    segments = [
        ParsedSegment(
            pointer=SourcePointer(resource_id="res-1", file_type=FileType.PDF, page_number=index),
            text=text,
        )
        for index, text in enumerate(texts, start=1)
    ]
    return ParseResult(plain_text="\n\n".join(texts), segments=segments)


def _numbered_sentences(count: int) -> str:
    return " ".join(f"Sentence {index:02d} has words." for index in range(count))


def test_estimate_token_count_rounds_up_and_is_monotonic() -> None:
    assert estimate_token_count("") == 0
    assert estimate_token_count("a") == 1
    assert estimate_token_count("abcd") == 1
    assert estimate_token_count("abcde") == 2

    counts = [estimate_token_count("x" * length) for length in range(200)]
    assert counts == sorted(counts)


def test_split_into_sentences_uses_terminal_punctuation() -> None:
    text = "First one. Second one!  Third one?\nFourth without end"

    assert split_into_sentences(text) == ["First one.", "Second one!", "Third one?", "Fourth without end"]
    assert split_into_sentences("v1.2 is out") == ["v1.2 is out"]
    assert split_into_sentences("   ") == []


def test_default_configuration() -> None:
    options = get_default_chunking_options()

    assert options == ChunkingOptions(max_tokens=512, overlap_tokens=50, preserve_sentences=True)
    assert isinstance(get_default_chunker(), SentenceChunker)


def test_chunking_options_reject_invalid_bounds() -> None:
    with pytest.raises(ValueError):
        ChunkingOptions(max_tokens=0)
    with pytest.raises(ValueError):
        ChunkingOptions(overlap_tokens=-1)


def test_get_chunker_follows_preserve_sentences() -> None:
    assert isinstance(get_chunker(ChunkingOptions(preserve_sentences=True)), SentenceChunker)
    assert isinstance(get_chunker(ChunkingOptions(preserve_sentences=False)), CharacterWindowChunker)


def test_sentence_chunker_keeps_short_text_in_one_chunk() -> None:
    text = "Hello world.   This is Learning Star.\nIt ingests files!"
    parse_result = ParseResult(plain_text=text, segments=[ParsedSegment(pointer=POINTER, text=text)])

    chunks = SentenceChunker().chunk(parse_result, get_default_chunking_options())

    assert len(chunks) == 1
    assert chunks[0].content == " ".join(split_into_sentences(text))
    assert chunks[0].pointer_start == POINTER
    assert chunks[0].pointer_end is None
    assert chunks[0].token_count == estimate_token_count(chunks[0].content)


def test_sentence_chunker_overlaps_consecutive_chunks() -> None:
    options = ChunkingOptions(max_tokens=20, overlap_tokens=8)
    parse_result = _parse_result(_numbered_sentences(12))

    chunks = SentenceChunker().chunk(parse_result, options)

    assert len(chunks) > 1
    for chunk in chunks:
        assert chunk.token_count <= options.max_tokens
    for previous, following in zip(chunks, chunks[1:]):
        previous_sentences = split_into_sentences(previous.content)
        following_sentences = split_into_sentences(following.content)
        overlap = [
            previous_sentences[-size:]
            for size in range(len(previous_sentences), 0, -1)
            if following_sentences[:size] == previous_sentences[-size:]
        ]
        assert overlap, "expected the next chunk to start with the tail of the previous one"
        overlap_tokens = estimate_token_count(" ".join(overlap[0]))
        assert 0 < overlap_tokens <= options.overlap_tokens


def test_sentence_chunker_covers_every_sentence_in_order() -> None:
    text = _numbered_sentences(30)
    chunks = SentenceChunker().chunk(_parse_result(text), ChunkingOptions(max_tokens=25, overlap_tokens=6))

    seen = []
    for chunk in chunks:
        for sentence in split_into_sentences(chunk.content):
            if sentence not in seen:
                seen.append(sentence)
    assert seen == split_into_sentences(text)


def test_sentence_chunker_without_overlap_budget_does_not_repeat() -> None:
    text = _numbered_sentences(9)
    chunks = SentenceChunker().chunk(_parse_result(text), ChunkingOptions(max_tokens=20, overlap_tokens=0))

    assert " ".join(chunk.content for chunk in chunks) == text


def test_sentence_chunker_is_deterministic() -> None:
    parse_result = _parse_result(_numbered_sentences(40), _numbered_sentences(7))
    options = ChunkingOptions(max_tokens=30, overlap_tokens=10)

    assert SentenceChunker().chunk(parse_result, options) == SentenceChunker().chunk(parse_result, options)


def test_sentence_chunker_keeps_overlong_sentence_whole() -> None:
    long_sentence = "x" * 100 + "."
    parse_result = _parse_result(f"Short one. {long_sentence}")

    chunks = SentenceChunker().chunk(parse_result, ChunkingOptions(max_tokens=5, overlap_tokens=0))

    assert [chunk.content for chunk in chunks] == ["Short one.", long_sentence]
    assert chunks[1].token_count > 5


def test_sentence_chunker_budgets_the_joined_text() -> None:
    # Two 40-char sentences estimate to 10 tokens each but 21 once joined by a space.
    sentences = [f"Sentence {index} runs on".ljust(39, "x") + "." for index in range(4)]
    assert all(len(sentence) == 40 for sentence in sentences)
    options = ChunkingOptions(max_tokens=20, overlap_tokens=0)

    chunks = SentenceChunker().chunk(_parse_result(" ".join(sentences)), options)

    assert [chunk.content for chunk in chunks] == sentences
    for chunk in chunks:
        assert chunk.token_count == estimate_token_count(chunk.content)
        assert chunk.token_count <= options.max_tokens


def test_sentence_chunker_trims_overlap_that_leaves_no_room() -> None:
    short = ["a" * 19 + ".", "b" * 19 + ".", "c" * 19 + "."]
    long_sentence = "d" * 71 + "."
    options = ChunkingOptions(max_tokens=20, overlap_tokens=15)

    chunks = SentenceChunker().chunk(_parse_result(" ".join(short + [long_sentence])), options)

    assert [chunk.content for chunk in chunks] == [" ".join(short), long_sentence]
    assert all(chunk.token_count <= options.max_tokens for chunk in chunks)


def test_chunkers_never_merge_segments() -> None:
    parse_result = _parse_result("Page one text.", "Page two text.")

    for chunker in (SentenceChunker(), CharacterWindowChunker()):
        chunks = chunker.chunk(parse_result, get_default_chunking_options())
        assert [chunk.content for chunk in chunks] == ["Page one text.", "Page two text."]
        assert [chunk.pointer_start.page_number for chunk in chunks] == [1, 2]


def test_empty_segment_yields_no_chunks() -> None:
    parse_result = _parse_result("")

    assert SentenceChunker().chunk(parse_result, get_default_chunking_options()) == []
    assert CharacterWindowChunker().chunk(parse_result, get_default_chunking_options()) == []


def test_character_window_keeps_fitting_segment_unchanged() -> None:
    text = "  Hi there.  No sentence handling here  "
    chunks = CharacterWindowChunker().chunk(_parse_result(text), ChunkingOptions(preserve_sentences=False))

    assert len(chunks) == 1
    assert chunks[0].content == text
    assert chunks[0].token_count == estimate_token_count(text)


@pytest.mark.parametrize("length", [500, 510, 777, 1001])
def test_character_window_reconstructs_text_after_removing_overlap(length: int) -> None:
    text = ("abcdefghij" * 200)[:length]
    options = ChunkingOptions(max_tokens=20, overlap_tokens=5, preserve_sentences=False)
    _, overlap_size = window_sizes(text, options)

    chunks = CharacterWindowChunker().chunk(_parse_result(text), options)

    assert len(chunks) > 1
    rebuilt = chunks[0].content + "".join(chunk.content[overlap_size:] for chunk in chunks[1:])
    assert rebuilt == text


def test_character_window_last_chunk_reaches_end_of_text() -> None:
    # The loop stops once start >= len(text) - overlap; the final window must still end at the text end.
    text = "0123456789" * 51
    options = ChunkingOptions(max_tokens=20, overlap_tokens=5, preserve_sentences=False)
    chunk_size, overlap_size = window_sizes(text, options)

    chunks = CharacterWindowChunker().chunk(_parse_result(text), options)

    assert text.endswith(chunks[-1].content)
    assert len(chunks[-1].content) > overlap_size
    assert all(len(chunk.content) <= chunk_size for chunk in chunks)


def test_character_window_guards_against_non_advancing_window() -> None:
    text = "a" * 400
    options = ChunkingOptions(max_tokens=10, overlap_tokens=10, preserve_sentences=False)

    chunks = CharacterWindowChunker().chunk(_parse_result(text), options)

    assert len(chunks) == 10
    assert "".join(chunk.content for chunk in chunks) == text
