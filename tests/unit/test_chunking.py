"""Unit tests for the line-based chunker."""

from repo_knowledge.services.chunking import ChunkingConfig, ChunkingService, count_words


def one_word_lines(count: int) -> str:
    return "\n".join(f"w{i}" for i in range(1, count + 1))


def test_count_words_splits_on_any_whitespace() -> None:
    assert count_words("  alpha\tbeta   gamma ") == 3
    assert count_words("") == 0


def test_long_document_overlaps_last_three_lines(chunking_service: ChunkingService) -> None:
    """520 one-word lines give a full chunk and a tail seeded with lines 510-512."""
    chunks = chunking_service.chunk(one_word_lines(520))

    assert len(chunks) == 2
    assert chunks[0].word_count == 512
    assert chunks[0].text.split("\n")[-1] == "w512"

    second = chunks[1].text.split("\n")
    assert second[:4] == ["w510", "w511", "w512", "w513"]
    assert second[-1] == "w520"
    assert chunks[1].word_count == 11
    assert [c.index for c in chunks] == [0, 1]


def test_short_document_is_one_chunk(chunking_service: ChunkingService) -> None:
    text = "This line has exactly ten words in it for testing."
    chunks = chunking_service.chunk(text)
    assert len(chunks) == 1
    assert chunks[0].text == text
    assert chunks[0].index == 0


def test_buffer_below_min_size_is_dropped(chunking_service: ChunkingService) -> None:
    assert chunking_service.chunk("only five words in here") == []


def test_empty_and_blank_input_yield_no_chunks(chunking_service: ChunkingService) -> None:
    assert chunking_service.chunk("") == []
    assert chunking_service.chunk("\n\n   \n") == []


def test_single_long_line_is_not_split() -> None:
    service = ChunkingService(ChunkingConfig(chunk_size=5, min_chunk_size=1, overlap_lines=0))
    chunks = service.chunk("one two three four five six seven eight")
    assert len(chunks) == 1
    assert chunks[0].word_count == 8


def test_no_emitted_chunk_is_below_min_size() -> None:
    service = ChunkingService(ChunkingConfig(chunk_size=6, min_chunk_size=4, overlap_lines=1))
    text = "a b c\nd e f\ng\nh i j k\nl"
    chunks = service.chunk(text)
    assert chunks
    assert all(c.word_count >= 4 for c in chunks)
    assert [c.index for c in chunks] == list(range(len(chunks)))


def test_chunking_is_deterministic(chunking_service: ChunkingService) -> None:
    text = one_word_lines(1100)
    first = chunking_service.chunk(text)
    second = chunking_service.chunk(text)
    assert first == second
