"""
Тесты чанкера: границы окон, перекрытие, восстановление текста и защита от зацикливания.
"""

import math

import pytest

from docqa.errors import InvalidInputError
from docqa.indexing.chunker import chunk_text
from tests.conftest import FOX_TEXT

SAMPLE_TEXTS = [
    FOX_TEXT,
    "a",
    "   \n\n   \t   " * 7,
    "x" * 1000,
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 13,
    "Unicode: привет мир, ünïcödé テキスト. " * 5,
]
PARAMS = [(20, 5), (5, 0), (3, 2), (50, 10), (1000, 200), (7, 6)]


def reconstruct(chunks, overlap):
    if not chunks:
        return ""
    return chunks[0].text + "".join(c.text[overlap:] for c in chunks[1:])


def test_fox_sentence_windows():
    chunks = chunk_text(FOX_TEXT, size=20, overlap=5)

    assert [c.text for c in chunks] == [FOX_TEXT[0:20], FOX_TEXT[15:35], FOX_TEXT[30:44]]
    assert all(len(c.text) <= 20 for c in chunks)
    # chunk 2 starts 5 characters before chunk 1 ends
    assert chunks[1].text[:5] == chunks[0].text[-5:]
    assert chunks[-1].text.endswith("lazy dog.")
    assert [c.position for c in chunks] == [0, 1, 2]


@pytest.mark.parametrize("text", SAMPLE_TEXTS)
@pytest.mark.parametrize("size,overlap", PARAMS)
def test_chunks_reconstruct_text_and_respect_bound(text, size, overlap):
    chunks = chunk_text(text, size=size, overlap=overlap)

    assert reconstruct(chunks, overlap) == text
    assert len(chunks) <= math.ceil(len(text) / (size - overlap))
    assert all(len(c.text) <= size for c in chunks)
    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.text[:overlap] == prev.text[len(prev.text) - overlap :]


def test_empty_text_gives_no_chunks():
    assert chunk_text("", size=10, overlap=2) == []


def test_short_text_gives_single_chunk():
    chunks = chunk_text("short", size=10, overlap=2, source_id="notes.txt")

    assert len(chunks) == 1
    assert chunks[0].text == "short"
    assert chunks[0].source_id == "notes.txt"
    assert chunks[0].position == 0


def test_text_of_exact_size_is_not_split():
    assert [c.text for c in chunk_text("abcdefghij", size=10, overlap=3)] == ["abcdefghij"]


def test_chunks_are_immutable():
    chunk = chunk_text(FOX_TEXT, size=20, overlap=5)[0]
    with pytest.raises(AttributeError):
        chunk.text = "changed"


@pytest.mark.parametrize("size,overlap", [(10, 10), (10, 12), (0, 0), (-5, 0), (10, -1)])
def test_invalid_parameters_are_rejected(size, overlap):
    with pytest.raises(InvalidInputError) as exc_info:
        chunk_text(FOX_TEXT, size=size, overlap=overlap)
    assert exc_info.value.kind == "invalid_input"


def test_chunking_is_deterministic():
    text = "Lorem ipsum dolor sit amet. " * 40
    assert chunk_text(text, 100, 20) == chunk_text(text, 100, 20)
