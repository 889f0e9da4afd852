"""Paragraph-first text chunking for embedding.

Text is split on blank lines into paragraphs, paragraphs are packed greedily
into chunks of at most ``max_size`` characters, and any paragraph that is
larger than ``max_size`` on its own is split on sentence boundaries instead.
A final pass prepends the trailing ``overlap`` characters of each chunk to the
next one so retrieval keeps some context across chunk borders.

The overlap is a raw character slice. It may start in the middle of a word.
"""

import re
from dataclasses import dataclass

from mockdefense.constants import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE

PARAGRAPH_BREAK = re.compile(r"\n\n+")
SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")

PARAGRAPH_JOINER = "\n\n"
SENTENCE_JOINER = " "
OVERLAP_SEPARATOR = " "


@dataclass(frozen=True)
class TextChunk:
    """One chunk of a document.

    Attributes:
        content: Text to embed, including the overlap prefix
        span_start: Offset in the source text where the chunk body starts
        span_end: Offset in the source text where the chunk body ends
        overlap_length: Length of the synthetic overlap prefix (separator
            included); ``content[overlap_length:]`` is the chunk body
    """

    content: str
    span_start: int
    span_end: int
    overlap_length: int = 0

    @property
    def body(self) -> str:
        return self.content[self.overlap_length:]


@dataclass
class _Buffer:
    text: str = ""
    start: int = 0
    end: int = 0

    def add(self, piece: str, start: int, end: int, joiner: str) -> None:
        if self.text:
            self.text = f"{self.text}{joiner}{piece}"
        else:
            self.text = piece
            self.start = start
        self.end = end

    def fits(self, piece: str, joiner: str, max_size: int) -> bool:
        if not self.text:
            return len(piece) <= max_size
        return len(self.text) + len(joiner) + len(piece) <= max_size


def _segments(text: str, separator: re.Pattern, offset: int = 0) -> list[tuple[str, int, int]]:
    """Split ``text`` on ``separator`` and trim each piece, keeping offsets.

    Returns:
        list of (trimmed_piece, start, end), empty pieces dropped. Offsets are
        relative to the source text (``offset`` is added).
    """
    pieces = []
    cursor = 0
    bounds = [(m.start(), m.end()) for m in separator.finditer(text)]
    bounds.append((len(text), len(text)))
    for sep_start, sep_end in bounds:
        raw = text[cursor:sep_start]
        stripped = raw.strip()
        if stripped:
            lead = len(raw) - len(raw.lstrip())
            start = offset + cursor + lead
            pieces.append((stripped, start, start + len(stripped)))
        cursor = sep_end
    return pieces


def _split_bodies(text: str, max_size: int) -> list[TextChunk]:
    chunks: list[TextChunk] = []
    current = _Buffer()

    def flush(buffer: _Buffer) -> None:
        content = buffer.text.strip()
        if content:
            chunks.append(TextChunk(content, buffer.start, buffer.end))

    for paragraph, p_start, p_end in _segments(text, PARAGRAPH_BREAK):
        if len(paragraph) > max_size:
            flush(current)
            current = _Buffer()

            sentences = _Buffer()
            for sentence, s_start, s_end in _segments(paragraph, SENTENCE_BREAK, p_start):
                if sentences.fits(sentence, SENTENCE_JOINER, max_size):
                    sentences.add(sentence, s_start, s_end, SENTENCE_JOINER)
                else:
                    flush(sentences)
                    sentences = _Buffer()
                    # A sentence longer than max_size stays whole
                    sentences.add(sentence, s_start, s_end, SENTENCE_JOINER)

            # The unfinished sentence run continues as the pending buffer
            current = sentences
        elif current.fits(paragraph, PARAGRAPH_JOINER, max_size):
            current.add(paragraph, p_start, p_end, PARAGRAPH_JOINER)
        else:
            flush(current)
            current = _Buffer()
            current.add(paragraph, p_start, p_end, PARAGRAPH_JOINER)

    flush(current)
    return chunks


def _apply_overlap(chunks: list[TextChunk], overlap: int) -> list[TextChunk]:
    overlapped = [chunks[0]]
    for previous, chunk in zip(chunks, chunks[1:]):
        prefix = previous.content[-overlap:] + OVERLAP_SEPARATOR
        overlapped.append(
            TextChunk(
                content=prefix + chunk.content,
                span_start=chunk.span_start,
                span_end=chunk.span_end,
                overlap_length=len(prefix),
            )
        )
    return overlapped


def split_into_chunks(
    text: str,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[TextChunk]:
    """Split text into ordered, overlapping chunks with source spans.

    Args:
        text: The document text
        max_size: Maximum characters per chunk body
        overlap: Characters of the previous chunk prepended to each chunk

    Returns:
        list[TextChunk]: Chunks in document order. Empty for empty input.

    Raises:
        ValueError: If max_size is not positive or overlap is negative
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    if overlap < 0:
        raise ValueError(f"overlap must not be negative, got {overlap}")

    chunks = _split_bodies(text, max_size)
    if overlap == 0 or len(chunks) < 2:
        return chunks
    return _apply_overlap(chunks, overlap)


def chunk_text(
    text: str,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split text into ordered, overlapping chunk strings.

    See ``split_into_chunks`` for the algorithm; this returns the contents only.
    """
    return [chunk.content for chunk in split_into_chunks(text, max_size, overlap)]
