"""Sentence-aware text chunker.

Splits a document into overlapping chunks of roughly 500–800 model tokens,
assuming ~4 characters per token. Boundaries are placed between
sentence-like units (text after ".", "?" or "!" followed by whitespace, or
paragraphs separated by blank lines) so chunks stay readable.
"""

import re

from shared.models.record import Chunk

DEFAULT_MIN_CHARS = 1200  # ≈ 500 tokens
DEFAULT_MAX_CHARS = 2000  # ≈ 800 tokens
DEFAULT_OVERLAP = 200

CHARS_PER_TOKEN = 4

_UNIT_BOUNDARY = re.compile(r"(?<=[.?!])\s+|\n{2,}")


def estimate_tokens(text: str) -> int:
    """Approximate the token count of a text as len / 4, rounded half up.

    Args:
        text (str): The text to measure.

    Returns:
        int: Estimated number of tokens.
    """
    return (len(text) + CHARS_PER_TOKEN // 2) // CHARS_PER_TOKEN


def split_into_units(text: str) -> list[str]:
    """Split text into trimmed sentence-like units.

    This is a heuristic, not grammatical sentence detection: long stretches
    without punctuation come back as a single unit.

    Args:
        text (str): Raw document text.

    Returns:
        list[str]: Non-empty units in document order.
    """
    normalised = text.replace("\r\n", "\n")
    return [unit.strip() for unit in _UNIT_BOUNDARY.split(normalised) if unit.strip()]


def hard_split(unit: str, max_chars: int) -> list[str]:
    """Cut a unit into consecutive pieces of max_chars characters, without overlap.

    Args:
        unit (str): A unit longer than max_chars.
        max_chars (int): Piece length.

    Returns:
        list[str]: The pieces; only the last one may be shorter.
    """
    return [unit[start:start + max_chars] for start in range(0, len(unit), max_chars)]


def _seed_buffer(closed_chunk: str, unit: str, overlap: int, max_chars: int) -> str:
    """Start the next buffer with the tail of the chunk just closed, followed by the new unit.

    The tail is shortened from the left when tail + unit would not fit into max_chars.
    """
    tail = closed_chunk[-overlap:] if overlap > 0 else ""
    room = max_chars - len(unit) - 1
    if room <= 0:
        tail = ""
    elif len(tail) > room:
        tail = tail[-room:]
    if not tail.strip():
        return unit
    return f"{tail} {unit}".strip()


def _validate_settings(min_chars: int, max_chars: int, overlap: int) -> None:
    if max_chars < 1:
        raise ValueError(f"max_chars must be >= 1, got {max_chars}.")
    if min_chars < 0 or min_chars > max_chars:
        raise ValueError(f"min_chars must be between 0 and max_chars ({max_chars}), got {min_chars}.")
    if overlap < 0 or overlap >= max_chars:
        raise ValueError(f"overlap must be between 0 and max_chars - 1 ({max_chars - 1}), got {overlap}.")


def chunk_text(
    text: str,
    min_chars: int = DEFAULT_MIN_CHARS,
    max_chars: int = DEFAULT_MAX_CHARS,
    overlap: int = DEFAULT_OVERLAP,
) -> list[Chunk]:
    """Split a document into ordered, overlapping chunks.

    Units are appended greedily to a buffer. Reaching min_chars does not close
    the buffer; it keeps filling until the next unit would push it over
    max_chars. At that point the buffer is emitted and the next buffer starts
    with the last `overlap` characters of the emitted chunk plus the new unit.
    A unit that is longer than max_chars on its own is hard-split into
    max_chars pieces. Whatever remains at the end is emitted even if it is
    shorter than min_chars.

    Every chunk is trimmed, non-empty and at most max_chars long; indexes
    start at 0 and increase by 1.

    Args:
        text (str): Full document text.
        min_chars (int): Target lower bound of a chunk (not enforced on the last one).
        max_chars (int): Hard upper bound of a chunk.
        overlap (int): Number of trailing characters carried into the next chunk.

    Returns:
        list[Chunk]: The chunks, empty for empty or whitespace-only text.

    Raises:
        ValueError: If the settings are inconsistent.
    """
    _validate_settings(min_chars, max_chars, overlap)

    chunks: list[Chunk] = []

    def emit(piece: str) -> None:
        piece = piece.strip()
        if piece:
            chunks.append(Chunk(text=piece, index=len(chunks)))

    def emit_hard_split(unit: str) -> None:
        for piece in hard_split(unit, max_chars):
            emit(piece)

    buffer = ""
    for unit in split_into_units(text):
        candidate = f"{buffer} {unit}" if buffer else unit
        if len(candidate) <= max_chars:
            buffer = candidate
            continue

        if not buffer:
            emit_hard_split(unit)
            continue

        emit(buffer)
        if len(unit) > max_chars:
            emit_hard_split(unit)
            buffer = ""
        else:
            buffer = _seed_buffer(chunks[-1].text, unit, overlap, max_chars)

    emit(buffer)
    return chunks
