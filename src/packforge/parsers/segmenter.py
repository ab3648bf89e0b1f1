"""Deterministic segmentation of source text into content-addressed chunks.

Blocks are cut on structure first (headings, bullet items, blank-line
paragraph breaks). Blocks whose normalized text exceeds the cap are split on
sentence boundaries, then on word boundaries. Character offsets always refer
to the original text; chunk ranges never overlap and keep source order.
"""

import logging
import re
from typing import List, Tuple

from packforge.config import MAX_CHUNK_CHARS
from packforge.models.ingest import TextChunk
from packforge.parsers.text_extractor import normalize_text
from packforge.utils.hashing import short_sha1

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+\S")
ALL_CAPS_HEADING_RE = re.compile(r"^[A-ZÄÖÜ][A-ZÄÖÜ\s]{10,}$")
BULLET_RE = re.compile(r"^\s*(?:[-•*]|\d{1,3}[.)])\s+")
SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s+")
WORD_RE = re.compile(r"\S+")

Span = Tuple[int, int]


def generate_chunk_id(normalized_text: str) -> str:
    """Stable chunk id: first 10 hex chars of SHA-1 of the normalized text."""
    return short_sha1(normalized_text, 10)


def _is_heading(line: str) -> bool:
    return bool(HEADING_RE.match(line) or ALL_CAPS_HEADING_RE.match(line.strip()))


def _structural_blocks(text: str) -> List[Span]:
    """Cut text into (start, end) blocks along headings, bullets and blank lines.

    A heading opens a block and stays attached to the paragraph that follows
    it. Each bullet item opens its own block; indented continuation lines stay
    with their bullet.
    """
    blocks: List[Span] = []
    block_start = None
    block_end = None
    heading_only = False

    def close():
        nonlocal block_start, block_end, heading_only
        if block_start is not None:
            blocks.append((block_start, block_end))
        block_start = None
        block_end = None
        heading_only = False

    pos = 0
    for line in text.splitlines(keepends=True):
        line_start = pos
        pos += len(line)
        content = line.rstrip("\r\n")
        if not content.strip():
            if not heading_only:
                close()
            continue

        stripped_start = line_start + (len(content) - len(content.lstrip()))
        line_end = line_start + len(content.rstrip())

        if _is_heading(content):
            close()
            block_start, heading_only = stripped_start, True
        elif BULLET_RE.match(content):
            if not heading_only:
                close()
            if block_start is None:
                block_start = stripped_start
            heading_only = False
        else:
            if block_start is None:
                block_start = stripped_start
            heading_only = False
        block_end = line_end

    close()
    return blocks


def _sub_spans(text: str, start: int, end: int, pattern: re.Pattern) -> List[Span]:
    """Split text[start:end] into consecutive spans using a separator or token regex."""
    segment = text[start:end]
    if pattern is WORD_RE:
        return [(start + m.start(), start + m.end()) for m in pattern.finditer(segment)]

    spans: List[Span] = []
    cursor = 0
    for m in pattern.finditer(segment):
        spans.append((start + cursor, start + m.start()))
        cursor = m.end()
    spans.append((start + cursor, end))
    return [s for s in spans if s[1] > s[0]]


def _pack_spans(text: str, spans: List[Span], max_chars: int) -> List[Span]:
    """Greedily merge consecutive spans while the normalized piece fits the cap."""
    pieces: List[Span] = []
    current = None
    for span in spans:
        if current is None:
            current = span
            continue
        candidate = (current[0], span[1])
        if len(normalize_text(text[candidate[0]:candidate[1]])) <= max_chars:
            current = candidate
        else:
            pieces.append(current)
            current = span
    if current is not None:
        pieces.append(current)
    return pieces


def _split_long_block(text: str, start: int, end: int, max_chars: int) -> List[Span]:
    """Split an oversized block so no piece exceeds max_chars (normalized)."""
    result: List[Span] = []
    for sentence in _pack_spans(text, _sub_spans(text, start, end, SENTENCE_END_RE), max_chars):
        if len(normalize_text(text[sentence[0]:sentence[1]])) <= max_chars:
            result.append(sentence)
            continue

        for piece in _pack_spans(text, _sub_spans(text, *sentence, WORD_RE), max_chars):
            if piece[1] - piece[0] <= max_chars:
                result.append(piece)
            else:
                # Single word longer than the cap
                for offset in range(piece[0], piece[1], max_chars):
                    result.append((offset, min(offset + max_chars, piece[1])))
    return result


def segment(
    text: str,
    max_chunk_chars: int = MAX_CHUNK_CHARS,
    min_chunk_chars: int = 1,
) -> List[TextChunk]:
    """Split text into ordered, non-overlapping, content-addressed chunks.

    Args:
        text: Raw extracted text (line structure preserved)
        max_chunk_chars: Maximum normalized length of a chunk (default: 800)
        min_chunk_chars: Chunks with shorter normalized text are dropped

    Returns:
        List of TextChunk in source order ([] for empty input)

    Example:
        >>> [c.normalized_text for c in segment("# Termin\\nIch brauche einen Termin.")]
        ['# Termin Ich brauche einen Termin.']
    """
    if not text or not text.strip():
        return []

    max_chunk_chars = max(1, max_chunk_chars)
    chunks: List[TextChunk] = []

    for block_start, block_end in _structural_blocks(text):
        normalized_block = normalize_text(text[block_start:block_end])
        if len(normalized_block) <= max_chunk_chars:
            spans = [(block_start, block_end)]
        else:
            spans = _split_long_block(text, block_start, block_end, max_chunk_chars)

        for start, end in spans:
            chunk_text = text[start:end]
            normalized = normalize_text(chunk_text)
            if len(normalized) < min_chunk_chars:
                continue
            chunks.append(
                TextChunk(
                    chunk_id=generate_chunk_id(normalized),
                    text=chunk_text,
                    normalized_text=normalized,
                    char_start=start,
                    char_end=end,
                )
            )

    logger.debug(f"Segmented {len(text)} characters into {len(chunks)} chunks")
    return chunks
