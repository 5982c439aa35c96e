"""Text helpers: paragraph-aware chunking and term extraction."""

from __future__ import annotations

import re
from typing import List

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
        "by", "from", "up", "about", "into", "through", "during", "before", "after",
        "above", "below", "between", "among", "this", "that", "these", "those", "i",
        "me", "my", "myself", "we", "our", "ours", "ourselves", "you", "your", "yours",
        "yourself", "yourselves", "he", "him", "his", "himself", "she", "her", "hers",
        "herself", "it", "its", "itself", "they", "them", "their", "theirs", "themselves",
        "what", "which", "who", "whom", "whose", "am",
        "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "having",
        "do", "does", "did", "doing", "will", "would", "should", "could", "can", "may",
        "might", "must", "shall",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")
_SENTENCE_END = re.compile(r"[.!?]\s+")
# "1." at the start of a line numbers a heading or list item, it does not end a sentence.
_LIST_NUMBER = re.compile(r"[ \t]*\d+\.")


def tokenize(text: str) -> List[str]:
    """Return the significant terms of ``text`` in order of appearance.

    Terms are lower-cased, stripped of punctuation, longer than two characters
    and not stop-words. Duplicates are kept.
    """
    words = _NON_WORD.sub(" ", text.lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOP_WORDS]


def count_words(text: str) -> int:
    return len(text.split())


def split_text(
    text: str,
    chunk_size: int = 800,
    chunk_overlap: int = 150,
    separator: str = "\n\n",
) -> List[str]:
    """Split text into overlapping chunks bounded by ``chunk_size`` characters.

    Paragraphs (delimited by ``separator``) are accumulated until the next one
    would not fit; the flushed chunk then seeds the following one with a short
    overlap tail, shortened when it would push the chunk past ``chunk_size``.
    Paragraphs longer than ``chunk_size`` are broken at sentence boundaries
    first, into pieces that leave room for the tail. A single sentence longer
    than ``chunk_size`` is kept whole.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if chunk_overlap < 0:
        raise ValueError("chunk_overlap must not be negative")

    chunks: List[str] = []
    current = ""
    # Sentence pieces leave room for an overlap tail and the separator.
    piece_size = chunk_size
    if chunk_overlap > 0 and chunk_size - chunk_overlap - len(separator) > 0:
        piece_size = chunk_size - chunk_overlap - len(separator)

    for paragraph in text.split(separator):
        if not paragraph.strip():
            continue

        pieces = [paragraph] if len(paragraph) <= chunk_size else _split_sentences(paragraph, piece_size)
        for piece in pieces:
            if not current:
                current = piece
                continue

            candidate = current + separator + piece
            if len(candidate) <= chunk_size:
                current = candidate
                continue

            flushed = current.strip()
            if flushed:
                chunks.append(flushed)
            tail = _overlap_tail(flushed, chunk_overlap)
            room = chunk_size - len(separator) - len(piece)
            if len(tail) > room:
                tail = tail[len(tail) - room :].strip() if room > 0 else ""
            current = tail + separator + piece if tail else piece

    if current.strip():
        chunks.append(current.strip())

    return chunks


def _overlap_tail(chunk: str, chunk_overlap: int) -> str:
    """Text carried from the end of ``chunk`` into the next chunk."""
    if chunk_overlap <= 0 or not chunk:
        return ""
    if len(chunk) <= chunk_overlap:
        return chunk

    window = chunk[-chunk_overlap:]
    # A period in the final position does not start a new sentence.
    boundary = window.rfind(".", 0, len(window) - 1)
    if boundary > chunk_overlap * 0.5:
        window = window[boundary + 1 :]
    return window.strip()


def _split_sentences(paragraph: str, chunk_size: int) -> List[str]:
    """Regroup the sentences of an oversized paragraph into pieces of at most ``chunk_size``."""
    pieces: List[str] = []
    current = ""
    for sentence in _sentences(paragraph.strip()):
        sentence = sentence.strip()
        if not sentence:
            continue
        if not current:
            current = sentence
        elif len(current) + 1 + len(sentence) <= chunk_size:
            current = f"{current} {sentence}"
        else:
            pieces.append(current)
            current = sentence
    if current:
        pieces.append(current)
    return pieces


def _sentences(paragraph: str) -> List[str]:
    """Split at whitespace following ``.``, ``!`` or ``?``, keeping the punctuation."""
    sentences: List[str] = []
    start = 0
    for match in _SENTENCE_END.finditer(paragraph):
        end = match.start() + 1
        line_start = paragraph.rfind("\n", 0, end) + 1
        if _LIST_NUMBER.fullmatch(paragraph, line_start, end):
            continue
        sentences.append(paragraph[start:end])
        start = match.end()
    sentences.append(paragraph[start:])
    return sentences
