"""Plain-text document loading and chunk construction."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Mapping, Tuple

from docchat.ingestion.sections import (
    create_preview,
    extract_sections,
    extract_title,
    find_section_for_chunk,
)
from docchat.models import DocumentChunk
from docchat.utils.text import count_words, split_text

LOGGER = logging.getLogger(__name__)


class DocumentLoadError(Exception):
    """Raised when the source document cannot be read."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Unable to load document {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


def read_document(path: Path | str) -> str:
    """Read a UTF-8 text document."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DocumentLoadError(path, "file not found") from exc
    except UnicodeDecodeError as exc:
        raise DocumentLoadError(path, "not valid UTF-8 text") from exc
    except OSError as exc:
        raise DocumentLoadError(path, exc.strerror or str(exc)) from exc


def build_chunks(
    text: str,
    source: str,
    *,
    chunk_size: int = 800,
    chunk_overlap: int = 150,
    sections: Mapping[str, str] | None = None,
) -> List[DocumentChunk]:
    """Chunk ``text`` and attach position, section, title and preview metadata."""
    if sections is None:
        sections = extract_sections(text)

    chunks: List[DocumentChunk] = []
    cursor = 0
    previous_end = 0
    for index, content in enumerate(split_text(text, chunk_size, chunk_overlap)):
        span = _locate(text, content, cursor)
        if span is None:
            start = max(0, previous_end - chunk_overlap)
            span = (start, start + len(content))
            LOGGER.debug("Could not locate chunk %d in source text, estimating offsets", index)
        start_offset, end_offset = span
        cursor = start_offset + 1
        previous_end = end_offset

        chunks.append(
            DocumentChunk(
                id=f"chunk_{index}",
                content=content,
                source_path=source,
                chunk_index=index,
                start_offset=start_offset,
                end_offset=end_offset,
                word_count=count_words(content),
                preview=create_preview(content),
                section=find_section_for_chunk(content, sections),
                title=extract_title(content),
            )
        )

    return chunks


def _locate(text: str, content: str, cursor: int) -> Tuple[int, int] | None:
    """Find ``content`` in ``text`` at or after ``cursor``, ignoring whitespace differences."""
    position = text.find(content, cursor)
    if position >= 0:
        return position, position + len(content)

    pattern = r"\s+".join(re.escape(token) for token in content.split())
    if not pattern:
        return None
    match = re.compile(pattern).search(text, cursor)
    if match is None:
        return None
    return match.start(), match.end()
