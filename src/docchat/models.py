"""Core docchat data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, slots=True)
class DocumentChunk:
    """Passage of the source document, immutable once loaded."""

    id: str
    content: str
    source_path: str
    chunk_index: int
    start_offset: int
    end_offset: int
    word_count: int
    preview: str
    section: str | None = None
    title: str | None = None


@dataclass(slots=True)
class ScoreBreakdown:
    """The four sub-scores behind a composite relevance score."""

    cosine: float = 0.0
    keyword: float = 0.0
    semantic: float = 0.0
    section: float = 0.0


@dataclass(slots=True)
class SimilarityResult:
    chunk: DocumentChunk
    score: float
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


@dataclass(slots=True)
class DocumentStats:
    total_chunks: int
    total_words: int
    sections: List[str]
    average_chunk_size: int
    vocabulary_size: int
