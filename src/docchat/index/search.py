"""Retrieval facade: load a document once, then answer ranked queries."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

from docchat.index.lexical import LexicalIndex
from docchat.index.ranker import ScoringWeights, SimilarityRanker
from docchat.ingestion.sections import extract_sections
from docchat.ingestion.text_loader import build_chunks, read_document
from docchat.models import DocumentChunk, DocumentStats, SimilarityResult

LOGGER = logging.getLogger(__name__)


class IndexNotLoadedError(RuntimeError):
    """Raised when the searcher is queried before a document was loaded."""


@dataclass(slots=True)
class SearchResult:
    content: str
    source: str
    chunk_index: int
    section: str | None
    score: float


@dataclass(frozen=True, slots=True)
class _Generation:
    """Everything derived from one document load."""

    path: Path
    chunks: Tuple[DocumentChunk, ...]
    sections: Dict[str, str]
    index: LexicalIndex
    ranker: SimilarityRanker
    by_id: Dict[str, DocumentChunk]


class Searcher:
    """High-level API over the chunk set and lexical index of one document.

    Each :meth:`load_document` builds a complete new generation and swaps it
    in with a single assignment, so readers never see a half-built index.
    """

    def __init__(
        self,
        *,
        chunk_size: int = 800,
        chunk_overlap: int = 150,
        weights: ScoringWeights | None = None,
    ) -> None:
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.weights = weights or ScoringWeights()
        self._generation: _Generation | None = None
        self._load_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._generation is not None

    def load_document(self, path: Path | str) -> None:
        """Read, chunk, tag and index ``path``, replacing any previous document.

        Raises:
            DocumentLoadError: the file cannot be read. The previously loaded
                document, if any, stays active.
        """
        path = Path(path)
        with self._load_lock:
            text = read_document(path)
            sections = extract_sections(text)
            chunks = build_chunks(
                text,
                str(path),
                chunk_size=self.chunk_size,
                chunk_overlap=self.chunk_overlap,
                sections=sections,
            )
            index = LexicalIndex.build(chunks)
            generation = _Generation(
                path=path,
                chunks=tuple(chunks),
                sections=sections,
                index=index,
                ranker=SimilarityRanker(index, chunks, self.weights),
                by_id={chunk.id: chunk for chunk in chunks},
            )
            self._generation = generation

        LOGGER.info("Document loaded: %d chunks created from %s", len(chunks), path)
        LOGGER.info("Sections found: %s", ", ".join(sections) or "none")
        self._log_chunk_stats(generation)

    def get_chunks(self) -> List[DocumentChunk]:
        return list(self._current().chunks)

    def get_chunk_by_id(self, chunk_id: str) -> DocumentChunk | None:
        return self._current().by_id.get(chunk_id)

    def get_chunks_by_section(self, section: str) -> List[DocumentChunk]:
        """Chunks whose section label contains ``section`` (case-insensitive)."""
        needle = section.lower()
        return [
            chunk
            for chunk in self._current().chunks
            if chunk.section is not None and needle in chunk.section.lower()
        ]

    def get_sections(self) -> List[str]:
        return list(self._current().sections)

    def search_chunks(self, text: str) -> List[DocumentChunk]:
        """Plain substring lookup over chunk content, section and title."""
        needle = text.lower()
        return [
            chunk
            for chunk in self._current().chunks
            if needle in chunk.content.lower()
            or (chunk.section is not None and needle in chunk.section.lower())
            or (chunk.title is not None and needle in chunk.title.lower())
        ]

    def similarity_search(self, query: str, top_k: int = 3) -> List[SimilarityResult]:
        return self._current().ranker.similarity_search(query, top_k)

    def search(self, query: str, *, top_k: int = 5) -> List[SearchResult]:
        """Rank chunks for ``query`` and return them in the public result shape."""
        generation = self._current()
        results: List[SearchResult] = []
        for match in generation.ranker.similarity_search(query, top_k):
            chunk = match.chunk
            results.append(
                SearchResult(
                    content=chunk.content,
                    source=f"{Path(chunk.source_path).name} (Section {chunk.chunk_index + 1})",
                    chunk_index=chunk.chunk_index,
                    section=chunk.section,
                    score=float(match.score),
                )
            )
        return results

    def get_document_stats(self) -> DocumentStats:
        generation = self._current()
        total_words = sum(chunk.word_count for chunk in generation.chunks)
        total_chunks = len(generation.chunks)
        return DocumentStats(
            total_chunks=total_chunks,
            total_words=total_words,
            sections=list(generation.sections),
            average_chunk_size=round(total_words / total_chunks) if total_chunks else 0,
            vocabulary_size=len(generation.index.vocabulary),
        )

    def top_words(self, limit: int = 20) -> List[str]:
        return self._current().index.top_words(limit)

    def _current(self) -> _Generation:
        generation = self._generation
        if generation is None:
            raise IndexNotLoadedError("No document loaded; call load_document() first")
        return generation

    @staticmethod
    def _log_chunk_stats(generation: _Generation) -> None:
        chunks = generation.chunks
        if not chunks:
            LOGGER.warning("No text extracted from %s", generation.path)
            return
        average = sum(chunk.word_count for chunk in chunks) / len(chunks)
        with_sections = sum(1 for chunk in chunks if chunk.section)
        with_titles = sum(1 for chunk in chunks if chunk.title)
        LOGGER.debug(
            "Chunk statistics: average word count %.1f, chunks with sections %d/%d, "
            "chunks with titles %d/%d",
            average,
            with_sections,
            len(chunks),
            with_titles,
            len(chunks),
        )
