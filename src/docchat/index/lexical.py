"""TF-IDF lexical index over document chunks."""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from docchat.models import DocumentChunk
from docchat.utils.text import tokenize

LOGGER = logging.getLogger(__name__)

MAX_DIMENSION = 500


class LexicalIndex:
    """Vocabulary, IDF table and chunk embeddings for one document load.

    Instances are built in one pass by :meth:`build` and never mutated
    afterwards, so they can be shared by concurrent readers.
    """

    def __init__(
        self,
        vocabulary: Sequence[str],
        idf: Mapping[str, float],
        chunk_ids: Sequence[str],
        embeddings: np.ndarray,
        term_counts: Mapping[str, int] | None = None,
        *,
        max_dimension: int = MAX_DIMENSION,
    ) -> None:
        self.vocabulary: Tuple[str, ...] = tuple(vocabulary)
        self.idf: Dict[str, float] = dict(idf)
        self.dimension = min(len(self.vocabulary), max_dimension)
        if embeddings.shape != (len(chunk_ids), self.dimension):
            raise ValueError(
                f"Embedding matrix shape {embeddings.shape} does not match "
                f"{len(chunk_ids)} chunks x {self.dimension} dimensions"
            )
        self._dimension_terms = self.vocabulary[: self.dimension]
        self._dimension_idf = _idf_vector(self._dimension_terms, self.idf)
        self._row_for_id = {chunk_id: row for row, chunk_id in enumerate(chunk_ids)}
        self.embeddings = embeddings
        self.embeddings.setflags(write=False)
        self._term_counts = Counter(term_counts or {})

    @classmethod
    def build(
        cls, chunks: Sequence[DocumentChunk], *, max_dimension: int = MAX_DIMENSION
    ) -> "LexicalIndex":
        """Index ``chunks``: vocabulary, IDF and one L2-normalized embedding per chunk."""
        chunk_terms: List[List[str]] = [tokenize(chunk.content) for chunk in chunks]

        # dict preserves first-seen order, which fixes the embedding layout.
        ordered: Dict[str, None] = {}
        term_counts: Counter = Counter()
        document_frequency: Counter = Counter()
        for terms in chunk_terms:
            for term in terms:
                ordered.setdefault(term, None)
            term_counts.update(terms)
            document_frequency.update(set(terms))

        total = len(chunks)
        idf = {term: math.log(total / (document_frequency[term] + 1)) for term in ordered}

        vocabulary = list(ordered)
        dimension_terms = vocabulary[:max_dimension]
        dimension_idf = _idf_vector(dimension_terms, idf)
        embeddings = np.zeros((total, len(dimension_terms)), dtype=np.float64)
        for row, terms in enumerate(chunk_terms):
            embeddings[row] = _tf_idf_vector(terms, dimension_terms, dimension_idf)

        LOGGER.info("Indexed %d chunks with vocabulary of %d words", total, len(vocabulary))
        return cls(
            vocabulary,
            idf,
            [chunk.id for chunk in chunks],
            embeddings,
            term_counts,
            max_dimension=max_dimension,
        )

    def embed(self, text: str) -> np.ndarray:
        """Embed arbitrary text in this index's vector space.

        Out-of-vocabulary terms contribute nothing; text without known terms
        yields the zero vector.
        """
        return _tf_idf_vector(tokenize(text), self._dimension_terms, self._dimension_idf)

    def embedding_for(self, chunk_id: str) -> np.ndarray | None:
        row = self._row_for_id.get(chunk_id)
        if row is None:
            return None
        return self.embeddings[row]

    def top_words(self, limit: int = 20) -> List[str]:
        """Most frequent terms across all chunks."""
        return [term for term, _ in self._term_counts.most_common(limit)]

    def __len__(self) -> int:
        return len(self._row_for_id)


def _idf_vector(terms: Sequence[str], idf: Mapping[str, float]) -> np.ndarray:
    return np.array([idf.get(term, 0.0) for term in terms], dtype=np.float64)


def _tf_idf_vector(
    terms: Sequence[str], dimension_terms: Sequence[str], dimension_idf: np.ndarray
) -> np.ndarray:
    """L2-normalized term-frequency x IDF vector; the zero vector stays zero."""
    if not terms or not dimension_terms:
        return np.zeros(len(dimension_terms), dtype=np.float64)

    frequencies = Counter(terms)
    tf = np.array([frequencies.get(term, 0) for term in dimension_terms], dtype=np.float64)
    vector = tf * dimension_idf
    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector /= norm
    return vector
