"""Composite relevance ranking of chunks against a query."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from docchat.index.lexical import LexicalIndex
from docchat.index.tables import SEMANTIC_GROUPS, section_keywords_for
from docchat.models import DocumentChunk, ScoreBreakdown, SimilarityResult
from docchat.utils.text import tokenize

LOGGER = logging.getLogger(__name__)

EXACT_PHRASE_BOOST = 0.4
RELATED_TERM_CREDIT = 0.6
SECTION_KEYWORD_FACTOR = 0.8


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Blend of the four sub-scores. Weights must be non-negative and sum to 1."""

    cosine: float = 0.25
    keyword: float = 0.35
    semantic: float = 0.2
    section: float = 0.2

    def __post_init__(self) -> None:
        values = (self.cosine, self.keyword, self.semantic, self.section)
        if any(value < 0 for value in values):
            raise ValueError("Scoring weights must not be negative")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-9):
            raise ValueError(f"Scoring weights must sum to 1.0, got {sum(values):.6f}")

    def combine(self, breakdown: ScoreBreakdown) -> float:
        return (
            self.cosine * breakdown.cosine
            + self.keyword * breakdown.keyword
            + self.semantic * breakdown.semantic
            + self.section * breakdown.section
        )


def query_terms(query: str) -> List[str]:
    """Significant query terms, de-duplicated in order of appearance."""
    return list(dict.fromkeys(tokenize(query)))


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity clamped to [0, 1]; zero-magnitude vectors score 0."""
    if a.size == 0 or b.size == 0:
        return 0.0
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    value = float(np.dot(a, b)) / (norm_a * norm_b)
    return min(1.0, max(0.0, value))


def keyword_similarity(query: str, terms: Sequence[str], chunk_terms: Iterable[str], chunk_text: str) -> float:
    """Fraction of query terms present in the chunk, boosted for an exact phrase hit."""
    if not terms:
        return 0.0
    chunk_terms = set(chunk_terms)
    score = sum(1 for term in terms if term in chunk_terms) / len(terms)

    phrase = query.strip().lower()
    if phrase and phrase in chunk_text.lower():
        score += EXACT_PHRASE_BOOST
    return min(1.0, score)


def semantic_similarity(
    terms: Sequence[str],
    chunk_terms: Iterable[str],
    chunk_text: str,
    groups: Mapping[str, Sequence[str]] = SEMANTIC_GROUPS,
) -> float:
    """Mean per-term credit: full for a direct hit, partial for a related term."""
    if not terms:
        return 0.0
    chunk_terms = set(chunk_terms)
    lowered = chunk_text.lower()

    total = 0.0
    for term in terms:
        if term in chunk_terms:
            total += 1.0
        elif any(_contains_related(related, chunk_terms, lowered) for related in groups.get(term, ())):
            total += RELATED_TERM_CREDIT
    return min(1.0, total / len(terms))


def section_similarity(terms: Sequence[str], section: str | None) -> float:
    if not terms or not section:
        return 0.0
    label_terms = set(tokenize(section))
    literal = sum(1 for term in terms if term in label_terms) / len(terms)

    keywords = set(section_keywords_for(section))
    configured = SECTION_KEYWORD_FACTOR * sum(1 for term in terms if term in keywords) / len(terms)
    return min(1.0, max(literal, configured))


def _contains_related(related: str, chunk_terms: set, lowered_text: str) -> bool:
    if " " in related:
        return related in lowered_text
    return related in chunk_terms


class SimilarityRanker:
    """Scores every chunk of one index generation against a query."""

    def __init__(
        self,
        index: LexicalIndex,
        chunks: Sequence[DocumentChunk],
        weights: ScoringWeights | None = None,
    ) -> None:
        self.index = index
        self.chunks: Tuple[DocumentChunk, ...] = tuple(chunks)
        self.weights = weights or ScoringWeights()
        self._chunk_terms = tuple(frozenset(tokenize(chunk.content)) for chunk in self.chunks)

    def score(self, query: str, position: int, query_vector: np.ndarray | None = None) -> ScoreBreakdown:
        """Sub-scores of the chunk at ``position`` for ``query``."""
        chunk = self.chunks[position]
        terms = query_terms(query)
        if query_vector is None:
            query_vector = self.index.embed(query)
        chunk_vector = self.index.embedding_for(chunk.id)
        chunk_terms = self._chunk_terms[position]

        return ScoreBreakdown(
            cosine=cosine_similarity(query_vector, chunk_vector) if chunk_vector is not None else 0.0,
            keyword=keyword_similarity(query, terms, chunk_terms, chunk.content),
            semantic=semantic_similarity(terms, chunk_terms, chunk.content),
            section=section_similarity(terms, chunk.section),
        )

    def similarity_search(self, query: str, top_k: int = 3) -> List[SimilarityResult]:
        """Return at most ``top_k`` chunks, highest composite score first.

        Equal scores keep document order. No minimum-score filtering is applied.
        """
        if top_k <= 0 or not self.chunks:
            return []

        query_vector = self.index.embed(query)
        results: List[SimilarityResult] = []
        for position, chunk in enumerate(self.chunks):
            breakdown = self.score(query, position, query_vector)
            results.append(
                SimilarityResult(chunk=chunk, score=self.weights.combine(breakdown), breakdown=breakdown)
            )

        # sorted() is stable, so ties stay in chunk order.
        ranked = sorted(results, key=lambda result: result.score, reverse=True)[:top_k]
        LOGGER.debug(
            "Similarity search for %r: %s",
            query,
            [(result.chunk.id, round(result.score, 3)) for result in ranked],
        )
        return ranked
