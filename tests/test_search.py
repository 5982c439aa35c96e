"""Tests for the retrieval facade."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import pytest

from docchat.index.search import IndexNotLoadedError, Searcher, SearchResult
from docchat.ingestion.text_loader import DocumentLoadError


POLICY_TEXT = (
    "1. VACATION POLICY\n"
    "Employees get 15 days of paid vacation per year.\n\n"
    "2. SICK LEAVE\n"
    "Employees get 10 sick days."
)


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    path = tmp_path / "policy.txt"
    path.write_text(POLICY_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def searcher(policy_file: Path) -> Searcher:
    searcher = Searcher(chunk_size=60, chunk_overlap=10)
    searcher.load_document(policy_file)
    return searcher


class TestSearchResult:
    """Test SearchResult dataclass."""

    def test_create_search_result(self) -> None:
        """Should create SearchResult with all fields."""
        result = SearchResult(
            content="Employees get 10 sick days.",
            source="policy.txt (Section 2)",
            chunk_index=1,
            section="SICK LEAVE",
            score=0.42,
        )

        assert result.source == "policy.txt (Section 2)"
        assert result.section == "SICK LEAVE"
        assert result.score == 0.42


class TestNotLoaded:
    """Test queries issued before any document was loaded."""

    def test_is_loaded(self) -> None:
        assert Searcher().is_loaded is False

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.get_chunks(),
            lambda s: s.get_sections(),
            lambda s: s.get_chunk_by_id("chunk_0"),
            lambda s: s.search("vacation"),
            lambda s: s.similarity_search("vacation"),
            lambda s: s.get_document_stats(),
        ],
    )
    def test_queries_raise(self, call) -> None:
        """Should raise IndexNotLoadedError rather than return empty results."""
        with pytest.raises(IndexNotLoadedError):
            call(Searcher())


class TestLoadDocument:
    """Test Searcher.load_document."""

    def test_load(self, searcher: Searcher) -> None:
        assert searcher.is_loaded
        assert [chunk.id for chunk in searcher.get_chunks()] == ["chunk_0", "chunk_1"]

    def test_logs_summary(self, policy_file: Path, caplog: pytest.LogCaptureFixture) -> None:
        searcher = Searcher(chunk_size=60, chunk_overlap=10)
        with caplog.at_level(logging.INFO, logger="docchat.index.search"):
            searcher.load_document(policy_file)

        assert "Document loaded: 2 chunks created" in caplog.text
        assert "Sections found: VACATION POLICY, SICK LEAVE" in caplog.text

    def test_missing_file(self, tmp_path: Path) -> None:
        searcher = Searcher()
        with pytest.raises(DocumentLoadError):
            searcher.load_document(tmp_path / "missing.txt")
        assert searcher.is_loaded is False

    def test_failed_reload_keeps_previous_document(self, searcher: Searcher, tmp_path: Path) -> None:
        """Should keep serving the old generation when a reload fails."""
        with pytest.raises(DocumentLoadError):
            searcher.load_document(tmp_path / "missing.txt")

        assert searcher.get_sections() == ["VACATION POLICY", "SICK LEAVE"]
        assert len(searcher.get_chunks()) == 2

    def test_reload_replaces_document(self, searcher: Searcher, tmp_path: Path) -> None:
        other = tmp_path / "other.txt"
        other.write_text("3. REMOTE WORK\nStaff may work from home.", encoding="utf-8")

        searcher.load_document(other)

        assert searcher.get_sections() == ["REMOTE WORK"]
        assert searcher.get_chunk_by_id("chunk_1") is None
        assert searcher.search("remote work", top_k=1)[0].source == "other.txt (Section 1)"

    def test_empty_document(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Should load an empty file as a document with no chunks."""
        path = tmp_path / "empty.txt"
        path.write_text("", encoding="utf-8")
        searcher = Searcher()

        with caplog.at_level(logging.WARNING, logger="docchat.index.search"):
            searcher.load_document(path)

        assert searcher.is_loaded
        assert searcher.get_chunks() == []
        assert searcher.search("vacation") == []
        assert searcher.get_document_stats().average_chunk_size == 0
        assert "No text extracted" in caplog.text


class TestLookups:
    """Test chunk and section accessors."""

    def test_get_chunk_by_id(self, searcher: Searcher) -> None:
        chunk = searcher.get_chunk_by_id("chunk_1")

        assert chunk is not None
        assert chunk.section == "SICK LEAVE"
        assert searcher.get_chunk_by_id("chunk_99") is None

    def test_get_chunks_by_section(self, searcher: Searcher) -> None:
        """Should match section labels by case-insensitive substring."""
        assert [chunk.id for chunk in searcher.get_chunks_by_section("sick")] == ["chunk_1"]
        assert [chunk.id for chunk in searcher.get_chunks_by_section("VACATION")] == ["chunk_0"]
        assert searcher.get_chunks_by_section("payroll") == []

    def test_get_sections(self, searcher: Searcher) -> None:
        assert searcher.get_sections() == ["VACATION POLICY", "SICK LEAVE"]

    def test_search_chunks(self, searcher: Searcher) -> None:
        assert [chunk.id for chunk in searcher.search_chunks("paid")] == ["chunk_0"]
        assert [chunk.id for chunk in searcher.search_chunks("PER YEAR")] == ["chunk_0", "chunk_1"]
        assert searcher.search_chunks("zzqqxx") == []

    def test_get_chunks_returns_copy(self, searcher: Searcher) -> None:
        chunks = searcher.get_chunks()
        chunks.clear()
        assert len(searcher.get_chunks()) == 2


class TestSearch:
    """Test ranked search."""

    def test_search_result_shape(self, searcher: Searcher) -> None:
        results = searcher.search("How many vacation days do I get?", top_k=1)

        assert len(results) == 1
        result = results[0]
        assert result.content.startswith("1. VACATION POLICY")
        assert result.source == "policy.txt (Section 1)"
        assert result.chunk_index == 0
        assert result.section == "VACATION POLICY"
        assert isinstance(result.score, float)
        assert 0.0 < result.score <= 1.0

    def test_similarity_search_default_top_k(self, searcher: Searcher) -> None:
        results = searcher.similarity_search("sick days")

        assert len(results) == 2
        assert results[0].chunk.id == "chunk_1"

    def test_top_k_zero(self, searcher: Searcher) -> None:
        assert searcher.search("vacation", top_k=0) == []


class TestStats:
    """Test document statistics."""

    def test_document_stats(self, searcher: Searcher) -> None:
        stats = searcher.get_document_stats()

        assert stats.total_chunks == 2
        assert stats.total_words == 22
        assert stats.average_chunk_size == 11
        assert stats.sections == ["VACATION POLICY", "SICK LEAVE"]
        assert stats.vocabulary_size == 10

    def test_top_words(self, searcher: Searcher) -> None:
        top = searcher.top_words(3)

        assert len(top) == 3
        assert set(top) <= {"vacation", "days", "employees", "get", "per", "year", "sick"}


class TestConcurrency:
    """Test reads racing with reloads."""

    def test_search_during_reload(self, searcher: Searcher, policy_file: Path) -> None:
        errors: list[Exception] = []

        def read() -> None:
            try:
                for _ in range(50):
                    results = searcher.search("vacation days", top_k=2)
                    assert len(results) == 2
                    assert searcher.get_sections() == ["VACATION POLICY", "SICK LEAVE"]
            except Exception as exc:
                errors.append(exc)

        def reload() -> None:
            try:
                for _ in range(10):
                    searcher.load_document(policy_file)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=read) for _ in range(4)]
        threads.append(threading.Thread(target=reload))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
