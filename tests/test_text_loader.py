"""Tests for document loading and chunk construction."""

from __future__ import annotations

from pathlib import Path

import pytest

from docchat.ingestion.text_loader import DocumentLoadError, build_chunks, read_document


POLICY_TEXT = (
    "1. VACATION POLICY\n"
    "Employees get 15 days of paid vacation per year.\n\n"
    "2. SICK LEAVE\n"
    "Employees get 10 sick days."
)


class TestReadDocument:
    """Test read_document function."""

    def test_reads_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "policy.txt"
        path.write_text("Café policy", encoding="utf-8")

        assert read_document(path) == "Café policy"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should raise DocumentLoadError for missing files."""
        path = tmp_path / "missing.txt"

        with pytest.raises(DocumentLoadError) as excinfo:
            read_document(path)

        assert excinfo.value.path == path
        assert excinfo.value.reason == "file not found"
        assert isinstance(excinfo.value.__cause__, FileNotFoundError)

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        """Should reject binary content."""
        path = tmp_path / "binary.txt"
        path.write_bytes(b"\xff\xfe\xfa\x00")

        with pytest.raises(DocumentLoadError) as excinfo:
            read_document(path)

        assert excinfo.value.reason == "not valid UTF-8 text"

    def test_directory(self, tmp_path: Path) -> None:
        """Should wrap other OS errors."""
        with pytest.raises(DocumentLoadError) as excinfo:
            read_document(tmp_path)

        assert excinfo.value.reason
        assert str(tmp_path) in str(excinfo.value)


class TestBuildChunks:
    """Test build_chunks function."""

    def test_chunk_metadata(self) -> None:
        """Should attach ids, offsets, sections and titles."""
        chunks = build_chunks(POLICY_TEXT, "policy.txt", chunk_size=60, chunk_overlap=10)

        assert [chunk.id for chunk in chunks] == ["chunk_0", "chunk_1"]
        assert [chunk.chunk_index for chunk in chunks] == [0, 1]
        assert all(chunk.source_path == "policy.txt" for chunk in chunks)

        first, second = chunks
        assert first.content == "1. VACATION POLICY\nEmployees get 15 days of paid vacation per year."
        assert (first.start_offset, first.end_offset) == (0, 67)
        assert first.section == "VACATION POLICY"
        assert first.title == "VACATION POLICY"
        assert first.word_count == 12

        assert second.content == "per year.\n\n2. SICK LEAVE\nEmployees get 10 sick days."
        assert (second.start_offset, second.end_offset) == (58, len(POLICY_TEXT))
        assert second.section == "SICK LEAVE"
        assert second.title == "SICK LEAVE"

    def test_offsets_point_into_source(self) -> None:
        """Offsets should slice the chunk content back out of the text."""
        for chunk in build_chunks(POLICY_TEXT, "policy.txt", chunk_size=60, chunk_overlap=10):
            assert POLICY_TEXT[chunk.start_offset : chunk.end_offset] == chunk.content

    def test_offsets_with_rejoined_whitespace(self) -> None:
        """Should locate chunks whose whitespace differs from the source."""
        text = "Aaaa bbbb cccc. Dddd eeee ffff. Gggg."
        chunks = build_chunks(text, "doc.txt", chunk_size=35, chunk_overlap=10)

        for chunk in chunks:
            assert 0 <= chunk.start_offset < chunk.end_offset <= len(text)
        assert chunks[0].start_offset == 0

    def test_preview(self) -> None:
        chunks = build_chunks(POLICY_TEXT, "policy.txt", chunk_size=60, chunk_overlap=10)
        # "1" is too short to count as a first sentence.
        assert chunks[0].preview == chunks[0].content + "..."
        assert chunks[1].preview == "per year.\n\n2. SICK LEAVE\nEmployees get 10 sick days...."

    def test_explicit_sections(self) -> None:
        """Should use the provided section mapping instead of detecting one."""
        chunks = build_chunks(
            POLICY_TEXT,
            "policy.txt",
            chunk_size=1000,
            chunk_overlap=0,
            sections={"PAID TIME": "PAID TIME"},
        )

        assert len(chunks) == 1
        assert chunks[0].section == "PAID TIME"

    def test_empty_text(self) -> None:
        assert build_chunks("", "empty.txt") == []
        assert build_chunks("   \n\n ", "blank.txt") == []
