"""Heading detection and per-chunk section, title and preview derivation."""

from __future__ import annotations

import math
import re
from typing import Dict, Mapping

# "1. VACATION POLICY"
NUMBERED_HEADING = re.compile(r"^[ \t]*\d+\.[ \t]+([A-Z][A-Z &/,'-]*?)[ \t]*$", re.MULTILINE)
# "BENEFITS PACKAGE" or "GENERAL PROVISIONS:"
UPPERCASE_HEADING = re.compile(r"^[A-Z][A-Z \t:&/,'-]+$", re.MULTILINE)

_NUMBERED_PREFIX = re.compile(r"^\d+\.\s+")
_NUMBERED_LINE = re.compile(r"^\d+\.\s+[A-Z]")
_UPPERCASE_LINE = re.compile(r"^[A-Z][A-Z\s:&/,'-]+$")
_SUBSECTION_LINE = re.compile(r"^[A-Z][a-z].*:$")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")

MIN_HEADING_CHARS = 5
MAX_HEADING_CHARS = 50
PREVIEW_CHARS = 100


def extract_sections(full_text: str) -> Dict[str, str]:
    """Map each section label found in ``full_text`` to its raw heading text.

    Numbered headings are collected first, then bare uppercase lines of
    reasonable length. The first occurrence of a label wins.
    """
    sections: Dict[str, str] = {}

    for match in NUMBERED_HEADING.finditer(full_text):
        label = match.group(1).strip()
        if label and label not in sections:
            sections[label] = match.group(0).strip()

    for match in UPPERCASE_HEADING.finditer(full_text):
        header = match.group(0).strip()
        if not (MIN_HEADING_CHARS < len(header) < MAX_HEADING_CHARS):
            continue
        label = header.rstrip(":").strip()
        if label and label not in sections:
            sections[label] = header

    return sections


def find_section_for_chunk(chunk: str, sections: Mapping[str, str]) -> str | None:
    """Return the first section label whose significant words appear in ``chunk``.

    Falls back to a numbered heading embedded in the chunk itself.
    """
    chunk_lower = chunk.lower()

    for label in sections:
        words = label.lower().split()
        significant = [word for word in words if len(word) > 3]
        if not significant:
            continue
        required = max(1, math.ceil(len(significant) / 2))
        if len(words) >= 4:
            required = max(required, 2)
        matches = sum(1 for word in significant if word in chunk_lower)
        if matches >= required:
            return label

    for line in chunk.splitlines():
        stripped = line.strip()
        if _NUMBERED_LINE.match(stripped):
            return _NUMBERED_PREFIX.sub("", stripped)

    return None


def extract_title(chunk: str) -> str | None:
    lines = [line.strip() for line in chunk.splitlines() if line.strip()]

    for line in lines[:3]:
        if _NUMBERED_LINE.match(line) or _UPPERCASE_LINE.match(line):
            return _NUMBERED_PREFIX.sub("", line)
        if _SUBSECTION_LINE.match(line) and len(line) < MAX_HEADING_CHARS:
            return line[:-1]

    return None


def create_preview(chunk: str) -> str:
    """Short summary: the first real sentence, or the head of the chunk."""
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(chunk) if s.strip()]
    first = sentences[0] if sentences else ""

    if len(first) > 20:
        if len(first) > PREVIEW_CHARS:
            return first[:PREVIEW_CHARS] + "..."
        return first + "."

    return chunk[:PREVIEW_CHARS] + "..."
