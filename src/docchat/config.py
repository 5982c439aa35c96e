"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from docchat.index.ranker import ScoringWeights

DOCUMENT_ENV_VAR = "DOCCHAT_DOCUMENT"


def _get_default_document_path() -> Path:
    """Document served by default: ``$DOCCHAT_DOCUMENT`` or the bundled sample location."""
    configured = os.environ.get(DOCUMENT_ENV_VAR)
    if configured:
        return Path(configured).expanduser()
    return Path("documents/sample.txt")


@dataclass(slots=True)
class AppConfig:
    document_path: Path | None = None
    chunk_size: int = 800
    chunk_overlap: int = 150
    top_k: int = 5
    # Results at or below this score are not treated as relevant context.
    min_score: float = 0.1
    weights: ScoringWeights = field(default_factory=ScoringWeights)

    def __post_init__(self) -> None:
        if self.document_path is None:
            self.document_path = _get_default_document_path()

    def resolve_document_path(self, base_dir: Path | None = None) -> Path:
        if self.document_path is None:
            self.document_path = _get_default_document_path()
        if Path(self.document_path).is_absolute() or base_dir is None:
            return Path(self.document_path)
        return base_dir / self.document_path
