"""Data models for competitor discovery and extraction."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CandidateReference:
    """Externally discovered article, ranked by search position."""
    url: str
    title: str
    rank: int
    snippet: str = ""


@dataclass(frozen=True)
class PageStructure:
    """Structural counts observed in the selected content region."""
    headings: int = 0
    lists: int = 0
    paragraphs: int = 0
    tables: int = 0


@dataclass(frozen=True)
class ExtractedContent:
    """Primary article text pulled from one candidate URL."""
    url: str
    title: str = ""
    description: str = ""
    body: str = ""
    success: bool = False
    failure_reason: Optional[str] = None
    timestamp: str = field(default_factory=_utc_now)
    structure: PageStructure = field(default_factory=PageStructure)

    @classmethod
    def failure(cls, url: str, reason: str) -> "ExtractedContent":
        return cls(url=url, success=False, failure_reason=reason)

    @property
    def word_count(self) -> int:
        return len(self.body.split())
