"""Pipeline records for source documents, enhancement runs and reports."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class SourceDocument:
    """Stored article awaiting enhancement. Owned by the storage collaborator."""
    id: str
    title: str
    body: str
    url: str = ""
    published_at: Optional[datetime] = None


@dataclass
class EnhancementResult:
    body: str = ""
    references: List[str] = field(default_factory=list)
    backend_id: Optional[str] = None
    model: Optional[str] = None
    success: bool = False
    error: Optional[str] = None


@dataclass
class ProcessResult:
    document_id: str
    success: bool
    title: str = ""
    backend_id: Optional[str] = None
    model: Optional[str] = None
    references_count: int = 0
    original_length: int = 0
    enhanced_length: int = 0
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "success": self.success,
            "backend_id": self.backend_id,
            "model": self.model,
            "references_count": self.references_count,
            "content_length": {
                "original": self.original_length,
                "enhanced": self.enhanced_length,
            },
            "error": self.error,
        }


@dataclass
class BatchReport:
    per_document: List[ProcessResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def counts(self) -> Dict[str, int]:
        succeeded = sum(1 for result in self.per_document if result.success)
        return {
            "processed": len(self.per_document),
            "succeeded": succeeded,
            "failed": len(self.per_document) - succeeded,
        }

    @property
    def success_rate(self) -> float:
        processed = self.counts["processed"]
        if not processed:
            return 0.0
        return self.counts["succeeded"] / processed

    @property
    def duration_seconds(self) -> float:
        if not self.started_at or not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "counts": self.counts,
            "success_rate": round(self.success_rate * 100, 2),
            "duration_seconds": round(self.duration_seconds, 2),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
            "per_document": [result.as_dict() for result in self.per_document],
        }
