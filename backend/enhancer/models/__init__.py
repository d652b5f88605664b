from enhancer.models.documents import (
    BatchReport,
    EnhancementResult,
    ProcessResult,
    SourceDocument,
)

__all__ = [
    "BatchReport",
    "EnhancementResult",
    "ProcessResult",
    "SourceDocument",
]
