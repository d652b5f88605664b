"""Competitor page extraction package."""

from .models import (
    CandidateReference,
    ExtractedContent,
    PageStructure,
)
from .extraction import ContentExtractor, strip_non_content

__all__ = [
    # Main entry point
    "ContentExtractor",

    # Utility functions
    "strip_non_content",

    # Data models
    "CandidateReference",
    "ExtractedContent",
    "PageStructure",
]
