"""Turns free-form backend output into canonical Markdown and a node tree."""

from typing import Iterable, List, Optional, Tuple

from loguru import logger

from enhancer.config import Settings, get_settings
from enhancer.services.references import merge_references

from .models import NormalizedDocument
from .policy import BreakPolicy, FixedBreakPolicy, RandomBreakPolicy
from .stages import (
    cleanup,
    normalize_headings,
    normalize_lists,
    normalize_references_section,
    normalize_spacing,
    segment_paragraphs,
)
from .tree import build_tree


def policy_from_settings(settings: Settings) -> BreakPolicy:
    if settings.formatter_deterministic:
        return FixedBreakPolicy(settings.formatter_fixed_paragraph_sentences)
    return RandomBreakPolicy(settings.formatter_break_probability)


class ContentFormatter:
    """Five-stage normalizer with an injectable paragraph break policy."""

    def __init__(self, settings: Optional[Settings] = None, policy: Optional[BreakPolicy] = None):
        self.settings = settings or get_settings()
        self.policy = policy or policy_from_settings(self.settings)

    def format_text(self, raw_text: str) -> Tuple[str, List[str]]:
        """Run the stages in order; returns (canonical text, bibliography URLs)."""
        text = cleanup(raw_text)
        text, urls = normalize_references_section(text)
        text = normalize_headings(text)
        text = normalize_lists(text)
        text = segment_paragraphs(text, self.policy)
        text = normalize_spacing(text)
        return text, urls

    def normalize(self, raw_text: str, references: Iterable[str] = ()) -> NormalizedDocument:
        text, found = self.format_text(raw_text)
        merged = merge_references(references, found, int(self.settings.references_cap))
        nodes = build_tree(text)
        logger.debug(f"Normalized {len(raw_text or '')} chars into {len(nodes)} nodes")
        return NormalizedDocument(nodes=nodes, references=merged, text=text)
