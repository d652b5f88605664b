"""Output normalization package."""

from .models import (
    DocumentNode,
    ListState,
    NodeType,
    NormalizedDocument,
)
from .normalizer import ContentFormatter, policy_from_settings
from .policy import BreakPolicy, FixedBreakPolicy, RandomBreakPolicy
from .tree import build_tree

__all__ = [
    # Main entry point
    "ContentFormatter",
    "policy_from_settings",

    # Break policies
    "BreakPolicy",
    "FixedBreakPolicy",
    "RandomBreakPolicy",

    # Tree
    "build_tree",
    "DocumentNode",
    "ListState",
    "NodeType",
    "NormalizedDocument",
]
