"""Typed node tree produced by the output normalizer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeType(str, Enum):
    heading = "heading"
    paragraph = "paragraph"
    unordered_list = "unordered_list"
    ordered_list = "ordered_list"
    list_item = "list_item"


class ListState(str, Enum):
    """Which list, if any, the tree builder is currently filling."""
    none = "none"
    unordered = "unordered"
    ordered = "ordered"


@dataclass
class DocumentNode:
    type: NodeType
    text: str = ""
    level: Optional[int] = None
    children: List["DocumentNode"] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.type == NodeType.heading:
            data["level"] = self.level
        if self.type in (NodeType.unordered_list, NodeType.ordered_list):
            data["items"] = [child.as_dict() for child in self.children]
        else:
            data["text"] = self.text
        return data


@dataclass
class NormalizedDocument:
    nodes: List[DocumentNode] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    text: str = ""

    @property
    def title(self) -> str:
        for node in self.nodes:
            if node.type == NodeType.heading and node.level == 1:
                return node.text
        return ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.as_dict() for node in self.nodes],
            "references": list(self.references),
        }
