"""Build the typed node tree from normalized text."""

from typing import List, Optional

from .models import DocumentNode, ListState, NodeType
from .stages import parse_heading, list_item

_LIST_STATES = {"ul": ListState.unordered, "ol": ListState.ordered}
_LIST_NODE_TYPES = {
    ListState.unordered: NodeType.unordered_list,
    ListState.ordered: NodeType.ordered_list,
}


def build_tree(text: str) -> List[DocumentNode]:
    """
    Single pass over normalized lines.

    The list state closes on any heading or paragraph line. Blank lines only
    separate blocks and never close a list by themselves.
    """
    nodes: List[DocumentNode] = []
    state = ListState.none
    current: Optional[DocumentNode] = None

    for line in str(text or "").split("\n"):
        line = line.strip()
        if not line:
            continue

        item = list_item(line)
        if item is not None:
            item_state = _LIST_STATES[item[0]]
            if state != item_state or current is None:
                current = DocumentNode(type=_LIST_NODE_TYPES[item_state])
                nodes.append(current)
                state = item_state
            current.children.append(DocumentNode(type=NodeType.list_item, text=item[1]))
            continue

        state, current = ListState.none, None
        heading = parse_heading(line)
        if heading is not None:
            level, heading_text = heading
            nodes.append(DocumentNode(type=NodeType.heading, text=heading_text, level=max(1, min(4, level))))
        else:
            nodes.append(DocumentNode(type=NodeType.paragraph, text=line))

    if not nodes:
        nodes.append(DocumentNode(type=NodeType.paragraph, text=""))
    return nodes
