"""Lift the bibliography out of generated text."""
from __future__ import annotations

import re
from typing import Iterable, List, Tuple

# The header must sit on its own line so prose mentioning "references" is never cut
REFERENCES_HEADER_RE = re.compile(
    r"^[ \t]*(?:#{1,6}[ \t]*)?(?:\*\*)?(?:references?|sources|bibliography)(?:\*\*)?[ \t]*:?[ \t]*(?:\*\*)?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
URL_RE = re.compile(r"https?://[^\s)\]>\"']+")
_HEADING_RE = re.compile(r"^\s*#{1,6}\s+\S")
_LIST_ITEM_RE = re.compile(r"^\s*(?:[-*•+]|\(?\d{1,3}[.)])\s+")


def find_urls(text: str) -> List[str]:
    urls: List[str] = []
    for match in URL_RE.finditer(str(text or "")):
        url = match.group(0).rstrip(".,;:")
        if url and url not in urls:
            urls.append(url)
    return urls


def split_references(text: str) -> Tuple[str, List[str]]:
    """
    Split ``text`` into (body without references blocks, block URLs).

    A block starts at a standalone references header whose first non-blank
    line is a list item or carries a URL, and runs until the next heading or
    the first non-blank line that is neither. A header followed by prose is
    an ordinary section and stays in the body.
    """
    raw = str(text or "")
    lines = raw.split("\n")
    kept: List[str] = []
    block: List[str] = []
    index = 0
    while index < len(lines):
        line = lines[index]
        if not REFERENCES_HEADER_RE.match(line):
            kept.append(line)
            index += 1
            continue

        cursor = index + 1
        items: List[str] = []
        while cursor < len(lines):
            candidate = lines[cursor]
            if not candidate.strip():
                cursor += 1
                continue
            if _HEADING_RE.match(candidate) or not (_LIST_ITEM_RE.match(candidate) or URL_RE.search(candidate)):
                break
            items.append(candidate)
            cursor += 1

        if not items:
            kept.append(line)
            index += 1
            continue
        block.extend(items)
        if kept and kept[-1].strip():
            kept.append("")
        index = cursor

    if not block:
        return raw.strip(), []
    body = re.sub(r"\n{3,}", "\n\n", "\n".join(kept))
    return body.strip(), find_urls("\n".join(block))


def merge_references(parsed: Iterable[str], candidates: Iterable[str], cap: int) -> List[str]:
    """Parsed URLs then candidate URLs, deduplicated in first-appearance order."""
    merged: List[str] = []
    for url in list(parsed) + list(candidates):
        url = str(url or "").strip()
        if url and url not in merged:
            merged.append(url)
    return merged[: max(0, int(cap))]
