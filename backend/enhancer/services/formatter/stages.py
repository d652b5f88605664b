"""
Line-oriented normalization stages.

Each stage takes and returns plain text. Stages run in order and never look
back at an earlier stage's input, and their combined output is a fixed point.
"""

import re
from typing import List, Optional, Tuple

from enhancer.services.references import REFERENCES_HEADER_RE, URL_RE, find_urls

from .policy import BreakPolicy

DISCLAIMER_PATTERNS = [
    re.compile(r"AI Enhancement[\s\S]*?original message\.\s*", re.IGNORECASE),
    re.compile(r"This content has been enhanced using[\s\S]*?original message\.\s*", re.IGNORECASE),
]

PREAMBLE_PATTERNS = [
    re.compile(r"^(?:sure|certainly|of course|absolutely|okay)[,!.](?:\s*here(?:'s| is| are)\b.*)?$", re.IGNORECASE),
    re.compile(r"^here(?:'s| is| are)\s+(?:the|an|your)\s+(?:enhanced|improved|rewritten|revised|updated)\b[^.!?]*[:.!]?$", re.IGNORECASE),
    re.compile(r"^enhanced version of\b.*:$", re.IGNORECASE),
]

HORIZONTAL_RULE_RE = re.compile(r"^(?:[-*_]\s*){3,}$")
HASH_ONLY_RE = re.compile(r"^#+$")
HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)(?:\s+#+)?$")
BULLET_RE = re.compile(r"^[-*•+]\s+(.+)$")
ORDERED_RE = re.compile(r"^\(?(\d{1,3})[.)]\s+(.+)$")
MARKER_ONLY_RE = re.compile(r"^(?:[-*•+]|\(?\d{1,3}[.)])$")
CANONICAL_ORDERED_RE = re.compile(r"^\d{1,3}\. ")
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
# A fragment that would read as a list item or heading if it opened a paragraph
BLOCK_START_RE = re.compile(r"^(?:[-*•+]\s|\(?\d{1,3}[.)](?:\s|$)|#{1,6}\s)")
BARE_URL_RE = re.compile(r"(?<![(\[])" + URL_RE.pattern)

MAX_TITLE_CHARS = 150
MIN_SECTION_LEVEL = 2
MAX_HEADING_LEVEL = 4
REFERENCES_HEADING = "## References"


def _strip_bold(text: str) -> str:
    text = text.strip()
    if len(text) > 4 and text.startswith("**") and text.endswith("**"):
        return text[2:-2].strip()
    return text


def parse_heading(line: str) -> Optional[Tuple[int, str]]:
    match = HEADING_RE.match(line)
    if match is None:
        return None
    text = _strip_bold(match.group(2))
    if not text:
        return None
    return len(match.group(1)), text


def list_item(line: str) -> Optional[Tuple[str, str]]:
    """Return ("ul"|"ol", item text) for a list line, else None."""
    if parse_heading(line) is not None:
        return None
    match = BULLET_RE.match(line)
    if match:
        return "ul", match.group(1).strip()
    match = ORDERED_RE.match(line)
    if match:
        return "ol", match.group(2).strip()
    return None


def is_references_header(line: str) -> bool:
    return REFERENCES_HEADER_RE.match(line) is not None


def _collapse_blank_lines(lines: List[str]) -> List[str]:
    out: List[str] = []
    for line in lines:
        if not line and (not out or not out[-1]):
            continue
        out.append(line)
    while out and not out[-1]:
        out.pop()
    return out


# Stage 1

def cleanup(text: str) -> str:
    """Drop disclaimers, backend preamble and rules; collapse whitespace."""
    cleaned = str(text or "").replace("\r\n", "\n").replace("\r", "\n")
    for pattern in DISCLAIMER_PATTERNS:
        cleaned = pattern.sub("", cleaned)

    lines: List[str] = []
    for raw_line in cleaned.split("\n"):
        line = re.sub(r"[ \t]+", " ", raw_line.replace("\xa0", " ").replace("\u200b", "")).strip()
        if HORIZONTAL_RULE_RE.match(line) or HASH_ONLY_RE.match(line):
            continue
        lines.append(line)
    lines = _collapse_blank_lines(lines)

    while lines and any(p.match(lines[0]) for p in PREAMBLE_PATTERNS):
        lines = _collapse_blank_lines(lines[1:])
    return "\n".join(lines)


def _wrap_bare_urls(text: str) -> str:
    def _link(match: "re.Match[str]") -> str:
        url = match.group(0)
        trailing = ""
        while url and url[-1] in ".,;:":
            trailing = url[-1] + trailing
            url = url[:-1]
        return f"[{url}]({url}){trailing}"

    return BARE_URL_RE.sub(_link, text)


def normalize_references_section(text: str) -> Tuple[str, List[str]]:
    """
    Move any references blocks into one canonical section at the end.

    Returns the rewritten text and the URLs found in the blocks.
    """
    lines = text.split("\n")
    kept: List[str] = []
    items: List[str] = []
    index = 0
    while index < len(lines):
        if not is_references_header(lines[index]):
            kept.append(lines[index])
            index += 1
            continue
        header = lines[index]
        index += 1
        found = 0
        while index < len(lines):
            line = lines[index]
            if not line:
                index += 1
                continue
            if parse_heading(line) is not None or not (list_item(line) or URL_RE.search(line)):
                break
            item = list_item(line)
            entry = item[1] if item else line
            items.append(_wrap_bare_urls(entry))
            found += 1
            index += 1
        if not found:
            # A bare header followed by prose is an ordinary section
            kept.append(header)

    if not items:
        return "\n".join(_collapse_blank_lines(kept)), []

    urls: List[str] = []
    for entry in items:
        for url in find_urls(entry):
            if url not in urls:
                urls.append(url)
    body = _collapse_blank_lines(kept)
    section = [REFERENCES_HEADING, ""] + [f"- {entry}" for entry in items]
    if body:
        body.append("")
    return "\n".join(body + section), urls


# Stage 2

def _is_title_like(line: str) -> bool:
    if not line or len(line) > MAX_TITLE_CHARS:
        return False
    if list_item(line) is not None or MARKER_ONLY_RE.match(line):
        return False
    if re.search(r"[.!?]\s", line) or line.endswith((".", ":")):
        return False
    return True


def normalize_headings(text: str) -> str:
    """Canonical ``#`` markers, a single level-1 title and sections re-based to level 2."""
    lines = text.split("\n")
    parsed = [parse_heading(line) for line in lines]
    references = [h is not None and h[1].strip(" :").lower() == "references" for h in parsed]

    title_index = next((i for i, h in enumerate(parsed) if h and h[0] == 1 and not references[i]), None)
    if title_index is None:
        first = next((i for i, line in enumerate(lines) if line), None)
        if first is not None and not references[first]:
            if parsed[first] is not None:
                title_index = first
            elif _is_title_like(lines[first]):
                parsed[first] = (1, _strip_bold(lines[first]))
                title_index = first

    section_levels = [
        h[0] for i, h in enumerate(parsed)
        if h is not None and i != title_index and not references[i]
    ]
    shift = MIN_SECTION_LEVEL - min(section_levels) if section_levels else 0

    out: List[str] = []
    for i, line in enumerate(lines):
        heading = parsed[i]
        if heading is None:
            out.append(line)
            continue
        level, heading_text = heading
        if i == title_index:
            level = 1
        elif references[i]:
            level = MIN_SECTION_LEVEL
        else:
            level = max(MIN_SECTION_LEVEL, min(MAX_HEADING_LEVEL, level + shift))
        out.append(f"{'#' * level} {heading_text}")
    return "\n".join(out)


# Stage 3

def normalize_lists(text: str) -> str:
    """Canonical ``- `` and ``N. `` markers, merged runs and padded list blocks."""
    out: List[str] = []
    kind: Optional[str] = None
    counter = 0
    pending_blank = False
    for line in text.split("\n"):
        if MARKER_ONLY_RE.match(line):
            continue
        item = list_item(line)
        if item is None:
            if not line:
                pending_blank = True
                continue
            if out and (kind is not None or pending_blank):
                out.append("")
            kind = None
            pending_blank = False
            out.append(line)
            continue

        item_kind, item_text = item
        if item_kind == kind:
            counter += 1
        else:
            if out:
                out.append("")
            kind, counter = item_kind, 1
        out.append(f"- {item_text}" if item_kind == "ul" else f"{counter}. {item_text}")
        pending_blank = False
    return "\n".join(out)


# Stage 4

def split_sentences(text: str) -> List[str]:
    sentences: List[str] = []
    for part in SENTENCE_SPLIT_RE.split(text.strip()):
        if not part:
            continue
        if sentences and BLOCK_START_RE.match(part):
            sentences[-1] = f"{sentences[-1]} {part}"
        else:
            sentences.append(part)
    return sentences


def group_sentences(sentences: List[str], policy: BreakPolicy) -> List[List[str]]:
    """
    Group sentences into paragraphs of two to four.

    Up to four sentences stay together. Longer runs never leave a single
    sentence behind for the final paragraph.
    """
    if len(sentences) <= 4:
        return [list(sentences)] if sentences else []

    groups: List[List[str]] = []
    current: List[str] = []
    for index, sentence in enumerate(sentences):
        current.append(sentence)
        remaining = len(sentences) - index - 1
        size = len(current)
        close = (
            remaining == 0
            or size == 4
            or (size >= 2 and remaining >= 2 and (size == 3 and remaining == 2 or policy.should_break(size)))
        )
        if close:
            groups.append(current)
            current = []
    return groups


def _terminate(paragraph: str) -> str:
    if paragraph and paragraph[-1].isalnum():
        return paragraph + "."
    return paragraph


def segment_paragraphs(text: str, policy: BreakPolicy) -> str:
    """Regroup each prose block into short paragraphs."""
    out: List[str] = []
    block: List[str] = []

    def flush() -> None:
        if not block:
            return
        for group in group_sentences(split_sentences(" ".join(block)), policy):
            out.append(_terminate(" ".join(group)))
            out.append("")
        block.clear()

    for line in text.split("\n"):
        if line and parse_heading(line) is None and list_item(line) is None:
            block.append(line)
            continue
        flush()
        out.append(line)
    flush()
    return "\n".join(out)


# Stage 5

def _line_kind(line: str) -> Optional[str]:
    if line.startswith("- "):
        return "ul"
    if CANONICAL_ORDERED_RE.match(line):
        return "ol"
    return None


def normalize_spacing(text: str) -> str:
    """One blank line between blocks, none inside a list, trimmed ends."""
    out: List[str] = []
    previous_kind: Optional[str] = None
    for line in text.split("\n"):
        if not line.strip():
            continue
        kind = _line_kind(line) if parse_heading(line) is None else None
        if out and not (kind is not None and kind == previous_kind):
            out.append("")
        out.append(line)
        previous_kind = kind
    return "\n".join(out).strip()
