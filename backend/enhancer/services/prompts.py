"""Instruction builders for the enhancement backend."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from enhancer.models.documents import SourceDocument
from enhancer.services.crawler.models import CandidateReference, ExtractedContent

_STAT_RE = re.compile(r"\d+(?:\.\d+)?%|\$\d")
_EXAMPLE_RE = re.compile(r"\b(for example|for instance|e\.g\.|case study|example)\b", re.IGNORECASE)

STRUCTURE_PATTERNS = [
    "Clear hierarchy with H2 and H3 headings",
    "Short paragraphs (2-4 sentences each)",
    "Bullet points for lists and key takeaways",
    "Examples and case studies",
    "Data and statistics",
    "Strong introduction and conclusion",
]

FORMATTING_RULES = """### 1. IMPROVE STRUCTURE:
- Start with the title as a single H1 heading (# Title)
- Add descriptive H2 headings (##) for main sections
- Use H3 subheadings (###) where needed, never deeper than H4
- Break text into short paragraphs of 2-4 sentences
- Use "- " bullet points for lists and "1. " numbered lists for steps
- Add **bold** emphasis on key terms

### 2. IMPROVE CONTENT:
- Enhance readability and flow with transitional phrases
- Use active voice
- Maintain the original facts and message
- Make it more detailed than the original

### 3. SEO & READABILITY:
- Include relevant keywords naturally
- Keep a clear heading hierarchy"""


@dataclass(frozen=True)
class CompetitorSummary:
    """What the prompt tells the backend about one competitor article."""

    title: str
    url: str
    word_count: int = 0
    traits: List[str] = field(default_factory=list)
    placeholder: bool = False

    @classmethod
    def from_extracted(cls, content: ExtractedContent, title_chars: int = 80) -> "CompetitorSummary":
        return cls(
            title=(content.title or content.url)[:title_chars],
            url=content.url,
            word_count=content.word_count,
            traits=describe_traits(content),
        )

    @classmethod
    def placeholder_for(cls, candidate: CandidateReference, title_chars: int = 80) -> "CompetitorSummary":
        return cls(
            title=(candidate.title or candidate.url)[:title_chars],
            url=candidate.url,
            placeholder=True,
        )


def describe_traits(content: ExtractedContent) -> List[str]:
    """Observed structural traits of an extracted article."""
    traits: List[str] = []
    structure = content.structure
    if structure.headings:
        traits.append("Has clear heading structure")
    if structure.lists:
        traits.append("Uses bullet points")
    if structure.paragraphs and content.word_count / structure.paragraphs < 80:
        traits.append("Uses short, scannable paragraphs")
    if _EXAMPLE_RE.search(content.body):
        traits.append("Includes examples")
    if _STAT_RE.search(content.body):
        traits.append("Uses statistics/data")
    if structure.tables:
        traits.append("Presents data in tables")
    return traits


def _excerpt(body: str, limit: int) -> str:
    text = str(body or "")
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _competitor_section(competitors: Sequence[CompetitorSummary]) -> str:
    if not competitors:
        return (
            "## NO COMPETITOR ARTICLES AVAILABLE\n\n"
            "No competitor articles were analyzed. Enhance the article using professional "
            "writing practice: clear headings, short readable paragraphs, bullet points for key "
            "information and an engaging tone."
        )

    blocks = []
    for i, competitor in enumerate(competitors, start=1):
        lines = [f'### Competitor {i}: "{competitor.title}"', f"**Source:** {competitor.url}"]
        if competitor.placeholder:
            lines.append("**Key Observations:** Content could not be retrieved; use as a reference only")
        else:
            lines.append(f"**Length:** {competitor.word_count} words")
            observations = ", ".join(competitor.traits) or "Standard professional article structure"
            lines.append(f"**Key Observations:** {observations}")
        blocks.append("\n".join(lines))

    patterns = "\n".join(f"{i}. {pattern}" for i, pattern in enumerate(STRUCTURE_PATTERNS, start=1))
    return (
        "## COMPETITOR ARTICLE ANALYSIS\n\n"
        f"{len(competitors)} competitor articles rank for this topic:\n\n"
        + "\n\n".join(blocks)
        + "\n\n### COMPETITOR STRUCTURE PATTERNS OBSERVED:\n"
        + patterns
    )


def _references_instruction(competitors: Sequence[CompetitorSummary]) -> str:
    if not competitors:
        return "Do not add a references section since no competitor articles were found."
    entries = "\n".join(f"- [{c.title}]({c.url})" for c in competitors)
    return f"At the end, on its own line, add:\n## References\n{entries}"


def build_enhancement_prompt(
    document: SourceDocument,
    competitors: Sequence[CompetitorSummary],
    excerpt_chars: int = 3000,
) -> str:
    return f"""You are a professional content editor. Enhance this article to be competitive with top-ranking articles online.

## ORIGINAL ARTICLE:
**Title:** {document.title}
**Content:** {_excerpt(document.body, excerpt_chars)}

{_competitor_section(competitors)}

## ENHANCEMENT INSTRUCTIONS:

{FORMATTING_RULES}

### 4. REFERENCES SECTION:
{_references_instruction(competitors)}

## OUTPUT:
Provide only the complete enhanced article in Markdown, with no preamble or closing remarks."""


def build_simplified_prompt(
    document: SourceDocument,
    competitors: Sequence[CompetitorSummary],
    excerpt_chars: int = 800,
) -> str:
    """Shorter fallback instruction used after an empty backend answer."""
    sources = ""
    if competitors:
        sources = "\n\nEnd with a '## References' section listing:\n" + "\n".join(
            f"- {c.url}" for c in competitors
        )
    return (
        f'Rewrite and improve this article titled "{document.title}". '
        "Use Markdown with a # title, ## section headings, short paragraphs and bullet points.\n\n"
        f"{_excerpt(document.body, excerpt_chars)}"
        f"{sources}"
    )
