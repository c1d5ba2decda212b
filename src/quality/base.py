from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern

from generation_types import ContentTypeProfile, QualityContext, QualityIssue

HEADING_PATTERN = re.compile(r"(?:^|\n)#{2,6}\s+")
BULLET_PATTERN = re.compile(r"(?:^|\n)\s*(?:[-*]|\d+\.)\s+")
ITEM_LINE_PATTERN = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+\S", re.MULTILINE)
SECTION_HEADING_PATTERN = re.compile(r"^(#{2,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)
CODE_FENCE_PATTERN = re.compile(r"```[\s\S]*?```")
_WORD_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_'./&-]*")
_KEYWORD_PATTERN = re.compile(r"[a-z0-9][a-z0-9+#-]*")
_SENTENCE_END_PATTERN = re.compile(r"[.!?]+(?=\s|$)")

STOPWORDS = frozenset(
    {
        "about", "after", "also", "and", "basics", "between", "beginner", "concept",
        "concepts", "does", "explain", "explanation", "for", "from", "give", "guide",
        "have", "help", "into", "learn", "learning", "more", "please", "questions",
        "should", "show", "some", "teach", "that", "the", "their", "them", "then",
        "there", "these", "this", "topic", "using", "what", "when", "where", "which",
        "while", "with", "work", "works", "would", "your",
    }
)

# (document, profile, context) -> issue or None
Check = Callable[[str, ContentTypeProfile, QualityContext], Optional[QualityIssue]]


@dataclass(frozen=True)
class Section:
    level: int
    title: str
    body: str


def count_matches(pattern: Pattern[str], text: str) -> int:
    return len(pattern.findall(text))


def count_words(text: str) -> int:
    return len(_WORD_PATTERN.findall(text))


def count_item_lines(text: str) -> int:
    return len(ITEM_LINE_PATTERN.findall(text))


def count_sentences(text: str) -> int:
    stripped = " ".join(text.split())
    if not stripped:
        return 0
    ends = len(_SENTENCE_END_PATTERN.findall(stripped))
    tail = _SENTENCE_END_PATTERN.split(stripped)[-1].strip()
    return ends + (1 if tail else 0)


def count_code_blocks(text: str) -> int:
    return len(CODE_FENCE_PATTERN.findall(text))


def split_sections(document: str, max_level: int = 2) -> list[Section]:
    """Split markdown into sections at headings of `max_level` or shallower.

    Deeper headings stay inside the enclosing section body. Text before the
    first qualifying heading is dropped.
    """
    masked = CODE_FENCE_PATTERN.sub(lambda match: " " * len(match.group(0)), document)
    headings = [
        match
        for match in SECTION_HEADING_PATTERN.finditer(masked)
        if len(match.group(1)) <= max_level
    ]
    sections: list[Section] = []
    for idx, match in enumerate(headings):
        body_start = match.end()
        body_end = headings[idx + 1].start() if idx + 1 < len(headings) else len(document)
        sections.append(
            Section(
                level=len(match.group(1)),
                title=document[match.start(2):match.end(2)].strip(),
                body=document[body_start:body_end].strip(),
            )
        )
    return sections


def normalize_title(title: str) -> str:
    cleaned = re.sub(r"[*_`]+", "", title).lower()
    cleaned = re.sub(r"^\s*\d+[.)]\s*", "", cleaned)
    cleaned = re.sub(r"[^a-z0-9&/ ]+", " ", cleaned)
    return " ".join(cleaned.split())


def title_pattern(title: str) -> Pattern[str]:
    """Anchored pattern for a normalized heading title; '&' also accepts 'and'."""
    parts = ["(?:&|and)" if word == "&" else re.escape(word) for word in normalize_title(title).split()]
    return re.compile("^" + r"\s+".join(parts) + r"\b")


def match_sections_in_order(
    sections: list[Section],
    required: tuple[tuple[str, Pattern[str]], ...],
) -> tuple[dict[str, Section], list[str]]:
    """Greedy in-order match of required section titles against headings.

    Returns the matched sections by required title, and the titles that were
    either absent or only present out of order.
    """
    matched: dict[str, Section] = {}
    missing: list[str] = []
    cursor = 0
    for title, pattern in required:
        found_at = None
        for idx in range(cursor, len(sections)):
            if pattern.search(normalize_title(sections[idx].title)):
                found_at = idx
                break
        if found_at is None:
            missing.append(title)
            continue
        matched[title] = sections[found_at]
        cursor = found_at + 1
    return matched, missing


def extract_keywords(text: str, min_length: int = 4) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for token in _KEYWORD_PATTERN.findall(text.lower()):
        token = token.strip("-")
        if len(token) < min_length or token in STOPWORDS or token.isdigit():
            continue
        seen.setdefault(token, None)
    return tuple(seen)


def last_content_line(document: str) -> str:
    for line in reversed(document.splitlines()):
        if line.strip():
            return line.strip()
    return ""


def issue(check: str, message: str) -> QualityIssue:
    return QualityIssue(check=check, message=message)


__all__ = [
    "HEADING_PATTERN",
    "BULLET_PATTERN",
    "ITEM_LINE_PATTERN",
    "CODE_FENCE_PATTERN",
    "STOPWORDS",
    "Check",
    "Section",
    "count_matches",
    "count_words",
    "count_item_lines",
    "count_sentences",
    "count_code_blocks",
    "split_sections",
    "normalize_title",
    "title_pattern",
    "match_sections_in_order",
    "extract_keywords",
    "last_content_line",
    "issue",
]
