from __future__ import annotations

import re
from functools import lru_cache

from generation_types import ContentTypeProfile, QualityContext, QualityIssue
from quality.base import (
    CODE_FENCE_PATTERN,
    Check,
    Section,
    count_code_blocks,
    count_item_lines,
    count_words,
    issue,
)

EXPLANATION_SECTION_COUNT = 5
EXPLANATION_SECTION_TITLES = (
    "Concept Summary",
    "Lab Setup",
    "Discovery Commands",
    "Enumeration Commands",
    "Validation and Safety Notes",
)
SECTION_MIN_WORDS = (50, 50, 40, 40)
MIN_TOTAL_WORDS = 280
MIN_CODE_BLOCKS = 2
MIN_ACTION_BULLETS = 2

CHUNK_HEADING_PATTERN = re.compile(
    r"^#{2,3}\s+(?:\*\*)?Chunk\s+(\d+)\s*/\s*(\d+)\b[^\n]*$",
    re.MULTILINE | re.IGNORECASE,
)

SAFETY_TERMS = (
    "authorized",
    "authorised",
    "authorization",
    "permission",
    "lab",
    "isolated",
    "in scope",
    "scope",
    "legal",
    "ethical",
    "consent",
    "sandbox",
)


@lru_cache(maxsize=32)
def numbered_sections(document: str) -> tuple[tuple[int, Section], ...]:
    """Sections introduced by `Chunk K/N` headings, in document order."""
    masked = CODE_FENCE_PATTERN.sub(lambda match: " " * len(match.group(0)), document)
    headings = list(CHUNK_HEADING_PATTERN.finditer(masked))
    numbered: list[tuple[int, Section]] = []
    for idx, match in enumerate(headings):
        end = headings[idx + 1].start() if idx + 1 < len(headings) else len(document)
        title = document[match.start():match.end()].lstrip("#").strip()
        section = Section(level=2, title=title, body=document[match.end():end].strip())
        numbered.append((int(match.group(1)), section))
    return tuple(numbered)


def _sections_by_number(document: str) -> dict[int, Section]:
    return {number: section for number, section in numbered_sections(document)}


def check_section_layout(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    numbers = [number for number, _ in numbered_sections(document)]
    expected = list(range(1, EXPLANATION_SECTION_COUNT + 1))
    if numbers != expected:
        found = ", ".join(str(number) for number in numbers) or "none"
        return issue(
            "explanation_sections",
            f"Expected exactly {EXPLANATION_SECTION_COUNT} sections 'Chunk 1/5' to 'Chunk 5/5' "
            f"in order (found: {found}).",
        )
    return None


def check_section_words(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    sections = _sections_by_number(document)
    thin: list[str] = []
    for number, needed in enumerate(SECTION_MIN_WORDS, start=1):
        section = sections.get(number)
        if section is None:
            continue
        words = count_words(section.body)
        if words < needed:
            thin.append(f"Chunk {number} ({words} words, need {needed}+)")
    if thin:
        return issue("explanation_section_words", f"Sections too thin: {'; '.join(thin)}.")
    return None


def check_practical_examples(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    if context.commands_relevant:
        blocks = count_code_blocks(document)
        if blocks < MIN_CODE_BLOCKS:
            return issue(
                "explanation_examples",
                f"Include at least {MIN_CODE_BLOCKS} fenced code blocks with lab-safe commands "
                f"(found {blocks}).",
            )
        return None

    sections = _sections_by_number(document)
    bullets = sum(count_item_lines(sections[number].body) for number in (3, 4) if number in sections)
    if bullets < MIN_ACTION_BULLETS:
        return issue(
            "explanation_examples",
            f"Include at least {MIN_ACTION_BULLETS} action-oriented bullets in the practical "
            f"sections (found {bullets}).",
        )
    return None


def check_total_words(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    words = count_words(document)
    if words < MIN_TOTAL_WORDS:
        return issue(
            "explanation_total_words",
            f"Explanation is too thin ({words} words, need {MIN_TOTAL_WORDS}+).",
        )
    return None


def check_safety_language(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    lowered = document.lower()
    if not any(term in lowered for term in SAFETY_TERMS):
        return issue(
            "explanation_safety",
            "Reference authorized-use and lab-safety expectations (e.g. isolated lab, written permission).",
        )
    return None


def check_topic_overlap(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    keywords = context.topic_keywords
    if not keywords:
        return None
    lowered = document.lower()
    if not any(keyword in lowered for keyword in keywords):
        return issue(
            "explanation_topic",
            f"Explanation does not reference the requested topic (expected terms: {', '.join(keywords)}).",
        )
    return None


EXPLANATION_CHECKS: tuple[Check, ...] = (
    check_section_layout,
    check_section_words,
    check_practical_examples,
    check_total_words,
    check_safety_language,
    check_topic_overlap,
)


__all__ = [
    "EXPLANATION_SECTION_COUNT",
    "EXPLANATION_SECTION_TITLES",
    "CHUNK_HEADING_PATTERN",
    "numbered_sections",
    "check_section_layout",
    "check_section_words",
    "check_practical_examples",
    "check_total_words",
    "check_safety_language",
    "check_topic_overlap",
    "EXPLANATION_CHECKS",
]
