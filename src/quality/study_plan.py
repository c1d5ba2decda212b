from __future__ import annotations

import math
import re
from functools import lru_cache

from generation_types import ContentTypeProfile, QualityContext, QualityIssue
from quality.base import (
    Check,
    Section,
    count_item_lines,
    count_sentences,
    count_words,
    extract_keywords,
    issue,
    last_content_line,
    match_sections_in_order,
    split_sections,
    title_pattern,
)

STUDY_PLAN_SECTIONS = (
    "Overview Summary",
    "Weekly Breakdown",
    "Skills Progression Milestones",
    "Recommended Lab Types",
    "Practice Strategy",
    "Review & Reinforcement Plan",
    "Final Exam Readiness Checklist",
    "Certification Alignment Notes",
)
TABLE_COLUMNS = ("Week", "Focus", "Objectives", "Labs/Practice", "Deliverable")

MIN_SECTION_WORDS = {
    "Overview Summary": 30,
    "Weekly Breakdown": 40,
}
DEFAULT_MIN_SECTION_WORDS = 15
MIN_CHECKLIST_ITEMS = 5
MIN_ALIGNMENT_ITEMS = 3
OVERVIEW_SENTENCE_RANGE = (3, 5)

_REQUIRED = tuple((title, title_pattern(title)) for title in STUDY_PLAN_SECTIONS)
_HTML_BREAK_PATTERN = re.compile(r"<\s*br\s*/?\s*>", re.IGNORECASE)
_TABLE_SEPARATOR_PATTERN = re.compile(r"^\|?\s*:?-{2,}")
_WEEK_CELL_PATTERN = re.compile(r"(?:week\s*)?(\d{1,2})(?:\s*[-–]\s*(\d{1,2}))?", re.IGNORECASE)
_UNFINISHED_ENDINGS = (",", ":", ";", "(", "-", "/", "&")


def _table_rows(body: str) -> list[list[str]]:
    rows: list[list[str]] = []
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped.startswith("|"):
            continue
        cells = [cell.strip() for cell in stripped.strip("|").split("|")]
        rows.append(cells)
    return rows


@lru_cache(maxsize=32)
def _layout(document: str) -> tuple[dict[str, Section], tuple[str, ...]]:
    matched, missing = match_sections_in_order(split_sections(document, max_level=2), _REQUIRED)
    return matched, tuple(missing)


def _weekly_rows(document: str) -> tuple[list[str], list[list[str]]]:
    """Return (header cells, data rows) of the Weekly Breakdown table."""
    section = _layout(document)[0].get("Weekly Breakdown")
    if section is None:
        return [], []
    rows = _table_rows(section.body)
    if not rows:
        return [], []
    header, data = rows[0], rows[1:]
    data = [row for row in data if not _TABLE_SEPARATOR_PATTERN.match("|".join(row))]
    return header, data


def _row_weeks(row: list[str]) -> set[int]:
    if not row:
        return set()
    match = _WEEK_CELL_PATTERN.search(row[0])
    if match is None:
        return set()
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else start
    return set(range(start, max(start, end) + 1))


def check_sections_present(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    missing = _layout(document)[1]
    if missing:
        return issue(
            "study_plan_sections",
            f"Missing or out-of-order required sections: {', '.join(missing)}.",
        )
    return None


def check_weekly_table(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    header, _ = _weekly_rows(document)
    normalized = [cell.lower().replace(" ", "") for cell in header]
    expected = [column.lower() for column in TABLE_COLUMNS]
    if normalized[: len(expected)] != expected:
        return issue(
            "study_plan_table",
            "Weekly Breakdown must be a markdown table with columns: " + " | ".join(TABLE_COLUMNS) + ".",
        )
    return None


def check_table_html(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    section = _layout(document)[0].get("Weekly Breakdown")
    if section is not None and _HTML_BREAK_PATTERN.search(section.body):
        return issue("study_plan_table_html", "Remove HTML line breaks (<br>) from the Weekly Breakdown table.")
    return None


def check_week_coverage(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    _, rows = _weekly_rows(document)
    covered: set[int] = set()
    for row in rows:
        covered |= _row_weeks(row)
    target = context.expected_weeks or (max(covered) if covered else None)
    if target is None:
        return issue("study_plan_week_coverage", "Weekly Breakdown table has no week rows.")
    missing = [week for week in range(1, target + 1) if week not in covered]
    if missing:
        return issue(
            "study_plan_week_coverage",
            f"Weekly table coverage incomplete: {target - len(missing)} of {target} weeks "
            f"(missing {', '.join(f'Week {week}' for week in missing)}).",
        )
    return None


def check_overview_sentences(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    section = _layout(document)[0].get("Overview Summary")
    if section is None:
        return None
    sentences = count_sentences(section.body)
    low, high = OVERVIEW_SENTENCE_RANGE
    if not low <= sentences <= high:
        return issue(
            "study_plan_overview",
            f"Overview Summary should be {low}-{high} sentences (found {sentences}).",
        )
    return None


def check_checklist_items(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    section = _layout(document)[0].get("Final Exam Readiness Checklist")
    if section is None:
        return None
    items = count_item_lines(section.body)
    if items < MIN_CHECKLIST_ITEMS:
        return issue(
            "study_plan_checklist",
            f"Final Exam Readiness Checklist needs {MIN_CHECKLIST_ITEMS}+ items (found {items}).",
        )
    return None


def check_alignment_items(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    section = _layout(document)[0].get("Certification Alignment Notes")
    if section is None:
        return None
    items = count_item_lines(section.body)
    if items < MIN_ALIGNMENT_ITEMS:
        return issue(
            "study_plan_alignment",
            f"Certification Alignment Notes needs {MIN_ALIGNMENT_ITEMS}+ bullets (found {items}).",
        )
    return None


def check_section_words(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    thin: list[str] = []
    for title, section in _layout(document)[0].items():
        needed = MIN_SECTION_WORDS.get(title, DEFAULT_MIN_SECTION_WORDS)
        words = count_words(section.body)
        if words < needed:
            thin.append(f"{title} ({words} words, need {needed}+)")
    if thin:
        return issue("study_plan_section_words", f"Sections too thin: {'; '.join(thin)}.")
    return None


def check_certification_reference(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    certification = context.certification.strip()
    if certification and certification.lower() not in document.lower():
        return issue(
            "study_plan_certification",
            f"Certification '{certification}' is not referenced in the plan.",
        )
    return None


def focus_keywords(focus_area: str) -> tuple[str, ...]:
    keywords = extract_keywords(focus_area, min_length=3)
    if keywords:
        return keywords
    phrase = focus_area.strip().lower()
    return (phrase,) if phrase else ()


def check_focus_area(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    keywords = focus_keywords(context.focus_area)
    if not keywords:
        return None
    lowered = document.lower()
    if not any(keyword in lowered for keyword in keywords):
        return issue(
            "study_plan_focus",
            f"Primary focus area '{context.focus_area.strip()}' is not referenced in the plan.",
        )
    _, rows = _weekly_rows(document)
    if not rows:
        return None
    required = min(len(rows), max(2, math.ceil(len(rows) / 2)))
    matching = sum(
        1 for row in rows if any(keyword in " ".join(row).lower() for keyword in keywords)
    )
    if matching < required:
        return issue(
            "study_plan_focus",
            f"Focus area '{context.focus_area.strip()}' appears in {matching} weekly rows; "
            f"it should drive at least {required}.",
        )
    return None


def check_not_truncated(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    tail = last_content_line(document)
    if (
        not tail
        or tail.startswith("#")
        or tail.endswith(_UNFINISHED_ENDINGS)
        or document.count("```") % 2 == 1
        or (tail.startswith("|") and not tail.endswith("|"))
    ):
        return issue("study_plan_truncated", "Study plan appears truncated mid-section.")
    return None


STUDY_PLAN_CHECKS: tuple[Check, ...] = (
    check_sections_present,
    check_weekly_table,
    check_table_html,
    check_week_coverage,
    check_overview_sentences,
    check_checklist_items,
    check_alignment_items,
    check_section_words,
    check_certification_reference,
    check_focus_area,
    check_not_truncated,
)


__all__ = [
    "STUDY_PLAN_SECTIONS",
    "TABLE_COLUMNS",
    "focus_keywords",
    "check_sections_present",
    "check_weekly_table",
    "check_table_html",
    "check_week_coverage",
    "check_overview_sentences",
    "check_checklist_items",
    "check_alignment_items",
    "check_section_words",
    "check_certification_reference",
    "check_focus_area",
    "check_not_truncated",
    "STUDY_PLAN_CHECKS",
]
