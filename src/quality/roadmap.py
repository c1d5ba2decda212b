from __future__ import annotations

import re

from generation_types import ContentTypeProfile, QualityContext, QualityIssue
from quality.base import Check, issue, last_content_line

DURATION_PATTERN = re.compile(r"Duration\s*:?\s*(?:\*\*)?\s*(\d{1,2})\s*weeks?", re.IGNORECASE)
# Markdown or bold headings, plus plain or bulleted `Week N:` lines that
# formatting later promotes to headings.
WEEK_HEADING_PATTERN = re.compile(
    r"^[ \t]*(?:#{2,6}[ \t]+(?:\*\*)?|\*\*|(?:[-*][ \t]+)?(?=Week\s+\d{1,2}\s*:))Week\s+(\d{1,2})\b",
    re.MULTILINE | re.IGNORECASE,
)


def declared_duration(document: str) -> int | None:
    match = DURATION_PATTERN.search(document)
    return int(match.group(1)) if match else None


def week_numbers(document: str) -> list[int]:
    return [int(number) for number in WEEK_HEADING_PATTERN.findall(document)]


def target_weeks(document: str, context: QualityContext) -> int | None:
    """Requested week count, else the declared duration, else the highest week heading."""
    if context.expected_weeks:
        return context.expected_weeks
    declared = declared_duration(document)
    if declared:
        return declared
    weeks = week_numbers(document)
    return max(weeks) if weeks else None


def check_week_coverage(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    target = target_weeks(document, context)
    if target is None:
        return None
    weeks = set(week_numbers(document))
    highest = max(weeks) if weeks else 0
    if len(weeks) < target or highest < target:
        missing = [str(week) for week in range(1, target + 1) if week not in weeks]
        return issue(
            "roadmap_week_coverage",
            f"Incomplete week coverage: found {len(weeks)} of {target} weeks "
            f"(missing Week {', '.join(missing)}).",
        )
    return None


def check_duration_consistency(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    declared = declared_duration(document)
    if declared is None:
        return None
    if context.expected_weeks and declared != context.expected_weeks:
        return issue(
            "roadmap_duration_mismatch",
            f"Duration mismatch: declares {declared} weeks but {context.expected_weeks} were requested.",
        )
    weeks = set(week_numbers(document))
    if weeks and max(weeks) != declared:
        return issue(
            "roadmap_duration_mismatch",
            f"Duration mismatch: declares {declared} weeks but week headings reach Week {max(weeks)}.",
        )
    return None


def check_truncation(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    tail = last_content_line(document)
    match = WEEK_HEADING_PATTERN.match(tail)
    if match:
        return issue(
            "roadmap_truncated",
            f"Roadmap appears truncated: ends on the Week {match.group(1)} heading with no content.",
        )
    return None


ROADMAP_CHECKS: tuple[Check, ...] = (
    check_week_coverage,
    check_duration_consistency,
    check_truncation,
)


__all__ = [
    "DURATION_PATTERN",
    "WEEK_HEADING_PATTERN",
    "declared_duration",
    "week_numbers",
    "target_weeks",
    "check_week_coverage",
    "check_duration_consistency",
    "check_truncation",
    "ROADMAP_CHECKS",
]
