from __future__ import annotations

from generation_types import ContentTypeProfile, QualityContext, QualityIssue
from quality.base import BULLET_PATTERN, HEADING_PATTERN, Check, count_matches, issue


def check_min_length(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    if len(document) < profile.min_chars:
        return issue(
            "length_min",
            f"Response is too short ({len(document)} chars, need {profile.min_chars}+).",
        )
    return None


def check_max_length(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    if profile.max_chars is not None and len(document) > profile.max_chars:
        return issue(
            "length_max",
            f"Response is too long ({len(document)} chars, keep within {profile.max_chars}).",
        )
    return None


def check_headings(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    headings = count_matches(HEADING_PATTERN, document)
    if headings < profile.min_headings:
        return issue(
            "headings",
            f"Not enough section headings ({headings}, need {profile.min_headings}+).",
        )
    return None


def check_bullets(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    bullets = count_matches(BULLET_PATTERN, document)
    if bullets < profile.min_bullets:
        return issue(
            "bullets",
            f"Not enough actionable bullet points ({bullets}, need {profile.min_bullets}+).",
        )
    return None


UNIVERSAL_CHECKS: tuple[Check, ...] = (
    check_min_length,
    check_max_length,
    check_headings,
    check_bullets,
)


__all__ = [
    "check_min_length",
    "check_max_length",
    "check_headings",
    "check_bullets",
    "UNIVERSAL_CHECKS",
]
