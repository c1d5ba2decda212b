from __future__ import annotations

import re
from typing import Callable

from generation_types import QualityContext
from quality.base import extract_keywords

ContextBuilder = Callable[[str], QualityContext]

_NON_COMMAND_TOPIC_PATTERN = re.compile(
    r"\b(?:policy|policies|compliance|governance|gdpr|hipaa|iso\s*27001|nist|framework|"
    r"risk management|awareness|career|certification path|soft skills)\b",
    re.IGNORECASE,
)
_WEEKS_PATTERN = re.compile(r"\b(\d{1,2})\s*weeks?\b", re.IGNORECASE)

# Labels the commands put into topics. A value also ends where the next of these
# starts, so fields still split after newlines are collapsed to spaces.
TOPIC_FIELD_LABELS = (
    "Certification",
    "Experience Level",
    "Hours Per Week",
    "Duration (Weeks)",
    "Duration",
    "Weeks",
    "Primary Focus Area",
    "Scope",
    "Topic",
    "Goal",
    "Objective",
    "Concept",
    "Questions",
)
_NEXT_LABEL = "|".join(re.escape(label) for label in sorted(TOPIC_FIELD_LABELS, key=len, reverse=True))


def topic_field(topic: str, label: str) -> str:
    """Value of a `Label: value` field, delimited by newlines, semicolons or the next known label."""
    pattern = re.compile(
        r"(?:^|[\n;]|(?<=\s))\s*"
        + re.escape(label)
        + r"\s*:\s*(.+?)\s*(?=[;\n]|\s(?:"
        + _NEXT_LABEL
        + r")\s*:|$)",
        re.IGNORECASE,
    )
    match = pattern.search(topic or "")
    return match.group(1).strip() if match else ""


def _int_field(topic: str, label: str) -> int | None:
    raw = topic_field(topic, label)
    match = re.search(r"\d+", raw)
    if match is None:
        return None
    value = int(match.group(0))
    return value if value > 0 else None


def requested_weeks(topic: str) -> int | None:
    for label in ("Duration (Weeks)", "Duration", "Weeks"):
        value = _int_field(topic, label)
        if value:
            return value
    match = _WEEKS_PATTERN.search(topic or "")
    return int(match.group(1)) if match else None


def _subject(topic: str) -> str:
    for label in ("Topic", "Goal", "Objective", "Concept"):
        value = topic_field(topic, label)
        if value:
            return value
    return topic or ""


def build_default_context(topic: str) -> QualityContext:
    return QualityContext(topic=topic, topic_keywords=extract_keywords(_subject(topic)))


def build_quiz_context(topic: str) -> QualityContext:
    return QualityContext(
        topic=topic,
        expected_questions=_int_field(topic, "Questions"),
        topic_keywords=extract_keywords(_subject(topic)),
    )


def build_roadmap_context(topic: str) -> QualityContext:
    return QualityContext(
        topic=topic,
        expected_weeks=requested_weeks(topic),
        topic_keywords=extract_keywords(_subject(topic)),
    )


def build_study_plan_context(topic: str) -> QualityContext:
    return QualityContext(
        topic=topic,
        expected_weeks=requested_weeks(topic),
        certification=topic_field(topic, "Certification"),
        focus_area=topic_field(topic, "Primary Focus Area"),
        topic_keywords=extract_keywords(topic_field(topic, "Primary Focus Area")),
    )


def build_explanation_context(topic: str) -> QualityContext:
    subject = _subject(topic)
    return QualityContext(
        topic=topic,
        topic_keywords=extract_keywords(subject),
        commands_relevant=not _NON_COMMAND_TOPIC_PATTERN.search(subject),
    )


__all__ = [
    "ContextBuilder",
    "topic_field",
    "requested_weeks",
    "build_default_context",
    "build_quiz_context",
    "build_roadmap_context",
    "build_study_plan_context",
    "build_explanation_context",
]
