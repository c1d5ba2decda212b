from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from generation_types import ContentTypeProfile, QualityContext, QualityIssue
from quality.base import Check, issue

OPTION_LETTERS = ("A", "B", "C", "D")

_ANSWER_KEY_PATTERN = re.compile(r"^\s*(?:#{2,6}\s*|\*\*)Answer\s*Key\b", re.MULTILINE | re.IGNORECASE)
_QUESTION_PATTERN = re.compile(
    r"^\s*(?:[-*]\s+)?(?:\*\*)?(?:Q(\d+)|Question\s+(\d+))\s*(?:\*\*)?\s*[:.)]",
    re.MULTILINE | re.IGNORECASE,
)
_NUMBERED_QUESTION_PATTERN = re.compile(r"^\s*(?:\*\*)?(\d+)[.)]\s+\S", re.MULTILINE)
_OPTION_PATTERN = re.compile(r"^\s*(?:[-*]\s+)?(?:\*\*)?\(?([A-D])[).]\s*(?:\*\*)?\s*\S", re.MULTILINE)
_KEY_LINE_PATTERN = re.compile(
    r"^\s*(?:[-*]\s+)?(?:\*\*)?Q?(\d+)(?:\*\*)?\s*[:.)-]\s*(?:\*\*)?\(?([A-D])\b",
    re.MULTILINE | re.IGNORECASE,
)


@dataclass(frozen=True)
class QuizLayout:
    has_answer_key: bool
    questions: tuple[str, ...]
    question_options: tuple[frozenset[str], ...]
    option_set_count: int
    key_entries: tuple[tuple[int, str], ...]

    @property
    def question_count(self) -> int:
        return len(self.questions)


@lru_cache(maxsize=64)
def parse_quiz(document: str) -> QuizLayout:
    """Split a quiz at its answer key and index questions, options and key lines."""
    key_match = _ANSWER_KEY_PATTERN.search(document)
    if key_match is not None:
        body, key_section = document[: key_match.start()], document[key_match.end():]
    else:
        body, key_section = document, ""

    matches = list(_QUESTION_PATTERN.finditer(body)) or list(_NUMBERED_QUESTION_PATTERN.finditer(body))
    questions: list[str] = []
    question_options: list[frozenset[str]] = []
    for idx, match in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(body)
        block = body[match.start():end]
        number = next(group for group in match.groups() if group)
        questions.append(f"Q{number}")
        question_options.append(frozenset(_OPTION_PATTERN.findall(block)))

    letter_counts = [0, 0, 0, 0]
    for letter in _OPTION_PATTERN.findall(body):
        letter_counts[OPTION_LETTERS.index(letter)] += 1

    key_entries = tuple(
        (int(number), letter.upper()) for number, letter in _KEY_LINE_PATTERN.findall(key_section)
    )
    return QuizLayout(
        has_answer_key=key_match is not None,
        questions=tuple(questions),
        question_options=tuple(question_options),
        option_set_count=min(letter_counts),
        key_entries=key_entries,
    )


def check_answer_key_present(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    if not parse_quiz(document).has_answer_key:
        return issue("quiz_answer_key", "Missing answer key section.")
    return None


def check_question_count(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    if parse_quiz(document).question_count == 0:
        return issue("quiz_questions", "No numbered questions found (expected lines like 'Q1. ...').")
    return None


def check_question_options(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    layout = parse_quiz(document)
    incomplete = [
        label
        for label, options in zip(layout.questions, layout.question_options)
        if not options.issuperset(OPTION_LETTERS)
    ]
    if incomplete:
        return issue(
            "quiz_options",
            f"Not all questions include A/B/C/D options (incomplete: {', '.join(incomplete)}).",
        )
    return None


def check_option_sets(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    layout = parse_quiz(document)
    if layout.option_set_count < layout.question_count:
        return issue(
            "quiz_option_sets",
            f"Fewer complete A/B/C/D option sets ({layout.option_set_count}) "
            f"than questions ({layout.question_count}).",
        )
    return None


def check_answer_key_count(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    layout = parse_quiz(document)
    if not layout.has_answer_key:
        return None
    if len(layout.key_entries) != layout.question_count:
        return issue(
            "quiz_answer_key_count",
            f"Answer key mismatch: {len(layout.key_entries)} entries for "
            f"{layout.question_count} questions.",
        )
    return None


def check_expected_questions(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    expected = context.expected_questions
    if expected is None:
        return None
    found = parse_quiz(document).question_count
    if found != expected:
        return issue(
            "quiz_expected_questions",
            f"Question count mismatch: found {found}, expected exactly {expected}.",
        )
    return None


def check_expected_answers(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    expected = context.expected_questions
    if expected is None:
        return None
    found = len(parse_quiz(document).key_entries)
    if found != expected:
        return issue(
            "quiz_expected_answers",
            f"Answer key count mismatch: found {found} entries, expected exactly {expected}.",
        )
    return None


QUIZ_CHECKS: tuple[Check, ...] = (
    check_answer_key_present,
    check_question_count,
    check_question_options,
    check_option_sets,
    check_answer_key_count,
    check_expected_questions,
    check_expected_answers,
)


__all__ = [
    "QuizLayout",
    "parse_quiz",
    "check_answer_key_present",
    "check_question_count",
    "check_question_options",
    "check_option_sets",
    "check_answer_key_count",
    "check_expected_questions",
    "check_expected_answers",
    "QUIZ_CHECKS",
]
