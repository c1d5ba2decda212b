from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


ContentKind = Literal[
    "explanation",
    "roadmap",
    "quiz",
    "study-plan",
    "red-team-brief",
    "tools",
    "generic",
]

DEFAULT_CONTENT_KIND: ContentKind = "generic"

RefinementStage = Literal[
    "first_draft",
    "length_tolerance",
    "refined",
    "recovered",
    "best_effort",
]


@dataclass(frozen=True)
class TokenHints:
    first_pass: int = 1100
    refine: int = 1300
    recover: int = 1600

    def validate(self) -> None:
        if min(self.first_pass, self.refine, self.recover) <= 0:
            raise ValueError("token hints must be positive")


@dataclass(frozen=True)
class ContentTypeProfile:
    kind: str
    min_chars: int
    max_chars: int | None
    min_headings: int
    min_bullets: int

    def validate(self) -> None:
        if self.min_chars < 0:
            raise ValueError(f"[{self.kind}] min_chars must not be negative")
        if self.max_chars is not None and self.max_chars < self.min_chars:
            raise ValueError(f"[{self.kind}] max_chars must be >= min_chars")
        if self.min_headings < 0 or self.min_bullets < 0:
            raise ValueError(f"[{self.kind}] heading/bullet minimums must not be negative")


@dataclass(frozen=True)
class GenerationRequest:
    content_kind: str
    user_topic: str


@dataclass(frozen=True)
class Draft:
    text: str
    token_budget: int
    stage: str = "first_draft"


@dataclass(frozen=True)
class QualityIssue:
    check: str
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class QualityReport:
    findings: tuple[QualityIssue, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.findings

    @property
    def issues(self) -> list[str]:
        return [finding.message for finding in self.findings]

    @property
    def codes(self) -> list[str]:
        return [finding.check for finding in self.findings]

    def only(self, check: str) -> bool:
        """True when the report holds exactly one finding and it came from `check`."""
        return len(self.findings) == 1 and self.findings[0].check == check


@dataclass(frozen=True)
class QualityContext:
    topic: str = ""
    expected_questions: int | None = None
    expected_weeks: int | None = None
    certification: str = ""
    focus_area: str = ""
    topic_keywords: tuple[str, ...] = ()
    commands_relevant: bool = True


@dataclass(frozen=True)
class RefinementConfig:
    # Accept an over-length draft with no other issue when within this ratio of max_chars.
    length_tolerance: float = 0.12
    enable_recovery: bool = True


@dataclass(frozen=True)
class RefinementResult:
    text: str
    stage: RefinementStage
    report: QualityReport
    drafts: list[Draft] = field(default_factory=list)

    @property
    def calls(self) -> int:
        return len(self.drafts)
