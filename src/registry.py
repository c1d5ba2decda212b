from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from chunking import SectionLayout
from generation_types import DEFAULT_CONTENT_KIND, ContentTypeProfile, QualityContext, TokenHints
from prompts import (
    render_explanation_prompt,
    render_generic_prompt,
    render_quiz_prompt,
    render_red_team_prompt,
    render_roadmap_prompt,
    render_study_plan_prompt,
    render_tools_prompt,
)
from quality import (
    EXPLANATION_CHECKS,
    EXPLANATION_SECTION_TITLES,
    QUIZ_CHECKS,
    RED_TEAM_CHECKS,
    RED_TEAM_SECTIONS,
    ROADMAP_CHECKS,
    STUDY_PLAN_CHECKS,
    STUDY_PLAN_SECTIONS,
    TABLE_COLUMNS,
    build_default_context,
    build_explanation_context,
    build_quiz_context,
    build_roadmap_context,
    build_study_plan_context,
)
from quality.base import Check

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[str], str]
ContextBuilder = Callable[[str], QualityContext]
DirectiveBuilder = Callable[[QualityContext], list]


def _no_rules(context: QualityContext) -> list[str]:
    return []


EXPLANATION_LAYOUT = SectionLayout(
    count=len(EXPLANATION_SECTION_TITLES),
    heading_pattern=re.compile(
        r"^#{2,3}[ \t]+(?:\*\*)?Chunk[ \t]+(?P<number>\d+)[ \t]*/[ \t]*\d+(?:\*\*)?[ \t]*[:.\-–]?[ \t]*"
        r"(?P<title>[^\n]*?)[ \t]*(?:\*\*)?[ \t]*$",
        re.MULTILINE | re.IGNORECASE,
    ),
    default_titles=EXPLANATION_SECTION_TITLES,
)


@dataclass(frozen=True)
class ContentKindSpec:
    kind: str
    profile: ContentTypeProfile
    prompt_builder: PromptBuilder
    checks: tuple[Check, ...] = ()
    context_builder: ContextBuilder = build_default_context
    refinement_rules: DirectiveBuilder = _no_rules
    token_hints: TokenHints = TokenHints()
    # Accept a draft whose only finding is a modest length overflow.
    allow_length_overflow: bool = True
    # Spend a third provider call when the refined draft still fails.
    allow_recovery: bool = False
    section_layout: Optional[SectionLayout] = None

    def validate(self) -> None:
        self.profile.validate()
        self.token_hints.validate()
        if self.profile.kind != self.kind:
            raise ValueError(f"profile kind {self.profile.kind!r} does not match spec kind {self.kind!r}")

    def directives(self, context: QualityContext) -> list[str]:
        return list(self.refinement_rules(context))


class ContentKindRegistry:
    """Content kind -> prompt, profile, checks and refinement rules."""

    def __init__(self, specs: Iterable[ContentKindSpec] = (), default_kind: str = DEFAULT_CONTENT_KIND) -> None:
        self._specs: Dict[str, ContentKindSpec] = {}
        self._default_kind = default_kind
        for spec in specs:
            self.register(spec)

    def register(self, spec: ContentKindSpec) -> None:
        spec.validate()
        self._specs[spec.kind] = spec

    def kinds(self) -> list[str]:
        return list(self._specs)

    def __contains__(self, kind: object) -> bool:
        return kind in self._specs

    def get(self, kind: str) -> ContentKindSpec:
        spec = self._specs.get(kind)
        if spec is not None:
            return spec
        default = self._specs.get(self._default_kind)
        if default is None:
            raise KeyError(f"Unknown content kind {kind!r} and no default kind registered")
        logger.debug(f"[Registry] Unknown content kind {kind!r}; using {self._default_kind!r}")
        return default


def _quiz_rules(context: QualityContext) -> list[str]:
    count = context.expected_questions
    rules = [
        "Number questions Q1, Q2, ... and give each exactly four options A), B), C), D).",
        "End with '## Answer Key' holding one 'Qn: <letter>' line per question and nothing else.",
    ]
    if count:
        rules.append(f"Write exactly {count} questions and exactly {count} answer key lines.")
    return rules


def _roadmap_rules(context: QualityContext) -> list[str]:
    weeks = context.expected_weeks
    rules = [
        "Use '### Week N: <Theme>' headings with Learn, Do and Deliverable bullets under every week.",
        "Never end on a week heading without its bullets.",
    ]
    if weeks:
        rules.insert(0, f"State 'Duration: {weeks} Weeks' and cover Week 1 through Week {weeks} with no gaps.")
    return rules


def _study_plan_rules(context: QualityContext) -> list[str]:
    weeks = context.expected_weeks
    rules = [
        "Emit exactly these H2 headings in this order: " + "; ".join(STUDY_PLAN_SECTIONS) + ".",
        "Weekly Breakdown must be one markdown table with columns " + " | ".join(TABLE_COLUMNS) + ", no <br> tags.",
        "Overview Summary is 3-5 sentences; the checklist has 5+ bullets; alignment notes have 3+ bullets.",
        "Finish the final section completely.",
    ]
    if weeks:
        rules.insert(2, f"Include one table row for every week from Week 1 to Week {weeks}.")
    if context.certification:
        rules.append(f"Name the certification '{context.certification}' explicitly.")
    if context.focus_area:
        rules.append(f"Make '{context.focus_area}' the focus of at least half of the weekly rows.")
    return rules


def _explanation_rules(context: QualityContext) -> list[str]:
    headings = [EXPLANATION_LAYOUT.heading(number) for number in range(1, EXPLANATION_LAYOUT.count + 1)]
    rules = [
        "Emit exactly these headings in this order: " + " | ".join(headings) + ".",
        "Give sections 1-2 at least 50 words and sections 3-4 at least 40 words.",
        "Mention authorized labs, isolated networks or written permission.",
    ]
    if context.commands_relevant:
        rules.append("Include at least two fenced bash code blocks with lab-safe commands.")
    else:
        rules.append("Include at least two action-oriented '-' bullets in sections 3 and 4.")
    if context.topic_keywords:
        rules.append(f"Stay on the requested topic: {', '.join(context.topic_keywords)}.")
    return rules


def _red_team_rules(context: QualityContext) -> list[str]:
    return [
        "Emit exactly these H2 headings in this order: " + "; ".join(RED_TEAM_SECTIONS) + ".",
        "Give every section at least one '-' bullet or two full sentences.",
        "Cite at least one ATT&CK technique ID such as T1059.",
        "In Defender Notes, name telemetry sources (event IDs, EDR, SIEM alerts, logs).",
    ]


DEFAULT_REGISTRY = ContentKindRegistry(
    [
        ContentKindSpec(
            kind="generic",
            profile=ContentTypeProfile("generic", min_chars=360, max_chars=2200, min_headings=3, min_bullets=4),
            prompt_builder=render_generic_prompt,
        ),
        ContentKindSpec(
            kind="tools",
            profile=ContentTypeProfile("tools", min_chars=420, max_chars=2400, min_headings=3, min_bullets=4),
            prompt_builder=render_tools_prompt,
        ),
        ContentKindSpec(
            kind="quiz",
            profile=ContentTypeProfile("quiz", min_chars=260, max_chars=2600, min_headings=2, min_bullets=0),
            prompt_builder=render_quiz_prompt,
            checks=QUIZ_CHECKS,
            context_builder=build_quiz_context,
            refinement_rules=_quiz_rules,
            allow_length_overflow=False,
            allow_recovery=True,
        ),
        ContentKindSpec(
            kind="roadmap",
            profile=ContentTypeProfile("roadmap", min_chars=700, max_chars=5200, min_headings=4, min_bullets=8),
            prompt_builder=render_roadmap_prompt,
            checks=ROADMAP_CHECKS,
            context_builder=build_roadmap_context,
            refinement_rules=_roadmap_rules,
            token_hints=TokenHints(first_pass=1800, refine=2200, recover=2600),
        ),
        ContentKindSpec(
            kind="explanation",
            profile=ContentTypeProfile("explanation", min_chars=900, max_chars=4200, min_headings=5, min_bullets=0),
            prompt_builder=render_explanation_prompt,
            checks=EXPLANATION_CHECKS,
            context_builder=build_explanation_context,
            refinement_rules=_explanation_rules,
            token_hints=TokenHints(first_pass=1800, refine=2200, recover=2600),
            allow_recovery=True,
            section_layout=EXPLANATION_LAYOUT,
        ),
        ContentKindSpec(
            kind="study-plan",
            profile=ContentTypeProfile("study-plan", min_chars=1200, max_chars=6000, min_headings=8, min_bullets=8),
            prompt_builder=render_study_plan_prompt,
            checks=STUDY_PLAN_CHECKS,
            context_builder=build_study_plan_context,
            refinement_rules=_study_plan_rules,
            token_hints=TokenHints(first_pass=2200, refine=2600, recover=3000),
            allow_recovery=True,
        ),
        ContentKindSpec(
            kind="red-team-brief",
            profile=ContentTypeProfile(
                "red-team-brief", min_chars=1400, max_chars=6500, min_headings=10, min_bullets=10
            ),
            prompt_builder=render_red_team_prompt,
            checks=RED_TEAM_CHECKS,
            refinement_rules=_red_team_rules,
            token_hints=TokenHints(first_pass=2200, refine=2600, recover=3000),
            allow_recovery=True,
        ),
    ]
)


def get_content_kind(kind: str) -> ContentKindSpec:
    return DEFAULT_REGISTRY.get(kind)


__all__ = [
    "EXPLANATION_LAYOUT",
    "ContentKindSpec",
    "ContentKindRegistry",
    "DEFAULT_REGISTRY",
    "get_content_kind",
]
