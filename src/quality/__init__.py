from __future__ import annotations

from . import base, context, explanation, gate, quiz, redteam, roadmap, structure, study_plan
from .context import (
    build_default_context,
    build_explanation_context,
    build_quiz_context,
    build_roadmap_context,
    build_study_plan_context,
    topic_field,
)
from .explanation import EXPLANATION_CHECKS, EXPLANATION_SECTION_TITLES
from .gate import QualityGate, evaluate_document
from .quiz import QUIZ_CHECKS, parse_quiz
from .redteam import RED_TEAM_CHECKS, RED_TEAM_SECTIONS
from .roadmap import ROADMAP_CHECKS
from .structure import UNIVERSAL_CHECKS
from .study_plan import STUDY_PLAN_CHECKS, STUDY_PLAN_SECTIONS, TABLE_COLUMNS

__all__ = [
    "base",
    "context",
    "explanation",
    "gate",
    "quiz",
    "redteam",
    "roadmap",
    "structure",
    "study_plan",
    "QualityGate",
    "evaluate_document",
    "UNIVERSAL_CHECKS",
    "QUIZ_CHECKS",
    "ROADMAP_CHECKS",
    "STUDY_PLAN_CHECKS",
    "EXPLANATION_CHECKS",
    "RED_TEAM_CHECKS",
    "EXPLANATION_SECTION_TITLES",
    "RED_TEAM_SECTIONS",
    "STUDY_PLAN_SECTIONS",
    "TABLE_COLUMNS",
    "parse_quiz",
    "topic_field",
    "build_default_context",
    "build_quiz_context",
    "build_roadmap_context",
    "build_study_plan_context",
    "build_explanation_context",
]
