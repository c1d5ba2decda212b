from __future__ import annotations

"""Unified type exports for public consumption.

Type ownership stays in domain modules (`model.py`, `generation_types.py`,
`registry.py`, `chunking.py`).
"""

from chunking import SectionLayout
from generation_types import (
    ContentKind,
    ContentTypeProfile,
    Draft,
    GenerationRequest,
    QualityContext,
    QualityIssue,
    QualityReport,
    RefinementResult,
    RefinementStage,
    TokenHints,
)
from model import LLMRequest, LLMResponse, LLMTask
from registry import ContentKindSpec

__all__ = [
    "LLMTask",
    "LLMRequest",
    "LLMResponse",
    "ContentKind",
    "ContentTypeProfile",
    "TokenHints",
    "GenerationRequest",
    "Draft",
    "QualityIssue",
    "QualityReport",
    "QualityContext",
    "RefinementStage",
    "RefinementResult",
    "ContentKindSpec",
    "SectionLayout",
]
