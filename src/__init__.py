from __future__ import annotations

"""Unified public API for the flat package layout."""

from backends import (
    GenerationFailed,
    OpenAICompletionCell,
    PoolStatus,
    ProviderErrorKind,
    ProviderExhausted,
    ProviderPool,
    ProviderPoolConfig,
    UnavailableModelSet,
    classify_provider_error,
    is_rate_limited,
)
from chunking import (
    EMPTY_DOCUMENT_NOTICE,
    HARD_MAX,
    PackOptions,
    SectionLayout,
    pack,
)
from core import config, protocols, types
from delivery import (
    ContentRequestRunner,
    DeliveryConfig,
    DeliveryOutcome,
    Transport,
    deliver_chunks,
)
from formatting import format_response
from generation_types import (
    ContentTypeProfile,
    GenerationRequest,
    QualityContext,
    QualityIssue,
    QualityReport,
    RefinementConfig,
    RefinementResult,
    TokenHints,
)
from input_guard import (
    has_authorized_scope_evidence,
    has_prompt_injection,
    sanitize_user_input,
    validate_user_input,
)
from model import LLMModel, LLMRequest, LLMResponse, LLMTask
from pipelines import RefinementOrchestrator
from prompts import render_refinement_prompt
from quality import QualityGate, evaluate_document
from registry import DEFAULT_REGISTRY, EXPLANATION_LAYOUT, ContentKindRegistry, ContentKindSpec

__all__ = [
    "config",
    "protocols",
    "types",
    "LLMTask",
    "LLMRequest",
    "LLMResponse",
    "LLMModel",
    "ProviderPoolConfig",
    "ProviderPool",
    "PoolStatus",
    "UnavailableModelSet",
    "OpenAICompletionCell",
    "ProviderErrorKind",
    "ProviderExhausted",
    "GenerationFailed",
    "classify_provider_error",
    "is_rate_limited",
    "ContentTypeProfile",
    "TokenHints",
    "GenerationRequest",
    "QualityContext",
    "QualityIssue",
    "QualityReport",
    "RefinementConfig",
    "RefinementResult",
    "QualityGate",
    "evaluate_document",
    "ContentKindSpec",
    "ContentKindRegistry",
    "DEFAULT_REGISTRY",
    "EXPLANATION_LAYOUT",
    "render_refinement_prompt",
    "RefinementOrchestrator",
    "HARD_MAX",
    "EMPTY_DOCUMENT_NOTICE",
    "PackOptions",
    "SectionLayout",
    "pack",
    "format_response",
    "sanitize_user_input",
    "has_prompt_injection",
    "validate_user_input",
    "has_authorized_scope_evidence",
    "Transport",
    "DeliveryConfig",
    "DeliveryOutcome",
    "deliver_chunks",
    "ContentRequestRunner",
]
