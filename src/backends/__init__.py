from __future__ import annotations

from backends.errors import (
    EmptyResponseError,
    FatalProviderError,
    GenerationFailed,
    PermanentModelError,
    ProviderCallError,
    ProviderErrorKind,
    ProviderExhausted,
    RetriableProviderError,
    classify_provider_error,
    is_rate_limited,
)
from backends.openai import OpenAICompletionCell, ProviderPoolConfig, build_client_factory
from backends.pool import ModelCredentialCell, PoolStatus, ProviderPool, UnavailableModelSet

__all__ = [
    "ProviderPoolConfig",
    "ProviderPool",
    "PoolStatus",
    "ModelCredentialCell",
    "UnavailableModelSet",
    "OpenAICompletionCell",
    "build_client_factory",
    "ProviderErrorKind",
    "ProviderCallError",
    "RetriableProviderError",
    "EmptyResponseError",
    "PermanentModelError",
    "FatalProviderError",
    "ProviderExhausted",
    "GenerationFailed",
    "classify_provider_error",
    "is_rate_limited",
]
