from __future__ import annotations

import re
from enum import Enum


class ProviderErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    BUSY = "busy"
    TRANSIENT = "transient"
    EMPTY_RESPONSE = "empty_response"
    MODEL_UNAVAILABLE = "model_unavailable"
    FATAL = "fatal"

    @property
    def retriable(self) -> bool:
        return self in _RETRIABLE_KINDS

    @property
    def abandons_model(self) -> bool:
        """Busy and persistently-empty failures are model-wide, not per credential."""
        return self in (
            ProviderErrorKind.BUSY,
            ProviderErrorKind.EMPTY_RESPONSE,
            ProviderErrorKind.MODEL_UNAVAILABLE,
        )


_RETRIABLE_KINDS = frozenset(
    {
        ProviderErrorKind.RATE_LIMITED,
        ProviderErrorKind.BUSY,
        ProviderErrorKind.TRANSIENT,
        ProviderErrorKind.EMPTY_RESPONSE,
    }
)

_MODEL_UNAVAILABLE_PATTERN = re.compile(
    r"\b404\b|not found|is not supported|no longer available|deprecated|retired|valid model id",
    re.IGNORECASE,
)
_BUSY_PATTERN = re.compile(r"\b503\b|high demand|unavailable", re.IGNORECASE)
_RATE_LIMIT_PATTERN = re.compile(
    r"\b429\b|resource exhausted|too many requests|rate limit|overloaded|quota",
    re.IGNORECASE,
)
_TRANSIENT_PATTERN = re.compile(
    r"timeout|timed out|deadline|connection|\b50[0249]\b",
    re.IGNORECASE,
)


class ProviderCallError(Exception):
    """A failed provider call attributed to one (model, credential) cell."""

    kind: ProviderErrorKind = ProviderErrorKind.FATAL

    def __init__(
        self,
        message: str,
        model: str = "",
        credential_index: int | None = None,
        kind: ProviderErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.model = model
        self.credential_index = credential_index
        if kind is not None:
            self.kind = kind


class RetriableProviderError(ProviderCallError):
    kind = ProviderErrorKind.TRANSIENT


class EmptyResponseError(RetriableProviderError):
    kind = ProviderErrorKind.EMPTY_RESPONSE


class PermanentModelError(ProviderCallError):
    kind = ProviderErrorKind.MODEL_UNAVAILABLE


class FatalProviderError(ProviderCallError):
    kind = ProviderErrorKind.FATAL


class ProviderExhausted(ProviderCallError):
    """Every (model, credential) combination failed for one call."""

    def __init__(
        self,
        message: str,
        last_error: BaseException | None = None,
        rate_limited: bool = False,
        timed_out: bool = False,
    ) -> None:
        kind = getattr(last_error, "kind", None)
        super().__init__(
            message,
            model=getattr(last_error, "model", ""),
            credential_index=getattr(last_error, "credential_index", None),
            kind=kind if isinstance(kind, ProviderErrorKind) else ProviderErrorKind.FATAL,
        )
        self.last_error = last_error
        self.rate_limited = rate_limited
        self.timed_out = timed_out


class GenerationFailed(Exception):
    """No document could be produced because the upstream provider failed."""

    def __init__(self, message: str, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.rate_limited = rate_limited


def _openai_kind(exc: BaseException) -> ProviderErrorKind | None:
    import openai

    if isinstance(exc, openai.NotFoundError):
        return ProviderErrorKind.MODEL_UNAVAILABLE
    if isinstance(exc, openai.RateLimitError):
        return ProviderErrorKind.RATE_LIMITED
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return ProviderErrorKind.TRANSIENT
    return None


def _status_kind(status: int) -> ProviderErrorKind | None:
    if status == 404:
        return ProviderErrorKind.MODEL_UNAVAILABLE
    if status == 429 or status == 529:
        return ProviderErrorKind.RATE_LIMITED
    if status == 503:
        return ProviderErrorKind.BUSY
    if status >= 500 or status == 408:
        return ProviderErrorKind.TRANSIENT
    return None


def classify_provider_error(exc: BaseException) -> ProviderErrorKind:
    """Map a raw provider exception to the pool's retry taxonomy.

    Checks the `openai` exception type first, then a `status_code` attribute,
    then the message text.
    """
    if isinstance(exc, ProviderCallError):
        return exc.kind

    kind = _openai_kind(exc)
    if kind is not None:
        return kind

    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        kind = _status_kind(status)
        if kind is not None:
            return kind

    if isinstance(exc, TimeoutError):
        return ProviderErrorKind.TRANSIENT

    text = str(exc)
    if _MODEL_UNAVAILABLE_PATTERN.search(text):
        return ProviderErrorKind.MODEL_UNAVAILABLE
    if _BUSY_PATTERN.search(text):
        return ProviderErrorKind.BUSY
    if _RATE_LIMIT_PATTERN.search(text):
        return ProviderErrorKind.RATE_LIMITED
    if _TRANSIENT_PATTERN.search(text):
        return ProviderErrorKind.TRANSIENT
    return ProviderErrorKind.FATAL


def wrap_provider_error(
    exc: BaseException,
    model: str,
    credential_index: int,
) -> ProviderCallError:
    if isinstance(exc, ProviderCallError):
        return exc
    kind = classify_provider_error(exc)
    message = f"{type(exc).__name__}: {str(exc)[:300]}"
    if kind == ProviderErrorKind.MODEL_UNAVAILABLE:
        return PermanentModelError(message, model=model, credential_index=credential_index)
    if kind.retriable:
        return RetriableProviderError(
            message, model=model, credential_index=credential_index, kind=kind
        )
    return FatalProviderError(message, model=model, credential_index=credential_index)


def is_rate_limited(exc: BaseException | None) -> bool:
    if exc is None:
        return False
    if isinstance(exc, (ProviderExhausted, GenerationFailed)):
        return exc.rate_limited
    return classify_provider_error(exc) == ProviderErrorKind.RATE_LIMITED


__all__ = [
    "ProviderErrorKind",
    "ProviderCallError",
    "RetriableProviderError",
    "EmptyResponseError",
    "PermanentModelError",
    "FatalProviderError",
    "ProviderExhausted",
    "GenerationFailed",
    "classify_provider_error",
    "wrap_provider_error",
    "is_rate_limited",
]
