from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol


LLMTask = Literal[
    "first_draft",
    "refine",
    "recover",
]

_TRUNCATION_REASONS = ("length", "max_tokens", "max tokens")


@dataclass(frozen=True)
class LLMRequest:
    task: LLMTask
    prompt: str
    max_output_tokens: int = 1100


@dataclass(frozen=True)
class LLMResponse:
    text: str
    finish_reason: str = ""

    @property
    def truncated(self) -> bool:
        """True when the provider stopped because the output token ceiling was hit."""
        reason = (self.finish_reason or "").lower()
        return any(marker in reason for marker in _TRUNCATION_REASONS)


class CompletionCell(Protocol):
    def complete(self, prompt: str, max_output_tokens: int) -> LLMResponse:
        ...


class LLMModel(Protocol):
    def generate(self, request: LLMRequest) -> str:
        ...
