from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable

from model import LLMResponse

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_TOP_P = 0.9
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.5
DEFAULT_RETRY_JITTER = 0.25
DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_API_KEY_ENV_VAR = "LLM_API_KEY"
DEFAULT_API_KEYS_ENV_VAR = "LLM_API_KEYS"
DEFAULT_BASE_URL_ENV_VAR = "LLM_BASE_URL"
DEFAULT_MODEL_ENV_VAR = "LLM_MODEL"
DEFAULT_FALLBACK_MODELS_ENV_VAR = "LLM_FALLBACK_MODELS"
DEFAULT_MAX_RETRIES_ENV_VAR = "LLM_MAX_RETRIES"
DEFAULT_RETRY_BASE_MS_ENV_VAR = "LLM_RETRY_BASE_MS"


@dataclass(frozen=True)
class ProviderPoolConfig:
    api_keys: tuple[str, ...] = ()
    api_key_env_var: str = DEFAULT_API_KEY_ENV_VAR
    api_keys_env_var: str = DEFAULT_API_KEYS_ENV_VAR
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    fallback_models: tuple[str, ...] = ()
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    max_retries: int | None = None
    retry_base_delay: float | None = None
    retry_jitter: float = DEFAULT_RETRY_JITTER
    # Per-HTTP-call timeout handed to the OpenAI client.
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    # Optional wall-clock budget for one pool call across all retries and fallbacks.
    call_deadline: float | None = None

    def resolve_api_keys(self) -> list[str]:
        keys: list[str] = [key.strip() for key in self.api_keys if key and key.strip()]
        single = os.getenv(self.api_key_env_var, "").strip()
        if single:
            keys.append(single)
        keys.extend(_split_env_list(os.getenv(self.api_keys_env_var, "")))
        unique = list(dict.fromkeys(keys))
        if not unique:
            raise ValueError(
                f"Missing API key. Set {self.api_key_env_var} or {self.api_keys_env_var}, "
                "or pass api_keys in ProviderPoolConfig."
            )
        return unique

    def resolve_base_url(self) -> str:
        env_base_url = os.getenv(DEFAULT_BASE_URL_ENV_VAR, "").strip()
        if env_base_url and self.base_url == DEFAULT_BASE_URL:
            return env_base_url
        return self.base_url

    def resolve_models(self) -> list[str]:
        primary = self.model
        env_model = os.getenv(DEFAULT_MODEL_ENV_VAR, "").strip()
        if env_model and self.model == DEFAULT_MODEL:
            primary = env_model
        fallbacks = list(self.fallback_models) or _split_env_list(
            os.getenv(DEFAULT_FALLBACK_MODELS_ENV_VAR, "")
        )
        return [name for name in dict.fromkeys([primary, *fallbacks]) if name]

    def resolve_max_retries(self) -> int:
        if self.max_retries is not None:
            return max(0, self.max_retries)
        return _positive_int_env(DEFAULT_MAX_RETRIES_ENV_VAR, DEFAULT_MAX_RETRIES)

    def resolve_retry_base_delay(self) -> float:
        if self.retry_base_delay is not None:
            return max(0.0, self.retry_base_delay)
        raw_ms = _positive_int_env(
            DEFAULT_RETRY_BASE_MS_ENV_VAR, int(DEFAULT_RETRY_BASE_DELAY * 1000)
        )
        return raw_ms / 1000.0


def _split_env_list(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _positive_int_env(name: str, fallback: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return fallback
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a positive integer.") from exc
    if value <= 0:
        raise ValueError(f"Environment variable {name} must be a positive integer.")
    return value


def _default_client_factory(api_key: str, base_url: str, timeout: float) -> Any:
    from openai import OpenAI

    # Retries are owned by the pool, not the SDK.
    return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


def _extract_text_content(raw_content: Any) -> str:
    if isinstance(raw_content, str):
        return raw_content
    if isinstance(raw_content, list):
        parts: list[str] = []
        for item in raw_content:
            if isinstance(item, dict) and item.get("type") == "text":
                text = item.get("text", "")
                if isinstance(text, str):
                    parts.append(text)
            else:
                text = getattr(item, "text", "")
                if isinstance(text, str):
                    parts.append(text)
        return "".join(parts)
    return ""


def _extract_message_content(message: Any) -> str:
    """Extract text content from message, handling content/reasoning fields."""
    content = getattr(message, "content", None)
    if content:
        text = _extract_text_content(content)
        if text:
            return text

    # Some gateways return the answer in a reasoning field only
    reasoning = getattr(message, "reasoning", None)
    if reasoning and isinstance(reasoning, str):
        return reasoning

    return ""


class OpenAICompletionCell:
    """One (credential, model) pair bound to a chat-completions client."""

    def __init__(
        self,
        client: Any,
        model: str,
        temperature: float = DEFAULT_TEMPERATURE,
        top_p: float = DEFAULT_TOP_P,
        credential_index: int = 0,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._top_p = top_p
        self._credential_index = credential_index

    @property
    def model(self) -> str:
        return self._model

    def complete(self, prompt: str, max_output_tokens: int) -> LLMResponse:
        create_kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature,
            "top_p": self._top_p,
            "max_tokens": int(max_output_tokens),
        }
        logger.debug(
            f"[LLM] [{self._model}#{self._credential_index + 1}] Request: "
            f"prompt_len={len(prompt)} chars, max_tokens={max_output_tokens}"
        )
        start_time = time.time()
        response = self._client.chat.completions.create(**create_kwargs)
        elapsed = time.time() - start_time

        choices = getattr(response, "choices", None) or []
        if not choices:
            return LLMResponse(text="", finish_reason="")
        choice = choices[0]
        text = _extract_message_content(getattr(choice, "message", None)).strip()
        finish_reason = str(getattr(choice, "finish_reason", "") or "")

        logger.debug(
            f"[LLM] [{self._model}#{self._credential_index + 1}] Response: len={len(text)} chars, "
            f"finish_reason={finish_reason or '-'}, time={elapsed:.2f}s"
        )
        return LLMResponse(text=text, finish_reason=finish_reason)


def build_client_factory(
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> Callable[[str, str], Any]:
    def factory(api_key: str, base_url: str) -> Any:
        return _default_client_factory(api_key, base_url, timeout)

    return factory


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "DEFAULT_TEMPERATURE",
    "DEFAULT_TOP_P",
    "DEFAULT_API_KEY_ENV_VAR",
    "DEFAULT_API_KEYS_ENV_VAR",
    "DEFAULT_BASE_URL_ENV_VAR",
    "DEFAULT_MODEL_ENV_VAR",
    "DEFAULT_FALLBACK_MODELS_ENV_VAR",
    "ProviderPoolConfig",
    "OpenAICompletionCell",
    "build_client_factory",
]
