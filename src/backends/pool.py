from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from backends.errors import (
    EmptyResponseError,
    PermanentModelError,
    ProviderCallError,
    ProviderErrorKind,
    ProviderExhausted,
    wrap_provider_error,
)
from backends.openai import OpenAICompletionCell, ProviderPoolConfig, build_client_factory
from model import CompletionCell, LLMRequest

logger = logging.getLogger(__name__)

MIN_TOKEN_BUDGET = 200
TOKEN_GROWTH_FACTOR = 1.4
TOKEN_GROWTH_MIN_STEP = 120
TOKEN_CAP_FLOOR = 2200
TOKEN_CAP_CEILING = 3400
TOKEN_CAP_HINT_RATIO = 1.45


def token_budget_cap(hint: int) -> int:
    return min(TOKEN_CAP_CEILING, max(TOKEN_CAP_FLOOR, int(hint * TOKEN_CAP_HINT_RATIO)))


def next_token_budget(current: int, cap: int) -> int:
    grown = max(current + TOKEN_GROWTH_MIN_STEP, int(current * TOKEN_GROWTH_FACTOR))
    return min(cap, grown)


@dataclass(frozen=True)
class ModelCredentialCell:
    credential_index: int
    model: str


class UnavailableModelSet:
    """Process-scoped record of models that failed permanently."""

    def __init__(self, models: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._models: set[str] = set(models)

    def add(self, model: str) -> None:
        with self._lock:
            self._models.add(model)

    def __contains__(self, model: object) -> bool:
        with self._lock:
            return model in self._models

    def __len__(self) -> int:
        with self._lock:
            return len(self._models)

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._models)

    def clear(self) -> None:
        with self._lock:
            self._models.clear()


@dataclass(frozen=True)
class PoolStatus:
    models: tuple[str, ...]
    credential_count: int
    unavailable_models: frozenset[str]

    @property
    def ok(self) -> bool:
        return any(model not in self.unavailable_models for model in self.models)


CellFactory = Callable[[ModelCredentialCell], CompletionCell]


class ProviderPool:
    """Fallback-ordered models x credentials with per-cell retry and backoff."""

    def __init__(
        self,
        config: ProviderPoolConfig | None = None,
        unavailable_models: UnavailableModelSet | None = None,
        client_factory: Callable[[str, str], Any] | None = None,
        cell_factory: CellFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[float], float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or ProviderPoolConfig()
        self._models = self._config.resolve_models()
        if not self._models:
            raise ValueError("At least one model identifier is required.")
        self._max_retries = self._config.resolve_max_retries()
        self._retry_base_delay = self._config.resolve_retry_base_delay()
        self._unavailable = unavailable_models if unavailable_models is not None else UnavailableModelSet()
        self._sleep = sleep
        self._jitter = jitter or (lambda upper: random.uniform(0.0, upper))
        self._clock = clock
        self._cells: dict[ModelCredentialCell, CompletionCell] = {}
        self._clients: dict[int, Any] = {}
        self._cells_lock = threading.Lock()

        if cell_factory is not None:
            self._cell_factory = cell_factory
            self._api_keys: list[str] = list(self._config.api_keys) or ["injected"]
            self._client_factory = None
        else:
            self._api_keys = self._config.resolve_api_keys()
            self._base_url = self._config.resolve_base_url()
            self._client_factory = client_factory or build_client_factory(
                self._config.request_timeout
            )
            self._cell_factory = self._build_openai_cell

    @property
    def unavailable_models(self) -> UnavailableModelSet:
        return self._unavailable

    @property
    def models(self) -> list[str]:
        return list(self._models)

    def status(self) -> PoolStatus:
        return PoolStatus(
            models=tuple(self._models),
            credential_count=len(self._api_keys),
            unavailable_models=self._unavailable.snapshot(),
        )

    def generate(self, request: LLMRequest) -> str:
        return self.call(request.prompt, request.max_output_tokens, task=request.task)

    def call(self, prompt: str, token_budget_hint: int, task: str = "call") -> str:
        deadline = None
        if self._config.call_deadline is not None:
            deadline = self._clock() + self._config.call_deadline
        last_error: ProviderCallError | None = None

        for model in self._models:
            if model in self._unavailable:
                logger.info(f"[Pool] [{task}] Skipping unavailable model {model}")
                continue

            for credential_index in range(len(self._api_keys)):
                if self._deadline_passed(deadline):
                    raise self._exhausted(last_error, timed_out=True)
                cell = ModelCredentialCell(credential_index=credential_index, model=model)
                try:
                    return self._generate_with_retry(cell, prompt, token_budget_hint, task, deadline)
                except PermanentModelError as exc:
                    last_error = exc
                    self._unavailable.add(model)
                    logger.warning(
                        f"[Pool] [{task}] Model {model} is unavailable; "
                        f"skipping it for the rest of the process. Detail: {exc.message}"
                    )
                    break
                except ProviderCallError as exc:
                    last_error = exc
                    logger.warning(
                        f"[Pool] [{task}] Attempt failed: model={model}, "
                        f"key={credential_index + 1}/{len(self._api_keys)}, "
                        f"kind={exc.kind.value}, error={exc.message}"
                    )
                    if exc.kind.abandons_model:
                        logger.warning(
                            f"[Pool] [{task}] Skipping remaining keys for model {model} "
                            f"({exc.kind.value})"
                        )
                        break

        raise self._exhausted(last_error)

    def _generate_with_retry(
        self,
        cell: ModelCredentialCell,
        prompt: str,
        token_budget_hint: int,
        task: str,
        deadline: float | None,
    ) -> str:
        """Call one cell with exponential backoff for retriable failures.

        A response cut off by the token ceiling grows the budget and retries
        the same cell without spending a failure retry.
        """
        completion_cell = self._get_cell(cell)
        budget = max(MIN_TOKEN_BUDGET, int(token_budget_hint))
        cap = token_budget_cap(token_budget_hint)
        attempt = 0

        while True:
            try:
                response = completion_cell.complete(prompt, budget)
                if not response.text.strip():
                    raise EmptyResponseError(
                        "Empty response from provider.",
                        model=cell.model,
                        credential_index=cell.credential_index,
                    )
            except Exception as exc:
                error = wrap_provider_error(exc, cell.model, cell.credential_index)
                if not error.kind.retriable or attempt >= self._max_retries:
                    raise error from exc
                delay = self._backoff_delay(attempt)
                if deadline is not None:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        raise error from exc
                    delay = min(delay, remaining)
                logger.warning(
                    f"[Pool] [{task}] Retrying model={cell.model} "
                    f"key={cell.credential_index + 1}/{len(self._api_keys)} "
                    f"(attempt {attempt + 1}/{self._max_retries}, {error.kind.value}) "
                    f"in {delay:.2f}s"
                )
                self._sleep(delay)
                attempt += 1
                continue

            if response.truncated and budget < cap:
                next_budget = next_token_budget(budget, cap)
                logger.warning(
                    f"[Pool] [{task}] Response hit token limit on model={cell.model}; "
                    f"retrying with max_tokens {budget} -> {next_budget}"
                )
                budget = next_budget
                continue

            logger.info(
                f"[Pool] [{task}] Success: model={cell.model}, "
                f"key={cell.credential_index + 1}/{len(self._api_keys)}, "
                f"len={len(response.text.strip())} chars"
            )
            return response.text.strip()

    def _backoff_delay(self, attempt: int) -> float:
        return self._retry_base_delay * (2 ** attempt) + self._jitter(self._config.retry_jitter)

    def _deadline_passed(self, deadline: float | None) -> bool:
        return deadline is not None and self._clock() >= deadline

    def _exhausted(
        self,
        last_error: ProviderCallError | None,
        timed_out: bool = False,
    ) -> ProviderExhausted:
        if timed_out:
            message = "Provider call deadline exceeded before a response was produced."
        elif last_error is None:
            message = "No provider models available for this request."
        else:
            message = f"All provider models/keys failed. Last error: {last_error.message}"
        rate_limited = last_error is not None and last_error.kind == ProviderErrorKind.RATE_LIMITED
        logger.error(f"[Pool] {message}")
        return ProviderExhausted(
            message,
            last_error=last_error,
            rate_limited=rate_limited,
            timed_out=timed_out,
        )

    def _get_cell(self, cell: ModelCredentialCell) -> CompletionCell:
        with self._cells_lock:
            cached = self._cells.get(cell)
            if cached is None:
                cached = self._cell_factory(cell)
                self._cells[cell] = cached
            return cached

    def _build_openai_cell(self, cell: ModelCredentialCell) -> CompletionCell:
        client = self._clients.get(cell.credential_index)
        if client is None:
            api_key = self._api_keys[cell.credential_index]
            client = self._client_factory(api_key, self._base_url)
            self._clients[cell.credential_index] = client
        return OpenAICompletionCell(
            client=client,
            model=cell.model,
            temperature=self._config.temperature,
            top_p=self._config.top_p,
            credential_index=cell.credential_index,
        )


__all__ = [
    "MIN_TOKEN_BUDGET",
    "ModelCredentialCell",
    "UnavailableModelSet",
    "PoolStatus",
    "ProviderPool",
    "token_budget_cap",
    "next_token_budget",
]
