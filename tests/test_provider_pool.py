import os
import unittest
from typing import Dict, List, Tuple, Union
from unittest.mock import patch

from path_setup import ensure_src_path

ensure_src_path()

from backends import (
    ModelCredentialCell,
    ProviderExhausted,
    ProviderPool,
    ProviderPoolConfig,
    UnavailableModelSet,
)
from backends.pool import next_token_budget, token_budget_cap
from model import LLMRequest, LLMResponse

Outcome = Union[LLMResponse, Exception]


class ScriptedCell:
    def __init__(self, outcomes: List[Outcome], on_call=None) -> None:
        self._outcomes = list(outcomes)
        self._on_call = on_call
        self.budgets: List[int] = []

    def complete(self, prompt: str, max_output_tokens: int) -> LLMResponse:
        self.budgets.append(max_output_tokens)
        if self._on_call is not None:
            self._on_call()
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class ScriptedCells:
    """Cell factory keyed by (credential_index, model)."""

    def __init__(self, scripts: Dict[Tuple[int, str], ScriptedCell]) -> None:
        self.scripts = scripts
        self.built: List[ModelCredentialCell] = []

    def __call__(self, cell: ModelCredentialCell) -> ScriptedCell:
        self.built.append(cell)
        return self.scripts[(cell.credential_index, cell.model)]


def _config(**overrides) -> ProviderPoolConfig:
    values = dict(
        api_keys=("key-a", "key-b"),
        model="model-a",
        fallback_models=("model-b",),
        max_retries=0,
        retry_base_delay=1.0,
    )
    values.update(overrides)
    return ProviderPoolConfig(**values)


class TokenBudgetPolicyTests(unittest.TestCase):
    def test_cap_is_clamped_between_floor_and_ceiling(self) -> None:
        self.assertEqual(token_budget_cap(1100), 2200)
        self.assertEqual(token_budget_cap(2000), 2900)
        self.assertEqual(token_budget_cap(5000), 3400)

    def test_growth_is_strictly_increasing_until_cap(self) -> None:
        cap = token_budget_cap(1100)
        budgets = [1100]
        while budgets[-1] < cap:
            budgets.append(next_token_budget(budgets[-1], cap))
        self.assertEqual(budgets, [1100, 1540, 2156, 2200])
        self.assertTrue(all(b < a for b, a in zip(budgets, budgets[1:])))


class ProviderPoolTests(unittest.TestCase):
    def setUp(self) -> None:
        env = patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)
        self.sleeps: List[float] = []

    def _pool(self, cells: ScriptedCells, **kwargs) -> ProviderPool:
        config = kwargs.pop("config", None) or _config()
        return ProviderPool(
            config=config,
            cell_factory=cells,
            sleep=self.sleeps.append,
            jitter=lambda upper: 0.0,
            **kwargs,
        )

    def test_permanent_model_failure_blacklists_model_for_later_calls(self) -> None:
        missing = ScriptedCell([RuntimeError("model-a is not a valid model ID")])
        fallback = ScriptedCell([LLMResponse("fallback answer", "stop")])
        cells = ScriptedCells({(0, "model-a"): missing, (0, "model-b"): fallback})
        unavailable = UnavailableModelSet()
        pool = self._pool(cells, unavailable_models=unavailable)

        self.assertEqual(pool.call("prompt", 1100), "fallback answer")
        self.assertEqual(pool.call("prompt", 1100), "fallback answer")

        self.assertIn("model-a", unavailable)
        self.assertEqual(len(missing.budgets), 1)
        self.assertEqual(len(fallback.budgets), 2)
        self.assertFalse(any(cell == ModelCredentialCell(1, "model-a") for cell in cells.built))
        self.assertEqual(pool.status().unavailable_models, frozenset({"model-a"}))
        self.assertTrue(pool.status().ok)

    def test_truncated_response_grows_budget_up_to_cap(self) -> None:
        truncated = ScriptedCell([LLMResponse("partial text", "length")])
        pool = self._pool(ScriptedCells({(0, "model-a"): truncated}))

        result = pool.generate(LLMRequest(task="first_draft", prompt="prompt", max_output_tokens=1100))

        self.assertEqual(result, "partial text")
        self.assertEqual(truncated.budgets, [1100, 1540, 2156, 2200])
        self.assertEqual(self.sleeps, [])

    def test_small_hint_is_raised_to_minimum_budget(self) -> None:
        cell = ScriptedCell([LLMResponse("done", "stop")])
        pool = self._pool(ScriptedCells({(0, "model-a"): cell}))
        pool.call("prompt", 50)
        self.assertEqual(cell.budgets, [200])

    def test_rate_limit_retries_same_cell_with_exponential_backoff(self) -> None:
        cell = ScriptedCell(
            [
                RuntimeError("429 Resource exhausted"),
                RuntimeError("429 Resource exhausted"),
                LLMResponse("answer", "stop"),
            ]
        )
        pool = self._pool(ScriptedCells({(0, "model-a"): cell}), config=_config(max_retries=3))

        self.assertEqual(pool.call("prompt", 1100), "answer")
        self.assertEqual(self.sleeps, [1.0, 2.0])
        self.assertEqual(len(cell.budgets), 3)

    def test_busy_model_skips_remaining_credentials(self) -> None:
        busy = ScriptedCell([RuntimeError("503 model is under high demand")])
        fallback = ScriptedCell([LLMResponse("from fallback", "stop")])
        cells = ScriptedCells({(0, "model-a"): busy, (0, "model-b"): fallback})
        pool = self._pool(cells)

        self.assertEqual(pool.call("prompt", 1100), "from fallback")
        self.assertEqual(
            cells.built,
            [ModelCredentialCell(0, "model-a"), ModelCredentialCell(0, "model-b")],
        )
        self.assertNotIn("model-a", pool.unavailable_models)

    def test_empty_responses_retry_then_move_to_next_model(self) -> None:
        empty = ScriptedCell([LLMResponse("   ", "stop")])
        fallback = ScriptedCell([LLMResponse("filled", "stop")])
        cells = ScriptedCells({(0, "model-a"): empty, (0, "model-b"): fallback})
        pool = self._pool(cells, config=_config(max_retries=1))

        self.assertEqual(pool.call("prompt", 1100), "filled")
        self.assertEqual(len(empty.budgets), 2)
        self.assertEqual(self.sleeps, [1.0])

    def test_fatal_error_moves_to_next_credential(self) -> None:
        denied = ScriptedCell([RuntimeError("401 invalid api key")])
        second_key = ScriptedCell([LLMResponse("second key works", "stop")])
        cells = ScriptedCells({(0, "model-a"): denied, (1, "model-a"): second_key})
        pool = self._pool(cells, config=_config(max_retries=3))

        self.assertEqual(pool.call("prompt", 1100), "second key works")
        self.assertEqual(len(denied.budgets), 1)
        self.assertEqual(self.sleeps, [])

    def test_exhaustion_reports_rate_limited(self) -> None:
        limited = RuntimeError("429 Too Many Requests")
        cells = ScriptedCells(
            {
                (0, "model-a"): ScriptedCell([limited]),
                (1, "model-a"): ScriptedCell([limited]),
                (0, "model-b"): ScriptedCell([limited]),
                (1, "model-b"): ScriptedCell([limited]),
            }
        )
        pool = self._pool(cells)

        with self.assertRaises(ProviderExhausted) as ctx:
            pool.call("prompt", 1100)

        self.assertTrue(ctx.exception.rate_limited)
        self.assertFalse(ctx.exception.timed_out)
        self.assertEqual(len(cells.built), 4)

    def test_exhaustion_after_other_errors_is_not_rate_limited(self) -> None:
        cells = ScriptedCells(
            {
                (0, "model-a"): ScriptedCell([RuntimeError("429 rate limit")]),
                (1, "model-a"): ScriptedCell([RuntimeError("connection reset by peer")]),
                (0, "model-b"): ScriptedCell([RuntimeError("bad request")]),
                (1, "model-b"): ScriptedCell([RuntimeError("bad request")]),
            }
        )
        with self.assertRaises(ProviderExhausted) as ctx:
            self._pool(cells).call("prompt", 1100)
        self.assertFalse(ctx.exception.rate_limited)

    def test_deadline_stops_new_attempts(self) -> None:
        now = [0.0]

        def advance() -> None:
            now[0] += 10.0

        slow = ScriptedCell([RuntimeError("connection reset")], on_call=advance)
        cells = ScriptedCells({(0, "model-a"): slow})
        pool = self._pool(cells, config=_config(call_deadline=5.0), clock=lambda: now[0])

        with self.assertRaises(ProviderExhausted) as ctx:
            pool.call("prompt", 1100)

        self.assertTrue(ctx.exception.timed_out)
        self.assertEqual(cells.built, [ModelCredentialCell(0, "model-a")])

    def test_all_models_unavailable_raises_without_calls(self) -> None:
        cells = ScriptedCells({})
        pool = self._pool(
            cells,
            unavailable_models=UnavailableModelSet(["model-a", "model-b"]),
        )
        with self.assertRaises(ProviderExhausted):
            pool.call("prompt", 1100)
        self.assertEqual(cells.built, [])
        self.assertFalse(pool.status().ok)


if __name__ == "__main__":
    unittest.main()
