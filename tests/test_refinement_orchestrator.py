import unittest
from dataclasses import dataclass
from typing import List, Union

from path_setup import ensure_src_path

ensure_src_path()

from backends.errors import GenerationFailed, ProviderExhausted
from generation_types import ContentTypeProfile, QualityContext, RefinementConfig, TokenHints
from model import LLMRequest
from pipelines import RefinementOrchestrator, merge_issue_lists
from quality import QualityGate
from quality.base import issue
from registry import DEFAULT_REGISTRY, ContentKindRegistry, ContentKindSpec

Scripted = Union[str, Exception]

MARKER_MESSAGE = "Missing DONE marker."


@dataclass
class _RecordedCall:
    request: LLMRequest


class ScriptedLLMModel:
    def __init__(self, scripted_outputs: List[Scripted]) -> None:
        self._scripted_outputs = scripted_outputs
        self._cursor = 0
        self.calls: List[_RecordedCall] = []

    def generate(self, request: LLMRequest) -> str:
        self.calls.append(_RecordedCall(request=request))
        if self._cursor >= len(self._scripted_outputs):
            raise RuntimeError("scripted outputs exhausted")
        value = self._scripted_outputs[self._cursor]
        self._cursor += 1
        if isinstance(value, Exception):
            raise value
        return value


def _needs_marker(document, profile, context):
    if "DONE" not in document:
        return issue("marker", MARKER_MESSAGE)
    return None


def _note_rules(context: QualityContext) -> list:
    return ["Always include the DONE marker."]


def _note_spec(**overrides) -> ContentKindSpec:
    values = dict(
        kind="note",
        profile=ContentTypeProfile("note", min_chars=20, max_chars=100, min_headings=0, min_bullets=0),
        prompt_builder=lambda topic: f"Write a note about: {topic}",
        checks=(_needs_marker,),
        refinement_rules=_note_rules,
        token_hints=TokenHints(first_pass=900, refine=1000, recover=1200),
        allow_recovery=True,
    )
    values.update(overrides)
    return ContentKindSpec(**values)


def _orchestrator(model: ScriptedLLMModel, spec: ContentKindSpec | None = None, **config) -> RefinementOrchestrator:
    registry = ContentKindRegistry([spec or _note_spec()], default_kind="note")
    return RefinementOrchestrator(model=model, registry=registry, config=RefinementConfig(**config))


class RefinementOrchestratorTests(unittest.TestCase):
    def test_passing_first_draft_uses_one_call_with_first_pass_budget(self) -> None:
        model = ScriptedLLMModel(["  DONE: a note that is long enough.  "])
        result = _orchestrator(model).produce_result("note", "ports")

        self.assertEqual(result.text, "DONE: a note that is long enough.")
        self.assertEqual(result.stage, "first_draft")
        self.assertEqual(result.calls, 1)
        request = model.calls[0].request
        self.assertEqual((request.task, request.max_output_tokens), ("first_draft", 900))
        self.assertEqual(request.prompt, "Write a note about: ports")

    def test_slightly_long_draft_is_accepted_without_refinement(self) -> None:
        draft = "DONE " + "x" * 100
        model = ScriptedLLMModel([draft])
        result = _orchestrator(model).produce_result("note", "ports")

        self.assertEqual(result.text, draft)
        self.assertEqual(result.stage, "length_tolerance")
        self.assertEqual(len(model.calls), 1)

    def test_overflow_beyond_tolerance_is_refined(self) -> None:
        model = ScriptedLLMModel(["DONE" + "x" * 116, "DONE and short enough text"])
        result = _orchestrator(model).produce_result("note", "ports")

        self.assertEqual(result.stage, "refined")
        self.assertEqual(result.text, "DONE and short enough text")
        refine_request = model.calls[1].request
        self.assertEqual((refine_request.task, refine_request.max_output_tokens), ("refine", 1000))
        self.assertIn("too long", refine_request.prompt)
        self.assertIn("Always include the DONE marker.", refine_request.prompt)
        self.assertIn("DONE" + "x" * 116, refine_request.prompt)

    def test_kinds_without_overflow_allowance_always_refine(self) -> None:
        model = ScriptedLLMModel(["DONE " + "x" * 100, "DONE and short enough text"])
        orchestrator = _orchestrator(model, spec=_note_spec(allow_length_overflow=False))
        result = orchestrator.produce_result("note", "ports")

        self.assertEqual(result.stage, "refined")
        self.assertEqual(len(model.calls), 2)
        self.assertFalse(DEFAULT_REGISTRY.get("quiz").allow_length_overflow)

    def test_recovery_pass_uses_merged_issues_and_is_accepted_when_passing(self) -> None:
        model = ScriptedLLMModel(
            [
                "tiny",
                "still without the marker text",
                "DONE recovered document text",
            ]
        )
        result = _orchestrator(model).produce_result("note", "ports")

        self.assertEqual(result.stage, "recovered")
        self.assertEqual(result.calls, 3)
        recover_request = model.calls[2].request
        self.assertEqual((recover_request.task, recover_request.max_output_tokens), ("recover", 1200))
        self.assertEqual(recover_request.prompt.count(MARKER_MESSAGE), 1)
        self.assertIn("too short", recover_request.prompt)
        self.assertIn("still without the marker text", recover_request.prompt)

    def test_worse_recovery_falls_back_to_best_ranked_draft(self) -> None:
        model = ScriptedLLMModel(["tiny", "still without the marker text", "bad"])
        result = _orchestrator(model).produce_result("note", "ports")

        self.assertEqual(result.stage, "best_effort")
        self.assertEqual(result.text, "still without the marker text")
        self.assertEqual(result.calls, 3)

    def test_disabled_recovery_returns_best_effort_after_refine(self) -> None:
        model = ScriptedLLMModel(["tiny", "still without the marker text"])
        result = _orchestrator(model, enable_recovery=False).produce_result("note", "ports")

        self.assertEqual(result.stage, "best_effort")
        self.assertEqual(result.text, "still without the marker text")
        self.assertEqual(len(model.calls), 2)

    def test_rate_limited_first_call_raises_generation_failed(self) -> None:
        model = ScriptedLLMModel([ProviderExhausted("all cells failed", rate_limited=True)])
        with self.assertRaises(GenerationFailed) as ctx:
            _orchestrator(model).produce("note", "ports")
        self.assertTrue(ctx.exception.rate_limited)
        self.assertIn("rate-limited", ctx.exception.message)

    def test_other_first_call_failures_are_not_rate_limited(self) -> None:
        model = ScriptedLLMModel([RuntimeError("connection reset by peer")])
        with self.assertRaises(GenerationFailed) as ctx:
            _orchestrator(model).produce("note", "ports")
        self.assertFalse(ctx.exception.rate_limited)

    def test_refine_failure_keeps_first_draft(self) -> None:
        model = ScriptedLLMModel(["tiny", ProviderExhausted("all cells failed", rate_limited=True)])
        result = _orchestrator(model).produce_result("note", "ports")

        self.assertEqual(result.text, "tiny")
        self.assertEqual(result.stage, "best_effort")
        self.assertEqual(result.calls, 1)

    def test_unknown_kind_uses_default_spec(self) -> None:
        model = ScriptedLLMModel(["DONE: a note that is long enough."])
        result = _orchestrator(model).produce_result("podcast", "ports")
        self.assertEqual(result.stage, "first_draft")
        self.assertEqual(model.calls[0].request.prompt, "Write a note about: ports")

    def test_negative_tolerance_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            _orchestrator(ScriptedLLMModel([]), length_tolerance=-0.1)


class DefaultRegistryFlowTests(unittest.TestCase):
    def test_roadmap_uses_its_token_hints(self) -> None:
        model = ScriptedLLMModel(["too short", "still short"])
        RefinementOrchestrator(model=model).produce_result("roadmap", "web testing in 4 weeks")
        budgets = [call.request.max_output_tokens for call in model.calls]
        self.assertEqual(budgets, [1800, 2200])

    def test_merge_issue_lists_keeps_first_occurrence_order(self) -> None:
        gate = QualityGate(ContentKindRegistry([_note_spec()], default_kind="note"))
        first = gate.evaluate("note", "tiny")
        second = gate.evaluate("note", "still without the marker text")
        merged = merge_issue_lists(first, second)
        self.assertEqual(merged[1], MARKER_MESSAGE)
        self.assertEqual(len(merged), 2)


if __name__ == "__main__":
    unittest.main()
