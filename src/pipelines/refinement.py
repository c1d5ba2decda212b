from __future__ import annotations

import logging

from backends.errors import GenerationFailed, is_rate_limited
from generation_types import (
    Draft,
    QualityContext,
    QualityReport,
    RefinementConfig,
    RefinementResult,
    RefinementStage,
)
from model import LLMModel, LLMRequest, LLMTask
from prompts import render_refinement_prompt
from quality.gate import QualityGate
from registry import DEFAULT_REGISTRY, ContentKindRegistry, ContentKindSpec

logger = logging.getLogger(__name__)


class _UpstreamFailure(Exception):
    """A refine or recovery call failed after at least one draft exists."""


def merge_issue_lists(*reports: QualityReport) -> list[str]:
    """Issue messages from every report, first occurrence wins."""
    merged: list[str] = []
    for report in reports:
        for message in report.issues:
            if message not in merged:
                merged.append(message)
    return merged


def _rank(draft: Draft, report: QualityReport) -> tuple[int, int]:
    return (len(report.findings), -len(draft.text))


class RefinementOrchestrator:
    """Draft, evaluate, refine, optionally recover, then return the best document."""

    def __init__(
        self,
        model: LLMModel,
        registry: ContentKindRegistry | None = None,
        gate: QualityGate | None = None,
        config: RefinementConfig | None = None,
    ) -> None:
        self._model = model
        self._registry = registry or DEFAULT_REGISTRY
        self._gate = gate or QualityGate(self._registry)
        self._config = config or RefinementConfig()
        if self._config.length_tolerance < 0:
            raise ValueError("length_tolerance must not be negative")

    def produce(self, kind: str, topic: str) -> str:
        return self.produce_result(kind, topic).text

    def produce_result(self, kind: str, topic: str) -> RefinementResult:
        spec = self._registry.get(kind)
        context = spec.context_builder(topic)
        drafts: list[Draft] = []
        reports: list[QualityReport] = []

        prompt = spec.prompt_builder(topic)
        first = self._call_first(kind, prompt, spec.token_hints.first_pass)
        first_report = self._gate.evaluate(kind, first.text, context)
        drafts.append(first)
        reports.append(first_report)
        logger.info(
            f"[Refine] [{kind}] First draft: {len(first.text)} chars, "
            f"issues={len(first_report.findings)}"
        )

        if first_report.passed:
            return self._result(first, "first_draft", first_report, drafts)
        if self._within_length_tolerance(spec, first.text, first_report):
            logger.info(
                f"[Refine] [{kind}] Accepting draft {len(first.text)} chars over "
                f"max_chars={spec.profile.max_chars} within tolerance"
            )
            return self._result(first, "length_tolerance", first_report, drafts)

        logger.warning(f"[Refine] [{kind}] Low quality first draft, refining. Issues: {first_report.issues}")
        try:
            refined = self._call_followup(
                kind,
                self._refinement_prompt(spec, topic, first.text, first_report.issues, context),
                spec.token_hints.refine,
                task="refine",
            )
        except _UpstreamFailure:
            return self._best_effort(drafts, reports)
        refined_report = self._gate.evaluate(kind, refined.text, context)
        drafts.append(refined)
        reports.append(refined_report)
        logger.info(
            f"[Refine] [{kind}] Refined draft: {len(refined.text)} chars, "
            f"issues={len(refined_report.findings)}"
        )
        if refined_report.passed:
            return self._result(refined, "refined", refined_report, drafts)

        if spec.allow_recovery and self._config.enable_recovery:
            issues = merge_issue_lists(first_report, refined_report)
            logger.warning(f"[Refine] [{kind}] Refined draft still failing; recovery pass on {len(issues)} issues")
            try:
                recovered = self._call_followup(
                    kind,
                    self._refinement_prompt(spec, topic, refined.text, issues, context),
                    spec.token_hints.recover,
                    task="recover",
                )
            except _UpstreamFailure:
                return self._best_effort(drafts, reports)
            recovered_report = self._gate.evaluate(kind, recovered.text, context)
            drafts.append(recovered)
            reports.append(recovered_report)
            logger.info(
                f"[Refine] [{kind}] Recovery draft: {len(recovered.text)} chars, "
                f"issues={len(recovered_report.findings)}"
            )
            if recovered_report.passed or _rank(recovered, recovered_report) < _rank(refined, refined_report):
                return self._result(recovered, "recovered", recovered_report, drafts)

        return self._best_effort(drafts, reports)

    def _within_length_tolerance(self, spec: ContentKindSpec, text: str, report: QualityReport) -> bool:
        max_chars = spec.profile.max_chars
        if not spec.allow_length_overflow or max_chars is None:
            return False
        if not report.only("length_max"):
            return False
        return len(text) <= max_chars * (1 + self._config.length_tolerance)

    def _refinement_prompt(
        self,
        spec: ContentKindSpec,
        topic: str,
        draft: str,
        issues: list[str],
        context: QualityContext,
    ) -> str:
        return render_refinement_prompt(
            kind=spec.kind,
            topic=topic,
            draft=draft,
            issues=issues,
            directives=spec.directives(context),
        )

    def _generate(self, task: LLMTask, prompt: str, budget: int) -> Draft:
        text = self._model.generate(LLMRequest(task=task, prompt=prompt, max_output_tokens=budget))
        return Draft(text=(text or "").strip(), token_budget=budget, stage=task)

    def _call_first(self, kind: str, prompt: str, budget: int) -> Draft:
        try:
            return self._generate("first_draft", prompt, budget)
        except Exception as exc:
            rate_limited = is_rate_limited(exc)
            logger.error(f"[Refine] [{kind}] First draft call failed (rate_limited={rate_limited}): {exc}")
            if rate_limited:
                raise GenerationFailed(
                    "AI provider is rate-limited right now. Please retry shortly.",
                    rate_limited=True,
                ) from exc
            raise GenerationFailed("AI service is temporarily unavailable. Please try again shortly.") from exc

    def _call_followup(self, kind: str, prompt: str, budget: int, task: LLMTask) -> Draft:
        try:
            return self._generate(task, prompt, budget)
        except Exception as exc:
            logger.warning(f"[Refine] [{kind}] {task} call failed; keeping the best draft so far: {exc}")
            raise _UpstreamFailure(str(exc)) from exc

    def _best_effort(self, drafts: list[Draft], reports: list[QualityReport]) -> RefinementResult:
        ranked = min(zip(drafts, reports), key=lambda pair: _rank(*pair))
        draft, report = ranked
        logger.info(
            f"[Refine] Returning best effort draft ({draft.stage}): {len(draft.text)} chars, "
            f"issues={len(report.findings)}"
        )
        return self._result(draft, "best_effort", report, drafts)

    @staticmethod
    def _result(
        draft: Draft,
        stage: RefinementStage,
        report: QualityReport,
        drafts: list[Draft],
    ) -> RefinementResult:
        return RefinementResult(text=draft.text, stage=stage, report=report, drafts=list(drafts))


__all__ = [
    "merge_issue_lists",
    "RefinementOrchestrator",
]
