from __future__ import annotations

import logging
from typing import Iterable, Protocol

from generation_types import ContentTypeProfile, QualityContext, QualityIssue, QualityReport
from quality.base import Check
from quality.structure import UNIVERSAL_CHECKS

logger = logging.getLogger(__name__)


class KindRules(Protocol):
    profile: ContentTypeProfile
    checks: tuple[Check, ...]


class KindLookup(Protocol):
    def get(self, kind: str) -> KindRules:
        ...


def evaluate_document(
    document: str,
    profile: ContentTypeProfile,
    checks: Iterable[Check],
    context: QualityContext | None = None,
) -> QualityReport:
    """Run universal checks, then `checks`, collecting findings in order."""
    context = context or QualityContext()
    findings: list[QualityIssue] = []
    for check in (*UNIVERSAL_CHECKS, *checks):
        finding = check(document, profile, context)
        if finding is not None:
            findings.append(finding)
    return QualityReport(findings=tuple(findings))


class QualityGate:
    """Evaluates documents against the profile and checks of their content kind."""

    def __init__(self, registry: KindLookup | None = None) -> None:
        if registry is None:
            from registry import DEFAULT_REGISTRY

            registry = DEFAULT_REGISTRY
        self._registry = registry

    def evaluate(
        self,
        kind: str,
        document: str,
        context: QualityContext | None = None,
    ) -> QualityReport:
        rules = self._registry.get(kind)
        report = evaluate_document(document, rules.profile, rules.checks, context)
        logger.debug(
            f"[Quality] kind={kind} len={len(document)} passed={report.passed} "
            f"codes={report.codes}"
        )
        return report


__all__ = [
    "KindRules",
    "KindLookup",
    "evaluate_document",
    "QualityGate",
]
