from __future__ import annotations

import re
from functools import lru_cache

from generation_types import ContentTypeProfile, QualityContext, QualityIssue
from quality.base import (
    Check,
    Section,
    count_item_lines,
    count_words,
    issue,
    match_sections_in_order,
    split_sections,
)

RED_TEAM_SECTIONS = (
    "Authorization and Scope",
    "Threat Model and Objectives",
    "Attack Surface",
    "Attack Chain Simulation",
    "ATT&CK Mapping",
    "Tooling for Authorized Environments",
    "Detection Opportunities",
    "Defender Notes",
    "Mitigations and Hardening",
    "Debrief and Reporting",
)

# Matched against normalized heading titles, in order.
_REQUIRED = (
    ("Authorization and Scope", re.compile(r"authori[sz]ation|\bscope\b|rules of engagement")),
    ("Threat Model and Objectives", re.compile(r"threat model|objective")),
    ("Attack Surface", re.compile(r"attack surface")),
    ("Attack Chain Simulation", re.compile(r"attack chain|kill chain")),
    ("ATT&CK Mapping", re.compile(r"att&ck|attack mapping|mitre|technique")),
    ("Tooling for Authorized Environments", re.compile(r"tool")),
    ("Detection Opportunities", re.compile(r"detection")),
    ("Defender Notes", re.compile(r"defender|blue team|defensive notes")),
    ("Mitigations and Hardening", re.compile(r"mitigation|hardening")),
    ("Debrief and Reporting", re.compile(r"debrief|report")),
)

MIN_SECTION_WORDS = 12
TECHNIQUE_ID_PATTERN = re.compile(r"\b[A-Z]\d{4}(?:\.\d+)?\b")
DETECTION_TERMS = (
    "detect",
    "telemetry",
    "log",
    "alert",
    "sigma",
    "siem",
    "edr",
    "event id",
    "monitor",
    "hunt",
    "sysmon",
    "audit",
)


@lru_cache(maxsize=32)
def _layout(document: str) -> tuple[dict[str, Section], tuple[str, ...]]:
    matched, missing = match_sections_in_order(split_sections(document, max_level=2), _REQUIRED)
    return matched, tuple(missing)


def check_sections(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    missing = _layout(document)[1]
    if missing:
        return issue(
            "redteam_sections",
            f"Missing or out-of-order sections: {', '.join(missing)}.",
        )
    return None


def check_section_depth(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    shallow = [
        title
        for title, section in _layout(document)[0].items()
        if count_item_lines(section.body) == 0 and count_words(section.body) < MIN_SECTION_WORDS
    ]
    if shallow:
        return issue(
            "redteam_section_depth",
            f"Sections need a bullet or at least {MIN_SECTION_WORDS} words: {', '.join(shallow)}.",
        )
    return None


def check_technique_ids(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    if not TECHNIQUE_ID_PATTERN.search(document):
        return issue(
            "redteam_technique_ids",
            "Reference at least one ATT&CK technique ID (for example T1059 or T1003.001).",
        )
    return None


def check_defender_telemetry(
    document: str,
    profile: ContentTypeProfile,
    context: QualityContext,
) -> QualityIssue | None:
    section = _layout(document)[0].get("Defender Notes")
    body = section.body.lower() if section is not None else ""
    if not any(term in body for term in DETECTION_TERMS):
        return issue(
            "redteam_defender_telemetry",
            "Defender Notes must name detection telemetry (logs, alerts, EDR, SIEM, event IDs).",
        )
    return None


RED_TEAM_CHECKS: tuple[Check, ...] = (
    check_sections,
    check_section_depth,
    check_technique_ids,
    check_defender_telemetry,
)


__all__ = [
    "RED_TEAM_SECTIONS",
    "TECHNIQUE_ID_PATTERN",
    "DETECTION_TERMS",
    "check_sections",
    "check_section_depth",
    "check_technique_ids",
    "check_defender_telemetry",
    "RED_TEAM_CHECKS",
]
