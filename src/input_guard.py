from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_MAX_INPUT_CHARS = 1200
MIN_INPUT_CHARS = 2

PROMPT_INJECTION_PATTERNS = (
    re.compile(r"ignore\s+(?:all\s+)?(?:previous|prior|above)\s+instructions", re.IGNORECASE),
    re.compile(r"reveal\s+(?:the\s+)?(?:system|developer|hidden)\s+prompt", re.IGNORECASE),
    re.compile(r"jailbreak", re.IGNORECASE),
    re.compile(r"bypass\s+(?:rules|safety|restrictions)", re.IGNORECASE),
    re.compile(r"act\s+as\s+an?\s+unrestricted", re.IGNORECASE),
    re.compile(r"disable\s+(?:guardrails|safety|filters)", re.IGNORECASE),
    re.compile(r"developer\s+mode", re.IGNORECASE),
)

AUTHORIZED_SCOPE_PATTERNS = (
    re.compile(r"\bauthori[sz]ed\b", re.IGNORECASE),
    re.compile(r"\bpermission\b", re.IGNORECASE),
    re.compile(r"\bconsent\b", re.IGNORECASE),
    re.compile(r"\blab\b", re.IGNORECASE),
    re.compile(r"\bctf\b", re.IGNORECASE),
    re.compile(r"\btryhackme\b", re.IGNORECASE),
    re.compile(r"\bhack\s*the\s*box\b", re.IGNORECASE),
    re.compile(r"\bhtb\b", re.IGNORECASE),
    re.compile(r"\bsandbox\b", re.IGNORECASE),
    re.compile(r"\btraining\b", re.IGNORECASE),
    re.compile(r"\bvulnhub\b", re.IGNORECASE),
    re.compile(r"\bdvwa\b", re.IGNORECASE),
    re.compile(r"\bmetasploitable\b", re.IGNORECASE),
    re.compile(r"\binternal\s+(?:test|assessment|environment)\b", re.IGNORECASE),
    re.compile(r"\bowned\s+asset\b", re.IGNORECASE),
)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")
_MASS_MENTIONS = re.compile(r"@(everyone|here)", re.IGNORECASE)

INJECTION_REJECTION = (
    "Your input appears to include unsafe instruction patterns. "
    "Please rephrase as a direct cybersecurity learning question."
)
SCOPE_REJECTION = (
    "For this command, include explicit authorized scope "
    "(e.g., lab, CTF, or approved internal test with permission)."
)


@dataclass(frozen=True)
class InputCheck:
    valid: bool
    reason: Optional[str] = None


def sanitize_user_input(text: object, max_chars: int = DEFAULT_MAX_INPUT_CHARS) -> str:
    """Strip control characters, collapse whitespace, cap length and defuse mass mentions."""
    if not isinstance(text, str):
        return ""
    cleaned = _CONTROL_CHARS.sub(" ", text)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()[:max_chars]
    return _MASS_MENTIONS.sub(lambda match: f"@ {match.group(1)}", cleaned)


def has_prompt_injection(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in PROMPT_INJECTION_PATTERNS)


def validate_user_input(text: str, required: bool = False) -> InputCheck:
    if not text and required:
        return InputCheck(False, "Please provide a value for this command.")
    if text and len(text) < MIN_INPUT_CHARS:
        return InputCheck(False, f"Input is too short. Provide at least {MIN_INPUT_CHARS} characters.")
    return InputCheck(True)


def has_authorized_scope_evidence(text: object) -> bool:
    if not isinstance(text, str) or not text.strip():
        return False
    return any(pattern.search(text) for pattern in AUTHORIZED_SCOPE_PATTERNS)


__all__ = [
    "DEFAULT_MAX_INPUT_CHARS",
    "INJECTION_REJECTION",
    "SCOPE_REJECTION",
    "InputCheck",
    "sanitize_user_input",
    "has_prompt_injection",
    "validate_user_input",
    "has_authorized_scope_evidence",
]
