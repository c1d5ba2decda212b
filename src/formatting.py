from __future__ import annotations

import re
from typing import Callable, Dict, List

from chunking import ProtectedText
from quality.redteam import RED_TEAM_SECTIONS

_DISCLAIMER_PATTERNS = (
    re.compile(r"^#{1,6}\s*disclaimer\b", re.IGNORECASE),
    re.compile(r"^-?\s*\*{0,2}disclaimer\*{0,2}\s*:", re.IGNORECASE),
)
_INLINE_BULLET_PATTERN = re.compile(r"([^\n*])[ \t]*\*[ \t]{2,}(?=[A-Z0-9])")
_STAR_BULLET_PATTERN = re.compile(r"(^|\n)[ \t]*\*[ \t]+(?=\S)")
_DOT_BULLET_PATTERN = re.compile(r"(^|\n)[ \t]*•[ \t]+(?=\S)")
_HEADING_GAP_PATTERN = re.compile(r"([^\n])\n(#{1,6}\s+)")
_BLANK_RUN_PATTERN = re.compile(r"\n{3,}")

_PHASE_LINE_PATTERN = re.compile(r"^[ \t]*(?!#{1,6}\s)(Phase\s+\d+\s*:[^\n]+)", re.MULTILINE | re.IGNORECASE)
_WEEK_LINE_PATTERN = re.compile(
    r"^[ \t]*(?!#{1,6}\s)(?:[-*][ \t]+)?(Week\s+\d+\s*:[^\n]+)", re.MULTILINE | re.IGNORECASE
)
_GOAL_LINE_PATTERN = re.compile(r"^[ \t]*(?!#{1,6}\s)(Goal\s*:\s*[^\n]+)", re.MULTILINE | re.IGNORECASE)
_ROADMAP_LABEL_PATTERN = re.compile(
    r"^[ \t]*(Concept|Explanation|Topics|Tools|Action|Deliverable|Practice|Example)[ \t]*:[ \t]*",
    re.MULTILINE | re.IGNORECASE,
)
_RED_TEAM_LABEL_PATTERN = re.compile(
    r"^[ \t]*(Authorization|Scope|Legal Compliance|Objective|Goal|Constraints?|Tools|Installation|"
    r"Usage|Example|Detection|Mitigation|Notes?)[ \t]*:[ \t]*",
    re.MULTILINE | re.IGNORECASE,
)


def _is_disclaimer(line: str) -> bool:
    stripped = line.strip()
    return any(pattern.search(stripped) for pattern in _DISCLAIMER_PATTERNS)


def drop_leading_disclaimer(text: str) -> str:
    """Remove a disclaimer block found on the first or second non-empty line."""
    lines = text.split("\n")
    non_empty = [idx for idx, line in enumerate(lines) if line.strip()][:2]
    for idx in non_empty:
        if not _is_disclaimer(lines[idx]):
            continue
        end = idx
        while end < len(lines) and lines[end].strip():
            end += 1
        while end < len(lines) and not lines[end].strip():
            end += 1
        del lines[idx:end]
        return "\n".join(lines).strip()
    return text


def _finish(text: str) -> str:
    text = _HEADING_GAP_PATTERN.sub(r"\1\n\n\2", text)
    return _BLANK_RUN_PATTERN.sub("\n\n", text).strip()


def _normalise_bullets(text: str) -> str:
    text = _INLINE_BULLET_PATTERN.sub(r"\1\n- ", text)
    text = _STAR_BULLET_PATTERN.sub(r"\1- ", text)
    return _DOT_BULLET_PATTERN.sub(r"\1- ", text)


def _with_protected_code(text: str, transform: Callable[[str], str]) -> str:
    if not text or not text.strip():
        return text
    protected = ProtectedText(text.replace("\r\n", "\n"))
    return protected.restore(transform(protected.text.strip()))


def format_generic_markdown(text: str) -> str:
    def _transform(body: str) -> str:
        return _finish(_normalise_bullets(drop_leading_disclaimer(body)))

    return _with_protected_code(text, _transform)


def format_roadmap_markdown(text: str) -> str:
    def _transform(body: str) -> str:
        body = _normalise_bullets(body)
        body = _PHASE_LINE_PATTERN.sub(r"## \1", body)
        body = _WEEK_LINE_PATTERN.sub(r"### \1", body)
        body = _GOAL_LINE_PATTERN.sub(r"### \1", body)
        body = _ROADMAP_LABEL_PATTERN.sub(lambda match: f"- **{match.group(1)}:** ", body)
        return _finish(body)

    return _with_protected_code(text, _transform)


def _promote_titles(body: str, titles: List[str]) -> str:
    for title in titles:
        pattern = re.compile(rf"^[ \t]*(?!#{{1,6}}\s){re.escape(title)}[ \t]*:?[ \t]*$", re.MULTILINE | re.IGNORECASE)
        body = pattern.sub(f"## {title}", body)
    return body


def format_red_team_markdown(text: str) -> str:
    def _transform(body: str) -> str:
        body = _normalise_bullets(body)
        body = _promote_titles(body, list(RED_TEAM_SECTIONS))
        body = _RED_TEAM_LABEL_PATTERN.sub(lambda match: f"- **{match.group(1)}:** ", body)
        return _finish(body)

    return _with_protected_code(text, _transform)


_KIND_FORMATTERS: Dict[str, Callable[[str], str]] = {
    "roadmap": format_roadmap_markdown,
    "red-team-brief": format_red_team_markdown,
}


def format_response(kind: str, text: str) -> str:
    """Normalise model markdown for display; kind-specific passes run after the generic one."""
    base = format_generic_markdown(text or "")
    formatter = _KIND_FORMATTERS.get(kind)
    return formatter(base) if formatter else base


__all__ = [
    "drop_leading_disclaimer",
    "format_generic_markdown",
    "format_roadmap_markdown",
    "format_red_team_markdown",
    "format_response",
]
