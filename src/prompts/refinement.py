from __future__ import annotations

from typing import Sequence

from prompts.base import NO_CONTEXT_TEXT


def render_refinement_prompt(
    kind: str,
    topic: str,
    draft: str,
    issues: Sequence[str],
    directives: Sequence[str] = (),
) -> str:
    """Ask the model to rewrite `draft` so the listed issues are fixed."""
    lines = [
        "Improve the following draft response.",
        "Keep every safety and ethical constraint.",
        "Fix these quality issues:",
        *[f"- {item}" for item in issues],
    ]
    if directives:
        lines.extend(["", "Correction rules (strict):", *[f"- {item}" for item in directives]])
    lines.extend(
        [
            "",
            "Condense aggressively when the draft is too long or repetitive.",
            "Stay on topic and remove generic policy filler.",
            "Do not add meta commentary about revising.",
            "Return only the final response in clean markdown.",
            "",
            f"Content kind: {kind}",
            f"User request: {topic.strip() or NO_CONTEXT_TEXT}",
            "",
            "Draft response:",
            draft,
        ]
    )
    return "\n".join(lines)


__all__ = [
    "render_refinement_prompt",
]
