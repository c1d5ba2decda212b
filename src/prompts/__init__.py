from __future__ import annotations

from prompts.base import SYSTEM_PROMPT, assemble_prompt, safety_requirements
from prompts.content import (
    explanation_heading,
    render_explanation_prompt,
    render_generic_prompt,
    render_quiz_prompt,
    render_red_team_prompt,
    render_roadmap_prompt,
    render_study_plan_prompt,
    render_tools_prompt,
)
from prompts.refinement import render_refinement_prompt

__all__ = [
    "SYSTEM_PROMPT",
    "assemble_prompt",
    "safety_requirements",
    "explanation_heading",
    "render_explanation_prompt",
    "render_roadmap_prompt",
    "render_quiz_prompt",
    "render_study_plan_prompt",
    "render_red_team_prompt",
    "render_tools_prompt",
    "render_generic_prompt",
    "render_refinement_prompt",
]
