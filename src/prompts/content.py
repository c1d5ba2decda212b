from __future__ import annotations

import math

from prompts.base import TEACHING_STYLE, assemble_prompt, safety_requirements
from quality.context import requested_weeks, topic_field
from quality.explanation import EXPLANATION_SECTION_TITLES
from quality.redteam import RED_TEAM_SECTIONS
from quality.study_plan import STUDY_PLAN_SECTIONS, TABLE_COLUMNS

DEFAULT_PLAN_WEEKS = 8
INTENSITY_HOURS_THRESHOLD = 25


def _safety_block(authorized_scope: bool = False) -> list[str]:
    return ["Safety requirements:", *safety_requirements(authorized_scope)]


def explanation_heading(number: int) -> str:
    return f"## Chunk {number}/{len(EXPLANATION_SECTION_TITLES)}: {EXPLANATION_SECTION_TITLES[number - 1]}"


def render_explanation_prompt(topic: str) -> str:
    headings = [
        f"  {number}) {explanation_heading(number)}"
        for number in range(1, len(EXPLANATION_SECTION_TITLES) + 1)
    ]
    output = [
        "Output format requirements (strict):",
        "- Return exactly 5 H2 sections with these headings, in this order:",
        *headings,
        "- Aim for 70-140 words per section; every section must be actionable.",
        "- Include at least 2 fenced bash code blocks when commands are relevant to the concept.",
        "- Chunk 2 sets up the lab: attacker VM, target VM, isolated network mode and a private subnet example.",
        "- Chunks 3 and 4 give at least 4 discovery and 4 enumeration commands for authorized labs.",
        "- Chunk 5 covers validation of results plus scope, permission and lab-safety notes.",
        f"- Start directly with \"{explanation_heading(1)}\". No sections outside the five.",
    ]
    return assemble_prompt(
        [output, ["Teaching style requirements:", *TEACHING_STYLE], _safety_block()],
        guidance="Explain the security concept for a learner with definitions, a safe lab walkthrough and a defensive mindset.",
        topic=topic,
    )


def render_roadmap_prompt(topic: str) -> str:
    weeks = requested_weeks(topic) or DEFAULT_PLAN_WEEKS
    output = [
        "Formatting requirements (strict):",
        "- Return only the roadmap in clean markdown, no commentary.",
        "- Title heading, then \"## Overview\" with duration, weekly time budget, prerequisites and lab setup.",
        f"- The overview must state exactly: \"Duration: {weeks} Weeks\".",
        "- Phases as \"## Phase N: <Name> (Weeks X-Y)\".",
        f"- Weeks as \"### Week N: <Theme>\" for every week from Week 1 through Week {weeks}, no gaps.",
        "- Under each week, exactly three flat bullets: **Learn:**, **Do:** and **Deliverable:**.",
        "- Keep each bullet to one line (18 words or fewer).",
        "- Finish with \"## Tools (Optional)\" and \"## Practice Platforms\".",
        "- Use only \"-\" bullets. No tables, no nested lists, no inline bullets.",
    ]
    return assemble_prompt(
        [output, _safety_block()],
        guidance="Create a progressive security learning roadmap with phases, skills and weekly milestones.",
        topic=topic,
    )


def render_quiz_prompt(topic: str) -> str:
    questions = topic_field(topic, "Questions") or "5"
    output = [
        "Output format requirements (strict):",
        "- Return only the quiz in clean markdown, no commentary and no tables.",
        "- Start with a short title heading such as \"## SQL Injection Quiz\".",
        f"- Under \"### Questions\" write exactly {questions} multiple-choice questions:",
        "  Q1. <question>",
        "  A) <option>",
        "  B) <option>",
        "  C) <option>",
        "  D) <option>",
        "- Leave a blank line between questions. One correct answer each.",
        "- Do not ask open-ended why/explain/describe questions.",
        "- End with a section titled exactly \"## Answer Key\".",
        f"- The answer key has exactly {questions} lines like \"Q1: B\" with no reasoning.",
    ]
    return assemble_prompt(
        [output, _safety_block()],
        guidance="Create a multiple-choice security quiz with four options per question and a separate answer key.",
        topic=topic,
    )


def certification_guidance(certification: str) -> list[str]:
    label = certification.strip() or "the selected certification"
    return [
        f"- Certification target: \"{label}\". Tailor every week to that exam's style and expectations.",
        "- Avoid one-size-fits-all roadmap language; make the flow certification-specific.",
        "- In Certification Alignment Notes, justify how structure, labs, reporting and milestones match it.",
        "- Keep the flow engagement-shaped: recon, foothold, escalation or pivot, then reporting.",
    ]


def focus_weighting_guidance(focus_area: str, weeks: int) -> list[str]:
    focus = focus_area.strip()
    if not focus:
        return ["- Keep topic weighting realistic for the learner profile and certification."]
    dominant = max(2, math.ceil(weeks * 0.6))
    attack_chain = max(1, math.ceil(weeks * 0.2))
    supporting = max(1, weeks - dominant - attack_chain)
    return [
        f"- \"{focus}\" must dominate at least {dominant} of {weeks} weeks.",
        f"- Pacing: {dominant} focus weeks, {supporting} supporting-skill weeks, "
        f"{attack_chain} attack-chain simulation and reporting weeks.",
        "- Weeks should read like one engagement, not disconnected topic blocks.",
    ]


def experience_guidance(experience_level: str, focus_area: str) -> list[str]:
    level = experience_level.strip().lower()
    focus = focus_area.strip().lower()
    directory_focus = "active directory" in focus or "ad" in focus.split()
    if level == "beginner":
        foundation = (
            "- Start with Active Directory fundamentals (domain model, identities, trusts, core protocols) "
            "before abuse paths."
            if directory_focus
            else "- Introduce foundations of the focus area before advanced tradecraft."
        )
        return [
            "- Beginner scaling: fundamentals first, advanced techniques later.",
            foundation,
            "- Delay persistence and evasion topics until enumeration and initial access are solid.",
            "- Repeat the enumeration workflow across several weeks and lab targets.",
        ]
    if level == "intermediate":
        return [
            "- Intermediate scaling: keep fundamentals brief, then deepen attack chains and troubleshooting.",
            "- Show progression from repeatable methodology to faster independent execution.",
        ]
    if level == "advanced":
        return ["- Advanced scaling: minimal basics, complex chaining, edge cases and rigorous reporting."]
    return ["- Calibrate depth and pacing to the stated experience level with explicit progression."]


def intensity_guidance(hours_per_week: str) -> list[str]:
    try:
        hours = int(hours_per_week.strip().split()[0])
    except (ValueError, IndexError):
        hours = 0
    if hours < INTENSITY_HOURS_THRESHOLD:
        return ["- Keep the weekly workload realistic for the stated hours per week."]
    return [
        f"- Intensity mode ({hours}h/week): suggest a daily structure such as 4-5 hour blocks.",
        "- Add a weekend full-chain simulation block each week.",
        "- Give explicit time splits (enumeration %, exploitation %, reporting %).",
    ]


def render_study_plan_prompt(topic: str) -> str:
    weeks = requested_weeks(topic) or DEFAULT_PLAN_WEEKS
    certification = topic_field(topic, "Certification")
    focus_area = topic_field(topic, "Primary Focus Area")
    sections = [f"  {idx}) ## {title}" for idx, title in enumerate(STUDY_PLAN_SECTIONS, start=1)]
    output = [
        "Study plan output requirements (strict):",
        "- Return only the study plan in clean markdown, no commentary.",
        "- Use exactly these H2 sections in this order:",
        *sections,
        "- Overview Summary is 3-5 concise sentences.",
        "- Weekly Breakdown is a markdown table with columns: " + " | ".join(TABLE_COLUMNS) + ".",
        f"- Include one row for every week from Week 1 through Week {weeks}, no gaps.",
        "- Keep table cells to 6-14 words. No <br> tags and no bullet lists inside cells.",
        "- Outside the table, use flat \"-\" bullets only.",
        "- Final Exam Readiness Checklist has at least 5 bullets.",
        "- Certification Alignment Notes has at least 3 bullets explaining the fit.",
    ]
    tailoring = [
        "Certification-aware tailoring:",
        *certification_guidance(certification),
        *focus_weighting_guidance(focus_area, weeks),
        *experience_guidance(topic_field(topic, "Experience Level"), focus_area),
        *intensity_guidance(topic_field(topic, "Hours Per Week")),
    ]
    return assemble_prompt(
        [output, tailoring, _safety_block()],
        guidance="Build an offensive security certification study plan for authorized lab practice.",
        topic=topic,
    )


def render_red_team_prompt(topic: str) -> str:
    sections = [f"  {idx}) ## {title}" for idx, title in enumerate(RED_TEAM_SECTIONS, start=1)]
    output = [
        "Red-team brief requirements (strict):",
        "- Use exactly these H2 sections in this order:",
        *sections,
        "- Every section has at least one \"-\" bullet or two full sentences.",
        "- Map activity to MITRE ATT&CK technique IDs (for example T1059.001).",
        "- Defender Notes names concrete telemetry: log sources, event IDs, EDR or SIEM alerts.",
        "- Keep the attack chain high-level and lab-safe: no payloads, no real targets, no evasion for abuse.",
        "- Remind the reader to document findings and hold written permission.",
        "- Headings plus flat \"-\" bullets only. No nested or inline bullets.",
    ]
    return assemble_prompt(
        [output, _safety_block(authorized_scope=True)],
        guidance=(
            "Provide authorized red-team education for labs, CTFs and approved internal tests, "
            "covering attack-chain simulation, detection impact and mitigation mapping."
        ),
        topic=topic,
    )


def render_tools_prompt(topic: str) -> str:
    structure = [
        "Expected structure:",
        "1) Tool categories",
        "2) Starter tools per category",
        "3) Safe basic commands and what each one does",
        "4) Common setup mistakes",
        "5) Lab-only safety reminders",
        "6) Next learning steps",
    ]
    return assemble_prompt(
        [["Teaching style requirements:", *TEACHING_STYLE], _safety_block(), structure],
        guidance="List ethical security tools with basic command examples for authorized labs only.",
        topic=topic,
    )


def render_generic_prompt(topic: str) -> str:
    depth = [
        "Depth requirements:",
        "- Practical depth in compact form: 3-6 sections with short actionable bullets.",
        "- Target roughly 500-1800 characters unless the request needs more detail.",
    ]
    structure = [
        "Expected structure:",
        "1) Overview",
        "2) Core details",
        "3) Practical safe commands",
        "4) Hands-on practice guidance",
        "5) Common pitfalls",
        "6) Next learning steps",
    ]
    return assemble_prompt(
        [["Teaching style requirements:", *TEACHING_STYLE], _safety_block(), depth, structure],
        guidance="Provide a helpful security learning response.",
        topic=topic,
    )


__all__ = [
    "DEFAULT_PLAN_WEEKS",
    "explanation_heading",
    "render_explanation_prompt",
    "render_roadmap_prompt",
    "render_quiz_prompt",
    "certification_guidance",
    "focus_weighting_guidance",
    "experience_guidance",
    "intensity_guidance",
    "render_study_plan_prompt",
    "render_red_team_prompt",
    "render_tools_prompt",
    "render_generic_prompt",
]
