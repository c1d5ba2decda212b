from __future__ import annotations

from pipelines.refinement import RefinementOrchestrator, merge_issue_lists

__all__ = [
    "RefinementOrchestrator",
    "merge_issue_lists",
]
