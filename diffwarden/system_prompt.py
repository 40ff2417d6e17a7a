"""Prompts sent to the model for a review run."""
from __future__ import annotations

from typing import List, Sequence

from .models import ChangeRecord
from .utils import safe_json

REVIEW_FOCUS = [
    "Code quality issues",
    "Potential bugs",
    "Security concerns",
    "Performance optimizations",
    "Best practices violations",
    "Any other relevant feedback",
]


def default_system_prompt(tool_names: List[str]) -> str:
    tools = ", ".join(tool_names)
    return "\n".join(
        [
            "You are an expert code reviewer with years of experience in software engineering, clean code practices, and collaborative development.",
            f"Tools: {tools}.",
            "Review only the changes you are given or fetch with get_file_changes; do not invent files, paths, or line numbers.",
            "Be constructive and specific: explain why something matters and suggest a concrete improvement.",
            "Call out correctness, security, and performance problems before style nits; skip praise-free filler.",
            "Reply in Markdown. Stop calling tools once you have what you need and give the final review.",
        ]
    )


def build_review_prompt(changes: Sequence[ChangeRecord]) -> str:
    focus = "\n".join(f"- {item}" for item in REVIEW_FOCUS)
    serialized = safe_json([change.to_dict() for change in changes], indent=2)
    return (
        "Please review the following code changes. Provide a detailed analysis including:\n"
        f"{focus}\n\n"
        f"Changes:\n{serialized}\n\n"
        "Please provide a comprehensive review."
    )
