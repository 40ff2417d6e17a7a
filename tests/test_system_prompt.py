"""Tests for review prompts."""
from __future__ import annotations


def test_default_system_prompt_lists_tools():
    from diffwarden.system_prompt import default_system_prompt

    prompt = default_system_prompt(["get_file_changes", "write_markdown"])
    assert "Tools: get_file_changes, write_markdown." in prompt
    assert "expert code reviewer" in prompt


def test_review_prompt_embeds_changes_as_json():
    from diffwarden.models import ChangeRecord
    from diffwarden.system_prompt import REVIEW_FOCUS, build_review_prompt

    prompt = build_review_prompt([ChangeRecord(file="src/ü.ts", changes="+const x = 1;")])
    assert prompt.startswith("Please review the following code changes. Provide a detailed analysis including:\n")
    for item in REVIEW_FOCUS:
        assert f"- {item}" in prompt
    assert '"file": "src/ü.ts"' in prompt
    assert '"changes": "+const x = 1;"' in prompt
    assert prompt.endswith("Please provide a comprehensive review.")


def test_review_prompt_with_no_changes():
    from diffwarden.system_prompt import build_review_prompt

    assert "Changes:\n[]\n\n" in build_review_prompt([])
