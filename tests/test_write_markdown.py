"""Tests for the report writer."""
from __future__ import annotations

from pathlib import Path

import pytest


def test_overwrite_round_trip_is_byte_identical(sandbox: Path):
    from diffwarden.tools.write_markdown import write_markdown

    content = "# Título\r\n\nline two\n\ttabbed — ünïcode\n"
    target = sandbox / "out" / "report.md"
    result = write_markdown(content, target)
    assert result == {"success": True, "filePath": str(target)}
    assert target.read_bytes() == content.encode("utf8")


def test_overwrite_replaces_existing_content(sandbox: Path):
    from diffwarden.tools.write_markdown import write_markdown

    target = sandbox / "report.md"
    target.write_text("old content that is longer", encoding="utf8")
    write_markdown("new", target)
    assert target.read_text(encoding="utf8") == "new"


def test_append_twice_keeps_order_with_separator(sandbox: Path):
    from diffwarden.tools.write_markdown import write_markdown

    target = sandbox / "notes.md"
    write_markdown("first", target)
    write_markdown("second", target, append=True)
    write_markdown("third", target, append=True)
    assert target.read_text(encoding="utf8") == "first\n\nsecond\n\nthird"


def test_append_creates_missing_file(sandbox: Path):
    from diffwarden.tools.write_markdown import write_markdown

    target = sandbox / "deep" / "nested" / "notes.md"
    assert write_markdown("only", target, append=True)["success"] is True
    assert target.read_text(encoding="utf8") == "only"


def test_failure_is_returned_not_raised(sandbox: Path):
    from diffwarden.tools.write_markdown import write_markdown

    blocker = sandbox / "file.txt"
    blocker.write_text("not a directory", encoding="utf8")
    result = write_markdown("content", blocker / "report.md")
    assert result["success"] is False
    assert result["error"]
    assert "filePath" not in result


def test_tool_resolves_relative_to_output_dir(registry, config):
    result = registry.invoke("write_markdown", {"content": "hello", "filePath": "sub/notes.md"})
    target = config.output_dir / "sub" / "notes.md"
    assert result == {"success": True, "filePath": str(target.resolve())}
    assert target.read_text(encoding="utf8") == "hello"


def test_tool_refuses_paths_outside_output_dir(registry, sandbox: Path):
    from diffwarden.errors import ToolExecutionError

    with pytest.raises(ToolExecutionError, match="outside output directory"):
        registry.invoke("write_markdown", {"content": "x", "filePath": "../escape.md"})
    assert not (sandbox / "escape.md").exists()
