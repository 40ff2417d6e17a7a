"""Shared helpers for tool implementations."""
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable, Union


def run_captured(cmd: list[str], cwd: Path) -> tuple[int, str, str]:
    proc = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True, encoding="utf8", errors="replace")
    return proc.returncode, proc.stdout, proc.stderr


def truncate_text(body: str, max_chars: int) -> str:
    return body if len(body) <= max_chars else body[:max_chars]


def resolve_inside(root: Path, raw_path: str) -> Path:
    """Resolve ``raw_path`` against ``root`` and refuse anything that escapes it."""
    base = root.resolve()
    target = (base / raw_path).resolve()
    if base not in target.parents and target != base:
        raise ValueError(f"Path outside output directory: {raw_path}")
    return target


def format_field_path(loc: Iterable[Union[str, int]]) -> str:
    """Render a pydantic error location as ``changes[0].file``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "<root>"
