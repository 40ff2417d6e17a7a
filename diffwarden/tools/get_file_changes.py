"""get_file_changes tool: modified files under a git working copy and their diffs."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

from ..config import DEFAULT_DIFF_CHAR_LIMIT, DEFAULT_EXCLUDES
from ..errors import GitCommandError, NotAVersionControlledDirectoryError
from ..models import ChangeRecord
from .registry import ToolSpec
from .shared import run_captured, truncate_text

if TYPE_CHECKING:
    from ..config import ReviewConfig

TOOL_NAME = "get_file_changes"


class FileChangesInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    root_dir: StrictStr = Field(min_length=1, description="The root directory")
    staged: StrictBool = Field(default=False, description="Diff the index instead of the working tree")


def ensure_work_tree(root: Path) -> Path:
    if not root.is_dir():
        raise NotAVersionControlledDirectoryError(str(root))
    exit_code, stdout, _ = run_captured(["git", "rev-parse", "--is-inside-work-tree"], root)
    if exit_code != 0 or stdout.strip() != "true":
        raise NotAVersionControlledDirectoryError(str(root))
    return root


def _git(args: List[str], root: Path) -> str:
    cmd = ["git", *args]
    exit_code, stdout, stderr = run_captured(cmd, root)
    if exit_code != 0:
        raise GitCommandError(" ".join(cmd), exit_code, stderr)
    return stdout


def list_changed_files(root: Path, staged: bool = False) -> List[str]:
    # Paths come back relative to root so they can be fed straight to `git diff -- <path>`
    args = ["diff", "--name-only", "--relative", "-z"]
    if staged:
        args.append("--cached")
    return [name for name in _git(args, root).split("\0") if name]


def is_excluded(path: str, exclude: Iterable[str]) -> bool:
    return any(pattern in path for pattern in exclude)


def collect_changes(
    root_dir: Union[str, Path],
    *,
    exclude: Iterable[str] = DEFAULT_EXCLUDES,
    max_chars: int = DEFAULT_DIFF_CHAR_LIMIT,
    staged: bool = False,
) -> List[ChangeRecord]:
    """Return one record per modified file, in git's order, with diffs capped at ``max_chars``."""
    root = ensure_work_tree(Path(root_dir).expanduser())
    patterns = tuple(exclude)
    records: List[ChangeRecord] = []
    for name in list_changed_files(root, staged=staged):
        if is_excluded(name, patterns):
            continue
        args = ["diff", "--no-color", "--no-ext-diff"]
        if staged:
            args.append("--cached")
        changes = _git([*args, "--", name], root)
        if changes:
            records.append(ChangeRecord(file=name, changes=truncate_text(changes, max_chars)))
    return records


def resolve_root(raw: str, base: Optional[Path]) -> Path:
    root = Path(raw).expanduser()
    if root.is_absolute():
        return root
    if base is None:
        raise ValueError(f"relative rootDir {raw!r} needs a configured root directory")
    return base / root


def build_tool(config: "ReviewConfig") -> ToolSpec:
    def invoke(args: FileChangesInput) -> List[dict]:
        records = collect_changes(
            resolve_root(args.root_dir, config.root_dir),
            exclude=config.exclude,
            max_chars=config.diff_char_limit,
            staged=args.staged,
        )
        return [record.to_dict() for record in records]

    return ToolSpec(
        name=TOOL_NAME,
        description="Gets the code changes made in given directory (relative paths start at the reviewed directory)",
        input_model=FileChangesInput,
        invoke=invoke,
    )
