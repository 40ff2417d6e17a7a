"""generate_commit_message tool: deterministic, model-free commit message synthesis."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from ..models import ChangeRecord, CommitMessage, CommitOptions
from .registry import ToolSpec

if TYPE_CHECKING:
    from ..config import ReviewConfig

TOOL_NAME = "generate_commit_message"

# Declared order decides the conventional prefix. fix, style and refactor are
# never assigned by the filename heuristic; they are kept for classifiers that
# can tell those kinds of change apart.
CATEGORIES = ("feat", "fix", "docs", "style", "refactor", "test", "chore")
SOURCE_EXTENSIONS = (".ts", ".js", ".tsx", ".jsx")
TEST_SUFFIX = re.compile(r"\.(test|spec)\.[^/]+$")
DETAILED_EXAMPLES = 3
ELLIPSIS = "..."


class ChangeInput(BaseModel):
    file: StrictStr
    changes: StrictStr


class CommitMessageInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    changes: List[ChangeInput] = Field(description="Array of file changes")
    options: CommitOptions = Field(default_factory=CommitOptions)


def classify(path: str) -> str:
    if "test/" in path or TEST_SUFFIX.search(path):
        return "test"
    if "docs/" in path or path.endswith(".md"):
        return "docs"
    if path.endswith(SOURCE_EXTENSIONS):
        return "feat"
    return "chore"


def categorize(files: Sequence[str]) -> Dict[str, List[str]]:
    buckets: Dict[str, List[str]] = {category: [] for category in CATEGORIES}
    for path in files:
        buckets[classify(path)].append(path)
    return buckets


def _files_phrase(count: int) -> str:
    return f"Update {count} file{'' if count == 1 else 's'}"


def render(buckets: Dict[str, List[str]], total: int, style: str) -> str:
    if style == "conventional":
        primary = next((category for category in CATEGORIES if buckets[category]), "chore")
        return f"{primary}: {_files_phrase(total)}"
    if style == "detailed":
        lines = ["Update:\n"]
        for category in CATEGORIES:
            files = buckets[category]
            if not files:
                continue
            lines.append(f"\n{category}({len(files)}):\n")
            lines.extend(f"- {path}\n" for path in files[:DETAILED_EXAMPLES])
            if len(files) > DETAILED_EXAMPLES:
                lines.append(f"- ...and {len(files) - DETAILED_EXAMPLES} more\n")
        return "".join(lines)
    return _files_phrase(total)


def truncate_message(message: str, max_length: int) -> str:
    if len(message) <= max_length:
        return message
    if max_length <= len(ELLIPSIS):
        return message[:max_length]
    return message[: max_length - len(ELLIPSIS)] + ELLIPSIS


def synthesize_commit_message(
    changes: Sequence[ChangeRecord],
    options: Optional[CommitOptions] = None,
) -> CommitMessage:
    options = options or CommitOptions()
    files = [change.file for change in changes]
    message = render(categorize(files), len(files), options.style)
    return CommitMessage(message=truncate_message(message, options.max_length))


def build_tool(config: "ReviewConfig") -> ToolSpec:  # noqa: ARG001
    def invoke(args: CommitMessageInput) -> dict:
        records = [ChangeRecord(file=item.file, changes=item.changes) for item in args.changes]
        return {"message": synthesize_commit_message(records, args.options).message}

    return ToolSpec(
        name=TOOL_NAME,
        description="Generates a commit message based on the provided changes",
        input_model=CommitMessageInput,
        invoke=invoke,
    )
