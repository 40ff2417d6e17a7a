"""write_markdown tool: persist Markdown content, overwriting or appending."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

from ..types import WriteResult
from .registry import ToolSpec
from .shared import resolve_inside

if TYPE_CHECKING:
    from ..config import ReviewConfig

TOOL_NAME = "write_markdown"
APPEND_SEPARATOR = "\n\n"


class WriteMarkdownInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: StrictStr = Field(description="Markdown content to write")
    file_path: StrictStr = Field(min_length=1, description="Path where to save the markdown file")
    append: StrictBool = Field(default=False, description="Whether to append to an existing file")


def write_markdown(content: str, file_path: Union[str, Path], append: bool = False) -> WriteResult:
    """Write ``content`` to ``file_path``; failures are returned, not raised."""
    target = Path(file_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        if append:
            has_content = target.exists() and target.stat().st_size > 0
            with target.open("a", encoding="utf8", newline="") as handle:
                handle.write(APPEND_SEPARATOR + content if has_content else content)
        else:
            with target.open("w", encoding="utf8", newline="") as handle:
                handle.write(content)
    except OSError as err:
        return {"success": False, "error": err.strerror or str(err)}
    return {"success": True, "filePath": str(target)}


def build_tool(config: "ReviewConfig") -> ToolSpec:
    def invoke(args: WriteMarkdownInput) -> WriteResult:
        target = resolve_inside(config.output_dir, args.file_path)
        return write_markdown(args.content, target, append=args.append)

    return ToolSpec(
        name=TOOL_NAME,
        description=f"Writes content to a markdown file (paths are relative to {config.output_dir})",
        input_model=WriteMarkdownInput,
        invoke=invoke,
    )
