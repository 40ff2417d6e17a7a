"""Data records shared by the collector, synthesizer, loop, and report."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel

CommitStyle = Literal["conventional", "simple", "detailed"]
StopReason = Literal["model", "step_limit"]

DEFAULT_COMMIT_STYLE: CommitStyle = "conventional"
DEFAULT_COMMIT_MAX_LENGTH = 72


@dataclass(frozen=True)
class ChangeRecord:
    file: str
    changes: str

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.file, "changes": self.changes}


class CommitOptions(BaseModel):
    """Formatting options for the commit message synthesizer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    style: CommitStyle = DEFAULT_COMMIT_STYLE
    max_length: StrictInt = Field(default=DEFAULT_COMMIT_MAX_LENGTH, gt=0)


@dataclass(frozen=True)
class CommitMessage:
    message: str


class RunState(str, Enum):
    RUNNING = "running"
    AWAITING_MODEL = "awaiting_model"
    TOOL_PENDING = "tool_pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TextEmission:
    step: int
    text: str


@dataclass(frozen=True)
class ToolInvocation:
    step: int
    call_id: str
    name: str
    arguments: Dict[str, Any]
    output: Any = None
    error: Optional[str] = None
    # "validation" or "execution" when error is set
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


Step = Union[TextEmission, ToolInvocation]


@dataclass(frozen=True)
class RunResult:
    transcript: Tuple[Step, ...]
    final_text: str
    tool_outputs: Mapping[str, Tuple[Any, ...]]
    steps: int
    stop_reason: StopReason
    state: RunState = RunState.COMPLETED

    @classmethod
    def finalize(
        cls,
        transcript: list,
        text_parts: list,
        tool_outputs: Dict[str, list],
        steps: int,
        stop_reason: StopReason,
    ) -> "RunResult":
        frozen_outputs = MappingProxyType({name: tuple(values) for name, values in tool_outputs.items()})
        return cls(
            transcript=tuple(transcript),
            final_text="".join(text_parts),
            tool_outputs=frozen_outputs,
            steps=steps,
            stop_reason=stop_reason,
        )

    def invocations(self, name: Optional[str] = None) -> Tuple[ToolInvocation, ...]:
        return tuple(
            item for item in self.transcript if isinstance(item, ToolInvocation) and (name is None or item.name == name)
        )


def iso_timestamp(moment: datetime) -> str:
    """Render a UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def filename_timestamp(moment: datetime) -> str:
    return re.sub(r"[:.]", "-", iso_timestamp(moment))


@dataclass(frozen=True)
class ReviewReport:
    commit_message: str
    summary_text: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_markdown(self) -> str:
        return "".join(
            [
                "# Code Review Report\n\n",
                f"**Generated at:** {iso_timestamp(self.timestamp)}\n\n",
                f"**Commit Message Suggestion:**\n```\n{self.commit_message}\n```\n\n",
                "## Review Summary\n\n",
                self.summary_text,
            ]
        )
