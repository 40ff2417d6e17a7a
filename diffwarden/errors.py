"""Error taxonomy for review runs."""
from __future__ import annotations

from typing import Optional


class ReviewError(Exception):
    """Base class for every error raised by diffwarden."""


class ValidationError(ReviewError):
    """Tool input did not match the tool's schema."""

    def __init__(self, tool: str, path: str, message: str) -> None:
        self.tool = tool
        self.path = path
        self.message = message
        super().__init__(f"invalid input for {tool} at {path}: {message}")


class ToolExecutionError(ReviewError):
    """The operation behind a tool failed."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(f"{tool} failed: {message}")


class UnknownToolError(ReviewError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool {name}")


class DuplicateToolError(ReviewError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool {name} is already registered")


class BackendTransportError(ReviewError):
    """Talking to the model backend failed (network, auth, malformed reply)."""

    def __init__(self, message: str, step: Optional[int] = None) -> None:
        self.step = step
        prefix = f"step {step}: " if step is not None else ""
        super().__init__(f"{prefix}{message}")


class PersistenceError(ReviewError):
    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"could not write {path}: {message}")


class RunCancelledError(ReviewError):
    """The run was aborted through its cancellation token."""


class NotAVersionControlledDirectoryError(ReviewError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"{path} is not a git working copy")


class GitCommandError(ReviewError):
    def __init__(self, command: str, exit_code: int, stderr: str) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(f"`{command}` exited {exit_code}: {detail}")
