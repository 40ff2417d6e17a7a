"""Typed structures used across the diffwarden runtime."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Protocol, TypedDict, Union

Role = Literal["system", "developer", "user", "assistant", "tool"]


class ToolCallDescriptor(TypedDict):
    id: str
    name: str
    arguments: Dict[str, Any]


class Message(TypedDict, total=False):
    role: Role
    content: Optional[str]
    name: Optional[str]
    tool_call_id: Optional[str]
    tool_calls: Optional[List[ToolCallDescriptor]]


class ToolDefinition(TypedDict):
    name: str
    description: str
    parameters: Dict[str, Any]


class UsageStats(TypedDict, total=False):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cached_tokens: int


class LLMResult(TypedDict, total=False):
    content: Optional[str]
    toolCalls: Optional[List[ToolCallDescriptor]]
    usage: Optional[UsageStats]


# Called with (chunk, done); may return an awaitable.
StreamHandler = Callable[[str, bool], Union[None, Awaitable[None]]]


class LLMClient(Protocol):
    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        stream_handler: Optional[StreamHandler] = None,
    ) -> LLMResult:
        ...


class WriteResult(TypedDict, total=False):
    success: bool
    filePath: str
    error: str
