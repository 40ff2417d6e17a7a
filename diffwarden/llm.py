"""LLM client implementations."""
from __future__ import annotations

import json
from os import getenv
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from .config import GEMINI_OPENAI_BASE_URL
from .types import LLMClient, LLMResult, Message, StreamHandler, ToolCallDescriptor, ToolDefinition, UsageStats


async def _emit(stream_handler: StreamHandler, chunk: str, done: bool) -> None:
    result = stream_handler(chunk, done)
    if hasattr(result, "__await__"):
        await result


class EchoClient:
    """Offline client that repeats the last user message; never calls tools."""

    def __init__(self, model: str) -> None:
        self.model = model

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        stream_handler: Optional[StreamHandler] = None,
    ) -> LLMResult:  # noqa: ARG002
        last_user = next((msg for msg in reversed(messages) if msg.get("role") == "user"), None)
        content = f"Echo: {last_user.get('content', '')}" if last_user else "Echo"
        if stream_handler:
            await _emit(stream_handler, content, True)
        return {"content": content}


class OpenAIClient:
    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        default_query: Optional[Dict[str, str]] = None,
        timeout_ms: Optional[int] = None,
        max_retries: int = 0,
    ) -> None:
        if not api_key:
            raise ValueError("an API key is required for this provider (OPENAI_API_KEY, Azure key or GEMINI_API_KEY)")
        self.model = model
        timeout = timeout_ms / 1000.0 if timeout_ms else None
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_query=default_query,
            timeout=timeout,
            max_retries=max(0, max_retries),
        )

    async def generate(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        stream_handler: Optional[StreamHandler] = None,
    ) -> LLMResult:
        request: Dict[str, Any] = {"model": self.model, "messages": _to_openai_messages(messages)}
        if tools:
            request["tools"] = [_to_openai_tool(tool) for tool in tools]
            request["tool_choice"] = "auto"
        if stream_handler:
            return await self._generate_streaming(request, stream_handler)
        completion = await self.client.chat.completions.create(**request)
        if not getattr(completion, "choices", None):
            return {"content": None, "toolCalls": None}
        choice = completion.choices[0].message
        tool_calls = _to_tool_calls(choice.tool_calls)
        content = choice.content if isinstance(choice.content, str) else None
        return {"content": content, "toolCalls": tool_calls, "usage": _extract_usage(completion)}

    async def _generate_streaming(self, request: Dict[str, Any], stream_handler: StreamHandler) -> LLMResult:
        stream = self.client.chat.completions.create(**request, stream=True)
        # Handle both awaitable (real API) and direct async iterator (tests)
        async_stream = stream if hasattr(stream, "__aiter__") else await stream
        content_parts: List[str] = []
        # Accumulate tool calls: {index: {id, name, arguments}}
        tool_call_accum: Dict[int, Dict[str, Any]] = {}
        async for event in async_stream:
            choices = getattr(event, "choices", None) or []
            if not choices:
                continue
            delta = getattr(choices[0], "delta", None)
            if not delta:
                continue
            content = getattr(delta, "content", None)
            if content:
                content_parts.append(content)
                await _emit(stream_handler, content, False)
            for tc in getattr(delta, "tool_calls", None) or []:
                idx = getattr(tc, "index", 0)
                slot = tool_call_accum.setdefault(idx, {"id": "", "name": "", "arguments": ""})
                if getattr(tc, "id", None):
                    slot["id"] = tc.id
                func = getattr(tc, "function", None)
                if func:
                    if getattr(func, "name", None):
                        slot["name"] = func.name
                    if getattr(func, "arguments", None):
                        slot["arguments"] += func.arguments
        await _emit(stream_handler, "", True)
        tool_calls: List[ToolCallDescriptor] = []
        for idx in sorted(tool_call_accum):
            tc = tool_call_accum[idx]
            if tc["id"] and tc["name"]:
                tool_calls.append({"id": tc["id"], "name": tc["name"], "arguments": _parse_arguments(tc["arguments"])})
        return {"content": "".join(content_parts) or None, "toolCalls": tool_calls or None}


def build_client(provider: str, model: str, timeout_ms: Optional[int] = None, retries: int = 0) -> LLMClient:
    if provider == "openai":
        api_key = getenv("DIFFWARDEN_OPENAI_API_KEY") or getenv("OPENAI_API_KEY") or ""
        base_url = getenv("DIFFWARDEN_OPENAI_BASE_URL") or getenv("OPENAI_BASE_URL")
        return OpenAIClient(model, api_key, base_url=base_url, timeout_ms=timeout_ms, max_retries=retries)
    if provider == "azure":
        endpoint = getenv("DIFFWARDEN_AZURE_OPENAI_ENDPOINT") or getenv("AZURE_OPENAI_ENDPOINT")
        api_key = getenv("DIFFWARDEN_AZURE_OPENAI_KEY") or getenv("AZURE_OPENAI_KEY")
        deployment = getenv("DIFFWARDEN_AZURE_OPENAI_DEPLOYMENT") or getenv("AZURE_OPENAI_DEPLOYMENT")
        api_version = getenv("DIFFWARDEN_AZURE_OPENAI_API_VERSION") or getenv("AZURE_OPENAI_API_VERSION") or "2024-10-01-preview"
        if not endpoint or not api_key or not deployment:
            raise ValueError("Azure provider requires endpoint, key, and deployment (DIFFWARDEN_AZURE_OPENAI_ENDPOINT/KEY/DEPLOYMENT)")
        base_url = f"{endpoint.rstrip('/')}/openai/deployments/{deployment}"
        return OpenAIClient(
            model,
            api_key,
            base_url=base_url,
            default_query={"api-version": api_version},
            timeout_ms=timeout_ms,
            max_retries=retries,
        )
    if provider == "gemini":
        api_key = getenv("GEMINI_API_KEY") or getenv("GOOGLE_GENERATIVE_AI_API_KEY") or ""
        base_url = getenv("DIFFWARDEN_GEMINI_BASE_URL") or GEMINI_OPENAI_BASE_URL
        return OpenAIClient(model, api_key, base_url=base_url, timeout_ms=timeout_ms, max_retries=retries)
    return EchoClient(model)


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    # Unparseable arguments become {} so schema validation reports the missing fields
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _to_openai_messages(messages: List[Message]) -> List[Dict[str, Any]]:
    converted: List[Dict[str, Any]] = []
    for msg in messages:
        if msg.get("role") == "assistant" and msg.get("tool_calls"):
            valid_calls = [
                {
                    "id": call["id"],
                    "type": "function",
                    "function": {"name": call["name"], "arguments": json.dumps(call["arguments"])},
                }
                for call in msg.get("tool_calls") or []
                if call.get("id") and call.get("name")
            ]
            converted.append({"role": "assistant", "content": msg.get("content") or "", "tool_calls": valid_calls})
        elif msg.get("role") == "tool":
            converted.append(
                {
                    "role": "tool",
                    "content": msg.get("content") or "",
                    "tool_call_id": msg.get("tool_call_id") or "",
                }
            )
        else:
            converted.append({"role": msg["role"], "content": msg.get("content") or ""})
    return converted


def _to_openai_tool(tool: ToolDefinition) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool["description"],
            "parameters": tool["parameters"],
        },
    }


def _to_tool_calls(calls: Any) -> Optional[List[ToolCallDescriptor]]:
    if not calls:
        return None
    results: List[ToolCallDescriptor] = []
    for call in calls:
        # Skip invalid tool calls (missing id or function name)
        if not getattr(call, "id", None) or not getattr(call, "function", None):
            continue
        if not getattr(call.function, "name", None):
            continue
        results.append({"id": call.id, "name": call.function.name, "arguments": _parse_arguments(call.function.arguments)})
    return results if results else None


def _extract_usage(completion: Any) -> Optional[UsageStats]:
    """Extract usage statistics from API response, including prompt cache info."""
    usage = getattr(completion, "usage", None)
    if not usage:
        return None

    stats: UsageStats = {
        "prompt_tokens": getattr(usage, "prompt_tokens", 0),
        "completion_tokens": getattr(usage, "completion_tokens", 0),
        "total_tokens": getattr(usage, "total_tokens", 0),
    }

    details = getattr(usage, "prompt_tokens_details", None)
    if details:
        cached = getattr(details, "cached_tokens", 0)
        if cached:
            stats["cached_tokens"] = cached

    return stats
