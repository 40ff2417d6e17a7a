"""Tool-augmented generation loop.

One step is one model round. A round streams text to ``on_text`` and may
request tool calls; the calls run one after another, each to completion, and
their results (or errors) are fed back as ``tool`` messages before the next
round. The loop ends when a round carries no tool calls or when ``max_steps``
rounds have run, whichever comes first.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .cancellation import CancellationToken
from .config import DEFAULT_MAX_STEPS, get_system_role
from .errors import BackendTransportError, ReviewError, RunCancelledError, ToolExecutionError, ValidationError
from .logger import HumanEntry, Logger
from .models import RunResult, RunState, Step, StopReason, TextEmission, ToolInvocation
from .system_prompt import default_system_prompt
from .tools.registry import ToolRegistry
from .types import LLMClient, LLMResult, Message, ToolCallDescriptor, ToolDefinition
from .utils import safe_json

TextSink = Callable[[str], Union[None, Awaitable[None]]]


class ToolLoop:
    def __init__(
        self,
        client: LLMClient,
        registry: ToolRegistry,
        logger: Logger,
        *,
        model: str = "",
        max_steps: int = DEFAULT_MAX_STEPS,
        on_text: Optional[TextSink] = None,
        cancellation: Optional[CancellationToken] = None,
        fail_on_unrecovered_tool_error: bool = True,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.client = client
        self.registry = registry
        self.logger = logger
        self.model = model or getattr(client, "model", "")
        self.max_steps = max_steps
        self.on_text = on_text
        self.cancellation = cancellation
        self.fail_on_unrecovered_tool_error = fail_on_unrecovered_tool_error
        self.state = RunState.RUNNING
        self._started = False
        self._transcript: List[Step] = []
        self._text_parts: List[str] = []
        self._tool_outputs: Dict[str, List[Any]] = {}
        # Latest failure per tool, cleared when that tool later succeeds
        self._unresolved: Dict[str, ReviewError] = {}

    async def run(self, prompt: str, system_prompt: Optional[str] = None) -> RunResult:
        if self._started:
            raise RuntimeError("a ToolLoop can only be run once")
        self._started = True
        messages: List[Message] = [
            {"role": get_system_role(self.model), "content": system_prompt or default_system_prompt(self.registry.names())},
            {"role": "user", "content": prompt},
        ]
        tools = self.registry.definitions()
        try:
            for step in range(self.max_steps):
                self._check_cancelled()
                self._transition(RunState.AWAITING_MODEL, step)
                response = await self._request(messages, tools, step)
                tool_calls = response.get("toolCalls") or []
                if not tool_calls:
                    self._transition(RunState.RUNNING, step)
                    return self._complete(step + 1, "model")

                self.logger.human(
                    HumanEntry(
                        title="model",
                        body=f"step {step} → tool calls: {format_tool_calls(tool_calls)}",
                        variant="model",
                    )
                )
                messages.append({"role": "assistant", "content": response.get("content"), "tool_calls": tool_calls})
                self._transition(RunState.TOOL_PENDING, step)
                for call in tool_calls:
                    self._check_cancelled()
                    observation = await self._invoke(call, step)
                    messages.append({"role": "tool", "content": observation, "tool_call_id": call["id"]})
                self._transition(RunState.RUNNING, step)

            self.logger.human(
                HumanEntry(title="model", body=f"stopped after {self.max_steps} steps without a final answer", variant="warn")
            )
            return self._complete(self.max_steps, "step_limit")
        except BaseException as err:
            self._fail(err)
            raise

    async def _request(self, messages: List[Message], tools: List[ToolDefinition], step: int) -> LLMResult:
        streamed = False
        stop_spinner = self.logger.start_spinner()

        async def handle_chunk(chunk: str, done: bool) -> None:  # noqa: ARG001
            nonlocal streamed
            if not chunk or self._cancelled():
                return
            stop_spinner()
            streamed = True
            await self._deliver(chunk)

        try:
            response = await self._race(self.client.generate(messages, tools, stream_handler=handle_chunk))
        except ReviewError:
            raise
        except Exception as err:  # noqa: BLE001
            raise BackendTransportError(str(err) or type(err).__name__, step=step) from err
        finally:
            stop_spinner()

        content = response.get("content") or ""
        # Clients that do not stream still hand their text over exactly once
        if content and not streamed and not self._cancelled():
            await self._deliver(content)
        if content:
            self._transcript.append(TextEmission(step=step, text=content))
        self.logger.json(
            {
                "type": "model_response",
                "step": step,
                "content": response.get("content"),
                "toolCalls": response.get("toolCalls"),
                "usage": response.get("usage"),
            }
        )
        return response

    async def _race(self, pending: Awaitable[LLMResult]) -> LLMResult:
        task = asyncio.ensure_future(pending)
        if self.cancellation is None:
            return await task
        waiter = asyncio.ensure_future(self.cancellation.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise RunCancelledError("Run cancelled while waiting for the model")

    async def _invoke(self, call: ToolCallDescriptor, step: int) -> str:
        name = call["name"]
        arguments = call.get("arguments") or {}
        self.logger.human(HumanEntry(title=name, body=f"args={summarize_args(arguments)}", variant="tool"))
        try:
            output = await asyncio.to_thread(self.registry.invoke, name, arguments)
        except ValidationError as err:
            self._record_failure(call, step, err, "validation")
            return f"validation error: {err}. Correct the arguments and call {name} again."
        except ToolExecutionError as err:
            self._record_failure(call, step, err, "execution")
            return f"error: {err}"

        self._transcript.append(ToolInvocation(step=step, call_id=call["id"], name=name, arguments=arguments, output=output))
        self._tool_outputs.setdefault(name, []).append(output)
        self._unresolved.pop(name, None)
        observation = safe_json(output)
        self.logger.human(HumanEntry(title=name, body=f"ok ({len(observation)} chars)", variant="tool"))
        self.logger.json({"type": "tool_result", "step": step, "tool": name, "arguments": arguments, "output": output})
        return observation

    def _record_failure(self, call: ToolCallDescriptor, step: int, err: ReviewError, kind: str) -> None:
        self._transcript.append(
            ToolInvocation(
                step=step,
                call_id=call["id"],
                name=call["name"],
                arguments=call.get("arguments") or {},
                error=str(err),
                error_kind=kind,
            )
        )
        self._unresolved[call["name"]] = err

    async def _deliver(self, chunk: str) -> None:
        self._text_parts.append(chunk)
        if self.on_text:
            result = self.on_text(chunk)
            if hasattr(result, "__await__"):
                await result

    def _complete(self, steps: int, reason: StopReason) -> RunResult:
        # At the step ceiling the last round's tool errors were never shown to the model
        if reason == "model" and self.fail_on_unrecovered_tool_error and self._unresolved:
            raise next(iter(self._unresolved.values()))
        self.state = RunState.COMPLETED
        self.logger.json(
            {
                "type": "run_completed",
                "steps": steps,
                "stopReason": reason,
                "unresolvedTools": sorted(self._unresolved),
            }
        )
        return RunResult.finalize(self._transcript, self._text_parts, self._tool_outputs, steps, reason)

    def _fail(self, err: BaseException) -> None:
        self.state = RunState.FAILED
        self.logger.json({"type": "run_failed", "errorType": type(err).__name__, "error": str(err)})

    def _transition(self, state: RunState, step: int) -> None:
        self.state = state
        self.logger.json({"type": "state", "state": state.value, "step": step})

    def _cancelled(self) -> bool:
        return self.cancellation is not None and self.cancellation.is_cancelled

    def _check_cancelled(self) -> None:
        if self.cancellation is not None:
            self.cancellation.check()


def format_tool_calls(calls: List[ToolCallDescriptor]) -> str:
    return ", ".join(call["name"] for call in calls)


def summarize_args(arguments: Dict[str, Any], limit: int = 200) -> str:
    """One-line rendering of tool arguments with long lists and strings reduced to sizes."""
    if not isinstance(arguments, dict):
        return safe_json(arguments)
    compact: Dict[str, Any] = {}
    for key, value in arguments.items():
        if isinstance(value, list):
            compact[key] = f"<{len(value)} items>"
        elif isinstance(value, str) and len(value) > 80:
            compact[key] = f"<{len(value)} chars>"
        else:
            compact[key] = value
    rendered = safe_json(compact)
    return rendered if len(rendered) <= limit else rendered[: limit - 3] + "..."
