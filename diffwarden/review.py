"""End-to-end review: collect changes, run the tool loop, write the report."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .cancellation import CancellationToken
from .config import ReviewConfig
from .errors import PersistenceError
from .llm import build_client
from .logger import HumanEntry, Logger
from .models import CommitOptions, ReviewReport, RunResult, filename_timestamp
from .runner import TextSink, ToolLoop
from .system_prompt import build_review_prompt, default_system_prompt
from .tools import discover_tools
from .tools.generate_commit_message import synthesize_commit_message
from .tools.get_file_changes import collect_changes
from .tools.write_markdown import write_markdown
from .types import LLMClient


@dataclass(frozen=True)
class ReviewOutcome:
    report_path: Path
    commit_message: str
    saved: bool
    run: RunResult
    error: Optional[str] = None


def build_logger(config: ReviewConfig) -> Logger:
    return Logger(
        provider=config.provider,
        model=config.model,
        log_json_path=config.log_json_path,
        enable_human_logs=config.enable_human_logs,
        pretty=config.pretty_logs,
    )


def report_path_for(output_dir: Path, moment: datetime) -> Path:
    return Path(output_dir) / f"code-review-{filename_timestamp(moment)}.md"


async def generate_review_report(
    directory: Union[str, Path],
    config: ReviewConfig,
    *,
    client: Optional[LLMClient] = None,
    logger: Optional[Logger] = None,
    on_text: Optional[TextSink] = None,
    cancellation: Optional[CancellationToken] = None,
    report_path: Optional[Path] = None,
) -> ReviewOutcome:
    """Review the working-copy changes under ``directory`` and persist a Markdown report.

    The report is written only after the loop completes; a failed or cancelled
    run raises before anything is written.
    """
    logger = logger or build_logger(config)
    moment = datetime.now(timezone.utc)
    target = Path(report_path) if report_path else report_path_for(config.output_dir, moment)

    changes = await asyncio.to_thread(
        collect_changes,
        directory,
        exclude=config.exclude,
        max_chars=config.diff_char_limit,
        staged=config.staged,
    )
    logger.json({"type": "changes_collected", "directory": str(directory), "files": [change.file for change in changes]})

    options = CommitOptions(style=config.commit_style, max_length=config.commit_max_length)
    commit_message = synthesize_commit_message(changes, options).message

    client = client or build_client(config.provider, config.model, timeout_ms=config.request_timeout_ms, retries=config.retries)
    tool_config = config if config.root_dir else config.with_overrides(root_dir=Path(directory).expanduser().resolve())
    registry = discover_tools(tool_config, logger=logger)
    loop = ToolLoop(
        client,
        registry,
        logger,
        model=config.model,
        max_steps=config.max_steps,
        on_text=on_text or logger.stream_text,
        cancellation=cancellation,
        fail_on_unrecovered_tool_error=config.fail_on_unrecovered_tool_error,
    )
    result = await loop.run(build_review_prompt(changes), default_system_prompt(registry.names()))
    if cancellation is not None:
        cancellation.check()

    report = ReviewReport(commit_message=commit_message, summary_text=result.final_text, timestamp=moment)
    written = await asyncio.to_thread(write_markdown, report.to_markdown(), target, config.append)
    if not written.get("success"):
        error = written.get("error") or "unknown error"
        logger.json({"type": "report_write_failed", "path": str(target), "error": error})
        if config.persistence_failure == "fatal":
            raise PersistenceError(str(target), error)
        logger.human(HumanEntry(title="report", body=f"review not saved to {target}: {error}", variant="warn"))
        return ReviewOutcome(report_path=target, commit_message=commit_message, saved=False, run=result, error=error)

    logger.json({"type": "report_written", "path": str(target), "steps": result.steps, "stopReason": result.stop_reason})
    return ReviewOutcome(report_path=target, commit_message=commit_message, saved=True, run=result)


def run_review(directory: Union[str, Path], config: ReviewConfig, **kwargs) -> ReviewOutcome:
    return asyncio.run(generate_review_report(directory, config, **kwargs))
