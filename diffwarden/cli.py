"""CLI entrypoint for diffwarden."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console

from .config import DEFAULT_MODELS, DEFAULT_OUTPUT_DIR_NAME, ReviewConfig, ensure_dotenv_loaded
from .errors import ReviewError
from .logger import HumanEntry
from .review import build_logger, run_review

EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="diffwarden [directory] [options]")
    parser.add_argument("directory", nargs="?", help="Directory to review (default: current directory)")
    parser.add_argument("--provider", choices=sorted(DEFAULT_MODELS), help="LLM provider (default: autodetect, else echo)")
    parser.add_argument("--model", help="Model name (default depends on provider)")
    parser.add_argument("--max-steps", type=_positive_int, help="Limit tool/LLM rounds (default: 20)")
    parser.add_argument("--timeout-ms", type=_positive_int, help="Per-LLM-call timeout in milliseconds")
    parser.add_argument("--retries", type=int, help="Transport-level retries for failed LLM calls (default: 0)")
    parser.add_argument("--output-dir", help=f"Where reports are written (default: ./{DEFAULT_OUTPUT_DIR_NAME})")
    parser.add_argument("--append", action="store_true", help="Append to an existing report instead of overwriting")
    parser.add_argument("--staged", action="store_true", help="Review staged changes instead of the working tree")
    parser.add_argument("--style", choices=["conventional", "simple", "detailed"], help="Commit message style")
    parser.add_argument("--max-length", type=_positive_int, help="Commit message length limit (default: 100)")
    parser.add_argument("--exclude", nargs="+", help="Skip files whose path contains any of these substrings")
    parser.add_argument(
        "--allow-missing-report",
        action="store_true",
        help="Finish successfully even if the report cannot be written",
    )
    parser.add_argument("--log-json", dest="log_json", help="Write JSON logs to this file")
    parser.add_argument("--quiet", action="store_true", help="Suppress streamed review and human-readable logs")
    parser.add_argument("--plain", action="store_true", help="Disable rich console output")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> Tuple[str, ReviewConfig]:
    # Load .env early before parsing args
    ensure_dotenv_loaded()
    parsed = build_parser().parse_args(argv)

    directory = parsed.directory or str(Path.cwd())
    output_dir = Path(parsed.output_dir).resolve() if parsed.output_dir else Path.cwd() / DEFAULT_OUTPUT_DIR_NAME
    config = ReviewConfig.from_env(
        output_dir,
        provider=parsed.provider,
        model=parsed.model,
        max_steps=parsed.max_steps,
        request_timeout_ms=parsed.timeout_ms,
        retries=parsed.retries,
        append=parsed.append or None,
        staged=parsed.staged or None,
        commit_style=parsed.style,
        commit_max_length=parsed.max_length,
        exclude=parsed.exclude,
        persistence_failure="report" if parsed.allow_missing_report else None,
        log_json_path=parsed.log_json,
        enable_human_logs=False if parsed.quiet else None,
        pretty_logs=False if parsed.plain else None,
    )
    return directory, config


def main(argv: Optional[List[str]] = None) -> None:
    directory, config = parse_args(argv)
    logger = build_logger(config)
    errors = Console(stderr=True, highlight=False)

    logger.human(HumanEntry(title="review", body=f"Starting code review for directory: {directory}"))
    try:
        outcome = run_review(directory, config, logger=logger)
    except KeyboardInterrupt:
        errors.print("error: interrupted, no report written", style="red", markup=False, soft_wrap=True)
        sys.exit(EXIT_INTERRUPTED)
    except (ReviewError, ValueError) as err:
        errors.print(f"error: {err}", style="red", markup=False, soft_wrap=True)
        sys.exit(EXIT_FAILED)

    logger.stream_text("\n\n")
    if outcome.saved:
        logger.human(HumanEntry(title="review", body=f"Review saved to: {outcome.report_path}"))
    logger.human(HumanEntry(title="review", body=f'Suggested commit message: "{outcome.commit_message}"'))
    logger.human(
        HumanEntry(title="review", body=f"Completed in {outcome.run.steps} step(s) ({outcome.run.stop_reason})")
    )


if __name__ == "__main__":
    main()
