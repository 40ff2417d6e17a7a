"""Tests for logger module."""

from __future__ import annotations

import json
from io import StringIO
from pathlib import Path

from rich.console import Console


def test_logger_human_entry_disabled(capsys):
    from diffwarden.logger import HumanEntry, Logger

    logger = Logger(provider="echo", model="test", enable_human_logs=False)
    logger.human(HumanEntry(title="test", body="content", variant="model"))
    logger.stream_text("chunk")
    assert capsys.readouterr().out == ""


def test_logger_human_entry_with_console():
    from diffwarden.logger import HumanEntry, Logger

    buffer = StringIO()
    console = Console(file=buffer, force_terminal=False, width=200)
    logger = Logger(provider="echo", model="test", console=console)
    logger.human(HumanEntry(title="get_file_changes", body="[red]literal[/red]", variant="tool"))

    output = buffer.getvalue()
    assert "[tool] get_file_changes" in output
    assert "[red]literal[/red]" in output


def test_logger_plain_output(capsys):
    from diffwarden.logger import HumanEntry, Logger

    logger = Logger(provider="echo", model="test", pretty=False)
    logger.human(HumanEntry(title="review", body="saved"))
    logger.stream_text("partial")
    logger.stream_text("")
    assert capsys.readouterr().out == "review: saved\npartial"


def test_logger_json_entry(sandbox: Path):
    from diffwarden.logger import Logger

    log_file = sandbox / "logs" / "log.jsonl"
    logger = Logger(provider="echo", model="test", log_json_path=log_file, enable_human_logs=False)

    logger.json({"type": "test", "data": "värde"})

    record = json.loads(log_file.read_text(encoding="utf8"))
    assert record["type"] == "test"
    assert record["data"] == "värde"
    assert record["provider"] == "echo"
    assert record["model"] == "test"
    assert "timestamp" in record


def test_logger_json_disabled_without_path(sandbox: Path):
    from diffwarden.logger import Logger

    logger = Logger(provider="echo", model="test", enable_human_logs=False)
    logger.json({"type": "ignored"})
    assert list(sandbox.iterdir()) == []


def test_logger_json_multiple_entries(sandbox: Path):
    from diffwarden.logger import Logger

    log_file = sandbox / "multi.jsonl"
    logger = Logger(provider="echo", model="test", log_json_path=log_file, enable_human_logs=False)

    logger.json({"type": "first"})
    logger.json({"type": "second"})

    lines = log_file.read_text(encoding="utf8").splitlines()
    assert [json.loads(line)["type"] for line in lines] == ["first", "second"]


def test_logger_spinner():
    from diffwarden.logger import Logger

    logger = Logger(provider="echo", model="test", enable_human_logs=False)

    stop = logger.start_spinner()
    assert callable(stop)
    stop()


def test_logger_spinner_stop_is_idempotent():
    from diffwarden.logger import Logger

    console = Console(file=StringIO(), force_terminal=False)
    logger = Logger(provider="echo", model="test", console=console)

    stop = logger.start_spinner()
    stop()
    stop()
