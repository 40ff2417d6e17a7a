"""Tests for CLI module."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

PROVIDER_ENV_VARS = [
    "OPENAI_API_KEY",
    "DIFFWARDEN_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_KEY",
    "AZURE_OPENAI_DEPLOYMENT",
    "GEMINI_API_KEY",
    "GOOGLE_GENERATIVE_AI_API_KEY",
    "DIFFWARDEN_PROVIDER",
    "DIFFWARDEN_MODEL",
    "DIFFWARDEN_MAX_STEPS",
    "DIFFWARDEN_EXCLUDE",
]


@pytest.fixture()
def clean_env(sandbox: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return sandbox


def fake_outcome(path: Path):
    from diffwarden.models import RunResult
    from diffwarden.review import ReviewOutcome

    run = RunResult.finalize([], ["review"], {}, steps=1, stop_reason="model")
    return ReviewOutcome(report_path=path, commit_message="chore: Update 1 file", saved=True, run=run)


def test_cli_imports():
    from diffwarden import cli

    assert hasattr(cli, "main")


def test_parse_args_defaults(clean_env: Path):
    from diffwarden.cli import parse_args

    directory, config = parse_args([])
    assert directory == str(Path.cwd())
    assert config.output_dir == clean_env / "reviews"
    assert config.provider == "echo"
    assert config.max_steps == 20
    assert config.commit_style == "conventional"
    assert config.commit_max_length == 100
    assert config.persistence_failure == "fatal"
    assert config.append is False
    assert config.log_json_path is None


def test_parse_args_overrides(clean_env: Path):
    from diffwarden.cli import parse_args

    directory, config = parse_args(
        [
            "some/dir",
            "--provider",
            "echo",
            "--model",
            "tiny",
            "--max-steps",
            "3",
            "--output-dir",
            "out",
            "--append",
            "--style",
            "detailed",
            "--max-length",
            "50",
            "--exclude",
            "vendor",
            "generated",
            "--allow-missing-report",
            "--log-json",
            "run.jsonl",
            "--quiet",
        ]
    )
    assert directory == "some/dir"
    assert config.model == "tiny"
    assert config.max_steps == 3
    assert config.output_dir == (clean_env / "out").resolve()
    assert config.append is True
    assert config.commit_style == "detailed"
    assert config.commit_max_length == 50
    assert config.exclude == ("vendor", "generated")
    assert config.persistence_failure == "report"
    assert config.log_json_path == Path("run.jsonl")
    assert config.enable_human_logs is False


def test_parse_args_rejects_non_positive_steps(clean_env: Path):
    from diffwarden.cli import parse_args

    with pytest.raises(SystemExit):
        parse_args(["--max-steps", "0"])


@patch("diffwarden.cli.run_review")
def test_main_runs_review(mock_run, clean_env: Path):
    from diffwarden.cli import main

    mock_run.return_value = fake_outcome(clean_env / "reviews" / "r.md")
    main(["repo", "--quiet"])

    args, kwargs = mock_run.call_args
    assert args[0] == "repo"
    assert args[1].enable_human_logs is False
    assert "logger" in kwargs


@patch("diffwarden.cli.run_review")
def test_main_exits_non_zero_on_failure(mock_run, clean_env: Path, capsys):
    from diffwarden.cli import main
    from diffwarden.errors import BackendTransportError

    mock_run.side_effect = BackendTransportError("connection refused", step=0)
    with pytest.raises(SystemExit) as excinfo:
        main(["repo", "--quiet"])
    assert excinfo.value.code == 1
    assert "error: step 0: connection refused" in capsys.readouterr().err


@patch("diffwarden.cli.run_review")
def test_main_exits_130_on_interrupt(mock_run, clean_env: Path):
    from diffwarden.cli import main

    mock_run.side_effect = KeyboardInterrupt
    with pytest.raises(SystemExit) as excinfo:
        main(["repo", "--quiet"])
    assert excinfo.value.code == 130


def test_main_end_to_end_with_echo(git_repo: Path, clean_env: Path):
    from diffwarden.cli import main

    (git_repo / "src" / "app.ts").write_text("export const a = 9;\n", encoding="utf8")
    out = clean_env / "reports"
    main([str(git_repo), "--provider", "echo", "--output-dir", str(out), "--quiet"])

    reports = list(out.glob("code-review-*.md"))
    assert len(reports) == 1
    assert "feat: Update 1 file" in reports[0].read_text(encoding="utf8")


def test_main_not_a_repository(clean_env: Path, capsys):
    from diffwarden.cli import main

    with pytest.raises(SystemExit) as excinfo:
        main([str(clean_env), "--provider", "echo", "--quiet"])
    assert excinfo.value.code == 1
    assert "not a git working copy" in capsys.readouterr().err
    assert not (clean_env / "reviews").exists()


def test_parse_args_staged_and_plain(clean_env: Path):
    from diffwarden.cli import parse_args

    _, config = parse_args(["--staged", "--plain"])
    assert config.staged is True
    assert config.pretty_logs is False

    with pytest.raises(SystemExit):
        parse_args(["--pretty"])
