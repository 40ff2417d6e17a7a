from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from diffwarden.config import ReviewConfig
from diffwarden.logger import Logger
from diffwarden.tools import ToolRegistry, discover_tools

Response = Union[Dict[str, Any], Exception, Callable[[List[dict]], Dict[str, Any]]]


class ScriptedClient:
    """Fake LLM client that replays canned responses; the last one repeats forever."""

    def __init__(self, responses: List[Response], chunk_size: Optional[int] = 4, model: str = "scripted") -> None:
        self.responses = list(responses)
        self.chunk_size = chunk_size
        self.model = model
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, messages, tools=None, stream_handler=None):
        self.calls.append({"messages": [dict(message) for message in messages], "tools": tools})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            item = item(messages)
        content = item.get("content")
        if stream_handler and content and self.chunk_size:
            for start in range(0, len(content), self.chunk_size):
                result = stream_handler(content[start : start + self.chunk_size], False)
                if hasattr(result, "__await__"):
                    await result
            result = stream_handler("", True)
            if hasattr(result, "__await__"):
                await result
        return dict(item)


def tool_call(name: str, arguments: Dict[str, Any], call_id: str = "call-1") -> Dict[str, Any]:
    return {"id": call_id, "name": name, "arguments": arguments}


def init_git_repo(repo: Path) -> None:
    subprocess.run(["git", "init"], cwd=repo, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    subprocess.run(["git", "config", "user.email", "test@example.com"], cwd=repo, check=True)
    subprocess.run(["git", "config", "user.name", "Tester"], cwd=repo, check=True)
    subprocess.run(["git", "config", "commit.gpgsign", "false"], cwd=repo, check=True)


def commit_all(repo: Path, message: str = "base") -> None:
    subprocess.run(["git", "add", "-A"], cwd=repo, check=True)
    subprocess.run(["git", "commit", "-m", message], cwd=repo, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)


@pytest.fixture()
def sandbox(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    root_cwd = Path.cwd()
    original_env = dict(os.environ)
    # Keep git from discovering a repository above the temp directory
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(root_cwd)
        shutil.rmtree(tmp_path, ignore_errors=True)
        os.environ.clear()
        os.environ.update(original_env)


@pytest.fixture()
def git_repo(sandbox: Path) -> Path:
    repo = sandbox / "repo"
    repo.mkdir()
    init_git_repo(repo)
    (repo / "src").mkdir()
    (repo / "src" / "app.ts").write_text("export const a = 1;\n", encoding="utf8")
    (repo / "README.md").write_text("# demo\n", encoding="utf8")
    commit_all(repo)
    return repo


@pytest.fixture()
def config(sandbox: Path) -> ReviewConfig:
    return ReviewConfig(output_dir=sandbox / "reviews", enable_human_logs=False, pretty_logs=False)


@pytest.fixture()
def quiet_logger() -> Logger:
    return Logger(provider="echo", model="test", enable_human_logs=False, pretty=False)


@pytest.fixture()
def registry(config: ReviewConfig, quiet_logger: Logger) -> ToolRegistry:
    return discover_tools(config, logger=quiet_logger)
