"""Configuration helpers and defaults."""
from __future__ import annotations

from dataclasses import dataclass, replace
from os import getenv
from pathlib import Path
from typing import Any, Literal, Optional, Tuple

from dotenv import load_dotenv

from .models import DEFAULT_COMMIT_STYLE, CommitStyle

DEFAULT_PROVIDER = "echo"
DEFAULT_MODELS = {
    "echo": "echo",
    "openai": "gpt-4o-mini",
    "azure": "gpt-4o-mini",
    "gemini": "gemini-2.5-flash",
}
DEFAULT_MAX_STEPS = 20
DEFAULT_REQUEST_TIMEOUT_MS: Optional[int] = None

# Diff text per file is capped before it reaches the prompt
DEFAULT_DIFF_CHAR_LIMIT = 10000
DEFAULT_EXCLUDES: Tuple[str, ...] = ("dist", "bun.lock", "node_modules")

DEFAULT_OUTPUT_DIR_NAME = "reviews"
# The report's commit suggestion is allowed more room than a bare subject line
DEFAULT_REPORT_COMMIT_MAX_LENGTH = 100

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

PersistencePolicy = Literal["fatal", "report"]

# Track if we've loaded .env
_dotenv_loaded = False


def ensure_dotenv_loaded(start: Optional[Path] = None) -> None:
    """Load the nearest .env file (walking up to home) if not already loaded."""
    global _dotenv_loaded
    if _dotenv_loaded:
        return

    origin = (start or Path.cwd()).resolve()
    env_file = origin / ".env"
    if env_file.exists():
        load_dotenv(env_file)
    else:
        for parent in origin.parents:
            env_file = parent / ".env"
            if env_file.exists():
                load_dotenv(env_file)
                break
            if parent == Path.home():
                break

    _dotenv_loaded = True


def detect_provider() -> str:
    """Autodetect provider based on available environment variables."""
    ensure_dotenv_loaded()

    explicit = getenv("DIFFWARDEN_PROVIDER")
    if explicit in DEFAULT_MODELS:
        return explicit

    # Check Azure first (more specific)
    azure_endpoint = getenv("DIFFWARDEN_AZURE_OPENAI_ENDPOINT") or getenv("AZURE_OPENAI_ENDPOINT")
    azure_key = getenv("DIFFWARDEN_AZURE_OPENAI_KEY") or getenv("AZURE_OPENAI_KEY")
    azure_deployment = getenv("DIFFWARDEN_AZURE_OPENAI_DEPLOYMENT") or getenv("AZURE_OPENAI_DEPLOYMENT")
    if azure_endpoint and azure_key and azure_deployment:
        return "azure"

    if getenv("DIFFWARDEN_OPENAI_API_KEY") or getenv("OPENAI_API_KEY"):
        return "openai"

    if getenv("GEMINI_API_KEY") or getenv("GOOGLE_GENERATIVE_AI_API_KEY"):
        return "gemini"

    return DEFAULT_PROVIDER


def default_model(provider: str) -> str:
    return getenv("DIFFWARDEN_MODEL") or DEFAULT_MODELS.get(provider, DEFAULT_MODELS["openai"])


def env_int(name: str, fallback: int) -> int:
    raw = getenv(name)
    if raw is None:
        return fallback
    try:
        value = int(raw)
    except ValueError:
        return fallback
    return value if value > 0 else fallback


def env_list(name: str) -> list[str]:
    raw = getenv(name, "")
    parts = [part.strip() for part in raw.split(",")]
    return [part for part in parts if part]


def is_o_series_model(model: str) -> bool:
    """Check if model is an o-series (reasoning) model that uses developer role.

    O-series models (o1, o3, o4, etc.) use 'developer' role instead of 'system'.
    This includes Azure deployments that may have custom names but contain 'o1', 'o3', etc.
    """
    model_lower = model.lower()
    o_patterns = ("o1", "o3", "o4", "gpt-5")
    for pattern in o_patterns:
        if pattern in model_lower:
            return True
    return False


def get_system_role(model: str) -> str:
    """Returns 'developer' for o-series models, 'system' for others."""
    return "developer" if is_o_series_model(model) else "system"


@dataclass(frozen=True)
class ReviewConfig:
    """Read-only settings for one or more review runs.

    Nothing here falls back to the process working directory; the CLI resolves
    ``output_dir`` once and passes it in.
    """

    output_dir: Path
    # Base for relative rootDir values passed to get_file_changes
    root_dir: Optional[Path] = None
    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODELS[DEFAULT_PROVIDER]
    max_steps: int = DEFAULT_MAX_STEPS
    request_timeout_ms: Optional[int] = DEFAULT_REQUEST_TIMEOUT_MS
    retries: int = 0
    diff_char_limit: int = DEFAULT_DIFF_CHAR_LIMIT
    exclude: Tuple[str, ...] = DEFAULT_EXCLUDES
    staged: bool = False
    commit_style: CommitStyle = DEFAULT_COMMIT_STYLE
    commit_max_length: int = DEFAULT_REPORT_COMMIT_MAX_LENGTH
    append: bool = False
    persistence_failure: PersistencePolicy = "fatal"
    fail_on_unrecovered_tool_error: bool = True
    log_json_path: Optional[Path] = None
    enable_human_logs: bool = True
    pretty_logs: bool = True

    @classmethod
    def from_env(cls, output_dir: Path, **overrides: Any) -> "ReviewConfig":
        """Build a config from DIFFWARDEN_* variables; ``None`` overrides are ignored."""
        ensure_dotenv_loaded()
        provider = overrides.pop("provider", None) or detect_provider()
        excludes = tuple(env_list("DIFFWARDEN_EXCLUDE")) or DEFAULT_EXCLUDES
        config = cls(
            output_dir=Path(output_dir),
            provider=provider,
            model=default_model(provider),
            max_steps=env_int("DIFFWARDEN_MAX_STEPS", DEFAULT_MAX_STEPS),
            diff_char_limit=env_int("DIFFWARDEN_DIFF_LIMIT", DEFAULT_DIFF_CHAR_LIMIT),
            exclude=excludes,
        )
        return config.with_overrides(**overrides)

    def with_overrides(self, **overrides: Any) -> "ReviewConfig":
        values = {key: value for key, value in overrides.items() if value is not None}
        if "exclude" in values:
            values["exclude"] = tuple(values["exclude"])
        if "output_dir" in values:
            values["output_dir"] = Path(values["output_dir"])
        if "root_dir" in values:
            values["root_dir"] = Path(values["root_dir"])
        if "log_json_path" in values:
            values["log_json_path"] = Path(values["log_json_path"])
        return replace(self, **values)
