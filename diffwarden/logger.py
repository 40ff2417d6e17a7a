"""Human and JSON logging helpers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.theme import Theme

from .utils import safe_json

VARIANT_STYLES = {
    "error": "red",
    "warn": "yellow",
    "model": "cyan",
    "tool": "green",
}


@dataclass
class HumanEntry:
    title: Optional[str] = None
    body: Optional[str] = None
    variant: str = "info"


class Logger:
    def __init__(
        self,
        provider: str,
        model: str,
        log_json_path: Optional[Path] = None,
        enable_human_logs: bool = True,
        pretty: bool = True,
        console: Optional[Console] = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.log_path = Path(log_json_path) if log_json_path else None
        self.enable_human_logs = enable_human_logs
        self.enable_file_logs = self.log_path is not None
        self.pretty = pretty
        self.console = console or (Console(theme=_theme(), highlight=False) if pretty else None)

    def start_spinner(self) -> Callable[[], None]:
        if not self.pretty or not self.enable_human_logs or not self.console:
            return lambda: None
        status = self.console.status("waiting for model", spinner="dots")
        status.start()
        stopped = False

        def stop() -> None:
            nonlocal stopped
            if not stopped:
                stopped = True
                status.stop()

        return stop

    def human(self, entry: HumanEntry) -> None:
        if not self.enable_human_logs:
            return
        title = entry.title or "info"
        body = entry.body or ""
        variant = entry.variant or "info"
        if self.console:
            style = VARIANT_STYLES.get(variant, "cyan")
            prefix = f"[{variant}]" if variant in VARIANT_STYLES else "[info]"
            self.console.print(f"{prefix} {title}", markup=False)
            if body:
                self.console.print(body, style=style, markup=False)
            return
        print(f"{title}: {body}")

    def stream_text(self, chunk: str) -> None:
        """Write a fragment of model output as-is, without a trailing newline."""
        if not self.enable_human_logs or not chunk:
            return
        if self.console:
            self.console.print(chunk, end="", markup=False, highlight=False, soft_wrap=True)
            self.console.file.flush()
            return
        print(chunk, end="", flush=True)

    def json(self, entry: Dict[str, Any]) -> None:
        if not self.enable_file_logs or self.log_path is None:
            return
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider,
            "model": self.model,
            **entry,
        }
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf8") as fh:
                fh.write(safe_json(payload))
                fh.write("\n")
        except OSError:
            if self.console:
                self.console.print("log write failed", style="red")


def _theme() -> Theme:
    return Theme({"info": "cyan", **VARIANT_STYLES})
