"""Tools the model may call during a review run."""
from __future__ import annotations

from .registry import ToolRegistry, ToolSpec, discover_tools

__all__ = ["ToolRegistry", "ToolSpec", "discover_tools"]
