"""Tool-augmented code review for git working copies."""
from __future__ import annotations

__version__ = "0.1.0"
