"""General utilities shared across diffwarden modules."""
from __future__ import annotations

import json
from typing import Any


def safe_json(value: Any, indent: int | None = None) -> str:
    try:
        return json.dumps(value, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError):
        return "<unserializable>"
