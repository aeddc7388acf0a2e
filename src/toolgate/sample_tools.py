"""
Tools shipped with the service so a fresh deployment has something to call.

Each is a plain module-level function marked with ``@tool``; the build pass
picks them up through ``APP_TOOL_MODULES`` (default: this module).
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from tools.decorators import tool
from tools.errors import ToolError


class WordStats(BaseModel):
    words: int = Field(ge=0)
    characters: int = Field(ge=0)
    longest: str | None = None


@tool("Echoes input")
def echo(msg: str) -> str:
    return msg


@tool("Adds two integers")
def add(a: int, b: int) -> int:
    return a + b


@tool("Divides a by b; fails when b is zero")
def divide(a: float, b: float) -> float:
    if b == 0:
        raise ToolError("division by zero")
    return a / b


@tool("Counts words and characters in a text")
def word_stats(text: str, top: int | None = None) -> WordStats:
    """With ``top`` only the first ``top`` words count, and characters are those words joined by single spaces."""
    words = text.split()
    if top is not None:
        words = words[: max(0, top)]
    longest = max(words, key=len) if words else None
    return WordStats(words=len(words), characters=len(" ".join(words)), longest=longest)


@tool("Current UTC time in ISO-8601", name="clock.now")
def now() -> str:
    return datetime.now(timezone.utc).isoformat()
