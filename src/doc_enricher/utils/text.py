"""Text helpers shared by handlers."""

from __future__ import annotations
from typing import Optional
import re

_WS_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim, like a browser renders text."""
    return _WS_RE.sub(" ", text).strip()


def is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()
