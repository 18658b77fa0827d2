from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Any

_HTML_ESCAPE_QUOTE = True  # keep quotes escaped for attributes

_WS_RE = re.compile(r"[ \t\r\f\v\u00a0\u200b]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def esc(s: str | None) -> str:
    """
    Escape text for HTML contexts (titles, URLs). Do NOT wrap or add tags.
    """
    if s is None:
        return ""
    return html.escape(str(s), quote=_HTML_ESCAPE_QUOTE)


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def clean_text(s: str | None) -> str:
    """Collapse runs of inline whitespace and trim. Newlines are kept."""
    if not s:
        return ""
    lines = [_WS_RE.sub(" ", line).strip() for line in str(s).split("\n")]
    return _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()


def one_line(s: str | None) -> str:
    """Like clean_text, but folds everything onto a single line."""
    return " ".join(clean_text(s).split())
