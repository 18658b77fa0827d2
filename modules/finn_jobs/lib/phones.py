from __future__ import annotations

import re

# "+47 912 34 567", "0047 22334455", "912 34 567", "22-33-44-55".
# Each shape has a fixed digit count; digits that follow after a space belong to the next token.
PHONE_RE = re.compile(
    r"""
    (?<![\w+])
    (?:
        (?:\+|00)47[ -]?(?:\d[ -]?){7}\d                  # Norwegian country code + 8 digits
      | (?:\+|00)[1-9]\d{0,2}[ -]?(?:\d[ -]?){6,11}\d     # other country codes
      | (?:\d[ -]?){7}\d                                  # domestic, 8 digits
    )
    (?!\d)
    """,
    re.VERBOSE,
)

_SEPARATORS_RE = re.compile(r"[\s\-.()]")
# "2020 - 2024" is a year range, not a number
_RANGE_RE = re.compile(r"\s-|-\s|\s{2,}")


def digits(s: str) -> str:
    return re.sub(r"\D", "", s or "")


def is_plausible_phone(s: str) -> bool:
    """
    Domestic numbers have exactly 8 digits; international ones carry a +/00
    prefix and 10-15 digits. Anything else (FINN-kode, org.nr, dates) is rejected.
    """
    s = (s or "").strip()
    if _RANGE_RE.search(s):
        return False
    n = len(digits(s))
    if s.startswith("+") or s.startswith("00"):
        return 10 <= n <= 15
    return n == 8


def normalize_phone(s: str | None) -> str | None:
    if not s:
        return None
    s = re.sub(r"(?i)^\s*tel:", "", s)
    s = " ".join(s.split()).strip(" -")
    return s if is_plausible_phone(s) else None


def find_phones(text: str | None) -> list[str]:
    """Plausible phone numbers in order of appearance, de-duplicated by digits."""
    out: list[str] = []
    seen: set[str] = set()
    for m in PHONE_RE.finditer(text or ""):
        phone = normalize_phone(m.group(0))
        if phone and digits(phone) not in seen:
            seen.add(digits(phone))
            out.append(phone)
    return out


def occurs_in(candidate: str, text: str | None) -> bool:
    """True if candidate appears in text, ignoring spacing/dash differences."""
    needle = _SEPARATORS_RE.sub("", candidate or "")
    if not needle:
        return False
    return needle in _SEPARATORS_RE.sub("", text or "")
