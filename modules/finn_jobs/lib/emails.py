"""
Email discovery and cleaning for noisy posting text.

FINN postings write addresses in every imaginable way: glued to the next label
("kari@firma.noTelefon"), obfuscated ("kari [at] firma [dot] no"), wrapped in
entities or punctuation. Two public entry points:

  - extract_emails(text): discover candidates in free text, clean each one.
  - clean_email(raw): clean/validate a single candidate; None if nothing survives.

clean_email is idempotent: clean_email(clean_email(x)) == clean_email(x).
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable

from .strategies import first_success

KNOWN_TLDS: tuple[str, ...] = (
    "no", "com", "org", "net", "info", "se", "dk", "io", "co", "uk", "us", "eu",
    "de", "fr", "it", "es", "pl", "ru", "nl", "be", "me", "biz", "group",
)

# Labels that commonly run straight into an address on the page
CONTAMINATION_WORDS: tuple[str, ...] = (
    "telefon", "tlf", "tel", "mobil", "mob", "phone", "kontakt", "epost", "e-post", "www", "http",
)

_LOCAL = r"[A-Za-z0-9._%+-]+"
_TLD_ALT = "|".join(sorted(KNOWN_TLDS, key=len, reverse=True))

# Candidate discovery patterns
_STRICT_RE = re.compile(r"(?<![\w.%+-])" + _LOCAL + r"@[A-Za-z0-9.-]+\.[A-Za-z]{2,}(?!\w)")
_TLD_RES = tuple(
    re.compile(_LOCAL + r"@[A-Za-z0-9.-]+?\." + tld + r"(?![a-z])", re.IGNORECASE) for tld in KNOWN_TLDS
)
_PERMISSIVE_RE = re.compile(r"[\w.%+-]+@[\w-]+(?:\.[\w-]+)+")

# Validation patterns (full match)
_VALID_RE = re.compile(
    r"^" + _LOCAL + r"@[a-z0-9-]+(?:\.[a-z0-9-]+)*\.(?:" + _TLD_ALT + r")$",
    re.IGNORECASE,
)
_LOOSE_RE = re.compile(r"^" + _LOCAL + r"@[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,3}$")

_AT_TOKEN_RE = re.compile(r"\s*[\[\(\{]\s*(?:at|alfa|krøllalfa)\s*[\]\)\}]\s*", re.IGNORECASE)
_DOT_TOKEN_RE = re.compile(r"\s*[\[\(\{]\s*(?:dot|punkt|punktum)\s*[\]\)\}]\s*", re.IGNORECASE)
_NOISE_RE = re.compile(r"[^A-Za-z0-9._%+@-]")
_DOMAIN_RUN_RE = re.compile(r"[a-z0-9.-]*")


# ---------------------------------------------------------------------------
# Candidate discovery
# ---------------------------------------------------------------------------
def expand_obfuscations(text: str) -> str:
    """Turn "[at]"/"(at)" into "@" and "[dot]"/"(dot)"/"(punktum)" into "."."""
    text = _AT_TOKEN_RE.sub("@", text)
    return _DOT_TOKEN_RE.sub(".", text)


def _strict_candidates(text: str) -> list[str]:
    return _STRICT_RE.findall(text)


def _tld_anchored_candidates(text: str) -> list[str]:
    hits: dict[int, str] = {}
    for rx in _TLD_RES:
        for m in rx.finditer(text):
            hits.setdefault(m.start(), m.group(0))
    return [hits[pos] for pos in sorted(hits)]


def _permissive_candidates(text: str) -> list[str]:
    return _PERMISSIVE_RE.findall(text)


_DISCOVERY: tuple[Callable[[str], list[str]], ...] = (
    _strict_candidates,
    _tld_anchored_candidates,
    _permissive_candidates,
)


def find_email_candidates(text: str | None) -> list[str]:
    """Raw email-like substrings from the first discovery pattern that finds any."""
    if not text:
        return []
    return first_success(_DISCOVERY, expand_obfuscations(html.unescape(text))) or []


def extract_emails(text: str | None) -> list[str]:
    """Cleaned, de-duplicated addresses in order of appearance."""
    out: list[str] = []
    for raw in find_email_candidates(text):
        email = clean_email(raw)
        if email and email not in out:
            out.append(email)
    return out


def first_email(text: str | None) -> str | None:
    emails = extract_emails(text)
    return emails[0] if emails else None


# ---------------------------------------------------------------------------
# Cleaning + validation
# ---------------------------------------------------------------------------
def _scrub(raw: str) -> str:
    s = html.unescape(raw)
    s = expand_obfuscations(s)
    s = re.sub(r"(?i)^\s*mailto:", "", s)
    s = _NOISE_RE.sub("", s)
    s = s.strip("._%+-")
    if "@" not in s:
        return s
    local, _, domain = s.partition("@")
    return f"{local}@{domain.lower()}"


def _split_at(s: str) -> tuple[str, str] | None:
    local, sep, rest = s.partition("@")
    if not sep or not local:
        return None
    # Only the leading run of domain characters can belong to the address
    run = _DOMAIN_RUN_RE.match(rest.lower())
    domain = run.group(0) if run else ""
    return (local, domain) if domain else None


def _rescue_known_tld(local: str, domain: str) -> str | None:
    best: str | None = None
    for tld in KNOWN_TLDS:
        start = domain.find("." + tld)
        while start != -1:
            cut = domain[: start + len(tld) + 1]
            candidate = f"{local}@{cut}"
            if _VALID_RE.match(candidate) and (best is None or len(candidate) > len(best)):
                best = candidate
            start = domain.find("." + tld, start + 1)
    return best


def _rescue_contamination(local: str, domain: str) -> str | None:
    positions = [domain.find(word, 1) for word in CONTAMINATION_WORDS]
    positions = [p for p in positions if p > 0]
    if not positions:
        return None
    candidate = f"{local}@{domain[: min(positions)]}"
    return candidate if _LOOSE_RE.match(candidate) else None


def _rescue_short_tld(local: str, domain: str) -> str | None:
    dot = domain.rfind(".")
    if dot <= 0:
        return None
    m = re.match(r"[a-z]{2,3}", domain[dot + 1 :])
    if not m:
        return None
    candidate = f"{local}@{domain[: dot + 1]}{m.group(0)}"
    return candidate if _LOOSE_RE.match(candidate) else None


_RESCUE_STEPS: tuple[Callable[[str, str], str | None], ...] = (
    _rescue_known_tld,
    _rescue_contamination,
    _rescue_short_tld,
)


def clean_email(raw: str | None) -> str | None:
    """
    Clean one email candidate. Returns the address, or None when it cannot be
    validated even after the rescue steps.
    """
    if not raw:
        return None
    s = _scrub(raw)
    if _VALID_RE.match(s):
        return s
    parts = _split_at(s)
    if parts is None:
        return None
    return first_success(_RESCUE_STEPS, *parts)
