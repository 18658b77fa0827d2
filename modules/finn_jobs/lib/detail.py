"""
Detail page extraction: one FINN job ad -> one JobRecord.

Every field is an ordered tuple of strategies (Page -> str); the first one that
returns non-empty text wins. Only a missing title is fatal (ExtractionError);
any other field simply stays empty.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from .contacts import collect_global_contacts, resolve_contacts
from .dom import (
    absolute_url,
    adjacent_value,
    free_text_value,
    label_elements,
    norm_label,
    page_text,
    parse_html,
    structured_value,
    text_of,
)
from .errors import ExtractionError
from .models import JobRecord
from .strategies import first_success
from .utils import clean_text

log = logging.getLogger(__name__)

DESCRIPTION_MAX_CHARS = 2000
TRUNCATION_MARKER = "..."

TITLE_SELECTORS = ("h1.t1", "h2.t2", "h2.t3", "h1.t2", "h1.t3", ".t2", ".t1", "h1")
DESCRIPTION_SECTION_SELECTORS = (
    'section[aria-label="Jobbdetaljer"]',
    ".import-decoration",
    'section:-soup-contains("En vanlig arbeidsdag")',
    '[data-testid="job-description"]',
)
SUBSECTION_HEADINGS = ("Arbeidsoppgaver", "Kvalifikasjoner")
_HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
_SUBTITLE_TAGS = {"p", "span", "a", "h3", "h4"}
SUBTITLE_MAX_CHARS = 60
SUBTITLE_MAX_WORDS = 6

EMPLOYMENT_TYPES = (
    "Fast",
    "Deltid",
    "Heltid",
    "Engasjement",
    "Prosjekt",
    "Sesong",
    "Vikariat",
    "Franchise",
    "Selvstendig næringsdrivende",
    "Timebasert",
)

LOCATION_LABELS = ("Sted", "Arbeidssted")
EMPLOYMENT_LABELS = ("Ansettelsesform",)
EXPIRATION_LABELS = ("Frist", "Søknadsfrist")
PUBLICATION_LABELS = ("Sist endret", "Publisert")
SALARY_LABELS = ("Lønn",)
FINNKODE_LABELS = ("FINN-kode", "Finnkode")
EMPLOYER_SECTION_HEADINGS = ("Om arbeidsgiveren", "Om bedriften")

_FINNKODE_URL_RE = re.compile(r"(?:[?&]finnkode=|/job/ad/)(\d+)")
_LOGO_SUFFIX_RE = re.compile(r"(?i)[\s\-–]*logo\s*$")
_APPLY_TEXT_URL_RE = re.compile(r"(?i)(?:søk(?:nad)?|apply)[^\n]{0,60}?(https?://[^\s<>\"']+)")


@dataclass(frozen=True)
class Page:
    url: str
    soup: BeautifulSoup
    text: str

    @classmethod
    def parse(cls, url: str, html: str) -> Page:
        soup = parse_html(html)
        return cls(url=url, soup=soup, text=page_text(soup))


Strategy = Callable[[Page], str]


def _labeled(labels: Iterable[str]) -> tuple[Strategy, ...]:
    """Label element -> adjacent sibling text -> 'Label: value' in free text."""
    labels = tuple(labels)

    def by_label_element(page: Page) -> str:
        return structured_value(page.soup, labels)

    def by_adjacent_text(page: Page) -> str:
        return adjacent_value(page.soup, labels)

    def by_free_text(page: Page) -> str:
        return free_text_value(page.text, labels)

    return (by_label_element, by_adjacent_text, by_free_text)


# ---------------------------------------------------------------------------
# title
# ---------------------------------------------------------------------------
def _title_element(soup: BeautifulSoup) -> Tag | None:
    for sel in TITLE_SELECTORS:
        for el in soup.select(sel):
            if text_of(el):
                return el
    return None


def title_from_headings(page: Page) -> str:
    return text_of(_title_element(page.soup))


def title_from_meta(page: Page) -> str:
    meta = page.soup.select_one('meta[property="og:title"]')
    return (meta.get("content") or "").strip() if meta else ""


TITLE_STRATEGIES: tuple[Strategy, ...] = (title_from_headings, title_from_meta)


# ---------------------------------------------------------------------------
# company
# ---------------------------------------------------------------------------
def company_from_employer_link(page: Page) -> str:
    return text_of(page.soup.select_one('a[href*="/employer/company/"]'))


def company_from_subtitle(page: Page) -> str:
    """A short name-like line right under the title; sentences and "label: value" lines are skipped."""
    heading = _title_element(page.soup)
    sub = heading.find_next_sibling() if heading is not None else None
    if sub is None or sub.name not in _SUBTITLE_TAGS:
        return ""
    text = text_of(sub)
    if not text or len(text) > SUBTITLE_MAX_CHARS or len(text.split()) > SUBTITLE_MAX_WORDS:
        return ""
    if ":" in text or text.endswith((".", "!", "?")):
        return ""
    return text if text != text_of(heading) else ""


def company_from_definition_list(page: Page) -> str:
    for dt in label_elements(page.soup, ("Firma",), selector="dt"):
        value = text_of(dt.find_next_sibling("dd"))
        if value:
            return value
    return ""


def company_from_logo_alt(page: Page) -> str:
    for img in page.soup.select("img[alt]"):
        alt = " ".join((img.get("alt") or "").split())
        if "logo" in alt.lower():
            name = _LOGO_SUFFIX_RE.sub("", alt).strip()
            if name:
                return name
    return ""


def company_from_free_text(page: Page) -> str:
    value = free_text_value(page.text, ("Firma",))
    if value:
        return value
    for heading in page.soup.select("h2, h3, h4, strong, b"):
        if norm_label(text_of(heading)) not in {norm_label(h) for h in EMPLOYER_SECTION_HEADINGS}:
            continue
        for sib in heading.find_all_next(["h3", "h4", "strong", "b", "p"], limit=3):
            text = text_of(sib)
            if text and len(text) <= 80:
                return text
    return ""


COMPANY_STRATEGIES: tuple[Strategy, ...] = (
    company_from_employer_link,
    company_from_subtitle,
    company_from_definition_list,
    company_from_logo_alt,
    company_from_free_text,
)


# ---------------------------------------------------------------------------
# description
# ---------------------------------------------------------------------------
def truncate_description(text: str, limit: int = DESCRIPTION_MAX_CHARS) -> str:
    text = text or ""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def _description_section(soup: BeautifulSoup) -> Tag | None:
    for sel in DESCRIPTION_SECTION_SELECTORS:
        el = soup.select_one(sel)
        if el is not None:
            return el
    return None


def _is_heading(tag: Tag) -> bool:
    if tag.name in _HEADING_TAGS:
        return True
    strong = tag.find(["strong", "b"]) if tag.name == "p" else None
    return strong is not None and text_of(strong) == text_of(tag)


def _subsection_lines(root: Tag, heading: str) -> list[str]:
    wanted = norm_label(heading)
    for h in root.select("h2, h3, h4, h5, strong, b"):
        if norm_label(text_of(h)) != wanted:
            continue
        block = h
        if h.name in ("strong", "b") and h.parent is not None and h.parent.name == "p":
            block = h.parent
        lines: list[str] = []
        for sib in block.find_next_siblings():
            if _is_heading(sib):
                break
            if sib.name in ("ul", "ol"):
                lines.extend(f"- {text_of(li)}" for li in sib.find_all("li") if text_of(li))
            elif text_of(sib):
                lines.append(text_of(sib))
        if lines:
            return lines
    return []


def description_from_subsections(page: Page) -> str:
    root = _description_section(page.soup) or page.soup
    parts = []
    for heading in SUBSECTION_HEADINGS:
        lines = _subsection_lines(root, heading)
        if lines:
            parts.append("\n".join([f"## {heading}", *lines]))
    return "\n\n".join(parts)


def description_from_section(page: Page) -> str:
    section = _description_section(page.soup)
    if section is None:
        return ""
    return truncate_description(clean_text(section.get_text("\n")))


DESCRIPTION_STRATEGIES: tuple[Strategy, ...] = (description_from_subsections, description_from_section)


# ---------------------------------------------------------------------------
# scalar fields
# ---------------------------------------------------------------------------
def location_from_company_address(page: Page) -> str:
    return text_of(page.soup.select_one('section:-soup-contains("Firmaets beliggenhet") p'))


def employment_type_from_vocabulary(page: Page) -> str:
    for label in EMPLOYMENT_TYPES:
        if re.search(rf"(?<!\w){re.escape(label)}(?!\w)", page.text):
            return label
    return ""


def expiration_from_bold_value(page: Page) -> str:
    for li in page.soup.select('li:-soup-contains("Frist")'):
        value = text_of(li.select_one(".font-bold"))
        if value and norm_label(value) not in {norm_label(lbl) for lbl in EXPIRATION_LABELS}:
            return value
    return ""


def publication_from_time_tag(page: Page) -> str:
    el = page.soup.select_one("time[datetime]")
    return (el.get("datetime") or "").strip() if el else ""


def external_id_from_url(page: Page) -> str:
    m = _FINNKODE_URL_RE.search(page.url)
    return m.group(1) if m else ""


def _digits_only(strategies: tuple[Strategy, ...]) -> tuple[Strategy, ...]:
    def wrap(strategy: Strategy) -> Strategy:
        def run(page: Page) -> str:
            m = re.search(r"\d{5,}", strategy(page) or "")
            return m.group(0) if m else ""

        run.__name__ = strategy.__name__
        return run

    return tuple(wrap(s) for s in strategies)


def application_url_from_button(page: Page) -> str:
    a = page.soup.select_one('a[data-testid="apply-button"], a.button--attention, a[aria-label^="Søk"]')
    return absolute_url(a.get("href") if a else None, page.url) or ""


def application_url_from_link_text(page: Page) -> str:
    for a in page.soup.select("a[href]"):
        label = text_of(a).lower()
        href = a.get("href") or ""
        if label.startswith(("søk", "apply")) and "/search" not in href:
            url = absolute_url(href, page.url)
            if url:
                return url
    return ""


def application_url_from_text(page: Page) -> str:
    m = _APPLY_TEXT_URL_RE.search(page.text)
    return m.group(1).rstrip(".,;)") if m else ""


def logo_from_image(page: Page) -> str:
    img = page.soup.select_one(".company-logo img, img[alt*='logo' i]")
    if img is None:
        return ""
    return absolute_url(img.get("src") or img.get("data-src"), page.url) or ""


def logo_from_meta(page: Page) -> str:
    meta = page.soup.select_one('meta[property="og:image"]')
    return absolute_url(meta.get("content") if meta else None, page.url) or ""


LOCATION_STRATEGIES = (*_labeled(LOCATION_LABELS), location_from_company_address)
EMPLOYMENT_TYPE_STRATEGIES = (*_labeled(EMPLOYMENT_LABELS), employment_type_from_vocabulary)
EXPIRATION_STRATEGIES = (expiration_from_bold_value, *_labeled(EXPIRATION_LABELS))
PUBLICATION_STRATEGIES = (publication_from_time_tag, *_labeled(PUBLICATION_LABELS))
SALARY_STRATEGIES = _labeled(SALARY_LABELS)
EXTERNAL_ID_STRATEGIES = (external_id_from_url, *_digits_only(_labeled(FINNKODE_LABELS)))
APPLICATION_URL_STRATEGIES = (application_url_from_button, application_url_from_link_text, application_url_from_text)
LOGO_STRATEGIES = (logo_from_image, logo_from_meta)


def _field(strategies: tuple[Strategy, ...], page: Page) -> str | None:
    return first_success(strategies, page) or None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def extract_job(url: str, html: str) -> JobRecord:
    """
    Build the complete record for one detail page.

    Raises:
        ExtractionError: no title could be found.
    """
    page = Page.parse(url, html)

    title = first_success(TITLE_STRATEGIES, page)
    if not title:
        raise ExtractionError(f"No title found on {url}")

    found = collect_global_contacts(page.soup)
    contacts = resolve_contacts(page.soup, found)

    record = JobRecord(
        url=url,
        title=title,
        description=first_success(DESCRIPTION_STRATEGIES, page) or "",
        company=first_success(COMPANY_STRATEGIES, page) or "",
        contact_persons=tuple(contacts),
        email=found.email,
        application_url=_field(APPLICATION_URL_STRATEGIES, page),
        location=_field(LOCATION_STRATEGIES, page),
        employment_type=_field(EMPLOYMENT_TYPE_STRATEGIES, page),
        salary=_field(SALARY_STRATEGIES, page),
        publication_date=_field(PUBLICATION_STRATEGIES, page),
        expiration_date=_field(EXPIRATION_STRATEGIES, page),
        external_id=_field(EXTERNAL_ID_STRATEGIES, page),
        company_logo_url=_field(LOGO_STRATEGIES, page),
    )
    log.debug("Extracted %s (%s) with %d contact(s)", record.title, record.external_id, len(contacts))
    return record
