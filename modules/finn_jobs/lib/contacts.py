"""
Contact person resolution for a FINN job posting.

Exactly one of three markup patterns is used, tried in order:

  1. structured "Kontaktperson" blocks (one contact per block, any number of blocks)
  2. a legacy single "Kontaktperson ..." list item
  3. an inline "Rekrutteringsansvarlig: Name, tlf ..., e-post ..." line

Each pattern is a plain function (soup, GlobalContacts) -> list[ContactPerson].
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

from .dom import label_elements, norm_label, page_text, text_of, value_after_label
from .emails import clean_email, extract_emails, first_email
from .models import ContactPerson
from .phones import find_phones, normalize_phone, occurs_in
from .strategies import first_success

log = logging.getLogger(__name__)

CONTACT_LABELS = ("Kontaktperson", "Kontaktpersoner")
ROLE_LABELS = ("Stillingstittel", "Tittel", "Rolle", "Stilling")
PHONE_LABELS = ("Telefon", "Telefonnummer", "Mobil", "Mobiltelefon", "Mob", "Tlf", "Tlf.")
EMAIL_LABELS = ("E-post", "Epost", "E-mail", "Email")
RECRUITER_LABELS = ("Rekrutteringsansvarlig", "Ansvarlig rekrutterer", "Recruiting manager")

_BLOCK_TAGS = ["ul", "ol", "dl", "section", "article"]
_PAGE_TAGS = {"html", "body", "[document]"}
_NAME_SEPARATOR_RE = re.compile(r"\s*(?:[,;/|(]|\s[-–—]\s)")
_LEGACY_LABEL_RE = re.compile(r"(?i)^.*?kontaktperson(?:er)?\s*:?\s*")


@dataclass(frozen=True)
class GlobalContacts:
    """Phone numbers and emails found anywhere on the page, in document order."""

    phones: tuple[str, ...] = ()
    emails: tuple[str, ...] = ()

    @property
    def phone(self) -> str | None:
        return self.phones[0] if self.phones else None

    @property
    def email(self) -> str | None:
        return self.emails[0] if self.emails else None


def _unique(values: Iterable[str | None]) -> tuple[str, ...]:
    out: list[str] = []
    for v in values:
        if v and v not in out:
            out.append(v)
    return tuple(out)


def collect_global_contacts(soup: BeautifulSoup) -> GlobalContacts:
    text = page_text(soup)
    phones = [normalize_phone(a.get("href", "")) for a in soup.select('a[href^="tel:"]')]
    phones += [normalize_phone(value_after_label(el)) for el in label_elements(soup, PHONE_LABELS)]
    phones += find_phones(text)
    emails = [clean_email(a.get("href", "").split("?")[0]) for a in soup.select('a[href^="mailto:"]')]
    emails += extract_emails(text)
    return GlobalContacts(phones=_unique(phones), emails=_unique(emails))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def clean_name(raw: str | None) -> str:
    name = " ".join((raw or "").split()).strip(" :,;-")
    if not name or len(name) > 80 or "@" in name:
        return ""
    if not re.search(r"[^\W\d_]", name):
        return ""
    return name


def name_before_separator(text: str) -> str:
    return clean_name(_NAME_SEPARATOR_RE.split(text.strip(), maxsplit=1)[0])


def _is_label(el: Tag, labels: Iterable[str]) -> bool:
    wanted = {norm_label(lbl) for lbl in labels}
    return el.name in {"dt", "th", "strong", "b", "label"} and norm_label(text_of(el)) in wanted


def _labels_in(node: Tag, labels: tuple[str, ...]) -> Iterator[Tag]:
    if _is_label(node, labels):
        yield node
    yield from label_elements(node, labels)


def _holds_contact_label(node: Tag) -> bool:
    return any(True for _ in _labels_in(node, CONTACT_LABELS))


def _row_of(container: Tag, el: Tag) -> Tag:
    node = el
    while node.parent is not None and node.parent is not container:
        node = node.parent
    return node


def _holds_contact_details(node: Tag) -> bool:
    if node.select_one('a[href^="tel:"], a[href^="mailto:"]') is not None:
        return True
    return any(True for labels in (ROLE_LABELS, PHONE_LABELS, EMAIL_LABELS) for _ in _labels_in(node, labels))


def _contact_container(label_el: Tag) -> Tag | None:
    """
    The enclosing list/section, or else the nearest ancestor that also holds the
    contact's role, phone or email (or a second contact label).
    """
    block = label_el.find_parent(_BLOCK_TAGS)
    if block is not None:
        return block
    node = label_el.parent
    while node is not None and node.name not in _PAGE_TAGS:
        if _holds_contact_details(node) or sum(1 for _ in label_elements(node, CONTACT_LABELS)) > 1:
            return node
        node = node.parent
    return label_el.parent


def _contact_segment(label_el: Tag) -> list[Tag]:
    """
    The markup that belongs to one contact: its container, or, when several
    contacts share that container, the rows from this contact's label up to the
    next contact label.
    """
    container = _contact_container(label_el)
    if container is None:
        return [label_el]
    if sum(1 for _ in label_elements(container, CONTACT_LABELS)) <= 1:
        return [container]
    row = _row_of(container, label_el)
    segment = [row]
    for sib in row.find_next_siblings():
        if _holds_contact_label(sib):
            break
        segment.append(sib)
    return segment


def _segment_value(segment: list[Tag], labels: tuple[str, ...]) -> str:
    for node in segment:
        for el in _labels_in(node, labels):
            value = value_after_label(el)
            if value:
                return value
    return ""


def _segment_link(segment: list[Tag], scheme: str) -> str:
    for node in segment:
        links = [node] if node.name == "a" else node.select(f'a[href^="{scheme}"]')
        for a in links:
            href = (a.get("href") or "").strip()
            if href.startswith(scheme):
                return href[len(scheme) :].split("?")[0]
    return ""


def _segment_text(segment: list[Tag]) -> str:
    return " ".join(text_of(node) for node in segment)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------
def structured_blocks(soup: BeautifulSoup, found: GlobalContacts) -> list[ContactPerson]:
    contacts: list[ContactPerson] = []
    for label_el in label_elements(soup, CONTACT_LABELS):
        name = clean_name(value_after_label(label_el))
        if not name:
            continue
        segment = _contact_segment(label_el)
        role = _segment_value(segment, ROLE_LABELS) or None
        phone = normalize_phone(_segment_link(segment, "tel:") or _segment_value(segment, PHONE_LABELS))
        email = clean_email(_segment_link(segment, "mailto:") or _segment_value(segment, EMAIL_LABELS))

        if not phone or not email:
            block_text = _segment_text(segment)
            if not phone:
                phone = next((p for p in found.phones if occurs_in(p, block_text)), None)
            if not email:
                email = first_email(block_text) or next(
                    (e for e in found.emails if e.lower() in block_text.lower()), None
                )

        contacts.append(ContactPerson(name=name, role=role, phone_number=phone, email=email))
    return contacts


def legacy_contact_line(soup: BeautifulSoup, found: GlobalContacts) -> list[ContactPerson]:
    for li in soup.select("li"):
        text = text_of(li)
        if "kontaktperson" not in text.lower():
            continue
        name = name_before_separator(_LEGACY_LABEL_RE.sub("", text, count=1))
        if not name:
            continue

        phone = email = None
        for sib in li.find_next_siblings("li") + li.find_previous_siblings("li"):
            sib_text = text_of(sib)
            if not phone:
                phone = normalize_phone(_segment_link([sib], "tel:")) or next(iter(find_phones(sib_text)), None)
            if not email:
                email = clean_email(_segment_link([sib], "mailto:")) or first_email(sib_text)

        return [
            ContactPerson(
                name=name,
                phone_number=phone or found.phone,
                email=email or found.email,
            )
        ]
    return []


def _recruiter_line(soup: BeautifulSoup) -> tuple[str, str] | None:
    label_re = re.compile("|".join(re.escape(lbl) for lbl in RECRUITER_LABELS), re.IGNORECASE)
    for node in soup.find_all(string=label_re):
        block = node.find_parent(["p", "li", "dd", "td", "div"]) or node.parent
        text = text_of(block) if block is not None else str(node)
        m = re.search(rf"({label_re.pattern})\s*:?\s*(.+)", text, re.IGNORECASE)
        if m and m.group(2).strip():
            return m.group(1), m.group(2)
    return None


def recruiter_inline(soup: BeautifulSoup, found: GlobalContacts) -> list[ContactPerson]:
    hit = _recruiter_line(soup)
    if hit is None:
        return []
    role, inline = hit
    name = name_before_separator(inline)
    if not name:
        return []
    phones = find_phones(inline)
    return [
        ContactPerson(
            name=name,
            role=role,
            phone_number=phones[0] if phones else None,
            email=first_email(inline),
        )
    ]


CONTACT_PATTERNS: tuple[Callable[[BeautifulSoup, GlobalContacts], list[ContactPerson]], ...] = (
    structured_blocks,
    legacy_contact_line,
    recruiter_inline,
)


def resolve_contacts(soup: BeautifulSoup, found: GlobalContacts | None = None) -> list[ContactPerson]:
    """Contact persons in document order; empty when no pattern applies."""
    found = found if found is not None else collect_global_contacts(soup)
    contacts = first_success(CONTACT_PATTERNS, soup, found) or []
    log.debug("Resolved %d contact person(s)", len(contacts))
    return contacts
