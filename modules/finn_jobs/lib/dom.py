"""
Small helpers over BeautifulSoup for label/value markup.

FINN pages express "label: value" pairs in several shapes:

    <span class="pr-8 font-bold">Sted</span><span>Oslo</span>     (structured)
    <dl><dt>Firma</dt><dd>Acme AS</dd></dl>                      (structured)
    <li><span>Frist</span> 01.03.2025</li>                       (adjacent text)
    <p>Frist: 01.03.2025</p>                                     (free text)
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .utils import clean_text, one_line

LABEL_SELECTOR = "span.font-bold, dt, th, strong, b, label"


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def text_of(el: Tag | None) -> str:
    if el is None:
        return ""
    return one_line(el.get_text(" ", strip=True))


def page_text(root: Tag) -> str:
    """Whole-document text, one text node per line."""
    return clean_text(root.get_text("\n"))


def norm_label(s: str) -> str:
    return one_line(s).strip(" :.").lower()


def absolute_url(href: str | None, base_url: str) -> str | None:
    href = (href or "").strip()
    if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
        return None
    return urljoin(base_url, href)


def label_elements(root: Tag, labels: Iterable[str], selector: str = LABEL_SELECTOR) -> Iterator[Tag]:
    wanted = {norm_label(lbl) for lbl in labels}
    for el in root.select(selector):
        if norm_label(el.get_text(" ", strip=True)) in wanted:
            yield el


def value_after_label(label_el: Tag) -> str:
    if label_el.name == "dt":
        return text_of(label_el.find_next_sibling("dd"))
    if label_el.name == "th":
        return text_of(label_el.find_next_sibling("td"))
    return text_of(label_el.find_next_sibling())


def structured_value(root: Tag, labels: Iterable[str]) -> str:
    """Value held by the element right after a label element."""
    for el in label_elements(root, labels):
        value = value_after_label(el)
        if value:
            return value
    return ""


def adjacent_value(root: Tag, labels: Iterable[str]) -> str:
    """Value written as loose text next to the label, inside the same parent or list item."""
    labels = tuple(labels)
    for el in label_elements(root, labels, selector="span, strong, b, dt, label"):
        if el.parent is None:
            continue
        label_text = text_of(el)
        remainder = text_of(el.parent)
        if remainder.startswith(label_text):
            remainder = remainder[len(label_text) :]
        remainder = remainder.strip(" :-")
        if remainder:
            return remainder
    for li in root.select("li"):
        text = text_of(li)
        for label in labels:
            if text.lower().startswith(label.lower()) and not text[len(label) : len(label) + 1].isalnum():
                rest = text[len(label) :].strip(" :-")
                if rest:
                    return rest
    return ""


def free_text_value(text: str, labels: Iterable[str]) -> str:
    """'Label: value' in running text; the value may sit on the next line."""
    alt = "|".join(re.escape(lbl) for lbl in labels)
    m = re.search(rf"(?im)^[ \t]*(?:{alt})(?!\w)[ \t]*:?[ \t]*\n?[ \t]*(\S[^\n]*)$", text or "")
    return m.group(1).strip() if m else ""
