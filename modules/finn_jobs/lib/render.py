from __future__ import annotations

from collections.abc import Iterable

from . import utils
from .models import JobRecord


def build_table(records: Iterable[JobRecord], *, new_urls: Iterable[str] = ()) -> str:
    """
    One HTML table of emitted jobs:

      Title | Company | Location | Deadline | Link

    Rows for URLs in `new_urls` are marked with "(new)" after the title.
    """
    fresh = set(new_urls)
    rows: list[str] = []
    for r in records:
        title = utils.esc(r.title or "(no title)")
        if r.url in fresh:
            title += " <em>(new)</em>"
        link_html = f'<a href="{utils.esc(r.url)}">{utils.esc(r.external_id or r.url)}</a>'
        rows.append(
            "<tr>"
            f"<td>{title}</td>"
            f"<td>{utils.esc(r.company)}</td>"
            f"<td>{utils.esc(r.location)}</td>"
            f"<td>{utils.esc(r.expiration_date)}</td>"
            f"<td>{link_html}</td>"
            "</tr>"
        )
    return (
        "<table border='1' cellspacing='0' cellpadding='6'>"
        "<tr><th>Title</th><th>Company</th><th>Location</th><th>Deadline</th><th>Link</th></tr>"
        + "".join(rows)
        + "</table>"
    )


def wrap_document(content_html: str, *, heading: str | None = None, intro: str | None = None) -> str:
    parts: list[str] = ["<div>"]
    if heading:
        parts.append(f"<h2>{utils.esc(heading)}</h2>")
    if intro:
        parts.append(f"<p>{utils.esc(intro)}</p>")
    parts.append(content_html)
    parts.append("</div>")
    return "\n".join(parts)
