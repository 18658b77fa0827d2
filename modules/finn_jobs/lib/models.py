from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Label(str, Enum):
    """Which handler processes a crawl request."""

    LIST = "LIST"
    DETAIL = "DETAIL"


@dataclass(frozen=True)
class CrawlRequest:
    """
    A unit of crawl work. Immutable once enqueued.

    label is None only for requests built from malformed external input
    (see CrawlRequest.from_raw); the router logs those and drops them.
    """

    url: str
    label: Label | None = None

    @classmethod
    def from_raw(cls, url: str, label: Any = None) -> CrawlRequest:
        if isinstance(label, Label):
            return cls(url=url, label=label)
        key = str(label or "").strip().upper()
        try:
            return cls(url=url, label=Label(key))
        except ValueError:
            return cls(url=url, label=None)


@dataclass(frozen=True)
class ContactPerson:
    name: str
    role: str | None = None
    phone_number: str | None = None
    email: str | None = None

    def to_dict(self) -> dict[str, str]:
        out = {"name": self.name}
        if self.role:
            out["role"] = self.role
        if self.phone_number:
            out["phoneNumber"] = self.phone_number
        if self.email:
            out["email"] = self.email
        return out


@dataclass(frozen=True)
class JobRecord:
    """
    One extracted job posting. Only url/title/description/company are always present;
    everything else is best-effort.
    """

    url: str
    title: str
    description: str
    company: str
    contact_persons: tuple[ContactPerson, ...] = field(default_factory=tuple)
    email: str | None = None
    application_url: str | None = None
    location: str | None = None
    employment_type: str | None = None
    salary: str | None = None
    publication_date: str | None = None
    expiration_date: str | None = None
    external_id: str | None = None
    company_logo_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the public camelCase keys; absent fields are omitted."""
        out: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "company": self.company,
        }
        if self.contact_persons:
            out["contactPersons"] = [c.to_dict() for c in self.contact_persons]
        optional = {
            "email": self.email,
            "applicationUrl": self.application_url,
            "location": self.location,
            "employmentType": self.employment_type,
            "salary": self.salary,
            "publicationDate": self.publication_date,
            "expirationDate": self.expiration_date,
            "externalId": self.external_id,
            "companyLogoUrl": self.company_logo_url,
        }
        out.update({k: v for k, v in optional.items() if v})
        return out


@dataclass
class CrawlSummary:
    """
    Outcome of one crawl.
    - records: emitted records in emission order.
    - errors: non-fatal issues worth surfacing to the caller.
    """

    seed_url: str
    records: list[JobRecord] = field(default_factory=list)
    new_urls: list[str] = field(default_factory=list)
    listing_pages: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    seed_failed: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def emitted(self) -> int:
        return len(self.records)
