# modules/finn_jobs/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .budget import JobBudget
from .config import ConfigError, Settings
from .db import JobStore
from .detail import extract_job
from .emails import clean_email
from .engine import crawl
from .errors import CrawlError, ExtractionError, FetchError
from .frontier import Frontier
from .listing import ListingPage, extract_listing
from .models import ContactPerson, CrawlRequest, CrawlSummary, JobRecord, Label
from .router import Router

__all__ = [
    "ConfigError",
    "ContactPerson",
    "CrawlError",
    "CrawlRequest",
    "CrawlSummary",
    "ExtractionError",
    "FetchError",
    "Frontier",
    "JobBudget",
    "JobRecord",
    "JobStore",
    "Label",
    "ListingPage",
    "Router",
    "Settings",
    "clean_email",
    "crawl",
    "extract_job",
    "extract_listing",
]
