# tests/test_detail.py
import pytest

from modules.finn_jobs.lib.detail import (
    DESCRIPTION_MAX_CHARS,
    extract_job,
    truncate_description,
)
from modules.finn_jobs.lib.errors import ExtractionError
from modules.finn_jobs.lib.models import ContactPerson

from finn_fakes import detail_url

FULL_PAGE = """
<html>
<head><meta property="og:image" content="/img/og.png"></head>
<body><main>
  <h1 class="t1">Senior utvikler</h1>
  <p>Acme AS</p>
  <section aria-label="Jobbdetaljer">
    <h2>Arbeidsoppgaver</h2>
    <ul><li>Utvikle tjenester</li><li>Kodegjennomgang</li></ul>
    <h2>Kvalifikasjoner</h2>
    <p>Erfaring med Python</p>
    <ul><li>Git</li></ul>
  </section>
  <ul class="facts">
    <li>Frist <span class="font-bold">01.03.2025</span></li>
    <li>Ansettelsesform <span class="font-bold">Fast</span></li>
  </ul>
  <dl><dt>Sted</dt><dd>Oslo</dd><dt>Lønn</dt><dd>700 000 kr</dd></dl>
  <time datetime="2025-01-15T10:00:00">15. jan.</time>
  <img class="logo" src="/logos/acme.png" alt="Acme AS logo">
  <a href="https://jobb.acme.no/apply/42">Søk her</a>
  <ul class="contact">
    <li><span class="font-bold">Kontaktperson</span><span>Kari Nordmann</span></li>
    <li><span class="font-bold">Mobil</span><a href="tel:+4791234567">+47 912 34 567</a></li>
    <li><span class="font-bold">E-post</span><a href="mailto:kari@acme.no">kari@acme.no</a></li>
  </ul>
</main></body>
</html>
"""


# ----------------------------------------------------------------------
# Full page
# ----------------------------------------------------------------------
def test_extract_job_full_page():
    url = detail_url(384912345)
    rec = extract_job(url, FULL_PAGE)

    assert rec.url == url
    assert rec.title == "Senior utvikler"
    assert rec.company == "Acme AS"
    assert rec.description == (
        "## Arbeidsoppgaver\n- Utvikle tjenester\n- Kodegjennomgang"
        "\n\n## Kvalifikasjoner\nErfaring med Python\n- Git"
    )
    assert rec.location == "Oslo"
    assert rec.employment_type == "Fast"
    assert rec.expiration_date == "01.03.2025"
    assert rec.publication_date == "2025-01-15T10:00:00"
    assert rec.salary == "700 000 kr"
    assert rec.external_id == "384912345"
    assert rec.application_url == "https://jobb.acme.no/apply/42"
    assert rec.company_logo_url == "https://www.finn.no/logos/acme.png"
    assert rec.email == "kari@acme.no"
    assert rec.contact_persons == (
        ContactPerson(name="Kari Nordmann", phone_number="+4791234567", email="kari@acme.no"),
    )


def test_record_serializes_with_camel_case_keys():
    d = extract_job(detail_url(384912345), FULL_PAGE).to_dict()

    assert d["externalId"] == "384912345"
    assert d["companyLogoUrl"] == "https://www.finn.no/logos/acme.png"
    assert d["contactPersons"] == [
        {"name": "Kari Nordmann", "phoneNumber": "+4791234567", "email": "kari@acme.no"}
    ]
    assert "role" not in d["contactPersons"][0]


# ----------------------------------------------------------------------
# Fallbacks
# ----------------------------------------------------------------------
def test_title_from_og_meta_and_company_from_definition_list():
    html = """
    <html><head><meta property="og:title" content="Lagerarbeider"></head>
    <body><dl><dt>Firma</dt><dd>Bring AS</dd></dl></body></html>
    """
    rec = extract_job(detail_url(1), html)

    assert rec.title == "Lagerarbeider"
    assert rec.company == "Bring AS"
    assert rec.description == ""
    assert rec.contact_persons == ()
    assert rec.email is None


def test_company_from_logo_alt_text():
    html = '<html><body><h1>Sjåfør</h1><img src="/l.png" alt="Bring logo"></body></html>'
    rec = extract_job(detail_url(2), html)

    assert rec.company == "Bring"
    assert rec.company_logo_url == "https://www.finn.no/l.png"


@pytest.mark.parametrize(
    "body, company",
    [
        (
            '<h1>Kokk</h1><p>Vi søker en kokk til travelt kjøkken.</p>'
            '<a href="/employer/company/123">Bistro AS</a>',
            "Bistro AS",
        ),
        ("<h1>Fastlege</h1><p>Stillingen er Heltid og Vikariat.</p>", ""),
        ("<h1>Kokk</h1><p>Vi søker en kokk.</p><dl><dt>Firma</dt><dd>Bring AS</dd></dl>", "Bring AS"),
        ("<h1>Kokk</h1><p>Firma: Bistro AS</p>", "Bistro AS"),
        ("<h1>Kokk</h1><h2>Om arbeidsgiveren</h2><p>Bistro AS</p>", "Bistro AS"),
        (
            "<h1>Kokk</h1><p>Vi søker en kokk til travelt kjøkken.</p><h3>Om bedriften</h3><p>Bistro AS</p>",
            "Bistro AS",
        ),
    ],
)
def test_company_fallbacks(body, company):
    rec = extract_job(detail_url(5), f"<html><body>{body}</body></html>")
    assert rec.company == company


@pytest.mark.parametrize(
    "body, employment_type",
    [
        ("<h1>Fastlege</h1><p>Stillingen er Heltid og Vikariat.</p>", "Heltid"),
        # vocabulary order decides, not position on the page
        ("<h1>Kokk</h1><p>Vikariat med mulighet for Deltid.</p>", "Deltid"),
        ("<h1>Fastlege</h1><p>Faste oppgaver hver dag.</p>", None),
    ],
)
def test_employment_type_from_vocabulary(body, employment_type):
    rec = extract_job(detail_url(6), f"<html><body>{body}</body></html>")
    assert rec.employment_type == employment_type


def test_labels_in_free_text():
    html = """
    <html><body>
      <h1>Kokk</h1>
      <div>Frist: 15.04.2025</div>
      <div>Sted: Bergen</div>
      <div>FINN-kode: 998877665</div>
    </body></html>
    """
    rec = extract_job("https://www.finn.no/job/fulltime/search.html", html)

    assert rec.expiration_date == "15.04.2025"
    assert rec.location == "Bergen"
    assert rec.external_id == "998877665"


# ----------------------------------------------------------------------
# Description truncation / missing title
# ----------------------------------------------------------------------
def test_long_description_is_truncated_with_marker():
    body = "a" * 2500
    html = f'<html><body><h1 class="t1">X</h1><section aria-label="Jobbdetaljer"><p>{body}</p></section></body></html>'
    rec = extract_job(detail_url(3), html)

    assert len(rec.description) == DESCRIPTION_MAX_CHARS + 3
    assert rec.description.endswith("...")


def test_truncate_description_leaves_short_text_alone():
    assert truncate_description("kort") == "kort"
    assert truncate_description("x" * DESCRIPTION_MAX_CHARS) == "x" * DESCRIPTION_MAX_CHARS


def test_missing_title_raises():
    with pytest.raises(ExtractionError, match="No title found"):
        extract_job(detail_url(4), "<html><body><p>Ingen tittel</p></body></html>")
