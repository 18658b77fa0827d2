# tests/test_phones.py
import pytest

from modules.finn_jobs.lib.phones import find_phones, is_plausible_phone, normalize_phone, occurs_in


@pytest.mark.parametrize("s", ["912 34 567", "91234567", "22-33-44-55", "+47 912 34 567", "0047 22334455"])
def test_plausible_phone_numbers(s):
    assert is_plausible_phone(s)


@pytest.mark.parametrize("s", ["123456789", "2020 - 2024", "1234567", "+47 12", "987654321012"])
def test_implausible_phone_numbers(s):
    assert not is_plausible_phone(s)


def test_normalize_phone_strips_tel_scheme_and_spacing():
    assert normalize_phone("tel:+4791234567") == "+4791234567"
    assert normalize_phone("  912  34 567 ") == "912 34 567"
    assert normalize_phone(None) is None
    assert normalize_phone("FINN-kode 123456789") is None


def test_find_phones_deduplicates_by_digits():
    text = "Ring 912 34 567 eller 91234567, sentralbord 22 33 44 55. Org.nr 987 654 321."
    assert find_phones(text) == ["912 34 567", "22 33 44 55"]


def test_occurs_in_ignores_separators():
    assert occurs_in("+47 912 34 567", "Mobil: +47 91234567")
    assert not occurs_in("912 34 567", "Mobil: 22 33 44 55")
    assert not occurs_in("", "anything")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Mobil 912 34 567 2 stillinger ledig", ["912 34 567"]),
        ("Tlf: 91234567 10 ansatte", ["91234567"]),
        ("Ring +47 912 34 567 2 dager i uken", ["+47 912 34 567"]),
        ("Sentralbord 22-33-44-55 - 3 avdelinger", ["22-33-44-55"]),
        ("Org.nr 987 654 321 og FINN-kode 123456789", []),
    ],
)
def test_find_phones_ignores_numbers_that_follow(text, expected):
    assert find_phones(text) == expected
