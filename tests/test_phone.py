import pytest

from utils.phone import has_arabic, normalize_phone, whatsapp_link


@pytest.mark.parametrize("raw, expected", [
    ("03 123 456", "9613123456"),
    ("+961 3 123 456", "9613123456"),
    ("961-71-123456", "96171123456"),
    ("71123456", "96171123456"),
    ("(03) 123-456", "9613123456"),
])
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", ["03 123 456", "+96171123456", "70000000"])
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert normalize_phone(once) == once


@pytest.mark.parametrize("raw", ["", None, "abc", " - "])
def test_normalize_phone_without_digits(raw):
    assert normalize_phone(raw) == ""


def test_custom_country_code():
    assert normalize_phone("0612345678", country_code="33") == "33612345678"


def test_has_arabic():
    assert has_arabic("مرحبا Rami")
    assert not has_arabic("Hello Rami, pay $100")
    assert not has_arabic("")


def test_whatsapp_link_encodes_text():
    link = whatsapp_link("03 123 456", "Hi Rami & co?")
    assert link == "https://wa.me/9613123456?text=Hi%20Rami%20%26%20co%3F"
