from datetime import datetime, timezone

from core import formatting

NBSP = formatting.GROUP_SEPARATOR


def test_digits_are_extracted_from_free_text():
    assert formatting.only_digits("1 500 000 €") == "1500000"
    assert formatting.digits_to_int_or_none("1.200") == 1200
    assert formatting.digits_to_int_or_none("noin") is None
    assert formatting.digits_to_int_or_none("") is None
    assert formatting.digits_to_int_or_none(None) is None


def test_thousands_grouping():
    assert formatting.format_thousands_fi(1200) == f"1{NBSP}200"
    assert formatting.format_thousands_fi(999) == "999"
    assert formatting.format_thousands_fi("1500000") == f"1{NBSP}500{NBSP}000"
    assert formatting.format_thousands_fi(None) == ""
    assert formatting.format_thousands_fi("abc") == ""


def test_units():
    assert formatting.format_eur(1500000) == f"1{NBSP}500{NBSP}000{NBSP}€"
    assert formatting.format_m2(2400) == f"2{NBSP}400{NBSP}m²"
    assert formatting.format_eur(None) == ""


def test_datetime_is_shown_in_helsinki_time():
    winter = datetime(2025, 3, 14, 7, 5, tzinfo=timezone.utc)
    summer = datetime(2025, 7, 1, 21, 30, tzinfo=timezone.utc)
    assert formatting.format_datetime_fi(winter) == "14.3.2025 klo 09.05"
    assert formatting.format_datetime_fi(summer) == "2.7.2025 klo 00.30"
    assert formatting.format_datetime_fi(None) == "-"
