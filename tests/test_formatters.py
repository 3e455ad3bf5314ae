import pytest

from franchise_portal.shared.validators import normalize_email, unique_recipients, validate_email
from franchise_portal.utils.formatters import (
    booking_reference,
    escape_html,
    fmt_time,
    format_long_date,
    to_cents,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("00:00", "12:00 AM"),
        ("12:00", "12:00 PM"),
        ("14:45", "2:45 PM"),
        ("09:05", "9:05 AM"),
        ("23:59", "11:59 PM"),
    ],
)
def test_fmt_time(value, expected):
    assert fmt_time(value) == expected


def test_fmt_time_passes_through_garbage():
    assert fmt_time("soon") == "soon"
    assert fmt_time(None) == ""


def test_format_long_date():
    assert format_long_date("2026-03-15") == "Sunday, 15 March 2026"


def test_format_long_date_invalid_returned_unchanged():
    assert format_long_date("next tuesday") == "next tuesday"
    assert format_long_date("") == ""


def test_booking_reference():
    assert booking_reference("abcdefgh-extra") == "ABCDEFGH"
    assert booking_reference("abc") == "ABC"


def test_escape_html():
    assert escape_html("<b>\"Tom\" & 'Jerry'</b>") == (
        "&lt;b&gt;&quot;Tom&quot; &amp; &#x27;Jerry&#x27;&lt;/b&gt;"
    )
    assert escape_html(None) == ""


def test_to_cents():
    assert to_cents(49.99) == 4999
    assert to_cents("10") == 1000
    assert to_cents(None) == 0


def test_normalize_email():
    assert normalize_email("  Jane@Example.COM ") == "jane@example.com"
    assert normalize_email("   ") is None
    assert normalize_email(None) is None


def test_validate_email_rejects_malformed():
    with pytest.raises(ValueError):
        validate_email("not-an-email")


def test_unique_recipients_dedups_case_and_whitespace():
    assert unique_recipients("A@x.com", " a@x.com ", None, "b@x.com") == ["a@x.com", "b@x.com"]
