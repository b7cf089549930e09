import pytest

from app.utils.sanitizer import normalize_phone_number, sanitize_optional, sanitize_text


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Paris Bridge", "Paris Bridge"),
        ("  padded  ", "padded"),
        ("<script>alert('x')</script>", "scriptalert(x)/script"),
        ('Tom & "Jerry"', "Tom  Jerry"),
        ("<>&'\"", ""),
        ("Café à Montmartre", "Café à Montmartre"),
    ],
)
def test_sanitize_text(raw: str, expected: str) -> None:
    assert sanitize_text(raw) == expected


def test_sanitize_optional_keeps_none() -> None:
    assert sanitize_optional(None) is None
    assert sanitize_optional(" <b> ") == "b"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("+33 6 12 34 56 78", "+33612345678"),
        ("+1 (415) 555-0100", "+14155550100"),
        ("+447700900123", "+447700900123"),
    ],
)
def test_normalize_phone_number(raw: str, expected: str) -> None:
    assert normalize_phone_number(raw) == expected
