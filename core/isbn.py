# core/isbn.py
import re
from datetime import datetime
from typing import Optional

from core.errors import ValidationError

_SEPARATORS = re.compile(r"[\s-]")
_LOOKUP_PATTERN = re.compile(r"^\d{10}$|^\d{13}$")
_DATE_PATTERNS = [
    re.compile(r"^\d{4}$"),
    re.compile(r"^\d{4}-(0[1-9]|1[0-2])$"),
    re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"),
]


def clean_identifier(raw: Optional[str]) -> str:
    """Strip whitespace and hyphens from an identifier"""
    return _SEPARATORS.sub("", raw or "")


def validate_lookup_identifier(raw: Optional[str]) -> str:
    """Return the cleaned identifier or raise ValidationError.

    Lookups accept only all-numeric identifiers of exactly 10 or 13 characters.
    """
    cleaned = clean_identifier(raw)
    if not cleaned:
        raise ValidationError("ISBN is required")
    if not _LOOKUP_PATTERN.match(cleaned):
        raise ValidationError("ISBN must be 10 or 13 digits")
    return cleaned


def validate_isbn13(raw: Optional[str]) -> Optional[str]:
    """Validate ISBN-13 format and checksum.

    Returns:
        An error message, or None when the value is empty or valid
    """
    if not raw:
        return None
    cleaned = clean_identifier(raw)

    if len(cleaned) != 13:
        return "ISBN-13 must be 13 digits"
    if not cleaned.isdigit():
        return "ISBN-13 must contain only digits"
    if not cleaned.startswith(("978", "979")):
        return "ISBN-13 must start with 978 or 979"

    checksum = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(cleaned))
    if checksum % 10 != 0:
        return "Invalid ISBN-13 checksum"
    return None


def validate_isbn10(raw: Optional[str]) -> Optional[str]:
    """Validate ISBN-10 format and checksum (X allowed as check digit)"""
    if not raw:
        return None
    cleaned = clean_identifier(raw).upper()

    if len(cleaned) != 10:
        return "ISBN-10 must be 10 characters"
    if not cleaned[:9].isdigit() or not (cleaned[9].isdigit() or cleaned[9] == "X"):
        return "ISBN-10 must contain only digits (and X for checksum)"

    total = sum(int(cleaned[i]) * (10 - i) for i in range(9))
    total += 10 if cleaned[9] == "X" else int(cleaned[9])
    if total % 11 != 0:
        return "Invalid ISBN-10 checksum"
    return None


def validate_date(text: Optional[str]) -> Optional[str]:
    """Accept YYYY, YYYY-MM or YYYY-MM-DD"""
    if not text:
        return None
    if not any(p.match(text) for p in _DATE_PATTERNS):
        return "Date must be in YYYY, YYYY-MM, or YYYY-MM-DD format"
    if len(text) == 10:
        try:
            datetime.strptime(text, "%Y-%m-%d")
        except ValueError:
            return "Invalid date"
    return None
