"""
Text utilities for column headers and field values.

Used for api name suggestions and duplicate comparison.
"""

import re
from typing import Any, Optional

_WHITESPACE_RUN = re.compile(r"\s+")


def to_api_name(name: Optional[str]) -> str:
    """
    Suggest a field api name from a column header.

    Lowercases and replaces whitespace runs with a single underscore:
    - "First Name" → "first_name"
    - "  Annual   Revenue " → "annual_revenue"
    - "E-Mail" → "e-mail"

    Args:
        name: Column header

    Returns:
        Suggested api name, or "" for empty input
    """
    if not name:
        return ""

    return _WHITESPACE_RUN.sub("_", name.strip().lower())


def comparable(value: Any) -> Optional[str]:
    """
    Form used to compare an import value with a stored one.

    Stringifies and lowercases; no other normalisation (phone numbers,
    whitespace inside the value) is applied.

    Returns:
        Lowercased string, or None when there is no value
    """
    if value is None:
        return None
    return str(value).lower()


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    return value is None or str(value).strip() == ""
