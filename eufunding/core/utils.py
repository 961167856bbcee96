"""
Shared helpers for unwrapping upstream fields, cleaning text and parsing dates.
"""

import re
import uuid
from datetime import datetime
from typing import Any, List, Optional

from dateutil import parser as dateparser


HTML_TAG_RE = re.compile(r"<[^>]*>")
# ASCII word characters only: "Förderung" splits into "f" and "rderung"
TOKEN_SPLIT_RE = re.compile(r"\W+", re.ASCII)
DIGIT_RE = re.compile(r"\d")

# Missing month/day fall back to the 1st, never to today
DATE_DEFAULT = datetime(2000, 1, 1)

# Tokens of this length or shorter are treated as stop-words.
MIN_TOKEN_LENGTH = 3


def first_value(value: Any) -> Optional[str]:
    """
    Unwrap the portal's array-of-one-string encoding.

    Args:
        value: Usually a list like ["HORIZON-CL4-2025-04-DATA-03"]

    Returns:
        The first element as a string, or None when the field is missing,
        empty or not shaped as expected

    Examples:
        >>> first_value(["X1"])
        'X1'
        >>> first_value([]) is None
        True
        >>> first_value("plain")
        'plain'
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None


def strip_html(text: Optional[str]) -> str:
    """
    Remove every `<...>` tag from text.

    Examples:
        >>> strip_html("<p>Hello <b>world</b></p>")
        'Hello world'
    """
    if not text:
        return ""
    return HTML_TAG_RE.sub("", text)


def tokenize(text: Optional[str]) -> List[str]:
    """
    Split free text into distinct lower-case tokens longer than three characters.

    Order of first appearance is preserved.

    Examples:
        >>> tokenize("AI research proposal, research!")
        ['research', 'proposal']
    """
    if not text:
        return []
    tokens = TOKEN_SPLIT_RE.split(text.lower())
    return list(dict.fromkeys(t for t in tokens if len(t) > MIN_TOKEN_LENGTH))


def parse_date_maybe(text: Optional[str]) -> Optional[datetime]:
    """
    Attempt to parse a date string, returning None on failure.

    Accepts ISO timestamps from the portal ("2026-03-01T17:00:00.000+0100")
    as well as already formatted deadlines ("Mar 1, 2026"). Partial dates
    resolve to the first of the period ("2026-03" is Mar 1, 2026); text with
    no digits at all ("Monday", "TBD") is not a date.

    Examples:
        >>> parse_date_maybe("2026-03-01")
        datetime.datetime(2026, 3, 1, 0, 0)
        >>> parse_date_maybe("2026-03")
        datetime.datetime(2026, 3, 1, 0, 0)
        >>> parse_date_maybe("Monday") is None
        True
    """
    if not text or not isinstance(text, str):
        return None
    text = text.strip()
    if not text or not DIGIT_RE.search(text):
        return None

    try:
        return dateparser.parse(text, default=DATE_DEFAULT)
    except (ValueError, OverflowError, TypeError):
        return None


def format_deadline(value: datetime) -> str:
    """
    Format a deadline the way the portal UI displays it.

    Examples:
        >>> format_deadline(datetime(2026, 1, 15))
        'Jan 15, 2026'
    """
    return f"{value:%b} {value.day}, {value.year}"


def new_record_id() -> str:
    """Generate an identifier for a newly created record."""
    return uuid.uuid4().hex
