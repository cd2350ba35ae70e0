"""
Shared normalization helpers.

Used by the brand name normalizer and by the industry benchmarks, where
labels typed by hand in different markets must compare equal.
"""

import re
import unicodedata
from typing import Optional

# Pre-compiled patterns
_WS_RE = re.compile(r"\s+")
_DASH_RE = re.compile(r"[—–]")  # Em dash and en dash
_APOSTROPHE_RE = re.compile(r"[’‘`´]")
_COMMA_RE = re.compile(r"\s*,\s*")
_CAFES_RE = re.compile(r"cafes", re.IGNORECASE)
_TAKEAWAY_RE = re.compile(r"take-?away", re.IGNORECASE)


def collapse_whitespace(value: str) -> str:
    """Trim and collapse runs of whitespace into a single space."""
    return _WS_RE.sub(" ", value).strip()


def unify_punctuation(value: str) -> str:
    """
    Map typographic dashes and apostrophes to their ASCII form.

    One character in, one character out: the length never changes.
    """
    value = _DASH_RE.sub("-", value)
    return _APOSTROPHE_RE.sub("'", value)


def normalize_industry_name(industry: Optional[str]) -> str:
    """
    Comparison key for an industry label.

    Transformations:
    1. Unicode NFKC
    2. Standard comma spacing (", ")
    3. Whitespace collapsed
    4. "Cafes" -> "Cafés", "Takeaway" -> "Take-away"
    5. Lowercase

    Examples:
        >>> normalize_industry_name("Restaurants,  Cafes & Takeaway ")
        'restaurants, cafés & take-away'
        >>> normalize_industry_name(None)
        ''
    """
    if not industry:
        return ""

    key = unicodedata.normalize("NFKC", industry)
    key = unify_punctuation(key)
    key = _COMMA_RE.sub(", ", key)
    key = collapse_whitespace(key)
    key = _CAFES_RE.sub("Cafés", key)
    key = _TAKEAWAY_RE.sub("Take-away", key)

    return key.lower().strip(" ,")
