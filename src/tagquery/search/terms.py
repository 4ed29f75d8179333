"""Term normalization for computed index values."""

import re
import unicodedata
from typing import Any

_EMAIL_STRIP = re.compile(r"[^A-Z0-9\-_@.]+")
_WORD_STRIP = re.compile(r"[^A-Z0-9\-:]+")


def deburr(text: str) -> str:
    """Remove diacritics, e.g. 'Amélie' -> 'Amelie'."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def clean_terms(value: Any) -> str:
    """Normalize a value into uppercase, punctuation-free search terms.

    Words that look like email addresses keep '@', '.', '_' and '-' so the
    address stays searchable as a unit.

    >>> clean_terms("Amélie (2001)")
    'AMELIE 2001'
    >>> clean_terms("Mail me: joe.bloggs@example.com")
    'MAIL ME: JOE.BLOGGS@EXAMPLE.COM'
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        value = " ".join(str(v) for v in value if v is not None)

    words = deburr(str(value).upper()).split()
    cleaned = [
        _EMAIL_STRIP.sub(" ", word) if "@" in word else _WORD_STRIP.sub(" ", word)
        for word in words
    ]
    return " ".join(" ".join(cleaned).split())
