"""Query tokenization.

Splits a raw search string into terms on whitespace while keeping quoted
and bracketed compounds together:

    >>> tokenize('foo is:"Comedy, Drama" (big fish) bar')
    ['foo', 'is:"Comedy, Drama"', '(big fish)', 'bar']

Wrappers stay attached to the token so callers can tell a forced compound
from a plain term; `unwrap` strips them when needed.
"""

import re

# Opening character -> closing character of a grouped span
GROUP_PAIRS: dict[str, str] = {
    '"': '"',
    "'": "'",
    "(": ")",
}

DEFAULT_ESCAPE = "\\"

_WRAPPED_PATTERN = re.compile(r"""^["'(].+["')]$""", re.DOTALL)


def tokenize(raw: str, *, escape: str | None = DEFAULT_ESCAPE) -> list[str]:
    """Split a query string into tokens.

    Whitespace separates tokens except inside "...", '...' or (...) spans.
    A span may begin mid-token (`is:"a b"` is one token). Parentheses nest,
    quotes do not.

    The escape character makes the following character literal: it never
    opens or closes a span and never splits. The escape character itself
    is dropped unless it is the last character of the input.

    An opening quote or parenthesis without a closing partner is treated
    as a literal character, so tokenizing never fails.

    Args:
        raw: Raw query string.
        escape: Escape character, or None to disable escaping.

    Returns:
        Non-empty tokens in input order.
    """
    tokens: list[str] = []
    current: list[str] = []
    i = 0
    length = len(raw)

    while i < length:
        char = raw[i]

        if escape and char == escape:
            if i + 1 < length:
                current.append(raw[i + 1])
                i += 2
            else:
                current.append(char)
                i += 1
            continue

        if char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
            i += 1
            continue

        if char in GROUP_PAIRS:
            group = _scan_group(raw, i, escape)
            if group is None:
                current.append(char)
                i += 1
            else:
                text, end = group
                current.append(text)
                i = end + 1
            continue

        current.append(char)
        i += 1

    if current:
        tokens.append("".join(current))

    return tokens


def _scan_group(raw: str, start: int, escape: str | None) -> tuple[str, int] | None:
    """Scan a grouped span opening at `start`.

    Returns:
        Tuple of (span text with delimiters, index of the closing char),
        or None if the span is never closed.
    """
    opener = raw[start]
    closer = GROUP_PAIRS[opener]
    nests = opener != closer
    depth = 1
    text = [opener]
    i = start + 1

    while i < len(raw):
        char = raw[i]
        if escape and char == escape and i + 1 < len(raw):
            text.append(raw[i + 1])
            i += 2
            continue

        text.append(char)
        if char == closer:
            depth -= 1
            if depth == 0:
                return "".join(text), i
        elif nests and char == opener:
            depth += 1
        i += 1

    return None


def unwrap(token: str) -> str:
    """Strip a matching quote or bracket pair wrapping the whole token.

    >>> unwrap('"is:Comedy, Drama"')
    'is:Comedy, Drama'
    >>> unwrap('is:"Comedy"')
    'is:"Comedy"'
    """
    if _WRAPPED_PATTERN.match(token) and GROUP_PAIRS[token[0]] == token[-1]:
        return token[1:-1]
    return token
