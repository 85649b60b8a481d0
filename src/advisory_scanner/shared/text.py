from __future__ import annotations

import re

ELLIPSIS = "..."

FIRST_SENTENCE_RE = re.compile(r"^[^.!?]*[.!?]")


def truncate_description(text: str, max_length: int) -> str:
    """Shorten text to at most ``max_length`` characters.

    Prefers the first full sentence when it fits; otherwise hard-cuts and
    appends an ellipsis so the result is exactly ``max_length`` long.

    Examples:
        >>> truncate_description("Short. And more text here.", 10)
        'Short.'
        >>> truncate_description("abcdefghijkl", 8)
        'abcde...'
    """
    if len(text) <= max_length:
        return text
    m = FIRST_SENTENCE_RE.match(text)
    if m and len(m.group(0)) <= max_length:
        return m.group(0)
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS
