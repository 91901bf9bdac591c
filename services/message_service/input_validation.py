"""
Input validation and sanitization for user messages.

Validation always runs on the raw text, before sanitization, so escaping
cannot hide a dangerous pattern from the filter.
"""

import re
from typing import List, Pattern

from utils.exceptions import InvalidContent

DANGEROUS_PATTERNS: List[Pattern] = [
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
]

_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
}

# A bare "&" is escaped; one that already starts an entity we emit is left alone
_ESCAPE_PATTERN = re.compile(r"&(?!amp;|lt;|gt;|quot;|#x27;)|[<>\"']")
_ESCAPED_TAG_PATTERN = re.compile(r"&lt;[^&]*&gt;")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def validate_message(message: str, max_length: int = 500) -> None:
    """
    Reject empty, over-long or dangerous input

    Args:
        message: Raw user text
        max_length: Maximum accepted length in characters

    Raises:
        InvalidContent: If the message fails any check
    """
    if len(message) == 0:
        raise InvalidContent(reason="empty")

    if len(message) > max_length:
        raise InvalidContent(reason="too_long")

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(message):
            raise InvalidContent(reason="dangerous_pattern")


def is_valid_message(message: str, max_length: int = 500) -> bool:
    try:
        validate_message(message, max_length)
    except InvalidContent:
        return False
    return True


def sanitize_message(message: str) -> str:
    """
    HTML-escape reserved characters, drop escaped tags, collapse whitespace.

    Sanitizing already sanitized text returns it unchanged.
    """
    sanitized = _ESCAPE_PATTERN.sub(lambda match: _ENTITIES[match.group(0)[0]], message)

    # Removing one tag can expose another, e.g. "&lt;&lt;b&gt;&gt;"
    while True:
        stripped = _ESCAPED_TAG_PATTERN.sub("", sanitized)
        if stripped == sanitized:
            break
        sanitized = stripped

    return _WHITESPACE_PATTERN.sub(" ", sanitized).strip()
