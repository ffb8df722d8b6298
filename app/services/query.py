"""Search query clean-up applied before the engine is invoked."""

import re

MAX_QUERY_LENGTH = 256
MIN_QUERY_LENGTH = 2

# Characters that have no business in a plain-text query
_STRIP_CHARS_RE = re.compile(r"[<>{}()\[\]\\|;]")


def sanitize_query(query: object) -> str:
    """Trim, cap at ``MAX_QUERY_LENGTH`` and drop bracket/pipe characters.

    Non-string or blank input yields an empty string.
    """
    if not isinstance(query, str) or not query.strip():
        return ""
    cleaned = query.strip()[:MAX_QUERY_LENGTH]
    return _STRIP_CHARS_RE.sub("", cleaned).strip()


def validate_query(query: object) -> str:
    """Return the sanitised query or raise ValueError if it is unusable."""
    cleaned = sanitize_query(query)
    if len(cleaned) < MIN_QUERY_LENGTH:
        raise ValueError(
            f"Query must contain at least {MIN_QUERY_LENGTH} characters after sanitising."
        )
    return cleaned
