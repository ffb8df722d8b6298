"""URL canonicalisation used as the crawl dedup key."""

import re
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

from app.services.errors import InvalidUrl

ALLOWED_SCHEMES = {"http", "https"}

# Tabs and newlines are dropped from URLs (as browsers do); any other ASCII
# control character is rejected by the HTTP client, so never queue it
_TAB_NEWLINE_RE = re.compile(r"[\t\r\n]")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

# Resource types that never contain crawlable HTML
DEFAULT_DENIED_EXTENSIONS = (
    # images
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".webp",
    ".svg",
    ".ico",
    ".bmp",
    # stylesheets / scripts
    ".css",
    ".js",
    ".mjs",
    ".map",
    # documents and archives
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".zip",
    ".gz",
    ".tar",
    ".rar",
    ".7z",
    # media
    ".mp3",
    ".mp4",
    ".avi",
    ".mov",
    ".webm",
    ".woff",
    ".woff2",
    ".ttf",
)


def normalize_url(
    url: str,
    base: Optional[str] = None,
    denied_extensions: Iterable[str] = DEFAULT_DENIED_EXTENSIONS,
) -> str:
    """Return the canonical form of *url*, resolving it against *base* first.

    Trailing slashes are stripped from the path and the root path is
    canonicalised to the empty path, so
    ``https://example.com/`` becomes ``https://example.com``.

    Raises:
        InvalidUrl: if the URL cannot be parsed, has no host, uses a scheme
            other than http/https, contains control characters or points at a
            denied file extension.
    """
    raw = _TAB_NEWLINE_RE.sub("", url.strip())
    if _CONTROL_CHARS_RE.search(raw):
        raise InvalidUrl(f"URL {url!r} contains control characters")
    try:
        absolute = urljoin(base, raw) if base else raw
        parsed = urlparse(absolute)
        # Accessing .port validates the netloc (raises on e.g. "host:abc")
        parsed.port
    except ValueError as exc:
        raise InvalidUrl(f"Unparsable URL {url!r}: {exc}") from exc

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidUrl(f"Scheme {parsed.scheme!r} is not allowed in {url!r}")

    if not parsed.hostname:
        raise InvalidUrl(f"URL {url!r} has no host")

    # rstrip keeps the result stable under re-normalisation ("/a//" -> "/a")
    path = parsed.path.rstrip("/")
    lowered = path.lower()
    if any(lowered.endswith(ext) for ext in denied_extensions):
        raise InvalidUrl(f"URL {url!r} points at a non-crawlable resource")

    return parsed._replace(
        scheme=scheme,
        netloc=parsed.netloc.lower(),
        path=path,
        fragment="",
    ).geturl()


def hostname_of(url: str) -> str:
    """Return the lowercased hostname of *url* (empty string when missing)."""
    return urlparse(url).hostname or ""
