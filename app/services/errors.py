"""Error taxonomy for the crawl-and-rank engine.

Every per-page failure is a :class:`SearchError` subclass so the orchestrator
can skip the page without aborting the search.
"""

from typing import Optional


class SearchError(Exception):
    """Base class for all engine errors."""


class InvalidUrl(SearchError, ValueError):
    """A URL could not be parsed or was rejected by the normalizer."""


class ParseError(SearchError):
    """The fetched document could not be parsed."""


class FetchError(SearchError):
    """A page could not be acquired."""

    def __init__(self, url: str, message: Optional[str] = None) -> None:
        self.url = url
        super().__init__(message or f"Failed to fetch {url}")


class FetchTimeout(FetchError):
    """The fetch exceeded its time allowance."""


class NonHtmlContent(FetchError):
    """The response is not an HTML/XHTML document."""

    def __init__(self, url: str, content_type: str) -> None:
        self.content_type = content_type
        super().__init__(url, f"Unsupported content type {content_type!r} for {url}")


class HttpError(FetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, url: str, status: int) -> None:
        self.status = status
        super().__init__(url, f"HTTP {status} for {url}")


class NetworkError(FetchError):
    """Connection-level failure, including redirect loops."""
