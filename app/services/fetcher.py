import asyncio
import logging
from typing import List, NamedTuple, Optional

import httpx

from app.models.search_config import SearchConfig
from app.services.errors import (
    FetchTimeout,
    HttpError,
    InvalidUrl,
    NetworkError,
    NonHtmlContent,
)
from app.services.urls import normalize_url

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


class FetchedPage(NamedTuple):
    final_url: str
    raw_body: bytes
    headers: httpx.Headers
    status_ok: bool


def is_html_content_type(content_type: str) -> bool:
    """Return True when *content_type* names an HTML or XHTML document."""
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime in HTML_CONTENT_TYPES


def build_client(
    config: SearchConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the HTTP client used for a crawl.

    Redirects are disabled on the client because :class:`PageFetcher`
    follows them itself so each hop can be normalised and counted.
    """
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=config.fetch_timeout,
        headers={"User-Agent": config.user_agent, "Accept": ACCEPT_HEADER},
        transport=transport,
    )


class PageFetcher:
    """Fetches single pages through an injected :class:`httpx.AsyncClient`."""

    def __init__(self, client: httpx.AsyncClient, config: SearchConfig) -> None:
        self._client = client
        self._config = config

    async def fetch(self, url: str) -> FetchedPage:
        """Fetch *url* and return a :class:`FetchedPage`.

        The whole fetch, including every redirect hop and the body read, is
        bounded by ``config.fetch_timeout``.

        Raises:
            FetchTimeout: the fetch did not complete in time.
            HttpError: the final response was not 2xx.
            NonHtmlContent: the final response is not HTML/XHTML.
            NetworkError: connection failure or too many redirects.
            InvalidUrl: the URL or a redirect target was rejected.
        """
        timeout = self._config.fetch_timeout
        try:
            return await asyncio.wait_for(self._fetch(url), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise FetchTimeout(url, f"Timed out after {timeout:g}s fetching {url}") from exc
        except httpx.TimeoutException as exc:
            raise FetchTimeout(url, f"Transport timeout fetching {url}: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise InvalidUrl(f"URL {url!r} rejected by the HTTP client: {exc}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(url, f"{type(exc).__name__} fetching {url}: {exc}") from exc

    async def _fetch(self, url: str) -> FetchedPage:
        current_url = url
        for _ in range(self._config.max_redirects + 1):
            async with self._client.stream("GET", current_url) as response:
                # A 3xx without Location is a final response, reported as HttpError below
                if response.has_redirect_location:
                    location = response.headers.get("location", "")
                    current_url = normalize_url(
                        location,
                        base=current_url,
                        denied_extensions=self._config.denied_extensions,
                    )
                    logger.debug("Fetcher: %s redirected to %s", url, current_url)
                    continue

                if not response.is_success:
                    raise HttpError(current_url, response.status_code)

                # Checked before touching the body so binary resources are never read
                content_type = response.headers.get("content-type", "")
                if not is_html_content_type(content_type):
                    raise NonHtmlContent(current_url, content_type)

                body = await self._read_body(response, current_url)
                return FetchedPage(
                    final_url=normalize_url(
                        current_url, denied_extensions=self._config.denied_extensions
                    ),
                    raw_body=body,
                    headers=response.headers,
                    status_ok=True,
                )

        raise NetworkError(
            url, f"Too many redirects (more than {self._config.max_redirects}) fetching {url}"
        )

    async def _read_body(self, response: httpx.Response, url: str) -> bytes:
        """Read the body, truncating it at ``config.max_body_bytes``."""
        limit = self._config.max_body_bytes
        chunks: List[bytes] = []
        total = 0
        async for chunk in response.aiter_bytes():
            remaining = limit - total
            if len(chunk) >= remaining:
                chunks.append(chunk[:remaining])
                total += remaining
                if len(chunk) > remaining:
                    logger.debug("Fetcher: truncated %s at %d bytes", url, limit)
                break
            chunks.append(chunk)
            total += len(chunk)
        return b"".join(chunks)
