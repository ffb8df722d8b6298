"""Tests for app.services.fetcher.PageFetcher.

The network is replaced with ``httpx.MockTransport`` so every response is
deterministic.
"""

import asyncio

import httpx
import pytest

from app.models.search_config import SearchConfig
from app.services.errors import FetchTimeout, HttpError, InvalidUrl, NetworkError, NonHtmlContent
from app.services.fetcher import PageFetcher, build_client, is_html_content_type

_HTML = "<html><head><title>Hi</title></head><body>Hello</body></html>"


def _config(**overrides) -> SearchConfig:
    return SearchConfig(seed_urls=["https://example.test/"], **overrides)


def _fetch(handler, url: str = "https://example.test", **overrides):
    config = _config(**overrides)

    async def run():
        async with build_client(config, transport=httpx.MockTransport(handler)) as client:
            return await PageFetcher(client, config).fetch(url)

    return asyncio.run(run())


def _html_response(body: str = _HTML, **kwargs) -> httpx.Response:
    headers = kwargs.pop("headers", {"content-type": "text/html; charset=utf-8"})
    return httpx.Response(200, headers=headers, content=body.encode("utf-8"), **kwargs)


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------

class TestFetchSuccess:
    def test_returns_fetched_page(self):
        page = _fetch(lambda request: _html_response())
        assert page.final_url == "https://example.test"
        assert page.raw_body == _HTML.encode("utf-8")
        assert page.status_ok is True
        assert page.headers["Content-Type"].startswith("text/html")

    def test_accepts_xhtml(self):
        page = _fetch(
            lambda request: _html_response(headers={"content-type": "application/xhtml+xml"})
        )
        assert page.status_ok is True

    def test_sends_user_agent_and_accept_headers(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return _html_response()

        _fetch(handler, user_agent="TestBot/1.0")
        assert seen["user-agent"] == "TestBot/1.0"
        assert "text/html" in seen["accept"]

    def test_body_is_truncated_at_limit(self):
        page = _fetch(lambda request: _html_response("x" * 500), max_body_bytes=100)
        assert len(page.raw_body) == 100


# ---------------------------------------------------------------------------
# Redirects
# ---------------------------------------------------------------------------

class TestFetchRedirects:
    def test_follows_redirect_and_records_final_url(self):
        def handler(request):
            if request.url.path in ("", "/"):
                return httpx.Response(301, headers={"location": "/welcome/"})
            return _html_response()

        page = _fetch(handler)
        assert page.final_url == "https://example.test/welcome"

    def test_too_many_redirects(self):
        def handler(request):
            n = int(request.url.params.get("n", "0"))
            return httpx.Response(302, headers={"location": f"/loop?n={n + 1}"})

        with pytest.raises(NetworkError):
            _fetch(handler, max_redirects=3)

    def test_redirect_limit_is_inclusive(self):
        def handler(request):
            n = int(request.url.params.get("n", "0"))
            if n < 2:
                return httpx.Response(302, headers={"location": f"/hop?n={n + 1}"})
            return _html_response()

        page = _fetch(handler, max_redirects=2)
        assert page.final_url == "https://example.test/hop?n=2"

    def test_redirect_to_rejected_url(self):
        with pytest.raises(InvalidUrl):
            _fetch(lambda request: httpx.Response(302, headers={"location": "ftp://example.test/f"}))

    @pytest.mark.parametrize("status", [301, 302, 303, 307, 308])
    def test_redirect_without_location_is_http_error(self, status):
        with pytest.raises(HttpError) as exc_info:
            _fetch(lambda request: httpx.Response(status, headers={"content-type": "text/html"}))
        assert exc_info.value.status == status


# ---------------------------------------------------------------------------
# Guards and failures
# ---------------------------------------------------------------------------

class TestFetchFailures:
    @pytest.mark.parametrize("status", [404, 500, 503])
    def test_non_2xx_is_http_error(self, status):
        with pytest.raises(HttpError) as exc_info:
            _fetch(lambda request: httpx.Response(status, headers={"content-type": "text/html"}))
        assert exc_info.value.status == status

    @pytest.mark.parametrize("content_type", ["image/png", "application/json", "text/css", ""])
    def test_non_html_rejected(self, content_type):
        with pytest.raises(NonHtmlContent):
            _fetch(
                lambda request: httpx.Response(
                    200, headers={"content-type": content_type}, content=b"\x89PNG"
                )
            )

    def test_transport_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FetchTimeout):
            _fetch(handler)

    def test_connect_error_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            _fetch(handler)

    def test_url_refused_by_http_client_is_invalid_url(self):
        def handler(request):
            raise AssertionError("request must not be sent")

        with pytest.raises(InvalidUrl):
            _fetch(handler, url="https://example.test/a\x01b")

    def test_slow_response_hits_fetch_timeout(self):
        async def handler(request):
            await asyncio.sleep(1)
            return _html_response()

        with pytest.raises(FetchTimeout):
            _fetch(handler, fetch_timeout=0.05)


class TestIsHtmlContentType:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("text/html", True),
            ("TEXT/HTML; charset=UTF-8", True),
            ("application/xhtml+xml", True),
            ("application/xml", False),
            ("text/plain", False),
        ],
    )
    def test_classification(self, value, expected):
        assert is_html_content_type(value) is expected
