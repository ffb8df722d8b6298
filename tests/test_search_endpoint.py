"""Tests for the GET /api/search endpoint.

The crawl engine is replaced with an ``AsyncMock`` so the tests run without
internet access.
"""

import json
import logging
import sys
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.config import get_search_config
from app.main import JsonFormatter, app
from app.models.search_config import SearchConfig
from app.models.search_response import SearchResult

client = TestClient(app)

_TEST_CONFIG = SearchConfig(seed_urls=["https://example.test/"], max_results=5)

_RESULTS = [
    SearchResult(
        title="Hello World",
        url="https://example.test",
        snippet="Hello there...",
        charset="UTF-8",
        relevance=9,
    ),
    SearchResult(
        title="Other",
        url="https://example.test/other",
        snippet="say hello...",
        charset="UNKNOWN",
        relevance=4,
    ),
]


@pytest.fixture(autouse=True)
def override_config():
    """Use a fixed configuration and clear the rate-limit counter per test."""
    app.dependency_overrides[get_search_config] = lambda: _TEST_CONFIG
    app.state.limiter._storage.reset()
    yield
    app.dependency_overrides.clear()


def _get(**params):
    return client.get("/api/search", params=params)


class TestSearchEndpoint:
    def test_returns_results(self):
        with patch("app.routers.search.search", new=AsyncMock(return_value=_RESULTS)):
            resp = _get(q="hello")

        assert resp.status_code == 200
        data = resp.json()
        assert data["query"] == "hello"
        assert [r["url"] for r in data["results"]] == [
            "https://example.test",
            "https://example.test/other",
        ]

    def test_result_fields(self):
        with patch("app.routers.search.search", new=AsyncMock(return_value=_RESULTS)):
            resp = _get(q="hello")

        for field in ("title", "url", "snippet", "charset", "relevance"):
            assert field in resp.json()["results"][0], f"Missing field: {field}"

    def test_no_results_is_empty_list_not_error(self):
        with patch("app.routers.search.search", new=AsyncMock(return_value=[])):
            resp = _get(q="nothing matches")

        assert resp.status_code == 200
        assert resp.json()["results"] == []

    def test_engine_receives_sanitised_query_and_config(self):
        engine = AsyncMock(return_value=[])
        with patch("app.routers.search.search", new=engine):
            _get(q="  <hello>  ")

        engine.assert_awaited_once_with("hello", _TEST_CONFIG)


class TestSearchEndpointValidation:
    def test_missing_query_returns_400(self):
        resp = _get()
        assert resp.status_code == 400
        assert "required" in resp.json()["detail"]

    @pytest.mark.parametrize("query", ["", " ", "x", "<>"])
    def test_too_short_query_returns_400(self, query):
        engine = AsyncMock(side_effect=AssertionError("engine must not be called"))
        with patch("app.routers.search.search", new=engine):
            resp = _get(q=query)

        assert resp.status_code == 400


class TestHealth:
    def test_root(self):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "Zapsearch" in resp.json()["message"]


class TestJsonLogFormat:
    def _record(self, msg, *args, exc_info=None):
        return logging.LogRecord("app.test", logging.WARNING, __file__, 1, msg, args, exc_info)

    def test_message_with_quotes_and_newlines_is_valid_json(self):
        record = self._record('skipping %s – "bad"\nline\\two', "https://example.test")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["message"] == 'skipping https://example.test – "bad"\nline\\two'
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "app.test"
        assert entry["time"]

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record("failed", exc_info=sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in entry["exc_info"]
