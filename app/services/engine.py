"""Crawl-and-rank engine.

A search runs through four phases: the frontier is seeded at depth 0, drained
breadth-first under the result and deadline budgets, the accumulated results
are ranked, and everything crawl-scoped is dropped when the call returns.
"""

import asyncio
import logging
from operator import attrgetter
from typing import List, NamedTuple, Optional, Sequence, Set, Union
from urllib.parse import urlparse

import httpx

from app.models.search_config import SearchConfig
from app.models.search_response import SearchResult
from app.services.analyzer import PageAnalysis, ParseHtml, analyze_page
from app.services.charset import decode_body, resolve_charset
from app.services.errors import FetchError, InvalidUrl, ParseError, SearchError
from app.services.fetcher import FetchedPage, PageFetcher, build_client
from app.services.frontier import Frontier, FrontierEntry
from app.services.scorer import score_relevance
from app.services.urls import ALLOWED_SCHEMES, hostname_of, normalize_url

logger = logging.getLogger(__name__)

_EMPTY_ANALYSIS = PageAnalysis(title="", snippet="", outbound_links=[], body_text="")


class PageSummary(NamedTuple):
    title: str
    snippet: str
    charset: str
    outbound_links: List[str]
    relevance: int


def _is_absolute_http_url(text: str) -> bool:
    try:
        parsed = urlparse(text.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.netloc)


def seed_frontier(frontier: Frontier, query: str, config: SearchConfig) -> None:
    """Push the configured seeds at depth 0, dropping invalid ones."""
    seeds = list(config.seed_urls)
    if config.query_url_as_seed and _is_absolute_http_url(query):
        seeds.insert(0, query.strip())

    for raw in seeds:
        try:
            url = normalize_url(raw, denied_extensions=config.denied_extensions)
        except InvalidUrl as exc:
            logger.warning("Search: dropping seed %s – %s", raw, exc)
            continue
        frontier.push(url, 0)


def summarize_page(
    page: FetchedPage,
    query: str,
    config: SearchConfig,
    parse_html: Optional[ParseHtml] = None,
) -> PageSummary:
    """Resolve the charset, analyse and score one fetched page."""
    # Latin-1 maps every byte, so the ASCII tags are always readable
    charset = resolve_charset(page.headers, page.raw_body.decode("latin-1"))
    html = decode_body(page.raw_body, charset)

    try:
        analysis = analyze_page(
            html,
            page.final_url,
            query,
            parse_html=parse_html,
            min_description_length=config.min_description_length,
            snippet_before=config.snippet_before,
            snippet_after=config.snippet_after,
            default_snippet_length=config.default_snippet_length,
            denied_extensions=config.denied_extensions,
        )
    except ParseError as exc:
        logger.warning("Search: could not parse %s – %s", page.final_url, exc)
        analysis = _EMPTY_ANALYSIS

    relevance = score_relevance(
        query, analysis.title, analysis.snippet, analysis.body_text, config.weights
    )
    return PageSummary(
        title=analysis.title,
        snippet=analysis.snippet,
        charset=charset,
        outbound_links=analysis.outbound_links,
        relevance=relevance,
    )


def rank_results(results: Sequence[SearchResult], max_results: int) -> List[SearchResult]:
    """Sort by relevance descending and truncate.

    ``sorted`` is stable with ``reverse=True``, so equal scores keep their
    discovery order.
    """
    return sorted(results, key=attrgetter("relevance"), reverse=True)[:max_results]


async def _fetch_or_error(
    fetcher: PageFetcher, url: str
) -> Union[FetchedPage, SearchError]:
    try:
        return await fetcher.fetch(url)
    except (FetchError, InvalidUrl) as exc:
        return exc


def _pop_batch(frontier: Frontier, size: int) -> List[FrontierEntry]:
    batch: List[FrontierEntry] = []
    while len(batch) < size:
        entry = frontier.pop()
        if entry is None:
            break
        batch.append(entry)
    return batch


def _expand(
    frontier: Frontier,
    entry: FrontierEntry,
    final_url: str,
    links: Sequence[str],
    config: SearchConfig,
) -> None:
    if entry.depth >= config.max_depth:
        return
    origin = hostname_of(final_url)
    for link in links:
        if config.same_origin_only and hostname_of(link) != origin:
            continue
        frontier.push(link, entry.depth + 1)


async def _drain(
    query: str,
    config: SearchConfig,
    client: httpx.AsyncClient,
    parse_html: Optional[ParseHtml],
) -> List[SearchResult]:
    loop = asyncio.get_running_loop()
    deadline_at = loop.time() + config.deadline
    fetcher = PageFetcher(client, config)
    frontier = Frontier(config.max_depth)
    results: List[SearchResult] = []

    seed_frontier(frontier, query, config)

    while frontier and len(results) < config.result_buffer:
        remaining = deadline_at - loop.time()
        if remaining <= 0:
            logger.warning("Search: deadline of %gs reached", config.deadline)
            break

        batch = _pop_batch(frontier, config.concurrency)
        if not batch:
            break

        try:
            outcomes = await asyncio.wait_for(
                asyncio.gather(*(_fetch_or_error(fetcher, e.url) for e in batch)),
                timeout=remaining,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Search: deadline of %gs reached while fetching %s",
                config.deadline,
                ", ".join(e.url for e in batch),
            )
            break

        # Pages are processed in pop order so concurrent fetching never changes
        # results. A batch entry counts as visited only once its turn comes, and
        # a later entry already reached through an earlier redirect is skipped.
        pending = {e.url for e in batch}
        claimed: Set[str] = set()
        for entry, outcome in zip(batch, outcomes):
            if len(results) >= config.result_buffer:
                break
            pending.discard(entry.url)
            if entry.url in claimed:
                logger.debug("Search: %s already reached through a redirect", entry.url)
                continue
            if isinstance(outcome, SearchError):
                logger.warning("Search: skipping %s – %s", entry.url, outcome)
                continue

            page = outcome
            if page.final_url != entry.url:
                final = page.final_url
                seen = final in claimed or (frontier.is_visited(final) and final not in pending)
                if seen:
                    logger.debug("Search: %s redirected to visited %s", entry.url, final)
                    continue
                frontier.mark_visited(final)
            claimed.add(page.final_url)

            summary = summarize_page(page, query, config, parse_html)
            if summary.relevance > 0:
                results.append(
                    SearchResult(
                        title=summary.title or page.final_url,
                        url=page.final_url,
                        snippet=summary.snippet,
                        charset=summary.charset,
                        relevance=summary.relevance,
                    )
                )
            else:
                logger.debug("Search: %s not relevant to %r", page.final_url, query)

            _expand(frontier, entry, page.final_url, summary.outbound_links, config)

    logger.info(
        "Search finished: %d relevant of %d visited pages for %r",
        len(results),
        len(frontier.visited),
        query,
    )
    return rank_results(results, config.max_results)


async def search(
    query: str,
    config: SearchConfig,
    *,
    client: Optional[httpx.AsyncClient] = None,
    parse_html: Optional[ParseHtml] = None,
) -> List[SearchResult]:
    """Crawl from the configured seeds and return pages ranked for *query*.

    Per-page failures are logged and skipped; a search that finds nothing
    returns an empty list. When *client* is omitted a client is created for
    this call and closed before returning.
    """
    if client is not None:
        return await _drain(query, config, client, parse_html)
    async with build_client(config) as own_client:
        return await _drain(query, config, own_client, parse_html)
