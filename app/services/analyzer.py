"""Title, snippet and outbound-link extraction for fetched pages."""

import re
from typing import Callable, Iterable, List, NamedTuple, Optional

from bs4 import BeautifulSoup

from app.services.errors import InvalidUrl, ParseError
from app.services.urls import DEFAULT_DENIED_EXTENSIONS, normalize_url

ParseHtml = Callable[[str], BeautifulSoup]

_WHITESPACE_RE = re.compile(r"\s+")

# Elements whose text never belongs in a snippet
_NON_TEXT_TAGS = ["script", "style", "noscript", "template"]

ELLIPSIS = "..."


class PageAnalysis(NamedTuple):
    title: str
    snippet: str
    outbound_links: List[str]
    body_text: str


def default_parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "lxml")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _extract_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    if title_tag:
        return _collapse(title_tag.get_text())
    return ""


def _extract_description(soup: BeautifulSoup) -> str:
    meta = soup.find("meta", attrs={"name": re.compile(r"^description$", re.IGNORECASE)})
    if meta and meta.get("content"):
        return str(meta["content"]).strip()
    og_desc = soup.find("meta", attrs={"property": "og:description"})
    if og_desc and og_desc.get("content"):
        return str(og_desc["content"]).strip()
    return ""


def _extract_body_text(soup: BeautifulSoup) -> str:
    for tag in soup.find_all(_NON_TEXT_TAGS):
        tag.decompose()
    body = soup.find("body")
    return body.get_text(" ") if body else ""


def _extract_links(
    soup: BeautifulSoup,
    base_url: str,
    denied_extensions: Iterable[str],
) -> List[str]:
    seen: set = set()
    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = str(a["href"]).strip()
        if not href:
            continue
        try:
            abs_url = normalize_url(href, base=base_url, denied_extensions=denied_extensions)
        except InvalidUrl:
            continue
        if abs_url not in seen:
            seen.add(abs_url)
            links.append(abs_url)
    return links


def build_snippet(
    body_text: str,
    query: str,
    before: int = 50,
    after: int = 100,
    default_length: int = 250,
) -> str:
    """Synthesise a snippet from *body_text*.

    When *query* occurs in the text (case-insensitive) the snippet is a window
    starting *before* characters ahead of the first match and ending *after*
    characters past the match start. Otherwise it is the first
    *default_length* characters. Whitespace runs collapse to single spaces and
    an ellipsis is appended. Empty text yields an empty snippet.
    """
    index = body_text.lower().find(query.lower()) if query else -1
    if index != -1:
        start = max(0, index - before)
        window = body_text[start:index + after]
    else:
        window = body_text[:default_length]

    window = _collapse(window)
    return f"{window}{ELLIPSIS}" if window else ""


def analyze_page(
    html: str,
    base_url: str,
    query: str,
    *,
    parse_html: Optional[ParseHtml] = None,
    min_description_length: int = 50,
    snippet_before: int = 50,
    snippet_after: int = 100,
    default_snippet_length: int = 250,
    denied_extensions: Iterable[str] = DEFAULT_DENIED_EXTENSIONS,
) -> PageAnalysis:
    """Extract title, snippet, outbound links and body text from *html*.

    Links are resolved against *base_url*, which should be the final URL
    after redirects. Links rejected by the normaliser are dropped.

    Raises:
        ParseError: if the parser fails on the document.
    """
    parse = parse_html or default_parse_html
    try:
        soup = parse(html)
    except Exception as exc:
        raise ParseError(f"Could not parse document from {base_url}: {exc}") from exc

    title = _extract_title(soup)
    description = _extract_description(soup)
    links = _extract_links(soup, base_url, denied_extensions)
    body_text = _extract_body_text(soup)

    if len(description) >= min_description_length:
        snippet = description
    else:
        snippet = build_snippet(
            body_text,
            query,
            before=snippet_before,
            after=snippet_after,
            default_length=default_snippet_length,
        )

    return PageAnalysis(title=title, snippet=snippet, outbound_links=links, body_text=body_text)
