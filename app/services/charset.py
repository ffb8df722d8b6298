"""Character-encoding detection for fetched documents.

Precedence (first match wins):

1. ``charset=`` parameter of the ``Content-Type`` response header
2. ``<meta charset="...">``
3. ``<meta http-equiv="Content-Type" content="...; charset=...">``
4. ``"UNKNOWN"``

Transport headers are authoritative over hints embedded in the document.
"""

import logging
import re
from typing import Mapping

import httpx
from bs4 import BeautifulSoup, SoupStrainer

logger = logging.getLogger(__name__)

UNKNOWN_CHARSET = "UNKNOWN"

_CHARSET_PARAM_RE = re.compile(r"charset\s*=\s*[\"']?([^;\"'\s]+)", re.IGNORECASE)

# Only <meta> tags are needed, so skip building the rest of the tree
_META_ONLY = SoupStrainer("meta")

# Charset declarations must appear near the top of the document
_META_SCAN_LIMIT = 8192


def _from_content_type(value: str) -> str:
    match = _CHARSET_PARAM_RE.search(value or "")
    return match.group(1).strip().upper() if match else ""


def _from_meta(html: str) -> str:
    soup = BeautifulSoup(
        html[:_META_SCAN_LIMIT], "html.parser", parse_only=_META_ONLY
    )

    meta = soup.find("meta", charset=True)
    if meta and str(meta["charset"]).strip():
        return str(meta["charset"]).strip().strip("\"'").upper()

    for meta in soup.find_all("meta", attrs={"http-equiv": True}):
        if str(meta["http-equiv"]).strip().lower() != "content-type":
            continue
        charset = _from_content_type(str(meta.get("content", "")))
        if charset:
            return charset

    return ""


def resolve_charset(headers: Mapping[str, str], html: str) -> str:
    """Return the uppercase charset label for a document, or ``"UNKNOWN"``.

    *headers* may be any mapping; lookups are case-insensitive. *html* only
    needs to be decoded well enough to read ASCII tags (Latin-1 is fine).
    """
    content_type = httpx.Headers(headers).get("content-type", "")
    charset = _from_content_type(content_type)
    if charset:
        return charset

    if html:
        charset = _from_meta(html)
        if charset:
            return charset

    return UNKNOWN_CHARSET


def decode_body(raw: bytes, charset: str) -> str:
    """Decode *raw* with *charset*, falling back to UTF-8 with replacement."""
    if charset and charset != UNKNOWN_CHARSET:
        try:
            return raw.decode(charset, errors="replace")
        except (LookupError, ValueError):
            # Unknown labels, non-text codecs (base64) and codecs without
            # "replace" support (idna) all fall back
            logger.debug("Unusable charset label %r – falling back to UTF-8", charset)
    return raw.decode("utf-8", errors="replace")
