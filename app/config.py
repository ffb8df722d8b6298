"""Process-wide search configuration, read from the environment once at startup."""

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from app.models.search_config import SearchConfig

DEFAULT_SEED_URLS = [
    "https://en.wikipedia.org/",
    "https://www.gutenberg.org/",
    "https://www.w3.org/",
    "https://www.example.com/",
]

ENV_PREFIX = "ZAPSEARCH_"

# Environment variable suffix -> (SearchConfig field, converter)
_ENV_FIELDS = {
    "MAX_DEPTH": ("max_depth", int),
    "MAX_RESULTS": ("max_results", int),
    "FETCH_TIMEOUT": ("fetch_timeout", float),
    "MAX_REDIRECTS": ("max_redirects", int),
    "MAX_BODY_BYTES": ("max_body_bytes", int),
    "DEADLINE": ("deadline", float),
    "CONCURRENCY": ("concurrency", int),
    "USER_AGENT": ("user_agent", str),
}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _split_seeds(value: str) -> List[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


def load_search_config(environ: Optional[Dict[str, str]] = None) -> SearchConfig:
    """Build a :class:`SearchConfig` from ``ZAPSEARCH_*`` environment variables.

    ``ZAPSEARCH_SEED_URLS`` is a comma-separated list. Unset variables keep the
    model defaults.

    Raises:
        ValueError: a numeric variable could not be converted.
        pydantic.ValidationError: the resulting configuration is invalid.
    """
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {"seed_urls": DEFAULT_SEED_URLS}

    seeds = env.get(f"{ENV_PREFIX}SEED_URLS")
    if seeds:
        values["seed_urls"] = _split_seeds(seeds)

    for suffix, (field, convert) in _ENV_FIELDS.items():
        raw = env.get(f"{ENV_PREFIX}{suffix}")
        if raw is None or raw == "":
            continue
        try:
            values[field] = convert(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {ENV_PREFIX}{suffix}: {raw!r}") from exc

    same_origin = env.get(f"{ENV_PREFIX}SAME_ORIGIN_ONLY")
    if same_origin:
        values["same_origin_only"] = _env_bool(same_origin)

    return SearchConfig(**values)


@lru_cache(maxsize=1)
def get_search_config() -> SearchConfig:
    """Return the process-wide configuration (loaded on first use)."""
    return load_search_config()
