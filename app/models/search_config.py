from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from app.services.urls import DEFAULT_DENIED_EXTENSIONS

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (compatible; ZapSearchEngine/1.0; +https://example.invalid/zapsearch)"
)


class ScoreWeights(BaseModel):
    """Points awarded when the query is contained in each page field."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: int = Field(default=5, ge=0)
    snippet: int = Field(default=3, ge=0)
    body: int = Field(default=1, ge=0)


class SearchConfig(BaseModel):
    """Limits and tunables for a single search invocation.

    Instances are immutable; invalid combinations (e.g. a negative depth) are
    rejected with a :class:`pydantic.ValidationError` before any crawl starts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    seed_urls: List[str] = Field(
        ...,
        min_length=1,
        description="Starting URLs, fetched at depth 0.",
    )
    max_depth: int = Field(default=1, ge=0, description="Maximum link depth from a seed.")
    max_results: int = Field(default=15, ge=1, description="Maximum results returned.")
    fetch_timeout: float = Field(default=7.0, gt=0, description="Per-fetch timeout (seconds).")
    max_redirects: int = Field(default=5, ge=0, description="Redirect hops followed per fetch.")
    max_body_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1,
        description="Response bodies are truncated to this many bytes.",
    )
    deadline: float = Field(default=25.0, gt=0, description="Crawl-wide wall-clock budget (seconds).")
    same_origin_only: bool = Field(
        default=True,
        description="Only follow links whose hostname matches the page they were found on.",
    )
    concurrency: int = Field(default=1, ge=1, le=16, description="Frontier entries fetched at once.")
    result_buffer_factor: int = Field(
        default=2,
        ge=1,
        description="Draining stops once max_results * factor relevant pages are collected.",
    )
    query_url_as_seed: bool = Field(
        default=True,
        description="Fetch the query itself first when it is an absolute http(s) URL.",
    )

    # Snippet generation
    snippet_before: int = Field(default=50, ge=0)
    snippet_after: int = Field(default=100, ge=1)
    default_snippet_length: int = Field(default=250, ge=1)
    min_description_length: int = Field(default=50, ge=0)

    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    denied_extensions: Tuple[str, ...] = DEFAULT_DENIED_EXTENSIONS

    @property
    def result_buffer(self) -> int:
        return self.max_results * self.result_buffer_factor
