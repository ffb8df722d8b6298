from typing import List

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """One ranked page returned to the caller."""

    title: str
    url: str
    snippet: str
    charset: str
    relevance: int = Field(..., ge=0)


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
