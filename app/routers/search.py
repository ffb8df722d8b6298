import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_search_config
from app.models.search_config import SearchConfig
from app.models.search_response import SearchResponse
from app.services.engine import search
from app.services.query import validate_query

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.get(
    "/api/search",
    response_model=SearchResponse,
    summary="Crawl the seed sites and rank pages for a query",
    description=(
        "Fetches the configured seed pages and the same-site pages they link "
        "to, scores each page against `q` and returns the most relevant ones. "
        "An empty `results` list means nothing relevant was found."
    ),
)
@limiter.limit("20/minute")
async def search_endpoint(
    request: Request,
    q: Optional[str] = Query(default=None, description="Search query."),
    config: SearchConfig = Depends(get_search_config),
) -> SearchResponse:
    """Run one crawl-and-rank search for *q*."""
    if q is None:
        raise HTTPException(status_code=400, detail='Query parameter "q" is required.')

    try:
        query = validate_query(q)
    except ValueError as exc:
        logger.info("Rejected search query %r – %s", q, exc)
        raise HTTPException(status_code=400, detail=str(exc))

    logger.info("Search request received", extra={"query": query})
    results = await search(query, config)
    return SearchResponse(query=q, results=results)
