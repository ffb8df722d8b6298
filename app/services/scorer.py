"""Coarse relevance scoring.

A page earns a fixed number of points for each field that contains the query
(case-insensitive substring match). The score is a filter and sort key, not an
IR ranking: there is no term frequency or proximity weighting.
"""

from typing import Optional

from app.models.search_config import ScoreWeights

_DEFAULT_WEIGHTS = ScoreWeights()


def score_relevance(
    query: str,
    title: str,
    snippet: str,
    body_text: str,
    weights: Optional[ScoreWeights] = None,
) -> int:
    """Return the additive relevance score of a page for *query* (>= 0)."""
    needle = query.strip().lower()
    if not needle:
        return 0

    weights = weights or _DEFAULT_WEIGHTS
    score = 0
    if needle in title.lower():
        score += weights.title
    if needle in snippet.lower():
        score += weights.snippet
    if needle in body_text.lower():
        score += weights.body
    return score
