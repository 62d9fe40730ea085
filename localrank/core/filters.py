"""Rating filter, sort and truncation over a ranked result list."""

import logging
from typing import Callable, Dict, List, Sequence, Tuple

from localrank.models import BusinessResult, FilterConfig

logger = logging.getLogger(__name__)

SortKey = Callable[[BusinessResult], Tuple]

# Python's sort is stable, so rating/review ties keep their rank order.
_SORT_KEYS: Dict[str, SortKey] = {
    "relevance": lambda result: (result.rank,),
    "rating": lambda result: (-(result.rating or 0),),
    "reviews": lambda result: (-(result.review_count or 0),),
    # No reference point is carried on results, so distance keeps rank order.
    "distance": lambda result: (result.rank,),
}


def apply_filters(results: Sequence[BusinessResult], config: FilterConfig) -> List[BusinessResult]:
    """Drop low ratings, sort, then truncate; returns a new list and never protects the target."""
    filtered = list(results)

    if config.min_rating > 0:
        filtered = [result for result in filtered if (result.rating or 0) >= config.min_rating]

    if config.sort_by == "distance":
        logger.debug("Distance sort requested; keeping rank order")
    filtered.sort(key=_SORT_KEYS[config.sort_by])

    if config.max_results is not None and len(filtered) > config.max_results:
        filtered = filtered[: config.max_results]

    logger.info(
        "Filtered %d results down to %d (min_rating=%s, sort_by=%s, max_results=%s)",
        len(results),
        len(filtered),
        config.min_rating,
        config.sort_by,
        config.max_results,
    )
    return filtered
