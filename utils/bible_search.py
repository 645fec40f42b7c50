import logging
from typing import Any, Dict, List, Optional

from config import load_config
from models.search import Language
from .bible_api import require_api_key, search_verses
from .search import normalize_term
from .search_cache import get_search_cache, touch_search_cache, upsert_search_cache

logger = logging.getLogger(__name__)


def search_bible(
    query: str,
    language: str,
    cursor: int = 0,
    page_size: Optional[int] = None,
) -> Dict[str, Any]:
    """Resolve one page of search results, cache first, provider for the rest.

    ``cursor`` indexes the cumulative cached results for this term; the
    provider is always asked to continue from the entry's ``next_offset``.
    Provider and cache-store failures propagate, so no partial page is ever
    returned.
    """
    language = Language(language).value
    require_api_key()
    limit = page_size if page_size and page_size > 0 else load_config()["bible_api"]["page_size"]
    consumed = max(cursor or 0, 0)
    term = normalize_term(query)

    existing = get_search_cache(term, language)
    cached_results: List[Any] = existing.results if existing else []
    known_total = existing.total if existing else None
    next_offset = existing.next_offset if existing else 0
    if existing:
        touch_search_cache(existing.id)

    available = max(len(cached_results) - consumed, 0)
    take = min(available, limit)
    results = cached_results[consumed:consumed + take]
    fetched_from_api = 0

    still_needed = limit - len(results)
    if still_needed > 0:
        logger.info(
            "Search cache miss for %r (%s): fetching %s from offset %s",
            term, language, still_needed, next_offset,
        )
        api_results, reported_total = search_verses(query, language, still_needed, next_offset)
        fetched_from_api = len(api_results)
        if reported_total is not None:
            known_total = reported_total if known_total is None else max(known_total, reported_total)
        if fetched_from_api:
            results = results + api_results
            upsert_search_cache(
                existing.id if existing else None,
                term,
                language,
                cached_results + api_results,
                known_total,
                next_offset + fetched_from_api,
            )

    new_cursor = consumed + len(results)
    return {
        "query": query,
        "language": language,
        "results": results,
        "cursor": new_cursor,
        "total": known_total,
        "fromCache": len(results) - fetched_from_api,
        "fromApi": fetched_from_api,
        "hasMore": new_cursor < known_total if known_total is not None else fetched_from_api > 0,
    }
