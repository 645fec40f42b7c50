from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from models.search import Language
from utils.bible_search import search_bible
from utils.errors import ConfigurationError, UpstreamError
from utils.search import remove_duplicates

router = APIRouter()


@router.get("")
def search(
    query: str = Query(..., min_length=1),
    language: Language = Language.PT,
    cursor: int = Query(0, ge=0),
    pageSize: Optional[int] = Query(None, ge=1, le=100),
):
    """One page of verse search results; ``cursor`` comes from the previous page."""
    if not query.strip():
        raise HTTPException(status_code=400, detail="Query is required")
    try:
        page = search_bible(query, language.value, cursor=cursor, page_size=pageSize)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc
    page["results"] = remove_duplicates(page["results"])
    return page
