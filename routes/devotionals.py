from fastapi import APIRouter, HTTPException, Query

from models.devotional import SummaryRequest
from models.search import Language
from utils.devotional_pipeline import fetch_daily_devotional
from utils.devotional_store import get_all_devotionals, get_devotional_by_date, get_today_devotional
from utils.summary import generate_verse_summary

router = APIRouter()


@router.get("")
async def list_devotionals(limit: int = Query(30, ge=1, le=365), language: Language = Language.EN):
    return get_all_devotionals(limit=limit, language=language.value)


@router.get("/today")
async def today_devotional(language: Language = Language.EN):
    """Today's devotional, or the latest one when today's has not been fetched yet."""
    return get_today_devotional(language.value)


@router.post("/fetch")
def fetch_devotional():
    """Manual trigger for the daily pipeline; safe to call any time."""
    return fetch_daily_devotional()


@router.post("/summary")
def summarize_verse(payload: SummaryRequest):
    return generate_verse_summary(payload.verse, payload.reference, payload.language.value)


@router.get("/{date}")
async def devotional_by_date(date: str, language: Language = Language.EN):
    if len(date) != 10:
        raise HTTPException(status_code=400, detail="Date must be YYYY-MM-DD")
    return get_devotional_by_date(date, language.value)
