import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from models.search import Language
from utils.devotional_store import get_today_devotional

logger = logging.getLogger(__name__)

router = APIRouter()

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


@router.get("/devotional")
async def widget_devotional(language: Language = Language.PT):
    """Home-screen widget feed; open to any origin."""
    try:
        devotional = get_today_devotional(language.value)
    except Exception as exc:
        logger.exception("Widget devotional lookup failed")
        return JSONResponse({"error": str(exc) or "Internal error"}, status_code=500, headers=CORS_HEADERS)
    if not devotional:
        return JSONResponse({"error": "No devotional found"}, status_code=404, headers=CORS_HEADERS)
    return JSONResponse(devotional, headers=CORS_HEADERS)
