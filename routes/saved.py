from fastapi import APIRouter, Depends, HTTPException, Request

from models.saved import SavedVerseCreate, VerseRef
from utils.auth import get_current_user_id, require_user
from utils import saved

router = APIRouter()


@router.get("/devotionals")
async def saved_devotionals(request: Request):
    return saved.get_saved_devotionals(get_current_user_id(request))


@router.get("/devotionals/{devotional_id}")
async def devotional_saved_status(devotional_id: int, request: Request):
    return {"saved": saved.is_devotional_saved(get_current_user_id(request), devotional_id)}


@router.post("/devotionals/{devotional_id}")
async def save_devotional(devotional_id: int, user_id: str = Depends(require_user)):
    result = saved.save_devotional(user_id, devotional_id)
    if not result["success"]:
        raise HTTPException(status_code=404, detail=result["message"])
    return result


@router.delete("/devotionals/{devotional_id}")
async def unsave_devotional(devotional_id: int, user_id: str = Depends(require_user)):
    return saved.unsave_devotional(user_id, devotional_id)


@router.get("/verses")
async def saved_verses(request: Request):
    return saved.get_saved_verses(get_current_user_id(request))


@router.get("/verses/check")
async def verse_saved_status(reference: str, text: str, request: Request):
    return {"saved": saved.is_verse_saved(get_current_user_id(request), reference, text)}


@router.post("/verses")
async def save_verse(payload: SavedVerseCreate, user_id: str = Depends(require_user)):
    return saved.save_verse(
        user_id, payload.reference, payload.text, payload.language.value, payload.rawData
    )


@router.delete("/verses")
async def unsave_verse(payload: VerseRef, user_id: str = Depends(require_user)):
    return saved.unsave_verse(user_id, payload.reference, payload.text)
