from fastapi import APIRouter, Depends, Request

from utils.auth import get_current_user_id, require_user
from utils import streaks

router = APIRouter()


@router.post("")
async def record_login(user_id: str = Depends(require_user)):
    return streaks.record_daily_login(user_id)


@router.get("")
async def all_logins(request: Request):
    return streaks.get_all_user_logins(get_current_user_id(request))


@router.get("/today")
async def logged_in_today(request: Request):
    return {"loggedIn": streaks.has_logged_in_today(get_current_user_id(request))}


@router.get("/week")
async def weekly_logins(request: Request):
    return streaks.get_weekly_logins(get_current_user_id(request))


@router.get("/stats")
async def login_stats(request: Request):
    return streaks.get_login_stats(get_current_user_id(request))


@router.get("/comparison")
async def weekly_comparison(request: Request):
    return streaks.get_weekly_comparison(get_current_user_id(request))
