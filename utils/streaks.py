from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from db.database import get_conn, utc_now
from .errors import NotAuthenticatedError

WEEKDAY_LABELS = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _login_dates(user_id: str) -> List[str]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT DISTINCT date FROM daily_logins WHERE user_id = ? ORDER BY date DESC",
            (user_id,),
        ).fetchall()
    return [row["date"] for row in rows]


def record_daily_login(user_id: Optional[str], today: Optional[date] = None) -> Dict[str, Any]:
    """One row per user per day; a repeat login only refreshes ``login_time``."""
    if not user_id:
        raise NotAuthenticatedError()
    day = (today or _today()).isoformat()
    now = utc_now()
    with get_conn() as conn:
        cursor = conn.execute(
            "INSERT OR IGNORE INTO daily_logins (user_id, date, login_time, created_at) VALUES (?, ?, ?, ?)",
            (user_id, day, now, now),
        )
        if cursor.rowcount == 1:
            conn.commit()
            return {"success": True, "action": "created", "id": cursor.lastrowid}
        conn.execute(
            "UPDATE daily_logins SET login_time = ? WHERE user_id = ? AND date = ?",
            (now, user_id, day),
        )
        row = conn.execute(
            "SELECT id FROM daily_logins WHERE user_id = ? AND date = ?", (user_id, day)
        ).fetchone()
        conn.commit()
    return {"success": True, "action": "updated", "id": row["id"]}


def get_all_user_logins(user_id: Optional[str]) -> List[Dict[str, Any]]:
    if not user_id:
        return []
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM daily_logins WHERE user_id = ? ORDER BY date DESC",
            (user_id,),
        ).fetchall()
    return [
        {
            "id": row["id"],
            "userId": row["user_id"],
            "date": row["date"],
            "loginTime": row["login_time"],
            "createdAt": row["created_at"],
        }
        for row in rows
    ]


def has_logged_in_today(user_id: Optional[str], today: Optional[date] = None) -> bool:
    if not user_id:
        return False
    day = (today or _today()).isoformat()
    with get_conn() as conn:
        row = conn.execute(
            "SELECT 1 FROM daily_logins WHERE user_id = ? AND date = ?", (user_id, day)
        ).fetchone()
    return row is not None


def _week(start: date, login_dates: set, today: Optional[date]) -> List[Dict[str, Any]]:
    days = []
    for offset in range(7):
        current = start + timedelta(days=offset)
        days.append(
            {
                "date": current.isoformat(),
                "label": WEEKDAY_LABELS[current.weekday()],
                "hasLogin": current.isoformat() in login_dates,
                "isToday": current == today,
            }
        )
    return days


def get_weekly_logins(user_id: Optional[str], today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Sunday..Saturday of the current week with a login flag per day."""
    if not user_id:
        return []
    today = today or _today()
    return _week(_week_start(today), set(_login_dates(user_id)), today)


def current_streak(dates_desc: List[str], today: date) -> int:
    """Consecutive days ending today or yesterday; 0 when the run is broken."""
    if not dates_desc:
        return 0
    latest = date.fromisoformat(dates_desc[0])
    if latest not in (today, today - timedelta(days=1)):
        return 0
    streak = 1
    previous = latest
    for value in dates_desc[1:]:
        current = date.fromisoformat(value)
        if previous - current != timedelta(days=1):
            break
        streak += 1
        previous = current
    return streak


def longest_streak(dates_desc: List[str]) -> int:
    longest = 0
    streak = 0
    previous: Optional[date] = None
    for value in reversed(dates_desc):
        current = date.fromisoformat(value)
        if previous is None or current - previous == timedelta(days=1):
            streak += 1
        else:
            longest = max(longest, streak)
            streak = 1
        previous = current
    return max(longest, streak)


def get_login_stats(user_id: Optional[str], now: Optional[datetime] = None) -> Dict[str, Any]:
    if not user_id:
        return {
            "totalLogins": 0,
            "currentStreak": 0,
            "longestStreak": 0,
            "lastLoginDate": None,
            "averageLoginsPerDay": 0,
        }
    now = now or datetime.now(timezone.utc)
    dates = _login_dates(user_id)
    average = 0.0
    if dates:
        first = datetime.combine(date.fromisoformat(dates[-1]), time(), tzinfo=timezone.utc)
        days_since_first = max(1, math.ceil((now - first).total_seconds() / 86400))
        average = len(dates) / days_since_first
    return {
        "totalLogins": len(dates),
        "currentStreak": current_streak(dates, now.date()),
        "longestStreak": longest_streak(dates),
        "lastLoginDate": dates[0] if dates else None,
        "averageLoginsPerDay": average,
    }


def format_interval(start: date, end: date) -> str:
    """``Oct 18 - 24`` within one month, ``Sep 28 - Oct 4`` across two."""
    start_month = start.strftime("%b")
    end_month = end.strftime("%b")
    if start_month == end_month:
        return f"{start_month} {start.day} - {end.day}"
    return f"{start_month} {start.day} - {end_month} {end.day}"


def get_weekly_comparison(user_id: Optional[str], today: Optional[date] = None) -> Dict[str, Any]:
    if not user_id:
        return {
            "currentWeek": [],
            "previousWeek": [],
            "currentWeekCount": 0,
            "previousWeekCount": 0,
            "currentWeekStart": None,
            "currentWeekEnd": None,
            "previousWeekStart": None,
            "previousWeekEnd": None,
            "currentWeekFormatted": None,
            "previousWeekFormatted": None,
        }
    today = today or _today()
    login_dates = set(_login_dates(user_id))
    current_start = _week_start(today)
    current_end = current_start + timedelta(days=6)
    previous_start = current_start - timedelta(days=7)
    previous_end = previous_start + timedelta(days=6)
    current_week = _week(current_start, login_dates, today)
    previous_week = _week(previous_start, login_dates, None)
    return {
        "currentWeek": current_week,
        "previousWeek": previous_week,
        "currentWeekCount": sum(1 for d in current_week if d["hasLogin"]),
        "previousWeekCount": sum(1 for d in previous_week if d["hasLogin"]),
        "currentWeekStart": current_start.isoformat(),
        "currentWeekEnd": current_end.isoformat(),
        "previousWeekStart": previous_start.isoformat(),
        "previousWeekEnd": previous_end.isoformat(),
        "currentWeekFormatted": format_interval(current_start, current_end),
        "previousWeekFormatted": format_interval(previous_start, previous_end),
    }
