"""Per-user saved devotionals and verses.

Queries treat a missing user as "nothing saved"; mutations require one and
raise ``NotAuthenticatedError`` otherwise. Saving is idempotent: the unique
constraints make a second save a no-op that reports the existing row.
"""
from typing import Any, Dict, List, Optional

from db.database import dumps_json, get_conn, loads_json, utc_now
from models.search import Language
from .devotional_store import devotional_from_row
from .errors import NotAuthenticatedError


def _require(user_id: Optional[str]) -> str:
    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def is_devotional_saved(user_id: Optional[str], devotional_id: int) -> bool:
    if not user_id:
        return False
    with get_conn() as conn:
        row = conn.execute(
            "SELECT 1 FROM saved_devotionals WHERE user_id = ? AND devotional_id = ?",
            (user_id, devotional_id),
        ).fetchone()
    return row is not None


def save_devotional(user_id: Optional[str], devotional_id: int) -> Dict[str, Any]:
    user_id = _require(user_id)
    with get_conn() as conn:
        if not conn.execute(
            "SELECT 1 FROM daily_devotionals WHERE id = ?", (devotional_id,)
        ).fetchone():
            return {"success": False, "message": "Devotional not found"}
        cursor = conn.execute(
            "INSERT OR IGNORE INTO saved_devotionals (user_id, devotional_id, saved_at) VALUES (?, ?, ?)",
            (user_id, devotional_id, utc_now()),
        )
        conn.commit()
        row = conn.execute(
            "SELECT id FROM saved_devotionals WHERE user_id = ? AND devotional_id = ?",
            (user_id, devotional_id),
        ).fetchone()
    if cursor.rowcount == 0:
        return {"success": True, "message": "Devotional already saved", "id": row["id"]}
    return {"success": True, "message": "Devotional saved", "id": row["id"]}


def unsave_devotional(user_id: Optional[str], devotional_id: int) -> Dict[str, Any]:
    user_id = _require(user_id)
    with get_conn() as conn:
        cursor = conn.execute(
            "DELETE FROM saved_devotionals WHERE user_id = ? AND devotional_id = ?",
            (user_id, devotional_id),
        )
        conn.commit()
    if cursor.rowcount == 0:
        return {"success": False, "message": "Devotional is not saved"}
    return {"success": True, "message": "Devotional removed from saved"}


def is_verse_saved(user_id: Optional[str], reference: str, text: str) -> bool:
    if not user_id:
        return False
    with get_conn() as conn:
        row = conn.execute(
            "SELECT 1 FROM saved_verses WHERE user_id = ? AND reference = ? AND text = ?",
            (user_id, reference, text),
        ).fetchone()
    return row is not None


def save_verse(
    user_id: Optional[str],
    reference: str,
    text: str,
    language: str,
    raw_data: Any = None,
) -> Dict[str, Any]:
    user_id = _require(user_id)
    language = Language(language).value
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO saved_verses (user_id, reference, text, language, saved_at, raw_data)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, reference, text, language, utc_now(), dumps_json(raw_data)),
        )
        conn.commit()
        row = conn.execute(
            "SELECT id FROM saved_verses WHERE user_id = ? AND reference = ? AND text = ?",
            (user_id, reference, text),
        ).fetchone()
    if cursor.rowcount == 0:
        return {"success": True, "message": "Verse already saved", "id": row["id"]}
    return {"success": True, "message": "Verse saved", "id": row["id"]}


def unsave_verse(user_id: Optional[str], reference: str, text: str) -> Dict[str, Any]:
    user_id = _require(user_id)
    with get_conn() as conn:
        cursor = conn.execute(
            "DELETE FROM saved_verses WHERE user_id = ? AND reference = ? AND text = ?",
            (user_id, reference, text),
        )
        conn.commit()
    if cursor.rowcount == 0:
        return {"success": False, "message": "Verse is not saved"}
    return {"success": True, "message": "Verse removed from saved"}


def get_saved_verses(user_id: Optional[str]) -> List[Dict[str, Any]]:
    """Newest first."""
    if not user_id:
        return []
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM saved_verses WHERE user_id = ? ORDER BY saved_at DESC, id DESC",
            (user_id,),
        ).fetchall()
    return [
        {
            "id": row["id"],
            "reference": row["reference"],
            "text": row["text"],
            "language": row["language"],
            "savedAt": row["saved_at"],
            "rawData": loads_json(row["raw_data"]),
        }
        for row in rows
    ]


def get_saved_devotionals(user_id: Optional[str]) -> List[Dict[str, Any]]:
    """Saved devotionals with their full record and ``savedAt``, newest first."""
    if not user_id:
        return []
    with get_conn() as conn:
        rows = conn.execute(
            """
            SELECT d.*, s.saved_at AS saved_at
            FROM saved_devotionals s
            JOIN daily_devotionals d ON d.id = s.devotional_id
            WHERE s.user_id = ?
            ORDER BY s.saved_at DESC, s.id DESC
            """,
            (user_id,),
        ).fetchall()
    return [{**devotional_from_row(row), "savedAt": row["saved_at"]} for row in rows]
