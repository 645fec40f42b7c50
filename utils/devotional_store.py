import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from db.database import dumps_json, get_conn, loads_json, utc_now, utc_today
from models.search import Language


def devotional_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "date": row["date"],
        "title": row["title"],
        "content": row["content"],
        "verse": row["verse"],
        "reference": row["reference"],
        "verseTranslated": row["verse_translated"],
        "referenceTranslated": row["reference_translated"],
        "summary": row["summary"],
        "relatedVerses": loads_json(row["related_verses"]),
        "rawData": loads_json(row["raw_data"]),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
    }


def localize(devotional: Optional[Dict[str, Any]], language: str) -> Optional[Dict[str, Any]]:
    """Swap in the Portuguese verse and reference when asked for ``pt``."""
    if not devotional:
        return devotional
    if Language(language) == Language.PT and devotional.get("verseTranslated"):
        return {
            **devotional,
            "verse": devotional["verseTranslated"],
            "reference": devotional.get("referenceTranslated") or devotional.get("reference"),
        }
    return devotional


def has_translation(devotional: Optional[Dict[str, Any]]) -> bool:
    return bool(devotional and devotional.get("verseTranslated"))


def has_summary(devotional: Optional[Dict[str, Any]]) -> bool:
    return bool(devotional and devotional.get("summary") and devotional.get("relatedVerses"))


def is_complete(devotional: Optional[Dict[str, Any]]) -> bool:
    return has_translation(devotional) and has_summary(devotional)


def get_devotional_record(date: str) -> Optional[Dict[str, Any]]:
    """Stored record for ``date`` without any language substitution."""
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM daily_devotionals WHERE date = ?", (date,)).fetchone()
    return devotional_from_row(row) if row else None


def get_latest_devotional() -> Optional[Dict[str, Any]]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT * FROM daily_devotionals ORDER BY created_at DESC, id DESC LIMIT 1"
        ).fetchone()
    return devotional_from_row(row) if row else None


def get_today_devotional(language: str = "en") -> Optional[Dict[str, Any]]:
    """Today's devotional (UTC), else the most recently created one."""
    devotional = get_devotional_record(utc_today()) or get_latest_devotional()
    return localize(devotional, language)


def get_devotional_by_date(date: str, language: str = "en") -> Optional[Dict[str, Any]]:
    return localize(get_devotional_record(date), language)


def get_all_devotionals(limit: int = 30, language: str = "en") -> List[Dict[str, Any]]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM daily_devotionals ORDER BY created_at DESC, id DESC LIMIT ?",
            (max(int(limit), 0),),
        ).fetchall()
    return [localize(devotional_from_row(row), language) for row in rows]


def upsert_devotional(
    date: str,
    raw_data: Dict[str, Any],
    verse: Optional[str] = None,
    reference: Optional[str] = None,
    title: Optional[str] = None,
    content: Optional[str] = None,
    verse_translated: Optional[str] = None,
    reference_translated: Optional[str] = None,
    summary: Optional[str] = None,
    related_verses: Optional[List[Dict[str, str]]] = None,
    clear_derived: bool = False,
) -> Dict[str, Any]:
    """Insert or patch the record for ``date``.

    Missing values keep what is stored; ``created_at`` is never rewritten.
    With ``clear_derived`` (the verse changed) translation and summary
    columns take exactly the values given, so stale AI output is dropped.
    """
    now = utc_now()
    params = {
        "date": date,
        "title": title or None,
        "content": content or None,
        "verse": verse or None,
        "reference": reference or None,
        "verse_translated": verse_translated or None,
        "reference_translated": reference_translated or None,
        "summary": summary or None,
        "related_verses": dumps_json(related_verses) if related_verses else None,
        "raw_data": dumps_json(raw_data),
        "clear_derived": 1 if clear_derived else 0,
        "now": now,
    }
    with get_conn() as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            existing = conn.execute(
                "SELECT id FROM daily_devotionals WHERE date = ?", (date,)
            ).fetchone()
            conn.execute(
                """
                INSERT INTO daily_devotionals (
                    date, title, content, verse, reference, verse_translated,
                    reference_translated, summary, related_verses, raw_data,
                    created_at, updated_at
                )
                VALUES (:date, :title, :content, :verse, :reference, :verse_translated,
                        :reference_translated, :summary, :related_verses, :raw_data,
                        :now, :now)
                ON CONFLICT(date) DO UPDATE SET
                    title                = COALESCE(excluded.title, title),
                    content              = COALESCE(excluded.content, content),
                    verse                = COALESCE(excluded.verse, verse),
                    reference            = COALESCE(excluded.reference, reference),
                    verse_translated     = CASE WHEN :clear_derived THEN excluded.verse_translated
                                                ELSE COALESCE(excluded.verse_translated, verse_translated) END,
                    reference_translated = CASE WHEN :clear_derived THEN excluded.reference_translated
                                                ELSE COALESCE(excluded.reference_translated, reference_translated) END,
                    summary              = CASE WHEN :clear_derived THEN excluded.summary
                                                ELSE COALESCE(excluded.summary, summary) END,
                    related_verses       = CASE WHEN :clear_derived THEN excluded.related_verses
                                                ELSE COALESCE(excluded.related_verses, related_verses) END,
                    raw_data             = COALESCE(excluded.raw_data, raw_data),
                    updated_at           = excluded.updated_at
                """,
                params,
            )
            row = conn.execute(
                "SELECT id FROM daily_devotionals WHERE date = ?", (date,)
            ).fetchone()
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    return {"action": "updated" if existing else "created", "id": row["id"]}


def acquire_devotional_lease(date: str, owner: str, ttl_seconds: int) -> bool:
    """Take the per-date lease unless another owner holds a live one."""
    now = datetime.now(timezone.utc)
    expires_at = (now + timedelta(seconds=ttl_seconds)).isoformat(timespec="seconds")
    with get_conn() as conn:
        cursor = conn.execute(
            """
            INSERT INTO devotional_leases (date, owner, expires_at)
            VALUES (?, ?, ?)
            ON CONFLICT(date) DO UPDATE SET
                owner = excluded.owner,
                expires_at = excluded.expires_at
            WHERE devotional_leases.expires_at <= ? OR devotional_leases.owner = excluded.owner
            """,
            (date, owner, expires_at, now.isoformat(timespec="seconds")),
        )
        conn.commit()
    return cursor.rowcount == 1


def release_devotional_lease(date: str, owner: str) -> None:
    with get_conn() as conn:
        conn.execute(
            "DELETE FROM devotional_leases WHERE date = ? AND owner = ?", (date, owner)
        )
        conn.commit()
