from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from db.database import dumps_json, get_conn, loads_json, utc_now
from models.search import SearchCacheEntry


def _entry_from_row(row: sqlite3.Row) -> SearchCacheEntry:
    return SearchCacheEntry(
        id=int(row["id"]),
        term=row["term"],
        language=row["language"],
        results=loads_json(row["results"], []),
        total=row["total"],
        next_offset=int(row["next_offset"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_accessed_at=row["last_accessed_at"],
    )


def get_search_cache(term: str, language: str) -> Optional[SearchCacheEntry]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT * FROM bible_search_cache WHERE term = ? AND language = ?",
            (term, language),
        ).fetchone()
    return _entry_from_row(row) if row else None


def touch_search_cache(entry_id: int) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE bible_search_cache SET last_accessed_at = ? WHERE id = ?",
            (utc_now(), entry_id),
        )
        conn.commit()


def _merged_total(stored: Optional[int], reported: Optional[int]) -> Optional[int]:
    if reported is None:
        return stored
    if stored is None:
        return reported
    return max(stored, reported)


def _guarded_update(
    conn: sqlite3.Connection,
    row: sqlite3.Row,
    results: List[Any],
    total: Optional[int],
    next_offset: int,
    now: str,
) -> None:
    """Replace an entry's results unless that would move it backwards."""
    stored_results = loads_json(row["results"], [])
    if next_offset < int(row["next_offset"]) or len(results) < len(stored_results):
        # A concurrent writer already advanced this entry further.
        conn.execute(
            "UPDATE bible_search_cache SET total = ?, last_accessed_at = ? WHERE id = ?",
            (_merged_total(row["total"], total), now, row["id"]),
        )
        return
    conn.execute(
        """
        UPDATE bible_search_cache
        SET results = ?, total = ?, next_offset = ?, updated_at = ?, last_accessed_at = ?
        WHERE id = ?
        """,
        (
            dumps_json(results),
            _merged_total(row["total"], total),
            next_offset,
            now,
            now,
            row["id"],
        ),
    )


def upsert_search_cache(
    existing_id: Optional[int],
    term: str,
    language: str,
    results: List[Any],
    total: Optional[int],
    next_offset: int,
) -> None:
    """Insert a new cache entry or replace an existing one.

    Writes never shrink ``results``, never move ``next_offset`` backwards and
    never lower a known ``total``.
    """
    now = utc_now()
    with get_conn() as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            row = None
            if existing_id is not None:
                row = conn.execute(
                    "SELECT * FROM bible_search_cache WHERE id = ?", (existing_id,)
                ).fetchone()
            if row is None:
                # New term, or the entry was pruned after it was read.
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO bible_search_cache
                        (term, language, results, total, next_offset, created_at, updated_at, last_accessed_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (term, language, dumps_json(results), total, next_offset, now, now, now),
                )
                if cursor.rowcount == 0:
                    row = conn.execute(
                        "SELECT * FROM bible_search_cache WHERE term = ? AND language = ?",
                        (term, language),
                    ).fetchone()
            if row is not None:
                _guarded_update(conn, row, results, total, next_offset, now)
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def prune_search_cache(ttl_days: int, max_entries: int) -> int:
    """Delete entries idle for ``ttl_days`` and the least recently used beyond ``max_entries``."""
    cutoff = (datetime.now(timezone.utc) - timedelta(days=ttl_days)).isoformat(timespec="seconds")
    with get_conn() as conn:
        deleted = conn.execute(
            "DELETE FROM bible_search_cache WHERE last_accessed_at < ?", (cutoff,)
        ).rowcount
        if max_entries >= 0:
            deleted += conn.execute(
                """
                DELETE FROM bible_search_cache
                WHERE id NOT IN (
                    SELECT id FROM bible_search_cache
                    ORDER BY last_accessed_at DESC, id DESC
                    LIMIT ?
                )
                """,
                (max_entries,),
            ).rowcount
        conn.commit()
    return deleted
