import logging
import uuid
from typing import Any, Dict, Optional

from config import load_config
from db.database import utc_today
from .devotional_feed import fetch_devotional_content
from .devotional_store import (
    acquire_devotional_lease,
    get_devotional_record,
    has_summary,
    has_translation,
    is_complete,
    release_devotional_lease,
    upsert_devotional,
)
from .errors import UpstreamError
from .summary import generate_verse_summary
from .translation import translate_verse

logger = logging.getLogger(__name__)


def lease_ttl_seconds() -> int:
    """Lease lifetime covering one AI step (up to two retried model calls)."""
    config = load_config()
    ollama_cfg = config.get("ollama", {})
    retries = int(ollama_cfg.get("max_retries", 2))
    backoff = float(ollama_cfg.get("retry_base_delay", 2.0)) * (2 ** retries - 1)
    per_call = int(ollama_cfg.get("timeout", 60)) * (retries + 1) + backoff
    return max(int(config.get("devotional", {}).get("lease_seconds", 120)), int(2 * per_call))


def _same_verse(record: Optional[Dict[str, Any]], verse: str, reference: str) -> bool:
    return bool(record) and (record.get("verse") or "") == verse and (record.get("reference") or "") == reference


def _resolve_translation(
    record_date: str,
    verse: str,
    reference: str,
    needed: bool,
    stored: Optional[Dict[str, Any]],
) -> Dict[str, Optional[str]]:
    if verse and needed:
        current = get_devotional_record(record_date)
        if has_translation(current) and _same_verse(current, verse, reference):
            logger.info("Translation supplied by a concurrent run, reusing it")
            return {
                "verseTranslated": current["verseTranslated"],
                "referenceTranslated": current.get("referenceTranslated"),
            }
        logger.info("Translating verse (AI call)")
        return translate_verse(verse, reference or None)
    if has_translation(stored):
        return {
            "verseTranslated": stored["verseTranslated"],
            "referenceTranslated": stored.get("referenceTranslated"),
        }
    return {"verseTranslated": None, "referenceTranslated": None}


def _resolve_summary(
    record_date: str,
    verse: str,
    reference: str,
    needed: bool,
    stored: Optional[Dict[str, Any]],
    translation: Dict[str, Optional[str]],
) -> Dict[str, Any]:
    if verse and needed:
        current = get_devotional_record(record_date)
        if has_summary(current) and _same_verse(current, verse, reference):
            logger.info("Summary supplied by a concurrent run, reusing it")
            return {"success": True, "summary": current["summary"], "relatedVerses": current["relatedVerses"]}
        logger.info("Generating verse summary (AI call)")
        return generate_verse_summary(
            translation.get("verseTranslated") or verse,
            translation.get("referenceTranslated") or reference or None,
            language="pt",
        )
    if has_summary(stored):
        return {"success": True, "summary": stored["summary"], "relatedVerses": stored["relatedVerses"]}
    return {"success": False, "summary": None, "relatedVerses": []}


def fetch_daily_devotional() -> Dict[str, Any]:
    """Fetch today's devotional and fill in translation and summary once.

    Safe to run concurrently and repeatedly: a record that is already complete
    for the current verse is left untouched (``skipped``), AI output another
    run already stored is reused, and a per-date lease keeps two runs from
    doing the AI work at the same time. Never raises; failures are reported
    as ``{"success": False, "error": ...}``.
    """
    try:
        existing = get_devotional_record(utc_today())
        if is_complete(existing):
            logger.info("Today's devotional is already complete, skipping")
            return {"success": True, "data": existing.get("rawData"), "skipped": True}

        fetched = fetch_devotional_content()
        record_date = fetched.date
        verse, reference = fetched.verse, fetched.reference
        if not verse:
            raise UpstreamError(f"Devotional feed returned no verse for {record_date}")

        stored = get_devotional_record(record_date)
        verse_changed = not _same_verse(stored, verse, reference)
        if is_complete(stored) and not verse_changed:
            logger.info("Devotional for %s completed while fetching, skipping", record_date)
            return {"success": True, "data": fetched.raw, "skipped": True}
        if stored and verse_changed:
            logger.info("Verse for %s changed upstream, regenerating AI fields", record_date)

        needs_translation = verse_changed or not has_translation(stored)
        needs_summary = verse_changed or not has_summary(stored)

        ttl = lease_ttl_seconds()
        owner = uuid.uuid4().hex
        in_progress = {"success": True, "data": fetched.raw, "skipped": True, "reason": "in_progress"}
        if not acquire_devotional_lease(record_date, owner, ttl):
            logger.info("Another run is processing the devotional for %s, skipping", record_date)
            return in_progress
        try:
            translation = _resolve_translation(
                record_date, verse, reference, needs_translation, None if verse_changed else stored
            )
            # Renew before the next AI step; failure means another run took over.
            if not acquire_devotional_lease(record_date, owner, ttl):
                logger.warning("Lease for %s was taken over, leaving the work to the new owner", record_date)
                return in_progress
            summary = _resolve_summary(
                record_date, verse, reference, needs_summary, None if verse_changed else stored, translation
            )

            current = get_devotional_record(record_date)
            if is_complete(current) and _same_verse(current, verse, reference):
                logger.info("Devotional for %s completed by a concurrent run, skipping save", record_date)
                return {"success": True, "data": fetched.raw, "skipped": True}

            saved = upsert_devotional(
                record_date,
                fetched.raw,
                verse=verse,
                reference=reference,
                title=fetched.title,
                content=fetched.content,
                verse_translated=translation.get("verseTranslated"),
                reference_translated=translation.get("referenceTranslated"),
                summary=summary.get("summary") if summary.get("success") else None,
                related_verses=summary.get("relatedVerses") if summary.get("success") else None,
                clear_derived=bool(stored) and verse_changed,
            )
        finally:
            release_devotional_lease(record_date, owner)

        logger.info("Devotional for %s %s", record_date, saved["action"])
        return {"success": True, "data": fetched.raw, "action": saved["action"], "id": saved["id"]}
    except Exception as exc:
        logger.exception("Daily devotional fetch failed")
        return {"success": False, "error": str(exc) or "Unknown error"}
