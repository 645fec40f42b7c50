from __future__ import annotations

import html
import json
import re
from typing import Any, Dict, List, Optional

DEDUP_TEXT_CHARS = 100

_TAG_RE = re.compile(r"<[^>]*>")
_SID_RE = re.compile(r'data-sid="([^"]+)"')
_WS_RE = re.compile(r"\s+")
_LEADING_NUMBER_RE = re.compile(r"^\d+\s*")


def normalize_term(raw: Optional[str]) -> str:
    """Cache key for a search query: trimmed and lower-cased."""
    return (raw or "").strip().lower()


def strip_html(value: str) -> str:
    if not value:
        return ""
    text = html.unescape(_TAG_RE.sub("", value))
    return _WS_RE.sub(" ", text).strip()


def extract_reference(item: Dict[str, Any]) -> str:
    """Human-readable reference of a provider result, best effort."""
    for key in ("reference", "human", "osis"):
        if item.get(key):
            return str(item[key])
    content = item.get("text") or item.get("content") or ""
    if isinstance(content, str):
        match = _SID_RE.search(content)
        if match:
            return match.group(1)
    for key in ("verseId", "id", "passageId", "bibleId"):
        if item.get(key):
            return str(item[key])
    return ""


def extract_text(item: Dict[str, Any]) -> str:
    """Verse text without markup or a leading verse number ("22Quando" -> "Quando")."""
    content = item.get("text") or item.get("content") or ""
    if not isinstance(content, str):
        return ""
    text = strip_html(content) if "<" in content and ">" in content else content.strip()
    return _LEADING_NUMBER_RE.sub("", text).strip()


def dedup_key(item: Dict[str, Any]) -> str:
    reference = extract_reference(item)
    text = extract_text(item)
    if reference and text:
        return f"{reference}-{text[:DEDUP_TEXT_CHARS]}"
    raw_content = item.get("text") or item.get("content") or ""
    if raw_content:
        return str(raw_content)[:DEDUP_TEXT_CHARS]
    if item.get("id"):
        return str(item["id"])
    return json.dumps(item, sort_keys=True, default=str)[:DEDUP_TEXT_CHARS]


def remove_duplicates(items: List[Any]) -> List[Any]:
    """Drop repeated results, keeping the first occurrence."""
    seen = set()
    unique: List[Any] = []
    for item in items:
        key = dedup_key(item) if isinstance(item, dict) else json.dumps(item, default=str)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique
