import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

import requests

from config import load_config
from db.database import utc_today
from .errors import UpstreamError

logger = logging.getLogger(__name__)

VERSE_KEYS = ("text", "verse", "Verse", "scripture")
REFERENCE_KEYS = ("ref", "reference", "Reference", "scriptureReference")
TITLE_KEYS = ("title", "Title", "titleText")
CONTENT_KEYS = ("content", "Content", "body")

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%m/%d/%Y",
)

_ORDINAL_RE = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)


@dataclass
class DevotionalContent:
    date: str
    verse: str = ""
    reference: str = ""
    title: Optional[str] = None
    content: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def _first(data: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    return None


def parse_feed_date(value: Any, fallback: Optional[str] = None) -> str:
    """Best-effort ``YYYY-MM-DD`` from the feed's date field ("2nd Dec 2025")."""
    fallback = fallback or utc_today()
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    if not isinstance(value, str) or not value.strip():
        return fallback
    text = _ORDINAL_RE.sub(r"\1", value.strip())
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).strftime("%Y-%m-%d")
    except ValueError:
        logger.warning("Unparseable devotional date %r, using %s", value, fallback)
        return fallback


def parse_devotional(data: Dict[str, Any]) -> DevotionalContent:
    return DevotionalContent(
        date=parse_feed_date(data.get("date")),
        verse=_first(data, VERSE_KEYS) or "",
        reference=_first(data, REFERENCE_KEYS) or "",
        title=_first(data, TITLE_KEYS),
        content=_first(data, CONTENT_KEYS),
        raw=data,
    )


def fetch_devotional_content() -> DevotionalContent:
    """GET the daily feed and map its loosely-named fields."""
    cfg = load_config().get("devotional", {})
    url = cfg.get("feed_url")
    try:
        response = requests.get(url, timeout=cfg.get("timeout", 15))
    except requests.RequestException as exc:
        raise UpstreamError(f"Devotional fetch failed: {exc}") from exc
    if not response.ok:
        raise UpstreamError(
            f"Devotional fetch failed: {response.status_code} {response.reason or ''}".strip(),
            status_code=response.status_code,
        )
    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamError("Devotional feed returned invalid JSON", status_code=response.status_code) from exc
    if not isinstance(data, dict):
        raise UpstreamError("Devotional feed returned an unexpected payload")
    return parse_devotional(data)
