import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import load_config
from .errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

RESULT_KEYS = ("verses", "passages", "searchResult")


def _bible_api_config() -> Dict[str, Any]:
    return load_config().get("bible_api", {})


def require_api_key(cfg: Optional[Dict[str, Any]] = None) -> str:
    cfg = cfg if cfg is not None else _bible_api_config()
    api_key = cfg.get("api_key")
    if not api_key:
        raise ConfigurationError(
            "Bible API key not configured. Set BIBLE_API_KEY or [bible_api].api_key."
        )
    return api_key


def get_bible_id(language: str, cfg: Optional[Dict[str, Any]] = None) -> str:
    cfg = cfg if cfg is not None else _bible_api_config()
    bible_id = cfg.get(f"bible_id_{language}")
    if not bible_id:
        raise ConfigurationError(
            f'Bible id for language "{language}" not configured. '
            f"Set BIBLE_API_BIBLE_ID_{language.upper()}."
        )
    return bible_id


def extract_results(payload: Any) -> Tuple[List[Any], Optional[int]]:
    """Pull the result array and optional total out of a search response."""
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        return [], None
    results: List[Any] = []
    for key in RESULT_KEYS:
        value = data.get(key)
        if isinstance(value, list):
            results = value
            break
    total = data.get("total")
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        total = None
    return results, int(total) if total is not None else None


def search_verses(query: str, language: str, limit: int, offset: int) -> Tuple[List[Any], Optional[int]]:
    """One page from the provider's search endpoint.

    ``query`` is sent as given; reference-style queries ("John 3:16") rely on
    reaching the provider unmodified. Fails fast: no retries.
    """
    cfg = _bible_api_config()
    api_key = require_api_key(cfg)
    bible_id = get_bible_id(language, cfg)
    url = f"{cfg['base_url']}/bibles/{bible_id}/search"
    try:
        response = requests.get(
            url,
            params={"query": query, "limit": limit, "offset": offset},
            headers={"api-key": api_key},
            timeout=cfg.get("timeout", 15),
        )
    except requests.RequestException as exc:
        logger.error("Bible API request failed: %s", exc)
        raise UpstreamError(f"Bible API request failed: {exc}") from exc
    if not response.ok:
        logger.error("Bible API error: %s %s", response.status_code, response.text[:500])
        raise UpstreamError(
            f"Bible API search failed: {response.status_code} {response.reason or ''}".strip(),
            status_code=response.status_code,
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise UpstreamError("Bible API returned invalid JSON", status_code=response.status_code) from exc
    return extract_results(payload)
