import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".dailyword"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"


def _env_bool(name: str, default: Any) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


def load_config() -> Dict[str, Any]:
    """Load config from ~/.dailyword/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., BIBLE_API_KEY env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    bible_cfg = config.get("bible_api", {})
    config["bible_api"] = {
        "base_url": os.getenv("BIBLE_API_BASE_URL", bible_cfg.get("base_url", "https://rest.api.bible/v1")).rstrip("/"),
        "api_key": os.getenv("BIBLE_API_KEY", bible_cfg.get("api_key", "")),
        "bible_id_pt": os.getenv("BIBLE_API_BIBLE_ID_PT", bible_cfg.get("bible_id_pt", "")),
        "bible_id_en": os.getenv("BIBLE_API_BIBLE_ID_EN", bible_cfg.get("bible_id_en", "")),
        "timeout": int(os.getenv("BIBLE_API_TIMEOUT", bible_cfg.get("timeout", 15))),
        "page_size": int(bible_cfg.get("page_size", 20)),
    }
    devotional_cfg = config.get("devotional", {})
    config["devotional"] = {
        "feed_url": os.getenv(
            "DEVOTIONAL_FEED_URL",
            devotional_cfg.get("feed_url", "https://discoverybiblestudy.org/daily/api/"),
        ),
        "timeout": int(os.getenv("DEVOTIONAL_TIMEOUT", devotional_cfg.get("timeout", 15))),
        "hour_utc": int(devotional_cfg.get("hour_utc", 0)),
        "minute_utc": int(devotional_cfg.get("minute_utc", 0)),
        "lease_seconds": int(devotional_cfg.get("lease_seconds", 120)),
        "scheduler_enabled": _env_bool(
            "DEVOTIONAL_SCHEDULER_ENABLED", devotional_cfg.get("scheduler_enabled", True)
        ),
    }
    ollama_cfg = config.get("ollama", {})
    config["ollama"] = {
        "host": os.getenv("OLLAMA_HOST", ollama_cfg.get("host", "http://127.0.0.1:11434")).rstrip("/"),
        "model": os.getenv("OLLAMA_MODEL", ollama_cfg.get("model", "llama3.2")),
        "timeout": int(os.getenv("OLLAMA_TIMEOUT", ollama_cfg.get("timeout", 60))),
        "api_key": os.getenv("OLLAMA_API_KEY", ollama_cfg.get("api_key", "")),
        "max_retries": int(ollama_cfg.get("max_retries", 2)),
        "retry_base_delay": float(ollama_cfg.get("retry_base_delay", 2.0)),
    }
    cache_cfg = config.get("search_cache", {})
    config["search_cache"] = {
        "ttl_days": int(os.getenv("SEARCH_CACHE_TTL_DAYS", cache_cfg.get("ttl_days", 30))),
        "max_entries": int(os.getenv("SEARCH_CACHE_MAX_ENTRIES", cache_cfg.get("max_entries", 5000))),
    }
    auth_cfg = config.get("auth", {})
    config["auth"] = {
        "session_secret": os.getenv("DAILYWORD_SESSION_SECRET", auth_cfg.get("session_secret", "")),
        "session_days": int(auth_cfg.get("session_days", 30)),
    }
    return config


def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('ollama', 'model')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
