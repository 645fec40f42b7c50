from pathlib import Path

import pytest

import config
from db import database

OVERRIDE_ENV_VARS = [
    "BIBLE_API_BASE_URL",
    "BIBLE_API_KEY",
    "BIBLE_API_BIBLE_ID_PT",
    "BIBLE_API_BIBLE_ID_EN",
    "BIBLE_API_TIMEOUT",
    "DEVOTIONAL_FEED_URL",
    "DEVOTIONAL_TIMEOUT",
    "DEVOTIONAL_SCHEDULER_ENABLED",
    "OLLAMA_HOST",
    "OLLAMA_MODEL",
    "OLLAMA_TIMEOUT",
    "OLLAMA_API_KEY",
    "SEARCH_CACHE_TTL_DAYS",
    "SEARCH_CACHE_MAX_ENTRIES",
    "DAILYWORD_SESSION_SECRET",
]


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[bible_api]",
                "base_url = \"https://bible.test/v1\"",
                "api_key = \"test-key\"",
                "bible_id_pt = \"bible-pt\"",
                "bible_id_en = \"bible-en\"",
                "",
                "[devotional]",
                "feed_url = \"https://feed.test/daily/api/\"",
                "scheduler_enabled = false",
                "",
                "[ollama]",
                "host = \"http://ollama.test\"",
                "model = \"llama3.2\"",
                "max_retries = 2",
                "retry_base_delay = 0.0",
                "",
                "[auth]",
                "session_secret = \"test-secret\"",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    """Config and database redirected into tmp_path, schema created."""
    for name in OVERRIDE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config_dir = tmp_path / ".dailyword"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "dailyword.db")

    database.init_db()
    return config_path
