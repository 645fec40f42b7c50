import config


def test_load_config_copies_example_when_missing(tmp_path, monkeypatch):
    config_dir = tmp_path / ".dailyword"
    config_path = config_dir / "config.toml"
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    for name in ("OLLAMA_HOST", "DEVOTIONAL_FEED_URL", "SEARCH_CACHE_TTL_DAYS", "SEARCH_CACHE_MAX_ENTRIES"):
        monkeypatch.delenv(name, raising=False)

    loaded = config.load_config()

    assert config_path.exists()
    assert loaded["devotional"]["feed_url"] == "https://discoverybiblestudy.org/daily/api/"
    assert loaded["search_cache"] == {"ttl_days": 30, "max_entries": 5000}
    assert loaded["ollama"]["host"] == "http://127.0.0.1:11434"


def test_env_overrides_file_values(app_env, monkeypatch):
    monkeypatch.setenv("BIBLE_API_KEY", "from-env")
    monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434/")
    monkeypatch.setenv("DEVOTIONAL_SCHEDULER_ENABLED", "true")

    loaded = config.load_config()

    assert loaded["bible_api"]["api_key"] == "from-env"
    assert loaded["bible_api"]["bible_id_en"] == "bible-en"
    assert loaded["ollama"]["host"] == "http://gpu-box:11434"
    assert loaded["devotional"]["scheduler_enabled"] is True


def test_get_config_value_defaults(app_env):
    assert config.get_config_value("ollama", "model") == "llama3.2"
    assert config.get_config_value("ollama", "missing", "fallback") == "fallback"
