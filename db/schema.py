# SQL schema for DailyWord database

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Bible search cache (one row per normalized term + language)
CREATE TABLE IF NOT EXISTS bible_search_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    term TEXT NOT NULL,
    language TEXT NOT NULL CHECK(language IN ('pt', 'en')),
    results TEXT NOT NULL DEFAULT '[]',
    total INTEGER,
    next_offset INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_accessed_at TEXT NOT NULL,
    UNIQUE (term, language)
);

-- Daily devotionals (one row per calendar day)
CREATE TABLE IF NOT EXISTS daily_devotionals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT UNIQUE NOT NULL,
    title TEXT,
    content TEXT,
    verse TEXT,
    reference TEXT,
    verse_translated TEXT,
    reference_translated TEXT,
    summary TEXT,
    related_verses TEXT,
    raw_data TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Per-date ownership of the devotional AI work
CREATE TABLE IF NOT EXISTS devotional_leases (
    date TEXT PRIMARY KEY,
    owner TEXT NOT NULL,
    expires_at TEXT NOT NULL
);

-- Saved devotionals
CREATE TABLE IF NOT EXISTS saved_devotionals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    devotional_id INTEGER NOT NULL,
    saved_at TEXT NOT NULL,
    UNIQUE (user_id, devotional_id),
    FOREIGN KEY (devotional_id) REFERENCES daily_devotionals (id) ON DELETE CASCADE
);

-- Saved verses (from search results)
CREATE TABLE IF NOT EXISTS saved_verses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    reference TEXT NOT NULL,
    text TEXT NOT NULL,
    language TEXT NOT NULL CHECK(language IN ('pt', 'en')),
    saved_at TEXT NOT NULL,
    raw_data TEXT,
    UNIQUE (user_id, reference, text)
);

-- Daily logins (one row per user per day)
CREATE TABLE IF NOT EXISTS daily_logins (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    login_time TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (user_id, date)
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_search_cache_accessed ON bible_search_cache (last_accessed_at);
CREATE INDEX IF NOT EXISTS idx_devotionals_created ON daily_devotionals (created_at);
CREATE INDEX IF NOT EXISTS idx_saved_devotionals_user ON saved_devotionals (user_id);
CREATE INDEX IF NOT EXISTS idx_saved_verses_user ON saved_verses (user_id);
CREATE INDEX IF NOT EXISTS idx_saved_verses_user_reference ON saved_verses (user_id, reference);
CREATE INDEX IF NOT EXISTS idx_daily_logins_user ON daily_logins (user_id);
CREATE INDEX IF NOT EXISTS idx_daily_logins_date ON daily_logins (date);
"""
