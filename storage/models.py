"""SQLite table definitions."""

CREATE_POSITIONS_TABLE = """
CREATE TABLE IF NOT EXISTS positions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    persona_id TEXT NOT NULL,
    token_address TEXT NOT NULL,
    symbol TEXT DEFAULT '',
    amount_in REAL NOT NULL,
    amount_out REAL NOT NULL,
    entry_price REAL NOT NULL,
    tx_id TEXT NOT NULL UNIQUE,
    is_paper INTEGER NOT NULL DEFAULT 1,
    session_id TEXT DEFAULT '',
    opened_at TEXT NOT NULL,
    closed_at TEXT
);
"""

CREATE_SESSIONS_TABLE = """
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    token_address TEXT NOT NULL,
    symbol TEXT DEFAULT '',
    status TEXT NOT NULL,
    decision TEXT,
    bullish INTEGER DEFAULT 0,
    bearish INTEGER DEFAULT 0,
    neutral INTEGER DEFAULT 0,
    risk_score REAL,
    confidence REAL DEFAULT 0,
    rounds INTEGER DEFAULT 0,
    finished_at TEXT NOT NULL
);
"""

CREATE_TRADE_OUTCOMES_TABLE = """
CREATE TABLE IF NOT EXISTS trade_outcomes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    persona_id TEXT NOT NULL,
    token_address TEXT NOT NULL,
    status TEXT NOT NULL,
    amount_in REAL DEFAULT 0,
    amount_out REAL DEFAULT 0,
    tx_id TEXT,
    reason TEXT DEFAULT '',
    recorded_at TEXT NOT NULL,
    UNIQUE (session_id, persona_id)
);
"""

CREATE_EVENTS_TABLE = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL,
    session_id TEXT,
    token_address TEXT,
    persona_id TEXT,
    payload TEXT NOT NULL,
    timestamp TEXT NOT NULL
);
"""

ALL_TABLES = (
    CREATE_POSITIONS_TABLE,
    CREATE_SESSIONS_TABLE,
    CREATE_TRADE_OUTCOMES_TABLE,
    CREATE_EVENTS_TABLE,
)
