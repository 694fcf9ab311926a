"""
CHIPCASINO - Database Abstraction Layer

Dual-mode: SQLite for local dev and tests, PostgreSQL in production.
Auto-detects based on the DATABASE_URL environment variable.

Usage:
    from config.database import get_db, get_standalone_db, init_db

    # In Flask request context - cached on g, closed on teardown
    row = get_db().execute("SELECT * FROM users WHERE id = ?", [user_id]).fetchone()

    # Outside request context - commits on success, rolls back on error, closes
    with get_standalone_db() as db:
        db.execute("UPDATE users SET is_admin = 1 WHERE id = ?", [user_id])
"""

import logging
import os
import sqlite3

from config.settings import EconomyConfig

logger = logging.getLogger("chipcasino.db")

# ── Detect database mode ──
DATABASE_URL = os.getenv("DATABASE_URL", "")
USE_POSTGRES = DATABASE_URL.startswith("postgres")

if USE_POSTGRES:
    from psycopg.rows import dict_row
    from psycopg_pool import ConnectionPool

# ── SQLite path ──
SQLITE_PATH = os.getenv("DB_PATH", "chipcasino.db")

# ── Connection pool (PostgreSQL only) ──
_pg_pool = None


def _get_pg_pool():
    """Lazy-init PostgreSQL connection pool."""
    global _pg_pool
    if _pg_pool is None and USE_POSTGRES:
        conninfo = DATABASE_URL
        # Some hosts hand out postgres:// but psycopg wants postgresql://
        if conninfo.startswith("postgres://"):
            conninfo = conninfo.replace("postgres://", "postgresql://", 1)
        _pg_pool = ConnectionPool(
            conninfo=conninfo,
            min_size=2,
            max_size=20,
            max_idle=300,
            kwargs={"row_factory": dict_row, "autocommit": False},
        )
        logger.info("PostgreSQL pool initialized (min=2, max=20)")
    return _pg_pool


def _sqlite_dict_factory(cursor, row):
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def _open_sqlite():
    """Open a raw SQLite connection."""
    conn = sqlite3.connect(SQLITE_PATH, timeout=10)
    conn.row_factory = _sqlite_dict_factory
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


# ═══════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════

class DatabaseConnection:
    """Unified wrapper around SQLite or PostgreSQL connections.

    Normalizes the interface so callers don't care which backend is active.
    - Accepts ? or %s placeholders, converts to the active backend
    - Returns dict rows from queries
    - rowcount of the last statement, for guarded single-row updates
    """

    def __init__(self, conn, is_pg=False):
        self._conn = conn
        self._is_pg = is_pg
        self._cursor = None

    def _adapt_sql(self, sql):
        if self._is_pg:
            return sql.replace("?", "%s")
        return sql.replace("%s", "?")

    def execute(self, sql, params=None):
        """Execute a query. Returns self for chaining."""
        self._cursor = self._conn.execute(self._adapt_sql(sql), params or [])
        return self

    def executescript(self, sql):
        """Execute multiple statements. For PG, splits on semicolons."""
        if self._is_pg:
            for stmt in sql.split(";"):
                stmt = stmt.strip()
                if stmt:
                    self._conn.execute(stmt)
        else:
            self._conn.executescript(sql)
        return self

    @property
    def rowcount(self) -> int:
        if self._cursor is None:
            return 0
        return self._cursor.rowcount

    def fetchone(self):
        """Fetch one row as dict, or None."""
        if self._cursor is None:
            return None
        row = self._cursor.fetchone()
        return dict(row) if row is not None else None

    def fetchall(self):
        """Fetch all rows as list[dict]."""
        if self._cursor is None:
            return []
        return [dict(r) for r in self._cursor.fetchall()]

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    def close(self):
        # PG connections go back to the pool
        if self._is_pg:
            _get_pg_pool().putconn(self._conn)
        else:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()


def get_db():
    """Get a database connection.

    In Flask request context: caches on g, auto-closed on teardown.
    Outside request context: returns standalone connection - caller must close.
    """
    from flask import g, has_app_context

    if has_app_context():
        if "_database" not in g:
            g._database = _make_connection()
        return g._database
    return _make_connection()


def get_standalone_db():
    """Always returns a new connection (CLI, scripts). Caller MUST close it."""
    return _make_connection()


def _make_connection():
    if USE_POSTGRES:
        return DatabaseConnection(_get_pg_pool().getconn(), is_pg=True)
    return DatabaseConnection(_open_sqlite(), is_pg=False)


def close_db_on_teardown(exc):
    """Flask teardown handler - roll back anything uncommitted, then close."""
    from flask import g
    db = g.pop("_database", None)
    if db is not None:
        if exc is not None:
            db.rollback()
        db.close()


# ═══════════════════════════════════════════════════════════════
# Schema
# ═══════════════════════════════════════════════════════════════

# SQL that works for BOTH SQLite and PostgreSQL.
# TEXT for timestamps (ISO-8601 UTC), INTEGER 0/1 for booleans.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT UNIQUE NOT NULL,
    email TEXT,
    chip_balance INTEGER NOT NULL DEFAULT 0 CHECK (chip_balance >= 0),
    is_admin INTEGER NOT NULL DEFAULT 0,
    last_daily_bonus_at TEXT,
    created_at TEXT DEFAULT (CURRENT_TIMESTAMP)
);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    game_type TEXT,
    amount INTEGER NOT NULL,
    balance_after INTEGER NOT NULL,
    reason TEXT,
    created_at TEXT DEFAULT (CURRENT_TIMESTAMP),
    FOREIGN KEY (user_id) REFERENCES users(id)
);
CREATE INDEX IF NOT EXISTS idx_tx_user ON transactions(user_id);

CREATE TABLE IF NOT EXISTS game_history (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    game_type TEXT NOT NULL,
    bet_amount INTEGER NOT NULL,
    result TEXT NOT NULL,
    winnings INTEGER NOT NULL,
    details TEXT,
    created_at TEXT DEFAULT (CURRENT_TIMESTAMP),
    FOREIGN KEY (user_id) REFERENCES users(id)
);
CREATE INDEX IF NOT EXISTS idx_history_user ON game_history(user_id);

CREATE TABLE IF NOT EXISTS landmines_sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    bet_amount INTEGER NOT NULL,
    grid_size INTEGER NOT NULL,
    mine_count INTEGER NOT NULL,
    mine_positions TEXT NOT NULL,
    revealed_cells TEXT NOT NULL DEFAULT '[]',
    safe_revealed INTEGER NOT NULL DEFAULT 0,
    current_multiplier REAL NOT NULL DEFAULT 1.0,
    status TEXT NOT NULL DEFAULT 'in_progress',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    finished_at TEXT,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
CREATE INDEX IF NOT EXISTS idx_mines_user ON landmines_sessions(user_id);

CREATE TABLE IF NOT EXISTS crash_rounds (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    bet_amount INTEGER NOT NULL,
    crash_multiplier REAL NOT NULL,
    started_at TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'running',
    is_active INTEGER NOT NULL DEFAULT 1,
    cashed_out_at REAL,
    payout INTEGER NOT NULL DEFAULT 0,
    finished_at TEXT,
    server_seed TEXT,
    server_seed_hash TEXT,
    client_seed TEXT,
    nonce INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
CREATE INDEX IF NOT EXISTS idx_crash_user ON crash_rounds(user_id);

CREATE TABLE IF NOT EXISTS task_config (
    task_type TEXT PRIMARY KEY,
    reward_amount INTEGER NOT NULL,
    cooldown_seconds INTEGER NOT NULL,
    updated_at TEXT DEFAULT (CURRENT_TIMESTAMP)
);

CREATE TABLE IF NOT EXISTS task_completions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    task_type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'started',
    reward_amount INTEGER NOT NULL DEFAULT 0,
    started_at TEXT NOT NULL,
    completed_at TEXT,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
CREATE INDEX IF NOT EXISTS idx_tasks_user ON task_completions(user_id, task_type);

CREATE TABLE IF NOT EXISTS admin_audit_log (
    id TEXT PRIMARY KEY,
    admin_id TEXT NOT NULL,
    action TEXT NOT NULL,
    target_user_id TEXT,
    amount INTEGER,
    reason TEXT,
    created_at TEXT DEFAULT (CURRENT_TIMESTAMP)
);

CREATE TABLE IF NOT EXISTS achievements (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    achievement_type TEXT NOT NULL,
    achievement_data TEXT NOT NULL DEFAULT '{}',
    unlocked_at TEXT NOT NULL,
    UNIQUE (user_id, achievement_type),
    FOREIGN KEY (user_id) REFERENCES users(id)
)
"""


def _seed_task_config(db):
    for task_type, cfg in EconomyConfig.TASK_DEFAULTS.items():
        db.execute(
            "INSERT INTO task_config (task_type, reward_amount, cooldown_seconds) "
            "VALUES (?, ?, ?) ON CONFLICT (task_type) DO NOTHING",
            [task_type, cfg["reward_amount"], cfg["cooldown_seconds"]],
        )


def init_db():
    """Initialize the database schema and seed task_config."""
    with _make_connection() as db:
        db.executescript(SCHEMA_SQL)
        _seed_task_config(db)
    mode = "PostgreSQL" if USE_POSTGRES else f"SQLite ({SQLITE_PATH})"
    logger.info(f"Database initialized ({mode})")
