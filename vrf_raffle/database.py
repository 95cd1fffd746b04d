"""
Database Schema Setup for the Raffle
Creates the tables that hold raffle state, entrants, payout history and account balances
"""

import logging
import threading
import weakref

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL

logger = logging.getLogger(__name__)

# Wei amounts are stored as decimal strings so uint256-sized values survive every backend
RAFFLE_SCHEMA_SQL = """
-- ============================================
-- RAFFLE DATABASE SCHEMA
-- ============================================

-- One row per deployed raffle
CREATE TABLE IF NOT EXISTS raffle_state (
    address VARCHAR(42) PRIMARY KEY,
    raffle_state VARCHAR(20) NOT NULL DEFAULT 'OPEN',  -- OPEN, CALCULATING
    entrance_fee VARCHAR(78) NOT NULL,
    interval_seconds INTEGER NOT NULL,
    pool_balance VARCHAR(78) NOT NULL DEFAULT '0',
    last_timestamp BIGINT NOT NULL,
    recent_winner VARCHAR(64),
    pending_request_id BIGINT,
    requested_at BIGINT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Entrants of the current cycle (cleared on payout)
CREATE TABLE IF NOT EXISTS raffle_players (
    raffle_address VARCHAR(42) NOT NULL REFERENCES raffle_state(address) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    player VARCHAR(64) NOT NULL,
    payment VARCHAR(78) NOT NULL,
    entered_at BIGINT NOT NULL,
    PRIMARY KEY (raffle_address, position)
);

-- Payout history
CREATE TABLE IF NOT EXISTS raffle_winners (
    raffle_address VARCHAR(42) NOT NULL REFERENCES raffle_state(address) ON DELETE CASCADE,
    request_id BIGINT NOT NULL,
    winner VARCHAR(64) NOT NULL,
    amount VARCHAR(78) NOT NULL,
    random_word VARCHAR(80) NOT NULL,
    num_players INTEGER NOT NULL,
    picked_at BIGINT NOT NULL,
    PRIMARY KEY (raffle_address, request_id)
);

-- Account balances credited by payouts
CREATE TABLE IF NOT EXISTS ledger_accounts (
    account VARCHAR(64) PRIMARY KEY,
    balance VARCHAR(78) NOT NULL DEFAULT '0',
    accepts_payments BOOLEAN NOT NULL DEFAULT TRUE
);

-- ============================================
-- INDICES
-- ============================================

CREATE INDEX IF NOT EXISTS idx_raffle_players_player ON raffle_players(player);
CREATE INDEX IF NOT EXISTS idx_raffle_winners_winner ON raffle_winners(winner);
"""

REQUIRED_TABLES = [
    'raffle_state',
    'raffle_players',
    'raffle_winners',
    'ledger_accounts',
]


def create_raffle_engine(database_url=None, echo=False):
    """
    Create the SQLAlchemy engine that owns raffle state

    In-memory SQLite gets a single shared connection so every operation
    sees the same database.

    Args:
        database_url: SQLAlchemy URL (default: DATABASE_URL setting)
        echo: Log emitted SQL

    Returns:
        Engine
    """
    url = database_url or DATABASE_URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=echo)


def _split_statements(schema_sql):
    """Split a SQL script into single statements (SQLite runs one at a time)"""
    statements = []
    current_statement = []

    for line in schema_sql.split('\n'):
        stripped = line.strip()
        if not stripped or stripped.startswith('--'):
            continue

        current_statement.append(line)

        if stripped.endswith(';'):
            statements.append('\n'.join(current_statement))
            current_statement = []

    return statements


def setup_raffle_database(engine):
    """
    Create all raffle tables and indices (idempotent)

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.debug("Setting up raffle database schema...")

    with engine.begin() as conn:
        for statement in _split_statements(RAFFLE_SCHEMA_SQL):
            conn.execute(text(statement))

    logger.debug("✅ Raffle database schema ready")


def verify_raffle_schema(engine):
    """
    Verify that all required tables exist

    Args:
        engine: SQLAlchemy engine instance

    Returns:
        dict: Status of each table (True/False)
    """
    existing = set(inspect(engine).get_table_names())
    return {table: table in existing for table in REQUIRED_TABLES}


_ENGINE_LOCKS = weakref.WeakKeyDictionary()
_ENGINE_LOCKS_GUARD = threading.Lock()


def engine_lock(engine):
    """
    Lock shared by everything that reads or writes through this engine

    Raffle operations are serialized per engine: each one runs as a single
    transaction while holding this lock.
    """
    with _ENGINE_LOCKS_GUARD:
        lock = _ENGINE_LOCKS.get(engine)
        if lock is None:
            lock = threading.RLock()
            _ENGINE_LOCKS[engine] = lock
        return lock


# Backends that honor SELECT ... FOR UPDATE
ROW_LOCKING_DIALECTS = ('postgresql', 'mysql', 'mariadb', 'oracle')


def row_lock_clause(conn):
    """
    Row-lock suffix for a SELECT on this connection's backend

    Serializes raffle operations across processes sharing one database.
    SQLite locks the whole database on write and gets no clause.
    """
    if conn.dialect.name in ROW_LOCKING_DIALECTS:
        return " FOR UPDATE"
    return ""
