"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

# No FOREIGN KEY clauses: DuckDB rejects in-place updates of referenced rows
# (user balances, bet pools) while children point at them.
SCHEMA_SQL = """
-- Sequence giving wagers a total order per bet (placed_at can tie at ms resolution)
CREATE SEQUENCE IF NOT EXISTS wager_seq START 1;

CREATE TABLE IF NOT EXISTS markets (
    id                  VARCHAR PRIMARY KEY,
    name                VARCHAR NOT NULL,
    status              VARCHAR NOT NULL,
    created_by          VARCHAR NOT NULL,
    opens_at            BIGINT NOT NULL,
    closes_at           BIGINT NOT NULL,
    starting_balance    BIGINT NOT NULL,
    invite_code         VARCHAR NOT NULL UNIQUE,
    created_at          BIGINT NOT NULL
);

-- Participants. (market_id, device_id) identifies a returning device
CREATE TABLE IF NOT EXISTS users (
    id                  VARCHAR PRIMARY KEY,
    market_id           VARCHAR NOT NULL,
    device_id           VARCHAR NOT NULL,
    display_name        VARCHAR NOT NULL,
    avatar              VARCHAR NOT NULL,
    balance             BIGINT NOT NULL,
    is_admin            BOOLEAN NOT NULL,
    joined_at           BIGINT NOT NULL,
    UNIQUE (market_id, device_id)
);

CREATE TABLE IF NOT EXISTS bets (
    id                  VARCHAR PRIMARY KEY,
    market_id           VARCHAR NOT NULL,
    subject_user_id     VARCHAR NOT NULL,
    created_by          VARCHAR NOT NULL,
    description         VARCHAR NOT NULL,
    initial_odds        VARCHAR NOT NULL,
    status              VARCHAR NOT NULL,
    yes_pool            BIGINT NOT NULL,
    no_pool             BIGINT NOT NULL,
    hide_from_subject   BOOLEAN NOT NULL DEFAULT FALSE,
    created_at          BIGINT NOT NULL,
    resolved_at         BIGINT
);

-- Append-only. Each row snapshots the pools right after it was applied
CREATE TABLE IF NOT EXISTS wagers (
    id                  VARCHAR PRIMARY KEY,
    seq                 BIGINT NOT NULL DEFAULT nextval('wager_seq'),
    bet_id              VARCHAR NOT NULL,
    user_id             VARCHAR NOT NULL,
    side                VARCHAR NOT NULL,
    amount              BIGINT NOT NULL,
    placed_at           BIGINT NOT NULL,
    yes_pool_after      BIGINT NOT NULL,
    no_pool_after       BIGINT NOT NULL,
    probability_after   DOUBLE NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ":memory:" opens a private in-memory database."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
