"""Market and user persistence (DuckDB rows <-> models)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from cazino.models import Market, MarketStatus, User

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

MARKET_COLUMNS = ["id", "name", "status", "created_by", "opens_at", "closes_at", "starting_balance", "invite_code", "created_at"]
USER_COLUMNS = ["id", "market_id", "device_id", "display_name", "avatar", "balance", "is_admin", "joined_at"]

_MARKET_SELECT = f"SELECT {', '.join(MARKET_COLUMNS)} FROM markets"
_USER_SELECT = f"SELECT {', '.join(USER_COLUMNS)} FROM users"


def market_from_row(row: tuple[Any, ...]) -> Market:
    return Market(**dict(zip(MARKET_COLUMNS, row)))


def user_from_row(row: tuple[Any, ...]) -> User:
    return User(**dict(zip(USER_COLUMNS, row)))


def insert_market(conn: DuckDBPyConnection, market: Market) -> None:
    conn.execute(
        """
        INSERT INTO markets (id, name, status, created_by, opens_at, closes_at, starting_balance, invite_code, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            market.id,
            market.name,
            market.status.value,
            market.created_by,
            market.opens_at,
            market.closes_at,
            market.starting_balance,
            market.invite_code,
            market.created_at,
        ],
    )


def fetch_market(conn: DuckDBPyConnection, market_id: str) -> Market | None:
    row = conn.execute(f"{_MARKET_SELECT} WHERE id = ?", [market_id]).fetchone()
    return market_from_row(row) if row else None


def fetch_market_by_invite_code(conn: DuckDBPyConnection, code: str) -> Market | None:
    row = conn.execute(f"{_MARKET_SELECT} WHERE invite_code = ?", [code]).fetchone()
    return market_from_row(row) if row else None


def set_market_status(conn: DuckDBPyConnection, market_id: str, status: MarketStatus) -> bool:
    """Return False when no market has this id."""
    row = conn.execute(
        "UPDATE markets SET status = ? WHERE id = ? RETURNING id", [status.value, market_id]
    ).fetchone()
    return row is not None


def delete_market_rows(conn: DuckDBPyConnection, market_id: str) -> None:
    """Delete a market and everything hanging off it, children first."""
    conn.execute(
        "DELETE FROM wagers WHERE bet_id IN (SELECT id FROM bets WHERE market_id = ?)",
        [market_id],
    )
    conn.execute("DELETE FROM bets WHERE market_id = ?", [market_id])
    conn.execute("DELETE FROM users WHERE market_id = ?", [market_id])
    conn.execute("DELETE FROM markets WHERE id = ?", [market_id])


def insert_user(conn: DuckDBPyConnection, user: User) -> None:
    conn.execute(
        """
        INSERT INTO users (id, market_id, device_id, display_name, avatar, balance, is_admin, joined_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            user.id,
            user.market_id,
            user.device_id,
            user.display_name,
            user.avatar,
            user.balance,
            user.is_admin,
            user.joined_at,
        ],
    )


def fetch_user(conn: DuckDBPyConnection, user_id: str) -> User | None:
    row = conn.execute(f"{_USER_SELECT} WHERE id = ?", [user_id]).fetchone()
    return user_from_row(row) if row else None


def fetch_user_by_device_id(conn: DuckDBPyConnection, market_id: str, device_id: str) -> User | None:
    row = conn.execute(
        f"{_USER_SELECT} WHERE market_id = ? AND device_id = ?", [market_id, device_id]
    ).fetchone()
    return user_from_row(row) if row else None


def list_users_in_market(conn: DuckDBPyConnection, market_id: str) -> list[User]:
    rows = conn.execute(f"{_USER_SELECT} WHERE market_id = ? ORDER BY joined_at", [market_id]).fetchall()
    return [user_from_row(r) for r in rows]


def set_user_balance(conn: DuckDBPyConnection, user_id: str, new_balance: int) -> bool:
    row = conn.execute(
        "UPDATE users SET balance = ? WHERE id = ? RETURNING id", [new_balance, user_id]
    ).fetchone()
    return row is not None


def list_markets_by_device_id(conn: DuckDBPyConnection, device_id: str, limit: int = 10) -> list[tuple[Market, User]]:
    """(market, user) pairs for every market this device joined, newest join first."""
    market_cols = ", ".join(f"m.{c}" for c in MARKET_COLUMNS)
    user_cols = ", ".join(f"u.{c}" for c in USER_COLUMNS)
    rows = conn.execute(
        f"""
        SELECT {market_cols}, {user_cols}
        FROM users u
        JOIN markets m ON u.market_id = m.id
        WHERE u.device_id = ?
        ORDER BY u.joined_at DESC
        LIMIT ?
        """,
        [device_id, limit],
    ).fetchall()
    n = len(MARKET_COLUMNS)
    return [(market_from_row(r[:n]), user_from_row(r[n:])) for r in rows]
