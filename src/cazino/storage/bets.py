"""Bet and wager persistence (DuckDB rows <-> models)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from cazino.models import Bet, BetStatus, Wager

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

BET_COLUMNS = [
    "id", "market_id", "subject_user_id", "created_by", "description", "initial_odds",
    "status", "yes_pool", "no_pool", "hide_from_subject", "created_at", "resolved_at",
]
WAGER_COLUMNS = [
    "id", "bet_id", "user_id", "side", "amount", "placed_at",
    "yes_pool_after", "no_pool_after", "probability_after",
]

_BET_SELECT = f"SELECT {', '.join(BET_COLUMNS)} FROM bets"
_WAGER_SELECT = f"SELECT {', '.join(WAGER_COLUMNS)} FROM wagers"


def bet_from_row(row: tuple[Any, ...]) -> Bet:
    return Bet(**dict(zip(BET_COLUMNS, row)))


def wager_from_row(row: tuple[Any, ...]) -> Wager:
    return Wager(**dict(zip(WAGER_COLUMNS, row)))


def insert_bet(conn: DuckDBPyConnection, bet: Bet) -> None:
    conn.execute(
        """
        INSERT INTO bets (id, market_id, subject_user_id, created_by, description, initial_odds,
                          status, yes_pool, no_pool, hide_from_subject, created_at, resolved_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            bet.id,
            bet.market_id,
            bet.subject_user_id,
            bet.created_by,
            bet.description,
            bet.initial_odds,
            bet.status.value,
            bet.yes_pool,
            bet.no_pool,
            bet.hide_from_subject,
            bet.created_at,
            bet.resolved_at,
        ],
    )


def fetch_bet(conn: DuckDBPyConnection, bet_id: str) -> Bet | None:
    row = conn.execute(f"{_BET_SELECT} WHERE id = ?", [bet_id]).fetchone()
    return bet_from_row(row) if row else None


def list_bets(
    conn: DuckDBPyConnection,
    market_id: str | None = None,
    subject_user_id: str | None = None,
    status: BetStatus | None = None,
) -> list[Bet]:
    """Bets filtered by market, subject and/or status, oldest first."""
    clauses: list[str] = []
    params: list[Any] = []
    if market_id is not None:
        clauses.append("market_id = ?")
        params.append(market_id)
    if subject_user_id is not None:
        clauses.append("subject_user_id = ?")
        params.append(subject_user_id)
    if status is not None:
        clauses.append("status = ?")
        params.append(status.value)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(f"{_BET_SELECT}{where} ORDER BY created_at", params).fetchall()
    return [bet_from_row(r) for r in rows]


def set_bet_status(conn: DuckDBPyConnection, bet_id: str, status: BetStatus, resolved_at: int | None) -> bool:
    """Return False when no bet has this id."""
    row = conn.execute(
        "UPDATE bets SET status = ?, resolved_at = ? WHERE id = ? RETURNING id",
        [status.value, resolved_at, bet_id],
    ).fetchone()
    return row is not None


def set_bet_pools(conn: DuckDBPyConnection, bet_id: str, yes_pool: int, no_pool: int) -> bool:
    row = conn.execute(
        "UPDATE bets SET yes_pool = ?, no_pool = ? WHERE id = ? RETURNING id", [yes_pool, no_pool, bet_id]
    ).fetchone()
    return row is not None


def insert_wager(conn: DuckDBPyConnection, wager: Wager) -> None:
    conn.execute(
        """
        INSERT INTO wagers (id, bet_id, user_id, side, amount, placed_at, yes_pool_after, no_pool_after, probability_after)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            wager.id,
            wager.bet_id,
            wager.user_id,
            wager.side.value,
            wager.amount,
            wager.placed_at,
            wager.yes_pool_after,
            wager.no_pool_after,
            wager.probability_after,
        ],
    )


def list_wagers(conn: DuckDBPyConnection, bet_id: str | None = None, user_id: str | None = None) -> list[Wager]:
    """Wagers for a bet or a user in placement order."""
    if bet_id is not None:
        rows = conn.execute(f"{_WAGER_SELECT} WHERE bet_id = ? ORDER BY seq", [bet_id]).fetchall()
    elif user_id is not None:
        rows = conn.execute(f"{_WAGER_SELECT} WHERE user_id = ? ORDER BY seq", [user_id]).fetchall()
    else:
        rows = conn.execute(f"{_WAGER_SELECT} ORDER BY seq").fetchall()
    return [wager_from_row(r) for r in rows]
