"""DuckDB storage backend."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from threading import RLock

import duckdb
import structlog

from cazino.errors import ConstraintError, InternalError, NotFoundError
from cazino.models import Bet, BetStatus, Market, MarketStatus, User, Wager
from cazino.storage import bets as bet_rows
from cazino.storage import markets as market_rows
from cazino.storage.base import Storage
from cazino.storage.db import get_connection, init_schema

log = structlog.get_logger(__name__)


class DuckDBStorage(Storage):
    """Single DuckDB connection shared by all threads behind a re-entrant lock.

    transaction() holds the lock for the whole block, so one operation's
    writes commit or roll back together.
    """

    backend_id = "duckdb"

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = str(db_path)
        self._lock = RLock()
        self._depth = 0
        try:
            self._conn = get_connection(self.db_path)
            init_schema(self._conn)
        except duckdb.Error as e:
            log.error("storage_open_failed", db_path=self.db_path, error=str(e))
            raise InternalError("Could not open database") from e

    @contextmanager
    def _guard(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._lock:
            try:
                yield self._conn
            except duckdb.ConstraintException as e:
                log.info("storage_constraint", error=str(e))
                raise ConstraintError("Conflicts with existing data") from e
            except duckdb.Error as e:
                log.error("storage_error", error=str(e))
                raise InternalError("Database error") from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                with self._guard() as conn:
                    conn.execute("BEGIN TRANSACTION")
            self._depth += 1
            try:
                yield
            except BaseException:
                self._depth -= 1
                if outermost:
                    self._rollback()
                raise
            self._depth -= 1
            if outermost:
                with self._guard() as conn:
                    conn.execute("COMMIT")

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except duckdb.Error as e:
            log.warning("storage_rollback_failed", error=str(e))

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ----- Markets -----

    def create_market(self, market: Market) -> Market:
        with self._guard() as conn:
            market_rows.insert_market(conn, market)
        return market

    def get_market(self, market_id: str) -> Market:
        with self._guard() as conn:
            market = market_rows.fetch_market(conn, market_id)
        if market is None:
            raise NotFoundError("Market", market_id)
        return market

    def get_market_by_invite_code(self, code: str) -> Market:
        with self._guard() as conn:
            market = market_rows.fetch_market_by_invite_code(conn, code)
        if market is None:
            raise NotFoundError("Market", code)
        return market

    def update_market_status(self, market_id: str, status: MarketStatus) -> None:
        with self._guard() as conn:
            found = market_rows.set_market_status(conn, market_id, status)
        if not found:
            raise NotFoundError("Market", market_id)

    def delete_market(self, market_id: str) -> None:
        self.get_market(market_id)
        with self._guard() as conn:
            market_rows.delete_market_rows(conn, market_id)

    # ----- Users -----

    def create_user(self, user: User) -> User:
        with self._guard() as conn:
            market_rows.insert_user(conn, user)
        return user

    def get_user(self, user_id: str) -> User:
        with self._guard() as conn:
            user = market_rows.fetch_user(conn, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def get_user_by_device_id(self, market_id: str, device_id: str) -> User:
        with self._guard() as conn:
            user = market_rows.fetch_user_by_device_id(conn, market_id, device_id)
        if user is None:
            raise NotFoundError("User", f"{market_id}/{device_id}")
        return user

    def get_users_in_market(self, market_id: str) -> list[User]:
        with self._guard() as conn:
            return market_rows.list_users_in_market(conn, market_id)

    def update_user_balance(self, user_id: str, new_balance: int) -> None:
        with self._guard() as conn:
            found = market_rows.set_user_balance(conn, user_id, new_balance)
        if not found:
            raise NotFoundError("User", user_id)

    def get_markets_by_device_id(self, device_id: str, limit: int = 10) -> list[tuple[Market, User]]:
        with self._guard() as conn:
            return market_rows.list_markets_by_device_id(conn, device_id, limit=limit)

    # ----- Bets -----

    def create_bet(self, bet: Bet) -> Bet:
        with self._guard() as conn:
            bet_rows.insert_bet(conn, bet)
        return bet

    def get_bet(self, bet_id: str) -> Bet:
        with self._guard() as conn:
            bet = bet_rows.fetch_bet(conn, bet_id)
        if bet is None:
            raise NotFoundError("Bet", bet_id)
        return bet

    def get_bets_in_market(self, market_id: str) -> list[Bet]:
        with self._guard() as conn:
            return bet_rows.list_bets(conn, market_id=market_id)

    def get_pending_bets(self, market_id: str) -> list[Bet]:
        with self._guard() as conn:
            return bet_rows.list_bets(conn, market_id=market_id, status=BetStatus.PENDING)

    def get_bets_about_user(self, user_id: str) -> list[Bet]:
        with self._guard() as conn:
            return bet_rows.list_bets(conn, subject_user_id=user_id)

    def update_bet_status(self, bet_id: str, status: BetStatus, resolved_at: int | None = None) -> None:
        with self._guard() as conn:
            found = bet_rows.set_bet_status(conn, bet_id, status, resolved_at)
        if not found:
            raise NotFoundError("Bet", bet_id)

    def update_bet_pools(self, bet_id: str, yes_pool: int, no_pool: int) -> None:
        with self._guard() as conn:
            found = bet_rows.set_bet_pools(conn, bet_id, yes_pool, no_pool)
        if not found:
            raise NotFoundError("Bet", bet_id)

    # ----- Wagers -----

    def create_wager(self, wager: Wager) -> Wager:
        with self._guard() as conn:
            bet_rows.insert_wager(conn, wager)
        return wager

    def get_wagers_for_bet(self, bet_id: str) -> list[Wager]:
        with self._guard() as conn:
            return bet_rows.list_wagers(conn, bet_id=bet_id)

    def get_wagers_for_user(self, user_id: str) -> list[Wager]:
        with self._guard() as conn:
            return bet_rows.list_wagers(conn, user_id=user_id)
