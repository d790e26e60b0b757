"""Storage capability interface. Implement once per backend (memory, DuckDB, ...).

Lookups raise NotFoundError for missing entities; backend failures surface
as InternalError. The service never branches on which backend it talks to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from cazino.models import Bet, BetStatus, Market, MarketStatus, User, Wager

if TYPE_CHECKING:
    from cazino.config.settings import Settings


class Storage(ABC):
    """One method per entity operation."""

    backend_id: str = ""

    # ----- Markets -----

    @abstractmethod
    def create_market(self, market: Market) -> Market: ...

    @abstractmethod
    def get_market(self, market_id: str) -> Market: ...

    @abstractmethod
    def get_market_by_invite_code(self, code: str) -> Market: ...

    @abstractmethod
    def update_market_status(self, market_id: str, status: MarketStatus) -> None: ...

    @abstractmethod
    def delete_market(self, market_id: str) -> None:
        """Remove a market with its users, bets and wagers."""
        ...

    # ----- Users -----

    @abstractmethod
    def create_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> User: ...

    @abstractmethod
    def get_user_by_device_id(self, market_id: str, device_id: str) -> User: ...

    @abstractmethod
    def get_users_in_market(self, market_id: str) -> list[User]: ...

    @abstractmethod
    def update_user_balance(self, user_id: str, new_balance: int) -> None: ...

    @abstractmethod
    def get_markets_by_device_id(self, device_id: str, limit: int = 10) -> list[tuple[Market, User]]:
        """Markets this device has joined, most recent join first."""
        ...

    # ----- Bets -----

    @abstractmethod
    def create_bet(self, bet: Bet) -> Bet: ...

    @abstractmethod
    def get_bet(self, bet_id: str) -> Bet: ...

    @abstractmethod
    def get_bets_in_market(self, market_id: str) -> list[Bet]: ...

    @abstractmethod
    def get_pending_bets(self, market_id: str) -> list[Bet]: ...

    @abstractmethod
    def get_bets_about_user(self, user_id: str) -> list[Bet]: ...

    @abstractmethod
    def update_bet_status(self, bet_id: str, status: BetStatus, resolved_at: int | None = None) -> None: ...

    @abstractmethod
    def update_bet_pools(self, bet_id: str, yes_pool: int, no_pool: int) -> None: ...

    # ----- Wagers -----

    @abstractmethod
    def create_wager(self, wager: Wager) -> Wager: ...

    @abstractmethod
    def get_wagers_for_bet(self, bet_id: str) -> list[Wager]:
        """Wagers in placement order."""
        ...

    @abstractmethod
    def get_wagers_for_user(self, user_id: str) -> list[Wager]: ...

    # ----- Lifecycle -----

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group the writes of one operation. Backends without transactions just run the block."""
        yield

    def close(self) -> None:
        pass


def open_storage(settings: Settings) -> Storage:
    """Return the backend named in config ([storage] backend)."""
    backend = settings.storage_backend
    if backend == "memory":
        from cazino.storage.memory import MemoryStorage

        return MemoryStorage()
    if backend == "duckdb":
        from cazino.storage.duckdb_store import DuckDBStorage

        return DuckDBStorage(settings.db_path)
    raise ValueError(f"Unknown storage backend: {backend}")
