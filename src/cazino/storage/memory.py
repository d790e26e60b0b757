"""In-memory storage backend (tests, CLI dry runs, single-process servers)."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import RLock

from cazino.errors import ConstraintError, NotFoundError
from cazino.models import Bet, BetStatus, Market, MarketStatus, User, Wager
from cazino.storage.base import Storage


class MemoryStorage(Storage):
    """Dict-backed store. Every call holds one re-entrant lock."""

    backend_id = "memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._markets: dict[str, Market] = {}
        self._users: dict[str, User] = {}
        self._bets: dict[str, Bet] = {}
        self._wagers: list[Wager] = []  # placement order
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the store lock for the block. The outermost block restores a snapshot if it raises."""
        with self._lock:
            snapshot = self._snapshot() if self._depth == 0 else None
            self._depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._markets, self._users, self._bets, self._wagers = snapshot
                raise
            finally:
                self._depth -= 1

    def _snapshot(self) -> tuple[dict[str, Market], dict[str, User], dict[str, Bet], list[Wager]]:
        # records are frozen, so shallow copies are enough
        return dict(self._markets), dict(self._users), dict(self._bets), list(self._wagers)

    # ----- Markets -----

    def create_market(self, market: Market) -> Market:
        with self._lock:
            if any(m.invite_code == market.invite_code for m in self._markets.values()):
                raise ConstraintError(f"Invite code already in use: {market.invite_code}")
            self._markets[market.id] = market
            return market

    def get_market(self, market_id: str) -> Market:
        with self._lock:
            try:
                return self._markets[market_id]
            except KeyError:
                raise NotFoundError("Market", market_id) from None

    def get_market_by_invite_code(self, code: str) -> Market:
        with self._lock:
            for m in self._markets.values():
                if m.invite_code == code:
                    return m
            raise NotFoundError("Market", code)

    def update_market_status(self, market_id: str, status: MarketStatus) -> None:
        with self._lock:
            market = self.get_market(market_id)
            self._markets[market_id] = market.model_copy(update={"status": status})

    def delete_market(self, market_id: str) -> None:
        with self._lock:
            self.get_market(market_id)
            bet_ids = {b.id for b in self._bets.values() if b.market_id == market_id}
            self._wagers = [w for w in self._wagers if w.bet_id not in bet_ids]
            self._bets = {k: b for k, b in self._bets.items() if k not in bet_ids}
            self._users = {k: u for k, u in self._users.items() if u.market_id != market_id}
            del self._markets[market_id]

    # ----- Users -----

    def create_user(self, user: User) -> User:
        with self._lock:
            for u in self._users.values():
                if u.market_id == user.market_id and u.device_id == user.device_id:
                    raise ConstraintError("Device already joined this market")
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> User:
        with self._lock:
            try:
                return self._users[user_id]
            except KeyError:
                raise NotFoundError("User", user_id) from None

    def get_user_by_device_id(self, market_id: str, device_id: str) -> User:
        with self._lock:
            for u in self._users.values():
                if u.market_id == market_id and u.device_id == device_id:
                    return u
            raise NotFoundError("User", f"{market_id}/{device_id}")

    def get_users_in_market(self, market_id: str) -> list[User]:
        with self._lock:
            return [u for u in self._users.values() if u.market_id == market_id]

    def update_user_balance(self, user_id: str, new_balance: int) -> None:
        with self._lock:
            user = self.get_user(user_id)
            self._users[user_id] = user.model_copy(update={"balance": new_balance})

    def get_markets_by_device_id(self, device_id: str, limit: int = 10) -> list[tuple[Market, User]]:
        with self._lock:
            joined = [u for u in self._users.values() if u.device_id == device_id]
            # dicts keep insertion order; reverse so later joins win ties
            joined = sorted(reversed(joined), key=lambda u: u.joined_at, reverse=True)
            return [(self._markets[u.market_id], u) for u in joined[:limit]]

    # ----- Bets -----

    def create_bet(self, bet: Bet) -> Bet:
        with self._lock:
            self._bets[bet.id] = bet
            return bet

    def get_bet(self, bet_id: str) -> Bet:
        with self._lock:
            try:
                return self._bets[bet_id]
            except KeyError:
                raise NotFoundError("Bet", bet_id) from None

    def get_bets_in_market(self, market_id: str) -> list[Bet]:
        with self._lock:
            return [b for b in self._bets.values() if b.market_id == market_id]

    def get_pending_bets(self, market_id: str) -> list[Bet]:
        with self._lock:
            return [
                b for b in self._bets.values()
                if b.market_id == market_id and b.status == BetStatus.PENDING
            ]

    def get_bets_about_user(self, user_id: str) -> list[Bet]:
        with self._lock:
            return [b for b in self._bets.values() if b.subject_user_id == user_id]

    def update_bet_status(self, bet_id: str, status: BetStatus, resolved_at: int | None = None) -> None:
        with self._lock:
            bet = self.get_bet(bet_id)
            self._bets[bet_id] = bet.model_copy(update={"status": status, "resolved_at": resolved_at})

    def update_bet_pools(self, bet_id: str, yes_pool: int, no_pool: int) -> None:
        with self._lock:
            bet = self.get_bet(bet_id)
            self._bets[bet_id] = bet.model_copy(update={"yes_pool": yes_pool, "no_pool": no_pool})

    # ----- Wagers -----

    def create_wager(self, wager: Wager) -> Wager:
        with self._lock:
            self._wagers.append(wager)
            return wager

    def get_wagers_for_bet(self, bet_id: str) -> list[Wager]:
        with self._lock:
            return [w for w in self._wagers if w.bet_id == bet_id]

    def get_wagers_for_user(self, user_id: str) -> list[Wager]:
        with self._lock:
            return [w for w in self._wagers if w.user_id == user_id]
