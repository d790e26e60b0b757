"""CazinoService - the only component with side effects.

Every lifecycle operation loads snapshots from storage, runs the rule
validator, asks the parimutuel calculator for new pool values and then writes
the results back. Validation always finishes before the first write, and the
writes of one operation share a storage transaction.

Mutations on the same bet or the same balance are serialized with per-entity
locks (bet, then market, then user), so concurrent wagers and resolutions
cannot lose updates. Every bet mutation also holds its market, so a market
delete never interleaves with one. Reads take no locks.
"""

from __future__ import annotations

import random
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from cazino.engine import parimutuel, rules
from cazino.engine.visibility import NOBODY, to_view, to_views
from cazino.errors import (
    AlreadyResolved,
    BetNotActive,
    ConstraintError,
    InternalError,
    InvalidAmount,
    NotFoundError,
    RuleError,
)
from cazino.models import (
    Bet,
    BetStatus,
    BetView,
    LeaderboardEntry,
    Market,
    MarketStatus,
    Payout,
    ProbabilityPoint,
    Side,
    User,
    Wager,
)
from cazino.service.invite import generate_invite_code, validate_invite_code
from cazino.service.locks import LockRegistry, bet_key, device_key, invite_key, market_key, user_key
from cazino.storage.base import Storage

log = structlog.get_logger(__name__)

HOUR_MS = 60 * 60 * 1000


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def _enforce() -> Iterator[None]:
    """Surface validator failures as ConstraintError."""
    try:
        yield
    except RuleError as e:
        raise ConstraintError(str(e), rule=e) from e


@dataclass
class CreateMarketParams:
    """Parameters for creating a new market."""

    name: str
    admin_device_id: str
    admin_name: str
    admin_avatar: str = "👑"
    starting_balance: int = 1000
    duration_hours: int = 24
    custom_invite_code: str | None = None


class CazinoService:
    """Market and bet orchestrator over a Storage backend."""

    def __init__(
        self,
        storage: Storage,
        *,
        clock: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
        rng: random.Random | None = None,
        invite_code_attempts: int = 10,
    ) -> None:
        self.storage = storage
        self._clock = clock
        self._new_id = id_factory
        self._rng = rng
        self._invite_code_attempts = max(1, invite_code_attempts)
        self._locks = LockRegistry()

    # ===== Markets =====

    def create_market(self, params: CreateMarketParams) -> tuple[Market, User]:
        """Create a Draft market and its admin. The admin starts with the market's starting balance."""
        with _enforce():
            if params.starting_balance < 0:
                raise InvalidAmount("Starting balance cannot be negative")
            if params.duration_hours <= 0:
                raise InvalidAmount("Duration must be a positive number of hours")
            if params.custom_invite_code:
                validate_invite_code(params.custom_invite_code)

        invite_code = params.custom_invite_code or self._unused_invite_code()
        now = self._clock()
        market_id = self._new_id()
        admin_id = self._new_id()
        market = Market(
            id=market_id,
            name=params.name,
            status=MarketStatus.DRAFT,
            created_by=admin_id,
            opens_at=now,
            closes_at=now + params.duration_hours * HOUR_MS,
            starting_balance=params.starting_balance,
            invite_code=invite_code,
            created_at=now,
        )
        admin = User(
            id=admin_id,
            market_id=market_id,
            device_id=params.admin_device_id,
            display_name=params.admin_name,
            avatar=params.admin_avatar,
            balance=params.starting_balance,
            is_admin=True,
            joined_at=now,
        )

        with self._locks.hold(invite_key(invite_code)):
            if self._invite_code_taken(invite_code):
                raise ConstraintError(f"Invite code already in use: {invite_code}")
            with self.storage.transaction():
                market = self.storage.create_market(market)
                admin = self.storage.create_user(admin)

        log.info("market_created", market_id=market.id, name=market.name, invite_code=invite_code, admin_id=admin.id)
        return market, admin

    def _invite_code_taken(self, code: str) -> bool:
        try:
            self.storage.get_market_by_invite_code(code)
        except NotFoundError:
            return False
        return True

    def _unused_invite_code(self) -> str:
        for _ in range(self._invite_code_attempts):
            code = generate_invite_code(self._rng)
            if not self._invite_code_taken(code):
                return code
            log.debug("invite_code_collision", invite_code=code)
        raise InternalError("Could not allocate a unique invite code")

    def join_market(self, invite_code: str, device_id: str, display_name: str, avatar: str) -> tuple[Market, User]:
        """Join by invite code. A returning device gets its original identity back unchanged."""
        market = self.storage.get_market_by_invite_code(invite_code)
        with self._locks.hold(device_key(market.id, device_id)):
            try:
                existing = self.storage.get_user_by_device_id(market.id, device_id)
            except NotFoundError:
                pass
            else:
                log.info("user_rejoined", market_id=market.id, user_id=existing.id)
                return market, existing

            user = User(
                id=self._new_id(),
                market_id=market.id,
                device_id=device_id,
                display_name=display_name,
                avatar=avatar,
                balance=market.starting_balance,
                is_admin=False,
                joined_at=self._clock(),
            )
            with self.storage.transaction():
                user = self.storage.create_user(user)

        log.info("user_joined", market_id=market.id, user_id=user.id, display_name=user.display_name)
        return market, user

    def _transition_market(self, market_id: str, admin_id: str, target: MarketStatus) -> Market:
        with self._locks.hold(market_key(market_id)):
            market = self.storage.get_market(market_id)
            admin = self.storage.get_user(admin_id)
            with _enforce():
                rules.validate_same_market(market.id, admin)
                rules.validate_market_transition(market, admin, target)
            with self.storage.transaction():
                self.storage.update_market_status(market_id, target)
        log.info("market_status_changed", market_id=market_id, old=market.status.value, new=target.value)
        return market.model_copy(update={"status": target})

    def open_market(self, market_id: str, admin_id: str) -> Market:
        """Draft -> Open (admin only)."""
        return self._transition_market(market_id, admin_id, MarketStatus.OPEN)

    def close_market(self, market_id: str, admin_id: str) -> Market:
        """Open -> Closed (admin only). Closing is manual; closes_at is never enforced here."""
        return self._transition_market(market_id, admin_id, MarketStatus.CLOSED)

    def resolve_market(self, market_id: str, admin_id: str) -> Market:
        """Closed -> Resolved (admin only)."""
        return self._transition_market(market_id, admin_id, MarketStatus.RESOLVED)

    def delete_market(self, market_id: str, admin_id: str) -> None:
        """Remove a market with all its users, bets and wagers (admin only)."""
        with self._locks.hold(market_key(market_id)):
            market = self.storage.get_market(market_id)
            admin = self.storage.get_user(admin_id)
            with _enforce():
                rules.validate_same_market(market.id, admin)
                rules.validate_bet_approval(admin)
            with self.storage.transaction():
                self.storage.delete_market(market_id)
        log.info("market_deleted", market_id=market_id, admin_id=admin_id)

    # ===== Bets =====

    def create_bet(
        self,
        market_id: str,
        creator_id: str,
        subject_user_id: str,
        description: str,
        initial_odds: str,
        opening_wager: int,
        hide_from_subject: bool = False,
    ) -> Bet:
        """Create an Active bet seeded by the creator's opening YES wager.

        The creator may name themselves as subject; only wagering is
        self-restricted.
        """
        with self._locks.hold(market_key(market_id), user_key(creator_id)):
            market = self.storage.get_market(market_id)
            creator = self.storage.get_user(creator_id)
            subject = self.storage.get_user(subject_user_id)
            with _enforce():
                rules.validate_same_market(market.id, creator)
                rules.validate_same_market(market.id, subject)
                rules.validate_bet_creation(market, creator, subject.id, opening_wager)
                yes_pool, no_pool = parimutuel.parse_initial_odds(initial_odds, opening_wager)

            now = self._clock()
            bet = Bet(
                id=self._new_id(),
                market_id=market.id,
                subject_user_id=subject.id,
                created_by=creator.id,
                description=description,
                initial_odds=initial_odds,
                status=BetStatus.ACTIVE,
                yes_pool=yes_pool,
                no_pool=no_pool,
                hide_from_subject=hide_from_subject,
                created_at=now,
            )
            opening = Wager(
                id=self._new_id(),
                bet_id=bet.id,
                user_id=creator.id,
                side=Side.YES,
                amount=opening_wager,
                placed_at=now,
                yes_pool_after=yes_pool,
                no_pool_after=no_pool,
                probability_after=parimutuel.probability(yes_pool, no_pool),
            )
            with self.storage.transaction():
                bet = self.storage.create_bet(bet)
                self.storage.create_wager(opening)
                self.storage.update_user_balance(creator.id, creator.balance - opening_wager)

        log.info(
            "bet_created",
            bet_id=bet.id,
            market_id=market.id,
            creator_id=creator.id,
            opening_wager=opening_wager,
            hidden=hide_from_subject,
        )
        return bet

    def approve_bet(self, bet_id: str, admin_id: str) -> Bet:
        """Pending -> Active (admin only). Approving an Active bet changes nothing."""
        market_id = self.storage.get_bet(bet_id).market_id
        with self._locks.hold(bet_key(bet_id), market_key(market_id)):
            bet = self.storage.get_bet(bet_id)
            admin = self.storage.get_user(admin_id)
            with _enforce():
                rules.validate_same_market(bet.market_id, admin)
                rules.validate_bet_approval(admin)
                if bet.status.is_resolved:
                    raise AlreadyResolved()
                if bet.status == BetStatus.CHALLENGED:
                    raise BetNotActive()
            if bet.status == BetStatus.PENDING:
                with self.storage.transaction():
                    self.storage.update_bet_status(bet_id, BetStatus.ACTIVE)
                bet = bet.model_copy(update={"status": BetStatus.ACTIVE})
                log.info("bet_approved", bet_id=bet_id, admin_id=admin_id)
        return bet

    def place_wager(self, bet_id: str, user_id: str, side: Side, amount: int) -> Wager:
        """Stake amount on one side. The returned wager carries the new pools and probability."""
        market_id = self.storage.get_bet(bet_id).market_id
        with self._locks.hold(bet_key(bet_id), market_key(market_id), user_key(user_id)):
            bet = self.storage.get_bet(bet_id)
            market = self.storage.get_market(bet.market_id)
            user = self.storage.get_user(user_id)
            with _enforce():
                rules.validate_same_market(market.id, user)
                rules.validate_wager(market, bet, user, amount)

            yes_after, no_after, potential = parimutuel.apply_wager(bet.yes_pool, bet.no_pool, side, amount)
            wager = Wager(
                id=self._new_id(),
                bet_id=bet.id,
                user_id=user.id,
                side=side,
                amount=amount,
                placed_at=self._clock(),
                yes_pool_after=yes_after,
                no_pool_after=no_after,
                probability_after=parimutuel.probability(yes_after, no_after),
            )
            with self.storage.transaction():
                wager = self.storage.create_wager(wager)
                self.storage.update_bet_pools(bet.id, yes_after, no_after)
                self.storage.update_user_balance(user.id, user.balance - amount)

        log.info(
            "wager_placed",
            bet_id=bet_id,
            user_id=user_id,
            side=side.value,
            amount=amount,
            yes_pool=yes_after,
            no_pool=no_after,
            probability=round(wager.probability_after, 4),
            potential_payout=potential,
        )
        return wager

    def resolve_bet(self, bet_id: str, admin_id: str, outcome: Side) -> list[Payout]:
        """Settle a bet and credit winners. Returns one Payout per winning user."""
        market_id = self.storage.get_bet(bet_id).market_id
        with self._locks.hold(bet_key(bet_id), market_key(market_id)):
            bet = self.storage.get_bet(bet_id)
            admin = self.storage.get_user(admin_id)
            with _enforce():
                rules.validate_same_market(bet.market_id, admin)
                rules.validate_bet_resolution(bet, admin)

            resolved = bet.model_copy(
                update={"status": BetStatus.resolved(outcome), "resolved_at": self._clock()}
            )
            wagers = self.storage.get_wagers_for_bet(bet_id)
            payouts = parimutuel.distribute_payouts(resolved, wagers)

            with self._locks.hold(*(user_key(uid) for uid in payouts)):
                with self.storage.transaction():
                    self.storage.update_bet_status(bet_id, resolved.status, resolved.resolved_at)
                    for uid, amount in payouts.items():
                        user = self.storage.get_user(uid)
                        self.storage.update_user_balance(uid, user.balance + amount)

        dust = parimutuel.rounding_dust(resolved, payouts)
        log.info(
            "bet_resolved",
            bet_id=bet_id,
            outcome=outcome.value,
            total_pool=resolved.total_pool,
            winners=len(payouts),
            paid_out=sum(payouts.values()),
            dust=dust,
        )
        return [Payout(user_id=uid, amount=amount) for uid, amount in payouts.items()]

    # ===== Queries =====

    def get_market(self, market_id: str) -> Market:
        return self.storage.get_market(market_id)

    def get_user(self, user_id: str) -> User:
        return self.storage.get_user(user_id)

    def get_bet(self, bet_id: str) -> Bet:
        return self.storage.get_bet(bet_id)

    def get_bet_view(self, bet_id: str, viewing_user_id: str) -> BetView:
        return to_view(self.storage.get_bet(bet_id), viewing_user_id)

    def get_bets(self, market_id: str, viewing_user_id: str) -> list[BetView]:
        """All bets in a market as the viewer may see them."""
        self.storage.get_market(market_id)
        return to_views(self.storage.get_bets_in_market(market_id), viewing_user_id)

    def get_pending_bets(self, market_id: str) -> list[Bet]:
        """Bets awaiting approval. Empty while creation goes straight to Active."""
        return self.storage.get_pending_bets(market_id)

    def get_probability_chart(self, bet_id: str) -> list[ProbabilityPoint]:
        """YES probability after each wager, in placement order."""
        self.storage.get_bet(bet_id)
        return [
            ProbabilityPoint(timestamp=w.placed_at, yes_probability=w.probability_after)
            for w in self.storage.get_wagers_for_bet(bet_id)
        ]

    def get_users(self, market_id: str) -> list[User]:
        return self.storage.get_users_in_market(market_id)

    def get_leaderboard(self, market_id: str) -> list[LeaderboardEntry]:
        """Users by balance, richest first. Ranks are positional: ties get consecutive ranks."""
        market = self.storage.get_market(market_id)
        users = sorted(self.storage.get_users_in_market(market_id), key=lambda u: u.balance, reverse=True)
        return [
            LeaderboardEntry(user=u, profit=u.balance - market.starting_balance, rank=i + 1)
            for i, u in enumerate(users)
        ]

    def get_reveal(self, user_id: str) -> list[BetView]:
        """Every bet about this user, unredacted. Meant for the end of a market."""
        self.storage.get_user(user_id)
        return to_views(self.storage.get_bets_about_user(user_id), NOBODY)

    def get_markets_by_device_id(self, device_id: str) -> list[tuple[Market, User]]:
        """Markets this device has joined (most recent first), for a "recent markets" list."""
        return self.storage.get_markets_by_device_id(device_id)

    def get_wagers_for_bet(self, bet_id: str) -> list[Wager]:
        """Wagers on a bet in placement order."""
        self.storage.get_bet(bet_id)
        return self.storage.get_wagers_for_bet(bet_id)

    def get_wagers_for_user(self, user_id: str) -> list[Wager]:
        return self.storage.get_wagers_for_user(user_id)
