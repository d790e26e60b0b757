"""Error kinds surfaced by the engine: NotFound, Constraint, Internal.

Rule failures are raised by the pure validator and odds parser; the
orchestrator wraps them in ConstraintError before they reach a caller.
"""

from __future__ import annotations


class CazinoError(Exception):
    """Base for every error the engine surfaces to its callers."""

    code = "error"


class NotFoundError(CazinoError):
    """A referenced market, user, bet or wager does not exist."""

    code = "not_found"

    def __init__(self, entity: str, key: str) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class ConstraintError(CazinoError):
    """A business rule was violated. Safe to show to the user."""

    code = "constraint"

    def __init__(self, message: str, rule: RuleError | None = None) -> None:
        self.rule = rule
        super().__init__(message)


class InternalError(CazinoError):
    """Storage or infrastructure failure. Message carries no driver detail."""

    code = "internal"


# --- Rule failures (raised by cazino.engine, never by storage) ---


class RuleError(Exception):
    """A validator precondition failed."""


class MarketNotOpen(RuleError):
    def __init__(self) -> None:
        super().__init__("Market is not open for betting")


class BetNotActive(RuleError):
    def __init__(self) -> None:
        super().__init__("Bet is not active")


class InsufficientBalance(RuleError):
    def __init__(self, needed: int, available: int) -> None:
        self.needed = needed
        self.available = available
        super().__init__(f"Insufficient balance: need {needed}, have {available}")


class CannotBetOnSelf(RuleError):
    def __init__(self) -> None:
        super().__init__("Cannot bet on bets about yourself")


class AdminOnly(RuleError):
    def __init__(self) -> None:
        super().__init__("Only admin can perform this action")


class InvalidAmount(RuleError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid amount: {reason}")


class AlreadyResolved(RuleError):
    def __init__(self) -> None:
        super().__init__("Bet already resolved")


class InvalidMarketStatus(RuleError):
    def __init__(self, current: str | None = None, action: str | None = None) -> None:
        self.current = current
        self.action = action
        if current and action:
            super().__init__(f"Cannot {action} a market that is {current}")
        else:
            super().__init__("Market not in correct status for this action")


class InvalidOdds(RuleError):
    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Invalid odds format: {label!r} (expected N:M with positive integers)")


class InvalidInviteCode(RuleError):
    def __init__(self, code: str) -> None:
        self.invite_code = code
        super().__init__(
            f"Invalid invite code: {code!r} (expected 6 characters from A-Z and 2-9, excluding I, O, 0, 1)"
        )


class NotInMarket(RuleError):
    def __init__(self, user_id: str, market_id: str) -> None:
        self.user_id = user_id
        self.market_id = market_id
        super().__init__(f"User {user_id} does not belong to market {market_id}")
