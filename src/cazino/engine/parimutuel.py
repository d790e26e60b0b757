"""Parimutuel calculator - pool probability, hypothetical payout, final payouts.

All wagers on a side go into that side's pool. When a bet resolves, winners
split the combined pool in proportion to their contribution to the winning
pool. Payouts are truncated to whole coins, so the sum paid out can fall
short of the total pool by up to one coin per winner. That remainder
("dust") is not redistributed.
"""

from __future__ import annotations

from collections.abc import Iterable

from cazino.errors import InvalidOdds
from cazino.models import Bet, Side, Wager


def probability(yes_pool: int, no_pool: int) -> float:
    """YES probability = yes_pool / (yes_pool + no_pool). 0.5 when both pools are empty."""
    total = yes_pool + no_pool
    if total == 0:
        return 0.5
    return yes_pool / total


def _share(contribution: int, winning_pool: int, total_pool: int) -> int:
    # floor(contribution / winning_pool * total_pool) without float rounding
    return contribution * total_pool // winning_pool


def apply_wager(yes_pool: int, no_pool: int, side: Side, amount: int) -> tuple[int, int, int]:
    """Add amount to one side. Return (new_yes_pool, new_no_pool, payout if that side wins)."""
    if side == Side.YES:
        new_yes, new_no = yes_pool + amount, no_pool
    else:
        new_yes, new_no = yes_pool, no_pool + amount
    winning_pool = new_yes if side == Side.YES else new_no
    if winning_pool == 0:
        return new_yes, new_no, 0
    return new_yes, new_no, _share(amount, winning_pool, new_yes + new_no)


def distribute_payouts(bet: Bet, wagers: Iterable[Wager]) -> dict[str, int]:
    """Map user_id -> payout for a resolved bet. Empty if unresolved or nobody backed the winner.

    Users are listed in the order of their first winning wager.
    """
    winning_side = bet.winning_side
    if winning_side is None:
        return {}
    winning_pool = bet.pool(winning_side)
    if winning_pool == 0:
        return {}
    total_pool = bet.total_pool

    contributions: dict[str, int] = {}
    for w in wagers:
        if w.side == winning_side:
            contributions[w.user_id] = contributions.get(w.user_id, 0) + w.amount
    return {
        user_id: _share(amount, winning_pool, total_pool)
        for user_id, amount in contributions.items()
    }


def rounding_dust(bet: Bet, payouts: dict[str, int]) -> int:
    """Coins left in the pool after truncated payouts (0 when nothing was paid)."""
    if not payouts:
        return 0
    return bet.total_pool - sum(payouts.values())


def parse_initial_odds(label: str, opening_wager: int) -> tuple[int, int]:
    """Validate an "N:M" odds label and return the opening (yes_pool, no_pool).

    The label is for display: the creator's whole opening wager seeds the YES
    pool whatever the ratio says, and real odds emerge from later wagers.
    """
    parts = (label or "").split(":")
    if len(parts) != 2:
        raise InvalidOdds(label)
    try:
        yes_ratio, no_ratio = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidOdds(label) from None
    if yes_ratio <= 0 or no_ratio <= 0:
        raise InvalidOdds(label)
    return opening_wager, 0
