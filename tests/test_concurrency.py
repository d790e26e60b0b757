"""Concurrent wagers must not lose updates to pools or balances."""

import threading

import pytest

from cazino.errors import ConstraintError, NotFoundError
from cazino.models import Side
from cazino.service import CazinoService, CreateMarketParams


def test_parallel_wagers_keep_ledger_consistent(service):
    market, admin = service.create_market(CreateMarketParams(name="Race", admin_device_id="a", admin_name="A"))
    players = [service.join_market(market.invite_code, f"d{i}", f"P{i}", "")[1] for i in range(6)]
    service.open_market(market.id, admin.id)
    subject = players[0]
    bet = service.create_bet(market.id, admin.id, subject.id, "Race", "1:1", 10)

    errors = []

    def bettor(user, side):
        for _ in range(20):
            try:
                service.place_wager(bet.id, user.id, side, 7)
            except ConstraintError as e:
                errors.append(e)

    threads = [
        threading.Thread(target=bettor, args=(p, Side.YES if i % 2 else Side.NO))
        for i, p in enumerate(players[1:])
    ]
    # one user hammered from two threads at once
    threads.append(threading.Thread(target=bettor, args=(players[1], Side.NO)))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    final = service.get_bet(bet.id)
    wagers = service.get_wagers_for_bet(bet.id)
    assert len(wagers) == 1 + 20 * 6
    assert final.yes_pool == sum(w.amount for w in wagers if w.side == Side.YES)
    assert final.no_pool == sum(w.amount for w in wagers if w.side == Side.NO)
    assert service.get_user(players[1].id).balance == 1000 - 2 * 20 * 7
    assert service.get_user(players[2].id).balance == 1000 - 20 * 7


def test_parallel_resolution_pays_once(service, family):
    market, admin, alice, bob = family
    bet = service.create_bet(market.id, alice.id, bob.id, "x", "1:1", 100)
    service.place_wager(bet.id, admin.id, Side.NO, 100)

    outcomes = []

    def resolve():
        try:
            outcomes.append(service.resolve_bet(bet.id, admin.id, Side.YES))
        except ConstraintError as e:
            outcomes.append(e)

    threads = [threading.Thread(target=resolve) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    paid = [o for o in outcomes if isinstance(o, list)]
    assert len(paid) == 1
    assert service.get_user(alice.id).balance == 1100


class _HookedClock:
    """Counting clock that runs a callback once, the first time it is armed and read."""

    def __init__(self):
        self.now = 1_700_000_000_000
        self.hook = None

    def __call__(self):
        hook, self.hook = self.hook, None
        if hook is not None:
            hook()
        self.now += 1000
        return self.now


def _hooked_family(storage):
    clock = _HookedClock()
    service = CazinoService(storage, clock=clock)
    market, admin = service.create_market(CreateMarketParams(name="Race", admin_device_id="a", admin_name="A"))
    _, alice = service.join_market(market.invite_code, "d1", "Alice", "")
    _, bob = service.join_market(market.invite_code, "d2", "Bob", "")
    service.open_market(market.id, admin.id)
    bet = service.create_bet(market.id, alice.id, bob.id, "x", "1:1", 100)
    return service, clock, market, admin, bet


def test_delete_during_wager_leaves_no_orphan(storage):
    service, clock, market, admin, bet = _hooked_family(storage)
    clock.hook = lambda: service.delete_market(market.id, admin.id)

    with pytest.raises(NotFoundError):
        service.place_wager(bet.id, admin.id, Side.NO, 50)
    assert service.get_wagers_for_user(admin.id) == []
    with pytest.raises(NotFoundError):
        service.get_market(market.id)


def test_delete_waits_for_running_wager(storage):
    service, clock, market, admin, bet = _hooked_family(storage)
    deleter = threading.Thread(target=service.delete_market, args=(market.id, admin.id))
    blocked = []

    def start_delete():
        deleter.start()
        deleter.join(timeout=0.2)
        blocked.append(deleter.is_alive())

    clock.hook = start_delete
    wager = service.place_wager(bet.id, admin.id, Side.NO, 50)
    deleter.join()

    assert blocked == [True]
    assert wager.no_pool_after == 50
    # the delete ran afterwards and took the wager with it
    assert service.get_wagers_for_user(admin.id) == []
    with pytest.raises(NotFoundError):
        service.get_bet(bet.id)
