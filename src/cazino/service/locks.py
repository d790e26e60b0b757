"""Per-entity locks serializing read-validate-write sequences."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from threading import Lock, RLock


def bet_key(bet_id: str) -> str:
    return f"bet:{bet_id}"


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def market_key(market_id: str) -> str:
    return f"market:{market_id}"


def device_key(market_id: str, device_id: str) -> str:
    return f"device:{market_id}:{device_id}"


def invite_key(code: str) -> str:
    return f"invite:{code}"


class LockRegistry:
    """Named re-entrant locks, created on first use and dropped when nobody holds or waits on them.

    hold() takes its keys in sorted order. Callers that need more locks while
    already holding some must only ask for keys that sort later
    ("bet:" < "device:" < "invite:" < "market:" < "user:").
    """

    def __init__(self) -> None:
        self._guard = Lock()
        # key -> [lock, holders and waiters]
        self._locks: dict[str, list] = {}

    def _acquire(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [RLock(), 0]
            entry[1] += 1
        entry[0].acquire()

    def _release(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        with ExitStack() as stack:
            for key in sorted(set(keys)):
                self._acquire(key)
                stack.callback(self._release, key)
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
