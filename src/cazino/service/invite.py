"""Invite codes: six characters from an alphabet without look-alikes (no I, O, 0, 1)."""

from __future__ import annotations

import random

from cazino.errors import InvalidInviteCode

CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6

_system_random = random.SystemRandom()


def generate_invite_code(rng: random.Random | None = None) -> str:
    rng = rng or _system_random
    return "".join(rng.choice(CHARSET) for _ in range(CODE_LENGTH))


def validate_invite_code(code: str) -> None:
    """Raise InvalidInviteCode unless code is exactly CODE_LENGTH characters from CHARSET."""
    if len(code) != CODE_LENGTH or any(c not in CHARSET for c in code):
        raise InvalidInviteCode(code)
