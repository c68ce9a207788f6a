# battle_relay/store/codes.py
from __future__ import annotations

import secrets
from typing import Callable, Container

# No I/O/0/1 so codes survive being read aloud or retyped
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def gen_room_code(n: int = 6) -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(n))


def unique_room_code(taken: Container[str], gen: Callable[[], str]) -> str:
    """Draw codes until one is not in `taken`."""
    code = gen()
    while code in taken:
        code = gen()
    return code


def normalize_room_code(raw: str) -> str:
    return (raw or "").strip().upper()
