# battle_relay/util/timeutil.py
from __future__ import annotations

import time


def now_ts() -> int:
    return int(time.time())
