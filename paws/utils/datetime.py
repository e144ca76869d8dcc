"""Time utilities; persisted timestamps are integer unix seconds."""

from __future__ import annotations

import time

SECONDS_PER_DAY = 24 * 60 * 60


def unix_now() -> int:
    return int(time.time())


def days_from(start: int, days: int) -> int:
    return start + days * SECONDS_PER_DAY


__all__ = ["SECONDS_PER_DAY", "days_from", "unix_now"]
