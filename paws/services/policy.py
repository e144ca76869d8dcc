"""Tier policy: decide whether a metered session may continue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from paws.config import MeteringSettings
from paws.db.models.core import CreditBalance

RECURRING_TYPES = frozenset({"monthly", "annual"})

StopReason = Literal["free_tier_cap", "balance_exhausted"]


@dataclass(slots=True, frozen=True)
class PolicyDecision:
    should_stop: bool
    remaining_seconds: int
    billable_seconds: int
    grace_period: bool = False
    grace_seconds_remaining: int = 0
    reason: StopReason | None = None


def evaluate_policy(
    balance: CreditBalance,
    elapsed_seconds: int,
    settings: MeteringSettings | None = None,
) -> PolicyDecision:
    """Evaluate the stop/continue rules against a balance snapshot.

    Rules apply in order: free-tier wall-clock cap, projected exhaustion, then the
    recurring-plan grace annotation. ``billable_seconds`` is the duration the
    session may be recorded with (capped on the free tier).
    """

    settings = settings or MeteringSettings()
    elapsed = max(0, elapsed_seconds)
    remaining = max(0, balance.balance_seconds - elapsed)

    if balance.type == "free" and elapsed >= settings.free_session_cap_seconds:
        cap = settings.free_session_cap_seconds
        return PolicyDecision(
            should_stop=True,
            remaining_seconds=max(0, balance.balance_seconds - cap),
            billable_seconds=cap,
            reason="free_tier_cap",
        )

    if balance.balance_seconds - elapsed <= 0:
        return PolicyDecision(
            should_stop=True,
            remaining_seconds=0,
            billable_seconds=elapsed,
            reason="balance_exhausted",
        )

    if balance.type in RECURRING_TYPES and balance.original_balance_seconds > 0:
        used = balance.original_balance_seconds - remaining
        if used / balance.original_balance_seconds >= settings.grace_threshold:
            return PolicyDecision(
                should_stop=False,
                remaining_seconds=remaining,
                billable_seconds=elapsed,
                grace_period=True,
                grace_seconds_remaining=settings.grace_allowance_seconds,
            )

    return PolicyDecision(should_stop=False, remaining_seconds=remaining, billable_seconds=elapsed)


__all__ = ["PolicyDecision", "RECURRING_TYPES", "evaluate_policy"]
