"""Credit ledger: per-user time entitlements."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paws.db.models.core import CREDIT_TYPES, CreditBalance
from paws.logging import logger
from paws.utils.datetime import unix_now

MAX_DEDUCT_ATTEMPTS = 3


@dataclass(slots=True)
class BalanceSummary:
    balance_seconds: int
    original_seconds: int
    type: str | None
    period_end: int | None


class CreditLedger:
    """Grants are append-only rows; spending always targets the active balance.

    The active balance is the positive, unexpired row that expires first, so
    credit that is about to lapse is consumed before longer-lived credit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_active_balance(
        self, user_id: str, *, now: int | None = None
    ) -> CreditBalance | None:
        now = unix_now() if now is None else now
        stmt = (
            select(CreditBalance)
            .where(
                CreditBalance.user_id == user_id,
                CreditBalance.period_end > now,
                CreditBalance.balance_seconds > 0,
            )
            .order_by(CreditBalance.period_end.asc(), CreditBalance.created_at.asc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def grant(
        self,
        user_id: str,
        subscription_id: str | None,
        seconds: int,
        credit_type: str,
        period_end: int,
        *,
        period_start: int | None = None,
    ) -> CreditBalance:
        if seconds < 0:
            raise ValueError("Granted seconds must not be negative.")
        if credit_type not in CREDIT_TYPES:
            raise ValueError(f"Unknown credit type: {credit_type}")
        now = unix_now()
        balance = CreditBalance(
            user_id=user_id,
            subscription_id=subscription_id,
            balance_seconds=seconds,
            original_balance_seconds=seconds,
            period_start=now if period_start is None else period_start,
            period_end=period_end,
            type=credit_type,
            created_at=now,
            updated_at=now,
        )
        self.session.add(balance)
        await self.session.flush()
        logger.info(
            "credits_granted",
            user_id=user_id,
            balance_id=balance.id,
            seconds=seconds,
            credit_type=credit_type,
            period_end=period_end,
        )
        return balance

    async def deduct(self, balance_id: str, seconds: int) -> int:
        """Atomically remove up to ``seconds`` from a balance; return what was taken.

        The decrement is a conditional UPDATE guarded on the balance still covering
        the amount. When a concurrent writer got there first the row is re-read and
        the clamped amount is tried again.
        """

        if seconds <= 0:
            return 0

        for attempt in range(1, MAX_DEDUCT_ATTEMPTS + 1):
            balance = await self._reload(balance_id)
            if balance is None or balance.balance_seconds <= 0:
                return 0

            amount = min(seconds, balance.balance_seconds)
            stmt = (
                update(CreditBalance)
                .where(
                    CreditBalance.id == balance_id,
                    CreditBalance.balance_seconds >= amount,
                )
                .values(
                    balance_seconds=CreditBalance.balance_seconds - amount,
                    updated_at=unix_now(),
                )
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            if result.rowcount == 1:
                balance = await self._reload(balance_id)
                logger.info(
                    "credits_deducted",
                    balance_id=balance_id,
                    requested=seconds,
                    deducted=amount,
                    remaining=balance.balance_seconds if balance else None,
                )
                return amount

            logger.warning(
                "credit_deduct_conflict",
                balance_id=balance_id,
                attempt=attempt,
                amount=amount,
            )

        logger.error("credit_deduct_gave_up", balance_id=balance_id, requested=seconds)
        return 0

    async def summary(self, user_id: str) -> BalanceSummary:
        balance = await self.get_active_balance(user_id)
        if balance is None:
            return BalanceSummary(balance_seconds=0, original_seconds=0, type=None, period_end=None)
        return BalanceSummary(
            balance_seconds=balance.balance_seconds,
            original_seconds=balance.original_balance_seconds,
            type=balance.type,
            period_end=balance.period_end,
        )

    async def _reload(self, balance_id: str) -> CreditBalance | None:
        return await self.session.get(CreditBalance, balance_id, populate_existing=True)


__all__ = ["BalanceSummary", "CreditLedger", "MAX_DEDUCT_ATTEMPTS"]
