"""Session accounting: turns reported conversation time into ledger deductions.

A usage session moves ``active -> completed`` and never back. Heartbeats overwrite
the recorded duration rather than adding to it, so retries cannot double count;
the ledger is charged exactly once, when the session is settled by ``end`` or by a
heartbeat that forces a stop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from paws.config import PawsSettings, get_settings
from paws.db.models.core import CreditBalance, UsageLog
from paws.logging import logger
from paws.services.credits import CreditLedger
from paws.services.exceptions import InsufficientCredits, NoActiveCredits, NotFound
from paws.services.policy import evaluate_policy
from paws.services.subscriptions import SubscriptionService
from paws.utils.datetime import unix_now

# heartbeats may arrive late; tolerate this many missed intervals before warning
WALL_CLOCK_SLACK_INTERVALS = 3


@dataclass(slots=True)
class StartedSession:
    session_id: str
    available_seconds: int
    credit_type: str


@dataclass(slots=True)
class HeartbeatDecision:
    should_stop: bool
    available_seconds: int
    grace_period: bool = False
    grace_seconds_remaining: int = 0


@dataclass(slots=True)
class EndedSession:
    seconds_used: int
    remaining_seconds: int
    billed: bool = True


class SessionAccounting:
    def __init__(self, session: AsyncSession, settings: PawsSettings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.ledger = CreditLedger(session)
        self.subscriptions = SubscriptionService(session, self.settings)

    async def start(self, user_id: str, scenario_id: str | None = None) -> StartedSession:
        await self.settle_stale_sessions(user_id)

        balance = await self.ledger.get_active_balance(user_id)
        if balance is None:
            logger.info("usage_session_rejected", user_id=user_id, reason="no_credits")
            raise InsufficientCredits("No credits available. Upgrade your plan to keep practicing.")

        subscription = await self.subscriptions.get_current_subscription(user_id)
        now = unix_now()
        log = UsageLog(
            user_id=user_id,
            session_start=now,
            duration_seconds=0,
            scenario_id=scenario_id,
            credits_used=0,
            subscription_id=subscription.id if subscription else None,
            status="active",
            created_at=now,
            last_heartbeat_at=now,
        )
        self.session.add(log)
        await self.session.flush()
        logger.info(
            "usage_session_started",
            user_id=user_id,
            session_id=log.id,
            scenario_id=scenario_id,
            credit_type=balance.type,
            available_seconds=balance.balance_seconds,
        )
        return StartedSession(
            session_id=log.id,
            available_seconds=balance.balance_seconds,
            credit_type=balance.type,
        )

    async def heartbeat(
        self, user_id: str, session_id: str, elapsed_seconds: int
    ) -> HeartbeatDecision:
        log = await self._get_log(user_id, session_id)
        if log.status == "completed":
            return await self._already_stopped(user_id)

        now = unix_now()
        self._check_reported_time(log, elapsed_seconds, now)

        balance = await self.ledger.get_active_balance(user_id)
        if balance is None:
            logger.info("heartbeat_no_credits", user_id=user_id, session_id=session_id)
            raise NoActiveCredits("No active credits remain for this session.", shouldStop=True)

        decision = evaluate_policy(balance, elapsed_seconds, self.settings.metering)
        if decision.should_stop:
            deducted = await self._settle(log, balance, decision.billable_seconds, now)
            if deducted is None:
                return await self._already_stopped(user_id)
            logger.info(
                "heartbeat_forced_stop",
                user_id=user_id,
                session_id=session_id,
                reason=decision.reason,
                elapsed=elapsed_seconds,
                recorded=log.duration_seconds,
            )
            return HeartbeatDecision(
                should_stop=True,
                available_seconds=balance.balance_seconds,
            )

        stmt = (
            update(UsageLog)
            .where(UsageLog.id == log.id, UsageLog.status == "active")
            .values(duration_seconds=elapsed_seconds, last_heartbeat_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self._reload_log(log.id)
        if result.rowcount != 1:
            return await self._already_stopped(user_id)
        return HeartbeatDecision(
            should_stop=False,
            available_seconds=decision.remaining_seconds,
            grace_period=decision.grace_period,
            grace_seconds_remaining=decision.grace_seconds_remaining,
        )

    async def end(self, user_id: str, session_id: str, elapsed_seconds: int) -> EndedSession:
        log = await self._get_log(user_id, session_id)
        if log.status == "completed":
            return await self._recorded_end(log)

        self._check_reported_time(log, elapsed_seconds, unix_now())
        balance = await self.ledger.get_active_balance(user_id)
        deducted = await self._settle(log, balance, elapsed_seconds, unix_now())
        if deducted is None:
            return await self._recorded_end(log)

        summary = await self.ledger.summary(user_id)
        logger.info(
            "usage_session_ended",
            user_id=user_id,
            session_id=session_id,
            duration=elapsed_seconds,
            deducted=deducted,
            billed=balance is not None,
        )
        return EndedSession(
            seconds_used=deducted,
            remaining_seconds=summary.balance_seconds,
            billed=balance is not None,
        )

    async def history(self, user_id: str, limit: int = 10) -> Sequence[UsageLog]:
        limit = max(1, min(limit, self.settings.metering.history_max_limit))
        stmt = (
            select(UsageLog)
            .where(UsageLog.user_id == user_id)
            .order_by(UsageLog.session_start.desc(), UsageLog.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def settle_stale_sessions(self, user_id: str, *, now: int | None = None) -> int:
        """Bill abandoned sessions at their last heartbeated duration."""

        now = unix_now() if now is None else now
        cutoff = now - self.settings.metering.stale_session_seconds
        last_seen = func.coalesce(UsageLog.last_heartbeat_at, UsageLog.session_start)
        stmt = select(UsageLog).where(
            UsageLog.user_id == user_id,
            UsageLog.status == "active",
            last_seen < cutoff,
        )
        result = await self.session.execute(stmt)
        settled = 0
        for log in list(result.scalars()):
            balance = await self.ledger.get_active_balance(user_id, now=now)
            deducted = await self._settle(log, balance, log.duration_seconds, now)
            if deducted is None:
                continue
            settled += 1
            logger.info(
                "stale_session_settled",
                user_id=user_id,
                session_id=log.id,
                duration=log.duration_seconds,
                deducted=deducted,
            )
        return settled

    # Internal helpers -------------------------------------------------

    async def _get_log(self, user_id: str, session_id: str) -> UsageLog:
        log = await self.session.get(UsageLog, session_id)
        if log is None or log.user_id != user_id:
            raise NotFound(f"Unknown session: {session_id}")
        return log

    async def _reload_log(self, session_id: str) -> UsageLog | None:
        return await self.session.get(UsageLog, session_id, populate_existing=True)

    async def _settle(
        self,
        log: UsageLog,
        balance: CreditBalance | None,
        duration_seconds: int,
        now: int,
    ) -> int | None:
        """Finalize an active log and charge it; ``None`` if another writer already did.

        The ``active -> completed`` transition is claimed with a conditional UPDATE
        before any credit moves, so only one settlement per session can deduct.
        """

        claim = (
            update(UsageLog)
            .where(UsageLog.id == log.id, UsageLog.status == "active")
            .values(status="completed", session_end=now, duration_seconds=duration_seconds)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(claim)
        if result.rowcount != 1:
            await self._reload_log(log.id)
            logger.info("usage_session_already_settled", session_id=log.id)
            return None

        deducted = 0
        if balance is not None:
            deducted = await self.ledger.deduct(balance.id, duration_seconds)
        await self.session.execute(
            update(UsageLog)
            .where(UsageLog.id == log.id)
            .values(credits_used=deducted)
            .execution_options(synchronize_session=False)
        )
        await self._reload_log(log.id)
        return deducted

    async def _already_stopped(self, user_id: str) -> HeartbeatDecision:
        summary = await self.ledger.summary(user_id)
        return HeartbeatDecision(should_stop=True, available_seconds=summary.balance_seconds)

    async def _recorded_end(self, log: UsageLog) -> EndedSession:
        summary = await self.ledger.summary(log.user_id)
        return EndedSession(
            seconds_used=log.credits_used,
            remaining_seconds=summary.balance_seconds,
        )

    def _check_reported_time(self, log: UsageLog, elapsed_seconds: int, now: int) -> None:
        if elapsed_seconds < log.duration_seconds:
            logger.warning(
                "heartbeat_elapsed_regressed",
                session_id=log.id,
                previous=log.duration_seconds,
                reported=elapsed_seconds,
            )
        slack = self.settings.metering.heartbeat_interval_seconds * WALL_CLOCK_SLACK_INTERVALS
        wall_clock = now - log.session_start
        if elapsed_seconds > wall_clock + slack:
            logger.warning(
                "heartbeat_elapsed_exceeds_wall_clock",
                session_id=log.id,
                wall_clock=wall_clock,
                reported=elapsed_seconds,
            )


__all__ = [
    "EndedSession",
    "HeartbeatDecision",
    "SessionAccounting",
    "StartedSession",
]
