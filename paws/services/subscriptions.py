"""Subscription plans and per-user enrollment."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paws.config import PawsSettings, get_settings
from paws.db.models.core import SubscriptionPlan, User, UserSubscription
from paws.logging import logger
from paws.services.credits import CreditLedger
from paws.services.exceptions import NotFound, SubscriptionError
from paws.utils.datetime import days_from, unix_now

FREE_PLAN_ID = "free"
PERIOD_DAYS = {"monthly": 30, "annual": 365}


class SubscriptionService:
    def __init__(self, session: AsyncSession, settings: PawsSettings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.ledger = CreditLedger(session)

    async def list_plans(self) -> Sequence[SubscriptionPlan]:
        stmt = (
            select(SubscriptionPlan)
            .where(SubscriptionPlan.active.is_(True))
            .order_by(SubscriptionPlan.price_cents.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def get_plan(self, plan_id: str) -> SubscriptionPlan:
        plan = await self.session.get(SubscriptionPlan, plan_id)
        if plan is None or not plan.active:
            raise NotFound(f"Unknown plan: {plan_id}")
        return plan

    async def get_current_subscription(self, user_id: str) -> UserSubscription | None:
        """Return the most recently created active subscription.

        Several active rows for one user violate the one-current-plan invariant;
        the newest still wins but the condition is reported.
        """

        stmt = (
            select(UserSubscription)
            .where(
                UserSubscription.user_id == user_id,
                UserSubscription.status == "active",
            )
            .order_by(UserSubscription.created_at.desc())
        )
        result = await self.session.execute(stmt)
        active = list(result.scalars())
        if len(active) > 1:
            logger.error(
                "subscription_integrity_violation",
                user_id=user_id,
                active_subscription_ids=[sub.id for sub in active],
            )
        return active[0] if active else None

    async def create_free_subscription(self, user: User) -> UserSubscription:
        """Enroll a new user in the free plan with its one-off credit grant."""

        existing = await self.get_current_subscription(user.id)
        if existing is not None:
            raise SubscriptionError(f"User {user.id} already has an active subscription.")

        metering = self.settings.metering
        now = unix_now()
        period_end = days_from(now, metering.free_period_days)
        subscription = UserSubscription(
            user_id=user.id,
            plan_id=FREE_PLAN_ID,
            status="active",
            current_period_start=now,
            current_period_end=period_end,
            cancel_at_period_end=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(subscription)
        await self.session.flush()

        await self.ledger.grant(
            user.id,
            subscription.id,
            metering.free_grant_seconds,
            "free",
            period_end,
            period_start=now,
        )
        logger.info("free_subscription_created", user_id=user.id, subscription_id=subscription.id)
        return subscription

    async def activate_plan(self, user_id: str, plan_id: str) -> UserSubscription:
        """Apply the effect of a purchase or renewal: switch plan and grant its time.

        Previous active subscriptions are canceled first so a user never holds
        more than one. Unspent credit from earlier grants stays spendable until it
        expires.
        """

        plan = await self.get_plan(plan_id)
        now = unix_now()

        current = await self._active_subscriptions(user_id)
        for sub in current:
            sub.status = "canceled"
            sub.updated_at = now

        period_end = days_from(now, self._period_days(plan))
        subscription = UserSubscription(
            user_id=user_id,
            plan_id=plan.id,
            status="active",
            current_period_start=now,
            current_period_end=period_end,
            cancel_at_period_end=plan.type == "payperuse",
            created_at=now,
            updated_at=now,
        )
        self.session.add(subscription)
        await self.session.flush()

        seconds = (plan.minutes_included or 0) * 60
        if seconds > 0:
            await self.ledger.grant(
                user_id, subscription.id, seconds, plan.type, period_end, period_start=now
            )
        logger.info(
            "plan_activated",
            user_id=user_id,
            plan_id=plan.id,
            subscription_id=subscription.id,
            canceled=[sub.id for sub in current],
            granted_seconds=seconds,
        )
        return subscription

    # Internal helpers -------------------------------------------------

    async def _active_subscriptions(self, user_id: str) -> list[UserSubscription]:
        stmt = select(UserSubscription).where(
            UserSubscription.user_id == user_id,
            UserSubscription.status == "active",
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    def _period_days(self, plan: SubscriptionPlan) -> int:
        if plan.type == "payperuse":
            return self.settings.metering.payperuse_validity_days
        if plan.type == "free":
            return self.settings.metering.free_period_days
        return PERIOD_DAYS[plan.type]


__all__ = ["FREE_PLAN_ID", "SubscriptionService"]
