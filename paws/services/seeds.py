"""Startup seed helpers."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from paws.db.models.core import SubscriptionPlan

DEFAULT_PLANS = (
    {
        "id": "free",
        "name": "Free",
        "type": "free",
        "price_cents": 0,
        "minutes_included": 2,
        "billing_cycle": "none",
    },
    {
        "id": "payperuse",
        "name": "Pay Per Use",
        "type": "payperuse",
        "price_cents": 499,
        "minutes_included": 15,
        "billing_cycle": "one_time",
    },
    {
        "id": "monthly",
        "name": "Monthly",
        "type": "monthly",
        "price_cents": 1999,
        "minutes_included": 120,
        "billing_cycle": "monthly",
    },
    {
        "id": "annual",
        "name": "Annual",
        "type": "annual",
        "price_cents": 19900,
        "minutes_included": 1500,
        "billing_cycle": "annual",
    },
)


async def ensure_subscription_plans(session: AsyncSession) -> None:
    """Ensure the plan catalog exists and stays in sync."""

    for payload in DEFAULT_PLANS:
        plan = await session.get(SubscriptionPlan, payload["id"])
        if plan:
            plan.name = payload["name"]
            plan.type = payload["type"]
            plan.price_cents = payload["price_cents"]
            plan.minutes_included = payload["minutes_included"]
            plan.billing_cycle = payload["billing_cycle"]
            plan.active = True
        else:
            session.add(SubscriptionPlan(active=True, **payload))

    await session.commit()


__all__ = ["DEFAULT_PLANS", "ensure_subscription_plans"]
