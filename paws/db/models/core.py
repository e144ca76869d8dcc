"""SQLAlchemy models for users, plans, subscriptions, credit balances and usage."""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from paws.db.base import Base
from paws.utils.datetime import unix_now

PLAN_TYPES = ("free", "payperuse", "monthly", "annual")
CREDIT_TYPES = (*PLAN_TYPES, "grace")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str | None] = mapped_column(String(120))
    created_at: Mapped[int] = mapped_column(BigInteger, default=unix_now, nullable=False)
    last_login_at: Mapped[int | None] = mapped_column(BigInteger)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        Enum("active", "suspended", name="user_status"),
        default="active",
        nullable=False,
    )

    subscriptions: Mapped[list["UserSubscription"]] = relationship(back_populates="user")
    credit_balances: Mapped[list["CreditBalance"]] = relationship(back_populates="user")
    usage_logs: Mapped[list["UsageLog"]] = relationship(back_populates="user")


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(Enum(*PLAN_TYPES, name="plan_type"), nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minutes_included: Mapped[int | None] = mapped_column(Integer)
    billing_cycle: Mapped[str] = mapped_column(String(16), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    subscriptions: Mapped[list["UserSubscription"]] = relationship(back_populates="plan")


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"
    __table_args__ = (
        CheckConstraint(
            "current_period_end > current_period_start",
            name="ck_user_subscriptions_period",
        ),
        Index("ix_user_subscriptions_user_status", "user_id", "status"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[str] = mapped_column(ForeignKey("subscription_plans.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum("active", "canceled", "past_due", name="subscription_status"),
        default="active",
        nullable=False,
    )
    current_period_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    current_period_end: Mapped[int] = mapped_column(BigInteger, nullable=False)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, default=unix_now, nullable=False)
    updated_at: Mapped[int] = mapped_column(
        BigInteger, default=unix_now, onupdate=unix_now, nullable=False
    )

    user: Mapped[User] = relationship(back_populates="subscriptions")
    plan: Mapped[SubscriptionPlan] = relationship(back_populates="subscriptions")


class CreditBalance(Base):
    __tablename__ = "credit_balances"
    __table_args__ = (
        CheckConstraint("balance_seconds >= 0", name="ck_credit_balances_non_negative"),
        CheckConstraint(
            "balance_seconds <= original_balance_seconds",
            name="ck_credit_balances_within_grant",
        ),
        Index("ix_credit_balances_user_period", "user_id", "period_end"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    subscription_id: Mapped[str | None] = mapped_column(
        ForeignKey("user_subscriptions.id", ondelete="SET NULL")
    )
    balance_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    original_balance_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    period_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    period_end: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[str] = mapped_column(Enum(*CREDIT_TYPES, name="credit_type"), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, default=unix_now, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=unix_now, nullable=False)

    user: Mapped[User] = relationship(back_populates="credit_balances")


class UsageLog(Base):
    __tablename__ = "usage_logs"
    __table_args__ = (Index("ix_usage_logs_user_start", "user_id", "session_start"),)

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    session_start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    session_end: Mapped[int | None] = mapped_column(BigInteger)
    duration_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    scenario_id: Mapped[str | None] = mapped_column(String(128))
    credits_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    subscription_id: Mapped[str | None] = mapped_column(
        ForeignKey("user_subscriptions.id", ondelete="SET NULL")
    )
    status: Mapped[str] = mapped_column(
        Enum("active", "completed", name="usage_status"),
        default="active",
        nullable=False,
    )
    created_at: Mapped[int] = mapped_column(BigInteger, default=unix_now, nullable=False)
    last_heartbeat_at: Mapped[int | None] = mapped_column(BigInteger)

    user: Mapped[User] = relationship(back_populates="usage_logs")


__all__ = [
    "CREDIT_TYPES",
    "PLAN_TYPES",
    "CreditBalance",
    "SubscriptionPlan",
    "UsageLog",
    "User",
    "UserSubscription",
]
