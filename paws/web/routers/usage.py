"""Metered practice sessions, balance and history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from paws.config import PawsSettings
from paws.domain.models import (
    BalanceResponse,
    EndSessionRequest,
    EndSessionResponse,
    HeartbeatRequest,
    HeartbeatResponse,
    StartSessionRequest,
    StartSessionResponse,
    SubscriptionPlanModel,
    UsageSummary,
)
from paws.security import AuthenticatedUser
from paws.services.credits import CreditLedger
from paws.services.exceptions import NoActiveCredits
from paws.services.sessions import SessionAccounting
from paws.services.subscriptions import SubscriptionService
from paws.web.dependencies import get_current_user, get_session, get_settings_dep

router = APIRouter(prefix="/api", tags=["usage"])


@router.get("/plans", response_model=list[SubscriptionPlanModel])
async def list_plans(
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> list[SubscriptionPlanModel]:
    plans = await SubscriptionService(session, settings).list_plans()
    return [SubscriptionPlanModel.model_validate(plan, from_attributes=True) for plan in plans]


@router.post("/usage/start", response_model=StartSessionResponse)
async def start_session(
    payload: StartSessionRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> StartSessionResponse:
    started = await SessionAccounting(session, settings).start(identity.user_id, payload.scenario_id)
    return StartSessionResponse(
        session_id=started.session_id,
        available_seconds=started.available_seconds,
        credit_type=started.credit_type,
    )


@router.post("/usage/heartbeat", response_model=HeartbeatResponse)
async def heartbeat(
    payload: HeartbeatRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> HeartbeatResponse:
    decision = await SessionAccounting(session, settings).heartbeat(
        identity.user_id, payload.session_id, payload.elapsed_seconds
    )
    return HeartbeatResponse(
        should_stop=decision.should_stop,
        available_seconds=decision.available_seconds,
        grace_period=decision.grace_period,
        grace_seconds_remaining=decision.grace_seconds_remaining,
    )


@router.post("/usage/end", response_model=EndSessionResponse)
async def end_session(
    payload: EndSessionRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> EndSessionResponse:
    ended = await SessionAccounting(session, settings).end(
        identity.user_id, payload.session_id, payload.elapsed_seconds
    )
    if not ended.billed:
        # the usage record is kept even though nothing could be billed
        await session.commit()
        raise NoActiveCredits(
            "Session recorded, but no active credits were available to bill.",
            secondsUsed=ended.seconds_used,
            remainingSeconds=ended.remaining_seconds,
        )
    return EndSessionResponse(
        seconds_used=ended.seconds_used,
        remaining_seconds=ended.remaining_seconds,
    )


@router.get("/usage/balance", response_model=BalanceResponse)
async def get_balance(
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    summary = await CreditLedger(session).summary(identity.user_id)
    return BalanceResponse(
        balance_seconds=summary.balance_seconds,
        original_seconds=summary.original_seconds,
        type=summary.type,
        period_end=summary.period_end,
    )


@router.get("/usage/history", response_model=list[UsageSummary])
async def usage_history(
    limit: int = Query(default=10, ge=1, le=100),
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> list[UsageSummary]:
    logs = await SessionAccounting(session, settings).history(identity.user_id, limit)
    return [UsageSummary.model_validate(log, from_attributes=True) for log in logs]
