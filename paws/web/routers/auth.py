"""Registration, login and account endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from paws.config import PawsSettings
from paws.domain.models import (
    AccountResponse,
    AuthResponse,
    BalanceResponse,
    LoginRequest,
    RegisterRequest,
    SubscriptionModel,
    UserModel,
)
from paws.security import AuthenticatedUser
from paws.services.auth import AuthService, IssuedCredential
from paws.services.credits import CreditLedger
from paws.services.subscriptions import SubscriptionService
from paws.web.dependencies import get_current_user, get_session, get_settings_dep

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str, settings: PawsSettings) -> None:
    response.set_cookie(
        settings.auth.cookie_name,
        token,
        max_age=settings.auth.token_ttl_seconds,
        httponly=True,
        secure=settings.auth.cookie_secure,
        samesite="lax",
        path="/",
    )


def _auth_response(issued: IssuedCredential) -> AuthResponse:
    return AuthResponse(
        user=UserModel.model_validate(issued.user, from_attributes=True),
        token=issued.token,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> AuthResponse:
    issued = await AuthService(session, settings).register(
        payload.email, payload.password, payload.name
    )
    _set_auth_cookie(response, issued.token, settings)
    return _auth_response(issued)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> AuthResponse:
    issued = await AuthService(session, settings).login(payload.email, payload.password)
    _set_auth_cookie(response, issued.token, settings)
    return _auth_response(issued)


@router.post("/logout")
async def logout(response: Response, settings: PawsSettings = Depends(get_settings_dep)) -> dict:
    response.delete_cookie(settings.auth.cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=AccountResponse)
async def me(
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    settings: PawsSettings = Depends(get_settings_dep),
) -> AccountResponse:
    user = await AuthService(session, settings).get_user(identity.user_id)
    subscription = await SubscriptionService(session, settings).get_current_subscription(user.id)
    summary = await CreditLedger(session).summary(user.id)
    return AccountResponse(
        user=UserModel.model_validate(user, from_attributes=True),
        subscription=(
            SubscriptionModel.model_validate(subscription, from_attributes=True)
            if subscription
            else None
        ),
        balance=BalanceResponse(
            balance_seconds=summary.balance_seconds,
            original_seconds=summary.original_seconds,
            type=summary.type,
            period_end=summary.period_end,
        ),
    )
