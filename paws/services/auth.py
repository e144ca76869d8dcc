"""Account registration, login and credential verification."""

from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paws.config import PawsSettings, get_settings
from paws.db.models.core import User
from paws.logging import logger
from paws.security import (
    AuthenticatedUser,
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from paws.services.exceptions import Conflict, InvalidRequest, Unauthorized
from paws.services.subscriptions import SubscriptionService
from paws.utils.datetime import unix_now

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


@dataclass(slots=True)
class IssuedCredential:
    user: User
    token: str


def validate_email(email: str) -> str:
    email = email.strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidRequest("Invalid email format.")
    return email


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequest("Password must be at least 8 characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidRequest("Password must be at most 72 bytes.")
    if not re.search(r"[A-Za-z]", password):
        raise InvalidRequest("Password must contain at least one letter.")
    if not re.search(r"[0-9]", password):
        raise InvalidRequest("Password must contain at least one number.")


class AuthService:
    def __init__(self, session: AsyncSession, settings: PawsSettings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    async def register(self, email: str, password: str, name: str | None = None) -> IssuedCredential:
        email = validate_email(email)
        validate_password(password)

        if await self._find_by_email(email) is not None:
            raise Conflict("Email already registered.")

        now = unix_now()
        user = User(
            email=email,
            password_hash=hash_password(password, rounds=self.settings.auth.bcrypt_rounds),
            name=(name or "").strip() or None,
            created_at=now,
            last_login_at=now,
            email_verified=False,
            status="active",
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict("Email already registered.") from exc

        await SubscriptionService(self.session, self.settings).create_free_subscription(user)
        logger.info("user_registered", user_id=user.id)
        return IssuedCredential(user=user, token=self.issue_token(user))

    async def login(self, email: str, password: str) -> IssuedCredential:
        user = await self._find_by_email(email.strip())
        if user is None or not verify_password(password, user.password_hash):
            logger.info("login_rejected", reason="bad_credentials")
            raise Unauthorized("Invalid email or password.")
        if user.status != "active":
            logger.info("login_rejected", user_id=user.id, reason="suspended")
            raise Unauthorized("Account is suspended.")

        user.last_login_at = unix_now()
        await self.session.flush()
        logger.info("user_logged_in", user_id=user.id)
        return IssuedCredential(user=user, token=self.issue_token(user))

    def issue_token(self, user: User) -> str:
        return create_access_token(user.id, user.email, self.settings)

    async def get_user(self, user_id: str) -> User:
        user = await self.session.get(User, user_id)
        if user is None or user.status != "active":
            raise Unauthorized("Account not found.")
        return user

    async def _find_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


def authenticate(credential: str | None, settings: PawsSettings) -> AuthenticatedUser:
    """Stateless check of a bearer credential; no database round trip."""

    if not credential:
        raise Unauthorized("Not authenticated.")
    try:
        return decode_access_token(credential, settings)
    except TokenError as exc:
        logger.info("token_rejected", error=str(exc))
        raise Unauthorized("Invalid or expired token.") from exc


__all__ = [
    "AuthService",
    "IssuedCredential",
    "authenticate",
    "validate_email",
    "validate_password",
]
