"""Password hashing and signed access tokens."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import bcrypt
from jose import JWTError, jwt

from paws.config import PawsSettings
from paws.utils.datetime import unix_now

ISSUER = "paws"
LEEWAY_SECONDS = 10


@dataclass(slots=True, frozen=True)
class AuthenticatedUser:
    user_id: str
    email: str


class TokenError(Exception):
    """Raised when a token is missing claims, badly signed or expired."""


def hash_password(plain: str, *, rounds: int = 10) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        # malformed stored hash
        return False


def create_access_token(
    user_id: str, email: str, settings: PawsSettings, *, issued_at: int | None = None
) -> str:
    issued_at = unix_now() if issued_at is None else issued_at
    claims = {
        "sub": user_id,
        "email": email,
        "iss": ISSUER,
        "iat": issued_at,
        "exp": issued_at + settings.auth.token_ttl_seconds,
    }
    return jwt.encode(
        claims,
        settings.jwt_secret.get_secret_value(),
        algorithm=settings.auth.jwt_algorithm,
    )


def decode_access_token(token: str, settings: PawsSettings) -> AuthenticatedUser:
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.auth.jwt_algorithm],
            issuer=ISSUER,
            options={"require_exp": True, "require_sub": True, "leeway": LEEWAY_SECONDS},
        )
    except JWTError as exc:
        raise TokenError(str(exc)) from exc

    user_id = payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        raise TokenError("Token is missing identity claims.")
    return AuthenticatedUser(user_id=str(user_id), email=str(email))


__all__ = [
    "AuthenticatedUser",
    "TokenError",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "verify_password",
]
