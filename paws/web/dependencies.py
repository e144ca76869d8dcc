"""Request-scoped dependencies: database session, identity and providers."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from paws.agents.debrief import DebriefAgent
from paws.agents.persona import PersonaAgent
from paws.config import PawsSettings
from paws.db.session import Database
from paws.security import AuthenticatedUser
from paws.services.auth import authenticate
from paws.services.exceptions import UpstreamProviderError
from paws.services.voice import RealtimeSessionService, SpeechService

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings_dep(request: Request) -> PawsSettings:
    return request.app.state.settings


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """One session per request: commit on success, roll back on error."""

    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: PawsSettings = Depends(get_settings_dep),
) -> AuthenticatedUser:
    token = request.cookies.get(settings.auth.cookie_name)
    if not token and credentials is not None and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    return authenticate(token, settings)


def _provider(request: Request, name: str, builder):
    cached = getattr(request.app.state, name, None)
    if cached is None:
        try:
            cached = builder(request.app.state.settings)
        except ValueError as exc:
            raise UpstreamProviderError(str(exc)) from exc
        setattr(request.app.state, name, cached)
    return cached


def get_persona_agent(request: Request) -> PersonaAgent:
    return _provider(request, "persona_agent", PersonaAgent.build)


def get_debrief_agent(request: Request) -> DebriefAgent:
    return _provider(request, "debrief_agent", DebriefAgent.build)


def get_realtime_service(request: Request) -> RealtimeSessionService:
    state = request.app.state
    return RealtimeSessionService(state.http_client, state.settings)


def get_speech_service(request: Request) -> SpeechService:
    state = request.app.state
    return SpeechService(state.http_client, state.settings)


__all__ = [
    "bearer_scheme",
    "get_current_user",
    "get_debrief_agent",
    "get_persona_agent",
    "get_realtime_service",
    "get_session",
    "get_settings_dep",
    "get_speech_service",
]
