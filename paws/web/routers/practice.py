"""Scenario compilation, temper tracking and AI provider endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from paws.agents.debrief import DebriefAgent
from paws.agents.persona import PersonaAgent
from paws.domain.models import (
    ChatRequest,
    ChatResponse,
    Debrief,
    DebriefRequest,
    EphemeralRequest,
    EphemeralResponse,
    TemperEventModel,
    TemperRequest,
    TemperResponse,
)
from paws.domain.scenario import DynamicScenario, ScenarioConfig
from paws.logging import logger
from paws.security import AuthenticatedUser
from paws.services.credits import CreditLedger
from paws.services.exceptions import InsufficientCredits
from paws.services.scenarios import build_dynamic_scenario
from paws.services.temper import TemperMeter
from paws.services.voice import RealtimeSessionService, SpeechService
from paws.web.dependencies import (
    get_current_user,
    get_debrief_agent,
    get_persona_agent,
    get_realtime_service,
    get_session,
    get_speech_service,
)

router = APIRouter(prefix="/api", tags=["practice"])


async def _require_credits(session: AsyncSession, user_id: str) -> None:
    if await CreditLedger(session).get_active_balance(user_id) is None:
        raise InsufficientCredits("No credits available. Upgrade your plan to keep practicing.")


@router.post("/scenario/generate", response_model=DynamicScenario)
async def generate_scenario(
    config: ScenarioConfig,
    identity: AuthenticatedUser = Depends(get_current_user),
) -> DynamicScenario:
    scenario = build_dynamic_scenario(config)
    logger.info(
        "scenario_generated",
        user_id=identity.user_id,
        scenario=scenario.scenario,
        triggers=len(scenario.triggers),
        deescalators=len(scenario.deescalators),
    )
    return scenario


@router.post("/scenario/temper", response_model=TemperResponse)
async def analyze_temper(
    payload: TemperRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
) -> TemperResponse:
    meter = TemperMeter.from_config(payload.config, payload.current_level)
    events = meter.analyze(payload.transcript)
    return TemperResponse(
        level=meter.level,
        events=[
            TemperEventModel(
                type=event.type,
                label=event.label,
                from_level=event.from_level,
                to_level=event.to_level,
                points=event.points,
                timestamp=event.timestamp,
            )
            for event in events
        ],
    )


@router.post("/ephemeral", response_model=EphemeralResponse)
async def create_ephemeral_token(
    payload: EphemeralRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    realtime: RealtimeSessionService = Depends(get_realtime_service),
) -> EphemeralResponse:
    await _require_credits(session, identity.user_id)
    token = await realtime.create_ephemeral_token(payload.voice)
    logger.info("ephemeral_token_issued", user_id=identity.user_id, voice=payload.voice)
    return EphemeralResponse(client_secret=token.client_secret, expires_at=token.expires_at)


@router.post("/chat/stream", response_model=ChatResponse)
async def chat_reply(
    payload: ChatRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    persona: PersonaAgent = Depends(get_persona_agent),
    speech: SpeechService = Depends(get_speech_service),
) -> ChatResponse:
    await _require_credits(session, identity.user_id)
    text = await persona.reply(payload.system_prompt, payload.messages)
    audio = await speech.synthesize_base64(text, payload.voice)
    return ChatResponse(text=text, audio=audio)


@router.post("/debrief", response_model=Debrief)
async def create_debrief(
    payload: DebriefRequest,
    identity: AuthenticatedUser = Depends(get_current_user),
    agent: DebriefAgent = Depends(get_debrief_agent),
) -> Debrief:
    debrief = await agent.debrief(payload.transcript, payload.turn_tags)
    logger.info("debrief_generated", user_id=identity.user_id, score=debrief.score)
    return debrief
