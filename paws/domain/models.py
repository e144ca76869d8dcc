"""Request and response schemas for the HTTP API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from paws.domain.scenario import CamelModel, ScenarioConfig


class RegisterRequest(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=256)
    name: str | None = Field(default=None, max_length=120)


class LoginRequest(CamelModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=256)


class UserModel(CamelModel):
    id: str
    email: str
    name: str | None = None
    created_at: int
    email_verified: bool = False
    status: Literal["active", "suspended"] = "active"


class AuthResponse(CamelModel):
    user: UserModel
    token: str


class SubscriptionModel(CamelModel):
    id: str
    plan_id: str
    status: str
    current_period_start: int
    current_period_end: int
    cancel_at_period_end: bool


class SubscriptionPlanModel(CamelModel):
    id: str
    name: str
    type: Literal["free", "payperuse", "monthly", "annual"]
    price_cents: int
    minutes_included: int | None = None
    billing_cycle: str


class BalanceResponse(CamelModel):
    balance_seconds: int = 0
    original_seconds: int = 0
    type: str | None = None
    period_end: int | None = None


class AccountResponse(CamelModel):
    user: UserModel
    subscription: SubscriptionModel | None = None
    balance: BalanceResponse


class StartSessionRequest(CamelModel):
    scenario_id: str | None = Field(default=None, max_length=128)


class StartSessionResponse(CamelModel):
    session_id: str
    available_seconds: int
    credit_type: str


class HeartbeatRequest(CamelModel):
    session_id: str = Field(min_length=1, max_length=36)
    elapsed_seconds: int = Field(ge=0)


class HeartbeatResponse(CamelModel):
    should_stop: bool
    available_seconds: int
    grace_period: bool = False
    grace_seconds_remaining: int = 0


class EndSessionRequest(CamelModel):
    session_id: str = Field(min_length=1, max_length=36)
    elapsed_seconds: int = Field(ge=0)


class EndSessionResponse(CamelModel):
    seconds_used: int
    remaining_seconds: int


class UsageSummary(CamelModel):
    id: str
    session_start: int
    session_end: int | None = None
    duration_seconds: int
    scenario_id: str | None = None
    credits_used: int
    status: Literal["active", "completed"]


class TemperRequest(CamelModel):
    config: ScenarioConfig
    current_level: int | None = Field(default=None, ge=1, le=10)
    transcript: str


class TemperEventModel(CamelModel):
    type: Literal["escalation", "deescalation"]
    label: str
    from_level: int
    to_level: int
    points: int
    timestamp: int


class TemperResponse(CamelModel):
    level: int
    events: list[TemperEventModel]


class EphemeralRequest(CamelModel):
    voice: str | None = Field(default=None, max_length=32)


class EphemeralResponse(CamelModel):
    client_secret: str
    expires_at: int | None = None


class ChatTurn(CamelModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(CamelModel):
    messages: list[ChatTurn] = Field(min_length=1)
    voice: str | None = Field(default=None, max_length=32)
    system_prompt: str = Field(min_length=1)


class ChatResponse(CamelModel):
    text: str
    audio: str


class DebriefRequest(CamelModel):
    transcript: str = Field(min_length=1)
    turn_tags: list[dict[str, Any]] = Field(default_factory=list)


class Debrief(CamelModel):
    score: float = Field(ge=0, le=10)
    summary: str
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    key_takeaway: str


__all__ = [
    "AccountResponse",
    "AuthResponse",
    "BalanceResponse",
    "ChatRequest",
    "ChatResponse",
    "ChatTurn",
    "Debrief",
    "DebriefRequest",
    "EndSessionRequest",
    "EndSessionResponse",
    "EphemeralRequest",
    "EphemeralResponse",
    "HeartbeatRequest",
    "HeartbeatResponse",
    "LoginRequest",
    "RegisterRequest",
    "StartSessionRequest",
    "StartSessionResponse",
    "SubscriptionModel",
    "SubscriptionPlanModel",
    "TemperEventModel",
    "TemperRequest",
    "TemperResponse",
    "UsageSummary",
    "UserModel",
]
