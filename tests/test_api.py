from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from pydantic import SecretStr

from paws.agents.debrief import DebriefAgent
from paws.agents.persona import PersonaAgent
from paws.config import AuthSettings, DatabaseSettings, PawsSettings, VoiceSettings
from paws.db.session import Database
from paws.domain.models import Debrief
from paws.services.seeds import ensure_subscription_plans
from paws.web.app import create_app


class DummyVoiceResponse:
    status_code = 200
    text = "{}"

    def __init__(self, payload=None, content: bytes = b""):
        self._payload = payload
        self.content = content

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


class DummyVoiceClient:
    def __init__(self):
        self.urls: list[str] = []

    async def post(self, url, json=None, headers=None, timeout=None):
        self.urls.append(url)
        if url.endswith("realtime/sessions"):
            return DummyVoiceResponse({"client_secret": {"value": "ek_test", "expires_at": 123}})
        return DummyVoiceResponse(content=b"voice")

    async def aclose(self):
        return None


class StubAgent:
    def __init__(self, output):
        self.output = output

    async def run(self, prompt, message_history=None):
        return SimpleNamespace(output=self.output)


@pytest.fixture
def api_settings() -> PawsSettings:
    return PawsSettings(
        jwt_secret=SecretStr("api-secret"),
        database=DatabaseSettings(dsn="sqlite+aiosqlite://"),
        auth=AuthSettings(bcrypt_rounds=4),
        voice=VoiceSettings(api_key=SecretStr("sk-voice")),
    )


@pytest_asyncio.fixture
async def app(api_settings):
    database = Database(settings=api_settings)
    await database.create_all()
    async with database.session() as seed_session:
        await ensure_subscription_plans(seed_session)
    application = create_app(api_settings, database=database, http_client=DummyVoiceClient())
    try:
        yield application
    finally:
        await database.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


async def _register(client, email: str = "api@example.com") -> dict[str, str]:
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": "passw0rdX", "name": "Api"},
    )
    assert response.status_code == 201
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


SCENARIO_CONFIG = {
    "scenario": {
        "title": "Late Delivery",
        "persona": {"role": "a frustrated customer"},
        "concern_options": [
            {"id": "excuse", "label": "Excuses", "escalation_points": 2, "trigger_phrases": ["not our fault"]}
        ],
        "deescalation_options": [
            {"id": "sorry", "label": "Apology", "deescalation_points": 1, "example_phrases": ["I'm sorry"]}
        ],
        "base_facts": {"situation": "The order arrived a week late."},
    },
    "persona": {"voice": "verse"},
    "temperMeter": {
        "startLevel": 4,
        "maxLevel": 9,
        "selectedTriggers": ["excuse"],
        "selectedDeescalators": ["sorry"],
    },
}


@pytest.mark.asyncio
async def test_healthz(client):
    response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_plans_are_public(client):
    response = await client.get("/api/plans")

    assert response.status_code == 200
    plans = response.json()
    assert [plan["id"] for plan in plans] == ["free", "payperuse", "monthly", "annual"]
    assert plans[2]["priceCents"] == 1999
    assert plans[2]["minutesIncluded"] == 120


@pytest.mark.asyncio
async def test_register_sets_cookie_and_account(client, api_settings):
    response = await client.post(
        "/api/auth/register",
        json={"email": "cookie@example.com", "password": "passw0rdX"},
    )

    assert response.status_code == 201
    assert api_settings.auth.cookie_name in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()
    body = response.json()
    assert body["user"]["email"] == "cookie@example.com"

    client.cookies.clear()
    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    account = me.json()
    assert account["subscription"]["planId"] == "free"
    assert account["balance"] == {
        "balanceSeconds": 120,
        "originalSeconds": 120,
        "type": "free",
        "periodEnd": account["subscription"]["currentPeriodEnd"],
    }


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts(client):
    await _register(client, "twice@example.com")

    response = await client.post(
        "/api/auth/register",
        json={"email": "twice@example.com", "password": "passw0rdX"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "Conflict"


@pytest.mark.asyncio
async def test_login_rejects_bad_password(client):
    await _register(client, "login@example.com")

    bad = await client.post(
        "/api/auth/login", json={"email": "login@example.com", "password": "wrongpass1"}
    )
    good = await client.post(
        "/api/auth/login", json={"email": "login@example.com", "password": "passw0rdX"}
    )

    assert bad.status_code == 401
    assert bad.json()["error"] == "Unauthorized"
    assert good.status_code == 200
    assert good.json()["token"]


@pytest.mark.asyncio
async def test_protected_routes_require_token(client, api_settings):
    response = await client.get("/api/usage/balance")

    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"
    assert api_settings.auth.cookie_name in response.headers.get("set-cookie", "")

    invalid = await client.get(
        "/api/usage/balance", headers={"Authorization": "Bearer not-a-token"}
    )
    assert invalid.status_code == 401


@pytest.mark.asyncio
async def test_free_session_flow(client):
    headers = await _register(client)

    start = await client.post("/api/usage/start", json={"scenarioId": "late"}, headers=headers)
    assert start.status_code == 200
    started = start.json()
    assert started["availableSeconds"] == 120
    assert started["creditType"] == "free"
    session_id = started["sessionId"]

    beat = await client.post(
        "/api/usage/heartbeat",
        json={"sessionId": session_id, "elapsedSeconds": 10},
        headers=headers,
    )
    assert beat.json() == {
        "shouldStop": False,
        "availableSeconds": 110,
        "gracePeriod": False,
        "graceSecondsRemaining": 0,
    }

    capped = await client.post(
        "/api/usage/heartbeat",
        json={"sessionId": session_id, "elapsedSeconds": 95},
        headers=headers,
    )
    assert capped.json()["shouldStop"] is True
    assert capped.json()["availableSeconds"] == 30

    end = await client.post(
        "/api/usage/end",
        json={"sessionId": session_id, "elapsedSeconds": 95},
        headers=headers,
    )
    assert end.status_code == 200
    assert end.json() == {"secondsUsed": 90, "remainingSeconds": 30}

    balance = await client.get("/api/usage/balance", headers=headers)
    assert balance.json()["balanceSeconds"] == 30

    history = await client.get("/api/usage/history", params={"limit": 5}, headers=headers)
    entries = history.json()
    assert len(entries) == 1
    assert entries[0]["id"] == session_id
    assert entries[0]["durationSeconds"] == 90
    assert entries[0]["creditsUsed"] == 90
    assert entries[0]["status"] == "completed"
    assert entries[0]["scenarioId"] == "late"


@pytest.mark.asyncio
async def test_heartbeat_validation_errors(client):
    headers = await _register(client)

    response = await client.post(
        "/api/usage/heartbeat",
        json={"sessionId": "abc", "elapsedSeconds": -1},
        headers=headers,
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_unknown_session_is_not_found(client):
    headers = await _register(client)

    response = await client.post(
        "/api/usage/end",
        json={"sessionId": "missing", "elapsedSeconds": 10},
        headers=headers,
    )

    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


@pytest.mark.asyncio
async def test_history_limit_is_bounded(client):
    headers = await _register(client)

    response = await client.get("/api/usage/history", params={"limit": 500}, headers=headers)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_scenario_generate_and_temper(client):
    headers = await _register(client)

    generated = await client.post("/api/scenario/generate", json=SCENARIO_CONFIG, headers=headers)
    assert generated.status_code == 200
    scenario = generated.json()
    assert scenario["startLevel"] == 4
    assert scenario["triggers"] == [{"id": "excuse", "label": "Excuses", "points": 2}]
    assert "a frustrated customer" in scenario["systemPrompt"]

    temper = await client.post(
        "/api/scenario/temper",
        json={"config": SCENARIO_CONFIG, "currentLevel": 5, "transcript": "It was not our fault."},
        headers=headers,
    )
    assert temper.status_code == 200
    result = temper.json()
    assert result["level"] == 7
    assert result["events"][0]["type"] == "escalation"
    assert result["events"][0]["fromLevel"] == 5


@pytest.mark.asyncio
async def test_ephemeral_and_chat_require_credits(app, client):
    headers = await _register(client)
    app.state.persona_agent = PersonaAgent(lambda prompt: StubAgent("Where is my order?"))

    ephemeral = await client.post("/api/ephemeral", json={"voice": "verse"}, headers=headers)
    assert ephemeral.status_code == 200
    assert ephemeral.json() == {"clientSecret": "ek_test", "expiresAt": 123}

    chat = await client.post(
        "/api/chat/stream",
        json={
            "messages": [{"role": "user", "content": "Hello"}],
            "systemPrompt": "You are a frustrated customer.",
        },
        headers=headers,
    )
    assert chat.status_code == 200
    assert chat.json() == {"text": "Where is my order?", "audio": "dm9pY2U="}


@pytest.mark.asyncio
async def test_start_without_credits_is_forbidden(client):
    headers = await _register(client)
    start = await client.post("/api/usage/start", json={}, headers=headers)
    session_id = start.json()["sessionId"]
    await client.post(
        "/api/usage/end",
        json={"sessionId": session_id, "elapsedSeconds": 200},
        headers=headers,
    )

    response = await client.post("/api/usage/start", json={}, headers=headers)
    ephemeral = await client.post("/api/ephemeral", json={}, headers=headers)

    assert response.status_code == 403
    assert response.json()["error"] == "InsufficientCredits"
    assert ephemeral.status_code == 403


@pytest.mark.asyncio
async def test_debrief(app, client):
    headers = await _register(client)
    app.state.debrief_agent = DebriefAgent(
        StubAgent(
            Debrief(
                score=6,
                summary="Solid recovery.",
                strengths=["Apologized early"],
                improvements=["Give a timeline"],
                key_takeaway="Own the delay.",
            )
        )
    )

    response = await client.post(
        "/api/debrief",
        json={"transcript": "User: I'm sorry\nAI: Fine.", "turnTags": [{"turn": 1}]},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["score"] == 6
    assert body["keyTakeaway"] == "Own the delay."
