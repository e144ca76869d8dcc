from __future__ import annotations

import base64
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from paws.config import LLMSettings, PawsSettings, VoiceSettings
from paws.services.exceptions import UpstreamProviderError
from paws.services.voice import RealtimeSessionService, SpeechService


def _settings(api_key: str | None = "sk-voice") -> PawsSettings:
    return PawsSettings(
        jwt_secret=SecretStr("test-secret"),
        voice=VoiceSettings(api_key=SecretStr(api_key) if api_key else None),
    )


class DummyResponse:
    def __init__(self, payload: Any = None, content: bytes = b"", status_code: int = 200):
        self._payload = payload
        self.content = content
        self.status_code = status_code
        self.text = "upstream said no" if status_code >= 400 else "{}"

    def raise_for_status(self):
        if self.status_code >= 400:
            request = httpx.Request("POST", "https://api.openai.com/v1/test")
            response = httpx.Response(self.status_code, text=self.text, request=request)
            raise httpx.HTTPStatusError("error", request=request, response=response)
        return None

    def json(self):
        return self._payload


class RecordingClient:
    def __init__(self, response: DummyResponse):
        self.response = response
        self.calls: list[dict[str, Any]] = []

    async def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self.response


class FlakyClient:
    def __init__(self):
        self.calls = 0

    async def post(self, *args, **kwargs):
        self.calls += 1
        if self.calls < 3:
            raise httpx.RequestError(
                "boom", request=httpx.Request("POST", "https://api.openai.com/v1/audio/speech")
            )
        return DummyResponse(content=b"mp3-bytes")


@pytest.mark.asyncio
async def test_ephemeral_token_uses_realtime_session_endpoint():
    client = RecordingClient(
        DummyResponse({"client_secret": {"value": "ek_123", "expires_at": 1700000000}})
    )
    service = RealtimeSessionService(client, _settings())

    token = await service.create_ephemeral_token("alloy")

    assert token.client_secret == "ek_123"
    assert token.expires_at == 1700000000
    call = client.calls[0]
    assert call["url"] == "https://api.openai.com/v1/realtime/sessions"
    assert call["json"] == {"model": "gpt-4o-realtime-preview-2024-12-17", "voice": "alloy"}
    assert call["headers"]["Authorization"] == "Bearer sk-voice"


@pytest.mark.asyncio
async def test_ephemeral_token_without_secret_is_an_upstream_error():
    service = RealtimeSessionService(RecordingClient(DummyResponse({"id": "sess"})), _settings())

    with pytest.raises(UpstreamProviderError):
        await service.create_ephemeral_token()


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_request():
    client = RecordingClient(DummyResponse({}))
    service = RealtimeSessionService(client, _settings(api_key=None))

    with pytest.raises(UpstreamProviderError):
        await service.create_ephemeral_token()
    assert client.calls == []


@pytest.mark.asyncio
async def test_voice_key_falls_back_to_llm_key():
    settings = PawsSettings(
        jwt_secret=SecretStr("test-secret"),
        llm=LLMSettings(api_key=SecretStr("sk-llm")),
    )
    client = RecordingClient(DummyResponse(content=b"audio"))

    await SpeechService(client, settings).synthesize("hello")

    assert client.calls[0]["headers"]["Authorization"] == "Bearer sk-llm"


@pytest.mark.asyncio
async def test_http_error_status_is_not_retried():
    client = RecordingClient(DummyResponse(status_code=500))
    service = SpeechService(client, _settings())

    with pytest.raises(UpstreamProviderError) as excinfo:
        await service.synthesize("hello")

    assert len(client.calls) == 1
    assert "500" in str(excinfo.value)


@pytest.mark.asyncio
async def test_speech_retries_transport_errors(monkeypatch):
    async def _noop_sleep(delay):
        return None

    monkeypatch.setattr("paws.utils.retry.asyncio.sleep", _noop_sleep)
    client = FlakyClient()
    service = SpeechService(client, _settings())

    audio = await service.synthesize_base64("hello", "verse")

    assert client.calls == 3
    assert base64.b64decode(audio) == b"mp3-bytes"


@pytest.mark.asyncio
async def test_speech_gives_up_after_three_transport_errors(monkeypatch):
    async def _noop_sleep(delay):
        return None

    class AlwaysFailing:
        calls = 0

        async def post(self, *args, **kwargs):
            self.calls += 1
            raise httpx.ConnectError("down")

    monkeypatch.setattr("paws.utils.retry.asyncio.sleep", _noop_sleep)
    client = AlwaysFailing()

    with pytest.raises(UpstreamProviderError):
        await SpeechService(client, _settings()).synthesize("hello")
    assert client.calls == 3
