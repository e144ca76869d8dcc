"""OpenAI voice endpoints: realtime session tokens and text-to-speech."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from paws.config import PawsSettings
from paws.logging import logger
from paws.services.exceptions import UpstreamProviderError
from paws.utils.retry import retry_async

T = TypeVar("T")


@dataclass(slots=True)
class EphemeralToken:
    client_secret: str
    expires_at: int | None


class _BaseVoiceService:
    def __init__(self, http_client: httpx.AsyncClient, settings: PawsSettings) -> None:
        self._client = http_client
        self._settings = settings

    def _url(self, path: str) -> str:
        return f"{str(self._settings.voice.base_url).rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.voice_api_key()
        if api_key is None:
            raise UpstreamProviderError("Voice provider API key is not configured.")
        return {
            "Authorization": f"Bearer {api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

    async def _post(self, name: str, path: str, payload: dict[str, Any]) -> httpx.Response:
        headers = self._headers()
        url = self._url(path)

        async def _request() -> httpx.Response:
            response = await self._client.post(
                url,
                json=payload,
                headers=headers,
                timeout=self._settings.voice.request_timeout_seconds,
            )
            response.raise_for_status()
            return response

        try:
            return await self._retry_http(name, _request)
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500] if exc.response is not None else str(exc)
            status_code = exc.response.status_code if exc.response is not None else "unknown"
            logger.error("provider_request_failed", operation=name, status=status_code, detail=detail)
            raise UpstreamProviderError(
                f"Voice provider returned {status_code}: {detail}"
            ) from exc
        except httpx.RequestError as exc:
            logger.error("provider_request_failed", operation=name, error=str(exc))
            raise UpstreamProviderError(f"Voice provider request failed: {exc}") from exc

    async def _retry_http(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_async(
            operation,
            retry_on=(httpx.RequestError,),
            max_attempts=3,
            base_delay=0.5,
            logger=logger,
            operation_name=name,
        )


class RealtimeSessionService(_BaseVoiceService):
    """Mint short-lived client secrets for browser WebRTC sessions."""

    async def create_ephemeral_token(self, voice: str | None = None) -> EphemeralToken:
        payload = {
            "model": self._settings.voice.realtime_model,
            "voice": voice or self._settings.voice.default_voice,
        }
        response = await self._post("realtime_session", "realtime/sessions", payload)
        data = response.json()
        secret = (data.get("client_secret") or {}) if isinstance(data, dict) else {}
        value = secret.get("value")
        if not value:
            raise UpstreamProviderError("Voice provider response did not include a client secret.")
        return EphemeralToken(client_secret=value, expires_at=secret.get("expires_at"))


class SpeechService(_BaseVoiceService):
    async def synthesize(self, text: str, voice: str | None = None) -> bytes:
        payload = {
            "model": self._settings.voice.tts_model,
            "voice": voice or self._settings.voice.default_voice,
            "input": text,
            "response_format": "mp3",
        }
        response = await self._post("speech_synthesis", "audio/speech", payload)
        return response.content

    async def synthesize_base64(self, text: str, voice: str | None = None) -> str:
        return base64.b64encode(await self.synthesize(text, voice)).decode("ascii")


__all__ = ["EphemeralToken", "RealtimeSessionService", "SpeechService"]
