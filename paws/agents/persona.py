"""Persona agent answering the user in character for push-to-talk sessions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Sequence

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel

from paws.agents.history import build_message_history
from paws.agents.model_factory import build_model
from paws.config import PawsSettings
from paws.domain.models import ChatTurn
from paws.logging import logger
from paws.services.exceptions import InvalidRequest, UpstreamProviderError

AgentFactory = Callable[[str], Agent[None, str]]


@dataclass(slots=True)
class PersonaAgent:
    """Builds one agent per reply since each scenario carries its own prompt."""

    factory: AgentFactory
    timeout_seconds: int = 60

    @classmethod
    def build(cls, settings: PawsSettings) -> PersonaAgent:
        model: OpenAIChatModel = build_model(settings.llm.chat_model, settings.llm)

        def _factory(system_prompt: str) -> Agent[None, str]:
            return Agent[None, str](
                model=model,
                instructions=system_prompt,
                model_settings={"max_tokens": 400, "temperature": 0.8},
            )

        return cls(_factory, timeout_seconds=settings.llm.request_timeout_seconds)

    async def reply(self, system_prompt: str, turns: Sequence[ChatTurn]) -> str:
        if not turns or turns[-1].role != "user" or not turns[-1].content.strip():
            raise InvalidRequest("The last message must be a non-empty user turn.")

        agent = self.factory(system_prompt)
        history = build_message_history(turns[:-1])
        try:
            async with asyncio.timeout(self.timeout_seconds):
                result = await agent.run(turns[-1].content.strip(), message_history=history)
        except TimeoutError as exc:
            logger.error("persona_reply_timeout", timeout=self.timeout_seconds)
            raise UpstreamProviderError("The persona took too long to answer.") from exc
        except Exception as exc:
            logger.exception("persona_reply_failed")
            raise UpstreamProviderError(f"Failed to get AI response: {exc}") from exc
        return result.output.strip()


__all__ = ["PersonaAgent"]
