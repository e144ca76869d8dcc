"""Coaching agent that scores a finished practice conversation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Sequence

from pydantic_ai import Agent

from paws.agents.model_factory import build_model
from paws.config import PawsSettings
from paws.domain.models import Debrief
from paws.logging import logger
from paws.services.exceptions import UpstreamProviderError

DEBRIEF_INSTRUCTIONS = (
    "You are a coaching AI analyzing a difficult workplace conversation. "
    "Review the transcript and turn tags, then provide: "
    "a score from 0-10 (10 = excellent handling), a brief one-line summary, "
    "what the user did well, 3-5 specific and actionable improvements, "
    "and one key takeaway sentence."
)


def format_debrief_prompt(transcript: str, turn_tags: Sequence[dict[str, Any]]) -> str:
    tags = json.dumps(list(turn_tags), ensure_ascii=False, indent=2, default=str)
    return f"Transcript:\n{transcript.strip()}\n\nTurn Tags:\n{tags}"


@dataclass(slots=True)
class DebriefAgent:
    agent: Agent[None, Debrief]

    @classmethod
    def build(cls, settings: PawsSettings) -> DebriefAgent:
        agent = Agent[None, Debrief](
            model=build_model(settings.llm.debrief_model, settings.llm),
            output_type=Debrief,
            instructions=DEBRIEF_INSTRUCTIONS,
            model_settings={"temperature": settings.llm.debrief_temperature},
        )
        return cls(agent)

    async def debrief(self, transcript: str, turn_tags: Sequence[dict[str, Any]]) -> Debrief:
        try:
            result = await self.agent.run(format_debrief_prompt(transcript, turn_tags))
        except Exception as exc:
            logger.exception("debrief_failed")
            raise UpstreamProviderError(f"Failed to generate debrief: {exc}") from exc
        return result.output


__all__ = ["DEBRIEF_INSTRUCTIONS", "DebriefAgent", "format_debrief_prompt"]
