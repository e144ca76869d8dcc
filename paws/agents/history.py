"""Utilities for translating client chat turns into pydantic-ai history."""

from __future__ import annotations

from typing import Iterable, List

from pydantic_ai import ModelMessage, ModelRequest, ModelResponse, TextPart, UserPromptPart

from paws.domain.models import ChatTurn


def build_message_history(turns: Iterable[ChatTurn]) -> List[ModelMessage]:
    """Convert prior chat turns into structured model history.

    System turns are dropped; the compiled scenario prompt is passed as agent
    instructions instead.
    """

    history: List[ModelMessage] = []
    for turn in turns:
        content = turn.content.strip()
        if not content or turn.role == "system":
            continue
        if turn.role == "assistant":
            history.append(ModelResponse(parts=[TextPart(content=content)]))
        else:
            history.append(ModelRequest(parts=[UserPromptPart(content=content)]))
    return history


__all__ = ["build_message_history"]
