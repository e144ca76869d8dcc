"""Keyword-driven escalation tracking for the persona's temper level."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from paws.domain.scenario import ScenarioConfig
from paws.services.scenarios import select_concerns, select_deescalators
from paws.utils.datetime import unix_now

MIN_LEVEL = 1


@dataclass(slots=True, frozen=True)
class PhraseRule:
    id: str
    label: str
    points: int
    phrases: tuple[str, ...]

    def matches(self, lowered_text: str) -> bool:
        return any(phrase.lower() in lowered_text for phrase in self.phrases if phrase)


@dataclass(slots=True)
class TemperEvent:
    type: Literal["escalation", "deescalation"]
    label: str
    from_level: int
    to_level: int
    points: int
    timestamp: int


@dataclass(slots=True)
class TemperMeter:
    level: int
    max_level: int
    triggers: list[PhraseRule] = field(default_factory=list)
    deescalators: list[PhraseRule] = field(default_factory=list)
    events: list[TemperEvent] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: ScenarioConfig, level: int | None = None) -> TemperMeter:
        meter = config.temper_meter
        current = meter.start_level if level is None else level
        return cls(
            level=max(MIN_LEVEL, min(current, meter.max_level)),
            max_level=meter.max_level,
            triggers=[
                PhraseRule(c.id, c.label, c.escalation_points, tuple(c.trigger_phrases))
                for c in select_concerns(config)
            ],
            deescalators=[
                PhraseRule(d.id, d.label, d.deescalation_points, tuple(d.example_phrases))
                for d in select_deescalators(config)
            ],
        )

    def analyze(self, transcript: str) -> list[TemperEvent]:
        """Apply every matching trigger, then every matching de-escalator.

        Levels stay within ``1..max_level``; only actual changes are recorded.
        """

        lowered = transcript.lower()
        new_events: list[TemperEvent] = []
        for rule in self.triggers:
            if rule.matches(lowered):
                self._move("escalation", rule, min(self.level + rule.points, self.max_level), new_events)
        for rule in self.deescalators:
            if rule.matches(lowered):
                self._move("deescalation", rule, max(self.level - rule.points, MIN_LEVEL), new_events)
        self.events.extend(new_events)
        return new_events

    def _move(
        self,
        kind: Literal["escalation", "deescalation"],
        rule: PhraseRule,
        target: int,
        sink: list[TemperEvent],
    ) -> None:
        if target == self.level:
            return
        sink.append(
            TemperEvent(
                type=kind,
                label=rule.label,
                from_level=self.level,
                to_level=target,
                points=rule.points,
                timestamp=unix_now(),
            )
        )
        self.level = target


__all__ = ["MIN_LEVEL", "PhraseRule", "TemperEvent", "TemperMeter"]
