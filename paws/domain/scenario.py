"""Pydantic models describing a practice scenario and its compiled prompt."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScenarioPersona(BaseModel):
    role: str
    base_style: str = ""


class ConcernOption(BaseModel):
    id: str
    label: str
    escalation_points: int = Field(default=1, ge=0, le=9)
    trigger_phrases: list[str] = Field(default_factory=list)
    ai_behavior: str = ""
    objections: list[str] = Field(default_factory=list)


class DeescalationOption(BaseModel):
    id: str
    label: str
    deescalation_points: int = Field(default=1, ge=0, le=9)
    example_phrases: list[str] = Field(default_factory=list)
    ai_response: str = ""


class VoiceCharacteristics(BaseModel):
    calm: str = ""
    irritated: str = ""
    frustrated: str = ""
    angry: str = ""


class BaseFacts(BaseModel):
    situation: str
    context: str | None = None


class Scenario(BaseModel):
    id: str | None = None
    title: str
    persona: ScenarioPersona
    concern_options: list[ConcernOption] = Field(default_factory=list)
    deescalation_options: list[DeescalationOption] = Field(default_factory=list)
    voice_characteristics: VoiceCharacteristics = Field(default_factory=VoiceCharacteristics)
    base_facts: BaseFacts


class Personality(BaseModel):
    base_warmth: int = Field(default=5, ge=1, le=10)
    formality: int = Field(default=5, ge=1, le=10)
    directness: int = Field(default=5, ge=1, le=10)
    patience: int = Field(default=5, ge=1, le=10)


class PersonaConfig(BaseModel):
    gender: str = "unspecified"
    age: str = "unspecified"
    voice: str = "verse"
    personality: Personality = Field(default_factory=Personality)


class TemperMeterConfig(CamelModel):
    start_level: int = Field(default=2, ge=1, le=10)
    max_level: int = Field(default=10, ge=1, le=10)
    selected_triggers: list[str] = Field(default_factory=list)
    selected_deescalators: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _start_within_max(self) -> TemperMeterConfig:
        if self.start_level > self.max_level:
            raise ValueError("startLevel must not exceed maxLevel")
        return self


class ScenarioConfig(CamelModel):
    scenario: Scenario
    persona: PersonaConfig = Field(default_factory=PersonaConfig)
    temper_meter: TemperMeterConfig = Field(default_factory=TemperMeterConfig)


class LevelAdjuster(CamelModel):
    id: str
    label: str
    points: int


class DynamicScenario(CamelModel):
    system_prompt: str
    voice: str
    scenario: str
    start_level: int
    max_level: int
    triggers: list[LevelAdjuster]
    deescalators: list[LevelAdjuster]


__all__ = [
    "BaseFacts",
    "CamelModel",
    "ConcernOption",
    "DeescalationOption",
    "DynamicScenario",
    "LevelAdjuster",
    "PersonaConfig",
    "Personality",
    "Scenario",
    "ScenarioConfig",
    "ScenarioPersona",
    "TemperMeterConfig",
    "VoiceCharacteristics",
]
