"""Compile a scenario configuration into the persona's system prompt."""

from __future__ import annotations

from paws.domain.scenario import (
    ConcernOption,
    DeescalationOption,
    DynamicScenario,
    LevelAdjuster,
    ScenarioConfig,
)

LEVEL_BEHAVIORS = {
    1: "Very calm and professional. Measured pace, thoughtful questions, active listening.",
    2: "Calm and open. Engaging constructively, asking clarifying questions.",
    3: "Mildly concerned. Pointing out issues politely, slightly shorter responses.",
    4: "Starting to show concern. Questioning logic, being more direct about problems.",
    5: "Noticeably irritated. Faster pace, emotional language creeping in, less patience.",
    6: "Frustrated. Using emphatic words, bringing up past issues, interrupting occasionally.",
    7: "Clearly frustrated. Direct confrontation, CAPS for emphasis, much less patient.",
    8: "Very frustrated/angry. Recalling multiple problems, frequent interruptions, defensive.",
    9: "Angry. May threaten consequences, not listening well, just reacting.",
    10: "Very angry/explosive. Questioning the relationship, considering termination or escalation.",
}

NO_TRIGGERS = "None specified - escalate naturally based on context."
NO_DEESCALATORS = "Respond naturally to good communication."


def _format_concern(concern: ConcernOption) -> str:
    objections = '" or "'.join(concern.objections)
    return (
        f"- {concern.label} [+{concern.escalation_points} levels]\n"
        f"  When user says: {', '.join(concern.trigger_phrases)}\n"
        f"  Your response style: {concern.ai_behavior}\n"
        f'  Example objections: "{objections}"'
    )


def _format_deescalator(option: DeescalationOption) -> str:
    return (
        f"- {option.label} [-{option.deescalation_points} levels]\n"
        f"  When user: {', '.join(option.example_phrases)}\n"
        f"  Your response: {option.ai_response}"
    )


def select_concerns(config: ScenarioConfig) -> list[ConcernOption]:
    chosen = set(config.temper_meter.selected_triggers)
    return [c for c in config.scenario.concern_options if c.id in chosen]


def select_deescalators(config: ScenarioConfig) -> list[DeescalationOption]:
    chosen = set(config.temper_meter.selected_deescalators)
    return [d for d in config.scenario.deescalation_options if d.id in chosen]


def build_system_prompt(config: ScenarioConfig) -> str:
    scenario = config.scenario
    persona = config.persona
    traits = persona.personality
    meter = config.temper_meter
    concerns = select_concerns(config)
    deescalators = select_deescalators(config)

    trigger_block = "\n\n".join(_format_concern(c) for c in concerns) or NO_TRIGGERS
    deescalation_block = "\n\n".join(_format_deescalator(d) for d in deescalators) or NO_DEESCALATORS
    levels_block = "\n".join(f"Level {level}: {text}" for level, text in LEVEL_BEHAVIORS.items())
    voice = scenario.voice_characteristics

    context_lines = [scenario.base_facts.situation]
    if scenario.base_facts.context:
        context_lines.append(f"Context: {scenario.base_facts.context}")

    sections = [
        f"You are playing {scenario.persona.role} in a {scenario.title} conversation.",
        "PERSONA CHARACTERISTICS:\n"
        f"- Gender: {persona.gender}\n"
        f"- Age: {persona.age}\n"
        f"- Voice: {persona.voice}\n"
        f"- Base Style: {scenario.persona.base_style}",
        "PERSONALITY TRAITS (1-10 scale):\n"
        f"- Warmth: {traits.base_warmth}/10 (1=friendly, 10=cold)\n"
        f"- Formality: {traits.formality}/10 (1=casual, 10=very formal)\n"
        f"- Directness: {traits.directness}/10 (1=indirect, 10=blunt)\n"
        f"- Patience: {traits.patience}/10 (1=very patient, 10=quick-tempered)",
        "EMOTIONAL STATE SYSTEM:\n"
        f"Starting Level: {meter.start_level}/10\n"
        f"Maximum Level: {meter.max_level}/10\n"
        f"Current Level: {meter.start_level}/10 (track internally)",
        f"ESCALATION TRIGGERS (increase your anger):\n{trigger_block}",
        f"DE-ESCALATION OPPORTUNITIES (decrease your anger):\n{deescalation_block}",
        f"BEHAVIOR BY EMOTIONAL LEVEL:\n{levels_block}",
        "VOICE CHARACTERISTICS BY EMOTION:\n"
        f"- Calm (levels 1-2): {voice.calm}\n"
        f"- Irritated (levels 3-4): {voice.irritated}\n"
        f"- Frustrated (levels 5-7): {voice.frustrated}\n"
        f"- Angry (levels 8-10): {voice.angry}",
        "SCENARIO CONTEXT:\n" + "\n".join(context_lines),
        "IMPORTANT RULES:\n"
        f"1. Start at emotional level {meter.start_level}\n"
        "2. Track your emotional level internally after each exchange\n"
        f"3. Never exceed level {meter.max_level}\n"
        "4. Adjust your tone, pace, and word choice based on current level\n"
        "5. When triggers are hit, increase your level and show it in your response\n"
        "6. When de-escalators are used, decrease your level and soften your tone\n"
        f"7. Stay in character as {scenario.persona.role}\n"
        "8. Be realistic - real people escalate and de-escalate gradually\n"
        "9. Keep responses conversational and natural (2-4 sentences typically)\n"
        "10. Use the specified voice characteristics for your current emotional level",
        f"Begin the conversation at level {meter.start_level}. "
        "Introduce yourself and state your concern.",
    ]
    return "\n\n".join(sections)


def build_dynamic_scenario(config: ScenarioConfig) -> DynamicScenario:
    return DynamicScenario(
        system_prompt=build_system_prompt(config),
        voice=config.persona.voice,
        scenario=config.scenario.title,
        start_level=config.temper_meter.start_level,
        max_level=config.temper_meter.max_level,
        triggers=[
            LevelAdjuster(id=c.id, label=c.label, points=c.escalation_points)
            for c in select_concerns(config)
        ],
        deescalators=[
            LevelAdjuster(id=d.id, label=d.label, points=d.deescalation_points)
            for d in select_deescalators(config)
        ],
    )


__all__ = [
    "LEVEL_BEHAVIORS",
    "build_dynamic_scenario",
    "build_system_prompt",
    "select_concerns",
    "select_deescalators",
]
