from __future__ import annotations

from paws.domain.scenario import ScenarioConfig
from paws.services.temper import TemperMeter


def _config(start: int = 2, maximum: int = 10) -> ScenarioConfig:
    return ScenarioConfig.model_validate(
        {
            "scenario": {
                "title": "Budget Cut",
                "persona": {"role": "a department head"},
                "concern_options": [
                    {"id": "dismiss", "label": "Dismissive", "escalation_points": 3, "trigger_phrases": ["calm down"]},
                    {"id": "deflect", "label": "Deflecting", "escalation_points": 2, "trigger_phrases": ["not my call"]},
                    {"id": "unused", "label": "Unused", "escalation_points": 5, "trigger_phrases": ["budget"]},
                ],
                "deescalation_options": [
                    {"id": "empathy", "label": "Empathy", "deescalation_points": 2, "example_phrases": ["I understand"]},
                ],
                "base_facts": {"situation": "Headcount is being reduced."},
            },
            "temperMeter": {
                "startLevel": start,
                "maxLevel": maximum,
                "selectedTriggers": ["dismiss", "deflect"],
                "selectedDeescalators": ["empathy"],
            },
        }
    )


def test_trigger_phrase_escalates_case_insensitively():
    meter = TemperMeter.from_config(_config())

    events = meter.analyze("Please CALM DOWN, this is fine.")

    assert meter.level == 5
    assert len(events) == 1
    assert events[0].type == "escalation"
    assert events[0].from_level == 2
    assert events[0].to_level == 5
    assert events[0].label == "Dismissive"


def test_escalation_never_exceeds_max_level():
    meter = TemperMeter.from_config(_config(start=5, maximum=6))

    events = meter.analyze("calm down, it's not my call")

    assert meter.level == 6
    assert [event.to_level for event in events] == [6]


def test_deescalation_never_drops_below_one():
    meter = TemperMeter.from_config(_config(start=2))

    events = meter.analyze("I understand. I understand completely.")

    assert meter.level == 1
    assert len(events) == 1
    assert events[0].type == "deescalation"

    assert meter.analyze("I understand") == []
    assert meter.level == 1


def test_unselected_triggers_are_ignored():
    meter = TemperMeter.from_config(_config())

    assert meter.analyze("The budget is what it is.") == []
    assert meter.level == 2


def test_triggers_apply_before_deescalators():
    meter = TemperMeter.from_config(_config(start=3))

    events = meter.analyze("Calm down. I understand it's frustrating.")

    assert [(e.type, e.from_level, e.to_level) for e in events] == [
        ("escalation", 3, 6),
        ("deescalation", 6, 4),
    ]
    assert meter.events == events


def test_resumed_level_is_clamped():
    meter = TemperMeter.from_config(_config(maximum=7), level=9)

    assert meter.level == 7
