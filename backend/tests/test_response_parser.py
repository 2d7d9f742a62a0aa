"""Tests for parsing structured workout output from agent replies."""

import json

from trainer_agent.services.agent.tools import WorkoutOutputParser
from trainer_agent.services.artifacts import ViolationKind


def test_parses_fenced_json_block(workout_payload):
    parser = WorkoutOutputParser()
    reply = "Here is your plan:\n```json\n" + json.dumps(workout_payload) + "\n```\nEnjoy!"

    parsed = parser.parse(reply, artifact_id="art_aaaabbbb")

    assert parsed.success
    assert parsed.artifact.artifact_id == "art_aaaabbbb"
    assert len(parsed.artifact.exercises) == 4
    assert parser.retry_feedback(parsed) == ""


def test_parses_bare_object_in_text(reps_exercise):
    parser = WorkoutOutputParser()
    reply = "Sure! " + json.dumps({"exercises": [reps_exercise]}) + " Let me know."

    assert parser.parse(reply).success


def test_unparseable_reply():
    parser = WorkoutOutputParser()
    parsed = parser.parse("I could not come up with anything")

    assert not parsed.success
    assert parsed.artifact is None
    assert parsed.violations == []
    assert "could not be parsed" in parser.retry_feedback(parsed)


def test_invalid_workout_yields_feedback_not_artifact(reps_exercise):
    reps_exercise["muscles_utilized"] = [
        {"muscle": "Quadriceps", "share": 0.9},
        {"muscle": "Glutes", "share": 0.5},
    ]
    reps_exercise["rest_sec"] = -5
    parser = WorkoutOutputParser()

    parsed = parser.parse(json.dumps({"exercises": [reps_exercise]}))

    assert not parsed.success
    assert parsed.artifact is None
    assert [v.kind for v in parsed.violations] == [ViolationKind.FIELD_VIOLATION]

    feedback = parser.retry_feedback(parsed)
    assert feedback.startswith("Your workout failed validation")
    assert "exercises[0].rest_sec" in feedback


def test_share_mismatch_feedback_hints_rescale(reps_exercise):
    reps_exercise["goals_addressed"] = [{"goal": "strength", "share": 0.5}]
    parser = WorkoutOutputParser()

    parsed = parser.parse(json.dumps({"exercises": [reps_exercise]}))

    assert parsed.violations[0].kind == ViolationKind.SHARE_SUM_MISMATCH
    assert "rescale the shares" in parser.retry_feedback(parsed)
