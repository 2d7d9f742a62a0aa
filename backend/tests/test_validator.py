"""Tests for the exercise schema and the artifact validator."""

import copy

import pytest
from pydantic import ValidationError

from trainer_agent.schemas.exercise import (
    Artifact,
    DurationExercise,
    HoldExercise,
    IntervalsExercise,
    RepsExercise,
)
from trainer_agent.services.artifacts import (
    ArtifactValidator,
    ViolationKind,
    WorkoutValidationError,
    build_artifact,
    validate_or_raise,
    validate_workout,
)


def _workout(*exercises):
    return {"exercises": list(exercises)}


def test_all_variants_validate_and_round_trip(all_exercises):
    """Every variant validates and keeps every field it was given."""
    raw = _workout(*all_exercises)
    result = validate_workout(raw)

    assert result.ok, result.error
    response = result.unwrap()
    assert [type(e) for e in response.exercises] == [
        RepsExercise,
        HoldExercise,
        DurationExercise,
        IntervalsExercise,
    ]
    for original, parsed in zip(all_exercises, response.exercises):
        assert parsed.model_dump(exclude_unset=True) == original


def test_validation_does_not_mutate_input(workout_payload):
    before = copy.deepcopy(workout_payload)
    validate_workout(workout_payload)
    assert workout_payload == before


def test_summary_is_validated_independently(workout_payload):
    workout_payload["summary"]["difficulty"] = "extreme"
    result = validate_workout(workout_payload)

    assert not result.ok
    assert [v.path for v in result.violations] == ["summary.difficulty"]


def test_null_summary_is_treated_as_absent(reps_exercise):
    result = validate_workout({"exercises": [reps_exercise], "summary": None})
    assert result.ok
    assert result.unwrap().summary is None


@pytest.mark.parametrize(
    "shares",
    [
        [0.55, 0.5],  # 1.05, deviation exactly at the tolerance
        [0.45, 0.5],  # 0.95
        [1.0],
    ],
)
def test_share_sum_within_tolerance_passes(reps_exercise, shares):
    reps_exercise["muscles_utilized"] = [
        {"muscle": m, "share": s} for m, s in zip(["Quadriceps", "Glutes"], shares)
    ]
    assert validate_workout(_workout(reps_exercise)).ok


@pytest.mark.parametrize("shares", [[0.6, 0.5], [0.4, 0.5], [0.3]])
def test_share_sum_outside_tolerance_fails(reps_exercise, shares):
    reps_exercise["muscles_utilized"] = [
        {"muscle": m, "share": s} for m, s in zip(["Quadriceps", "Glutes"], shares)
    ]
    result = validate_workout(_workout(reps_exercise))

    assert not result.ok
    [violation] = result.violations
    assert violation.kind == ViolationKind.SHARE_SUM_MISMATCH
    assert violation.path == "exercises[0].muscles_utilized"
    assert violation.sum == pytest.approx(sum(shares))


def test_empty_share_lists_always_pass(reps_exercise):
    reps_exercise["muscles_utilized"] = []
    reps_exercise["goals_addressed"] = []
    assert validate_workout(_workout(reps_exercise)).ok


def test_goal_shares_are_checked(reps_exercise):
    reps_exercise["goals_addressed"] = [
        {"goal": "strength", "share": 0.5},
        {"goal": "hypertrophy", "share": 0.2},
    ]
    result = validate_workout(_workout(reps_exercise))

    assert [v.path for v in result.violations] == ["exercises[0].goals_addressed"]


@pytest.mark.parametrize("tag", [None, "yoga", 3])
def test_missing_or_unknown_variant(reps_exercise, tag):
    if tag is None:
        del reps_exercise["exercise_type"]
    else:
        reps_exercise["exercise_type"] = tag
    result = validate_workout(_workout(reps_exercise))

    [violation] = result.violations
    assert violation.kind == ViolationKind.UNKNOWN_VARIANT
    assert violation.path == "exercises[0].exercise_type"


def test_all_violations_are_collected(all_exercises):
    reps, hold, duration, intervals = all_exercises
    reps["reps"] = [8, 0, 6]
    hold["sets"] = 0
    del duration["duration_min"]
    intervals["exercise_type"] = "tabata"

    result = validate_workout(_workout(reps, hold, duration, intervals))

    assert not result.ok
    paths = {v.path for v in result.violations}
    assert "exercises[0].reps[1]" in paths
    assert "exercises[1].sets" in paths
    assert "exercises[2].duration_min" in paths
    assert "exercises[3].exercise_type" in paths
    assert result.error.kinds == {ViolationKind.FIELD_VIOLATION, ViolationKind.UNKNOWN_VARIANT}


def test_per_set_lists_must_match_sets(reps_exercise):
    reps_exercise["reps"] = [8, 8]
    result = validate_workout(_workout(reps_exercise))

    [violation] = result.violations
    assert violation.kind == ViolationKind.FIELD_VIOLATION
    assert violation.path == "exercises[0].reps"
    assert "one per set" in violation.reason


def test_bodyweight_load_is_optional(reps_exercise):
    del reps_exercise["load_each"]
    del reps_exercise["load_unit"]
    assert validate_workout(_workout(reps_exercise)).ok


def test_reasoning_length_is_bounded(reps_exercise):
    reps_exercise["reasoning"] = "x" * 301
    result = validate_workout(_workout(reps_exercise))
    assert [v.path for v in result.violations] == ["exercises[0].reasoning"]


@pytest.mark.parametrize("exercises", [None, [], "squats"])
def test_exercises_must_be_a_non_empty_list(exercises):
    raw = {} if exercises is None else {"exercises": exercises}
    result = validate_workout(raw)

    [violation] = result.violations
    assert violation.path == "exercises"


def test_non_object_payload_is_rejected():
    result = validate_workout(["not", "a", "workout"])
    assert not result.ok
    assert result.violations[0].path == ""


def test_validate_or_raise(reps_exercise):
    reps_exercise["sets"] = -1
    with pytest.raises(WorkoutValidationError) as exc_info:
        validate_or_raise(_workout(reps_exercise))
    assert exc_info.value.to_list()[0]["kind"] == "field_violation"


def test_custom_tolerance(reps_exercise):
    reps_exercise["muscles_utilized"] = [
        {"muscle": "Quadriceps", "share": 0.6},
        {"muscle": "Glutes", "share": 0.5},
    ]
    assert not ArtifactValidator().validate(_workout(reps_exercise)).ok
    assert ArtifactValidator(share_tolerance=0.1).validate(_workout(reps_exercise)).ok


def test_build_artifact_wraps_valid_workout(workout_payload):
    artifact = build_artifact(workout_payload, artifact_id="art_12345678")

    assert isinstance(artifact, Artifact)
    assert artifact.artifact_id == "art_12345678"
    assert artifact.title == "Full Body Mix"
    assert len(artifact.exercises) == 4

    wire = artifact.to_wire()
    assert wire["type"] == "exercise_list"
    assert wire["schema_version"] == "1.0"
    assert len(wire["payload"]["exercises"]) == 4


def test_build_artifact_generates_ids(reps_exercise):
    first = build_artifact(_workout(reps_exercise))
    second = build_artifact(_workout(reps_exercise))

    assert first.artifact_id.startswith("art_")
    assert len(first.artifact_id) == len("art_") + 8
    assert first.artifact_id != second.artifact_id


def test_build_artifact_rejects_invalid_workout():
    with pytest.raises(WorkoutValidationError):
        build_artifact({"exercises": []})


@pytest.mark.parametrize(
    "field, value",
    [
        ("sets", "3"),
        ("reps", ["8", "8", "6"]),
        ("order", True),
        ("rest_sec", 120.0),
        ("exercise_name", 42),
    ],
)
def test_wrong_types_are_not_coerced(reps_exercise, field, value):
    reps_exercise[field] = value
    result = validate_workout(_workout(reps_exercise))

    assert not result.ok
    assert {v.kind for v in result.violations} == {ViolationKind.FIELD_VIOLATION}
    assert all(v.path.startswith(f"exercises[0].{field}") for v in result.violations)


def test_integer_shares_and_durations_are_accepted(all_exercises):
    reps, hold, duration, intervals = all_exercises
    hold["muscles_utilized"] = [{"muscle": "Abs", "share": 1}]
    duration["duration_min"] = 30

    assert validate_workout(_workout(reps, hold, duration, intervals)).ok


def test_share_mismatch_is_reported_alongside_field_errors(reps_exercise):
    reps_exercise["rest_sec"] = -5
    reps_exercise["muscles_utilized"] = [{"muscle": "Quadriceps", "share": 0.3}]

    result = validate_workout(_workout(reps_exercise))

    assert [(v.kind, v.path) for v in result.violations] == [
        (ViolationKind.FIELD_VIOLATION, "exercises[0].rest_sec"),
        (ViolationKind.SHARE_SUM_MISMATCH, "exercises[0].muscles_utilized"),
    ]
    assert result.violations[1].sum == pytest.approx(0.3)


def test_unparseable_share_list_is_not_summed(reps_exercise):
    reps_exercise["muscles_utilized"] = [{"muscle": "Tail", "share": 0.3}]

    result = validate_workout(_workout(reps_exercise))

    assert {v.kind for v in result.violations} == {ViolationKind.FIELD_VIOLATION}


def test_artifact_exercises_are_read_only(workout_payload):
    response = validate_or_raise(workout_payload)
    artifact = build_artifact(response)

    with pytest.raises(ValidationError):
        artifact.exercises[0].sets = 99
    with pytest.raises(ValidationError):
        artifact.exercises[0].muscles_utilized[0].share = 0.9
    with pytest.raises(ValidationError):
        artifact.summary.title = "Renamed"

    # The artifact keeps its own copy of what the response held
    response.exercises[0].reps.append(1)
    assert artifact.exercises[0].reps == [8, 8, 6]
