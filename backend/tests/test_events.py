"""Tests for decoding agent wire events."""

import json

import pytest

from trainer_agent.schemas.events import (
    ActionEvent,
    DoneEvent,
    ErrorEvent,
    ExercisesEvent,
    MessageEvent,
    MessageWithArtifactEvent,
    QuestionEvent,
    StatusEvent,
    StepStatus,
    decode_event,
    parse_sse_line,
)


def test_parse_sse_line():
    assert parse_sse_line('data: {"type": "done", "sessionId": "s1"}') == {
        "type": "done",
        "sessionId": "s1",
    }
    assert parse_sse_line("") is None
    assert parse_sse_line(": keep-alive") is None
    assert parse_sse_line("event: message") is None
    assert parse_sse_line("data: [DONE]") is None


@pytest.mark.parametrize("line", ["data: {not json", "data: [1, 2]"])
def test_parse_sse_line_rejects_bad_payloads(line):
    with pytest.raises(ValueError):
        parse_sse_line(line)


def test_done_and_error():
    assert decode_event({"type": "done", "sessionId": "s1"}) == DoneEvent(session_id="s1")
    assert decode_event({"type": "error", "message": "boom"}) == ErrorEvent(message="boom")
    assert decode_event({"type": "error"}).message == "Unknown error"


@pytest.mark.parametrize(
    "phase, expected",
    [("start", "running"), ("done", "done"), ("error", "error"), (None, "running")],
)
def test_status_phases(phase, expected):
    event = decode_event(
        {"type": "status", "data": {"statusMessage": "Searching...", "tool": "search", "phase": phase}}
    )
    assert event == StatusEvent(message="Searching...", tool="search", phase=expected)


def test_status_falls_back_to_message():
    event = decode_event({"type": "status", "data": {"message": "Thinking"}})
    assert event.message == "Thinking"
    assert event.tool == ""


def test_notify_user_without_artifact():
    event = decode_event({"type": "message_notify_user", "data": {"message": "Hi"}})
    assert event == MessageEvent(content="Hi")


@pytest.mark.parametrize("location", ["top", "data"])
def test_notify_user_with_artifact(workout_payload, location):
    artifact = {
        "artifact_id": "art_x7k2m9p4",
        "type": "exercise_list",
        "schema_version": "1.0",
        "title": "Leg Day",
        "summary": workout_payload["summary"],
        "payload": {"exercises": workout_payload["exercises"]},
    }
    raw = {"type": "message_notify_user", "data": {"message": "Here you go"}}
    if location == "top":
        raw["artifact"] = artifact
    else:
        raw["data"]["artifact"] = artifact

    event = decode_event(raw)

    assert isinstance(event, MessageWithArtifactEvent)
    assert event.content == "Here you go"
    assert event.artifact.artifact_id == "art_x7k2m9p4"
    assert event.artifact.title == "Leg Day"
    assert len(event.artifact.exercises) == 4


def test_invalid_artifact_is_downgraded_to_message(reps_exercise):
    reps_exercise["exercise_type"] = "yoga"
    event = decode_event(
        {
            "type": "message_notify_user",
            "data": {"message": "Here you go"},
            "artifact": {"artifact_id": "art_bad00000", "payload": {"exercises": [reps_exercise]}},
        }
    )
    assert event == MessageEvent(content="Here you go")


def test_ask_user():
    event = decode_event(
        {"type": "message_ask_user", "data": {"question": "Gym or home?", "options": ["Gym", "Home"]}}
    )
    assert event == QuestionEvent(text="Gym or home?", options=["Gym", "Home"])
    assert decode_event({"type": "message_ask_user"}) == QuestionEvent(text="", options=None)


def test_knowledge_is_a_finished_step():
    event = decode_event({"type": "knowledge", "data": {"source": "category_goals", "status": "done"}})
    assert event == ActionEvent(tool="category_goals", status=StepStatus.DONE)


def test_exercises():
    event = decode_event({"type": "exercises", "data": {"exercises": [{"exercise_name": "Squat"}]}})
    assert event == ExercisesEvent(exercises=[{"exercise_name": "Squat"}])


@pytest.mark.parametrize(
    "raw, status",
    [
        ({"type": "fetch_goals", "status": "done"}, StepStatus.DONE),
        ({"type": "fetch_goals", "data": {"status": "failed"}}, StepStatus.FAILED),
        ({"type": "fetch_goals"}, StepStatus.RUNNING),
    ],
)
def test_other_types_are_tool_actions(raw, status):
    event = decode_event(raw)
    assert isinstance(event, ActionEvent)
    assert (event.tool, event.status, event.formatted) == ("fetch_goals", status, None)


def test_action_formatted_from_top_level_or_data():
    top = decode_event({"type": "search", "formatted": "<result>3</result>"})
    nested = decode_event({"type": "search", "data": {"formatted": "<result>4</result>"}})
    assert top.formatted == "<result>3</result>"
    assert nested.formatted == "<result>4</result>"


@pytest.mark.parametrize("raw", [{}, {"type": ""}, {"data": {}}, "done"])
def test_events_without_type_are_rejected(raw):
    with pytest.raises(ValueError):
        decode_event(raw)


def test_sse_line_to_event():
    line = "data: " + json.dumps({"type": "done", "sessionId": "abc"})
    assert decode_event(parse_sse_line(line)) == DoneEvent(session_id="abc")
