"""Tests for classifying stream events into state mutations."""

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
)
from trainer_agent.services.artifacts import build_artifact
from trainer_agent.services.stream import (
    CompleteStream,
    FailStream,
    NoOp,
    SetContent,
    SetContentWithArtifact,
    SetContentWithOptions,
    StreamEventDispatcher,
    UpsertStep,
    extract_plain_text,
)


@pytest.fixture
def dispatcher():
    return StreamEventDispatcher()


@pytest.mark.parametrize(
    "formatted, expected",
    [
        ("<result>Found 3 exercises</result>", "Found 3 exercises"),
        ("no tags here", "no tags here"),
        ('<result status="ok">\nmulti\nline\n</result>', "\nmulti\nline\n"),
        ("<result>first</result><result>second</result>", "first"),
        ("", ""),
        (None, None),
    ],
)
def test_extract_plain_text(formatted, expected):
    assert extract_plain_text(formatted) == expected


def test_idle_action_is_ignored(dispatcher):
    assert isinstance(dispatcher.classify(ActionEvent(tool="idle", status=StepStatus.DONE)), NoOp)
    assert isinstance(dispatcher.classify(StatusEvent(tool="idle", phase="done")), NoOp)


def test_action_upserts_step_with_plain_text(dispatcher):
    mutation = dispatcher.classify(
        ActionEvent(tool="search", status=StepStatus.DONE, formatted="<result>Found 3</result>")
    )
    assert mutation == UpsertStep(tool="search", status=StepStatus.DONE, details="Found 3")


@pytest.mark.parametrize(
    "phase, status",
    [("running", StepStatus.RUNNING), ("done", StepStatus.DONE), ("error", StepStatus.FAILED)],
)
def test_status_maps_phase(dispatcher, phase, status):
    mutation = dispatcher.classify(StatusEvent(message="Searching", tool="search", phase=phase))
    assert mutation == UpsertStep(tool="search", status=status, details="Searching")


def test_messages(dispatcher):
    assert dispatcher.classify(MessageEvent(content="Hi")) == SetContent(content="Hi")
    assert isinstance(dispatcher.classify(MessageEvent(content="")), NoOp)


def test_message_with_artifact(dispatcher, reps_exercise):
    artifact = build_artifact({"exercises": [reps_exercise]})
    mutation = dispatcher.classify(MessageWithArtifactEvent(content="Plan", artifact=artifact))
    assert mutation == SetContentWithArtifact(content="Plan", artifact=artifact)


def test_questions(dispatcher):
    assert dispatcher.classify(QuestionEvent(text="Gym?", options=["Yes", "No"])) == (
        SetContentWithOptions(content="Gym?", options=("Yes", "No"))
    )
    assert dispatcher.classify(QuestionEvent(text="Gym?", options=[])) == SetContent(content="Gym?")
    assert dispatcher.classify(QuestionEvent(text="Gym?")) == SetContent(content="Gym?")
    assert isinstance(dispatcher.classify(QuestionEvent(text="", options=["Yes"])), NoOp)


def test_exercises_are_informational(dispatcher):
    assert isinstance(dispatcher.classify(ExercisesEvent(exercises=[{"a": 1}])), NoOp)


def test_terminal_events(dispatcher):
    assert dispatcher.classify(DoneEvent(session_id="s1")) == CompleteStream(session_id="s1")
    assert dispatcher.classify(ErrorEvent(message="boom")) == FailStream(message="boom")


def test_unknown_event_type(dispatcher):
    with pytest.raises(TypeError):
        dispatcher.classify(object())
