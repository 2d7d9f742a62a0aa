"""
Streamed agent event envelope.

One user turn is a stream of tagged events terminated by ``done`` or
``error``. The agent service speaks a looser wire vocabulary (tool names
as event types, ``message_notify_user``, ``knowledge`` ...), which
``decode_event`` maps onto the closed envelope below.
"""
import json
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from trainer_agent.core.logging import get_logger
from trainer_agent.schemas.exercise import Artifact
from trainer_agent.services.artifacts.validator import validate_workout

logger = get_logger(__name__)


class StepStatus(str, Enum):
    """Status of one tool step."""
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


StatusPhase = Literal["running", "done", "error"]


# ========================================
# Envelope
# ========================================

class ActionEvent(BaseModel):
    type: Literal["action"] = "action"
    tool: str
    status: StepStatus = StepStatus.RUNNING
    formatted: Optional[str] = None


class StatusEvent(BaseModel):
    type: Literal["status"] = "status"
    message: str = "Working..."
    tool: str = ""
    phase: StatusPhase = "running"


class MessageEvent(BaseModel):
    type: Literal["message"] = "message"
    content: str = ""


class MessageWithArtifactEvent(BaseModel):
    type: Literal["messageWithArtifact"] = "messageWithArtifact"
    content: str = ""
    artifact: Artifact


class QuestionEvent(BaseModel):
    type: Literal["question"] = "question"
    text: str = ""
    options: Optional[List[str]] = None


class ExercisesEvent(BaseModel):
    type: Literal["exercises"] = "exercises"
    exercises: List[Dict[str, Any]] = Field(default_factory=list)


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"
    session_id: str = ""


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str = "Unknown error"


StreamEvent = Annotated[
    Union[
        ActionEvent,
        StatusEvent,
        MessageEvent,
        MessageWithArtifactEvent,
        QuestionEvent,
        ExercisesEvent,
        DoneEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

TERMINAL_EVENT_TYPES = frozenset({"done", "error"})


# ========================================
# Wire Decoding
# ========================================

def parse_sse_line(line: str) -> Optional[Dict[str, Any]]:
    """
    Parse one server-sent-events line.

    Returns:
        The decoded JSON object, or None for lines that carry no event
        (blank lines, comments, other SSE fields)

    Raises:
        ValueError: If the data payload is not a JSON object
    """
    if not line.startswith("data: "):
        return None

    data = line[6:].strip()
    if not data or data == "[DONE]":
        return None

    raw = json.loads(data)
    if not isinstance(raw, dict):
        raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
    return raw


def decode_artifact(data: Any) -> Optional[Artifact]:
    """
    Validate an artifact envelope received from the agent.

    Exercises are read from ``payload.exercises`` (falling back to a
    top-level ``exercises``). Invalid artifacts are dropped, never
    attached half-formed.
    """
    if not isinstance(data, Mapping):
        return None

    payload = data.get("payload")
    exercises = payload.get("exercises") if isinstance(payload, Mapping) else data.get("exercises")

    result = validate_workout({"exercises": exercises, "summary": data.get("summary")})
    if not result.ok:
        logger.warning(
            "Dropping invalid artifact",
            artifact_id=data.get("artifact_id"),
            violation_count=len(result.violations),
        )
        return None

    artifact = Artifact.from_response(result.unwrap(), artifact_id=data.get("artifact_id"))
    if data.get("title"):
        artifact = artifact.model_copy(update={"title": data["title"]})
    return artifact


def _step_status(value: Any) -> StepStatus:
    if value == "done":
        return StepStatus.DONE
    if value == "failed":
        return StepStatus.FAILED
    return StepStatus.RUNNING


def _status_phase(value: Any) -> str:
    if value == "done":
        return "done"
    if value == "error":
        return "error"
    return "running"


def decode_event(raw: Mapping) -> StreamEvent:
    """
    Map one wire event from the agent service onto the envelope.

    Args:
        raw: Decoded JSON object, e.g. {"type": "status", "data": {...}}

    Returns:
        The typed event

    Raises:
        ValueError: If the object has no ``type``
    """
    if not isinstance(raw, Mapping):
        raise ValueError("event must be a JSON object")

    event_type = raw.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ValueError("event has no type")

    data = raw.get("data")
    if not isinstance(data, Mapping):
        data = {}

    if event_type == "done":
        return DoneEvent(session_id=raw.get("sessionId") or "")

    if event_type == "error":
        return ErrorEvent(message=raw.get("message") or "Unknown error")

    if event_type == "status":
        return StatusEvent(
            message=data.get("statusMessage") or data.get("message") or "Working...",
            tool=data.get("tool") or "",
            phase=_status_phase(data.get("phase")),
        )

    if event_type == "message_notify_user":
        content = data.get("message") or ""
        artifact_data = raw.get("artifact") or data.get("artifact")
        if artifact_data is not None:
            artifact = decode_artifact(artifact_data)
            if artifact is not None:
                return MessageWithArtifactEvent(content=content, artifact=artifact)
        return MessageEvent(content=content)

    if event_type == "message_ask_user":
        return QuestionEvent(
            text=data.get("question") or "",
            options=data.get("options"),
        )

    if event_type == "knowledge":
        # Context loading; shown as an already finished step
        return ActionEvent(
            tool=data.get("source") or "context",
            status=StepStatus.DONE,
        )

    if event_type == "exercises":
        return ExercisesEvent(exercises=data.get("exercises") or raw.get("exercises") or [])

    # Anything else is a tool execution event named after the tool
    return ActionEvent(
        tool=event_type,
        status=_step_status(data.get("status") or raw.get("status")),
        formatted=raw.get("formatted") or data.get("formatted"),
    )
