"""
Stream Event Dispatcher - Turns streamed agent events into state mutations.

The dispatcher is stateless: it classifies one event at a time, in
arrival order, and never buffers or reorders. Applying the resulting
mutation is the conversation state machine's job.
"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

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
    StreamEvent,
)
from trainer_agent.schemas.exercise import Artifact

# Pseudo-tool the agent reports when it has nothing left to do
IDLE_TOOL = "idle"

_RESULT_PATTERN = re.compile(r"<result[^>]*>([\s\S]*?)</result>")

_PHASE_TO_STATUS = {
    "running": StepStatus.RUNNING,
    "done": StepStatus.DONE,
    "error": StepStatus.FAILED,
}


# ========================================
# Mutations
# ========================================

@dataclass(frozen=True)
class NoOp:
    reason: str = ""


@dataclass(frozen=True)
class UpsertStep:
    tool: str
    status: StepStatus
    details: Optional[str] = None


@dataclass(frozen=True)
class SetContent:
    content: str


@dataclass(frozen=True)
class SetContentWithArtifact:
    content: str
    artifact: Artifact


@dataclass(frozen=True)
class SetContentWithOptions:
    content: str
    options: Tuple[str, ...]


@dataclass(frozen=True)
class CompleteStream:
    session_id: str


@dataclass(frozen=True)
class FailStream:
    message: str


StateMutation = Union[
    NoOp,
    UpsertStep,
    SetContent,
    SetContentWithArtifact,
    SetContentWithOptions,
    CompleteStream,
    FailStream,
]


def extract_plain_text(formatted: Optional[str]) -> Optional[str]:
    """
    Strip a ``<result>...</result>`` wrapper from a tool result.

    Only the first wrapped section is returned; text without a wrapper
    is passed through unchanged.
    """
    if formatted is None:
        return None
    match = _RESULT_PATTERN.search(formatted)
    if match:
        return match.group(1)
    return formatted


class StreamEventDispatcher:
    """Maps each envelope event to exactly one StateMutation."""

    def classify(self, event: StreamEvent) -> StateMutation:
        """
        Classify one event.

        Args:
            event: A decoded stream event

        Returns:
            The mutation to apply to the conversation state
        """
        if isinstance(event, ActionEvent):
            if event.tool == IDLE_TOOL:
                return NoOp(reason="idle")
            return UpsertStep(
                tool=event.tool,
                status=event.status,
                details=extract_plain_text(event.formatted),
            )

        if isinstance(event, StatusEvent):
            if event.tool == IDLE_TOOL:
                return NoOp(reason="idle")
            return UpsertStep(
                tool=event.tool,
                status=_PHASE_TO_STATUS[event.phase],
                details=event.message,
            )

        if isinstance(event, MessageWithArtifactEvent):
            return SetContentWithArtifact(content=event.content, artifact=event.artifact)

        if isinstance(event, MessageEvent):
            if not event.content:
                return NoOp(reason="empty message")
            return SetContent(content=event.content)

        if isinstance(event, QuestionEvent):
            if not event.text:
                return NoOp(reason="empty question")
            if event.options:
                return SetContentWithOptions(content=event.text, options=tuple(event.options))
            return SetContent(content=event.text)

        if isinstance(event, ExercisesEvent):
            return NoOp(reason="exercises")

        if isinstance(event, DoneEvent):
            return CompleteStream(session_id=event.session_id)

        if isinstance(event, ErrorEvent):
            return FailStream(message=event.message)

        raise TypeError(f"Unhandled stream event: {type(event).__name__}")
