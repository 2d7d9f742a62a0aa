"""
Conversation State - Messages, steps and overlay phase for one assistant session.

The state machine is the only writer of ``OverlaySessionState``. Readers
take a ``snapshot()``, a deep copy they are free to keep or mutate.
None of the operations here can fail: calls that make no sense in the
current state (no open streaming message, finalizing twice) are no-ops.
"""
import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from trainer_agent.core.logging import get_logger
from trainer_agent.schemas.events import StepStatus
from trainer_agent.schemas.exercise import Artifact
from trainer_agent.services.stream.dispatcher import (
    IDLE_TOOL,
    CompleteStream,
    FailStream,
    NoOp,
    SetContent,
    SetContentWithArtifact,
    SetContentWithOptions,
    StateMutation,
    UpsertStep,
)

logger = get_logger(__name__)


# (running label, completed label)
STEP_LABELS: Dict[str, tuple[str, str]] = {
    # Tool execution
    "fetch_workout_history": ("Fetching workout history", "Fetched workout history"),
    "fetch_preferences": ("Loading preferences", "Loaded preferences"),
    "fetch_goals": ("Loading your goals", "Loaded your goals"),
    "fetch_distribution": ("Analyzing exercise distribution", "Analyzed exercise distribution"),
    "generate_workout": ("Creating workout", "Created workout"),
    "log_exercise": ("Logging exercise", "Logged exercise"),
    "update_preference": ("Updating preference", "Updated preference"),
    "update_goal": ("Updating goal", "Updated goal"),
    "set_goals": ("Updating your goals", "Goals updated"),
    "message_notify_user": ("Preparing response", "Prepared response"),
    "message_ask_user": ("Asking question", "Asked question"),
    # Context loading
    "workout_history": ("Loading workout history", "Loaded workout history"),
    "category_goals": ("Loading category goals", "Loaded category goals"),
    "muscle_goals": ("Loading muscle goals", "Loaded muscle goals"),
    "active_preferences": ("Loading preferences", "Loaded preferences"),
    "user_profile": ("Loading profile", "Loaded profile"),
    "exercise_distribution": ("Analyzing exercise patterns", "Analyzed exercise patterns"),
    "user_settings": ("Loading settings", "Loaded settings"),
    "all_locations": ("Loading locations", "Loaded locations"),
    "current_workout_session": ("Loading current workout", "Loaded current workout"),
}


def step_display_name(tool: str, completed: bool = False) -> str:
    """
    Human-friendly label for a tool step.

    Unknown tools fall back to Title Case, e.g. "search_exercises" ->
    "Search Exercises..." while running and "Search Exercises" once done.
    """
    if tool == IDLE_TOOL:
        return "Done"
    labels = STEP_LABELS.get(tool)
    if labels:
        return labels[1] if completed else labels[0]
    base_name = tool.replace("_", " ").title()
    return base_name if completed else base_name + "..."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class OverlayPhase(str, Enum):
    """Where the assistant overlay is in its lifecycle."""
    IDLE = "idle"
    ACTIVE = "active"
    EXPANDED = "expanded"
    MINIMIZED = "minimized"
    CLOSED = "closed"


@dataclass
class Step:
    """One tool invocation shown inline in an assistant message."""
    tool: str
    display_name: str
    status: StepStatus
    details: Optional[str] = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)

    @property
    def completed(self) -> bool:
        return self.status in (StepStatus.DONE, StepStatus.FAILED)


@dataclass
class ConversationMessage:
    """A chat message. Only the open streaming message is ever mutated."""
    role: MessageRole
    content: str = ""
    steps: List[Step] = field(default_factory=list)
    is_streaming: bool = False
    artifact: Optional[Artifact] = None
    question_options: Optional[List[str]] = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "steps": [
                {
                    "tool": s.tool,
                    "displayName": s.display_name,
                    "status": s.status.value,
                    "details": s.details,
                }
                for s in self.steps
            ],
            "isStreaming": self.is_streaming,
            "artifact": self.artifact.to_wire() if self.artifact else None,
            "questionOptions": self.question_options,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class OverlaySessionState:
    """Everything one assistant session displays."""
    phase: OverlayPhase = OverlayPhase.IDLE
    messages: List[ConversationMessage] = field(default_factory=list)
    is_processing: bool = False
    pending_response_count: int = 0
    session_id: Optional[str] = None
    error_message: Optional[str] = None

    # Index into messages of the open streaming message, if any
    streaming_index: Optional[int] = None

    @property
    def streaming_message(self) -> Optional[ConversationMessage]:
        if self.streaming_index is None:
            return None
        return self.messages[self.streaming_index]

    @property
    def latest_assistant_message(self) -> Optional[ConversationMessage]:
        for message in reversed(self.messages):
            if message.role == MessageRole.ASSISTANT:
                return message
        return None

    @property
    def show_minimized_pill(self) -> bool:
        return self.phase == OverlayPhase.MINIMIZED and self.pending_response_count > 0


class ConversationStateMachine:
    """
    Reducer for one assistant session.

    Handles:
    - The message history and the single open streaming message
    - Steps, content, artifacts and question options of that message
    - Processing / error / session id flags
    - Overlay phase transitions and the unread counter
    """

    def __init__(self, state: Optional[OverlaySessionState] = None):
        self._state = state or OverlaySessionState()

    @property
    def state(self) -> OverlaySessionState:
        """Live state. Only the owning coordinator should hold this."""
        return self._state

    def snapshot(self) -> OverlaySessionState:
        """Deep copy of the current state."""
        return copy.deepcopy(self._state)

    # ========================================
    # Messages
    # ========================================

    def add_user_message(self, text: str) -> ConversationMessage:
        """Append a user message. Does not start processing."""
        message = ConversationMessage(role=MessageRole.USER, content=text)
        self._state.messages.append(message)
        return message

    def start_streaming_message(self) -> ConversationMessage:
        """Open a new assistant message, finalizing any message still open."""
        if self._state.streaming_index is not None:
            logger.debug("Replacing open streaming message")
            self.finalize_streaming_message()

        message = ConversationMessage(role=MessageRole.ASSISTANT, is_streaming=True)
        self._state.messages.append(message)
        self._state.streaming_index = len(self._state.messages) - 1
        return message

    def add_step_to_streaming_message(
        self,
        tool: str,
        status: StepStatus,
        details: Optional[str] = None,
    ) -> None:
        """Update the step for ``tool`` on the open message, or append it."""
        message = self._state.streaming_message
        if message is None or tool == IDLE_TOOL:
            return

        step_status = StepStatus(status)
        display_name = step_display_name(
            tool, completed=step_status in (StepStatus.DONE, StepStatus.FAILED)
        )

        for step in message.steps:
            if step.tool == tool:
                step.status = step_status
                step.display_name = display_name
                step.details = details
                return

        message.steps.append(
            Step(tool=tool, display_name=display_name, status=step_status, details=details)
        )

    def update_streaming_content(self, content: str) -> None:
        self._set_streaming_content(content)

    def update_streaming_content_with_artifact(self, content: str, artifact: Artifact) -> None:
        self._set_streaming_content(content, artifact=artifact)

    def update_streaming_content_with_options(self, content: str, options: Sequence[str]) -> None:
        self._set_streaming_content(content, options=list(options))

    def _set_streaming_content(
        self,
        content: str,
        artifact: Optional[Artifact] = None,
        options: Optional[List[str]] = None,
    ) -> None:
        message = self._state.streaming_message
        if message is None:
            return

        if not message.content:
            message.content = content
            if artifact is not None:
                message.artifact = artifact
            if options is not None:
                message.question_options = options
            return

        # The open message already has text: freeze it and continue in a
        # new segment. Steps stay with the first segment.
        message.is_streaming = False
        segment = ConversationMessage(
            role=MessageRole.ASSISTANT,
            content=content,
            is_streaming=True,
            artifact=artifact,
            question_options=options,
        )
        self._state.messages.append(segment)
        self._state.streaming_index = len(self._state.messages) - 1

    def finalize_streaming_message(self) -> None:
        """Freeze the open message. No-op when nothing is open."""
        message = self._state.streaming_message
        if message is None:
            return

        message.is_streaming = False
        self._state.streaming_index = None

        if self._state.phase == OverlayPhase.MINIMIZED and message.content:
            self._state.pending_response_count += 1

    # ========================================
    # Flags
    # ========================================

    def start_processing(self) -> None:
        self._state.is_processing = True

    def stop_processing(self) -> None:
        self._state.is_processing = False

    def show_error(self, message: str) -> None:
        self._state.error_message = message

    def clear_error(self) -> None:
        self._state.error_message = None

    def adopt_session(self, session_id: Optional[str]) -> None:
        """Use ``session_id`` for subsequent turns. Empty ids are ignored."""
        if session_id:
            self._state.session_id = session_id

    # ========================================
    # Phase Transitions
    # ========================================

    def open(self) -> None:
        self._state.phase = OverlayPhase.ACTIVE
        self._state.pending_response_count = 0

    def close(self) -> None:
        """Close the overlay; with history present this only minimizes."""
        if self._state.messages:
            self.minimize()
            return
        self._state = OverlaySessionState(phase=OverlayPhase.CLOSED)

    def minimize(self) -> None:
        self._state.phase = OverlayPhase.MINIMIZED

    def expand(self) -> None:
        if self._state.phase in (OverlayPhase.ACTIVE, OverlayPhase.EXPANDED):
            self._state.phase = OverlayPhase.EXPANDED

    def collapse(self) -> None:
        if self._state.phase == OverlayPhase.EXPANDED:
            self._state.phase = OverlayPhase.ACTIVE

    def reset(self) -> None:
        """Start a fresh session (new chat, logout). The phase is kept."""
        self._state = OverlaySessionState(phase=self._state.phase)

    # ========================================
    # Mutations
    # ========================================

    def apply(self, mutation: StateMutation) -> None:
        """Apply one mutation produced by the StreamEventDispatcher."""
        if isinstance(mutation, NoOp):
            return
        if isinstance(mutation, UpsertStep):
            self.add_step_to_streaming_message(mutation.tool, mutation.status, mutation.details)
        elif isinstance(mutation, SetContent):
            self.update_streaming_content(mutation.content)
        elif isinstance(mutation, SetContentWithArtifact):
            self.update_streaming_content_with_artifact(mutation.content, mutation.artifact)
        elif isinstance(mutation, SetContentWithOptions):
            self.update_streaming_content_with_options(mutation.content, mutation.options)
        elif isinstance(mutation, CompleteStream):
            self.adopt_session(mutation.session_id)
            self.finalize_streaming_message()
            self.stop_processing()
        elif isinstance(mutation, FailStream):
            self.finalize_streaming_message()
            self.stop_processing()
            self.show_error(mutation.message)
        else:
            raise TypeError(f"Unhandled mutation: {type(mutation).__name__}")
