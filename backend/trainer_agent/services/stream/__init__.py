"""
Stream module - applying streamed agent events to one assistant session.
"""
from trainer_agent.services.stream.conversation import (
    ConversationMessage,
    ConversationStateMachine,
    MessageRole,
    OverlayPhase,
    OverlaySessionState,
    Step,
    step_display_name,
)
from trainer_agent.services.stream.dispatcher import (
    CompleteStream,
    FailStream,
    NoOp,
    SetContent,
    SetContentWithArtifact,
    SetContentWithOptions,
    StateMutation,
    StreamEventDispatcher,
    UpsertStep,
    extract_plain_text,
)
from trainer_agent.services.stream.session import (
    ArtifactAction,
    AssistantSession,
    SessionBusyError,
    SessionClosedError,
    WorkoutStore,
)

__all__ = [
    # Conversation
    "ConversationMessage",
    "ConversationStateMachine",
    "MessageRole",
    "OverlayPhase",
    "OverlaySessionState",
    "Step",
    "step_display_name",
    # Dispatcher
    "StreamEventDispatcher",
    "StateMutation",
    "NoOp",
    "UpsertStep",
    "SetContent",
    "SetContentWithArtifact",
    "SetContentWithOptions",
    "CompleteStream",
    "FailStream",
    "extract_plain_text",
    # Session
    "AssistantSession",
    "ArtifactAction",
    "SessionBusyError",
    "SessionClosedError",
    "WorkoutStore",
]
