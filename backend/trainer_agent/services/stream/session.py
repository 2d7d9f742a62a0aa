"""
Assistant Session - Owns one conversation and its single in-flight stream.

The session is constructed explicitly and passed to whatever needs it.
It is the only writer of its conversation state: events from the
transport are classified and applied one at a time, in arrival order,
by a single task. Everything else reads through ``snapshot()``.

Overlapping sends are rejected while a stream is in flight.
"""
import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import AsyncIterator, Optional, Union

from trainer_agent.core.config import settings
from trainer_agent.core.logging import StreamOutcome, StreamTrace, get_logger, stream_trace
from trainer_agent.schemas.events import StreamEvent
from trainer_agent.schemas.exercise import Artifact
from trainer_agent.services.adapter.transport import AgentTransport, AgentTransportError
from trainer_agent.services.stream.conversation import (
    ConversationStateMachine,
    OverlaySessionState,
)
from trainer_agent.services.stream.dispatcher import (
    CompleteStream,
    FailStream,
    StateMutation,
    StreamEventDispatcher,
    UpsertStep,
)

logger = get_logger(__name__)

TIMEOUT_MESSAGE = "The assistant took too long to respond. Please try again."
INTERRUPTED_MESSAGE = "The response ended unexpectedly. Please try again."
CANCELLED_MESSAGE = "Response cancelled"
UNEXPECTED_ERROR_MESSAGE = "Something went wrong. Please try again."


class SessionBusyError(Exception):
    """A message was sent while the previous one is still streaming."""
    pass


class SessionClosedError(Exception):
    """The session was destroyed."""
    pass


class ArtifactAction(str, Enum):
    """What to do with a workout artifact."""
    START = "start"
    ADD = "add"
    REPLACE = "replace"


class WorkoutStore(ABC):
    """The active-workout collaborator that artifacts are applied to."""

    @abstractmethod
    def load_from_artifact(self, artifact: Artifact) -> None:
        """Replace the current workout with the artifact's exercises."""
        pass

    @abstractmethod
    def add_from_artifact(self, artifact: Artifact) -> None:
        """Append the artifact's exercises to the current workout."""
        pass


class AssistantSession:
    """
    Coordinator for one assistant session.

    Usage:
        session = AssistantSession(HttpAgentTransport(), workout_store=store)
        await session.send("Build me a leg day")
        await session.wait()
        state = session.snapshot()
    """

    def __init__(
        self,
        transport: AgentTransport,
        workout_store: Optional[WorkoutStore] = None,
        machine: Optional[ConversationStateMachine] = None,
        dispatcher: Optional[StreamEventDispatcher] = None,
        stream_timeout: Optional[float] = None,
    ):
        self.transport = transport
        self.workout_store = workout_store
        self.machine = machine or ConversationStateMachine()
        self.dispatcher = dispatcher or StreamEventDispatcher()
        self.stream_timeout = (
            settings.AGENT_STREAM_TIMEOUT_SEC if stream_timeout is None else stream_timeout
        )
        self._task: Optional[asyncio.Task] = None
        self._destroyed = False

    # ========================================
    # Reading
    # ========================================

    def snapshot(self) -> OverlaySessionState:
        """Copy of the session state, safe to hold across awaits."""
        return self.machine.snapshot()

    @property
    def is_processing(self) -> bool:
        return self.machine.state.is_processing

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # ========================================
    # Streaming
    # ========================================

    async def send(self, text: str) -> asyncio.Task:
        """
        Send a user message and start streaming the reply.

        Args:
            text: The user's message

        Returns:
            The task consuming the stream

        Raises:
            SessionClosedError: If the session was destroyed
            SessionBusyError: If a previous reply is still streaming
            ValueError: If the message is blank
        """
        self._ensure_alive()
        if self.is_processing or (self._task is not None and not self._task.done()):
            raise SessionBusyError("A response is still in progress")

        message = text.strip()
        if not message:
            raise ValueError("Message must not be empty")

        self.machine.clear_error()
        self.machine.add_user_message(message)
        self.machine.start_processing()
        self.machine.start_streaming_message()

        self._task = asyncio.create_task(
            self._run_stream(message, self.machine.state.session_id)
        )
        return self._task

    async def wait(self) -> None:
        """Wait for the in-flight stream, if any, to finish."""
        task = self._task
        if task is None or task.cancelled():
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            # Only the stream was cancelled, not the caller
            if not task.cancelled():
                raise

    async def _run_stream(self, message: str, session_id: Optional[str]) -> None:
        events = self.transport.stream(message, session_id)
        with stream_trace(logger, session_id) as trace:
            try:
                terminated = await asyncio.wait_for(
                    self._consume(events, trace),
                    timeout=self.stream_timeout,
                )
                if not terminated and not self._destroyed:
                    trace.set_outcome(StreamOutcome.ERROR, "stream ended without done/error")
                    self._apply(FailStream(message=INTERRUPTED_MESSAGE))
            except asyncio.TimeoutError:
                trace.set_outcome(StreamOutcome.TIMEOUT, f"no terminal event after {self.stream_timeout}s")
                self._apply(FailStream(message=TIMEOUT_MESSAGE))
            except AgentTransportError as e:
                trace.set_outcome(StreamOutcome.ERROR, e.message)
                self._apply(FailStream(message=e.message))
            except asyncio.CancelledError:
                trace.set_outcome(StreamOutcome.CANCELLED)
                raise
            except Exception as e:
                logger.error("Agent stream failed", error=str(e), error_type=type(e).__name__)
                trace.set_outcome(StreamOutcome.ERROR, str(e))
                self._apply(FailStream(message=UNEXPECTED_ERROR_MESSAGE))
            finally:
                await _close_events(events)

    async def _consume(self, events: AsyncIterator[StreamEvent], trace: StreamTrace) -> bool:
        """Apply events until a terminal one. Returns False if the stream just ended."""
        async for event in events:
            if self._destroyed:
                return True

            mutation = self.dispatcher.classify(event)
            self._apply(mutation)
            trace.record_event(
                event.type,
                tool=mutation.tool if isinstance(mutation, UpsertStep) else None,
            )

            if isinstance(mutation, CompleteStream):
                trace.log.session_id = mutation.session_id or trace.log.session_id
                trace.set_outcome(StreamOutcome.DONE)
                return True
            if isinstance(mutation, FailStream):
                trace.set_outcome(StreamOutcome.ERROR, mutation.message)
                return True
        return False

    def _apply(self, mutation: StateMutation) -> None:
        if self._destroyed:
            return
        self.machine.apply(mutation)

    async def cancel(self, reason: str = CANCELLED_MESSAGE) -> bool:
        """
        Stop the in-flight stream and finalize its message with an error.

        Returns:
            True if a stream was cancelled
        """
        task = self._task
        if task is None or task.done():
            return False

        await _cancel_task(task)
        self._apply(FailStream(message=reason))
        logger.info("Agent stream cancelled")
        return True

    async def close_overlay(self) -> None:
        """User dismissed the overlay: stop streaming, then close or minimize."""
        self._ensure_alive()
        await self.cancel()
        self.machine.close()

    async def destroy(self) -> None:
        """Tear the session down. No mutation is applied afterwards."""
        if self._destroyed:
            return
        await self.cancel()
        self._destroyed = True
        self._task = None
        logger.debug("Assistant session destroyed")

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise SessionClosedError("Assistant session has been destroyed")

    # ========================================
    # Overlay
    # ========================================

    def open(self) -> None:
        self._ensure_alive()
        self.machine.open()

    def minimize(self) -> None:
        self._ensure_alive()
        self.machine.minimize()

    def expand(self) -> None:
        self._ensure_alive()
        self.machine.expand()

    def collapse(self) -> None:
        self._ensure_alive()
        self.machine.collapse()

    def dismiss_error(self) -> None:
        self._ensure_alive()
        self.machine.clear_error()

    async def reset(self) -> None:
        """Start a new chat: drop any stream and all history."""
        self._ensure_alive()
        task = self._task
        if task is not None and not task.done():
            await _cancel_task(task)
        self._task = None
        self.machine.reset()

    # ========================================
    # Artifacts
    # ========================================

    def find_artifact(self, artifact_id: str) -> Optional[Artifact]:
        """Look up an artifact attached to any message in this session."""
        for message in self.machine.state.messages:
            if message.artifact is not None and message.artifact.artifact_id == artifact_id:
                return message.artifact
        return None

    def apply_artifact(
        self,
        artifact: Union[Artifact, str],
        action: Union[ArtifactAction, str],
    ) -> Artifact:
        """
        Apply an artifact to the active workout.

        Args:
            artifact: The artifact or its id
            action: start / replace load it as the workout, add merges it

        Returns:
            The applied artifact

        Raises:
            ValueError: Unknown action or artifact id
            RuntimeError: No workout store configured
        """
        self._ensure_alive()
        action = ArtifactAction(action)

        if isinstance(artifact, str):
            found = self.find_artifact(artifact)
            if found is None:
                raise ValueError(f"Unknown artifact: {artifact}")
            artifact = found

        if self.workout_store is None:
            raise RuntimeError("No workout store configured")

        if action == ArtifactAction.ADD:
            self.workout_store.add_from_artifact(artifact)
        else:
            self.workout_store.load_from_artifact(artifact)

        logger.info(
            "Artifact applied",
            artifact_id=artifact.artifact_id,
            action=action.value,
            exercise_count=len(artifact.exercises),
        )
        return artifact


async def _cancel_task(task: asyncio.Task) -> None:
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        if not task.cancelled():
            raise


async def _close_events(events: AsyncIterator[StreamEvent]) -> None:
    aclose = getattr(events, "aclose", None)
    if aclose is not None:
        await aclose()
