"""
Agent Transport - Streams one user turn from the agent service.

The agent answers a POST with server-sent events, one JSON object per
``data:`` line. Each line is decoded into the event envelope; the stream
ends at the first ``done`` or ``error`` event.
"""
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

import httpx

from trainer_agent.core.config import settings
from trainer_agent.core.logging import get_logger
from trainer_agent.schemas.events import (
    TERMINAL_EVENT_TYPES,
    StreamEvent,
    decode_event,
    parse_sse_line,
)

logger = get_logger(__name__)


class AgentTransportError(Exception):
    """Network or HTTP failure while talking to the agent service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _http_error_message(status_code: int) -> str:
    if status_code == 401:
        return "Please sign in to continue"
    if status_code == 403:
        return "Access denied"
    return f"Server error (status: {status_code})"


class AgentTransport(ABC):
    """Source of stream events for one user turn."""

    @abstractmethod
    def stream(
        self,
        message: str,
        session_id: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Send ``message`` and yield the agent's events in arrival order."""
        pass


class HttpAgentTransport(AgentTransport):
    """SSE transport over httpx."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        stream_path: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.AGENT_BASE_URL).rstrip("/")
        self.stream_path = stream_path or settings.AGENT_STREAM_PATH
        self.api_token = settings.AGENT_API_TOKEN if api_token is None else api_token
        self.timeout = settings.AGENT_HTTP_TIMEOUT_SEC if timeout is None else timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{self.stream_path}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def stream(
        self,
        message: str,
        session_id: Optional[str] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream one turn.

        Args:
            message: The user's message
            session_id: Session to continue, None to start a new one

        Yields:
            Decoded events, ending with done or error

        Raises:
            AgentTransportError: On non-200 responses, timeouts and network errors
        """
        payload = {"message": message}
        if session_id:
            payload["sessionId"] = session_id

        logger.debug("Starting agent stream", endpoint=self.endpoint, has_session=bool(session_id))

        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            async with client.stream(
                "POST",
                self.endpoint,
                headers=self._headers(),
                json=payload,
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    logger.warning("Agent stream rejected", status_code=response.status_code)
                    raise AgentTransportError(
                        _http_error_message(response.status_code),
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    try:
                        raw = parse_sse_line(line)
                        if raw is None:
                            continue
                        event = decode_event(raw)
                    except ValueError as e:
                        logger.warning("Failed to decode stream event", error=str(e))
                        continue

                    yield event

                    if event.type in TERMINAL_EVENT_TYPES:
                        return

        except httpx.TimeoutException as e:
            raise AgentTransportError("Agent request timed out, please try again") from e
        except httpx.HTTPError as e:
            raise AgentTransportError("Unable to connect to server") from e
        finally:
            if self._client is None:
                await client.aclose()
