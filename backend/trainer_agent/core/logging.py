"""
Structured logging configuration.
Designed for easy debugging without exposing message content.
"""
import logging
import sys
import time
import uuid
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import structlog
from structlog.types import Processor

from trainer_agent.core.config import settings


def setup_logging() -> None:
    """Configure structured logging for the application."""
    
    # Common processors
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    
    if settings.LOG_FORMAT == "json":
        # JSON format for production
        renderer = structlog.processors.JSONRenderer()
    else:
        # Console format for development
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    
    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    
    # Configure root logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))
    
    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


# ========================================
# Stream Tracing
# ========================================

class StreamOutcome:
    """How an agent stream ended."""
    DONE = "done"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    OPEN = "open"


@dataclass
class StreamTraceLog:
    """Complete trace of one agent stream (one user turn)."""
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    session_id: Optional[str] = None
    
    start_time: float = 0.0
    end_time: float = 0.0
    duration_ms: float = 0.0
    
    event_counts: Counter = field(default_factory=Counter)
    steps_seen: list[str] = field(default_factory=list)
    
    outcome: str = StreamOutcome.OPEN
    error: Optional[str] = None
    
    def to_dict(self) -> dict[str, Any]:
        """Convert trace to dictionary for logging."""
        return {
            "trace_id": self.trace_id,
            "session_id": self.session_id,
            "duration_ms": round(self.duration_ms, 2),
            "event_count": sum(self.event_counts.values()),
            "event_counts": dict(self.event_counts),
            "steps_seen": self.steps_seen,
            "outcome": self.outcome,
            "error": self.error,
        }


class StreamTrace:
    """
    Tracker for a single agent stream.
    
    Usage:
        with stream_trace(logger, session_id) as trace:
            async for event in events:
                trace.record_event(event.type, tool=...)
            trace.set_outcome(StreamOutcome.DONE)
    """
    
    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        session_id: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        self.logger = logger
        self.enabled = settings.STREAM_DEBUG_LOG if enabled is None else enabled
        self.log = StreamTraceLog(session_id=session_id)
    
    def start(self) -> None:
        """Mark the start of the stream."""
        self.log.start_time = time.time()
        
        if self.enabled:
            self.logger.debug(
                "Stream started",
                trace_id=self.log.trace_id,
                session_id=self.log.session_id,
            )
    
    def record_event(self, event_type: str, tool: Optional[str] = None) -> None:
        """Record an applied event. Only the tag and tool name are kept."""
        self.log.event_counts[event_type] += 1
        if tool and tool not in self.log.steps_seen:
            self.log.steps_seen.append(tool)
        
        if self.enabled:
            self.logger.debug(
                "Stream event applied",
                trace_id=self.log.trace_id,
                event_type=event_type,
                tool=tool,
            )
    
    def set_outcome(self, outcome: str, error: Optional[str] = None) -> None:
        """Set how the stream ended."""
        self.log.outcome = outcome
        self.log.error = error
    
    def finish(self) -> None:
        """Mark the end of the stream and log summary."""
        self.log.end_time = time.time()
        self.log.duration_ms = (self.log.end_time - self.log.start_time) * 1000
        
        if self.log.outcome in (StreamOutcome.DONE, StreamOutcome.CANCELLED):
            self.logger.info("Stream completed", **self.log.to_dict())
        else:
            self.logger.warning("Stream ended abnormally", **self.log.to_dict())


@contextmanager
def stream_trace(
    logger: structlog.stdlib.BoundLogger,
    session_id: Optional[str] = None,
) -> Generator[StreamTrace, None, None]:
    """Context manager tracing one agent stream."""
    trace = StreamTrace(logger, session_id=session_id)
    trace.start()
    try:
        yield trace
    except Exception as e:
        trace.set_outcome(StreamOutcome.ERROR, f"{type(e).__name__}: {e}")
        raise
    finally:
        trace.finish()
