"""
Live voice interview.

- models: session status and connection settings
- events: event bus between transport and controller
- prompts: interviewer and grading prompt templates
- transport: Gemini Live websocket session
- session: the controller owning devices, playback and transport
"""

from .models import SessionStatus, LiveSessionConfig, SessionSummary
from .events import (
    LiveEventBus, LiveEventType, LiveEvent, EventLogger, SessionMetrics,
    SessionOpenedEvent, AudioChunkReceivedEvent, InterruptedEvent,
    SessionClosedEvent, TransportFailedEvent, StatusChangedEvent
)
from .prompts import InterviewPrompts, FallbackMessages
from .transport import (
    LiveTransport, TransportError, TransportConnectionError,
    build_setup_message, build_realtime_input, parse_server_message
)
from .session import InterviewSession, get_active_session

__all__ = [
    "SessionStatus", "LiveSessionConfig", "SessionSummary",
    "LiveEventBus", "LiveEventType", "LiveEvent", "EventLogger", "SessionMetrics",
    "SessionOpenedEvent", "AudioChunkReceivedEvent", "InterruptedEvent",
    "SessionClosedEvent", "TransportFailedEvent", "StatusChangedEvent",
    "InterviewPrompts", "FallbackMessages",
    "LiveTransport", "TransportError", "TransportConnectionError",
    "build_setup_message", "build_realtime_input", "parse_server_message",
    "InterviewSession", "get_active_session",
]
