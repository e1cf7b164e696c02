"""
Event-driven wiring between the live transport and the session controller.

The transport emits a closed set of events (opened, audio chunk, interrupted,
closed, failed). The controller registers one handler per event type.
"""
import logging
from typing import Dict, Any, List, Callable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class LiveEventType(str, Enum):
    """Types of live session events."""
    OPENED = "opened"
    AUDIO_CHUNK = "audio_chunk"
    INTERRUPTED = "interrupted"
    CLOSED = "closed"
    ERROR = "error"
    STATUS_CHANGED = "status_changed"


@dataclass
class LiveEvent:
    """Base class for all live session events."""
    event_type: LiveEventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionOpenedEvent(LiveEvent):
    """Fired when the backend acknowledges the session setup."""
    def __init__(self, session_id: str, timestamp: float):
        super().__init__(
            event_type=LiveEventType.OPENED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class AudioChunkReceivedEvent(LiveEvent):
    """Fired for each inbound chunk of synthesized speech."""
    def __init__(self, session_id: str, timestamp: float, audio_data: str, mime_type: str = ""):
        super().__init__(
            event_type=LiveEventType.AUDIO_CHUNK,
            session_id=session_id,
            timestamp=timestamp,
            data={"audio_data": audio_data, "mime_type": mime_type}
        )

    @property
    def audio_data(self) -> str:
        return self.data["audio_data"]


@dataclass
class InterruptedEvent(LiveEvent):
    """Fired when the backend reports the user talking over the model."""
    def __init__(self, session_id: str, timestamp: float):
        super().__init__(
            event_type=LiveEventType.INTERRUPTED,
            session_id=session_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class SessionClosedEvent(LiveEvent):
    """Fired once when the connection is closed by the remote side."""
    def __init__(self, session_id: str, timestamp: float, code: int = 1000, reason: str = ""):
        super().__init__(
            event_type=LiveEventType.CLOSED,
            session_id=session_id,
            timestamp=timestamp,
            data={"code": code, "reason": reason}
        )


@dataclass
class TransportFailedEvent(LiveEvent):
    """Fired when the connection fails or the backend reports an error."""
    def __init__(self, session_id: str, timestamp: float, message: str):
        super().__init__(
            event_type=LiveEventType.ERROR,
            session_id=session_id,
            timestamp=timestamp,
            data={"message": message}
        )

    @property
    def message(self) -> str:
        return self.data["message"]


@dataclass
class StatusChangedEvent(LiveEvent):
    """Fired by the controller whenever the session status changes."""
    def __init__(self, session_id: str, timestamp: float, old_status: str, new_status: str,
                 error_message: str = ""):
        super().__init__(
            event_type=LiveEventType.STATUS_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "old_status": old_status,
                "new_status": new_status,
                "error_message": error_message
            }
        )


EventHandler = Callable[[LiveEvent], None]


class LiveEventBus:
    """Dispatches live events to the handlers registered for their type."""

    def __init__(self):
        self._handlers: Dict[LiveEventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: LiveEventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: LiveEventType, handler: EventHandler) -> None:
        """Unsubscribe from specific event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: LiveEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and does not stop dispatch to the rest.
        """
        if event.event_type != LiveEventType.AUDIO_CHUNK:
            logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs events for debugging, summarising audio payloads by size."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: LiveEvent) -> None:
        if event.event_type == LiveEventType.AUDIO_CHUNK:
            self.logger.debug(f"Event: {event.event_type} | Session: {event.session_id} | "
                              f"{len(event.data.get('audio_data', ''))} base64 chars")
            return
        self.logger.info(f"Event: {event.event_type} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects counters from live session events."""

    def __init__(self):
        self.sessions_opened = 0
        self.audio_chunks_received = 0
        self.interruptions = 0
        self.sessions_closed = 0
        self.errors_occurred = 0

    def handle_event(self, event: LiveEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == LiveEventType.OPENED:
            self.sessions_opened += 1
        elif event.event_type == LiveEventType.AUDIO_CHUNK:
            self.audio_chunks_received += 1
        elif event.event_type == LiveEventType.INTERRUPTED:
            self.interruptions += 1
        elif event.event_type == LiveEventType.CLOSED:
            self.sessions_closed += 1
        elif event.event_type == LiveEventType.ERROR:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "sessions_opened": self.sessions_opened,
            "audio_chunks_received": self.audio_chunks_received,
            "interruptions": self.interruptions,
            "sessions_closed": self.sessions_closed,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.sessions_opened = 0
        self.audio_chunks_received = 0
        self.interruptions = 0
        self.sessions_closed = 0
        self.errors_occurred = 0
