"""
Bidirectional streaming connection to the Gemini Live API.

One websocket per session. Outbound microphone chunks go through a bounded
queue drained by a sender task; inbound server messages are turned into
live events on the session's event bus by a receiver task.
"""
import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

import websockets

from .events import (
    LiveEvent, LiveEventBus, SessionOpenedEvent, AudioChunkReceivedEvent,
    InterruptedEvent, SessionClosedEvent, TransportFailedEvent
)
from .models import LiveSessionConfig
from .prompts import FallbackMessages
from ..config import LIVE_WS_URL, LIVE_SEND_QUEUE_SIZE
from ..infrastructure.audio import AudioChunk

logger = logging.getLogger("transport")


class TransportError(RuntimeError):
    """Base class for live transport failures."""


class TransportConnectionError(TransportError):
    """The connection could not be established."""


def build_setup_message(config: LiveSessionConfig) -> Dict[str, Any]:
    """First message on a new connection: model, voice and system instruction."""
    return {
        "setup": {
            "model": config.model,
            "generationConfig": {
                "responseModalities": list(config.response_modalities),
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": config.voice_name}
                    }
                }
            },
            "systemInstruction": {"parts": [{"text": config.system_instruction}]}
        }
    }


def build_realtime_input(chunk: AudioChunk) -> Dict[str, Any]:
    """Wrap one microphone chunk as a realtime input message."""
    return {"realtimeInput": {"mediaChunks": [chunk.to_wire()]}}


def parse_server_message(raw: Union[str, bytes], session_id: str,
                         timestamp: Optional[float] = None) -> List[LiveEvent]:
    """
    Translate one server message into live events.

    Audio parts come out in message order, followed by an interruption
    event if the message carries one. Unknown message kinds yield nothing.

    Raises:
        ValueError: If the message is not a JSON object or its serverContent is malformed
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    message = json.loads(raw)
    if not isinstance(message, dict):
        raise ValueError(f"Unexpected server message: {raw[:80]!r}")

    ts = time.time() if timestamp is None else timestamp
    events: List[LiveEvent] = []

    if "setupComplete" in message:
        events.append(SessionOpenedEvent(session_id, ts))

    if "error" in message:
        error = message["error"]
        text = error.get("message") if isinstance(error, dict) else str(error)
        events.append(TransportFailedEvent(session_id, ts, text or FallbackMessages.CONNECTION_LOST))

    content = message.get("serverContent") or {}
    if not isinstance(content, dict):
        raise ValueError(f"Malformed serverContent: {content!r:.80}")
    model_turn = content.get("modelTurn") or {}
    if not isinstance(model_turn, dict):
        raise ValueError(f"Malformed modelTurn: {model_turn!r:.80}")
    parts = model_turn.get("parts") or []
    if not isinstance(parts, list):
        raise ValueError(f"Malformed modelTurn parts: {parts!r:.80}")
    for part in parts:
        inline = part.get("inlineData") if isinstance(part, dict) else None
        if isinstance(inline, dict) and inline.get("data"):
            events.append(AudioChunkReceivedEvent(
                session_id, ts, inline["data"], inline.get("mimeType", "")
            ))

    if content.get("interrupted"):
        events.append(InterruptedEvent(session_id, ts))

    if "goAway" in message:
        logger.warning(f"Server will close session {session_id} soon: {message['goAway']}")

    return events


class LiveTransport:
    """Websocket session with the Gemini Live API."""

    def __init__(self,
                 event_bus: LiveEventBus,
                 session_id: str,
                 url: str = LIVE_WS_URL,
                 send_queue_size: int = LIVE_SEND_QUEUE_SIZE,
                 connect: Callable = websockets.connect):
        self.event_bus = event_bus
        self.session_id = session_id
        self.url = url
        self.send_queue_size = send_queue_size
        self._connect = connect
        self._ws = None
        self._send_queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []
        self._closed = False
        self._ended = False
        self.chunks_sent = 0
        self.chunks_dropped = 0

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._closed and not self._ended

    async def open(self, config: LiveSessionConfig) -> None:
        """
        Connect, send the setup message and start the sender and receiver.

        The session is usable once a SessionOpenedEvent is emitted.

        Raises:
            TransportConnectionError: If no API key is set or the connection fails
        """
        if not config.api_key:
            raise TransportConnectionError(FallbackMessages.MISSING_API_KEY)
        if self._closed:
            raise TransportError("Transport already closed")

        logger.info(f"Connecting live session {self.session_id} ({config.model}, voice {config.voice_name})")
        try:
            self._ws = await self._connect(
                f"{self.url}?key={config.api_key}",
                ping_interval=20,
                ping_timeout=20,
                max_size=None
            )
            await self._ws.send(json.dumps(build_setup_message(config)))
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as e:
            await self._discard_socket()
            raise TransportConnectionError(f"Could not connect to live API: {e}") from e

        self._send_queue = asyncio.Queue(maxsize=self.send_queue_size)
        self._tasks = [
            asyncio.create_task(self._receive_loop()),
            asyncio.create_task(self._send_loop()),
        ]

    def send(self, chunk: AudioChunk) -> bool:
        """
        Queue one outbound chunk without blocking.

        Returns:
            False if the chunk was dropped (not open, or the queue is full)
        """
        if not self.is_open or self._send_queue is None:
            self.chunks_dropped += 1
            logger.debug(f"Dropping chunk for session {self.session_id}: transport not open")
            return False
        try:
            self._send_queue.put_nowait(chunk)
        except asyncio.QueueFull:
            self.chunks_dropped += 1
            logger.debug(f"Dropping chunk for session {self.session_id}: send queue full")
            return False
        return True

    async def close(self) -> None:
        """Stop both tasks and close the socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []

        await self._discard_socket()
        logger.info(f"Live session {self.session_id} closed "
                    f"({self.chunks_sent} chunks sent, {self.chunks_dropped} dropped)")

    async def _discard_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except Exception as e:
            logger.debug(f"Error closing websocket for {self.session_id}: {e}")

    async def _send_loop(self) -> None:
        while True:
            chunk = await self._send_queue.get()
            try:
                await self._ws.send(json.dumps(build_realtime_input(chunk)))
                self.chunks_sent += 1
            except websockets.ConnectionClosed:
                # The receiver reports the close
                logger.debug(f"Send on closed session {self.session_id}")
                return
            except Exception as e:
                if self._ended or self._closed:
                    logger.debug(f"Send failed after session end: {e}")
                    return
                logger.warning(f"Send failed for session {self.session_id}: {e}")

    async def _receive_loop(self) -> None:
        code, reason = 1000, ""
        try:
            async for raw in self._ws:
                try:
                    events = parse_server_message(raw, self.session_id)
                except ValueError as e:
                    logger.warning(f"Ignoring unreadable server message: {e}")
                    continue
                for event in events:
                    self.event_bus.emit(event)
        except websockets.ConnectionClosedError as e:
            close_frame = getattr(e, "rcvd", None)
            code = getattr(close_frame, "code", 1006)
            reason = getattr(close_frame, "reason", "") or ""
            self._fail(reason or FallbackMessages.CONNECTION_LOST)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Receive loop failed for session {self.session_id}: {e}")
            self._fail(str(e) or FallbackMessages.CONNECTION_LOST)
            code = 1006

        if not self._closed and not self._ended:
            self._ended = True
            self.event_bus.emit(SessionClosedEvent(self.session_id, time.time(), code, reason))

    def _fail(self, message: str) -> None:
        if self._closed:
            return
        logger.error(f"Live session {self.session_id} failed: {message}")
        self.event_bus.emit(TransportFailedEvent(self.session_id, time.time(), message))
