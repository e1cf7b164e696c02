"""
Live interview session controller.

Owns the microphone, the output audio context, the playback scheduler and
the live transport for one voice interview, and drives the status machine:

    connecting -> connected -> ended
         |            |
         +-> error <--+      (retry goes back to connecting)
"""
import asyncio
import logging
import time
import uuid
from typing import Callable, List, Optional, Sequence

import numpy as np

from .events import (
    LiveEvent, LiveEventBus, LiveEventType, EventLogger, SessionMetrics,
    StatusChangedEvent
)
from .models import SessionStatus, LiveSessionConfig, SessionSummary
from .prompts import InterviewPrompts, FallbackMessages
from .transport import LiveTransport, TransportConnectionError
from ..bank.models import Question
from ..config import Config, OUTPUT_CHANNELS, OUTPUT_SAMPLE_RATE
from ..infrastructure.audio import (
    PlaybackScheduler, MicrophoneStream, OutputAudioContext,
    encode_pcm16, decode_pcm16, DecodeError
)

logger = logging.getLogger("session")

_active_session: Optional['InterviewSession'] = None


def get_active_session() -> Optional['InterviewSession']:
    """The session currently holding the audio devices, if any."""
    return _active_session


class InterviewSession:
    """
    One live voice interview over a list of questions.

    Args:
        questions: Interview context; only the first ten are sent
        config: Application configuration (API key, voice, model)
        event_bus: Bus shared with the transport; a new one by default
        microphone_factory: Builds the capture device
        output_context_factory: Builds the playback device
        transport_factory: Called as ``factory(event_bus, session_id)``
        on_status_change: Optional callback receiving each new status
    """

    def __init__(self,
                 questions: Sequence[Question],
                 config: Config,
                 event_bus: Optional[LiveEventBus] = None,
                 microphone_factory: Callable = MicrophoneStream,
                 output_context_factory: Callable = OutputAudioContext,
                 transport_factory: Callable = LiveTransport,
                 on_status_change: Optional[Callable[[SessionStatus], None]] = None):
        self.questions: List[Question] = list(questions)
        self.config = config
        self.session_id = uuid.uuid4().hex[:8]
        self.event_bus = event_bus or LiveEventBus()
        self._microphone_factory = microphone_factory
        self._output_context_factory = output_context_factory
        self._transport_factory = transport_factory
        self._on_status_change = on_status_change

        self.status = SessionStatus.CONNECTING
        self.error_message: Optional[str] = None
        self.is_muted = False
        self.ai_speaking = False
        self.chunks_sent = 0

        self._attempt = 0
        self._microphone = None
        self._output = None
        self._scheduler: Optional[PlaybackScheduler] = None
        self._transport = None
        self._release_task: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None
        self._finished = asyncio.Event()

        self.metrics = SessionMetrics()
        self.event_logger = EventLogger()
        self.event_bus.subscribe(LiveEventType.OPENED, self._on_opened)
        self.event_bus.subscribe(LiveEventType.AUDIO_CHUNK, self._on_audio_chunk)
        self.event_bus.subscribe(LiveEventType.INTERRUPTED, self._on_interrupted)
        self.event_bus.subscribe(LiveEventType.CLOSED, self._on_closed)
        self.event_bus.subscribe(LiveEventType.ERROR, self._on_error)
        self.event_bus.subscribe_all(self.metrics.handle_event)
        self.event_bus.subscribe_all(self.event_logger.handle_event)

    @property
    def attempt_id(self) -> str:
        """Id of the current connection attempt; events from older attempts are ignored."""
        return f"{self.session_id}-{self._attempt}"

    @property
    def is_finished(self) -> bool:
        return self.status in (SessionStatus.ERROR, SessionStatus.ENDED)

    def live_config(self) -> LiveSessionConfig:
        return LiveSessionConfig(
            api_key=self.config.gemini_api_key,
            system_instruction=InterviewPrompts.live_system_instruction(self.questions),
            model=self.config.live_model_name,
            voice_name=self.config.live_voice_name,
        )

    async def start(self) -> None:
        """
        Acquire the microphone and speaker, then open the live connection.

        Any failure on the way moves the session to ERROR with a message and
        releases whatever was acquired. Never raises for device or network
        problems.
        """
        global _active_session
        previous = _active_session
        if previous is not None and previous is not self:
            logger.info(f"Ending session {previous.session_id} before starting {self.session_id}")
            await previous.hangup()
        _active_session = self

        self._attempt += 1
        self.error_message = None
        self.is_muted = False
        self._finished.clear()
        self._started_at = time.time()
        self._set_status(SessionStatus.CONNECTING)

        try:
            self._microphone = self._microphone_factory()
            await self._microphone.open()

            self._output = self._output_context_factory()
            await self._output.open()
            self._scheduler = PlaybackScheduler(self._output, on_speaking_changed=self._set_ai_speaking)

            if not self.config.gemini_api_key:
                raise TransportConnectionError(FallbackMessages.MISSING_API_KEY)

            self._transport = self._transport_factory(self.event_bus, self.attempt_id)
            await self._transport.open(self.live_config())
        except Exception as e:
            logger.error(f"Failed to start session {self.session_id}: {e}")
            await self._release_resources()
            self._fail(str(e) or FallbackMessages.CONNECTION_FAILED)

    async def hangup(self) -> None:
        """End the session and release every resource. Safe to call repeatedly."""
        global _active_session
        await self._release_resources()
        self._set_status(SessionStatus.ENDED)
        if _active_session is self:
            _active_session = None

    async def retry(self) -> None:
        """Tear down everything left from the last attempt and start again."""
        logger.info(f"Retrying session {self.session_id}")
        await self._release_resources()
        await self.start()

    def toggle_mute(self) -> bool:
        """
        Flip the microphone mute state.

        While muted the capture keeps running and sends silence.

        Returns:
            The new mute state
        """
        if self._microphone is None or self.is_finished:
            return self.is_muted
        self.is_muted = not self.is_muted
        self._microphone.enabled = not self.is_muted
        logger.info(f"Microphone {'muted' if self.is_muted else 'unmuted'}")
        return self.is_muted

    async def wait_finished(self) -> SessionStatus:
        """Block until the session reaches ERROR or ENDED."""
        await self._finished.wait()
        return self.status

    def summary(self) -> SessionSummary:
        duration = time.time() - self._started_at if self._started_at else 0.0
        return SessionSummary(
            status=self.status,
            error_message=self.error_message,
            chunks_sent=self.chunks_sent,
            chunks_received=self.metrics.audio_chunks_received,
            interruptions=self.metrics.interruptions,
            duration_seconds=duration,
        )

    # Event handlers

    def _is_current(self, event: LiveEvent) -> bool:
        if event.session_id != self.attempt_id:
            logger.debug(f"Ignoring {event.event_type} from stale attempt {event.session_id}")
            return False
        return True

    def _on_opened(self, event: LiveEvent) -> None:
        if not self._is_current(event) or self.status != SessionStatus.CONNECTING:
            return
        self._set_status(SessionStatus.CONNECTED)
        if self._microphone is not None:
            self._microphone.start(self._on_microphone_frame)

    def _on_microphone_frame(self, samples: np.ndarray) -> None:
        if self.status != SessionStatus.CONNECTED or self._transport is None:
            return
        if self._transport.send(encode_pcm16(samples)):
            self.chunks_sent += 1

    def _on_audio_chunk(self, event: LiveEvent) -> None:
        if not self._is_current(event) or self.status != SessionStatus.CONNECTED:
            return
        if self._scheduler is None:
            return
        try:
            audio = decode_pcm16(event.audio_data, OUTPUT_CHANNELS, OUTPUT_SAMPLE_RATE)
        except DecodeError as e:
            logger.warning(f"Skipping undecodable audio chunk: {e}")
            return
        self._scheduler.schedule_chunk(audio)

    def _on_interrupted(self, event: LiveEvent) -> None:
        if not self._is_current(event) or self._scheduler is None:
            return
        logger.info("Model interrupted, stopping playback")
        self._scheduler.interrupt()

    def _on_error(self, event: LiveEvent) -> None:
        if not self._is_current(event):
            return
        self._fail(event.data.get("message") or FallbackMessages.CONNECTION_LOST)

    def _on_closed(self, event: LiveEvent) -> None:
        if not self._is_current(event):
            return
        if self.status != SessionStatus.ERROR:
            self._set_status(SessionStatus.ENDED)
        self._release_task = asyncio.ensure_future(self._release_resources())

    # Internals

    def _set_ai_speaking(self, speaking: bool) -> None:
        self.ai_speaking = speaking

    def _fail(self, message: str) -> None:
        self.error_message = message
        self._set_status(SessionStatus.ERROR)

    def _set_status(self, status: SessionStatus) -> None:
        old = self.status
        self.status = status
        if status in (SessionStatus.ERROR, SessionStatus.ENDED):
            self._finished.set()
        if old == status:
            return
        logger.info(f"Session {self.session_id}: {old.value} -> {status.value}")
        self.event_bus.emit(StatusChangedEvent(
            self.attempt_id, time.time(), old.value, status.value, self.error_message or ""
        ))
        if self._on_status_change:
            try:
                self._on_status_change(status)
            except Exception as e:
                logger.error(f"Status callback failed: {e}")

    async def _release_resources(self) -> None:
        """Stop playback, then close microphone, speaker and transport, each best-effort."""
        pending = self._release_task
        self._release_task = None
        if pending is not None and pending is not asyncio.current_task() and not pending.done():
            await asyncio.gather(pending, return_exceptions=True)

        microphone, output, transport = self._microphone, self._output, self._transport
        self._microphone = self._output = self._transport = None

        if self._scheduler is not None:
            self._scheduler.interrupt()
            self._scheduler = None
        self.ai_speaking = False

        for name, resource in (("microphone", microphone),
                               ("output audio context", output),
                               ("transport", transport)):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.warning(f"Failed to release {name}: {e}")
