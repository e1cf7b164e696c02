"""
Testing infrastructure with fake devices and mock services.

The fakes mirror the interfaces of MicrophoneStream, OutputAudioContext,
LiveTransport and GeminiRestClient closely enough to drive an
InterviewSession or a QuizSession without hardware or network.
"""
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from .events import (
    LiveEventBus, SessionOpenedEvent, AudioChunkReceivedEvent, InterruptedEvent,
    SessionClosedEvent, TransportFailedEvent
)
from .models import LiveSessionConfig
from .session import InterviewSession
from ..bank.models import Question
from ..config import Config
from ..infrastructure.audio import AudioChunk, DecodedAudio
from ..infrastructure.llm import LLMError


class FakeMicrophone:
    """Stands in for MicrophoneStream; frames are pushed by the test."""

    def __init__(self, fail_on_open: Optional[Exception] = None):
        self.fail_on_open = fail_on_open
        self.enabled = True
        self.opened = False
        self.close_count = 0
        self._on_frame: Optional[Callable[[np.ndarray], None]] = None

    @property
    def started(self) -> bool:
        return self._on_frame is not None

    async def open(self) -> None:
        if self.fail_on_open is not None:
            raise self.fail_on_open
        self.opened = True

    def start(self, on_frame: Callable[[np.ndarray], None]) -> None:
        self._on_frame = on_frame

    def push(self, samples) -> None:
        """Deliver one captured frame, silenced when muted."""
        if self._on_frame is None:
            return
        frame = np.asarray(samples, dtype=np.float32)
        if not self.enabled:
            frame = np.zeros_like(frame)
        self._on_frame(frame)

    async def close(self) -> None:
        self.close_count += 1
        self._on_frame = None


class FakeSource:
    """A scheduled buffer on a FakeOutputContext."""

    def __init__(self, context: 'FakeOutputContext', audio: DecodedAudio, start_time: float,
                 on_ended: Optional[Callable]):
        self.context = context
        self.audio = audio
        self.start_time = start_time
        self.on_ended = on_ended
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeOutputContext:
    """Stands in for OutputAudioContext with a clock the test sets by hand."""

    def __init__(self, fail_on_open: Optional[Exception] = None, fail_on_close: Optional[Exception] = None):
        self.fail_on_open = fail_on_open
        self.fail_on_close = fail_on_close
        self.current_time = 0.0
        self.sources: List[FakeSource] = []
        self.opened = False
        self.close_count = 0

    async def open(self) -> None:
        if self.fail_on_open is not None:
            raise self.fail_on_open
        self.opened = True

    def play(self, audio: DecodedAudio, start_time: float, on_ended=None) -> FakeSource:
        source = FakeSource(self, audio, start_time, on_ended)
        self.sources.append(source)
        return source

    def finish(self, source: FakeSource) -> None:
        """Simulate a source playing to its natural end."""
        if source.on_ended is not None:
            source.on_ended(source)

    async def close(self) -> None:
        self.close_count += 1
        if self.fail_on_close is not None:
            raise self.fail_on_close


class FakeTransport:
    """Stands in for LiveTransport; the test drives inbound events."""

    def __init__(self, event_bus: LiveEventBus, session_id: str,
                 fail_on_open: Optional[Exception] = None):
        self.event_bus = event_bus
        self.session_id = session_id
        self.fail_on_open = fail_on_open
        self.config: Optional[LiveSessionConfig] = None
        self.sent: List[AudioChunk] = []
        self.close_count = 0

    async def open(self, config: LiveSessionConfig) -> None:
        self.config = config
        if self.fail_on_open is not None:
            raise self.fail_on_open

    def send(self, chunk: AudioChunk) -> bool:
        if self.close_count:
            return False
        self.sent.append(chunk)
        return True

    async def close(self) -> None:
        self.close_count += 1

    def emit_opened(self) -> None:
        self.event_bus.emit(SessionOpenedEvent(self.session_id, time.time()))

    def emit_audio(self, data: str) -> None:
        self.event_bus.emit(AudioChunkReceivedEvent(self.session_id, time.time(), data, "audio/pcm;rate=24000"))

    def emit_interrupted(self) -> None:
        self.event_bus.emit(InterruptedEvent(self.session_id, time.time()))

    def emit_closed(self, code: int = 1000, reason: str = "") -> None:
        self.event_bus.emit(SessionClosedEvent(self.session_id, time.time(), code, reason))

    def emit_error(self, message: str) -> None:
        self.event_bus.emit(TransportFailedEvent(self.session_id, time.time(), message))


class RecordingFactory:
    """Factory callable that remembers every object it builds."""

    def __init__(self, cls: type, **kwargs):
        self.cls = cls
        self.kwargs = kwargs
        self.instances: List[Any] = []

    def __call__(self, *args):
        instance = self.cls(*args, **self.kwargs)
        self.instances.append(instance)
        return instance

    @property
    def last(self):
        return self.instances[-1] if self.instances else None


class MockLLMClient:
    """
    Mock Gemini client returning canned responses in order.

    Each response is a dict (for generate_json), a string (for
    generate_content) or an exception instance to raise.
    """

    def __init__(self, responses: Optional[Sequence[Union[Dict[str, Any], str, Exception]]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def _next(self) -> Union[Dict[str, Any], str]:
        if not self.responses:
            raise LLMError("No mock responses left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def generate_json(self, prompt: str, system_instruction: Optional[str] = None,
                      response_schema: Optional[Dict[str, Any]] = None,
                      thinking_budget: Optional[int] = None) -> Dict[str, Any]:
        self.calls.append({"method": "generate_json", "prompt": prompt,
                           "system_instruction": system_instruction, "thinking_budget": thinking_budget})
        response = self._next()
        if not isinstance(response, dict):
            raise LLMError(f"Model returned non-JSON content: {response!r}")
        return response

    def generate_content(self, prompt: str, system_instruction: Optional[str] = None,
                         **kwargs) -> str:
        self.calls.append({"method": "generate_content", "prompt": prompt,
                           "system_instruction": system_instruction})
        return str(self._next())


def sample_questions(count: int = 3) -> List[Question]:
    """Plain questions for tests that don't care about content."""
    return [Question(raw_text=f"{i + 1}. Sample question {i + 1}?") for i in range(count)]


def create_test_session(questions: Optional[Sequence[Question]] = None,
                        api_key: Optional[str] = "test-key",
                        microphone_error: Optional[Exception] = None,
                        output_error: Optional[Exception] = None,
                        transport_error: Optional[Exception] = None):
    """
    Build an InterviewSession wired to fakes.

    Returns:
        (session, microphones, outputs, transports) where the last three are
        RecordingFactory instances
    """
    microphones = RecordingFactory(FakeMicrophone, fail_on_open=microphone_error)
    outputs = RecordingFactory(FakeOutputContext, fail_on_open=output_error)
    transports = RecordingFactory(FakeTransport, fail_on_open=transport_error)
    session = InterviewSession(
        questions if questions is not None else sample_questions(),
        Config(gemini_api_key=api_key),
        microphone_factory=microphones,
        output_context_factory=outputs,
        transport_factory=transports,
    )
    return session, microphones, outputs, transports
