"""
PyAudio microphone capture and clocked speaker output.

PortAudio runs its callbacks on its own threads. Everything that reaches
application code is handed to the asyncio loop with ``call_soon_threadsafe``,
so session state is only ever touched from the loop.
"""
import asyncio
import logging
import threading
from typing import Callable, List, Optional

import numpy as np

from ...config import INPUT_SAMPLE_RATE, OUTPUT_SAMPLE_RATE, OUTPUT_CHANNELS, CAPTURE_FRAMES, PLAYBACK_BLOCK_FRAMES
from ...utils import with_suppressed_audio_warnings
from .pcm import DecodedAudio, StreamResampler

logger = logging.getLogger("audio_devices")


class MediaAcquisitionError(RuntimeError):
    """Microphone or speaker could not be opened."""


@with_suppressed_audio_warnings
def _create_pyaudio():
    import pyaudio
    return pyaudio.PyAudio()


class MicrophoneStream:
    """
    Continuous mono capture delivered as float32 frames at ``target_rate``.

    Opens at the target rate when the device supports it, otherwise at the
    device's default rate with polyphase resampling.
    """

    def __init__(self,
                 target_rate: int = INPUT_SAMPLE_RATE,
                 frames_per_buffer: int = CAPTURE_FRAMES,
                 input_device: Optional[int] = None):
        self.target_rate = target_rate
        self.frames_per_buffer = frames_per_buffer
        self.input_device = input_device
        self.capture_rate = target_rate
        self._resampler: Optional[StreamResampler] = None
        self.enabled = True
        self._pa = None
        self._stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_frame: Optional[Callable[[np.ndarray], None]] = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._stream is not None and not self._closed

    async def open(self) -> None:
        """
        Acquire the microphone without starting capture.

        Raises:
            MediaAcquisitionError: If no input device can be opened
        """
        self._loop = asyncio.get_running_loop()
        try:
            await asyncio.to_thread(self._open_stream)
        except MediaAcquisitionError:
            raise
        except Exception as e:
            raise MediaAcquisitionError(f"Microphone unavailable: {e}") from e

    @with_suppressed_audio_warnings
    def _open_stream(self) -> None:
        import pyaudio

        self._pa = _create_pyaudio()
        try:
            if self.input_device is None:
                info = self._pa.get_default_input_device_info()
                self.input_device = int(info["index"])
            else:
                info = self._pa.get_device_info_by_index(self.input_device)
        except (IOError, OSError) as e:
            self._pa.terminate()
            self._pa = None
            raise MediaAcquisitionError(f"No microphone found: {e}") from e

        logger.info(f"Opening microphone {self.input_device}: {info.get('name', '?')}")

        rates = [self.target_rate]
        default_rate = int(info.get("defaultSampleRate", self.target_rate))
        if default_rate != self.target_rate:
            rates.append(default_rate)

        last_error: Optional[Exception] = None
        for rate in rates:
            try:
                frames = max(1, self.frames_per_buffer * rate // self.target_rate)
                self._stream = self._pa.open(
                    format=pyaudio.paFloat32,
                    channels=1,
                    rate=rate,
                    input=True,
                    input_device_index=self.input_device,
                    frames_per_buffer=frames,
                    stream_callback=self._input_callback,
                    start=False,
                )
                self.capture_rate = rate
                self._resampler = StreamResampler(rate, self.target_rate) if rate != self.target_rate else None
                logger.info(f"Microphone open at {rate} Hz ({frames} frames per buffer)")
                return
            except (IOError, OSError, ValueError) as e:
                logger.warning(f"Microphone refused {rate} Hz: {e}")
                last_error = e

        self._pa.terminate()
        self._pa = None
        raise MediaAcquisitionError(f"Microphone could not be opened: {last_error}")

    def start(self, on_frame: Callable[[np.ndarray], None]) -> None:
        """Begin delivering frames to ``on_frame`` on the event loop."""
        if not self.is_open:
            raise MediaAcquisitionError("Microphone is not open")
        self._on_frame = on_frame
        self._stream.start_stream()
        logger.info("Microphone capture started")

    def _input_callback(self, in_data, frame_count, time_info, status):
        import pyaudio

        if self._on_frame is None or self._loop is None or self._closed:
            return (None, pyaudio.paContinue)

        samples = np.frombuffer(in_data, dtype=np.float32)
        if self._resampler is not None:
            samples = self._resampler.process(samples)
            if samples.size == 0:
                return (None, pyaudio.paContinue)
        if not self.enabled:
            # A muted track still streams, as silence
            samples = np.zeros_like(samples)

        try:
            self._loop.call_soon_threadsafe(self._on_frame, samples)
        except RuntimeError:
            # Loop already closed during teardown
            return (None, pyaudio.paComplete)
        return (None, pyaudio.paContinue)

    async def close(self) -> None:
        """Stop capture and release the device. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._on_frame = None
        await asyncio.to_thread(self._release)

    def _release(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream = None
        self._pa = None
        try:
            if stream is not None:
                stream.stop_stream()
                stream.close()
        finally:
            if pa is not None:
                pa.terminate()
        logger.info("Microphone released")


class ScheduledSource:
    """A buffer placed on the output clock at a fixed start frame."""

    def __init__(self, context: 'OutputAudioContext', samples: np.ndarray, start_frame: int,
                 on_ended: Optional[Callable[['ScheduledSource'], None]]):
        self.context = context
        self.samples = samples
        self.start_frame = start_frame
        self.on_ended = on_ended

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def end_frame(self) -> int:
        return self.start_frame + self.frame_count

    def stop(self) -> None:
        self.context._remove_source(self)


class OutputAudioContext:
    """
    Speaker output with its own playback clock.

    ``current_time`` advances with every block PortAudio pulls. Scheduled
    sources are mixed into the block that covers their start frame, so
    back-to-back sources play without gaps.
    """

    def __init__(self,
                 sample_rate: int = OUTPUT_SAMPLE_RATE,
                 channels: int = OUTPUT_CHANNELS,
                 block_frames: int = PLAYBACK_BLOCK_FRAMES,
                 output_device: Optional[int] = None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_frames = block_frames
        self.output_device = output_device
        self.volume = 1.0
        self._pa = None
        self._stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()
        self._sources: List[ScheduledSource] = []
        self._frames_rendered = 0
        self._closed = False

    @property
    def state(self) -> str:
        if self._closed:
            return "closed"
        return "running" if self._stream is not None else "suspended"

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / float(self.sample_rate)

    async def open(self) -> None:
        """
        Open the speaker stream and start the clock.

        Raises:
            MediaAcquisitionError: If no output device can be opened
        """
        self._loop = asyncio.get_running_loop()
        try:
            await asyncio.to_thread(self._open_stream)
        except Exception as e:
            raise MediaAcquisitionError(f"Speaker unavailable: {e}") from e

    @with_suppressed_audio_warnings
    def _open_stream(self) -> None:
        import pyaudio

        self._pa = _create_pyaudio()
        try:
            self._stream = self._pa.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.sample_rate,
                output=True,
                output_device_index=self.output_device,
                frames_per_buffer=self.block_frames,
                stream_callback=self._render,
            )
        except Exception:
            self._pa.terminate()
            self._pa = None
            raise
        logger.info(f"Speaker open at {self.sample_rate} Hz, {self.channels} channel(s)")

    def play(self, audio: DecodedAudio, start_time: float,
             on_ended: Optional[Callable[[ScheduledSource], None]] = None) -> ScheduledSource:
        """Schedule ``audio`` to start at ``start_time`` seconds on this clock."""
        if audio.sample_rate != self.sample_rate:
            logger.warning(f"Chunk rate {audio.sample_rate} Hz differs from context rate {self.sample_rate} Hz")
        start_frame = int(round(start_time * self.sample_rate))
        source = ScheduledSource(self, self._match_channels(audio.samples), start_frame, on_ended)
        with self._lock:
            self._sources.append(source)
        return source

    def _match_channels(self, samples: np.ndarray) -> np.ndarray:
        if samples.shape[1] == self.channels:
            return samples
        if samples.shape[1] == 1:
            return np.repeat(samples, self.channels, axis=1)
        mono = samples.mean(axis=1, keepdims=True)
        return np.repeat(mono, self.channels, axis=1)

    def _remove_source(self, source: ScheduledSource) -> None:
        with self._lock:
            if source in self._sources:
                self._sources.remove(source)

    def _render(self, in_data, frame_count, time_info, status):
        import pyaudio

        out = np.zeros((frame_count, self.channels), dtype=np.float32)
        finished: List[ScheduledSource] = []

        with self._lock:
            block_start = self._frames_rendered
            for source in self._sources:
                offset = block_start - source.start_frame
                out_begin = max(0, -offset)
                src_begin = max(0, offset)
                n = min(frame_count - out_begin, source.frame_count - src_begin)
                if n > 0:
                    out[out_begin:out_begin + n] += source.samples[src_begin:src_begin + n]
                if source.end_frame <= block_start + frame_count:
                    finished.append(source)
            for source in finished:
                self._sources.remove(source)
            self._frames_rendered += frame_count

        if self._loop is not None:
            for source in finished:
                if source.on_ended is not None:
                    try:
                        self._loop.call_soon_threadsafe(source.on_ended, source)
                    except RuntimeError:
                        break

        out *= self.volume
        np.clip(out, -1.0, 1.0, out=out)
        return (out.tobytes(), pyaudio.paContinue)

    async def close(self) -> None:
        """Stop the stream and drop any scheduled audio. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._sources.clear()
        await asyncio.to_thread(self._release)

    def _release(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream = None
        self._pa = None
        try:
            if stream is not None:
                stream.stop_stream()
                stream.close()
        finally:
            if pa is not None:
                pa.terminate()
        logger.info("Speaker released")
