"""
PCM16 conversions for the live voice wire format.

Outbound audio is mono 16-bit little-endian PCM at 16 kHz, base64 encoded.
Inbound audio is 16-bit little-endian PCM at 24 kHz, base64 encoded.
"""
import base64
import binascii
from dataclasses import dataclass
from math import gcd

import numpy as np
from scipy.signal import firwin, upfirdn

from ...config import INPUT_SAMPLE_RATE, OUTPUT_SAMPLE_RATE

INPUT_MIME_TYPE = f"audio/pcm;rate={INPUT_SAMPLE_RATE}"

PCM16_SCALE = 32768.0


class DecodeError(ValueError):
    """Inbound audio payload is not valid base64 PCM16 for the channel layout."""


@dataclass(frozen=True)
class AudioChunk:
    """One outbound chunk as it goes on the wire."""
    data: str
    mime_type: str = INPUT_MIME_TYPE

    def to_wire(self) -> dict:
        return {"mimeType": self.mime_type, "data": self.data}


@dataclass(frozen=True)
class DecodedAudio:
    """Playable float samples shaped (frames, channels)."""
    samples: np.ndarray
    sample_rate: int = OUTPUT_SAMPLE_RATE

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def num_channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frame_count / float(self.sample_rate)

    def channel(self, index: int) -> np.ndarray:
        return self.samples[:, index]


def float_to_pcm16(samples) -> np.ndarray:
    """
    Scale float samples by 32768 and store them as int16.

    Values are truncated toward zero and then wrapped to 16 bits, so
    out-of-range input overflows instead of clipping (1.0 becomes -32768).
    Non-finite samples become 0.
    """
    x = np.asarray(samples, dtype=np.float64).reshape(-1)
    x = np.where(np.isfinite(x), x, 0.0)
    x = np.fmod(np.trunc(x * PCM16_SCALE), 65536.0)
    return x.astype(np.int64).astype(np.int16)


def encode_pcm16(samples) -> AudioChunk:
    """
    Encode captured float samples into an outbound wire chunk.

    Args:
        samples: Mono float samples, nominally in [-1.0, 1.0], at 16 kHz

    Returns:
        AudioChunk with base64 little-endian PCM16 data
    """
    pcm = float_to_pcm16(samples).astype("<i2", copy=False)
    return AudioChunk(data=base64.b64encode(pcm.tobytes()).decode("ascii"))


def decode_pcm16(data: str, num_channels: int = 1, sample_rate: int = OUTPUT_SAMPLE_RATE) -> DecodedAudio:
    """
    Decode an inbound base64 PCM16 payload into float samples.

    Args:
        data: Base64 text of interleaved int16 little-endian samples
        num_channels: Channel count of the interleaved stream
        sample_rate: Rate the samples were produced at

    Returns:
        DecodedAudio with samples in [-1.0, 1.0)

    Raises:
        DecodeError: On invalid base64 or a length that does not fit the layout
    """
    if num_channels < 1:
        raise DecodeError(f"Invalid channel count: {num_channels}")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise DecodeError(f"Invalid base64 audio payload: {e}") from e

    if len(raw) % (2 * num_channels) != 0:
        raise DecodeError(
            f"Audio payload of {len(raw)} bytes is not a whole number of "
            f"{num_channels}-channel PCM16 frames"
        )

    pcm = np.frombuffer(raw, dtype="<i2")
    samples = (pcm.astype(np.float32) / np.float32(PCM16_SCALE)).reshape(-1, num_channels)
    return DecodedAudio(samples=samples, sample_rate=sample_rate)


class StreamResampler:
    """
    Polyphase resampler that carries its filter history across blocks.

    Feeding a signal block by block yields exactly the samples one call
    over the whole signal would, so block boundaries leave no seams. The
    filter is the anti-aliasing FIR ``resample_poly`` designs by default;
    output lags input by half its length.
    """

    def __init__(self, from_rate: int, to_rate: int):
        g = gcd(int(from_rate), int(to_rate))
        self.up = int(to_rate) // g
        self.down = int(from_rate) // g
        self.taps = np.ones(1)
        if not self.passthrough:
            max_rate = max(self.up, self.down)
            half_len = 10 * max_rate
            self.taps = firwin(2 * half_len + 1, 1.0 / max_rate, window=("kaiser", 5.0)) * self.up
        self.reset()

    @property
    def passthrough(self) -> bool:
        return self.up == self.down

    def reset(self) -> None:
        self._buffer = np.zeros(0, dtype=np.float64)
        # Absolute input index of _buffer[0], always a multiple of ``down``
        self._buffer_start = 0
        self._consumed = 0
        self._next_output = 0

    def process(self, samples) -> np.ndarray:
        """Resample the next block of a continuous mono stream."""
        block = np.asarray(samples, dtype=np.float64).reshape(-1)
        if self.passthrough:
            return block.astype(np.float32)

        self._buffer = np.concatenate([self._buffer, block])
        self._consumed += len(block)
        # Outputs whose newest input sample has arrived
        end = -(-self._consumed * self.up // self.down)
        if end <= self._next_output:
            return np.zeros(0, dtype=np.float32)

        offset = self._buffer_start * self.up // self.down
        out = upfirdn(self.taps, self._buffer, self.up, self.down)
        result = out[self._next_output - offset:end - offset].astype(np.float32)
        self._next_output = end

        # Keep only the inputs the next output still reaches back to
        oldest = -(-(self._next_output * self.down - len(self.taps) + 1) // self.up)
        start = max(self._buffer_start, (max(oldest, 0) // self.down) * self.down)
        self._buffer = self._buffer[start - self._buffer_start:]
        self._buffer_start = start
        return result
