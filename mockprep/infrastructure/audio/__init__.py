"""
Audio for the live interview.

- pcm: wire-format encode/decode and resampling
- playback: gapless scheduling of model audio on an output clock
- devices: PyAudio microphone capture and speaker output
"""

from .pcm import (
    AudioChunk, DecodedAudio, DecodeError,
    encode_pcm16, decode_pcm16, float_to_pcm16, StreamResampler, INPUT_MIME_TYPE
)
from .playback import PlaybackScheduler
from .devices import MicrophoneStream, OutputAudioContext, ScheduledSource, MediaAcquisitionError

__all__ = [
    "AudioChunk", "DecodedAudio", "DecodeError",
    "encode_pcm16", "decode_pcm16", "float_to_pcm16", "StreamResampler", "INPUT_MIME_TYPE",
    "PlaybackScheduler",
    "MicrophoneStream", "OutputAudioContext", "ScheduledSource", "MediaAcquisitionError",
]
