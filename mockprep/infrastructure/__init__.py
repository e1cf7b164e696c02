"""Infrastructure components for MockPrep.

Low-level technical pieces: audio devices and codecs, the Gemini REST
client, and the question bank repository.
"""

# Audio infrastructure
from .audio import (
    encode_pcm16, decode_pcm16, PlaybackScheduler,
    MicrophoneStream, OutputAudioContext
)

# LLM infrastructure
from .llm import GeminiRestClient

# Question bank storage
from .data import QuestionBankRepository

__all__ = [
    "encode_pcm16", "decode_pcm16", "PlaybackScheduler",
    "MicrophoneStream", "OutputAudioContext",
    "GeminiRestClient",
    "QuestionBankRepository",
]
