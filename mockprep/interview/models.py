"""
Data models for the live voice interview.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from ..config import LIVE_MODEL_NAME, LIVE_VOICE_NAME


class SessionStatus(str, Enum):
    """Lifecycle of one live interview session."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    ENDED = "ended"


@dataclass
class LiveSessionConfig:
    """Everything the transport needs to open a live session."""
    api_key: Optional[str]
    system_instruction: str
    model: str = LIVE_MODEL_NAME
    voice_name: str = LIVE_VOICE_NAME
    response_modalities: List[str] = field(default_factory=lambda: ["AUDIO"])


@dataclass
class SessionSummary:
    """What happened during a live session, for display after hangup."""
    status: SessionStatus
    error_message: Optional[str] = None
    chunks_sent: int = 0
    chunks_received: int = 0
    interruptions: int = 0
    duration_seconds: float = 0.0
