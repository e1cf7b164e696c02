"""
MockPrep Configuration System
=============================

This file contains ALL configuration for the MockPrep practice client.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize MockPrep
# =============================================================================

# Gemini credentials (environment variables take precedence)
GEMINI_API_KEY = None  # Set GEMINI_API_KEY or API_KEY in the environment
GOOGLE_CLOUD_PROJECT = None  # Only used when no API key is set (Vertex AI)
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Question bank repository
REPO_OWNER = "ashish-jeavio"
REPO_NAME = "second-brain"
REPO_PATH = "Interview Questions"
REPO_BRANCH = "main"

# Practice settings
QUESTION_COUNT = 5
LIVE_VOICE_NAME = "Fenrir"

# Logging
LOG_FILE = "./_mockprep/mockprep.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Repository sync
GITHUB_API_BASE = "https://api.github.com"
MAX_REPO_FILES = 20
MARKDOWN_SUFFIX = ".md"
REPO_TIMEOUT = 20

# LLM
MODEL_NAME = "gemini-2.5-flash"
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
VERTEX_LOCATION = "us-central1"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 2048

# Live voice interview
LIVE_MODEL_NAME = "models/gemini-2.0-flash-exp"
LIVE_WS_URL = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)
LIVE_MAX_CONTEXT_QUESTIONS = 10
LIVE_SEND_QUEUE_SIZE = 64

# Audio
INPUT_SAMPLE_RATE = 16000
OUTPUT_SAMPLE_RATE = 24000
OUTPUT_CHANNELS = 1
CAPTURE_FRAMES = 4096
PLAYBACK_BLOCK_FRAMES = 1024

# Sandbox
SANDBOX_TIMEOUT = 5.0
NODE_BINARY = "node"


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    gemini_api_key: Optional[str] = None
    google_cloud_project: Optional[str] = None
    google_application_credentials: Optional[str] = None
    repo_owner: str = REPO_OWNER
    repo_name: str = REPO_NAME
    repo_path: str = REPO_PATH
    repo_branch: str = REPO_BRANCH
    question_count: int = QUESTION_COUNT
    model_name: str = MODEL_NAME
    live_model_name: str = LIVE_MODEL_NAME
    live_voice_name: str = LIVE_VOICE_NAME
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL

    @property
    def has_llm_credentials(self) -> bool:
        """True when either an API key or a Vertex project is configured."""
        return bool(self.gemini_api_key or self.google_cloud_project)


def get_config() -> Config:
    """Load configuration, letting environment variables override the defaults above."""
    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or GEMINI_API_KEY
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS

    return Config(
        gemini_api_key=api_key,
        google_cloud_project=project,
        google_application_credentials=credentials,
        repo_owner=os.getenv("MOCKPREP_REPO_OWNER") or REPO_OWNER,
        repo_name=os.getenv("MOCKPREP_REPO_NAME") or REPO_NAME,
        repo_path=os.getenv("MOCKPREP_REPO_PATH") or REPO_PATH,
        repo_branch=os.getenv("MOCKPREP_REPO_BRANCH") or REPO_BRANCH,
        log_file=os.getenv("MOCKPREP_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("MOCKPREP_LOG_LEVEL") or LOG_LEVEL,
    )
