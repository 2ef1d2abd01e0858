"""
transcriber/config.py
======================
Runtime Configuration — Transcriber

Responsibility:
    - Load ``.env`` once before any module reads the environment
    - Expose the fixed audio policy constants
    - Expose transcription-provider settings

Every value can be overridden through an environment variable of the same
name. Values are read at import time, so tests that need different values
pass them explicitly to the components instead of patching the environment.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


# ---------------------------------------------------------------------------
# Audio policy
# ---------------------------------------------------------------------------

TARGET_SAMPLE_RATE: int = _env_int("TARGET_SAMPLE_RATE", 16000)   # Hz, mono
SEGMENT_THRESHOLD_SECONDS: float = _env_float("SEGMENT_THRESHOLD_SECONDS", 900.0)
SEGMENT_DURATION_SECONDS: float = _env_float("SEGMENT_DURATION_SECONDS", 900.0)
SEGMENT_OVERLAP_SECONDS: float = _env_float("SEGMENT_OVERLAP_SECONDS", 3.0)

# 1 keeps segment transcription strictly sequential.
TRANSCRIBE_MAX_WORKERS: int = max(1, _env_int("TRANSCRIBE_MAX_WORKERS", 1))


# ---------------------------------------------------------------------------
# Transcription providers
# ---------------------------------------------------------------------------

TRANSCRIPTION_PROVIDER: str = os.environ.get(
    "TRANSCRIPTION_PROVIDER", "mistral"
).strip().lower()

# Optional ISO 639-1 hint; empty means "let the provider decide".
TRANSCRIPTION_LANGUAGE: str | None = (
    os.environ.get("TRANSCRIPTION_LANGUAGE", "").strip() or None
)

MISTRAL_API_BASE: str = os.environ.get("MISTRAL_API_BASE", "https://api.mistral.ai/v1")
MISTRAL_MODEL: str = os.environ.get("MISTRAL_MODEL", "voxtral-mini-latest")
WHISPER_MODEL: str = os.environ.get("WHISPER_MODEL", "whisper-1")

REQUEST_TIMEOUT_SECONDS: float = _env_float("REQUEST_TIMEOUT_SECONDS", 120.0)
