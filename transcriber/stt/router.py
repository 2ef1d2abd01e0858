"""
transcriber/stt/router.py
==========================
Provider selection — Transcriber

Maps the TRANSCRIPTION_PROVIDER setting onto a provider instance.
"""

import logging

from transcriber.config import TRANSCRIPTION_PROVIDER
from transcriber.stt.base import TranscriptionProvider
from transcriber.stt.mistral_client import MistralTranscriptionProvider
from transcriber.stt.whisper_client import WhisperTranscriptionProvider

logger = logging.getLogger("transcriber.stt.router")


def create_provider(name: str = TRANSCRIPTION_PROVIDER) -> TranscriptionProvider:
    """
    Build the configured transcription provider.

    Raises:
        ValueError: If ``name`` is not a known provider.
    """
    provider_name = (name or "mistral").strip().lower()
    if provider_name in {"mistral", "voxtral"}:
        provider: TranscriptionProvider = MistralTranscriptionProvider()
    elif provider_name in {"whisper", "openai"}:
        provider = WhisperTranscriptionProvider()
    else:
        raise ValueError(
            f"Unknown TRANSCRIPTION_PROVIDER: {name!r}. Valid options: mistral, whisper"
        )

    logger.info("STT provider selected: %s", provider.name)
    return provider
