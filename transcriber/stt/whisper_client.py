"""
transcriber/stt/whisper_client.py
==================================
OpenAI Whisper STT Client — Transcriber

Responsibility:
    - Transcribe one WAV container using the OpenAI Whisper API
    - Retry transient failures (see transcriber.stt.retry)

This module does NOT:
    - Translate text
    - Split, resample or re-encode audio
"""

import io
import logging
import os

from openai import OpenAI

from transcriber.config import REQUEST_TIMEOUT_SECONDS, TRANSCRIPTION_LANGUAGE, WHISPER_MODEL
from transcriber.stt.base import TranscriptionProvider
from transcriber.stt.retry import call_with_retry

logger = logging.getLogger("transcriber.stt.whisper_client")


class WhisperTranscriptionProvider(TranscriptionProvider):
    name = "whisper"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = WHISPER_MODEL,
        language: str | None = TRANSCRIPTION_LANGUAGE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language
        self._timeout = timeout

    def transcribe(self, container: bytes) -> str:
        """
        Transcribe a single WAV container.

        Raises:
            RuntimeError: If OPENAI_API_KEY is not configured.
        """
        api_key = self._api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set.")

        # SDK-level retries are disabled so back-off is governed in one place.
        client = OpenAI(api_key=api_key, timeout=self._timeout, max_retries=0)
        return call_with_retry(self._create_transcription, client, container)

    def _create_transcription(self, client: OpenAI, container: bytes) -> str:
        audio_file = io.BytesIO(container)
        audio_file.name = "audio.wav"

        kwargs = {"model": self._model, "file": audio_file}
        if self._language:
            kwargs["language"] = self._language

        response = client.audio.transcriptions.create(**kwargs)
        text = getattr(response, "text", None)
        if text is None and isinstance(response, dict):
            text = response.get("text")
        text = text or ""

        logger.info("Whisper transcription received: %d chars.", len(text))
        return text
