"""
transcriber/stt/base.py
========================
Transcription provider interface — Transcriber

A provider turns one encoded WAV container into text. Providers own their
own retry policy; the pipeline treats any exception as terminal for the
segment it was transcribing.
"""

import abc


class TranscriptionProvider(abc.ABC):
    """Interface for remote speech-to-text endpoints."""

    name: str

    @abc.abstractmethod
    def transcribe(self, container: bytes) -> str:
        """Transcribe one WAV container and return its text."""
        raise NotImplementedError
