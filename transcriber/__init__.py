# transcriber/__init__.py
# ========================
# Transcriber — audio preprocessing, chunking and transcription engine.
#
# Public API:
#   TranscriptionPipeline(provider).process(RawAudioSource) -> TranscriptResult

from transcriber.audio.types import RawAudioSource  # noqa: F401
from transcriber.pipeline import TranscriptionPipeline, TranscriptResult  # noqa: F401

__all__ = [
    "RawAudioSource",
    "TranscriptionPipeline",
    "TranscriptResult",
]
