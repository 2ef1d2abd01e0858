# transcriber/stt/__init__.py
# ============================
# Speech-to-Text providers — Transcriber
#
# Each provider transcribes ONE encoded WAV container. Segmenting long
# recordings and merging per-segment text is the pipeline's job.
#
# Public API:
#   TranscriptionProvider.transcribe(container: bytes) -> str
#   create_provider(name) -> TranscriptionProvider

from transcriber.stt.base import TranscriptionProvider  # noqa: F401
from transcriber.stt.router import create_provider  # noqa: F401

__all__ = [
    "TranscriptionProvider",
    "create_provider",
]
