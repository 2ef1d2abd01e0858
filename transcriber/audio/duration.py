"""
transcriber/audio/duration.py
==============================
Duration Probe — Transcriber

Responsibility:
    - Read the playable duration of a recording from container metadata
    - Fall back to a full decode when the metadata is missing or bogus

The fallback matters for live recordings: streamed WebM/Ogg blobs written
chunk by chunk usually carry no duration header at all, and ffprobe then
reports nothing (or ``N/A``).
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from pydub.utils import mediainfo_json

from transcriber.audio.decoder import Decoder
from transcriber.audio.types import DecodedAudio, RawAudioSource
from transcriber.errors import AudioPipelineError, DurationUnavailableError

logger = logging.getLogger("transcriber.audio.duration")

MetadataReader = Callable[[RawAudioSource], Optional[float]]


@dataclass(frozen=True)
class DurationProbeResult:
    """Probed duration; ``decoded`` is set when the decode fallback ran."""

    duration_seconds: float
    from_metadata: bool
    decoded: Optional[DecodedAudio] = None


def read_container_duration(source: RawAudioSource) -> float | None:
    """
    Ask ffprobe for ``format.duration``.

    Returns None when ffprobe is unavailable, fails, or reports no duration.
    """
    try:
        info = mediainfo_json(io.BytesIO(source.data))
    except Exception as exc:
        logger.debug("Container metadata unavailable for %s: %s", source.filename, exc)
        return None

    raw = (info.get("format") or {}).get("duration")
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _is_usable(duration: float | None) -> bool:
    return duration is not None and math.isfinite(duration) and duration > 0


class DurationProbe:
    """Determines playable duration, decoding only when metadata is unusable."""

    def __init__(
        self,
        decoder: Decoder,
        *,
        metadata_reader: MetadataReader = read_container_duration,
    ) -> None:
        self._decoder = decoder
        self._metadata_reader = metadata_reader

    def probe(self, source: RawAudioSource) -> DurationProbeResult:
        duration = self._metadata_reader(source)
        if _is_usable(duration):
            logger.info("Duration from metadata: %.2fs (%s)", duration, source.filename)
            return DurationProbeResult(duration_seconds=float(duration), from_metadata=True)

        logger.info(
            "Metadata duration unusable (%r) for %s, decoding to measure.",
            duration, source.filename,
        )
        try:
            decoded = self._decoder.decode(source)
        except AudioPipelineError as exc:
            raise DurationUnavailableError(f"Unable to read audio duration: {exc}") from exc

        measured = decoded.duration_seconds
        if not _is_usable(measured):
            raise DurationUnavailableError("Unable to read audio duration.")

        logger.info("Duration from decode: %.2fs (%s)", measured, source.filename)
        return DurationProbeResult(duration_seconds=measured, from_metadata=False, decoded=decoded)

    def probe_duration(self, source: RawAudioSource) -> float:
        return self.probe(source).duration_seconds
