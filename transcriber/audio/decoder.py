"""
transcriber/audio/decoder.py
=============================
Audio Decoder — Transcriber

Responsibility:
    - Turn container bytes (wav / mp3 / m4a / ogg / webm / anything ffmpeg
      can parse) into planar float32 PCM plus its native sample rate
    - Map decoder failures onto the typed failure taxonomy

The pipeline only depends on the ``Decoder`` interface, so tests swap in a
fake that returns synthetic buffers.

This module does NOT:
    - Mix down or resample (handled by transcriber.audio.resampler)
    - Decide between short and segmented processing
"""

import abc
import io
import logging
import threading

import numpy as np
from pydub import AudioSegment as PydubAudioSegment
from pydub.exceptions import CouldntDecodeError
from pydub.utils import which

from transcriber.audio.formats import format_hint
from transcriber.audio.types import DecodedAudio, RawAudioSource
from transcriber.errors import DecodeFailureError, UnsupportedFormatError

logger = logging.getLogger("transcriber.audio.decoder")


class Decoder(abc.ABC):
    """Interface for container decoders."""

    @abc.abstractmethod
    def decode(self, source: RawAudioSource) -> DecodedAudio:
        """Decode ``source`` into planar PCM."""
        raise NotImplementedError


class PydubDecoder(Decoder):
    """
    Decoder backed by pydub, which shells out to ffmpeg for everything but
    plain WAV.

    The ffmpeg binary is located once, on first use, and reused by every
    later call on the same decoder instance. pydub reads the converter from
    a class attribute, so each decoder decodes through its own subclass
    instead of changing ``pydub.AudioSegment.converter`` for the process.
    """

    def __init__(self, *, ffmpeg_name: str = "ffmpeg") -> None:
        self._ffmpeg_name = ffmpeg_name
        self._converter: str | None = None
        self._converter_resolved = False
        self._segment_class: type[PydubAudioSegment] = PydubAudioSegment
        self._converter_lock = threading.Lock()

    def decode(self, source: RawAudioSource) -> DecodedAudio:
        if not source.data:
            raise DecodeFailureError("Audio payload is empty.")

        self._ensure_converter()
        fmt = format_hint(source.extension, source.content_type)

        logger.debug(
            "Decoding %s (%d bytes, format hint=%s)...",
            source.filename, source.size, fmt or "auto",
        )
        try:
            segment = self._segment_class.from_file(io.BytesIO(source.data), format=fmt)
        except CouldntDecodeError as exc:
            raise UnsupportedFormatError(
                f"Could not parse audio container '{source.filename}': {exc}"
            ) from exc
        except Exception as exc:
            raise DecodeFailureError(
                f"Unexpected error decoding '{source.filename}': {exc}"
            ) from exc

        try:
            decoded = _to_decoded_audio(segment)
        except ValueError as exc:
            raise DecodeFailureError(f"Invalid PCM in '{source.filename}': {exc}") from exc
        if decoded.frames == 0:
            raise DecodeFailureError(f"Audio '{source.filename}' decoded to zero frames.")

        logger.info(
            "Decoded %s: %.2fs | %d Hz | %d ch",
            source.filename, decoded.duration_seconds, decoded.sample_rate, decoded.channels,
        )
        return decoded

    @property
    def converter(self) -> str | None:
        """Resolved ffmpeg path, or None when ffmpeg is not installed."""
        self._ensure_converter()
        return self._converter

    def _ensure_converter(self) -> None:
        if self._converter_resolved:
            return
        with self._converter_lock:
            if self._converter_resolved:
                return
            self._converter = which(self._ffmpeg_name)
            if self._converter is None:
                logger.warning(
                    "%s not found on PATH; only plain WAV input can be decoded.",
                    self._ffmpeg_name,
                )
            else:
                self._segment_class = type(
                    "_ConverterBoundSegment",
                    (PydubAudioSegment,),
                    {"converter": self._converter},
                )
                logger.info("Using audio converter: %s", self._converter)
            self._converter_resolved = True


def _to_decoded_audio(segment: PydubAudioSegment) -> DecodedAudio:
    """Convert interleaved integer samples from pydub into planar float32."""
    channels = max(1, segment.channels)
    full_scale = float(1 << (8 * segment.sample_width - 1))

    interleaved = np.array(segment.get_array_of_samples(), dtype=np.float32)
    usable = (interleaved.size // channels) * channels
    planar = interleaved[:usable].reshape(-1, channels).T / full_scale

    return DecodedAudio(sample_rate=int(segment.frame_rate), samples=planar)
