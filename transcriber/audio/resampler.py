"""
transcriber/audio/resampler.py
===============================
Mixdown + Resampler — Transcriber

Responsibility:
    - Average all channels into one (equal weight)
    - Convert the mono signal to the target sample rate, only when needed
    - Produce a NormalizedAudio value (mono, target rate)

The output length for a conversion is ``ceil(duration * target_rate)``
frames. Interpolation is linear; any deterministic kernel satisfying the
mono/rate invariants is acceptable, so ``Resampler`` is an interface and
the pipeline accepts an alternative implementation.
"""

import abc
import logging

import numpy as np

from transcriber.audio.types import DecodedAudio, NormalizedAudio
from transcriber.config import TARGET_SAMPLE_RATE

logger = logging.getLogger("transcriber.audio.resampler")


class Resampler(abc.ABC):
    """Interface for mono sample-rate converters."""

    @abc.abstractmethod
    def resample(self, samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
        """Return ``samples`` rendered at ``target_rate``."""
        raise NotImplementedError


class LinearResampler(Resampler):
    """Linear interpolation between neighbouring input frames."""

    def resample(self, samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
        frames = samples.shape[0]
        target_frames = target_length(frames, source_rate, target_rate)
        if frames == 0 or target_frames == 0:
            return np.zeros(0, dtype=np.float32)

        # Positions past the last input frame hold its value (np.interp clamps).
        positions = np.arange(target_frames, dtype=np.float64) * (source_rate / target_rate)
        rendered = np.interp(positions, np.arange(frames, dtype=np.float64), samples)
        return rendered.astype(np.float32)


def target_length(frames: int, source_rate: int, target_rate: int) -> int:
    """``ceil(frames / source_rate * target_rate)`` computed in integers."""
    return -(-frames * target_rate // source_rate)


def mix_down(decoded: DecodedAudio) -> np.ndarray:
    """Equal-weight average of all channels: ``sum(channels) / C``."""
    if decoded.channels == 1:
        return decoded.samples[0].copy()
    summed = decoded.samples.sum(axis=0, dtype=np.float64)
    return (summed / decoded.channels).astype(np.float32)


def normalize(
    decoded: DecodedAudio,
    resampler: Resampler | None = None,
    target_rate: int = TARGET_SAMPLE_RATE,
) -> NormalizedAudio:
    """
    Reduce ``decoded`` to mono at ``target_rate``.

    Args:
        decoded:     Planar PCM from the decoder.
        resampler:   Converter to use when the rates differ
                     (defaults to LinearResampler).
        target_rate: Output sample rate in Hz.

    Returns:
        NormalizedAudio with ``channels == 1`` and ``sample_rate == target_rate``.
    """
    mono = mix_down(decoded)

    if decoded.sample_rate == target_rate:
        logger.debug("Audio already at %d Hz; no resampling.", target_rate)
        return NormalizedAudio(sample_rate=target_rate, samples=mono)

    resampler = resampler or LinearResampler()
    rendered = resampler.resample(mono, decoded.sample_rate, target_rate)
    logger.info(
        "Resampled %d ch @ %d Hz (%d frames) -> mono @ %d Hz (%d frames).",
        decoded.channels, decoded.sample_rate, decoded.frames, target_rate, rendered.shape[0],
    )
    return NormalizedAudio(sample_rate=target_rate, samples=rendered)
