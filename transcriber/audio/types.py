"""
transcriber/audio/types.py
===========================
Audio value types — Transcriber

Every stage of the pipeline produces a new value instead of mutating its
input. Sample buffers are stored as read-only float32 numpy arrays so a
stage cannot accidentally write into a buffer owned by an earlier stage.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


def _frozen_array(samples, ndim: int) -> np.ndarray:
    array = np.array(samples, dtype=np.float32, copy=True)
    if array.ndim != ndim:
        raise ValueError(f"expected a {ndim}-D sample array, got shape {array.shape}")
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class RawAudioSource:
    """Uploaded or recorded container bytes plus their declared type."""

    data: bytes = field(repr=False)
    filename: str = "audio"
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        """Lowercase extension without the dot, e.g. ``"wav"``; empty if none."""
        dot_index = self.filename.rfind(".")
        if dot_index == -1:
            return ""
        return self.filename[dot_index + 1:].lower()

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DecodedAudio:
    """Planar PCM straight out of the decoder: ``samples[channel][frame]``."""

    sample_rate: int
    samples: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        object.__setattr__(self, "samples", _frozen_array(self.samples, 2))
        if self.samples.shape[0] == 0:
            raise ValueError("decoded audio must have at least one channel")

    @property
    def channels(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frames(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate


@dataclass(frozen=True)
class NormalizedAudio:
    """Mono PCM at the pipeline's target sample rate."""

    sample_rate: int
    samples: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        object.__setattr__(self, "samples", _frozen_array(self.samples, 1))

    @property
    def channels(self) -> int:
        return 1

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate


@dataclass(frozen=True)
class AudioSegment:
    """A window into ``NormalizedAudio.samples``; holds indices, not samples."""

    index: int
    start_sample: int
    length_samples: int
    is_trailing: bool = False

    @property
    def end_sample(self) -> int:
        return self.start_sample + self.length_samples

    def view(self, audio: NormalizedAudio) -> np.ndarray:
        return audio.samples[self.start_sample:self.end_sample]

    def offset_seconds(self, sample_rate: int) -> float:
        return self.start_sample / sample_rate
