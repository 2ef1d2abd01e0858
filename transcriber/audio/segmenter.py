"""
transcriber/audio/segmenter.py
===============================
Audio Segmenter — Transcriber

Responsibility:
    - Split normalized audio into duration-bounded segments for providers
      that cap request duration / size
    - Give every segment after the first a leading overlap with its
      predecessor, so a word straddling a hard boundary is heard whole at
      least once

Layout, with S = segment length and O = overlap (both in samples):

    segment 0:  [0, S)
    segment i:  [i*S - O, (i+1)*S)          length S + O
    last:       clamped to the end of the buffer

Splitting stops as soon as a segment reaches the end of the buffer, so
audio shorter than S yields a single segment with no overlap.

This module does NOT:
    - Look for silence or speech boundaries
    - Encode segments (handled by transcriber.audio.encoder)
"""

import logging

from transcriber.audio.types import AudioSegment, NormalizedAudio
from transcriber.config import SEGMENT_DURATION_SECONDS, SEGMENT_OVERLAP_SECONDS

logger = logging.getLogger("transcriber.audio.segmenter")


def segment(
    audio: NormalizedAudio,
    segment_duration_seconds: float = SEGMENT_DURATION_SECONDS,
    overlap_seconds: float = SEGMENT_OVERLAP_SECONDS,
) -> list[AudioSegment]:
    """
    Compute overlapping segment windows over ``audio``.

    Args:
        audio:                    Mono audio to split.
        segment_duration_seconds: Nominal segment length (seconds).
        overlap_seconds:          Leading overlap of segments after the first.

    Returns:
        Segments in chronological order; empty for empty audio.

    Raises:
        ValueError: If the segment length is not positive, the overlap is
            negative, or the overlap is not shorter than a segment.
    """
    segment_samples = int(round(segment_duration_seconds * audio.sample_rate))
    overlap_samples = int(round(overlap_seconds * audio.sample_rate))

    if segment_samples <= 0:
        raise ValueError("segment duration must cover at least one sample")
    if overlap_samples < 0:
        raise ValueError("overlap must not be negative")
    if overlap_samples >= segment_samples:
        raise ValueError("overlap must be shorter than the segment duration")

    total = audio.frames
    segments: list[AudioSegment] = []

    index = 0
    while True:
        lead = overlap_samples if index > 0 else 0
        start = index * segment_samples - lead
        length = segment_samples + lead
        if start + length > total:
            length = total - start
        if length <= 0:
            break

        reached_end = start + length >= total
        segments.append(
            AudioSegment(
                index=index,
                start_sample=start,
                length_samples=length,
                is_trailing=reached_end,
            )
        )
        if reached_end:
            break
        index += 1

    logger.info(
        "Segmented %.1fs of audio into %d segment(s) (S=%d, O=%d samples).",
        audio.duration_seconds, len(segments), segment_samples, overlap_samples,
    )
    return segments
