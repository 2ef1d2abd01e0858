"""
transcriber/pipeline.py
========================
Transcription Pipeline Orchestrator — Transcriber

Responsibility:
    1. Probe the recording's duration (metadata, else full decode)
    2. Decide between the short path and the segmented path
    3. Normalize to mono 16 kHz and encode one WAV container per segment
    4. Transcribe containers in segment order
    5. Merge per-segment text with a single space

State machine for one recording:

    IDLE -> PROBING -> NORMALIZING (short) | SEGMENTING (long)
         -> TRANSCRIBING -> MERGED | FAILED | CANCELLED

Failure handling:
    - Any decode / probe / encode / transcription failure aborts the whole
      recording; transcripts of segments that already finished are dropped
    - Nothing is retried here; provider clients own their retry policy

Overlap handling:
    - Segments overlap by a few seconds, so words near a boundary can
      appear twice in the merged text. The merge is a literal join and does
      not try to remove them.
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from transcriber.audio.decoder import Decoder, PydubDecoder
from transcriber.audio.duration import DurationProbe
from transcriber.audio.encoder import encode_wav
from transcriber.audio.resampler import LinearResampler, Resampler, normalize
from transcriber.audio.segmenter import segment
from transcriber.audio.types import DecodedAudio, RawAudioSource
from transcriber.config import (
    SEGMENT_DURATION_SECONDS,
    SEGMENT_OVERLAP_SECONDS,
    SEGMENT_THRESHOLD_SECONDS,
    TARGET_SAMPLE_RATE,
    TRANSCRIBE_MAX_WORKERS,
)
from transcriber.errors import (
    NormalizationError,
    TranscriptionCancelledError,
    TranscriptionFailedError,
)
from transcriber.stt.base import TranscriptionProvider

logger = logging.getLogger("transcriber.pipeline")

VALID_ORIGINS = ("upload", "recording")


class PipelineState(str, Enum):
    IDLE = "idle"
    PROBING = "probing"
    NORMALIZING = "normalizing"
    SEGMENTING = "segmenting"
    TRANSCRIBING = "transcribing"
    MERGED = "merged"
    FAILED = "failed"
    CANCELLED = "cancelled"


# =====================================================================
# Result types
# =====================================================================


@dataclass(frozen=True)
class ResultMetadata:
    filename: str
    duration_seconds: float
    source: str
    segment_count: int
    transcription_chars: int
    word_count: int
    processed_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TranscriptResult:
    """Merged transcript plus the per-segment texts it was joined from."""

    text: str
    segment_texts: tuple[str, ...]
    metadata: ResultMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "segments": list(self.segment_texts),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class PreparedAudio:
    """Encoded containers for one recording, ready for transcription."""

    duration_seconds: float
    containers: tuple[bytes, ...]
    segmented: bool


def merge_transcripts(texts: list[str]) -> str:
    """Join segment transcripts in order with a single space."""
    return " ".join(texts)


def count_words(text: str) -> int:
    stripped = text.strip()
    return len(stripped.split()) if stripped else 0


# =====================================================================
# Orchestrator
# =====================================================================


class TranscriptionPipeline:
    """
    Runs one recording at a time through decode -> normalize -> encode ->
    transcribe -> merge.

    Decoder, resampler, duration probe and provider are injected, so
    independent pipelines share no state and tests can supply fakes.
    """

    def __init__(
        self,
        provider: TranscriptionProvider,
        *,
        decoder: Optional[Decoder] = None,
        resampler: Optional[Resampler] = None,
        duration_probe: Optional[DurationProbe] = None,
        target_sample_rate: int = TARGET_SAMPLE_RATE,
        segment_threshold_seconds: float = SEGMENT_THRESHOLD_SECONDS,
        segment_duration_seconds: float = SEGMENT_DURATION_SECONDS,
        overlap_seconds: float = SEGMENT_OVERLAP_SECONDS,
        max_workers: int = TRANSCRIBE_MAX_WORKERS,
    ) -> None:
        self._provider = provider
        self._decoder = decoder or PydubDecoder()
        self._resampler = resampler or LinearResampler()
        self._duration_probe = duration_probe or DurationProbe(self._decoder)
        self._target_sample_rate = target_sample_rate
        self._segment_threshold_seconds = segment_threshold_seconds
        self._segment_duration_seconds = segment_duration_seconds
        self._overlap_seconds = overlap_seconds
        self._max_workers = max(1, max_workers)
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def provider(self) -> TranscriptionProvider:
        return self._provider

    @property
    def decoder(self) -> Decoder:
        return self._decoder

    def process(
        self,
        source: RawAudioSource,
        *,
        cancel_event: Optional[threading.Event] = None,
        origin: str = "upload",
    ) -> TranscriptResult:
        """
        Produce the full transcript for one recording.

        Args:
            source:       Raw container bytes plus declared type.
            cancel_event: Checked before each segment is transcribed.
            origin:       ``"upload"`` or ``"recording"``; reported in metadata.

        Returns:
            TranscriptResult with the merged text and metadata.

        Raises:
            UnsupportedFormatError / DecodeFailureError: Decoding failed.
            DurationUnavailableError: No duration could be determined.
            NormalizationError: Mixdown, resampling, segmenting or encoding failed.
            TranscriptionFailedError: A provider call failed.
            TranscriptionCancelledError: ``cancel_event`` was set.
        """
        if origin not in VALID_ORIGINS:
            raise ValueError(f"origin must be one of {VALID_ORIGINS}, got {origin!r}")

        self._transition(PipelineState.IDLE)
        logger.info("Processing %s (%d bytes, origin=%s)", source.filename, source.size, origin)

        try:
            prepared = self.prepare(source)
            texts = self._transcribe_all(prepared.containers, cancel_event)
        except TranscriptionCancelledError:
            self._transition(PipelineState.CANCELLED)
            raise
        except Exception:
            self._transition(PipelineState.FAILED)
            raise

        text = merge_transcripts(texts)
        self._transition(PipelineState.MERGED)

        metadata = ResultMetadata(
            filename=source.filename,
            duration_seconds=round(prepared.duration_seconds, 3),
            source=origin,
            segment_count=len(texts),
            transcription_chars=len(text),
            word_count=count_words(text),
            processed_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(
            "Transcript merged: %d segment(s), %d chars, %d words.",
            metadata.segment_count, metadata.transcription_chars, metadata.word_count,
        )
        return TranscriptResult(text=text, segment_texts=tuple(texts), metadata=metadata)

    # -----------------------------------------------------------------
    # Preparation: probe -> normalize -> (segment) -> encode
    # -----------------------------------------------------------------

    def prepare(self, source: RawAudioSource) -> PreparedAudio:
        """Probe, normalize and encode ``source`` into one or more containers."""
        self._transition(PipelineState.PROBING)
        probe = self._duration_probe.probe(source)
        decoded = probe.decoded or self._decoder.decode(source)
        segmented = probe.duration_seconds > self._segment_threshold_seconds

        self._transition(PipelineState.SEGMENTING if segmented else PipelineState.NORMALIZING)
        try:
            containers = self._encode(decoded, segmented)
        except (ValueError, TypeError) as exc:
            logger.error("Normalization failed for %s: %s", source.filename, exc)
            raise NormalizationError(
                f"Unable to normalize audio '{source.filename}': {exc}"
            ) from exc

        logger.info(
            "Prepared %d container(s) for %.2fs of audio (%s path, %d bytes total).",
            len(containers),
            probe.duration_seconds,
            "segmented" if segmented else "short",
            sum(len(c) for c in containers),
        )
        return PreparedAudio(
            duration_seconds=probe.duration_seconds,
            containers=containers,
            segmented=segmented,
        )

    def _encode(self, decoded: DecodedAudio, segmented: bool) -> tuple[bytes, ...]:
        normalized = normalize(decoded, self._resampler, self._target_sample_rate)
        if not segmented:
            return (encode_wav(normalized.samples, normalized.sample_rate),)

        windows = segment(normalized, self._segment_duration_seconds, self._overlap_seconds)
        return tuple(
            encode_wav(window.view(normalized), normalized.sample_rate)
            for window in windows
        )

    # -----------------------------------------------------------------
    # Transcription
    # -----------------------------------------------------------------

    def _transcribe_all(
        self,
        containers: tuple[bytes, ...],
        cancel_event: Optional[threading.Event],
    ) -> list[str]:
        self._transition(PipelineState.TRANSCRIBING)
        if self._max_workers == 1 or len(containers) <= 1:
            return self._transcribe_sequential(containers, cancel_event)
        return self._transcribe_bounded(containers, cancel_event)

    def _transcribe_sequential(
        self,
        containers: tuple[bytes, ...],
        cancel_event: Optional[threading.Event],
    ) -> list[str]:
        total = len(containers)
        texts: list[str] = []
        for index, container in enumerate(containers):
            _check_cancelled(cancel_event, index, total)
            logger.info("Transcribing segment %d/%d...", index + 1, total)
            texts.append(self._transcribe_one(index, container))
        return texts

    def _transcribe_bounded(
        self,
        containers: tuple[bytes, ...],
        cancel_event: Optional[threading.Event],
    ) -> list[str]:
        """
        At most ``max_workers`` provider calls in flight; results are stored
        by segment index so the merged order never depends on completion order.
        """
        total = len(containers)
        results: list[Optional[str]] = [None] * total
        pending: dict[Future, int] = {}
        next_index = 0
        completed = 0

        with ThreadPoolExecutor(max_workers=min(self._max_workers, total)) as executor:
            try:
                while next_index < total or pending:
                    while next_index < total and len(pending) < self._max_workers:
                        _check_cancelled(cancel_event, completed, total)
                        logger.info("Transcribing segment %d/%d...", next_index + 1, total)
                        future = executor.submit(
                            self._transcribe_one, next_index, containers[next_index]
                        )
                        pending[future] = next_index
                        next_index += 1

                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        index = pending.pop(future)
                        results[index] = future.result()
                        completed += 1
            except Exception:
                for future in pending:
                    future.cancel()
                raise

        return [text or "" for text in results]

    def _transcribe_one(self, index: int, container: bytes) -> str:
        try:
            text = self._provider.transcribe(container)
        except Exception as exc:
            logger.error(
                "Segment %d failed %s transcription: %s",
                index, getattr(self._provider, "name", type(self._provider).__name__), exc,
            )
            raise TranscriptionFailedError(index, exc) from exc

        if not isinstance(text, str):
            raise TranscriptionFailedError(
                index, TypeError(f"provider returned {type(text).__name__}, expected str")
            )
        logger.info("Segment %d transcribed: %d chars.", index, len(text))
        return text

    def _transition(self, state: PipelineState) -> None:
        if state is not self._state:
            logger.debug("Pipeline state: %s -> %s", self._state.value, state.value)
        self._state = state


def _check_cancelled(
    cancel_event: Optional[threading.Event],
    completed: int,
    total: int,
) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.warning("Transcription cancelled after %d/%d segment(s).", completed, total)
        raise TranscriptionCancelledError(completed, total)
