"""
transcriber/errors.py
======================
Failure taxonomy — Transcriber

Every stage raises one of these instead of a bare library exception. All
of them are terminal for the recording being processed; nothing in this
package retries them.
"""


class AudioPipelineError(Exception):
    """Base class for all failures raised while processing one recording."""


class AudioValidationError(AudioPipelineError):
    """Raised when an upload is rejected before any decoding happens."""


class UnsupportedFormatError(AudioPipelineError):
    """Raised when the container cannot be parsed by the decoder."""


class DecodeFailureError(AudioPipelineError):
    """Raised when the payload is empty, corrupt, or decodes to nothing."""


class DurationUnavailableError(AudioPipelineError):
    """Raised when neither container metadata nor a full decode yields a duration."""


class NormalizationError(AudioPipelineError):
    """Raised when decoded audio cannot be mixed down, resampled, segmented or encoded."""


class TranscriptionFailedError(AudioPipelineError):
    """Raised when the transcription provider fails for one segment."""

    def __init__(self, segment_index: int, cause: BaseException):
        self.segment_index = segment_index
        self.cause = cause
        super().__init__(f"Transcription failed for segment {segment_index}: {cause}")


class TranscriptionCancelledError(AudioPipelineError):
    """Raised when the caller cancels a segmented transcription between segments."""

    def __init__(self, completed_segments: int, total_segments: int):
        self.completed_segments = completed_segments
        self.total_segments = total_segments
        super().__init__(
            f"Transcription cancelled after {completed_segments}/{total_segments} segment(s)."
        )
