"""
transcriber/audio/formats.py
=============================
Supported upload formats — Transcriber

Responsibility:
    - Describe the audio formats accepted at the upload boundary
    - Validate an upload by MIME type first, then by file extension
    - Reject empty uploads before they reach the decoder

The decoder itself accepts anything ffmpeg can parse; this table only
guards the HTTP surface.
"""

from dataclasses import dataclass

from transcriber.errors import AudioValidationError


@dataclass(frozen=True)
class AudioFormat:
    label: str
    extension: str
    mime_types: tuple[str, ...]


SUPPORTED_AUDIO_FORMATS: tuple[AudioFormat, ...] = (
    AudioFormat("WAV", ".wav", ("audio/wav", "audio/wave", "audio/x-wav")),
    AudioFormat("MP3", ".mp3", ("audio/mpeg", "audio/mp3")),
    AudioFormat("M4A", ".m4a", ("audio/mp4", "audio/x-m4a")),
    AudioFormat("OGG", ".ogg", ("audio/ogg",)),
)

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset(
    mime for fmt in SUPPORTED_AUDIO_FORMATS for mime in fmt.mime_types
)
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    fmt.extension for fmt in SUPPORTED_AUDIO_FORMATS
)
SUPPORTED_FORMATS_LABEL: str = ", ".join(fmt.label for fmt in SUPPORTED_AUDIO_FORMATS)

# MIME type -> ffmpeg demuxer name, used as a decode hint.
_FORMAT_HINTS: dict[str, str] = {
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/mp4": "mp4",
    "audio/x-m4a": "mp4",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def is_supported_audio_file(filename: str, content_type: str | None) -> bool:
    """Return True if either the MIME type or the extension is supported."""
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime and mime in SUPPORTED_MIME_TYPES:
        return True
    return extract_extension(filename) in SUPPORTED_EXTENSIONS


def validate_upload(
    filename: str,
    content_type: str | None,
    data: bytes,
    *,
    check_format: bool = True,
) -> None:
    """
    Validate an upload before it is handed to the pipeline.

    Browser recordings (typically WebM/Opus) skip the format table with
    ``check_format=False``; the decoder accepts anything ffmpeg can parse.

    Raises:
        AudioValidationError: If the file is missing, empty, or of an
            unsupported type.
    """
    if not filename:
        raise AudioValidationError("Filename is missing.")

    if check_format and not is_supported_audio_file(filename, content_type):
        raise AudioValidationError(
            f"Unsupported audio file '{filename}'. Allowed: {SUPPORTED_FORMATS_LABEL}"
        )

    if not data:
        raise AudioValidationError("Audio file is empty.")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def extract_extension(filename: str) -> str:
    """Return lowercase file extension including the dot, e.g. '.wav'."""
    dot_index = filename.rfind(".")
    if dot_index == -1:
        return ""
    return filename[dot_index:].lower()


def format_hint(extension: str, content_type: str | None) -> str | None:
    """
    Best-effort ffmpeg format name for a payload, or None to let ffmpeg
    probe the bytes itself.
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in _FORMAT_HINTS:
        return _FORMAT_HINTS[mime]
    if extension == "m4a":
        return "mp4"
    return extension or None
