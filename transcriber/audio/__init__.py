# transcriber/audio/__init__.py
# ==============================
# Audio Processing Layer — Transcriber
#
#   decoder     container bytes -> planar float PCM
#   duration    metadata duration with decode fallback
#   resampler   mono mixdown + conversion to the target rate
#   encoder     mono PCM -> 44-byte-header PCM16 WAV
#   segmenter   overlapping, duration-bounded segments

from transcriber.audio.decoder import Decoder, PydubDecoder  # noqa: F401
from transcriber.audio.duration import DurationProbe  # noqa: F401
from transcriber.audio.encoder import encode_wav  # noqa: F401
from transcriber.audio.resampler import LinearResampler, Resampler, normalize  # noqa: F401
from transcriber.audio.segmenter import segment  # noqa: F401
from transcriber.audio.types import (  # noqa: F401
    AudioSegment,
    DecodedAudio,
    NormalizedAudio,
    RawAudioSource,
)

__all__ = [
    "Decoder",
    "PydubDecoder",
    "DurationProbe",
    "encode_wav",
    "LinearResampler",
    "Resampler",
    "normalize",
    "segment",
    "AudioSegment",
    "DecodedAudio",
    "NormalizedAudio",
    "RawAudioSource",
]
