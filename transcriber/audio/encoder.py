"""
transcriber/audio/encoder.py
=============================
Container Encoder — Transcriber

Serializes mono float PCM into a self-contained WAV file: 44-byte RIFF
header, 16-bit signed little-endian samples, one channel.

Quantization clamps to [-1.0, 1.0], then scales negative samples by 32768
and non-negative samples by 32767, truncating toward zero. So ``1.0`` maps
to 32767, ``-1.0`` to -32768 and ``0.25`` to 8191.
"""

import io
import wave

import numpy as np

WAV_HEADER_SIZE = 44
BYTES_PER_SAMPLE = 2


def quantize_pcm16(samples) -> np.ndarray:
    """Float samples -> little-endian int16 using asymmetric full-scale mapping."""
    values = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    clipped = np.clip(values, -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    return np.trunc(scaled).astype("<i2")


def encode_wav(samples, sample_rate: int) -> bytes:
    """
    Encode mono samples as a PCM16 WAV container.

    The result is always ``44 + 2 * len(samples)`` bytes long.

    Raises:
        ValueError: If ``sample_rate`` is not positive.
    """
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")

    pcm = quantize_pcm16(samples)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(BYTES_PER_SAMPLE)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def encoded_size(sample_count: int) -> int:
    return WAV_HEADER_SIZE + BYTES_PER_SAMPLE * sample_count
