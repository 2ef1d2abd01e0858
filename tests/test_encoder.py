"""
tests/test_encoder.py
======================
Container Encoder Tests — Transcriber

Tests verify:
    1. Output size law (44-byte header + 2 bytes per sample)
    2. RIFF / fmt / data header fields
    3. Asymmetric PCM16 quantization with clamping and truncation

All tests are OFFLINE — pure numeric encoding only.
"""

import io
import os
import struct
import sys
import unittest
import wave

import numpy as np

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from transcriber.audio.encoder import encode_wav, encoded_size, quantize_pcm16


def _int16_at(data: bytes, offset: int) -> int:
    return struct.unpack_from("<h", data, offset)[0]


def _uint32_at(data: bytes, offset: int) -> int:
    return struct.unpack_from("<I", data, offset)[0]


def _uint16_at(data: bytes, offset: int) -> int:
    return struct.unpack_from("<H", data, offset)[0]


# ===================================================================
# Size and header
# ===================================================================


class TestEncodeWavLayout(unittest.TestCase):

    def test_trivial_input_size_and_fields(self):
        data = encode_wav([0, 0.5, -0.5, 1.0], 16000)
        self.assertEqual(len(data), 52)
        self.assertEqual(_uint32_at(data, 24), 16000)
        self.assertEqual(_uint32_at(data, 40), 8)

    def test_size_law_for_various_lengths(self):
        for length in (0, 1, 7, 160, 16001):
            samples = np.linspace(-1, 1, length, dtype=np.float32)
            data = encode_wav(samples, 16000)
            self.assertEqual(len(data), 44 + 2 * length)
            self.assertEqual(len(data), encoded_size(length))

    def test_header_fields(self):
        data = encode_wav(np.zeros(10, dtype=np.float32), 22050)
        self.assertEqual(data[0:4], b"RIFF")
        self.assertEqual(_uint32_at(data, 4), 36 + 20)
        self.assertEqual(data[8:12], b"WAVE")
        self.assertEqual(data[12:16], b"fmt ")
        self.assertEqual(_uint32_at(data, 16), 16)
        self.assertEqual(_uint16_at(data, 20), 1)        # PCM
        self.assertEqual(_uint16_at(data, 22), 1)        # mono
        self.assertEqual(_uint32_at(data, 24), 22050)
        self.assertEqual(_uint32_at(data, 28), 44100)    # byte rate
        self.assertEqual(_uint16_at(data, 32), 2)        # block align
        self.assertEqual(_uint16_at(data, 34), 16)       # bits per sample
        self.assertEqual(data[36:40], b"data")
        self.assertEqual(_uint32_at(data, 40), 20)

    def test_output_is_readable_wav(self):
        data = encode_wav(np.full(100, 0.1, dtype=np.float32), 16000)
        with wave.open(io.BytesIO(data), "rb") as wf:
            self.assertEqual(wf.getnchannels(), 1)
            self.assertEqual(wf.getsampwidth(), 2)
            self.assertEqual(wf.getframerate(), 16000)
            self.assertEqual(wf.getnframes(), 100)

    def test_non_positive_rate_rejected(self):
        with self.assertRaises(ValueError):
            encode_wav([0.0], 0)


# ===================================================================
# Quantization
# ===================================================================


class TestQuantization(unittest.TestCase):

    def test_clamp_law(self):
        data = encode_wav([2.0, -2.0, 0.25], 16000)
        self.assertEqual(_int16_at(data, 44), 32767)
        self.assertEqual(_int16_at(data, 46), -32768)
        self.assertEqual(_int16_at(data, 48), 8191)

    def test_full_scale_endpoints(self):
        pcm = quantize_pcm16([1.0, -1.0, 0.0])
        self.assertEqual(pcm.tolist(), [32767, -32768, 0])

    def test_truncates_toward_zero(self):
        # -0.25 * 32768 = -8192 exactly; -0.3 * 32768 = -9830.4 -> -9830
        pcm = quantize_pcm16([-0.25, -0.3, 0.3])
        self.assertEqual(pcm.tolist(), [-8192, -9830, 9830])

    def test_nan_encodes_as_silence(self):
        pcm = quantize_pcm16([float("nan")])
        self.assertEqual(pcm.tolist(), [0])

    def test_little_endian_dtype(self):
        pcm = quantize_pcm16([0.5])
        self.assertEqual(pcm.dtype, np.dtype("<i2"))


if __name__ == "__main__":
    unittest.main()
