"""
tests/test_api.py
==================
API Upload Endpoint Tests — Transcriber

Tests verify:
    1. Successful upload returns text, segments and metadata
    2. Upload validation (type, emptiness, source field)
    3. Pipeline failures map onto HTTP status codes
    4. Health endpoint

All tests are OFFLINE — the pipeline dependency is overridden with fakes.
"""

import os
import sys
import unittest
from unittest.mock import MagicMock, patch

import numpy as np
from fastapi.testclient import TestClient

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from transcriber.api.upload import app, get_pipeline
from transcriber.audio.decoder import Decoder
from transcriber.audio.duration import DurationProbe
from transcriber.audio.resampler import Resampler
from transcriber.audio.types import DecodedAudio
from transcriber.errors import (
    DecodeFailureError,
    TranscriptionCancelledError,
    UnsupportedFormatError,
)
from transcriber.pipeline import TranscriptionPipeline
from transcriber.stt.base import TranscriptionProvider
from transcriber.stt.mistral_client import MistralAPIError


class FakeDecoder(Decoder):
    def __init__(self, error=None, sample_rate=16000):
        self.error = error
        self.sample_rate = sample_rate

    def decode(self, source):
        if self.error is not None:
            raise self.error
        return DecodedAudio(
            sample_rate=self.sample_rate,
            samples=np.zeros((1, self.sample_rate), dtype=np.float32),
        )


class FakeProvider(TranscriptionProvider):
    name = "fake"

    def __init__(self, text="hello from the test", error=None):
        self.text = text
        self.error = error

    def transcribe(self, container):
        if self.error is not None:
            raise self.error
        return self.text


def _override(provider=None, decoder=None, metadata=1.0, resampler=None):
    provider = provider or FakeProvider()
    decoder = decoder or FakeDecoder()

    def factory():
        return TranscriptionPipeline(
            provider,
            decoder=decoder,
            resampler=resampler,
            duration_probe=DurationProbe(decoder, metadata_reader=lambda s: metadata),
        )

    app.dependency_overrides[get_pipeline] = factory


WAV_UPLOAD = {"audio_file": ("call.wav", b"RIFF....WAVE", "audio/wav")}


class TestTranscribeEndpoint(unittest.TestCase):

    def setUp(self):
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_success(self):
        _override()
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD, data={"source": "recording"})

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["text"], "hello from the test")
        self.assertEqual(body["segments"], ["hello from the test"])
        self.assertEqual(body["metadata"]["filename"], "call.wav")
        self.assertEqual(body["metadata"]["source"], "recording")
        self.assertEqual(body["metadata"]["word_count"], 4)
        self.assertEqual(body["metadata"]["duration_seconds"], 1.0)

    def test_source_defaults_to_upload(self):
        _override()
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.json()["metadata"]["source"], "upload")

    def test_invalid_source(self):
        _override()
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD, data={"source": "email"})
        self.assertEqual(resp.status_code, 422)

    def test_missing_file(self):
        _override()
        resp = self.client.post("/api/v1/transcribe")
        self.assertEqual(resp.status_code, 422)

    def test_unsupported_type(self):
        _override()
        resp = self.client.post(
            "/api/v1/transcribe", files={"audio_file": ("notes.txt", b"hello", "text/plain")}
        )
        self.assertEqual(resp.status_code, 422)
        self.assertIn("WAV, MP3, M4A, OGG", resp.json()["detail"])

    def test_empty_file(self):
        _override()
        resp = self.client.post(
            "/api/v1/transcribe", files={"audio_file": ("call.wav", b"", "audio/wav")}
        )
        self.assertEqual(resp.status_code, 422)

    def test_unparseable_container(self):
        _override(decoder=FakeDecoder(error=UnsupportedFormatError("no demuxer")))
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 415)

    def test_corrupt_audio(self):
        _override(decoder=FakeDecoder(error=DecodeFailureError("truncated")))
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 422)

    def test_duration_unavailable(self):
        _override(decoder=FakeDecoder(error=DecodeFailureError("truncated")), metadata=None)
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 422)
        self.assertIn("Unable to read audio duration", resp.json()["detail"])

    def test_provider_failure(self):
        _override(provider=FakeProvider(error=RuntimeError("quota exceeded")))
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 502)
        self.assertIn("segment 0", resp.json()["detail"])

    def test_cancelled(self):
        _override()
        with patch.object(
            TranscriptionPipeline, "process", side_effect=TranscriptionCancelledError(1, 3)
        ):
            resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 499)

    def test_unexpected_error(self):
        _override()
        with patch.object(TranscriptionPipeline, "process", side_effect=RuntimeError("disk full")):
            resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 500)

    def test_normalization_failure(self):
        class FlatResampler(Resampler):
            def resample(self, samples, source_rate, target_rate):
                return np.zeros((2, 4), dtype=np.float32)

        _override(decoder=FakeDecoder(sample_rate=8000), resampler=FlatResampler())
        resp = self.client.post("/api/v1/transcribe", files=WAV_UPLOAD)
        self.assertEqual(resp.status_code, 422)
        self.assertIn("Unable to normalize audio", resp.json()["detail"])


class TestBrowserRecording(unittest.TestCase):

    WEBM_RECORDING = {
        "audio_file": ("recording.webm", b"\x1aE\xdf\xa3data", "audio/webm;codecs=opus")
    }

    def setUp(self):
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_webm_recording_accepted(self):
        _override(metadata=None)
        resp = self.client.post(
            "/api/v1/transcribe", files=self.WEBM_RECORDING, data={"source": "recording"}
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["text"], "hello from the test")
        self.assertEqual(body["metadata"]["filename"], "recording.webm")
        self.assertEqual(body["metadata"]["source"], "recording")

    def test_webm_file_upload_still_rejected(self):
        _override()
        resp = self.client.post(
            "/api/v1/transcribe", files=self.WEBM_RECORDING, data={"source": "upload"}
        )
        self.assertEqual(resp.status_code, 422)

    def test_empty_recording_rejected(self):
        _override()
        resp = self.client.post(
            "/api/v1/transcribe",
            files={"audio_file": ("recording.webm", b"", "audio/webm")},
            data={"source": "recording"},
        )
        self.assertEqual(resp.status_code, 422)


class KeyCheckingProvider(FakeProvider):
    def __init__(self, error=None):
        super().__init__()
        self.key_error = error

    def validate_api_key(self):
        if self.key_error is not None:
            raise self.key_error


class TestHealthEndpoint(unittest.TestCase):

    @patch("transcriber.api.upload.get_decoder")
    @patch("transcriber.api.upload.get_provider")
    def test_health(self, mock_provider, mock_decoder):
        mock_provider.return_value = FakeProvider()
        mock_decoder.return_value = MagicMock(converter="/usr/bin/ffmpeg")

        resp = TestClient(app).get("/api/v1/health")

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["provider"], "fake")
        self.assertEqual(body["converter"], "/usr/bin/ffmpeg")
        self.assertEqual(body["target_sample_rate"], 16000)
        self.assertNotIn("api_key", body)

    @patch("transcriber.api.upload.get_decoder")
    @patch("transcriber.api.upload.get_provider")
    def test_api_key_valid(self, mock_provider, mock_decoder):
        mock_provider.return_value = KeyCheckingProvider()
        mock_decoder.return_value = MagicMock(converter=None)

        resp = TestClient(app).get("/api/v1/health", params={"check_api_key": "true"})

        self.assertEqual(resp.json()["api_key"], "valid")

    @patch("transcriber.api.upload.get_decoder")
    @patch("transcriber.api.upload.get_provider")
    def test_api_key_invalid(self, mock_provider, mock_decoder):
        mock_provider.return_value = KeyCheckingProvider(
            error=MistralAPIError("Unauthorized", status_code=401)
        )
        mock_decoder.return_value = MagicMock(converter=None)

        resp = TestClient(app).get("/api/v1/health", params={"check_api_key": "true"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["api_key"], "invalid: Unauthorized")

    @patch("transcriber.api.upload.get_decoder")
    @patch("transcriber.api.upload.get_provider")
    def test_api_key_check_unsupported(self, mock_provider, mock_decoder):
        mock_provider.return_value = FakeProvider()
        mock_decoder.return_value = MagicMock(converter=None)

        resp = TestClient(app).get("/api/v1/health", params={"check_api_key": "true"})

        self.assertEqual(resp.json()["api_key"], "unsupported")


if __name__ == "__main__":
    unittest.main()
