"""
transcriber/stt/mistral_client.py
==================================
Mistral STT Client — Transcriber

Responsibility:
    - Upload one WAV container to Mistral's ``/audio/transcriptions``
      endpoint (Voxtral models)
    - Surface the API's own error message on failure
    - Retry transient failures (see transcriber.stt.retry)

This module does NOT:
    - Split, resample or re-encode audio
    - Merge transcripts from several segments
"""

import io
import logging
import os

import requests

from transcriber.config import (
    MISTRAL_API_BASE,
    MISTRAL_MODEL,
    REQUEST_TIMEOUT_SECONDS,
    TRANSCRIPTION_LANGUAGE,
)
from transcriber.stt.base import TranscriptionProvider
from transcriber.stt.retry import call_with_retry

logger = logging.getLogger("transcriber.stt.mistral_client")


class MistralAPIError(RuntimeError):
    """Raised when the Mistral API rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None, *, transient: bool = False):
        self.status_code = status_code
        self.transient = transient
        super().__init__(message)


class MistralTranscriptionProvider(TranscriptionProvider):
    name = "mistral"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = MISTRAL_MODEL,
        language: str | None = TRANSCRIPTION_LANGUAGE,
        base_url: str = MISTRAL_API_BASE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language
        self._base_url = base_url.rstrip("/")
        self._endpoint = f"{self._base_url}/audio/transcriptions"
        self._timeout = timeout
        self._session = session or requests.Session()

    def transcribe(self, container: bytes) -> str:
        """
        Transcribe a single WAV container.

        Raises:
            RuntimeError: If MISTRAL_API_KEY is not configured.
            MistralAPIError: If the API call fails after retries.
        """
        return call_with_retry(self._post_transcription, container, self._resolve_api_key())

    def validate_api_key(self) -> None:
        """
        Check the configured key against ``GET /models``.

        Raises:
            RuntimeError: If MISTRAL_API_KEY is not configured.
            MistralAPIError: If the API rejects the key or cannot be reached.
        """
        api_key = self._resolve_api_key()
        try:
            resp = self._session.get(
                f"{self._base_url}/models",
                headers={"Authorization": f"Bearer {api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise MistralAPIError(f"Mistral API request failed: {exc}", transient=True) from exc

        if not resp.ok:
            message = _extract_error_message(resp)
            logger.warning("Mistral API key rejected (%d): %s", resp.status_code, message)
            raise MistralAPIError(message, status_code=resp.status_code)

        logger.info("Mistral API key validated.")

    def _resolve_api_key(self) -> str:
        api_key = self._api_key or os.environ.get("MISTRAL_API_KEY")
        if not api_key:
            raise RuntimeError("MISTRAL_API_KEY environment variable is not set.")
        return api_key

    def _post_transcription(self, container: bytes, api_key: str) -> str:
        files = {"file": ("audio.wav", io.BytesIO(container), "audio/wav")}
        data = {"model": self._model}
        if self._language:
            data["language"] = self._language

        logger.debug("Sending %d bytes to Mistral (%s)...", len(container), self._model)
        try:
            resp = self._session.post(
                self._endpoint,
                headers={"Authorization": f"Bearer {api_key}"},
                files=files,
                data=data,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise MistralAPIError(f"Mistral API request failed: {exc}", transient=True) from exc

        if not resp.ok:
            message = _extract_error_message(resp)
            logger.error("Mistral API error %d: %s", resp.status_code, message)
            raise MistralAPIError(message, status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError as exc:
            raise MistralAPIError("Mistral API returned a non-JSON response.") from exc

        text = body.get("text") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise MistralAPIError("Mistral API response has no 'text' field.")

        logger.info("Mistral transcription received: %d chars.", len(text))
        return text


def _extract_error_message(resp: requests.Response) -> str:
    """Prefer ``{"error": {"message": ...}}`` from the body, else status + body."""
    fallback = f"HTTP {resp.status_code}: {resp.text}"
    try:
        body = resp.json()
    except ValueError:
        return fallback

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return fallback
