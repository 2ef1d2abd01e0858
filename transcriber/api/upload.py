"""
transcriber/api/upload.py
==========================
API Upload Endpoint — Transcriber

Responsibility:
    - Expose POST /api/v1/transcribe
    - Accept a single audio file via multipart/form-data: uploads must be
      .wav, .mp3, .m4a or .ogg; browser recordings (WebM/Opus) are passed
      straight to the decoder
    - Reject requests missing an audio file or carrying an unsupported type
    - Run the transcription pipeline off the event loop
    - Map pipeline failures onto HTTP status codes

One pipeline is built per request; the decoder (and its ffmpeg handle)
and the provider are shared across requests.
"""

import asyncio
import logging
import threading
from functools import lru_cache

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from transcriber.audio.decoder import PydubDecoder
from transcriber.audio.formats import SUPPORTED_FORMATS_LABEL, validate_upload
from transcriber.audio.types import RawAudioSource
from transcriber.config import SEGMENT_THRESHOLD_SECONDS, TARGET_SAMPLE_RATE
from transcriber.errors import (
    AudioValidationError,
    DecodeFailureError,
    DurationUnavailableError,
    NormalizationError,
    TranscriptionCancelledError,
    TranscriptionFailedError,
    UnsupportedFormatError,
)
from transcriber.pipeline import VALID_ORIGINS, TranscriptionPipeline
from transcriber.stt.base import TranscriptionProvider
from transcriber.stt.router import create_provider

logger = logging.getLogger("transcriber.api")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Transcriber",
    description="Audio normalization, segmentation and transcription endpoint.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_decoder() -> PydubDecoder:
    return PydubDecoder()


@lru_cache(maxsize=1)
def get_provider() -> TranscriptionProvider:
    return create_provider()


def get_pipeline() -> TranscriptionPipeline:
    return TranscriptionPipeline(get_provider(), decoder=get_decoder())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/api/v1/health")
async def health(check_api_key: bool = False):
    """
    Report service configuration.

    With ``?check_api_key=true`` the provider's key is verified against
    its API (providers without a key check report ``"unsupported"``).
    """
    decoder = get_decoder()
    provider = get_provider()
    body = {
        "status": "ok",
        "provider": provider.name,
        "converter": decoder.converter,
        "target_sample_rate": TARGET_SAMPLE_RATE,
        "segment_threshold_seconds": SEGMENT_THRESHOLD_SECONDS,
        "supported_formats": SUPPORTED_FORMATS_LABEL,
    }

    if check_api_key:
        validate = getattr(provider, "validate_api_key", None)
        if validate is None:
            body["api_key"] = "unsupported"
        else:
            try:
                await asyncio.to_thread(validate)
                body["api_key"] = "valid"
            except RuntimeError as exc:
                logger.warning("API key check failed for %s: %s", provider.name, exc)
                body["api_key"] = f"invalid: {exc}"

    return body


@app.post("/api/v1/transcribe")
async def transcribe_audio(
    audio_file: UploadFile = File(...),
    source: str = Form("upload"),
    pipeline: TranscriptionPipeline = Depends(get_pipeline),
):
    """
    Accept an audio file and return its merged transcript.

    Args:
        audio_file: Uploaded audio file.
        source:     ``upload`` or ``recording``; echoed in the metadata.

    Returns:
        ``{"text": str, "segments": [str, ...], "metadata": {...}}``
    """
    if audio_file is None or not audio_file.filename:
        raise HTTPException(status_code=400, detail="Audio file is required.")
    if source not in VALID_ORIGINS:
        raise HTTPException(
            status_code=422, detail=f"source must be one of: {', '.join(VALID_ORIGINS)}"
        )

    logger.info("Audio file received: %s (%s)", audio_file.filename, audio_file.content_type)

    try:
        audio_bytes = await audio_file.read()
    except Exception:
        raise HTTPException(status_code=400, detail="Failed to read uploaded file.")

    logger.info("File size: %.2f KB", len(audio_bytes) / 1024)

    try:
        validate_upload(
            audio_file.filename,
            audio_file.content_type,
            audio_bytes,
            check_format=(source == "upload"),
        )
    except AudioValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    raw = RawAudioSource(
        data=audio_bytes,
        filename=audio_file.filename,
        content_type=audio_file.content_type,
    )

    cancel_event = threading.Event()
    try:
        result = await asyncio.to_thread(
            pipeline.process, raw, cancel_event=cancel_event, origin=source
        )
    except asyncio.CancelledError:
        # Client went away; stop before the next segment is sent.
        cancel_event.set()
        raise
    except UnsupportedFormatError as exc:
        raise HTTPException(status_code=415, detail=str(exc))
    except (DecodeFailureError, DurationUnavailableError, NormalizationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except TranscriptionFailedError as exc:
        logger.error("Transcription failed at segment %d: %s", exc.segment_index, exc.cause)
        raise HTTPException(status_code=502, detail=str(exc))
    except TranscriptionCancelledError as exc:
        raise HTTPException(status_code=499, detail=str(exc))
    except Exception as exc:
        logger.error("Pipeline unexpected error: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Pipeline failed: {exc}")

    logger.info("Transcription complete for %s.", audio_file.filename)
    return JSONResponse(status_code=200, content=result.to_dict())
