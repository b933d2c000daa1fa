"""
API Router: Voice Endpoints.

Transcription, job/user extraction, location resolution and language
detection for the Quick Post client.
"""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import Field

from quickpost.config import ExtractionBackend, get_settings
from quickpost.exceptions import ExtractionFailed, TranscriptionFailed
from quickpost.logging_config import get_logger
from quickpost.schemas.common import CamelModel
from quickpost.schemas.extraction import ExtractedJob, ExtractedUser, ExtractionMode, ResolvedLocation
from quickpost.schemas.voice import LanguageDetection, Transcript
from quickpost.services import gemini_service
from quickpost.services.gemini_service import GeminiExtractor
from quickpost.services.rule_extractor import RuleBasedExtractor

settings = get_settings()
logger = get_logger(__name__)
router = APIRouter(prefix="/api/voice", tags=["Voice"])


class TranscribeRequest(CamelModel):
    audio_data: str = Field(min_length=1)
    mime_type: str = "audio/webm"


class ExtractRequest(CamelModel):
    text: str
    detected_language: str = "en"


class ResolveLocationRequest(CamelModel):
    partial_address: str = Field(min_length=1)
    detected_language: str = "en"


class DetectLanguageRequest(CamelModel):
    text: str


def get_extractor() -> Union[GeminiExtractor, RuleBasedExtractor]:
    if settings.extraction_backend == ExtractionBackend.RULES:
        return RuleBasedExtractor()
    return GeminiExtractor()


def _failure(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"message": message})


@router.post("/transcribe", response_model=None)
async def transcribe(body: TranscribeRequest) -> Union[dict, JSONResponse]:
    """Transcribe base64 audio and detect its language."""
    try:
        transcript = await gemini_service.transcribe_audio(body.audio_data, body.mime_type)
    except TranscriptionFailed as e:
        logger.error("transcribe_endpoint_error", error=str(e))
        return _failure("Failed to transcribe audio")
    return transcript.to_wire()


@router.post("/extract-job", response_model=None)
async def extract_job(body: ExtractRequest) -> Union[dict, JSONResponse]:
    return await _extract(body, ExtractionMode.JOB, "Failed to extract job information")


@router.post("/extract-user", response_model=None)
async def extract_user(body: ExtractRequest) -> Union[dict, JSONResponse]:
    return await _extract(body, ExtractionMode.USER, "Failed to extract user information")


async def _extract(body: ExtractRequest, mode: ExtractionMode, failure: str) -> Union[dict, JSONResponse]:
    transcript = Transcript(text=body.text, detected_language=body.detected_language)
    try:
        outcome = await get_extractor().extract(transcript, mode)
    except ExtractionFailed as e:
        logger.error("extract_endpoint_error", mode=mode.value, error=str(e))
        return _failure(failure)

    record: Union[ExtractedJob, ExtractedUser] = outcome.record
    logger.info("extract_endpoint_complete", mode=mode.value, backend=settings.extraction_backend.value)
    return record.to_wire()


@router.post("/resolve-location")
async def resolve_location(body: ResolveLocationRequest) -> dict:
    resolved: ResolvedLocation = await gemini_service.resolve_location(body.partial_address, body.detected_language)
    return resolved.to_wire()


@router.post("/detect-language")
async def detect_language(body: DetectLanguageRequest) -> dict:
    detection: LanguageDetection = await gemini_service.detect_language(body.text)
    return detection.to_wire()
