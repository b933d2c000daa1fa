"""
Field Extractor Client.

Turns a transcript into a typed job or user record by calling the
voice API's extraction endpoints. When demo mode is switched on, a
failed call yields a ``DemoMode`` result carrying sample data; the tag
is what lets the review screen and the job poster refuse to treat it
as the user's own words.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from quickpost.config import get_settings
from quickpost.exceptions import ExtractionFailed
from quickpost.logging_config import get_logger
from quickpost.schemas.extraction import (
    BudgetRange,
    DemoMode,
    Extracted,
    ExtractedJob,
    ExtractedUser,
    ExtractionMode,
    ExtractionOutcome,
    JobLocation,
    Urgency,
    UserLocation,
)
from quickpost.schemas.voice import SupportedLanguage, Transcript
from quickpost.services.api_client import ApiClient, error_message

settings = get_settings()
logger = get_logger(__name__)

EXTRACT_PATHS: dict[ExtractionMode, str] = {
    ExtractionMode.JOB: "/api/voice/extract-job",
    ExtractionMode.USER: "/api/voice/extract-user",
}

RECORD_TYPES: dict[ExtractionMode, type[ExtractedJob] | type[ExtractedUser]] = {
    ExtractionMode.JOB: ExtractedJob,
    ExtractionMode.USER: ExtractedUser,
}

# Sample records shown only under demo mode, always wrapped in DemoMode
DEMO_JOB = ExtractedJob(
    job_title="Kitchen Sink Repair",
    job_description="Need to fix a leaking kitchen sink. Water is dripping constantly from the tap.",
    service_category="plumbing",
    urgency=Urgency.HIGH,
    budget=BudgetRange(min=1500, max=2500),
    location=JobLocation(area="Anna Nagar", district="Chennai", state="Tamil Nadu"),
    requirements=["Fix leaking tap", "Check sink drainage"],
    timeframe="Today or tomorrow",
    original_language=SupportedLanguage.ENGLISH,
)

DEMO_USER = ExtractedUser(
    first_name="John",
    last_name="Doe",
    mobile="9876543210",
    location=UserLocation(area="Anna Nagar", district="Chennai", state="Tamil Nadu"),
    confidence=0.0,
)

class Extractor(Protocol):
    async def extract(self, transcript: Transcript, mode: ExtractionMode) -> ExtractionOutcome: ...


def demo_record(mode: ExtractionMode) -> ExtractedJob | ExtractedUser:
    return DEMO_JOB if mode == ExtractionMode.JOB else DEMO_USER


class FieldExtractor:
    """Remote extractor backed by ``/api/voice/extract-job|user``."""

    def __init__(self, api: ApiClient | None = None, demo_mode: bool | None = None) -> None:
        self.api = api or ApiClient()
        self.demo_mode = settings.demo_mode if demo_mode is None else demo_mode

    async def extract(self, transcript: Transcript, mode: ExtractionMode) -> ExtractionOutcome:
        """
        Extract a job or user record from ``transcript``.

        Raises:
            ExtractionFailed: the transcript is blank, or the remote call
                failed and demo mode is off.
        """
        if transcript.is_blank:
            raise ExtractionFailed("Nothing to extract: the transcript is empty.")

        payload = {
            "text": transcript.text,
            "detectedLanguage": transcript.detected_language.value,
        }
        logger.info("extraction_started", mode=mode.value, chars=len(transcript.text))

        try:
            body = await self.api.post(EXTRACT_PATHS[mode], payload)
            record = RECORD_TYPES[mode].model_validate(body)
        except httpx.HTTPStatusError as e:
            return self._failed(mode, error_message(e), e)
        except httpx.HTTPError as e:
            return self._failed(mode, "Could not reach the extraction service.", e)
        except ValueError as e:
            # pydantic's ValidationError and JSON decode errors are both ValueErrors
            return self._failed(mode, "Extraction service returned an unexpected response.", e)

        logger.info("extraction_complete", mode=mode.value)
        return Extracted(record=record)

    def _failed(self, mode: ExtractionMode, message: str, error: Exception) -> ExtractionOutcome:
        logger.error("extraction_error", mode=mode.value, error=str(error))
        if self.demo_mode:
            logger.warning("extraction_demo_fallback", mode=mode.value)
            return DemoMode(record=demo_record(mode), reason=message)
        raise ExtractionFailed(message) from error
