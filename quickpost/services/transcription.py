"""
Transcription Client.

Sends a finalized recording to the voice API and returns the
transcript with its detected language. One network call per
recording; retrying means recording again.
"""

from __future__ import annotations

import base64

import httpx
from pydantic import ValidationError as PydanticValidationError

from quickpost.exceptions import TranscriptionFailed
from quickpost.logging_config import get_logger
from quickpost.schemas.voice import RecordingSession, SupportedLanguage, Transcript
from quickpost.services.api_client import ApiClient, error_message

logger = get_logger(__name__)

TRANSCRIBE_PATH = "/api/voice/transcribe"
SUPPORTED_CODES = frozenset(lang.value for lang in SupportedLanguage)


class TranscriptionClient:
    def __init__(self, api: ApiClient | None = None) -> None:
        self.api = api or ApiClient()

    async def transcribe(self, session: RecordingSession) -> Transcript:
        """
        Transcribe one recording session.

        Raises:
            TranscriptionFailed: the session is still active or empty, the
                call failed, or the service heard no speech.
        """
        if session.is_active:
            raise TranscriptionFailed("Recording must be stopped before it can be transcribed.")
        if not session.audio:
            raise TranscriptionFailed("The recording is empty.")

        payload = {
            "audioData": base64.b64encode(session.audio).decode("ascii"),
            "mimeType": session.mime_type,
        }
        logger.info("transcription_started", size_bytes=session.size_bytes, mime_type=session.mime_type)

        try:
            body = await self.api.post(TRANSCRIBE_PATH, payload)
        except httpx.HTTPStatusError as e:
            logger.error("transcription_http_error", status=e.response.status_code)
            raise TranscriptionFailed(error_message(e)) from e
        except httpx.HTTPError as e:
            logger.error("transcription_network_error", error=str(e))
            raise TranscriptionFailed("Could not reach the transcription service.") from e
        except ValueError as e:
            raise TranscriptionFailed("Transcription service returned invalid JSON.") from e

        if not isinstance(body, dict):
            raise TranscriptionFailed("Transcription service returned an unexpected response.")

        raw_language = str(body.get("detectedLanguage") or "").lower().split("-")[0]
        if raw_language and raw_language not in SUPPORTED_CODES:
            logger.warning("unsupported_language_detected", language=raw_language)

        try:
            transcript = Transcript.model_validate(body)
        except PydanticValidationError as e:
            raise TranscriptionFailed("Transcription service returned an unexpected response.") from e

        if transcript.is_blank:
            raise TranscriptionFailed("No speech was detected in the recording.")

        logger.info(
            "transcription_complete",
            chars=len(transcript.text),
            language=transcript.detected_language.value,
        )
        return transcript
