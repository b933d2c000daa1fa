"""
Gemini Service.

Server-side model calls behind the voice API: transcription with
language detection, job and user extraction, partial-address resolution
and language detection. Calls the Gemini ``generateContent`` REST
endpoint in JSON response mode.

Location resolution and language detection degrade to low-confidence
defaults instead of failing; the other calls raise.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from quickpost.config import get_settings
from quickpost.exceptions import ExtractionFailed, TranscriptionFailed
from quickpost.logging_config import get_logger
from quickpost.schemas.extraction import (
    Extracted,
    ExtractedJob,
    ExtractedUser,
    ExtractionMode,
    ResolvedLocation,
)
from quickpost.schemas.voice import LanguageDetection, SupportedLanguage, Transcript
from quickpost.services.gazetteer import normalize_service_name

settings = get_settings()
logger = get_logger(__name__)

SERVICE_CATEGORIES = (
    "plumbing, electrical, painting, cleaning, carpentry, mechanics, "
    "appliance repair, security, gardening"
)

TRANSCRIBE_PROMPT = """Please transcribe this audio and provide:
1. The transcribed text
2. The detected language (ISO 639-1 code like 'en', 'hi', 'ta', 'te', etc.)
3. Confidence score (0-1)

Respond in JSON format:
{
  "text": "transcribed text here",
  "detectedLanguage": "language_code",
  "confidence": 0.95
}"""

EXTRACT_JOB_PROMPT = """Extract job posting information from this text: "{text}"

The text is in language: {language}

Please extract and translate to English:
1. Job title/service needed
2. Detailed job description
3. Service category ({categories})
4. Urgency level (low, medium, high)
5. Budget range if mentioned (in Indian Rupees)
6. Location details (area, district, state)
7. Specific requirements
8. Time frame/deadline

Respond in this JSON format:
{{
  "jobTitle": "extracted and translated job title",
  "jobDescription": "detailed description in English",
  "serviceCategory": "matching category from list above",
  "urgency": "low/medium/high",
  "budget": {{"min": 500, "max": 2000}},
  "location": {{
    "area": "area name if mentioned",
    "district": "district name if mentioned",
    "state": "state name if mentioned",
    "fullAddress": "complete address if available"
  }},
  "requirements": ["requirement 1", "requirement 2"],
  "timeframe": "when they need it done",
  "originalLanguage": "{language}"
}}

If budget is not mentioned, set budget to null.
If location details are partial, include only what's available."""

EXTRACT_USER_PROMPT = """Extract user information from this text for account creation: "{text}"

The text is in language: {language}

Look for:
1. First name and last name
2. Mobile number (if mentioned, should be 10 digits)
3. Location: area name, district, state

Respond in this JSON format:
{{
  "firstName": "extracted first name",
  "lastName": "extracted last name",
  "mobile": "10-digit mobile number or null if not found",
  "location": {{
    "area": "area name if mentioned",
    "district": "district name if mentioned",
    "state": "state name if mentioned"
  }},
  "confidence": 0.85
}}

If information is unclear or not provided, set appropriate fields to null.
Set confidence based on how clear and complete the information is."""

RESOLVE_LOCATION_PROMPT = """Resolve this partial Indian address to complete location details: "{address}"

The text is in language: {language}

Using your knowledge of Indian geography, provide the most likely:
1. Area/locality name
2. District name
3. State name
4. Confidence score based on how certain you are

Respond in this JSON format:
{{
  "area": "resolved area/locality name",
  "district": "resolved district name",
  "state": "resolved state name",
  "confidence": 0.90
}}

If you cannot resolve with reasonable confidence, set confidence below 0.7.
Use standard Indian place names and spellings."""

DETECT_LANGUAGE_PROMPT = """Detect the language of this text: "{text}"

Respond with:
{{
  "language": "ISO 639-1 language code (like en, hi, ta, te, bn, ml, kn, gu, mr, pa)",
  "confidence": 0.95
}}"""

UNRESOLVED_CONFIDENCE = 0.1
FALLBACK_DETECTION = LanguageDetection(language=SupportedLanguage.ENGLISH, confidence=0.5)


class GeminiError(Exception):
    """The model call failed or returned something other than a JSON object."""


async def transcribe_audio(
    audio_base64: str,
    mime_type: str = "audio/webm",
    client: Optional[httpx.AsyncClient] = None,
) -> Transcript:
    """Transcribe base64 audio and detect its language."""
    parts = [
        {"inlineData": {"data": audio_base64, "mimeType": mime_type}},
        {"text": TRANSCRIBE_PROMPT},
    ]
    try:
        body = await _generate(parts, client=client)
        transcript = Transcript.model_validate({
            "text": body.get("text") or "",
            "detectedLanguage": body.get("detectedLanguage") or "en",
            "confidence": _clamp(body.get("confidence")),
        })
    except (GeminiError, PydanticValidationError) as e:
        logger.error("gemini_transcription_error", error=str(e))
        raise TranscriptionFailed("Failed to transcribe audio") from e

    logger.info("gemini_transcription_complete", chars=len(transcript.text), language=transcript.detected_language.value)
    return transcript


async def extract_job_information(
    text: str,
    detected_language: str = "en",
    client: Optional[httpx.AsyncClient] = None,
) -> ExtractedJob:
    prompt = EXTRACT_JOB_PROMPT.format(text=text, language=detected_language, categories=SERVICE_CATEGORIES)
    try:
        body = await _generate([{"text": prompt}], client=client)
        body.setdefault("originalLanguage", detected_language)
        body["serviceCategory"] = normalize_service_name(str(body.get("serviceCategory") or ""))
        return ExtractedJob.model_validate(body)
    except (GeminiError, PydanticValidationError) as e:
        logger.error("gemini_extraction_error", mode="job", error=str(e))
        raise ExtractionFailed("Failed to extract job information") from e


async def extract_user_information(
    text: str,
    detected_language: str = "en",
    client: Optional[httpx.AsyncClient] = None,
) -> ExtractedUser:
    prompt = EXTRACT_USER_PROMPT.format(text=text, language=detected_language)
    try:
        body = await _generate([{"text": prompt}], client=client)
        body["confidence"] = _clamp(body.get("confidence"))
        return ExtractedUser.model_validate(body)
    except (GeminiError, PydanticValidationError) as e:
        logger.error("gemini_extraction_error", mode="user", error=str(e))
        raise ExtractionFailed("Failed to extract user information") from e


async def resolve_location(
    partial_address: str,
    detected_language: str = "en",
    client: Optional[httpx.AsyncClient] = None,
) -> ResolvedLocation:
    """
    Resolve a partial Indian address to area, district and state.

    Never raises; an unresolvable address comes back as the input area
    with confidence 0.1.
    """
    prompt = RESOLVE_LOCATION_PROMPT.format(address=partial_address, language=detected_language)
    try:
        body = await _generate([{"text": prompt}], client=client)
        return ResolvedLocation(
            area=str(body.get("area") or ""),
            district=str(body.get("district") or ""),
            state=str(body.get("state") or ""),
            confidence=_clamp(body.get("confidence")),
        )
    except GeminiError as e:
        logger.warning("gemini_location_unresolved", error=str(e))
        return ResolvedLocation(area=partial_address, confidence=UNRESOLVED_CONFIDENCE)


async def detect_language(text: str, client: Optional[httpx.AsyncClient] = None) -> LanguageDetection:
    """Never raises; falls back to English at 0.5 confidence."""
    try:
        body = await _generate([{"text": DETECT_LANGUAGE_PROMPT.format(text=text)}], client=client)
        return LanguageDetection(language=body.get("language") or "en", confidence=_clamp(body.get("confidence")))
    except (GeminiError, PydanticValidationError) as e:
        logger.warning("gemini_language_detection_failed", error=str(e))
        return FALLBACK_DETECTION


class GeminiExtractor:
    """``Extractor`` backed directly by Gemini, used by the voice API."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self.client = client

    async def extract(self, transcript: Transcript, mode: ExtractionMode) -> Extracted:
        if transcript.is_blank:
            raise ExtractionFailed("Nothing to extract: the transcript is empty.")
        language = transcript.detected_language.value
        if mode == ExtractionMode.JOB:
            record = await extract_job_information(transcript.text, language, client=self.client)
        else:
            record = await extract_user_information(transcript.text, language, client=self.client)
        return Extracted(record=record)


async def _generate(parts: list[dict[str, Any]], client: Optional[httpx.AsyncClient] = None) -> dict[str, Any]:
    """POST one ``generateContent`` request and decode the JSON object it returns."""
    if not settings.gemini_api_key:
        raise GeminiError("GEMINI_API_KEY is not configured")

    url = f"{settings.gemini_base_url.rstrip('/')}/models/{settings.gemini_model}:generateContent"
    payload = {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "temperature": 0.1,
        },
    }

    try:
        if client is not None:
            response = await client.post(url, params={"key": settings.gemini_api_key}, json=payload)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as session:
                response = await session.post(url, params={"key": settings.gemini_api_key}, json=payload)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPError as e:
        raise GeminiError(f"Gemini request failed: {e}") from e
    except ValueError as e:
        raise GeminiError("Gemini returned invalid JSON") from e

    try:
        content = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise GeminiError("Gemini response had no content") from e

    try:
        parsed = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise GeminiError("Gemini content was not JSON") from e

    if not isinstance(parsed, dict):
        raise GeminiError("Gemini content was not a JSON object")
    return parsed


def _strip_code_fence(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


def _clamp(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(1.0, number))
