"""
Data models for recordings, transcripts and supported languages.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quickpost.schemas.common import CamelModel


class SupportedLanguage(str, Enum):
    ENGLISH = "en"
    HINDI = "hi"
    TAMIL = "ta"
    TELUGU = "te"
    BENGALI = "bn"
    MALAYALAM = "ml"
    KANNADA = "kn"
    GUJARATI = "gu"
    MARATHI = "mr"
    PUNJABI = "pa"

    @property
    def display_name(self) -> str:
        return LANGUAGE_NAMES[self]

    @classmethod
    def coerce(cls, code: Optional[str]) -> "SupportedLanguage":
        """Map a detected ISO 639-1 code onto a supported language, defaulting to English."""
        if not code:
            return cls.ENGLISH
        normalized = code.strip().lower().split("-")[0]
        try:
            return cls(normalized)
        except ValueError:
            return cls.ENGLISH


LANGUAGE_NAMES: dict[SupportedLanguage, str] = {
    SupportedLanguage.ENGLISH: "English",
    SupportedLanguage.HINDI: "Hindi",
    SupportedLanguage.TAMIL: "Tamil",
    SupportedLanguage.TELUGU: "Telugu",
    SupportedLanguage.BENGALI: "Bengali",
    SupportedLanguage.MALAYALAM: "Malayalam",
    SupportedLanguage.KANNADA: "Kannada",
    SupportedLanguage.GUJARATI: "Gujarati",
    SupportedLanguage.MARATHI: "Marathi",
    SupportedLanguage.PUNJABI: "Punjabi",
}


class RecordingSession(BaseModel):
    """One finalized microphone capture. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    audio: bytes
    mime_type: str = "audio/webm"
    duration_seconds: float = Field(default=0.0, ge=0.0)
    is_active: bool = False

    @property
    def size_bytes(self) -> int:
        return len(self.audio)


class Transcript(CamelModel):
    """Speech-to-text result for one recording session."""

    model_config = ConfigDict(frozen=True)

    text: str
    detected_language: SupportedLanguage = Field(default=SupportedLanguage.ENGLISH)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @field_validator("detected_language", mode="before")
    @classmethod
    def _coerce_language(cls, value: object) -> SupportedLanguage:
        if isinstance(value, SupportedLanguage):
            return value
        return SupportedLanguage.coerce(value if isinstance(value, str) else None)

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


class LanguageDetection(CamelModel):
    language: SupportedLanguage
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("language", mode="before")
    @classmethod
    def _coerce_language(cls, value: object) -> SupportedLanguage:
        if isinstance(value, SupportedLanguage):
            return value
        return SupportedLanguage.coerce(value if isinstance(value, str) else None)
