"""
Error taxonomy for the voice intake pipeline.

Services raise these; the quick post flow, the conversation driver and
the API layer catch them at their boundary and turn them into
notifications or HTTP responses.
"""

from __future__ import annotations


class QuickPostError(Exception):
    """Base class for every failure the pipeline reports to the user."""

    title = "Something went wrong"


class PermissionDenied(QuickPostError):
    """Microphone (or geolocation) access was refused."""

    title = "Microphone Permission Required"


class UnsupportedDevice(QuickPostError):
    """No recording, recognition or synthesis capability on this device."""

    title = "Voice Not Supported"


class TranscriptionFailed(QuickPostError):
    """Speech-to-text failed: network error, unsupported audio or no speech."""

    title = "Transcription Failed"


class ExtractionFailed(QuickPostError):
    """Structured extraction from a transcript failed."""

    title = "Extraction Failed"


class NetworkError(QuickPostError):
    """A marketplace call failed at the transport level or with a server error."""

    title = "Network Error"


class ValidationError(QuickPostError):
    """Input rejected before or by the server (malformed mobile, demo data, ...)."""

    title = "Invalid Details"


class RecognitionError(QuickPostError):
    """Speech recognition reported an error of a given kind."""

    title = "Voice Recognition Error"

    NO_SPEECH = "no-speech"
    ABORTED = "aborted"

    def __init__(self, kind: str, message: str | None = None) -> None:
        self.kind = kind
        super().__init__(message or f"speech recognition error: {kind}")

    @property
    def is_no_speech(self) -> bool:
        return self.kind == self.NO_SPEECH

    @property
    def is_aborted(self) -> bool:
        return self.kind == self.ABORTED
