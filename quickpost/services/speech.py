"""
Speech I/O contracts for the voice assistant.

Each spoken prompt is an ``Utterance``: one future that resolves the
first time playback ends, fails, or is cancelled. Whatever fires later
is dropped by the future itself, so backends can report every event
they see without coordinating with each other.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional, Protocol

from quickpost.logging_config import get_logger
from quickpost.schemas.voice import SupportedLanguage

logger = get_logger(__name__)


class UtteranceOutcome(str, Enum):
    ENDED = "ended"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class Utterance:
    """Completion handle for one spoken prompt."""

    def __init__(self, text: str, language: SupportedLanguage) -> None:
        self.text = text
        self.language = language
        self._future: asyncio.Future[UtteranceOutcome] = asyncio.get_running_loop().create_future()
        self.error: Optional[BaseException] = None

    @property
    def done(self) -> bool:
        return self._future.done()

    def _resolve(self, outcome: UtteranceOutcome) -> bool:
        if self._future.done():
            return False
        self._future.set_result(outcome)
        return True

    def mark_ended(self) -> bool:
        return self._resolve(UtteranceOutcome.ENDED)

    def mark_failed(self, error: BaseException | None = None) -> bool:
        resolved = self._resolve(UtteranceOutcome.FAILED)
        if resolved:
            self.error = error
        return resolved

    def cancel(self) -> bool:
        return self._resolve(UtteranceOutcome.CANCELLED)

    async def wait(self, timeout: float) -> UtteranceOutcome:
        """
        Wait for playback to finish, at most ``timeout`` seconds.

        A timeout resolves the utterance as TIMED_OUT so a late end
        event cannot change the outcome afterwards.
        """
        try:
            return await asyncio.wait_for(asyncio.shield(self._future), timeout)
        except asyncio.TimeoutError:
            self._resolve(UtteranceOutcome.TIMED_OUT)
            logger.warning("speech_end_timeout", chars=len(self.text), timeout=timeout)
            return self._future.result()


class SpeechSynthesizer(Protocol):
    def speak(self, text: str, language: SupportedLanguage) -> Utterance: ...

    def cancel(self) -> None: ...


class SpeechRecognizer(Protocol):
    async def listen(self, language: SupportedLanguage) -> str:
        """Return one finalized transcript; raise RecognitionError on failure."""
        ...

    def abort(self) -> None: ...
