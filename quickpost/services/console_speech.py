"""
Text-mode speech backends for running the voice assistant in a terminal.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from quickpost.exceptions import RecognitionError
from quickpost.schemas.voice import SupportedLanguage
from quickpost.services.speech import Utterance


class ConsoleSynthesizer:
    """Prints prompts instead of speaking them; playback ends immediately."""

    def __init__(self, write: Callable[[str], None] = print) -> None:
        self._write = write
        self._current: Optional[Utterance] = None

    def speak(self, text: str, language: SupportedLanguage) -> Utterance:
        utterance = Utterance(text, language)
        self._current = utterance
        self._write(f"ASSISTANT [{language.value}]: {text}")
        utterance.mark_ended()
        return utterance

    def cancel(self) -> None:
        if self._current is not None:
            self._current.cancel()


class ConsoleRecognizer:
    """Reads typed answers. A blank line is no speech, EOF aborts."""

    def __init__(self, read: Callable[[str], str] = input) -> None:
        self._read = read
        self._aborted = False

    async def listen(self, language: SupportedLanguage) -> str:
        if self._aborted:
            raise RecognitionError(RecognitionError.ABORTED)
        try:
            line = await asyncio.to_thread(self._read, "YOU: ")
        except EOFError as e:
            raise RecognitionError(RecognitionError.ABORTED) from e
        if not line.strip():
            raise RecognitionError(RecognitionError.NO_SPEECH)
        return line

    def abort(self) -> None:
        self._aborted = True
