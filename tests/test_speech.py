import asyncio

import pytest

from quickpost.exceptions import RecognitionError
from quickpost.schemas.voice import SupportedLanguage
from quickpost.services.console_speech import ConsoleRecognizer, ConsoleSynthesizer
from quickpost.services.speech import Utterance, UtteranceOutcome

EN = SupportedLanguage.ENGLISH


@pytest.mark.asyncio
async def test_first_resolution_wins():
    utterance = Utterance("hello", EN)

    assert utterance.mark_ended() is True
    assert utterance.mark_failed(RuntimeError("late")) is False
    assert utterance.cancel() is False

    assert await utterance.wait(1.0) == UtteranceOutcome.ENDED
    assert utterance.error is None


@pytest.mark.asyncio
async def test_timeout_resolves_and_ignores_late_end():
    utterance = Utterance("hello", EN)

    assert await utterance.wait(0.01) == UtteranceOutcome.TIMED_OUT
    assert utterance.mark_ended() is False
    assert await utterance.wait(0.01) == UtteranceOutcome.TIMED_OUT


@pytest.mark.asyncio
async def test_end_reported_from_another_task():
    utterance = Utterance("hello", EN)
    asyncio.get_running_loop().call_later(0.01, utterance.mark_ended)

    assert await utterance.wait(1.0) == UtteranceOutcome.ENDED


@pytest.mark.asyncio
async def test_failure_keeps_error():
    utterance = Utterance("hello", EN)
    error = RuntimeError("audio device lost")
    utterance.mark_failed(error)

    assert await utterance.wait(1.0) == UtteranceOutcome.FAILED
    assert utterance.error is error


@pytest.mark.asyncio
async def test_console_synthesizer_prints_and_ends():
    lines = []
    synthesizer = ConsoleSynthesizer(write=lines.append)

    utterance = synthesizer.speak("Which state are you in?", SupportedLanguage.TAMIL)

    assert utterance.done
    assert lines == ["ASSISTANT [ta]: Which state are you in?"]


@pytest.mark.asyncio
async def test_console_recognizer():
    answers = iter(["Kerala", "   "])
    recognizer = ConsoleRecognizer(read=lambda prompt: next(answers))

    assert await recognizer.listen(EN) == "Kerala"
    with pytest.raises(RecognitionError) as exc:
        await recognizer.listen(EN)
    assert exc.value.is_no_speech


@pytest.mark.asyncio
async def test_console_recognizer_eof_and_abort():
    def eof(prompt):
        raise EOFError

    recognizer = ConsoleRecognizer(read=eof)
    with pytest.raises(RecognitionError) as exc:
        await recognizer.listen(EN)
    assert exc.value.is_aborted

    recognizer = ConsoleRecognizer(read=lambda prompt: "Salem")
    recognizer.abort()
    with pytest.raises(RecognitionError) as exc:
        await recognizer.listen(EN)
    assert exc.value.is_aborted
