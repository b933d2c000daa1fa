"""
Conversation Driver for the Voice Assistant.

Walks the user through a fixed sequence of spoken questions (service,
state, district, description), matches each answer against the
gazetteer, and reports selections through callbacks. The step index
only moves forward, and only after an accepted answer.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence

from quickpost.config import get_settings
from quickpost.exceptions import RecognitionError
from quickpost.logging_config import get_logger
from quickpost.schemas.conversation import (
    ConversationContext,
    ConversationStep,
    DriverOutcome,
    MatchDecision,
    PendingConfirmation,
    StepField,
)
from quickpost.schemas.voice import SupportedLanguage
from quickpost.services.fuzzy_match import match_location, match_service
from quickpost.services.gazetteer import Gazetteer, get_gazetteer
from quickpost.services.notifications import LoggingNotifier, Notification, Notifier, Variant
from quickpost.services.speech import SpeechRecognizer, SpeechSynthesizer, UtteranceOutcome

settings = get_settings()
logger = get_logger(__name__)

EN = SupportedLanguage.ENGLISH
TA = SupportedLanguage.TAMIL


# The intake questions, in the order they are asked
CONVERSATION_STEPS: tuple[ConversationStep, ...] = (
    ConversationStep(
        index=0,
        field=StepField.SERVICE,
        prompt={
            EN: "What type of service do you need? For example, say plumber, electrician, painter, or mechanic.",
            TA: "உங்களுக்கு என்ன வகையான சேவை தேவை? உதாரணமாக, குழாய் பழுதுபார்ப்பவர், மின்சாரக் கொத்தனார், ஓவியர், அல்லது மெக்கானிக் என்று சொல்லுங்கள்.",
        },
        retry={
            EN: "Sorry, I couldn't find that service. Please try again or type your answer.",
            TA: "மன்னிக்கவும், அந்த சேவையை கண்டுபிடிக்க முடியவில்லை. தயவுசெய்து மீண்டும் சொல்லுங்கள் அல்லது டைப் செய்யுங்கள்.",
        },
    ),
    ConversationStep(
        index=1,
        field=StepField.STATE,
        prompt={
            EN: "Which state are you in? Please say your state name.",
            TA: "நீங்கள் எந்த மாநிலத்தில் இருக்கிறீர்கள்? உங்கள் மாநிலத்தின் பெயரைச் சொல்லுங்கள்.",
        },
        retry={
            EN: "Sorry, I couldn't find that state. Please say the full state name, for example Tamil Nadu or Kerala.",
            TA: "மன்னிக்கவும், அந்த மாநிலத்தை கண்டுபிடிக்க முடியவில்லை. முழு மாநிலப் பெயரைச் சொல்லுங்கள், உதாரணமாக தமிழ்நாடு அல்லது கேரளா.",
        },
    ),
    ConversationStep(
        index=2,
        field=StepField.DISTRICT,
        prompt={
            EN: "Which district are you in? Please say your district name.",
            TA: "நீங்கள் எந்த மாவட்டத்தில் இருக்கிறீர்கள்? உங்கள் மாவட்டத்தின் பெயரைச் சொல்லுங்கள்.",
        },
        retry={
            EN: "Sorry, I couldn't find that district. Please say only the district name, slowly and clearly.",
            TA: "மன்னிக்கவும், அந்த மாவட்டத்தை கண்டுபிடிக்க முடியவில்லை. மாவட்டத்தின் பெயரை மட்டும் மெதுவாகவும் தெளிவாகவும் சொல்லுங்கள்.",
        },
    ),
    ConversationStep(
        index=3,
        field=StepField.DESCRIPTION,
        prompt={
            EN: "Please describe your service requirement in detail.",
            TA: "உங்கள் சேவைத் தேவையை விரிவாக விவரிக்கவும்.",
        },
        retry={
            EN: "I didn't hear a description. Please describe what you need done.",
            TA: "விவரம் கேட்கவில்லை. உங்களுக்கு என்ன வேலை வேண்டும் என்று விவரிக்கவும்.",
        },
    ),
)

ACKNOWLEDGEMENTS: dict[StepField, dict[SupportedLanguage, str]] = {
    StepField.SERVICE: {
        EN: "Great! I've selected {name} service.",
        TA: "சிறப்பு! {name} சேவையை தேர்வு செய்தேன்.",
    },
    StepField.STATE: {
        EN: "Great! I've selected {name}.",
        TA: "சிறப்பு! {name} மாநிலத்தை தேர்வு செய்தேன்.",
    },
    StepField.DISTRICT: {
        EN: "Great! I've selected {name} district.",
        TA: "சிறப்பு! {name} மாவட்டத்தை தேர்வு செய்தேன்.",
    },
    StepField.DESCRIPTION: {
        EN: "Great! I've recorded your service description. You can now proceed with the search.",
        TA: "சிறப்பு! உங்கள் சேவை விவரணையை பதிவு செய்தேன். நீங்கள் இப்போது தேடலைத் தொடரலாம்.",
    },
}

CONFIRM_PROMPT = {
    EN: "Did you mean {name}? Please say yes or no.",
    TA: "நீங்கள் {name} என்று சொன்னீர்களா? ஆம் அல்லது இல்லை என்று சொல்லுங்கள்.",
}

EXIT_MESSAGE = {
    EN: "I couldn't catch that after several tries. Please type your answer instead.",
    TA: "பல முறை முயன்றும் புரியவில்லை. தயவுசெய்து உங்கள் பதிலை டைப் செய்யுங்கள்.",
}

AFFIRMATIVE_WORDS = frozenset({
    "yes", "yeah", "yep", "yup", "correct", "right", "sure", "ok", "okay",
    "haan", "ha", "ஆம்", "ஆமாம்", "சரி",
})


def _localized(table: dict[SupportedLanguage, str], language: SupportedLanguage) -> str:
    return table.get(language) or table[EN]


def _is_affirmative(utterance: str) -> bool:
    words = utterance.lower().replace(",", " ").replace(".", " ").split()
    return any(w in AFFIRMATIVE_WORDS for w in words)


def _noop(_: str) -> None:
    return None


@dataclass
class ConversationCallbacks:
    """Selection setters owned by the form the assistant is filling in."""
    on_service_select: Callable[[str], None] = field(default=_noop)
    on_state_select: Callable[[str], None] = field(default=_noop)
    on_district_select: Callable[[str], None] = field(default=_noop)
    on_description_update: Callable[[str], None] = field(default=_noop)


@dataclass(frozen=True)
class StepResult:
    """Outcome of matching one answer: what to say and the next context."""
    decision: MatchDecision
    reply: str
    context: ConversationContext
    value: Optional[str] = None


class ConversationDriver:
    """
    Drives the spoken intake conversation.

    ``process_answer()`` is the pure matching step: context in, result
    out, no speech or callbacks. ``run()`` wraps it in the speak, listen,
    match, acknowledge loop and owns every side effect.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        recognizer: SpeechRecognizer,
        callbacks: ConversationCallbacks | None = None,
        *,
        gazetteer: Gazetteer | None = None,
        notifier: Notifier | None = None,
        language: SupportedLanguage = EN,
        steps: Sequence[ConversationStep] = CONVERSATION_STEPS,
        advance_delay: float | None = None,
        close_delay: float | None = None,
        speech_timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        self.synthesizer = synthesizer
        self.recognizer = recognizer
        self.callbacks = callbacks or ConversationCallbacks()
        self.gazetteer = gazetteer or get_gazetteer()
        self.notifier = notifier or LoggingNotifier()
        self.steps = tuple(steps)
        self.advance_delay = settings.advance_delay_seconds if advance_delay is None else advance_delay
        self.close_delay = settings.close_delay_seconds if close_delay is None else close_delay
        self.speech_timeout = settings.speech_timeout_seconds if speech_timeout is None else speech_timeout
        self.max_retries = settings.max_step_retries if max_retries is None else max_retries

        self.context = ConversationContext(language=language)
        self._active = True

        logger.info("conversation_driver_initialized", language=language.value, steps=len(self.steps))

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1

    @property
    def current_step(self) -> ConversationStep:
        return self.steps[self.context.step_index]

    # ── Matching ─────────────────────────────────────────────────

    def process_answer(self, ctx: ConversationContext, utterance: str) -> StepResult:
        """Match one finalized utterance against the step ``ctx`` points at."""
        step = self.steps[ctx.step_index]
        ctx = ctx.logged("user", utterance)

        if ctx.pending is not None:
            if _is_affirmative(utterance):
                return self._accepted(ctx, step, ctx.pending.candidate)
            return self._rejected(ctx, step)

        if step.field == StepField.SERVICE:
            service = match_service(utterance, self.gazetteer.services)
            if service is None:
                return self._rejected(ctx, step)
            display = service.tamil_name if ctx.language == TA and service.tamil_name else service.name
            return self._accepted(ctx, step, service.id, display)

        if step.field == StepField.DESCRIPTION:
            text = utterance.strip()
            if not text:
                return self._rejected(ctx, step)
            return self._accepted(ctx, step, text)

        candidates = self._location_candidates(ctx, step.field)
        match = match_location(utterance, candidates)
        logger.info(
            "location_match",
            field=step.field.value,
            candidate=match.candidate,
            similarity=round(match.similarity, 3),
            decision=match.decision.value,
            path=match.path,
        )

        if match.decision == MatchDecision.ACCEPT:
            return self._accepted(ctx, step, match.candidate)
        if match.decision == MatchDecision.CONFIRM:
            reply = _localized(CONFIRM_PROMPT, ctx.language).format(name=match.candidate)
            ctx = ctx.awaiting(PendingConfirmation(match.candidate, match.similarity))
            return StepResult(MatchDecision.CONFIRM, reply, ctx.logged("assistant", reply))
        return self._rejected(ctx, step)

    def _location_candidates(self, ctx: ConversationContext, step_field: StepField) -> list[str]:
        if step_field == StepField.STATE:
            return self.gazetteer.state_names()
        if ctx.selected_state:
            return self.gazetteer.districts_for(ctx.selected_state)
        return [name for name, _ in self.gazetteer.all_districts()]

    def _accepted(
        self,
        ctx: ConversationContext,
        step: ConversationStep,
        value: str,
        display: str | None = None,
    ) -> StepResult:
        if step.field == StepField.STATE:
            ctx = replace(ctx, selected_state=value)
        ctx = replace(ctx, pending=None)
        reply = _localized(ACKNOWLEDGEMENTS[step.field], ctx.language).format(name=display or value)
        return StepResult(MatchDecision.ACCEPT, reply, ctx.logged("assistant", reply), value)

    def _rejected(self, ctx: ConversationContext, step: ConversationStep) -> StepResult:
        reply = step.retry_for(ctx.language)
        ctx = ctx.retried()
        return StepResult(MatchDecision.REJECT, reply, ctx.logged("assistant", reply))

    # ── Conversation loop ────────────────────────────────────────

    async def run(self) -> DriverOutcome:
        """
        Run the conversation until it completes, goes idle, or is closed.

        Calling ``run()`` again after IDLE resumes at the same step.
        """
        ctx = replace(self.context, pending=None)
        self.context = ctx
        ask = True

        while self._active:
            step = self.steps[ctx.step_index]
            if ask:
                await self._say(ctx, step.prompt_for(ctx.language))
                ask = False
            if not self._active:
                break

            try:
                heard = await self.recognizer.listen(ctx.language)
            except RecognitionError as e:
                if not self._active:
                    break
                if e.is_no_speech:
                    ctx = ctx.retried()
                    self.context = ctx
                    logger.info("recognition_no_speech", step=step.field.value, retries=ctx.retries)
                    if ctx.retries >= self.max_retries:
                        return await self._give_up(ctx)
                    continue
                if e.is_aborted:
                    logger.info("recognition_aborted", step=step.field.value)
                    return DriverOutcome.IDLE
                logger.error("recognition_error", step=step.field.value, kind=e.kind)
                self.notifier.notify(Notification.from_error(e, "Please try again"))
                return DriverOutcome.IDLE

            if not self._active:
                break

            result = self.process_answer(ctx, heard)
            ctx = result.context
            self.context = ctx
            await self._say(ctx, result.reply)

            if result.decision == MatchDecision.ACCEPT:
                self._apply(step, result.value or "")
                if ctx.step_index >= self.last_index:
                    await asyncio.sleep(self.close_delay)
                    self.close()
                    logger.info("conversation_completed", turns=len(ctx.transcript))
                    return DriverOutcome.COMPLETED

                await asyncio.sleep(self.advance_delay)
                if not self._active:
                    break
                ctx = ctx.advanced(self.last_index)
                self.context = ctx
                ask = True
                logger.info("conversation_step_advanced", step=self.steps[ctx.step_index].field.value)
            elif result.decision == MatchDecision.REJECT and ctx.retries >= self.max_retries:
                return await self._give_up(ctx)

        return DriverOutcome.CLOSED

    def close(self) -> None:
        """Stop speaking and listening; results that arrive later are ignored."""
        if not self._active:
            return
        self._active = False
        self.synthesizer.cancel()
        self.recognizer.abort()
        logger.info("conversation_closed", step_index=self.context.step_index)

    async def _say(self, ctx: ConversationContext, text: str) -> UtteranceOutcome:
        utterance = self.synthesizer.speak(text, ctx.language)
        outcome = await utterance.wait(self.speech_timeout)
        if outcome == UtteranceOutcome.FAILED:
            logger.warning("speech_playback_failed", error=str(utterance.error))
        return outcome

    def _apply(self, step: ConversationStep, value: str) -> None:
        setters = {
            StepField.SERVICE: self.callbacks.on_service_select,
            StepField.STATE: self.callbacks.on_state_select,
            StepField.DISTRICT: self.callbacks.on_district_select,
            StepField.DESCRIPTION: self.callbacks.on_description_update,
        }
        setters[step.field](value)
        logger.info("conversation_field_selected", field=step.field.value)

    async def _give_up(self, ctx: ConversationContext) -> DriverOutcome:
        logger.warning("conversation_retries_exhausted", step=self.steps[ctx.step_index].field.value)
        await self._say(ctx, _localized(EXIT_MESSAGE, ctx.language))
        self.notifier.notify(Notification(
            title="Voice input stopped",
            description="Please type your answer instead.",
            variant=Variant.WARNING,
        ))
        self.close()
        return DriverOutcome.EXHAUSTED
