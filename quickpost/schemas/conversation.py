"""
Data models for the voice assistant conversation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from quickpost.schemas.voice import SupportedLanguage


class StepField(str, Enum):
    SERVICE = "service"
    STATE = "state"
    DISTRICT = "district"
    DESCRIPTION = "description"


class MatchDecision(str, Enum):
    ACCEPT = "accept"
    CONFIRM = "confirm"
    REJECT = "reject"


class DriverOutcome(str, Enum):
    """How a ``ConversationDriver.run()`` call finished."""
    COMPLETED = "completed"
    CLOSED = "closed"
    IDLE = "idle"          # recognition aborted or failed; run() again to resume
    EXHAUSTED = "exhausted"  # retry cap reached on a step


@dataclass(frozen=True)
class ConversationStep:
    """A single question in the intake conversation."""
    index: int
    field: StepField
    prompt: dict[SupportedLanguage, str]
    retry: dict[SupportedLanguage, str]

    def prompt_for(self, language: SupportedLanguage) -> str:
        return self.prompt.get(language) or self.prompt[SupportedLanguage.ENGLISH]

    def retry_for(self, language: SupportedLanguage) -> str:
        return self.retry.get(language) or self.retry[SupportedLanguage.ENGLISH]


@dataclass(frozen=True)
class PendingConfirmation:
    """A fuzzy candidate awaiting a yes/no from the user."""
    candidate: str
    similarity: float


@dataclass(frozen=True)
class ConversationContext:
    """
    Snapshot of the conversation. Transitions return a new context;
    scheduled work always receives the snapshot it was scheduled with.
    """
    step_index: int = 0
    language: SupportedLanguage = SupportedLanguage.ENGLISH
    retries: int = 0
    selected_state: Optional[str] = None
    pending: Optional[PendingConfirmation] = None
    transcript: tuple[str, ...] = field(default_factory=tuple)

    def advanced(self, last_index: int) -> ConversationContext:
        return replace(
            self,
            step_index=min(self.step_index + 1, last_index),
            retries=0,
            pending=None,
        )

    def retried(self) -> ConversationContext:
        return replace(self, retries=self.retries + 1, pending=None)

    def awaiting(self, pending: PendingConfirmation) -> ConversationContext:
        return replace(self, pending=pending)

    def logged(self, role: str, text: str) -> ConversationContext:
        return replace(self, transcript=self.transcript + (f"{role}: {text}",))
