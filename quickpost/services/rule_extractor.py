"""
Rule-based Field Extractor.

A deterministic, offline extractor that reads English transcripts with
keyword tables and the gazetteer. The voice API uses it when
``extraction_backend`` is ``rules``; it never invents values it did not
find in the text.
"""

from __future__ import annotations

import re
from typing import Optional

from quickpost.exceptions import ExtractionFailed
from quickpost.logging_config import get_logger
from quickpost.schemas.extraction import (
    BudgetRange,
    Extracted,
    ExtractedJob,
    ExtractedUser,
    ExtractionMode,
    JobLocation,
    Urgency,
    UserLocation,
)
from quickpost.schemas.voice import SupportedLanguage, Transcript
from quickpost.services.fuzzy_match import match_service
from quickpost.services.gazetteer import Gazetteer, get_gazetteer

logger = get_logger(__name__)

LOW_URGENCY_PHRASES = ("not urgent", "no rush", "no hurry", "whenever", "flexible", "next month")
HIGH_URGENCY_PHRASES = ("urgent", "emergency", "immediately", "asap", "right away", "right now", "today")

TIMEFRAME_PATTERN = re.compile(
    r"\b(today|tonight|tomorrow|this week|next week|this weekend|next month|within \d+ (?:days?|hours?|weeks?))\b",
    re.IGNORECASE,
)
BUDGET_KEYWORD = re.compile(r"budget|rupees|\brs\b\.?|₹|\binr\b", re.IGNORECASE)
NUMBER = re.compile(r"\d[\d,]*")
PLACE_AFTER_PREPOSITION = re.compile(r"\b(?:in|at|near)\s+([A-Z][\w'-]*(?:\s+[A-Z][\w'-]*)*)")
NAME_PATTERN = re.compile(
    r"(?i:my name is|name is|this is|i am|i'm)\s+([A-Z][a-zA-Z]+)(?:\s+([A-Z][a-zA-Z]+))?"
)
MOBILE_PATTERN = re.compile(r"(?<!\d)(?:\+?91)?([6-9]\d{9})(?!\d)")
TASK_VERBS = ("fix", "repair", "install", "replace", "check", "clean", "paint", "build", "service", "remove")

# Longest plausible budget figure; anything longer is a phone number
MAX_BUDGET_DIGITS = 7


def _has_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase)}\b", text) is not None


def detect_urgency(text: str) -> Urgency:
    lowered = text.lower()
    if any(_has_phrase(lowered, p) for p in LOW_URGENCY_PHRASES):
        return Urgency.LOW
    if any(_has_phrase(lowered, p) for p in HIGH_URGENCY_PHRASES):
        return Urgency.HIGH
    return Urgency.MEDIUM


def detect_budget(text: str) -> Optional[BudgetRange]:
    """Numbers near "budget", "rupees", "rs" or "₹"; one number means a fixed budget."""
    keyword = BUDGET_KEYWORD.search(text)
    if keyword is None:
        return None

    window = text[max(0, keyword.start() - 30): keyword.end() + 40]
    amounts = []
    for raw in NUMBER.findall(window):
        digits = raw.replace(",", "")
        if digits and len(digits) <= MAX_BUDGET_DIGITS:
            amounts.append(float(digits))
    if not amounts:
        return None
    if len(amounts) == 1:
        return BudgetRange(min=amounts[0], max=amounts[0])
    return BudgetRange(min=amounts[0], max=amounts[1])


def _collapse_digit_groups(text: str) -> str:
    return re.sub(r"(?<=\d)[\s-](?=\d)", "", text)


class RuleBasedExtractor:
    def __init__(self, gazetteer: Gazetteer | None = None) -> None:
        self.gazetteer = gazetteer or get_gazetteer()

    async def extract(self, transcript: Transcript, mode: ExtractionMode) -> Extracted:
        if transcript.is_blank:
            raise ExtractionFailed("Nothing to extract: the transcript is empty.")
        if mode == ExtractionMode.JOB:
            record = self.extract_job(transcript.text, transcript.detected_language)
        else:
            record = self.extract_user(transcript.text)
        return Extracted(record=record)

    def extract_job(self, text: str, language: SupportedLanguage = SupportedLanguage.ENGLISH) -> ExtractedJob:
        service = match_service(text, self.gazetteer.services)
        location = self.extract_location(text)
        budget = detect_budget(text)

        if service is None and location.is_empty and budget is None:
            logger.warning("rule_extraction_empty", mode="job", chars=len(text))
            raise ExtractionFailed("Could not recognise a service, location or budget in what was said.")

        urgency = detect_urgency(text)
        timeframe_match = TIMEFRAME_PATTERN.search(text)
        if timeframe_match:
            timeframe = timeframe_match.group(1).capitalize()
        elif urgency == Urgency.HIGH:
            timeframe = "As soon as possible"
        else:
            timeframe = "Flexible"

        job = ExtractedJob(
            job_title=f"{service.name} Service" if service else "Service Request",
            job_description=" ".join(text.split()),
            service_category=service.id if service else "",
            urgency=urgency,
            budget=budget,
            location=JobLocation(**location.model_dump()),
            requirements=self._requirements(text),
            timeframe=timeframe,
            original_language=language,
        )
        logger.info(
            "rule_extraction_complete",
            mode="job",
            service=job.service_category,
            urgency=job.urgency.value,
            has_budget=budget is not None,
        )
        return job

    def extract_user(self, text: str) -> ExtractedUser:
        name = NAME_PATTERN.search(text)
        if name is None:
            logger.warning("rule_extraction_empty", mode="user", chars=len(text))
            raise ExtractionFailed("Could not recognise a name in what was said.")

        first_name, last_name = name.group(1), name.group(2) or ""
        location = self.extract_location(text)
        if last_name and last_name.lower() in self._place_words(location):
            last_name = ""

        mobile_match = MOBILE_PATTERN.search(_collapse_digit_groups(text))
        mobile = mobile_match.group(1) if mobile_match else None

        found = 1 + (mobile is not None) + (not location.is_empty)
        return ExtractedUser(
            first_name=first_name,
            last_name=last_name,
            mobile=mobile,
            location=location,
            confidence=round(found / 3, 2),
        )

    def extract_location(self, text: str) -> UserLocation:
        """Area, district and state named in ``text`` (gazetteer names only for district/state)."""
        lowered = text.lower()

        state = next(
            (s.name for s in self.gazetteer.states if _has_phrase(lowered, s.name.lower())),
            None,
        )
        candidates = (
            [(d, state) for d in self.gazetteer.districts_for(state)] if state else self.gazetteer.all_districts()
        )
        district = next((d for d, _ in candidates if _has_phrase(lowered, d.lower())), None)
        if district is None and state:
            # District named outside the stated state; still worth keeping
            district = next(
                (d for d, _ in self.gazetteer.all_districts() if _has_phrase(lowered, d.lower())),
                None,
            )
        if district and not state:
            state = self.gazetteer.state_of_district(district)

        known = {n.lower() for n in (district, state) if n}
        area = None
        for match in PLACE_AFTER_PREPOSITION.finditer(text):
            phrase = match.group(1).strip()
            if phrase.lower() not in known and not any(phrase.lower() == s.name.lower() for s in self.gazetteer.states):
                area = phrase
                break

        return UserLocation(area=area, district=district, state=state)

    @staticmethod
    def _place_words(location: UserLocation) -> set[str]:
        return {w.lower() for part in location.parts() for w in part.split()}

    @staticmethod
    def _requirements(text: str) -> list[str]:
        requirements = []
        for clause in re.split(r"[.,;]| and ", text):
            words = clause.strip().split()
            for i, word in enumerate(words):
                if word.lower() in TASK_VERBS:
                    requirements.append(" ".join(words[i:]).capitalize())
                    break
        return requirements
