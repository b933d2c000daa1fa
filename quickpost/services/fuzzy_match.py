"""
Fuzzy matching of spoken answers against reference data.

Locations (states, districts) are matched exact-first, then by
normalized Levenshtein similarity with a three-way decision:
auto-accept, ask to confirm, or reject. Services are matched by
substring containment, anchored at a word start, against names,
localized names and synonyms.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from quickpost.config import get_settings
from quickpost.schemas.conversation import MatchDecision
from quickpost.services.gazetteer import ServiceEntry

settings = get_settings()

# Similarity floor when one string contains the other
CONTAINMENT_FLOOR = 0.8

# Shortest utterance allowed to match as a substring of a service term
MIN_REVERSE_CONTAINMENT = 3

_PUNCTUATION = str.maketrans({ch: " " for ch in string.punctuation + "।॥“”‘’"})

FILLER_WORDS = frozenset({
    "a", "am", "at", "city", "district", "from", "i", "im", "in", "is",
    "it", "its", "live", "my", "near", "please", "state", "the", "town",
})


@dataclass(frozen=True)
class MatchResult:
    candidate: Optional[str]
    similarity: float
    decision: MatchDecision
    path: str  # "exact", "fuzzy" or "none"

    @property
    def accepted(self) -> bool:
        return self.decision == MatchDecision.ACCEPT


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def _fold(text: str) -> str:
    return " ".join(text.lower().split())


def calculate_similarity(a: str, b: str) -> float:
    """
    Similarity in [0, 1]: ``1 - distance / max_len`` on case- and
    whitespace-folded input, floored at 0.8 when one string contains
    the other.
    """
    a, b = _fold(a), _fold(b)
    if a == b:
        return 1.0

    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    ratio = 1.0 - levenshtein_distance(longer, shorter) / len(longer)
    if shorter in longer:
        return max(CONTAINMENT_FLOOR, ratio)
    return ratio


def normalize_utterance(text: str) -> str:
    """Lowercase, strip punctuation and drop filler words like "district"."""
    words = text.lower().translate(_PUNCTUATION).split()
    kept = [w for w in words if w not in FILLER_WORDS]
    return " ".join(kept)


def classify_similarity(
    similarity: float,
    accept_threshold: float | None = None,
    confirm_threshold: float | None = None,
) -> MatchDecision:
    accept = settings.fuzzy_accept_threshold if accept_threshold is None else accept_threshold
    confirm = settings.fuzzy_confirm_threshold if confirm_threshold is None else confirm_threshold

    if similarity > accept:
        return MatchDecision.ACCEPT
    if similarity > confirm:
        return MatchDecision.CONFIRM
    return MatchDecision.REJECT


def match_location(
    utterance: str,
    candidates: Sequence[str],
    accept_threshold: float | None = None,
    confirm_threshold: float | None = None,
) -> MatchResult:
    """
    Match a spoken place name against candidate names.

    An exact case-insensitive hit short-circuits with similarity 1.0.
    Otherwise every candidate is scored and the best one (first on ties)
    is classified against the thresholds.
    """
    spoken = normalize_utterance(utterance)
    if not spoken or not candidates:
        return MatchResult(None, 0.0, MatchDecision.REJECT, "none")

    raw = _fold(utterance)
    for candidate in candidates:
        folded = _fold(candidate)
        if folded == spoken or folded == raw:
            return MatchResult(candidate, 1.0, MatchDecision.ACCEPT, "exact")

    best: Optional[str] = None
    best_score = -1.0
    for candidate in candidates:
        score = calculate_similarity(spoken, candidate)
        if score > best_score:
            best, best_score = candidate, score

    decision = classify_similarity(best_score, accept_threshold, confirm_threshold)
    return MatchResult(best, best_score, decision, "fuzzy")


def match_service(utterance: str, services: Iterable[ServiceEntry]) -> Optional[ServiceEntry]:
    """
    First service whose name, localized name or synonym overlaps the utterance.

    Matches must begin at a word start, so "plumbers" finds "plumber"
    but "complaint" does not find "paint".
    """
    spoken = _fold(utterance.translate(_PUNCTUATION))
    if not spoken:
        return None

    padded = f" {spoken}"
    for service in services:
        for term in service.terms():
            if f" {term}" in padded:
                return service
            if len(spoken) >= MIN_REVERSE_CONTAINMENT and padded in f" {term}":
                return service
    return None
