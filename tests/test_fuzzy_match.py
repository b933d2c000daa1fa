import pytest

from quickpost.schemas.conversation import MatchDecision
from quickpost.services.fuzzy_match import (
    calculate_similarity,
    classify_similarity,
    levenshtein_distance,
    match_location,
    match_service,
    normalize_utterance,
)


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("salem", "salem") == 0


def test_similarity_is_one_for_identical_strings_ignoring_case():
    assert calculate_similarity("Salem", "salem") == 1.0
    assert calculate_similarity("Tamil  Nadu", "tamil nadu") == 1.0


@pytest.mark.parametrize(
    "a, b",
    [
        ("", "Chennai"),
        ("Chennai", "   "),
        ("Salem", "Salem Town"),
        ("nagar", "Anna Nagar"),
    ],
)
def test_containment_always_scores_at_least_the_floor(a, b):
    assert calculate_similarity(a, b) >= 0.8
    assert calculate_similarity(b, a) >= 0.8


def test_similarity_is_symmetric_and_bounded():
    a, b = "Coimbatore", "Kovai"
    assert calculate_similarity(a, b) == calculate_similarity(b, a)
    assert 0.0 <= calculate_similarity(a, b) <= 1.0


def test_containment_floors_similarity():
    # Plain ratio would be 1 - 5/12
    assert calculate_similarity("chennai city", "Chennai") == pytest.approx(0.8)
    assert calculate_similarity("Madurai", "madurai district") >= 0.8


def test_similarity_ratio():
    assert calculate_similarity("Chenai", "Chennai") == pytest.approx(1 - 1 / 7)


@pytest.mark.parametrize(
    "similarity, expected",
    [
        (1.0, MatchDecision.ACCEPT),
        (0.71, MatchDecision.ACCEPT),
        (0.7, MatchDecision.CONFIRM),
        (0.61, MatchDecision.CONFIRM),
        (0.6, MatchDecision.REJECT),
        (0.0, MatchDecision.REJECT),
    ],
)
def test_thresholds_are_strict(similarity, expected):
    assert classify_similarity(similarity) == expected


def test_normalize_utterance_drops_fillers_and_punctuation():
    assert normalize_utterance("I live in Salem district.") == "salem"
    assert normalize_utterance("Tamil Nadu, please!") == "tamil nadu"


def test_exact_match_after_normalization(gazetteer):
    result = match_location("I live in Salem", gazetteer.districts_for("Tamil Nadu"))
    assert result.candidate == "Salem"
    assert result.similarity == 1.0
    assert result.path == "exact"
    assert result.accepted


def test_fuzzy_match_accepts_close_spelling(gazetteer):
    result = match_location("Chenai", gazetteer.districts_for("Tamil Nadu"))
    assert result.candidate == "Chennai"
    assert result.path == "fuzzy"
    assert result.decision == MatchDecision.ACCEPT


def test_fuzzy_match_in_confirm_band():
    # Three edits over ten characters gives exactly 0.7
    result = match_location("abcdefgxyz", ["abcdefghij"])
    assert result.similarity == pytest.approx(0.7)
    assert result.decision == MatchDecision.CONFIRM


def test_fuzzy_match_rejects_unrelated(gazetteer):
    result = match_location("qwerty", gazetteer.state_names())
    assert result.decision == MatchDecision.REJECT


def test_first_candidate_wins_ties():
    result = match_location("abcz", ["abcx", "abcy"])
    assert result.candidate == "abcx"


def test_blank_utterance_matches_nothing(gazetteer):
    result = match_location("  the  ", gazetteer.state_names())
    assert result.candidate is None
    assert result.path == "none"


def test_match_service_by_synonym(gazetteer):
    assert match_service("I need a plumber", gazetteer.services).id == "plumbing"
    assert match_service("looking for a painter", gazetteer.services).id == "painting"


def test_match_service_by_tamil_name(gazetteer):
    assert match_service("எனக்கு மெக்கானிக் வேண்டும்", gazetteer.services).id == "mechanic"


def test_match_service_partial_word(gazetteer):
    # Spoken "electric" is a substring of the catalog name "electrical"
    assert match_service("electric", gazetteer.services).id == "electrical"


def test_match_service_accepts_plurals(gazetteer):
    assert match_service("two painters needed", gazetteer.services).id == "painting"


def test_match_service_needs_a_word_start(gazetteer):
    assert match_service("I want to file a complaint", gazetteer.services) is None
    assert match_service("my screwdriver is broken", gazetteer.services) is None


def test_match_service_ignores_very_short_utterances(gazetteer):
    assert match_service("ac", gazetteer.services) is None
    assert match_service("", gazetteer.services) is None
