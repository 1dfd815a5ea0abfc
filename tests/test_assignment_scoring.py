"""Tests for the pure counselor scoring functions."""

import uuid
from types import SimpleNamespace

import pytest

from admissions.db.enums import Availability
from admissions.services.assignment_scoring import (
    Assigned,
    Unassigned,
    format_auto_reason,
    rank_candidates,
    score_counselor,
)


def _counselor(
    *,
    expertise=None,
    languages=None,
    availability=Availability.ACTIVE.value,
    current_load=0,
    max_capacity=50,
):
    return SimpleNamespace(
        id=uuid.uuid4(),
        expertise=expertise if expertise is not None else [],
        languages=languages if languages is not None else ["English"],
        availability=availability,
        current_load=current_load,
        max_capacity=max_capacity,
    )


def test_perfect_match_scores_100():
    counselor = _counselor(expertise=["computer science"], languages=["English"])

    card = score_counselor(counselor, "Computer Science", "English")

    assert card is not None
    assert card.score == 100
    assert card.reason_text == "Expertise match, Language match, Low workload, No current load"
    assert format_auto_reason(card) == (
        "Auto-assigned: Expertise match, Language match, Low workload, "
        "No current load (Score: 100)"
    )


def test_full_counselor_is_excluded_even_with_perfect_match():
    counselor = _counselor(
        expertise=["computer science"], languages=["English"], current_load=50, max_capacity=50
    )

    assert score_counselor(counselor, "Computer Science", "English") is None


def test_over_capacity_counselor_is_excluded():
    counselor = _counselor(current_load=60, max_capacity=50)

    assert score_counselor(counselor, "Computer Science", "English") is None


def test_inactive_counselor_is_excluded():
    counselor = _counselor(availability=Availability.INACTIVE.value)

    assert score_counselor(counselor, "Computer Science", "English") is None


@pytest.mark.parametrize(
    ("current_load", "expected_score", "expected_reason"),
    [
        (24, 20, "Low workload"),  # 48%
        (25, 10, "Moderate workload"),  # 50%
        (39, 10, "Moderate workload"),  # 78%
        (40, 0, None),  # 80%
        (49, 0, None),  # 98%
    ],
)
def test_workload_bands(current_load, expected_score, expected_reason):
    counselor = _counselor(languages=[], current_load=current_load, max_capacity=50)

    card = score_counselor(counselor, "Computer Science", "English")

    assert card is not None
    assert card.score == expected_score
    if expected_reason:
        assert card.reasons == (expected_reason,)
    else:
        assert card.reasons == ()


def test_expertise_matches_substring_either_way():
    broad = _counselor(expertise=["Science"], languages=[], current_load=45)
    narrow = _counselor(expertise=["Computer Science Engineering"], languages=[], current_load=45)
    unrelated = _counselor(expertise=["Commerce"], languages=[], current_load=45)

    assert score_counselor(broad, "Computer Science", None).score == 40
    assert score_counselor(narrow, "Computer Science", None).score == 40
    assert score_counselor(unrelated, "Computer Science", None).score == 0


def test_language_match_is_case_insensitive_and_exact():
    counselor = _counselor(languages=["hindi", "English"], current_load=45)

    assert score_counselor(counselor, "Design", "Hindi").score == 30
    assert score_counselor(counselor, "Design", "Hin").score == 0
    assert score_counselor(counselor, "Design", None).score == 0


def test_no_current_load_bonus_only_at_zero():
    idle = _counselor(languages=[], current_load=0)
    busy = _counselor(languages=[], current_load=1)

    assert score_counselor(idle, "Design", None).score == 30
    assert score_counselor(busy, "Design", None).score == 20


def test_rank_prefers_higher_score():
    expert = _counselor(expertise=["computer science"], current_load=10)
    generalist = _counselor(current_load=0)

    ranked = rank_candidates(
        score_counselor(c, "Computer Science", "English") for c in (generalist, expert)
    )

    assert [card.counselor for card in ranked] == [expert, generalist]


def test_rank_ties_go_to_lower_load_percentage():
    busier = _counselor(languages=[], current_load=20, max_capacity=50)  # 40%
    lighter = _counselor(languages=[], current_load=10, max_capacity=50)  # 20%

    ranked = rank_candidates(score_counselor(c, "Design", None) for c in (busier, lighter))

    assert ranked[0].score == ranked[1].score == 20
    assert ranked[0].counselor is lighter


def test_rank_drops_excluded_counselors():
    full = _counselor(current_load=50, max_capacity=50)

    assert rank_candidates([score_counselor(full, "Design", None), None]) == []


def test_scoring_does_not_mutate_counselor():
    counselor = _counselor(expertise=["design"], current_load=3)
    before = dict(vars(counselor))

    score_counselor(counselor, "Design", "English")
    score_counselor(counselor, "Design", "English")

    assert vars(counselor) == before


def test_unassigned_outcome_has_no_counselor():
    outcome = Unassigned(assignment_reason="No counselors available: test")

    assert outcome.counselor is None
    assert outcome.auto_assigned is False
    assert outcome.score == 0


def test_assigned_outcome_carries_counselor():
    counselor = _counselor()
    outcome = Assigned(counselor=counselor, auto_assigned=True, assignment_reason="x", score=70)

    assert outcome.counselor is counselor
    assert outcome.score == 70
