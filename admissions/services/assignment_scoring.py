"""
Counselor scoring for lead auto-assignment.

Pure functions over already-loaded records: no database access and no
shared state, so ranking can be tested without persistence.

Weights (additive):
    +40  expertise entry matches the course name (substring, either way)
    +30  language equals the lead's preferred language
    +20  load < 50% of capacity, +10 if < 80%, 0 for 80-99%
    +10  no current load
Counselors at or above 100% load, or not ACTIVE, are excluded entirely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Protocol, Union
from uuid import UUID

from admissions.core.constants import (
    EXPERTISE_MATCH_POINTS,
    FULL_LOAD_PERCENT,
    LANGUAGE_MATCH_POINTS,
    LOW_WORKLOAD_PERCENT,
    LOW_WORKLOAD_POINTS,
    MODERATE_WORKLOAD_PERCENT,
    MODERATE_WORKLOAD_POINTS,
    NO_CURRENT_LOAD_POINTS,
)
from admissions.db.enums import Availability

if TYPE_CHECKING:
    from admissions.db.models import CounselorProfile


class ScorableCounselor(Protocol):
    id: UUID
    expertise: list[str]
    languages: list[str]
    availability: str
    current_load: int
    max_capacity: int


@dataclass(frozen=True)
class ScoreCard:
    """Score for one eligible counselor."""
    counselor: ScorableCounselor
    score: int
    reasons: tuple[str, ...]
    load_percentage: float

    @property
    def reason_text(self) -> str:
        return ", ".join(self.reasons)


# =============================================================================
# Assignment outcome (sum type)
# =============================================================================

@dataclass(frozen=True)
class Assigned:
    """A counselor was selected, by scoring or by the lowest-load fallback."""
    counselor: "CounselorProfile"
    auto_assigned: bool
    assignment_reason: str
    score: int = 0


@dataclass(frozen=True)
class Unassigned:
    """No counselor could be selected; the lead stays unassigned."""
    assignment_reason: str
    counselor: None = field(default=None, init=False)
    auto_assigned: bool = field(default=False, init=False)
    score: int = field(default=0, init=False)


AssignmentOutcome = Union[Assigned, Unassigned]


# =============================================================================
# Scoring
# =============================================================================

def _has_expertise(expertise: Iterable[str], course_name: str) -> bool:
    course = course_name.lower()
    for entry in expertise or []:
        area = entry.lower()
        if area and (area in course or course in area):
            return True
    return False


def _speaks(languages: Iterable[str], preferred_language: str | None) -> bool:
    if not preferred_language:
        return False
    wanted = preferred_language.lower()
    return any(lang.lower() == wanted for lang in languages or [])


def score_counselor(
    counselor: ScorableCounselor,
    course_name: str,
    preferred_language: str | None,
) -> ScoreCard | None:
    """
    Score one counselor for a lead.

    Returns None when the counselor must not receive the lead
    (inactive, or at/over capacity).
    """
    if counselor.availability != Availability.ACTIVE.value:
        return None

    load_percentage = counselor.current_load / counselor.max_capacity * 100
    if load_percentage >= FULL_LOAD_PERCENT:
        return None

    score = 0
    reasons: list[str] = []

    if _has_expertise(counselor.expertise, course_name):
        score += EXPERTISE_MATCH_POINTS
        reasons.append("Expertise match")

    if _speaks(counselor.languages, preferred_language):
        score += LANGUAGE_MATCH_POINTS
        reasons.append("Language match")

    if load_percentage < LOW_WORKLOAD_PERCENT:
        score += LOW_WORKLOAD_POINTS
        reasons.append("Low workload")
    elif load_percentage < MODERATE_WORKLOAD_PERCENT:
        score += MODERATE_WORKLOAD_POINTS
        reasons.append("Moderate workload")

    if counselor.current_load == 0:
        score += NO_CURRENT_LOAD_POINTS
        reasons.append("No current load")

    return ScoreCard(
        counselor=counselor,
        score=score,
        reasons=tuple(reasons),
        load_percentage=load_percentage,
    )


def rank_candidates(cards: Iterable[ScoreCard | None]) -> list[ScoreCard]:
    """Highest score first; ties go to the lower load percentage."""
    eligible = [card for card in cards if card is not None]
    return sorted(eligible, key=lambda card: (-card.score, card.load_percentage))


def format_auto_reason(card: ScoreCard) -> str:
    return f"Auto-assigned: {card.reason_text} (Score: {card.score})"
