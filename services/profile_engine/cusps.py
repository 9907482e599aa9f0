"""
Ambiguity ("cusp") detection over a personality profile.

A triad is a cusp when any two adjacent sorted scores sit closer than
CUSP_THRESHOLD. Two whole-profile checks look at the developmental level
result: a close primary/secondary level and a close pair of reality
sub-domains. Cusps are ranked by importance and capped at MAX_CUSPS.
"""
import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from services.profile_engine.frameworks.base import rank_candidates
from services.profile_engine.frameworks.integral import level_traits, subdomain_traits
from services.profile_engine.models import (
    CuspCandidate,
    CuspKind,
    CuspRecord,
    FrameworkName,
    IntegralResult,
    PersonalityProfile,
)
from services.profile_engine.taxonomy import TRIADS, Triad
from services.profile_engine.vector import TraitVector

logger = logging.getLogger(__name__)

CUSP_THRESHOLD = 2.5
MAX_CUSPS = 5
TRIAD_DELTA_BOUND = 1.5
PROFILE_DELTA_BOUND = 1.2

LEVEL_GAP = 1.0
LEVEL_IMPORTANCE = 9.5
REALITY_GAP = 0.7
REALITY_IMPORTANCE = 8.8

LOW_CONFIDENCE = 70.0
NARROW_LEVEL_GAP = 0.5
NARROW_REALITY_SPREAD = 0.2


def triad_cusp(vector: TraitVector, triad: Triad) -> Optional[CuspRecord]:
    ranked = rank_candidates({trait: vector[trait] for trait in triad.traits})
    (_, first), (_, second), (_, third) = ranked
    top_gap = first - second
    bottom_gap = second - third
    if top_gap >= CUSP_THRESHOLD and bottom_gap >= CUSP_THRESHOLD:
        return None
    importance = max(CUSP_THRESHOLD - top_gap, CUSP_THRESHOLD - bottom_gap, 0.0)
    return CuspRecord(
        cusp_id=f"triad:{triad.key}",
        kind=CuspKind.TRIAD,
        label=triad.label,
        candidates=[CuspCandidate(name=trait.value, score=score) for trait, score in ranked],
        traits=list(triad.traits),
        importance=importance,
        max_delta=TRIAD_DELTA_BOUND,
    )


def level_cusp(result: IntegralResult) -> Optional[CuspRecord]:
    primary, secondary = result.primary_level, result.secondary_level
    if secondary is None or primary.score - secondary.score > LEVEL_GAP:
        return None
    return CuspRecord(
        cusp_id="profile:developmental_level",
        kind=CuspKind.DEVELOPMENTAL_LEVEL,
        label=f"Developmental level - {primary.color} / {secondary.color}",
        candidates=[
            CuspCandidate(name=primary.color, score=primary.score),
            CuspCandidate(name=secondary.color, score=secondary.score),
        ],
        traits=level_traits(primary.key, secondary.key),
        importance=LEVEL_IMPORTANCE,
        max_delta=PROFILE_DELTA_BOUND,
    )


def reality_cusp(result: IntegralResult) -> Optional[CuspRecord]:
    ranked = rank_candidates(result.reality_mapping)
    if len(ranked) < 2:
        return None
    (first, first_score), (second, second_score) = ranked[:2]
    if first_score - second_score > REALITY_GAP:
        return None
    return CuspRecord(
        cusp_id="profile:reality_domain",
        kind=CuspKind.REALITY_DOMAIN,
        label=f"Reality focus - {first} / {second}",
        candidates=[
            CuspCandidate(name=first, score=first_score),
            CuspCandidate(name=second, score=second_score),
        ],
        traits=subdomain_traits(first, second),
        importance=REALITY_IMPORTANCE,
        max_delta=PROFILE_DELTA_BOUND,
    )


def detect_cusps(profile: PersonalityProfile, limit: int = MAX_CUSPS) -> List[CuspRecord]:
    """Returns the most important cusps, highest importance first."""
    cusps = [cusp for cusp in (triad_cusp(profile.trait_vector, triad) for triad in TRIADS) if cusp]

    integral = profile.result(FrameworkName.INTEGRAL)
    if isinstance(integral, IntegralResult):
        cusps.extend(cusp for cusp in (level_cusp(integral), reality_cusp(integral)) if cusp)
    else:
        logger.info("No developmental level result; skipping whole-profile cusp checks")

    cusps.sort(key=lambda cusp: -cusp.importance)
    if len(cusps) > limit:
        logger.debug(f"Dropping {len(cusps) - limit} lower-importance cusps")
    return cusps[:limit]


async def attach_questions(cusps: List[CuspRecord], service) -> List[CuspRecord]:
    """Generates one question per cusp concurrently; returns updated copies."""
    answers = await asyncio.gather(*(service.question_for(cusp) for cusp in cusps))
    return [cusp.model_copy(update={"questions": [question]}) for cusp, (question, _) in zip(cusps, answers)]


class ConfidenceReport(BaseModel):
    overall_confidence: float
    needs_clarification: bool
    uncertainty_areas: List[str] = Field(default_factory=list)
    recommended_actions: List[str] = Field(default_factory=list)


def analyze_confidence(profile: PersonalityProfile) -> ConfidenceReport:
    """Flags weak spots in the developmental level result."""
    integral = profile.result(FrameworkName.INTEGRAL)
    if not isinstance(integral, IntegralResult):
        return ConfidenceReport(
            overall_confidence=0.0,
            needs_clarification=True,
            uncertainty_areas=["developmental level unavailable"],
            recommended_actions=["Recompute the profile"],
        )

    areas: List[str] = []
    actions: List[str] = []
    if integral.confidence < LOW_CONFIDENCE:
        areas.append("overall confidence")
        actions.append("Answer the developmental clarification questions")
    secondary = integral.secondary_level
    if secondary is not None and integral.primary_level.score - secondary.score < NARROW_LEVEL_GAP:
        areas.append(f"{integral.primary_level.color} vs {secondary.color}")
        actions.append("Explore scenarios that separate the two leading levels")
    values = list(integral.reality_mapping.values())
    if values and max(values) - min(values) < NARROW_REALITY_SPREAD:
        areas.append("reality sub-domain focus")
        actions.append("Clarify whether physical, social or universal concerns come first")

    return ConfidenceReport(
        overall_confidence=integral.confidence,
        needs_clarification=bool(areas),
        uncertainty_areas=areas,
        recommended_actions=actions,
    )
