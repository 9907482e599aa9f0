import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from services.profile_engine.aggregation import (
    LIKERT_MAX,
    LIKERT_MIN,
    QUESTION_COUNT,
    ScoringOverrides,
    calculate_trait_vector,
    traits_for_question,
    validate_responses,
)
from services.profile_engine.errors import ResponseValidationError
from services.profile_engine.frameworks.mbti import calculate_mbti

logger = logging.getLogger(__name__)

SIGNIFICANT_TRAIT_SWING = 1.0


class AnswerVariant(BaseModel):
    answer: float
    mbti_type: str
    trait_scores: Dict[str, float]


class QuestionImpact(BaseModel):
    question: int
    affected_traits: List[str]
    variants: List[AnswerVariant]
    mbti_types: List[str]
    trait_swings: Dict[str, float] = Field(default_factory=dict)
    max_trait_swing: float
    high_impact: bool


def analyze_question_impact(
    responses: Sequence[float],
    question: int,
    overrides: Optional[ScoringOverrides] = None,
) -> QuestionImpact:
    """
    Replays a response vector with one answer swept across the Likert range.

    A question is high impact when the MBTI type changes somewhere in the
    sweep or any trait moves by more than SIGNIFICANT_TRAIT_SWING.
    """
    if not 1 <= question <= QUESTION_COUNT:
        raise ResponseValidationError(f"Question must be within 1..{QUESTION_COUNT}, got {question}")
    baseline = validate_responses(responses)
    mappings = overrides.mappings() if overrides else None
    affected = traits_for_question(question, mappings)

    variants: List[AnswerVariant] = []
    for answer in range(int(LIKERT_MIN), int(LIKERT_MAX) + 1):
        varied = list(baseline)
        varied[question - 1] = float(answer)
        vector = calculate_trait_vector(varied, overrides)
        variants.append(AnswerVariant(
            answer=float(answer),
            mbti_type=calculate_mbti(vector).label,
            trait_scores={trait.value: vector[trait] for trait in affected},
        ))

    swings = {
        trait.value: max(v.trait_scores[trait.value] for v in variants) - min(v.trait_scores[trait.value] for v in variants)
        for trait in affected
    }
    mbti_types = list(dict.fromkeys(v.mbti_type for v in variants))
    max_swing = max(swings.values(), default=0.0)
    high_impact = len(mbti_types) > 1 or max_swing > SIGNIFICANT_TRAIT_SWING
    logger.info(f"Question {question}: max trait swing {max_swing:.2f}, MBTI types {mbti_types}")

    return QuestionImpact(
        question=question,
        affected_traits=[trait.value for trait in affected],
        variants=variants,
        mbti_types=mbti_types,
        trait_swings=swings,
        max_trait_swing=max_swing,
        high_impact=high_impact,
    )
